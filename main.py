import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import Settings, get_settings
from models.scan import ErrorResponse, HealthResponse, ScanResponse
from services.alpha_vantage import AlphaVantageClient
from services.errors import ScannerError, ValidationError
from services.scanner import parse_scan_request, run_scan

logger = logging.getLogger(__name__)


# -----------------------------
# Client dependency
# -----------------------------

def get_av_client(request: Request) -> AlphaVantageClient:
    return request.app.state.av_client


def _normalize_symbol(symbol: str) -> str:
    symbol = symbol.strip().upper()
    if not symbol:
        raise ValidationError("Stock symbol parameter is required.")
    return symbol


# -----------------------------
# Error handlers
# -----------------------------

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


async def handle_validation_error(request: Request, exc: Exception):
    details = str(exc.errors()) if isinstance(exc, RequestValidationError) else None
    message = str(exc) if isinstance(exc, ValidationError) else "Invalid request parameters."
    body = ErrorResponse(error=message, details=details)
    return JSONResponse(status_code=400, content=body.model_dump())


async def handle_scanner_error(request: Request, exc: ScannerError):
    logger.error("Error in %s: %s", request.url.path, exc)
    body = ErrorResponse(error="Failed to fetch data from Alpha Vantage.", details=str(exc))
    return JSONResponse(status_code=500, content=body.model_dump())


# -----------------------------
# FastAPI app setup
# -----------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.alpha_vantage_api_key:
            logger.warning(
                "ALPHA_VANTAGE_API_KEY is not set. Alpha Vantage API calls will fail."
            )
        app.state.av_client = AlphaVantageClient(settings)
        try:
            yield
        finally:
            await app.state.av_client.aclose()

    app = FastAPI(
        title="Stock Setup Scanner API",
        description="Proxies Alpha Vantage indicators and scans symbols for bullish, bearish or neutral setups.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(ScannerError, handle_scanner_error)

    # -----------------------------
    # Health
    # -----------------------------

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="UP", timestamp=datetime.now(timezone.utc).isoformat())

    # -----------------------------
    # Scan endpoint
    # -----------------------------

    @app.get("/api/scan", response_model=ScanResponse, responses={400: ERROR_RESPONSES[400]})
    async def scan(
        symbols: Optional[str] = Query(None, description="Comma-separated stock symbols"),
        setup_type: str = Query("bullish", alias="setupType"),
        client: AlphaVantageClient = Depends(get_av_client),
    ):
        scan_request = parse_scan_request(symbols, setup_type)
        return await run_scan(client, scan_request)

    # -----------------------------
    # Raw provider endpoints
    # -----------------------------

    @app.get("/api/stocks/{symbol}/daily", responses=ERROR_RESPONSES)
    async def stock_daily(
        symbol: str,
        outputsize: str = Query("compact", pattern="^(compact|full)$"),
        client: AlphaVantageClient = Depends(get_av_client),
    ):
        return await client.fetch_daily_time_series(_normalize_symbol(symbol), outputsize)

    @app.get("/api/stocks/{symbol}/ema", responses=ERROR_RESPONSES)
    async def stock_ema(
        symbol: str,
        time_period: int = Query(10, gt=0),
        interval: str = Query("daily"),
        series_type: str = Query("close"),
        client: AlphaVantageClient = Depends(get_av_client),
    ):
        return await client.fetch_ema(_normalize_symbol(symbol), time_period, interval, series_type)

    @app.get("/api/stocks/{symbol}/rsi", responses=ERROR_RESPONSES)
    async def stock_rsi(
        symbol: str,
        time_period: int = Query(14, gt=0),
        interval: str = Query("daily"),
        series_type: str = Query("close"),
        client: AlphaVantageClient = Depends(get_av_client),
    ):
        return await client.fetch_rsi(_normalize_symbol(symbol), time_period, interval, series_type)

    @app.get("/api/stocks/{symbol}/stoch", responses=ERROR_RESPONSES)
    async def stock_stoch(
        symbol: str,
        interval: str = Query("daily"),
        fastkperiod: int = Query(5, gt=0),
        slowkperiod: int = Query(3, gt=0),
        slowdperiod: int = Query(3, gt=0),
        slowkmatype: int = Query(0, ge=0),  # 0 = SMA
        slowdmatype: int = Query(0, ge=0),
        client: AlphaVantageClient = Depends(get_av_client),
    ):
        return await client.fetch_stoch(
            _normalize_symbol(symbol),
            interval,
            fastkperiod,
            slowkperiod,
            slowdperiod,
            slowkmatype,
            slowdmatype,
        )

    # -----------------------------
    # Static scan form
    # -----------------------------

    # Mounted last so the API routes above take precedence
    if os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
