# services/scanner.py

import asyncio
import logging
from typing import List, Optional, Tuple

from models.scan import (
    IndicatorSnapshot,
    ScanError,
    ScanParameters,
    ScanRequest,
    ScanResponse,
    ScanResult,
    SetupType,
)
from services.alpha_vantage import EMA, PAYLOAD_KEYS, RSI, STOCH, AlphaVantageClient
from services.errors import SymbolProcessingError, ValidationError
from utils.series import latest_value

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# SETUP RULES
# ---------------------------------------------------------

NEUTRAL_EMA_TOLERANCE = 0.01  # each EMA within 1% of the EMA mean


def is_bullish(s: IndicatorSnapshot) -> bool:
    trend = s.ema10 > s.ema20 > s.ema50
    momentum = 55 <= s.rsi <= 80 and s.stoch_k > 60
    return trend and momentum


def is_bearish(s: IndicatorSnapshot) -> bool:
    trend = s.ema10 < s.ema20 < s.ema50
    momentum = 20 <= s.rsi <= 45 and s.stoch_k < 40
    return trend and momentum


def is_neutral(s: IndicatorSnapshot) -> bool:
    emas = (s.ema10, s.ema20, s.ema50)
    mean = sum(emas) / len(emas)
    band = abs(mean) * NEUTRAL_EMA_TOLERANCE
    trend = all(abs(e - mean) <= band for e in emas)
    momentum = 45 <= s.rsi <= 65 and 25 <= s.stoch_k <= 75
    return trend and momentum


SETUP_RULES = {
    SetupType.BULLISH: is_bullish,
    SetupType.BEARISH: is_bearish,
    SetupType.NEUTRAL: is_neutral,
}


def evaluate_setup(setup_type: SetupType, snapshot: IndicatorSnapshot) -> bool:
    return SETUP_RULES[setup_type](snapshot)


# ---------------------------------------------------------
# REQUEST PARSING
# ---------------------------------------------------------

def parse_scan_request(symbols: Optional[str], setup_type: Optional[str] = None) -> ScanRequest:
    """
    Builds a ScanRequest from raw query values.
    Symbols are uppercased and de-duplicated in order of first appearance.
    Raises ValidationError for a missing symbol list or an unknown setup type.
    """

    parsed = [s.strip().upper() for s in (symbols or "").split(",")]
    parsed = list(dict.fromkeys(s for s in parsed if s))
    if not parsed:
        raise ValidationError(
            "Query parameter 'symbols' is required (comma-separated list of stock symbols)."
        )

    raw_type = (setup_type or SetupType.BULLISH.value).strip().lower()
    try:
        kind = SetupType(raw_type)
    except ValueError:
        expected = ", ".join(t.value for t in SetupType)
        raise ValidationError(f"Invalid setupType '{setup_type}'. Expected one of: {expected}.")

    return ScanRequest(symbols=parsed, setup_type=kind)


# ---------------------------------------------------------
# PER-SYMBOL PROCESSING
# ---------------------------------------------------------

# (snapshot field, fetch, payload key, value field)
INDICATORS = (
    ("ema10", lambda c, s: c.fetch_ema(s, 10), PAYLOAD_KEYS[EMA], "EMA"),
    ("ema20", lambda c, s: c.fetch_ema(s, 20), PAYLOAD_KEYS[EMA], "EMA"),
    ("ema50", lambda c, s: c.fetch_ema(s, 50), PAYLOAD_KEYS[EMA], "EMA"),
    ("rsi", lambda c, s: c.fetch_rsi(s, 14), PAYLOAD_KEYS[RSI], "RSI"),
    # SlowD is returned alongside but the rules only use %K
    ("stoch_k", lambda c, s: c.fetch_stoch(s), PAYLOAD_KEYS[STOCH], "SlowK"),
)


async def fetch_indicator_values(client: AlphaVantageClient, symbol: str) -> dict:
    """
    Fetches all indicators for one symbol concurrently and reduces each to its
    latest value. Values may be None; fetch failures raise SymbolProcessingError.
    """

    responses = await asyncio.gather(
        *(fetch(client, symbol) for _, fetch, _, _ in INDICATORS),
        return_exceptions=True,
    )

    for resp in responses:
        if isinstance(resp, BaseException):
            raise SymbolProcessingError(symbol, str(resp) or type(resp).__name__) from resp

    return {
        name: latest_value(resp, payload_key, field)
        for (name, _, payload_key, field), resp in zip(INDICATORS, responses)
    }


async def process_symbol(
    client: AlphaVantageClient, symbol: str, setup_type: SetupType
) -> Optional[ScanResult]:
    values = await fetch_indicator_values(client, symbol)

    missing = [name for name, value in values.items() if value is None]
    if missing:
        logger.info("Skipping %s, missing indicator data: %s", symbol, missing)
        raise SymbolProcessingError(symbol, f"Missing indicator data: {', '.join(missing)}")

    snapshot = IndicatorSnapshot(**values)
    if not evaluate_setup(setup_type, snapshot):
        return None

    return ScanResult(symbol=symbol, **snapshot.model_dump())


async def scan_symbol(
    client: AlphaVantageClient, symbol: str, setup_type: SetupType
) -> Tuple[Optional[ScanResult], Optional[ScanError]]:
    """
    Never raises: any failure becomes a ScanError so sibling symbols are unaffected.
    """

    try:
        return await process_symbol(client, symbol, setup_type), None
    except SymbolProcessingError as e:
        logger.error("Error scanning %s: %s", symbol, e.message)
        return None, ScanError(symbol=e.symbol, message=e.message)
    except Exception as e:
        logger.exception("Unexpected error scanning %s", symbol)
        return None, ScanError(symbol=symbol, message=str(e) or type(e).__name__)


# ---------------------------------------------------------
# SCAN
# ---------------------------------------------------------

async def run_scan(client: AlphaVantageClient, request: ScanRequest) -> ScanResponse:
    outcomes = await asyncio.gather(
        *(scan_symbol(client, symbol, request.setup_type) for symbol in request.symbols)
    )

    matches: List[ScanResult] = []
    errors: List[ScanError] = []
    for match, error in outcomes:
        if match is not None:
            matches.append(match)
        if error is not None:
            errors.append(error)

    logger.info(
        "Scan %s over %d symbols: %d matches, %d errors",
        request.setup_type.value, len(request.symbols), len(matches), len(errors),
    )

    return ScanResponse(
        scan_parameters=ScanParameters(symbols=request.symbols, setup_type=request.setup_type),
        matches=matches,
        errors=errors,
    )
