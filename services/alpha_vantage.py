# services/alpha_vantage.py

import logging
from typing import Any, Dict, Optional

import httpx

from config import Settings
from services.errors import ConfigurationError, ProviderError, ValidationError

logger = logging.getLogger(__name__)

# Raw JSON object as returned by Alpha Vantage
ProviderResponse = Dict[str, Any]


# ---------------------------------------------------------
# RESPONSE SCHEMA
# ---------------------------------------------------------

DAILY_ADJUSTED = "TIME_SERIES_DAILY_ADJUSTED"
EMA = "EMA"
RSI = "RSI"
STOCH = "STOCH"

# Each function keys its payload under exactly one top-level name
PAYLOAD_KEYS = {
    DAILY_ADJUSTED: "Time Series (Daily)",
    EMA: "Technical Analysis: EMA",
    RSI: "Technical Analysis: RSI",
    STOCH: "Technical Analysis: STOCH",
}

ADVISORY_KEYS = ("Note", "Information")


def validate_response(function: str, symbol: str, data: Any) -> ProviderResponse:
    """
    Checks a decoded Alpha Vantage response against the schema for `function`.
    Error messages and missing payloads raise ProviderError.
    Rate-limit notes and other advisories are only logged.
    """

    if not isinstance(data, dict):
        raise ProviderError(f"Unexpected response type for function {function} and symbol {symbol}")

    if "Error Message" in data:
        raise ProviderError(f"Alpha Vantage API Error: {data['Error Message']}")

    advisories = [f"{key}: {data[key]}" for key in ADVISORY_KEYS if key in data]
    for advisory in advisories:
        logger.warning("Alpha Vantage API %s (%s %s)", advisory, function, symbol)

    payload = data.get(PAYLOAD_KEYS[function])
    if not isinstance(payload, dict):
        detail = f"No data found or unexpected response format for function {function} and symbol {symbol}"
        if advisories:
            detail = f"{detail} ({'; '.join(advisories)})"
        raise ProviderError(detail)

    return data


# ---------------------------------------------------------
# CLIENT
# ---------------------------------------------------------

class AlphaVantageClient:
    """
    Thin async client for the Alpha Vantage query endpoint.
    One instance is shared by the app; every fetch is a single GET.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.alpha_vantage_api_key
        self.base_url = settings.alpha_vantage_base_url
        self._http = http_client or httpx.AsyncClient()

    async def aclose(self):
        await self._http.aclose()

    async def _query(self, params: Dict[str, Any]) -> ProviderResponse:
        function = params["function"]
        symbol = params.get("symbol")

        if not self.api_key:
            raise ConfigurationError("Alpha Vantage API key is missing.")
        if not symbol:
            raise ValidationError("Stock symbol is required.")

        try:
            resp = await self._http.get(self.base_url, params={**params, "apikey": self.api_key})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            logger.error("Request for %s on %s failed: %s", function, symbol, e)
            raise ProviderError(f"Network error: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from Alpha Vantage for {function} on {symbol}") from e

        try:
            return validate_response(function, symbol, data)
        except ProviderError as e:
            logger.error("Error in %s on %s: %s", function, symbol, e)
            raise

    async def fetch_daily_time_series(self, symbol: str, output_size: str = "compact") -> ProviderResponse:
        """
        Daily adjusted OHLCV. `output_size` is 'compact' (last 100 points) or 'full'.
        """
        return await self._query({
            "function": DAILY_ADJUSTED,
            "symbol": symbol,
            "outputsize": output_size,
        })

    async def fetch_ema(
        self,
        symbol: str,
        period: int,
        interval: str = "daily",
        series_type: str = "close",
    ) -> ProviderResponse:
        return await self._query({
            "function": EMA,
            "symbol": symbol,
            "interval": interval,
            "time_period": period,
            "series_type": series_type,
        })

    async def fetch_rsi(
        self,
        symbol: str,
        period: int,
        interval: str = "daily",
        series_type: str = "close",
    ) -> ProviderResponse:
        return await self._query({
            "function": RSI,
            "symbol": symbol,
            "interval": interval,
            "time_period": period,
            "series_type": series_type,
        })

    async def fetch_stoch(
        self,
        symbol: str,
        interval: str = "daily",
        fast_k: int = 5,
        slow_k: int = 3,
        slow_d: int = 3,
        slow_k_type: int = 0,
        slow_d_type: int = 0,
    ) -> ProviderResponse:
        """
        Stochastic oscillator (not StochRSI). MA types are numeric, 0 = SMA.
        """
        return await self._query({
            "function": STOCH,
            "symbol": symbol,
            "interval": interval,
            "fastkperiod": fast_k,
            "slowkperiod": slow_k,
            "slowdperiod": slow_d,
            "slowkmatype": slow_k_type,
            "slowdmatype": slow_d_type,
        })
