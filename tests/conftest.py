"""Shared fixtures: a fake Alpha Vantage behind httpx.MockTransport."""

from typing import Any, Dict

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from config import Settings
from main import create_app, get_av_client
from services.alpha_vantage import AlphaVantageClient

LATEST_DATE = "2024-01-03"
PREVIOUS_DATE = "2024-01-02"


def technical_payload(function: str, value: float) -> Dict[str, Any]:
    """Provider-shaped response whose latest record carries `value`."""
    if function == "TIME_SERIES_DAILY_ADJUSTED":
        return {
            "Meta Data": {"2. Symbol": "TEST"},
            "Time Series (Daily)": {
                LATEST_DATE: {"1. open": "1.0", "4. close": str(value)},
                PREVIOUS_DATE: {"1. open": "1.0", "4. close": "1.0"},
            },
        }
    if function == "STOCH":
        return {
            "Meta Data": {"1: Symbol": "TEST"},
            "Technical Analysis: STOCH": {
                LATEST_DATE: {"SlowK": str(value), "SlowD": "1.0"},
                PREVIOUS_DATE: {"SlowK": "0.0", "SlowD": "0.0"},
            },
        }
    # Latest date is listed first on purpose: selection must not depend on order
    return {
        "Meta Data": {"1: Symbol": "TEST"},
        f"Technical Analysis: {function}": {
            LATEST_DATE: {function: str(value)},
            PREVIOUS_DATE: {function: "0.0"},
        },
    }


def _indicator_key(params: httpx.QueryParams) -> str:
    function = params["function"]
    if function == "EMA":
        return f"ema{params['time_period']}"
    if function == "RSI":
        return "rsi"
    if function == "STOCH":
        return "stoch_k"
    return "daily"


class FakeAlphaVantage:
    """
    Answers Alpha Vantage queries from a {symbol: {indicator: value}} table.

    A float value becomes a well-formed payload, a dict is returned verbatim,
    an exception is raised from the transport. Unknown symbols get an
    "Error Message" response.
    """

    def __init__(self):
        self.indicators: Dict[str, Dict[str, Any]] = {}
        self.requests = []

    def set_symbol(self, symbol, ema10, ema20, ema50, rsi, stoch_k, daily=100.0):
        self.indicators[symbol] = {
            "ema10": ema10,
            "ema20": ema20,
            "ema50": ema50,
            "rsi": rsi,
            "stoch_k": stoch_k,
            "daily": daily,
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        symbol = params["symbol"]
        value = self.indicators.get(symbol, {}).get(_indicator_key(params))

        if isinstance(value, Exception):
            raise value
        if isinstance(value, dict):
            return httpx.Response(200, json=value)
        if value is None:
            return httpx.Response(
                200,
                json={"Error Message": f"Invalid API call for {symbol}."},
            )
        return httpx.Response(200, json=technical_payload(params["function"], value))


@pytest.fixture
def settings():
    return Settings(
        alpha_vantage_api_key="test-key",
        alpha_vantage_base_url="https://alphavantage.test/query",
    )


@pytest.fixture
def provider():
    return FakeAlphaVantage()


def make_client(settings, provider) -> AlphaVantageClient:
    return AlphaVantageClient(
        settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider))
    )


@pytest_asyncio.fixture
async def av_client(settings, provider):
    client = make_client(settings, provider)
    yield client
    await client.aclose()


@pytest.fixture
def api(settings, provider):
    av_client = make_client(settings, provider)
    app = create_app(settings)
    app.dependency_overrides[get_av_client] = lambda: av_client
    with TestClient(app) as client:
        yield client
        client.portal.call(av_client.aclose)
