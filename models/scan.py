# models/scan.py

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SetupType(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class ScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbols: List[str]
    setup_type: SetupType = Field(SetupType.BULLISH, alias="setupType")


class IndicatorSnapshot(BaseModel):
    """Latest value of each indicator the setup rules look at."""

    model_config = ConfigDict(populate_by_name=True)

    ema10: float
    ema20: float
    ema50: float
    rsi: float
    stoch_k: float = Field(alias="stochK")


class ScanResult(IndicatorSnapshot):
    symbol: str


class ScanError(BaseModel):
    symbol: str
    message: str


class ScanParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbols: List[str]
    setup_type: SetupType = Field(alias="setupType")


class ScanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scan_parameters: ScanParameters = Field(alias="scanParameters")
    matches: List[ScanResult] = []
    errors: List[ScanError] = []


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
