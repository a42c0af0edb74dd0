# lstm_predictor/models.py
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .config import LOOKBACK, UNITS, EPOCHS, BATCH_SIZE, LEARNING_RATE, HORIZON


class PricePoint(BaseModel):
    date: date
    close: float


class LSTMParams(BaseModel):
    lookback: int = Field(default=LOOKBACK, gt=0)
    units: int = Field(default=UNITS, gt=0)
    epochs: int = Field(default=EPOCHS, gt=0)
    batch_size: int = Field(default=BATCH_SIZE, gt=0)
    lr: float = Field(default=LEARNING_RATE, gt=0)


class ChartPoint(BaseModel):
    date: date
    close: float
    type: Literal["history", "prediction"]


class FetchRequest(BaseModel):
    symbol: Optional[str] = None       # falls back to the session symbol
    api_key: Optional[str] = None      # falls back to the session / env key


class FetchResponse(BaseModel):
    symbol: str
    points: int
    first_date: date
    last_date: date


class TrainResponse(BaseModel):
    status: Literal["trained"] = "trained"
    mode: Literal["mock", "live"]
    epochs: int
    losses: List[float]
    persisted: bool


class PredictRequest(BaseModel):
    horizon: int = Field(default=HORIZON, gt=0)


class PredictResponse(BaseModel):
    mode: Literal["mock", "live"]
    predictions: List[PricePoint]


class ModeRequest(BaseModel):
    mock: bool


class ThemeRequest(BaseModel):
    theme: Literal["light", "dark"]


class RememberRequest(BaseModel):
    remember: bool


class StatusResponse(BaseModel):
    symbol: str
    theme: str
    remember_settings: bool
    mock_mode: bool
    engine_ready: bool
    storage_available: bool
    persisted_model: bool
    model: Optional[Literal["mock", "trained"]] = None
    loading: bool
    training: bool
    predicting: bool
    params: LSTMParams
    data_points: int
    loss_history: List[float]
