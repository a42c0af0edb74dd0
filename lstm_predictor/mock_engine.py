# lstm_predictor/mock_engine.py
import asyncio
import logging
import math
from typing import Optional, Sequence

import numpy as np

from .config import MOCK_EPOCH_DELAY
from .mode import EpochCallback, Mode, ModelHandle, PredictOutcome, TrainResult
from .models import LSTMParams, PricePoint
from .utils import future_dates

logger = logging.getLogger(__name__)


class MockEngine:
    """
    Stand-in used when TensorFlow or model storage is not usable.
    Training animates a decaying loss curve, prediction wiggles around the
    last close. Nothing here is learned.
    """

    mode = Mode.MOCK

    def __init__(self, epoch_delay: float = MOCK_EPOCH_DELAY, rng: Optional[np.random.Generator] = None):
        self.epoch_delay = epoch_delay
        self.rng = rng if rng is not None else np.random.default_rng()

    async def train(self, closes: Sequence[float], params: LSTMParams,
                    on_epoch: EpochCallback) -> TrainResult:
        epochs = int(params.epochs)
        losses = []
        for e in range(epochs):
            loss = math.exp(-e / (epochs / 5)) + self.rng.uniform(0, 0.05)
            losses.append(loss)
            on_epoch(e, loss)
            await asyncio.sleep(self.epoch_delay)
        logger.info("Mock training complete (%d epochs, final loss %.6f)", epochs, losses[-1] if losses else float("nan"))
        return TrainResult(handle=ModelHandle.mock(), losses=losses, persisted=False)

    async def predict(self, series: Sequence[PricePoint], horizon: int, params: LSTMParams,
                      handle: Optional[ModelHandle]) -> PredictOutcome:
        if not series:
            return PredictOutcome(predictions=[])
        last = series[-1]
        preds = []
        for i in range(1, horizon + 1):
            jitter = (math.sin(i) + self.rng.uniform(0, 0.5)) * (last.close * 0.01)
            preds.append(last.close + jitter)
        dates = future_dates(last.date, horizon)
        logger.info("Mock predictions generated for %d days", horizon)
        return PredictOutcome(predictions=[PricePoint(date=d, close=p) for d, p in zip(dates, preds)])
