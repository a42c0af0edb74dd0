# lstm_predictor/predictor.py
import asyncio
import logging
from typing import List, Optional, Sequence

from .errors import InsufficientDataError, PredictionError
from .mode import Mode, ModelHandle, PredictOutcome
from .models import LSTMParams, PricePoint
from .utils import denormalize, future_dates, normalize

logger = logging.getLogger(__name__)


class LivePredictor:
    """
    Multi-day forecast by feeding each predicted close back in as the
    newest input of the next step.
    """

    mode = Mode.LIVE

    def __init__(self, engine, store):
        self.engine = engine
        self.store = store

    async def predict(self, series: Sequence[PricePoint], horizon: int, params: LSTMParams,
                      handle: Optional[ModelHandle]) -> PredictOutcome:
        if not series:
            return PredictOutcome(predictions=[])

        loaded = None
        if handle is None or not handle.is_trained:
            model = await self._load_persisted()
            if model is None:
                return PredictOutcome(predictions=[])
            loaded = ModelHandle.trained(model)
            handle = loaded

        lookback = params.lookback
        closes = [p.close for p in series]
        if len(closes) < lookback:
            raise InsufficientDataError(len(closes), lookback)

        # stats come from the known series, never from the predictions
        norm, stats = normalize(closes)
        try:
            preds = await self.rollout(handle.model, norm[-lookback:], horizon)
        except Exception as e:
            logger.exception("Prediction error")
            raise PredictionError(str(e) or type(e).__name__) from e

        values = denormalize(preds, stats)
        dates = future_dates(series[-1].date, horizon)
        return PredictOutcome(
            predictions=[PricePoint(date=d, close=float(v)) for d, v in zip(dates, values)],
            loaded=loaded,
        )

    async def rollout(self, model, window: Sequence[float], horizon: int) -> List[float]:
        window = [float(v) for v in window]
        preds = []
        for _ in range(horizon):
            val = await asyncio.to_thread(self.engine.predict_next, model, window)
            preds.append(val)
            window = window[1:] + [val]
        return preds

    async def _load_persisted(self):
        if not self.store.available():
            logger.info("No model in memory and no model storage; nothing to predict with")
            return None
        try:
            return await asyncio.to_thread(self.store.load, self.engine)
        except Exception as e:
            logger.warning("Failed to load model from storage for prediction: %s", e)
            return None
