# lstm_predictor/trainer.py
import asyncio
import logging
from typing import Sequence

from .errors import InsufficientDataError, TrainingError
from .mode import EpochCallback, Mode, ModelHandle, TrainResult
from .models import LSTMParams
from .utils import create_sequences, normalize

logger = logging.getLogger(__name__)


class LiveTrainer:
    """Fits a single-layer LSTM on the fetched closes and persists it."""

    mode = Mode.LIVE

    def __init__(self, engine, store):
        self.engine = engine
        self.store = store

    async def train(self, closes: Sequence[float], params: LSTMParams,
                    on_epoch: EpochCallback) -> TrainResult:
        norm, _stats = normalize(closes)
        X, y = create_sequences(norm, params.lookback)
        if len(X) == 0:
            raise InsufficientDataError(len(closes), params.lookback)

        loop = asyncio.get_running_loop()
        losses = []

        def _epoch_end(epoch, loss):
            # runs on the fit thread; hand the event back to the loop in order
            losses.append(loss)
            loop.call_soon_threadsafe(on_epoch, epoch, loss)

        try:
            model = self.engine.build_model(params.lookback, params.units, params.lr)
            await asyncio.to_thread(self.engine.fit, model, X, y, params.epochs, params.batch_size, _epoch_end)
        except Exception as e:
            logger.exception("Training error")
            raise TrainingError(str(e) or type(e).__name__) from e

        logger.info("Training complete on %d windows, final loss %.6f", len(X), losses[-1] if losses else float("nan"))
        persisted = await self._persist(model)
        return TrainResult(handle=ModelHandle.trained(model), losses=losses, persisted=persisted)

    async def _persist(self, model) -> bool:
        if not self.store.available():
            logger.info("Model storage unavailable; trained model kept in memory only")
            return False
        try:
            await asyncio.to_thread(self.store.save, self.engine, model)
        except Exception as e:
            logger.warning("Failed to save model to storage: %s", e)
            return False
        return True
