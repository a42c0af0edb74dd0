"""
The prediction pipeline's state and the user actions that change it.

One PredictorSession holds the fetched series, the latest forecast, the
loss trace and the current model handle. Train, predict, import, delete
and reset all replace or clear that handle, so they run one at a time; a
second request while one is in flight is rejected, not queued.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .config import API_KEY, MODEL_DIR, MODEL_KEY, PREFS_PATH
from .engine import KERAS_SUFFIX, KerasEngine
from .errors import (
    InputError,
    MockModeError,
    ModelIOError,
    NoDataError,
    NoModelError,
    NothingToDeleteError,
    OperationInProgressError,
    PredictorError,
    StorageUnavailableError,
)
from .market_data import fetch_daily_series
from .mock_engine import MockEngine
from .mode import Mode, ModelHandle, ModeSelector, TrainResult
from .models import ChartPoint, LSTMParams, PricePoint, StatusResponse
from .predictor import LivePredictor
from .preferences import PreferenceStore
from .progress import ProgressChannel
from .storage import ModelStore
from .trainer import LiveTrainer

logger = logging.getLogger(__name__)


class PredictorSession:

    def __init__(self, engine=None, store: Optional[ModelStore] = None,
                 prefs: Optional[PreferenceStore] = None, mock: Optional[MockEngine] = None,
                 fetcher: Callable[[str, str], List[PricePoint]] = fetch_daily_series,
                 default_api_key: str = API_KEY):
        self.engine = engine if engine is not None else KerasEngine()
        self.store = store if store is not None else ModelStore(MODEL_DIR, MODEL_KEY)
        self.prefs = prefs if prefs is not None else PreferenceStore(PREFS_PATH)
        self.selector = ModeSelector(
            self.engine,
            mock if mock is not None else MockEngine(),
            LiveTrainer(self.engine, self.store),
            LivePredictor(self.engine, self.store),
        )
        self.fetcher = fetcher
        self.default_api_key = default_api_key
        self.progress = ProgressChannel()
        self.params = LSTMParams()

        self.data: List[PricePoint] = []
        self.predictions: List[PricePoint] = []
        self.handle: Optional[ModelHandle] = None
        self.persisted_model = False

        self.loading = False
        self.training = False
        self.predicting = False
        self._fetch_lock = asyncio.Lock()
        self._model_lock = asyncio.Lock()

    # ── preferences ────────────────────────────────────────────────

    @property
    def symbol(self) -> str:
        return self.prefs.prefs.symbol

    @property
    def api_key(self) -> str:
        return self.prefs.prefs.api_key

    @property
    def theme(self) -> str:
        return self.prefs.prefs.theme

    @property
    def loss_history(self) -> List[float]:
        return self.progress.losses

    async def startup(self):
        """Load saved preferences and re-fetch the last symbol if the user opted in."""
        prefs = self.prefs.load()
        if prefs.remember_settings and prefs.symbol and prefs.api_key:
            try:
                await self.fetch()
            except PredictorError as e:
                logger.warning("Auto-fetch of %s at startup failed: %s", prefs.symbol, e)

    def set_theme(self, theme: str):
        self.prefs.update(theme=theme)

    def set_remember(self, remember: bool):
        self.prefs.set_remember(remember)

    def set_mock_mode(self, enabled: bool):
        self.selector.set_mock(enabled)
        logger.info("Mock mode %s", "enabled" if enabled else "disabled")

    def update_params(self, params: LSTMParams):
        self.params = params

    # ── market data ────────────────────────────────────────────────

    async def fetch(self, symbol: Optional[str] = None, api_key: Optional[str] = None) -> List[PricePoint]:
        if self._fetch_lock.locked():
            raise OperationInProgressError("fetch")
        async with self._fetch_lock:
            self.loading = True
            try:
                symbol = (symbol or self.symbol or "").strip().upper()
                api_key = (api_key or self.api_key or "").strip()
                self.prefs.update(symbol=symbol, api_key=api_key)
                points = await asyncio.to_thread(self.fetcher, symbol, api_key or self.default_api_key)
            except PredictorError as e:
                logger.error("Failed to fetch stock data for %s: %s", symbol, e)
                raise
            finally:
                self.loading = False
            self.data = list(points)
            self.predictions = []
            logger.info("Fetched %d closes for %s", len(self.data), symbol)
            return self.data

    # ── model operations ───────────────────────────────────────────

    @asynccontextmanager
    async def _exclusive(self, operation: str):
        if self._model_lock.locked():
            raise OperationInProgressError(operation)
        async with self._model_lock:
            yield

    async def train(self) -> Tuple[TrainResult, Mode]:
        async with self._exclusive("training"):
            if not self.data:
                raise NoDataError()
            trainer = self.selector.select_trainer()
            params = self.params.model_copy()
            self.progress.reset(params.epochs)
            self.training = True
            try:
                result = await trainer.train([p.close for p in self.data], params, self.progress.record)
            finally:
                self.training = False
            self.handle = result.handle
            self.persisted_model = result.persisted
            return result, trainer.mode

    async def predict(self, horizon: int) -> Tuple[List[PricePoint], Mode]:
        async with self._exclusive("prediction"):
            predictor = self.selector.select_predictor()
            if not self.data:
                return [], predictor.mode
            self.predicting = True
            try:
                outcome = await predictor.predict(self.data, horizon, self.params.model_copy(), self.handle)
            finally:
                self.predicting = False
            if outcome.loaded is not None:
                self.handle = outcome.loaded
                self.persisted_model = True
            if outcome.predictions:
                self.predictions = outcome.predictions
            return outcome.predictions, predictor.mode

    async def enable_live_engine(self) -> bool:
        async with self._exclusive("engine start"):
            if not await self.selector.enable_live():
                return False
            if self.store.available():
                try:
                    model = await asyncio.to_thread(self.store.load, self.engine)
                except FileNotFoundError:
                    logger.info("No persisted model found")
                except Exception as e:
                    logger.warning("Failed to load persisted model: %s", e)
                else:
                    self.handle = ModelHandle.trained(model)
                    self.persisted_model = True
            return True

    async def export_model(self, directory: Path) -> Path:
        if self.handle is None:
            raise NoModelError()
        if not self.selector.use_live or not self.handle.is_trained:
            raise MockModeError("Cannot export in mock mode or without TensorFlow.")
        path = Path(directory) / f"{MODEL_KEY}{KERAS_SUFFIX}"
        try:
            await asyncio.to_thread(self.engine.save, self.handle.model, path)
        except Exception as e:
            logger.exception("Export error")
            raise ModelIOError(f"Export failed: {e}") from e
        return path

    async def import_model(self, paths: Sequence[Path]) -> ModelHandle:
        async with self._exclusive("import"):
            if not paths:
                raise InputError("No files selected")
            if self.selector.mode is Mode.MOCK:
                raise MockModeError("Cannot import model while in mock mode.")
            await asyncio.to_thread(self.engine.initialize)
            try:
                model = await asyncio.to_thread(self.engine.load_from_files, list(paths))
            except Exception as e:
                logger.exception("Import error")
                raise ModelIOError(f"Import failed: {e}") from e

            self.handle = ModelHandle.trained(model)
            self.persisted_model = False
            if self.store.available():
                try:
                    await asyncio.to_thread(self.store.save, self.engine, model)
                    self.persisted_model = True
                except Exception as e:
                    logger.warning("Failed to persist imported model: %s", e)
            return self.handle

    async def delete_persisted_model(self) -> bool:
        async with self._exclusive("delete"):
            return await self._delete_persisted()

    async def _delete_persisted(self) -> bool:
        if not self.store.available():
            raise StorageUnavailableError()
        if self.selector.mode is Mode.MOCK:
            raise NothingToDeleteError()
        try:
            removed = await asyncio.to_thread(self.store.remove)
        except OSError as e:
            raise ModelIOError(f"Failed to delete persisted model: {e}") from e
        self.persisted_model = False
        self.handle = None
        return removed

    async def reset_all(self):
        async with self._exclusive("reset"):
            # delete while the previous mode still applies
            try:
                await self._delete_persisted()
            except PredictorError as e:
                logger.info("Skipped model deletion during reset: %s", e)
            self.prefs.clear()
            self.selector.reset()
            logger.info("All settings reset to default")

    # ── views ──────────────────────────────────────────────────────

    def chart_data(self) -> List[ChartPoint]:
        return (
            [ChartPoint(date=p.date, close=p.close, type="history") for p in self.data]
            + [ChartPoint(date=p.date, close=p.close, type="prediction") for p in self.predictions]
        )

    def status(self) -> StatusResponse:
        return StatusResponse(
            symbol=self.symbol,
            theme=self.theme,
            remember_settings=self.prefs.prefs.remember_settings,
            mock_mode=self.selector.mode is Mode.MOCK,
            engine_ready=self.selector.engine_ready,
            storage_available=self.store.available(),
            persisted_model=self.persisted_model,
            model=self.handle.kind.value if self.handle is not None else None,
            loading=self.loading,
            training=self.training,
            predicting=self.predicting,
            params=self.params,
            data_points=len(self.data),
            loss_history=list(self.loss_history),
        )
