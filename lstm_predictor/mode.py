"""
Mock/live switch and the model handle it hands out.

The selector is asked once per train or predict call. It returns the mock
implementation whenever mock mode is on or the ML engine never came up.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Sequence

from .models import LSTMParams, PricePoint

logger = logging.getLogger(__name__)

EpochCallback = Callable[[int, float], None]


class Mode(str, Enum):
    MOCK = "mock"
    LIVE = "live"


class HandleKind(str, Enum):
    MOCK = "mock"
    TRAINED = "trained"


@dataclass(frozen=True)
class ModelHandle:
    kind: HandleKind
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model: Any = None

    @classmethod
    def mock(cls) -> "ModelHandle":
        return cls(kind=HandleKind.MOCK)

    @classmethod
    def trained(cls, model: Any) -> "ModelHandle":
        return cls(kind=HandleKind.TRAINED, model=model)

    @property
    def is_trained(self) -> bool:
        return self.kind is HandleKind.TRAINED


@dataclass
class TrainResult:
    handle: ModelHandle
    losses: List[float]
    persisted: bool = False


class Trainer(Protocol):
    mode: Mode

    async def train(self, closes: Sequence[float], params: LSTMParams,
                    on_epoch: EpochCallback) -> TrainResult:
        ...


class Predictor(Protocol):
    mode: Mode

    async def predict(self, series: Sequence[PricePoint], horizon: int, params: LSTMParams,
                      handle: Optional[ModelHandle]) -> "PredictOutcome":
        ...


@dataclass
class PredictOutcome:
    predictions: List[PricePoint]
    # set when the predictor had to load a model from storage
    loaded: Optional[ModelHandle] = None


class ModeSelector:
    """Holds the current mode and whether the live engine is usable."""

    def __init__(self, engine, mock_impl, live_trainer, live_predictor) -> None:
        self.engine = engine
        self.mock_impl = mock_impl
        self.live_trainer = live_trainer
        self.live_predictor = live_predictor
        self.mode = Mode.MOCK
        self.engine_ready = False

    @property
    def use_live(self) -> bool:
        return self.mode is Mode.LIVE and self.engine_ready

    def select_trainer(self) -> Trainer:
        return self.live_trainer if self.use_live else self.mock_impl

    def select_predictor(self) -> Predictor:
        return self.live_predictor if self.use_live else self.mock_impl

    async def enable_live(self) -> bool:
        """
        Try to bring the ML engine up and switch to live mode.
        Returns False (and stays in mock mode) if the engine cannot start.
        """
        try:
            await asyncio.to_thread(self.engine.initialize)
        except Exception as e:
            logger.error("Failed to load ML engine: %s", e)
            self.engine_ready = False
            self.mode = Mode.MOCK
            return False
        self.engine_ready = True
        self.mode = Mode.LIVE
        logger.info("ML engine loaded. Mock mode disabled.")
        return True

    def set_mock(self, enabled: bool) -> None:
        # explicit user toggle; does not touch engine readiness
        self.mode = Mode.MOCK if enabled else Mode.LIVE

    def reset(self) -> None:
        self.mode = Mode.MOCK
        self.engine_ready = False
