from __future__ import annotations

import math
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import pytest

from lstm_predictor.errors import EngineUnavailableError
from lstm_predictor.mock_engine import MockEngine
from lstm_predictor.models import PricePoint
from lstm_predictor.preferences import PreferenceStore
from lstm_predictor.session import PredictorSession
from lstm_predictor.storage import ModelStore

MODEL_KEY = "lstm-stock-model"


def make_series(n: int, start: date = date(2024, 1, 1)) -> list[PricePoint]:
    return [
        PricePoint(date=start + timedelta(days=i), close=100.0 + i * 0.5 + math.sin(i))
        for i in range(n)
    ]


class FakeModel:
    def __init__(self, lookback=None):
        self.lookback = lookback
        self.windows: list[list[float]] = []


class FakeEngine:
    """Keras stand-in: same calls as KerasEngine, no TensorFlow."""

    def __init__(self, fail_init=False, fail_fit=False, fail_save=False, step=0.01):
        self.fail_init = fail_init
        self.fail_fit = fail_fit
        self.fail_save = fail_save
        self.step = step
        self.initialized = False
        self.fit_shapes = None
        self.saved: list[Path] = []

    def initialize(self):
        if self.fail_init:
            raise EngineUnavailableError("Unable to load TensorFlow in this environment: no module")
        self.initialized = True

    def build_model(self, lookback, units, learning_rate):
        return FakeModel(lookback)

    def fit(self, model, X, y, epochs, batch_size, on_epoch_end):
        if self.fail_fit:
            raise RuntimeError("fit exploded")
        self.fit_shapes = (X.shape, y.shape)
        for epoch in range(epochs):
            on_epoch_end(epoch, 1.0 / (epoch + 1))

    def predict_next(self, model, window):
        model.windows.append(list(window))
        return window[-1] + self.step

    def save(self, model, path: Path):
        if self.fail_save:
            raise OSError("disk full")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("fake-model")
        self.saved.append(path)

    def load(self, path: Path):
        return FakeModel()

    def load_from_files(self, paths):
        if not any(p.name.endswith(".keras") for p in paths):
            raise ValueError("Expected a .keras file")
        return FakeModel()


@pytest.fixture
def series30():
    return make_series(30)


@pytest.fixture
def store(tmp_path):
    return ModelStore(tmp_path / "models", MODEL_KEY)


@pytest.fixture
def no_store():
    return ModelStore(None, MODEL_KEY)


@pytest.fixture
def prefs(tmp_path):
    return PreferenceStore(tmp_path / "prefs.json")


@pytest.fixture
def mock_engine():
    return MockEngine(epoch_delay=0, rng=np.random.default_rng(7))


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def make_session(prefs, store, mock_engine):
    def _make(engine=None, store_=None, fetcher=None, series=None):
        session = PredictorSession(
            engine=engine if engine is not None else FakeEngine(),
            store=store_ if store_ is not None else store,
            prefs=prefs,
            mock=mock_engine,
            fetcher=fetcher if fetcher is not None else (lambda symbol, key: make_series(30)),
        )
        if series is not None:
            session.data = list(series)
        return session

    return _make
