# lstm_predictor/engine.py
import logging
from pathlib import Path
from typing import Callable, Sequence

import numpy as np

from .errors import EngineUnavailableError

logger = logging.getLogger(__name__)

KERAS_SUFFIX = ".keras"
JSON_SUFFIX = ".json"
WEIGHTS_SUFFIX = ".h5"


class KerasEngine:
    """
    Thin wrapper around TensorFlow/Keras. TensorFlow is imported on
    initialize() so the service can start (in mock mode) without it.
    """

    def __init__(self):
        self._tf = None

    def initialize(self):
        if self._tf is not None:
            return
        try:
            import tensorflow as tf
            tf.constant(0.0)
        except Exception as e:
            raise EngineUnavailableError(f"Unable to load TensorFlow in this environment: {e}") from e
        self._tf = tf
        logger.info("TensorFlow %s ready", tf.__version__)

    def _require(self):
        if self._tf is None:
            raise EngineUnavailableError("TensorFlow is not loaded. Enable the engine first.")

    def build_model(self, lookback: int, units: int, learning_rate: float):
        self._require()
        from tensorflow.keras.models import Sequential
        from tensorflow.keras.layers import Input, LSTM, Dense
        from tensorflow.keras.optimizers import Adam

        model = Sequential([
            Input(shape=(lookback, 1)),
            LSTM(units),
            Dense(1),
        ])
        model.compile(optimizer=Adam(learning_rate=learning_rate), loss="mse")
        return model

    def fit(self, model, X: np.ndarray, y: np.ndarray, epochs: int, batch_size: int,
            on_epoch_end: Callable[[int, float], None]):
        self._require()
        from tensorflow.keras.callbacks import Callback

        class EpochLoss(Callback):
            def on_epoch_end(self, epoch, logs=None):
                on_epoch_end(epoch, float((logs or {}).get("loss", float("nan"))))

        return model.fit(X, y, epochs=epochs, batch_size=batch_size, callbacks=[EpochLoss()], verbose=0)

    def predict_next(self, model, window: Sequence[float]) -> float:
        x = np.asarray(window, dtype=float).reshape(1, -1, 1)
        out = model.predict(x, verbose=0)
        if isinstance(out, (list, tuple)):
            out = out[0]
        return float(np.asarray(out).reshape(-1)[0])

    def save(self, model, path: Path):
        self._require()
        path.parent.mkdir(parents=True, exist_ok=True)
        model.save(str(path))

    def load(self, path: Path):
        self._require()
        from tensorflow.keras.models import load_model
        return load_model(str(path))

    def load_from_files(self, paths: Sequence[Path]):
        """
        Accepts either a single .keras archive or a topology .json file
        with its .weights.h5 weights file.
        """
        self._require()
        from tensorflow.keras.models import load_model, model_from_json

        archives = [p for p in paths if p.name.endswith(KERAS_SUFFIX)]
        if archives:
            return load_model(str(archives[0]))

        topology = [p for p in paths if p.name.endswith(JSON_SUFFIX)]
        weights = [p for p in paths if p.name.endswith(WEIGHTS_SUFFIX)]
        if not topology or not weights:
            raise ValueError("Expected a .keras file, or a .json topology plus .weights.h5 weights.")
        model = model_from_json(topology[0].read_text())
        model.load_weights(str(weights[0]))
        return model
