# lstm_predictor/storage.py
import logging
import os
from pathlib import Path
from typing import Optional

from .engine import KERAS_SUFFIX
from .errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class ModelStore:
    """
    Durable storage for the single current model, addressed by a fixed key.
    root=None means this environment has no durable storage at all.
    """

    def __init__(self, root: Optional[Path], key: str):
        self.root = Path(root) if root is not None else None
        self.key = key

    def available(self) -> bool:
        if self.root is None:
            return False
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.root.is_dir() and os.access(self.root, os.W_OK)

    @property
    def path(self) -> Path:
        if self.root is None:
            raise StorageUnavailableError()
        return self.root / f"{self.key}{KERAS_SUFFIX}"

    def exists(self) -> bool:
        return self.available() and self.path.exists()

    def save(self, engine, model):
        if not self.available():
            raise StorageUnavailableError()
        engine.save(model, self.path)
        logger.info("Saved model to %s", self.path)

    def load(self, engine):
        if not self.available():
            raise StorageUnavailableError()
        if not self.path.exists():
            raise FileNotFoundError(f"No persisted model at {self.path}")
        model = engine.load(self.path)
        logger.info("Loaded persisted model from %s", self.path)
        return model

    def remove(self) -> bool:
        """Delete the persisted entry. Returns False if there was nothing on disk."""
        if not self.available():
            raise StorageUnavailableError()
        path = self.path
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed persisted model %s", path)
        return True
