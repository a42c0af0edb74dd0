# lstm_predictor/preferences.py
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "AAPL"


class Preferences(BaseModel):
    symbol: str = DEFAULT_SYMBOL
    api_key: str = ""
    remember_settings: bool = False
    theme: Literal["light", "dark"] = "light"


class PreferenceStore:
    """
    Preferences kept across restarts in a small JSON file.
    Read once at startup; symbol, api key and theme are only written
    while remember_settings is on.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.prefs = Preferences()

    def load(self) -> Preferences:
        if self.path.exists():
            try:
                self.prefs = Preferences.model_validate_json(self.path.read_text())
            except (OSError, ValidationError) as e:
                logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
                self.prefs = Preferences()
        return self.prefs

    def _write(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        stored = self.prefs if self.prefs.remember_settings else Preferences(remember_settings=False)
        self.path.write_text(stored.model_dump_json(indent=2))

    def set_remember(self, remember: bool):
        self.prefs.remember_settings = remember
        self._write()

    def update(self, **changes):
        self.prefs = self.prefs.model_copy(update=changes)
        if self.prefs.remember_settings:
            self._write()

    def clear(self):
        self.path.unlink(missing_ok=True)
        self.prefs = Preferences()
