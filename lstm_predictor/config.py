# lstm_predictor/config.py
from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

# Durable model storage. Set MODEL_DIR to an empty string to run without it.
_model_dir = os.getenv('MODEL_DIR', str(BASE_DIR / "models"))
MODEL_DIR = Path(_model_dir) if _model_dir else None
MODEL_KEY = os.getenv('MODEL_KEY', "lstm-stock-model")

PREFS_PATH = Path(os.getenv('PREFS_PATH', str(BASE_DIR / "preferences.json")))

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
API_KEY = os.getenv('API_KEY', "")
REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', 20))

LOOKBACK = int(os.getenv('LOOKBACK', 20))
UNITS = int(os.getenv('UNITS', 50))
EPOCHS = int(os.getenv('EPOCHS', 30))
BATCH_SIZE = int(os.getenv('BATCH_SIZE', 8))
LEARNING_RATE = float(os.getenv('LEARNING_RATE', 0.001))
HORIZON = int(os.getenv('HORIZON', 5))

# seconds the mock trainer waits per epoch so progress can be observed
MOCK_EPOCH_DELAY = float(os.getenv('MOCK_EPOCH_DELAY', 0.2))

LOG_LEVEL = os.getenv('LOG_LEVEL', "INFO")
