# lstm_predictor/market_data.py
import logging
from typing import List

import pandas as pd
import requests

from .config import ALPHA_VANTAGE_URL, REQUEST_TIMEOUT
from .errors import InvalidResponseError, MarketDataError, MissingCredentialsError
from .models import PricePoint

logger = logging.getLogger(__name__)

SERIES_KEY = "Time Series (Daily)"
CLOSE_FIELD = "4. close"


def fetch_daily_series(symbol: str, api_key: str, timeout: float = REQUEST_TIMEOUT) -> List[PricePoint]:
    """Fetch daily closes (Alpha Vantage), oldest first."""
    symbol = (symbol or "").strip().upper()
    api_key = (api_key or "").strip()
    if not symbol or not api_key:
        raise MissingCredentialsError()

    params = {"function": "TIME_SERIES_DAILY", "symbol": symbol, "apikey": api_key}
    try:
        r = requests.get(ALPHA_VANTAGE_URL, params=params, timeout=timeout)
        r.raise_for_status()
        j = r.json()
    except ValueError as e:
        # body was not JSON
        raise InvalidResponseError(f"Invalid response from API: {e}") from e
    except requests.RequestException as e:
        raise MarketDataError(f"Failed to fetch stock data for {symbol}: {e}") from e

    if not isinstance(j, dict) or SERIES_KEY not in j:
        # Alpha Vantage reports bad keys / rate limits as a 200 with a note
        note = None
        if isinstance(j, dict):
            note = j.get("Error Message") or j.get("Note") or j.get("Information")
        raise InvalidResponseError("Invalid response from API" + (f": {note}" if note else ""))

    return parse_daily_series(j[SERIES_KEY])


def parse_daily_series(raw: dict) -> List[PricePoint]:
    if not isinstance(raw, dict):
        raise InvalidResponseError(f"Alpha Vantage returned {type(raw).__name__} instead of a daily series")
    df = pd.DataFrame(raw).T
    if df.empty or CLOSE_FIELD not in df.columns:
        raise InvalidResponseError(f"Alpha Vantage output missing {CLOSE_FIELD!r} column")
    closes = pd.to_numeric(df[CLOSE_FIELD], errors="coerce")
    closes.index = pd.to_datetime(closes.index, errors="coerce")
    closes = closes[closes.index.notna()].dropna()
    closes = closes[~closes.index.duplicated(keep="last")].sort_index()
    if closes.empty:
        raise InvalidResponseError("Alpha Vantage returned no usable closing prices")
    logger.info("Parsed %d daily closes (%s to %s)", len(closes),
                closes.index[0].date(), closes.index[-1].date())
    return [PricePoint(date=ts.date(), close=float(v)) for ts, v in closes.items()]
