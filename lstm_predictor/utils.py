# lstm_predictor/utils.py
from dataclasses import dataclass
from datetime import date
from typing import Iterator, List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler


@dataclass(frozen=True)
class NormalizationStats:
    min: float
    max: float

    @property
    def range(self) -> float:
        # a flat series maps to 0 instead of dividing by zero
        return (self.max - self.min) or 1.0


@dataclass(frozen=True)
class Window:
    inputs: Tuple[float, ...]
    target: float


def normalize(values: Sequence[float]) -> Tuple[np.ndarray, NormalizationStats]:
    """
    Scale values into [0, 1] with a MinMaxScaler fitted on this series only.
    Returns the 1D scaled array and the stats needed to undo it.
    """
    arr = np.asarray(values, dtype=float).reshape(-1, 1)
    if arr.size == 0:
        raise ValueError("Cannot normalize an empty series.")
    scaler = MinMaxScaler()
    norm = scaler.fit_transform(arr)[:, 0]
    stats = NormalizationStats(min=float(scaler.data_min_[0]), max=float(scaler.data_max_[0]))
    return norm, stats


def denormalize(values: Sequence[float], stats: NormalizationStats) -> np.ndarray:
    return np.asarray(values, dtype=float) * stats.range + stats.min


def iter_windows(norm: Sequence[float], lookback: int) -> Iterator[Window]:
    if lookback <= 0:
        raise ValueError("lookback must be positive")
    for i in range(lookback, len(norm)):
        yield Window(inputs=tuple(float(v) for v in norm[i - lookback:i]), target=float(norm[i]))


def create_sequences(norm: Sequence[float], lookback: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Input:
      norm: 1D normalized closes
    Return:
      X shape (num_samples, lookback, 1), y shape (num_samples,)
      num_samples is max(0, len(norm) - lookback)
    """
    X, y = [], []
    for window in iter_windows(norm, lookback):
        X.append(window.inputs)
        y.append(window.target)
    return np.array(X, dtype=float).reshape(-1, lookback, 1), np.array(y, dtype=float)


def future_dates(last_date: date, horizon: int) -> List[date]:
    """Consecutive calendar days strictly after last_date."""
    if horizon <= 0:
        return []
    start = pd.Timestamp(last_date) + pd.Timedelta(days=1)
    return [ts.date() for ts in pd.date_range(start=start, periods=horizon, freq="D")]
