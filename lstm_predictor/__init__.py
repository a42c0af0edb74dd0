"""Stock price forecasting service: Alpha Vantage closes, LSTM training, autoregressive rollout."""

__version__ = "1.0.0"
