"""
Error types raised by the prediction pipeline.

Input errors end the current operation and are shown to the user as-is.
Environment errors mean the ML engine or model storage is missing.
Remote errors come from the market-data API and leave the previous series in place.
Runtime errors during training or prediction wrap the underlying message.
"""


class PredictorError(Exception):
    """Base class for all pipeline errors."""

    code = "predictor_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ── Input ──────────────────────────────────────────────────────────

class InputError(PredictorError):
    code = "invalid_input"


class MissingCredentialsError(InputError):
    code = "missing_credentials"

    def __init__(self, message: str = "Symbol and API key are required.") -> None:
        super().__init__(message)


class NoDataError(InputError):
    code = "no_data"

    def __init__(self, message: str = "Fetch data first.") -> None:
        super().__init__(message)


class InsufficientDataError(InputError):
    code = "insufficient_data"

    def __init__(self, available: int, lookback: int) -> None:
        self.available = available
        self.lookback = lookback
        super().__init__(
            f"Not enough data for the chosen lookback "
            f"({available} closes, lookback {lookback})."
        )


# ── Remote ─────────────────────────────────────────────────────────

class MarketDataError(PredictorError):
    code = "market_data_error"


class InvalidResponseError(MarketDataError):
    code = "invalid_response"

    def __init__(self, message: str = "Invalid response from API") -> None:
        super().__init__(message)


# ── Environment ────────────────────────────────────────────────────

class EngineUnavailableError(PredictorError):
    code = "engine_unavailable"


class StorageUnavailableError(PredictorError):
    code = "storage_unavailable"

    def __init__(self, message: str = "Model storage not available in this environment.") -> None:
        super().__init__(message)


# ── Model lifecycle ────────────────────────────────────────────────

class NoModelError(PredictorError):
    code = "no_model"

    def __init__(self, message: str = "Train a model first.") -> None:
        super().__init__(message)


class MockModeError(PredictorError):
    code = "mock_mode"


class NothingToDeleteError(PredictorError):
    code = "nothing_to_delete"

    def __init__(self, message: str = "No persisted real model when in mock mode.") -> None:
        super().__init__(message)


class OperationInProgressError(PredictorError):
    code = "operation_in_progress"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Another {operation} is already running.")


# ── Runtime ────────────────────────────────────────────────────────

class TrainingError(PredictorError):
    code = "training_failed"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Training failed: {reason}")


class PredictionError(PredictorError):
    code = "prediction_failed"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Prediction failed: {reason}")


class ModelIOError(PredictorError):
    code = "model_io_failed"
