"""
Maps pipeline errors to JSON error responses.

Every error body is {"error": <code>, "detail": <message>}; the message is
the one shown to the user.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import (
    EngineUnavailableError,
    InputError,
    MarketDataError,
    MockModeError,
    ModelIOError,
    NoModelError,
    NothingToDeleteError,
    OperationInProgressError,
    PredictionError,
    PredictorError,
    StorageUnavailableError,
    TrainingError,
)

logger = logging.getLogger(__name__)

# most specific first
STATUS_CODES = (
    (InputError, 400),
    (NoModelError, 404),
    (MockModeError, 409),
    (NothingToDeleteError, 409),
    (OperationInProgressError, 409),
    (MarketDataError, 502),
    (EngineUnavailableError, 503),
    (StorageUnavailableError, 503),
    (TrainingError, 500),
    (PredictionError, 500),
    (ModelIOError, 500),
)


def status_for(exc: PredictorError) -> int:
    for cls, status in STATUS_CODES:
        if isinstance(exc, cls):
            return status
    return 500


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(PredictorError)
    async def handle_predictor_error(_request: Request, exc: PredictorError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        else:
            logger.warning("%s: %s", type(exc).__name__, exc.message)
        return _error_response(status, exc.code, exc.message)
