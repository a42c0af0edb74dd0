# lstm_predictor/main.py
import asyncio
import shutil
import time
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, StreamingResponse
from starlette.background import BackgroundTask
import uvicorn

from .config import LOG_LEVEL
from .handlers import register_error_handlers
from .logging_config import configure_logging
from .models import (
    ChartPoint,
    FetchRequest,
    FetchResponse,
    LSTMParams,
    ModeRequest,
    PredictRequest,
    PredictResponse,
    RememberRequest,
    StatusResponse,
    ThemeRequest,
    TrainResponse,
)
from .session import PredictorSession

PROGRESS_POLL_SECONDS = 1.0
# an idle stream with no run started is closed after this long
PROGRESS_IDLE_SECONDS = 300.0


def create_app(session: Optional[PredictorSession] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(LOG_LEVEL)
        app.state.session = session if session is not None else PredictorSession()
        await app.state.session.startup()
        yield

    app = FastAPI(title="Stock LSTM Predictor", version="1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    def _session(request: Request) -> PredictorSession:
        return request.app.state.session

    @app.get("/health")
    async def health(request: Request):
        s = _session(request)
        return {"status": "ok", "model_exists": s.store.exists(), "mock_mode": s.status().mock_mode}

    @app.get("/status", response_model=StatusResponse)
    async def status(request: Request):
        return _session(request).status()

    @app.get("/chart", response_model=List[ChartPoint])
    async def chart(request: Request):
        return _session(request).chart_data()

    @app.post("/fetch", response_model=FetchResponse)
    async def fetch(req: FetchRequest, request: Request):
        s = _session(request)
        points = await s.fetch(req.symbol, req.api_key)
        return FetchResponse(symbol=s.symbol, points=len(points),
                             first_date=points[0].date, last_date=points[-1].date)

    @app.put("/params", response_model=LSTMParams)
    async def update_params(params: LSTMParams, request: Request):
        _session(request).update_params(params)
        return params

    @app.post("/train", response_model=TrainResponse)
    async def train(request: Request):
        result, mode = await _session(request).train()
        return TrainResponse(mode=mode.value, epochs=len(result.losses),
                             losses=result.losses, persisted=result.persisted)

    @app.get("/train/progress")
    async def train_progress(request: Request):
        s = _session(request)
        queue = s.progress.subscribe()

        async def events():
            runs_at_subscribe = s.progress.runs
            already_running = s.training
            opened = time.monotonic()
            try:
                while True:
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=PROGRESS_POLL_SECONDS)
                    except asyncio.TimeoutError:
                        if await request.is_disconnected():
                            break
                        run_seen = already_running or s.progress.runs != runs_at_subscribe
                        if run_seen and not s.training:
                            # run ended without a final epoch event, e.g. it failed
                            break
                        if not run_seen and time.monotonic() - opened >= PROGRESS_IDLE_SECONDS:
                            break
                        continue
                    yield event.to_sse()
                    if event.epoch + 1 >= event.total_epochs:
                        break
            finally:
                s.progress.unsubscribe(queue)

        return StreamingResponse(events(), media_type="text/event-stream")

    @app.post("/predict", response_model=PredictResponse)
    async def predict(req: PredictRequest, request: Request):
        predictions, mode = await _session(request).predict(req.horizon)
        return PredictResponse(mode=mode.value, predictions=predictions)

    @app.get("/model/export")
    async def export_model(request: Request):
        tmp = Path(tempfile.mkdtemp(prefix="lstm-export-"))
        try:
            path = await _session(request).export_model(tmp)
        except Exception:
            shutil.rmtree(tmp, ignore_errors=True)
            raise
        return FileResponse(path, filename=path.name, media_type="application/octet-stream",
                            background=BackgroundTask(shutil.rmtree, tmp, ignore_errors=True))

    @app.post("/model/import")
    async def import_model(request: Request, files: List[UploadFile] = File(default=[])):
        tmp = Path(tempfile.mkdtemp(prefix="lstm-import-"))
        try:
            paths = []
            for upload in files:
                dest = tmp / Path(upload.filename or "upload").name
                dest.write_bytes(await upload.read())
                paths.append(dest)
            s = _session(request)
            await s.import_model(paths)
            return {"status": "imported", "persisted": s.persisted_model}
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    @app.delete("/model")
    async def delete_model(request: Request):
        removed = await _session(request).delete_persisted_model()
        return {"status": "deleted", "removed": removed}

    @app.post("/reset", response_model=StatusResponse)
    async def reset(request: Request):
        s = _session(request)
        await s.reset_all()
        return s.status()

    @app.post("/engine/enable")
    async def enable_engine(request: Request):
        s = _session(request)
        ok = await s.enable_live_engine()
        message = ("TensorFlow loaded. Mock mode disabled." if ok
                   else "Unable to load TensorFlow in this environment. Continuing in mock mode.")
        return {"engine_ready": ok, "mock_mode": not s.selector.use_live, "message": message}

    @app.put("/settings/mode", response_model=StatusResponse)
    async def set_mode(req: ModeRequest, request: Request):
        s = _session(request)
        s.set_mock_mode(req.mock)
        return s.status()

    @app.put("/settings/theme", response_model=StatusResponse)
    async def set_theme(req: ThemeRequest, request: Request):
        s = _session(request)
        s.set_theme(req.theme)
        return s.status()

    @app.put("/settings/remember", response_model=StatusResponse)
    async def set_remember(req: RememberRequest, request: Request):
        s = _session(request)
        s.set_remember(req.remember)
        return s.status()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("lstm_predictor.main:app", host="0.0.0.0", port=8000, reload=True)
