"""
src/api/app.py
===============
Local Control Surface — VoiceWriter

Responsibility:
    - Expose the pipeline entry points to the desktop shell (tray,
      hotkey handler, overlay, dashboard) over localhost HTTP
    - Report and accept capture state changes (e.g. LISTENING while the
      recorder runs)
    - Start the retention service on startup and stop it on shutdown

Endpoints:
    GET  /health
    GET  /api/v1/state
    POST /api/v1/state
    POST /api/v1/process-recording
    POST /api/v1/polish-text
    POST /api/v1/test-key

Every pipeline outcome — including failures — is returned as a 200
with ``{ok, text?, error?}``; HTTP errors are reserved for malformed
requests.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

load_dotenv()

from src.external.credentials import EnvCredentialProvider  # noqa: E402
from src.external.delivery import LogDeliverer, WebhookDeliverer  # noqa: E402
from src.pipeline import RecordingPipeline  # noqa: E402
from src.retention.service import start_retention  # noqa: E402
from src.safety_net import install_loop_handler  # noqa: E402
from src.state.context import PipelineContext  # noqa: E402
from src.state.machine import CaptureState  # noqa: E402
from src.stt.sarvam_client import verify_api_key  # noqa: E402

logger = logging.getLogger("voicewriter.api")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

WORK_DIR = Path(
    os.environ.get("VOICEWRITER_WORK_DIR")
    or Path(tempfile.gettempdir()) / "voicewriter"
)
CONFIG_FILE = Path(os.environ.get("VOICEWRITER_CONFIG_FILE") or WORK_DIR / "config.json")
DELIVERY_WEBHOOK_URL: str | None = os.getenv("DELIVERY_WEBHOOK_URL")


def _build_deliverer():
    if DELIVERY_WEBHOOK_URL:
        return WebhookDeliverer(DELIVERY_WEBHOOK_URL)
    logger.debug("DELIVERY_WEBHOOK_URL not configured — delivering to log only.")
    return LogDeliverer()


context = PipelineContext()
credentials = EnvCredentialProvider(CONFIG_FILE)
pipeline = RecordingPipeline(context, credentials, _build_deliverer(), WORK_DIR)

_retention_task: asyncio.Task | None = None


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class ProcessRecordingRequest(BaseModel):
    file_path: str


class PolishTextRequest(BaseModel):
    text: str


class StateUpdateRequest(BaseModel):
    state: str


class KeyTestRequest(BaseModel):
    api_key: str | None = None


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VoiceWriter",
    description="Voice dictation and text polishing — local control surface.",
    version="1.0.0",
)
# main.py switches this on; embedded/test usage keeps the default loop handler.
app.state.safety_net = False


@app.on_event("startup")
async def _startup() -> None:
    global _retention_task
    if app.state.safety_net:
        install_loop_handler(asyncio.get_running_loop())
    WORK_DIR.mkdir(parents=True, exist_ok=True)
    _retention_task = start_retention(WORK_DIR)


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _retention_task
    if _retention_task is not None:
        _retention_task.cancel()
        _retention_task = None
    context.shutdown()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/v1/state")
async def get_state():
    return {"state": context.state.value, "in_flight": context.in_flight}


@app.post("/api/v1/state")
async def update_state(body: StateUpdateRequest):
    try:
        state = CaptureState(body.state.upper())
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown state '{body.state}'.")
    changed = context.transition(state)
    return {"state": context.state.value, "changed": changed}


@app.post("/api/v1/process-recording")
async def process_recording(body: ProcessRecordingRequest):
    logger.info("Recording received: %s", body.file_path)
    result = await pipeline.process_recording(body.file_path)
    return JSONResponse(status_code=200, content=result.to_dict())


@app.post("/api/v1/polish-text")
async def polish_text(body: PolishTextRequest):
    result = await pipeline.polish_selection(body.text)
    return JSONResponse(status_code=200, content=result.to_dict())


@app.post("/api/v1/test-key")
async def test_key(body: KeyTestRequest):
    key = body.api_key or credentials.get_api_key()
    result = await asyncio.to_thread(verify_api_key, key)
    content: dict = {"ok": result.ok}
    if result.error:
        content["error"] = result.error
    return JSONResponse(status_code=200, content=content)
