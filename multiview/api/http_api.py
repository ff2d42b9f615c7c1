"""
HTTP API adapter for the multiview studio.

Architectural role:
- Expose the studio controls (upload, mode toggle, quota set/reset, generate)
  over HTTP.
- Enforce adapter-level input validation.
- Delegate all state changes to `multiview.core.session.StudioSession`.
- Shape run progress as JSON or as an SSE stream.

Endpoint responsibilities:
- `GET /v1/state`: quota panel, mode, upload summary, run snapshot.
- `POST /v1/image`: raw image body; `source=picker|drop`, optional `filename`.
- `POST /v1/mode`: select `edit` or `generate`.
- `POST /v1/quota`: set the credit total (resets usage).
- `POST /v1/quota/reset`: reset used credits.
- `POST /v1/generate`: run the pipeline; SSE stream or final state.
- `GET /v1/views/{index}`: raw bytes of one generated view.

Request lifecycle (`POST /v1/generate`, stream mode):
1. Reject with HTTP 409 while another run is active.
2. Iterate session run events.
3. Emit one `data: <event json>` frame per event, then `data: [DONE]`.

Error handling strategy:
- `ValidationError` -> HTTP 400 JSON (`409` when a run is active).
- Run failures never raise; they arrive as `error` events.
- Unexpected exceptions follow FastAPI default exception handling.

Side effects:
- Quota changes are persisted by the session's `QuotaStore`.
- Emits debug prints only when `DEBUG == "true"`.
- Loads environment variables at import time via `load_dotenv()`.
"""

from dotenv import load_dotenv

load_dotenv()

import os
import json
import asyncio
import logging
from contextlib import aclosing

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from multiview.api.multimodal.image_input_manager import accept_image, decode_data_url
from multiview.api.presentation import render_progress
from multiview.core.errors import ValidationError
from multiview.core.session import BUSY_MESSAGE, StudioSession


logger = logging.getLogger(__name__)

app = FastAPI(title="multiview")
# Request/response debug output is opt-in.
DEBUG = os.getenv("DEBUG") == "true"


# ============================================================
# Session
# ============================================================

_SESSION: StudioSession | None = None


def get_session() -> StudioSession:
    """Return the process-wide session, creating it from env on first use."""
    global _SESSION
    if _SESSION is None:
        _SESSION = StudioSession.from_env()
    return _SESSION


def set_session(session: StudioSession | None) -> None:
    """Override or clear the process-wide session."""
    global _SESSION
    _SESSION = session


def _validation_response(exc: ValidationError) -> JSONResponse:
    status_code = 409 if exc.message == BUSY_MESSAGE else 400
    return JSONResponse(status_code=status_code, content={"error": exc.message})


# ============================================================
# Request Schemas
# ============================================================

class ModeRequest(BaseModel):
    mode: str


class QuotaRequest(BaseModel):
    """Credit total as entered by the user (number or numeric string)."""
    total_credits: int | str


class GenerateRequest(BaseModel):
    stream: bool = True
    include_images: bool = True


# ============================================================
# State
# ============================================================

@app.get("/v1/state")
def get_state(include_images: bool = True):
    return get_session().to_dict(include_images)


@app.post("/v1/image")
async def upload_image(request: Request, source: str = "picker", filename: str | None = None):
    """
    Accept one image as the raw request body.

    Input validation behavior:
    - `source=drop` requires an `image/*` Content-Type.
    - `source=picker` accepts an `image/*` Content-Type or an image filename.
    """
    session = get_session()
    content = await request.body()
    content_type = request.headers.get("content-type", "").split(";")[0].strip() or None

    if DEBUG:
        print("Upload:", source, filename, content_type, len(content), "bytes")

    try:
        session.ensure_idle()
        upload = accept_image(content, mime_type=content_type, filename=filename, source=source)
        session.upload_image(upload)
    except ValidationError as exc:
        return _validation_response(exc)

    return session.to_dict(include_images=False)


@app.post("/v1/mode")
def set_mode(body: ModeRequest):
    session = get_session()
    try:
        session.set_mode(body.mode)
    except ValidationError as exc:
        return _validation_response(exc)
    return {"mode": session.mode.value}


# ============================================================
# Quota
# ============================================================

@app.post("/v1/quota")
def set_quota(body: QuotaRequest):
    """Set the credit total; invalid input leaves the quota unchanged."""
    session = get_session()
    try:
        accepted = session.set_total_credits(body.total_credits)
    except ValidationError as exc:
        return _validation_response(exc)
    return {"accepted": accepted, "quota": session.quota.state.to_dict()}


@app.post("/v1/quota/reset")
def reset_quota():
    session = get_session()
    try:
        session.reset_credits()
    except ValidationError as exc:
        return _validation_response(exc)
    return {"quota": session.quota.state.to_dict()}


# ============================================================
# Generation
# ============================================================

@app.post("/v1/generate")
async def generate(body: GenerateRequest | None = None):
    """
    Run describe + per-view generation for the current upload.

    Response formatting:
    - Stream mode: SSE frames carrying `{"event": kind, "state": snapshot}`,
      terminated by `[DONE]`.
    - Non-stream mode: final session state, or HTTP 400 when rejected.
    """
    body = body or GenerateRequest()
    session = get_session()

    try:
        session.ensure_idle()
    except ValidationError as exc:
        return _validation_response(exc)

    if not body.stream:
        async with aclosing(session.generate()) as events:
            async for event in events:
                if DEBUG:
                    print("Run event:", event.kind, render_progress(event.state))
                if event.kind == "rejected":
                    return JSONResponse(status_code=400, content={"error": event.state.error})
        return session.to_dict(body.include_images)

    async def event_generator():
        """
        Yield SSE frames for each run event.

        Error handling:
        - Client disconnects cancel the stream; the orchestrator still clears
          its loading flags on the way out.
        """
        try:
            async with aclosing(session.generate()) as events:
                async for event in events:
                    if DEBUG:
                        print("Streaming event:", event.kind)
                    yield f"data: {json.dumps(event.to_dict(body.include_images))}\n\n"
        except ValidationError as exc:
            # Another run claimed the session after the idle check above.
            yield f"data: {json.dumps({'event': 'rejected', 'error': exc.message})}\n\n"
        except (asyncio.CancelledError, BrokenPipeError, ConnectionResetError):
            if DEBUG:
                print("Streaming cancelled by client.")
            raise
        yield "data: [DONE]\n\n"

    return StreamingResponse(event_generator(), media_type="text/event-stream")


@app.get("/v1/views/{index}")
def get_view(index: int):
    """Return the decoded image of the generated view at `index`."""
    views = get_session().state.generated_views
    if index < 0 or index >= len(views):
        return JSONResponse(status_code=404, content={"error": "View not found"})

    mime_type, content = decode_data_url(views[index].image_url)
    return Response(content=content, media_type=mime_type)
