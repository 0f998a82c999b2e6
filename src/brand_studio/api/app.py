from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from brand_studio import messages
from brand_studio.config import settings
from brand_studio.errors import (
    BatchGenerationError,
    BusyError,
    NoImageReturnedError,
    RegenerationError,
    SessionNotFoundError,
    StudioError,
)
from brand_studio.imaging import download_filename, export_image
from brand_studio.intake import intake_upload
from brand_studio.logging_setup import configure_logging
from brand_studio.providers.base import ASPECT_RATIOS, IMAGE_QUALITIES, MODEL_SELECTIONS, AssetSlot
from brand_studio.providers.gemini_provider import GeminiProvider
from brand_studio.session import StudioOrchestrator, StudioSession, session_to_dict
from brand_studio.storage import SessionStore

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="brand_studio")

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

store = SessionStore()


def _get_gemini() -> GeminiProvider:
    if not settings.gemini_api_key:
        raise HTTPException(status_code=400, detail="GEMINI_API_KEY is not set")
    return GeminiProvider(api_key=settings.gemini_api_key)


orchestrator = StudioOrchestrator(provider_factory=_get_gemini)


def _parse_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _status_for(exc: StudioError) -> int:
    if isinstance(exc, SessionNotFoundError):
        return 404
    if isinstance(exc, BusyError):
        return 409
    if isinstance(exc, (BatchGenerationError, RegenerationError, NoImageReturnedError)):
        return 502
    return 400


def _http_error(exc: StudioError) -> HTTPException:
    return HTTPException(status_code=_status_for(exc), detail=exc.message)


def _session_or_404(session_id: str) -> StudioSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError as exc:
        raise _http_error(exc) from exc


def _redirect(session_id: str) -> RedirectResponse:
    return RedirectResponse(url=f"/sessions/{session_id}", status_code=303)


# -- HTML studio ----------------------------------------------------------


@app.get("/")
def index(request: Request):
    session = store.get_or_create(request.cookies.get(settings.session_cookie))
    resp = _redirect(session.session_id)
    resp.set_cookie(settings.session_cookie, session.session_id, httponly=True, samesite="lax")
    return resp


@app.get("/sessions/{session_id}", response_class=HTMLResponse)
def studio_page(request: Request, session_id: str):
    session = _session_or_404(session_id)
    return templates.TemplateResponse(
        request=request,
        name="studio.html",
        context={
            "session": session,
            "selected": session.selected,
            "phase": session.phase.value,
            "show_model_upload": orchestrator.show_model_upload(session),
            "slots": [AssetSlot.PRODUCT, AssetSlot.LOGO, AssetSlot.MODEL],
            "slot_labels": messages.SLOT_LABELS,
            "aspect_ratios": ASPECT_RATIOS,
            "qualities": IMAGE_QUALITIES,
            "personas": [(p, messages.PERSONA_LABELS[p]) for p in MODEL_SELECTIONS],
            "loading_messages": messages.LOADING_MESSAGES,
            "styles": session.suggested_styles[: orchestrator.max_styles],
        },
    )


@app.post("/sessions/{session_id}/assets/{slot}/upload")
async def upload_asset(session_id: str, slot: AssetSlot, file: UploadFile = File(...)):
    session = _session_or_404(session_id)
    try:
        image = await intake_upload(file)
        await orchestrator.set_asset(session, slot, image)
    except StudioError as exc:
        logger.info("Rejected %s upload for session %s: %s", slot.value, session_id, exc.message)
        session.error = exc.message
    return _redirect(session_id)


@app.post("/sessions/{session_id}/assets/{slot}/clear")
async def clear_asset(session_id: str, slot: AssetSlot):
    session = _session_or_404(session_id)
    await orchestrator.clear_asset(session, slot)
    return _redirect(session_id)


@app.post("/sessions/{session_id}/params")
def update_params(
    session_id: str,
    aspect_ratio: str | None = Form(None),
    quality: str | None = Form(None),
    overlay_text: str | None = Form(None),
    product_dimensions: str | None = Form(None),
    article_text: str | None = Form(None),
    model_selection: str | None = Form(None),
):
    session = _session_or_404(session_id)
    try:
        orchestrator.update_parameters(
            session,
            aspect_ratio=aspect_ratio,
            quality=quality,
            overlay_text=overlay_text,
            product_dimensions=product_dimensions,
            article_text=article_text,
            model_selection=model_selection,
        )
    except StudioError:
        pass  # already recorded on the session
    return _redirect(session_id)


@app.post("/sessions/{session_id}/strategy")
async def analyze_strategy(session_id: str, article_text: str | None = Form(None)):
    session = _session_or_404(session_id)
    try:
        if article_text is not None:
            orchestrator.update_parameters(session, article_text=article_text)
        await orchestrator.analyze_strategy(session)
    except StudioError:
        pass
    return _redirect(session_id)


@app.post("/sessions/{session_id}/model-override")
def model_override(session_id: str, enabled: str = Form("")):
    session = _session_or_404(session_id)
    orchestrator.set_model_upload_override(session, _parse_bool(enabled))
    return _redirect(session_id)


@app.post("/sessions/{session_id}/generate")
async def generate(
    session_id: str,
    aspect_ratio: str | None = Form(None),
    quality: str | None = Form(None),
    overlay_text: str | None = Form(None),
    product_dimensions: str | None = Form(None),
    model_selection: str | None = Form(None),
):
    session = _session_or_404(session_id)
    try:
        # The studio form posts its current field values with the generate button.
        orchestrator.update_parameters(
            session,
            aspect_ratio=aspect_ratio,
            quality=quality,
            overlay_text=overlay_text,
            product_dimensions=product_dimensions,
            model_selection=model_selection,
        )
        await orchestrator.generate_batch(session)
    except StudioError:
        pass
    return _redirect(session_id)


@app.post("/sessions/{session_id}/regenerate")
async def regenerate(session_id: str, style: str = Form(...)):
    session = _session_or_404(session_id)
    try:
        await orchestrator.regenerate(session, style)
    except StudioError:
        pass
    return _redirect(session_id)


@app.post("/sessions/{session_id}/select")
def select(session_id: str, style: str = Form(...)):
    session = _session_or_404(session_id)
    try:
        orchestrator.select(session, style)
    except StudioError:
        pass
    return _redirect(session_id)


@app.post("/sessions/{session_id}/reset")
def reset(session_id: str):
    session = _session_or_404(session_id)
    orchestrator.reset(session)
    return _redirect(session_id)


@app.get("/sessions/{session_id}/download")
def download(session_id: str, style: str, format: str = ""):
    session = _session_or_404(session_id)
    match = session.find_generated(style)
    if match is None:
        raise HTTPException(status_code=404, detail=messages.unknown_style(style))
    try:
        content, media_type, ext = export_image(match, format or None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    filename = download_filename(style, ext)
    # Header values must be latin-1; keep the UTF-8 name in filename*.
    headers = {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    return Response(content=content, media_type=media_type, headers=headers)


# -- JSON API ---------------------------------------------------------------


class ParamsBody(BaseModel):
    aspect_ratio: str | None = None
    quality: str | None = None
    overlay_text: str | None = None
    product_dimensions: str | None = None
    article_text: str | None = None
    model_selection: str | None = None


class StyleBody(BaseModel):
    style: str


class OverrideBody(BaseModel):
    enabled: bool


def _state(session: StudioSession) -> dict[str, Any]:
    return session_to_dict(session, orchestrator)


@app.post("/api/sessions")
def api_create_session():
    return _state(store.create())


@app.get("/api/sessions/{session_id}")
def api_get_session(session_id: str):
    return _state(_session_or_404(session_id))


@app.delete("/api/sessions/{session_id}")
def api_delete_session(session_id: str):
    _session_or_404(session_id)
    store.delete(session_id)
    return {"deleted": session_id}


@app.post("/api/sessions/{session_id}/assets/{slot}")
async def api_upload_asset(session_id: str, slot: AssetSlot, file: UploadFile = File(...)):
    session = _session_or_404(session_id)
    try:
        image = await intake_upload(file)
        await orchestrator.set_asset(session, slot, image)
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.delete("/api/sessions/{session_id}/assets/{slot}")
async def api_clear_asset(session_id: str, slot: AssetSlot):
    session = _session_or_404(session_id)
    await orchestrator.clear_asset(session, slot)
    return _state(session)


@app.patch("/api/sessions/{session_id}/params")
def api_update_params(session_id: str, body: ParamsBody):
    session = _session_or_404(session_id)
    try:
        orchestrator.update_parameters(session, **body.model_dump(exclude_none=True))
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.post("/api/sessions/{session_id}/model-override")
def api_model_override(session_id: str, body: OverrideBody):
    session = _session_or_404(session_id)
    orchestrator.set_model_upload_override(session, body.enabled)
    return _state(session)


@app.post("/api/sessions/{session_id}/strategy")
async def api_analyze_strategy(session_id: str):
    session = _session_or_404(session_id)
    try:
        await orchestrator.analyze_strategy(session)
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.post("/api/sessions/{session_id}/styles")
async def api_refresh_styles(session_id: str):
    session = _session_or_404(session_id)
    await orchestrator.refresh_styles(session)
    return _state(session)


@app.post("/api/sessions/{session_id}/generate")
async def api_generate(session_id: str):
    session = _session_or_404(session_id)
    try:
        await orchestrator.generate_batch(session)
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.post("/api/sessions/{session_id}/regenerate")
async def api_regenerate(session_id: str, body: StyleBody):
    session = _session_or_404(session_id)
    try:
        await orchestrator.regenerate(session, body.style)
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.post("/api/sessions/{session_id}/select")
def api_select(session_id: str, body: StyleBody):
    session = _session_or_404(session_id)
    try:
        orchestrator.select(session, body.style)
    except StudioError as exc:
        raise _http_error(exc) from exc
    return _state(session)


@app.post("/api/sessions/{session_id}/reset")
def api_reset(session_id: str):
    session = _session_or_404(session_id)
    orchestrator.reset(session)
    return _state(session)
