"""Organizer console: event management and participant analytics"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.datastructures import UploadFile

from yurushiri.auth.dependencies import get_session_context, require_user
from yurushiri.auth.models import AuthUser
from yurushiri.auth.session import SessionContext
from yurushiri.backends.storage_client import StorageClient
from yurushiri.errors import EventNotFoundError, StorageError
from yurushiri.models.database import get_db
from yurushiri.models.event import EVENT_CATEGORIES
from yurushiri.models.labels import AGE_GROUP_LABELS, DISCOVERY_LABELS, OCCUPATION_LABELS
from yurushiri.services.analytics_service import (
    build_participant_rows,
    format_distribution,
    summarize_registrations,
)
from yurushiri.services.event_mapping import map_event_row
from yurushiri.services.event_service import EventInput, EventService
from yurushiri.services.registration_service import RegistrationService
from yurushiri.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin", include_in_schema=False, dependencies=[Depends(require_user)]
)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024

CREATE_FAILED_MESSAGE = "イベントの作成に失敗しました。入力内容を確認して再度お試しください。"
UPDATE_FAILED_MESSAGE = "イベントの更新に失敗しました。"
DELETE_FAILED_MESSAGE = "イベントの削除に失敗しました。"


class CoverImageError(ValueError):
    """Uploaded cover image has the wrong type or is too large"""


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def _event_input_from_form(form, image_url: Optional[str]) -> EventInput:
    """Build an EventInput from the multipart event form"""
    return EventInput.model_validate(
        {
            "title": form.get("title") or "",
            "description": form.get("description") or "",
            "date": form.get("date") or "",
            "time": form.get("time") or "",
            "location": form.get("location") or "",
            "category": form.get("category") or "",
            "maxAttendees": form.get("maxAttendees") or 50,
            "isPublic": str(form.get("isPublic", "false")).lower() in ("true", "on", "1"),
            "imageUrl": image_url,
        }
    )


async def _read_cover_image(form) -> Optional[tuple[bytes, str, str]]:
    """
    Read and validate the optional cover image.

    Returns:
        (content, content_type, extension), or None when no file was sent

    Raises:
        CoverImageError: On a disallowed type or oversized file
    """
    upload = form.get("image")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None

    if upload.content_type not in ALLOWED_IMAGE_TYPES:
        raise CoverImageError("JPEG・PNG・WebP形式の画像を選択してください")

    content = await upload.read()
    if len(content) > MAX_IMAGE_SIZE:
        raise CoverImageError("画像サイズは5MB以下にしてください")

    extension = upload.filename.rsplit(".", 1)[-1].lower() if "." in upload.filename else "jpg"
    return content, upload.content_type, extension


async def _upload_cover_image(
    storage: StorageClient, image: tuple[bytes, str, str], access_token: Optional[str]
) -> str:
    content, content_type, extension = image
    path = f"events/{uuid.uuid4()}.{extension}"
    return await storage.upload(path, content, content_type, access_token=access_token)


@router.get("/events")
async def admin_events(
    request: Request,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_user),
):
    """All events (public and private), newest first"""
    events = [map_event_row(event) for event in EventService(db).list_events()]
    return templates.TemplateResponse(
        request, "admin/events.html", {"user": user, "events": events}
    )


@router.get("/events/new")
async def new_event_form(request: Request, user: AuthUser = Depends(require_user)):
    return templates.TemplateResponse(
        request,
        "admin/event_form.html",
        {"user": user, "event": None, "categories": EVENT_CATEGORIES},
    )


@router.post("/events")
async def create_event(
    request: Request,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    storage: StorageClient = Depends(get_storage_client),
):
    """Create an event from the multipart form, uploading the cover image first"""
    form = await request.form()
    try:
        image = await _read_cover_image(form)
        data = _event_input_from_form(form, (form.get("imageUrl") or "").strip() or None)
    except CoverImageError as e:
        return _error(str(e), 400)
    except ValidationError as e:
        return _error(_validation_message(e), 400)

    try:
        image_url = None
        if image:
            image_url = await _upload_cover_image(storage, image, context.access_token)
        event = EventService(db, storage).create_event(data, image_url=image_url)
    except (StorageError, SQLAlchemyError) as e:
        logger.error(f"Failed to create event: {e}")
        return _error(CREATE_FAILED_MESSAGE, 500)

    return {"success": True, "event": map_event_row(event).to_json()}


@router.get("/events/{event_id}/edit")
async def edit_event_form(
    request: Request,
    event_id: str,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_user),
):
    event = EventService(db).get_event(event_id)
    if event is None:
        return templates.TemplateResponse(
            request, "error/404.html", {"user": user}, status_code=404
        )
    return templates.TemplateResponse(
        request,
        "admin/event_form.html",
        {"user": user, "event": map_event_row(event), "categories": EVENT_CATEGORIES},
    )


@router.post("/events/{event_id}")
async def update_event(
    request: Request,
    event_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    storage: StorageClient = Depends(get_storage_client),
):
    """Update an event; a new cover image replaces the old URL, removeImage clears it"""
    event_service = EventService(db, storage)
    existing = event_service.get_event(event_id)
    if existing is None:
        return _error("イベントが見つかりません", 404)

    form = await request.form()
    remove_image = str(form.get("removeImage", "false")).lower() in ("true", "on", "1")
    submitted_url = (form.get("imageUrl") or "").strip() or None
    image_url = None if remove_image else (submitted_url or existing.image_url)

    try:
        image = await _read_cover_image(form)
        data = _event_input_from_form(form, image_url)
    except CoverImageError as e:
        return _error(str(e), 400)
    except ValidationError as e:
        return _error(_validation_message(e), 400)

    try:
        if image:
            data.image_url = await _upload_cover_image(storage, image, context.access_token)
        event = event_service.update_event(existing.id, data)
    except EventNotFoundError:
        return _error("イベントが見つかりません", 404)
    except (StorageError, SQLAlchemyError) as e:
        logger.error(f"Failed to update event {event_id}: {e}")
        return _error(UPDATE_FAILED_MESSAGE, 500)

    return {"success": True, "event": map_event_row(event).to_json()}


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    storage: StorageClient = Depends(get_storage_client),
):
    try:
        await EventService(db, storage).delete_event(
            event_id, access_token=context.access_token
        )
    except EventNotFoundError:
        return _error("イベントが見つかりません", 404)
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete event {event_id}: {e}")
        return _error(DELETE_FAILED_MESSAGE, 500)

    return {"success": True}


@router.get("/participants")
async def participants(
    request: Request,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_user),
):
    """Per-event summaries and the full participant list"""
    events = EventService(db).list_events()
    registrations = RegistrationService(db).list_registrations()
    rows = build_participant_rows(events, registrations)
    summaries = summarize_registrations(rows)

    return templates.TemplateResponse(
        request,
        "admin/participants.html",
        {
            "user": user,
            "summaries": summaries,
            "participants": rows,
            "format_distribution": format_distribution,
            "age_labels": AGE_GROUP_LABELS,
            "occupation_labels": OCCUPATION_LABELS,
            "discovery_labels": DISCOVERY_LABELS,
        },
    )
