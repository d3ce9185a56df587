"""Public event pages and the registration flow"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from yurushiri.auth.dependencies import get_session_context, require_user
from yurushiri.auth.models import AuthUser
from yurushiri.auth.session import SessionContext
from yurushiri.backends.dify_client import DifyClient
from yurushiri.errors import EventFullError, EventNotFoundError, RegistrationValidationError
from yurushiri.models.database import get_db
from yurushiri.models.labels import AGE_GROUP_ORDER, DISCOVERY_ORDER, OCCUPATION_ORDER
from yurushiri.services.dify_service import get_dify_client
from yurushiri.services.event_mapping import map_event_row, map_registration_row
from yurushiri.services.event_service import EventService, sort_events_by_start_desc
from yurushiri.services.insight_service import generate_event_insight
from yurushiri.services.participant_service import ParticipantService
from yurushiri.services.registration_service import RegistrationInput, RegistrationService
from yurushiri.templating import templates
from yurushiri.utils.address_utils import generate_google_maps_url

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)

REGISTRATION_FAILED_MESSAGE = "申し込みに失敗しました。時間を置いて再度お試しください。"


def render_not_found(request: Request, context: SessionContext):
    return templates.TemplateResponse(
        request,
        "error/404.html",
        {"user": context.user},
        status_code=404,
    )


@router.get("/")
async def index(
    request: Request,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
):
    """Public event list, latest start first"""
    events = EventService(db).list_events(public_only=True)
    event_views = sort_events_by_start_desc([map_event_row(event) for event in events])
    return templates.TemplateResponse(
        request,
        "index.html",
        {"user": context.user, "events": event_views},
    )


@router.get("/events/{event_id}")
async def event_detail(
    request: Request,
    event_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    dify: DifyClient = Depends(get_dify_client),
):
    """Event detail with the AI insight card and shared participants"""
    event = EventService(db).get_event(event_id)
    if event is None:
        return render_not_found(request, context)

    registration_service = RegistrationService(db)
    registrations = registration_service.list_registrations(event.id)

    has_applied = False
    participants = []
    if context.user is not None:
        has_applied = any(r.user_id == context.user.id for r in registrations)
        participants = ParticipantService(db).shared_participants(event.id, context.user.id)

    insight = await generate_event_insight(dify, event, registrations)

    return templates.TemplateResponse(
        request,
        "event_detail.html",
        {
            "user": context.user,
            "event": map_event_row(event),
            "insight": insight,
            "participants": participants,
            "has_applied": has_applied,
            "google_maps_url": generate_google_maps_url(event.location or ""),
        },
    )


@router.get("/events/{event_id}/register")
async def registration_form(
    request: Request,
    event_id: str,
    db: Session = Depends(get_db),
    context: SessionContext = Depends(get_session_context),
    user: AuthUser = Depends(require_user),
):
    """Registration form, pre-filled when the user already applied"""
    event = EventService(db).get_event(event_id)
    if event is None:
        return render_not_found(request, context)

    existing = RegistrationService(db).get_registration(event.id, user.id)
    return templates.TemplateResponse(
        request,
        "register.html",
        {
            "user": user,
            "event": map_event_row(event),
            "registration": map_registration_row(existing, event) if existing else None,
            "age_order": AGE_GROUP_ORDER,
            "occupation_order": OCCUPATION_ORDER,
            "discovery_order": DISCOVERY_ORDER,
        },
    )


@router.post("/events/{event_id}/register")
async def submit_registration(
    request: Request,
    event_id: str,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_user),
):
    """Handle registration submission (JSON body from the register page)"""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    try:
        data = RegistrationInput.parse(payload)
        event = RegistrationService(db).submit_registration(event_id, user.id, data)
    except RegistrationValidationError as e:
        return JSONResponse({"success": False, "error": str(e)}, status_code=400)
    except EventNotFoundError:
        return JSONResponse(
            {"success": False, "error": "イベントが見つかりません"}, status_code=404
        )
    except EventFullError as e:
        return JSONResponse({"success": False, "error": str(e)}, status_code=409)
    except SQLAlchemyError as e:
        logger.error(f"Failed to save registration for event {event_id}: {e}")
        return JSONResponse(
            {"success": False, "error": REGISTRATION_FAILED_MESSAGE}, status_code=500
        )

    logger.info(f"User {user.id} registered for event {event_id}")
    return {"success": True, "event": map_event_row(event).to_json()}
