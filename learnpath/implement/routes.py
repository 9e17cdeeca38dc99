# learnpath/implement/routes.py
import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from learnpath.agents.estimator import estimate_workflow_time
from learnpath.agents.llm.base import LLMClient
from learnpath.db.models.workflow import Workflow
from learnpath.deps import get_calendar, get_db, get_llm
from learnpath.responses import fail, ok
from learnpath.scheduling.google import (
    CalendarAuthError,
    CalendarError,
    CalendarExportError,
    GoogleCalendarClient,
)
from learnpath.scheduling.schedule import generate_learning_schedule
from learnpath.settings import settings
from learnpath.workflows.service import workflow_nodes

logger = logging.getLogger(__name__)
router = APIRouter()

REAUTH_SCOPE_MESSAGE = (
    "Google Calendar access was not granted. Sign in again with Google and allow Calendar access."
)
REAUTH_EXPIRED_MESSAGE = "Your Google session has expired. Sign in again with Google."


class NodeIn(BaseModel):
    id: str
    title: str
    description: str | None = None


class EstimateNodesRequest(BaseModel):
    nodes: list[NodeIn] = []


class ImplementRequest(BaseModel):
    access_token: str | None = None
    session_token: str | None = None
    start_date: str | None = None
    daily_hours: float | None = None


class TokenRequest(BaseModel):
    code: str | None = None


def calendar_error_message(exc: Exception) -> str:
    """Map Google failures to something the learner can act on."""
    message = str(exc) or "Failed to create calendar events"
    lowered = message.lower()
    if "insufficient" in lowered:
        return REAUTH_SCOPE_MESSAGE
    if "invalid_grant" in lowered or "invalid grant" in lowered or "invalid credentials" in lowered:
        return REAUTH_EXPIRED_MESSAGE
    return message


def parse_start_date(raw: str | None) -> datetime:
    """First session starts at the configured hour on the given day (today if omitted)."""
    start = datetime.fromisoformat(raw.strip()) if raw and raw.strip() else datetime.now()
    # wall-clock time in the calendar's timezone
    return start.replace(hour=settings.session_start_hour, minute=0, second=0, microsecond=0, tzinfo=None)


# -------------------------
# Estimates
# -------------------------
@router.post("/workflows/{workflow_id}/estimate")
def estimate_workflow(
    workflow_id: uuid.UUID,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
):
    try:
        if not db.query(Workflow).filter(Workflow.id == workflow_id).first():
            return fail("Workflow not found", status_code=404)
        nodes = workflow_nodes(db, workflow_id)
        if not nodes:
            return fail("Workflow has no nodes", status_code=400)
        schedule = estimate_workflow_time(nodes, llm=llm)
        return ok(data=schedule.model_dump(by_alias=True))
    except Exception:
        logger.exception("Estimate error")
        return fail("Failed to estimate workflow")


@router.post("/estimate-nodes")
def estimate_nodes(body: EstimateNodesRequest, llm: LLMClient = Depends(get_llm)):
    if not body.nodes:
        return fail("Nodes array required", status_code=400)
    try:
        schedule = estimate_workflow_time([n.model_dump() for n in body.nodes], llm=llm)
        return ok(data=schedule.model_dump(by_alias=True))
    except Exception:
        logger.exception("Estimate nodes error")
        return fail("Failed to estimate nodes")


# -------------------------
# Calendar export
# -------------------------
@router.post("/workflows/{workflow_id}/implement")
def implement_workflow(
    workflow_id: uuid.UUID,
    body: ImplementRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    calendar: GoogleCalendarClient = Depends(get_calendar),
):
    if not body.access_token and not body.session_token:
        return fail("Google access token required", status_code=401)
    if body.daily_hours is not None and body.daily_hours <= 0:
        return fail("daily_hours must be positive", status_code=400)
    try:
        start = parse_start_date(body.start_date)
    except ValueError:
        return fail("start_date must be an ISO date", status_code=400)

    try:
        access_token = body.access_token or calendar.resolve_google_token(body.session_token)

        if not db.query(Workflow).filter(Workflow.id == workflow_id).first():
            return fail("Workflow not found", status_code=404)
        nodes = workflow_nodes(db, workflow_id)
        if not nodes:
            return fail("Workflow has no nodes", status_code=400)

        logger.info("Implementing workflow %s from %s", workflow_id, start.isoformat())
        schedule = estimate_workflow_time(nodes, llm=llm)
        daily_hours = body.daily_hours or schedule.suggested_daily_hours
        events = generate_learning_schedule(schedule.nodes, start, daily_hours)

        event_ids = calendar.create_calendar_events(access_token, events)
        return ok(
            data={
                "schedule": schedule.model_dump(by_alias=True),
                "eventCount": len(event_ids),
                "message": f"{len(event_ids)} events created in Google Calendar",
            }
        )
    except CalendarAuthError as exc:
        logger.warning("Calendar auth error: %s", exc)
        return fail(calendar_error_message(exc), status_code=401)
    except CalendarExportError as exc:
        created = len(exc.created_event_ids)
        logger.error("Calendar export stopped after %d events: %s", created, exc)
        return fail(calendar_error_message(exc), eventCount=created)
    except Exception:
        logger.exception("Implement error")
        return fail("Failed to create calendar events")


@router.get("/calendar/auth-url")
def calendar_auth_url(state: str | None = None,
calendar: GoogleCalendarClient = Depends(get_calendar)):
    try:
        return ok(url=calendar.authorization_url(state))
    except CalendarError as exc:
        logger.error("Calendar auth url error: %s", exc)
        return fail(str(exc), status_code=503)


@router.post("/calendar/token")
def calendar_token(body: TokenRequest, calendar: GoogleCalendarClient = Depends(get_calendar)):
    code = (body.code or "").strip()
    if not code:
        return fail("Authorization code required", status_code=400)
    try:
        return ok(data=calendar.exchange_code(code))
    except CalendarAuthError as exc:
        logger.warning("Token exchange failed: %s", exc)
        return fail(calendar_error_message(exc), status_code=401)
