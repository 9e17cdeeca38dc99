"""
Google Calendar export and the OAuth pieces around it.

The exporter only needs a Google access token. Depending on deployment the
token is either sent by the frontend directly, obtained here from an
authorization code, or looked up on the learner's Supabase session.
"""
import logging
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from learnpath.agents.schemas import CalendarEvent
from learnpath.settings import settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.events"

EVENT_COLOR_ID = "9"  # blueberry
REMINDER_MINUTES = 30
EVENT_TITLE_PREFIX = "📚 "


class CalendarError(Exception):
    """Base class for calendar failures."""


class CalendarAuthError(CalendarError):
    """Missing, invalid or expired Google credentials."""


class CalendarExportError(CalendarError):
    """Event creation stopped part-way; earlier events are left in place."""

    def __init__(self, message: str, created_event_ids: list[str]):
        super().__init__(message)
        self.created_event_ids = list(created_event_ids)


def _safe_google_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            message = error_payload.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
        if isinstance(error_payload, str) and error_payload.strip():
            description = payload.get("error_description")
            if isinstance(description, str) and description.strip():
                return f"{error_payload}: {' '.join(description.split())[:200]}"
            return error_payload.strip()[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return "Request failed without an error payload"


def build_event_body(event: CalendarEvent, timezone_name: str) -> dict[str, Any]:
    end = event.start_date + timedelta(hours=event.duration_hours)
    return {
        "summary": f"{EVENT_TITLE_PREFIX}{event.title}",
        "description": event.description,
        "start": {"dateTime": event.start_date.isoformat(), "timeZone": timezone_name},
        "end": {"dateTime": end.isoformat(), "timeZone": timezone_name},
        "colorId": EVENT_COLOR_ID,
        "reminders": {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": REMINDER_MINUTES}],
        },
    }


class GoogleCalendarClient:
    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        timezone_name: str | None = None,
        supabase_url: str | None = None,
        supabase_key: str | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timezone_name = timezone_name or settings.calendar_timezone
        self.supabase_url = supabase_url.rstrip("/") if supabase_url else None
        self.supabase_key = supabase_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(timeout=settings.calendar_timeout_seconds)

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    # -------------------------
    # Export
    # -------------------------
    def create_calendar_events(self, access_token: str, events: list[CalendarEvent]) -> list[str]:
        """Create events one by one on the primary calendar; stop at the first failure."""
        logger.info("Creating %d calendar events", len(events))
        url = f"{GOOGLE_CALENDAR_API_BASE_URL}/calendars/primary/events"
        headers = {"Authorization": f"Bearer {access_token}"}
        event_ids: list[str] = []

        for event in events:
            logger.info("Creating event: %s at %s", event.title, event.start_date.isoformat())
            try:
                response = self._http.post(url, json=build_event_body(event, self.timezone_name),
                headers=headers)
            except httpx.HTTPError as exc:
                logger.error("Failed to create event %r: %s", event.title, exc)
                raise CalendarExportError(f"Failed to create calendar event: {exc}", event_ids) from exc

            if response.status_code < 200 or response.status_code >= 300:
                message = _safe_google_error_message(response)
                logger.error("Failed to create event %r (%d): %s", event.title,
                response.status_code, message)
                raise CalendarExportError(f"Failed to create calendar event: {message}", event_ids)

            try:
                created = response.json()
            except ValueError as exc:
                logger.error("Event %r created but the reply was not JSON", event.title)
                raise CalendarExportError("Google Calendar returned an unreadable reply", event_ids) from exc

            event_id = created.get("id") if isinstance(created, dict) else None
            if not event_id:
                logger.error("Event %r reply carried no id", event.title)
                raise CalendarExportError("Google Calendar reply is missing the event id", event_ids)
            event_ids.append(event_id)
            logger.info("Event created: %s", event_id)

        logger.info("Successfully created %d events", len(event_ids))
        return event_ids

    # -------------------------
    # OAuth
    # -------------------------
    def authorization_url(self, state: str | None = None) -> str:
        if not self.client_id:
            raise CalendarAuthError("Google OAuth client id is not configured")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": CALENDAR_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> dict[str, Any]:
        """Authorization code -> token response (access_token, refresh_token, ...)."""
        if not self.client_id or not self.client_secret:
            raise CalendarAuthError("Google OAuth client credentials are not configured")
        payload = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            response = self._http.post(GOOGLE_TOKEN_URL, data=payload,
            headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise CalendarAuthError(f"Network error during token exchange: {exc}") from exc

        if response.status_code != 200:
            raise CalendarAuthError(
                f"Token exchange failed ({response.status_code}): {_safe_google_error_message(response)}"
            )
        try:
            tokens = response.json()
        except ValueError as exc:
            raise CalendarAuthError("Google token endpoint returned invalid JSON") from exc
        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise CalendarAuthError("Google token response is missing an access_token")
        return tokens

    def resolve_google_token(self, session_token: str) -> str:
        """Find the Google provider token on a Supabase session's user."""
        if not self.supabase_url or not self.supabase_key:
            raise CalendarAuthError("Supabase is not configured")
        try:
            response = self._http.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {session_token}", "apikey": self.supabase_key},
            )
        except httpx.HTTPError as exc:
            raise CalendarAuthError(f"Supabase auth request failed: {exc}") from exc

        if response.status_code != 200:
            logger.error("Supabase auth error (%d)", response.status_code)
            raise CalendarAuthError("Invalid Supabase session")

        user = response.json()
        if not isinstance(user, dict):
            user = {}
        token = _find_provider_token(user)
        if not token:
            logger.error("Google provider token not found for user %s", user.get("id"))
            raise CalendarAuthError(
                "Google provider token not found. Sign in again with Google and grant Calendar access."
            )
        return token


def _find_provider_token(user: dict[str, Any]) -> str | None:
    for identity in user.get("identities") or []:
        if not isinstance(identity, dict) or identity.get("provider") != "google":
            continue
        identity_data = identity.get("identity_data") or {}
        token = (
            identity.get("provider_token")
            or identity.get("access_token")
            or identity_data.get("provider_token")
        )
        if token:
            return token

    for key in ("app_metadata", "user_metadata"):
        token = (user.get(key) or {}).get("provider_token")
        if token:
            return token
    return None


def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        timezone_name=settings.calendar_timezone,
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_service_role_key,
    )
