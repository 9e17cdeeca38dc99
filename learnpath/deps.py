## Request-scoped dependencies
from typing import Iterator

from sqlalchemy.orm import Session

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.db.session import SessionLocal
from learnpath.scheduling.google import GoogleCalendarClient, get_calendar_client


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_llm() -> LLMClient:
    return get_llm_client()


def get_calendar() -> Iterator[GoogleCalendarClient]:
    client = get_calendar_client()
    try:
        yield client
    finally:
        client.close()
