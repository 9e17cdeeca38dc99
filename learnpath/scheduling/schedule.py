## Study schedule generation
from datetime import datetime, timedelta
from typing import Iterable

from learnpath.agents.schemas import CalendarEvent, NodeTimeEstimate

# float hours (e.g. 0.1 + 0.2) must not leave a phantom session behind
_EPSILON = 1e-9


def generate_learning_schedule(
    nodes: Iterable[NodeTimeEstimate],
    start_date: datetime,
    daily_hours: float = 2,
) -> list[CalendarEvent]:
    """
    Greedy day-by-day packing, strictly sequential.

    Each node is split into sessions of at most daily_hours, one session per
    day. The day advances after every session, partial ones included, so the
    next node always starts the day after the previous node's last session.
    """
    if daily_hours <= 0:
        raise ValueError("daily_hours must be positive")

    events: list[CalendarEvent] = []
    current = start_date

    for node in nodes:
        scheduled = 0.0
        while node.estimated_hours - scheduled > _EPSILON:
            session = min(daily_hours, node.estimated_hours - scheduled)
            events.append(
                CalendarEvent(
                    title=node.node_title,
                    description=node.description,
                    start_date=current,
                    duration_hours=session,
                )
            )
            scheduled += session
            current = current + timedelta(days=1)

    return events
