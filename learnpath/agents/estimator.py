# learnpath/agents/estimator.py
import logging
import math

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.agents.parsing import bullet_list
from learnpath.agents.schemas import (
    EstimateReply,
    EstimatedNode,
    NodeTimeEstimate,
    WorkflowSchedule,
)
from learnpath.settings import settings

logger = logging.getLogger(__name__)


SYSTEM_ESTIMATOR = """You are a curriculum expert. Give realistic study time estimates for each topic.

Topics to study:
{node_list}

Consider:
1. Topic complexity
2. Time for exercises and practice
3. Time to understand the concepts in depth

Estimate in HOURS for every topic. Realistic estimates are usually:
- Basic topic: 2-5 hours
- Intermediate topic: 5-15 hours
- Advanced topic: 15-40 hours

Answer ONLY with JSON:
{{
  "nodes": [
    {{"title": "Topic name", "hours": 10, "description": "Short description of what is learned"}}
  ],
  "suggestedDailyHours": 2,
  "summary": "Short summary of the study plan"
}}
"""


def _describe(title: str) -> str:
    return f"Study {title}"


def build_schedule(estimates: list[NodeTimeEstimate], daily_hours: float) -> WorkflowSchedule:
    total_hours = sum(e.estimated_hours for e in estimates)
    return WorkflowSchedule(
        total_hours=total_hours,
        nodes=estimates,
        suggested_daily_hours=daily_hours,
        total_days=math.ceil(total_hours / daily_hours),
    )


def default_estimate(nodes: list[dict]) -> WorkflowSchedule:
    """Every node at the fallback hours, studied at the default daily pace."""
    estimates = [
        NodeTimeEstimate(
            node_id=str(n["id"]),
            node_title=n["title"],
            estimated_hours=settings.fallback_node_hours,
            description=_describe(n["title"]),
        )
        for n in nodes
    ]
    return build_schedule(estimates, settings.default_daily_hours)


def _match_reply(node: dict, index: int, replies: list[EstimatedNode]) -> EstimatedNode | None:
    title = node["title"].lower()
    for reply in replies:
        candidate = reply.title.lower()
        if not candidate:
            continue
        if title in candidate or candidate in title:
            return reply
    if index < len(replies):
        return replies[index]
    return None


def estimate_workflow_time(nodes: list[dict], llm: LLMClient | None = None) -> WorkflowSchedule:
    """
    nodes: ordered [{"id", "title", "description"?}], never empty.
    Matches the model's entries back by title containment (either direction),
    then by position, then falls back to the default hours.
    """
    try:
        llm = llm or get_llm_client()
        reply = llm.generate_structured(
            EstimateReply,
            system=SYSTEM_ESTIMATOR.format(node_list=bullet_list(nodes)),
            user=f"Estimate the study time for a workflow with the {len(nodes)} topics above.",
            temperature=0.3,
            max_tokens=1000,
        )
        if reply is None:
            logger.warning("Time estimate reply had no JSON object; using defaults")
            return default_estimate(nodes)

        estimates = []
        for i, node in enumerate(nodes):
            match = _match_reply(node, i, reply.nodes)
            hours = match.hours if match and match.hours and match.hours > 0 else settings.fallback_node_hours
            description = match.description if match and match.description else _describe(node["title"])
            estimates.append(
                NodeTimeEstimate(
                    node_id=str(node["id"]),
                    node_title=node["title"],
                    estimated_hours=hours,
                    description=description,
                )
            )

        daily = reply.suggested_daily_hours
        if not daily or daily <= 0:
            daily = settings.default_daily_hours
        return build_schedule(estimates, daily)
    except Exception:
        logger.exception("Time estimation error")
        return default_estimate(nodes)
