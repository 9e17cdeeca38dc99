# learnpath/agents/path_validator.py
import logging

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.agents.schemas import ValidationResult

logger = logging.getLogger(__name__)


SYSTEM_PATH_VALIDATOR = """You are an expert in pedagogy and curriculum design.
Your job is to judge whether the order in which a learner studies two topics makes sense.

Consider:
1. Is the first topic a logical prerequisite for the second topic?
2. Are concepts from the first topic needed to understand the second topic?
3. Does difficulty progress from the first topic to the second topic?

Answer ONLY with valid JSON like this:
{"isValid": true, "reason": "Short reason why this order works"}

or, when the order is not appropriate:
{"isValid": false, "reason": "Why this order does not work", "recommendation": "What should be learned first"}
"""

# Fail-open verdicts: a wrongly ordered edge is preferred over blocking the learner.
VALIDATION_UNAVAILABLE = ValidationResult(
    is_valid=True,
    reason="The learning order could not be validated.",
)
VALIDATION_FAILED = ValidationResult(
    is_valid=True,
    reason="Learning order validation failed. The connection is allowed by default.",
)


def build_validation_prompt(from_title: str, to_title: str) -> str:
    return (
        f'A learner wants to study "{to_title}" after studying "{from_title}". '
        "Does this order make sense pedagogically?"
    )


def validate_learning_path(from_title: str, to_title: str,
llm: LLMClient | None = None) -> ValidationResult:
    """Single attempt, never raises."""
    try:
        llm = llm or get_llm_client()
        result = llm.generate_structured(
            ValidationResult,
            system=SYSTEM_PATH_VALIDATOR,
            user=build_validation_prompt(from_title, to_title),
            temperature=0.3,
            max_tokens=500,
        )
        if result is None:
            logger.warning("Path validation reply had no JSON object: %s -> %s", from_title, to_title)
            return VALIDATION_UNAVAILABLE.model_copy()
        return result
    except Exception:
        logger.exception("AI validation error: %s -> %s", from_title, to_title)
        return VALIDATION_FAILED.model_copy()
