# learnpath/agents/duplicates.py
import logging
import re

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.agents.parsing import bullet_list
from learnpath.agents.schemas import DuplicateCheckResult, DuplicateReply, SimilarNode

logger = logging.getLogger(__name__)


SYSTEM_DUPLICATE_CHECKER = """You help prevent EXACT duplicates in a learning system.

IMPORTANT: Only flag the new node as a duplicate when it is EXACTLY the same as an
existing node or differs only in spelling, casing, spacing or abbreviation.

NOT duplicates (allow):
- "JavaScript" and "React" = NOT a duplicate (React is a library, JavaScript is a language)
- "Python" and "Machine Learning" = NOT a duplicate (different concepts)
- "HTML" and "CSS" = NOT a duplicate (different technologies)
- "Database" and "SQL" = NOT a duplicate (SQL is a query language)

Duplicates (reject):
- "JavaScript" and "Javascript" = DUPLICATE (different spelling)
- "React JS" and "ReactJS" = DUPLICATE (same thing)
- "Machine Learning" and "ML" = DUPLICATE (abbreviation)

Existing nodes:
{node_list}

Answer ONLY with JSON:
{{"isDuplicate": false, "reason": "This node is unique"}}

or when it is an EXACT duplicate:
{{"isDuplicate": true, "reason": "Why it is a duplicate", "similarNodeTitle": "Title of the matching node"}}
"""

DUPLICATE_CHECK_UNAVAILABLE = DuplicateCheckResult(
    is_duplicate=False,
    reason="Duplicate check could not be performed.",
)
DUPLICATE_CHECK_FAILED = DuplicateCheckResult(
    is_duplicate=False,
    reason="Duplicate check failed.",
)

_NON_WORD_RE = re.compile(r"[\W_]+")


def literal_form(title: str) -> str:
    """Lowercase with whitespace and punctuation removed: 'React JS' -> 'reactjs'."""
    return _NON_WORD_RE.sub("", title.lower())


def _find_literal_duplicate(new_title: str, existing_nodes: list[dict]) -> dict | None:
    key = literal_form(new_title)
    if not key:
        return None
    for node in existing_nodes:
        if literal_form(node["title"]) == key:
            return node
    return None


def _resolve_similar(title: str | None, existing_nodes: list[dict]) -> SimilarNode | None:
    if not title:
        return None
    wanted = title.strip().lower()
    for node in existing_nodes:
        if node["title"].strip().lower() == wanted:
            return SimilarNode(id=str(node["id"]), title=node["title"])
    return None


def check_duplicate_node(new_title: str, existing_nodes: list[dict],
llm: LLMClient | None = None) -> DuplicateCheckResult:
    """
    existing_nodes: [{"id", "title", "description"?}, ...] for the same topic.
    Never raises; reports not-a-duplicate when the model is unavailable.
    """
    literal = _find_literal_duplicate(new_title, existing_nodes)
    if literal is not None:
        return DuplicateCheckResult(
            is_duplicate=True,
            reason=f'"{new_title}" is the same title as "{literal["title"]}".',
            similar_node=SimilarNode(id=str(literal["id"]), title=literal["title"]),
        )

    try:
        llm = llm or get_llm_client()
        reply = llm.generate_structured(
            DuplicateReply,
            system=SYSTEM_DUPLICATE_CHECKER.format(node_list=bullet_list(existing_nodes)),
            user=f'Is the new node "{new_title}" an EXACT duplicate of an existing node?',
            temperature=0.1,
            max_tokens=300,
        )
        if reply is None:
            return DUPLICATE_CHECK_UNAVAILABLE.model_copy()

        if not reply.is_duplicate:
            return DuplicateCheckResult(is_duplicate=False, reason=reply.reason)

        # The claimed title may not exist verbatim; keep the verdict, drop the reference.
        return DuplicateCheckResult(
            is_duplicate=True,
            reason=reply.reason,
            similar_node=_resolve_similar(reply.similar_node_title, existing_nodes),
        )
    except Exception:
        logger.exception("Duplicate check error for %r", new_title)
        return DUPLICATE_CHECK_FAILED.model_copy()
