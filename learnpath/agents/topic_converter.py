# learnpath/agents/topic_converter.py
import logging

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.agents.schemas import ExtractedEdge, ExtractedNode, TopicConversionResult

logger = logging.getLogger(__name__)


SYSTEM_TOPIC_CONVERTER = """You are a curriculum expert and learning designer.
Analyse a learning topic and extract the sub-topics that become nodes of a learning path.

For every topic identify:
1. The main sub-topics or concepts that need to be learned
2. The logical learning order (basic to advanced)
3. The connections between concepts (prerequisites)

Rules:
- Extract 3-8 nodes
- Every node must be specific and actionable
- Order from basic to advanced concepts
- Give each node a relevant emoji icon
- Give each node a hex colour matching the theme

Answer ONLY with JSON:
{
  "nodes": [
    {"title": "Node title", "description": "What is learned in this node", "icon": "📚", "color": "#6366f1", "order": 0}
  ],
  "edges": [
    {"from": 0, "to": 1},
    {"from": 1, "to": 2}
  ],
  "summary": "Short summary of the learning path"
}
"""


def build_conversion_prompt(title: str, description: str | None) -> str:
    lines = [
        "Extract the key subjects of the following topic:",
        "",
        f"Title: {title}",
    ]
    if description:
        lines.append(f"Description: {description}")
    lines += ["", "Build a structured learning path whose nodes are connected to each other."]
    return "\n".join(lines)


def default_conversion(title: str) -> TopicConversionResult:
    return TopicConversionResult(
        nodes=[
            ExtractedNode(title=f"Introduction to {title}",
                description=f"Understand the basic concepts of {title}",
                icon="📚", color="#6366f1", order=0),
            ExtractedNode(title=f"{title} in Practice",
                description=f"Exercises and hands-on implementation of {title}",
                icon="💻", color="#8b5cf6", order=1),
            ExtractedNode(title=f"{title} Deep Dive",
                description="Advanced concepts and best practices",
                icon="🚀", color="#ec4899", order=2),
        ],
        edges=[ExtractedEdge(from_=0, to=1), ExtractedEdge(from_=1, to=2)],
        summary=f"Learning path for {title} from the basics to advanced topics",
    )


def _drop_dangling_edges(result: TopicConversionResult) -> TopicConversionResult:
    n = len(result.nodes)
    edges = [e for e in result.edges if e.from_ < n and e.to < n and e.from_ != e.to]
    return result.model_copy(update={"edges": edges})


def extract_nodes_from_topic(title: str, description: str | None,
llm: LLMClient | None = None) -> TopicConversionResult:
    try:
        llm = llm or get_llm_client()
        result = llm.generate_structured(
            TopicConversionResult,
            system=SYSTEM_TOPIC_CONVERTER,
            user=build_conversion_prompt(title, description),
            temperature=0.5,
            max_tokens=2000,
        )
        if result is None:
            return default_conversion(title)
        return _drop_dangling_edges(result)
    except Exception:
        logger.exception("Topic conversion error for %r", title)
        return default_conversion(title)
