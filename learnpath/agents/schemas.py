## Pydantic Schemas for Structured Output
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire shapes use camelCase keys, both from the model and to the frontend."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Path validation
class ValidationResult(CamelModel):
    is_valid: bool = True
    reason: str = ""
    recommendation: Optional[str] = None


# Duplicate detection
class DuplicateReply(CamelModel):
    is_duplicate: bool = False
    reason: str = ""
    similar_node_title: Optional[str] = None

class SimilarNode(BaseModel):
    id: str
    title: str

class DuplicateCheckResult(CamelModel):
    is_duplicate: bool
    reason: str
    similar_node: Optional[SimilarNode] = None


# Time estimation
class EstimatedNode(BaseModel):
    title: str = ""
    hours: Optional[float] = None
    description: Optional[str] = None

class EstimateReply(CamelModel):
    nodes: List[EstimatedNode] = Field(default_factory=list)
    suggested_daily_hours: Optional[float] = None
    summary: Optional[str] = None

class NodeTimeEstimate(CamelModel):
    node_id: str
    node_title: str
    estimated_hours: float = Field(gt=0)
    description: str

class WorkflowSchedule(CamelModel):
    total_hours: float
    nodes: List[NodeTimeEstimate]
    suggested_daily_hours: float = Field(gt=0)
    total_days: int


# Calendar sessions (never persisted)
class CalendarEvent(CamelModel):
    title: str
    description: str
    start_date: datetime
    duration_hours: float


# Topic -> workflow conversion
class ExtractedNode(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    icon: str = "📚"
    color: str = "#6366f1"
    order: int = 0

class ExtractedEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: conint(ge=0) = Field(alias="from")
    to: conint(ge=0)

class TopicConversionResult(BaseModel):
    nodes: List[ExtractedNode] = Field(min_length=1, max_length=20)
    edges: List[ExtractedEdge] = Field(default_factory=list)
    summary: str = ""


# Quiz
class QuizQuestion(BaseModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=4, max_length=4)
    correct_answer: conint(ge=0, le=3)
