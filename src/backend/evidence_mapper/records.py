"""Persisted entities. One tagged record per table."""
import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DocumentStatus = Literal["Processing", "Ready", "Failed"]
AssessmentStatus = Literal["In Progress", "Complete"]
ControlStatus = Literal["Not Started", "Review Required", "Compliant", "Failed", "Missing"]
EvidenceStatus = Literal["Pending", "Verified", "Failed", "Missing"]
EvidenceSource = Literal["Integration", "Policy_AI", "Manual"]
Frequency = Literal["Weekly", "Monthly", "Quarterly"]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    id: str = Field(default_factory=new_id)


class Document(Record):
    name: str
    status: DocumentStatus = "Processing"
    chunk_count: int = 0
    size: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class Chunk(Record):
    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_index: int = Field(ge=0)
    content: str = Field(min_length=1)
    embedding: list[float]


class Standard(Record):
    name: str
    description: str = ""
    total_controls: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class MasterControl(Record):
    standard_id: str
    control_code: str
    family: str = "General"
    description: str
    guidance: str = ""
    embedding: list[float] = []


class Assessment(Record):
    title: str
    system_id: Optional[str] = None
    standard_id: Optional[str] = None
    standard: str
    schedule_id: Optional[str] = None
    status: AssessmentStatus = "In Progress"
    progress: int = Field(0, ge=0, le=100)
    created_at: datetime = Field(default_factory=utcnow)


class Control(Record):
    assessment_id: str
    control_code: str
    family: str = "General"
    description: str
    status: ControlStatus = "Not Started"


class Evidence(Record):
    control_id: str
    name: str
    source_type: EvidenceSource
    status: EvidenceStatus = "Pending"
    url: Optional[str] = None
    snippet: Optional[str] = None
    ai_feedback: Optional[str] = None
    confidence_score: Optional[int] = Field(None, ge=0, le=100)
    created_at: datetime = Field(default_factory=utcnow)


class Schedule(Record):
    name: str
    standard_id: str
    system_id: Optional[str] = None
    frequency: Frequency
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    status: str = "Active"
