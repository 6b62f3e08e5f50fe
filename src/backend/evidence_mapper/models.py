from typing import Literal, Optional

from pydantic import BaseModel, Field

from .chat import CopilotContext
from .records import Assessment, ControlStatus, Evidence, EvidenceSource, EvidenceStatus, Frequency, Schedule
from .validator import Verdict


class DocumentIngestRequest(BaseModel):
    name: str = Field(min_length=1)
    content: str


class IngestResponse(BaseModel):
    success: bool = True
    document_id: str
    chunks: int
    status: str


class PolicyMapRequest(BaseModel):
    control_id: Optional[str] = None
    control_code: str = ""
    control_description: Optional[str] = None


class EvidenceData(BaseModel):
    name: str
    snippet: str
    confidence: int
    source_type: Literal["Policy_AI"] = "Policy_AI"


class PolicyMapResponse(BaseModel):
    found: bool
    message: Optional[str] = None
    evidence_data: Optional[EvidenceData] = None
    evidence_id: Optional[str] = None
    control_status: Optional[ControlStatus] = None


class EvidenceCreateRequest(BaseModel):
    control_id: str
    name: str = Field(min_length=1)
    source_type: EvidenceSource = "Manual"
    status: EvidenceStatus = "Pending"
    url: Optional[str] = None
    snippet: Optional[str] = None


class EvidenceResponse(BaseModel):
    evidence: Evidence
    control_status: Optional[ControlStatus] = None
    control_synced: bool = True


class ValidateRequest(BaseModel):
    evidence_id: str
    file_url: str
    control_description: Optional[str] = None


class ValidateResponse(BaseModel):
    success: bool = True
    verdict: Verdict
    evidence_status: EvidenceStatus
    control_status: Optional[ControlStatus] = None
    partial_sync: bool = False


class SchedulerRunRequest(BaseModel):
    schedule_id: str


class SchedulerRunResponse(BaseModel):
    success: bool = True
    assessment_id: str
    title: str
    controls_cloned: int


class ScheduleCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    standard_id: str
    system_id: Optional[str] = None
    frequency: Frequency


class ScheduleResponse(BaseModel):
    schedule: Schedule


class AssessmentCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    standard_id: str
    system_id: Optional[str] = None


class AssessmentResponse(BaseModel):
    assessment: Assessment
    controls_cloned: int


class StandardIngestResponse(BaseModel):
    success: bool = True
    standard_id: str
    count: int


class CopilotRequest(BaseModel):
    message: str = Field(min_length=1)
    context: CopilotContext = CopilotContext()


class CopilotResponse(BaseModel):
    reply: str
    used_context: list[str] = []


class JiraCreateRequest(BaseModel):
    control_id: str
    title: str = Field(min_length=1)
    description: Optional[str] = None


class JiraCreateResponse(BaseModel):
    success: bool = True
    ticket_key: str
    ticket_url: str
    evidence_id: str


class GitHubScanRequest(BaseModel):
    control_id: str
    target: Optional[str] = None


class GitHubScanResponse(BaseModel):
    status: str = "success"
    mfa_enabled: bool
    org: str
    type: str
    evidence_id: str
