import logging
from typing import Optional

from pydantic import BaseModel

from .control_sync import ControlStatusSynchronizer
from .records import Control, ControlStatus, Evidence, EvidenceSource, EvidenceStatus
from .store import ComplianceStore

logger = logging.getLogger(__name__)


class RecordedEvidence(BaseModel):
    evidence: Evidence
    control_status: Optional[ControlStatus] = None
    control_synced: bool = True


def record_evidence(
    store: ComplianceStore,
    synchronizer: ControlStatusSynchronizer,
    control_id: str,
    name: str,
    source_type: EvidenceSource,
    status: EvidenceStatus = "Pending",
    url: Optional[str] = None,
    snippet: Optional[str] = None,
    ai_feedback: Optional[str] = None,
    confidence_score: Optional[int] = None,
) -> RecordedEvidence:
    """Insert an Evidence row for an existing Control and sync the Control's status."""
    store.require(Control, control_id)
    evidence = store.add(Evidence(
        control_id=control_id, name=name, source_type=source_type, status=status,
        url=url, snippet=snippet, ai_feedback=ai_feedback, confidence_score=confidence_score,
    ))
    logger.info("Recorded %s evidence %s for control %s (%s)", source_type, evidence.id, control_id, status)
    control_status = synchronizer.sync(control_id, status)
    return RecordedEvidence(
        evidence=evidence, control_status=control_status, control_synced=control_status is not None,
    )
