"""Evidence status -> owning Control status."""
import logging
import warnings

from tenacity import RetryError, retry, stop_after_attempt, wait_fixed

from .errors import PartialSyncWarning
from .records import Control, ControlStatus, EvidenceStatus
from .store import ComplianceStore

logger = logging.getLogger(__name__)

CONTROL_STATUS_BY_EVIDENCE: dict[str, ControlStatus] = {
    "Verified": "Compliant",
    "Failed": "Failed",
}


def control_status_for(evidence_status: EvidenceStatus) -> ControlStatus:
    return CONTROL_STATUS_BY_EVIDENCE.get(evidence_status, "Review Required")


class ControlStatusSynchronizer:
    """
    Applies the status of the evidence just written to its Control (last write wins).
    The update is idempotent, so it is retried; a final failure is reported as a
    PartialSyncWarning and never undoes the Evidence write.
    """

    def __init__(self, store: ComplianceStore, attempts: int = 3, wait_seconds: float = 0.2):
        self.store = store
        self._apply = retry(
            stop=stop_after_attempt(attempts), wait=wait_fixed(wait_seconds)
        )(self._update_control)

    def _update_control(self, control_id: str, status: ControlStatus) -> Control:
        return self.store.update(Control, control_id, status=status)

    def sync(self, control_id: str, evidence_status: EvidenceStatus):
        """Returns the new Control status, or None if the Control could not be updated."""
        status = control_status_for(evidence_status)
        logger.info("Syncing control %s -> %s (evidence %s)", control_id, status, evidence_status)
        try:
            self._apply(control_id, status)
        except RetryError as e:
            cause = e.last_attempt.exception()
            message = f"Control {control_id} not updated to '{status}': {cause}"
            logger.warning("PartialSyncWarning: %s", message)
            warnings.warn(message, PartialSyncWarning, stacklevel=2)
            return None
        return status
