"""Multimodal evidence validation: artifact -> verdict -> Evidence status -> Control status."""
import base64
import logging
import math
import re
from typing import Literal, Optional

import orjson
from pydantic import BaseModel, Field, ValidationError

from .control_sync import ControlStatusSynchronizer
from .errors import ParseError
from .ollama_client import OllamaClient
from .prompts import (
    ALREADY_REVIEWED_REASONING, FORMAT_ERROR_REASONING, JSON_PRIMER, MANUAL_REVIEW_REASONING,
    VALIDATOR_SYSTEM, VALIDATOR_USER, VERDICT_STATUSES,
)
from .records import Control, ControlStatus, Evidence, EvidenceStatus
from .storage import ArtifactFetcher
from .store import ComplianceStore

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

# Verified, Failed and Missing are final; only Pending evidence is judged
REVIEWABLE_STATUS = "Pending"
FINAL_VERDICT_STATUS = {"Verified": "Verified", "Failed": "Rejected", "Missing": "Inconclusive"}


# ---------- Schema ----------
class Verdict(BaseModel):
    # "Pending" is only produced locally, for artifacts the model never sees
    status: Literal["Verified", "Rejected", "Inconclusive", "Pending"]
    confidence_score: int = Field(ge=0, le=100)
    reasoning: str


FORMAT_ERROR_VERDICT = Verdict(status="Inconclusive", confidence_score=0, reasoning=FORMAT_ERROR_REASONING)


class ValidationOutcome(BaseModel):
    evidence_id: str
    verdict: Verdict
    evidence_status: EvidenceStatus
    control_status: Optional[ControlStatus] = None
    model_called: bool = False
    partial_sync: bool = False


# ---------- Verdict parsing ----------
def _strip_wrappers(raw: str) -> str:
    """
    Remove <think>...</think> and stray code fences, then trim.
    """
    if not raw:
        return raw
    raw = re.sub(r"<think>.*?</think>", "", raw, flags=re.DOTALL)
    raw = re.sub(r"```(?:json)?", "", raw)
    return raw.strip()


def _coerce_confidence(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        conf = float(value)
    except (TypeError, ValueError):
        # Accept "95%" or "95/100" forms
        nums = re.findall(r"\d+(?:\.\d+)?", str(value))
        conf = float(nums[0]) if nums else 0.0
    if math.isnan(conf):
        return 0
    return int(round(max(0.0, min(conf, 100.0))))


def _to_verdict(data) -> Verdict:
    if not isinstance(data, dict):
        raise ParseError(f"Verdict is not a JSON object: {type(data).__name__}")
    status = {s.lower(): s for s in VERDICT_STATUSES}.get(str(data.get("status", "")).strip().lower())
    if status is None:
        raise ParseError(f"Unknown verdict status: {data.get('status')!r}")
    reasoning = data.get("reasoning") or ""
    if isinstance(reasoning, list):
        reasoning = " ".join(str(r) for r in reasoning)
    try:
        return Verdict(
            status=status,
            confidence_score=_coerce_confidence(data.get("confidence_score", 0)),
            reasoning=str(reasoning).strip(),
        )
    except ValidationError as e:
        raise ParseError(str(e)) from e


def parse_verdict(raw: Optional[str]) -> Verdict:
    """
    1) Strip wrappers
    2) Parse as-is
    3) Otherwise re-prepend the "{" primer the model continued from, parse once more
    4) Otherwise the synthetic Inconclusive verdict. Never raises.
    """
    cleaned = _strip_wrappers(raw or "")
    for candidate in (cleaned, JSON_PRIMER + cleaned):
        try:
            data = orjson.loads(candidate)
        except orjson.JSONDecodeError:
            continue
        try:
            return _to_verdict(data)
        except ParseError as e:
            logger.error("Verdict does not match schema: %s", e)
            return FORMAT_ERROR_VERDICT
    logger.error("JSON parsing failed. Raw text was: %r", raw)
    return FORMAT_ERROR_VERDICT


def evidence_status_for(verdict: Verdict) -> EvidenceStatus:
    # Rejected and Inconclusive both need attention
    return "Verified" if verdict.status == "Verified" else "Failed"


# ---------- Validator ----------
class EvidenceValidator:
    def __init__(
        self,
        store: ComplianceStore,
        model: OllamaClient,
        fetcher: ArtifactFetcher,
        synchronizer: ControlStatusSynchronizer,
    ):
        self.store = store
        self.model = model
        self.fetcher = fetcher
        self.synchronizer = synchronizer

    def validate(self, evidence_id: str, file_url: str, control_description: Optional[str] = None) -> ValidationOutcome:
        evidence = self.store.require(Evidence, evidence_id)
        if evidence.status != REVIEWABLE_STATUS:
            return self._already_reviewed(evidence)
        if not control_description:
            control_description = self.store.require(Control, evidence.control_id).description
        logger.info("Validating evidence %s for: %s", evidence_id, control_description)

        artifact = self.fetcher.fetch(file_url).unwrap()
        if artifact.content_type not in IMAGE_MEDIA_TYPES:
            logger.info("Evidence %s is %s; skipping AI vision", evidence_id, artifact.content_type)
            verdict = Verdict(
                status="Pending",
                confidence_score=0,
                reasoning=MANUAL_REVIEW_REASONING.format(media_type=artifact.content_type),
            )
            self.store.update(Evidence, evidence_id, ai_feedback=verdict.reasoning)
            return ValidationOutcome(evidence_id=evidence_id, verdict=verdict, evidence_status=evidence.status)

        messages = [
            {
                "role": "user",
                "content": VALIDATOR_USER.format(requirement=control_description),
                "images": [base64.b64encode(artifact.data).decode("ascii")],
            },
            {"role": "assistant", "content": JSON_PRIMER},
        ]
        raw = self.model.complete(VALIDATOR_SYSTEM, messages).unwrap()
        verdict = parse_verdict(raw)
        status = evidence_status_for(verdict)
        logger.info("AI verdict for evidence %s: %s (%d)", evidence_id, verdict.status, verdict.confidence_score)

        self.store.update(
            Evidence, evidence_id,
            status=status, ai_feedback=verdict.reasoning, confidence_score=verdict.confidence_score,
        )
        control_status = self.synchronizer.sync(evidence.control_id, status)
        return ValidationOutcome(
            evidence_id=evidence_id,
            verdict=verdict,
            evidence_status=status,
            control_status=control_status,
            model_called=True,
            partial_sync=control_status is None,
        )

    def _already_reviewed(self, evidence: Evidence) -> ValidationOutcome:
        logger.info("Evidence %s is already %s; not re-validating", evidence.id, evidence.status)
        control = self.store.get(Control, evidence.control_id)
        verdict = Verdict(
            status=FINAL_VERDICT_STATUS[evidence.status],
            confidence_score=evidence.confidence_score or 0,
            reasoning=ALREADY_REVIEWED_REASONING.format(status=evidence.status),
        )
        return ValidationOutcome(
            evidence_id=evidence.id,
            verdict=verdict,
            evidence_status=evidence.status,
            control_status=control.status if control else None,
        )
