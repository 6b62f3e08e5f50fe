"""Recurring audits: clone a Standard's master controls into a new Assessment."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .records import Assessment, Control, Frequency, MasterControl, Schedule, Standard
from .store import ComplianceStore

logger = logging.getLogger(__name__)

UNKNOWN_STANDARD = "Unknown Standard"

# Literal day counts, not calendar months/quarters.
FREQUENCY_DAYS: dict[str, int] = {"Weekly": 7, "Monthly": 30, "Quarterly": 90}


def next_run_for(frequency: Frequency, now: datetime) -> datetime:
    try:
        return now + timedelta(days=FREQUENCY_DAYS[frequency])
    except KeyError:
        raise ValueError(f"Unknown schedule frequency: {frequency!r}") from None


def auto_title(schedule_name: str, now: datetime) -> str:
    return f"AUTO: {schedule_name} - {now.date().isoformat()}"


class ScheduleEngine:
    def __init__(self, store: ComplianceStore):
        self.store = store

    # ── Schedules ──
    def create_schedule(
        self,
        name: str,
        standard_id: str,
        frequency: Frequency,
        system_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Schedule:
        self.store.require(Standard, standard_id)
        now = now or datetime.now(timezone.utc)
        schedule = Schedule(
            name=name, standard_id=standard_id, system_id=system_id,
            frequency=frequency, next_run=next_run_for(frequency, now), status="Active",
        )
        logger.info("Created %s schedule %s (%s)", frequency, schedule.id, name)
        return self.store.add(schedule)

    def delete_schedule(self, schedule_id: str) -> None:
        self.store.delete(Schedule, schedule_id)

    def run_schedule(self, schedule_id: str, now: Optional[datetime] = None) -> Assessment:
        """
        Spawn a fresh Assessment for `schedule_id` and advance its next_run.
        Every call is a distinct audit instance; two calls give two Assessments.
        """
        now = now or datetime.now(timezone.utc)
        schedule = self.store.require(Schedule, schedule_id)

        standard = self.store.get(Standard, schedule.standard_id)
        standard_name = standard.name if standard else UNKNOWN_STANDARD
        if standard is None:
            logger.warning("Schedule %s points at missing standard %s", schedule_id, schedule.standard_id)
        logger.info("Running '%s' against standard: %s", schedule.name, standard_name)

        assessment = self.store.add(Assessment(
            title=auto_title(schedule.name, now),
            system_id=schedule.system_id,
            standard_id=schedule.standard_id,
            standard=standard_name,
            schedule_id=schedule.id,
            status="In Progress",
            progress=0,
        ))
        self.clone_controls(schedule.standard_id, assessment.id)

        self.store.update(Schedule, schedule_id, last_run=now, next_run=next_run_for(schedule.frequency, now))
        return assessment

    # ── Assessments ──
    def create_assessment(self, title: str, standard_id: str, system_id: Optional[str] = None) -> Assessment:
        """Manual wizard: same clone step, but the standard must exist."""
        standard = self.store.require(Standard, standard_id)
        assessment = self.store.add(Assessment(
            title=title, system_id=system_id, standard_id=standard_id, standard=standard.name,
        ))
        self.clone_controls(standard_id, assessment.id)
        return assessment

    def clone_controls(self, standard_id: str, assessment_id: str) -> list[Control]:
        masters = self.store.where(MasterControl, standard_id=standard_id)
        if not masters:
            logger.warning("No master controls found for standard %s", standard_id)
            return []
        controls = [
            Control(
                assessment_id=assessment_id,
                control_code=m.control_code,
                family=m.family,
                description=m.description,
                status="Not Started",
            )
            for m in masters
        ]
        self.store.add_all(controls)
        logger.info("Cloned %d controls into assessment %s", len(controls), assessment_id)
        return controls
