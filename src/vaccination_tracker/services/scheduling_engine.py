"""
# Scheduling Engine

Derives per-dose vaccination records from a country schedule and a date of birth, and
classifies each record as upcoming, overdue or completed.

## Domain Overview

- **Scheduled date**: `date_of_birth + age_in_months` calendar months, clamped to the last
  day of the target month (31 Jan + 1 month is 28/29 Feb).
- **Dose series**: dose `k` (0-based) falls `k * dose_interval_months` months after the
  first dose. A series without an interval puts every dose on the first dose's date.
- **Status**: a completed record stays `completed`. Otherwise a record scheduled after
  today is `upcoming` and one scheduled today or earlier is `overdue`.

## Layers

1.  **Pure functions** (`compute_scheduled_date`, `expand_doses`, `classify_status`,
    `days_until`, `plan_records_for_child`, `rederive_records_for_child`, ...) take
    `today`/`now` as arguments and never read a clock or a store.
2.  **`SchedulingEngine`** persists planned records through the `RecordStore` and answers
    per-child queries using the injected clock.

## Usage Example

```python
engine = SchedulingEngine(record_store, SystemClock())
created = await engine.create_records_for_child(child, schedule, include_recommended=False)
overdue = await engine.overdue(child.id)
```
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from vaccination_tracker.exceptions import RecordAlreadyCompletedError, RecordNotFoundError
from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.schedule_models import DoseSlot, VaccinationProgress
from vaccination_tracker.models.tracker_models import (
    Child,
    CompletionDetails,
    VaccinationRecord,
    VaccinationStatus,
)
from vaccination_tracker.models.vaccine_models import VaccinationSchedule, VaccineDefinition
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.utils.clock import Clock, SystemClock
from vaccination_tracker.utils.date_helpers import DateLike, add_months, days_between, to_date

logger = get_logger(prefix="[SchedulingEngine]")


# ----------------------------------------------------------------------
# Pure functions
# ----------------------------------------------------------------------


def compute_scheduled_date(date_of_birth: DateLike, age_in_months: int) -> date:
    """
    Date a dose is due, `age_in_months` calendar months after birth.

    Examples:
        >>> compute_scheduled_date(date(2024, 1, 31), 1)
        datetime.date(2024, 2, 29)
    """
    return add_months(date_of_birth, age_in_months)


def expand_doses(vaccine: VaccineDefinition, date_of_birth: DateLike) -> List[DoseSlot]:
    """
    Expand a vaccine definition into one slot per dose.

    Args:
        vaccine: The vaccine definition.
        date_of_birth: The child's date of birth.

    Returns:
        List[DoseSlot]: `vaccine.doses` slots ordered by dose index.
    """
    first_offset = vaccine.age_in_months
    if vaccine.doses == 1:
        return [DoseSlot(0, compute_scheduled_date(date_of_birth, first_offset))]
    return [
        DoseSlot(index, compute_scheduled_date(date_of_birth, first_offset + index * vaccine.dose_interval_months))
        for index in range(vaccine.doses)
    ]


def classify_status(
    scheduled_date: DateLike,
    completed_date: Optional[DateLike],
    today: DateLike,
) -> VaccinationStatus:
    """
    Classify a dose against today.

    A dose due exactly today is already overdue.

    Args:
        scheduled_date: When the dose is due.
        completed_date: When it was given, if it was.
        today: The reference date.

    Returns:
        VaccinationStatus: `completed`, `upcoming` or `overdue`.
    """
    if completed_date is not None:
        return VaccinationStatus.COMPLETED
    if to_date(scheduled_date) > to_date(today):
        return VaccinationStatus.UPCOMING
    return VaccinationStatus.OVERDUE


def days_until(scheduled_date: DateLike, today: DateLike) -> int:
    """Signed whole days from today to the scheduled date; negative once it has passed."""
    return days_between(today, scheduled_date)


def select_vaccines(schedule: VaccinationSchedule, include_recommended: bool) -> List[VaccineDefinition]:
    """Vaccines planned for a child: mandatory and custom ones always, recommended on request."""
    return [v for v in schedule.vaccines if v.is_mandatory or v.is_custom or include_recommended]


def record_id_for(child_id: str, vaccine: VaccineDefinition, dose_index: int) -> str:
    if vaccine.doses == 1:
        return f"{child_id}_{vaccine.id}"
    return f"{child_id}_{vaccine.id}_dose{dose_index + 1}"


def _record_for_slot(
    child: Child,
    vaccine: VaccineDefinition,
    slots: List[DoseSlot],
    position: int,
    today: date,
    now: datetime,
) -> VaccinationRecord:
    slot = slots[position]
    next_slot = slots[position + 1] if position + 1 < len(slots) else None
    return VaccinationRecord(
        id=record_id_for(child.id, vaccine, slot.dose_index),
        child_id=child.id,
        vaccine_id=vaccine.id,
        dose_index=slot.dose_index,
        total_doses=vaccine.doses,
        scheduled_date=slot.scheduled_date,
        status=classify_status(slot.scheduled_date, None, today),
        next_dose_date=next_slot.scheduled_date if next_slot else None,
        created_at=now,
        updated_at=now,
    )


def plan_records_for_child(
    child: Child,
    schedule: VaccinationSchedule,
    existing_records: Iterable[VaccinationRecord],
    include_recommended: bool,
    now: datetime,
) -> List[VaccinationRecord]:
    """
    Plan the records a child is missing.

    Mandatory and custom vaccines are always planned and recommended ones only when
    `include_recommended` is set. A vaccine that already has any record for the child is
    skipped entirely, so calling this again with the stored records returns nothing new.

    Args:
        child: The child to plan for.
        schedule: The child's country schedule.
        existing_records: Records already stored (any child; filtered here).
        include_recommended: Whether recommended vaccines are planned.
        now: Creation time; its date is "today" for the initial status.

    Returns:
        List[VaccinationRecord]: New records, in schedule order then dose order.
    """
    today = to_date(now)
    covered = {r.vaccine_id for r in existing_records if r.child_id == child.id}

    planned: List[VaccinationRecord] = []
    for vaccine in select_vaccines(schedule, include_recommended):
        if vaccine.id in covered:
            continue
        slots = expand_doses(vaccine, child.date_of_birth)
        planned.extend(_record_for_slot(child, vaccine, slots, position, today, now) for position in range(len(slots)))
        covered.add(vaccine.id)
    return planned


def rederive_records_for_child(
    child: Child,
    schedule: VaccinationSchedule,
    existing_records: Iterable[VaccinationRecord],
    now: datetime,
) -> List[VaccinationRecord]:
    """
    Bring a child's stored records in line with a new date of birth or country schedule.

    - Completed records are kept as they are.
    - A pending record is dropped when its vaccine is not in `schedule` or its dose is past
      the end of the vaccine's series there.
    - Every other pending record gets the scheduled date, next dose date, dose count and
      status that `expand_doses` gives for the child's current date of birth.
    - Doses missing from a series that still has records are added.

    Vaccines without any record are left to `plan_records_for_child`.

    Returns:
        List[VaccinationRecord]: The child's full record set after re-derivation.
    """
    today = to_date(now)
    result: List[VaccinationRecord] = []
    present: Dict[str, Set[int]] = {}

    for record in existing_records:
        if record.child_id != child.id:
            continue
        if record.is_completed:
            result.append(record)
            present.setdefault(record.vaccine_id, set()).add(record.dose_index)
            continue

        vaccine = schedule.get_vaccine(record.vaccine_id)
        if vaccine is None or record.dose_index >= vaccine.doses:
            continue
        slots = expand_doses(vaccine, child.date_of_birth)
        fresh = _record_for_slot(child, vaccine, slots, record.dose_index, today, now)
        result.append(
            record.model_copy(
                update={
                    "id": fresh.id,
                    "total_doses": fresh.total_doses,
                    "scheduled_date": fresh.scheduled_date,
                    "next_dose_date": fresh.next_dose_date,
                    "status": fresh.status,
                    "updated_at": now,
                }
            )
        )
        present.setdefault(record.vaccine_id, set()).add(record.dose_index)

    for vaccine_id, dose_indexes in present.items():
        vaccine = schedule.get_vaccine(vaccine_id)
        if vaccine is None:
            continue
        slots = expand_doses(vaccine, child.date_of_birth)
        result.extend(
            _record_for_slot(child, vaccine, slots, position, today, now)
            for position in range(len(slots))
            if slots[position].dose_index not in dose_indexes
        )
    return result


def with_live_status(record: VaccinationRecord, today: DateLike) -> VaccinationRecord:
    """Copy of the record with its status re-derived against today."""
    status = classify_status(record.scheduled_date, record.completed_date, today)
    if status == record.status:
        return record
    return record.model_copy(update={"status": status})


# ----------------------------------------------------------------------
# Store-backed engine
# ----------------------------------------------------------------------


class SchedulingEngine:
    """
    Creates, completes and queries vaccination records.

    Args:
        record_store: Persistence for records.
        clock: Source of "today".
    """

    def __init__(self, record_store: RecordStore, clock: Optional[Clock] = None):
        self.record_store = record_store
        self.clock = clock or SystemClock()

    async def create_records_for_child(
        self,
        child: Child,
        schedule: VaccinationSchedule,
        include_recommended: bool,
    ) -> List[VaccinationRecord]:
        """
        Plan the child's missing records and store them in one write.

        Returns:
            List[VaccinationRecord]: The newly created records (empty when nothing was missing).
        """
        existing = await self.record_store.get_child_vaccination_records(child.id)
        planned = plan_records_for_child(child, schedule, existing, include_recommended, self.clock.now())
        if planned:
            await self.record_store.add_vaccination_records(planned)
            logger.info(f"Created {len(planned)} record(s) for child {child.id}")
        return planned

    async def rederive_records_for_child(
        self,
        child: Child,
        schedule: VaccinationSchedule,
        include_recommended: bool,
    ) -> List[VaccinationRecord]:
        """
        Re-derive a child's records after their date of birth or country changed.

        Completed records survive; pending ones are re-dated or dropped, then vaccines the
        child has no records for are planned. The child's record set is replaced in one write.

        Returns:
            List[VaccinationRecord]: The child's records after re-derivation.
        """
        now = self.clock.now()
        existing = await self.record_store.get_child_vaccination_records(child.id)
        kept = rederive_records_for_child(child, schedule, existing, now)
        planned = plan_records_for_child(child, schedule, kept, include_recommended, now)
        records = await self.record_store.replace_child_vaccination_records(child.id, kept + planned)
        logger.info(
            f"Re-derived records for child {child.id}: {len(existing)} before, "
            f"{len(kept)} kept or re-dated, {len(planned)} planned"
        )
        return records

    async def mark_completed(self, record_id: str, details: CompletionDetails) -> VaccinationRecord:
        """
        Record that a dose was given.

        Args:
            record_id: Id of the record to complete.
            details: Completion date and optional metadata.

        Returns:
            VaccinationRecord: The completed record.

        Raises:
            RecordNotFoundError: If the record does not exist.
            RecordAlreadyCompletedError: If the record already has a completion date.
        """
        record = await self.record_store.get_record(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        if record.completed_date is not None:
            raise RecordAlreadyCompletedError(record_id)

        updates = details.model_dump(exclude_none=True)
        updates["status"] = VaccinationStatus.COMPLETED
        completed = await self.record_store.update_vaccination_record(record_id, updates)
        logger.info(f"Marked {record_id} completed on {details.completed_date.isoformat()}")
        return completed

    async def get_child_records(self, child_id: str) -> List[VaccinationRecord]:
        """All of a child's records with live statuses, ordered by scheduled date."""
        today = self.clock.today()
        records = await self.record_store.get_child_vaccination_records(child_id)
        live = [with_live_status(r, today) for r in records]
        return sorted(live, key=lambda r: (r.scheduled_date, r.vaccine_id, r.dose_index))

    async def upcoming_within_window(self, child_id: str, window_days: int) -> List[VaccinationRecord]:
        """Pending records due after today and no later than `today + window_days`."""
        today = self.clock.today()
        horizon = today + timedelta(days=window_days)
        return [
            r
            for r in await self.get_child_records(child_id)
            if not r.is_completed and today < r.scheduled_date <= horizon
        ]

    async def overdue(self, child_id: str) -> List[VaccinationRecord]:
        return [r for r in await self.get_child_records(child_id) if r.status == VaccinationStatus.OVERDUE]

    async def completed(self, child_id: str) -> List[VaccinationRecord]:
        return [r for r in await self.get_child_records(child_id) if r.status == VaccinationStatus.COMPLETED]

    async def progress(
        self,
        child_id: str,
        schedule: Optional[VaccinationSchedule] = None,
    ) -> VaccinationProgress:
        """
        Count a child's records by status.

        Mandatory counters need the schedule to tell mandatory from recommended vaccines;
        without it they stay at zero.
        """
        records = await self.get_child_records(child_id)
        progress = VaccinationProgress(child_id=child_id, total=len(records))
        for record in records:
            if record.status == VaccinationStatus.COMPLETED:
                progress.completed += 1
            elif record.status == VaccinationStatus.OVERDUE:
                progress.overdue += 1
            else:
                progress.upcoming += 1

            vaccine = schedule.get_vaccine(record.vaccine_id) if schedule else None
            if vaccine is not None and vaccine.is_mandatory:
                progress.mandatory_total += 1
                if record.is_completed:
                    progress.mandatory_completed += 1
        return progress
