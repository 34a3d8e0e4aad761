"""
# Reminder Service

Plans reminder fire dates for upcoming doses. Displaying notifications is left to the host
application: this service only decides *when* a reminder is due and stores it.

## Rules

- Only pending doses scheduled within the lookahead window get a reminder.
- A reminder fires `reminder_days_before` days before the scheduled date.
- Reminders whose fire date has already passed are not planned.
- With notifications disabled in the settings nothing is planned and the child's existing
  reminders are disabled.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.tracker_models import Child, Reminder, VaccinationRecord, VaccinationStatus
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.services.scheduling_engine import classify_status, days_until
from vaccination_tracker.utils.clock import Clock, SystemClock

logger = get_logger(prefix="[ReminderService]")

DEFAULT_LOOKAHEAD_DAYS = 90

OverdueNotice = Tuple[Child, VaccinationRecord, int]


def reminder_id_for(record_id: str) -> str:
    return f"{record_id}_reminder"


class ReminderService:
    """
    Plans and stores dose reminders.

    Args:
        record_store: Persistence for reminders, records and settings.
        clock: Source of "today".
        lookahead_days: Default planning horizon in days.
    """

    def __init__(
        self,
        record_store: RecordStore,
        clock: Optional[Clock] = None,
        lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    ):
        self.record_store = record_store
        self.clock = clock or SystemClock()
        self.lookahead_days = lookahead_days

    def plan_reminders(
        self,
        child: Child,
        records: Iterable[VaccinationRecord],
        days_before: int,
        lookahead_days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> List[Reminder]:
        """
        Compute reminders for a child's pending doses.

        Args:
            child: The child.
            records: Candidate records; other children's records are ignored.
            days_before: Days between the reminder and the scheduled date.
            lookahead_days: Only doses due within this many days are considered.
            today: Reference date, defaults to the clock.

        Returns:
            List[Reminder]: Reminders ordered by fire date.
        """
        today = today or self.clock.today()
        horizon = today + timedelta(days=lookahead_days if lookahead_days is not None else self.lookahead_days)

        reminders: List[Reminder] = []
        for record in records:
            if record.child_id != child.id or record.is_completed:
                continue
            if not today < record.scheduled_date <= horizon:
                continue
            fire_date = record.scheduled_date - timedelta(days=days_before)
            if fire_date < today:
                continue
            reminders.append(
                Reminder(
                    id=reminder_id_for(record.id),
                    child_id=child.id,
                    vaccine_id=record.vaccine_id,
                    record_id=record.id,
                    reminder_date=fire_date,
                )
            )
        return sorted(reminders, key=lambda r: (r.reminder_date, r.id))

    async def schedule_all_reminders(self, child: Child) -> List[Reminder]:
        """
        Replace a child's stored reminders with a freshly planned set.

        Returns:
            List[Reminder]: The reminders now enabled for the child.
        """
        app_settings = await self.record_store.get_settings()
        if not app_settings.notifications_enabled:
            logger.info(f"Notifications disabled, not scheduling reminders for {child.id}")
            await self.cancel_child_reminders(child.id)
            return []

        records = await self.record_store.get_child_vaccination_records(child.id)
        planned = self.plan_reminders(child, records, app_settings.reminder_days_before)

        others = [r for r in await self.record_store.get_reminders() if r.child_id != child.id]
        await self.record_store.save_reminders([*others, *planned])
        logger.info(f"Scheduled {len(planned)} reminder(s) for child {child.id}")
        return planned

    async def cancel_child_reminders(self, child_id: str) -> int:
        """Disable every reminder of a child; returns how many were enabled before."""
        reminders = await self.record_store.get_reminders()
        cancelled = 0
        updated: List[Reminder] = []
        for reminder in reminders:
            if reminder.child_id == child_id and reminder.is_enabled:
                reminder = reminder.model_copy(update={"is_enabled": False})
                cancelled += 1
            updated.append(reminder)
        if cancelled:
            await self.record_store.save_reminders(updated)
        return cancelled

    def overdue_notices(
        self,
        children: Iterable[Child],
        records: Iterable[VaccinationRecord],
        today: Optional[date] = None,
    ) -> List[OverdueNotice]:
        """
        List overdue doses per child with how many days late they are.

        Returns:
            List[OverdueNotice]: `(child, record, days_overdue)`, most overdue first.
        """
        today = today or self.clock.today()
        by_id = {child.id: child for child in children}

        notices: List[OverdueNotice] = []
        for record in records:
            child = by_id.get(record.child_id)
            if child is None:
                continue
            if classify_status(record.scheduled_date, record.completed_date, today) != VaccinationStatus.OVERDUE:
                continue
            notices.append((child, record, -days_until(record.scheduled_date, today)))
        return sorted(notices, key=lambda notice: -notice[2])
