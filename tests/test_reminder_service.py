from datetime import date, timedelta

import pytest

from vaccination_tracker.models.tracker_models import AppSettings, Child, Reminder, VaccinationRecord
from vaccination_tracker.models.vaccine_models import Country
from vaccination_tracker.services.reminder_service import ReminderService


def record(record_id, scheduled, child_id="child1", completed=None):
    return VaccinationRecord(
        id=record_id,
        child_id=child_id,
        vaccine_id=record_id.split("_")[-1],
        scheduled_date=scheduled,
        completed_date=completed,
    )


def test_plan_reminders(record_store, clock, child):
    service = ReminderService(record_store, clock)
    today = clock.today()
    records = [
        record("child1_past", today - timedelta(days=1)),
        record("child1_soon", today + timedelta(days=3)),
        record("child1_later", today + timedelta(days=20)),
        record("child1_far", today + timedelta(days=200)),
        record("child1_done", today + timedelta(days=10), completed=today),
        record("child2_other", today + timedelta(days=20), child_id="child2"),
    ]

    reminders = service.plan_reminders(child, records, days_before=7, lookahead_days=90)

    assert [r.record_id for r in reminders] == ["child1_later"]
    assert reminders[0].reminder_date == today + timedelta(days=13)
    assert reminders[0].id == "child1_later_reminder"


def test_plan_reminders_fire_today_is_kept(record_store, clock, child):
    service = ReminderService(record_store, clock)
    today = clock.today()

    reminders = service.plan_reminders(child, [record("child1_x", today + timedelta(days=7))], days_before=7)

    assert [r.reminder_date for r in reminders] == [today]


@pytest.mark.asyncio
async def test_schedule_all_reminders_replaces_child_reminders(record_store, clock, child):
    service = ReminderService(record_store, clock)
    today = clock.today()
    await record_store.add_reminders(
        [
            Reminder(id="stale", child_id="child1", vaccine_id="old", reminder_date=today),
            Reminder(id="keep", child_id="child2", vaccine_id="old", reminder_date=today),
        ]
    )
    await record_store.add_vaccination_records([record("child1_mmr", today + timedelta(days=30))])
    await record_store.save_settings(AppSettings(reminder_days_before=5))

    planned = await service.schedule_all_reminders(child)

    assert [r.reminder_date for r in planned] == [today + timedelta(days=25)]
    assert sorted(r.id for r in await record_store.get_reminders()) == ["child1_mmr_reminder", "keep"]


@pytest.mark.asyncio
async def test_disabled_notifications_cancel_reminders(record_store, clock, child):
    service = ReminderService(record_store, clock)
    today = clock.today()
    await record_store.add_reminders([Reminder(id="r1", child_id="child1", vaccine_id="mmr", reminder_date=today)])
    await record_store.add_vaccination_records([record("child1_mmr", today + timedelta(days=30))])
    await record_store.save_settings(AppSettings(notifications_enabled=False))

    assert await service.schedule_all_reminders(child) == []
    assert [r.is_enabled for r in await record_store.get_reminders()] == [False]


@pytest.mark.asyncio
async def test_cancel_child_reminders(record_store, clock):
    service = ReminderService(record_store, clock)
    today = clock.today()
    await record_store.add_reminders(
        [
            Reminder(id="r1", child_id="child1", vaccine_id="a", reminder_date=today),
            Reminder(id="r2", child_id="child1", vaccine_id="b", reminder_date=today, is_enabled=False),
            Reminder(id="r3", child_id="child2", vaccine_id="a", reminder_date=today),
        ]
    )

    assert await service.cancel_child_reminders("child1") == 1
    enabled = {r.id: r.is_enabled for r in await record_store.get_reminders()}
    assert enabled == {"r1": False, "r2": False, "r3": True}


def test_overdue_notices(record_store, clock, child):
    service = ReminderService(record_store, clock)
    today = clock.today()
    sibling = Child(id="child2", name="Leo", date_of_birth=date(2021, 1, 1), country=Country.USA)
    records = [
        record("child1_bcg", today - timedelta(days=5)),
        record("child2_mmr", today - timedelta(days=40), child_id="child2"),
        record("child1_done", today - timedelta(days=9), completed=today),
        record("child1_future", today + timedelta(days=9)),
        record("ghost_x", today - timedelta(days=3), child_id="ghost"),
    ]

    notices = service.overdue_notices([child, sibling], records)

    assert [(c.id, r.id, days) for c, r, days in notices] == [
        ("child2", "child2_mmr", 40),
        ("child1", "child1_bcg", 5),
    ]
