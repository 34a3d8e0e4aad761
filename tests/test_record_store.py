import json
from datetime import date, datetime, timezone

import pytest

from vaccination_tracker.exceptions import ChildNotFoundError, CustomVaccineNotFoundError, RecordNotFoundError
from vaccination_tracker.models.tracker_models import AppSettings, Child, Language, Reminder, VaccinationRecord
from vaccination_tracker.models.vaccine_models import Country, VaccineDefinition, VaccineType
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.storage.kv_store import JsonFileKeyValueStore


def make_record(record_id, child_id="child1", vaccine_id="bcg"):
    return VaccinationRecord(id=record_id, child_id=child_id, vaccine_id=vaccine_id, scheduled_date=date(2023, 6, 15))


@pytest.mark.asyncio
async def test_children_crud(record_store, child, clock):
    await record_store.add_child(child)
    assert await record_store.get_child("child1") == child

    clock.set(datetime(2023, 7, 1, tzinfo=timezone.utc))
    updated = await record_store.update_child("child1", {"name": "Mia Rose"})

    assert updated.name == "Mia Rose"
    assert updated.updated_at == clock.now()
    assert (await record_store.get_child("child1")).name == "Mia Rose"

    with pytest.raises(ChildNotFoundError):
        await record_store.update_child("missing", {"name": "x"})


@pytest.mark.asyncio
async def test_delete_child_cascades(record_store, child):
    other = Child(id="child2", name="Leo", date_of_birth=date(2022, 1, 1), country=Country.USA)
    await record_store.add_child(child)
    await record_store.add_child(other)
    await record_store.add_vaccination_records([make_record("child1_bcg"), make_record("child2_bcg", "child2")])
    await record_store.add_reminders(
        [
            Reminder(id="r1", child_id="child1", vaccine_id="bcg", reminder_date=date(2023, 6, 10)),
            Reminder(id="r2", child_id="child2", vaccine_id="bcg", reminder_date=date(2023, 6, 10)),
        ]
    )

    await record_store.delete_child("child1")

    assert [c.id for c in await record_store.get_children()] == ["child2"]
    assert [r.id for r in await record_store.get_vaccination_records()] == ["child2_bcg"]
    assert [r.id for r in await record_store.get_reminders()] == ["r2"]

    with pytest.raises(ChildNotFoundError):
        await record_store.delete_child("child1")


@pytest.mark.asyncio
async def test_records_use_camel_case_storage(record_store, kv_store):
    await record_store.add_vaccination_records([make_record("child1_bcg")])

    stored = json.loads(await kv_store.get_item("@VaccineTracker:vaccinationRecords"))

    assert stored[0]["childId"] == "child1"
    assert stored[0]["scheduledDate"] == "2023-06-15"
    assert "completedDate" not in stored[0]


@pytest.mark.asyncio
async def test_update_vaccination_record(record_store):
    await record_store.add_vaccination_records([make_record("child1_bcg")])

    updated = await record_store.update_vaccination_record("child1_bcg", {"notes": "left arm"})

    assert updated.notes == "left arm"
    assert (await record_store.get_record("child1_bcg")).notes == "left arm"
    with pytest.raises(RecordNotFoundError):
        await record_store.update_vaccination_record("missing", {"notes": "x"})


@pytest.mark.asyncio
async def test_corrupt_collections_read_as_empty(record_store, kv_store):
    await kv_store.set_item("@VaccineTracker:children", "{oops")
    await kv_store.set_item("@VaccineTracker:vaccinationRecords", json.dumps({"not": "a list"}))
    await kv_store.set_item("@VaccineTracker:settings", "[]")

    assert await record_store.get_children() == []
    assert await record_store.get_vaccination_records() == []
    assert await record_store.get_settings() == AppSettings()


@pytest.mark.asyncio
async def test_invalid_entries_are_skipped(record_store, kv_store):
    valid = make_record("child1_bcg").to_storage()
    await kv_store.set_item("@VaccineTracker:vaccinationRecords", json.dumps([valid, {"id": "broken"}]))

    assert [r.id for r in await record_store.get_vaccination_records()] == ["child1_bcg"]


@pytest.mark.asyncio
async def test_settings_defaults_and_updates(record_store):
    defaults = await record_store.get_settings()
    assert defaults.language == Language.EN
    assert defaults.show_recommended_vaccines is False
    assert defaults.notifications_enabled is True
    assert defaults.reminder_days_before == 7

    updated = await record_store.update_settings({"language": "ru", "reminder_days_before": 3})

    assert updated.language == Language.RU
    assert (await record_store.get_settings()).reminder_days_before == 3

    with pytest.raises(ValueError):
        await record_store.update_settings({"reminder_days_before": 31})


@pytest.mark.asyncio
async def test_update_reminder(record_store):
    await record_store.add_reminders(
        [Reminder(id="r1", child_id="child1", vaccine_id="bcg", reminder_date=date(2023, 6, 10))]
    )

    updated = await record_store.update_reminder("r1", {"is_enabled": False})

    assert updated.is_enabled is False
    assert await record_store.update_reminder("missing", {"is_enabled": False}) is None


@pytest.mark.asyncio
async def test_clear_all_data(record_store, kv_store, child):
    await record_store.add_child(child)
    await record_store.save_settings(AppSettings(show_recommended_vaccines=True))
    await record_store.add_custom_vaccine(VaccineDefinition(id="tbe", name="TBE", age_in_months=12, is_custom=True))
    await kv_store.set_item("vaccine_cache_Russia", "{}")

    await record_store.clear_all_data()

    assert await record_store.get_children() == []
    assert kv_store.keys() == ["vaccine_cache_Russia"]


@pytest.mark.asyncio
async def test_json_file_store_persists_across_instances(tmp_path, child, clock):
    path = tmp_path / "store.json"
    await RecordStore(JsonFileKeyValueStore(path), clock).add_child(child)

    reopened = RecordStore(JsonFileKeyValueStore(path), clock)

    assert await reopened.get_child("child1") == child


@pytest.mark.asyncio
async def test_json_file_store_treats_corrupt_file_as_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{{{ definitely not json", encoding="utf-8")
    store = JsonFileKeyValueStore(path)

    assert await store.get_item("anything") is None

    await store.set_item("key", "value")
    assert json.loads(path.read_text(encoding="utf-8")) == {"key": "value"}
    await store.remove_item("key")
    assert await store.get_item("key") is None


@pytest.mark.asyncio
async def test_custom_vaccines_persist_with_camel_case_keys(record_store, kv_store):
    vaccine = VaccineDefinition(
        id="tbe",
        name="Tick-borne encephalitis",
        age_in_months=12,
        type=VaccineType.RECOMMENDED,
        doses=2,
        dose_interval_months=1,
        is_custom=True,
    )

    await record_store.add_custom_vaccine(vaccine)

    stored = json.loads(await kv_store.get_item("@VaccineTracker:customVaccines"))
    assert stored[0]["ageInMonths"] == 12
    assert stored[0]["doseIntervalMonths"] == 1
    assert stored[0]["isCustom"] is True
    assert await record_store.get_custom_vaccines() == [vaccine]


@pytest.mark.asyncio
async def test_delete_custom_vaccine_cascades(record_store):
    await record_store.add_custom_vaccine(VaccineDefinition(id="tbe", name="TBE", age_in_months=12, is_custom=True))
    await record_store.add_vaccination_records(
        [
            make_record("child1_tbe", vaccine_id="tbe"),
            make_record("child1_bcg"),
            make_record("child2_tbe", "child2", "tbe"),
        ]
    )
    await record_store.add_reminders(
        [
            Reminder(id="r1", child_id="child1", vaccine_id="tbe", reminder_date=date(2024, 6, 8)),
            Reminder(id="r2", child_id="child1", vaccine_id="bcg", reminder_date=date(2023, 6, 10)),
        ]
    )

    removed = await record_store.delete_custom_vaccine("tbe")

    assert sorted(r.id for r in removed) == ["child1_tbe", "child2_tbe"]
    assert await record_store.get_custom_vaccines() == []
    assert [r.id for r in await record_store.get_vaccination_records()] == ["child1_bcg"]
    assert [r.id for r in await record_store.get_reminders()] == ["r2"]

    with pytest.raises(CustomVaccineNotFoundError):
        await record_store.delete_custom_vaccine("tbe")


@pytest.mark.asyncio
async def test_replace_child_vaccination_records(record_store):
    await record_store.add_vaccination_records(
        [make_record("child1_bcg"), make_record("child1_mmr", vaccine_id="mmr"), make_record("child2_bcg", "child2")]
    )

    await record_store.replace_child_vaccination_records("child1", [make_record("child1_hepb", vaccine_id="hepb")])

    assert sorted(r.id for r in await record_store.get_vaccination_records()) == ["child1_hepb", "child2_bcg"]
