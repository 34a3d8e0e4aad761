from datetime import date

import httpx
import pytest

from vaccination_tracker.config import Settings
from vaccination_tracker.container import build_tracker
from vaccination_tracker.exceptions import ChildNotFoundError, CustomVaccineNotFoundError, NoInternetConnectionError
from vaccination_tracker.models.tracker_models import CompletionDetails, VaccinationStatus
from vaccination_tracker.models.vaccine_models import Country, VaccineType
from vaccination_tracker.services.network_monitor import StaticNetworkMonitor

from .conftest import RUSSIA_PAYLOAD


@pytest.fixture
def tracker(kv_store, clock):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=RUSSIA_PAYLOAD)

    return build_tracker(
        Settings(STORAGE_BACKEND="memory"),
        store=kv_store,
        clock=clock,
        network_monitor=StaticNetworkMonitor(True),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_add_child_creates_mandatory_records(tracker):
    """Test that a USA child gets one record per mandatory dose."""
    child, records = await tracker.add_child("Mia", date(2023, 6, 15), "USA", child_id="mia")

    assert child.country == Country.USA
    assert {r.vaccine_id for r in records} == {
        "hepb", "dtap", "polio", "hib", "pcv", "rotavirus", "mmr", "varicella", "hepa", "menacwy"
    }
    assert len([r for r in records if r.vaccine_id == "dtap"]) == 5
    hepb_birth = next(r for r in records if r.id == "mia_hepb_dose1")
    assert hepb_birth.scheduled_date == date(2023, 6, 15)
    assert hepb_birth.status == VaccinationStatus.OVERDUE


@pytest.mark.asyncio
async def test_add_child_for_downloadable_country(tracker):
    child, records = await tracker.add_child("Ivan", date(2023, 6, 15), Country.RUSSIA)

    assert [r.vaccine_id for r in records] == ["bcg", "dtap", "dtap", "dtap"]
    assert await tracker.get_downloaded_countries() == [Country.RUSSIA]


@pytest.mark.asyncio
async def test_add_child_fails_cleanly_when_calendar_unavailable(kv_store, clock):
    offline = build_tracker(
        Settings(STORAGE_BACKEND="memory"),
        store=kv_store,
        clock=clock,
        network_monitor=StaticNetworkMonitor(False),
    )

    with pytest.raises(NoInternetConnectionError):
        await offline.add_child("Ivan", date(2023, 6, 15), Country.RUSSIA)
    assert await offline.list_children() == []


@pytest.mark.asyncio
async def test_schedule_view_and_completion(tracker):
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.CHINA, child_id="mia")

    view = await tracker.get_schedule_view(child.id)
    bcg = next(entry for entry in view if entry.record.id == "mia_bcg")
    assert bcg.vaccine.name == "BCG (Tuberculosis)"
    assert bcg.status == VaccinationStatus.OVERDUE
    assert bcg.days_until == -5
    assert [e.record.scheduled_date for e in view] == sorted(e.record.scheduled_date for e in view)

    await tracker.mark_completed("mia_bcg", CompletionDetails(completed_date=date(2023, 6, 16)))

    overdue_ids = [r.id for r in await tracker.overdue(child.id)]
    assert "mia_bcg" not in overdue_ids
    assert (await tracker.progress(child.id)).completed == 1


@pytest.mark.asyncio
async def test_enabling_recommended_backfills_existing_children(tracker):
    child, records = await tracker.add_child("Mia", date(2023, 6, 15), Country.CHINA, child_id="mia")
    assert "flu" not in {r.vaccine_id for r in records}

    settings = await tracker.update_settings(show_recommended_vaccines=True)

    assert settings.show_recommended_vaccines is True
    vaccine_ids = {r.record.vaccine_id for r in await tracker.get_schedule_view(child.id)}
    assert {"flu", "varicella", "pcv", "rotavirus"} <= vaccine_ids
    assert await tracker.sync_recommended(child.id) == []


@pytest.mark.asyncio
async def test_update_child_country_derives_missing_records(tracker):
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.CHINA, child_id="mia")

    updated = await tracker.update_child(child.id, country="Russia")

    assert updated.country == Country.RUSSIA
    vaccine_ids = {r.record.vaccine_id for r in await tracker.get_schedule_view(child.id)}
    assert "bcg" in vaccine_ids
    assert "dtap" in vaccine_ids


@pytest.mark.asyncio
async def test_update_child_country_rederives_pending_records(tracker):
    """Test that moving a USA child to China drops unlisted doses and re-dates the rest."""
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA, child_id="mia")

    await tracker.update_child(child.id, country="China")

    records = await tracker.record_store.get_child_vaccination_records(child.id)
    vaccine_ids = {r.vaccine_id for r in records}
    assert "hib" not in vaccine_ids
    assert "menacwy" not in vaccine_ids
    assert "bcg" in vaccine_ids

    hepb = sorted((r for r in records if r.vaccine_id == "hepb"), key=lambda r: r.dose_index)
    assert [r.scheduled_date for r in hepb] == [date(2023, 6, 15), date(2023, 9, 15), date(2023, 12, 15)]
    assert hepb[0].next_dose_date == date(2023, 9, 15)
    assert [r.status for r in hepb] == [
        VaccinationStatus.OVERDUE,
        VaccinationStatus.UPCOMING,
        VaccinationStatus.UPCOMING,
    ]

    dtap = [r for r in records if r.vaccine_id == "dtap"]
    assert len(dtap) == 4
    assert {r.total_doses for r in dtap} == {4}

    reminder = next(r for r in await tracker.record_store.get_reminders() if r.record_id == "mia_hepb_dose2")
    assert reminder.reminder_date == date(2023, 9, 8)


@pytest.mark.asyncio
async def test_update_child_date_of_birth_redates_pending_records(tracker):
    child, records = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA, child_id="mia")

    await tracker.update_child(child.id, date_of_birth=date(2022, 6, 15))

    updated = {r.id: r for r in await tracker.record_store.get_child_vaccination_records(child.id)}
    assert set(updated) == {r.id for r in records}
    assert updated["mia_mmr_dose1"].scheduled_date == date(2023, 6, 15)
    assert updated["mia_mmr_dose1"].status == VaccinationStatus.OVERDUE
    assert updated["mia_hepb_dose1"].scheduled_date == date(2022, 6, 15)


@pytest.mark.asyncio
async def test_update_child_keeps_completed_records(tracker):
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA, child_id="mia")
    await tracker.mark_completed("mia_hepb_dose1", CompletionDetails(completed_date=date(2023, 6, 16)))
    await tracker.mark_completed("mia_hib_dose1", CompletionDetails(completed_date=date(2023, 6, 19)))

    await tracker.update_child(child.id, country=Country.CHINA)

    records = {r.id: r for r in await tracker.record_store.get_child_vaccination_records(child.id)}
    assert records["mia_hepb_dose1"].completed_date == date(2023, 6, 16)
    assert records["mia_hib_dose1"].completed_date == date(2023, 6, 19)
    assert records["mia_hib_dose1"].scheduled_date == date(2023, 8, 15)
    assert [r.id for r in records.values() if r.vaccine_id == "hib"] == ["mia_hib_dose1"]
    assert records["mia_hepb_dose2"].scheduled_date == date(2023, 9, 15)


@pytest.mark.asyncio
async def test_custom_vaccine_is_scheduled_for_every_child(tracker):
    """Test that a custom vaccine reaches existing and new children with recommended vaccines off."""
    mia, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA, child_id="mia")

    vaccine, created = await tracker.add_custom_vaccine(
        "Tick-borne encephalitis", 12, disease="TBE", doses=2, dose_interval_months=1
    )

    assert vaccine.is_custom
    assert vaccine.type == VaccineType.RECOMMENDED
    assert [r.scheduled_date for r in created] == [date(2024, 6, 15), date(2024, 7, 15)]
    assert await tracker.list_custom_vaccines() == [vaccine]

    _, records = await tracker.add_child("Leo", date(2023, 1, 10), Country.CHINA, child_id="leo")
    custom_dates = [r.scheduled_date for r in records if r.vaccine_id == vaccine.id]
    assert custom_dates == [date(2024, 1, 10), date(2024, 2, 10)]

    entries = [e for e in await tracker.get_schedule_view(mia.id) if e.record.vaccine_id == vaccine.id]
    assert [e.vaccine.name for e in entries] == ["Tick-borne encephalitis", "Tick-borne encephalitis"]

    await tracker.update_child(mia.id, country=Country.CHINA)
    kept = await tracker.record_store.get_child_vaccination_records(mia.id)
    assert len([r for r in kept if r.vaccine_id == vaccine.id]) == 2


@pytest.mark.asyncio
async def test_delete_custom_vaccine_removes_its_records(tracker):
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA, child_id="mia")
    vaccine, _ = await tracker.add_custom_vaccine("Travel booster", 1)
    before = await tracker.record_store.get_child_vaccination_records(child.id)

    removed = await tracker.delete_custom_vaccine(vaccine.id)

    assert [r.id for r in removed] == [f"mia_{vaccine.id}"]
    after = await tracker.record_store.get_child_vaccination_records(child.id)
    assert len(after) == len(before) - 1
    assert await tracker.list_custom_vaccines() == []

    with pytest.raises(CustomVaccineNotFoundError):
        await tracker.delete_custom_vaccine(vaccine.id)


@pytest.mark.asyncio
async def test_delete_child(tracker):
    child, _ = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA)

    await tracker.delete_child(child.id)

    with pytest.raises(ChildNotFoundError):
        await tracker.get_schedule_view(child.id)
    assert await tracker.record_store.get_vaccination_records() == []


@pytest.mark.asyncio
async def test_download_and_clear_country_calendar(tracker):
    result = await tracker.download_country_calendar("russia")
    assert result.success

    overview = {row["country"]: row for row in await tracker.cache_overview()}
    assert overview[Country.RUSSIA]["available"] is True
    assert overview[Country.RUSSIA]["size_bytes"] > 0
    assert overview[Country.USA]["built_in"] is True
    assert overview[Country.GERMANY]["available"] is False

    await tracker.clear_country_cache(Country.RUSSIA)

    assert await tracker.get_downloaded_countries() == []
    assert not await tracker.repository.is_country_available(Country.RUSSIA)


@pytest.mark.asyncio
async def test_reset_all_data(tracker, kv_store):
    await tracker.add_child("Ivan", date(2023, 6, 15), Country.RUSSIA)

    await tracker.reset_all_data()

    assert await tracker.list_children() == []
    assert await tracker.get_downloaded_countries() == []
    assert kv_store.keys() == ["downloaded_countries"]
