"""
# Vaccination Tracker Service

The operations a user interface calls: managing children, viewing and completing their
schedules, downloading country calendars and changing settings.

## Workflows

### 1. Adding a child
The child's country schedule is resolved **before** anything is stored, so a country whose
calendar cannot be loaded fails with a typed `VaccineDataLoaderError` and leaves no orphan
child behind. Records are then derived (recommended vaccines only when the settings ask
for them) and reminders planned.

### 2. Completing a dose
The record gets its completion date and metadata, and the child's reminders are replanned.

### 3. Enabling recommended vaccines later
Turning `show_recommended_vaccines` on backfills the recommended records every existing child
is missing. Turning it off keeps existing records.

### 4. Changing a child's birth date or country
Completed doses stay as recorded. Pending doses are re-dated against the new schedule, or
dropped when the new schedule no longer lists them, and missing vaccines are added.

### 5. Custom vaccines
A vaccine the user defines is merged into every child's schedule and planned for every
child, even with recommended vaccines switched off. Deleting it removes its records.

## Usage Example

```python
tracker = build_tracker(settings)
child, records = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA)
for entry in await tracker.get_schedule_view(child.id):
    print(entry.vaccine.name, entry.status, entry.days_until)
```
"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from vaccination_tracker.exceptions import ChildNotFoundError
from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.schedule_models import ScheduleEntry, VaccinationProgress, VaccineLoadResult
from vaccination_tracker.models.tracker_models import AppSettings, Child, CompletionDetails, VaccinationRecord
from vaccination_tracker.models.vaccine_models import Country, VaccinationSchedule, VaccineDefinition, VaccineType
from vaccination_tracker.services.calendar_cache import CalendarCache
from vaccination_tracker.services.calendar_repository import CalendarRepository
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.services.reminder_service import OverdueNotice, ReminderService
from vaccination_tracker.services.scheduling_engine import SchedulingEngine, days_until
from vaccination_tracker.utils.clock import Clock, SystemClock

logger = get_logger(prefix="[VaccinationTracker]")


class VaccinationTracker:
    """
    Facade over the tracker services.

    Args:
        record_store: Children, records, reminders and settings.
        repository: Country schedules.
        cache: Downloaded calendar cache.
        engine: Record derivation and status queries.
        reminders: Reminder planning.
        clock: Source of "today" and timestamps.
    """

    def __init__(
        self,
        record_store: RecordStore,
        repository: CalendarRepository,
        cache: CalendarCache,
        engine: SchedulingEngine,
        reminders: ReminderService,
        clock: Optional[Clock] = None,
    ):
        self.record_store = record_store
        self.repository = repository
        self.cache = cache
        self.engine = engine
        self.reminders = reminders
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    async def add_child(
        self,
        name: str,
        date_of_birth: date,
        country: Union[Country, str],
        photo_uri: Optional[str] = None,
        child_id: Optional[str] = None,
    ) -> Tuple[Child, List[VaccinationRecord]]:
        """
        Register a child and derive their vaccination records.

        Args:
            name: Child's name.
            date_of_birth: Date of birth.
            country: Country whose calendar applies.
            photo_uri: Optional photo location.
            child_id: Explicit id; a random one is generated when omitted.

        Returns:
            Tuple[Child, List[VaccinationRecord]]: The stored child and the records created.

        Raises:
            UnknownCountryError: If the country is not supported.
            VaccineDataLoaderError: If the country's calendar cannot be loaded.
        """
        country = Country.parse(country)
        schedule = await self._planning_schedule(country)

        now = self.clock.now()
        child = Child(
            id=child_id or uuid.uuid4().hex,
            name=name,
            date_of_birth=date_of_birth,
            country=country,
            photo_uri=photo_uri,
            created_at=now,
            updated_at=now,
        )
        await self.record_store.add_child(child)

        app_settings = await self.record_store.get_settings()
        records = await self.engine.create_records_for_child(
            child, schedule, include_recommended=app_settings.show_recommended_vaccines
        )
        await self.reminders.schedule_all_reminders(child)
        logger.info(f"Added child {child.id} with {len(records)} record(s)")
        return child, records

    async def get_child(self, child_id: str) -> Child:
        child = await self.record_store.get_child(child_id)
        if child is None:
            raise ChildNotFoundError(child_id)
        return child

    async def list_children(self) -> List[Child]:
        return await self.record_store.get_children()

    async def update_child(self, child_id: str, **updates: Any) -> Child:
        """
        Update a child's profile.

        When the country or date of birth changes the child's records are re-derived:
        completed doses are kept, pending doses are re-dated against the new schedule or
        dropped when it no longer lists them, and vaccines the child lacks are added.

        Raises:
            ChildNotFoundError: If the child does not exist.
            VaccineDataLoaderError: If a new country's calendar cannot be loaded.
        """
        if "country" in updates:
            updates["country"] = Country.parse(updates["country"])
            await self.repository.get_schedule(updates["country"])

        before = await self.get_child(child_id)
        child = await self.record_store.update_child(child_id, updates)

        if child.country != before.country or child.date_of_birth != before.date_of_birth:
            schedule = await self._planning_schedule(child.country)
            app_settings = await self.record_store.get_settings()
            await self.engine.rederive_records_for_child(child, schedule, app_settings.show_recommended_vaccines)
            await self.reminders.schedule_all_reminders(child)
        return child

    async def delete_child(self, child_id: str) -> None:
        await self.record_store.delete_child(child_id)

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    async def get_schedule_view(self, child_id: str) -> List[ScheduleEntry]:
        """
        A child's records joined with their vaccine definitions, ordered by date.

        Uses only bundled or cached calendar data, so it works offline.
        """
        child = await self.get_child(child_id)
        schedule = await self._planning_schedule(child.country, offline=True)
        today = self.clock.today()
        return [
            ScheduleEntry(
                record=record,
                vaccine=schedule.get_vaccine(record.vaccine_id),
                status=record.status,
                days_until=days_until(record.scheduled_date, today),
            )
            for record in await self.engine.get_child_records(child_id)
        ]

    async def upcoming(self, child_id: str, window_days: int = 30) -> List[VaccinationRecord]:
        await self.get_child(child_id)
        return await self.engine.upcoming_within_window(child_id, window_days)

    async def overdue(self, child_id: str) -> List[VaccinationRecord]:
        await self.get_child(child_id)
        return await self.engine.overdue(child_id)

    async def progress(self, child_id: str) -> VaccinationProgress:
        child = await self.get_child(child_id)
        schedule = await self._planning_schedule(child.country, offline=True)
        return await self.engine.progress(child_id, schedule)

    async def overdue_notices(self) -> List[OverdueNotice]:
        children = await self.record_store.get_children()
        records = await self.record_store.get_vaccination_records()
        return self.reminders.overdue_notices(children, records)

    async def mark_completed(self, record_id: str, details: CompletionDetails) -> VaccinationRecord:
        """
        Mark a dose as given and replan the child's reminders.

        Raises:
            RecordNotFoundError: If the record does not exist.
            RecordAlreadyCompletedError: If it was already completed.
        """
        record = await self.engine.mark_completed(record_id, details)
        child = await self.record_store.get_child(record.child_id)
        if child is not None:
            await self.reminders.schedule_all_reminders(child)
        return record

    async def sync_recommended(self, child_id: str) -> List[VaccinationRecord]:
        """
        Derive the records a child is missing under the current settings.

        With `show_recommended_vaccines` on this backfills recommended vaccines added to the
        settings after the child was created.
        """
        child = await self.get_child(child_id)
        app_settings = await self.record_store.get_settings()
        schedule = await self._planning_schedule(child.country)
        created = await self.engine.create_records_for_child(child, schedule, app_settings.show_recommended_vaccines)
        if created:
            await self.reminders.schedule_all_reminders(child)
        return created

    # ------------------------------------------------------------------
    # Custom vaccines
    # ------------------------------------------------------------------

    async def _planning_schedule(self, country: Country, offline: bool = False) -> VaccinationSchedule:
        """The country schedule followed by the user's custom vaccines."""
        if offline:
            schedule = await self.repository.get_available_schedule(country)
        else:
            schedule = await self.repository.get_schedule(country)
        return schedule.with_custom_vaccines(await self.record_store.get_custom_vaccines())

    async def list_custom_vaccines(self) -> List[VaccineDefinition]:
        return await self.record_store.get_custom_vaccines()

    async def add_custom_vaccine(
        self,
        name: str,
        age_in_months: int,
        disease: Optional[str] = None,
        doses: int = 1,
        dose_interval_months: int = 0,
        description: Optional[str] = None,
        age_description: Optional[str] = None,
    ) -> Tuple[VaccineDefinition, List[VaccinationRecord]]:
        """
        Define a vaccine of the user's own and schedule it for every child.

        Custom vaccines are recommended vaccines with a random id. They are planned for
        every child whatever `show_recommended_vaccines` says, and for children added later.

        Returns:
            Tuple[VaccineDefinition, List[VaccinationRecord]]: The stored definition and the
            records created across all children.

        Raises:
            ValidationError: If a field is out of range (negative age, zero doses, ...).
        """
        vaccine = VaccineDefinition(
            id=str(uuid.uuid4()),
            name=name,
            disease=disease,
            age_in_months=age_in_months,
            age_description=age_description,
            type=VaccineType.RECOMMENDED,
            doses=doses,
            dose_interval_months=dose_interval_months,
            description=description,
            notes="Added by user",
            is_custom=True,
        )
        await self.record_store.add_custom_vaccine(vaccine)

        created: List[VaccinationRecord] = []
        for child in await self.record_store.get_children():
            schedule = VaccinationSchedule(country=child.country, vaccines=[vaccine])
            records = await self.engine.create_records_for_child(child, schedule, include_recommended=False)
            if records:
                await self.reminders.schedule_all_reminders(child)
            created.extend(records)
        logger.info(f"Added custom vaccine {vaccine.id} ({vaccine.name}) with {len(created)} record(s)")
        return vaccine, created

    async def delete_custom_vaccine(self, vaccine_id: str) -> List[VaccinationRecord]:
        """
        Delete a custom vaccine with every record and reminder referring to it.

        Raises:
            CustomVaccineNotFoundError: If no custom vaccine has this id.
        """
        return await self.record_store.delete_custom_vaccine(vaccine_id)

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    async def download_country_calendar(self, country: Union[Country, str]) -> VaccineLoadResult:
        """Make a country's calendar available offline; built-in countries need no download."""
        country = Country.parse(country)
        result = await self.repository.loader.load_vaccines(country)
        if result.success:
            logger.info(f"Calendar for {country.value} available from {result.source}")
        else:
            logger.warning(f"Calendar download for {country.value} failed: {result.error.value}")
        return result

    async def clear_country_cache(self, country: Union[Country, str]) -> None:
        await self.cache.remove_downloaded_country(Country.parse(country))

    async def get_downloaded_countries(self) -> List[Country]:
        return await self.cache.get_downloaded_countries()

    async def cache_overview(self) -> List[Dict[str, Any]]:
        """Per-country availability, cache date and cached payload size."""
        downloaded = set(await self.cache.get_downloaded_countries())
        overview = []
        for country in Country:
            cached_at = await self.cache.get_cache_date(country)
            overview.append(
                {
                    "country": country,
                    "built_in": country.is_built_in,
                    "downloaded": country in downloaded,
                    "available": await self.repository.is_country_available(country),
                    "cached_at": cached_at,
                    "size_bytes": await self.cache.get_cache_size(country),
                }
            )
        return overview

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> AppSettings:
        return await self.record_store.get_settings()

    async def update_settings(self, **updates: Any) -> AppSettings:
        """
        Change settings and apply their side effects.

        Enabling recommended vaccines backfills every child; changing notification
        preferences replans every child's reminders.
        """
        before = await self.record_store.get_settings()
        after = await self.record_store.update_settings(updates)

        children = await self.record_store.get_children()
        if after.show_recommended_vaccines and not before.show_recommended_vaccines:
            for child in children:
                await self.sync_recommended(child.id)

        if (
            after.notifications_enabled != before.notifications_enabled
            or after.reminder_days_before != before.reminder_days_before
        ):
            for child in children:
                await self.reminders.schedule_all_reminders(child)
        return after

    async def reset_all_data(self) -> None:
        await self.record_store.clear_all_data()
        for country in await self.cache.get_downloaded_countries():
            await self.cache.remove_downloaded_country(country)
        await self.cache.clear_all_cache()
        logger.info("Reset all tracker data")
