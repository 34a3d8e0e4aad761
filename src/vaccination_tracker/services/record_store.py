"""
# Record Store

Persistence for the tracker's collections on top of a `KeyValueStore`.

## Storage Layout

Every collection lives under one key and is written as a whole:

| Key | Content |
|-----|---------|
| `@VaccineTracker:children` | JSON array of `Child` |
| `@VaccineTracker:vaccinationRecords` | JSON array of `VaccinationRecord` |
| `@VaccineTracker:reminders` | JSON array of `Reminder` |
| `@VaccineTracker:settings` | JSON object `AppSettings` |
| `@VaccineTracker:customVaccines` | JSON array of user-defined `VaccineDefinition` |

A missing key reads as an empty collection (or default settings). A key whose content
cannot be decoded is logged and also read as empty, so one corrupt collection never blocks
the others.

## Usage Example

```python
store = RecordStore(JsonFileKeyValueStore("~/.vaccination_tracker/store.json"), SystemClock())
await store.add_child(child)
records = await store.get_child_vaccination_records(child.id)
```
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from vaccination_tracker.exceptions import ChildNotFoundError, CustomVaccineNotFoundError, RecordNotFoundError
from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.tracker_models import AppSettings, Child, Reminder, VaccinationRecord
from vaccination_tracker.models.vaccine_models import VaccineDefinition
from vaccination_tracker.storage.kv_store import KeyValueStore
from vaccination_tracker.utils.clock import Clock, SystemClock

logger = get_logger(prefix="[RecordStore]")

KEY_PREFIX = "@VaccineTracker:"

ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordStore:
    """
    Children, vaccination records, reminders, settings and custom vaccines over a key-value store.

    Args:
        store: Backend holding the serialised collections.
        clock: Source of `updated_at` timestamps.
        key_prefix: Namespace of the collection keys.
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None, key_prefix: str = KEY_PREFIX):
        self.store = store
        self.clock = clock or SystemClock()
        self.children_key = f"{key_prefix}children"
        self.records_key = f"{key_prefix}vaccinationRecords"
        self.reminders_key = f"{key_prefix}reminders"
        self.settings_key = f"{key_prefix}settings"
        self.custom_vaccines_key = f"{key_prefix}customVaccines"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    async def _load_list(self, key: str, model: Type[ModelT]) -> List[ModelT]:
        raw = await self.store.get_item(key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt JSON under {key}, reading as empty: {e}")
            return []
        if not isinstance(items, list):
            logger.warning(f"Expected a list under {key}, got {type(items).__name__}; reading as empty")
            return []

        result: List[ModelT] = []
        for item in items:
            try:
                result.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {model.__name__} entry under {key}: {e.error_count()} error(s)")
        return result

    async def _save_list(self, key: str, items: Iterable[BaseModel]) -> None:
        payload = [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in items]
        await self.store.set_item(key, json.dumps(payload, ensure_ascii=False))

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    async def get_children(self) -> List[Child]:
        return await self._load_list(self.children_key, Child)

    async def save_children(self, children: Iterable[Child]) -> None:
        await self._save_list(self.children_key, children)

    async def add_child(self, child: Child) -> Child:
        children = await self.get_children()
        children = [c for c in children if c.id != child.id]
        children.append(child)
        await self.save_children(children)
        logger.info(f"Saved child {child.id} ({child.country.value})")
        return child

    async def get_child(self, child_id: str) -> Optional[Child]:
        for child in await self.get_children():
            if child.id == child_id:
                return child
        return None

    async def update_child(self, child_id: str, updates: Dict[str, Any]) -> Child:
        """
        Apply field updates to a stored child.

        Args:
            child_id: Id of the child to update.
            updates: Field values keyed by snake_case name.

        Returns:
            Child: The updated child.

        Raises:
            ChildNotFoundError: If no child has this id.
        """
        children = await self.get_children()
        for index, child in enumerate(children):
            if child.id == child_id:
                data = child.model_dump()
                data.update(updates)
                data["id"] = child_id
                data["updated_at"] = self.clock.now()
                updated = Child.model_validate(data)
                children[index] = updated
                await self.save_children(children)
                return updated
        raise ChildNotFoundError(child_id)

    async def delete_child(self, child_id: str) -> None:
        """Delete a child together with its vaccination records and reminders."""
        children = await self.get_children()
        remaining = [c for c in children if c.id != child_id]
        if len(remaining) == len(children):
            raise ChildNotFoundError(child_id)
        await self.save_children(remaining)

        records = await self.get_vaccination_records()
        await self.save_vaccination_records(r for r in records if r.child_id != child_id)

        reminders = await self.get_reminders()
        await self.save_reminders(r for r in reminders if r.child_id != child_id)
        logger.info(f"Deleted child {child_id} with its records and reminders")

    # ------------------------------------------------------------------
    # Vaccination records
    # ------------------------------------------------------------------

    async def get_vaccination_records(self) -> List[VaccinationRecord]:
        return await self._load_list(self.records_key, VaccinationRecord)

    async def save_vaccination_records(self, records: Iterable[VaccinationRecord]) -> None:
        await self._save_list(self.records_key, records)

    async def add_vaccination_records(self, new_records: List[VaccinationRecord]) -> List[VaccinationRecord]:
        """Append records in one write, replacing stored records that share an id."""
        if not new_records:
            return []
        new_ids = {r.id for r in new_records}
        records = [r for r in await self.get_vaccination_records() if r.id not in new_ids]
        records.extend(new_records)
        await self.save_vaccination_records(records)
        logger.debug(f"Stored {len(new_records)} vaccination record(s)")
        return new_records

    async def update_vaccination_record(self, record_id: str, updates: Dict[str, Any]) -> VaccinationRecord:
        """
        Apply field updates to a stored record.

        Raises:
            RecordNotFoundError: If no record has this id.
        """
        records = await self.get_vaccination_records()
        for index, record in enumerate(records):
            if record.id == record_id:
                data = record.model_dump()
                data.update(updates)
                data["id"] = record_id
                data["updated_at"] = self.clock.now()
                updated = VaccinationRecord.model_validate(data)
                records[index] = updated
                await self.save_vaccination_records(records)
                return updated
        raise RecordNotFoundError(record_id)

    async def get_child_vaccination_records(self, child_id: str) -> List[VaccinationRecord]:
        return [r for r in await self.get_vaccination_records() if r.child_id == child_id]

    async def get_record(self, record_id: str) -> Optional[VaccinationRecord]:
        for record in await self.get_vaccination_records():
            if record.id == record_id:
                return record
        return None

    async def replace_child_vaccination_records(
        self, child_id: str, child_records: List[VaccinationRecord]
    ) -> List[VaccinationRecord]:
        """Swap a child's whole record set for `child_records` in one write."""
        records = [r for r in await self.get_vaccination_records() if r.child_id != child_id]
        records.extend(child_records)
        await self.save_vaccination_records(records)
        logger.debug(f"Replaced records of child {child_id} with {len(child_records)} record(s)")
        return child_records

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    async def get_reminders(self) -> List[Reminder]:
        return await self._load_list(self.reminders_key, Reminder)

    async def save_reminders(self, reminders: Iterable[Reminder]) -> None:
        await self._save_list(self.reminders_key, reminders)

    async def add_reminders(self, new_reminders: List[Reminder]) -> List[Reminder]:
        new_ids = {r.id for r in new_reminders}
        reminders = [r for r in await self.get_reminders() if r.id not in new_ids]
        reminders.extend(new_reminders)
        await self.save_reminders(reminders)
        return new_reminders

    async def update_reminder(self, reminder_id: str, updates: Dict[str, Any]) -> Optional[Reminder]:
        """Apply field updates to a reminder; returns None when it does not exist."""
        reminders = await self.get_reminders()
        for index, reminder in enumerate(reminders):
            if reminder.id == reminder_id:
                updated = reminder.model_copy(update=updates)
                reminders[index] = Reminder.model_validate(updated.model_dump())
                await self.save_reminders(reminders)
                return reminders[index]
        return None

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> AppSettings:
        raw = await self.store.get_item(self.settings_key)
        if raw is None:
            return AppSettings()
        try:
            return AppSettings.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Invalid settings under {self.settings_key}, using defaults: {e.error_count()} error(s)")
            return AppSettings()

    async def save_settings(self, app_settings: AppSettings) -> None:
        await self.store.set_item(self.settings_key, json.dumps(app_settings.to_storage()))

    async def update_settings(self, updates: Dict[str, Any]) -> AppSettings:
        """Merge updates into the stored settings, validating the result."""
        current = await self.get_settings()
        data = current.model_dump()
        data.update(updates)
        updated = AppSettings.model_validate(data)
        await self.save_settings(updated)
        return updated

    # ------------------------------------------------------------------
    # Custom vaccines
    # ------------------------------------------------------------------

    async def get_custom_vaccines(self) -> List[VaccineDefinition]:
        return await self._load_list(self.custom_vaccines_key, VaccineDefinition)

    async def save_custom_vaccines(self, vaccines: Iterable[VaccineDefinition]) -> None:
        await self._save_list(self.custom_vaccines_key, vaccines)

    async def add_custom_vaccine(self, vaccine: VaccineDefinition) -> VaccineDefinition:
        vaccines = [v for v in await self.get_custom_vaccines() if v.id != vaccine.id]
        vaccines.append(vaccine)
        await self.save_custom_vaccines(vaccines)
        logger.info(f"Saved custom vaccine {vaccine.id} ({vaccine.name})")
        return vaccine

    async def delete_custom_vaccine(self, vaccine_id: str) -> List[VaccinationRecord]:
        """
        Delete a custom vaccine together with every record and reminder that refers to it.

        Returns:
            List[VaccinationRecord]: The records that were removed.

        Raises:
            CustomVaccineNotFoundError: If no custom vaccine has this id.
        """
        vaccines = await self.get_custom_vaccines()
        remaining = [v for v in vaccines if v.id != vaccine_id]
        if len(remaining) == len(vaccines):
            raise CustomVaccineNotFoundError(vaccine_id)
        await self.save_custom_vaccines(remaining)

        records = await self.get_vaccination_records()
        removed = [r for r in records if r.vaccine_id == vaccine_id]
        await self.save_vaccination_records(r for r in records if r.vaccine_id != vaccine_id)

        reminders = await self.get_reminders()
        await self.save_reminders(r for r in reminders if r.vaccine_id != vaccine_id)
        logger.info(f"Deleted custom vaccine {vaccine_id} with {len(removed)} record(s)")
        return removed

    async def clear_all_data(self) -> None:
        await self.store.multi_remove(
            [self.children_key, self.records_key, self.reminders_key, self.settings_key, self.custom_vaccines_key]
        )
        logger.info("Cleared all tracker data")
