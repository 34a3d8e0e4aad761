"""
# Data Models Package

Pydantic models shared across the Vaccination Tracker core.

- **`vaccine_models`**: Countries, vaccine definitions and calendar payloads.
- **`tracker_models`**: Children, vaccination records, reminders and settings.
- **`schedule_models`**: Derived views (dose slots, schedule rows, progress counters).
"""

from .schedule_models import DoseSlot, ScheduleEntry, VaccinationProgress, VaccineLoadResult
from .tracker_models import (
    AppSettings,
    Child,
    CompletionDetails,
    Language,
    Reminder,
    VaccinationRecord,
    VaccinationStatus,
)
from .vaccine_models import (
    BUILT_IN_COUNTRIES,
    Country,
    VaccinationSchedule,
    VaccineData,
    VaccineDefinition,
    VaccineType,
)

__all__ = [
    "AppSettings",
    "BUILT_IN_COUNTRIES",
    "Child",
    "CompletionDetails",
    "Country",
    "DoseSlot",
    "Language",
    "Reminder",
    "ScheduleEntry",
    "VaccinationProgress",
    "VaccinationRecord",
    "VaccinationSchedule",
    "VaccinationStatus",
    "VaccineData",
    "VaccineDefinition",
    "VaccineLoadResult",
    "VaccineType",
]
