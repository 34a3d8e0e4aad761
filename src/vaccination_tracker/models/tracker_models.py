"""
# Tracker Models

This module defines the persisted entities of the tracker: children, their vaccination
records, reminder entries, and the application settings.

## Domain Model Overview

- **Child**: A child profile with a date of birth and the country whose calendar applies.
- **VaccinationRecord**: One dose of one vaccine for one child. A record is created when
  the child's schedule is derived and gains a completion date exactly once.
- **Reminder**: A planned notification fire date derived from a record's scheduled date.
- **AppSettings**: Language, recommended-vaccine visibility and reminder preferences.

## Status Semantics

`status` is stored for convenience but is always re-derived for display:

| Condition | Status |
|-----------|--------|
| `completed_date` is set | `completed` |
| `scheduled_date > today` | `upcoming` |
| `scheduled_date <= today` | `overdue` |

All models serialise with camelCase field names (`childId`, `scheduledDate`, ...).
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vaccination_tracker.models.vaccine_models import Country


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VaccinationStatus(str, Enum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    COMPLETED = "completed"


class Language(str, Enum):
    EN = "en"
    ZH = "zh"
    RU = "ru"
    ES = "es"
    TR = "tr"
    UK = "uk"


class TrackerModel(BaseModel):
    """Base model with camelCase aliases shared by all persisted entities."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_storage(self) -> dict:
        """JSON-ready dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Child(TrackerModel):
    """
    Model representing a child profile.

    Deleting a child cascades to its vaccination records and reminders.
    """

    id: str = Field(..., description="Unique child identifier")
    name: str = Field(..., min_length=1, max_length=100, description="Child's name")
    date_of_birth: date = Field(..., description="Date of birth (day precision)")
    country: Country = Field(..., description="Country whose vaccine calendar applies")
    photo_uri: Optional[str] = Field(None, description="Optional profile photo location")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class VaccinationRecord(TrackerModel):
    """
    Model for one dose of one vaccine scheduled for a child.

    **Fields:**
    *   **dose_index**: 0-based position of the dose in the vaccine's series.
    *   **scheduled_date**: Derived from the date of birth; re-derived only while the dose is
        pending and the child's date of birth or country changes.
    *   **completed_date**: Set once when the dose is marked as given.
    *   **next_dose_date**: Scheduled date of the following dose of the same series, if any.
    """

    id: str = Field(..., description="Deterministic record id")
    child_id: str = Field(..., description="Owning child id")
    vaccine_id: str = Field(..., description="Vaccine id in the child's country calendar")
    dose_index: int = Field(0, ge=0, description="0-based dose position")
    total_doses: int = Field(1, ge=1, description="Number of doses in the series")
    scheduled_date: date = Field(..., description="Date the dose is due")
    completed_date: Optional[date] = Field(None, description="Date the dose was given")
    status: VaccinationStatus = Field(VaccinationStatus.UPCOMING, description="Status at last derivation")
    notes: Optional[str] = None
    doctor_name: Optional[str] = None
    location: Optional[str] = None
    batch_number: Optional[str] = None
    next_dose_date: Optional[date] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def dose_number(self) -> int:
        """1-based dose number for display."""
        return self.dose_index + 1

    @property
    def is_completed(self) -> bool:
        return self.completed_date is not None


class CompletionDetails(TrackerModel):
    """Details captured when a dose is marked as given."""

    completed_date: date = Field(..., description="Date the dose was given")
    notes: Optional[str] = Field(None, max_length=2000)
    doctor_name: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    batch_number: Optional[str] = Field(None, max_length=100)


class Reminder(TrackerModel):
    """A planned reminder for an upcoming dose."""

    id: str = Field(..., description="Reminder id")
    child_id: str
    vaccine_id: str
    record_id: Optional[str] = None
    reminder_date: date = Field(..., description="Day the reminder should fire")
    is_enabled: bool = True
    notification_id: Optional[str] = None


class AppSettings(TrackerModel):
    """User preferences consumed by the scheduling and reminder services."""

    language: Language = Language.EN
    show_recommended_vaccines: bool = False
    notifications_enabled: bool = True
    reminder_days_before: int = Field(7, ge=1, le=30)
