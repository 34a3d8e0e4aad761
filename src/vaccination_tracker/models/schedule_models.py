"""Derived views produced by the scheduling engine and the calendar loader."""

from datetime import date
from typing import Literal, NamedTuple, Optional

from pydantic import BaseModel, Field

from vaccination_tracker.exceptions import LoaderErrorKind, VaccineDataLoaderError
from vaccination_tracker.models.tracker_models import VaccinationRecord, VaccinationStatus
from vaccination_tracker.models.vaccine_models import Country, VaccineData, VaccineDefinition


class DoseSlot(NamedTuple):
    dose_index: int
    scheduled_date: date


class ScheduleEntry(BaseModel):
    """A vaccination record joined with its definition and live status for display."""

    record: VaccinationRecord
    vaccine: Optional[VaccineDefinition] = Field(None, description="None when the definition is no longer available")
    status: VaccinationStatus
    days_until: int = Field(..., description="Signed days until the scheduled date; negative when overdue")


class VaccinationProgress(BaseModel):
    """Per-child counters for dashboards."""

    child_id: str
    total: int = 0
    completed: int = 0
    overdue: int = 0
    upcoming: int = 0
    mandatory_total: int = 0
    mandatory_completed: int = 0

    @property
    def completion_ratio(self) -> float:
        return self.completed / self.total if self.total else 0.0


class VaccineLoadResult(BaseModel):
    """
    Outcome of loading one country's calendar.

    Exactly one of `data` and `error` is set. `source` tells where successful data came
    from: the bundled files, the local cache, or a fresh download.
    """

    country: Country
    data: Optional[VaccineData] = None
    source: Optional[Literal["bundle", "cache", "network"]] = None
    error: Optional[LoaderErrorKind] = None
    detail: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.data is not None

    def unwrap(self) -> VaccineData:
        """
        Return the loaded data or raise the typed loader error.

        Raises:
            VaccineDataLoaderError: The subclass matching `error`.
        """
        if self.error is not None or self.data is None:
            raise VaccineDataLoaderError.from_kind(self.error or LoaderErrorKind.PARSING_ERROR, self.detail)
        return self.data
