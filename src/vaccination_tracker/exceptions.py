"""
Typed errors raised by the Vaccination Tracker core.

Calendar loading failures carry a `LoaderErrorKind` so callers can pick a fallback
(cached data, empty list, retry prompt) based on the precise reason loading failed.
"""

from enum import Enum
from typing import Optional


class LoaderErrorKind(str, Enum):
    """Reasons a country calendar could not be loaded."""

    NETWORK_ERROR = "network_error"
    PARSING_ERROR = "parsing_error"
    FILE_NOT_FOUND = "file_not_found"
    NO_INTERNET_CONNECTION = "no_internet_connection"

    @property
    def message(self) -> str:
        """User-facing description of the failure."""
        return _LOADER_MESSAGES[self]


_LOADER_MESSAGES = {
    LoaderErrorKind.NETWORK_ERROR: "Failed to load vaccine calendar. Please check your internet connection.",
    LoaderErrorKind.PARSING_ERROR: "Failed to parse vaccine data.",
    LoaderErrorKind.FILE_NOT_FOUND: "Vaccine calendar file not found.",
    LoaderErrorKind.NO_INTERNET_CONNECTION: (
        "No internet connection. Please connect to the internet to download vaccine calendar."
    ),
}


class VaccinationTrackerError(Exception):
    """Base class for all errors raised by the package."""


class UnknownCountryError(VaccinationTrackerError, ValueError):
    """Raised when a country name is outside the supported enumeration."""

    def __init__(self, country: object):
        self.country = country
        super().__init__(f"Unknown country: {country!r}")


class ChildNotFoundError(VaccinationTrackerError, LookupError):
    """Raised when a child id does not exist in the record store."""

    def __init__(self, child_id: str):
        self.child_id = child_id
        super().__init__(f"Child not found: {child_id}")


class RecordNotFoundError(VaccinationTrackerError, LookupError):
    """Raised when a vaccination record id does not exist in the record store."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Vaccination record not found: {record_id}")


class CustomVaccineNotFoundError(VaccinationTrackerError, LookupError):
    """Raised when a custom vaccine id does not exist in the record store."""

    def __init__(self, vaccine_id: str):
        self.vaccine_id = vaccine_id
        super().__init__(f"Custom vaccine not found: {vaccine_id}")


class RecordAlreadyCompletedError(VaccinationTrackerError):
    """Raised when completing a record whose completion date is already set."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Vaccination record already completed: {record_id}")


class VaccineDataLoaderError(VaccinationTrackerError):
    """Base class for calendar loading failures."""

    kind: LoaderErrorKind = LoaderErrorKind.NETWORK_ERROR

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        message = self.kind.message if not detail else f"{self.kind.message} ({detail})"
        super().__init__(message)

    @classmethod
    def from_kind(cls, kind: LoaderErrorKind, detail: Optional[str] = None) -> "VaccineDataLoaderError":
        """Build the exception subclass matching `kind`."""
        return _LOADER_ERRORS[kind](detail)


class CalendarNetworkError(VaccineDataLoaderError):
    kind = LoaderErrorKind.NETWORK_ERROR


class CalendarParsingError(VaccineDataLoaderError):
    kind = LoaderErrorKind.PARSING_ERROR


class CalendarFileNotFoundError(VaccineDataLoaderError):
    kind = LoaderErrorKind.FILE_NOT_FOUND


class NoInternetConnectionError(VaccineDataLoaderError):
    kind = LoaderErrorKind.NO_INTERNET_CONNECTION


_LOADER_ERRORS = {
    LoaderErrorKind.NETWORK_ERROR: CalendarNetworkError,
    LoaderErrorKind.PARSING_ERROR: CalendarParsingError,
    LoaderErrorKind.FILE_NOT_FOUND: CalendarFileNotFoundError,
    LoaderErrorKind.NO_INTERNET_CONNECTION: NoInternetConnectionError,
}
