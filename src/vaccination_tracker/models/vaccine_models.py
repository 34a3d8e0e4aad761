"""
# Vaccine Calendar Models

This module defines the data structures for **country vaccine calendars**: the closed set
of supported countries, the immutable vaccine definitions each calendar lists, and the
payload shape used by both the bundled calendar files and the remote download.

## Domain Model Overview

1.  **Country**: One of a fixed set of countries. Some calendars are **built-in** (bundled
    with the package and always available); the others are **downloadable** and must be
    fetched once before use.
2.  **VaccineDefinition**: A vaccine in a calendar: the age at which its dose series starts,
    whether it is mandatory or recommended, and how many doses it needs.
3.  **VaccineData**: The `{mandatory: [...], recommended: [...]}` block stored per country.
4.  **VaccinationSchedule**: A country's flattened list of definitions, optionally followed
    by the user's custom vaccines.

## Payload Shape

```json
{
  "russia": {
    "mandatory": [{"id": "bcg", "name": "BCG", "ageInMonths": 0, "doses": 1}],
    "recommended": [{"id": "flu", "name": "Influenza", "ageInMonths": 6}]
  }
}
```

Field names are camelCase on the wire; models accept snake_case too.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from vaccination_tracker.exceptions import UnknownCountryError


class Country(str, Enum):
    """Supported countries."""

    USA = "USA"
    CHINA = "China"
    RUSSIA = "Russia"
    GERMANY = "Germany"
    FRANCE = "France"
    ITALY = "Italy"
    BRAZIL = "Brazil"
    MEXICO = "Mexico"
    ARGENTINA = "Argentina"
    TURKEY = "Turkey"
    UKRAINE = "Ukraine"
    UZBEKISTAN = "Uzbekistan"

    @classmethod
    def parse(cls, value: Any) -> "Country":
        """
        Resolve a country from its value, case-insensitively.

        Args:
            value: A `Country`, or a string such as `"Russia"` or `"russia"`.

        Returns:
            Country: The matching enum member.

        Raises:
            UnknownCountryError: If the value is outside the supported set.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for country in cls:
            if country.value.lower() == text or country.name.lower() == text:
                return country
        raise UnknownCountryError(value)

    @property
    def is_built_in(self) -> bool:
        """Whether the calendar ships inside the package."""
        return self in BUILT_IN_COUNTRIES

    @property
    def payload_key(self) -> str:
        """Key of this country inside calendar JSON documents."""
        return self.value.lower()

    @property
    def local_file_name(self) -> str:
        """Base name of the bundled calendar file."""
        return f"vaccines_{self.payload_key}"

    @property
    def flag(self) -> str:
        return _FLAGS[self]

    @property
    def display_name(self) -> str:
        name = "United States" if self is Country.USA else self.value
        return f"{self.flag} {name}"


BUILT_IN_COUNTRIES = frozenset({Country.USA, Country.CHINA})

_FLAGS = {
    Country.USA: "🇺🇸",
    Country.CHINA: "🇨🇳",
    Country.RUSSIA: "🇷🇺",
    Country.GERMANY: "🇩🇪",
    Country.FRANCE: "🇫🇷",
    Country.ITALY: "🇮🇹",
    Country.BRAZIL: "🇧🇷",
    Country.MEXICO: "🇲🇽",
    Country.ARGENTINA: "🇦🇷",
    Country.TURKEY: "🇹🇷",
    Country.UKRAINE: "🇺🇦",
    Country.UZBEKISTAN: "🇺🇿",
}


class VaccineType(str, Enum):
    MANDATORY = "mandatory"
    RECOMMENDED = "recommended"


class VaccineDefinition(BaseModel):
    """
    Model representing one vaccine in a country calendar.

    Definitions are immutable: they come from a bundled file, a downloaded payload or the
    user (`is_custom`), and are never changed at runtime.

    **Dose series:**
    The first dose is due `age_in_months` after birth; further doses follow every
    `dose_interval_months`. A multi-dose definition without an interval schedules every
    dose on the same date.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(..., min_length=1, description="Stable vaccine identifier, e.g. 'mmr'")
    name: str = Field(..., min_length=1, description="Display name")
    name_key: Optional[str] = Field(None, description="Localisation key, defaults to 'vaccines.<id>'")
    disease: Optional[str] = Field(None, description="Disease(s) the vaccine protects against")
    age_in_months: int = Field(..., ge=0, description="Age at which the dose series begins")
    age_description: Optional[str] = Field(None, description="Human-readable age, e.g. '2 months'")
    type: VaccineType = Field(VaccineType.MANDATORY, description="Mandatory or recommended")
    doses: int = Field(1, ge=1, description="Number of doses in the series")
    dose_interval_months: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("doseIntervalMonths", "dose_interval_months", "interval"),
        serialization_alias="doseIntervalMonths",
        description="Months between consecutive doses",
    )
    description: Optional[str] = Field(None, description="Longer description")
    notes: Optional[str] = Field(None, description="Free-form notes")
    is_custom: bool = Field(False, description="Added by the user; planned for every child regardless of settings")

    @model_validator(mode="before")
    @classmethod
    def normalise_payload(cls, data: Any) -> Any:
        """Fill defaults for optional dose fields and map the boolean `isMandatory` flag."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("doses", "doseIntervalMonths", "dose_interval_months", "interval"):
            if key in data and data[key] is None:
                del data[key]
        if "type" not in data and "isMandatory" in data:
            data["type"] = VaccineType.MANDATORY if data["isMandatory"] else VaccineType.RECOMMENDED
        if not data.get("nameKey") and not data.get("name_key") and data.get("id"):
            data["nameKey"] = f"vaccines.{data['id']}"
        return data

    @property
    def is_mandatory(self) -> bool:
        return self.type == VaccineType.MANDATORY


class VaccineData(BaseModel):
    """
    Model for one country's calendar block.

    List membership decides each definition's type: entries under `mandatory` are
    mandatory and entries under `recommended` are recommended, whatever they declare.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mandatory: List[VaccineDefinition] = Field(default_factory=list)
    recommended: List[VaccineDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def apply_list_types(self) -> "VaccineData":
        self.mandatory = [_with_type(v, VaccineType.MANDATORY) for v in self.mandatory]
        self.recommended = [_with_type(v, VaccineType.RECOMMENDED) for v in self.recommended]
        return self

    def all_vaccines(self) -> List[VaccineDefinition]:
        return [*self.mandatory, *self.recommended]


def _with_type(vaccine: VaccineDefinition, vaccine_type: VaccineType) -> VaccineDefinition:
    if vaccine.type == vaccine_type:
        return vaccine
    return vaccine.model_copy(update={"type": vaccine_type})


class VaccinationSchedule(BaseModel):
    """
    A country's vaccination schedule: every definition of its calendar, mandatory first.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    country: Country = Field(..., description="Country the schedule belongs to")
    vaccines: List[VaccineDefinition] = Field(default_factory=list)

    @classmethod
    def from_vaccine_data(cls, country: Country, data: VaccineData) -> "VaccinationSchedule":
        return cls(country=country, vaccines=data.all_vaccines())

    def get_vaccine(self, vaccine_id: str) -> Optional[VaccineDefinition]:
        for vaccine in self.vaccines:
            if vaccine.id == vaccine_id:
                return vaccine
        return None

    def with_custom_vaccines(self, custom: List[VaccineDefinition]) -> "VaccinationSchedule":
        """The schedule followed by the user's custom vaccines; calendar ids take precedence."""
        known = {v.id for v in self.vaccines}
        extra = [v for v in custom if v.id not in known]
        if not extra:
            return self
        return VaccinationSchedule(country=self.country, vaccines=[*self.vaccines, *extra])

    def mandatory(self) -> List[VaccineDefinition]:
        return [v for v in self.vaccines if v.is_mandatory]

    def recommended(self) -> List[VaccineDefinition]:
        return [v for v in self.vaccines if not v.is_mandatory]

    def grouped_by_age(self) -> Dict[int, List[VaccineDefinition]]:
        """Definitions grouped by starting age, in ascending age order."""
        grouped: Dict[int, List[VaccineDefinition]] = {}
        for vaccine in sorted(self.vaccines, key=lambda v: v.age_in_months):
            grouped.setdefault(vaccine.age_in_months, []).append(vaccine)
        return grouped
