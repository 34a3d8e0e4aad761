from datetime import date, datetime, timezone

import pytest

from vaccination_tracker.models.vaccine_models import (
    Country,
    VaccinationSchedule,
    VaccineData,
    VaccineDefinition,
    VaccineType,
)
from vaccination_tracker.models.tracker_models import Child
from vaccination_tracker.services.calendar_cache import CalendarCache
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.storage.kv_store import InMemoryKeyValueStore
from vaccination_tracker.utils.clock import FixedClock

RUSSIA_PAYLOAD = {
    "russia": {
        "mandatory": [
            {"id": "bcg", "name": "BCG", "ageInMonths": 0, "doses": 1},
            {"id": "dtap", "name": "DTaP", "ageInMonths": 3, "doses": 3, "doseIntervalMonths": 1},
        ],
        "recommended": [
            {"id": "flu", "name": "Influenza", "ageInMonths": 6},
        ],
    },
    "germany": {
        "mandatory": [{"id": "mmr", "name": "MMR", "ageInMonths": 11, "doses": 2}],
        "recommended": [],
    },
}


@pytest.fixture
def clock():
    return FixedClock(datetime(2023, 6, 20, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def record_store(kv_store, clock):
    return RecordStore(kv_store, clock)


@pytest.fixture
def calendar_cache(kv_store, clock):
    return CalendarCache(kv_store, clock)


@pytest.fixture
def child():
    return Child(id="child1", name="Mia", date_of_birth=date(2023, 6, 15), country=Country.RUSSIA)


@pytest.fixture
def russia_data():
    return VaccineData.model_validate(RUSSIA_PAYLOAD["russia"])


@pytest.fixture
def simple_schedule():
    """Two single-dose mandatory vaccines at birth and 12 months, plus one recommended."""
    return VaccinationSchedule(
        country=Country.RUSSIA,
        vaccines=[
            VaccineDefinition(id="bcg", name="BCG", age_in_months=0),
            VaccineDefinition(id="mmr", name="MMR", age_in_months=12),
            VaccineDefinition(id="flu", name="Influenza", age_in_months=6, type=VaccineType.RECOMMENDED),
        ],
    )
