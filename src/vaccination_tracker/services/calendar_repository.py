"""
Country calendar lookups on top of the loader.

`get_schedule()` raises typed errors; `get_available_schedule()` never touches the network
and returns an empty schedule when no data is at hand.
"""

from typing import Optional, Union

from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.vaccine_models import Country, VaccinationSchedule, VaccineData, VaccineDefinition
from vaccination_tracker.services.calendar_cache import CalendarCache
from vaccination_tracker.services.vaccine_data_loader import VaccineDataLoader

logger = get_logger(prefix="[CalendarRepository]")

CountryLike = Union[Country, str]


class CalendarRepository:
    """
    Resolves countries to vaccination schedules.

    Args:
        loader: Calendar loader (bundle, cache, network).
        cache: Calendar cache, consulted directly for offline lookups.
    """

    def __init__(self, loader: VaccineDataLoader, cache: CalendarCache):
        self.loader = loader
        self.cache = cache

    async def get_schedule(self, country: CountryLike) -> VaccinationSchedule:
        """
        Return the vaccination schedule of a country.

        Args:
            country: The country, as enum or name.

        Returns:
            VaccinationSchedule: Mandatory definitions first, then recommended.

        Raises:
            UnknownCountryError: If the country is not supported.
            VaccineDataLoaderError: The subclass matching the loading failure.
        """
        country = Country.parse(country)
        result = await self.loader.load_vaccines(country)
        if not result.success:
            logger.warning(f"Schedule for {country.value} unavailable: {result.error.value if result.error else 'unknown'}")
        return VaccinationSchedule.from_vaccine_data(country, result.unwrap())

    async def get_vaccine_by_id(self, country: CountryLike, vaccine_id: str) -> Optional[VaccineDefinition]:
        """Find one definition in a country's schedule; None when the id is not listed."""
        schedule = await self.get_schedule(country)
        return schedule.get_vaccine(vaccine_id)

    async def get_available_schedule(self, country: CountryLike) -> VaccinationSchedule:
        """Bundled or cached schedule without network access; empty when neither exists."""
        country = Country.parse(country)
        if country.is_built_in:
            result = self.loader.load_bundled(country)
            data = result.data if result.success else None
        else:
            data = await self.cache.get_cached_vaccine_data(country)
        return VaccinationSchedule.from_vaccine_data(country, data or VaccineData())

    async def is_country_available(self, country: CountryLike) -> bool:
        country = Country.parse(country)
        if country.is_built_in:
            return True
        return await self.cache.is_cached(country)
