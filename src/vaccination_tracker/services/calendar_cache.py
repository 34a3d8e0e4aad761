"""
# Calendar Cache

Local cache of downloaded country calendars with a time-to-live, plus the set of countries
the user has downloaded.

## Storage Layout

| Key | Content |
|-----|---------|
| `vaccine_cache_<Country>` | `VaccineData` JSON for one country |
| `vaccine_cache_timestamp_<Country>` | ISO 8601 UTC time the payload was written |
| `downloaded_countries` | JSON array of country names |

## Freshness

An entry is fresh while `now - timestamp < ttl` (30 days by default). A stale, partial
or undecodable entry reads as absent and is evicted on read.

The downloaded-country set is independent from the payloads: a stale payload is evicted
but the country stays listed until `remove_downloaded_country()` is called.
"""

import json
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import ValidationError

from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.vaccine_models import Country, VaccineData
from vaccination_tracker.storage.kv_store import KeyValueStore
from vaccination_tracker.utils.clock import Clock, SystemClock

logger = get_logger(prefix="[CalendarCache]")

CACHE_KEY_PREFIX = "vaccine_cache_"
CACHE_TIMESTAMP_PREFIX = "vaccine_cache_timestamp_"
DOWNLOADED_COUNTRIES_KEY = "downloaded_countries"
DEFAULT_CACHE_TTL = timedelta(days=30)


def cache_key(country: Country) -> str:
    return f"{CACHE_KEY_PREFIX}{country.value}"


def timestamp_key(country: Country) -> str:
    return f"{CACHE_TIMESTAMP_PREFIX}{country.value}"


class CalendarCache:
    """
    TTL cache for downloaded calendars.

    Args:
        store: Backend holding cache entries.
        clock: Source of write timestamps and of "now" for freshness checks.
        ttl: Maximum age of a usable entry.
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None, ttl: timedelta = DEFAULT_CACHE_TTL):
        self.store = store
        self.clock = clock or SystemClock()
        self.ttl = ttl

    async def cache_vaccine_data(self, country: Country, data: VaccineData) -> None:
        """Store a country's calendar and stamp it with the current time."""
        country = Country.parse(country)
        payload = data.model_dump_json(by_alias=True, exclude_none=True)
        await self.store.set_item(cache_key(country), payload)
        await self.store.set_item(timestamp_key(country), self.clock.now().isoformat())
        logger.info(f"Cached calendar for {country.value} ({len(payload)} bytes)")

    async def get_cached_vaccine_data(self, country: Country) -> Optional[VaccineData]:
        """
        Return the cached calendar if present and fresh.

        Stale and corrupt entries are evicted.

        Returns:
            Optional[VaccineData]: The cached calendar, or None on a miss.
        """
        country = Country.parse(country)
        raw = await self.store.get_item(cache_key(country))
        cached_at = await self.get_cache_date(country)

        if raw is None or cached_at is None:
            if raw is not None or cached_at is not None:
                logger.warning(f"Incomplete cache entry for {country.value}, evicting")
                await self.clear_cache(country)
            logger.debug(f"Cache miss for {country.value}")
            return None

        age = self.clock.now() - cached_at
        if age >= self.ttl:
            logger.info(f"Cache for {country.value} expired ({age.days} days old), evicting")
            await self.clear_cache(country)
            return None

        try:
            data = VaccineData.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Corrupt cache entry for {country.value}, evicting: {e.error_count()} error(s)")
            await self.clear_cache(country)
            return None

        logger.debug(f"Cache hit for {country.value}")
        return data

    async def is_cached(self, country: Country) -> bool:
        return await self.get_cached_vaccine_data(country) is not None

    async def get_cache_date(self, country: Country) -> Optional[datetime]:
        """Time the country's calendar was cached, or None."""
        country = Country.parse(country)
        raw = await self.store.get_item(timestamp_key(country))
        if raw is None:
            return None
        try:
            cached_at = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Invalid cache timestamp for {country.value}: {raw!r}")
            return None
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=self.clock.now().tzinfo)
        return cached_at

    async def get_cache_size(self, country: Country) -> int:
        """Size in bytes of the stored calendar payload (0 when absent)."""
        raw = await self.store.get_item(cache_key(Country.parse(country)))
        return len(raw.encode("utf-8")) if raw else 0

    async def get_total_cache_size(self) -> int:
        total = 0
        for country in Country:
            total += await self.get_cache_size(country)
        return total

    async def clear_cache(self, country: Country) -> None:
        country = Country.parse(country)
        await self.store.multi_remove([cache_key(country), timestamp_key(country)])

    async def clear_all_cache(self) -> None:
        keys: List[str] = []
        for country in Country:
            keys.extend([cache_key(country), timestamp_key(country)])
        await self.store.multi_remove(keys)
        logger.info("Cleared all cached calendars")

    # ------------------------------------------------------------------
    # Downloaded countries
    # ------------------------------------------------------------------

    async def get_downloaded_countries(self) -> List[Country]:
        raw = await self.store.get_item(DOWNLOADED_COUNTRIES_KEY)
        if raw is None:
            return []
        try:
            names = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt downloaded-country list, reading as empty: {e}")
            return []
        if not isinstance(names, list):
            return []

        countries: List[Country] = []
        for name in names:
            try:
                country = Country.parse(name)
            except ValueError:
                logger.warning(f"Skipping unknown downloaded country {name!r}")
                continue
            if country not in countries:
                countries.append(country)
        return countries

    async def _save_downloaded_countries(self, countries: List[Country]) -> None:
        await self.store.set_item(DOWNLOADED_COUNTRIES_KEY, json.dumps([c.value for c in countries]))

    async def add_downloaded_country(self, country: Country) -> None:
        country = Country.parse(country)
        countries = await self.get_downloaded_countries()
        if country not in countries:
            countries.append(country)
            await self._save_downloaded_countries(countries)

    async def remove_downloaded_country(self, country: Country) -> None:
        """Forget a downloaded country and evict its cached calendar."""
        country = Country.parse(country)
        countries = await self.get_downloaded_countries()
        await self._save_downloaded_countries([c for c in countries if c != country])
        await self.clear_cache(country)
        logger.info(f"Removed downloaded calendar for {country.value}")
