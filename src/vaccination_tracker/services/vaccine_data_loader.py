"""
# Vaccine Data Loader

Offline-first loading of country vaccine calendars.

## Loading Strategy

1.  **Built-in countries** (USA, China) read the JSON file bundled in
    `vaccination_tracker/calendars/`. The network is never used for them.
2.  **Downloadable countries** are served from the `CalendarCache` while the entry is fresh.
3.  On a cache miss the loader checks connectivity, then issues one
    `GET <base_url>/<country>.json`. A successful payload is written through to the cache
    and the country is recorded as downloaded.

Failures are returned as a `VaccineLoadResult` carrying a `LoaderErrorKind` rather than
raised, so callers can decide between a retry prompt and an empty schedule. There is no
automatic retry.

## Concurrency

Concurrent loads of the same country share one fetch: the first caller starts a task and
later callers await that same task, so at most one request per country is in flight.

## Usage Example

```python
loader = VaccineDataLoader(cache, SocketNetworkMonitor("raw.githubusercontent.com"), base_url)
result = await loader.load_vaccines(Country.RUSSIA)
if result.success:
    schedule = VaccinationSchedule.from_vaccine_data(result.country, result.data)
```
"""

import asyncio
import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from vaccination_tracker.exceptions import LoaderErrorKind
from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.models.schedule_models import VaccineLoadResult
from vaccination_tracker.models.vaccine_models import Country, VaccineData
from vaccination_tracker.services.calendar_cache import CalendarCache
from vaccination_tracker.services.network_monitor import NetworkMonitor

logger = get_logger(prefix="[VaccineDataLoader]")

BUNDLE_PACKAGE = "vaccination_tracker.calendars"


class _LoadFailure(Exception):
    """Internal signal carrying the failure kind up to `_fetch_and_cache`."""

    def __init__(self, kind: LoaderErrorKind, detail: Optional[str] = None):
        self.kind = kind
        self.detail = detail
        super().__init__(detail or kind.value)


def parse_calendar_payload(country: Country, payload: Any) -> VaccineData:
    """
    Extract and validate one country's block from a calendar document.

    Args:
        country: Country whose block to read (keyed by `country.payload_key`).
        payload: Decoded JSON document.

    Returns:
        VaccineData: The validated calendar.

    Raises:
        ValueError: If the document has no block for the country.
        ValidationError: If the block does not match the calendar shape.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Calendar document must be an object, got {type(payload).__name__}")
    block = payload.get(country.payload_key)
    if block is None:
        raise ValueError(f"Calendar document has no '{country.payload_key}' entry")
    return VaccineData.model_validate(block)


class VaccineDataLoader:
    """
    Loads calendars from the bundle, the cache, or the network.

    Args:
        cache: Cache used for downloadable countries.
        network_monitor: Connectivity check run before each download.
        base_url: Base URL of the remote calendar files.
        request_timeout: Per-request httpx timeout in seconds.
        overall_timeout: Upper bound in seconds for a whole download.
        bundle_dir: Directory holding the built-in calendar files. Defaults to the package data.
        transport: Optional httpx transport (used by tests to mock the network).
    """

    def __init__(
        self,
        cache: CalendarCache,
        network_monitor: NetworkMonitor,
        base_url: str,
        request_timeout: float = 30.0,
        overall_timeout: float = 60.0,
        bundle_dir: Optional[Union[str, Path]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.network_monitor = network_monitor
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.overall_timeout = overall_timeout
        self.bundle_dir = Path(bundle_dir) if bundle_dir is not None else None
        self.transport = transport

        self._lock = asyncio.Lock()
        self._in_flight: Dict[Country, "asyncio.Task[VaccineLoadResult]"] = {}
        self._bundled: Dict[Country, VaccineData] = {}

    async def load_vaccines(self, country: Union[Country, str]) -> VaccineLoadResult:
        """
        Load a country's calendar.

        Args:
            country: The country, as enum or name.

        Returns:
            VaccineLoadResult: Data and its source, or the failure kind.

        Raises:
            UnknownCountryError: If `country` is not a supported country name.
        """
        country = Country.parse(country)

        if country.is_built_in:
            return self.load_bundled(country)

        cached = await self.cache.get_cached_vaccine_data(country)
        if cached is not None:
            return VaccineLoadResult(country=country, data=cached, source="cache")

        return await self.fetch(country)

    def load_bundled(self, country: Country) -> VaccineLoadResult:
        """Read a built-in calendar from the bundled files."""
        if country in self._bundled:
            return VaccineLoadResult(country=country, data=self._bundled[country], source="bundle")

        file_name = f"{country.local_file_name}.json"
        try:
            raw = self._read_bundle_file(file_name)
        except FileNotFoundError:
            logger.error(f"Bundled calendar {file_name} not found")
            return VaccineLoadResult(country=country, error=LoaderErrorKind.FILE_NOT_FOUND, detail=file_name)

        try:
            data = parse_calendar_payload(country, json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"Bundled calendar {file_name} is invalid: {e}")
            return VaccineLoadResult(country=country, error=LoaderErrorKind.PARSING_ERROR, detail=str(e))

        self._bundled[country] = data
        return VaccineLoadResult(country=country, data=data, source="bundle")

    def _read_bundle_file(self, file_name: str) -> str:
        if self.bundle_dir is not None:
            return (self.bundle_dir / file_name).read_text(encoding="utf-8")
        resource = resources.files(BUNDLE_PACKAGE).joinpath(file_name)
        if not resource.is_file():
            raise FileNotFoundError(file_name)
        return resource.read_text(encoding="utf-8")

    def is_fetching(self, country: Union[Country, str]) -> bool:
        task = self._in_flight.get(Country.parse(country))
        return task is not None and not task.done()

    async def fetch(self, country: Country) -> VaccineLoadResult:
        """
        Download a country's calendar, joining an in-flight download if one exists.

        Any stale cache entry has already been evicted by the cache read in `load_vaccines`.
        """
        async with self._lock:
            task = self._in_flight.get(country)
            if task is None or task.done():
                task = asyncio.create_task(self._fetch_and_cache(country))
                self._in_flight[country] = task
                task.add_done_callback(lambda t, c=country: self._forget_task(c, t))
            else:
                logger.debug(f"Joining in-flight download for {country.value}")
        return await asyncio.shield(task)

    def _forget_task(self, country: Country, task: "asyncio.Task[VaccineLoadResult]") -> None:
        if self._in_flight.get(country) is task:
            del self._in_flight[country]

    async def _fetch_and_cache(self, country: Country) -> VaccineLoadResult:
        if not await self.network_monitor.is_connected():
            logger.warning(f"No internet connection, cannot download {country.value}")
            return VaccineLoadResult(country=country, error=LoaderErrorKind.NO_INTERNET_CONNECTION)

        url = f"{self.base_url}/{country.payload_key}.json"
        try:
            data = await asyncio.wait_for(self._download(country, url), timeout=self.overall_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Download of {url} exceeded {self.overall_timeout}s")
            return VaccineLoadResult(country=country, error=LoaderErrorKind.NETWORK_ERROR, detail="timeout")
        except _LoadFailure as e:
            return VaccineLoadResult(country=country, error=e.kind, detail=e.detail)

        await self.cache.cache_vaccine_data(country, data)
        await self.cache.add_downloaded_country(country)
        logger.info(f"Downloaded calendar for {country.value}")
        return VaccineLoadResult(country=country, data=data, source="network")

    async def _download(self, country: Country, url: str) -> VaccineData:
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.request_timeout), transport=self.transport) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Calendar request for {country.value} failed with HTTP {e.response.status_code}")
            raise _LoadFailure(LoaderErrorKind.NETWORK_ERROR, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Calendar request for {country.value} failed: {e!r}", exc_info=True)
            raise _LoadFailure(LoaderErrorKind.NETWORK_ERROR, str(e) or type(e).__name__)

        try:
            return parse_calendar_payload(country, response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Calendar payload for {country.value} is invalid: {e}")
            raise _LoadFailure(LoaderErrorKind.PARSING_ERROR, str(e))
