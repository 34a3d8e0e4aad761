"""
Explicit wiring of the tracker services.

`build_tracker()` is the single place where configuration turns into objects; every service
receives its collaborators through its constructor, so tests can swap any of them.
"""

from datetime import timedelta
from typing import Optional

import httpx

from vaccination_tracker.config import Settings, settings as default_settings
from vaccination_tracker.managers.logging_manager import get_logger
from vaccination_tracker.services.calendar_cache import CalendarCache
from vaccination_tracker.services.calendar_repository import CalendarRepository
from vaccination_tracker.services.network_monitor import NetworkMonitor, SocketNetworkMonitor, StaticNetworkMonitor
from vaccination_tracker.services.record_store import RecordStore
from vaccination_tracker.services.reminder_service import ReminderService
from vaccination_tracker.services.scheduling_engine import SchedulingEngine
from vaccination_tracker.services.tracker_service import VaccinationTracker
from vaccination_tracker.services.vaccine_data_loader import VaccineDataLoader
from vaccination_tracker.storage import KeyValueStore, build_store
from vaccination_tracker.utils.clock import Clock, SystemClock

logger = get_logger(prefix="[Container]")


def build_network_monitor(config: Settings) -> NetworkMonitor:
    if config.OFFLINE_MODE:
        return StaticNetworkMonitor(connected=False)
    return SocketNetworkMonitor(
        config.CONNECTIVITY_CHECK_HOST,
        port=config.CONNECTIVITY_CHECK_PORT,
        timeout=config.CONNECTIVITY_CHECK_TIMEOUT,
    )


def build_tracker(
    config: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
    network_monitor: Optional[NetworkMonitor] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VaccinationTracker:
    """
    Assemble a `VaccinationTracker` from settings.

    Args:
        config: Settings to use; defaults to the module-level settings.
        store: Key-value backend; built from `config.STORAGE_BACKEND` when omitted.
        clock: Clock shared by every service; the system clock when omitted.
        network_monitor: Connectivity check; built from the connectivity settings when omitted.
        transport: Optional httpx transport for calendar downloads.

    Returns:
        VaccinationTracker: The wired facade.
    """
    config = config or default_settings
    clock = clock or SystemClock()
    store = store if store is not None else build_store(config)

    record_store = RecordStore(store, clock, key_prefix=config.STORAGE_KEY_PREFIX)
    cache = CalendarCache(store, clock, ttl=timedelta(days=config.CALENDAR_CACHE_TTL_DAYS))
    loader = VaccineDataLoader(
        cache,
        network_monitor or build_network_monitor(config),
        base_url=config.CALENDAR_BASE_URL,
        request_timeout=config.CALENDAR_REQUEST_TIMEOUT,
        overall_timeout=config.CALENDAR_OVERALL_TIMEOUT,
        transport=transport,
    )
    repository = CalendarRepository(loader, cache)
    engine = SchedulingEngine(record_store, clock)
    reminders = ReminderService(record_store, clock, lookahead_days=config.REMINDER_LOOKAHEAD_DAYS)

    logger.debug(f"Built tracker with {type(store).__name__} storage")
    return VaccinationTracker(record_store, repository, cache, engine, reminders, clock)
