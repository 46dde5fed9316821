from __future__ import annotations

import logging
from functools import lru_cache
from typing import Tuple

from fastapi import Depends

from capacity_scheduler.clients.store import StoreClient
from capacity_scheduler.config import Settings, get_settings
from capacity_scheduler.services import AppointmentScheduler, CapacityResolver, TTLCache
from capacity_scheduler.services.mock_store import build_mock_store
from capacity_scheduler.services.store import (
    AppointmentStore,
    BusinessDirectory,
    HttpAppointmentStore,
    HttpBusinessDirectory,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store_client_cached() -> StoreClient:
    settings = get_settings()
    return StoreClient(
        str(settings.store_base_url) if settings.store_base_url else None,
        timeout=settings.store_timeout,
        token=settings.store_token,
    )


@lru_cache(maxsize=1)
def get_stores_cached() -> Tuple[AppointmentStore, BusinessDirectory]:
    settings = get_settings()
    client = get_store_client_cached()
    if settings.use_mock_data or not client.configured:
        logger.info("Using in-memory appointment store")
        mock = build_mock_store()
        return mock.appointments, mock.businesses
    logger.info("Using durable store at %s", settings.store_base_url)
    return HttpAppointmentStore(client), HttpBusinessDirectory(client)


@lru_cache(maxsize=1)
def get_cache_cached() -> TTLCache:
    return TTLCache(get_settings().cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_scheduler_cached() -> AppointmentScheduler:
    settings = get_settings()
    appointments, businesses = get_stores_cached()
    return AppointmentScheduler(
        appointments,
        businesses,
        get_cache_cached(),
        capacity_resolver=CapacityResolver(settings.default_capacity),
        default_duration_minutes=settings.default_duration_minutes,
        fallback_timezone=settings.fallback_timezone,
        enforce_status_transitions=settings.enforce_status_transitions,
    )


def get_scheduler(settings: Settings = Depends(get_settings)) -> AppointmentScheduler:
    return get_scheduler_cached()
