from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from capacity_scheduler.services.store import AppointmentStore

logger = logging.getLogger(__name__)


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test: intervals that only share an endpoint do not clash."""

    return start_a < end_b and start_b < end_a


class OverlapOracle:
    """Answers whether a business can take a booking for ``[start, end)``.

    Only ``pending`` and ``confirmed`` appointments block a slot. The query
    itself is delegated to the store so that a database backed adapter can run
    it next to the data.
    """

    def __init__(self, store: AppointmentStore) -> None:
        self._store = store

    async def is_slot_available(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        available = await self._store.is_time_slot_available(
            business_id, start, end, exclude_id
        )
        logger.debug(
            "Slot %s - %s for business %s available=%s (excluding %s)",
            start.isoformat(),
            end.isoformat(),
            business_id,
            available,
            exclude_id,
        )
        return available
