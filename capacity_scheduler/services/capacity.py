from __future__ import annotations

import logging

from capacity_scheduler.schemas.business import (
    BusinessProfile,
    OtherDetails,
    RestaurantDetails,
    RetailDetails,
    ServiceDetails,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50
RETAIL_MIN_CAPACITY = 10
RETAIL_MAX_CAPACITY = 200
RETAIL_ITEMS_PER_SLOT = 10


class CapacityResolver:
    """Derive the scalar daily capacity of a business from its detail record.

    Capacity is advisory, so a missing or unreadable detail record resolves to
    the default instead of failing the caller.
    """

    def __init__(self, default_capacity: int = DEFAULT_CAPACITY) -> None:
        self._default = default_capacity

    @property
    def default_capacity(self) -> int:
        return self._default

    def resolve_total_capacity(self, business: BusinessProfile | None) -> int:
        if business is None or business.details is None:
            return self._default

        details = business.details
        try:
            if isinstance(details, RestaurantDetails):
                return details.seating_capacity or self._default
            if isinstance(details, RetailDetails):
                if not details.inventory_size:
                    return self._default
                slots = details.inventory_size // RETAIL_ITEMS_PER_SLOT
                return min(RETAIL_MAX_CAPACITY, max(RETAIL_MIN_CAPACITY, slots))
            if isinstance(details, ServiceDetails):
                return self._default
            if isinstance(details, OtherDetails):
                logger.debug(
                    "Business %s has type '%s' without capacity data; using default",
                    business.business_id,
                    details.declared_type,
                )
                return self._default
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Could not derive capacity for business %s: %s", business.business_id, exc
            )
            return self._default

        raise TypeError(f"Unhandled business detail record: {type(details).__name__}")
