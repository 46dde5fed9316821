from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

KNOWN_BUSINESS_TYPES = ("restaurant", "retail", "service")


class RestaurantDetails(BaseModel):
    type: Literal["restaurant"] = "restaurant"
    seating_capacity: Optional[int] = None


class RetailDetails(BaseModel):
    type: Literal["retail"] = "retail"
    inventory_size: Optional[int] = None


class ServiceDetails(BaseModel):
    type: Literal["service"] = "service"


class OtherDetails(BaseModel):
    """Details for a business whose type carries no capacity information."""

    type: Literal["other"] = "other"
    declared_type: Optional[str] = None


BusinessDetails = Annotated[
    Union[RestaurantDetails, RetailDetails, ServiceDetails, OtherDetails],
    Field(discriminator="type"),
]


class BusinessProfile(BaseModel):
    """A tenant together with its type-specific detail record.

    Stores usually hand back a flat mapping such as
    ``{"id": "r1", "type": "restaurant", "seating_capacity": 40}``; the
    ``before`` validator folds the type specific keys into ``details`` so the
    rest of the code can match on the detail variant instead of the type string.
    """

    business_id: str
    name: Optional[str] = None
    type: str = "other"
    timezone: Optional[str] = None
    details: Optional[BusinessDetails] = None

    @model_validator(mode="before")
    @classmethod
    def nest_details(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        data = dict(value)
        if "business_id" not in data and "id" in data:
            data["business_id"] = data.pop("id")
        if data.get("business_id") is not None:
            data["business_id"] = str(data["business_id"])

        declared = str(data.get("type") or "other").strip().lower()
        data["type"] = declared

        details = data.get("details")
        if details is None:
            details = {
                key: data.pop(key)
                for key in ("seating_capacity", "inventory_size")
                if key in data
            }
            data["details"] = details
        if isinstance(details, dict) and "type" not in details:
            if declared in KNOWN_BUSINESS_TYPES:
                details = {**details, "type": declared}
            else:
                details = {"type": "other", "declared_type": declared}
            data["details"] = details
        return data

    @field_validator("details", mode="wrap")
    @classmethod
    def drop_unreadable_details(cls, value: Any, handler) -> Any:
        try:
            return handler(value)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable business details %r: %s", value, exc)
            return None
