"""Service package public API definitions.

Implementations are imported lazily. ``capacity_scheduler.clients.store``
imports ``capacity_scheduler.services.exceptions``, which executes this module
first; importing the scheduler eagerly here would pull the store adapters back
in and create a circular import.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AppointmentScheduler",
    "CapacityResolver",
    "OverlapOracle",
    "TTLCache",
]

_SERVICE_MODULES = {
    "AppointmentScheduler": "scheduler",
    "CapacityResolver": "capacity",
    "OverlapOracle": "overlap",
    "TTLCache": "cache",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .cache import TTLCache as TTLCache
    from .capacity import CapacityResolver as CapacityResolver
    from .overlap import OverlapOracle as OverlapOracle
    from .scheduler import AppointmentScheduler as AppointmentScheduler
