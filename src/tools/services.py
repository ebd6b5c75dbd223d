"""Service catalog with prices, durations and descriptions.

Durations here are authoritative: booking tools read them instead of
assuming a default length.
"""

import logging
from typing import Optional, TypedDict

from src.scheduling.store import InMemorySchedulingStore

logger = logging.getLogger(__name__)


class IncompatibleService(TypedDict):
    """A service whose duration does not divide evenly into slots."""

    id: str
    name: str
    duration_minutes: int
    slot_size_minutes: int


SERVICE_CATALOG: dict[str, dict] = {
    "haircut": {
        "name": "Haircut",
        "description": "Wash, cut and finish for any hair length.",
        "price_range": "R$ 60 - R$ 120",
        "duration_minutes": 30,
    },
    "hair coloring": {
        "name": "Hair Coloring",
        "description": "Full color, highlights or root touch-up, including toner.",
        "price_range": "R$ 180 - R$ 450",
        "duration_minutes": 90,
    },
    "manicure": {
        "name": "Manicure",
        "description": "Nail shaping, cuticle care and polish.",
        "price_range": "R$ 40 - R$ 70",
        "duration_minutes": 45,
    },
    "beard trim": {
        "name": "Beard Trim",
        "description": "Beard shaping with hot towel and razor finish.",
        "price_range": "R$ 35 - R$ 50",
        "duration_minutes": 20,
    },
    "blow dry": {
        "name": "Blow Dry",
        "description": "Wash and blow dry styling.",
        "price_range": "R$ 50 - R$ 90",
        "duration_minutes": 40,
    },
    "massage": {
        "name": "Relaxing Massage",
        "description": "Full body relaxing massage.",
        "price_range": "R$ 150 - R$ 220",
        "duration_minutes": 60,
    },
}


def get_all_services() -> list[dict]:
    """Return all services with basic info."""
    return [
        {
            "id": sid,
            "name": info["name"],
            "price_range": info["price_range"],
            "duration_minutes": info["duration_minutes"],
        }
        for sid, info in SERVICE_CATALOG.items()
    ]


def get_service_duration(service_id: str) -> Optional[int]:
    """Duration in minutes from the catalog, or None for unknown services."""
    info = SERVICE_CATALOG.get(service_id)
    return info["duration_minutes"] if info else None


def find_incompatible_services(
    slot_size_minutes: int, catalog: Optional[dict[str, dict]] = None
) -> list[IncompatibleService]:
    """Services whose duration is not a multiple of the slot size.

    Such services still book correctly (they round up to whole slots) but
    leave idle time at the end of every appointment, so the dashboard
    warns about them.
    """
    catalog = SERVICE_CATALOG if catalog is None else catalog
    incompatible: list[IncompatibleService] = []
    for sid, info in catalog.items():
        duration = info.get("duration_minutes")
        if duration and duration > 0 and duration % slot_size_minutes != 0:
            incompatible.append({
                "id": sid,
                "name": info.get("name", sid),
                "duration_minutes": duration,
                "slot_size_minutes": slot_size_minutes,
            })
    if incompatible:
        logger.debug(
            "%d services do not fit a %d minute slot", len(incompatible), slot_size_minutes
        )
    return incompatible


def register_catalog(store: InMemorySchedulingStore) -> None:
    """Load every catalog duration into ``store``."""
    for sid, info in SERVICE_CATALOG.items():
        store.set_service_duration(sid, info["duration_minutes"])
