# app/constants/inventory_movement_type.py

from enum import Enum


class MovementKind(str, Enum):
    """Drawdowns against a lot's available quantity."""

    CONSUMPTION = "CONSUMPTION"
    WASTE = "WASTE"


ALLOWED_REFERENCE_TYPES = {
    "PRODUCTION_BATCH",
    "WASTE_RECORD",
    "ORDER",
    "ADJUSTMENT",
}
