# app/constants/inventory.py

from decimal import Decimal
from enum import Enum


class InventoryType(str, Enum):
    RAW_MATERIAL = "raw_material"
    RECURRING_PRODUCT = "recurring_product"
    PRODUCED_GOODS = "produced_goods"


# Lots at or below this available quantity may be archived.
ARCHIVE_MAX_QUANTITY = Decimal("5")

LOT_CODE_PREFIXES = {
    InventoryType.RAW_MATERIAL: "LOT-RM-",
    InventoryType.RECURRING_PRODUCT: "LOT-RP-",
    InventoryType.PRODUCED_GOODS: "LOT-PG-",
}
LOT_CODE_MIN_DIGITS = 3

# Types whose lots must carry at least one tag.
TAG_REQUIRED_TYPES = {
    InventoryType.RAW_MATERIAL,
    InventoryType.RECURRING_PRODUCT,
}
