# app/services/inventory/lot_code_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.inventory.lot_models import Lot
from app.constants.inventory import InventoryType, LOT_CODE_PREFIXES, LOT_CODE_MIN_DIGITS


def format_lot_code(inventory_type: InventoryType, number: int) -> str:
    prefix = LOT_CODE_PREFIXES[inventory_type]
    return f"{prefix}{number:0{LOT_CODE_MIN_DIGITS}d}"


def next_lot_number(prefix: str, codes: list[str]) -> int:
    """Highest numeric suffix + 1; codes with non-numeric suffixes are ignored."""
    numbers = [
        int(code[len(prefix):])
        for code in codes
        if code.startswith(prefix) and code[len(prefix):].isdigit()
    ]
    return max(numbers) + 1 if numbers else 0


async def next_lot_code(db: AsyncSession, inventory_type: InventoryType) -> str:
    prefix = LOT_CODE_PREFIXES[inventory_type]

    rows = await db.execute(
        select(Lot.lot_code).where(Lot.lot_code.like(f"{prefix}%"))
    )
    number = next_lot_number(prefix, list(rows.scalars().all()))

    return format_lot_code(inventory_type, number)
