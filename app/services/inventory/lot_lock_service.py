# app/services/inventory/lot_lock_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.inventory.production_batch_models import ProductionBatch, batch_lots
from app.schemas.inventory.lot_schemas import LockStatusOut
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def check_lot_lock(db: AsyncSession, lot_id: int) -> LockStatusOut:
    """Locked production batches currently referencing the lot.

    Always a fresh read: guarded mutations call this inside their own
    transaction, right after taking the lot row lock.
    """
    rows = await db.execute(
        select(ProductionBatch.id)
        .join(batch_lots, batch_lots.c.batch_id == ProductionBatch.id)
        .where(
            batch_lots.c.lot_id == lot_id,
            ProductionBatch.is_locked.is_(True),
        )
        .distinct()
        .order_by(ProductionBatch.id)
    )
    batch_ids = list(rows.scalars().all())

    if batch_ids:
        logger.debug("Lot locked", extra={"lot_id": lot_id, "batch_ids": batch_ids})

    return LockStatusOut(
        lot_id=lot_id,
        locked=bool(batch_ids),
        batch_ids=batch_ids,
    )
