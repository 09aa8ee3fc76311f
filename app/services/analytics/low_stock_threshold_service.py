# app/services/analytics/low_stock_threshold_service.py

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.analytics.low_stock_threshold_models import LowStockThreshold
from app.models.catalog.tag_models import Tag
from app.schemas.analytics.inventory_analytics_schemas import LowStockThresholdOut
from app.constants.inventory import InventoryType
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import NotFoundError, ValidationError
from app.utils.activity_helpers import emit_activity


async def _get_tag_or_404(db: AsyncSession, tag_id: int) -> Tag:
    tag = await db.get(Tag, tag_id)
    if not tag:
        raise NotFoundError("Tag", tag_id)
    return tag


# ---------------- LIST ----------------
async def list_low_stock_thresholds(
    db: AsyncSession,
    inventory_type: InventoryType | None = None,
) -> list[LowStockThresholdOut]:
    query = select(LowStockThreshold).order_by(LowStockThreshold.tag_id.asc())
    if inventory_type:
        query = query.where(LowStockThreshold.inventory_type == inventory_type.value)

    rows = await db.execute(query)
    return [LowStockThresholdOut.model_validate(t) for t in rows.unique().scalars().all()]


# ---------------- UPSERT ----------------
async def set_low_stock_threshold(
    db: AsyncSession,
    tag_id: int,
    threshold_quantity: Decimal,
    user,
) -> LowStockThresholdOut:
    if threshold_quantity < 0:
        raise ValidationError("Threshold cannot be negative", field="threshold_quantity")

    tag = await _get_tag_or_404(db, tag_id)

    threshold = await db.scalar(
        select(LowStockThreshold).where(LowStockThreshold.tag_id == tag_id)
    )
    if threshold:
        threshold.threshold_quantity = threshold_quantity
        threshold.updated_by_id = user.id
    else:
        threshold = LowStockThreshold(
            inventory_type=tag.inventory_type,
            tag_id=tag_id,
            threshold_quantity=threshold_quantity,
            created_by_id=user.id,
            updated_by_id=user.id,
        )
        db.add(threshold)

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.SET_LOW_STOCK_THRESHOLD,
        target_name=tag.display_name,
        threshold=threshold_quantity,
    )

    await db.commit()
    await db.refresh(threshold)
    return LowStockThresholdOut.model_validate(threshold)


# ---------------- DELETE ----------------
async def delete_low_stock_threshold(db: AsyncSession, tag_id: int, user) -> None:
    tag = await _get_tag_or_404(db, tag_id)

    threshold = await db.scalar(
        select(LowStockThreshold).where(LowStockThreshold.tag_id == tag_id)
    )
    if not threshold:
        raise NotFoundError("Low stock threshold", tag_id)

    await db.delete(threshold)

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.DELETE_LOW_STOCK_THRESHOLD,
        target_name=tag.display_name,
    )

    await db.commit()
