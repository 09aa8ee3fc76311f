# app/services/analytics/inventory_analytics_service.py

import time
from calendar import monthrange
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case

from app.models.inventory.lot_models import Lot, lot_tags
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.catalog.tag_models import Tag
from app.models.catalog.unit_models import Unit
from app.models.analytics.low_stock_threshold_models import LowStockThreshold
from app.schemas.analytics.inventory_analytics_schemas import (
    InventoryAnalyticsFilters,
    CurrentInventoryRow,
    OutOfStockItem,
    LowStockItem,
    ConsumptionSummaryRow,
    ConsumptionDetailRow,
    InventoryMetrics,
)
from app.constants.inventory import InventoryType
from app.constants.inventory_movement_type import MovementKind
from app.core.config import LOW_STOCK_DEFAULT_THRESHOLD
from app.core.exceptions import NotFoundError, ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")
DEFAULT_RATE_DAYS = 30

# lots without tags (produced goods may have none) report under this pool
UNTAGGED_KEY = "untagged"
UNTAGGED_NAME = "Untagged"


# =====================================================
# WINDOWS
# =====================================================
def month_window(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def clamp_month(year: int, month: int, today: date | None = None) -> tuple[int, int]:
    """Future months collapse to the current month."""
    today = today or date.today()
    if (year, month) > (today.year, today.month):
        return today.year, today.month
    return year, month


def _check_range(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date", field="start_date")


def _inventory_types(inventory_type: InventoryType | None) -> list[InventoryType]:
    return [inventory_type] if inventory_type else list(InventoryType)


# =====================================================
# CURRENT INVENTORY
# =====================================================
async def current_inventory_by_tag(
    db: AsyncSession,
    inventory_type: InventoryType,
    filters: InventoryAnalyticsFilters | None = None,
) -> list[CurrentInventoryRow]:
    """Per-tag balances over the lots of one inventory type.

    A lot carrying several tags counts toward each of them. Raw materials
    split into usable/unusable pools. Active tags with no lots show as zero.
    """
    t0 = time.perf_counter()
    filters = filters or InventoryAnalyticsFilters()
    split_usable = inventory_type == InventoryType.RAW_MATERIAL

    lot_filters = [Lot.inventory_type == inventory_type.value]
    if not filters.include_archived:
        lot_filters.append(Lot.is_archived.is_(False))
    if filters.tag_id is not None:
        lot_filters.append(lot_tags.c.tag_id == filters.tag_id)

    pool_cols = [lot_tags.c.tag_id]
    if split_usable:
        pool_cols.append(func.coalesce(Lot.__table__.c.usable, True).label("usable"))

    # -------------------------------------------------
    # BALANCES PER TAG / POOL
    # -------------------------------------------------
    balance_rows = await db.execute(
        select(
            *pool_cols,
            func.sum(Lot.quantity_available).label("balance"),
            func.count(Lot.id).label("item_count"),
            func.max(Lot.received_date).label("last_received"),
            func.max(Unit.unit_key).label("default_unit"),
        )
        .select_from(Lot)
        .outerjoin(lot_tags, lot_tags.c.lot_id == Lot.id)
        .join(Unit, Unit.id == Lot.unit_id)
        .where(*lot_filters)
        .group_by(*pool_cols)
    )

    # -------------------------------------------------
    # LAST MOVEMENT PER TAG / POOL
    # -------------------------------------------------
    movement_rows = await db.execute(
        select(
            *pool_cols,
            func.max(InventoryMovement.movement_date).label("last_movement"),
        )
        .select_from(InventoryMovement)
        .join(Lot, Lot.id == InventoryMovement.lot_id)
        .outerjoin(lot_tags, lot_tags.c.lot_id == Lot.id)
        .where(*lot_filters)
        .group_by(*pool_cols)
    )

    def pool_key(row):
        return (row.tag_id, bool(row.usable) if split_usable else None)

    pools = {pool_key(r): r for r in balance_rows.all()}
    last_movements = {pool_key(r): r.last_movement for r in movement_rows.all()}

    tag_filters = [Tag.inventory_type == inventory_type.value]
    if filters.tag_id is not None:
        tag_filters.append(Tag.id == filters.tag_id)

    tags = (
        await db.execute(
            select(Tag).where(*tag_filters).order_by(Tag.display_name.asc(), Tag.id.asc())
        )
    ).scalars().all()

    results: list[CurrentInventoryRow] = []
    for tag in tags:
        keys = [k for k in pools if k[0] == tag.id]
        # usable pool before unusable
        keys.sort(key=lambda k: k[1] is False)

        if not keys:
            if not tag.is_active:
                continue
            results.append(
                CurrentInventoryRow(
                    inventory_type=inventory_type,
                    tag_id=tag.id,
                    tag_key=tag.tag_key,
                    tag_name=tag.display_name,
                    default_unit=None,
                    usable=True if split_usable else None,
                    current_balance=ZERO,
                    item_count=0,
                    last_activity_date=None,
                )
            )
            continue

        for key in keys:
            pool = pools[key]
            activity = [d for d in (pool.last_received, last_movements.get(key)) if d]
            results.append(
                CurrentInventoryRow(
                    inventory_type=inventory_type,
                    tag_id=tag.id,
                    tag_key=tag.tag_key,
                    tag_name=tag.display_name,
                    default_unit=pool.default_unit,
                    usable=key[1],
                    current_balance=pool.balance if pool.balance is not None else ZERO,
                    item_count=pool.item_count,
                    last_activity_date=max(activity) if activity else None,
                )
            )

    untagged = [k for k in pools if k[0] is None]
    untagged.sort(key=lambda k: k[1] is False)
    for key in untagged:
        pool = pools[key]
        activity = [d for d in (pool.last_received, last_movements.get(key)) if d]
        results.append(
            CurrentInventoryRow(
                inventory_type=inventory_type,
                tag_id=None,
                tag_key=UNTAGGED_KEY,
                tag_name=UNTAGGED_NAME,
                default_unit=pool.default_unit,
                usable=key[1],
                current_balance=pool.balance if pool.balance is not None else ZERO,
                item_count=pool.item_count,
                last_activity_date=max(activity) if activity else None,
            )
        )

    if not filters.include_zero_balance:
        results = [r for r in results if r.current_balance != 0]

    logger.info(
        "[ANALYTICS] current inventory",
        extra={
            "inventory_type": inventory_type.value,
            "rows": len(results),
            "t_total": round(time.perf_counter() - t0, 4),
        },
    )
    return results


async def _all_current_rows(
    db: AsyncSession,
    filters: InventoryAnalyticsFilters,
) -> list[CurrentInventoryRow]:
    scoped = filters.model_copy(update={"include_zero_balance": True})
    rows: list[CurrentInventoryRow] = []
    for inventory_type in _inventory_types(filters.inventory_type):
        rows.extend(await current_inventory_by_tag(db, inventory_type, scoped))
    return rows


# =====================================================
# STOCK ALERTS
# =====================================================
async def out_of_stock_items(
    db: AsyncSession,
    filters: InventoryAnalyticsFilters | None = None,
) -> list[OutOfStockItem]:
    filters = filters or InventoryAnalyticsFilters()
    rows = await _all_current_rows(db, filters)

    items = [
        OutOfStockItem(**r.model_dump(exclude={"item_count"}))
        for r in rows
        if r.current_balance == 0
    ]
    items.sort(key=lambda i: (i.tag_name.lower(), i.tag_id or 0))
    return items


async def _threshold_map(
    db: AsyncSession,
    inventory_types: list[InventoryType],
) -> dict[int, Decimal]:
    rows = await db.execute(
        select(LowStockThreshold.tag_id, LowStockThreshold.threshold_quantity).where(
            LowStockThreshold.inventory_type.in_([t.value for t in inventory_types])
        )
    )
    return {r.tag_id: r.threshold_quantity for r in rows.all()}


async def low_stock_items(
    db: AsyncSession,
    filters: InventoryAnalyticsFilters | None = None,
) -> list[LowStockItem]:
    """Pools strictly between zero and their threshold, largest shortage first."""
    filters = filters or InventoryAnalyticsFilters()
    rows = await _all_current_rows(db, filters)
    thresholds = await _threshold_map(db, _inventory_types(filters.inventory_type))
    default = Decimal(LOW_STOCK_DEFAULT_THRESHOLD)

    items: list[LowStockItem] = []
    for r in rows:
        threshold = thresholds.get(r.tag_id, default)
        if 0 < r.current_balance < threshold:
            items.append(
                LowStockItem(
                    **r.model_dump(exclude={"item_count"}),
                    threshold_quantity=threshold,
                    shortage_amount=threshold - r.current_balance,
                )
            )

    items.sort(key=lambda i: (-i.shortage_amount, i.tag_name.lower(), i.tag_id or 0))
    return items


# =====================================================
# CONSUMPTION
# =====================================================
async def consumption_summary(
    db: AsyncSession,
    inventory_type: InventoryType,
    start_date: date | None,
    end_date: date | None,
    *,
    tag_id: int | None = None,
) -> list[ConsumptionSummaryRow]:
    """Per tag per day totals, both ends of the window inclusive."""
    _check_range(start_date, end_date)

    is_consumption = InventoryMovement.kind == MovementKind.CONSUMPTION.value
    is_waste = InventoryMovement.kind == MovementKind.WASTE.value

    conditions = [InventoryMovement.inventory_type == inventory_type.value]
    if start_date:
        conditions.append(InventoryMovement.movement_date >= start_date)
    if end_date:
        conditions.append(InventoryMovement.movement_date <= end_date)
    if tag_id is not None:
        conditions.append(InventoryMovement.tag_id == tag_id)

    rows = await db.execute(
        select(
            InventoryMovement.tag_id,
            Tag.tag_key,
            Tag.display_name,
            InventoryMovement.movement_date,
            func.sum(case((is_consumption, InventoryMovement.quantity), else_=0)).label("consumed"),
            func.sum(case((is_waste, InventoryMovement.quantity), else_=0)).label("wasted"),
            func.count(InventoryMovement.id).label("transaction_count"),
            func.sum(case((is_consumption, 1), else_=0)).label("consumption_transactions"),
            func.sum(case((is_waste, 1), else_=0)).label("waste_transactions"),
        )
        .select_from(InventoryMovement)
        .outerjoin(Tag, Tag.id == InventoryMovement.tag_id)
        .where(*conditions)
        .group_by(InventoryMovement.tag_id, Tag.tag_key, Tag.display_name, InventoryMovement.movement_date)
        .order_by(
            InventoryMovement.movement_date.asc(),
            Tag.display_name.asc(),
            InventoryMovement.tag_id.asc(),
        )
    )

    return [
        ConsumptionSummaryRow(
            inventory_type=inventory_type,
            tag_id=r.tag_id,
            tag_key=r.tag_key or UNTAGGED_KEY,
            tag_name=r.display_name or UNTAGGED_NAME,
            date=r.movement_date,
            total_consumed=Decimal(r.consumed or 0),
            total_wasted=Decimal(r.wasted or 0),
            transaction_count=r.transaction_count,
            consumption_transactions=int(r.consumption_transactions or 0),
            waste_transactions=int(r.waste_transactions or 0),
        )
        for r in rows.all()
    ]


async def consumption_detail(
    db: AsyncSession,
    inventory_type: InventoryType,
    tag_id: int | None,
    on_date: date,
) -> list[ConsumptionDetailRow]:
    """Movement rows behind one summary cell; ``tag_id=None`` is the untagged pool."""
    if tag_id is None:
        tag_condition = InventoryMovement.tag_id.is_(None)
    else:
        if not await db.get(Tag, tag_id):
            raise NotFoundError("Tag", tag_id)
        tag_condition = InventoryMovement.tag_id == tag_id

    rows = await db.execute(
        select(
            InventoryMovement.id,
            InventoryMovement.lot_id,
            Lot.lot_code,
            Lot.name,
            InventoryMovement.kind,
            InventoryMovement.quantity,
            InventoryMovement.unit_key,
            InventoryMovement.recorded_at,
        )
        .join(Lot, Lot.id == InventoryMovement.lot_id)
        .where(
            InventoryMovement.inventory_type == inventory_type.value,
            tag_condition,
            InventoryMovement.movement_date == on_date,
        )
        .order_by(InventoryMovement.recorded_at.asc(), InventoryMovement.id.asc())
    )

    return [
        ConsumptionDetailRow(
            movement_id=r.id,
            lot_id=r.lot_id,
            lot_code=r.lot_code,
            lot_name=r.name,
            kind=r.kind,
            quantity=r.quantity,
            unit=r.unit_key,
            recorded_at=r.recorded_at,
        )
        for r in rows.all()
    ]


# =====================================================
# METRICS
# =====================================================
async def inventory_metrics(
    db: AsyncSession,
    filters: InventoryAnalyticsFilters | None = None,
) -> InventoryMetrics:
    filters = filters or InventoryAnalyticsFilters()
    _check_range(filters.start_date, filters.end_date)

    rows = await _all_current_rows(db, filters)
    if not filters.include_zero_balance:
        counted = [r for r in rows if r.current_balance != 0]
    else:
        counted = rows

    out_of_stock = await out_of_stock_items(db, filters)
    low_stock = await low_stock_items(db, filters)

    total_consumed = ZERO
    total_wasted = ZERO
    for inventory_type in _inventory_types(filters.inventory_type):
        summary = await consumption_summary(
            db,
            inventory_type,
            filters.start_date,
            filters.end_date,
            tag_id=filters.tag_id,
        )
        for s in summary:
            total_consumed += s.total_consumed
            total_wasted += s.total_wasted

    drawn = total_consumed + total_wasted
    waste_percentage = (
        (total_wasted / drawn * 100).quantize(Decimal("0.01")) if drawn else ZERO
    )

    if filters.start_date and filters.end_date:
        days = (filters.end_date - filters.start_date).days + 1
    else:
        days = DEFAULT_RATE_DAYS
    average_rate = (total_consumed / days).quantize(Decimal("0.001"))

    return InventoryMetrics(
        total_items=len(counted),
        total_balance=sum((r.current_balance for r in counted), ZERO),
        out_of_stock_count=len(out_of_stock),
        low_stock_count=len(low_stock),
        total_consumed=total_consumed,
        total_wasted=total_wasted,
        waste_percentage=waste_percentage,
        average_consumption_rate=average_rate,
    )
