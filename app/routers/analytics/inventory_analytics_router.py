# app/routers/analytics/inventory_analytics_router.py

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import ValidationError
from app.schemas.analytics.inventory_analytics_schemas import (
    InventoryAnalyticsFilters,
    CurrentInventoryRow,
    OutOfStockItem,
    LowStockItem,
    ConsumptionSummaryRow,
    ConsumptionDetailRow,
    InventoryMetrics,
    LowStockThresholdSet,
    LowStockThresholdOut,
)
from app.services.analytics.inventory_analytics_service import (
    current_inventory_by_tag,
    out_of_stock_items,
    low_stock_items,
    consumption_summary,
    consumption_detail,
    inventory_metrics,
    month_window,
    clamp_month,
)
from app.services.analytics.low_stock_threshold_service import (
    list_low_stock_thresholds,
    set_low_stock_threshold,
    delete_low_stock_threshold,
)
from app.constants.inventory import InventoryType
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response

router = APIRouter(
    prefix="/analytics/inventory",
    tags=["Inventory Analytics"],
)


def analytics_filters(
    inventory_type: InventoryType | None = Query(None),
    tag_id: int | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    month: str | None = Query(None, description="YYYY-MM, overrides start/end dates"),
    include_archived: bool = Query(False),
    include_zero_balance: bool = Query(True),
) -> InventoryAnalyticsFilters:
    if month:
        start_date, end_date = resolve_month(month)

    return InventoryAnalyticsFilters(
        inventory_type=inventory_type,
        tag_id=tag_id,
        start_date=start_date,
        end_date=end_date,
        include_archived=include_archived,
        include_zero_balance=include_zero_balance,
    )


def resolve_month(month: str) -> tuple[date, date]:
    try:
        year_part, month_part = month.split("-")
        year, month_number = int(year_part), int(month_part)
    except ValueError:
        raise ValidationError("Month must be formatted as YYYY-MM", field="month")

    year, month_number = clamp_month(year, month_number)
    return month_window(year, month_number)


# =========================
# CURRENT INVENTORY
# =========================
@router.get("/current", response_model=APIResponse[list[CurrentInventoryRow]])
async def current_inventory_api(
    filters: InventoryAnalyticsFilters = Depends(analytics_filters),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    if not filters.inventory_type:
        raise ValidationError("inventory_type is required", field="inventory_type")

    rows = await current_inventory_by_tag(db, filters.inventory_type, filters)
    return success_response("Current inventory fetched successfully", rows)


# =========================
# STOCK ALERTS
# =========================
@router.get("/out-of-stock", response_model=APIResponse[list[OutOfStockItem]])
async def out_of_stock_api(
    filters: InventoryAnalyticsFilters = Depends(analytics_filters),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    items = await out_of_stock_items(db, filters)
    return success_response("Out of stock items fetched successfully", items)


@router.get("/low-stock", response_model=APIResponse[list[LowStockItem]])
async def low_stock_api(
    filters: InventoryAnalyticsFilters = Depends(analytics_filters),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    items = await low_stock_items(db, filters)
    return success_response("Low stock items fetched successfully", items)


# =========================
# CONSUMPTION
# =========================
@router.get("/consumption", response_model=APIResponse[list[ConsumptionSummaryRow]])
async def consumption_summary_api(
    filters: InventoryAnalyticsFilters = Depends(analytics_filters),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    if not filters.inventory_type:
        raise ValidationError("inventory_type is required", field="inventory_type")
    if not (filters.start_date and filters.end_date):
        raise ValidationError("A date range or month is required", field="start_date")

    rows = await consumption_summary(
        db,
        filters.inventory_type,
        filters.start_date,
        filters.end_date,
        tag_id=filters.tag_id,
    )
    return success_response("Consumption summary fetched successfully", rows)


@router.get("/consumption/detail", response_model=APIResponse[list[ConsumptionDetailRow]])
async def consumption_detail_api(
    inventory_type: InventoryType = Query(...),
    tag_id: int | None = Query(None, description="Omit for the untagged pool"),
    on_date: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    rows = await consumption_detail(db, inventory_type, tag_id, on_date)
    return success_response("Consumption detail fetched successfully", rows)


# =========================
# METRICS
# =========================
@router.get("/metrics", response_model=APIResponse[InventoryMetrics])
async def metrics_api(
    filters: InventoryAnalyticsFilters = Depends(analytics_filters),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    metrics = await inventory_metrics(db, filters)
    return success_response("Inventory metrics fetched successfully", metrics)


# =========================
# THRESHOLDS
# =========================
@router.get("/thresholds", response_model=APIResponse[list[LowStockThresholdOut]])
async def list_thresholds_api(
    inventory_type: InventoryType | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    thresholds = await list_low_stock_thresholds(db, inventory_type)
    return success_response("Low stock thresholds fetched successfully", thresholds)


@router.put("/thresholds/{tag_id}", response_model=APIResponse[LowStockThresholdOut])
async def set_threshold_api(
    tag_id: int,
    payload: LowStockThresholdSet,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    threshold = await set_low_stock_threshold(db, tag_id, payload.threshold_quantity, user)
    return success_response("Low stock threshold saved successfully", threshold)


@router.delete("/thresholds/{tag_id}", response_model=APIResponse)
async def delete_threshold_api(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    await delete_low_stock_threshold(db, tag_id, user)
    return success_response("Low stock threshold removed successfully", {"tag_id": tag_id})
