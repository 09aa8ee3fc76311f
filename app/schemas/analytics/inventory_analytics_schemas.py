# app/schemas/analytics/inventory_analytics_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
import datetime as dt
from datetime import date, datetime

from app.constants.inventory import InventoryType
from app.constants.inventory_movement_type import MovementKind


class InventoryAnalyticsFilters(BaseModel):
    inventory_type: Optional[InventoryType] = None
    tag_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    include_archived: bool = False
    include_zero_balance: bool = True


# -----------------------------
# CURRENT INVENTORY
# -----------------------------
class CurrentInventoryRow(BaseModel):
    inventory_type: InventoryType
    tag_id: Optional[int]
    tag_key: str
    tag_name: str
    default_unit: Optional[str]
    usable: Optional[bool] = None
    current_balance: Decimal
    item_count: int
    last_activity_date: Optional[date]


class OutOfStockItem(BaseModel):
    inventory_type: InventoryType
    tag_id: Optional[int]
    tag_key: str
    tag_name: str
    default_unit: Optional[str]
    usable: Optional[bool] = None
    current_balance: Decimal
    last_activity_date: Optional[date]


class LowStockItem(OutOfStockItem):
    threshold_quantity: Decimal
    shortage_amount: Decimal


# -----------------------------
# CONSUMPTION
# -----------------------------
class ConsumptionSummaryRow(BaseModel):
    inventory_type: InventoryType
    tag_id: Optional[int]
    tag_key: str
    tag_name: str
    date: dt.date
    total_consumed: Decimal
    total_wasted: Decimal
    transaction_count: int
    consumption_transactions: int
    waste_transactions: int


class ConsumptionDetailRow(BaseModel):
    movement_id: int
    lot_id: int
    lot_code: str
    lot_name: str
    kind: MovementKind
    quantity: Decimal
    unit: str
    recorded_at: datetime


class InventoryMetrics(BaseModel):
    total_items: int
    total_balance: Decimal
    out_of_stock_count: int
    low_stock_count: int
    total_consumed: Decimal
    total_wasted: Decimal
    waste_percentage: Decimal
    average_consumption_rate: Decimal


# -----------------------------
# THRESHOLDS
# -----------------------------
class LowStockThresholdSet(BaseModel):
    threshold_quantity: Decimal = Field(ge=0)


class LowStockThresholdOut(BaseModel):
    tag_id: int
    inventory_type: InventoryType
    threshold_quantity: Decimal
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
