# app/schemas/inventory/movement_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime

from app.constants.inventory import InventoryType
from app.constants.inventory_movement_type import MovementKind
from app.schemas.inventory.lot_schemas import LotOut


class MovementCreate(BaseModel):
    kind: MovementKind
    quantity: Decimal
    movement_date: Optional[date] = None
    tag_id: Optional[int] = None
    reference_type: Optional[str] = Field(default=None, max_length=50)
    reference_id: Optional[int] = None
    notes: Optional[str] = None


class MovementOut(BaseModel):
    id: int
    lot_id: int
    tag_id: Optional[int]
    inventory_type: InventoryType
    movement_date: date
    kind: MovementKind
    quantity: Decimal
    unit_key: str
    reference_type: Optional[str]
    reference_id: Optional[int]
    notes: Optional[str]
    recorded_at: datetime
    created_by: Optional[int]

    class Config:
        from_attributes = True


class MovementResult(BaseModel):
    lot: LotOut
    movement: MovementOut


class MovementHistoryRow(MovementOut):
    running_balance: Decimal


class MovementHistoryData(BaseModel):
    lot_id: int
    quantity_received: Decimal
    items: List[MovementHistoryRow]
