# app/schemas/inventory/lot_schemas.py

from pydantic import BaseModel, Field
from typing import Literal, Optional, List, Union
from decimal import Decimal
from datetime import date, datetime

from app.constants.inventory import InventoryType


# ==============================
# CREATE (tagged union on inventory_type)
# ==============================
class _LotCreateBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    tag_ids: List[int] = Field(default_factory=list)
    # Bounds are enforced by the ledger so callers get a field-level error.
    quantity_received: Decimal
    unit_id: int

    lot_code: Optional[str] = Field(default=None, max_length=50)
    idempotency_key: Optional[str] = Field(default=None, max_length=100)

    supplier_id: Optional[int] = None
    received_date: Optional[date] = None
    handover_to_id: Optional[int] = None
    amount_paid: Optional[Decimal] = Field(default=None, ge=0)
    storage_notes: Optional[str] = None
    document_url: Optional[str] = Field(default=None, max_length=500)


class RawMaterialLotCreate(_LotCreateBase):
    inventory_type: Literal["raw_material"]
    usable: bool = True
    condition: Optional[str] = Field(default=None, max_length=100)


class RecurringProductLotCreate(_LotCreateBase):
    inventory_type: Literal["recurring_product"]


class ProducedGoodsLotCreate(_LotCreateBase):
    inventory_type: Literal["produced_goods"]
    batch_name: Optional[str] = Field(default=None, max_length=100)
    production_batch_id: Optional[int] = None


LotCreate = Union[RawMaterialLotCreate, RecurringProductLotCreate, ProducedGoodsLotCreate]


# ==============================
# UPDATE (descriptive fields only)
# ==============================
class LotUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tag_ids: Optional[List[int]] = None
    unit_id: Optional[int] = None

    usable: Optional[bool] = None
    condition: Optional[str] = Field(default=None, max_length=100)
    batch_name: Optional[str] = Field(default=None, max_length=100)

    supplier_id: Optional[int] = None
    received_date: Optional[date] = None
    handover_to_id: Optional[int] = None
    amount_paid: Optional[Decimal] = Field(default=None, ge=0)
    storage_notes: Optional[str] = None
    document_url: Optional[str] = Field(default=None, max_length=500)

    # optimistic locking (optional)
    version: Optional[int] = None

    class Config:
        # quantity_received / quantity_available are rejected here
        extra = "forbid"


# ==============================
# OUTPUT
# ==============================
class LotOut(BaseModel):
    id: int
    lot_code: str
    inventory_type: InventoryType
    name: str

    tag_ids: List[int]
    primary_tag_id: Optional[int]

    quantity_received: Decimal
    quantity_available: Decimal
    unit_id: int
    unit_key: str
    allows_decimal: bool

    usable: Optional[bool] = None
    condition: Optional[str] = None
    batch_name: Optional[str] = None
    production_batch_id: Optional[int] = None
    quantity_created: Optional[Decimal] = None

    supplier_id: Optional[int]
    received_date: Optional[date]
    handover_to_id: Optional[int]
    amount_paid: Optional[Decimal]
    storage_notes: Optional[str]
    document_url: Optional[str]

    is_archived: bool
    version: int

    created_by: Optional[int]
    updated_by: Optional[int]
    created_by_name: Optional[str] = None
    updated_by_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime]


class LotListData(BaseModel):
    total: int
    items: List[LotOut]


class LockStatusOut(BaseModel):
    lot_id: int
    locked: bool
    batch_ids: List[int]
