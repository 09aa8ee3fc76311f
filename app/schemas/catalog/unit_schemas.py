# app/schemas/catalog/unit_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.constants.inventory import InventoryType


class UnitCreate(BaseModel):
    inventory_type: InventoryType
    unit_key: str = Field(min_length=1, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    allows_decimal: bool = False
    is_active: bool = True


class UnitUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    allows_decimal: Optional[bool] = None
    is_active: Optional[bool] = None


class UnitOut(BaseModel):
    id: int
    inventory_type: InventoryType
    unit_key: str
    display_name: str
    description: Optional[str]
    allows_decimal: bool
    is_active: bool

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class UnitListData(BaseModel):
    total: int
    items: List[UnitOut]
