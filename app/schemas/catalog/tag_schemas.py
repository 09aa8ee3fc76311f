# app/schemas/catalog/tag_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.constants.inventory import InventoryType


class TagCreate(BaseModel):
    inventory_type: InventoryType
    tag_key: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class TagUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class TagOut(BaseModel):
    id: int
    inventory_type: InventoryType
    tag_key: str
    display_name: str
    description: Optional[str]
    is_active: bool

    created_by: Optional[int]
    updated_by: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class TagListData(BaseModel):
    total: int
    items: List[TagOut]
