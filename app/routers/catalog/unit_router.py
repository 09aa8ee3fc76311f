# app/routers/catalog/unit_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.unit_schemas import UnitCreate, UnitUpdate, UnitOut, UnitListData
from app.services.catalog.unit_service import create_unit, list_units, get_unit, update_unit
from app.constants.inventory import InventoryType
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/units", tags=["Units"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[UnitOut])
async def create_unit_api(
    payload: UnitCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create unit", extra={"unit_key": payload.unit_key})
    unit = await create_unit(db, payload, user)
    return success_response("Unit created successfully", unit)


@router.get("/", response_model=APIResponse[UnitListData])
async def list_units_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
    inventory_type: InventoryType | None = Query(None),
    active_only: bool = Query(False),
):
    data = await list_units(
        db,
        inventory_type=inventory_type,
        active_only=active_only,
    )
    return success_response("Units fetched successfully", data)


@router.get("/{unit_id}", response_model=APIResponse[UnitOut])
async def get_unit_api(
    unit_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    unit = await get_unit(db, unit_id)
    return success_response("Unit fetched successfully", unit)


@router.patch("/{unit_id}", response_model=APIResponse[UnitOut])
async def update_unit_api(
    unit_id: int,
    payload: UnitUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    unit = await update_unit(db, unit_id, payload, user)
    return success_response("Unit updated successfully", unit)
