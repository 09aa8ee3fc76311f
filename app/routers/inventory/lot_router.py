# app/routers/inventory/lot_router.py

from datetime import date

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.inventory.lot_schemas import (
    LotCreate,
    LotUpdate,
    LotOut,
    LotListData,
    LockStatusOut,
)
from app.schemas.inventory.movement_schemas import (
    MovementCreate,
    MovementResult,
    MovementHistoryData,
)
from app.services.inventory.lot_service import (
    create_lot,
    list_lots,
    get_lot,
    get_lot_lock_status,
    update_lot,
    archive_lot,
    unarchive_lot,
    delete_lot,
)
from app.services.inventory.inventory_movement_service import (
    apply_movement,
    list_lot_movements,
)
from app.constants.inventory import InventoryType
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/lots", tags=["Lots"])
logger = get_logger(__name__)


# =========================
# CREATE
# =========================
@router.post("/", response_model=APIResponse[LotOut])
async def create_lot_api(
    payload: LotCreate = Body(..., discriminator="inventory_type"),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info(
        "Create lot",
        extra={"inventory_type": payload.inventory_type, "lot_name": payload.name},
    )
    lot = await create_lot(db, payload, user)
    return success_response("Lot created successfully", lot)


# =========================
# LIST / GET
# =========================
@router.get("/", response_model=APIResponse[LotListData])
async def list_lots_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
    inventory_type: InventoryType | None = Query(None),
    tag_id: int | None = Query(None),
    include_archived: bool = Query(False),
    usable: bool | None = Query(None),
    search: str | None = Query(None, description="Search by name or lot code"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await list_lots(
        db,
        inventory_type=inventory_type,
        tag_id=tag_id,
        include_archived=include_archived,
        usable=usable,
        search=search,
        page=page,
        page_size=page_size,
    )
    return success_response("Lots fetched successfully", data)


@router.get("/{lot_id}", response_model=APIResponse[LotOut])
async def get_lot_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    lot = await get_lot(db, lot_id)
    return success_response("Lot fetched successfully", lot)


@router.get("/{lot_id}/lock", response_model=APIResponse[LockStatusOut])
async def get_lot_lock_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    status = await get_lot_lock_status(db, lot_id)
    return success_response("Lock status fetched successfully", status)


# =========================
# UPDATE / ARCHIVE / DELETE
# =========================
@router.patch("/{lot_id}", response_model=APIResponse[LotOut])
async def update_lot_api(
    lot_id: int,
    payload: LotUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    lot = await update_lot(db, lot_id, payload, user)
    return success_response("Lot updated successfully", lot)


@router.post("/{lot_id}/archive", response_model=APIResponse[LotOut])
async def archive_lot_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    lot = await archive_lot(db, lot_id, user)
    return success_response("Lot archived successfully", lot)


@router.post("/{lot_id}/unarchive", response_model=APIResponse[LotOut])
async def unarchive_lot_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    lot = await unarchive_lot(db, lot_id, user)
    return success_response("Lot unarchived successfully", lot)


@router.delete("/{lot_id}", response_model=APIResponse)
async def delete_lot_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    await delete_lot(db, lot_id, user)
    return success_response("Lot deleted successfully", {"lot_id": lot_id})


# =========================
# MOVEMENTS
# =========================
@router.post("/{lot_id}/movements", response_model=APIResponse[MovementResult])
async def apply_movement_api(
    lot_id: int,
    payload: MovementCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info(
        "Apply movement",
        extra={"lot_id": lot_id, "kind": payload.kind.value, "quantity": str(payload.quantity)},
    )
    result = await apply_movement(
        db,
        lot_id=lot_id,
        kind=payload.kind,
        quantity=payload.quantity,
        actor_user=user,
        movement_date=payload.movement_date,
        tag_id=payload.tag_id,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
    )
    return success_response("Movement recorded successfully", result)


@router.get("/{lot_id}/movements", response_model=APIResponse[MovementHistoryData])
async def list_lot_movements_api(
    lot_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    data = await list_lot_movements(db, lot_id, start_date=start_date, end_date=end_date)
    return success_response("Movements fetched successfully", data)
