# app/services/catalog/unit_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError

from app.models.catalog.unit_models import Unit
from app.models.inventory.lot_models import Lot
from app.schemas.catalog.unit_schemas import UnitCreate, UnitUpdate, UnitOut, UnitListData
from app.constants.inventory import InventoryType
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_unit(unit: Unit) -> UnitOut:
    return UnitOut.model_validate(unit)


async def _get_unit_or_404(db: AsyncSession, unit_id: int) -> Unit:
    unit = await db.get(Unit, unit_id)
    if not unit:
        raise NotFoundError("Unit", unit_id)
    return unit


async def _has_fractional_lots(db: AsyncSession, unit_id: int) -> bool:
    # Fractional part detected portably: x differs from its rounded-down cast.
    received = Lot.quantity_received
    available = Lot.quantity_available
    lot_id = await db.scalar(
        select(Lot.id)
        .where(
            Lot.unit_id == unit_id,
            or_(
                func.round(received, 0) != received,
                func.round(available, 0) != available,
            ),
        )
        .limit(1)
    )
    return lot_id is not None


# ---------------- CREATE ----------------
async def create_unit(db: AsyncSession, payload: UnitCreate, user) -> UnitOut:
    exists = await db.scalar(
        select(Unit.id).where(
            Unit.inventory_type == payload.inventory_type.value,
            Unit.unit_key == payload.unit_key,
        )
    )
    if exists:
        raise ConflictError(
            "Unit key already exists",
            ErrorCode.UNIT_KEY_EXISTS,
            unit_key=payload.unit_key,
        )

    unit = Unit(
        inventory_type=payload.inventory_type.value,
        unit_key=payload.unit_key,
        display_name=payload.display_name,
        description=payload.description,
        allows_decimal=payload.allows_decimal,
        is_active=payload.is_active,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(unit)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "Unit key already exists",
            ErrorCode.UNIT_KEY_EXISTS,
            unit_key=payload.unit_key,
        )

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.CREATE_UNIT,
        inventory_type=payload.inventory_type.value,
        target_name=payload.display_name,
    )

    await db.commit()
    await db.refresh(unit)
    return _map_unit(unit)


# ---------------- LIST ----------------
async def list_units(
    db: AsyncSession,
    *,
    inventory_type: InventoryType | None = None,
    active_only: bool = False,
) -> UnitListData:
    filters = []
    if inventory_type:
        filters.append(Unit.inventory_type == inventory_type.value)
    if active_only:
        filters.append(Unit.is_active.is_(True))

    rows = await db.execute(
        select(Unit).where(*filters).order_by(Unit.display_name.asc(), Unit.id.asc())
    )
    units = rows.scalars().all()

    total = await db.scalar(select(func.count(Unit.id)).where(*filters))
    return UnitListData(total=total or 0, items=[_map_unit(u) for u in units])


# ---------------- GET ----------------
async def get_unit(db: AsyncSession, unit_id: int) -> UnitOut:
    return _map_unit(await _get_unit_or_404(db, unit_id))


# ---------------- UPDATE ----------------
async def update_unit(db: AsyncSession, unit_id: int, payload: UnitUpdate, user) -> UnitOut:
    unit = await _get_unit_or_404(db, unit_id)

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No changes detected")

    if updates.get("allows_decimal") is False and unit.allows_decimal:
        if await _has_fractional_lots(db, unit_id):
            raise ValidationError(
                "Unit is used by lots holding fractional quantities",
                field="allows_decimal",
            )

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(unit, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(unit, field, new_value)

    if not changes:
        raise ValidationError("No actual changes detected")

    unit.updated_by_id = user.id

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.UPDATE_UNIT,
        target_name=unit.display_name,
        changes=", ".join(changes),
    )

    await db.commit()
    await db.refresh(unit)
    logger.info("Unit updated", extra={"unit_id": unit.id, "changes": changes})
    return _map_unit(unit)
