# app/services/inventory/inventory_movement_service.py

from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from app.models.inventory.lot_models import Lot
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.schemas.inventory.movement_schemas import (
    MovementOut,
    MovementResult,
    MovementHistoryRow,
    MovementHistoryData,
)
from app.services.inventory.lot_service import load_lot, map_lot, is_fractional
from app.constants.inventory_movement_type import MovementKind, ALLOWED_REFERENCE_TYPES
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import (
    AppException,
    ConflictError,
    InsufficientQuantityError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_movement(movement: InventoryMovement) -> MovementOut:
    return MovementOut(
        id=movement.id,
        lot_id=movement.lot_id,
        tag_id=movement.tag_id,
        inventory_type=movement.inventory_type,
        movement_date=movement.movement_date,
        kind=movement.kind,
        quantity=movement.quantity,
        unit_key=movement.unit_key,
        reference_type=movement.reference_type,
        reference_id=movement.reference_id,
        notes=movement.notes,
        recorded_at=movement.recorded_at,
        created_by=movement.created_by_id,
    )


async def apply_movement(
    db: AsyncSession,
    *,
    lot_id: int,
    kind: MovementKind,
    quantity: Decimal,
    actor_user,
    movement_date: date | None = None,
    tag_id: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> MovementResult:
    """Draw ``quantity`` down from a lot and append the movement record.

    The decrement is a guarded compare-and-set, so concurrent movements on the
    same lot never drive ``quantity_available`` below zero. Archived lots still
    accept movements; lock status is not consulted.
    """
    # ------------------------------------
    # 0. Basic validations
    # ------------------------------------
    kind = MovementKind(kind)

    if quantity is None or quantity <= 0:
        raise ValidationError("Movement quantity must be greater than zero", field="quantity")

    if reference_type is not None and reference_type not in ALLOWED_REFERENCE_TYPES:
        raise ValidationError(
            "Invalid inventory reference type",
            field="reference_type",
            allowed=sorted(ALLOWED_REFERENCE_TYPES),
        )

    lot = await load_lot(db, lot_id)
    if not lot:
        raise NotFoundError("Lot", lot_id)

    if not lot.unit.allows_decimal and is_fractional(quantity):
        raise ValidationError(
            f"Unit {lot.unit.unit_key} does not allow decimal quantities",
            field="quantity",
            unit=lot.unit.unit_key,
        )

    if tag_id is None:
        tag_id = lot.primary_tag_id
    elif tag_id not in lot.tag_ids:
        raise ValidationError("Tag is not attached to this lot", field="tag_id", tag_id=tag_id)

    movement_date = movement_date or date.today()
    lot_code = lot.lot_code
    unit_key = lot.unit.unit_key

    try:
        # ------------------------------------
        # 1. Guarded decrement (compare-and-set)
        # ------------------------------------
        result = await db.execute(
            update(Lot)
            .where(Lot.id == lot_id, Lot.quantity_available >= quantity)
            .values(
                quantity_available=Lot.quantity_available - quantity,
                version=Lot.version + 1,
                updated_by_id=actor_user.id,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            available = await db.scalar(
                select(Lot.quantity_available).where(Lot.id == lot_id)
            )
            await db.rollback()
            if available is None:
                raise NotFoundError("Lot", lot_id)
            logger.info(
                "Movement rejected, insufficient quantity",
                extra={"lot_id": lot_id, "requested": str(quantity), "available": str(available)},
            )
            raise InsufficientQuantityError(lot_id, quantity, available)

        # ------------------------------------
        # 2. Append movement (ledger)
        # ------------------------------------
        movement = InventoryMovement(
            lot_id=lot_id,
            tag_id=tag_id,
            inventory_type=lot.inventory_type,
            movement_date=movement_date,
            kind=kind.value,
            quantity=quantity,
            unit_key=unit_key,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by_id=actor_user.id,
        )
        db.add(movement)
        await db.flush()

        # ------------------------------------
        # 3. Activity log
        # ------------------------------------
        await emit_activity(
            db,
            user=actor_user,
            code=ActivityCode.LOT_MOVEMENT,
            kind=kind.value.lower(),
            quantity=quantity,
            unit=unit_key,
            lot_code=lot_code,
            movement_date=movement_date.isoformat(),
            reference_type=reference_type,
            reference_id=reference_id,
        )

        await db.commit()

    except AppException:
        raise

    except IntegrityError:
        await db.rollback()
        raise ConflictError("Concurrent inventory update detected", lot_id=lot_id)

    except OperationalError as exc:
        await db.rollback()
        logger.error("Movement failed at storage", extra={"lot_id": lot_id, "error": str(exc)})
        raise StorageError("Could not record movement", retryable=False)

    await db.refresh(movement)
    lot = await load_lot(db, lot_id)

    return MovementResult(lot=map_lot(lot), movement=_map_movement(movement))


async def list_lot_movements(
    db: AsyncSession,
    lot_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> MovementHistoryData:
    lot = await load_lot(db, lot_id)
    if not lot:
        raise NotFoundError("Lot", lot_id)

    rows = await db.execute(
        select(InventoryMovement)
        .where(InventoryMovement.lot_id == lot_id)
        .order_by(
            InventoryMovement.movement_date.asc(),
            InventoryMovement.recorded_at.asc(),
            InventoryMovement.id.asc(),
        )
    )

    # running balance counts every earlier movement, the window only filters output
    balance = lot.quantity_received
    items: list[MovementHistoryRow] = []
    for movement in rows.scalars().all():
        balance -= movement.quantity
        if start_date and movement.movement_date < start_date:
            continue
        if end_date and movement.movement_date > end_date:
            continue
        items.append(
            MovementHistoryRow(
                **_map_movement(movement).model_dump(),
                running_balance=balance,
            )
        )

    return MovementHistoryData(
        lot_id=lot.id,
        quantity_received=lot.quantity_received,
        items=items,
    )
