# app/services/inventory/lot_service.py

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, or_
from sqlalchemy.exc import IntegrityError

from app.models.inventory.lot_models import (
    Lot,
    RawMaterialLot,
    ProducedGoodsBatch,
    LOT_MODEL_BY_TYPE,
    lot_tags,
)
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.inventory.production_batch_models import ProductionBatch
from app.models.catalog.tag_models import Tag
from app.models.catalog.unit_models import Unit
from app.models.users.user_models import User
from app.schemas.inventory.lot_schemas import LotOut, LotListData, LotUpdate, LockStatusOut
from app.services.inventory.lot_code_service import next_lot_code
from app.services.inventory.lot_lock_service import check_lot_lock
from app.constants.inventory import InventoryType, ARCHIVE_MAX_QUANTITY, TAG_REQUIRED_TYPES
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.core.config import LOT_CODE_MAX_RETRIES
from app.core.exceptions import (
    ConflictError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

RAW_MATERIAL_ONLY_FIELDS = {"usable", "condition"}
PRODUCED_GOODS_ONLY_FIELDS = {"batch_name"}
NON_NULLABLE_FIELDS = {"name"}


# =====================================================
# HELPERS
# =====================================================
def is_fractional(quantity: Decimal) -> bool:
    return quantity != quantity.to_integral_value()


def _dedupe(ids: list[int]) -> list[int]:
    unique: list[int] = []
    for i in ids:
        if i not in unique:
            unique.append(i)
    return unique


def map_lot(lot: Lot) -> LotOut:
    variant = {}
    if isinstance(lot, RawMaterialLot):
        variant = {"usable": lot.usable, "condition": lot.condition}
    elif isinstance(lot, ProducedGoodsBatch):
        variant = {
            "batch_name": lot.batch_name,
            "production_batch_id": lot.production_batch_id,
            "quantity_created": lot.quantity_created,
        }

    return LotOut(
        id=lot.id,
        lot_code=lot.lot_code,
        inventory_type=lot.inventory_type,
        name=lot.name,
        tag_ids=lot.tag_ids,
        primary_tag_id=lot.primary_tag_id,
        quantity_received=lot.quantity_received,
        quantity_available=lot.quantity_available,
        unit_id=lot.unit_id,
        unit_key=lot.unit.unit_key,
        allows_decimal=lot.unit.allows_decimal,
        supplier_id=lot.supplier_id,
        received_date=lot.received_date,
        handover_to_id=lot.handover_to_id,
        amount_paid=lot.amount_paid,
        storage_notes=lot.storage_notes,
        document_url=lot.document_url,
        is_archived=lot.is_archived,
        version=lot.version,
        created_by=lot.created_by_id,
        updated_by=lot.updated_by_id,
        created_by_name=lot.created_by_username,
        updated_by_name=lot.updated_by_username,
        created_at=lot.created_at,
        updated_at=lot.updated_at,
        **variant,
    )


async def load_lot(db: AsyncSession, lot_id: int) -> Lot | None:
    # populate_existing: rows changed by guarded UPDATEs must not come back stale
    return await db.scalar(
        select(Lot)
        .where(Lot.id == lot_id)
        .execution_options(populate_existing=True)
    )


async def _get_lot_or_404(db: AsyncSession, lot_id: int) -> Lot:
    lot = await load_lot(db, lot_id)
    if not lot:
        raise NotFoundError("Lot", lot_id)
    return lot


async def _lock_lot_row(db: AsyncSession, lot_id: int) -> bool:
    """Row lock on the lot (postgres). Selects the id only so no outer joins hit FOR UPDATE."""
    locked_id = await db.scalar(
        select(Lot.id).where(Lot.id == lot_id).with_for_update()
    )
    return locked_id is not None


async def _ensure_unlocked(db: AsyncSession, lot_id: int) -> LockStatusOut:
    status = await check_lot_lock(db, lot_id)
    if status.locked:
        logger.warning(
            "Lot mutation blocked by locked batches",
            extra={"lot_id": lot_id, "batch_ids": status.batch_ids},
        )
        raise LockedError(lot_id, status.batch_ids)
    return status


async def _resolve_unit(
    db: AsyncSession,
    unit_id: int,
    inventory_type: InventoryType,
) -> Unit:
    unit = await db.get(Unit, unit_id)
    if not unit:
        raise NotFoundError("Unit", unit_id)

    if unit.inventory_type != inventory_type.value:
        raise ValidationError(
            f"Unit {unit.unit_key} does not belong to {inventory_type.value}",
            field="unit_id",
        )

    if not unit.is_active:
        raise ValidationError(f"Unit {unit.unit_key} is inactive", field="unit_id")

    return unit


async def _resolve_tags(
    db: AsyncSession,
    tag_ids: list[int],
    inventory_type: InventoryType,
    *,
    existing_ids: list[int] | None = None,
) -> list[Tag]:
    """Load tags in the given order. Tags already on the lot may stay attached when inactive."""
    if not tag_ids:
        return []

    rows = await db.execute(select(Tag).where(Tag.id.in_(tag_ids)))
    by_id = {t.id: t for t in rows.scalars().all()}

    missing = [i for i in tag_ids if i not in by_id]
    if missing:
        raise NotFoundError("Tag", missing[0])

    keep = set(existing_ids or [])
    for tag in by_id.values():
        if tag.inventory_type != inventory_type.value:
            raise ValidationError(
                f"Tag {tag.tag_key} does not belong to {inventory_type.value}",
                field="tag_ids",
                tag_id=tag.id,
            )
        if not tag.is_active and tag.id not in keep:
            raise ValidationError(
                f"Tag {tag.tag_key} is inactive",
                field="tag_ids",
                tag_id=tag.id,
            )

    return [by_id[i] for i in tag_ids]


async def _existing_lot_for_key(db: AsyncSession, idempotency_key: str | None) -> Lot | None:
    if not idempotency_key:
        return None
    lot_id = await db.scalar(select(Lot.id).where(Lot.idempotency_key == idempotency_key))
    return await load_lot(db, lot_id) if lot_id else None


async def _refresh_actor(db: AsyncSession, user) -> None:
    # rollback expires everything in the session, the request's user included
    if user in db:
        await db.refresh(user)


# =====================================================
# CREATE
# =====================================================
async def create_lot(db: AsyncSession, payload, user) -> LotOut:
    inventory_type = InventoryType(payload.inventory_type)

    existing = await _existing_lot_for_key(db, payload.idempotency_key)
    if existing:
        logger.info(
            "Idempotent lot create replayed",
            extra={"lot_id": existing.id, "idempotency_key": payload.idempotency_key},
        )
        return map_lot(existing)

    tag_ids = _dedupe(payload.tag_ids)
    if inventory_type in TAG_REQUIRED_TYPES and not tag_ids:
        raise ValidationError("At least one tag is required", field="tag_ids")

    quantity = payload.quantity_received
    if quantity <= 0:
        raise ValidationError("Quantity received must be greater than zero", field="quantity_received")

    unit = await _resolve_unit(db, payload.unit_id, inventory_type)
    if not unit.allows_decimal and is_fractional(quantity):
        raise ValidationError(
            f"Unit {unit.unit_key} does not allow decimal quantities",
            field="quantity_received",
            unit=unit.unit_key,
        )
    unit_key = unit.unit_key

    await _resolve_tags(db, tag_ids, inventory_type)

    if payload.lot_code:
        taken = await db.scalar(select(Lot.id).where(Lot.lot_code == payload.lot_code))
        if taken:
            raise ConflictError(
                "Lot code already exists",
                ErrorCode.LOT_CODE_EXISTS,
                lot_code=payload.lot_code,
            )

    if payload.handover_to_id is not None and not await db.get(User, payload.handover_to_id):
        raise NotFoundError("User", payload.handover_to_id)

    if (
        inventory_type == InventoryType.PRODUCED_GOODS
        and payload.production_batch_id is not None
        and not await db.get(ProductionBatch, payload.production_batch_id)
    ):
        raise NotFoundError("Production batch", payload.production_batch_id)

    model = LOT_MODEL_BY_TYPE[inventory_type]
    fields = payload.model_dump(
        exclude={"inventory_type", "tag_ids", "lot_code", "idempotency_key", "quantity_received"}
    )

    lot = None
    for attempt in range(1, LOT_CODE_MAX_RETRIES + 1):
        # tags are re-read on every attempt, a rollback detaches the previous ones
        tags = await _resolve_tags(db, tag_ids, inventory_type)
        lot_code = payload.lot_code or await next_lot_code(db, inventory_type)

        lot = model(
            **fields,
            lot_code=lot_code,
            quantity_received=quantity,
            quantity_available=quantity,
            primary_tag_id=tag_ids[0] if tag_ids else None,
            idempotency_key=payload.idempotency_key,
            created_by_id=user.id,
            updated_by_id=user.id,
        )
        lot.tags = tags
        db.add(lot)

        try:
            await db.flush()
            break
        except IntegrityError as exc:
            await db.rollback()
            await _refresh_actor(db, user)
            reason = str(exc.orig)

            if payload.idempotency_key and "idempotency_key" in reason:
                existing = await _existing_lot_for_key(db, payload.idempotency_key)
                if existing:
                    return map_lot(existing)

            if "lot_code" not in reason:
                raise

            if payload.lot_code:
                raise ConflictError(
                    "Lot code already exists",
                    ErrorCode.LOT_CODE_EXISTS,
                    lot_code=payload.lot_code,
                )

            logger.warning(
                "Lot code collision, retrying",
                extra={"lot_code": lot_code, "attempt": attempt},
            )
    else:
        raise StorageError(
            f"Failed to generate unique lot code after {LOT_CODE_MAX_RETRIES} attempts"
        )

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.CREATE_LOT,
        lot_code=lot.lot_code,
        target_name=lot.name,
        quantity=quantity,
        unit=unit_key,
    )

    await db.commit()
    logger.info("Lot created", extra={"lot_id": lot.id, "lot_code": lot.lot_code})

    return map_lot(await load_lot(db, lot.id))


# =====================================================
# READ
# =====================================================
async def get_lot(db: AsyncSession, lot_id: int) -> LotOut:
    return map_lot(await _get_lot_or_404(db, lot_id))


async def get_lot_lock_status(db: AsyncSession, lot_id: int) -> LockStatusOut:
    if not await db.scalar(select(Lot.id).where(Lot.id == lot_id)):
        raise NotFoundError("Lot", lot_id)
    return await check_lot_lock(db, lot_id)


async def list_lots(
    db: AsyncSession,
    *,
    inventory_type: InventoryType | None = None,
    tag_id: int | None = None,
    include_archived: bool = False,
    usable: bool | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> LotListData:
    filters = []
    if inventory_type:
        filters.append(Lot.inventory_type == inventory_type.value)
    if not include_archived:
        filters.append(Lot.is_archived.is_(False))
    if tag_id is not None:
        filters.append(Lot.id.in_(select(lot_tags.c.lot_id).where(lot_tags.c.tag_id == tag_id)))
    if usable is not None:
        filters.append(Lot.__table__.c.usable.is_(usable))
    if search:
        filters.append(or_(Lot.name.ilike(f"%{search}%"), Lot.lot_code.ilike(f"%{search}%")))

    total = await db.scalar(select(func.count(Lot.id)).where(*filters))

    rows = await db.execute(
        select(Lot)
        .where(*filters)
        .order_by(Lot.received_date.desc(), Lot.created_at.desc(), Lot.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    lots = rows.unique().scalars().all()

    return LotListData(total=total or 0, items=[map_lot(l) for l in lots])


# =====================================================
# UPDATE
# =====================================================
async def update_lot(db: AsyncSession, lot_id: int, payload: LotUpdate, user) -> LotOut:
    if not await _lock_lot_row(db, lot_id):
        raise NotFoundError("Lot", lot_id)

    await _ensure_unlocked(db, lot_id)
    lot = await _get_lot_or_404(db, lot_id)

    if payload.version is not None and payload.version != lot.version:
        raise ConflictError(
            "Lot was modified by another request",
            ErrorCode.LOT_VERSION_CONFLICT,
            expected_version=payload.version,
            current_version=lot.version,
        )

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise ValidationError("No changes detected")

    inventory_type = InventoryType(lot.inventory_type)
    for field in updates:
        if field in RAW_MATERIAL_ONLY_FIELDS and inventory_type != InventoryType.RAW_MATERIAL:
            raise ValidationError(f"{field} applies to raw material lots only", field=field)
        if field in PRODUCED_GOODS_ONLY_FIELDS and inventory_type != InventoryType.PRODUCED_GOODS:
            raise ValidationError(f"{field} applies to produced goods only", field=field)
        if field in NON_NULLABLE_FIELDS and updates[field] is None:
            raise ValidationError(f"{field} cannot be null", field=field)

    # resolve everything first so a rejected patch leaves the lot untouched
    new_tags = None
    if "tag_ids" in updates:
        tag_ids = _dedupe(updates.pop("tag_ids") or [])
        if inventory_type in TAG_REQUIRED_TYPES and not tag_ids:
            raise ValidationError("At least one tag is required", field="tag_ids")
        if set(tag_ids) != set(lot.tag_ids):
            new_tags = await _resolve_tags(db, tag_ids, inventory_type, existing_ids=lot.tag_ids)

    new_unit = None
    if "unit_id" in updates:
        unit_id = updates.pop("unit_id")
        if unit_id is None:
            raise ValidationError("unit_id cannot be null", field="unit_id")
        if unit_id != lot.unit_id:
            new_unit = await _resolve_unit(db, unit_id, inventory_type)
            if not new_unit.allows_decimal and (
                is_fractional(lot.quantity_received) or is_fractional(lot.quantity_available)
            ):
                raise ValidationError(
                    f"Unit {new_unit.unit_key} does not allow decimal quantities",
                    field="unit_id",
                )

    if updates.get("handover_to_id") is not None:
        if not await db.get(User, updates["handover_to_id"]):
            raise NotFoundError("User", updates["handover_to_id"])

    changes: list[str] = []

    if new_tags is not None:
        new_ids = [t.id for t in new_tags]
        changes.append(f"tag_ids: {lot.tag_ids} → {new_ids}")
        lot.tags = new_tags
        if lot.primary_tag_id not in new_ids:
            lot.primary_tag_id = new_ids[0] if new_ids else None

    if new_unit is not None:
        changes.append(f"unit: {lot.unit.unit_key} → {new_unit.unit_key}")
        lot.unit_id = new_unit.id
        lot.unit = new_unit

    for field, new_value in updates.items():
        old_value = getattr(lot, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(lot, field, new_value)

    if not changes:
        raise ValidationError("No actual changes detected")

    lot.version = lot.version + 1
    lot.updated_by_id = user.id

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.UPDATE_LOT,
        lot_code=lot.lot_code,
        changes=", ".join(changes),
    )

    await db.commit()
    return map_lot(await load_lot(db, lot_id))


# =====================================================
# ARCHIVE / UNARCHIVE
# =====================================================
async def archive_lot(db: AsyncSession, lot_id: int, user) -> LotOut:
    if not await _lock_lot_row(db, lot_id):
        raise NotFoundError("Lot", lot_id)

    lot = await _get_lot_or_404(db, lot_id)

    if lot.is_archived:
        return map_lot(lot)

    if lot.quantity_available > ARCHIVE_MAX_QUANTITY:
        raise ValidationError(
            f"Only lots with {ARCHIVE_MAX_QUANTITY} or less available can be archived",
            field="quantity_available",
            quantity_available=str(lot.quantity_available),
            max_quantity=str(ARCHIVE_MAX_QUANTITY),
        )

    status = await _ensure_unlocked(db, lot_id)

    lot.is_archived = True
    lot.version = lot.version + 1
    lot.updated_by_id = user.id

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.ARCHIVE_LOT,
        lot_code=lot.lot_code,
        quantity=lot.quantity_available,
        batch_ids=status.batch_ids,
    )

    await db.commit()
    logger.info("Lot archived", extra={"lot_id": lot_id})
    return map_lot(await load_lot(db, lot_id))


async def unarchive_lot(db: AsyncSession, lot_id: int, user) -> LotOut:
    if not await _lock_lot_row(db, lot_id):
        raise NotFoundError("Lot", lot_id)

    lot = await _get_lot_or_404(db, lot_id)

    if not lot.is_archived:
        return map_lot(lot)

    # recorded for the audit row only; locked lots may still be unarchived
    status = await check_lot_lock(db, lot_id)

    lot.is_archived = False
    lot.version = lot.version + 1
    lot.updated_by_id = user.id

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.UNARCHIVE_LOT,
        lot_code=lot.lot_code,
        batch_ids=status.batch_ids,
    )

    await db.commit()
    return map_lot(await load_lot(db, lot_id))


# =====================================================
# DELETE
# =====================================================
async def delete_lot(db: AsyncSession, lot_id: int, user) -> None:
    """Remove the lot, its tag links and its movements in one transaction.

    Deleting a lot that no longer exists is a no-op.
    """
    if not await _lock_lot_row(db, lot_id):
        logger.info("Delete of missing lot ignored", extra={"lot_id": lot_id})
        return None

    status = await _ensure_unlocked(db, lot_id)

    row = (
        await db.execute(select(Lot.lot_code, Lot.name).where(Lot.id == lot_id))
    ).one()

    removed = await db.execute(
        delete(InventoryMovement)
        .where(InventoryMovement.lot_id == lot_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(lot_tags).where(lot_tags.c.lot_id == lot_id))
    await db.execute(
        delete(Lot)
        .where(Lot.id == lot_id)
        .execution_options(synchronize_session=False)
    )

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.DELETE_LOT,
        lot_code=row.lot_code,
        target_name=row.name,
        batch_ids=status.batch_ids,
    )

    await db.commit()

    logger.info(
        "Lot deleted",
        extra={"lot_id": lot_id, "movements_removed": removed.rowcount},
    )
    return None
