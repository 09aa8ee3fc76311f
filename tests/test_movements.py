import asyncio
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.constants.inventory_movement_type import MovementKind
from app.core.exceptions import (
    InsufficientQuantityError,
    NotFoundError,
    ValidationError,
)
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.services.inventory.inventory_movement_service import apply_movement, list_lot_movements
from app.services.inventory.lot_service import archive_lot, create_lot, get_lot

from helpers import make_lot, raw_lot_payload


async def test_consumption_and_waste_both_draw_down(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "100"), users["inventory"])

    first = await apply_movement(
        db,
        lot_id=lot.id,
        kind=MovementKind.CONSUMPTION,
        quantity=Decimal("30"),
        actor_user=users["inventory"],
        reference_type="PRODUCTION_BATCH",
        reference_id=7,
    )
    second = await apply_movement(
        db,
        lot_id=lot.id,
        kind=MovementKind.WASTE,
        quantity=Decimal("10"),
        actor_user=users["inventory"],
    )

    assert first.lot.quantity_available == Decimal("70")
    assert second.lot.quantity_available == Decimal("60")
    assert second.lot.version == lot.version + 2
    assert first.movement.tag_id == catalog["teak"]
    assert first.movement.unit_key == "pcs"
    assert first.movement.movement_date == date.today()
    assert second.movement.kind == MovementKind.WASTE


async def test_movement_exceeding_available_changes_nothing(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "10"), users["inventory"])

    with pytest.raises(InsufficientQuantityError) as exc:
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=MovementKind.CONSUMPTION,
            quantity=Decimal("11"),
            actor_user=users["inventory"],
        )

    assert exc.value.requested == Decimal("11")
    assert exc.value.available == Decimal("10")
    assert (await get_lot(db, lot.id)).quantity_available == Decimal("10")
    assert await db.scalar(select(func.count(InventoryMovement.id))) == 0


async def test_movement_can_take_lot_to_exactly_zero(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "10"), users["inventory"])

    result = await apply_movement(
        db,
        lot_id=lot.id,
        kind=MovementKind.CONSUMPTION,
        quantity=Decimal("10"),
        actor_user=users["inventory"],
    )
    assert result.lot.quantity_available == Decimal("0")


@pytest.mark.parametrize("quantity", ["0", "-1"])
async def test_movement_requires_positive_quantity(db, users, catalog, quantity):
    lot = await create_lot(db, raw_lot_payload(catalog, "10"), users["inventory"])

    with pytest.raises(ValidationError) as exc:
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=MovementKind.CONSUMPTION,
            quantity=Decimal(quantity),
            actor_user=users["inventory"],
        )
    assert exc.value.field == "quantity"


async def test_movement_respects_whole_unit(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "10"), users["inventory"])

    with pytest.raises(ValidationError):
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=MovementKind.CONSUMPTION,
            quantity=Decimal("0.5"),
            actor_user=users["inventory"],
        )


async def test_movement_tag_must_belong_to_lot(db, users, catalog):
    lot = await create_lot(
        db,
        raw_lot_payload(catalog, "10", tag_ids=[catalog["teak"], catalog["plywood"]]),
        users["inventory"],
    )

    named = await apply_movement(
        db,
        lot_id=lot.id,
        kind=MovementKind.CONSUMPTION,
        quantity=Decimal("1"),
        actor_user=users["inventory"],
        tag_id=catalog["plywood"],
    )
    assert named.movement.tag_id == catalog["plywood"]

    with pytest.raises(ValidationError) as exc:
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=MovementKind.CONSUMPTION,
            quantity=Decimal("1"),
            actor_user=users["inventory"],
            tag_id=catalog["glue"],
        )
    assert exc.value.field == "tag_id"


async def test_movement_rejects_unknown_reference_type(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "10"), users["inventory"])

    with pytest.raises(ValidationError) as exc:
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=MovementKind.CONSUMPTION,
            quantity=Decimal("1"),
            actor_user=users["inventory"],
            reference_type="INVOICE",
        )
    assert exc.value.field == "reference_type"


async def test_movement_on_missing_lot(db, users):
    with pytest.raises(NotFoundError):
        await apply_movement(
            db,
            lot_id=999,
            kind=MovementKind.WASTE,
            quantity=Decimal("1"),
            actor_user=users["inventory"],
        )


async def test_archived_lot_still_accepts_movements(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "4"), users["inventory"])
    await archive_lot(db, lot.id, users["inventory"])

    result = await apply_movement(
        db,
        lot_id=lot.id,
        kind=MovementKind.WASTE,
        quantity=Decimal("4"),
        actor_user=users["inventory"],
    )
    assert result.lot.is_archived is True
    assert result.lot.quantity_available == Decimal("0")


async def test_concurrent_movements_never_overdraw(session_factory, users, catalog):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "10"))

    async def draw(quantity: str):
        async with session_factory() as session:
            return await apply_movement(
                session,
                lot_id=lot.id,
                kind=MovementKind.CONSUMPTION,
                quantity=Decimal(quantity),
                actor_user=users["inventory"],
            )

    # six requests of 3 against 10 available: exactly three can succeed
    results = await asyncio.gather(*(draw("3") for _ in range(6)), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]

    assert len(successes) == 3
    assert len(failures) == 3
    assert all(isinstance(f, InsufficientQuantityError) for f in failures)

    async with session_factory() as session:
        current = await get_lot(session, lot.id)
        drawn = await session.scalar(
            select(func.sum(InventoryMovement.quantity)).where(InventoryMovement.lot_id == lot.id)
        )

    assert current.quantity_available == Decimal("1")
    assert current.quantity_received - Decimal(drawn) == current.quantity_available


async def test_history_reports_running_balance(db, users, catalog):
    lot = await create_lot(db, raw_lot_payload(catalog, "100"), users["inventory"])
    day1 = date.today() - timedelta(days=2)
    day2 = date.today() - timedelta(days=1)

    for kind, quantity, when in [
        (MovementKind.CONSUMPTION, "30", day1),
        (MovementKind.WASTE, "10", day1),
        (MovementKind.CONSUMPTION, "5", day2),
    ]:
        await apply_movement(
            db,
            lot_id=lot.id,
            kind=kind,
            quantity=Decimal(quantity),
            actor_user=users["inventory"],
            movement_date=when,
        )

    history = await list_lot_movements(db, lot.id)
    assert [row.running_balance for row in history.items] == [
        Decimal("70"),
        Decimal("60"),
        Decimal("55"),
    ]

    windowed = await list_lot_movements(db, lot.id, start_date=day2)
    assert len(windowed.items) == 1
    assert windowed.items[0].running_balance == Decimal("55")
