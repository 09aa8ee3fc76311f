from decimal import Decimal

import pytest

from app.constants.error_codes import ErrorCode
from app.constants.inventory import InventoryType
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.schemas.catalog.tag_schemas import TagCreate, TagUpdate
from app.schemas.catalog.unit_schemas import UnitCreate, UnitUpdate
from app.services.catalog.tag_service import create_tag, get_tag, list_tags, update_tag
from app.services.catalog.unit_service import create_unit, list_units, update_unit
from app.services.inventory.lot_service import create_lot

from helpers import raw_lot_payload


async def test_create_tag_and_reject_duplicate_key(db, users, catalog):
    tag = await create_tag(
        db,
        TagCreate(inventory_type="raw_material", tag_key="foam", display_name="Foam"),
        users["admin"],
    )
    assert tag.inventory_type == InventoryType.RAW_MATERIAL
    assert tag.created_by == users["admin"].id

    with pytest.raises(ConflictError) as exc:
        await create_tag(
            db,
            TagCreate(inventory_type="raw_material", tag_key="foam", display_name="Foam again"),
            users["admin"],
        )
    assert exc.value.error_code == ErrorCode.TAG_KEY_EXISTS


async def test_same_tag_key_allowed_across_types(db, users, catalog):
    tag = await create_tag(
        db,
        TagCreate(inventory_type="produced_goods", tag_key="teak", display_name="Teak Table"),
        users["admin"],
    )
    assert tag.tag_key == "teak"


async def test_list_tags_filters(db, catalog):
    raw = await list_tags(db, inventory_type=InventoryType.RAW_MATERIAL)
    assert raw.total == 3

    active = await list_tags(db, inventory_type=InventoryType.RAW_MATERIAL, active_only=True)
    assert {t.tag_key for t in active.items} == {"teak", "plywood"}

    found = await list_tags(db, search="ply")
    assert [t.tag_key for t in found.items] == ["plywood"]


async def test_update_tag(db, users, catalog):
    updated = await update_tag(
        db, catalog["old_foam"], TagUpdate(is_active=True), users["admin"]
    )
    assert updated.is_active is True

    with pytest.raises(ValidationError):
        await update_tag(db, catalog["old_foam"], TagUpdate(), users["admin"])

    with pytest.raises(ValidationError):
        await update_tag(db, catalog["old_foam"], TagUpdate(is_active=True), users["admin"])

    with pytest.raises(NotFoundError):
        await get_tag(db, 9999)


async def test_create_unit_and_list(db, users, catalog):
    unit = await create_unit(
        db,
        UnitCreate(inventory_type="raw_material", unit_key="m", display_name="Metre", allows_decimal=True),
        users["admin"],
    )
    assert unit.allows_decimal is True

    units = await list_units(db, inventory_type=InventoryType.RAW_MATERIAL)
    assert {u.unit_key for u in units.items} == {"kg", "pcs", "m"}

    with pytest.raises(ConflictError) as exc:
        await create_unit(
            db,
            UnitCreate(inventory_type="raw_material", unit_key="m", display_name="Meter"),
            users["admin"],
        )
    assert exc.value.error_code == ErrorCode.UNIT_KEY_EXISTS


async def test_unit_cannot_drop_decimals_while_fractional_lots_exist(db, users, catalog):
    await create_lot(
        db,
        raw_lot_payload(catalog, "2.5", unit_id=catalog["kg"]),
        users["inventory"],
    )

    with pytest.raises(ValidationError) as exc:
        await update_unit(db, catalog["kg"], UnitUpdate(allows_decimal=False), users["admin"])
    assert exc.value.field == "allows_decimal"


async def test_unit_can_drop_decimals_when_all_lots_whole(db, users, catalog):
    lot = await create_lot(
        db,
        raw_lot_payload(catalog, "3", unit_id=catalog["kg"]),
        users["inventory"],
    )
    assert lot.quantity_received == Decimal("3")

    unit = await update_unit(db, catalog["kg"], UnitUpdate(allows_decimal=False), users["admin"])
    assert unit.allows_decimal is False
