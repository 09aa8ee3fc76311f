from decimal import Decimal

from sqlalchemy import insert, update

from app.core.security import create_access_token
from app.models.users.user_models import User
from app.models.inventory.production_batch_models import ProductionBatch, batch_lots
from app.schemas.inventory.lot_schemas import (
    RawMaterialLotCreate,
    RecurringProductLotCreate,
    ProducedGoodsLotCreate,
)
from app.services.inventory.lot_service import create_lot


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(subject=user.username, token_version=user.token_version)
    return {"Authorization": f"Bearer {token}"}


def raw_lot_payload(catalog, quantity="100", **overrides) -> RawMaterialLotCreate:
    data = {
        "inventory_type": "raw_material",
        "name": "Teak planks",
        "tag_ids": [catalog["teak"]],
        "quantity_received": Decimal(quantity),
        "unit_id": catalog["pcs"],
    }
    data.update(overrides)
    return RawMaterialLotCreate(**data)


def recurring_lot_payload(catalog, quantity="20", **overrides) -> RecurringProductLotCreate:
    data = {
        "inventory_type": "recurring_product",
        "name": "Fevicol 1L",
        "tag_ids": [catalog["glue"]],
        "quantity_received": Decimal(quantity),
        "unit_id": catalog["bottle"],
    }
    data.update(overrides)
    return RecurringProductLotCreate(**data)


def produced_lot_payload(catalog, quantity="12", **overrides) -> ProducedGoodsLotCreate:
    data = {
        "inventory_type": "produced_goods",
        "name": "Dining chair",
        "tag_ids": [catalog["chair"]],
        "quantity_received": Decimal(quantity),
        "unit_id": catalog["units"],
    }
    data.update(overrides)
    return ProducedGoodsLotCreate(**data)


async def make_lot(session_factory, user, payload):
    async with session_factory() as session:
        return await create_lot(session, payload, user)


async def lock_lot(session_factory, lot_id: int, batch_code: str, locked: bool = True) -> int:
    async with session_factory() as session:
        batch = ProductionBatch(batch_code=batch_code, is_locked=locked)
        session.add(batch)
        await session.flush()
        await session.execute(insert(batch_lots).values(batch_id=batch.id, lot_id=lot_id))
        await session.commit()
        return batch.id


async def set_batch_locked(session_factory, batch_id: int, locked: bool) -> None:
    async with session_factory() as session:
        await session.execute(
            update(ProductionBatch).where(ProductionBatch.id == batch_id).values(is_locked=locked)
        )
        await session.commit()
