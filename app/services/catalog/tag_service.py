# app/services/catalog/tag_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from app.models.catalog.tag_models import Tag
from app.schemas.catalog.tag_schemas import TagCreate, TagUpdate, TagOut, TagListData
from app.constants.inventory import InventoryType
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_tag(tag: Tag) -> TagOut:
    return TagOut(
        id=tag.id,
        inventory_type=tag.inventory_type,
        tag_key=tag.tag_key,
        display_name=tag.display_name,
        description=tag.description,
        is_active=tag.is_active,
        created_by=tag.created_by_id,
        updated_by=tag.updated_by_id,
        created_at=tag.created_at,
        updated_at=tag.updated_at,
    )


async def _get_tag_or_404(db: AsyncSession, tag_id: int) -> Tag:
    tag = await db.get(Tag, tag_id)
    if not tag:
        raise NotFoundError("Tag", tag_id)
    return tag


# ---------------- CREATE ----------------
async def create_tag(db: AsyncSession, payload: TagCreate, user) -> TagOut:
    exists = await db.scalar(
        select(Tag.id).where(
            Tag.inventory_type == payload.inventory_type.value,
            Tag.tag_key == payload.tag_key,
        )
    )
    if exists:
        raise ConflictError(
            "Tag key already exists",
            ErrorCode.TAG_KEY_EXISTS,
            tag_key=payload.tag_key,
        )

    tag = Tag(
        inventory_type=payload.inventory_type.value,
        tag_key=payload.tag_key,
        display_name=payload.display_name,
        description=payload.description,
        is_active=payload.is_active,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(tag)

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "Tag key already exists",
            ErrorCode.TAG_KEY_EXISTS,
            tag_key=payload.tag_key,
        )

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.CREATE_TAG,
        inventory_type=payload.inventory_type.value,
        target_name=payload.display_name,
    )

    await db.commit()
    await db.refresh(tag)
    logger.info("Tag created", extra={"tag_id": tag.id, "tag_key": tag.tag_key})
    return _map_tag(tag)


# ---------------- LIST ----------------
async def list_tags(
    db: AsyncSession,
    *,
    inventory_type: InventoryType | None = None,
    active_only: bool = False,
    search: str | None = None,
) -> TagListData:
    filters = []
    if inventory_type:
        filters.append(Tag.inventory_type == inventory_type.value)
    if active_only:
        filters.append(Tag.is_active.is_(True))
    if search:
        filters.append(Tag.display_name.ilike(f"%{search}%"))

    rows = await db.execute(
        select(Tag).where(*filters).order_by(Tag.display_name.asc(), Tag.id.asc())
    )
    tags = rows.scalars().all()

    total = await db.scalar(select(func.count(Tag.id)).where(*filters))
    return TagListData(total=total or 0, items=[_map_tag(t) for t in tags])


# ---------------- GET ----------------
async def get_tag(db: AsyncSession, tag_id: int) -> TagOut:
    return _map_tag(await _get_tag_or_404(db, tag_id))


# ---------------- UPDATE ----------------
async def update_tag(db: AsyncSession, tag_id: int, payload: TagUpdate, user) -> TagOut:
    tag = await _get_tag_or_404(db, tag_id)

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No changes detected")

    changes: list[str] = []
    for field, new_value in updates.items():
        old_value = getattr(tag, field)
        if old_value != new_value:
            changes.append(f"{field}: {old_value} → {new_value}")
            setattr(tag, field, new_value)

    if not changes:
        raise ValidationError("No actual changes detected")

    tag.updated_by_id = user.id

    await emit_activity(
        db,
        user=user,
        code=ActivityCode.UPDATE_TAG,
        target_name=tag.display_name,
        changes=", ".join(changes),
    )

    await db.commit()
    await db.refresh(tag)
    return _map_tag(tag)
