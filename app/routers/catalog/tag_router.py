# app/routers/catalog/tag_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.tag_schemas import TagCreate, TagUpdate, TagOut, TagListData
from app.services.catalog.tag_service import create_tag, list_tags, get_tag, update_tag
from app.constants.inventory import InventoryType
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/tags", tags=["Tags"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[TagOut])
async def create_tag_api(
    payload: TagCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create tag", extra={"tag_key": payload.tag_key})
    tag = await create_tag(db, payload, user)
    return success_response("Tag created successfully", tag)


@router.get("/", response_model=APIResponse[TagListData])
async def list_tags_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
    inventory_type: InventoryType | None = Query(None),
    active_only: bool = Query(False),
    search: str | None = Query(None),
):
    data = await list_tags(
        db,
        inventory_type=inventory_type,
        active_only=active_only,
        search=search,
    )
    return success_response("Tags fetched successfully", data)


@router.get("/{tag_id}", response_model=APIResponse[TagOut])
async def get_tag_api(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    tag = await get_tag(db, tag_id)
    return success_response("Tag fetched successfully", tag)


@router.patch("/{tag_id}", response_model=APIResponse[TagOut])
async def update_tag_api(
    tag_id: int,
    payload: TagUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    tag = await update_tag(db, tag_id, payload, user)
    return success_response("Tag updated successfully", tag)
