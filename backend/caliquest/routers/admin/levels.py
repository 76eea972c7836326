"""
Admin levels router for CaliQuest.
"""

from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.storage import LocalBlobStorage, get_blob_storage
from caliquest.models.admin import AdminAction
from caliquest.models.world import EntityKind, Level
from caliquest.routers.auth import SessionContext
from caliquest.schemas.admin import DeletionResponse
from caliquest.schemas.world import LevelCreate, LevelResponse, LevelUpdate
from caliquest.services import content

from .dependencies import admin_log, get_current_admin_user, remove_blobs


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[LevelResponse])
async def list_levels(
    map_id: int = Query(...),
    db: Session = Depends(get_db)
) -> List[Level]:
    """
    List the levels of a map in play order.
    """
    content.get_map(db, map_id)
    return content.list_levels(db, map_id)


@router.post("/", response_model=LevelResponse, status_code=status.HTTP_201_CREATED)
async def create_level(
    level_data: LevelCreate,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Level:
    """
    Create a level inside a map.
    """
    content.get_map(db, level_data.map_id)

    order_index = level_data.order_index
    if order_index is None:
        order_index = content.next_order_index(db, Level, Level.map_id == level_data.map_id)

    new_level = Level(
        map_id=level_data.map_id,
        name=level_data.name,
        description=level_data.description,
        order_index=order_index
    )

    with translate_db_errors(db, "creating level"):
        db.add(new_level)
        db.flush()
        db.add(admin_log(
            current_admin, request, AdminAction.CREATE.value, EntityKind.LEVEL.value,
            entity_id=new_level.id,
            details={"name": new_level.name, "map_id": new_level.map_id}
        ))
        db.commit()
    db.refresh(new_level)

    logger.info(f"Admin {current_admin.user_id} created level {new_level.id} in map {new_level.map_id}")
    return new_level


@router.put("/{level_id}", response_model=LevelResponse)
async def update_level(
    level_id: int,
    level_update: LevelUpdate,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Level:
    """
    Update a level's name, description or order within its map.
    """
    level = content.get_level(db, level_id)

    update_data = level_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(level, field, value)

    with translate_db_errors(db, "updating level"):
        db.add(admin_log(
            current_admin, request, AdminAction.UPDATE.value, EntityKind.LEVEL.value,
            entity_id=level_id,
            details={"updated_fields": list(update_data.keys())}
        ))
        db.commit()
    db.refresh(level)

    return level


@router.delete("/{level_id}", response_model=DeletionResponse)
async def delete_level(
    level_id: int,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_blob_storage)
) -> Dict[str, Any]:
    """
    Delete a level with its exercises and completion records.
    """
    summary = content.delete_level(db, level_id)

    with translate_db_errors(db, "deleting level"):
        db.add(admin_log(
            current_admin, request, AdminAction.DELETE.value, EntityKind.LEVEL.value,
            entity_id=level_id,
            details={"name": summary.name, "removed": summary.removed}
        ))
        db.commit()

    remove_blobs(storage, summary.blob_keys)

    return {
        "message": f"Level '{summary.name}' deleted",
        "entity_type": summary.kind.value,
        "entity_id": summary.entity_id,
        "removed": summary.removed
    }
