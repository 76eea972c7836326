"""
Admin maps router for CaliQuest.

CRUD for maps. Deleting a map removes its levels, their exercises, every
completion record tied to them, and the exercise videos.
"""

from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.storage import LocalBlobStorage, get_blob_storage
from caliquest.models.admin import AdminAction
from caliquest.models.world import EntityKind, Map
from caliquest.routers.auth import SessionContext
from caliquest.schemas.admin import DeletionResponse
from caliquest.schemas.world import MapCreate, MapResponse, MapUpdate
from caliquest.services import content

from .dependencies import admin_log, get_current_admin_user, remove_blobs


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[MapResponse])
async def list_maps(
    db: Session = Depends(get_db)
) -> List[Map]:
    """
    List all maps in play order.
    """
    return content.list_maps(db)


@router.post("/", response_model=MapResponse, status_code=status.HTTP_201_CREATED)
async def create_map(
    map_data: MapCreate,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Map:
    """
    Create a new map. Without ``order_index`` it is placed after the last map.
    """
    order_index = map_data.order_index
    if order_index is None:
        order_index = content.next_order_index(db, Map)

    new_map = Map(
        name=map_data.name,
        description=map_data.description,
        order_index=order_index
    )

    with translate_db_errors(db, "creating map"):
        db.add(new_map)
        db.flush()
        db.add(admin_log(
            current_admin, request, AdminAction.CREATE.value, EntityKind.MAP.value,
            entity_id=new_map.id,
            details={"name": new_map.name, "order_index": order_index}
        ))
        db.commit()
    db.refresh(new_map)

    logger.info(f"Admin {current_admin.user_id} created map {new_map.id}")
    return new_map


@router.put("/{map_id}", response_model=MapResponse)
async def update_map(
    map_id: int,
    map_update: MapUpdate,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
) -> Map:
    """
    Update a map's name, description or order.
    """
    game_map = content.get_map(db, map_id)

    update_data = map_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(game_map, field, value)

    with translate_db_errors(db, "updating map"):
        db.add(admin_log(
            current_admin, request, AdminAction.UPDATE.value, EntityKind.MAP.value,
            entity_id=map_id,
            details={"updated_fields": list(update_data.keys())}
        ))
        db.commit()
    db.refresh(game_map)

    return game_map


@router.delete("/{map_id}", response_model=DeletionResponse)
async def delete_map(
    map_id: int,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_blob_storage)
) -> Dict[str, Any]:
    """
    Delete a map and everything under it.
    """
    summary = content.delete_map(db, map_id)

    with translate_db_errors(db, "deleting map"):
        db.add(admin_log(
            current_admin, request, AdminAction.DELETE.value, EntityKind.MAP.value,
            entity_id=map_id,
            details={"name": summary.name, "removed": summary.removed}
        ))
        db.commit()

    remove_blobs(storage, summary.blob_keys)

    return {
        "message": f"Map '{summary.name}' deleted",
        "entity_type": summary.kind.value,
        "entity_id": summary.entity_id,
        "removed": summary.removed
    }
