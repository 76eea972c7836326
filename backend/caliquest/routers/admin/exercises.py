"""
Admin exercises router for CaliQuest.

Exercises are created from a multipart form carrying the video file. The
video is stored first; if the database insert then fails the stored blob is
removed again so no orphan file is left behind.
"""

from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.exceptions import CaliquestError
from caliquest.core.storage import LocalBlobStorage, get_blob_storage
from caliquest.models.admin import AdminAction
from caliquest.models.world import EntityKind, Exercise
from caliquest.routers.auth import SessionContext
from caliquest.schemas.admin import DeletionResponse
from caliquest.schemas.world import ExerciseResponse
from caliquest.services import content

from .dependencies import admin_log, get_current_admin_user, remove_blobs


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[ExerciseResponse])
async def list_exercises(
    level_id: int = Query(...),
    db: Session = Depends(get_db)
) -> List[Exercise]:
    """
    List the exercises of a level in order.
    """
    content.get_level(db, level_id)
    return content.list_exercises(db, level_id)


@router.post("/", response_model=ExerciseResponse, status_code=status.HTTP_201_CREATED)
async def create_exercise(
    request: Request,
    level_id: int = Form(...),
    name: str = Form(..., min_length=1, max_length=255),
    description: str = Form(""),
    order_index: Optional[int] = Form(None, ge=0),
    video: UploadFile = File(...),
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_blob_storage)
) -> Exercise:
    """
    Upload a video and create an exercise for it.
    """
    content.get_level(db, level_id)

    if order_index is None:
        order_index = content.next_order_index(db, Exercise, Exercise.level_id == level_id)

    blob = await run_in_threadpool(storage.upload, video.file, video.filename, "exercises")

    new_exercise = Exercise(
        level_id=level_id,
        name=name,
        description=description,
        order_index=order_index,
        video_url=blob.url,
        video_key=blob.key
    )

    try:
        with translate_db_errors(db, "creating exercise"):
            db.add(new_exercise)
            db.flush()
            db.add(admin_log(
                current_admin, request, AdminAction.CREATE.value, EntityKind.EXERCISE.value,
                entity_id=new_exercise.id,
                details={"name": name, "level_id": level_id, "video_key": blob.key}
            ))
            db.commit()
    except CaliquestError:
        remove_blobs(storage, [blob.key])
        raise
    db.refresh(new_exercise)

    logger.info(f"Admin {current_admin.user_id} created exercise {new_exercise.id} in level {level_id}")
    return new_exercise


@router.delete("/{exercise_id}", response_model=DeletionResponse)
async def delete_exercise(
    exercise_id: int,
    request: Request,
    current_admin: SessionContext = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_blob_storage)
) -> Dict[str, Any]:
    """
    Delete an exercise and its video.
    """
    summary = content.delete_exercise(db, exercise_id)

    with translate_db_errors(db, "deleting exercise"):
        db.add(admin_log(
            current_admin, request, AdminAction.DELETE.value, EntityKind.EXERCISE.value,
            entity_id=exercise_id,
            details={"name": summary.name, "video_keys": summary.blob_keys}
        ))
        db.commit()

    remove_blobs(storage, summary.blob_keys)

    return {
        "message": f"Exercise '{summary.name}' deleted",
        "entity_type": summary.kind.value,
        "entity_id": summary.entity_id,
        "removed": summary.removed
    }
