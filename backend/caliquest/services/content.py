"""
Content helpers shared by the player and admin routers.

Lookups raise ``NotFound``; each entity kind has its own delete operation
that also clears the completion records hanging off it and reports which
video blobs became orphaned.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from caliquest.core.database import translate_db_errors
from caliquest.core.exceptions import NotFound
from caliquest.models.progress import CompletionRecord, UnitKind
from caliquest.models.world import EntityKind, Exercise, Level, Map


logger = logging.getLogger(__name__)


@dataclass
class DeletionSummary:
    """What a delete operation removed."""
    kind: EntityKind
    entity_id: int
    name: str
    blob_keys: List[str] = field(default_factory=list)
    removed: Dict[str, int] = field(default_factory=dict)


def sibling_order(model) -> Tuple:
    """
    ORDER BY clause for siblings of ``model``.

    Equal ``order_index`` values fall back to ``id``, i.e. creation order.
    """
    return (model.order_index.asc(), model.id.asc())


def next_order_index(db: Session, model, *criteria) -> int:
    """Order index that places a new row after its current siblings."""
    with translate_db_errors(db, f"reading {model.__tablename__} order"):
        max_order = db.query(func.max(model.order_index)).filter(*criteria).scalar()
    return 0 if max_order is None else max_order + 1


def get_map(db: Session, map_id: int) -> Map:
    with translate_db_errors(db, "loading map"):
        game_map = db.query(Map).filter(Map.id == map_id).first()
    if not game_map:
        raise NotFound("Map not found", details={"map_id": map_id})
    return game_map


def get_level(db: Session, level_id: int) -> Level:
    with translate_db_errors(db, "loading level"):
        level = db.query(Level).filter(Level.id == level_id).first()
    if not level:
        raise NotFound("Level not found", details={"level_id": level_id})
    return level


def get_exercise(db: Session, exercise_id: int) -> Exercise:
    with translate_db_errors(db, "loading exercise"):
        exercise = db.query(Exercise).filter(Exercise.id == exercise_id).first()
    if not exercise:
        raise NotFound("Exercise not found", details={"exercise_id": exercise_id})
    return exercise


def list_maps(db: Session) -> List[Map]:
    with translate_db_errors(db, "listing maps"):
        return db.query(Map).order_by(*sibling_order(Map)).all()


def list_levels(db: Session, map_id: int) -> List[Level]:
    with translate_db_errors(db, "listing levels"):
        return db.query(Level).filter(Level.map_id == map_id).order_by(*sibling_order(Level)).all()


def list_exercises(db: Session, level_id: int) -> List[Exercise]:
    with translate_db_errors(db, "listing exercises"):
        return db.query(Exercise).filter(
            Exercise.level_id == level_id
        ).order_by(*sibling_order(Exercise)).all()


def _delete_completions(db: Session, kind: UnitKind, unit_ids: List[int]) -> int:
    if not unit_ids:
        return 0
    return db.query(CompletionRecord).filter(
        CompletionRecord.unit_kind == kind.value,
        CompletionRecord.unit_id.in_(unit_ids)
    ).delete(synchronize_session=False)


def delete_map(db: Session, map_id: int) -> DeletionSummary:
    """
    Delete a map with its levels, their exercises, and all related completions.

    The caller commits; blob keys are returned so the files can be removed
    once the transaction has succeeded.
    """
    game_map = get_map(db, map_id)
    summary = DeletionSummary(kind=EntityKind.MAP, entity_id=game_map.id, name=game_map.name)

    with translate_db_errors(db, "deleting map"):
        level_ids = [level.id for level in game_map.levels]
        exercises = [exercise for level in game_map.levels for exercise in level.exercises]
        summary.blob_keys = [e.video_key for e in exercises if e.video_key]
        summary.removed = {
            "levels": len(level_ids),
            "exercises": len(exercises),
            "completions": (
                _delete_completions(db, UnitKind.MAP, [game_map.id])
                + _delete_completions(db, UnitKind.LEVEL, level_ids)
            ),
        }
        db.delete(game_map)
        db.flush()

    logger.info(f"Deleted map {map_id}: {summary.removed}")
    return summary


def delete_level(db: Session, level_id: int) -> DeletionSummary:
    """Delete a level with its exercises and its completions. The caller commits."""
    level = get_level(db, level_id)
    summary = DeletionSummary(kind=EntityKind.LEVEL, entity_id=level.id, name=level.name)

    with translate_db_errors(db, "deleting level"):
        summary.blob_keys = [e.video_key for e in level.exercises if e.video_key]
        summary.removed = {
            "exercises": len(level.exercises),
            "completions": _delete_completions(db, UnitKind.LEVEL, [level.id]),
        }
        db.delete(level)
        db.flush()

    logger.info(f"Deleted level {level_id}: {summary.removed}")
    return summary


def delete_exercise(db: Session, exercise_id: int) -> DeletionSummary:
    """Delete a single exercise. The caller commits."""
    exercise = get_exercise(db, exercise_id)
    summary = DeletionSummary(kind=EntityKind.EXERCISE, entity_id=exercise.id, name=exercise.name)
    if exercise.video_key:
        summary.blob_keys = [exercise.video_key]

    with translate_db_errors(db, "deleting exercise"):
        db.delete(exercise)
        db.flush()

    logger.info(f"Deleted exercise {exercise_id}")
    return summary
