"""
Progression engine for CaliQuest.

Maps and levels unlock linearly: among siblings ordered by
``(order_index, id)`` the first unit is always open and every later unit
opens once its predecessor has a completion record for the user.

``compute_accessibility`` is the pure rule. ``ProgressionEngine`` wraps it
with the database reads it needs and owns the only write in the system,
``record_completion``, which is idempotent per (user, unit).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple
import logging

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from caliquest.core.config import settings
from caliquest.core.database import get_db, translate_db_errors
from caliquest.core.exceptions import NotFound, PersistenceError, UnitLocked
from caliquest.models.progress import CompletionRecord, UnitKind
from caliquest.models.world import Level, Map
from caliquest.services import content


logger = logging.getLogger(__name__)


class UnitState(str, Enum):
    """Per-user state of a unit."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class CompletionStatus(str, Enum):
    """Outcome of a successful ``record_completion`` call."""
    RECORDED = "recorded"
    ALREADY_COMPLETED = "already_completed"


class MapCompletionPolicy(str, Enum):
    """When finishing levels counts as finishing their map."""
    ANY_LEVEL = "any_level"
    ALL_LEVELS = "all_levels"


@dataclass(frozen=True)
class UnitAccess:
    """Accessibility of one unit for one user."""
    unlocked: bool
    completed: bool

    @property
    def state(self) -> UnitState:
        if self.completed:
            return UnitState.COMPLETED
        if self.unlocked:
            return UnitState.UNLOCKED
        return UnitState.LOCKED


@dataclass(frozen=True)
class CompletionResult:
    """Result of recording a completion."""
    status: CompletionStatus
    unit_kind: UnitKind
    unit_id: int
    record: Optional[CompletionRecord] = None

    @property
    def created(self) -> bool:
        return self.status == CompletionStatus.RECORDED


@dataclass(frozen=True)
class LevelCompletion:
    """Result of completing a level, including its effect on the map."""
    level_id: int
    map_id: int
    status: CompletionStatus
    map_completed: bool
    next_level_id: Optional[int]


def compute_accessibility(
    siblings: Sequence[Any],
    completed_ids: Optional[Iterable[Any]]
) -> Dict[Any, UnitAccess]:
    """
    Compute which siblings are unlocked and which are completed.

    Args:
        siblings: Units already ordered by ``(order_index, id)``; only
            ``.id`` is read. The sequence is not re-sorted.
        completed_ids: Ids completed by the user. ``None`` means nothing
            completed.

    Returns:
        Dict[Any, UnitAccess]: Access per unit id, in sibling order
    """
    completed = set(completed_ids) if completed_ids is not None else set()
    access: Dict[Any, UnitAccess] = {}

    previous = None
    for unit in siblings:
        unlocked = previous is None or previous.id in completed
        access[unit.id] = UnitAccess(unlocked=unlocked, completed=unit.id in completed)
        previous = unit

    return access


class ProgressionEngine:
    """
    Database-backed progression for one request.

    Args:
        db: Session used for reads and the completion write
        enforce_unlock_order: Reject entering or completing locked units.
            Defaults to ``settings.ENFORCE_UNLOCK_ORDER``.
        map_completion_policy: ``any_level`` or ``all_levels``. Defaults to
            ``settings.MAP_COMPLETION_POLICY``.
    """

    def __init__(
        self,
        db: Session,
        enforce_unlock_order: Optional[bool] = None,
        map_completion_policy: Optional[str] = None,
    ) -> None:
        self.db = db
        self.enforce_unlock_order = (
            settings.ENFORCE_UNLOCK_ORDER if enforce_unlock_order is None else enforce_unlock_order
        )
        self.map_completion_policy = MapCompletionPolicy(
            map_completion_policy or settings.MAP_COMPLETION_POLICY
        )

    # Reads

    def completed_ids(
        self,
        user_id: int,
        kind: UnitKind,
        parent_id: Optional[int] = None
    ) -> Set[int]:
        """Ids of units of ``kind`` the user has completed, optionally within one parent."""
        with translate_db_errors(self.db, "loading completions"):
            query = self.db.query(CompletionRecord.unit_id).filter(
                CompletionRecord.user_id == user_id,
                CompletionRecord.unit_kind == kind.value
            )
            if parent_id is not None:
                query = query.filter(CompletionRecord.parent_id == parent_id)
            return {row.unit_id for row in query.all()}

    def completed_map_ids(self, user_id: int) -> Set[int]:
        """
        Ids of maps the user has completed.

        A map counts as completed when it has a stored completion record or
        when the user's level completions satisfy the map completion policy,
        so deleting levels never strands a map as unfinished.
        """
        return self.completed_ids(user_id, UnitKind.MAP) | self._maps_meeting_policy(user_id)

    def map_overview(self, user_id: int) -> List[Tuple[Map, UnitAccess]]:
        """All maps in order with the user's access to each."""
        maps = content.list_maps(self.db)
        access = compute_accessibility(maps, self.completed_map_ids(user_id))
        return [(game_map, access[game_map.id]) for game_map in maps]

    def level_overview(self, user_id: int, map_id: int) -> List[Tuple[Level, UnitAccess]]:
        """Levels of one map in order with the user's access to each."""
        levels = content.list_levels(self.db, map_id)
        completed = self.completed_ids(user_id, UnitKind.LEVEL, parent_id=map_id)
        access = compute_accessibility(levels, completed)
        return [(level, access[level.id]) for level in levels]

    def map_access(self, user_id: int, game_map: Map) -> UnitAccess:
        access = {item.id: state for item, state in self.map_overview(user_id)}
        return access[game_map.id]

    def level_access(self, user_id: int, level: Level) -> UnitAccess:
        access = {item.id: state for item, state in self.level_overview(user_id, level.map_id)}
        return access[level.id]

    def ensure_map_accessible(self, user_id: int, game_map: Map) -> None:
        """
        Raise ``UnitLocked`` if the map is locked for the user.

        No-op when unlock order is not enforced.
        """
        if not self.enforce_unlock_order:
            return
        if not self.map_access(user_id, game_map).unlocked:
            raise UnitLocked(
                "Map is locked. Complete the previous map to unlock it.",
                details={"map_id": game_map.id}
            )

    def ensure_level_accessible(self, user_id: int, level: Level) -> None:
        """
        Raise ``UnitLocked`` if the level or its map is locked for the user.

        No-op when unlock order is not enforced.
        """
        if not self.enforce_unlock_order:
            return
        self.ensure_map_accessible(user_id, level.map)
        if not self.level_access(user_id, level).unlocked:
            raise UnitLocked(
                "Level is locked. Complete the previous level to unlock it.",
                details={"level_id": level.id, "map_id": level.map_id}
            )

    # Writes

    def record_completion(
        self,
        user_id: int,
        unit_id: int,
        parent_context_id: Optional[int] = None,
        kind: UnitKind = UnitKind.LEVEL,
    ) -> CompletionResult:
        """
        Durably record that ``user_id`` completed a unit.

        A second call for the same (user, unit), including one that loses an
        insert race, succeeds with ``ALREADY_COMPLETED``.

        Args:
            user_id: Completing user
            unit_id: Level or map id
            parent_context_id: Map id for a level; read from the level when omitted
            kind: Whether ``unit_id`` names a level or a map

        Returns:
            CompletionResult: ``RECORDED`` or ``ALREADY_COMPLETED``

        Raises:
            NotFound: The unit does not exist or is not in ``parent_context_id``
            UnitLocked: Unlock order is enforced and the unit is locked
            PersistenceError: Any other database failure
        """
        unit, parent_id = self._resolve_unit(kind, unit_id, parent_context_id)

        existing = self._find_record(user_id, kind, unit_id)
        if existing:
            logger.debug(f"User {user_id} already completed {kind.value} {unit_id}")
            return CompletionResult(CompletionStatus.ALREADY_COMPLETED, kind, unit_id, existing)

        if kind == UnitKind.LEVEL:
            self.ensure_level_accessible(user_id, unit)
        else:
            self.ensure_map_accessible(user_id, unit)

        record = CompletionRecord(
            user_id=user_id,
            unit_kind=kind.value,
            unit_id=unit_id,
            parent_id=parent_id,
        )
        self.db.add(record)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            existing = self._find_record(user_id, kind, unit_id)
            if existing is None:
                raise PersistenceError.from_exception(exc, "recording completion") from exc
            logger.info(f"Concurrent completion of {kind.value} {unit_id} by user {user_id}")
            return CompletionResult(CompletionStatus.ALREADY_COMPLETED, kind, unit_id, existing)
        except SQLAlchemyError as exc:
            self.db.rollback()
            error = PersistenceError.from_exception(exc, "recording completion")
            logger.error(f"Completion of {kind.value} {unit_id} failed: {error}")
            raise error from exc

        self.db.refresh(record)
        logger.info(f"User {user_id} completed {kind.value} {unit_id}")
        return CompletionResult(CompletionStatus.RECORDED, kind, unit_id, record)

    def complete_level(self, user_id: int, level_id: int) -> LevelCompletion:
        """
        Complete a level and apply the map completion policy.

        Returns:
            LevelCompletion: Level status, whether the map now counts as
            completed, and the next level in the map (if any)
        """
        level = content.get_level(self.db, level_id)
        map_id = level.map_id

        result = self.record_completion(user_id, level.id, map_id, kind=UnitKind.LEVEL)
        map_completed = self._apply_map_policy(user_id, map_id)

        level_ids = [item.id for item in content.list_levels(self.db, map_id)]
        position = level_ids.index(level_id)
        next_level_id = level_ids[position + 1] if position + 1 < len(level_ids) else None

        return LevelCompletion(
            level_id=level_id,
            map_id=map_id,
            status=result.status,
            map_completed=map_completed,
            next_level_id=next_level_id,
        )

    # Internals

    def _resolve_unit(
        self,
        kind: UnitKind,
        unit_id: int,
        parent_context_id: Optional[int]
    ) -> Tuple[Any, Optional[int]]:
        if kind == UnitKind.MAP:
            return content.get_map(self.db, unit_id), None

        level = content.get_level(self.db, unit_id)
        if parent_context_id is not None and parent_context_id != level.map_id:
            raise NotFound(
                "Level not found in this map",
                details={"level_id": unit_id, "map_id": parent_context_id}
            )
        return level, level.map_id

    def _find_record(self, user_id: int, kind: UnitKind, unit_id: int) -> Optional[CompletionRecord]:
        with translate_db_errors(self.db, "loading completion"):
            return self.db.query(CompletionRecord).filter(
                CompletionRecord.user_id == user_id,
                CompletionRecord.unit_kind == kind.value,
                CompletionRecord.unit_id == unit_id
            ).first()

    def _maps_meeting_policy(self, user_id: int) -> Set[int]:
        with translate_db_errors(self.db, "loading levels"):
            rows = self.db.query(Level.id, Level.map_id).all()

        levels_by_map: Dict[int, Set[int]] = {}
        for row in rows:
            levels_by_map.setdefault(row.map_id, set()).add(row.id)

        # Maps without levels never qualify
        done = self.completed_ids(user_id, UnitKind.LEVEL)
        if self.map_completion_policy == MapCompletionPolicy.ALL_LEVELS:
            return {map_id for map_id, level_ids in levels_by_map.items() if level_ids <= done}
        return {map_id for map_id, level_ids in levels_by_map.items() if level_ids & done}

    def _apply_map_policy(self, user_id: int, map_id: int) -> bool:
        if map_id not in self.completed_map_ids(user_id):
            return False

        # The level is already committed; reads derive the map state from it,
        # so a failed map write must not fail the level completion.
        try:
            self.record_completion(user_id, map_id, kind=UnitKind.MAP)
        except PersistenceError as exc:
            logger.error(f"Map {map_id} completion for user {user_id} not stored: {exc}")
        return True


def get_progression_engine(db: Session = Depends(get_db)) -> ProgressionEngine:
    """Dependency building an engine with the current settings."""
    return ProgressionEngine(db)
