"""
Player-facing world router for CaliQuest.

Lists maps and levels with the caller's accessibility. Entering a locked map
or level is rejected with 403 when unlock order is enforced.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from caliquest.models.world import Level, Map
from caliquest.routers.auth import SessionContext, require_onboarded_context
from caliquest.schemas.world import (
    ExerciseResponse,
    LevelDetail,
    LevelProgress,
    LevelResponse,
    MapDetail,
    MapProgress,
    MapResponse
)
from caliquest.services import content
from caliquest.services.progression import ProgressionEngine, UnitAccess, get_progression_engine


maps_router = APIRouter()
levels_router = APIRouter()


def _map_progress(game_map: Map, position: int, access: UnitAccess) -> MapProgress:
    return MapProgress(
        **MapResponse.model_validate(game_map).model_dump(),
        position=position,
        unlocked=access.unlocked,
        completed=access.completed
    )


def _level_progress(level: Level, position: int, access: UnitAccess) -> LevelProgress:
    return LevelProgress(
        **LevelResponse.model_validate(level).model_dump(),
        position=position,
        unlocked=access.unlocked,
        completed=access.completed
    )


@maps_router.get("/", response_model=List[MapProgress])
async def list_maps(
    context: SessionContext = Depends(require_onboarded_context),
    engine: ProgressionEngine = Depends(get_progression_engine)
) -> List[MapProgress]:
    """
    List all maps in order with the caller's progress.
    """
    return [
        _map_progress(game_map, position, access)
        for position, (game_map, access) in enumerate(engine.map_overview(context.user_id))
    ]


@maps_router.get("/{map_id}", response_model=MapDetail)
async def get_map(
    map_id: int,
    context: SessionContext = Depends(require_onboarded_context),
    engine: ProgressionEngine = Depends(get_progression_engine)
) -> Dict[str, Any]:
    """
    Enter a map: its levels in order with the caller's progress.
    """
    game_map = content.get_map(engine.db, map_id)
    engine.ensure_map_accessible(context.user_id, game_map)

    overview = engine.map_overview(context.user_id)
    position, access = next(
        (index, state) for index, (item, state) in enumerate(overview) if item.id == map_id
    )

    return {
        "map": _map_progress(game_map, position, access),
        "levels": [
            _level_progress(level, index, level_access)
            for index, (level, level_access) in enumerate(
                engine.level_overview(context.user_id, map_id)
            )
        ]
    }


@levels_router.get("/{level_id}", response_model=LevelDetail)
async def get_level(
    level_id: int,
    context: SessionContext = Depends(require_onboarded_context),
    engine: ProgressionEngine = Depends(get_progression_engine)
) -> Dict[str, Any]:
    """
    Enter a level: its exercises in order.
    """
    level = content.get_level(engine.db, level_id)
    engine.ensure_level_accessible(context.user_id, level)

    overview = engine.level_overview(context.user_id, level.map_id)
    position, access = next(
        (index, state) for index, (item, state) in enumerate(overview) if item.id == level_id
    )

    return {
        "level": _level_progress(level, position, access),
        "map": MapResponse.model_validate(level.map),
        "exercises": [
            ExerciseResponse.model_validate(exercise)
            for exercise in content.list_exercises(engine.db, level_id)
        ]
    }
