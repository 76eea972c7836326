"""
Progress router for CaliQuest.

Exposes the caller's completed units and the level completion action.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from caliquest.models.progress import UnitKind
from caliquest.routers.auth import SessionContext, require_onboarded_context
from caliquest.schemas.progress import LevelCompletionResponse, ProgressOverview
from caliquest.services import content
from caliquest.services.progression import ProgressionEngine, get_progression_engine


router = APIRouter()


@router.get("/", response_model=ProgressOverview)
async def get_progress_overview(
    context: SessionContext = Depends(require_onboarded_context),
    engine: ProgressionEngine = Depends(get_progression_engine)
) -> Dict[str, Any]:
    """
    Get the ids of every map and level the caller has completed.
    """
    maps = content.list_maps(engine.db)
    total_levels = sum(len(game_map.levels) for game_map in maps)

    return {
        "user_id": context.user_id,
        "completed_map_ids": sorted(engine.completed_map_ids(context.user_id)),
        "completed_level_ids": sorted(engine.completed_ids(context.user_id, UnitKind.LEVEL)),
        "total_maps": len(maps),
        "total_levels": total_levels
    }


@router.post("/levels/{level_id}/complete", response_model=LevelCompletionResponse)
async def complete_level(
    level_id: int,
    context: SessionContext = Depends(require_onboarded_context),
    engine: ProgressionEngine = Depends(get_progression_engine)
) -> Dict[str, Any]:
    """
    Mark a level as completed for the caller.

    Completing an already completed level succeeds with
    ``status=already_completed``.
    """
    result = engine.complete_level(context.user_id, level_id)

    return {
        "status": result.status.value,
        "level_id": result.level_id,
        "map_id": result.map_id,
        "map_completed": result.map_completed,
        "next_level_id": result.next_level_id
    }
