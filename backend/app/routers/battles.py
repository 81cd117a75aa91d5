from typing import Any

from fastapi import APIRouter, Depends, Query, status

from app.config import settings
from app.models.battle import BattleAnalysisRequest, BattleCreate, BattleEvaluate, BattleJoin
from app.services.auth_service import get_current_user
from app.services.battle_service import (
    create_battle,
    create_response,
    evaluate_battle,
    get_battle_analysis,
    join_battle,
    list_recent_battles,
)
from app.services.user_service import get_battle_history

router = APIRouter(prefix="/api/battle", tags=["battle"])


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create(body: BattleCreate, user=Depends(get_current_user)) -> dict[str, Any]:
    """Create a battle from tag-matched questions and issue its join code."""
    battle = await create_battle(user, body.battle_name, body.tags)
    return create_response(battle)


@router.post("/join")
async def join(body: BattleJoin, user=Depends(get_current_user)) -> dict[str, Any]:
    """Join a battle by code. Idempotent for players already in the battle."""
    return await join_battle(user, body.battle_code)


@router.get("/all")
async def all_battles(
    limit: int = Query(default=settings.BATTLE_LIST_LIMIT, ge=1, le=200),
    user=Depends(get_current_user),
) -> dict[str, Any]:
    """Recent battles, newest first."""
    battles = await list_recent_battles(limit)
    return {
        "message": "All battles fetched successfully.",
        "count": len(battles),
        "battles": battles,
    }


@router.post("/evaluate")
async def evaluate(body: BattleEvaluate, user=Depends(get_current_user)) -> dict[str, Any]:
    """Score the caller's full answer set for a battle."""
    return await evaluate_battle(user, body)


@router.post("/analysis")
async def analysis(body: BattleAnalysisRequest, user=Depends(get_current_user)) -> dict[str, Any]:
    return await get_battle_analysis(body.battle_id)


@router.get("/battlehist")
async def battle_history(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user=Depends(get_current_user),
) -> dict[str, Any]:
    """The caller's battle history, newest first."""
    return {
        "message": "Battle history fetched successfully.",
        **get_battle_history(user, limit=limit, offset=offset),
    }
