"""
backend/app/services/user_service.py

Purpose:
    User-side effects of a battle: the bounded battle_history log and the
    gamification scalars (xp, level, coins, accuracy/mastery/focus scores).

Dependencies:
    - app.database
    - app.config
"""

from __future__ import annotations

import logging
import math
from typing import Any

import app.database as _db
from app.config import settings
from app.utils import as_utc, utcnow

logger = logging.getLogger("nova.user_service")

XP_PER_CORRECT = 10
LEVEL_XP_STEP = 100
SKILL_SCORE_CAP = 100.0
MAX_LEVEL_UPS = 50


def battle_reward_increments(performance: dict) -> dict[str, Any]:
    """`$inc` amounts for a user's first submission in a battle."""
    correct = performance.get("correctCount", 0)
    total = performance.get("totalQuestions") or 1
    score = performance.get("totalScore", 0)
    accuracy = performance.get("accuracy", 0.0)

    gained = correct * XP_PER_CORRECT
    return {
        "xp": gained,
        "weekly_xp": gained,
        "coins": int(math.floor(score / 5 + 0.5)),
        "mastery_score": round(accuracy / 20, 1),
        "focus_score": round(correct / total * 8, 1),
    }


async def apply_battle_rewards(user_id: Any, performance: dict) -> None:
    """Credit battle rewards, cap skill scores and roll over levels."""
    users = _db.db.users
    await users.update_one(
        {"_id": user_id},
        {
            "$inc": battle_reward_increments(performance),
            "$set": {"accuracy_score": performance.get("accuracy", 0.0)},
        },
    )
    await users.update_one(
        {"_id": user_id},
        {"$min": {"mastery_score": SKILL_SCORE_CAP, "focus_score": SKILL_SCORE_CAP}},
    )
    await _roll_over_levels(user_id)


async def _roll_over_levels(user_id: Any) -> None:
    """Level up while xp covers `level * LEVEL_XP_STEP`, carrying the remainder.

    Each step is a compare-and-swap on the level it read.
    """
    for _ in range(MAX_LEVEL_UPS):
        user = await _db.db.users.find_one({"_id": user_id}, {"xp": 1, "level": 1})
        if not user:
            return
        level = user.get("level") or 1
        threshold = level * LEVEL_XP_STEP
        if (user.get("xp") or 0) < threshold:
            return
        result = await _db.db.users.update_one(
            {"_id": user_id, "level": user.get("level"), "xp": {"$gte": threshold}},
            {"$inc": {"xp": -threshold}, "$set": {"level": level + 1}},
        )
        if result.modified_count:
            logger.info("User %s reached level %d", user_id, level + 1)


async def record_battle_analytics(
    user: dict,
    battle: dict,
    rank: int | None,
    total_players: int,
    performance: dict,
    first_submission: bool,
) -> None:
    """Store one history entry per battle and award rewards once per battle."""
    battle_id = str(battle["_id"])
    entry = {
        "battle_id": battle_id,
        "battle_name": battle.get("battle_name") or "Unknown Battle",
        "date": utcnow(),
        "rank": rank,
        "total_players": total_players,
        "tag_wise_performance": performance.get("tagWisePerformance", []),
        "performance": performance,
    }

    # Re-submissions replace the earlier entry for this battle.
    await _db.db.users.update_one(
        {"_id": user["_id"]},
        {"$pull": {"battle_history": {"battle_id": battle_id}}},
    )

    await _db.db.users.update_one(
        {"_id": user["_id"]},
        {
            "$push": {
                "battle_history": {
                    "$each": [entry],
                    "$slice": -settings.BATTLE_HISTORY_LIMIT,
                }
            }
        },
    )
    if first_submission:
        await apply_battle_rewards(user["_id"], performance)

    logger.info(
        "Battle analytics recorded for user %s in battle %s (rank=%s, rewards=%s)",
        user.get("username"), battle_id, rank, first_submission,
    )


def _history_entry(raw: dict) -> dict[str, Any]:
    perf = raw.get("performance") or {}
    return {
        "battleId": raw.get("battle_id"),
        "battleName": raw.get("battle_name") or "Unknown Battle",
        "rank": raw.get("rank"),
        "totalPlayers": raw.get("total_players"),
        "totalScore": perf.get("totalScore", 0),
        "accuracy": perf.get("accuracy", 0),
        "correctCount": perf.get("correctCount", 0),
        "incorrectCount": perf.get("incorrectCount", 0),
        "completedQuestions": perf.get("answeredCount", 0),
        "tagWisePerformance": raw.get("tag_wise_performance") or [],
        "timeline": perf.get("timeline") or [],
        "paragraphFeedback": perf.get("paragraphFeedback") or [],
        "date": as_utc(raw.get("date")),
    }


def get_battle_history(user: dict, limit: int = 20, offset: int = 0) -> dict[str, Any]:
    history = list(user.get("battle_history") or [])
    history.sort(key=lambda h: as_utc(h.get("date")) or utcnow(), reverse=True)
    page = history[offset: offset + limit]
    return {
        "user": {"_id": str(user["_id"]), "username": user.get("username")},
        "total": len(history),
        "battles": [_history_entry(h) for h in page],
    }
