"""
backend/app/services/battle_service.py

Purpose:
    Battle duel lifecycle (create, join, list, lazy expiry), answer-set
    evaluation and battle analysis. Every write to a battle document is a
    single atomic update_one so concurrent joins and submissions never lose
    each other's player entries.

Dependencies:
    - app.database
    - app.services.question_service
    - app.services.scoring
    - app.services.leaderboard
    - app.services.user_service
"""

from __future__ import annotations

import logging
import random
import re
import secrets
import string
from datetime import timedelta
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

import app.database as _db
from app.config import settings
from app.errors import AlreadyFinished, BattleFull, InternalError, NotFound, ValidationError
from app.models.battle import (
    CLOSED_STATUSES,
    OPEN_STATUSES,
    BattleEvaluate,
    PlayerEntry,
    normalize_tags,
)
from app.services.leaderboard import build_leaderboard, compute_performance, rank_players
from app.services.question_service import select_battle_questions
from app.services.scoring import evaluate_answers
from app.services.user_service import record_battle_analytics
from app.utils import as_utc, ensure_utc, utcnow

logger = logging.getLogger("nova.battle_service")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")
MAX_CODE_ATTEMPTS = 10

_LIST_PROJECTION = {
    "battle_name": 1,
    "battle_code": 1,
    "tags": 1,
    "status": 1,
    "end_time": 1,
    "created_at": 1,
    "players.user_id": 1,
}


def generate_battle_code() -> str:
    """Generate a join code like K7Q2XA."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def time_limits() -> dict[str, int]:
    return {
        "mcq": settings.MCQ_TIME_LIMIT_SECONDS,
        "paragraph": settings.PARAGRAPH_TIME_LIMIT_SECONDS,
    }


def _parse_battle_id(battle_id: Any) -> ObjectId:
    try:
        return ObjectId(battle_id)
    except (InvalidId, TypeError):
        raise NotFound("Battle not found")


def _is_stale(battle: dict) -> bool:
    end = battle.get("end_time")
    return (
        battle.get("status") in OPEN_STATUSES
        and end is not None
        and ensure_utc(end) <= utcnow()
    )


def effective_status(battle: dict) -> str:
    """Status as a reader should see it, without persisting lazy expiry."""
    return "expired" if _is_stale(battle) else battle.get("status", "waiting")


def _new_player(user: dict, now) -> dict:
    return PlayerEntry(
        user_id=str(user["_id"]),
        username=user.get("username") or "",
        joined_at=now,
    ).model_dump()


def public_question(q: dict, reveal: bool = False) -> dict[str, Any]:
    """Client view of a question; answer keys only once the battle is closed."""
    view = {
        "questionId": q.get("question_id"),
        "question": q.get("question"),
        "questionType": q.get("question_type"),
        "difficulty": q.get("difficulty"),
        "category": q.get("category"),
        "tags": q.get("tags") or [],
    }
    if q.get("question_type") == "mcq":
        view["options"] = q.get("options") or []
    if reveal:
        if q.get("question_type") == "mcq":
            view["correctAnswer"] = q.get("correct_answer")
        else:
            view["answerGuidelines"] = q.get("answer_guidelines")
        view["explanation"] = q.get("explanation") or ""
    return view


def player_view(p: dict) -> dict[str, Any]:
    return {
        "userId": p.get("user_id"),
        "username": p.get("username"),
        "score": p.get("score") or 0,
        "accuracy": p.get("accuracy") or 0.0,
        "rank": p.get("rank"),
        "submitted": p.get("submitted_at") is not None,
        "joinedAt": as_utc(p.get("joined_at")),
    }


async def expire_battle_if_stale(battle: dict) -> dict:
    """Move an open battle past its end_time to `expired`. Returns the fresh doc."""
    if not _is_stale(battle):
        return battle
    now = utcnow()
    result = await _db.db.battles.update_one(
        {"_id": battle["_id"], "status": {"$in": list(OPEN_STATUSES)}},
        {"$set": {"status": "expired", "updated_at": now}},
    )
    if result.modified_count:
        logger.info("Battle %s expired", battle.get("battle_code"))
    return await _db.db.battles.find_one({"_id": battle["_id"]}) or {**battle, "status": "expired"}


# ---------- Lifecycle ----------


async def create_battle(
    user: dict,
    battle_name: str,
    tags: list[str],
    rng: Optional[random.Random] = None,
) -> dict:
    """Create a battle in `waiting` with a tag-matched question set."""
    name = (battle_name or "").strip()
    if not name:
        raise ValidationError("Battle name is required.")
    norm_tags = normalize_tags(tags or [])
    if not norm_tags:
        raise ValidationError("At least one tag is required.")

    questions = await select_battle_questions(
        norm_tags, settings.BATTLE_SIZE, settings.BATTLE_MCQ_COUNT, rng=rng,
    )

    now = utcnow()
    battle_doc = {
        "battle_name": name,
        "tags": norm_tags,
        "questions": questions,
        "players": [],
        "status": "waiting",
        "created_by": str(user["_id"]),
        "created_by_name": user.get("username"),
        "start_time": now,
        "end_time": now + timedelta(minutes=settings.BATTLE_TTL_MINUTES),
        "finished_at": None,
        "created_at": now,
        "updated_at": now,
    }

    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_battle_code()
        if await _db.db.battles.find_one({"battle_code": code}, {"_id": 1}):
            continue
        battle_doc["battle_code"] = code
        battle_doc.pop("_id", None)
        try:
            result = await _db.db.battles.insert_one(battle_doc)
        except DuplicateKeyError:
            logger.warning("Battle code collision on insert: %s", code)
            continue
        battle_doc["_id"] = result.inserted_id
        break
    else:
        raise InternalError("Could not generate a unique battle code.")

    logger.info(
        "Battle created: %s (code: %s, %d questions) by %s",
        name, battle_doc["battle_code"], len(questions), user.get("username"),
    )
    return battle_doc


def create_response(battle: dict) -> dict[str, Any]:
    questions = battle.get("questions") or []
    mcq = sum(1 for q in questions if q.get("question_type") == "mcq")
    return {
        "message": "Battle created successfully",
        "battleId": str(battle["_id"]),
        "battleCode": battle["battle_code"],
        "battleName": battle["battle_name"],
        "createdBy": battle.get("created_by_name"),
        "tags": battle.get("tags") or [],
        "status": battle["status"],
        "questionCount": len(questions),
        "mcq": mcq,
        "paragraph": len(questions) - mcq,
        "createdAt": as_utc(battle.get("created_at")),
        "endTime": as_utc(battle.get("end_time")),
    }


async def join_battle(user: dict, battle_code: str) -> dict[str, Any]:
    """Add the user to a battle by code. Re-joining returns the same snapshot."""
    code = (battle_code or "").strip().upper()
    if not code:
        raise ValidationError("Battle code is required.")

    battle = await _db.db.battles.find_one({"battle_code": code})
    if not battle:
        raise NotFound("Battle not found")
    battle = await expire_battle_if_stale(battle)
    if battle["status"] in CLOSED_STATUSES:
        raise AlreadyFinished(f"Battle is already {battle['status']}.")

    user_id = str(user["_id"])
    rejoined = any(p.get("user_id") == user_id for p in battle.get("players") or [])

    if not rejoined:
        now = utcnow()
        result = await _db.db.battles.update_one(
            {
                "_id": battle["_id"],
                "status": {"$in": list(OPEN_STATUSES)},
                "players.user_id": {"$ne": user_id},
                f"players.{settings.BATTLE_MAX_PLAYERS - 1}": {"$exists": False},
            },
            {
                "$push": {"players": _new_player(user, now)},
                "$set": {"updated_at": now},
            },
        )
        if not result.modified_count:
            current = await _db.db.battles.find_one({"_id": battle["_id"]}) or battle
            if any(p.get("user_id") == user_id for p in current.get("players") or []):
                rejoined = True
            elif current.get("status") in CLOSED_STATUSES:
                raise AlreadyFinished(f"Battle is already {current['status']}.")
            else:
                raise BattleFull()
        else:
            logger.info("User %s joined battle %s", user.get("username"), code)

    await _db.db.battles.update_one(
        {
            "_id": battle["_id"],
            "status": "waiting",
            f"players.{settings.BATTLE_MIN_PLAYERS - 1}": {"$exists": True},
        },
        {"$set": {"status": "in-progress", "updated_at": utcnow()}},
    )

    battle = await _db.db.battles.find_one({"_id": battle["_id"]}) or battle
    return {
        "message": "Rejoined battle" if rejoined else "Joined battle",
        "battleId": str(battle["_id"]),
        "battleCode": battle["battle_code"],
        "battleName": battle["battle_name"],
        "tags": battle.get("tags") or [],
        "status": battle["status"],
        "players": [player_view(p) for p in battle.get("players") or []],
        "questions": [public_question(q) for q in battle.get("questions") or []],
        "timeLimits": time_limits(),
        "endTime": as_utc(battle.get("end_time")),
    }


async def list_recent_battles(limit: Optional[int] = None) -> list[dict[str, Any]]:
    limit = limit or settings.BATTLE_LIST_LIMIT
    battles = await _db.db.battles.find({}, _LIST_PROJECTION).sort(
        "created_at", -1
    ).to_list(length=limit)
    return [
        {
            "battleId": str(b["_id"]),
            "battleName": b.get("battle_name"),
            "battleCode": b.get("battle_code"),
            "tags": b.get("tags") or [],
            "status": effective_status(b),
            "playerCount": len(b.get("players") or []),
            "createdAt": as_utc(b.get("created_at")),
        }
        for b in battles
    ]


# ---------- Evaluation ----------


async def _write_ranks(battle_id: ObjectId, players: list[dict]) -> list[dict]:
    """Persist leaderboard positions per entry; returns players in rank order."""
    ranked = rank_players(players)
    for position, p in enumerate(ranked, start=1):
        if p.get("rank") != position:
            await _db.db.battles.update_one(
                {"_id": battle_id, "players.user_id": p["user_id"]},
                {"$set": {"players.$.rank": position}},
            )
        p["rank"] = position
    return ranked


async def evaluate_battle(user: dict, body: BattleEvaluate) -> dict[str, Any]:
    """Score a submitted answer set and record it on the battle and the user."""
    battle_id = _parse_battle_id(body.battle_id)
    if body.username and body.username != user.get("username"):
        raise ValidationError("username does not match the signed-in user.")

    battle = await _db.db.battles.find_one({"_id": battle_id})
    if not battle:
        raise NotFound("Battle not found")
    battle = await expire_battle_if_stale(battle)
    if battle["status"] in CLOSED_STATUSES:
        raise AlreadyFinished(f"Battle is already {battle['status']}.")

    questions = battle.get("questions") or []
    if len(body.answers) != len(questions):
        logger.warning(
            "Answer count mismatch for battle %s: got %d, expected %d",
            battle.get("battle_code"), len(body.answers), len(questions),
        )
    performance = evaluate_answers(
        questions, body.answers, body.completion_time, points=settings.QUESTION_POINTS,
    )

    user_id = str(user["_id"])
    now = utcnow()
    scored = {
        "score": performance["totalScore"],
        "accuracy": performance["accuracy"],
        "correct_count": performance["correctCount"],
        "incorrect_count": performance["incorrectCount"],
        "completion_time": performance["completionTime"],
        "submitted_at": now,
    }
    open_filter = {"_id": battle_id, "status": {"$in": list(OPEN_STATUSES)}}
    overwrite = {
        "$set": {**{f"players.$.{k}": v for k, v in scored.items()}, "updated_at": now},
    }

    # Whichever write clears submitted_at (or adds the entry) is the first
    # submission; only that request grants rewards.
    result = await _db.db.battles.update_one(
        {**open_filter, "players": {"$elemMatch": {"user_id": user_id, "submitted_at": None}}},
        overwrite,
    )
    first_submission = bool(result.matched_count)
    if not first_submission:
        result = await _db.db.battles.update_one(
            {**open_filter, "players.user_id": user_id}, overwrite,
        )
    if not result.matched_count:
        entry = {**_new_player(user, now), **scored}
        result = await _db.db.battles.update_one(
            {**open_filter, "players.user_id": {"$ne": user_id}},
            {"$push": {"players": entry}, "$set": {"updated_at": now}},
        )
        first_submission = bool(result.matched_count)
        if not result.matched_count:
            # Closed meanwhile, or a concurrent submission added our entry.
            result = await _db.db.battles.update_one(
                {**open_filter, "players.user_id": user_id}, overwrite,
            )
            if not result.matched_count:
                raise AlreadyFinished("Battle is no longer accepting submissions.")

    finish_filter: dict[str, Any] = dict(open_filter)
    if not body.finalize:
        finish_filter[f"players.{settings.BATTLE_MIN_PLAYERS - 1}"] = {"$exists": True}
        finish_filter["players"] = {"$not": {"$elemMatch": {"submitted_at": None}}}
    finished = await _db.db.battles.update_one(
        finish_filter,
        {"$set": {"status": "finished", "finished_at": now, "updated_at": now}},
    )
    if finished.modified_count:
        logger.info("Battle %s finished", battle.get("battle_code"))

    battle = await _db.db.battles.find_one({"_id": battle_id}) or battle
    players = await _write_ranks(battle_id, list(battle.get("players") or []))
    rank = next((p["rank"] for p in players if p.get("user_id") == user_id), None)

    logger.info(
        "Battle %s evaluated for %s: score=%d accuracy=%.1f rank=%s",
        battle.get("battle_code"), user.get("username"),
        performance["totalScore"], performance["accuracy"], rank,
    )

    await record_battle_analytics(
        user,
        battle,
        rank=rank,
        total_players=len(players),
        performance=performance,
        first_submission=first_submission,
    )

    return {
        "message": "Evaluation complete",
        "status": battle.get("status"),
        "analytics": compute_performance(players, len(questions)),
        "userPerformance": {**performance, "rank": rank},
        "players": build_leaderboard(players),
    }


# ---------- Analysis ----------


async def get_battle_analysis(battle_id: str) -> dict[str, Any]:
    """Leaderboard and battle-level stats. Read-only."""
    oid = _parse_battle_id(battle_id)
    battle = await _db.db.battles.find_one({"_id": oid})
    if not battle:
        raise NotFound("Battle not found.")

    status = effective_status(battle)
    reveal = status in CLOSED_STATUSES
    players = list(battle.get("players") or [])
    questions = battle.get("questions") or []

    return {
        "message": "Battle analysis fetched successfully.",
        "battle": {
            "battleId": str(battle["_id"]),
            "battleName": battle.get("battle_name"),
            "battleCode": battle.get("battle_code"),
            "tags": battle.get("tags") or [],
            "status": status,
            "createdAt": as_utc(battle.get("created_at")),
            "finishedAt": as_utc(battle.get("finished_at")),
            "questions": [public_question(q, reveal=reveal) for q in questions],
            "players": [player_view(p) for p in players],
        },
        "leaderboard": build_leaderboard(players),
        "performance": compute_performance(players, len(questions)),
    }
