"""
backend/app/services/leaderboard.py

Purpose:
    Pure leaderboard ordering and battle-level performance aggregation over a
    battle's players array.

Dependencies:
    - app.utils
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.utils import as_utc, ensure_utc

_LAST = datetime.max.replace(tzinfo=timezone.utc)


def _ts(value: datetime | None) -> datetime:
    return ensure_utc(value) if value is not None else _LAST


def leaderboard_key(player: dict) -> tuple:
    """Score desc, accuracy desc, earlier submission, earlier join, username.

    Players who have not submitted yet sort after every submitted player with
    the same score and accuracy.
    """
    return (
        -(player.get("score") or 0),
        -(player.get("accuracy") or 0.0),
        _ts(player.get("submitted_at")),
        _ts(player.get("joined_at")),
        player.get("username") or "",
        str(player.get("user_id") or ""),
    )


def rank_players(players: list[dict]) -> list[dict]:
    """Return the players sorted into leaderboard order (input untouched)."""
    return sorted(players, key=leaderboard_key)


def build_leaderboard(players: list[dict]) -> list[dict[str, Any]]:
    return [
        {
            "rank": position,
            "userId": p.get("user_id"),
            "username": p.get("username"),
            "score": p.get("score") or 0,
            "accuracy": p.get("accuracy") or 0.0,
            "correctCount": p.get("correct_count") or 0,
            "incorrectCount": p.get("incorrect_count") or 0,
            "completionTime": p.get("completion_time") or 0.0,
            "submitted": p.get("submitted_at") is not None,
            "submittedAt": as_utc(p.get("submitted_at")),
        }
        for position, p in enumerate(rank_players(players), start=1)
    ]


def compute_performance(players: list[dict], total_questions: int) -> dict[str, Any]:
    scores = [p.get("score") or 0 for p in players]
    if not scores:
        return {
            "totalPlayers": 0,
            "highestScore": 0,
            "lowestScore": 0,
            "averageScore": 0.0,
            "totalQuestions": total_questions,
        }
    return {
        "totalPlayers": len(scores),
        "highestScore": max(scores),
        "lowestScore": min(scores),
        "averageScore": round(sum(scores) / len(scores), 1),
        "totalQuestions": total_questions,
    }
