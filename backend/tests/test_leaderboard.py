"""
backend/tests/test_leaderboard.py

Purpose:
    Deterministic leaderboard ordering and battle performance aggregation.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import random
import sys

sys.path.insert(0, "backend")

from app.services.leaderboard import build_leaderboard, compute_performance, rank_players

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _player(name, score, accuracy, submitted_min=None, joined_min=0):
    return {
        "user_id": name,
        "username": name,
        "score": score,
        "accuracy": accuracy,
        "joined_at": T0 + timedelta(minutes=joined_min),
        # Mongo hands back naive datetimes
        "submitted_at": (T0 + timedelta(minutes=submitted_min)).replace(tzinfo=None)
        if submitted_min is not None else None,
    }


def test_score_then_accuracy_then_submission_time():
    players = [
        _player("late", 50, 80.0, submitted_min=9),
        _player("early", 50, 80.0, submitted_min=3),
        _player("accurate", 50, 90.0, submitted_min=10),
        _player("top", 70, 10.0, submitted_min=20),
    ]
    names = [p["username"] for p in rank_players(players)]
    assert names == ["top", "accurate", "early", "late"]


def test_unsubmitted_players_rank_after_submitted_ties():
    players = [
        _player("waiting", 0, 0.0, joined_min=0),
        _player("submitted", 0, 0.0, submitted_min=5, joined_min=1),
    ]
    assert [p["username"] for p in rank_players(players)] == ["submitted", "waiting"]


def test_order_is_stable_under_input_permutation():
    players = [
        _player("a", 30, 50.0, submitted_min=1),
        _player("b", 30, 50.0, submitted_min=1),
        _player("c", 30, 50.0),
        _player("d", 40, 10.0, submitted_min=2),
    ]
    expected = [p["username"] for p in rank_players(players)]
    rng = random.Random(7)
    for _ in range(10):
        shuffled = players[:]
        rng.shuffle(shuffled)
        assert [p["username"] for p in rank_players(shuffled)] == expected


def test_build_leaderboard_assigns_positions():
    board = build_leaderboard([_player("x", 10, 50.0, 1), _player("y", 20, 50.0, 2)])
    assert [(row["rank"], row["username"]) for row in board] == [(1, "y"), (2, "x")]
    assert board[0]["submitted"] is True
    assert board[0]["submittedAt"].tzinfo is not None


def test_compute_performance():
    perf = compute_performance(
        [_player("a", 10, 0), _player("b", 25, 0), _player("c", 0, 0)], total_questions=15,
    )
    assert perf == {
        "totalPlayers": 3,
        "highestScore": 25,
        "lowestScore": 0,
        "averageScore": 11.7,
        "totalQuestions": 15,
    }


def test_compute_performance_empty_battle():
    perf = compute_performance([], total_questions=15)
    assert perf["totalPlayers"] == 0
    assert perf["highestScore"] == 0
    assert perf["averageScore"] == 0.0
