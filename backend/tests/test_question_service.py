"""
backend/tests/test_question_service.py

Purpose:
    Question bank lookup and the mcq/paragraph mix of a battle.
"""

from __future__ import annotations

import random
import sys

import pytest
from bson import ObjectId

sys.path.insert(0, "backend")

from app.errors import QuestionPoolExhausted
from app.services import question_service
from fake_motor import FakeDB, make_bank


def _pool(mcq, paragraph):
    return [question_service.to_battle_question(d) for d in make_bank("js", mcq, paragraph)]


def test_mix_takes_configured_split():
    picked = question_service.pick_question_mix(_pool(10, 10), size=15, mcq_count=7, rng=random.Random(1))
    assert len(picked) == 15
    assert sum(q["question_type"] == "mcq" for q in picked) == 7
    assert len({q["question_id"] for q in picked}) == 15


def test_mix_tops_up_from_other_type():
    picked = question_service.pick_question_mix(_pool(3, 14), size=15, mcq_count=7, rng=random.Random(2))
    assert len(picked) == 15
    assert sum(q["question_type"] == "mcq" for q in picked) == 3


def test_mix_raises_when_pool_too_small():
    with pytest.raises(QuestionPoolExhausted) as exc:
        question_service.pick_question_mix(_pool(4, 4), size=15, mcq_count=7)
    assert exc.value.status_code == 422


def test_malformed_bank_question_is_skipped():
    bad = {"_id": ObjectId(), "question": "broken", "question_type": "mcq", "options": ["a"], "correct_answer": "a"}
    assert question_service.to_battle_question(bad) is None


def test_to_battle_question_normalizes_tags_and_id():
    doc = make_bank("js", 1, 0)[0]
    q = question_service.to_battle_question(doc)
    assert q["question_id"] == str(doc["_id"])
    assert q["tags"] == ["js"]
    assert q["question_type"] == "mcq"


@pytest.mark.asyncio
async def test_find_questions_matches_tags_case_insensitively(monkeypatch):
    fake = FakeDB(questions=make_bank("js", 2, 2) + make_bank("python", 3, 0))
    monkeypatch.setattr(question_service._db, "db", fake, raising=False)
    found = await question_service.find_questions_by_tags(["js"])
    assert len(found) == 4
    assert all("js" in q["tags"] for q in found)
