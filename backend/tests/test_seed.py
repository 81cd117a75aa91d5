"""
backend/tests/test_seed.py

Purpose:
    The dev question bank seeds once and is usable for battle creation.
"""

from __future__ import annotations

import sys

import pytest
from bson import ObjectId

sys.path.insert(0, "backend")

import app.database as _db
from app.seed import SEED_QUESTIONS, seed_question_bank
from app.services import battle_service, question_service
from fake_motor import FakeDB, make_user


def test_every_seed_question_is_valid():
    for raw in SEED_QUESTIONS:
        assert question_service.to_battle_question({**raw, "_id": ObjectId()}) is not None


@pytest.mark.asyncio
async def test_seed_only_into_empty_bank(monkeypatch):
    fake = FakeDB()
    monkeypatch.setattr(_db, "db", fake, raising=False)
    inserted = await seed_question_bank()
    assert inserted == len(SEED_QUESTIONS)
    assert await seed_question_bank() == 0
    assert len(fake.questions.docs) == len(SEED_QUESTIONS)


@pytest.mark.asyncio
@pytest.mark.parametrize("tag", ["javascript", "Python"])
async def test_seeded_bank_supports_a_full_battle(monkeypatch, tag):
    fake = FakeDB()
    monkeypatch.setattr(_db, "db", fake, raising=False)
    await seed_question_bank()
    battle = await battle_service.create_battle(make_user("alice"), "Seeded", [tag])
    assert len(battle["questions"]) == 15
