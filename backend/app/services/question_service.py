"""
backend/app/services/question_service.py

Purpose:
    Read access to the question bank: tag-matched lookup and the mcq/paragraph
    mix used to build a battle's question set.

Dependencies:
    - app.database
    - app.models.battle
"""

from __future__ import annotations

import logging
import random
import re
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

import app.database as _db
from app.errors import QuestionPoolExhausted
from app.models.battle import question_adapter

logger = logging.getLogger("nova.question_service")

MAX_POOL = 2000


def _tag_patterns(tags: list[str]) -> list[re.Pattern]:
    # Bank tags are not guaranteed to be normalized.
    return [re.compile(rf"^\s*{re.escape(tag)}\s*$", re.IGNORECASE) for tag in tags]


def to_battle_question(doc: dict) -> Optional[dict]:
    """Validate a bank document into the embedded battle question shape."""
    raw = {k: v for k, v in doc.items() if k not in ("_id", "created_at", "updated_at")}
    raw["question_id"] = str(doc["_id"])
    try:
        return question_adapter.validate_python(raw).model_dump()
    except PydanticValidationError as exc:
        logger.warning("Skipping malformed bank question %s: %s", doc.get("_id"), exc.error_count())
        return None


async def find_questions_by_tags(tags: list[str]) -> list[dict]:
    docs = await _db.db.questions.find(
        {"tags": {"$in": _tag_patterns(tags)}}
    ).to_list(length=MAX_POOL)
    questions = []
    for doc in docs:
        q = to_battle_question(doc)
        if q is not None:
            questions.append(q)
    return questions


def pick_question_mix(
    pool: list[dict],
    size: int,
    mcq_count: int,
    rng: Optional[random.Random] = None,
) -> list[dict]:
    """Pick `mcq_count` mcq and `size - mcq_count` paragraph questions.

    A shortfall in one type is topped up from the other. Raises
    QuestionPoolExhausted when the pool holds fewer than `size` questions.
    """
    rng = rng or random.Random()
    if len(pool) < size:
        raise QuestionPoolExhausted(
            f"Only {len(pool)} questions match these tags; {size} are needed."
        )

    mcq = [q for q in pool if q["question_type"] == "mcq"]
    para = [q for q in pool if q["question_type"] == "paragraph"]
    rng.shuffle(mcq)
    rng.shuffle(para)

    mcq_count = min(mcq_count, size)
    selected = mcq[:mcq_count] + para[: size - mcq_count]
    if len(selected) < size:
        leftovers = mcq[mcq_count:] + para[size - mcq_count:]
        selected += leftovers[: size - len(selected)]

    rng.shuffle(selected)
    return selected


async def select_battle_questions(
    tags: list[str],
    size: int,
    mcq_count: int,
    rng: Optional[random.Random] = None,
) -> list[dict]:
    pool = await find_questions_by_tags(tags)
    logger.debug("Question pool for %s: %d", tags, len(pool))
    return pick_question_mix(pool, size, mcq_count, rng=rng)
