"""
backend/app/services/scoring.py

Purpose:
    Pure scoring for battle answer sets: aligns submitted answers to the
    battle's questions, marks each question (exact match for mcq, containment
    match for paragraph) and builds the per-player performance summary.

Dependencies:
    - app.models.battle
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from app.models.battle import SKIPPED_ANSWER, TIME_UP_ANSWER, AnswerIn, normalize_tag

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")

_UNANSWERED = {TIME_UP_ANSWER.lower(), SKIPPED_ANSWER.lower()}

FEEDBACK_MATCH = "Matches the expected answer."
FEEDBACK_REVIEW = "Flagged for manual review"
FEEDBACK_NO_RESPONSE = "No response"


@dataclass
class QuestionResult:
    question_id: str
    question_number: int
    question_type: str
    answered: bool
    is_correct: bool
    points: int
    time_taken: float
    feedback: str = ""


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not text:
        return ""
    text = _PUNCT_RE.sub(" ", text.lower())
    return _SPACE_RE.sub(" ", text).strip()


def is_unanswered(answer: Optional[AnswerIn]) -> bool:
    if answer is None or answer.is_auto:
        return True
    value = (answer.answer or "").strip()
    return not value or value.lower() in _UNANSWERED


def align_answers(questions: list[dict], answers: list[AnswerIn]) -> list[Optional[AnswerIn]]:
    """Return one answer slot per question, in question order.

    An answer that names a battle question by id fills that question's slot;
    an answer without an id fills its positional slot. Unknown ids and answers
    past the end are dropped, empty slots stay None.
    """
    index_by_id = {str(q.get("question_id")): i for i, q in enumerate(questions)}
    slots: list[Optional[AnswerIn]] = [None] * len(questions)

    for position, answer in enumerate(answers):
        if answer.question_id:
            idx = index_by_id.get(str(answer.question_id))
            if idx is not None:
                slots[idx] = answer
            continue
        if position < len(slots) and slots[position] is None:
            slots[position] = answer
    return slots


def _contains_words(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


def paragraph_matches(submitted: Optional[str], expected: Optional[str]) -> bool:
    """Whole-word containment of the guideline in the answer, or of the answer
    in the guideline when the answer covers at least half of its words."""
    sub = normalize_text(submitted)
    exp = normalize_text(expected)
    if not sub or not exp:
        return False
    if _contains_words(sub, exp):
        return True
    return 2 * len(sub.split()) >= len(exp.split()) and _contains_words(exp, sub)


def score_question(
    question: dict,
    answer: Optional[AnswerIn],
    number: int,
    points: int,
) -> QuestionResult:
    qtype = question.get("question_type", "mcq")
    answered = not is_unanswered(answer)
    time_taken = float(answer.time_taken) if answer is not None else 0.0
    is_correct = False
    feedback = ""

    if answered:
        submitted = answer.answer or ""
        if qtype == "mcq":
            expected = question.get("correct_answer") or ""
            is_correct = bool(expected) and submitted.strip().lower() == expected.strip().lower()
        else:
            is_correct = paragraph_matches(submitted, question.get("answer_guidelines"))
            feedback = FEEDBACK_MATCH if is_correct else FEEDBACK_REVIEW
    elif qtype == "paragraph":
        feedback = FEEDBACK_NO_RESPONSE

    return QuestionResult(
        question_id=str(question.get("question_id")),
        question_number=number,
        question_type=qtype,
        answered=answered,
        is_correct=is_correct,
        points=points if is_correct else 0,
        time_taken=time_taken,
        feedback=feedback,
    )


def tag_wise_performance(questions: list[dict], results: list[QuestionResult]) -> list[dict[str, Any]]:
    buckets: dict[str, dict[str, int]] = {}
    for question, result in zip(questions, results):
        for tag in question.get("tags") or []:
            key = normalize_tag(tag)
            if not key:
                continue
            bucket = buckets.setdefault(key, {"correct": 0, "total": 0})
            bucket["total"] += 1
            if result.is_correct:
                bucket["correct"] += 1
    return [
        {
            "tag": tag,
            "correct": b["correct"],
            "total": b["total"],
            "accuracy": round(b["correct"] / b["total"] * 100, 1),
        }
        for tag, b in buckets.items()
    ]


def evaluate_answers(
    questions: list[dict],
    answers: list[AnswerIn],
    completion_time: float = 0.0,
    points: int = 10,
) -> dict[str, Any]:
    """Score a full answer set against the battle's questions."""
    slots = align_answers(questions, answers)
    results = [
        score_question(q, a, number=i + 1, points=points)
        for i, (q, a) in enumerate(zip(questions, slots))
    ]

    total = len(questions)
    correct = sum(1 for r in results if r.is_correct)
    total_time = round(sum(r.time_taken for r in results), 2)

    return {
        "totalScore": sum(r.points for r in results),
        "correctCount": correct,
        "incorrectCount": total - correct,
        "totalQuestions": total,
        "answeredCount": sum(1 for r in results if r.answered),
        "accuracy": round(correct / total * 100, 1) if total else 0.0,
        "timeline": [
            {"questionNumber": r.question_number, "correct": r.is_correct} for r in results
        ],
        "totalTime": total_time,
        "avgTime": round(total_time / total, 2) if total else 0.0,
        "completionTime": float(completion_time),
        "tagWisePerformance": tag_wise_performance(questions, results),
        "paragraphFeedback": [
            {
                "questionId": r.question_id,
                "isCorrect": r.is_correct,
                "points": r.points,
                "feedback": r.feedback,
            }
            for r in results
            if r.question_type == "paragraph"
        ],
    }
