"""
backend/app/models/battle.py

Purpose:
    Pydantic models for battle duels: the embedded question variants, the
    stored player entry, and the camelCase request bodies of /api/battle.

Dependencies:
    - pydantic
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

BattleStatus = Literal["waiting", "in-progress", "finished", "expired"]

OPEN_STATUSES = ("waiting", "in-progress")
CLOSED_STATUSES = ("finished", "expired")

# Answer texts the round timer records for questions left unanswered.
TIME_UP_ANSWER = "⏰ Time Up (No Response)"
SKIPPED_ANSWER = "Skipped"


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, lowercase and de-duplicate tags, keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        norm = normalize_tag(tag)
        if norm and norm not in seen:
            seen.append(norm)
    return seen


class _QuestionBase(BaseModel):
    question_id: str
    question: str = Field(min_length=1)
    difficulty: str = "medium"
    category: str = "General"
    tags: list[str] = Field(default_factory=list)
    explanation: str = ""

    @field_validator("tags")
    @classmethod
    def _normalize(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class McqQuestion(_QuestionBase):
    question_type: Literal["mcq"] = "mcq"
    options: list[str] = Field(min_length=4, max_length=4)
    correct_answer: str = Field(min_length=1)


class ParagraphQuestion(_QuestionBase):
    question_type: Literal["paragraph"] = "paragraph"
    answer_guidelines: str = ""


BattleQuestion = Annotated[
    Union[McqQuestion, ParagraphQuestion],
    Field(discriminator="question_type"),
]

question_adapter: TypeAdapter[BattleQuestion] = TypeAdapter(BattleQuestion)


class PlayerEntry(BaseModel):
    """One participant as stored in battle.players."""
    user_id: str
    username: str
    joined_at: datetime
    score: int = 0
    accuracy: float = 0.0
    correct_count: int = 0
    incorrect_count: int = 0
    completion_time: float = 0.0
    submitted_at: Optional[datetime] = None
    rank: Optional[int] = None


# ---------- Request bodies ----------


class _CamelBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BattleCreate(_CamelBody):
    battle_name: str = Field(alias="battleName")
    tags: list[str] = Field(default_factory=list)


class BattleJoin(_CamelBody):
    battle_code: str = Field(alias="battleCode")


class AnswerIn(_CamelBody):
    """A single locked answer as produced by the round timer."""
    question_id: Optional[str] = Field(default=None, alias="questionId")
    question_text: Optional[str] = Field(default=None, alias="questionText")
    question_type: Optional[Literal["mcq", "paragraph"]] = Field(default=None, alias="questionType")
    answer: Optional[str] = ""
    time_taken: float = Field(default=0.0, ge=0, alias="timeTaken")
    is_auto: bool = Field(default=False, alias="isAuto")


class BattleEvaluate(_CamelBody):
    battle_id: str = Field(alias="battleId")
    username: Optional[str] = None
    answers: list[AnswerIn] = Field(default_factory=list)
    completion_time: float = Field(default=0.0, ge=0, alias="completionTime")
    finalize: bool = False


class BattleAnalysisRequest(_CamelBody):
    battle_id: str = Field(alias="battleId")
