"""
backend/app/client/round_session.py

Purpose:
    Client-side round timer and answer collector for a joined battle.

    AWAITING_ANSWER -> LOCKED -> ADVANCING -> (AWAITING_ANSWER | SUBMITTING) -> SUBMITTED

    A question locks on an explicit "next" or when its time budget runs out,
    whichever comes first; after that its answer can no longer change. The
    session only reaches SUBMITTED once the evaluation round-trip succeeds.
    The timer is advisory: the server trusts the reported timeTaken/isAuto.

Dependencies:
    - app.models.battle
    - app.client.battle_client
"""

from __future__ import annotations

import math
import time
from enum import Enum
from typing import Any, Optional, Protocol

from app.client.battle_client import BattleClient
from app.models.battle import SKIPPED_ANSWER, TIME_UP_ANSWER

DEFAULT_TIME_LIMITS = {"mcq": 60, "paragraph": 150}


class RoundState(str, Enum):
    AWAITING_ANSWER = "awaiting_answer"
    LOCKED = "locked"
    ADVANCING = "advancing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class QuestionLocked(Exception):
    """The current question no longer accepts changes."""


class InvalidTransition(Exception):
    pass


class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


class RoundSession:
    def __init__(
        self,
        questions: list[dict[str, Any]],
        clock: Optional[Clock] = None,
        time_limits: Optional[dict[str, int]] = None,
    ):
        if not questions:
            raise ValueError("A round needs at least one question.")
        self.questions = questions
        self.clock = clock or MonotonicClock()
        self.time_limits = {**DEFAULT_TIME_LIMITS, **(time_limits or {})}
        self.answers: list[dict[str, Any]] = []
        self.index = 0
        self.state = RoundState.AWAITING_ANSWER
        self.result: Optional[dict[str, Any]] = None
        self._selected: Optional[str] = None
        self._round_started = self.clock.now()
        self._question_started = self._round_started
        self._completion_time: Optional[int] = None

    @classmethod
    def from_join(cls, snapshot: dict[str, Any], clock: Optional[Clock] = None) -> "RoundSession":
        """Build a session from a /join response."""
        return cls(snapshot["questions"], clock=clock, time_limits=snapshot.get("timeLimits"))

    @property
    def current_question(self) -> dict[str, Any]:
        return self.questions[self.index]

    @property
    def time_budget(self) -> int:
        return self.time_limits.get(self.current_question.get("questionType"), self.time_limits["mcq"])

    def time_left(self) -> float:
        return max(0.0, self.time_budget - (self.clock.now() - self._question_started))

    def _require(self, *states: RoundState) -> None:
        if self.state not in states:
            raise InvalidTransition(f"Not allowed in state {self.state.value}")

    def select(self, value: str) -> None:
        if self.state != RoundState.AWAITING_ANSWER:
            raise QuestionLocked("Question is locked.")
        self._selected = value

    def tick(self) -> bool:
        """Lock the question as timed out once its budget is spent."""
        if self.state == RoundState.AWAITING_ANSWER and self.time_left() <= 0:
            self.lock(auto=True)
            return True
        return False

    def lock(self, auto: bool = False) -> dict[str, Any]:
        if self.state != RoundState.AWAITING_ANSWER:
            raise QuestionLocked("Question is already locked.")
        if not auto and self.time_left() <= 0:
            auto = True

        elapsed = min(self.time_budget, max(0.0, self.clock.now() - self._question_started))
        if auto:
            answer = TIME_UP_ANSWER
        else:
            answer = self._selected if self._selected else SKIPPED_ANSWER

        question = self.current_question
        record = {
            "questionId": question.get("questionId"),
            "questionText": question.get("question"),
            "questionType": question.get("questionType"),
            "answer": answer,
            "timeTaken": round(elapsed, 2),
            "isAuto": auto,
        }
        self.answers.append(record)
        self.state = RoundState.LOCKED
        return record

    def advance(self) -> RoundState:
        self._require(RoundState.LOCKED)
        self.state = RoundState.ADVANCING
        if self.index + 1 < len(self.questions):
            self.index += 1
            self._selected = None
            self._question_started = self.clock.now()
            self.state = RoundState.AWAITING_ANSWER
        else:
            self._completion_time = math.floor(self.clock.now() - self._round_started)
            self.state = RoundState.SUBMITTING
        return self.state

    def next(self) -> RoundState:
        """The "Next" button: lock the current answer and move on."""
        self.lock()
        return self.advance()

    @property
    def completion_time(self) -> int:
        if self._completion_time is not None:
            return self._completion_time
        return math.floor(self.clock.now() - self._round_started)

    async def submit(
        self,
        client: BattleClient,
        battle_id: str,
        username: Optional[str] = None,
    ) -> dict[str, Any]:
        """Post the answer set. On failure the session stays in SUBMITTING."""
        self._require(RoundState.SUBMITTING)
        self.result = await client.evaluate(
            battle_id,
            self.answers,
            self.completion_time,
            username=username,
        )
        self.state = RoundState.SUBMITTED
        return self.result
