from app.client.battle_client import BattleApiError, BattleClient
from app.client.round_session import (
    Clock,
    InvalidTransition,
    MonotonicClock,
    QuestionLocked,
    RoundSession,
    RoundState,
)

__all__ = [
    "BattleApiError",
    "BattleClient",
    "Clock",
    "InvalidTransition",
    "MonotonicClock",
    "QuestionLocked",
    "RoundSession",
    "RoundState",
]
