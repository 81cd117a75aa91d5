"""
backend/app/errors.py

Purpose:
    Domain error taxonomy for the battle service. Every error carries the HTTP
    status it maps to; app.main translates them into `{"message": ...}` bodies.
"""

from fastapi import status


class BattleError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BattleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input."


class Unauthorized(BattleError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized."


class NotFound(BattleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Battle not found."


class AlreadyFinished(BattleError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "This battle is no longer open."


class BattleFull(BattleError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Battle is full."


class QuestionPoolExhausted(BattleError):
    status_code = 422
    default_message = "Not enough questions match these tags."


class InternalError(BattleError):
    pass
