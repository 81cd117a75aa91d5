"""
backend/app/config.py

Purpose:
    Central settings loading for the battle service.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "nova_learn"
    JWT_SECRET: str
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared after 7 days
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    LOG_LEVEL: str = "INFO"

    # Battle composition
    BATTLE_SIZE: int = 15
    BATTLE_MCQ_COUNT: int = 7  # remainder are paragraph questions
    QUESTION_POINTS: int = 10

    # Battle lifecycle
    BATTLE_MAX_PLAYERS: int = 10
    BATTLE_MIN_PLAYERS: int = 2  # joins needed for waiting -> in-progress
    BATTLE_TTL_MINUTES: int = 24 * 60  # default end_time after creation
    BATTLE_LIST_LIMIT: int = 50
    BATTLE_HISTORY_LIMIT: int = 50  # newest entries kept per user

    # Round timer budgets (client-side, advisory)
    MCQ_TIME_LIMIT_SECONDS: int = 60
    PARAGRAPH_TIME_LIMIT_SECONDS: int = 150

    # Seed the dev question bank on startup
    SEED_QUESTIONS: bool = False

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
