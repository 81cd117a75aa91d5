"""
backend/app/database.py

Purpose:
    MongoDB connection bootstrap and index management for the battle,
    question bank and user collections.

Dependencies:
    - motor.motor_asyncio
    - app.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("nova.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Safe to run repeatedly."""

    # ---- Battles ----

    # Join codes are globally unique; battles are never deleted.
    await db.battles.create_index("battle_code", unique=True)
    await db.battles.create_index([("created_at", -1)])
    await db.battles.create_index([("status", 1), ("end_time", 1)])
    await db.battles.create_index("players.user_id")

    # ---- Question bank ----

    await db.questions.create_index("tags")
    await db.questions.create_index([("question_type", 1), ("tags", 1)])

    # ---- Users ----

    await db.users.create_index("username", unique=True, sparse=True)
    await db.users.create_index("battle_history.battle_id")
