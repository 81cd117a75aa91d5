import logging
import secrets
from datetime import timedelta

import jwt
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Request
from jwt.exceptions import InvalidTokenError as JWTError

import app.database as _db
from app.config import settings
from app.database import get_db
from app.errors import Unauthorized
from app.utils import utcnow

logger = logging.getLogger("nova.auth")

ALGORITHM = "HS256"
SESSION_COOKIE = "access_token"


def decode_jwt(token: str) -> dict:
    """Decode a JWT, trying the current secret first, then the old one.

    This allows zero-downtime rotation of JWT_SECRET:
    1. Set JWT_SECRET to the new value and JWT_SECRET_OLD to the previous one.
    2. Once every session issued with the old secret has expired, remove
       JWT_SECRET_OLD from .env.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        if settings.JWT_SECRET_OLD:
            return jwt.decode(token, settings.JWT_SECRET_OLD, algorithms=[ALGORITHM])
        raise


def create_access_token(user_id: str) -> str:
    """Issue a session token. Login itself lives in the account service."""
    expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": "access",
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


async def get_current_user(request: Request, db=Depends(get_db)) -> dict:
    """FastAPI dependency: extract and validate user from the session cookie."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise Unauthorized("Not authorized, no token")

    try:
        payload = decode_jwt(token)
    except JWTError:
        raise Unauthorized("Not authorized, invalid token")

    if payload.get("type") != "access":
        raise Unauthorized("Not authorized, invalid token type")

    try:
        user_id = ObjectId(payload.get("sub"))
    except (InvalidId, TypeError):
        raise Unauthorized("Not authorized, invalid token")

    if db is None:
        db = _db.db
    user = await db.users.find_one({"_id": user_id, "is_deleted": {"$ne": True}})
    if not user:
        logger.warning("Session for unknown user %s", user_id)
        raise Unauthorized("User not found")

    return user
