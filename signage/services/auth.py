"""
Bearer-token authentication and role checks.

Tokens are HS256 JWTs carrying the user id under `userId`; passwords are
stored as bcrypt hashes.
"""
import logging
import os
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from signage.db import get_db
from signage.models.user import User

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("SIGNAGE_JWT_SECRET", "")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = int(os.getenv("SIGNAGE_JWT_EXPIRY_HOURS", "24"))
BCRYPT_ROUNDS = 10

if not JWT_SECRET:
    logger.warning("SIGNAGE_JWT_SECRET is not set - using an insecure development secret")
    JWT_SECRET = "change-me"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        logger.error("Password verification failed: stored hash is not a bcrypt hash")
        return False


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=JWT_EXPIRY_HOURS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id from a valid token; raises jwt.InvalidTokenError."""
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    user_id = payload.get("userId")
    if not user_id:
        raise jwt.InvalidTokenError("token carries no userId")
    return str(user_id)


def _bearer_token(request: Request) -> str | None:
    header = (request.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")
    try:
        user_id = decode_access_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=403, detail="Invalid token")
    user = db.query(User).get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
