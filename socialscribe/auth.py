import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from .cache import cache, session_key
from .config import COOKIE_SECURE, SESSION_COOKIE_NAME, SESSION_TTL_SECONDS
from .database import get_db
from .models import User
from .security_utils import generate_token

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    """Lower-case and strip every whitespace character"""
    return "".join(username.strip().lower().split())


def create_session(response: Response, user_id: int) -> str:
    """Store a new session in the cache and attach the session cookie"""
    token = generate_token()
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=SESSION_TTL_SECONDS)
    stored = cache.set(
        session_key(token),
        {"user_id": user_id, "expires_at": expires_at.isoformat()},
        ttl=SESSION_TTL_SECONDS,
    )
    if not stored:
        logger.error(f"❌ Failed to create session for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to create session")

    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=SESSION_TTL_SECONDS,
        expires=expires_at,
        path="/",
    )
    return token


def destroy_session(request: Request, response: Response) -> None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        cache.delete(session_key(token))
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def validate_login(request: Request) -> int:
    """Resolve the session cookie to a user id, raising 401 when it is not usable"""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        logger.debug("Missing session token")
        raise HTTPException(status_code=401, detail="Unauthorized")

    session = cache.get(session_key(token))
    if not session:
        logger.debug("Invalid or expired session")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not isinstance(session, dict) or "user_id" not in session:
        logger.warning("⚠️ Invalid session data format")
        raise HTTPException(status_code=401, detail="Unauthorized")

    expires_at: Optional[str] = session.get("expires_at")
    if expires_at:
        try:
            expired = datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc)
        except (TypeError, ValueError):
            expired = True
        if expired:
            cache.delete(session_key(token))
            raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        return int(session["user_id"])
    except (TypeError, ValueError) as e:
        logger.warning("⚠️ Invalid session user id format")
        raise HTTPException(status_code=401, detail="Unauthorized") from e


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Get current user from the session cookie"""
    user_id = validate_login(request)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.error(f"❌ User with id: {user_id} not found")
        raise HTTPException(status_code=404, detail="User not found")

    return user


async def get_verified_user(user: User = Depends(get_current_user)) -> User:
    """
    Get current user and require every account link needed for sharing.
    Use this dependency for share/schedule/cancel routes.
    """
    if not user.verified:
        logger.warning(f"⚠️ User with id: {user.id} is not verified")
        raise HTTPException(status_code=403, detail="User is not verified")
    return user
