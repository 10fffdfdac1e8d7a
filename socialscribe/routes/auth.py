"""
Account routes
Signup, login and logout with cookie sessions stored in Redis
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import create_session, destroy_session, normalize_username
from ..database import get_db
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..schemas import LoginRequest, SignupRequest, UserResponse
from ..security_utils import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user", tags=["Auth"])

USERNAME_MIN_LENGTH = 4
USERNAME_MAX_LENGTH = 64
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

# Rate limiters
rate_limit_signup = create_rate_limiter(
    limit=10,
    window_seconds=3600,  # 1 hour
    key_prefix="signup",
    use_ip=True,
)
rate_limit_login = create_rate_limiter(
    limit=20,
    window_seconds=300,  # 5 minutes
    key_prefix="login",
    use_ip=True,
)


def _check_username(username: str) -> None:
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
        )


@router.post("/signup", response_model=UserResponse, status_code=201)
async def signup(
    data: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_signup),
):
    username = normalize_username(data.username)
    password = data.password.strip()

    _check_username(username)
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
        )

    if db.query(User).filter(User.username == username).first():
        raise HTTPException(status_code=409, detail="Username already taken")

    email = (data.email or "").strip().lower() or None
    user = User(
        username=username,
        password_hash=hash_password(password),
        email=email,
        verified=False,
        email_verified=False,
        x_verified=False,
        linkedin_verified=False,
        hashnode_verified=False,
        notifications=[],
        shared_blogs=[],
        scheduled_blogs=[],
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username already taken") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to create user {username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create user") from e

    create_session(response, user.id)
    logger.info(f"✅ User {user.id} signed up")
    return UserResponse.from_user(user)


@router.post("/login", response_model=UserResponse, status_code=202)
async def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    username = normalize_username(data.username)
    _check_username(username)
    if len(data.password) > PASSWORD_MAX_LENGTH:
        raise HTTPException(status_code=400, detail="Password is too long")

    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(data.password.strip(), user.password_hash):
        logger.warning(f"⚠️ Failed login attempt for username: {username}")
        raise HTTPException(status_code=400, detail="Username and/or password is incorrect")

    create_session(response, user.id)
    logger.info(f"✅ User {user.id} logged in")
    return UserResponse.from_user(user)


@router.post("/logout")
async def logout(request: Request, response: Response):
    destroy_session(request, response)
    return {"success": True, "message": "Logged out successfully"}
