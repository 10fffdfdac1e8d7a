"""
Account linking routes
X (OAuth 1.0a), LinkedIn (OAuth 2.0) and Hashnode (personal access token)
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..cache import cache, oauth_state_key
from ..config import (
    COOKIE_SECURE,
    FRONTEND_URL,
    OAUTH_STATE_COOKIE_NAME,
    OAUTH_STATE_TTL_SECONDS,
)
from ..database import get_db
from ..exceptions import HashnodeError, PlatformError
from ..models import User
from ..schemas import HashnodeKeyRequest
from ..security_utils import decrypt_secret, encrypt_secret, generate_token
from ..services import hashnode_service, linkedin_service, twitter_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user/connect", tags=["Connections"])


def _save(db: Session, user: User, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to update user {user.id} after {action}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


def _verification_redirect() -> RedirectResponse:
    return RedirectResponse(url=f"{FRONTEND_URL}/verification", status_code=303)


# ============================================================================
# X
# ============================================================================


@router.get("/x")
async def connect_x(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Start the X OAuth flow and redirect to the consent page"""
    try:
        auth_url, request_token, request_secret = await asyncio.to_thread(
            twitter_service.get_request_token
        )
    except PlatformError as e:
        logger.error(f"❌ Failed to start X OAuth for user {current_user.id}: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to connect to X") from e

    # Request token replaces any previous access token until the callback completes
    current_user.x_oauth_token = encrypt_secret(request_token)
    current_user.x_oauth_secret = encrypt_secret(request_secret)
    current_user.x_verified = False
    current_user.refresh_verified()
    _save(db, current_user, "X request token")

    logger.info(f"X OAuth initiated for user: {current_user.id}")
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/x/callback")
async def x_callback(
    oauth_token: Optional[str] = None,
    oauth_verifier: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not oauth_verifier:
        raise HTTPException(status_code=400, detail="Missing OAuth verifier")

    request_token = decrypt_secret(current_user.x_oauth_token)
    request_secret = decrypt_secret(current_user.x_oauth_secret)
    if not request_token or not request_secret:
        raise HTTPException(status_code=400, detail="No pending X authorization")
    if oauth_token and oauth_token != request_token:
        logger.warning(f"⚠️ X OAuth token mismatch for user {current_user.id}")
        raise HTTPException(status_code=400, detail="OAuth token mismatch")

    try:
        access_token, access_secret = await asyncio.to_thread(
            twitter_service.get_access_token, request_token, request_secret, oauth_verifier
        )
    except PlatformError as e:
        logger.error(f"❌ X access token exchange failed for user {current_user.id}: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to connect to X") from e

    current_user.x_oauth_token = encrypt_secret(access_token)
    current_user.x_oauth_secret = encrypt_secret(access_secret)
    current_user.x_verified = True
    current_user.refresh_verified()
    _save(db, current_user, "X callback")

    logger.info(f"✅ User {current_user.id} connected to X")
    return _verification_redirect()


# ============================================================================
# LinkedIn
# ============================================================================


@router.get("/linkedin")
async def connect_linkedin(current_user: User = Depends(get_current_user)):
    """Start the LinkedIn OAuth flow and redirect to the consent page"""
    if not linkedin_service.is_configured():
        raise HTTPException(status_code=500, detail="LinkedIn not configured")

    state = generate_token()
    if not cache.set(oauth_state_key(state), {"user_id": current_user.id}, ttl=OAUTH_STATE_TTL_SECONDS):
        raise HTTPException(status_code=500, detail="Failed to start LinkedIn authorization")

    response = RedirectResponse(url=linkedin_service.authorization_url(state), status_code=302)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=OAUTH_STATE_TTL_SECONDS,
        path="/",
    )
    logger.info(f"LinkedIn OAuth initiated for user: {current_user.id}")
    return response


@router.get("/linkedin/callback")
async def linkedin_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    cookie_state = request.cookies.get(OAUTH_STATE_COOKIE_NAME)
    if not state or state != cookie_state:
        logger.warning(f"⚠️ LinkedIn OAuth state mismatch for user {current_user.id}")
        raise HTTPException(status_code=403, detail="Invalid OAuth state")

    stored = cache.get(oauth_state_key(state))
    cache.delete(oauth_state_key(state))
    if not stored or stored.get("user_id") != current_user.id:
        logger.warning(f"⚠️ Unknown or expired LinkedIn OAuth state for user {current_user.id}")
        raise HTTPException(status_code=403, detail="Invalid OAuth state")

    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        access_token = await linkedin_service.exchange_code(code)
        member_id = await linkedin_service.get_member_id(access_token)
    except PlatformError as e:
        logger.error(f"❌ LinkedIn authorization failed for user {current_user.id}: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to connect to LinkedIn") from e

    current_user.linkedin_oauth_key = encrypt_secret(access_token)
    current_user.linkedin_member_id = member_id
    current_user.linkedin_verified = True
    current_user.refresh_verified()
    _save(db, current_user, "LinkedIn callback")

    logger.info(f"✅ User {current_user.id} connected to LinkedIn")
    response = _verification_redirect()
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME, path="/")
    return response


# ============================================================================
# Hashnode
# ============================================================================


@router.post("/hashnode")
async def verify_hashnode(
    data: HashnodeKeyRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    key = data.key.strip()
    if not key:
        raise HTTPException(status_code=400, detail="Missing Hashnode API key")

    try:
        host, publication_id = await hashnode_service.verify_key(key)
    except HashnodeError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=404, detail="No publications found") from e
        logger.warning(f"⚠️ Hashnode key rejected for user {current_user.id}: {e.message}")
        raise HTTPException(status_code=401, detail="Invalid Hashnode API key") from e

    current_user.hashnode_pat = encrypt_secret(key)
    current_user.hashnode_blog = host
    current_user.hashnode_verified = True
    current_user.refresh_verified()
    _save(db, current_user, "Hashnode verification")

    logger.info(f"✅ User {current_user.id} connected Hashnode publication {host}")
    return {"success": True, "url": host, "id": publication_id}
