"""
Email verification routes
One-time codes are stored in Redis and expire after a few minutes
"""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..cache import cache, email_otp_key
from ..config import EMAIL_OTP_TTL_SECONDS
from ..database import get_db
from ..email_service import EmailDeliveryError, send_email_verification_otp
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..schemas import VerifyEmailRequest
from ..security_utils import generate_otp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user/email", tags=["Verification"])

rate_limit_email_otp = create_rate_limiter(
    limit=5,
    window_seconds=3600,  # 1 hour
    key_prefix="email_otp",
    use_ip=True,
)


@router.post("/otp")
async def reset_email_otp(
    current_user: User = Depends(get_current_user),
    _: None = Depends(rate_limit_email_otp),
):
    """Issue a fresh verification code and email it"""
    if not current_user.email:
        raise HTTPException(status_code=400, detail="No email address on file")

    key = email_otp_key(current_user.id)
    cache.delete(key)

    otp = generate_otp()
    if not cache.set(key, {"otp": otp}, ttl=EMAIL_OTP_TTL_SECONDS):
        raise HTTPException(status_code=500, detail="Failed to create OTP")

    try:
        await send_email_verification_otp(current_user.email, current_user.username, otp)
    except EmailDeliveryError as e:
        logger.error(f"❌ Failed to send verification OTP to user {current_user.id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to send OTP email") from e

    logger.info(f"📧 Verification OTP sent to user {current_user.id}")
    return {"success": True, "message": "OTP sent successfully"}


@router.post("/verify")
async def verify_email(
    data: VerifyEmailRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    key = email_otp_key(current_user.id)
    stored = cache.get(key)
    if not stored or not stored.get("otp"):
        raise HTTPException(status_code=400, detail="OTP expired")

    if not secrets.compare_digest(str(stored["otp"]).encode(), data.otp.strip().encode()):
        raise HTTPException(status_code=400, detail="Invalid OTP")

    try:
        current_user.email_verified = True
        current_user.refresh_verified()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to mark email verified for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    cache.delete(key)
    logger.info(f"✅ Email verified for user {current_user.id}")
    return {"success": True, "message": "Email verified successfully"}
