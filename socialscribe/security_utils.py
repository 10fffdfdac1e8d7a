"""
Security utilities
Password hashing, token encryption at rest and one-time codes
"""

import base64
import hashlib
import logging
import secrets
import string
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from passlib.context import CryptContext

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# SECRETS AT REST
# ============================================================================


def get_fernet_key() -> bytes:
    key = hashlib.sha256(SECRET_KEY.encode()).digest()
    return base64.urlsafe_b64encode(key)


cipher = Fernet(get_fernet_key())


def encrypt_secret(value: Optional[str]) -> Optional[str]:
    """Encrypt a platform token before storing it"""
    if not value:
        return None
    return cipher.encrypt(value.encode()).decode()


def decrypt_secret(value: Optional[str]) -> Optional[str]:
    """Decrypt a stored platform token; None when missing or unreadable"""
    if not value:
        return None
    try:
        return cipher.decrypt(value.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt stored secret (was SECRET_KEY rotated?)")
        return None


# ============================================================================
# ONE-TIME CODES
# ============================================================================


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random numeric OTP code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_token() -> str:
    """Opaque random token for sessions and OAuth state"""
    return secrets.token_urlsafe(32)
