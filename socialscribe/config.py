import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./socialscribe.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for redirects after account linking
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Session cookies
SESSION_COOKIE_NAME = "session_token"
OAUTH_STATE_COOKIE_NAME = "oauth_state"
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "86400"))  # 24 hours
OAUTH_STATE_TTL_SECONDS = int(os.getenv("OAUTH_STATE_TTL_SECONDS", "600"))  # 10 minutes
EMAIL_OTP_TTL_SECONDS = int(os.getenv("EMAIL_OTP_TTL_SECONDS", "300"))  # 5 minutes

# X (Twitter) OAuth1 Configuration
TWITTER_CONSUMER_KEY = os.getenv("TWITTER_CONSUMER_KEY")
TWITTER_CONSUMER_SECRET = os.getenv("TWITTER_CONSUMER_SECRET")
TWITTER_CALLBACK_URL = os.getenv(
    "TWITTER_CALLBACK_URL", "http://localhost:9696/api/v1/user/connect/x/callback"
)

# LinkedIn OAuth2 Configuration
LINKEDIN_CLIENT_ID = os.getenv("LINKEDIN_CLIENT_ID")
LINKEDIN_CLIENT_SECRET = os.getenv("LINKEDIN_CLIENT_SECRET")
LINKEDIN_CALLBACK_URL = os.getenv(
    "LINKEDIN_CALLBACK_URL", "http://localhost:9696/api/v1/user/connect/linkedin/callback"
)
# Monthly versioned API header (YYYYMM)
LINKEDIN_API_VERSION = os.getenv("LINKEDIN_API_VERSION", "202501")

# Hashnode GraphQL
HASHNODE_GQL_ENDPOINT = os.getenv("HASHNODE_GQL_ENDPOINT", "https://gql.hashnode.com")
HASHNODE_POSTS_PAGE_SIZE = int(os.getenv("HASHNODE_POSTS_PAGE_SIZE", "20"))

# Blog scheduler
SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
SCHEDULER_POLL_SECONDS = int(os.getenv("SCHEDULER_POLL_SECONDS", "30"))
SCHEDULER_MAX_RETRIES = int(os.getenv("SCHEDULER_MAX_RETRIES", "3"))
SCHEDULER_RETRY_BASE_SECONDS = int(os.getenv("SCHEDULER_RETRY_BASE_SECONDS", "60"))
SCHEDULER_STUCK_AFTER_SECONDS = int(os.getenv("SCHEDULER_STUCK_AFTER_SECONDS", "600"))

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "SocialScribe <noreply@socialscribe.dev>")
