"""
Sharing Service
Delivers a blog post to the linked platforms and reconciles the profile document
(scheduled list, shared list, notifications) with the outcome
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import PlatformError
from ..models import User
from ..schemas import PLATFORM_LABELS, SharedBlog, format_rfc3339
from ..security_utils import decrypt_secret
from . import linkedin_service, twitter_service

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    shared: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def any_shared(self) -> bool:
        return bool(self.shared)

    def failure_reason(self) -> str:
        return format_failures(self.failed)


def format_failures(failed: dict[str, str]) -> str:
    return "; ".join(f"{PLATFORM_LABELS.get(p, p)}: {reason}" for p, reason in failed.items())


def platform_labels(platforms: list[str]) -> str:
    return ", ".join(PLATFORM_LABELS.get(p, p) for p in platforms)


async def _deliver_one(user: User, platform: str, title: str, url: Optional[str], brief: Optional[str]) -> None:
    if platform == "x":
        token = decrypt_secret(user.x_oauth_token)
        secret = decrypt_secret(user.x_oauth_secret)
        if not user.x_verified or not token or not secret:
            raise PlatformError("x", "account not connected")
        await twitter_service.post_tweet(title, url, token, secret)
    elif platform == "linkedin":
        token = decrypt_secret(user.linkedin_oauth_key)
        if not user.linkedin_verified or not token or not user.linkedin_member_id:
            raise PlatformError("linkedin", "account not connected")
        await linkedin_service.publish_post(token, user.linkedin_member_id, title, url, brief)
    else:
        raise PlatformError(platform, "unsupported platform")


async def deliver(
    user: User,
    title: str,
    url: Optional[str],
    platforms: list[str],
    brief: Optional[str] = None,
) -> DeliveryResult:
    """Post to every requested platform; a failure on one never stops the others"""
    result = DeliveryResult()
    for platform in platforms:
        try:
            await _deliver_one(user, platform, title, url, brief)
            result.shared.append(platform)
        except PlatformError as e:
            logger.error(f"❌ Failed to share '{title}' on {platform} for user {user.id}: {e.message}")
            result.failed[platform] = e.message
        except Exception as e:
            # Transport errors from the platform SDKs arrive unwrapped
            logger.error(f"❌ Unexpected error sharing '{title}' on {platform} for user {user.id}: {e}")
            result.failed[platform] = str(e) or type(e).__name__
    return result


def _without_blog(entries: Optional[list], blog_id: str) -> list:
    return [entry for entry in (entries or []) if entry.get("id") != blog_id]


def record_shared(
    user: User,
    blog_id: str,
    title: str,
    url: Optional[str],
    platforms: list[str],
    failed: Optional[dict[str, str]] = None,
    shared_at: Optional[datetime] = None,
) -> dict:
    """
    Move the blog into the shared list and notify the user.
    JSON columns are reassigned so SQLAlchemy sees the change; caller commits.
    """
    shared_at = shared_at or datetime.now(timezone.utc)
    shared = SharedBlog(
        id=blog_id,
        title=title,
        url=url,
        platforms=list(platforms),
        shared_time=format_rfc3339(shared_at),
    ).model_dump()

    user.shared_blogs = _without_blog(user.shared_blogs, blog_id) + [shared]
    user.scheduled_blogs = _without_blog(user.scheduled_blogs, blog_id)

    notifications = list(user.notifications or [])
    notifications.append(f"Blog '{title}' shared on {platform_labels(platforms)}")
    if failed:
        notifications.append(f"Failed to share blog '{title}': {format_failures(failed)}")
    user.notifications = notifications
    return shared


def record_failed(user: User, blog_id: str, title: Optional[str], reason: str) -> None:
    """Drop the blog from the scheduled list and leave a failure notification"""
    user.scheduled_blogs = _without_blog(user.scheduled_blogs, blog_id)
    notifications = list(user.notifications or [])
    notifications.append(f"Failed to share blog '{title or blog_id}': {reason}")
    user.notifications = notifications
