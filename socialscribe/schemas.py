from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

SUPPORTED_PLATFORMS = ("x", "linkedin")
PLATFORM_LABELS = {"x": "X", "linkedin": "LinkedIn"}


def format_rfc3339(value: datetime) -> str:
    """Render a datetime as RFC3339 in UTC with a trailing Z"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat() + "Z"


def normalize_platforms(platforms: list[str]) -> list[str]:
    normalized = []
    for platform in platforms:
        name = platform.strip().lower()
        if name == "twitter":
            name = "x"
        if name not in SUPPORTED_PLATFORMS:
            raise ValueError(f"Unsupported platform: {platform}")
        if name not in normalized:
            normalized.append(name)
    return normalized


class SignupRequest(BaseModel):
    username: str = ""
    password: str = ""
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class UserResponse(BaseModel):
    """Public view of the profile document; secrets are never included"""

    id: str
    username: str
    email: Optional[str] = None
    verified: bool
    email_verified: bool
    x_verified: bool
    linkedin_verified: bool
    hashnode_verified: bool
    hashnode_blog: Optional[str] = None
    notifications: list[str] = []
    shared_blogs: list[dict] = []
    scheduled_blogs: list[dict] = []

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            verified=user.verified,
            email_verified=user.email_verified,
            x_verified=user.x_verified,
            linkedin_verified=user.linkedin_verified,
            hashnode_verified=user.hashnode_verified,
            hashnode_blog=user.hashnode_blog,
            notifications=list(user.notifications or []),
            shared_blogs=list(user.shared_blogs or []),
            scheduled_blogs=list(user.scheduled_blogs or []),
        )


class ScheduledBlog(BaseModel):
    """A blog post queued for delivery at ``scheduled_time``"""

    id: str
    title: Optional[str] = None
    url: Optional[str] = None
    platforms: list[str] = Field(default_factory=list, validate_default=True)
    scheduled_time: Optional[datetime] = Field(default=None, validate_default=True)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("blog id is required")
        return v

    @field_validator("platforms")
    @classmethod
    def validate_platforms(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one platform is required")
        return normalize_platforms(v)

    @field_validator("scheduled_time")
    @classmethod
    def validate_scheduled_time(cls, v: Optional[datetime]) -> datetime:
        if v is None:
            raise ValueError("scheduled time is missing")
        # Naive timestamps are taken as UTC
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def validate_schedule(self, now: Optional[datetime] = None) -> None:
        """Raise ValueError unless the scheduled time lies in the future"""
        now = now or datetime.now(timezone.utc)
        if self.scheduled_time <= now:
            raise ValueError("scheduled time must be in the future")

    def scheduled_time_utc(self) -> datetime:
        """Naive UTC value for storage"""
        return self.scheduled_time.astimezone(timezone.utc).replace(tzinfo=None)

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "platforms": list(self.platforms),
            "scheduled_time": format_rfc3339(self.scheduled_time),
        }


class ScheduledBlogData(BaseModel):
    scheduled_blog: ScheduledBlog


class SharedBlog(BaseModel):
    id: str
    title: Optional[str] = None
    url: Optional[str] = None
    platforms: list[str] = []
    shared_time: str


class BlogIdRequest(BaseModel):
    id: str = ""


class ShareBlogRequest(BaseModel):
    id: str = ""
    platforms: list[str] = Field(default_factory=list)


class HashnodeKeyRequest(BaseModel):
    key: str = ""


class VerifyEmailRequest(BaseModel):
    otp: str = ""


class BlogPost(BaseModel):
    """A post as returned by the Hashnode GraphQL API"""

    id: str
    title: str
    url: str
    brief: Optional[str] = None
    cover_image: Optional[str] = None
    author: Optional[str] = None
    read_time_in_minutes: Optional[int] = None

    def to_listing(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "coverImage": {"url": self.cover_image} if self.cover_image else None,
            "author": {"name": self.author} if self.author else None,
            "readTimeInMinutes": self.read_time_in_minutes,
        }
