from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Scheduled task lifecycle
TASK_SCHEDULED = "scheduled"
TASK_PUBLISHING = "publishing"
TASK_SHARED = "shared"
TASK_FAILED = "failed"
TASK_CANCELLED = "cancelled"
ACTIVE_TASK_STATUSES = (TASK_SCHEDULED, TASK_PUBLISHING)


def utc_now() -> datetime:
    """Naive UTC timestamp, the format stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # Account linking status
    verified = Column(Boolean, default=False, nullable=False)  # Ready to share
    email_verified = Column(Boolean, default=False, nullable=False)
    x_verified = Column(Boolean, default=False, nullable=False)
    linkedin_verified = Column(Boolean, default=False, nullable=False)
    hashnode_verified = Column(Boolean, default=False, nullable=False)

    # Hashnode
    hashnode_pat = Column(Text, nullable=True)  # Encrypted personal access token
    hashnode_blog = Column(String(255), nullable=True)  # Publication host, e.g. blog.hashnode.dev

    # LinkedIn
    linkedin_oauth_key = Column(Text, nullable=True)  # Encrypted access token
    linkedin_member_id = Column(String(255), nullable=True)  # OpenID sub, used as urn:li:person:<id>

    # X - request token during the OAuth dance, access token afterwards (both encrypted)
    x_oauth_token = Column(Text, nullable=True)
    x_oauth_secret = Column(Text, nullable=True)

    # Profile document lists
    notifications = Column(JSON, default=list, nullable=False)
    shared_blogs = Column(JSON, default=list, nullable=False)
    scheduled_blogs = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    scheduled_tasks = relationship(
        "ScheduledBlogTask", back_populates="user", cascade="all, delete-orphan"
    )

    def refresh_verified(self) -> bool:
        """Recompute the overall verified flag from the per-platform flags"""
        self.verified = bool((self.x_verified or self.linkedin_verified) and self.hashnode_verified)
        return self.verified

    def connected_platforms(self) -> list[str]:
        platforms = []
        if self.x_verified:
            platforms.append("x")
        if self.linkedin_verified:
            platforms.append("linkedin")
        return platforms


class ScheduledBlogTask(Base):
    __tablename__ = "scheduled_blog_tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    blog_id = Column(String(255), nullable=False)
    title = Column(String(500), nullable=True)
    url = Column(String(1000), nullable=True)
    platforms = Column(JSON, default=list, nullable=False)
    scheduled_time = Column(DateTime, nullable=False)  # Naive UTC

    status = Column(String(20), default=TASK_SCHEDULED, nullable=False)
    retry_count = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    shared_platforms = Column(JSON, default=list, nullable=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="scheduled_tasks")

    __table_args__ = (
        Index("ix_scheduled_blog_tasks_due", "status", "scheduled_time"),
        Index("ix_scheduled_blog_tasks_user_blog", "user_id", "blog_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TASK_STATUSES
