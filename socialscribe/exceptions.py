"""Errors raised by the external platform clients."""

from typing import Optional


class PlatformError(Exception):
    """A delivery or account-linking call to an external platform failed."""

    def __init__(self, platform: str, message: str, status_code: Optional[int] = None):
        self.platform = platform
        self.message = message
        self.status_code = status_code
        super().__init__(f"{platform}: {message}")


class HashnodeError(PlatformError):
    """The Hashnode GraphQL API rejected a request or returned errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__("hashnode", message, status_code)


class TaskAlreadyScheduledError(Exception):
    """An active scheduled task already exists for this user and blog."""

    def __init__(self, blog_id: str):
        self.blog_id = blog_id
        super().__init__(f"Blog {blog_id} already scheduled")
