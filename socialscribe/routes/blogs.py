"""
Blog routes
List Hashnode posts, share them now, or schedule them for later
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_verified_user
from ..database import get_db
from ..exceptions import HashnodeError, TaskAlreadyScheduledError
from ..models import User
from ..schemas import (
    PLATFORM_LABELS,
    BlogIdRequest,
    ScheduledBlogData,
    ShareBlogRequest,
    normalize_platforms,
)
from ..security_utils import decrypt_secret
from ..services import hashnode_service, sharing_service
from ..workers.blog_scheduler import blog_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user/blogs", tags=["Blogs"])

BLOG_CATEGORIES = ("all", "scheduled", "shared")


def _resolve_platforms(user: User, requested: list[str]) -> list[str]:
    """Default to every connected platform; reject unknown or unconnected ones"""
    connected = user.connected_platforms()
    if not requested:
        if not connected:
            raise HTTPException(status_code=400, detail="No platform connected")
        return connected

    try:
        platforms = normalize_platforms(requested)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    missing = [p for p in platforms if p not in connected]
    if missing:
        labels = ", ".join(PLATFORM_LABELS[p] for p in missing)
        raise HTTPException(status_code=400, detail=f"Platform not connected: {labels}")
    return platforms


@router.get("")
async def get_blogs(category: str = "all", current_user: User = Depends(get_current_user)):
    category = (category or "all").strip().lower()
    if category not in BLOG_CATEGORIES:
        raise HTTPException(status_code=400, detail="Invalid category")

    if category == "scheduled":
        return {"success": True, "blogs": list(current_user.scheduled_blogs or [])}
    if category == "shared":
        return {"success": True, "blogs": list(current_user.shared_blogs or [])}

    if not current_user.hashnode_blog:
        raise HTTPException(status_code=400, detail="Hashnode account not connected")

    try:
        posts = await hashnode_service.list_publication_posts(current_user.hashnode_blog)
    except HashnodeError as e:
        logger.error(f"❌ Failed to list Hashnode posts for user {current_user.id}: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to fetch blogs from Hashnode") from e

    return {"success": True, "blogs": [post.to_listing() for post in posts]}


@router.post("/share")
async def share_blog(
    data: ShareBlogRequest,
    current_user: User = Depends(get_verified_user),
    db: Session = Depends(get_db),
):
    blog_id = data.id.strip()
    if not blog_id:
        raise HTTPException(status_code=400, detail="Missing blog id")
    platforms = _resolve_platforms(current_user, data.platforms)

    try:
        post = await hashnode_service.get_post(blog_id, decrypt_secret(current_user.hashnode_pat))
    except HashnodeError as e:
        logger.error(f"❌ Failed to fetch blog {blog_id} from Hashnode: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to fetch blog from Hashnode") from e
    if not post:
        raise HTTPException(status_code=404, detail="Blog not found")

    # Take a pending task away from the dispatcher before posting
    task = blog_scheduler.get_active_task(db, current_user.id, blog_id)
    task_id = task.id if task else None
    if task_id is not None and not blog_scheduler.claim(db, task_id):
        logger.warning(f"⚠️ Blog {blog_id} for user {current_user.id} is already being shared")
        raise HTTPException(status_code=409, detail="Blog is already being shared")

    try:
        result = await sharing_service.deliver(current_user, post.title, post.url, platforms, post.brief)
    except Exception:
        if task_id is not None:
            blog_scheduler.release(db, task_id)
        raise
    if not result.any_shared:
        if task_id is not None:
            blog_scheduler.release(db, task_id)
        raise HTTPException(status_code=502, detail=f"Failed to share blog: {result.failure_reason()}")

    try:
        # Profile may have changed while posting
        db.refresh(current_user)
        shared = sharing_service.record_shared(
            current_user, blog_id, post.title, post.url, result.shared, failed=result.failed
        )
        db.commit()
        if task_id is not None:
            blog_scheduler.remove_task(db, current_user.id, blog_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to record shared blog {blog_id} for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    logger.info(f"✅ Blog {blog_id} shared by user {current_user.id} on {', '.join(result.shared)}")
    return {"success": True, "shared_blog": shared, "failed": result.failed}


@router.post("/schedule")
async def schedule_blog(
    data: ScheduledBlogData,
    current_user: User = Depends(get_verified_user),
    db: Session = Depends(get_db),
):
    blog = data.scheduled_blog
    try:
        blog.validate_schedule()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if any(entry.get("id") == blog.id for entry in current_user.scheduled_blogs or []):
        raise HTTPException(status_code=400, detail="Blog already scheduled")
    _resolve_platforms(current_user, blog.platforms)

    try:
        blog_scheduler.add_task(db, current_user, blog)
    except TaskAlreadyScheduledError as e:
        raise HTTPException(status_code=400, detail="Blog already scheduled") from e
    except SQLAlchemyError as e:
        logger.error(f"❌ Failed to store scheduled task for blog {blog.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to store scheduled task") from e

    try:
        current_user.scheduled_blogs = list(current_user.scheduled_blogs or []) + [blog.to_document()]
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to update user {current_user.id} with scheduled blog {blog.id}: {e}")
        blog_scheduler.remove_task(db, current_user.id, blog.id)
        raise HTTPException(status_code=500, detail="Internal server error") from e

    logger.info(f"✅ Blog {blog.id} scheduled by user {current_user.id}")
    return {"success": True, "scheduled_blog": blog.to_document()}


@router.post("/schedule/cancel")
async def cancel_scheduled_blog(
    data: BlogIdRequest,
    current_user: User = Depends(get_verified_user),
    db: Session = Depends(get_db),
):
    blog_id = data.id.strip()
    if not blog_id:
        raise HTTPException(status_code=400, detail="Missing blog id")

    entries = list(current_user.scheduled_blogs or [])
    in_profile = any(entry.get("id") == blog_id for entry in entries)
    if not in_profile and not blog_scheduler.get_active_task(db, current_user.id, blog_id):
        raise HTTPException(status_code=404, detail="Scheduled blog not found")

    try:
        if in_profile:
            current_user.scheduled_blogs = [e for e in entries if e.get("id") != blog_id]
            db.commit()
        blog_scheduler.remove_task(db, current_user.id, blog_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to cancel scheduled blog {blog_id} for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    logger.info(f"✅ Scheduled blog {blog_id} cancelled by user {current_user.id}")
    return {"success": True}
