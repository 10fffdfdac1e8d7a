"""
Profile routes
Current user info plus the notification and blog lists kept on the profile
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user", tags=["Users"])


def get_profile_owner(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the user named in the path; only the owner may read it"""
    if user_id == str(current_user.id):
        return current_user

    exists = user_id.isdigit() and db.query(User.id).filter(User.id == int(user_id)).first()
    if not exists:
        raise HTTPException(status_code=404, detail="User not found")
    logger.warning(f"⚠️ User {current_user.id} tried to access profile of user {user_id}")
    raise HTTPException(status_code=403, detail="Forbidden")


@router.get("/info", response_model=UserResponse)
async def get_user_info(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)


@router.get("/{user_id}/notifications")
async def get_notifications(user: User = Depends(get_profile_owner)):
    return {"notifications": list(user.notifications or [])}


@router.delete("/{user_id}/notifications")
async def clear_notifications(user: User = Depends(get_profile_owner), db: Session = Depends(get_db)):
    try:
        user.notifications = []
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to clear notifications for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    return {"success": True, "message": "notifications cleared successfully"}


@router.get("/{user_id}/shared-blogs")
async def get_shared_blogs(user: User = Depends(get_profile_owner)):
    return {"shared_blogs": list(user.shared_blogs or [])}


@router.get("/{user_id}/scheduled-blogs")
async def get_scheduled_blogs(user: User = Depends(get_profile_owner)):
    return {"scheduled_blogs": list(user.scheduled_blogs or [])}
