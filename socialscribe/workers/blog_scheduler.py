"""
Blog Scheduler
Persists scheduled blog shares and dispatches them to the linked platforms
once their time has come
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from ..config import (
    SCHEDULER_MAX_RETRIES,
    SCHEDULER_POLL_SECONDS,
    SCHEDULER_RETRY_BASE_SECONDS,
    SCHEDULER_STUCK_AFTER_SECONDS,
)
from ..database import SessionLocal
from ..exceptions import HashnodeError, TaskAlreadyScheduledError
from ..models import (
    ACTIVE_TASK_STATUSES,
    TASK_CANCELLED,
    TASK_FAILED,
    TASK_PUBLISHING,
    TASK_SCHEDULED,
    TASK_SHARED,
    ScheduledBlogTask,
    User,
    utc_now,
)
from ..schemas import ScheduledBlog
from ..security_utils import decrypt_secret
from ..services import hashnode_service, sharing_service

logger = logging.getLogger(__name__)


def _as_naive_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return utc_now()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BlogScheduler:
    """
    Runs an asyncio loop that periodically:
    1. Claims tasks due for delivery (``scheduled`` -> ``publishing``)
    2. Shares them on every requested platform
    3. Marks them ``shared``, requeues them with back-off, or marks them ``failed``
    4. Every few cycles, returns tasks stuck in ``publishing`` to ``scheduled``
    """

    # How often to run stuck-task recovery (every N poll cycles)
    RECOVERY_INTERVAL_CYCLES = 10

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        poll_seconds: int = SCHEDULER_POLL_SECONDS,
        max_retries: int = SCHEDULER_MAX_RETRIES,
        retry_base_seconds: int = SCHEDULER_RETRY_BASE_SECONDS,
        stuck_after_seconds: int = SCHEDULER_STUCK_AFTER_SECONDS,
    ):
        self.session_factory = session_factory
        self.poll_seconds = poll_seconds
        self.max_retries = max_retries
        self.retry_base_seconds = retry_base_seconds
        self.stuck_after_seconds = stuck_after_seconds
        self._running = False
        self._cycle_count = 0
        self._loop_task: Optional[asyncio.Task] = None

    # ========================================================================
    # TASK MANAGEMENT
    # ========================================================================

    @staticmethod
    def get_active_task(db: Session, user_id: int, blog_id: str) -> Optional[ScheduledBlogTask]:
        return (
            db.query(ScheduledBlogTask)
            .filter(
                and_(
                    ScheduledBlogTask.user_id == user_id,
                    ScheduledBlogTask.blog_id == blog_id,
                    ScheduledBlogTask.status.in_(ACTIVE_TASK_STATUSES),
                )
            )
            .first()
        )

    def add_task(self, db: Session, user: User, blog: ScheduledBlog) -> ScheduledBlogTask:
        """Persist a new ``scheduled`` task; raises if one is already active"""
        if self.get_active_task(db, user.id, blog.id):
            raise TaskAlreadyScheduledError(blog.id)

        task = ScheduledBlogTask(
            user_id=user.id,
            blog_id=blog.id,
            title=blog.title,
            url=blog.url,
            platforms=list(blog.platforms),
            scheduled_time=blog.scheduled_time_utc(),
            status=TASK_SCHEDULED,
            retry_count=0,
        )
        try:
            db.add(task)
            db.commit()
            db.refresh(task)
        except Exception:
            db.rollback()
            raise

        logger.info(f"✅ Scheduled blog {blog.id} for user {user.id} at {task.scheduled_time}")
        return task

    def remove_task(self, db: Session, user_id: int, blog_id: str) -> bool:
        """Cancel the active task for the blog; returns whether one was cancelled"""
        try:
            cancelled = (
                db.query(ScheduledBlogTask)
                .filter(
                    and_(
                        ScheduledBlogTask.user_id == user_id,
                        ScheduledBlogTask.blog_id == blog_id,
                        ScheduledBlogTask.status.in_(ACTIVE_TASK_STATUSES),
                    )
                )
                .update(
                    {"status": TASK_CANCELLED, "completed_at": utc_now(), "updated_at": utc_now()},
                    synchronize_session=False,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        if cancelled:
            logger.info(f"🗑️ Cancelled scheduled blog {blog_id} for user {user_id}")
        return bool(cancelled)

    # ========================================================================
    # DISPATCH
    # ========================================================================

    def claim(self, db: Session, task_id: int) -> bool:
        """Atomically move a task from ``scheduled`` to ``publishing``"""
        claimed = (
            db.query(ScheduledBlogTask)
            .filter(
                and_(
                    ScheduledBlogTask.id == task_id,
                    ScheduledBlogTask.status == TASK_SCHEDULED,
                )
            )
            .update({"status": TASK_PUBLISHING, "updated_at": utc_now()}, synchronize_session=False)
        )
        db.commit()
        return claimed == 1

    def release(self, db: Session, task_id: int) -> None:
        """Hand a claimed task back to the dispatcher untouched"""
        db.query(ScheduledBlogTask).filter(
            and_(
                ScheduledBlogTask.id == task_id,
                ScheduledBlogTask.status == TASK_PUBLISHING,
            )
        ).update({"status": TASK_SCHEDULED, "updated_at": utc_now()}, synchronize_session=False)
        db.commit()

    def _retry_delay(self, retry_count: int) -> timedelta:
        """base * 2^retry_count: 120s after the first failure, 240s after the second"""
        return timedelta(seconds=self.retry_base_seconds * (2 ** retry_count))

    def _handle_failure(
        self, db: Session, task: ScheduledBlogTask, user: Optional[User], reason: str, now: datetime
    ) -> str:
        task.retry_count = (task.retry_count or 0) + 1
        task.error_message = reason

        if task.retry_count < self.max_retries:
            task.status = TASK_SCHEDULED
            task.scheduled_time = now + self._retry_delay(task.retry_count)
            db.commit()
            logger.warning(
                f"⚠️ Blog {task.blog_id} failed (attempt {task.retry_count}), "
                f"retrying at {task.scheduled_time}: {reason}"
            )
            return "retried"

        task.status = TASK_FAILED
        task.completed_at = now
        if user is not None:
            db.refresh(user)
            sharing_service.record_failed(user, task.blog_id, task.title, reason)
        db.commit()
        logger.error(f"❌ Blog {task.blog_id} failed after {task.retry_count} attempts: {reason}")
        return "failed"

    async def _process(self, db: Session, task: ScheduledBlogTask, now: datetime) -> str:
        user = db.query(User).filter(User.id == task.user_id).first()
        if not user:
            logger.warning(f"⚠️ User {task.user_id} not found, failing task {task.id}")
            task.status = TASK_FAILED
            task.error_message = "User not found"
            task.completed_at = now
            db.commit()
            return "failed"

        title, url, brief = task.title or task.blog_id, task.url, None
        try:
            post = await hashnode_service.get_post(task.blog_id, decrypt_secret(user.hashnode_pat))
        except HashnodeError as e:
            logger.warning(f"⚠️ Hashnode lookup failed for {task.blog_id}, using stored details: {e.message}")
            post = None
        if post:
            title, url, brief = post.title, post.url, post.brief

        result = await sharing_service.deliver(user, title, url, list(task.platforms or []), brief)
        # Profile may have changed while posting
        db.refresh(user)
        if not result.any_shared:
            return self._handle_failure(db, task, user, result.failure_reason(), now)

        task.status = TASK_SHARED
        task.shared_platforms = result.shared
        task.error_message = result.failure_reason() or None
        task.completed_at = now
        sharing_service.record_shared(
            user, task.blog_id, title, url, result.shared, failed=result.failed
        )
        db.commit()
        logger.info(f"✅ Shared scheduled blog {task.blog_id} on {', '.join(result.shared)}")
        return "shared"

    async def dispatch_due(self, now: Optional[datetime] = None) -> dict:
        """
        Deliver every ``scheduled`` task whose time has passed.
        Returns a summary of what happened to each claimed task.
        """
        now = _as_naive_utc(now)
        summary = {"due": 0, "claimed": 0, "shared": 0, "retried": 0, "failed": 0, "skipped": 0}

        db = self.session_factory()
        try:
            due_ids = [
                row.id
                for row in db.query(ScheduledBlogTask.id)
                .filter(
                    and_(
                        ScheduledBlogTask.status == TASK_SCHEDULED,
                        ScheduledBlogTask.scheduled_time <= now,
                    )
                )
                .order_by(ScheduledBlogTask.scheduled_time)
                .all()
            ]
            summary["due"] = len(due_ids)
            if not due_ids:
                return summary

            logger.info(f"🔄 Found {len(due_ids)} scheduled blogs due for sharing")

            for task_id in due_ids:
                if not self.claim(db, task_id):
                    logger.debug(f"Task {task_id} already claimed, skipping")
                    summary["skipped"] += 1
                    continue
                summary["claimed"] += 1

                task = db.query(ScheduledBlogTask).filter(ScheduledBlogTask.id == task_id).first()
                try:
                    outcome = await self._process(db, task, now)
                except Exception as e:
                    logger.error(f"❌ Error processing scheduled blog task {task_id}: {e}")
                    db.rollback()
                    task = db.query(ScheduledBlogTask).filter(ScheduledBlogTask.id == task_id).first()
                    user = db.query(User).filter(User.id == task.user_id).first()
                    outcome = self._handle_failure(db, task, user, str(e), now)
                summary[outcome] += 1

            logger.info(f"✅ Dispatch finished: {summary}")
            return summary
        finally:
            db.close()

    def recover_stuck(self, now: Optional[datetime] = None) -> int:
        """Return tasks left in ``publishing`` by a crashed dispatcher to ``scheduled``"""
        now = _as_naive_utc(now)
        cutoff = now - timedelta(seconds=self.stuck_after_seconds)

        db = self.session_factory()
        try:
            recovered = (
                db.query(ScheduledBlogTask)
                .filter(
                    and_(
                        ScheduledBlogTask.status == TASK_PUBLISHING,
                        ScheduledBlogTask.updated_at < cutoff,
                    )
                )
                .update({"status": TASK_SCHEDULED, "updated_at": now}, synchronize_session=False)
            )
            db.commit()
            if recovered:
                logger.warning(f"⚠️ Recovered {recovered} stuck scheduled blog tasks")
            return recovered
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def reconcile(self) -> dict:
        """
        Bring tasks and profile documents back in line after a restart:
        profile entries without an active task get one, active tasks whose blog
        is gone from the owner's scheduled list are cancelled.
        """
        summary = {"recreated": 0, "cancelled": 0}

        db = self.session_factory()
        try:
            scheduled_ids: dict[int, set[str]] = {}
            for user in db.query(User).all():
                entries = user.scheduled_blogs or []
                scheduled_ids[user.id] = {entry.get("id") for entry in entries}
                for entry in entries:
                    if self.get_active_task(db, user.id, entry.get("id")):
                        continue
                    try:
                        blog = ScheduledBlog.model_validate(entry)
                    except ValueError as e:
                        logger.warning(f"⚠️ Skipping invalid scheduled blog for user {user.id}: {e}")
                        continue
                    self.add_task(db, user, blog)
                    summary["recreated"] += 1

            active_tasks = (
                db.query(ScheduledBlogTask)
                .filter(ScheduledBlogTask.status.in_(ACTIVE_TASK_STATUSES))
                .all()
            )
            for task in active_tasks:
                if task.blog_id not in scheduled_ids.get(task.user_id, set()):
                    task.status = TASK_CANCELLED
                    task.completed_at = utc_now()
                    summary["cancelled"] += 1
            db.commit()

            logger.info(f"✅ Scheduler reconciled: {summary}")
            return summary
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def run(self) -> None:
        """Main loop; errors are logged and the loop keeps going"""
        self._running = True
        self._cycle_count = 0
        logger.info(f"🚀 Blog scheduler started (interval={self.poll_seconds}s)")

        while self._running:
            try:
                await self.dispatch_due()
                self._cycle_count += 1

                if self._cycle_count % self.RECOVERY_INTERVAL_CYCLES == 0:
                    self.recover_stuck()

            except asyncio.CancelledError:
                logger.info("Blog scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"❌ Error in blog scheduler loop: {e}")

            try:
                await asyncio.sleep(self.poll_seconds)
            except asyncio.CancelledError:
                break

        self._running = False
        logger.info("👋 Blog scheduler stopped")

    def start(self) -> asyncio.Task:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self.run())
        return self._loop_task

    async def stop(self) -> None:
        self._running = False
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

    @property
    def running(self) -> bool:
        return self._running


blog_scheduler = BlogScheduler()
