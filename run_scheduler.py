"""
Blog Scheduler Runner
Run this as a separate process: python run_scheduler.py
Set SCHEDULER_ENABLED=false on the API processes when using it.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from socialscribe.workers.blog_scheduler import blog_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def main():
    from socialscribe import models  # noqa: F401
    from socialscribe.database import Base, engine

    Base.metadata.create_all(bind=engine)
    blog_scheduler.reconcile()
    await blog_scheduler.run()


if __name__ == "__main__":
    logger.info("🚀 Starting blog scheduler...")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("👋 Blog scheduler stopped by user")
    except Exception as e:
        logger.error(f"❌ Blog scheduler crashed: {e}")
        sys.exit(1)
