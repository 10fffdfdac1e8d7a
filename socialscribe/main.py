import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so they are registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import SCHEDULER_ENABLED
from .database import Base, engine
from .routes import (
    auth_router,
    blogs_router,
    connections_router,
    users_router,
    verification_router,
)
from .workers.blog_scheduler import blog_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - sessions will be unavailable: {e}")

    if SCHEDULER_ENABLED:
        try:
            blog_scheduler.reconcile()
        except Exception as e:
            logger.error(f"❌ Scheduler reconciliation failed: {e}")
        blog_scheduler.start()
    else:
        logger.info("In-process blog scheduler disabled")

    yield

    logger.info("Application shutting down...")
    if SCHEDULER_ENABLED:
        await blog_scheduler.stop()


app = FastAPI(title="SocialScribe API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or invalid request bodies are answered with 400"""
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")

    messages = []
    for error in errors:
        message = str(error.get("msg", "Invalid request"))
        # pydantic prefixes messages raised from validators
        messages.append(message.removeprefix("Value error, "))
    detail = "; ".join(messages) if messages else "Invalid request body"
    return JSONResponse(status_code=400, content={"detail": detail})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
# Cookie sessions need specific origins with credentials enabled
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(blogs_router)
app.include_router(connections_router)
app.include_router(verification_router)


@app.get("/")
def root():
    return {"message": "SocialScribe API is running"}


@app.get("/health")
def health():
    return {"status": "healthy", "scheduler": {"running": blog_scheduler.running}}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000  # Convert to milliseconds

        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
