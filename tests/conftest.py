"""Shared fixtures for the SocialScribe test suite."""

import os

# Configure the app before any socialscribe module reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["TWITTER_CONSUMER_KEY"] = "consumer-key"
os.environ["TWITTER_CONSUMER_SECRET"] = "consumer-secret"
os.environ["LINKEDIN_CLIENT_ID"] = "linkedin-client"
os.environ["LINKEDIN_CLIENT_SECRET"] = "linkedin-secret"
os.environ["FRONTEND_URL"] = "http://frontend.test"

import json  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import fakeredis  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from socialscribe import cache as cache_module  # noqa: E402
from socialscribe import rate_limiter  # noqa: E402
from socialscribe.database import Base, SessionLocal, engine  # noqa: E402
from socialscribe.main import app  # noqa: E402
from socialscribe.models import User  # noqa: E402
from socialscribe.security_utils import encrypt_secret, hash_password  # noqa: E402
from socialscribe.services import http_client  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def fake_redis():
    """Route the cache and the rate limiter to an in-memory Redis."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    rate_limiter.redis_client = client
    cache_module.cache.redis_client = client
    yield client
    rate_limiter.redis_client = None
    cache_module.cache.redis_client = None


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# Outbound HTTP
# ---------------------------------------------------------------------------
class MockAPI:
    """Answers outbound httpx calls by (method, URL prefix)."""

    def __init__(self):
        self.routes = []
        self.requests = []

    def add(self, method: str, url: str, handler=None, *, json_body=None, status_code=200, headers=None):
        if handler is None:

            def handler(request, _body=json_body, _status=status_code, _headers=headers):
                return httpx.Response(_status, json=_body, headers=_headers)

        self.routes.insert(0, (method.upper(), url, handler))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, url, handler in self.routes:
            if request.method == method and str(request.url).startswith(url):
                return handler(request)
        return httpx.Response(599, text=f"No mock for {request.method} {request.url}")

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def mock_api():
    api = MockAPI()
    http_client.set_transport(httpx.MockTransport(api))
    yield api
    http_client.set_transport(None)


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------
@pytest.fixture
def make_user(db):
    def _make_user(username="alice", password=DEFAULT_PASSWORD, **fields):
        for list_field in ("notifications", "shared_blogs", "scheduled_blogs"):
            fields.setdefault(list_field, [])
        user = User(username=username, password_hash=hash_password(password), **fields)
        user.refresh_verified()
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def verified_user(make_user):
    """A user linked to X, LinkedIn and Hashnode."""
    return make_user(
        username="writer",
        email="writer@example.com",
        x_verified=True,
        x_oauth_token=encrypt_secret("x-access-token"),
        x_oauth_secret=encrypt_secret("x-access-secret"),
        linkedin_verified=True,
        linkedin_oauth_key=encrypt_secret("li-access-token"),
        linkedin_member_id="member-123",
        hashnode_verified=True,
        hashnode_pat=encrypt_secret("hashnode-pat"),
        hashnode_blog="writer.hashnode.dev",
    )


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def login(client):
    def _login(user, password=DEFAULT_PASSWORD):
        response = client.post(
            "/api/v1/user/login", json={"username": user.username, "password": password}
        )
        assert response.status_code == 202, response.text
        return client

    return _login


@pytest.fixture
def future_time():
    return (datetime.now(timezone.utc) + timedelta(hours=2)).replace(microsecond=0)


def hashnode_post(post_id="post-1", title="My First Post", url="https://writer.hashnode.dev/my-first-post"):
    return {
        "id": post_id,
        "title": title,
        "url": url,
        "brief": "A short summary.",
        "coverImage": {"url": "https://cdn.hashnode.com/cover.png"},
        "author": {"name": "Writer"},
        "readTimeInMinutes": 4,
    }
