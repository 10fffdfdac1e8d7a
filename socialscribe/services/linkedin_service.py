"""
LinkedIn Service
OAuth 2.0 authorization code flow and member posting through the Posts API

Requirements:
- Monthly versioned API headers (LinkedIn-Version: YYYYMM)
- X-Restli-Protocol-Version: 2.0.0 header required
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from ..config import (
    LINKEDIN_API_VERSION,
    LINKEDIN_CALLBACK_URL,
    LINKEDIN_CLIENT_ID,
    LINKEDIN_CLIENT_SECRET,
)
from ..exceptions import PlatformError
from .http_client import async_client

logger = logging.getLogger(__name__)

LINKEDIN_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"  # noqa: S105 - OAuth endpoint URL
LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"
LINKEDIN_POSTS_URL = "https://api.linkedin.com/rest/posts"
LINKEDIN_SCOPES = ["openid", "profile", "email", "w_member_social"]

LINKEDIN_MAX_CONTENT_LENGTH = 3000


def is_configured() -> bool:
    return bool(LINKEDIN_CLIENT_ID and LINKEDIN_CLIENT_SECRET)


def authorization_url(state: str) -> str:
    """Build the consent URL the user is redirected to"""
    params = {
        "response_type": "code",
        "client_id": LINKEDIN_CLIENT_ID,
        "redirect_uri": LINKEDIN_CALLBACK_URL,
        "state": state,
        "scope": " ".join(LINKEDIN_SCOPES),
    }
    return f"{LINKEDIN_AUTH_URL}?{urlencode(params)}"


def _json_body(response: httpx.Response, action: str) -> dict:
    try:
        body = response.json()
    except ValueError as e:
        logger.error(f"❌ LinkedIn {action} returned invalid JSON: {response.text[:200]}")
        raise PlatformError("linkedin", f"{action} returned invalid JSON") from e
    if not isinstance(body, dict):
        raise PlatformError("linkedin", f"{action} returned an unexpected body")
    return body


async def exchange_code(code: str) -> str:
    """Exchange an authorization code for an access token"""
    try:
        async with async_client() as client:
            response = await client.post(
                LINKEDIN_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": LINKEDIN_CALLBACK_URL,
                    "client_id": LINKEDIN_CLIENT_ID,
                    "client_secret": LINKEDIN_CLIENT_SECRET,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ LinkedIn token exchange failed: {e}")
        raise PlatformError("linkedin", f"token exchange failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"❌ LinkedIn token exchange failed: {response.text}")
        raise PlatformError("linkedin", "token exchange failed", status_code=response.status_code)

    access_token = _json_body(response, "token exchange").get("access_token")
    if not access_token:
        logger.error("❌ No access token in LinkedIn response")
        raise PlatformError("linkedin", "no access token in response")
    return access_token


async def get_member_id(access_token: str) -> str:
    """Resolve the ``sub`` claim of the OpenID userinfo endpoint"""
    try:
        async with async_client() as client:
            response = await client.get(
                LINKEDIN_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as e:
        raise PlatformError("linkedin", f"userinfo request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"❌ LinkedIn userinfo failed: {response.status_code} {response.text[:200]}")
        raise PlatformError("linkedin", "userinfo request failed", status_code=response.status_code)

    sub = _json_body(response, "userinfo").get("sub")
    if not sub:
        raise PlatformError("linkedin", "userinfo response did not include a member id")
    return sub


def compose_commentary(title: str, url: Optional[str], brief: Optional[str] = None) -> str:
    parts = [(title or "").strip()]
    if brief and brief.strip():
        parts.append(brief.strip())
    tail = f"\n\n{url}" if url else ""

    body = "\n\n".join(p for p in parts if p)
    room = LINKEDIN_MAX_CONTENT_LENGTH - len(tail)
    if len(body) > room:
        body = body[: room - 3].rstrip() + "..."
    return body + tail


def _headers(access_token: str) -> dict:
    return {
        "Authorization": f"Bearer {access_token}",
        "LinkedIn-Version": LINKEDIN_API_VERSION,
        "X-Restli-Protocol-Version": "2.0.0",
        "Content-Type": "application/json",
    }


async def publish_post(
    access_token: str,
    member_id: str,
    title: str,
    url: Optional[str],
    brief: Optional[str] = None,
) -> str:
    """Publish a public feed post for the member; returns the post URN"""
    post_data = {
        "author": f"urn:li:person:{member_id}",
        "lifecycleState": "PUBLISHED",
        "visibility": "PUBLIC",
        "commentary": compose_commentary(title, url, brief),
        "distribution": {
            "feedDistribution": "MAIN_FEED",
            "targetEntities": [],
            "thirdPartyDistributionChannels": [],
        },
        "isReshareDisabledByAuthor": False,
    }

    try:
        async with async_client() as client:
            response = await client.post(
                LINKEDIN_POSTS_URL, headers=_headers(access_token), json=post_data
            )
    except httpx.HTTPError as e:
        raise PlatformError("linkedin", f"post request failed: {e}") from e

    if response.status_code not in (200, 201):
        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        logger.error(f"❌ LinkedIn post failed: {response.status_code} {message}")
        raise PlatformError(
            "linkedin", f"{response.status_code}: {message}", status_code=response.status_code
        )

    post_id = response.headers.get("x-restli-id", "")
    logger.info(f"✅ Posted to LinkedIn: {post_id or 'created'}")
    return post_id
