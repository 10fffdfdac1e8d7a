"""
X (Twitter) Service
OAuth 1.0a three-legged flow and tweet publishing via tweepy
"""
import asyncio
import logging
from typing import Optional

import tweepy

from ..config import TWITTER_CALLBACK_URL, TWITTER_CONSUMER_KEY, TWITTER_CONSUMER_SECRET
from ..exceptions import PlatformError

logger = logging.getLogger(__name__)

X_CHAR_LIMIT = 280
X_URL_CHAR_COUNT = 23  # t.co shortening always uses 23 chars


def _enforce_char_limit(text: str, max_chars: int, suffix: str = "...") -> str:
    """
    Enforce character limit by truncating text.

    Tries to keep text readable by truncating at word boundary.
    """
    if len(text) <= max_chars:
        return text

    target = max_chars - len(suffix)
    if target <= 0:
        return text[:max_chars]

    truncated = text[:target]
    if " " in truncated:
        truncated = truncated.rsplit(" ", 1)[0]

    return truncated.rstrip() + suffix


def compose_tweet(title: str, url: Optional[str]) -> str:
    """Title and link, sized so that X counts it at or under 280"""
    title = (title or "").strip()
    if not url:
        return _enforce_char_limit(title, X_CHAR_LIMIT)
    budget = X_CHAR_LIMIT - X_URL_CHAR_COUNT - 2
    return f"{_enforce_char_limit(title, budget)}\n\n{url}"


def _handler() -> tweepy.OAuth1UserHandler:
    if not TWITTER_CONSUMER_KEY or not TWITTER_CONSUMER_SECRET:
        raise PlatformError("x", "X integration not configured")
    return tweepy.OAuth1UserHandler(
        TWITTER_CONSUMER_KEY, TWITTER_CONSUMER_SECRET, callback=TWITTER_CALLBACK_URL
    )


def get_request_token() -> tuple[str, str, str]:
    """
    Start the OAuth flow.
    Returns (authorization_url, request_token, request_token_secret).
    """
    handler = _handler()
    try:
        authorization_url = handler.get_authorization_url()
    except tweepy.TweepyException as e:
        logger.error(f"❌ Failed to get X request token: {e}")
        raise PlatformError("x", f"failed to get request token: {e}") from e

    token = handler.request_token["oauth_token"]
    secret = handler.request_token["oauth_token_secret"]
    return authorization_url, token, secret


def get_access_token(request_token: str, request_secret: str, verifier: str) -> tuple[str, str]:
    """Exchange the verified request token for an access token pair"""
    handler = _handler()
    handler.request_token = {
        "oauth_token": request_token,
        "oauth_token_secret": request_secret,
    }
    try:
        access_token, access_secret = handler.get_access_token(verifier)
    except tweepy.TweepyException as e:
        logger.error(f"❌ Failed to get X access token: {e}")
        raise PlatformError("x", f"failed to get access token: {e}") from e
    return access_token, access_secret


def _create_tweet(text: str, access_token: str, access_secret: str) -> str:
    client = tweepy.Client(
        consumer_key=TWITTER_CONSUMER_KEY,
        consumer_secret=TWITTER_CONSUMER_SECRET,
        access_token=access_token,
        access_token_secret=access_secret,
        wait_on_rate_limit=False,
    )
    try:
        response = client.create_tweet(text=text)
    except tweepy.TweepyException as e:
        raise PlatformError("x", f"failed to post tweet: {e}") from e

    data = response.data or {}
    if "id" not in data:
        raise PlatformError("x", "tweet response did not include an id")
    return str(data["id"])


async def post_tweet(title: str, url: Optional[str], access_token: str, access_secret: str) -> str:
    """Publish a blog link as a tweet; returns the tweet id"""
    text = compose_tweet(title, url)
    tweet_id = await asyncio.to_thread(_create_tweet, text, access_token, access_secret)
    logger.info(f"✅ Posted to X: tweet {tweet_id}")
    return tweet_id
