"""Tests for the X, LinkedIn and Hashnode clients."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
import tweepy

from conftest import hashnode_post
from socialscribe.exceptions import HashnodeError, PlatformError
from socialscribe.services import hashnode_service, linkedin_service, twitter_service

HASHNODE_URL = "https://gql.hashnode.com"


# =============================================================================
# X
# =============================================================================


class TestComposeTweet:
    def test_short_title(self):
        text = twitter_service.compose_tweet("Hello world", "https://blog.dev/hello")
        assert text == "Hello world\n\nhttps://blog.dev/hello"

    def test_long_title_is_truncated_at_word_boundary(self):
        title = "word " * 100
        text = twitter_service.compose_tweet(title, "https://blog.dev/a-very-long-url-that-x-shortens")

        headline, url = text.split("\n\n")
        assert url == "https://blog.dev/a-very-long-url-that-x-shortens"
        assert headline.endswith("word...")
        assert len(headline) + 2 + twitter_service.X_URL_CHAR_COUNT <= twitter_service.X_CHAR_LIMIT

    def test_without_url(self):
        assert twitter_service.compose_tweet("  Title  ", None) == "Title"


@pytest.mark.asyncio
async def test_post_tweet_returns_id():
    with patch("tweepy.Client") as client_cls:
        client_cls.return_value.create_tweet.return_value = MagicMock(data={"id": 1234})

        tweet_id = await twitter_service.post_tweet("Title", "https://blog.dev/t", "token", "secret")

    assert tweet_id == "1234"
    client_cls.return_value.create_tweet.assert_called_once_with(text="Title\n\nhttps://blog.dev/t")
    assert client_cls.call_args.kwargs["access_token"] == "token"
    assert client_cls.call_args.kwargs["access_token_secret"] == "secret"


@pytest.mark.asyncio
async def test_post_tweet_failure_raises_platform_error():
    with patch("tweepy.Client") as client_cls:
        client_cls.return_value.create_tweet.side_effect = tweepy.TweepyException("forbidden")

        with pytest.raises(PlatformError) as exc_info:
            await twitter_service.post_tweet("Title", "https://blog.dev/t", "token", "secret")

    assert exc_info.value.platform == "x"


# =============================================================================
# LinkedIn
# =============================================================================


class TestComposeCommentary:
    def test_includes_brief_and_url(self):
        text = linkedin_service.compose_commentary("Title", "https://blog.dev/t", "Summary")
        assert text == "Title\n\nSummary\n\nhttps://blog.dev/t"

    def test_respects_length_limit(self):
        text = linkedin_service.compose_commentary("T" * 5000, "https://blog.dev/t")

        assert len(text) == linkedin_service.LINKEDIN_MAX_CONTENT_LENGTH
        assert text.endswith("...\n\nhttps://blog.dev/t")


@pytest.mark.asyncio
async def test_publish_post_sends_versioned_request(mock_api):
    mock_api.add(
        "POST",
        linkedin_service.LINKEDIN_POSTS_URL,
        status_code=201,
        headers={"x-restli-id": "urn:li:share:99"},
    )

    post_id = await linkedin_service.publish_post("li-token", "member-1", "Title", "https://blog.dev/t")

    assert post_id == "urn:li:share:99"
    request = mock_api.requests[-1]
    assert request.headers["Authorization"] == "Bearer li-token"
    assert request.headers["X-Restli-Protocol-Version"] == "2.0.0"
    assert request.headers["LinkedIn-Version"]
    body = mock_api.last_json()
    assert body["author"] == "urn:li:person:member-1"
    assert body["visibility"] == "PUBLIC"
    assert body["commentary"] == "Title\n\nhttps://blog.dev/t"


@pytest.mark.asyncio
async def test_publish_post_error_carries_status(mock_api):
    mock_api.add(
        "POST",
        linkedin_service.LINKEDIN_POSTS_URL,
        status_code=401,
        json_body={"message": "Invalid access token"},
    )

    with pytest.raises(PlatformError) as exc_info:
        await linkedin_service.publish_post("expired", "member-1", "Title", "https://blog.dev/t")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "401: Invalid access token"


@pytest.mark.asyncio
async def test_publish_post_network_error(mock_api):
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    mock_api.add("POST", linkedin_service.LINKEDIN_POSTS_URL, unreachable)

    with pytest.raises(PlatformError):
        await linkedin_service.publish_post("token", "member-1", "Title", None)


@pytest.mark.asyncio
async def test_exchange_code_html_body(mock_api):
    mock_api.add("POST", linkedin_service.LINKEDIN_TOKEN_URL, lambda request: httpx.Response(200, text="<html>busy</html>"))

    with pytest.raises(PlatformError) as exc_info:
        await linkedin_service.exchange_code("auth-code")

    assert exc_info.value.message == "token exchange returned invalid JSON"


@pytest.mark.asyncio
async def test_member_id_unexpected_body(mock_api):
    mock_api.add("GET", linkedin_service.LINKEDIN_USERINFO_URL, json_body=["member-9"])

    with pytest.raises(PlatformError):
        await linkedin_service.get_member_id("li-token")


# =============================================================================
# Hashnode
# =============================================================================


@pytest.mark.asyncio
async def test_verify_key_strips_scheme(mock_api):
    node = {"url": "http://blog.example.com/", "id": "pub-1"}
    mock_api.add("POST", HASHNODE_URL, json_body={"data": {"me": {"publications": {"edges": [{"node": node}]}}}})

    host, publication_id = await hashnode_service.verify_key("pat")

    assert (host, publication_id) == ("blog.example.com", "pub-1")


@pytest.mark.asyncio
async def test_graphql_errors_raise(mock_api):
    mock_api.add("POST", HASHNODE_URL, json_body={"errors": [{"message": "Post not found"}], "data": None})

    with pytest.raises(HashnodeError) as exc_info:
        await hashnode_service.get_post("missing")

    assert exc_info.value.message == "Post not found"


@pytest.mark.asyncio
async def test_list_publication_posts(mock_api):
    edges = [{"node": hashnode_post("p1", "First")}, {"node": hashnode_post("p2", "Second")}]
    mock_api.add("POST", HASHNODE_URL, json_body={"data": {"publication": {"posts": {"edges": edges}}}})

    posts = await hashnode_service.list_publication_posts("writer.hashnode.dev", first=5)

    assert [post.id for post in posts] == ["p1", "p2"]
    assert posts[0].cover_image == "https://cdn.hashnode.com/cover.png"
    assert mock_api.last_json()["variables"] == {"host": "writer.hashnode.dev", "first": 5}
    assert "Authorization" not in mock_api.requests[-1].headers


@pytest.mark.asyncio
async def test_list_unknown_publication_is_empty(mock_api):
    mock_api.add("POST", HASHNODE_URL, json_body={"data": {"publication": None}})

    assert await hashnode_service.list_publication_posts("nobody.hashnode.dev") == []


@pytest.mark.asyncio
async def test_get_post_sends_token(mock_api):
    mock_api.add("POST", HASHNODE_URL, json_body={"data": {"post": hashnode_post("p1")}})

    post = await hashnode_service.get_post("p1", token="pat")

    assert post.title == "My First Post"
    assert mock_api.requests[-1].headers["Authorization"] == "pat"
