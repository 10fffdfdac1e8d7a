"""Tests for linking X, LinkedIn and Hashnode accounts."""

from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import tweepy

from socialscribe.cache import oauth_state_key
from socialscribe.models import User
from socialscribe.security_utils import decrypt_secret, encrypt_secret

HASHNODE_URL = "https://gql.hashnode.com"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"


def reload_user(db, user_id):
    db.expire_all()
    return db.get(User, user_id)


# =============================================================================
# Hashnode
# =============================================================================


class TestHashnode:
    URL = "/api/v1/user/connect/hashnode"

    def test_missing_key(self, make_user, login):
        client = login(make_user(username="alice"))
        assert client.post(self.URL, json={}).status_code == 400

    def test_valid_key_links_publication(self, make_user, login, mock_api, db):
        publications = {"edges": [{"node": {"url": "https://alice.hashnode.dev/", "id": "pub-42"}}]}
        mock_api.add("POST", HASHNODE_URL, json_body={"data": {"me": {"publications": publications}}})
        user = make_user(username="alice", x_verified=True)
        client = login(user)

        response = client.post(self.URL, json={"key": "pat-123"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "url": "alice.hashnode.dev", "id": "pub-42"}
        assert mock_api.requests[-1].headers["Authorization"] == "pat-123"

        user = reload_user(db, user.id)
        assert user.hashnode_verified is True
        assert user.hashnode_blog == "alice.hashnode.dev"
        assert user.hashnode_pat != "pat-123"
        assert decrypt_secret(user.hashnode_pat) == "pat-123"
        assert user.verified is True

    def test_rejected_key(self, make_user, login, mock_api):
        mock_api.add("POST", HASHNODE_URL, status_code=401, json_body={"errors": [{"message": "Unauthenticated"}]})
        client = login(make_user(username="alice"))

        response = client.post(self.URL, json={"key": "bad"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid Hashnode API key"

    def test_no_publications(self, make_user, login, mock_api):
        mock_api.add("POST", HASHNODE_URL, json_body={"data": {"me": {"publications": {"edges": []}}}})
        client = login(make_user(username="alice"))

        assert client.post(self.URL, json={"key": "pat"}).status_code == 404


# =============================================================================
# LinkedIn
# =============================================================================


class TestLinkedIn:
    CONNECT_URL = "/api/v1/user/connect/linkedin"
    CALLBACK_URL = "/api/v1/user/connect/linkedin/callback"

    def start_flow(self, client):
        response = client.get(self.CONNECT_URL, follow_redirects=False)
        assert response.status_code == 302
        return parse_qs(urlparse(response.headers["location"]).query)["state"][0]

    def test_connect_redirects_with_state(self, make_user, login, fake_redis):
        user = make_user(username="alice")
        client = login(user)

        response = client.get(self.CONNECT_URL, follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "www.linkedin.com"
        query = parse_qs(location.query)
        assert query["scope"] == ["openid profile email w_member_social"]
        state = query["state"][0]
        assert client.cookies.get("oauth_state") == state
        assert fake_redis.ttl(oauth_state_key(state)) > 0

    def test_callback_links_account(self, make_user, login, mock_api, db, fake_redis):
        mock_api.add("POST", LINKEDIN_TOKEN_URL, json_body={"access_token": "li-token", "expires_in": 5184000})
        mock_api.add("GET", LINKEDIN_USERINFO_URL, json_body={"sub": "member-9"})
        user = make_user(username="alice", hashnode_verified=True)
        client = login(user)
        state = self.start_flow(client)

        response = client.get(self.CALLBACK_URL, params={"code": "auth-code", "state": state}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "http://frontend.test/verification"
        assert fake_redis.get(oauth_state_key(state)) is None

        user = reload_user(db, user.id)
        assert user.linkedin_verified is True
        assert user.linkedin_member_id == "member-9"
        assert decrypt_secret(user.linkedin_oauth_key) == "li-token"
        assert user.verified is True

    def test_state_mismatch_is_forbidden(self, make_user, login):
        client = login(make_user(username="alice"))
        self.start_flow(client)

        response = client.get(self.CALLBACK_URL, params={"code": "c", "state": "forged"}, follow_redirects=False)

        assert response.status_code == 403

    def test_state_is_single_use(self, make_user, login, mock_api):
        mock_api.add("POST", LINKEDIN_TOKEN_URL, json_body={"access_token": "li-token"})
        mock_api.add("GET", LINKEDIN_USERINFO_URL, json_body={"sub": "member-9"})
        client = login(make_user(username="alice"))
        state = self.start_flow(client)
        client.get(self.CALLBACK_URL, params={"code": "c", "state": state}, follow_redirects=False)

        client.cookies.set("oauth_state", state)
        response = client.get(self.CALLBACK_URL, params={"code": "c", "state": state}, follow_redirects=False)

        assert response.status_code == 403

    def test_missing_code(self, make_user, login):
        client = login(make_user(username="alice"))
        state = self.start_flow(client)

        response = client.get(self.CALLBACK_URL, params={"state": state}, follow_redirects=False)

        assert response.status_code == 400

    def test_token_exchange_failure(self, make_user, login, mock_api):
        mock_api.add("POST", LINKEDIN_TOKEN_URL, status_code=400, json_body={"error": "invalid_grant"})
        client = login(make_user(username="alice"))
        state = self.start_flow(client)

        response = client.get(self.CALLBACK_URL, params={"code": "bad", "state": state}, follow_redirects=False)

        assert response.status_code == 500

    def test_token_response_that_is_not_json(self, make_user, login, mock_api):
        mock_api.add("POST", LINKEDIN_TOKEN_URL, lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        client = login(make_user(username="alice"))
        state = self.start_flow(client)

        response = client.get(self.CALLBACK_URL, params={"code": "c", "state": state}, follow_redirects=False)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to connect to LinkedIn"


# =============================================================================
# X
# =============================================================================


@pytest.fixture
def oauth_handler():
    with patch("tweepy.OAuth1UserHandler") as handler_cls:
        handler = handler_cls.return_value
        handler.get_authorization_url.return_value = "https://api.twitter.com/oauth/authorize?oauth_token=req-token"
        handler.request_token = {"oauth_token": "req-token", "oauth_token_secret": "req-secret"}
        handler.get_access_token.return_value = ("access-token", "access-secret")
        yield handler


class TestX:
    CONNECT_URL = "/api/v1/user/connect/x"
    CALLBACK_URL = "/api/v1/user/connect/x/callback"

    def test_connect_stores_request_token_and_redirects(self, make_user, login, oauth_handler, db):
        user = make_user(username="alice")
        client = login(user)

        response = client.get(self.CONNECT_URL, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://api.twitter.com/oauth/authorize")
        user = reload_user(db, user.id)
        assert decrypt_secret(user.x_oauth_token) == "req-token"
        assert decrypt_secret(user.x_oauth_secret) == "req-secret"

    def test_connect_upstream_failure(self, make_user, login, oauth_handler):
        oauth_handler.get_authorization_url.side_effect = tweepy.TweepyException("boom")
        client = login(make_user(username="alice"))

        assert client.get(self.CONNECT_URL, follow_redirects=False).status_code == 500

    def test_callback_links_account(self, make_user, login, oauth_handler, db):
        user = make_user(
            username="alice",
            hashnode_verified=True,
            x_oauth_token=encrypt_secret("req-token"),
            x_oauth_secret=encrypt_secret("req-secret"),
        )
        client = login(user)

        response = client.get(
            self.CALLBACK_URL,
            params={"oauth_token": "req-token", "oauth_verifier": "verifier"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "http://frontend.test/verification"
        oauth_handler.get_access_token.assert_called_once_with("verifier")
        user = reload_user(db, user.id)
        assert user.x_verified is True
        assert user.verified is True
        assert decrypt_secret(user.x_oauth_token) == "access-token"
        assert decrypt_secret(user.x_oauth_secret) == "access-secret"

    def test_callback_missing_verifier(self, make_user, login):
        client = login(make_user(username="alice"))
        assert client.get(self.CALLBACK_URL, params={"oauth_token": "t"}).status_code == 400

    def test_callback_token_mismatch(self, make_user, login, oauth_handler):
        user = make_user(
            username="alice",
            x_oauth_token=encrypt_secret("req-token"),
            x_oauth_secret=encrypt_secret("req-secret"),
        )
        client = login(user)

        response = client.get(self.CALLBACK_URL, params={"oauth_token": "other", "oauth_verifier": "v"})

        assert response.status_code == 400
        oauth_handler.get_access_token.assert_not_called()

    def test_callback_requires_session(self, client):
        response = client.get(self.CALLBACK_URL, params={"oauth_token": "t", "oauth_verifier": "v"})
        assert response.status_code == 401
