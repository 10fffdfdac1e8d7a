"""
Hashnode Service
GraphQL calls for key verification, publication listing and post lookup
"""
import logging
from typing import Any, Optional

import httpx

from ..config import HASHNODE_GQL_ENDPOINT, HASHNODE_POSTS_PAGE_SIZE
from ..exceptions import HashnodeError
from ..schemas import BlogPost
from .http_client import async_client

logger = logging.getLogger(__name__)

POST_FIELDS = """
    id
    title
    url
    brief
    coverImage { url }
    author { name }
    readTimeInMinutes
"""

ME_QUERY = "query Me { me { publications(first: 1) { edges { node { url id } } } } }"

PUBLICATION_POSTS_QUERY = (
    "query Publication($host: String!, $first: Int!) {"
    " publication(host: $host) { posts(first: $first) { edges { node {"
    + POST_FIELDS
    + "} } } } }"
)

POST_QUERY = "query Post($id: ID!) { post(id: $id) {" + POST_FIELDS + "} }"


def _node_to_post(node: dict) -> BlogPost:
    cover = node.get("coverImage") or {}
    author = node.get("author") or {}
    return BlogPost(
        id=node["id"],
        title=node.get("title") or "",
        url=node.get("url") or "",
        brief=node.get("brief"),
        cover_image=cover.get("url"),
        author=author.get("name"),
        read_time_in_minutes=node.get("readTimeInMinutes"),
    )


async def _execute(
    query: str, variables: Optional[dict] = None, token: Optional[str] = None
) -> dict[str, Any]:
    """POST a GraphQL document and return its ``data`` member"""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = token

    payload: dict[str, Any] = {"query": query}
    if variables:
        payload["variables"] = variables

    try:
        async with async_client() as client:
            response = await client.post(HASHNODE_GQL_ENDPOINT, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"❌ Hashnode request failed: {e}")
        raise HashnodeError(f"request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"❌ Hashnode returned HTTP {response.status_code}: {response.text[:200]}")
        raise HashnodeError(f"HTTP {response.status_code}", status_code=response.status_code)

    try:
        body = response.json()
    except ValueError as e:
        raise HashnodeError("invalid JSON response") from e

    if body.get("errors"):
        message = body["errors"][0].get("message", "unknown error")
        logger.error(f"❌ Hashnode GraphQL error: {message}")
        raise HashnodeError(message)

    return body.get("data") or {}


async def verify_key(key: str) -> tuple[str, str]:
    """
    Check a personal access token against the ``me`` query.
    Returns (publication host without scheme, publication id).
    """
    data = await _execute(ME_QUERY, token=key)
    edges = (((data.get("me") or {}).get("publications") or {}).get("edges")) or []
    if not edges:
        raise HashnodeError("No publications found", status_code=404)

    node = edges[0]["node"]
    host = node["url"].replace("https://", "").replace("http://", "").rstrip("/")
    return host, node["id"]


async def list_publication_posts(host: str, first: int = HASHNODE_POSTS_PAGE_SIZE) -> list[BlogPost]:
    data = await _execute(PUBLICATION_POSTS_QUERY, {"host": host, "first": first})
    publication = data.get("publication")
    if not publication:
        logger.warning(f"⚠️ Hashnode publication not found for host {host}")
        return []
    edges = (publication.get("posts") or {}).get("edges") or []
    return [_node_to_post(edge["node"]) for edge in edges]


async def get_post(post_id: str, token: Optional[str] = None) -> Optional[BlogPost]:
    data = await _execute(POST_QUERY, {"id": post_id}, token=token)
    node = data.get("post")
    if not node:
        return None
    return _node_to_post(node)
