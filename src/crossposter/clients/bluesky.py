"""Bluesky (AT Protocol) poster for Crossposter."""

import re
from datetime import UTC, datetime
from typing import Any

import httpx

from crossposter.clients.base import PostingError, build_text
from crossposter.config import BlueskyCredentials
from crossposter.models import Article
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

URL_PATTERN = re.compile(r"https?://\S+")
TRAILING_PUNCTUATION = ".,;:!?"

POST_COLLECTION = "app.bsky.feed.post"
LINK_FEATURE = "app.bsky.richtext.facet#link"


def _trim_url(url: str) -> str:
    """Drop sentence punctuation and unbalanced closing parentheses from the end."""
    while url:
        if url[-1] in TRAILING_PUNCTUATION:
            url = url[:-1]
        elif url.endswith(")") and url.count(")") > url.count("("):
            url = url[:-1]
        else:
            break
    return url


def detect_link_facets(text: str) -> list[dict[str, Any]]:
    """Build link facets for every URL in the text.

    Facet indices are UTF-8 byte offsets, not character offsets. Balanced
    parentheses stay part of the URL, e.g. Wikipedia article links.
    """
    facets = []
    for match in URL_PATTERN.finditer(text):
        uri = _trim_url(match.group(0))
        byte_start = len(text[: match.start()].encode("utf-8"))
        byte_end = byte_start + len(uri.encode("utf-8"))
        facets.append(
            {
                "index": {"byteStart": byte_start, "byteEnd": byte_end},
                "features": [{"$type": LINK_FEATURE, "uri": uri}],
            }
        )
    return facets


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or "")
    return ""


class BlueskyPoster:
    """Posts articles to Bluesky using a password session.

    The session is created by ``login()`` before any article is posted. A
    failed login is remembered and turns every later post into a
    ``PostingError`` for the rest of the run.
    """

    name = "bluesky"

    def __init__(self, credentials: BlueskyCredentials, timeout: float = 30.0) -> None:
        self._credentials = credentials
        self._client = httpx.AsyncClient(base_url=credentials.service, timeout=timeout)
        self._access_jwt: str | None = None
        self._did: str | None = None
        self._login_error: str | None = None

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "BlueskyPoster":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @property
    def is_logged_in(self) -> bool:
        return self._access_jwt is not None

    async def login(self) -> bool:
        """Create a session for the configured account.

        Returns:
            True if the session was created, False otherwise.
        """
        logger.info(
            "Logging in to Bluesky",
            identifier=self._credentials.identifier,
            service=self._credentials.service,
        )
        try:
            response = await self._client.post(
                "/xrpc/com.atproto.server.createSession",
                json={
                    "identifier": self._credentials.identifier,
                    "password": self._credentials.password,
                },
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("createSession returned an unexpected response body")
            self._access_jwt = data["accessJwt"]
            self._did = data["did"]
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            self._login_error = f"HTTP {e.response.status_code} {message}".strip()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            self._login_error = str(e) or type(e).__name__

        if self._login_error is not None:
            logger.error("Bluesky login failed", error=self._login_error)
            return False

        logger.info("Bluesky login successful", did=self._did)
        return True

    async def post_article(self, article: Article) -> None:
        """Publish the article as a Bluesky post with a link facet.

        Raises:
            PostingError: If there is no session or the PDS rejects the record.
        """
        if self._access_jwt is None:
            reason = f"login failed: {self._login_error}" if self._login_error else "not logged in"
            raise PostingError(self.name, reason)

        text = build_text(article)
        record: dict[str, Any] = {
            "$type": POST_COLLECTION,
            "text": text,
            "createdAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        facets = detect_link_facets(text)
        if facets:
            record["facets"] = facets

        logger.info("Posting article to Bluesky", article_id=article.id, title=article.title)
        try:
            response = await self._client.post(
                "/xrpc/com.atproto.repo.createRecord",
                headers={"Authorization": f"Bearer {self._access_jwt}"},
                json={"repo": self._did, "collection": POST_COLLECTION, "record": record},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            raise PostingError(
                self.name, f"HTTP {e.response.status_code} {message}".strip()
            ) from e
        except httpx.HTTPError as e:
            raise PostingError(self.name, str(e) or type(e).__name__) from e

        try:
            uri = response.json().get("uri")
        except ValueError:
            uri = None
        logger.info("Bluesky post successful", article_id=article.id, uri=uri)
