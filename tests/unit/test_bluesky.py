"""Unit tests for the Bluesky poster."""

import json

import pytest
import respx
from httpx import Response

from crossposter.clients.base import PostingError, build_text
from crossposter.clients.bluesky import BlueskyPoster, detect_link_facets
from crossposter.config import BlueskyCredentials
from crossposter.models import Article

SESSION_URL = "https://bsky.social/xrpc/com.atproto.server.createSession"
RECORD_URL = "https://bsky.social/xrpc/com.atproto.repo.createRecord"

ARTICLE = Article(id="a1", title="Test Article Title", url="https://example.com/test-article")


class TestDetectLinkFacets:
    """Tests for link facet detection."""

    def test_byte_offsets_after_emoji(self) -> None:
        """Offsets count UTF-8 bytes, so the 4-byte emoji shifts the URL."""
        text = "\U0001f516 Title https://example.com/a"
        facets = detect_link_facets(text)

        assert len(facets) == 1
        index = facets[0]["index"]
        encoded = text.encode("utf-8")
        assert encoded[index["byteStart"]:index["byteEnd"]] == b"https://example.com/a"
        assert facets[0]["features"][0]["uri"] == "https://example.com/a"

    def test_no_url(self) -> None:
        assert detect_link_facets("just text") == []

    def test_url_with_parentheses(self) -> None:
        """Balanced parentheses are part of the link."""
        url = "https://en.wikipedia.org/wiki/Python_(programming_language)"
        text = build_text(Article(id="a1", title="Python", url=url))

        facets = detect_link_facets(text)

        assert facets[0]["features"][0]["uri"] == url
        index = facets[0]["index"]
        assert text.encode("utf-8")[index["byteStart"]:index["byteEnd"]] == url.encode("utf-8")

    def test_trailing_punctuation_trimmed(self) -> None:
        text = "Read https://example.com/a. Also (see https://example.com/b)!"

        uris = [f["features"][0]["uri"] for f in detect_link_facets(text)]

        assert uris == ["https://example.com/a", "https://example.com/b"]


class TestBlueskyPoster:
    """Tests for BlueskyPoster."""

    @pytest.fixture
    def poster(self) -> BlueskyPoster:
        """Create a poster for the default service."""
        return BlueskyPoster(BlueskyCredentials(identifier="me.bsky.social", password="app-pw"))

    @respx.mock
    async def test_login_and_post(self, poster: BlueskyPoster) -> None:
        """Should create a session and post a record with a link facet."""
        session = respx.post(SESSION_URL).mock(
            return_value=Response(200, json={"accessJwt": "jwt-1", "did": "did:plc:me"})
        )
        record = respx.post(RECORD_URL).mock(
            return_value=Response(200, json={"uri": "at://did:plc:me/app.bsky.feed.post/1"})
        )

        assert await poster.login() is True
        await poster.post_article(ARTICLE)

        login_body = json.loads(session.calls[0].request.content)
        assert login_body == {"identifier": "me.bsky.social", "password": "app-pw"}

        request = record.calls[0].request
        assert request.headers["Authorization"] == "Bearer jwt-1"
        body = json.loads(request.content)
        assert body["repo"] == "did:plc:me"
        assert body["collection"] == "app.bsky.feed.post"
        assert body["record"]["text"] == (
            "\U0001f516 Test Article Title https://example.com/test-article"
        )
        assert body["record"]["facets"][0]["features"][0]["uri"] == ARTICLE.url
        assert body["record"]["createdAt"].endswith("Z")
        await poster.close()

    @respx.mock
    async def test_login_failure_fails_every_post(self, poster: BlueskyPoster) -> None:
        """A failed login is reported as a posting failure."""
        respx.post(SESSION_URL).mock(
            return_value=Response(
                401,
                json={
                    "error": "AuthenticationRequired",
                    "message": "Invalid identifier or password",
                },
            )
        )
        record = respx.post(RECORD_URL).mock(return_value=Response(200, json={}))

        assert await poster.login() is False
        assert poster.is_logged_in is False

        with pytest.raises(PostingError) as exc_info:
            await poster.post_article(ARTICLE)

        assert exc_info.value.poster == "bluesky"
        assert exc_info.value.reason.startswith("login failed: HTTP 401")
        assert not record.called
        await poster.close()

    @respx.mock
    async def test_login_unexpected_body(self, poster: BlueskyPoster) -> None:
        """A malformed session response is a login failure, not a crash."""
        respx.post(SESSION_URL).mock(return_value=Response(200, json=["unexpected"]))

        assert await poster.login() is False

        with pytest.raises(PostingError, match="login failed: createSession returned"):
            await poster.post_article(ARTICLE)
        await poster.close()

    async def test_post_without_login(self, poster: BlueskyPoster) -> None:
        """Posting before login raises PostingError."""
        with pytest.raises(PostingError, match="not logged in"):
            await poster.post_article(ARTICLE)
        await poster.close()

    @respx.mock
    async def test_post_rejected(self, poster: BlueskyPoster) -> None:
        """A rejected record raises PostingError with the PDS message."""
        respx.post(SESSION_URL).mock(
            return_value=Response(200, json={"accessJwt": "jwt-1", "did": "did:plc:me"})
        )
        respx.post(RECORD_URL).mock(
            return_value=Response(
                400, json={"error": "InvalidRequest", "message": "Record too long"}
            )
        )

        await poster.login()
        with pytest.raises(PostingError) as exc_info:
            await poster.post_article(ARTICLE)

        assert exc_info.value.reason == "HTTP 400 Record too long"
        await poster.close()

    @respx.mock
    async def test_custom_service(self) -> None:
        """Should log in against the configured PDS."""
        route = respx.post("https://pds.example.net/xrpc/com.atproto.server.createSession").mock(
            return_value=Response(200, json={"accessJwt": "jwt", "did": "did:plc:x"})
        )
        poster = BlueskyPoster(
            BlueskyCredentials(
                identifier="me", password="pw", service="https://pds.example.net"
            )
        )

        assert await poster.login() is True
        assert route.called
        await poster.close()
