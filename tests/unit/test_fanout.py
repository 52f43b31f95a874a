"""Unit tests for the fan-out orchestrator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from crossposter.clients.base import PostingError
from crossposter.models import Article
from crossposter.services.fanout import FanOutOrchestrator


def _make_poster(name: str, error: Exception | None = None) -> MagicMock:
    poster = MagicMock()
    poster.name = name
    poster.post_article = AsyncMock(side_effect=error)
    return poster


def _make_source() -> MagicMock:
    source = MagicMock()
    source.get_unposted_articles = AsyncMock(return_value=[])
    source.mark_article_as_posted = AsyncMock(return_value=None)
    return source


ARTICLE = Article(id="a1", title="T", url="https://x")


class TestFanOutPolicy:
    """Tests for the at-least-one-success policy."""

    @pytest.fixture
    def source(self) -> MagicMock:
        return _make_source()

    @pytest.fixture
    def orchestrator(self, source: MagicMock) -> FanOutOrchestrator:
        return FanOutOrchestrator(source, poster_timeout=1.0)

    async def test_one_success_marks_article(
        self, orchestrator: FanOutOrchestrator, source: MagicMock
    ) -> None:
        """[succeeds, fails] should post the article and mark it once."""
        ok = _make_poster("bluesky")
        bad = _make_poster("twitter", PostingError("twitter", "HTTP 403"))

        results = await orchestrator.run([ARTICLE], [ok, bad])

        assert len(results) == 1
        assert results[0].article.id == "a1"
        assert results[0].posted is True
        assert results[0].marked is True
        source.mark_article_as_posted.assert_awaited_once_with("a1")
        # The failed poster is not retried.
        bad.post_article.assert_awaited_once_with(ARTICLE)
        ok.post_article.assert_awaited_once_with(ARTICLE)

    async def test_all_fail_leaves_article_unposted(
        self, orchestrator: FanOutOrchestrator, source: MagicMock
    ) -> None:
        """[fails, fails] should not post the article nor mark it."""
        posters = [
            _make_poster("bluesky", PostingError("bluesky", "login failed: HTTP 401")),
            _make_poster("twitter", RuntimeError("boom")),
        ]

        results = await orchestrator.run([ARTICLE], posters)

        assert results[0].posted is False
        assert results[0].marked is False
        source.mark_article_as_posted.assert_not_awaited()
        reasons = {o.poster: o.reason for o in results[0].outcomes}
        assert reasons["bluesky"] == "login failed: HTTP 401"
        assert "boom" in reasons["twitter"]

    async def test_no_posters(self, orchestrator: FanOutOrchestrator, source: MagicMock) -> None:
        """Without posters every article is unposted and nothing is called."""
        articles = [ARTICLE, Article(id="a2", title="U", url="https://y")]

        results = await orchestrator.run(articles, [])

        assert [r.posted for r in results] == [False, False]
        assert [r.article.id for r in results] == ["a1", "a2"]
        source.mark_article_as_posted.assert_not_awaited()
        source.get_unposted_articles.assert_not_awaited()

    async def test_no_articles(self, orchestrator: FanOutOrchestrator, source: MagicMock) -> None:
        """An empty article list performs no calls."""
        poster = _make_poster("bluesky")

        results = await orchestrator.run([], [poster])

        assert results == []
        poster.post_article.assert_not_awaited()
        source.mark_article_as_posted.assert_not_awaited()

    async def test_every_poster_attempted_after_success(
        self, orchestrator: FanOutOrchestrator
    ) -> None:
        """A success on one poster does not short-circuit the others."""
        posters = [_make_poster("a"), _make_poster("b"), _make_poster("c")]

        results = await orchestrator.run([ARTICLE], posters)

        assert all(o.succeeded for o in results[0].outcomes)
        for poster in posters:
            poster.post_article.assert_awaited_once()

    async def test_results_follow_input_order(
        self, orchestrator: FanOutOrchestrator, source: MagicMock
    ) -> None:
        """Articles are processed and marked in input order."""
        articles = [Article(id=f"a{i}", title=f"T{i}", url=f"https://x/{i}") for i in range(3)]

        results = await orchestrator.run(articles, [_make_poster("bluesky")])

        assert [r.article.id for r in results] == ["a0", "a1", "a2"]
        assert [c.args[0] for c in source.mark_article_as_posted.await_args_list] == [
            "a0",
            "a1",
            "a2",
        ]

    async def test_classification_is_deterministic(
        self, orchestrator: FanOutOrchestrator
    ) -> None:
        """Repeated runs with the same stubs classify articles identically."""
        articles = [ARTICLE, Article(id="a2", title="U", url="https://y")]

        async def flaky(article: Article) -> None:
            if article.id == "a2":
                raise PostingError("bluesky", "HTTP 500")

        poster = _make_poster("bluesky")
        poster.post_article = AsyncMock(side_effect=flaky)

        first = await orchestrator.run(articles, [poster])
        second = await orchestrator.run(articles, [poster])

        assert [r.posted for r in first] == [True, False]
        assert [r.posted for r in second] == [True, False]


class TestFanOutFailures:
    """Tests for timeouts and persistence failures."""

    async def test_slow_poster_times_out(self) -> None:
        """A hanging poster becomes a failed outcome without blocking the others."""
        source = _make_source()
        orchestrator = FanOutOrchestrator(source, poster_timeout=0.05)

        async def hang(article: Article) -> None:
            await asyncio.sleep(10)

        slow = _make_poster("slow")
        slow.post_article = AsyncMock(side_effect=hang)
        fast = _make_poster("fast")

        results = await orchestrator.run([ARTICLE], [slow, fast])

        outcomes = {o.poster: o for o in results[0].outcomes}
        assert outcomes["slow"].succeeded is False
        assert "timed out" in (outcomes["slow"].reason or "")
        assert outcomes["fast"].succeeded is True
        assert results[0].posted is True

    async def test_mark_failure_is_isolated(self) -> None:
        """A failure to mark one article does not affect the next one."""
        source = _make_source()
        source.mark_article_as_posted = AsyncMock(side_effect=[RuntimeError("Notion 502"), None])
        orchestrator = FanOutOrchestrator(source)
        poster = _make_poster("bluesky")
        articles = [ARTICLE, Article(id="a2", title="U", url="https://y")]

        results = await orchestrator.run(articles, [poster])

        assert [r.posted for r in results] == [True, True]
        assert results[0].marked is False
        assert results[0].mark_error == "Notion 502"
        assert results[1].marked is True
        # Posting is not retried because marking failed.
        assert poster.post_article.await_count == 2
