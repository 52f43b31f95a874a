"""Fan-out of articles to every configured destination."""

import asyncio
from collections.abc import Sequence

from crossposter.clients.base import ArticleSource, Poster, PostingError
from crossposter.models import Article, ArticleResult, PostOutcome
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)


class FanOutOrchestrator:
    """Posts articles to all posters and marks the ones that got through.

    Articles are handled one after another in input order. For a single
    article every poster is attempted concurrently, and the article counts
    as posted once all attempts have settled and at least one succeeded.
    Only posted articles are marked in the source.
    """

    def __init__(self, source: ArticleSource, poster_timeout: float = 30.0) -> None:
        self._source = source
        self._poster_timeout = poster_timeout

    async def run(
        self, articles: Sequence[Article], posters: Sequence[Poster]
    ) -> list[ArticleResult]:
        """Post every article to every poster.

        Args:
            articles: Articles to publish, oldest first.
            posters: Destinations available for this run.

        Returns:
            One ArticleResult per input article, in input order.
        """
        if not posters:
            logger.warning("No posters available, nothing will be posted", articles=len(articles))
            return [ArticleResult(article=article) for article in articles]

        results = []
        for article in articles:
            result = await self._post_everywhere(article, posters)
            if result.posted:
                await self._mark_posted(result)
            else:
                logger.warning(
                    "Article failed on every poster, leaving it unposted",
                    article_id=article.id,
                    failed=result.failed_posters,
                )
            results.append(result)

        logger.info(
            "Fan-out complete",
            articles=len(results),
            posted=sum(1 for r in results if r.posted),
            marked=sum(1 for r in results if r.marked),
        )
        return results

    async def _post_everywhere(
        self, article: Article, posters: Sequence[Poster]
    ) -> ArticleResult:
        outcomes = await asyncio.gather(
            *[self._post_one(article, poster) for poster in posters]
        )
        return ArticleResult(article=article, outcomes=tuple(outcomes))

    async def _post_one(self, article: Article, poster: Poster) -> PostOutcome:
        """Attempt a single post, turning any failure into an outcome."""
        try:
            await asyncio.wait_for(poster.post_article(article), self._poster_timeout)
        except TimeoutError:
            reason = f"timed out after {self._poster_timeout:g}s"
        except PostingError as e:
            reason = e.reason
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
        else:
            logger.info("Article posted", article_id=article.id, poster=poster.name)
            return PostOutcome.success(poster.name)

        logger.warning(
            "Failed to post article",
            article_id=article.id,
            poster=poster.name,
            reason=reason,
        )
        return PostOutcome.failure(poster.name, reason)

    async def _mark_posted(self, result: ArticleResult) -> None:
        article_id = result.article.id
        try:
            await self._source.mark_article_as_posted(article_id)
        except Exception as e:
            # The article stays unposted and will be picked up again next run.
            logger.error(
                "Failed to mark article as posted",
                article_id=article_id,
                error=str(e),
            )
            result.mark_error = str(e) or type(e).__name__
            return
        result.marked = True
