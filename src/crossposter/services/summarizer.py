"""AI summary generation for articles before they are posted."""

import asyncio

from crossposter.clients.gemini import GeminiClient
from crossposter.clients.notion import NotionClient
from crossposter.models import Article
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)


class ArticleSummarizer:
    """Writes a Gemini summary of each article back to Notion."""

    def __init__(
        self,
        gemini_client: GeminiClient,
        notion_client: NotionClient,
        language: str = "Japanese",
    ) -> None:
        self._gemini = gemini_client
        self._notion = notion_client
        self._language = language

    async def summarize_all(self, articles: list[Article]) -> int:
        """Summarize articles concurrently.

        Failures are logged and never stop the run.

        Returns:
            The number of articles whose summary was saved.
        """
        results = await asyncio.gather(
            *[self._summarize(article) for article in articles],
            return_exceptions=True,
        )

        saved = 0
        for article, result in zip(articles, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to summarize article",
                    article_id=article.id,
                    url=article.url,
                    error=str(result),
                )
            else:
                saved += 1

        logger.info("Summaries saved", saved=saved, failed=len(articles) - saved)
        return saved

    async def _summarize(self, article: Article) -> None:
        summary = await self._gemini.summarize_url(article.url, language=self._language)
        await self._notion.update_article_summary(article.id, summary)
