"""Run controller: one pass from Notion to every destination."""

from collections.abc import Sequence
from contextlib import AsyncExitStack

from crossposter.clients.base import ArticleSource, Poster, build_text
from crossposter.clients.gemini import GeminiClient
from crossposter.clients.notion import NotionClient
from crossposter.config import SecretsConfig, Settings
from crossposter.models import RunReport
from crossposter.services.fanout import FanOutOrchestrator
from crossposter.services.posters import build_poster_set
from crossposter.services.summarizer import ArticleSummarizer
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)


class RunController:
    """Reads unposted articles and hands them to the fan-out orchestrator."""

    def __init__(
        self,
        source: ArticleSource,
        posters: Sequence[Poster],
        poster_timeout: float = 30.0,
        summarizer: ArticleSummarizer | None = None,
        max_articles: int | None = None,
    ) -> None:
        self._source = source
        self._posters = tuple(posters)
        self._fanout = FanOutOrchestrator(source, poster_timeout=poster_timeout)
        self._summarizer = summarizer
        self._max_articles = max_articles

    async def execute(self, dry_run: bool = False) -> RunReport:
        """Run the posting workflow once.

        Args:
            dry_run: If True, log what would be posted without posting or
                updating Notion.

        Returns:
            RunReport with per-article results.

        Raises:
            httpx.HTTPError: If the unposted articles cannot be read. Nothing
                is posted in that case.
        """
        poster_names = [p.name for p in self._posters]
        logger.info(
            "Starting run",
            dry_run=dry_run,
            posters=poster_names,
            max_articles=self._max_articles,
        )

        articles = await self._source.get_unposted_articles()
        articles_found = len(articles)
        if self._max_articles is not None:
            articles = articles[: self._max_articles]

        report = RunReport(articles_found=articles_found, posters=poster_names, dry_run=dry_run)

        if not articles:
            logger.info("No unposted articles")
            return report

        if dry_run:
            for article in articles:
                logger.info("Dry run - would post", article_id=article.id, text=build_text(article))
            return report

        if self._summarizer is not None:
            await self._summarizer.summarize_all(articles)

        report.results = await self._fanout.run(articles, self._posters)

        logger.info(
            "Run finished",
            articles=len(report.results),
            posted=report.articles_posted,
            failed=report.articles_failed,
            mark_failed=report.articles_mark_failed,
        )
        return report


async def run_once(
    settings: Settings,
    dry_run: bool = False,
    secrets: SecretsConfig | None = None,
) -> RunReport:
    """Assemble clients from configuration and execute a single run.

    Raises:
        ConfigurationError: If Notion or every destination lacks credentials.
    """
    if secrets is None:
        secrets = SecretsConfig(settings)
    notion_api_key = secrets.notion_api_key
    dry_run = dry_run or settings.dry_run

    async with AsyncExitStack() as stack:
        posters = await build_poster_set(
            secrets, stack, timeout=settings.poster_timeout, login=not dry_run
        )
        notion = await stack.enter_async_context(
            NotionClient(notion_api_key, settings.notion_database_id)
        )

        summarizer = None
        if settings.summarize_articles:
            if settings.gcp_project_id:
                gemini = await stack.enter_async_context(
                    GeminiClient(project_id=settings.gcp_project_id, region=settings.gcp_region)
                )
                summarizer = ArticleSummarizer(gemini, notion, language=settings.summary_language)
            else:
                logger.warning("Summaries enabled but CROSSPOSTER_GCP_PROJECT_ID is not set")

        controller = RunController(
            source=notion,
            posters=posters,
            poster_timeout=settings.poster_timeout,
            summarizer=summarizer,
            max_articles=settings.max_articles_per_run,
        )
        return await controller.execute(dry_run=dry_run)
