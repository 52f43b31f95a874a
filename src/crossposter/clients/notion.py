"""Notion API client used as the article source for Crossposter."""

from typing import Any

import httpx

from crossposter.models import Article
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

TITLE_PROPERTY = "Title"
URL_PROPERTY = "URL"
POSTED_PROPERTY = "Posted"
SUMMARY_PROPERTY = "AISummary"

# Notion rejects rich text fragments longer than this.
MAX_RICH_TEXT_LENGTH = 2000


def _plain_text(fragments: list[dict[str, Any]]) -> str:
    return "".join(f.get("plain_text", "") for f in fragments)


def article_from_page(page: dict[str, Any]) -> Article | None:
    """Build an Article from a database page.

    Returns:
        The Article, or None when the page has no title or no URL.
    """
    if page.get("object") != "page":
        return None
    properties = page.get("properties") or {}

    title = ""
    title_property = properties.get(TITLE_PROPERTY) or {}
    if title_property.get("type") == "title":
        title = _plain_text(title_property.get("title") or [])
    elif title_property.get("type") == "rich_text":
        title = _plain_text(title_property.get("rich_text") or [])

    url_property = properties.get(URL_PROPERTY) or {}
    url = url_property.get("url") if url_property.get("type") == "url" else None

    if not title.strip() or not url or not url.strip():
        return None
    return Article(id=page["id"], title=title.strip(), url=url.strip())


class NotionClient:
    """Reads unposted articles from a Notion database and flags them as posted."""

    def __init__(self, api_key: str, database_id: str, timeout: float = 30.0) -> None:
        self._database_id = database_id
        self._client = httpx.AsyncClient(
            base_url=NOTION_API_BASE,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
            },
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def get_unposted_articles(self) -> list[Article]:
        """Get every article whose Posted checkbox is unticked, oldest first.

        Pages without a title or URL are skipped.

        Raises:
            httpx.HTTPError: If the database cannot be queried.
        """
        logger.info("Fetching unposted articles", database_id=self._database_id)

        articles: list[Article] = []
        skipped = 0
        cursor: str | None = None
        while True:
            body: dict[str, Any] = {
                "filter": {"property": POSTED_PROPERTY, "checkbox": {"equals": False}},
                "sorts": [{"timestamp": "created_time", "direction": "ascending"}],
            }
            if cursor:
                body["start_cursor"] = cursor

            response = await self._client.post(
                f"/databases/{self._database_id}/query", json=body
            )
            response.raise_for_status()
            data = response.json()

            for page in data.get("results", []):
                article = article_from_page(page)
                if article is None:
                    skipped += 1
                    continue
                articles.append(article)

            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                break

        logger.info("Found unposted articles", count=len(articles), skipped=skipped)
        return articles

    async def mark_article_as_posted(self, article_id: str) -> None:
        """Tick the Posted checkbox of an article.

        Raises:
            httpx.HTTPError: If the page could not be updated.
        """
        logger.info("Marking article as posted", article_id=article_id)
        response = await self._client.patch(
            f"/pages/{article_id}",
            json={"properties": {POSTED_PROPERTY: {"checkbox": True}}},
        )
        response.raise_for_status()
        logger.info("Article marked as posted", article_id=article_id)

    async def update_article_summary(self, article_id: str, summary: str) -> None:
        """Write a summary to the article's AISummary property."""
        logger.info("Updating article summary", article_id=article_id)
        response = await self._client.patch(
            f"/pages/{article_id}",
            json={
                "properties": {
                    SUMMARY_PROPERTY: {
                        "rich_text": [
                            {"text": {"content": summary[:MAX_RICH_TEXT_LENGTH]}}
                        ]
                    }
                }
            },
        )
        response.raise_for_status()
        logger.info("Article summary updated", article_id=article_id)
