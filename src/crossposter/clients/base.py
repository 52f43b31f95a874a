"""Shared poster contract and message formatting."""

from typing import Protocol, runtime_checkable

from crossposter.models import Article

BOOKMARK = "\U0001f516"


class PostingError(Exception):
    """Raised when a destination did not accept an article."""

    def __init__(self, poster: str, reason: str) -> None:
        self.poster = poster
        self.reason = reason
        super().__init__(f"{poster}: {reason}")


@runtime_checkable
class Poster(Protocol):
    """A destination that can publish a single article."""

    name: str

    async def post_article(self, article: Article) -> None:
        """Publish the article, raising PostingError on failure."""
        ...


class ArticleSource(Protocol):
    """Where articles are read from and marked as posted."""

    async def get_unposted_articles(self) -> list[Article]: ...

    async def mark_article_as_posted(self, article_id: str) -> None: ...


def build_text(article: Article) -> str:
    """Compose the message posted to every network."""
    return f"{BOOKMARK} {article.title} {article.url}"
