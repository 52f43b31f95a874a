"""Shared data models for Crossposter."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Article:
    """An article read from the Notion database."""

    id: str
    title: str
    url: str


@dataclass(frozen=True)
class PostOutcome:
    """Outcome of posting one article to one destination."""

    poster: str
    succeeded: bool
    reason: str | None = None

    @classmethod
    def success(cls, poster: str) -> "PostOutcome":
        return cls(poster=poster, succeeded=True)

    @classmethod
    def failure(cls, poster: str, reason: str) -> "PostOutcome":
        return cls(poster=poster, succeeded=False, reason=reason)


@dataclass
class ArticleResult:
    """Result of fanning one article out to every poster."""

    article: Article
    outcomes: tuple[PostOutcome, ...] = ()
    marked: bool = False
    mark_error: str | None = None

    @property
    def posted(self) -> bool:
        """True when at least one destination accepted the article."""
        return any(outcome.succeeded for outcome in self.outcomes)

    @property
    def failed_posters(self) -> list[str]:
        return [o.poster for o in self.outcomes if not o.succeeded]


@dataclass
class RunReport:
    """Aggregate result of one run."""

    articles_found: int
    posters: list[str]
    dry_run: bool
    results: list[ArticleResult] = field(default_factory=list)

    @property
    def articles_posted(self) -> int:
        return sum(1 for r in self.results if r.posted)

    @property
    def articles_failed(self) -> int:
        return sum(1 for r in self.results if not r.posted)

    @property
    def articles_marked(self) -> int:
        return sum(1 for r in self.results if r.marked)

    @property
    def articles_mark_failed(self) -> int:
        return sum(1 for r in self.results if r.posted and not r.marked)
