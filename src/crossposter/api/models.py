"""Pydantic models for API responses."""

from pydantic import BaseModel, Field

from crossposter.models import RunReport


class RunResponse(BaseModel):
    """Aggregate outcome of a run. Per-article detail is only logged."""

    status: str = Field(description="success, partial_success, failed or no_articles")
    articles_found: int = Field(description="Number of unposted articles in Notion")
    articles_posted: int = Field(description="Articles accepted by at least one destination")
    articles_failed: int = Field(description="Articles rejected by every destination")
    articles_mark_failed: int = Field(
        description="Posted articles whose Posted flag could not be set"
    )
    posters: list[str] = Field(description="Destinations used for this run")
    dry_run: bool = Field(description="Whether this was a dry run")

    @classmethod
    def from_report(cls, report: RunReport) -> "RunResponse":
        return cls(
            status=determine_status(report),
            articles_found=report.articles_found,
            articles_posted=report.articles_posted,
            articles_failed=report.articles_failed,
            articles_mark_failed=report.articles_mark_failed,
            posters=report.posters,
            dry_run=report.dry_run,
        )


class WebhookResponse(BaseModel):
    """Response to a Notion webhook delivery."""

    message: str = Field(description="What the webhook did")
    run: RunResponse | None = Field(default=None, description="Run outcome, if one ran")


def determine_status(report: RunReport) -> str:
    """Determine the aggregate status of a run."""
    if report.dry_run:
        return "dry_run"
    if not report.results:
        return "no_articles"
    if report.articles_posted == 0:
        return "failed"
    if report.articles_failed > 0 or report.articles_mark_failed > 0:
        return "partial_success"
    return "success"
