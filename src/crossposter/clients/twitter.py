"""X (Twitter) API v2 poster for Crossposter."""

import httpx
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA1
from oauthlib.oauth1 import Client as OAuth1Client

from crossposter.clients.base import PostingError, build_text
from crossposter.config import TwitterCredentials
from crossposter.models import Article
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

TWEETS_URL = "https://api.twitter.com/2/tweets"


def _error_detail(response: httpx.Response) -> str:
    """Extract the human-readable detail from an X API error body."""
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        return str(data.get("detail") or data.get("title") or "")
    return ""


class TwitterPoster:
    """Posts articles to X, signing every request with OAuth 1.0a.

    There is no session: each request carries its own HMAC-SHA1 signature,
    and success is decided by the response status.
    """

    name = "twitter"

    def __init__(self, credentials: TwitterCredentials, timeout: float = 30.0) -> None:
        self._oauth = OAuth1Client(
            credentials.consumer_key,
            client_secret=credentials.consumer_secret,
            resource_owner_key=credentials.access_token,
            resource_owner_secret=credentials.access_secret,
            signature_method=SIGNATURE_HMAC_SHA1,
        )
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "TwitterPoster":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _signed_headers(self, url: str, method: str) -> dict[str, str]:
        # JSON bodies are not part of the OAuth 1.0a signature base string.
        _, headers, _ = self._oauth.sign(url, http_method=method)
        return {**headers, "Content-Type": "application/json"}

    async def post_article(self, article: Article) -> None:
        """Publish the article as a tweet.

        Raises:
            PostingError: If the request fails or X answers with a non-2xx status.
        """
        logger.info("Posting article to X", article_id=article.id, title=article.title)

        try:
            response = await self._client.post(
                TWEETS_URL,
                headers=self._signed_headers(TWEETS_URL, "POST"),
                json={"text": build_text(article)},
            )
        except httpx.HTTPError as e:
            raise PostingError(self.name, str(e) or type(e).__name__) from e

        if not response.is_success:
            detail = _error_detail(response)
            logger.error(
                "X API returned an error",
                article_id=article.id,
                status=response.status_code,
                body=response.text[:500],
            )
            raise PostingError(
                self.name,
                f"HTTP {response.status_code} {response.reason_phrase}. {detail}".strip(),
            )

        logger.info("X post successful", article_id=article.id)
