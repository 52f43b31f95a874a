"""Assembly of the destinations available for a run."""

from contextlib import AsyncExitStack

from crossposter.clients.base import Poster
from crossposter.clients.bluesky import BlueskyPoster
from crossposter.clients.twitter import TwitterPoster
from crossposter.config import ConfigurationError, SecretsConfig
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)


async def build_poster_set(
    secrets: SecretsConfig,
    stack: AsyncExitStack,
    timeout: float = 30.0,
    login: bool = True,
) -> tuple[Poster, ...]:
    """Create one poster per destination that has a full set of credentials.

    Sessions are established here, before any article is posted, unless
    ``login`` is False (dry runs). Each poster is registered on ``stack`` so
    its HTTP client is closed with it.

    Raises:
        ConfigurationError: If no destination has credentials.
    """
    posters: list[Poster] = []

    bluesky = secrets.bluesky_credentials()
    if bluesky is not None:
        poster = await stack.enter_async_context(BlueskyPoster(bluesky, timeout=timeout))
        # A failed login keeps the poster; its posts are then reported as failures.
        if login:
            await poster.login()
        posters.append(poster)
    else:
        logger.info("Bluesky credentials not set, skipping destination")

    twitter = secrets.twitter_credentials()
    if twitter is not None:
        posters.append(
            await stack.enter_async_context(TwitterPoster(twitter, timeout=timeout))
        )
    else:
        logger.info("X credentials not set, skipping destination")

    if not posters:
        raise ConfigurationError(
            "No destination credentials set. Configure Bluesky "
            "(CROSSPOSTER_BLUESKY_IDENTIFIER, CROSSPOSTER_BLUESKY_PASSWORD) and/or X "
            "(CROSSPOSTER_TWITTER_CONSUMER_KEY, CROSSPOSTER_TWITTER_CONSUMER_SECRET, "
            "CROSSPOSTER_TWITTER_ACCESS_TOKEN, CROSSPOSTER_TWITTER_ACCESS_SECRET)."
        )

    logger.info("Posters ready", posters=[p.name for p in posters])
    return tuple(posters)
