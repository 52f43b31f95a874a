"""Authentication for the scheduled run endpoint."""

import os

from fastapi import Header, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from crossposter.config import get_settings
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def verify_oidc_token(
    authorization: str | None = Header(default=None),
) -> None:
    """Verify the Cloud Scheduler OIDC token on a run request.

    When ``oidc_audience`` is configured the token must be issued for it;
    otherwise the audience is left to Cloud Run IAM. When
    ``scheduler_service_account`` is configured, only tokens for that
    account are accepted.

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if it
            belongs to another service account.
    """
    settings = get_settings()

    # Cloud Run always sets K_SERVICE; skip_auth only works off Cloud Run.
    is_cloud_run = os.environ.get("K_SERVICE") is not None
    if settings.skip_auth and not is_cloud_run:
        logger.warning("Skipping auth (local development mode)")
        return

    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.warning("Missing or malformed authorization header")
        raise _unauthorized("Missing bearer token")

    token = authorization[len(BEARER_PREFIX):]

    try:
        claims: dict[str, object] = id_token.verify_oauth2_token(
            token, google_requests.Request(), audience=settings.oidc_audience
        )  # type: ignore[no-untyped-call]
    except ValueError as e:
        logger.warning("Invalid OIDC token", error=str(e))
        raise _unauthorized("Invalid OIDC token") from e

    email = claims.get("email")
    expected = settings.scheduler_service_account
    if expected and (email != expected or claims.get("email_verified") is False):
        logger.warning("OIDC token from unexpected caller", email=email, expected=expected)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not the configured scheduler service account",
        )

    logger.info("Run request authorized", email=email or "unknown", issuer=claims.get("iss"))
