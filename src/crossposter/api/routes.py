"""API routes for Crossposter."""

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from crossposter.api.auth import verify_oidc_token
from crossposter.api.models import RunResponse, WebhookResponse
from crossposter.config import (
    ConfigurationError,
    SecretsConfig,
    Settings,
    get_secrets,
    get_settings,
)
from crossposter.services.runner import run_once
from crossposter.services.signature import (
    SIGNATURE_HEADER,
    extract_verification_token,
    verify_signature,
)
from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])


async def _run(settings: Settings, secrets: SecretsConfig, dry_run: bool = False) -> RunResponse:
    """Execute a run, reporting any failure as a 500."""
    try:
        report = await run_once(settings, dry_run=dry_run, secrets=secrets)
    except Exception as e:
        logger.exception("Run failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Run failed: {e}",
        ) from e
    return RunResponse.from_report(report)


@router.post(
    "/run",
    response_model=RunResponse,
    dependencies=[Depends(verify_oidc_token)],
)
async def run(
    dry_run: bool = Query(default=False, description="Log what would be posted only"),
) -> RunResponse:
    """Post every unposted Notion article to the configured destinations.

    Called by Cloud Scheduler on a timer, or manually.
    """
    logger.info("Run endpoint called", dry_run=dry_run)
    settings = get_settings()
    return await _run(settings, get_secrets(settings), dry_run=dry_run)


@router.post("/notion-webhook", response_model=WebhookResponse)
async def notion_webhook(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
) -> WebhookResponse:
    """Receive a Notion webhook event and run the posting workflow.

    The unsigned subscription handshake (a body carrying
    ``verification_token``) is acknowledged without a signature check.
    Every other delivery must carry a valid ``X-Notion-Signature``.
    """
    raw_body = await request.body()

    verification_token = extract_verification_token(raw_body)
    if verification_token is not None:
        # The token becomes the HMAC key for every later delivery. It is only
        # sent during subscription setup, when the operator copies it from here.
        logger.info(
            "Notion verification token received",
            verification_token=verification_token,
        )
        return WebhookResponse(
            message="Verification token received. Check logs for the token value."
        )

    settings = get_settings()
    secrets = get_secrets(settings)
    try:
        signing_secret = secrets.notion_verification_token
    except ConfigurationError as e:
        logger.error("Webhook verification token unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error in webhook handler: {e}",
        ) from e

    if not verify_signature(signing_secret, signature, raw_body):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )

    logger.info("Webhook signature verified, starting run")
    result = await _run(settings, secrets)
    return WebhookResponse(message="Webhook received successfully!", run=result)
