"""Google Cloud Secret Manager wrapper for Crossposter."""

from functools import lru_cache

from google.api_core import exceptions as google_exceptions
from google.cloud import secretmanager

from crossposter.utils.logging import get_logger

logger = get_logger(__name__)


class SecretManagerClient:
    """Reads credential values stored in Google Cloud Secret Manager."""

    def __init__(self, project_id: str) -> None:
        self._project_id = project_id
        self._client = secretmanager.SecretManagerServiceClient()

    def get_secret(self, secret_id: str, version: str = "latest") -> str:
        """Retrieve a secret value.

        Args:
            secret_id: The ID of the secret (e.g. "bluesky-password").
            version: The version of the secret (default: "latest").

        Returns:
            The secret payload decoded as UTF-8.
        """
        name = f"projects/{self._project_id}/secrets/{secret_id}/versions/{version}"
        logger.info("Accessing secret", secret_id=secret_id, version=version)

        response = self._client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8").strip()

    def get_secret_or_none(self, secret_id: str) -> str | None:
        """Retrieve a secret, returning None when it does not exist."""
        try:
            value = self.get_secret(secret_id)
        except google_exceptions.NotFound:
            logger.info("Secret not found", secret_id=secret_id)
            return None
        return value or None


@lru_cache(maxsize=1)
def get_secret_manager(project_id: str) -> SecretManagerClient:
    """Get or create a cached SecretManagerClient instance."""
    return SecretManagerClient(project_id)
