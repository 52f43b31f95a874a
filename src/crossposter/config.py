"""Configuration loading for Crossposter."""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crossposter.utils.secrets import SecretManagerClient, get_secret_manager

DEFAULT_BLUESKY_SERVICE = "https://bsky.social"


class ConfigurationError(Exception):
    """Raised when the configuration does not allow a run to start."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="CROSSPOSTER_")

    # GCP settings
    gcp_project_id: str | None = Field(
        default=None,
        description="Google Cloud project ID (enables Secret Manager and Gemini)",
    )
    gcp_region: str = Field(default="europe-west1", description="Google Cloud region")

    # Notion settings
    notion_database_id: str = Field(description="ID of the Notion database holding articles")
    notion_api_key: SecretStr | None = Field(default=None, description="Notion integration token")
    notion_verification_token: SecretStr | None = Field(
        default=None, description="Notion webhook verification token (HMAC key)"
    )

    # Bluesky settings
    bluesky_identifier: str | None = Field(default=None, description="Bluesky handle or email")
    bluesky_password: SecretStr | None = Field(default=None, description="Bluesky app password")
    bluesky_service: str = Field(
        default=DEFAULT_BLUESKY_SERVICE, description="Bluesky PDS base URL"
    )

    # X (Twitter) settings
    twitter_consumer_key: SecretStr | None = Field(default=None, description="X API key")
    twitter_consumer_secret: SecretStr | None = Field(default=None, description="X API secret")
    twitter_access_token: SecretStr | None = Field(default=None, description="X access token")
    twitter_access_secret: SecretStr | None = Field(
        default=None, description="X access token secret"
    )

    # Application settings
    poster_timeout: float = Field(default=30.0, description="Seconds allowed per post attempt")
    max_articles_per_run: int | None = Field(
        default=None, description="Post at most this many (oldest) articles per run"
    )
    summarize_articles: bool = Field(
        default=False, description="Write a Gemini summary to Notion before posting"
    )
    summary_language: str = Field(default="Japanese", description="Language of AI summaries")
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit JSON log lines")
    dry_run: bool = Field(default=False, description="Run without posting or updating Notion")
    skip_auth: bool = Field(
        default=False, description="Skip OIDC verification (local development only)"
    )
    oidc_audience: str | None = Field(
        default=None, description="Required audience of run-endpoint OIDC tokens"
    )
    scheduler_service_account: str | None = Field(
        default=None, description="Only accept run-endpoint tokens for this account"
    )

    @field_validator("notion_database_id")
    @classmethod
    def validate_database_id(cls, v: str) -> str:
        """Validate the Notion database ID is not empty."""
        if not v or not v.strip():
            raise ValueError(
                "CROSSPOSTER_NOTION_DATABASE_ID is required. "
                "Set it to the ID of your Notion articles database."
            )
        return v.strip()

    @field_validator(
        "gcp_project_id", "bluesky_identifier", "oidc_audience", "scheduler_service_account"
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank optional values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("bluesky_service")
    @classmethod
    def validate_bluesky_service(cls, v: str) -> str:
        """Fall back to the default PDS and drop trailing slashes."""
        v = v.strip().rstrip("/")
        return v or DEFAULT_BLUESKY_SERVICE

    @field_validator("poster_timeout")
    @classmethod
    def validate_poster_timeout(cls, v: float) -> float:
        """Validate the per-post timeout is positive."""
        if v <= 0:
            raise ValueError("CROSSPOSTER_POSTER_TIMEOUT must be greater than zero.")
        return v

    @field_validator("max_articles_per_run")
    @classmethod
    def validate_max_articles(cls, v: int | None) -> int | None:
        """Validate the per-run article limit is positive when set."""
        if v is not None and v < 1:
            raise ValueError("CROSSPOSTER_MAX_ARTICLES_PER_RUN must be at least 1.")
        return v


@dataclass(frozen=True)
class BlueskyCredentials:
    """Credentials for a session-based Bluesky login."""

    identifier: str
    password: str
    service: str = DEFAULT_BLUESKY_SERVICE


@dataclass(frozen=True)
class TwitterCredentials:
    """OAuth 1.0a user-context credentials for the X API."""

    consumer_key: str
    consumer_secret: str
    access_token: str
    access_secret: str


class SecretsConfig:
    """Credentials read from the environment, then Google Cloud Secret Manager.

    A value set in the environment always wins. When it is missing and a GCP
    project is configured, the secret named after the setting (underscores
    replaced by dashes, e.g. ``bluesky-password``) is looked up instead.
    """

    def __init__(
        self,
        settings: Settings,
        secret_manager: SecretManagerClient | None = None,
    ) -> None:
        self._settings = settings
        if secret_manager is None and settings.gcp_project_id:
            secret_manager = get_secret_manager(settings.gcp_project_id)
        self._secret_manager = secret_manager
        self._cache: dict[str, str | None] = {}

    def get(self, key: str) -> str | None:
        """Resolve a credential setting by field name."""
        if key in self._cache:
            return self._cache[key]

        value = getattr(self._settings, key)
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        resolved: str | None = value.strip() if isinstance(value, str) and value.strip() else None

        if resolved is None and self._secret_manager is not None:
            resolved = self._secret_manager.get_secret_or_none(key.replace("_", "-"))

        self._cache[key] = resolved
        return resolved

    def _require(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise ConfigurationError(
                f"CROSSPOSTER_{key.upper()} must be set "
                f"(environment or Secret Manager secret '{key.replace('_', '-')}')."
            )
        return value

    @property
    def notion_api_key(self) -> str:
        """Get the Notion integration token."""
        return self._require("notion_api_key")

    @property
    def notion_verification_token(self) -> str:
        """Get the key used to sign Notion webhook payloads."""
        return self._require("notion_verification_token")

    def bluesky_credentials(self) -> BlueskyCredentials | None:
        """Get Bluesky credentials, or None unless both values are present."""
        identifier = self.get("bluesky_identifier")
        password = self.get("bluesky_password")
        if not identifier or not password:
            return None
        return BlueskyCredentials(
            identifier=identifier,
            password=password,
            service=self._settings.bluesky_service,
        )

    def twitter_credentials(self) -> TwitterCredentials | None:
        """Get X credentials, or None unless all four values are present."""
        values = [
            self.get("twitter_consumer_key"),
            self.get("twitter_consumer_secret"),
            self.get("twitter_access_token"),
            self.get("twitter_access_secret"),
        ]
        if not all(values):
            return None
        consumer_key, consumer_secret, access_token, access_secret = values
        return TwitterCredentials(
            consumer_key=consumer_key,  # type: ignore[arg-type]
            consumer_secret=consumer_secret,  # type: ignore[arg-type]
            access_token=access_token,  # type: ignore[arg-type]
            access_secret=access_secret,  # type: ignore[arg-type]
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]


def get_secrets(settings: Settings | None = None) -> SecretsConfig:
    """Get the secrets configuration for the given (or cached) settings."""
    if settings is None:
        settings = get_settings()
    return SecretsConfig(settings)
