"""Pipeline configuration using pydantic-settings.

This module defines the ChangelogSettings class that reads configuration
from environment variables with the CHANGELOG_ prefix, and the explicit
PipelineConfig object handed to the orchestrator at construction time.

Settings cover:
- Webhook signature secret and the environment discriminator that
  controls the development-only verification bypass
- Devin API credentials for task dispatch
- LLM endpoint used for classification and prompt synthesis
- Optional PostgreSQL connection for the idempotency ledger
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.changelog.catalog import (
    DOCS_REPOSITORY_URL,
    SUPPORTED_REPOSITORIES,
    RepositoryDescriptor,
)


DEVELOPMENT_ENVIRONMENT = "development"
DEFAULT_NAMESPACE = "changelog-events"


class ChangelogSettings(BaseSettings):
    """Changelog pipeline configuration from environment variables.

    All environment variables are prefixed with CHANGELOG_ (e.g.,
    CHANGELOG_DEVIN_API_KEY).

    Required fields (must be set via environment variables):
    - devin_api_key: Bearer token for the Devin sessions API
    - llm_url: URL of the OpenAI-compatible LLM endpoint

    The webhook secret is optional at load time so that a missing secret
    surfaces as a per-request verification error rather than a crash on
    startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANGELOG_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Environment
    # -------------------------------------------------------------------------
    # Only "development" disables webhook signature verification
    environment: str = "production"

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Shared secret for validating X-Hub-Signature-256
    github_webhook_secret: Optional[str] = None

    # -------------------------------------------------------------------------
    # Devin Configuration
    # -------------------------------------------------------------------------
    devin_api_key: str

    devin_base_url: str = "https://api.devin.ai/v1"

    devin_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # LLM Configuration
    # -------------------------------------------------------------------------
    llm_url: str

    llm_model: str = "Qwen/Qwen2.5-Coder-14B-Instruct-GPTQ-Int4"

    # vLLM endpoints ignore the key, hosted endpoints require one
    llm_api_key: str = "not-needed"

    llm_temperature: float = 0.1

    llm_timeout_seconds: float = 60.0

    # -------------------------------------------------------------------------
    # Idempotency Store Configuration
    # -------------------------------------------------------------------------
    # PostgreSQL connection string; the in-memory store is used when unset
    database_url: Optional[str] = None

    idempotency_namespace: str = DEFAULT_NAMESPACE

    # -------------------------------------------------------------------------
    # Changelog Conventions
    # -------------------------------------------------------------------------
    docs_repository_url: str = DOCS_REPOSITORY_URL

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        """Normalize the environment name to lower case."""
        return v.strip().lower()

    @field_validator("github_webhook_secret")
    @classmethod
    def blank_secret_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty webhook secret as not configured."""
        if v is None or not v.strip():
            return None
        return v

    @field_validator("devin_api_key")
    @classmethod
    def validate_devin_api_key(cls, v: str) -> str:
        """Validate that the Devin API key is not empty."""
        if not v or not v.strip():
            raise ValueError("devin_api_key cannot be empty")
        return v

    @field_validator("llm_url", "devin_base_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate that endpoint URLs use http or https."""
        if not v or not v.strip():
            raise ValueError("endpoint URL cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("endpoint URL must start with http:// or https://")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the database URL format when one is provided."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "database_url must start with postgresql:// or postgres://"
            )
        return v

    @field_validator("idempotency_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate that the idempotency namespace is not empty."""
        if not v or not v.strip():
            raise ValueError("idempotency_namespace cannot be empty")
        return v.strip()

    @field_validator("devin_timeout_seconds", "llm_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate that timeouts are positive."""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def verification_bypass(self) -> bool:
        """Whether signature verification is skipped.

        Only an explicit development environment enables the bypass.
        """
        return self.environment == DEVELOPMENT_ENVIRONMENT


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit configuration handed to the PipelineOrchestrator.

    Only what the orchestrator itself reads lives here. The namespace and
    docs repository belong to the store and synthesizer, which receive
    them at construction.

    Attributes:
        catalog: Repositories whose releases trigger changelog updates;
                 also used to canonicalize repository names in event keys.
        verification_bypass: Skip signature checks (development only).
    """

    catalog: Tuple[RepositoryDescriptor, ...] = field(
        default_factory=lambda: tuple(SUPPORTED_REPOSITORIES)
    )
    verification_bypass: bool = False


def get_settings() -> ChangelogSettings:
    """Create and return ChangelogSettings instance.

    Returns:
        ChangelogSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return ChangelogSettings()


def build_pipeline_config(settings: ChangelogSettings) -> PipelineConfig:
    """Derive the orchestrator configuration from loaded settings."""
    return PipelineConfig(
        catalog=tuple(SUPPORTED_REPOSITORIES),
        verification_bypass=settings.verification_bypass,
    )
