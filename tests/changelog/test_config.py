"""Unit tests for ChangelogSettings and PipelineConfig."""

import pytest
from pydantic import ValidationError

from src.changelog.catalog import SUPPORTED_REPOSITORIES
from src.changelog.config import (
    DEFAULT_NAMESPACE,
    ChangelogSettings,
    PipelineConfig,
    build_pipeline_config,
)


@pytest.fixture
def base_env(monkeypatch):
    for key in (
        "CHANGELOG_ENVIRONMENT",
        "CHANGELOG_GITHUB_WEBHOOK_SECRET",
        "CHANGELOG_DATABASE_URL",
        "CHANGELOG_IDEMPOTENCY_NAMESPACE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CHANGELOG_DEVIN_API_KEY", "devin-key")
    monkeypatch.setenv("CHANGELOG_LLM_URL", "http://localhost:8080/v1")
    return monkeypatch


def test_defaults(base_env):
    settings = ChangelogSettings()

    assert settings.environment == "production"
    assert settings.verification_bypass is False
    assert settings.github_webhook_secret is None
    assert settings.database_url is None
    assert settings.idempotency_namespace == DEFAULT_NAMESPACE
    assert settings.devin_base_url == "https://api.devin.ai/v1"


@pytest.mark.parametrize(
    "environment, bypass",
    [
        ("development", True),
        (" Development ", True),
        ("production", False),
        ("staging", False),
        ("dev", False),
    ],
)
def test_only_development_bypasses_verification(base_env, environment, bypass):
    base_env.setenv("CHANGELOG_ENVIRONMENT", environment)

    assert ChangelogSettings().verification_bypass is bypass


def test_blank_secret_is_unset(base_env):
    base_env.setenv("CHANGELOG_GITHUB_WEBHOOK_SECRET", "   ")

    assert ChangelogSettings().github_webhook_secret is None


def test_devin_api_key_is_required(base_env):
    base_env.delenv("CHANGELOG_DEVIN_API_KEY")

    with pytest.raises(ValidationError):
        ChangelogSettings()


def test_llm_url_must_be_http(base_env):
    base_env.setenv("CHANGELOG_LLM_URL", "localhost:8080")

    with pytest.raises(ValidationError):
        ChangelogSettings()


def test_database_url_must_be_postgres(base_env):
    base_env.setenv("CHANGELOG_DATABASE_URL", "mysql://db/changelog")

    with pytest.raises(ValidationError):
        ChangelogSettings()


def test_build_pipeline_config(base_env):
    base_env.setenv("CHANGELOG_ENVIRONMENT", "development")

    config = build_pipeline_config(ChangelogSettings())

    assert config.verification_bypass is True
    assert config.catalog == tuple(SUPPORTED_REPOSITORIES)


def test_pipeline_config_carries_only_orchestrator_fields():
    assert set(PipelineConfig.__dataclass_fields__) == {
        "catalog",
        "verification_bypass",
    }


def test_namespace_from_environment(base_env):
    base_env.setenv("CHANGELOG_IDEMPOTENCY_NAMESPACE", " changelog-staging ")

    assert ChangelogSettings().idempotency_namespace == "changelog-staging"


def test_pipeline_config_defaults_are_safe():
    config = PipelineConfig()

    assert config.verification_bypass is False
    assert [r.name for r in config.catalog] == ["cli", "sdk-js", "sdk-py"]
