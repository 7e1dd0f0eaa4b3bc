"""Configuration management for onboardpack.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Per-run values on a GenerationRequest (CLI flags)
2. Environment variables (FOUNDRY_LOCAL_*, FOUNDRY_CLOUD_*, ONBOARDPACK_*)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [local]
    model = "phi-4-mini"

    [retry]
    backoff_seconds = 2.5

Example environment variable override:
    FOUNDRY_LOCAL_ENDPOINT="http://127.0.0.1:58243"
    ONBOARDPACK_PIPELINE__SKIP_LOCAL_MODEL=true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsConfigDict


class LocalProviderConfig(BaseSettings):
    """Local inference service (Foundry Local) configuration.

    Attributes:
        endpoint: Explicit base URL; None means discover it at runtime
        model: Model alias or full model identifier
        discovery_command: Command whose output reports the service address
        model_list_command: Command that lists cached models
        discovery_timeout_seconds: Bound on the discovery command
        model_list_timeout_seconds: Bound on the model listing command
        status_timeout_seconds: Timeout for models-listing/status probes
    """

    model_config = SettingsConfigDict(
        env_prefix="FOUNDRY_LOCAL_",
        extra="forbid",
    )

    endpoint: str | None = Field(default=None)
    model: str = Field(default="phi-4")
    discovery_command: str = Field(default="foundry service status")
    model_list_command: str = Field(default="foundry model list")
    discovery_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    model_list_timeout_seconds: float = Field(default=15.0, gt=0, le=120)
    status_timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class CloudProviderConfig(BaseSettings):
    """Cloud inference endpoint configuration.

    Attributes:
        endpoint: Base URL of the cloud deployment
        api_key: API key sent as bearer token or api-key header
        model: Model or deployment name
        api_version: API version used by Azure-style endpoints
        status_timeout_seconds: Timeout for the models-listing probe
    """

    model_config = SettingsConfigDict(
        env_prefix="FOUNDRY_CLOUD_",
        extra="forbid",
    )

    endpoint: str | None = Field(default=None)
    api_key: str | None = Field(default=None)
    model: str = Field(default="gpt-4o-mini")
    api_version: str = Field(default="2024-12-01-preview")
    status_timeout_seconds: float = Field(default=10.0, gt=0, le=60)


class AgentProviderConfig(BaseSettings):
    """Agentic session backend configuration.

    Attributes:
        model: Model requested for the session
        github_token: Token for the session backend (GITHUB_TOKEN/GH_TOKEN if unset)
        provider_type: Optional bring-your-own-key provider type (openai or azure)
        provider_base_url: Base URL for the bring-your-own-key provider
        provider_api_key: API key for the bring-your-own-key provider
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDPACK_AGENT__",
        extra="forbid",
    )

    model: str = Field(default="claude-sonnet-4")
    github_token: str | None = Field(default=None)
    provider_type: str | None = Field(default=None)
    provider_base_url: str | None = Field(default=None)
    provider_api_key: str | None = Field(default=None)

    @field_validator("provider_type")
    @classmethod
    def validate_provider_type(cls, v: str | None) -> str | None:
        """Validate the bring-your-own-key provider type."""
        if v is None:
            return v
        v_lower = v.lower()
        if v_lower not in {"openai", "azure"}:
            raise ValueError(f"Invalid provider type: {v}. Must be 'openai' or 'azure'")
        return v_lower


class RetryConfig(BaseSettings):
    """Retry policy for inference requests.

    Attributes:
        max_retries: Additional attempts after the first on connection errors
        backoff_seconds: Fixed wait between attempts
        request_timeout_seconds: Timeout for a single completion request
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDPACK_RETRY__",
        extra="forbid",
    )

    max_retries: int = Field(default=2, ge=0, le=10)
    backoff_seconds: float = Field(default=5.0, ge=0, le=120)
    request_timeout_seconds: float = Field(default=120.0, gt=0, le=1800)


class PipelineConfig(BaseSettings):
    """Pipeline behaviour configuration.

    Attributes:
        skip_local_model: Never call the model; use deterministic fallbacks
        max_key_files: Maximum number of key files summarized
        max_tokens: Default token limit for completion requests
        temperature: Default sampling temperature
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDPACK_PIPELINE__",
        extra="forbid",
    )

    skip_local_model: bool = Field(default=False)
    max_key_files: int = Field(default=10, ge=1, le=50)
    max_tokens: int = Field(default=2048, ge=1, le=32768)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stderr only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDPACK_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="WARNING")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=3, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class OnboardpackConfig(BaseSettings):
    """Root configuration for onboardpack.

    Aggregates all subsystem configurations. Each section reads its own
    environment prefix; the root additionally accepts nested overrides:

        ONBOARDPACK_<SECTION>__<KEY>=value
    """

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDPACK_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    local: LocalProviderConfig = Field(default_factory=LocalProviderConfig)
    cloud: CloudProviderConfig = Field(default_factory=CloudProviderConfig)
    agent: AgentProviderConfig = Field(default_factory=AgentProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class GenerationRequest(BaseModel):
    """Per-run inputs for one onboarding pack generation.

    Values set here take precedence over the loaded configuration.
    """

    repo_path: Path
    output_dir: Path | None = None
    endpoint: str | None = None
    model: str | None = None
    cloud_endpoint: str | None = None
    cloud_api_key: str | None = None
    cloud_model: str | None = None
    use_agent: bool = False
    agent_model: str | None = None
    skip_local_model: bool | None = None
    verbose: bool = False

    @property
    def resolved_output_dir(self) -> Path:
        """Output directory, defaulting to ``<repo>/docs``."""
        return self.output_dir or self.repo_path / "docs"


def _overlay_env(toml_data: dict[str, Any]) -> dict[str, Any]:
    """Merge each section's environment variables over its TOML table.

    Sections passed as init values skip their own env lookup, so TOML would
    otherwise outrank the environment.
    """
    merged = dict(toml_data)
    for name, field in OnboardpackConfig.model_fields.items():
        section = toml_data.get(name)
        if isinstance(section, dict) and isinstance(field.annotation, type):
            merged[name] = {**section, **EnvSettingsSource(field.annotation)()}
    return merged


def load_config(config_path: Path | None = None) -> OnboardpackConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./onboardpack.toml (current directory)
    3. ~/.config/onboardpack/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        OnboardpackConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path: Path | None = config_path
    else:
        search_paths = [
            Path.cwd() / "onboardpack.toml",
            Path.home() / ".config" / "onboardpack" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    try:
        return OnboardpackConfig(**_overlay_env(toml_data))
    except Exception as e:
        if selected_path:
            raise ValueError(f"Invalid configuration in {selected_path}: {e}") from e
        raise ValueError(f"Invalid configuration: {e}") from e
