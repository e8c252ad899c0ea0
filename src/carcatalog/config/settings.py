"""Pydantic settings models for car catalog extractor configuration.

Three settings classes load from separate YAML config files with environment
variable override support. Source priority (highest to lowest):

    1. Environment variables (with prefix, e.g., SOURCE_RENDER_SCALE)
    2. .env file (for secrets, e.g., GATEWAY_API_KEY)
    3. YAML config file (e.g., config/source.yaml)
    4. Default values defined here

Config paths are resolved relative to PROJECT_ROOT so the application works
regardless of the current working directory.
"""

from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# Resolve project root: settings.py -> config/ -> carcatalog/ -> src/ -> repo root
PROJECT_ROOT = Path(__file__).resolve().parents[3]

_CONFIG_DIR = PROJECT_ROOT / "config"
_ENV_FILE = PROJECT_ROOT / ".env"


class _YamlSettings(BaseSettings):
    """Shared source ordering: init > env > .env > YAML > defaults."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


class SourceSettings(_YamlSettings):
    """Document sources: PDF rendering constants and web fetching."""

    # Rendering balances legibility against request payload size
    render_scale: float = 1.5
    jpeg_quality: int = 85
    max_pages: int = 100  # Upper bound on images per model request

    fetch_timeout_seconds: float = 30.0
    fetch_proxy_url: str = ""  # Empty = fetch directly
    user_agent: str = "CarCatalog-Extractor/1.0"
    strip_markup: bool = True

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "source.yaml"),
        env_prefix="SOURCE_",
    )


class GatewaySettings(_YamlSettings):
    """Model gateway: model choice, timeouts, credentials.

    ``api_key`` comes from .env or environment variables only -- it must
    NEVER appear in YAML files or logs. When empty, the Anthropic SDK falls
    back to its own ANTHROPIC_API_KEY lookup.
    """

    api_key: str = ""
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 16_000
    summary_max_tokens: int = 1_024

    extraction_timeout_seconds: float = 180.0
    summary_timeout_seconds: float = 120.0
    chat_timeout_seconds: float = 60.0

    # Bounded backoff for rate limiting only; 0 disables retries
    rate_limit_retries: int = 0
    backoff_base: float = 2.0
    backoff_max: float = 30.0

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "gateway.yaml"),
        env_file=str(_ENV_FILE),
        env_prefix="GATEWAY_",
        extra="ignore",
    )


class PipelineSettings(_YamlSettings):
    """Pipeline operations: storage paths, logging, progress display."""

    db_path: str = "data/catalogs.db"
    preview_dir: str = "data/previews"
    log_dir: str = "logs"
    log_level: str = "INFO"  # Console only; the log file always records DEBUG
    log_max_bytes: int = 10_485_760  # 10MB
    log_backup_count: int = 5
    done_reset_seconds: float = 3.0  # 0 keeps "done" until the next run

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "pipeline.yaml"),
        env_prefix="PIPELINE_",
    )
