from datetime import date, datetime
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexis.domain.constants import DEFAULT_AUDIO_BUCKET, DEFAULT_TIMEZONE, REQUEST_TIMEOUT


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/lexis/config.toml",
        Path.home() / ".lexis.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for lexis.
    Supports loading from:
    1. Environment variables (LEXIS_*)
    2. Config file (~/.config/lexis/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXIS_",
        extra="ignore",
    )

    # Store
    backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str | None = None
    supabase_key: str | None = None
    audio_bucket: str = DEFAULT_AUDIO_BUCKET
    seed_file: Path | None = None
    request_timeout: float = REQUEST_TIMEOUT

    # Scheduling
    timezone: str = DEFAULT_TIMEZONE
    shuffle_seed: int | None = None

    # Output
    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("seed_file", mode="before")
    @classmethod
    def resolve_seed_file(cls, v: Any) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v

    def today(self) -> date:
        """Canonical 'today' used for every due-date computation."""
        return datetime.now(ZoneInfo(self.timezone)).date()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexis/config.toml (if exists)
    3. Environment variables (LEXIS_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
