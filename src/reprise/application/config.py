from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from reprise.domain.models import ReconcilePolicy


def config_file_candidates() -> list[Path]:
    return [
        Path.home() / ".config/reprise/config.toml",
        Path.home() / ".reprise.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for reprise.
    Supports loading from:
    1. Config file (~/.config/reprise/config.toml or ~/.reprise.toml)
    2. Environment variables (REPRISE_*)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="REPRISE_",
        extra="ignore",
    )

    # Storage
    data_file: Path = Field(default_factory=lambda: Path.home() / ".config/reprise/cards.json")

    # Review sessions
    default_deck: str | None = None
    session_limit: int | None = Field(default=None, ge=1)
    reconcile_policy: ReconcilePolicy = ReconcilePolicy.RESET

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
        toml_file = next((f for f in config_file_candidates() if f.exists()), None)

        # Earlier sources take priority: CLI overrides, then env, then TOML.
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_file", mode="before")
    @classmethod
    def resolve_data_file(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/reprise/config.toml (if exists)
    3. Environment variables (REPRISE_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
