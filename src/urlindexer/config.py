"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (URLINDEXER__STORE__DB_PATH=/tmp/index.db)
  2. urlindexer.yaml        (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_APP_NAME = "urlindexer"
_DEFAULT_DATA_DIR = platformdirs.user_data_dir(_APP_NAME)
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "request-index.db")


def _find_config_file() -> str | None:
    """Return the path of the first urlindexer.yaml found, or None."""
    candidates = [
        Path("urlindexer.yaml"),
        Path(platformdirs.user_config_dir(_APP_NAME)) / "urlindexer.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class StoreSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: str = _DEFAULT_DB_PATH
    # Rows fetched per round trip by the ordered key cursor
    scan_page_size: int = Field(default=256, ge=1)


class IndexerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Quiet period of the change/delete coalescing queues
    debounce_ms: int = Field(default=25, ge=0)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: URLINDEXER__INDEXER__DEBOUNCE_MS=50
        env_prefix="URLINDEXER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    store: StoreSettings = StoreSettings()
    indexer: IndexerSettings = IndexerSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
