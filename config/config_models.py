# config/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

Settings are read from model defaults, then environment variables prefixed
with `GTFS_EXTRACT_` (nested fields use `__`, e.g.
`GTFS_EXTRACT_READER__CHUNK_SIZE`), and are overridden by the YAML file and
command-line arguments in `config.config_loader`.
"""

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[GTFS-EXTRACT]"
LOG_LEVEL_DEFAULT: str = "INFO"
TEMP_DIR_DEFAULT: Path = Path("/tmp/gtfs_extract")
DOWNLOAD_TIMEOUT_DEFAULT: int = 120
READER_CHUNK_SIZE_DEFAULT: int = 100_000
WRITER_CHUNK_SIZE_DEFAULT: int = 100_000

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅", "error": "❌", "warning": "⚠️", "info": "ℹ️",
    "step": "➡️", "gear": "⚙️", "package": "📦", "rocket": "🚀",
    "sparkles": "✨", "critical": "🔥", "debug": "🐛",
}


class ReaderSettings(BaseModel):
    """How feed tables are read."""

    chunk_size: PositiveInt = Field(default=READER_CHUNK_SIZE_DEFAULT,
                                    description="Rows per pandas chunk when streaming a table.")
    validate_rows: bool = Field(default=True,
                                description="Validate rows against their entity model; failing rows are read unvalidated.")
    encoding: str = Field(default="utf-8-sig", description="Text encoding of the feed files.")


class WriterSettings(BaseModel):
    """How the extracted feed is written."""

    chunk_size: PositiveInt = Field(default=WRITER_CHUNK_SIZE_DEFAULT,
                                    description="Rows per pandas chunk when copying a table.")
    copy_extra_files: bool = Field(default=False,
                                   description="Copy files without filter keys unchanged.")


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_prefix="GTFS_EXTRACT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default=LOG_LEVEL_DEFAULT, description="Root log level name.")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path.")
    log_prefix: str = Field(default=LOG_PREFIX_DEFAULT, description="Prefix for log messages.")
    temp_dir: Path = Field(default=TEMP_DIR_DEFAULT,
                           description="Working directory for downloaded feeds and zip output.")
    download_timeout: PositiveInt = Field(default=DOWNLOAD_TIMEOUT_DEFAULT,
                                          description="Timeout in seconds for feed downloads.")
    clip_to_bbox: bool = Field(default=True,
                               description="Drop stops outside the bounding box from the result.")

    reader: ReaderSettings = Field(default_factory=ReaderSettings)
    writer: WriterSettings = Field(default_factory=WriterSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))
