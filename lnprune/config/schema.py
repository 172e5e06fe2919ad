"""Configuration schema using Pydantic.

Settings that lightningd does not pass to the plugin; read from
~/.lnprune/config.json and LNPRUNE_* environment variables.
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Log sinks. stdout is the plugin channel, so logs go to stderr."""
    level: str = "INFO"
    file: Path | None = None  # Optional rotating log file


class Settings(BaseSettings):
    """Root configuration for lnprune."""
    retention_blocks: int = Field(default=288, ge=0)  # Blocks kept behind lightningd's height
    handoff_poll_interval: float = Field(default=0.1, gt=0)
    http_timeout: float = Field(default=30.0, gt=0)
    backend_read_size: int = Field(default=4096, ge=2)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="LNPRUNE_",
        env_nested_delimiter="__",
    )
