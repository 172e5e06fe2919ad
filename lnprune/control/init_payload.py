"""Models for the params of lightningd's `init` call."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lnprune.handoff import InitInfo

DEFAULT_PRUNING_INTERVAL = 600


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class LightningOptions(BaseModel):
    """Plugin options as set on the lightningd command line or config."""
    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    pruning_interval: int = Field(default=DEFAULT_PRUNING_INTERVAL, gt=0)

    @field_validator("pruning_interval", mode="before")
    @classmethod
    def _string_or_number(cls, value: Any) -> Any:
        # lightningd hands option values over as strings
        if isinstance(value, bool):
            raise ValueError("pruning-interval must be an integer")
        if isinstance(value, str):
            return int(value.strip())
        return value


class LightningConfig(BaseModel):
    """The `configuration` object lightningd passes to init."""
    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    lightning_dir: Path
    rpc_file: str
    startup: bool


class LightningInit(BaseModel):
    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True)

    options: LightningOptions
    configuration: LightningConfig

    def to_init_info(self) -> InitInfo:
        return InitInfo(
            socket_path=self.configuration.lightning_dir / self.configuration.rpc_file,
            pruning_interval=self.options.pruning_interval,
        )
