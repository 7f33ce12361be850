"""Process configuration, read once from the environment at startup.

| Variable             | Field              | Default  |
|----------------------|--------------------|----------|
| SS_EXEC              | engine_exec        | required |
| ENGINE_ARGS          | engine_args        | none     |
| SS_SDF               | terrain_dir        | none     |
| ENGINE_MODE          | mode               | daemon   |
| ENGINE_TIMEOUT       | timeout_s          | 30       |
| COVERAGE_WORKERS     | coverage_workers   | 8        |
| COVERAGE_MAX_RINGS   | coverage_max_rings | none     |
| HOST                 | host               | 0.0.0.0  |
| PORT                 | port               | 3000     |
| DEBUG                | debug              | false    |
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domain.engine.errors import ConfigurationError

_ENV_FIELDS: dict[str, str] = {
    "SS_EXEC": "engine_exec",
    "SS_SDF": "terrain_dir",
    "ENGINE_MODE": "mode",
    "ENGINE_TIMEOUT": "timeout_s",
    "COVERAGE_WORKERS": "coverage_workers",
    "COVERAGE_MAX_RINGS": "coverage_max_rings",
    "HOST": "host",
    "PORT": "port",
    "DEBUG": "debug",
}


class Settings(BaseModel):
    """Static configuration (Value Object)."""

    engine_exec: str = Field(min_length=1)
    engine_args: tuple[str, ...] = ()
    terrain_dir: Path | None = None
    mode: Literal["daemon", "oneshot"] = "daemon"
    timeout_s: float = Field(default=30.0, gt=0)
    coverage_workers: int = Field(default=8, ge=1)
    coverage_max_rings: int | None = Field(default=None, ge=1)
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    debug: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ConfigurationError: SS_EXEC missing or any value invalid
        """
        env = os.environ if environ is None else environ
        if not env.get("SS_EXEC"):
            raise ConfigurationError("environment variable SS_EXEC is not set!")

        data: dict[str, object] = {
            field: env[var] for var, field in _ENV_FIELDS.items() if env.get(var)
        }
        if env.get("ENGINE_ARGS"):
            data["engine_args"] = tuple(shlex.split(env["ENGINE_ARGS"]))

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(p) for p in item["loc"]) for item in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {fields}") from e
