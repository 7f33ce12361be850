"""Transport selection for the engine client."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from domain.engine.errors import ConfigurationError

from .daemon_adapter import DaemonEngineClient
from .oneshot_adapter import DEFAULT_TIMEOUT_S, OneShotEngineClient

logger = logging.getLogger(__name__)

TransportMode = Literal["daemon", "oneshot"]


def build_engine_client(
    mode: TransportMode,
    executable: str | None,
    *,
    args: Sequence[str] = (),
    terrain_dir: Path | str | None = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> DaemonEngineClient | OneShotEngineClient:
    """Return the EngineClient adapter for ``mode``.

    Raises:
        ConfigurationError: unknown mode or missing executable
    """
    if mode == "daemon":
        client: DaemonEngineClient | OneShotEngineClient = DaemonEngineClient(
            executable, args=args, terrain_dir=terrain_dir, timeout_s=timeout_s
        )
    elif mode == "oneshot":
        client = OneShotEngineClient(
            executable, args=args, terrain_dir=terrain_dir, timeout_s=timeout_s
        )
    else:
        raise ConfigurationError(f"Unknown engine mode: {mode!r}")
    logger.debug("Engine transport: %s (%s)", mode, Path(client.command[0]).name)
    return client
