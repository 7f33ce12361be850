"""Per-call subprocess adapter for EngineClient.

Lifecycle of one call:
1) Encode the query as a request line
2) Spawn a fresh engine process
3) Write the request and close stdin (end-of-input for the child)
4) Wait for the child to exit, collecting all of stdout
5) Decode stdout according to the query kind

Calls share nothing but read-only configuration, so they may run fully in
parallel.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from domain.engine.errors import EngineUnavailable
from domain.engine.protocol import decode_response, encode_request
from domain.engine.value_objects import EngineQuery, Measurement

from .process import engine_command, stop_process

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0

# Bytes of engine stderr quoted in error messages
_STDERR_TAIL = 200


class OneShotEngineClient:
    """Infrastructure adapter spawning one engine process per call.

    Parameters
    ----------
    executable: str | None
        Engine executable. Missing -> ConfigurationError here, not at call time.
    args: Sequence[str]
        Extra arguments placed right after the executable.
    terrain_dir: Path | str | None
        Terrain/elevation data directory passed as ``-sdf``.
    timeout_s: float
        Upper bound for one call, from spawn to exit.
    """

    def __init__(
        self,
        executable: str | None,
        *,
        args: Sequence[str] = (),
        terrain_dir: Path | str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.command = engine_command(executable, args, terrain_dir)
        self.timeout_s = timeout_s

    def sample(self, query: EngineQuery) -> Measurement:
        request = encode_request(query)
        logger.debug("Engine request (%s): %s", query.kind, request.rstrip())
        raw = self._run(request.encode("ascii"))
        return decode_response(query, raw)

    def _run(self, request: bytes) -> bytes:
        try:
            process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            # Log only the executable name, not the full path
            logger.error(
                "Failed to spawn engine %s (errno=%s, strerror=%s)",
                Path(self.command[0]).name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise EngineUnavailable(f"Failed to spawn engine: {e}") from e

        try:
            # communicate() writes the request, closes stdin, then reads to EOF
            stdout, stderr = process.communicate(request, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as e:
            stop_process(process)
            logger.error("Engine pid %d timed out after %.1fs", process.pid, self.timeout_s)
            raise EngineUnavailable(
                f"Engine timed out after {self.timeout_s:g}s"
            ) from e

        if process.returncode != 0:
            tail = stderr[-_STDERR_TAIL:].decode("utf-8", errors="replace").strip()
            logger.error(
                "Engine pid %d exited with status %d", process.pid, process.returncode
            )
            raise EngineUnavailable(
                f"Engine exited with status {process.returncode}: {tail}"
            )
        return stdout
