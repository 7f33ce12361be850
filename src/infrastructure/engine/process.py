"""Process helpers shared by the engine transports."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from domain.engine.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Grace period for an engine to exit after SIGTERM before it is killed
TERMINATE_GRACE_S = 3.0


def engine_command(
    executable: str | None,
    args: Sequence[str] = (),
    terrain_dir: Path | str | None = None,
    daemon: bool = False,
) -> list[str]:
    """Build the argv used to start the engine.

    Raises:
        ConfigurationError: no executable configured
    """
    if not executable:
        raise ConfigurationError("Engine executable path is not configured (SS_EXEC)")
    command = [str(executable), *args]
    if daemon:
        command.append("-daemon")
    if terrain_dir is not None:
        command += ["-sdf", str(terrain_dir)]
    return command


def stop_process(process: subprocess.Popen[bytes]) -> int | None:
    """Terminate ``process``, escalating to kill; returns its exit status."""
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE_S)
        except subprocess.TimeoutExpired:
            logger.warning("Engine pid %d ignored SIGTERM; killing", process.pid)
            process.kill()
            process.wait()
    for stream in (process.stdin, process.stdout, process.stderr):
        if stream is not None:
            try:
                stream.close()
            except OSError:
                # Closing a pipe whose reader is gone can raise EPIPE on flush
                pass
    return process.returncode
