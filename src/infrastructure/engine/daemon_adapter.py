"""Persistent-daemon adapter for EngineClient.

One long-lived ``<exec> -daemon`` process serves every call:
1) Spawn the daemon once (at startup, or lazily on first call)
2) Per call, under an exclusive lock: write one request line, read one line
3) Decode outside the lock

The protocol carries no request identifier, so the lock is held for the
whole write-then-read exchange and at most one engine call is in flight.

A reader thread pumps daemon stdout into a queue so reads can time out. A
timed-out exchange leaves an unknown response in the pipe; the daemon is
then stopped and respawned on the next call so the pipe never desyncs.
Output already queued before a request is written gets the same treatment.

Image queries return an unframed byte stream, which a line-oriented daemon
cannot delimit; they are delegated to a per-call transport.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from domain.engine.errors import EngineUnavailable
from domain.engine.protocol import decode_response, encode_request
from domain.engine.value_objects import EngineQuery, ImageQuery, Measurement

from .oneshot_adapter import DEFAULT_TIMEOUT_S, OneShotEngineClient
from .process import engine_command, stop_process

logger = logging.getLogger(__name__)

# Queued by the reader thread when daemon stdout reaches EOF
_EOF = b""


def _pump_lines(stdout: IO[bytes], lines: "queue.Queue[bytes]") -> None:
    for line in iter(stdout.readline, b""):
        lines.put(line)
    lines.put(_EOF)


class DaemonEngineClient:
    """Infrastructure adapter reusing one engine daemon across calls.

    Parameters
    ----------
    executable: str | None
        Engine executable. Missing -> ConfigurationError here, not at call time.
    args: Sequence[str]
        Extra arguments placed right after the executable.
    terrain_dir: Path | str | None
        Terrain/elevation data directory passed as ``-sdf``.
    timeout_s: float
        Upper bound for reading one response line.
    image_client: OneShotEngineClient | None
        Transport for image queries; built from the same settings if omitted.
    """

    def __init__(
        self,
        executable: str | None,
        *,
        args: Sequence[str] = (),
        terrain_dir: Path | str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        image_client: OneShotEngineClient | None = None,
    ) -> None:
        self.command = engine_command(executable, args, terrain_dir, daemon=True)
        self.timeout_s = timeout_s
        self.image_client = image_client or OneShotEngineClient(
            executable, args=args, terrain_dir=terrain_dir, timeout_s=timeout_s
        )
        self._lock = threading.Lock()
        self._process: subprocess.Popen[bytes] | None = None
        self._lines: queue.Queue[bytes] = queue.Queue()

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def start(self) -> None:
        """Spawn the daemon now instead of on the first call."""
        with self._lock:
            self._ensure_running()

    def close(self) -> None:
        """Stop the daemon if it is running."""
        with self._lock:
            self._stop()

    @property
    def pid(self) -> int | None:
        process = self._process
        if process is None or process.poll() is not None:
            return None
        return process.pid

    def _ensure_running(self) -> subprocess.Popen[bytes]:
        process = self._process
        if process is not None and process.poll() is None:
            return process
        if process is not None:
            logger.warning(
                "Engine daemon pid %d exited with status %s; respawning",
                process.pid,
                process.returncode,
            )
            self._stop()

        try:
            process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            logger.error(
                "Failed to spawn engine daemon %s (errno=%s, strerror=%s)",
                Path(self.command[0]).name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise EngineUnavailable(f"Failed to spawn engine daemon: {e}") from e

        # Fresh queue per process: lines of a dead daemon never reach a new call
        lines: queue.Queue[bytes] = queue.Queue()
        reader = threading.Thread(
            target=_pump_lines,
            args=(process.stdout, lines),
            name=f"engine-daemon-{process.pid}",
            daemon=True,
        )
        reader.start()
        self._process = process
        self._lines = lines
        logger.info("Engine daemon started (pid %d)", process.pid)
        return process

    def _stop(self) -> None:
        process = self._process
        self._process = None
        if process is None:
            return
        status = stop_process(process)
        logger.info("Engine daemon pid %d stopped (status %s)", process.pid, status)

    # -----------------------------------------------------------------------
    # EngineClient
    # -----------------------------------------------------------------------
    def sample(self, query: EngineQuery) -> Measurement:
        if isinstance(query, ImageQuery):
            return self.image_client.sample(query)
        request = encode_request(query)
        logger.debug("Engine request (%s): %s", query.kind, request.rstrip())
        with self._lock:
            raw = self._exchange(request.encode("ascii"))
        # Exactly one line was consumed; a decode failure leaves the pipe in sync
        return decode_response(query, raw)

    def _exchange(self, request: bytes) -> bytes:
        process = self._ensure_running()
        if not self._lines.empty():
            # Output nobody asked for would be read as the answer to this request
            logger.warning(
                "Engine daemon pid %d: unsolicited output pending; restarting",
                process.pid,
            )
            self._stop()
            process = self._ensure_running()
        if process.stdin is None:
            raise EngineUnavailable("Engine daemon has no stdin pipe")

        try:
            process.stdin.write(request)
            process.stdin.flush()
        except (OSError, ValueError) as e:
            # ValueError: stdin already closed
            logger.error("Engine daemon pid %d: write failed (%s)", process.pid, e)
            self._stop()
            raise EngineUnavailable(f"Engine daemon pipe broken: {e}") from e

        try:
            line = self._lines.get(timeout=self.timeout_s)
        except queue.Empty as e:
            logger.warning(
                "Engine daemon pid %d: no response within %.1fs; restarting",
                process.pid,
                self.timeout_s,
            )
            self._stop()
            raise EngineUnavailable(
                f"Engine daemon timed out after {self.timeout_s:g}s"
            ) from e

        if line == _EOF:
            self._process = None
            status = stop_process(process)
            logger.error(
                "Engine daemon pid %d exited mid-request (status %s)",
                process.pid,
                status,
            )
            raise EngineUnavailable(f"Engine daemon exited with status {status}")
        return line
