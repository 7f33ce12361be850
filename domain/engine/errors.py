"""Engine Bounded Context - Error Hierarchy.

Custom exceptions raised while talking to the external propagation engine.

Only ConfigurationError is fatal to the process; every other error is
isolated to the request that triggered it.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base error for engine operations."""


class ConfigurationError(EngineError):
    """Startup configuration is missing or invalid (e.g. no executable path)."""


class InvalidParameters(EngineError):
    """A caller-supplied field is missing or unparsable.

    Raised before any subprocess is spawned.
    """


class EngineUnavailable(EngineError):
    """The engine process could not be spawned, written to, or read from."""


class MalformedResponse(EngineError):
    """Engine output did not match the expected response grammar.

    Attributes:
        raw: The offending output line (terminator stripped)
    """

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)
