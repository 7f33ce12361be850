"""Domain Port(s) for the Propagation Engine.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import EngineQuery, Measurement


class EngineClient(Protocol):
    """Port for sampling the external propagation engine.

    Implementations live in infrastructure (per-call and daemon subprocess
    transports). Tests substitute deterministic fakes.
    """

    def sample(self, query: EngineQuery) -> Measurement:
        """Send one query to the engine and return its decoded measurement."""
        ...
