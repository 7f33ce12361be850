"""Infrastructure adapters for the engine bounded context.

Subprocess transports implementing the EngineClient port: a fresh process
per call, or one persistent daemon shared behind a lock.
"""

from .daemon_adapter import DaemonEngineClient
from .factory import build_engine_client
from .oneshot_adapter import OneShotEngineClient

__all__ = ["DaemonEngineClient", "OneShotEngineClient", "build_engine_client"]
