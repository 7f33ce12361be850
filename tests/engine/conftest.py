"""Pytest configuration for engine transport tests.

Transport tests drive real subprocesses: the Python interpreter running
tests/engine/mock_engine.py stands in for the engine executable.
"""

import sys
from pathlib import Path

import pytest

from infrastructure.engine import DaemonEngineClient, OneShotEngineClient

MOCK_ENGINE = Path(__file__).parent / "mock_engine.py"


@pytest.fixture
def oneshot_client() -> OneShotEngineClient:
    return OneShotEngineClient(sys.executable, args=[str(MOCK_ENGINE)], timeout_s=10.0)


@pytest.fixture
def daemon_client():
    client = DaemonEngineClient(sys.executable, args=[str(MOCK_ENGINE)], timeout_s=10.0)
    yield client
    client.close()
