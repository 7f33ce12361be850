"""Engine Proxy Domain Layer.

This package contains the core logic organized by bounded contexts:
- engine: Engine inputs/outputs, wire protocol, request translation
- coverage: Hex-ring coverage search over the engine
"""

# Imports alphabetized per project style (isort)
from domain import coverage, engine

__all__ = ["coverage", "engine"]
