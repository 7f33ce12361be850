"""Engine Bounded Context - Request Translation.

Turns loosely typed field mappings (HTTP query parameters) into validated
query Value Objects. Every failure surfaces as InvalidParameters before any
engine process is touched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from domain.engine.errors import InvalidParameters
from domain.engine.value_objects import (
    EngineQuery,
    ImageQuery,
    ParameterSet,
    PathQuery,
    ProfileQuery,
    QueryKind,
)

QUERY_TYPES: dict[str, type[BaseModel]] = {
    "path": PathQuery,
    "profile": ProfileQuery,
    "image": ImageQuery,
}


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _validate(model: type[BaseModel], fields: Mapping[str, Any]) -> Any:
    # Unknown keys (kind included) are ignored; the model decides the variant
    data = {k: v for k, v in fields.items() if k != "kind"}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidParameters(f"Invalid parameters: {_describe(e)}") from e


def parse_parameter_set(fields: Mapping[str, Any]) -> ParameterSet:
    """Build a ParameterSet (no receiver location) from a field mapping.

    Raises:
        InvalidParameters: a required field is missing or unparsable
    """
    return _validate(ParameterSet, fields)


def parse_query(kind: QueryKind, fields: Mapping[str, Any]) -> EngineQuery:
    """Build the query variant named by ``kind`` from a field mapping.

    Raises:
        InvalidParameters: unknown kind, or a field is missing or unparsable
    """
    model = QUERY_TYPES.get(kind)
    if model is None:
        raise InvalidParameters(f"Unknown query kind: {kind!r}")
    return _validate(model, fields)
