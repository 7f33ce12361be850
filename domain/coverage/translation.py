"""Coverage Bounded Context - Request Translation.

Builds a CoverageRequest from loosely typed fields (HTTP query parameters).
The origin is the transmitter location; the threshold defaults to ``rt``.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ValidationError

from domain.coverage.value_objects import CoverageRequest, GeoPoint
from domain.engine.errors import InvalidParameters
from domain.engine.translation import parse_parameter_set


class _SearchFields(BaseModel):
    resolution: int
    threshold: Decimal | None = None


def parse_coverage_request(fields: Mapping[str, Any]) -> CoverageRequest:
    """Build a CoverageRequest from a field mapping.

    Resolution bounds are NOT checked here; the search reports them as
    InvalidResolution.

    Raises:
        InvalidParameters: a template field, ``resolution`` or ``threshold``
            is missing or unparsable
    """
    template = parse_parameter_set(fields)
    try:
        search = _SearchFields.model_validate(
            {k: fields[k] for k in ("resolution", "threshold") if k in fields}
        )
    except ValidationError as e:
        names = ", ".join(str(item["loc"][0]) for item in e.errors())
        raise InvalidParameters(f"Invalid parameters: {names}") from e

    return CoverageRequest(
        template=template,
        origin=GeoPoint(latitude=float(template.lat), longitude=float(template.lon)),
        resolution=search.resolution,
        threshold=search.threshold if search.threshold is not None else template.rt,
    )
