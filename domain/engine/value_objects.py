"""Engine Bounded Context - Value Objects.

Immutable inputs and outputs of a single engine invocation.
All validation occurs at construction time via Pydantic.

Decimal fields are ``decimal.Decimal`` rather than ``float``: the engine's
wire grammar is textual, so the digits a caller supplies must reach the
engine unchanged (``44.73566`` must never become ``44.7357``).

Queries and measurements are tagged unions keyed by ``kind``. A measurement
always has the kind of the query that produced it, so decoders only parse the
fields that query guarantees.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator

QueryKind = Literal["path", "profile", "image"]


def format_decimal(value: Decimal) -> str:
    """Render a Decimal in positional notation, keeping the caller's digits.

    ``str(Decimal)`` switches to exponent notation for some values
    (``Decimal("1E+3")``), which the engine does not parse.
    """
    return format(value, "f")


# Decimal that serializes to JSON exactly as it goes over the wire
WireDecimal = Annotated[
    Decimal, PlainSerializer(format_decimal, return_type=str, when_used="json")
]


# ---------------------------------------------------------------------------
# ParameterSet
# ---------------------------------------------------------------------------
class ParameterSet(BaseModel):
    """Transmitter-side propagation inputs shared by every query (Value Object).

    This is also the template a coverage search copies for each receiver
    location, which is why it carries no receiver coordinates.

    Fields use the engine's flag names:
        lat/lon: transmitter location (degrees)
        txh: transmitter antenna height
        f: frequency (MHz)
        erp: effective radiated power
        rxh: receiver antenna height
        rt: receiver threshold
        dbm: report power in dBm instead of field strength units
        m: metric units
        pm: propagation model code
        pe: propagation model edge-effect / polarization code (optional)
        gc: ground clutter height (optional)
    """

    lat: Decimal = Field(ge=-90, le=90)
    lon: Decimal = Field(ge=-180, le=180)
    txh: Decimal
    f: Decimal = Field(gt=0)
    erp: Decimal
    rxh: Decimal
    rt: Decimal
    dbm: bool = False
    m: bool = False
    pm: Decimal
    pe: int | None = None
    gc: int | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def with_receiver(self, latitude: Decimal, longitude: Decimal) -> "PathQuery":
        """Return a PathQuery aimed at the given receiver location."""
        base = self.model_dump(include=set(ParameterSet.model_fields))
        return PathQuery(**base, rla=latitude, rlo=longitude)


class PointToPointQuery(ParameterSet):
    """ParameterSet plus a receiver location."""

    rla: Decimal = Field(ge=-90, le=90)
    rlo: Decimal = Field(ge=-180, le=180)


class PathQuery(PointToPointQuery):
    """Point-to-point path report: three scalars back."""

    kind: Literal["path"] = "path"


class ProfileQuery(PointToPointQuery):
    """Point-to-point path report including the full path profile."""

    kind: Literal["profile"] = "profile"


class ImageQuery(ParameterSet):
    """Area plot rendering: the engine answers with image bytes.

    ``radius`` is sent as ``-R`` and accepted under that name as well.
    """

    kind: Literal["image"] = "image"
    radius: Decimal = Field(alias="R", gt=0)
    res: Decimal = Field(gt=0)


EngineQuery = Union[PathQuery, ProfileQuery, ImageQuery]


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------
class PathMeasurement(BaseModel):
    """Decoded answer to a PathQuery (Value Object)."""

    kind: Literal["path"] = "path"
    path_loss: WireDecimal
    received_power: WireDecimal
    field_strength: WireDecimal

    model_config = ConfigDict(frozen=True)


class ProfileMeasurement(BaseModel):
    """Decoded answer to a ProfileQuery (Value Object).

    Invariants:
        PM-1: all four series have the same length
    """

    kind: Literal["profile"] = "profile"
    path_loss: WireDecimal
    received_power: WireDecimal
    field_strength: WireDecimal
    distance: tuple[WireDecimal, ...]
    elevation: tuple[WireDecimal, ...]
    fresnel_clearance: tuple[WireDecimal, ...]
    curvature: tuple[WireDecimal, ...]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_series(self) -> "ProfileMeasurement":
        lengths = {
            len(self.distance),
            len(self.elevation),
            len(self.fresnel_clearance),
            len(self.curvature),
        }
        if len(lengths) != 1:
            raise ValueError(f"Profile series lengths differ: {sorted(lengths)}")
        return self

    def sample_count(self) -> int:
        """Return number of profile samples."""
        return len(self.distance)


class ImageMeasurement(BaseModel):
    """Opaque image payload returned by an ImageQuery (Value Object)."""

    kind: Literal["image"] = "image"
    content: bytes
    media_type: str = "image/png"

    model_config = ConfigDict(frozen=True)


Measurement = Union[PathMeasurement, ProfileMeasurement, ImageMeasurement]
