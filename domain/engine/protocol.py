"""Engine Bounded Context - Wire Protocol.

Pure encoding/decoding of the engine's line-oriented text grammar.
NO I/O here - transports live under `src/infrastructure/engine/`.

Request line (one per invocation, CRLF terminated):

    -lat <dec> -lon <dec> -txh <dec> -f <dec> -erp <dec> -rxh <dec> -rt <dec>
    [-dbm] [-m] -pm <dec> <mode extras> [-pe <int>] [-gc <int>]

Mode extras:
    path:    -rla <dec> -rlo <dec>
    profile: -rla <dec> -rlo <dec> -profile
    image:   -R <dec> -res <dec> -o -

Response line (path): ``path_loss received_power field_strength``
Response line (profile): the three scalars, a sample count ``n``, then ``n``
distances, ``n`` elevations, ``n`` Fresnel clearances and ``n`` curvature
offsets. Image responses are the raw output stream, never line-split.
"""

from __future__ import annotations

import re
from decimal import Decimal

from domain.engine.errors import MalformedResponse
from domain.engine.value_objects import (
    EngineQuery,
    ImageMeasurement,
    ImageQuery,
    Measurement,
    ParameterSet,
    PathMeasurement,
    PathQuery,
    ProfileMeasurement,
    ProfileQuery,
    format_decimal,
)

LINE_TERMINATOR = "\r\n"
TOKEN_SEPARATOR = " "

# Scalars every point-to-point response starts with
PATH_ARITY = 3
# Number of per-sample series in a profile response
PROFILE_SERIES = 4

# Plain positional decimal: no exponent, digit separators, NaN or Infinity
_DECIMAL_TOKEN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------
def _head_tokens(params: ParameterSet) -> list[str]:
    tokens = [
        "-lat", format_decimal(params.lat),
        "-lon", format_decimal(params.lon),
        "-txh", format_decimal(params.txh),
        "-f", format_decimal(params.f),
        "-erp", format_decimal(params.erp),
        "-rxh", format_decimal(params.rxh),
        "-rt", format_decimal(params.rt),
    ]
    # Absence, not "false", is how the engine reads an unset flag
    if params.dbm:
        tokens.append("-dbm")
    if params.m:
        tokens.append("-m")
    tokens += ["-pm", format_decimal(params.pm)]
    return tokens


def _tail_tokens(params: ParameterSet) -> list[str]:
    tokens: list[str] = []
    if params.pe is not None:
        tokens += ["-pe", str(params.pe)]
    if params.gc is not None:
        tokens += ["-gc", str(params.gc)]
    return tokens


def request_tokens(query: EngineQuery) -> list[str]:
    """Return the ordered request tokens for a query (no terminator)."""
    tokens = _head_tokens(query)
    if isinstance(query, (PathQuery, ProfileQuery)):
        tokens += ["-rla", format_decimal(query.rla), "-rlo", format_decimal(query.rlo)]
        if isinstance(query, ProfileQuery):
            tokens.append("-profile")
    elif isinstance(query, ImageQuery):
        tokens += [
            "-R", format_decimal(query.radius),
            "-res", format_decimal(query.res),
            "-o", "-",
        ]
    else:
        raise TypeError(f"Unsupported query type: {type(query).__name__}")
    return tokens + _tail_tokens(query)


def encode_request(query: EngineQuery) -> str:
    """Encode a query as a single CRLF-terminated request line."""
    return TOKEN_SEPARATOR.join(request_tokens(query)) + LINE_TERMINATOR


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------
def strip_line_terminator(line: str) -> str:
    """Strip one trailing LF or CRLF (nothing else)."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def _parse_decimals(line: str) -> list[Decimal]:
    values: list[Decimal] = []
    for position, token in enumerate(line.split(TOKEN_SEPARATOR)):
        # Decimal() also accepts whitespace, "_", exponents and NaN; the grammar does not
        if not _DECIMAL_TOKEN.fullmatch(token):
            raise MalformedResponse(
                f"Token {position} is not a decimal: {token!r}", raw=line
            )
        values.append(Decimal(token))
    return values


def decode_path_line(line: str) -> PathMeasurement:
    """Decode a path response line into a PathMeasurement.

    Raises:
        MalformedResponse: wrong token count or a token is not a decimal
    """
    line = strip_line_terminator(line)
    values = _parse_decimals(line)
    if len(values) != PATH_ARITY:
        raise MalformedResponse(
            f"Expected {PATH_ARITY} values, got {len(values)}", raw=line
        )
    path_loss, received_power, field_strength = values
    return PathMeasurement(
        path_loss=path_loss,
        received_power=received_power,
        field_strength=field_strength,
    )


def decode_profile_line(line: str) -> ProfileMeasurement:
    """Decode a profile response line into a ProfileMeasurement.

    Raises:
        MalformedResponse: count token missing or not a non-negative integer,
            or total token count is not ``4 + 4n``
    """
    line = strip_line_terminator(line)
    values = _parse_decimals(line)
    if len(values) < PATH_ARITY + 1:
        raise MalformedResponse(
            f"Expected at least {PATH_ARITY + 1} values, got {len(values)}",
            raw=line,
        )
    count = values[PATH_ARITY]
    if count < 0 or count != count.to_integral_value():
        raise MalformedResponse(f"Invalid sample count: {count}", raw=line)
    n = int(count)
    expected = PATH_ARITY + 1 + PROFILE_SERIES * n
    if len(values) != expected:
        raise MalformedResponse(
            f"Expected {expected} values for {n} samples, got {len(values)}",
            raw=line,
        )
    start = PATH_ARITY + 1
    series = [
        tuple(values[start + i * n : start + (i + 1) * n])
        for i in range(PROFILE_SERIES)
    ]
    return ProfileMeasurement(
        path_loss=values[0],
        received_power=values[1],
        field_strength=values[2],
        distance=series[0],
        elevation=series[1],
        fresnel_clearance=series[2],
        curvature=series[3],
    )


def decode_response(query: EngineQuery, raw: bytes) -> Measurement:
    """Decode raw engine output according to the kind of query that was sent."""
    if isinstance(query, ImageQuery):
        return ImageMeasurement(content=raw)
    try:
        line = raw.decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedResponse("Response is not ASCII text") from e
    if isinstance(query, ProfileQuery):
        return decode_profile_line(line)
    return decode_path_line(line)
