from numbers import Integral, Real
from typing import Any, cast

import numpy as np

from terraclimate.definitions import (
    DEFAULT_AGGREGATION,
    Aggregation,
    GeoTimeBounds,
    InputValidationError,
    UnsupportedValueError,
    Variable,
)


def _check_pair(
    name: str, value: Any, errmsg: list[str], integral: bool = False
) -> tuple[Any, Any] | None:
    """
    Check that value is a 2-element ascending sequence of numbers. Problems
    are appended to errmsg; the pair is returned only when it is valid.
    """
    if value is None:
        errmsg.append(f"missing required argument: {name}")
        return None
    if isinstance(value, (str, bytes)):
        errmsg.append(f"{name} must be a 2-element sequence, got a string: {value!r}")
        return None

    arr = np.asarray(value, dtype=object)
    if arr.shape != (2,):
        errmsg.append(
            f"{name} must be a 2-element sequence [lower, upper], got shape {arr.shape}"
        )
        return None

    if not all(isinstance(v, Real) and not isinstance(v, bool) for v in arr):
        errmsg.append(f"{name} must contain numbers, got {list(arr)}")
        return None

    lower, upper = arr[0], arr[1]
    if np.isnan(float(lower)) or np.isnan(float(upper)):
        errmsg.append(f"{name} cannot contain NaN")
        return None
    # Whole-valued floats such as 2000.0 are accepted as years/months
    if integral and not all(
        isinstance(v, Integral) or float(v).is_integer() for v in arr
    ):
        errmsg.append(f"{name} must contain whole numbers, got {list(arr)}")
        return None
    if lower > upper:
        errmsg.append(
            f"{name} must be listed in ascending order, {lower} > {upper}. If "
            "negative, the larger negative number goes first (e.g. [-71, -70])"
        )
        return None

    if integral:
        return (int(lower), int(upper))
    return (float(lower), float(upper))


def validate_inputs(
    lat_bounds: Any,
    lon_bounds: Any,
    years: Any,
    months: Any,
    variable: Any,
    aggregation: Any = None,
    kind: str = "fetch",
) -> tuple[GeoTimeBounds, Variable, Aggregation]:
    """
    Check the request before anything touches the network.

    All problems are collected and reported together.

    Args:
        lat_bounds: [south, north] in degrees
        lon_bounds: [west, east] in degrees
        years: [start_year, end_year]
        months: [start_month, end_month], each 1-12
        variable: TerraClimate variable code, case-insensitive
        aggregation: averaging option, None selects the default for this kind
        kind: "fetch" for the in-memory accessor or "write" for the
            disk-writing accessor

    Returns:
        tuple[GeoTimeBounds, Variable, Aggregation]: the validated request

    Raises:
        InputValidationError: If any of the inputs are invalid.
    """
    if kind not in DEFAULT_AGGREGATION:
        raise ValueError(f"unknown accessor kind: {kind}")

    errmsg: list[str] = []

    lat = _check_pair("lat_bounds", lat_bounds, errmsg)
    lon = _check_pair("lon_bounds", lon_bounds, errmsg)
    year_pair = _check_pair("years", years, errmsg, integral=True)
    month_pair = _check_pair("months", months, errmsg, integral=True)

    if lat is not None and not (-90 <= lat[0] and lat[1] <= 90):
        errmsg.append(f"lat_bounds {list(lat)} must be within [-90, 90]")
    if month_pair is not None and not (1 <= month_pair[0] and month_pair[1] <= 12):
        errmsg.append(f"months {list(month_pair)} must be between 1 and 12")

    parsed_variable: Variable | None = None
    if variable is None:
        errmsg.append("missing required argument: variable")
    else:
        try:
            parsed_variable = Variable.parse(variable)
        except UnsupportedValueError as e:
            errmsg.append(str(e))

    parsed_aggregation: Aggregation | None = None
    if aggregation is None:
        parsed_aggregation = DEFAULT_AGGREGATION[kind]
        print(f"No averaging option entered. Defaulting to '{parsed_aggregation}'.")
    else:
        try:
            parsed_aggregation = Aggregation.parse(aggregation)
        except UnsupportedValueError as e:
            errmsg.append(str(e))

    # The raw cube has no file representation
    if kind == "write" and parsed_aggregation is Aggregation.NONE:
        errmsg.append(
            "aggregation 'none' cannot be written to disk, use 'timeseries' "
            "or 'spatial'"
        )

    # A raster needs an extent in both directions
    if (
        kind == "write"
        and parsed_aggregation is Aggregation.SPATIAL
        and lat is not None
        and lon is not None
        and (lat[0] == lat[1] or lon[0] == lon[1])
    ):
        errmsg.append(
            "spatial output needs lat_bounds and lon_bounds with a non-zero "
            f"extent, got {list(lat)} and {list(lon)}"
        )

    if errmsg != []:
        raise InputValidationError("; ".join(errmsg))

    # Every check passed, so none of these are None here
    bounds = GeoTimeBounds(
        lat=cast(tuple[float, float], lat),
        lon=cast(tuple[float, float], lon),
        years=cast(tuple[int, int], year_pair),
        months=cast(tuple[int, int], month_pair),
    )
    return (
        bounds,
        cast(Variable, parsed_variable),
        cast(Aggregation, parsed_aggregation),
    )
