import numpy as np
import numpy.typing as npt

from terraclimate.definitions import AxisIndexRange, GeoTimeBounds
from terraclimate.time_utils import time_bounds


class EmptySelectionError(ValueError):
    """Raised when no coordinate on an axis falls within the requested bounds."""

    def __init__(self, axis: str, lower: float, upper: float, coverage: str):
        self.axis = axis
        self.lower = lower
        self.upper = upper
        self.coverage = coverage
        super().__init__(
            f"no {axis} values fall within [{lower}, {upper}]; dataset {axis} "
            f"coverage is {coverage}"
        )


def find_index_range(
    values: npt.ArrayLike, lower: float, upper: float, axis: str
) -> AxisIndexRange:
    """
    Find the span of indices whose coordinate lies in [lower, upper].

    The axis may be stored ascending, descending or in any other order: every
    value is tested against the bounds and the range runs from the first to
    the last matching index.

    Args:
        values: 1D coordinate vector as stored by the remote dataset
        lower: Inclusive lower bound
        upper: Inclusive upper bound
        axis: Axis name, used in error messages

    Returns:
        AxisIndexRange: inclusive [start, end] index interval

    Raises:
        EmptySelectionError: If no coordinate satisfies the bounds.
    """
    coords = np.asarray(values, dtype="float64")
    if coords.ndim != 1:
        raise ValueError(f"{axis} coordinates must be 1D, got shape {coords.shape}")

    matches = np.flatnonzero((coords >= lower) & (coords <= upper))
    if matches.size == 0:
        if coords.size == 0:
            coverage = "empty"
        else:
            coverage = f"[{np.nanmin(coords)}, {np.nanmax(coords)}]"
        raise EmptySelectionError(axis, lower, upper, coverage)

    return AxisIndexRange(axis, int(matches[0]), int(matches[-1]))


def resolve_indices(
    lat: npt.ArrayLike,
    lon: npt.ArrayLike,
    time: npt.ArrayLike,
    bounds: GeoTimeBounds,
) -> tuple[AxisIndexRange, AxisIndexRange, AxisIndexRange]:
    """
    Translate the request bounds into index ranges on the three remote axes.

    Time bounds are compared in the dataset's native unit (days since
    1900-01-01) using the first day of the start and end months.
    """
    lat_range = find_index_range(lat, bounds.lat[0], bounds.lat[1], "lat")
    lon_range = find_index_range(lon, bounds.lon[0], bounds.lon[1], "lon")

    start, end = time_bounds(bounds)
    try:
        time_range = find_index_range(time, start, end, "time")
    except EmptySelectionError as e:
        # Report the calendar request rather than raw day offsets
        raise EmptySelectionError(
            "time",
            start,
            end,
            f"{e.coverage} days since 1900-01-01 "
            f"(requested {bounds.time_start:%Y-%m} to {bounds.time_end:%Y-%m})",
        ) from e

    return lat_range, lon_range, time_range
