import warnings

import numpy as np
import numpy.typing as npt

from terraclimate.definitions import Aggregation, RawCube, UnsupportedValueError


def nan_mean(values: npt.NDArray, axis: int | tuple[int, ...]) -> npt.NDArray:
    """
    Mean along axis ignoring NaN. Slices where every value is NaN average to
    NaN rather than raising or returning zero.
    """
    with warnings.catch_warnings():
        # numpy warns "Mean of empty slice" for all-NaN slices
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return np.nanmean(values, axis=axis)


def reduce_cube(cube: RawCube, aggregation: Aggregation) -> npt.NDArray:
    """
    Apply the averaging option to a (lat, lon, time) cube.

    Args:
        cube: RawCube read from the remote dataset
        aggregation: Aggregation.NONE returns the cube values unchanged,
            Aggregation.TIMESERIES averages over lat and lon for each month,
            Aggregation.SPATIAL averages over time for each grid cell. Note
            the spatial average is a monthly mean, so yearly totals of e.g.
            precipitation are 12 times the result.

    Returns:
        npt.NDArray: array of shape (lat, lon, time), (time,) or (lat, lon)

    Raises:
        UnsupportedValueError: If aggregation is not one of the known modes.
    """
    if aggregation is Aggregation.NONE:
        return cube.values
    elif aggregation is Aggregation.TIMESERIES:
        return nan_mean(cube.values, axis=(0, 1))
    elif aggregation is Aggregation.SPATIAL:
        return nan_mean(cube.values, axis=2)

    raise UnsupportedValueError(
        "aggregation", aggregation, [str(a) for a in Aggregation]
    )
