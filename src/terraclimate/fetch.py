"""
Copyright (c) 2025 Jacqueline Ryan

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""

from typing import Any

import numpy.typing as npt
import pandas as pd

from terraclimate.definitions import FetchOptions, ReducedResult
from terraclimate.download import fetch_cube
from terraclimate.reduce import reduce_cube
from terraclimate.validate import validate_inputs


def fetch_subset(
    lat_bounds: Any,
    lon_bounds: Any,
    years: Any,
    months: Any,
    variable: Any,
    aggregation: Any = None,
    *,
    options: FetchOptions | None = None,
    kind: str = "fetch",
) -> ReducedResult:
    """
    Validate, read and reduce a TerraClimate subset, returning the tagged
    result with its coordinates.

    See fetch for a description of the arguments. kind selects which entry
    point's defaults apply ("fetch" or "write").
    """
    bounds, parsed_variable, parsed_aggregation = validate_inputs(
        lat_bounds, lon_bounds, years, months, variable, aggregation, kind=kind
    )
    if options is None:
        options = FetchOptions()

    print(
        "Inputs are valid. Fetching data. Please be patient, this can take a "
        "while for large datasets."
    )
    cube = fetch_cube(parsed_variable, bounds, options)

    return ReducedResult(
        aggregation=parsed_aggregation,
        values=reduce_cube(cube, parsed_aggregation),
        time=cube.time,
        lat=cube.lat,
        lon=cube.lon,
        variable=parsed_variable,
        bounds=bounds,
    )


def fetch(
    lat_bounds: Any,
    lon_bounds: Any,
    years: Any,
    months: Any,
    variable: Any,
    aggregation: Any = None,
    *,
    options: FetchOptions | None = None,
) -> tuple[npt.NDArray, pd.DatetimeIndex]:
    """
    Read a TerraClimate subset directly into memory.

    Usage:
        ```
        from terraclimate import fetch
        # Precipitation from Jan 2000 to Dec 2015, spatially averaged over
        # 50 to 51.5 N and 75.5 to 74.5 W.
        vals, time = fetch(
            [50, 51.5], [-75.5, -74.5], [2000, 2015], [1, 12], "ppt", "timeseries"
        )
        ```
    Args:
        lat_bounds: [south, north] latitude bounds in ascending order
        lon_bounds: [west, east] longitude bounds in ascending order. If
            negative, the larger negative number goes first, e.g. [-71, -70].
        years: [start, end] year bounds in ascending order
        months: [start, end] month bounds in ascending order
        variable: TerraClimate variable code (aet, def, pet, ppt, q, soil,
            srad, swe, tmax, tmin, vap, ws, vpd or PDSI), case-insensitive
        aggregation: Optional averaging option, default is "none".
            "none" returns a lat x lon x time array, "timeseries" averages
            over space and returns one value per month, "spatial" averages
            over time and returns a lat x lon map. Averages are monthly, so
            yearly precipitation is 12 times the spatial result.
        options: Optional timeout, retry and cancel settings.

    Returns:
        tuple[npt.NDArray, pd.DatetimeIndex]: the values and the timestamp of
            each month read

    Raises:
        InputValidationError: If any of the inputs are invalid.
        EmptySelectionError: If the bounds fall outside the dataset coverage.
        DownloadError: If reading from the remote dataset fails.
    """
    result = fetch_subset(
        lat_bounds,
        lon_bounds,
        years,
        months,
        variable,
        aggregation,
        options=options,
        kind="fetch",
    )
    return result.values, result.time
