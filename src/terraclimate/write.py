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

import os
from typing import Any

import numpy as np
import rasterio  # type: ignore [import-untyped]
from rasterio.transform import from_bounds  # type: ignore [import-untyped]

from terraclimate.definitions import (
    Aggregation,
    FetchOptions,
    InputValidationError,
    ReducedResult,
)
from terraclimate.fetch import fetch_subset


def write_timeseries_csv(result: ReducedResult, output_file: str) -> str:
    """
    Write a timeseries result as a two column CSV: the month timestamp and
    the spatially averaged value, headed by the variable code.
    """
    series = result.to_series()
    series.to_csv(output_file, index_label="time", date_format="%Y-%m-%d")
    return output_file


def write_spatial_geotiff(
    result: ReducedResult, output_file: str, crs: str = "EPSG:4326"
) -> str:
    """
    Write a spatial (time averaged) result to GeoTIFF.

    The raster extent is the requested lat/lon bounds, split into one pixel
    per grid cell read, so the output lines up with the request box rather
    than with the dataset's cell centers.

    Args:
        result: ReducedResult with Aggregation.SPATIAL
        output_file: Path for the output GeoTIFF file
        crs: Coordinate reference system (default: WGS84)

    Returns:
        str: Path to the saved GeoTIFF file
    """
    if result.aggregation is not Aggregation.SPATIAL:
        raise ValueError(
            f"only spatial results can be written as a raster, got {result.aggregation}"
        )

    data = np.asarray(result.values).copy()
    lats = np.asarray(result.lat)
    lons = np.asarray(result.lon)

    # GeoTIFF rows run north to south and columns west to east
    if len(lats) > 1 and lats[0] < lats[-1]:
        data = np.flipud(data)
    if len(lons) > 1 and lons[0] > lons[-1]:
        data = np.fliplr(data)

    west, south, east, north = result.extent
    transform = from_bounds(west, south, east, north, data.shape[1], data.shape[0])

    meta = {
        "driver": "GTiff",
        "height": data.shape[0],
        "width": data.shape[1],
        "count": 1,
        "dtype": str(data.dtype),
        "crs": crs,
        "transform": transform,
        "nodata": np.nan,
    }

    with rasterio.open(output_file, "w", **meta) as dst:
        dst.write(data, 1)

        tags = {
            "variable": str(result.variable),
            "long_name": result.variable.long_name,
            "units": result.variable.units,
            "aggregation": "monthly mean over time",
            "time_start": f"{result.bounds.time_start:%Y-%m}",
            "time_end": f"{result.bounds.time_end:%Y-%m}",
        }
        tags.update(result.attrs)
        dst.update_tags(**tags)

    return output_file


def write(
    folder: str,
    filename: str,
    lat_bounds: Any,
    lon_bounds: Any,
    years: Any,
    months: Any,
    variable: Any,
    aggregation: Any = None,
    *,
    options: FetchOptions | None = None,
) -> str:
    """
    Read a TerraClimate subset and save it to disk, as a CSV for timeseries
    or a GeoTIFF for spatial maps.

    Usage:
        ```
        from terraclimate import write
        # Save a precipitation timeseries from Jan 2000 to Dec 2015, spatially
        # averaged over 50 to 51.5 N and 75.5 to 74.5 W, to
        # ./test_precipitation.csv
        write(
            ".",
            "test_precipitation",
            [50, 51.5],
            [-75.5, -74.5],
            [2000, 2015],
            [1, 12],
            "ppt",
            "timeseries",
        )
        ```
    Args:
        folder: Directory to save the file in. Will be created if it does not
            yet exist.
        filename: Name of the file to save, without extension
        lat_bounds, lon_bounds, years, months, variable: see fetch
        aggregation: Optional averaging option, "timeseries" (default) writes
            <filename>.csv and "spatial" writes <filename>.tif. "none" is
            not accepted.
        options: Optional timeout, retry and cancel settings.

    Returns:
        str: Path of the written file

    Raises:
        InputValidationError: If any of the inputs are invalid.
        EmptySelectionError: If the bounds fall outside the dataset coverage.
        DownloadError: If reading from the remote dataset fails.
    """
    errmsg: list[str] = []
    if folder is None:
        errmsg.append("missing required argument: folder")
    if not filename:
        errmsg.append("missing required argument: filename")
    if errmsg != []:
        raise InputValidationError("; ".join(errmsg))

    result = fetch_subset(
        lat_bounds,
        lon_bounds,
        years,
        months,
        variable,
        aggregation,
        options=options,
        kind="write",
    )

    if folder:
        os.makedirs(folder, exist_ok=True)
    if result.aggregation is Aggregation.TIMESERIES:
        output_file = write_timeseries_csv(
            result, os.path.join(folder, f"{filename}.csv")
        )
    else:
        output_file = write_spatial_geotiff(
            result, os.path.join(folder, f"{filename}.tif")
        )

    print(f"Saved {result.variable} {result.aggregation} to {output_file}")
    return output_file
