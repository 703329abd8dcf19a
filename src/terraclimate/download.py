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

import concurrent.futures
import time
from typing import Callable, TypeVar

import numpy as np
import numpy.typing as npt
import xarray as xr

from terraclimate.definitions import (
    AxisIndexRange,
    FetchOptions,
    GeoTimeBounds,
    RawCube,
    Variable,
)
from terraclimate.resolve import resolve_indices
from terraclimate.schema import TERRACLIMATE_SCHEMA, dataset_url
from terraclimate.time_utils import decode_days

T = TypeVar("T")

LAT = str(TERRACLIMATE_SCHEMA["lat"])
LON = str(TERRACLIMATE_SCHEMA["lon"])
TIME = str(TERRACLIMATE_SCHEMA["time"])

# Substrings of remote errors that retrying will not fix
FATAL_MESSAGES = ("404", "not found", "no such file", "access denied")


class DownloadError(Exception):
    pass


class DownloadCancelled(DownloadError):
    pass


class DownloadTimeout(DownloadError):
    """
    Raised when a remote read does not finish within the timeout. The read
    keeps running in its worker; pending is its future.
    """

    def __init__(self, message: str, pending: concurrent.futures.Future):
        super().__init__(message)
        self.pending = pending


def is_transient(exc: BaseException) -> bool:
    """
    Classify a remote read failure. Dropped connections, timeouts reported
    by the I/O layer itself and generic I/O or DAP failures are worth
    retrying; a missing dataset or variable is not.
    """
    if isinstance(exc, (DownloadError, KeyError, FileNotFoundError, PermissionError)):
        return False
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, (OSError, RuntimeError)):
        message = str(exc).lower()
        return not any(fatal in message for fatal in FATAL_MESSAGES)
    return False


def run_with_timeout(func: Callable[[], T], timeout: float | None) -> T:
    """
    Run func, raising DownloadTimeout if it has not returned after timeout
    seconds.

    A read blocked on the network cannot be interrupted, so on timeout the
    worker is left to finish on its own and its future is attached to the
    error. Callers must not retry while it is pending.
    """
    if timeout is None:
        return func()

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as e:
        if future.done():
            # Finished just now, or func raised its own TimeoutError
            return future.result()
        raise DownloadTimeout(
            f"remote read did not finish within {timeout}s", future
        ) from e
    finally:
        executor.shutdown(wait=False)


def call_with_retry(
    func: Callable[[], T], options: FetchOptions, description: str
) -> T:
    """
    Call func with sequential retries and exponential backoff.

    Only one attempt is ever in flight. An attempt that exceeds
    options.timeout is still running, so it ends the call instead of being
    retried.

    Args:
        func: Zero-argument callable performing one remote read
        options: FetchOptions holding the timeout, retry and cancel settings
        description: Short description of the read for messages

    Returns:
        The return value of func

    Raises:
        DownloadCancelled: If options.cancel_event is set before an attempt
            or during a backoff wait.
        DownloadTimeout: If an attempt exceeds options.timeout.
        DownloadError: If func fails with a fatal error, or keeps failing
            with transient errors until max_attempts is reached.
    """
    for attempt in range(1, options.max_attempts + 1):
        if options.cancelled:
            raise DownloadCancelled(f"{description} cancelled")

        try:
            return run_with_timeout(func, options.timeout)
        except DownloadTimeout as e:
            raise DownloadTimeout(f"{description} failed: {e}", e.pending) from e
        except Exception as e:
            if not is_transient(e):
                raise DownloadError(f"{description} failed: {e}") from e
            if attempt == options.max_attempts:
                raise DownloadError(
                    f"{description} failed after {attempt} attempts: {e}"
                ) from e

            delay = options.backoff(attempt)
            print(
                f"{description} failed ({e}), retrying in {delay:.1f}s "
                f"(attempt {attempt + 1} of {options.max_attempts})"
            )
            if options.cancel_event is not None:
                if options.cancel_event.wait(delay):
                    raise DownloadCancelled(f"{description} cancelled") from e
            else:
                time.sleep(delay)

    # max_attempts >= 1 is enforced by FetchOptions, the loop always returns or raises
    raise DownloadError(f"{description} was never attempted")


def close_when_done(pending: concurrent.futures.Future | None, ds: xr.Dataset) -> None:
    """Close ds now, or once an abandoned read on it has finished."""
    if pending is None:
        ds.close()
    else:
        pending.add_done_callback(lambda _: ds.close())


def _close_opened(future: concurrent.futures.Future) -> None:
    # An open that timed out may still succeed later
    if not future.cancelled() and future.exception() is None:
        future.result().close()


def open_remote_dataset(url: str) -> xr.Dataset:
    """
    Lazily open a remote dataset over OPeNDAP. Only metadata and the
    coordinate vectors are transferred, data arrays are read on access.

    Fill values are masked to NaN on decode. Times are left as raw day
    offsets and decoded by time_utils.
    """
    return xr.open_dataset(url, decode_times=False, mask_and_scale=True)


def read_axes(
    ds: xr.Dataset,
) -> tuple[npt.NDArray, npt.NDArray, npt.NDArray]:
    """Return the full lat, lon and time coordinate vectors of a dataset."""
    return (
        np.asarray(ds[LAT].values),
        np.asarray(ds[LON].values),
        np.asarray(ds[TIME].values),
    )


def read_block(
    ds: xr.Dataset,
    variable: Variable,
    lat_range: AxisIndexRange,
    lon_range: AxisIndexRange,
    time_range: AxisIndexRange,
) -> npt.NDArray[np.floating]:
    """
    Read the hyper-rectangle covered by the three index ranges.

    The indexing stays lazy until .values, so the block is transferred in a
    single bounded request rather than slice by slice.

    Returns:
        npt.NDArray: float array ordered (lat, lon, time), missing values as NaN
    """
    block = ds[str(variable)].isel(
        {
            LAT: lat_range.as_slice(),
            LON: lon_range.as_slice(),
            TIME: time_range.as_slice(),
        }
    )
    block = block.transpose(LAT, LON, TIME)
    return np.asarray(block.values, dtype="float64")


def fetch_cube(
    variable: Variable,
    bounds: GeoTimeBounds,
    options: FetchOptions | None = None,
) -> RawCube:
    """
    Read the subset of a TerraClimate variable covered by bounds.

    Opens the per-variable dataset, resolves the bounds against its
    coordinate vectors and reads the matching block in one request. Each
    remote step is retried according to options.

    Args:
        variable: Variable to read
        bounds: Validated request bounds
        options: Timeout, retry and cancel settings. Defaults to FetchOptions().

    Returns:
        RawCube: (lat, lon, time) values with their coordinate subsets

    Raises:
        EmptySelectionError: If the bounds fall outside the dataset coverage.
        DownloadTimeout: If a remote read exceeds options.timeout. The
            dataset is closed once that read finishes.
        DownloadError: If a remote read fails.
    """
    if options is None:
        options = FetchOptions()

    url = dataset_url(str(variable), options.url_template)
    print(f"Opening {url}")
    try:
        ds = call_with_retry(
            lambda: open_remote_dataset(url), options, f"Opening {variable} dataset"
        )
    except DownloadTimeout as e:
        e.pending.add_done_callback(_close_opened)
        raise

    # Set when a read times out while still holding ds
    pending = None
    try:
        lat, lon, time_values = call_with_retry(
            lambda: read_axes(ds), options, f"Reading {variable} coordinates"
        )
        lat_range, lon_range, time_range = resolve_indices(
            lat, lon, time_values, bounds
        )

        print(
            f"Reading {lat_range.count} x {lon_range.count} x {time_range.count} "
            f"(lat x lon x time) block of {variable}..."
        )
        values = call_with_retry(
            lambda: read_block(ds, variable, lat_range, lon_range, time_range),
            options,
            f"Reading {variable} data",
        )
    except DownloadTimeout as e:
        pending = e.pending
        raise
    finally:
        close_when_done(pending, ds)

    return RawCube(
        values=values,
        lat=lat[lat_range.as_slice()],
        lon=lon[lon_range.as_slice()],
        time=decode_days(time_values[time_range.as_slice()]),
    )
