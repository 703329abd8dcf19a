from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import threading

import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from terraclimate.schema import TERRACLIMATE_SCHEMA, VARIABLE_DESCRIPTIONS


class InputValidationError(ValueError):
    """Raised when caller supplied bounds or options are malformed."""


class UnsupportedValueError(InputValidationError):
    """Raised when a value is outside of a closed set of choices."""

    def __init__(self, kind: str, value: object, choices: list[str]):
        self.kind = kind
        self.value = value
        self.choices = choices
        super().__init__(
            f"{value!r} is not a supported {kind}, choices are: {', '.join(choices)}"
        )


class Variable(Enum):
    """TerraClimate variable codes, one remote dataset per code."""

    AET = "aet"
    DEF = "def"
    PET = "pet"
    PPT = "ppt"
    Q = "q"
    SOIL = "soil"
    SRAD = "srad"
    SWE = "swe"
    TMAX = "tmax"
    TMIN = "tmin"
    VAP = "vap"
    WS = "ws"
    VPD = "vpd"
    PDSI = "PDSI"

    def __str__(self):
        return self.value

    @property
    def long_name(self) -> str:
        return VARIABLE_DESCRIPTIONS[self.value][0]

    @property
    def units(self) -> str:
        return VARIABLE_DESCRIPTIONS[self.value][1]

    @classmethod
    def parse(cls, raw: object) -> "Variable":
        """Case-insensitive lookup of a variable code."""
        if isinstance(raw, Variable):
            return raw
        if isinstance(raw, str):
            for member in cls:
                if member.value.lower() == raw.strip().lower():
                    return member
        raise UnsupportedValueError(
            "variable", raw, [str(v) for v in TERRACLIMATE_SCHEMA["variables"]]
        )


class Aggregation(Enum):
    """Averaging applied to the fetched cube."""

    NONE = "none"  # lat x lon x time cube
    TIMESERIES = "timeseries"  # spatial mean, one value per month
    SPATIAL = "spatial"  # temporal mean, lat x lon map

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, raw: object) -> "Aggregation":
        if isinstance(raw, Aggregation):
            return raw
        if isinstance(raw, str):
            for member in cls:
                if member.value == raw.strip().lower():
                    return member
        raise UnsupportedValueError("aggregation", raw, [str(a) for a in cls])


# Aggregation used when the caller omits it, by entry point
DEFAULT_AGGREGATION: dict[str, Aggregation] = {
    "fetch": Aggregation.NONE,
    "write": Aggregation.TIMESERIES,
}


@dataclass(frozen=True)
class GeoTimeBounds:
    """Validated request box. Every pair is (lower, upper) with lower <= upper."""

    lat: tuple[float, float]
    lon: tuple[float, float]
    years: tuple[int, int]
    months: tuple[int, int]

    @property
    def time_start(self) -> datetime:
        return datetime(self.years[0], self.months[0], 1)

    @property
    def time_end(self) -> datetime:
        return datetime(self.years[1], self.months[1], 1)

    @property
    def extent(self) -> tuple[float, float, float, float]:
        """Geographic extent as (west, south, east, north)."""
        return (self.lon[0], self.lat[0], self.lon[1], self.lat[1])


@dataclass(frozen=True)
class AxisIndexRange:
    """Inclusive index interval [start, end] into a remote coordinate vector."""

    axis: str
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(
                f"invalid {self.axis} index range [{self.start}, {self.end}]"
            )

    @property
    def count(self) -> int:
        return self.end - self.start + 1

    def as_slice(self) -> slice:
        return slice(self.start, self.end + 1)


@dataclass
class RawCube:
    """Dense (lat, lon, time) block with NaN marking missing values."""

    values: npt.NDArray[np.floating]
    lat: npt.NDArray[np.floating]
    lon: npt.NDArray[np.floating]
    time: pd.DatetimeIndex

    def __post_init__(self):
        expected = (len(self.lat), len(self.lon), len(self.time))
        if self.values.shape != expected:
            raise ValueError(
                f"cube shape {self.values.shape} does not match coordinates {expected}"
            )


@dataclass
class ReducedResult:
    """
    Output of the reduction step, tagged by its aggregation mode.

    values has shape (lat, lon, time) for Aggregation.NONE, (time,) for
    Aggregation.TIMESERIES and (lat, lon) for Aggregation.SPATIAL.
    """

    aggregation: Aggregation
    values: npt.NDArray[np.floating]
    time: pd.DatetimeIndex
    lat: npt.NDArray[np.floating]
    lon: npt.NDArray[np.floating]
    variable: Variable
    bounds: GeoTimeBounds
    attrs: dict[str, str] = field(default_factory=dict)

    @property
    def extent(self) -> tuple[float, float, float, float]:
        return self.bounds.extent

    def to_series(self) -> pd.Series:
        """Return a timeseries result as a pandas Series indexed by timestamp."""
        if self.aggregation is not Aggregation.TIMESERIES:
            raise ValueError(
                f"only timeseries results convert to a series, got {self.aggregation}"
            )
        return pd.Series(
            self.values, index=pd.Index(self.time, name="time"), name=str(self.variable)
        )

    def to_dataarray(self) -> xr.DataArray:
        """Return the result as a labelled xarray DataArray."""
        if self.aggregation is Aggregation.TIMESERIES:
            dims = ["time"]
            coords = {"time": self.time}
        elif self.aggregation is Aggregation.SPATIAL:
            dims = ["lat", "lon"]
            coords = {"lat": self.lat, "lon": self.lon}
        else:
            dims = ["lat", "lon", "time"]
            coords = {"lat": self.lat, "lon": self.lon, "time": self.time}

        attrs = {
            "long_name": self.variable.long_name,
            "units": self.variable.units,
            "aggregation": str(self.aggregation),
        }
        attrs.update(self.attrs)
        return xr.DataArray(
            self.values, dims=dims, coords=coords, name=str(self.variable), attrs=attrs
        )


@dataclass(frozen=True)
class FetchOptions:
    """
    Remote read settings, resolved once at the start of an operation.

    timeout is the limit in seconds for each remote read (None waits
    indefinitely). A read that exceeds it is not retried. Failed transient
    reads are retried up to max_attempts times, sleeping
    backoff_factor * 2 ** (attempt - 1) seconds (capped at max_backoff)
    between attempts. Setting cancel_event aborts the
    operation before the next attempt or during a backoff wait.
    """

    timeout: float | None = None
    max_attempts: int = 3
    backoff_factor: float = 2.0
    max_backoff: float = 60.0
    cancel_event: threading.Event | None = None
    url_template: str = str(TERRACLIMATE_SCHEMA["url_template"])

    def __post_init__(self):
        if self.max_attempts < 1:
            raise InputValidationError("max_attempts must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise InputValidationError("timeout must be positive")
        if self.backoff_factor < 0 or self.max_backoff < 0:
            raise InputValidationError("backoff settings cannot be negative")

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return min(self.backoff_factor * 2 ** (attempt - 1), self.max_backoff)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()
