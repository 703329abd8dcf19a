from datetime import datetime

import numpy as np
import numpy.typing as npt
import pandas as pd

from terraclimate.definitions import GeoTimeBounds
from terraclimate.schema import TERRACLIMATE_SCHEMA

EPOCH = pd.Timestamp(str(TERRACLIMATE_SCHEMA["epoch"]))


def days_since_epoch(year: int, month: int, day: int = 1) -> float:
    """
    Convert a calendar date to the dataset's native time unit.

    TerraClimate stores time as (fractional) days since 1900-01-01.
    """
    delta = pd.Timestamp(datetime(year, month, day)) - EPOCH
    return delta / pd.Timedelta(days=1)


def decode_days(values: npt.ArrayLike) -> pd.DatetimeIndex:
    """
    Convert days since the epoch back to calendar timestamps.

    Args:
        values: 1D sequence of day offsets as stored in the remote time axis

    Returns:
        pd.DatetimeIndex normalized to midnight
    """
    days = np.asarray(values, dtype="float64")
    stamps = EPOCH + pd.to_timedelta(days, unit="D")
    return pd.DatetimeIndex(stamps, name="time").normalize()


def time_bounds(bounds: GeoTimeBounds) -> tuple[float, float]:
    """Day offsets of the first day of the start and end months."""
    start = days_since_epoch(bounds.years[0], bounds.months[0])
    end = days_since_epoch(bounds.years[1], bounds.months[1])
    return (start, end)
