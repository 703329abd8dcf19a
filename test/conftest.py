import numpy as np
import pandas as pd
import pytest
import xarray as xr

from terraclimate.time_utils import days_since_epoch


def make_stub_dataset(variable: str = "ppt", lat_ascending: bool = False) -> xr.Dataset:
    """
    Small synthetic stand-in for a remote TerraClimate dataset: 0.5 degree
    grid over 49-52 N, 77-73 W and five months from Nov 1999 to Mar 2000.
    Time is stored as raw days since 1900-01-01, as on the server.
    """
    lat = np.arange(52.0, 48.75, -0.5)
    if lat_ascending:
        lat = lat[::-1]
    lon = np.arange(-77.0, -72.75, 0.5)
    months = pd.date_range("1999-11-01", "2000-03-01", freq="MS")
    time = np.array([days_since_epoch(m.year, m.month) for m in months])

    t, y, x = np.meshgrid(
        np.arange(len(time)), np.arange(len(lat)), np.arange(len(lon)), indexing="ij"
    )
    values = 100.0 * t + 10.0 * y + x
    # A few missing cells, including one inside the Jan 2000 test box
    values[2, 2, 3] = np.nan
    values[0, 0, 0] = np.nan

    return xr.Dataset(
        data_vars={variable: (["time", "lat", "lon"], values)},
        coords={"time": time, "lat": lat, "lon": lon},
    )


@pytest.fixture
def stub_dataset() -> xr.Dataset:
    return make_stub_dataset()
