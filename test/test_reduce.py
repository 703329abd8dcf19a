import numpy as np
import pandas as pd
import pytest

from terraclimate.definitions import Aggregation, RawCube, UnsupportedValueError
from terraclimate.reduce import nan_mean, reduce_cube


def make_cube(values: np.ndarray) -> RawCube:
    n_lat, n_lon, n_time = values.shape
    return RawCube(
        values=values,
        lat=np.arange(n_lat, dtype="float64"),
        lon=np.arange(n_lon, dtype="float64"),
        time=pd.date_range("2000-01-01", periods=n_time, freq="MS"),
    )


class TestNanMean:
    def test_ignores_missing(self):
        """Test missing values are excluded, not treated as zero."""
        values = np.array([[1.0, np.nan], [3.0, np.nan]])
        assert nan_mean(values, axis=1).tolist() == [1.0, 3.0]

    def test_all_missing_is_nan(self, recwarn):
        """Test an all-missing slice averages to NaN without warning."""
        values = np.array([[np.nan, np.nan], [2.0, 4.0]])
        result = nan_mean(values, axis=1)

        assert np.isnan(result[0])
        assert result[1] == 3.0
        assert not [w for w in recwarn if issubclass(w.category, RuntimeWarning)]


class TestReduceCube:
    def test_none_passes_through(self):
        """Test no averaging returns the cube unchanged."""
        values = np.random.default_rng(0).random((2, 3, 4))
        result = reduce_cube(make_cube(values), Aggregation.NONE)

        assert result.shape == (2, 3, 4)
        np.testing.assert_array_equal(result, values)

    def test_timeseries(self):
        """Test timeseries averages the two spatial axes for each month."""
        values = np.zeros((2, 2, 2))
        values[:, :, 0] = [[1.0, 2.0], [3.0, 4.0]]
        values[:, :, 1] = [[10.0, np.nan], [np.nan, 20.0]]

        result = reduce_cube(make_cube(values), Aggregation.TIMESERIES)

        assert result.shape == (2,)
        np.testing.assert_allclose(result, [2.5, 15.0])

    def test_timeseries_all_missing_month(self):
        """Test a month with every cell missing gives NaN, not zero or an error."""
        values = np.ones((2, 3, 3))
        values[:, :, 1] = np.nan

        result = reduce_cube(make_cube(values), Aggregation.TIMESERIES)

        assert result[0] == 1.0
        assert np.isnan(result[1])
        assert result[2] == 1.0

    def test_spatial_uniform(self):
        """Test averaging identical months returns the monthly map itself."""
        month = np.array([[1.0, 2.0], [3.0, 4.0]])
        values = np.repeat(month[:, :, np.newaxis], 3, axis=2)

        result = reduce_cube(make_cube(values), Aggregation.SPATIAL)

        assert result.shape == (2, 2)
        np.testing.assert_array_equal(result, month)

    def test_spatial_partial_and_all_missing(self):
        """Test cells average only valid months and all-missing cells stay NaN."""
        values = np.full((1, 2, 3), np.nan)
        values[0, 0, :] = [2.0, np.nan, 4.0]

        result = reduce_cube(make_cube(values), Aggregation.SPATIAL)

        assert result[0, 0] == 3.0
        assert np.isnan(result[0, 1])

    def test_unknown_aggregation(self):
        """Test an unrecognised mode raises instead of defaulting."""
        with pytest.raises(UnsupportedValueError):
            reduce_cube(make_cube(np.ones((1, 1, 1))), "timeseries")  # type: ignore[arg-type]
