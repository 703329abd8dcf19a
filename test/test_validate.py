import numpy as np
import pytest

from terraclimate.definitions import (
    Aggregation,
    GeoTimeBounds,
    InputValidationError,
    UnsupportedValueError,
    Variable,
)
from terraclimate.validate import validate_inputs


VALID = ([50, 51.5], [-75.5, -74.5], [2000, 2015], [1, 12], "ppt")


class TestVariableParse:
    @pytest.mark.parametrize("raw", ["ppt", "PPT", "Ppt", " ppt "])
    def test_case_insensitive(self, raw):
        """Test variable codes match regardless of case."""
        assert Variable.parse(raw) is Variable.PPT

    def test_pdsi_canonical_case(self):
        """Test PDSI is returned with its canonical upper case code."""
        assert str(Variable.parse("pdsi")) == "PDSI"

    def test_all_codes_parse(self):
        """Test each of the 14 supported codes round trips through parse."""
        assert len(Variable) == 14
        for member in Variable:
            assert Variable.parse(member.value.upper()) is member

    def test_unknown_variable(self):
        """Test an unsupported code lists the legal choices."""
        with pytest.raises(UnsupportedValueError) as excinfo:
            Variable.parse("precip")
        assert "aet" in str(excinfo.value)
        assert "PDSI" in str(excinfo.value)

    def test_non_string(self):
        """Test non-string values are rejected."""
        with pytest.raises(UnsupportedValueError):
            Variable.parse(5)


class TestAggregationParse:
    def test_parse(self):
        """Test aggregation names are parsed case-insensitively."""
        assert Aggregation.parse("TimeSeries") is Aggregation.TIMESERIES
        assert Aggregation.parse("spatial") is Aggregation.SPATIAL
        assert Aggregation.parse(Aggregation.NONE) is Aggregation.NONE

    def test_unknown(self):
        """Test an unknown averaging option raises."""
        with pytest.raises(UnsupportedValueError) as excinfo:
            Aggregation.parse("monthly")
        assert "timeseries" in str(excinfo.value)


class TestValidateInputs:
    def test_valid_inputs(self):
        """Test validation with valid inputs."""
        bounds, variable, aggregation = validate_inputs(*VALID, "timeseries")

        assert bounds == GeoTimeBounds(
            lat=(50.0, 51.5), lon=(-75.5, -74.5), years=(2000, 2015), months=(1, 12)
        )
        assert variable is Variable.PPT
        assert aggregation is Aggregation.TIMESERIES

    def test_single_point_ranges(self):
        """Test equal lower and upper bounds are accepted."""
        bounds, _, _ = validate_inputs(
            [50, 50], [-75, -75], [2000, 2000], [1, 1], "tmax", "none"
        )
        assert bounds.lat == (50.0, 50.0)
        assert bounds.months == (1, 1)

    def test_numpy_and_tuple_inputs(self):
        """Test numpy arrays and tuples are accepted as bound pairs."""
        bounds, _, _ = validate_inputs(
            np.array([50.0, 51.5]), (-75.5, -74.5), np.array([2000, 2001]), (1.0, 2.0), "ppt"
        )
        assert bounds.years == (2000, 2001)
        assert bounds.months == (1, 2)

    @pytest.mark.parametrize("position", [0, 1, 2, 3])
    def test_descending_bounds(self, position):
        """Test each pair rejects lower > upper."""
        args = list(VALID)
        args[position] = list(reversed(args[position]))

        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(*args)
        assert "ascending order" in str(excinfo.value)

    @pytest.mark.parametrize(
        "bad", [[50], [50, 51, 52], [[50, 51]], 50, "50,51"]
    )
    def test_bad_shape(self, bad):
        """Test bounds must be exactly two values."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(bad, *VALID[1:])
        assert "lat_bounds must be a 2-element sequence" in str(excinfo.value)

    def test_non_numeric(self):
        """Test bound pairs must contain numbers."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs([50, "north"], *VALID[1:])
        assert "must contain numbers" in str(excinfo.value)

    def test_fractional_year(self):
        """Test years must be whole numbers."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(VALID[0], VALID[1], [2000.5, 2001], VALID[3], "ppt")
        assert "whole numbers" in str(excinfo.value)

    @pytest.mark.parametrize("months", [[0, 12], [1, 13]])
    def test_month_range(self, months):
        """Test months must lie between 1 and 12."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(VALID[0], VALID[1], VALID[2], months, "ppt")
        assert "between 1 and 12" in str(excinfo.value)

    def test_invalid_variable(self):
        """Test validation with an unsupported variable."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(*VALID[:4], "rain")
        assert "'rain' is not a supported variable" in str(excinfo.value)

    def test_missing_argument(self):
        """Test a None in a required position is reported as missing."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(VALID[0], None, VALID[2], VALID[3], None)
        assert "missing required argument: lon_bounds" in str(excinfo.value)
        assert "missing required argument: variable" in str(excinfo.value)

    def test_errors_are_collected(self):
        """Test all failed checks are reported in one error."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs([51, 50], [-74, -75], [2000, 2015], [1, 12], "rain")
        message = str(excinfo.value)
        assert "lat_bounds" in message
        assert "lon_bounds" in message
        assert "rain" in message

    def test_fetch_default_aggregation(self, capsys):
        """Test the in-memory accessor defaults to no averaging, with a note."""
        _, _, aggregation = validate_inputs(*VALID, kind="fetch")

        assert aggregation is Aggregation.NONE
        assert "Defaulting to 'none'" in capsys.readouterr().out

    def test_write_default_aggregation(self, capsys):
        """Test the disk-writing accessor defaults to a timeseries, with a note."""
        _, _, aggregation = validate_inputs(*VALID, kind="write")

        assert aggregation is Aggregation.TIMESERIES
        assert "Defaulting to 'timeseries'" in capsys.readouterr().out

    def test_write_rejects_none(self):
        """Test the raw cube cannot be requested from the disk-writing accessor."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(*VALID, "none", kind="write")
        assert "cannot be written to disk" in str(excinfo.value)

    def test_unknown_aggregation(self):
        """Test an unknown averaging option is an error, not a default."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(*VALID, "yearly")
        assert "not a supported aggregation" in str(excinfo.value)

    def test_spatial_write_needs_extent(self):
        """Test a degenerate box is rejected for raster output only."""
        with pytest.raises(InputValidationError) as excinfo:
            validate_inputs(
                [51.0, 51.0], [-75.5, -74.5], [2000, 2000], [1, 1], "ppt", "spatial",
                kind="write",
            )
        assert "non-zero extent" in str(excinfo.value)

        # In memory a single row is still a valid map
        bounds, _, _ = validate_inputs(
            [51.0, 51.0], [-75.5, -74.5], [2000, 2000], [1, 1], "ppt", "spatial"
        )
        assert bounds.lat == (51.0, 51.0)

    def test_validated_types(self):
        """Test the returned request holds parsed values, under any optimisation level."""
        bounds, variable, aggregation = validate_inputs(*VALID, "Spatial")

        assert isinstance(bounds, GeoTimeBounds)
        assert bounds.years == (2000, 2015)
        assert variable is Variable.PPT
        assert aggregation is Aggregation.SPATIAL
