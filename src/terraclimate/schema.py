"""Object describing the layout of the TerraClimate aggregated datasets on THREDDS."""

TERRACLIMATE_SCHEMA: dict[str, str | list[str] | int] = {
    "url_template": (
        "http://thredds.northwestknowledge.net:8080/thredds/dodsC/"
        "agg_terraclimate_{variable}_1958_CurrentYear_GLOBE.nc"
    ),
    "lat": "lat",
    "lon": "lon",
    "time": "time",
    "epoch": "1900-01-01",
    "variables": [
        "aet",
        "def",
        "pet",
        "ppt",
        "q",
        "soil",
        "srad",
        "swe",
        "tmax",
        "tmin",
        "vap",
        "ws",
        "vpd",
        "PDSI",
    ],
    "min_year": 1958,
}

# (long name, units) for each variable, see
# http://www.climatologylab.org/terraclimate-variables.html
VARIABLE_DESCRIPTIONS: dict[str, tuple[str, str]] = {
    "aet": ("Actual evapotranspiration, monthly total", "mm"),
    "def": ("Climate water deficit, monthly total", "mm"),
    "pet": ("Potential evapotranspiration, monthly total", "mm"),
    "ppt": ("Precipitation, monthly total", "mm"),
    "q": ("Runoff, monthly total", "mm"),
    "soil": ("Soil moisture, total column at end of month", "mm"),
    "srad": ("Downward surface shortwave radiation", "W/m^2"),
    "swe": ("Snow water equivalent at end of month", "mm"),
    "tmax": ("Maximum temperature, average for month", "degC"),
    "tmin": ("Minimum temperature, average for month", "degC"),
    "vap": ("Vapor pressure, average for month", "kPa"),
    "ws": ("Wind speed, average for month", "m/s"),
    "vpd": ("Vapor pressure deficit, average for month", "kPa"),
    "PDSI": ("Palmer Drought Severity Index at end of month", "unitless"),
}


def dataset_url(variable: str, template: str | None = None) -> str:
    """Return the OPeNDAP address of the per-variable aggregated dataset."""
    if template is None:
        template = str(TERRACLIMATE_SCHEMA["url_template"])
    return template.format(variable=variable)
