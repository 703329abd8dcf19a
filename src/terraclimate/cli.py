import argparse
from typing import cast

from terraclimate.definitions import Aggregation, FetchOptions
from terraclimate.schema import TERRACLIMATE_SCHEMA, VARIABLE_DESCRIPTIONS
from terraclimate.write import write


def get_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    schema = TERRACLIMATE_SCHEMA
    variables = cast(list[str], schema["variables"])

    parser.add_argument(
        "--lat",
        type=float,
        nargs=2,
        required=True,
        metavar=("SOUTH", "NORTH"),
        help="Latitude bounds in ascending order",
    )
    parser.add_argument(
        "--lon",
        type=float,
        nargs=2,
        required=True,
        metavar=("WEST", "EAST"),
        help="Longitude bounds in ascending order, e.g. -75.5 -74.5",
    )
    parser.add_argument(
        "--years",
        type=int,
        nargs=2,
        required=True,
        metavar=("START", "END"),
        help=f"Year bounds (records start in {schema['min_year']})",
    )
    parser.add_argument(
        "--months",
        type=int,
        nargs=2,
        default=[1, 12],
        metavar=("START", "END"),
        help="Month bounds, 1-12",
    )
    parser.add_argument(
        "-v",
        "--variable",
        type=str.lower,
        required=True,
        choices=[v.lower() for v in variables],
        metavar="VARIABLE",
        help="; ".join(f"{v}: {VARIABLE_DESCRIPTIONS[v][0]}" for v in variables),
    )
    parser.add_argument(
        "-a",
        "--aggregation",
        type=str.lower,
        choices=[str(Aggregation.TIMESERIES), str(Aggregation.SPATIAL)],
        default=str(Aggregation.TIMESERIES),
        help="timeseries writes a CSV of spatial means, spatial writes a GeoTIFF of time means",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default=".",
        help="Directory to save the output file",
    )
    parser.add_argument(
        "-f",
        "--filename",
        type=str,
        help="Output filename without extension (default: <variable>_<aggregation>)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for each remote read before giving up",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=3,
        help="Maximum number of attempts for each remote read",
    )

    return parser


def cli() -> None:
    """
    Command Line Interface for saving a TerraClimate subset to disk.
    """
    parser = get_parser(
        "Download a TerraClimate subset and save it as a CSV timeseries or GeoTIFF map"
    )
    args = parser.parse_args()

    filename = args.filename or f"{args.variable}_{args.aggregation}"
    options = FetchOptions(timeout=args.timeout, max_attempts=args.max_attempts)
    write(
        args.output_dir,
        filename,
        args.lat,
        args.lon,
        args.years,
        args.months,
        args.variable,
        args.aggregation,
        options=options,
    )
