#!/usr/bin/env python3
"""
Command-line entry point for extracting a subset of a GTFS feed.

Given entities to include, a bounding box or route types, the tool writes a
smaller feed holding those entities, everything that depends on them and
everything they depend on. Excluded entities are removed together with
everything that depends on them.
"""

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from common.core_utils import resolve_log_level, setup_logging
from config.config_loader import load_app_settings
from processors.extract.errors import ExtractError, SelectionError
from processors.extract.main_pipeline import run_extract
from processors.extract.selection import BoundingBox, EntityRef, SelectionSpec

# CLI entity name -> GTFS table.
ENTITY_TABLES = {
    "agency": "agency.txt",
    "route": "routes.txt",
    "trip": "trips.txt",
    "stop": "stops.txt",
    "calendar": "calendar.txt",
}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        The parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Extract a referentially complete subset of a GTFS feed."
    )
    parser.add_argument("input", help="GTFS zip, directory, or http(s) URL")
    parser.add_argument("output", help="Output directory, or a path ending in .zip")

    # Configuration file
    parser.add_argument(
        "--config",
        "-c",
        default="config.yaml",
        help="Path to the configuration file (default: config.yaml)",
    )

    # Verbose output
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    select_group = parser.add_argument_group("selection")
    for name in ENTITY_TABLES:
        select_group.add_argument(
            f"--extract-{name}",
            action="append",
            default=[],
            metavar="ID",
            help=f"Include the {name} with this id (repeatable)",
        )
    select_group.add_argument(
        "--extract-route-type",
        action="append",
        type=int,
        default=[],
        metavar="N",
        help="Include all routes of this route_type (repeatable)",
    )
    for name in ENTITY_TABLES:
        select_group.add_argument(
            f"--exclude-{name}",
            action="append",
            default=[],
            metavar="ID",
            help=f"Exclude the {name} with this id and everything depending on it",
        )
    select_group.add_argument(
        "--exclude-route-type",
        action="append",
        type=int,
        default=[],
        metavar="N",
        help="Exclude all routes of this route_type (repeatable)",
    )
    select_group.add_argument(
        "--bbox",
        metavar="MINLON,MINLAT,MAXLON,MAXLAT",
        help="Include stops inside this box",
    )
    select_group.add_argument(
        "--no-bbox-clip",
        dest="clip_to_bbox",
        action="store_false",
        default=None,
        help="Keep stops outside the bounding box that the selection reaches",
    )

    parser.add_argument(
        "--copy-extra-files",
        action="store_true",
        default=None,
        help="Copy files that have no filter keys unchanged",
    )

    args = parser.parse_args(argv)
    args.log_level = "DEBUG" if args.verbose else None
    return args


def _refs(args: argparse.Namespace, prefix: str) -> List[EntityRef]:
    refs = []
    for name, table in ENTITY_TABLES.items():
        for entity_id in getattr(args, f"{prefix}_{name}"):
            refs.append(EntityRef(table=table, entity_id=entity_id))
    return refs


def build_selection(args: argparse.Namespace, clip_to_bbox: bool = True) -> SelectionSpec:
    """
    Turn parsed arguments into a SelectionSpec.

    Raises:
        SelectionError: If the bounding box or an id is malformed.
    """
    bbox = BoundingBox.from_string(args.bbox) if args.bbox else None
    for route_type in args.extract_route_type + args.exclude_route_type:
        if route_type < 0:
            raise SelectionError(f"Invalid route_type: {route_type}")
    try:
        return SelectionSpec(
            include=_refs(args, "extract"),
            exclude=_refs(args, "exclude"),
            bbox=bbox,
            include_route_types=args.extract_route_type,
            exclude_route_types=args.exclude_route_type,
            clip_to_bbox=clip_to_bbox,
        )
    except ValueError as e:
        raise SelectionError(f"Invalid selection: {e}", original_error=e) from e


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the script.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_args(argv)
    settings = load_app_settings(args, args.config)
    setup_logging(
        log_level=resolve_log_level(settings.log_level),
        log_file=settings.log_file,
        log_prefix=settings.log_prefix,
        symbols=settings.symbols,
    )
    logger = logging.getLogger("extract_gtfs")

    try:
        selection = build_selection(args, clip_to_bbox=settings.clip_to_bbox)
        counts = run_extract(settings, selection, args.input, args.output)
    except ExtractError as e:
        logger.error(f"Extraction failed: {e}", exc_info=args.verbose)
        return 1
    except OSError as e:
        logger.error(f"Could not write {args.output}: {e}", exc_info=args.verbose)
        return 1

    for filename, rows in counts.items():
        logger.info(f"{filename}: {rows} rows")
    return 0


if __name__ == "__main__":
    sys.exit(main())
