# processors/gtfs/pipeline_definitions.py
# -*- coding: utf-8 -*-
"""
Static definitions for the GTFS extract pipeline: the order tables are
streamed while building the entity graph, and the key columns used to
filter rows when a subset of the feed is written.
"""
from typing import Dict, List, Tuple

# Referenced tables come before the tables that reference them, so most
# edges resolve as soon as they are produced.
GRAPH_BUILD_ORDER: List[str] = [
    "agency.txt", "routes.txt", "calendar.txt", "calendar_dates.txt",
    "shapes.txt", "trips.txt", "levels.txt", "stops.txt",
    "stop_times.txt", "fare_attributes.txt", "fare_rules.txt",
]

# Files written in this order by the copy pipeline.
GTFS_WRITE_ORDER: List[str] = [
    "agency.txt", "levels.txt", "stops.txt", "routes.txt", "calendar.txt",
    "calendar_dates.txt", "shapes.txt", "trips.txt", "stop_times.txt",
    "frequencies.txt", "transfers.txt", "pathways.txt",
    "fare_attributes.txt", "fare_rules.txt", "feed_info.txt",
]

# (column, node table) pairs: a row is copied only if every listed column
# value is marked in its node table. Blank values always pass.
COPY_FILTER_KEYS: Dict[str, List[Tuple[str, str]]] = {
    "agency.txt": [("agency_id", "agency.txt")],
    "levels.txt": [("level_id", "levels.txt")],
    "stops.txt": [("stop_id", "stops.txt")],
    "routes.txt": [("route_id", "routes.txt")],
    "calendar.txt": [("service_id", "calendar.txt")],
    "calendar_dates.txt": [("service_id", "calendar.txt")],
    "shapes.txt": [("shape_id", "shapes.txt")],
    "trips.txt": [("trip_id", "trips.txt")],
    "stop_times.txt": [("trip_id", "trips.txt"), ("stop_id", "stops.txt")],
    "frequencies.txt": [("trip_id", "trips.txt")],
    "transfers.txt": [
        ("from_stop_id", "stops.txt"),
        ("to_stop_id", "stops.txt"),
    ],
    "pathways.txt": [
        ("from_stop_id", "stops.txt"),
        ("to_stop_id", "stops.txt"),
    ],
    "fare_attributes.txt": [("fare_id", "fare_attributes.txt")],
    "fare_rules.txt": [
        ("fare_id", "fare_attributes.txt"),
        ("route_id", "routes.txt"),
    ],
    "feed_info.txt": [],
}
