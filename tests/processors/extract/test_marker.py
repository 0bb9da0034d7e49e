# -*- coding: utf-8 -*-
import shutil

import pytest

from processors.extract.edge_rules import FAREZONE, NodeKey
from processors.extract.errors import SelectionError, StreamError
from processors.extract.marker import Marker, compute_included
from processors.extract.selection import EntityRef, SelectionSpec
from processors.gtfs.reader import FeedReader


def _refs(pairs):
    return [EntityRef(table=table, entity_id=entity_id) for table, entity_id in pairs]


def _mark(reader, include=(), exclude=(), **kwargs):
    marker = Marker()
    selection = SelectionSpec(include=_refs(include), exclude=_refs(exclude), **kwargs)
    marker.filter(reader, selection)
    return marker


def _ids(marker, table):
    return marker.included_ids(table)


def test_agency_selects_its_routes_trips_and_dependencies(extract_reader):
    marker = _mark(extract_reader, include=[("agency.txt", "OK")])
    assert marker.included == {
        NodeKey("agency.txt", "OK"),
        NodeKey("routes.txt", "OK1"),
        NodeKey("trips.txt", "OK1"),
        NodeKey("calendar.txt", "OK"),
        NodeKey("shapes.txt", "OK1"),
        NodeKey("stops.txt", "OK1"),
        NodeKey("stops.txt", "OK2"),
    }


def test_route_selection(extract_reader):
    marker = _mark(extract_reader, include=[("routes.txt", "DTA1")])
    assert len(marker.included) == 10
    assert _ids(marker, "trips.txt") == {"DTA1", "DTA_STOP4"}
    assert _ids(marker, "stops.txt") == {"DTA1", "DTA2", "DTA3", "DTA4"}
    assert _ids(marker, "routes.txt") == {"DTA1"}
    assert marker.is_marked("agency.txt", "DTA")
    assert not marker.is_marked("routes.txt", "DTA2")


def test_trip_selection(extract_reader):
    marker = _mark(extract_reader, include=[("trips.txt", "DTA_STOP4")])
    assert len(marker.included) == 6
    assert _ids(marker, "stops.txt") == {"DTA3", "DTA4"}
    assert not marker.is_marked("shapes.txt", "DTA1")


def test_unused_stop_selects_only_itself(extract_reader):
    marker = _mark(extract_reader, include=[("stops.txt", "UNUSED2")])
    assert marker.included == {NodeKey("stops.txt", "UNUSED2")}


def test_unused_agency_selects_its_route(extract_reader):
    marker = _mark(extract_reader, include=[("agency.txt", "UNUSED")])
    assert marker.included == {
        NodeKey("agency.txt", "UNUSED"),
        NodeKey("routes.txt", "UNUSED"),
    }


def test_exclude_route_keeps_shared_dependencies(extract_reader):
    marker = _mark(
        extract_reader,
        include=[("agency.txt", "DTA")],
        exclude=[("routes.txt", "DTA1")],
    )
    assert len(marker.included) == 9
    assert _ids(marker, "routes.txt") == {"DTA2"}
    assert _ids(marker, "trips.txt") == {"DTA2"}
    assert _ids(marker, "stops.txt") == {"DTA1", "DTA2", "DTA3", "DTA4"}
    assert marker.is_marked("calendar.txt", "DTA")
    assert marker.is_marked("shapes.txt", "DTA1")


def test_exclude_trip_keeps_stop_reached_by_other_trip(extract_reader):
    marker = _mark(
        extract_reader,
        include=[("agency.txt", "DTA")],
        exclude=[("trips.txt", "DTA_STOP4")],
    )
    assert len(marker.included) == 11
    assert marker.is_marked("stops.txt", "DTA4")
    assert not marker.is_marked("trips.txt", "DTA_STOP4")


def test_exclude_trip_drops_stop_only_it_reached(extract_reader):
    marker = _mark(
        extract_reader,
        include=[("routes.txt", "DTA1")],
        exclude=[("trips.txt", "DTA_STOP4")],
    )
    assert len(marker.included) == 8
    assert _ids(marker, "stops.txt") == {"DTA1", "DTA2", "DTA3"}


def test_exclude_stop_drops_trips_serving_it(extract_reader):
    marker = _mark(
        extract_reader,
        include=[("routes.txt", "DTA1")],
        exclude=[("stops.txt", "DTA4")],
    )
    assert len(marker.included) == 8
    assert _ids(marker, "trips.txt") == {"DTA1"}
    assert not marker.is_marked("stops.txt", "DTA4")


def test_excluded_entities_never_included(extract_reader):
    marker = _mark(
        extract_reader,
        include=[("routes.txt", "DTA1"), ("trips.txt", "DTA_STOP4")],
        exclude=[("trips.txt", "DTA_STOP4")],
    )
    assert not marker.is_marked("trips.txt", "DTA_STOP4")


def test_filter_is_idempotent(extract_reader):
    marker = Marker()
    selection = SelectionSpec(
        include=_refs([("routes.txt", "DTA1")]),
        exclude=_refs([("trips.txt", "DTA_STOP4")]),
    )
    first = marker.filter(extract_reader, selection)
    second = marker.filter(extract_reader, selection)
    assert first == second
    assert marker.included == first


@pytest.mark.parametrize(
    "extra",
    [("agency.txt", "OK"), ("stops.txt", "UNUSED2"), ("routes.txt", "DTA2")],
)
def test_adding_include_never_shrinks_selection(extract_reader, extra):
    smaller = _mark(extract_reader, include=[("routes.txt", "DTA1")]).included
    larger = _mark(extract_reader, include=[("routes.txt", "DTA1"), extra]).included
    assert smaller <= larger
    assert NodeKey(*extra) in larger


@pytest.fixture
def malformed_feed_path(extract_feed_path, tmp_path):
    """The extract feed with bad values in columns the graph does not use."""
    feed = tmp_path / "feed"
    shutil.copytree(extract_feed_path, feed)
    agency = feed / "agency.txt"
    agency.write_text(
        agency.read_text().replace("http://example.com/unused", "example.com/unused")
    )
    routes = feed / "routes.txt"
    lines = routes.read_text().splitlines()
    routes.write_text(
        "\n".join([lines[0] + ",route_color"] + [line + ",red" for line in lines[1:]])
        + "\n"
    )
    with open(feed / "stop_times.txt", "a") as fh:
        fh.write("OK1,10:00:00,10:00:00,,9\n")
    return feed


def test_malformed_values_do_not_abort_filter(malformed_feed_path):
    with FeedReader(malformed_feed_path) as reader:
        marker = _mark(reader, include=[("agency.txt", "OK")])
    assert len(marker.included) == 7
    assert _ids(marker, "stops.txt") == {"OK1", "OK2"}
    assert not marker.is_marked("agency.txt", "UNUSED")


def test_unknown_include_raises(extract_reader):
    marker = Marker()
    marker.filter(extract_reader, SelectionSpec(include=_refs([("agency.txt", "OK")])))
    with pytest.raises(SelectionError) as excinfo:
        marker.filter(extract_reader, SelectionSpec(include=_refs([("routes.txt", "NOPE")])))
    assert excinfo.value.table == "routes.txt"
    assert excinfo.value.entity_id == "NOPE"
    # A failed run leaves nothing marked.
    assert marker.included == frozenset()
    assert not marker.is_visited("agency.txt", "OK")


def test_unknown_exclude_raises(extract_reader):
    with pytest.raises(SelectionError):
        _mark(extract_reader, include=[("agency.txt", "OK")], exclude=[("stops.txt", "NOPE")])


def test_no_selection_marks_whole_feed(extract_reader):
    marker = _mark(extract_reader)
    assert len(marker.included) == len(marker.graph) == 23


def test_exclude_only_removes_from_whole_feed(extract_reader):
    marker = _mark(extract_reader, exclude=[("agency.txt", "OK")])
    assert not marker.is_marked("agency.txt", "OK")
    assert not marker.is_marked("routes.txt", "OK1")
    assert not marker.is_marked("trips.txt", "OK1")
    assert marker.is_marked("agency.txt", "DTA")
    assert len(marker.included) == 20


def test_bbox_selection_clips_outside_stops(extract_reader):
    marker = _mark(extract_reader, bbox="-117.14,36.42,-117.09,36.435")
    assert _ids(marker, "stops.txt") == {"DTA1", "DTA2"}
    assert _ids(marker, "trips.txt") == {"DTA1", "DTA2"}
    assert marker.is_marked("routes.txt", "DTA2")
    assert len(marker.included) == 9


def test_bbox_selection_without_clipping(extract_reader):
    marker = _mark(extract_reader, bbox="-117.14,36.42,-117.09,36.435", clip_to_bbox=False)
    assert _ids(marker, "stops.txt") == {"DTA1", "DTA2", "DTA3", "DTA4"}
    assert len(marker.included) == 11


def test_bbox_without_stops_marks_nothing(extract_reader):
    marker = _mark(extract_reader, bbox="0,0,1,1")
    assert marker.included == frozenset()


def test_include_route_type(extract_reader):
    marker = _mark(extract_reader, include_route_types=[4])
    assert _ids(marker, "routes.txt") == {"OK1"}
    assert len(marker.included) == 7


def test_exclude_route_type(extract_reader):
    marker = _mark(extract_reader, exclude_route_types=[4])
    assert _ids(marker, "routes.txt") == {"DTA1", "DTA2", "UNUSED"}


def test_builder_methods(extract_reader):
    marker = Marker()
    marker.add_include("agency.txt", "DTA")
    marker.add_exclude("routes.txt", "DTA1")
    marker.add_route_type(4)
    assert marker.count() == 3
    marker.filter(extract_reader)
    assert marker.is_marked("routes.txt", "OK1")
    assert marker.is_marked("routes.txt", "DTA2")
    assert not marker.is_marked("routes.txt", "DTA1")


def test_add_route_type_rejects_invalid_values():
    marker = Marker()
    with pytest.raises(SelectionError):
        marker.add_route_type("tram")
    with pytest.raises(SelectionError):
        marker.add_route_type(-2)


def test_set_bbox_parses_string():
    marker = Marker()
    marker.set_bbox("0,0,1,1")
    assert marker.selection.bbox.as_tuple() == (0, 0, 1, 1)
    with pytest.raises(SelectionError):
        marker.set_bbox("nonsense")


def test_blank_id_is_always_marked():
    marker = Marker()
    assert marker.is_marked("routes.txt", "")
    assert marker.is_marked("routes.txt", None)
    assert not marker.is_marked("routes.txt", "R")


def test_is_visited_distinguishes_unselected_from_unknown(extract_reader):
    marker = _mark(extract_reader, include=[("agency.txt", "OK")])
    assert marker.is_visited("routes.txt", "DTA1")
    assert not marker.is_marked("routes.txt", "DTA1")
    assert not marker.is_visited("routes.txt", "NOPE")


def test_entrance_pulls_in_its_station_group(station_reader):
    marker = _mark(station_reader, include=[("stops.txt", "ENTRANCE")])
    assert _ids(marker, "stops.txt") == {
        "ENTRANCE", "STATION", "PLAT1", "PLAT2", "BOARD1", "FARSTOP",
    }
    assert _ids(marker, "levels.txt") == {"L0", "L1"}
    assert _ids(marker, "trips.txt") == {"T1"}
    assert _ids(marker, FAREZONE) == {"Z1", "Z2"}
    assert _ids(marker, "fare_attributes.txt") == {"F1"}
    assert marker.is_marked("agency.txt", "ST")


def test_platform_does_not_pull_in_sibling_platforms(station_reader):
    """Closure runs down then up once; it does not alternate to a fixed point."""
    marker = _mark(station_reader, include=[("stops.txt", "PLAT2")])
    assert _ids(marker, "stops.txt") == {"PLAT2", "STATION", "ENTRANCE"}
    assert _ids(marker, "levels.txt") == {"L0", "L1"}
    assert not marker.is_marked("stops.txt", "PLAT1")
    assert len(marker.included) == 7


def test_fare_zone_excluded_with_its_stops(station_reader):
    marker = _mark(station_reader, exclude=[(FAREZONE, "Z2")])
    assert not marker.is_marked("stops.txt", "FARSTOP")
    assert not marker.is_marked("trips.txt", "T1")
    assert not marker.is_marked("trips.txt", "T2")
    assert marker.is_marked("stops.txt", "PLAT1")
    assert marker.is_marked("fare_attributes.txt", "F1")


def test_reader_failure_resets_marker(extract_reader, mocker):
    marker = _mark(extract_reader, include=[("agency.txt", "OK")])
    mocker.patch.object(
        extract_reader, "stream", side_effect=StreamError("disk on fire", filename="agency.txt")
    )
    with pytest.raises(StreamError):
        marker.filter(extract_reader, SelectionSpec())
    assert marker.included == frozenset()
    assert len(marker.graph) == 0


def test_compute_included_blocks_excluded_down_closure(extract_reader):
    marker = _mark(extract_reader)
    graph = marker.graph
    route = graph.handle(NodeKey("routes.txt", "DTA1"))
    trip = graph.handle(NodeKey("trips.txt", "DTA_STOP4"))
    included = compute_included(graph, [route], [trip])
    assert trip not in included
    assert graph.handle(NodeKey("stops.txt", "DTA4")) not in included
