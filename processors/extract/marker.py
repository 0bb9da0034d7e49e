# -*- coding: utf-8 -*-
"""
Marker: selects a referentially complete subset of a GTFS feed.

`Marker.filter` builds the entity graph of a feed, resolves the selection to
seed nodes and computes the included set in exactly two closure phases:

1. Down from the seeds: everything that depends on the selection.
2. Up from every node found in phase 1: everything those depend on.

The two phases are never repeated until a fixed point. Station entrances
link back to their station, and alternating directions over such links
would pull in unrelated parts of the feed.

Exclusion: each excluded entity and everything depending on it (its own
down-closure) is removed and blocked, and the two phases run from the
remaining seeds without entering the blocked nodes. A node stays included
only if it is reachable along a path that avoids every blocked node.
"""

import logging
from collections import defaultdict
from typing import (
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
    Union,
)

from processors.extract.closure import Direction, search
from processors.extract.edge_rules import EdgeRuleRegistry, NodeKey
from processors.extract.errors import SelectionError
from processors.extract.feed_graph import FeedGraph, build_graph
from processors.extract.selection import BoundingBox, EntityRef, SelectionSpec
from processors.gtfs.reader import ReaderInterface

module_logger = logging.getLogger(__name__)


def compute_included(
    graph: FeedGraph,
    seeds: Iterable[int],
    excluded: Iterable[int] = (),
) -> Set[int]:
    """
    Run the two-phase closure with exclusions.

    Args:
        graph: A frozen feed graph.
        seeds: Handles selected by the caller.
        excluded: Handles excluded by the caller.

    Returns:
        The included handles.
    """
    blocked = search(graph, excluded, Direction.DOWN)
    down = search(graph, seeds, Direction.DOWN, blocked=blocked)
    up = search(graph, down, Direction.UP, blocked=blocked)
    return down | up


def _stop_coordinates(stop) -> Optional[Tuple[float, float]]:
    try:
        if stop.stop_lon is None or stop.stop_lat is None:
            return None
        return float(stop.stop_lon), float(stop.stop_lat)
    except (TypeError, ValueError):
        return None


class Marker:
    """
    Computes and answers membership of the extracted subset.

    Selection criteria can be passed to `filter` as a SelectionSpec or
    collected beforehand with `add_include`, `add_exclude`, `set_bbox` and
    `add_route_type`.
    """

    def __init__(self, registry: Optional[EdgeRuleRegistry] = None):
        self.registry = registry
        self.selection = SelectionSpec()
        self._graph = FeedGraph()
        self._graph.freeze()
        self._included: FrozenSet[NodeKey] = frozenset()

    @property
    def graph(self) -> FeedGraph:
        return self._graph

    @property
    def included(self) -> FrozenSet[NodeKey]:
        return self._included

    def add_include(self, table: str, entity_id: str) -> None:
        self.selection.include.append(EntityRef(table=table, entity_id=entity_id))

    def add_exclude(self, table: str, entity_id: str) -> None:
        self.selection.exclude.append(EntityRef(table=table, entity_id=entity_id))

    def set_bbox(self, bbox: Union[str, BoundingBox, None]) -> None:
        """
        Set the bounding box, from a BoundingBox or "min_lon,min_lat,max_lon,max_lat".

        Raises:
            SelectionError: If the string cannot be parsed.
        """
        if isinstance(bbox, str):
            bbox = BoundingBox.from_string(bbox)
        self.selection.bbox = bbox

    def add_route_type(self, route_type: int, exclude: bool = False) -> None:
        try:
            value = int(route_type)
        except (TypeError, ValueError) as e:
            raise SelectionError(f"Invalid route_type: {route_type}", original_error=e) from e
        if value < 0:
            raise SelectionError(f"Invalid route_type: {route_type}")
        if exclude:
            self.selection.exclude_route_types.append(value)
        else:
            self.selection.include_route_types.append(value)

    def count(self) -> int:
        return self.selection.count()

    def is_marked(self, table: str, entity_id: Optional[str]) -> bool:
        """
        Return True if the entity belongs to the extracted subset.

        A blank id is always marked, so rows whose reference column is
        optional and empty pass through.
        """
        if not entity_id:
            return True
        return NodeKey(table, entity_id) in self._included

    def is_visited(self, table: str, entity_id: str) -> bool:
        """Return True if the entity exists in the graph, included or not."""
        return NodeKey(table, entity_id) in self._graph

    def included_ids(self, table: str) -> Set[str]:
        return {key.entity_id for key in self._included if key.table == table}

    def filter(
        self,
        reader: ReaderInterface,
        selection: Optional[SelectionSpec] = None,
    ) -> FrozenSet[NodeKey]:
        """
        Build the graph of the feed and compute the included set.

        Args:
            reader: Source of feed entities.
            selection: What to extract. Defaults to the criteria collected on
                       this marker.

        Returns:
            The included node keys.

        Raises:
            SelectionError: If an include or exclude entity does not exist.
            StreamError: If the feed cannot be read.
        """
        criteria = selection if selection is not None else self.selection
        empty = FeedGraph()
        empty.freeze()
        self._graph = empty
        self._included = frozenset()

        bbox_inside: List[str] = []
        bbox_outside: List[str] = []
        routes_by_type: Dict[int, List[str]] = defaultdict(list)
        observers = {}
        if criteria.bbox is not None:
            bbox = criteria.bbox

            def observe_stop(stop) -> None:
                coordinates = _stop_coordinates(stop)
                if coordinates is None:
                    return
                if bbox.contains(*coordinates):
                    bbox_inside.append(stop.stop_id)
                else:
                    bbox_outside.append(stop.stop_id)

            observers["stops.txt"] = [observe_stop]
        wanted_types = set(criteria.include_route_types) | set(criteria.exclude_route_types)
        if wanted_types:

            def observe_route(route) -> None:
                try:
                    route_type = int(route.route_type)
                except (TypeError, ValueError):
                    return
                if route_type in wanted_types:
                    routes_by_type[route_type].append(route.route_id)

            observers["routes.txt"] = [observe_route]

        graph = build_graph(reader, self.registry, observers)

        seeds = self._resolve(graph, criteria.include, "included")
        seeds += self._handles(graph, "stops.txt", bbox_inside)
        if criteria.bbox is not None:
            module_logger.info(
                f"Bounding box {criteria.bbox.as_tuple()} contains {len(bbox_inside)} stops."
            )
            if not bbox_inside:
                module_logger.warning("Bounding box matched no stops.")
        for route_type in criteria.include_route_types:
            seeds += self._route_type_handles(graph, route_type, routes_by_type)
        if not criteria.selects_subset:
            module_logger.info("No include criteria given; selecting the whole feed.")
            seeds = list(graph.handles())

        excluded = self._resolve(graph, criteria.exclude, "excluded")
        for route_type in criteria.exclude_route_types:
            excluded += self._route_type_handles(graph, route_type, routes_by_type)

        included = compute_included(graph, seeds, excluded)
        if criteria.bbox is not None and criteria.clip_to_bbox:
            included -= set(self._handles(graph, "stops.txt", bbox_outside))

        self._graph = graph
        self._included = frozenset(graph.keys(included))
        module_logger.info(
            f"Marked {len(self._included)} of {len(graph)} entities "
            f"({len(seeds)} seeds, {len(excluded)} exclusions)."
        )
        return self._included

    @staticmethod
    def _handles(graph: FeedGraph, table: str, entity_ids: Iterable[str]) -> List[int]:
        handles = []
        for entity_id in entity_ids:
            handle = graph.handle(NodeKey(table, entity_id))
            if handle is not None:
                handles.append(handle)
        return handles

    @staticmethod
    def _resolve(graph: FeedGraph, refs: Iterable[EntityRef], kind: str) -> List[int]:
        handles = []
        for ref in refs:
            handle = graph.handle(NodeKey(ref.table, ref.entity_id))
            if handle is None:
                raise SelectionError(
                    f"{kind.capitalize()} entity not found: {ref.table} '{ref.entity_id}'",
                    table=ref.table,
                    entity_id=ref.entity_id,
                )
            handles.append(handle)
        return handles

    @classmethod
    def _route_type_handles(
        cls,
        graph: FeedGraph,
        route_type: int,
        routes_by_type: Dict[int, List[str]],
    ) -> List[int]:
        route_ids = routes_by_type.get(route_type, [])
        if not route_ids:
            module_logger.warning(f"No routes with route_type {route_type}.")
        return cls._handles(graph, "routes.txt", route_ids)
