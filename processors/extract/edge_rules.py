# -*- coding: utf-8 -*-
"""
Edge rules: what each streamed GTFS entity contributes to the entity graph.

An edge (A, B) means "B references A": B depends on A being present. Each
supported table has one pure rule function that maps a single entity to the
nodes and edges it contributes. Rules are kept in an `EdgeRuleRegistry`
keyed by filename, so a new cross-referencing table only needs a new rule.

Rules never look anything up in the graph. A reference to an entity that
has not been streamed yet, or never will be, is emitted anyway; the graph
builder resolves or drops it.
"""

import logging
from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Tuple,
)

from processors.gtfs.transform import parse_location_type

module_logger = logging.getLogger(__name__)

FAREZONE = "farezone"

# Stops with these location types link back to their parent, so that
# reaching one of them reaches its whole station group.
LINKED_LOCATION_TYPES = frozenset({2, 3, 4})


class NodeKey(NamedTuple):
    """Identity of one graph node: a feed record or a pseudo-entity."""

    table: str
    entity_id: str

    def __str__(self) -> str:
        return f"{self.table}:{self.entity_id}"


Edge = Tuple[NodeKey, NodeKey]


@dataclass(frozen=True)
class Contribution:
    """Nodes and edges contributed by one entity."""

    nodes: Tuple[NodeKey, ...] = ()
    edges: Tuple[Edge, ...] = ()


@dataclass
class BuildState:
    """
    Read-only view of the build pass handed to rules.

    Attributes:
        last_seen: The most recent node key produced per table, maintained by
                   the graph builder.
    """

    last_seen: Dict[str, NodeKey] = field(default_factory=dict)


RuleFunc = Callable[[object, BuildState], Contribution]


@dataclass(frozen=True)
class EdgeRule:
    """
    A rule for one GTFS table.

    Attributes:
        filename: The table this rule consumes.
        func: The rule function.
        produces: Node tables this rule may create nodes in.
        references: Node tables its edges may point to or from, besides its
                    own `produces`.
    """

    filename: str
    func: RuleFunc
    produces: FrozenSet[str] = frozenset()
    references: FrozenSet[str] = frozenset()

    @property
    def tables(self) -> FrozenSet[str]:
        return self.produces | self.references


def agency_rule(agency, state: BuildState) -> Contribution:
    return Contribution(nodes=(NodeKey("agency.txt", agency.agency_id or ""),))


def route_rule(route, state: BuildState) -> Contribution:
    """Link a route to its agency; a blank agency_id means the last streamed agency."""
    if not route.route_id:
        return Contribution()
    node = NodeKey("routes.txt", route.route_id)
    if route.agency_id:
        agency = NodeKey("agency.txt", route.agency_id)
    else:
        agency = state.last_seen.get("agency.txt")
    if agency is None:
        return Contribution(nodes=(node,))
    return Contribution(nodes=(node,), edges=((agency, node),))


def calendar_rule(calendar, state: BuildState) -> Contribution:
    if not calendar.service_id:
        return Contribution()
    return Contribution(nodes=(NodeKey("calendar.txt", calendar.service_id),))


def calendar_date_rule(calendar_date, state: BuildState) -> Contribution:
    if not calendar_date.service_id:
        return Contribution()
    # Services defined only by exceptions still need a calendar node.
    return Contribution(nodes=(NodeKey("calendar.txt", calendar_date.service_id),))


def shape_rule(shape_point, state: BuildState) -> Contribution:
    if not shape_point.shape_id:
        return Contribution()
    return Contribution(nodes=(NodeKey("shapes.txt", shape_point.shape_id),))


def trip_rule(trip, state: BuildState) -> Contribution:
    if not trip.trip_id:
        return Contribution()
    node = NodeKey("trips.txt", trip.trip_id)
    edges: List[Edge] = [
        (NodeKey(table, parent_id), node)
        for table, parent_id in (
            ("routes.txt", trip.route_id),
            ("calendar.txt", trip.service_id),
        )
        if parent_id
    ]
    if trip.shape_id:
        edges.append((NodeKey("shapes.txt", trip.shape_id), node))
    return Contribution(nodes=(node,), edges=tuple(edges))


def level_rule(level, state: BuildState) -> Contribution:
    if not level.level_id:
        return Contribution()
    return Contribution(nodes=(NodeKey("levels.txt", level.level_id),))


def stop_rule(stop, state: BuildState) -> Contribution:
    """
    Stops hang off their parent station, their level and their fare zone.

    Entrances, generic nodes and boarding areas also point back at their
    parent. The resulting station/child cycle is expected; the closure
    search visits each node once.
    """
    if not stop.stop_id:
        return Contribution()
    node = NodeKey("stops.txt", stop.stop_id)
    nodes: List[NodeKey] = [node]
    edges: List[Edge] = []
    if stop.parent_station:
        parent = NodeKey("stops.txt", stop.parent_station)
        edges.append((parent, node))
        if parse_location_type(stop.location_type) in LINKED_LOCATION_TYPES:
            edges.append((node, parent))
    if stop.level_id:
        edges.append((NodeKey("levels.txt", stop.level_id), node))
    if stop.zone_id:
        zone = NodeKey(FAREZONE, stop.zone_id)
        nodes.append(zone)
        edges.append((zone, node))
    return Contribution(nodes=tuple(nodes), edges=tuple(edges))


def stop_time_rule(stop_time, state: BuildState) -> Contribution:
    # Flex rows may leave stop_id blank.
    if not stop_time.stop_id or not stop_time.trip_id:
        return Contribution()
    return Contribution(
        edges=(
            (
                NodeKey("stops.txt", stop_time.stop_id),
                NodeKey("trips.txt", stop_time.trip_id),
            ),
        )
    )


def fare_attribute_rule(fare_attribute, state: BuildState) -> Contribution:
    if not fare_attribute.fare_id:
        return Contribution()
    return Contribution(nodes=(NodeKey("fare_attributes.txt", fare_attribute.fare_id),))


def fare_rule_rule(fare_rule, state: BuildState) -> Contribution:
    """Fare rules invert the zone reference: the fare is the parent of the zone."""
    if not fare_rule.fare_id:
        return Contribution()
    fare = NodeKey("fare_attributes.txt", fare_rule.fare_id)
    edges = tuple(
        (fare, NodeKey(FAREZONE, zone_id))
        for zone_id in (
            fare_rule.origin_id,
            fare_rule.destination_id,
            fare_rule.contains_id,
        )
        if zone_id
    )
    return Contribution(edges=edges)


class EdgeRuleRegistry:
    """
    Registry of edge rules keyed by GTFS filename.

    Registration checks that every table a rule references is produced by
    some registered rule; a violation is a programming error and raises
    AssertionError.
    """

    def __init__(self, rules: Optional[Iterable[EdgeRule]] = None):
        self._rules: Dict[str, EdgeRule] = {}
        for rule in rules or ():
            self.register(rule, check=False)
        self.check()

    def register(self, rule: EdgeRule, check: bool = True) -> None:
        """
        Register a rule, replacing any rule for the same file.

        Args:
            rule: The rule to register.
            check: Verify the registry's table references afterwards.
        """
        self._rules[rule.filename] = rule
        module_logger.debug(f"Registered edge rule for {rule.filename}")
        if check:
            self.check()

    def check(self) -> None:
        """Assert that every referenced node table is produced by a registered rule."""
        produced = self.node_tables
        for rule in self._rules.values():
            missing = rule.references - produced
            if missing:
                raise AssertionError(
                    f"Edge rule for {rule.filename} references unregistered "
                    f"node tables: {sorted(missing)}"
                )

    @property
    def node_tables(self) -> FrozenSet[str]:
        """All node tables produced by registered rules."""
        tables: set = set()
        for rule in self._rules.values():
            tables |= rule.produces
        return frozenset(tables)

    def get(self, filename: str) -> Optional[EdgeRule]:
        return self._rules.get(filename)

    def filenames(self) -> List[str]:
        return list(self._rules)

    def __contains__(self, filename: str) -> bool:
        return filename in self._rules

    def __iter__(self) -> Iterator[EdgeRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


DEFAULT_EDGE_RULES: Tuple[EdgeRule, ...] = (
    EdgeRule("agency.txt", agency_rule, produces=frozenset({"agency.txt"})),
    EdgeRule(
        "routes.txt",
        route_rule,
        produces=frozenset({"routes.txt"}),
        references=frozenset({"agency.txt"}),
    ),
    EdgeRule("calendar.txt", calendar_rule, produces=frozenset({"calendar.txt"})),
    EdgeRule(
        "calendar_dates.txt",
        calendar_date_rule,
        produces=frozenset({"calendar.txt"}),
    ),
    EdgeRule("shapes.txt", shape_rule, produces=frozenset({"shapes.txt"})),
    EdgeRule(
        "trips.txt",
        trip_rule,
        produces=frozenset({"trips.txt"}),
        references=frozenset({"routes.txt", "calendar.txt", "shapes.txt"}),
    ),
    EdgeRule("levels.txt", level_rule, produces=frozenset({"levels.txt"})),
    EdgeRule(
        "stops.txt",
        stop_rule,
        produces=frozenset({"stops.txt", FAREZONE}),
        references=frozenset({"levels.txt"}),
    ),
    EdgeRule(
        "stop_times.txt",
        stop_time_rule,
        references=frozenset({"stops.txt", "trips.txt"}),
    ),
    EdgeRule(
        "fare_attributes.txt",
        fare_attribute_rule,
        produces=frozenset({"fare_attributes.txt"}),
    ),
    EdgeRule(
        "fare_rules.txt",
        fare_rule_rule,
        references=frozenset({"fare_attributes.txt", FAREZONE}),
    ),
)


def default_registry() -> EdgeRuleRegistry:
    """Return a new registry holding the standard GTFS edge rules."""
    return EdgeRuleRegistry(DEFAULT_EDGE_RULES)
