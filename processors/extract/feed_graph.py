# -*- coding: utf-8 -*-
"""
The entity dependency graph of a GTFS feed.

Nodes are interned into a dense list and referred to by integer handles;
the (table, entity_id) key is hashed only while interning. Children and
parents are stored as adjacency lists of handles. An edge (A, B) makes B a
child of A and A a parent of B.

`build_graph` fills a graph with one streaming pass over a reader, applying
the registered edge rules table by table, and freezes it.
"""

import logging
from collections import Counter
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from processors.extract.edge_rules import (
    BuildState,
    Edge,
    EdgeRule,
    EdgeRuleRegistry,
    NodeKey,
    default_registry,
)
from processors.gtfs.pipeline_definitions import GRAPH_BUILD_ORDER
from processors.gtfs.reader import ReaderInterface

module_logger = logging.getLogger(__name__)

Observer = Callable[[object], None]


class FeedGraph:
    """
    Directed graph of feed entities.

    The graph is mutable while it is built and read-only once frozen.
    Searches over a frozen graph keep their own state and may run
    concurrently.
    """

    def __init__(self):
        self._index: Dict[NodeKey, int] = {}
        self._nodes: List[NodeKey] = []
        self._children: List[List[int]] = []
        self._parents: List[List[int]] = []
        self._edges: Set[Tuple[int, int]] = set()
        self._frozen = False

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __repr__(self) -> str:
        return f"FeedGraph(nodes={len(self)}, edges={self.edge_count})"

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("FeedGraph is frozen and cannot be modified.")

    def add_node(self, key: NodeKey) -> int:
        """
        Intern a node.

        Args:
            key: The node key.

        Returns:
            The node's handle. Adding an existing key returns its handle.
        """
        handle = self._index.get(key)
        if handle is not None:
            return handle
        self._check_mutable()
        handle = len(self._nodes)
        self._index[key] = handle
        self._nodes.append(key)
        self._children.append([])
        self._parents.append([])
        return handle

    def add_edge(self, source: NodeKey, target: NodeKey) -> bool:
        """
        Add the edge source -> target if both nodes exist.

        Args:
            source: The referenced node.
            target: The referencing node.

        Returns:
            True if both endpoints exist (the edge is present afterwards),
            False otherwise.
        """
        source_handle = self._index.get(source)
        target_handle = self._index.get(target)
        if source_handle is None or target_handle is None:
            return False
        pair = (source_handle, target_handle)
        if pair not in self._edges:
            self._check_mutable()
            self._edges.add(pair)
            self._children[source_handle].append(target_handle)
            self._parents[target_handle].append(source_handle)
        return True

    def freeze(self) -> None:
        """Make the graph read-only."""
        self._frozen = True

    def handle(self, key: NodeKey) -> Optional[int]:
        """Return the handle of a key, or None if it was never added."""
        return self._index.get(key)

    def key(self, handle: int) -> NodeKey:
        return self._nodes[handle]

    def keys(self, handles: Iterable[int]) -> Set[NodeKey]:
        return {self._nodes[h] for h in handles}

    def handles(self) -> range:
        return range(len(self._nodes))

    def nodes(self) -> Iterator[NodeKey]:
        return iter(self._nodes)

    def children(self, handle: int) -> Sequence[int]:
        """Handles of the nodes that reference this node."""
        return self._children[handle]

    def parents(self, handle: int) -> Sequence[int]:
        """Handles of the nodes this node references."""
        return self._parents[handle]

    def table_counts(self) -> Dict[str, int]:
        return dict(Counter(key.table for key in self.nodes()))


def _check_tables(rule: EdgeRule, keys: Iterable[NodeKey], allowed) -> None:
    for key in keys:
        if key.table not in allowed:
            raise AssertionError(
                f"Edge rule for {rule.filename} produced {key} outside its "
                f"declared tables {sorted(allowed)}"
            )


def build_graph(
    reader: ReaderInterface,
    registry: Optional[EdgeRuleRegistry] = None,
    observers: Optional[Dict[str, Sequence[Observer]]] = None,
) -> FeedGraph:
    """
    Build the entity graph of a feed with a single pass over its tables.

    Tables are streamed in `GRAPH_BUILD_ORDER`, then any other table with a
    registered rule. Each stream is drained before the next one starts.
    Edges whose endpoints are not both known yet are kept aside and
    resolved after the pass; those still missing an endpoint are dropped.

    Args:
        reader: Source of feed entities.
        registry: Edge rules to apply. Defaults to the standard GTFS rules.
        observers: Optional callbacks per filename, called with every
                   streamed entity of that table before its rule runs.

    Returns:
        The frozen graph.

    Raises:
        StreamError: Propagated unchanged from the reader.
        AssertionError: If a rule emits a node or edge outside the tables it
                        declares.
    """
    rules = registry if registry is not None else default_registry()
    observers = observers or {}
    order = [f for f in GRAPH_BUILD_ORDER if f in rules]
    order += [f for f in rules.filenames() if f not in order]

    graph = FeedGraph()
    state = BuildState()
    deferred: Set[Edge] = set()

    for filename in order:
        rule = rules.get(filename)
        allowed = rule.tables
        table_observers = observers.get(filename, ())
        record_count = 0
        for entity in reader.stream(filename):
            record_count += 1
            for observer in table_observers:
                observer(entity)
            contribution = rule.func(entity, state)
            _check_tables(rule, contribution.nodes, rule.produces)
            for key in contribution.nodes:
                graph.add_node(key)
                state.last_seen[key.table] = key
            for source, target in contribution.edges:
                _check_tables(rule, (source, target), allowed)
                if not graph.add_edge(source, target):
                    deferred.add((source, target))
        module_logger.debug(f"Streamed {record_count} records from {filename}")

    dropped = 0
    for source, target in deferred:
        if not graph.add_edge(source, target):
            dropped += 1
    graph.freeze()
    module_logger.info(
        f"Built entity graph: {len(graph)} nodes, {graph.edge_count} edges, "
        f"{dropped} dangling references dropped."
    )
    module_logger.debug(f"Nodes per table: {graph.table_counts()}")
    return graph
