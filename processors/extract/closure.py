# -*- coding: utf-8 -*-
"""
Transitive closure over a FeedGraph.

One breadth-first search serves both directions: `Direction.DOWN` follows
children (everything that depends on the seeds) and `Direction.UP` follows
parents (everything the seeds depend on).
"""

from collections import deque
from enum import Enum
from typing import AbstractSet, Callable, Iterable, Optional, Set

from processors.extract.feed_graph import FeedGraph


class Direction(str, Enum):
    DOWN = "down"
    UP = "up"


def search(
    graph: FeedGraph,
    seeds: Iterable[int],
    direction: Direction,
    visit: Optional[Callable[[int], None]] = None,
    blocked: Optional[AbstractSet[int]] = None,
) -> Set[int]:
    """
    Visit every node reachable from the seeds in one direction.

    Each reachable node is visited exactly once, seeds included, so cycles
    cannot prevent termination. Blocked nodes are never visited and never
    expanded, even when given as seeds.

    Args:
        graph: The graph to traverse.
        seeds: Handles to start from.
        direction: Which adjacency to follow.
        visit: Optional callback called once per visited handle.
        blocked: Handles the search must not enter.

    Returns:
        The set of visited handles.
    """
    direction = Direction(direction)
    blocked = blocked or frozenset()
    neighbours = graph.children if direction is Direction.DOWN else graph.parents
    visited: Set[int] = set()
    queue = deque()
    for handle in seeds:
        if handle in blocked or handle in visited:
            continue
        visited.add(handle)
        queue.append(handle)
    while queue:
        handle = queue.popleft()
        if visit is not None:
            visit(handle)
        for neighbour in neighbours(handle):
            if neighbour in visited or neighbour in blocked:
                continue
            visited.add(neighbour)
            queue.append(neighbour)
    return visited
