"""
Graph preprocessing utilities.

This module provides the topology helpers used before geometry is computed:
- Adjacency construction over named nodes
- Cycle detection and removal
- Topological ordering
- Layer assignment (longest path, justified toward the sinks)

All functions work on node names and FrameLink-like objects (anything with
``source`` and ``target`` attributes or keys).
"""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Optional, Sequence

Adjacency = dict[str, list[str]]


def _source(link: Any) -> str:
    return link["source"] if isinstance(link, dict) else link.source


def _target(link: Any) -> str:
    return link["target"] if isinstance(link, dict) else link.target


def build_adjacency(names: Iterable[str], links: Sequence[Any]) -> tuple[Adjacency, Adjacency]:
    """
    Build outgoing and incoming adjacency lists.

    Links touching a name outside ``names`` are skipped. Duplicate links
    are kept once.

    Returns:
        (outgoing, incoming) mappings from node name to neighbor names.
    """
    outgoing: Adjacency = {name: [] for name in names}
    incoming: Adjacency = {name: [] for name in outgoing}

    for link in links:
        src, tgt = _source(link), _target(link)
        if src not in outgoing or tgt not in outgoing:
            continue
        if tgt not in outgoing[src]:
            outgoing[src].append(tgt)
            incoming[tgt].append(src)

    return outgoing, incoming


# =============================================================================
# Cycle Detection and Removal
# =============================================================================


def detect_cycle(names: Sequence[str], links: Sequence[Any]) -> Optional[list[str]]:
    """
    Detect if a directed graph contains a cycle.

    Uses DFS-based cycle detection. Returns the first cycle found,
    or None if the graph is acyclic.

    Example:
        >>> links = [{'source': 'a', 'target': 'b'}, {'source': 'b', 'target': 'a'}]
        >>> detect_cycle(['a', 'b'], links)
        ['a', 'b', 'a']
    """
    outgoing, _ = build_adjacency(names, links)

    # DFS states: 0=unvisited, 1=visiting, 2=visited
    state = dict.fromkeys(outgoing, 0)

    for start in outgoing:
        if state[start] != 0:
            continue
        path = [start]
        state[start] = 1
        stack = [iter(outgoing[start])]
        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                state[path.pop()] = 2
            elif state[neighbor] == 1:
                cycle_start = path.index(neighbor)
                return path[cycle_start:] + [neighbor]
            elif state[neighbor] == 0:
                state[neighbor] = 1
                path.append(neighbor)
                stack.append(iter(outgoing[neighbor]))

    return None


def has_cycle(names: Sequence[str], links: Sequence[Any]) -> bool:
    """Check if a directed graph contains any cycle."""
    return detect_cycle(names, links) is not None


def remove_cycles(
    names: Sequence[str], links: Sequence[Any]
) -> tuple[list[tuple[str, str]], set[int]]:
    """
    Remove cycles by reversing back edges.

    Uses a DFS over the nodes in the given order; every edge that closes a
    cycle is reversed. This is a greedy feedback arc set approximation.

    Returns:
        Tuple of (edges, reversed_indices) where:
        - edges: (source, target) pairs with back edges reversed
        - reversed_indices: Indices in ``links`` that were reversed
    """
    known = set(names)
    adj: dict[str, list[tuple[str, int]]] = {name: [] for name in names}
    for i, link in enumerate(links):
        src, tgt = _source(link), _target(link)
        if src in known and tgt in known:
            adj[src].append((tgt, i))

    state = dict.fromkeys(adj, 0)
    reversed_indices: set[int] = set()

    for start in adj:
        if state[start] != 0:
            continue
        state[start] = 1
        stack = [(start, iter(adj[start]))]
        while stack:
            node, children = stack[-1]
            entry = next(children, None)
            if entry is None:
                state[node] = 2
                stack.pop()
                continue
            child, edge_idx = entry
            if state[child] == 1:
                reversed_indices.add(edge_idx)
            elif state[child] == 0:
                state[child] = 1
                stack.append((child, iter(adj[child])))

    edges: list[tuple[str, str]] = []
    for i, link in enumerate(links):
        src, tgt = _source(link), _target(link)
        if src not in known or tgt not in known or src == tgt:
            continue
        edges.append((tgt, src) if i in reversed_indices else (src, tgt))

    return edges, reversed_indices


# =============================================================================
# Topological Sort
# =============================================================================


def topological_sort(names: Sequence[str], links: Sequence[Any]) -> Optional[list[str]]:
    """
    Topologically sort an acyclic graph (Kahn's algorithm).

    Ties are broken by the order of ``names`` so the result is deterministic.

    Returns:
        Node names in topological order, or None if the graph has a cycle.
    """
    outgoing, incoming = build_adjacency(names, links)
    in_degree = {name: len(incoming[name]) for name in outgoing}
    queue: deque[str] = deque(name for name in outgoing if in_degree[name] == 0)
    order: list[str] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for child in outgoing[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(order) != len(outgoing):
        return None
    return order


# =============================================================================
# Layer Assignment
# =============================================================================


def assign_layers(
    names: Sequence[str],
    links: Sequence[Any],
    justify: bool = True,
) -> dict[str, int]:
    """
    Assign each node a layer using the longest path from the sources.

    Nodes without incoming links are layer 0; every other node sits one
    layer past its deepest predecessor. With ``justify`` the sinks (nodes
    with incoming but no outgoing links) are moved to the last layer so
    flows end flush at the right-hand side. Nodes with no links stay in
    layer 0. Cyclic input must be broken with remove_cycles() first.

    Example:
        >>> links = [{'source': 'a', 'target': 'b'}, {'source': 'b', 'target': 'c'},
        ...          {'source': 'a', 'target': 'd'}]
        >>> assign_layers(['a', 'b', 'c', 'd'], links)
        {'a': 0, 'b': 1, 'c': 2, 'd': 2}

    Raises:
        ValueError: If the links contain a cycle
    """
    order = topological_sort(names, links)
    if order is None:
        raise ValueError("Cannot assign layers to a cyclic graph; call remove_cycles() first")

    outgoing, incoming = build_adjacency(names, links)
    layers = dict.fromkeys(order, 0)
    for node in order:
        for child in outgoing[node]:
            layers[child] = max(layers[child], layers[node] + 1)

    if justify and layers:
        last = max(layers.values())
        for node in order:
            if incoming[node] and not outgoing[node]:
                layers[node] = last

    return {name: layers[name] for name in outgoing}


def group_by_layer(layers: dict[str, int]) -> list[list[str]]:
    """Group node names into a list of layers, preserving insertion order."""
    if not layers:
        return []
    grouped: list[list[str]] = [[] for _ in range(max(layers.values()) + 1)]
    for name, layer in layers.items():
        grouped[layer].append(name)
    return grouped


__all__ = [
    "build_adjacency",
    "detect_cycle",
    "has_cycle",
    "remove_cycles",
    "topological_sort",
    "assign_layers",
    "group_by_layer",
]
