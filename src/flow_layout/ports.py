"""
Port and connector assignment for flow links.

Each node edge is divided into discrete ports. A link claims the free port
nearest the middle of the source node's right edge and of the target node's
left edge, then a cubic Bezier connects the two ports. Claims live only for
one layout computation.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import AbstractSet, Mapping, Optional, Sequence

from .config import DEFAULT_CONFIG, LayoutConfig
from .types import FrameLink, LinkPath, NodePosition, Side

Point = tuple[float, float]


@dataclass(frozen=True)
class Port:
    """
    A connection slot on a node edge.

    Ports are numbered top to bottom; port ``index`` of ``count`` sits at
    ``(index + 1) / (count + 1)`` of the node height.
    """

    node: str
    side: Side
    index: int
    count: int

    @property
    def position(self) -> float:
        """Position along the edge (0.0 top to 1.0 bottom)."""
        return (self.index + 1) / (self.count + 1)


@dataclass(frozen=True)
class CubicBezier:
    """A cubic Bezier connector curve."""

    start: Point
    control1: Point
    control2: Point
    end: Point

    @property
    def chord_length(self) -> float:
        """Straight-line distance between the endpoints."""
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def is_degenerate(self) -> bool:
        """True for zero-length connectors (renderers skip their labels)."""
        return self.chord_length < 1e-9

    def point_at(self, t: float) -> Point:
        """Evaluate the curve at parameter t in [0, 1]."""
        u = 1 - t
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return (
            a * self.start[0] + b * self.control1[0] + c * self.control2[0] + d * self.end[0],
            a * self.start[1] + b * self.control1[1] + c * self.control2[1] + d * self.end[1],
        )

    def to_path(self) -> str:
        """Serialize as an SVG path ``M x,y C c1x,c1y c2x,c2y x,y``."""
        return (
            f"M {_fmt(self.start)} C {_fmt(self.control1)} "
            f"{_fmt(self.control2)} {_fmt(self.end)}"
        )


def _fmt(point: Point) -> str:
    return f"{point[0]:.2f},{point[1]:.2f}"


def port_count(height: float, spacing: float = 10.0, minimum: int = 3) -> int:
    """Number of ports on a node edge: ``max(minimum, floor(height / spacing))``."""
    return max(minimum, int(math.floor(height / spacing)))


def pick_port(count: int, claimed: AbstractSet[int]) -> int:
    """
    Pick the free port nearest the middle of an edge.

    Searches outward from ``count // 2``, alternating one above and one
    below. When every port is claimed the middle port is reused.
    """
    middle = count // 2
    for offset in range(count):
        step = offset // 2 if offset % 2 == 0 else -((offset + 1) // 2)
        candidate = middle + step
        if 0 <= candidate < count and candidate not in claimed:
            return candidate
    return middle


class PortAllocator:
    """
    Port claims for one layout computation.

    Claims are tracked per (node, side), so a node's incoming and outgoing
    links never compete for the same slot.
    """

    def __init__(self, spacing: float = 10.0, minimum: int = 3) -> None:
        self._spacing = spacing
        self._minimum = minimum
        self._claimed: dict[tuple[str, Side], set[int]] = defaultdict(set)

    def claim(self, node: str, side: Side, height: float) -> Port:
        """Claim the best free port on one edge of a node."""
        count = port_count(height, self._spacing, self._minimum)
        claimed = self._claimed[(node, side)]
        index = pick_port(count, claimed)
        claimed.add(index)
        return Port(node=node, side=side, index=index, count=count)

    def claimed(self, node: str, side: Side) -> frozenset[int]:
        return frozenset(self._claimed.get((node, side), ()))

    def reset(self) -> None:
        self._claimed.clear()


def connector(
    source: NodePosition,
    target: NodePosition,
    source_port: Port,
    target_port: Port,
    curvature: float = 0.5,
) -> CubicBezier:
    """
    Build the S-curve from a source port to a target port.

    Both control points sit at ``curvature`` of the horizontal distance
    between the ports, each at the height of its own endpoint.
    """
    start = source.get_port_position(Side.EAST, source_port.position)
    end = target.get_port_position(Side.WEST, target_port.position)
    mid_x = start[0] + (end[0] - start[0]) * curvature
    return CubicBezier(start=start, control1=(mid_x, start[1]), control2=(mid_x, end[1]), end=end)


def route_links(
    node_positions: Mapping[str, NodePosition],
    links: Sequence[FrameLink],
    values: Optional[Mapping[str, float]] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> list[LinkPath]:
    """
    Assign ports and connector curves for the links of one frame.

    Args:
        node_positions: Geometry of the nodes in this frame
        links: Links in draw order; links with an endpoint missing from
            ``node_positions`` are skipped
        values: Optional link key -> value to report instead of the raw
            link value (the real-time stabilizer passes smoothed values)
        config: Layout configuration (port spacing, curvature)

    Returns:
        One LinkPath per routed link, in link order
    """
    allocator = PortAllocator(config.port_spacing, config.min_ports)
    paths: list[LinkPath] = []

    for link in links:
        source = node_positions.get(link.source)
        target = node_positions.get(link.target)
        if source is None or target is None:
            continue

        source_port = allocator.claim(link.source, Side.EAST, source.height)
        target_port = allocator.claim(link.target, Side.WEST, target.height)
        curve = connector(source, target, source_port, target_port, config.curvature)

        value = link.value
        if values is not None:
            value = values.get(link.key, link.value)
        paths.append(LinkPath(source=link.source, target=link.target, value=value, curve=curve))

    return paths


__all__ = [
    "Side",
    "Port",
    "CubicBezier",
    "PortAllocator",
    "port_count",
    "pick_port",
    "connector",
    "route_links",
]
