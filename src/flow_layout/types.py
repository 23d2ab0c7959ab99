"""
Common types for the flow layout engines.

This module provides the data model shared by the historical planner and the
real-time stabilizer:
- Frame, FrameNode, FrameLink: one timestamped flow-graph observation
- NodePosition, LinkPath, LayoutState: computed geometry for one frame
- EventType, Event: layout lifecycle events
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Mapping,
    Optional,
    Sequence,
    TypedDict,
    Union,
)

if TYPE_CHECKING:
    from .ports import CubicBezier


class EventType(IntEnum):
    """
    Layout lifecycle events.

    - start: Layout computation has begun
    - tick: Fired once per produced LayoutState
    - end: All frames have been processed
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    index: int
    timestamp: Any
    state: Optional[LayoutState]


class Side(Enum):
    """Vertical edge of a node where link connectors attach."""

    EAST = "east"  # right edge, outgoing links
    WEST = "west"  # left edge, incoming links

    def opposite(self) -> Side:
        """Get the opposite side."""
        return Side.WEST if self is Side.EAST else Side.EAST


# =============================================================================
# Input: frames
# =============================================================================


@dataclass
class FrameNode:
    """
    Node reference inside a frame.

    Attributes:
        name: Unique node name within the frame
        custom_x: Override x coordinate (set by drag interaction)
        custom_y: Override y coordinate (set by drag interaction)
    """

    name: str
    custom_x: Optional[float] = None
    custom_y: Optional[float] = None

    @property
    def has_override(self) -> bool:
        """True if both override coordinates are set."""
        return self.custom_x is not None and self.custom_y is not None


@dataclass
class FrameLink:
    """Weighted directed link between two named nodes."""

    source: str
    target: str
    value: float = 0.0

    @property
    def key(self) -> str:
        """Cache key in ``"source->target"`` form."""
        return link_key(self.source, self.target)


@dataclass
class Frame:
    """
    One timestamped flow-graph observation.

    Attributes:
        timestamp: Ordering key (ISO-8601 string, epoch seconds or datetime)
        nodes: Node references, unique by name
        links: Weighted links between nodes of this frame
        tick: Optional monotonic sequence number for streamed frames
    """

    timestamp: Union[str, float, int, datetime]
    nodes: list[FrameNode] = field(default_factory=list)
    links: list[FrameLink] = field(default_factory=list)
    tick: Optional[float] = None

    @property
    def node_names(self) -> list[str]:
        """Node names in frame order."""
        return [node.name for node in self.nodes]

    def __repr__(self) -> str:
        return f"Frame(timestamp={self.timestamp!r}, nodes={len(self.nodes)}, links={len(self.links)})"


def link_key(source: str, target: str) -> str:
    """Build the ``"source->target"`` key used for link bookkeeping."""
    return f"{source}->{target}"


# =============================================================================
# Output: layout states
# =============================================================================


@dataclass
class NodePosition:
    """
    Geometry of one node in one frame.

    ``x``/``y`` are the top-left corner of the node rectangle.
    """

    x: float
    y: float
    height: float
    width: float
    layer: int
    is_overridden: bool = False

    @property
    def left(self) -> float:
        """Left edge x coordinate."""
        return self.x

    @property
    def right(self) -> float:
        """Right edge x coordinate."""
        return self.x + self.width

    @property
    def top(self) -> float:
        """Top edge y coordinate."""
        return self.y

    @property
    def bottom(self) -> float:
        """Bottom edge y coordinate."""
        return self.y + self.height

    def get_port_position(self, side: Side, offset: float = 0.5) -> tuple[float, float]:
        """
        Get the (x, y) position of a port on a vertical edge of this node.

        Args:
            side: EAST (right edge) or WEST (left edge)
            offset: Position along the edge (0.0 top to 1.0 bottom)

        Returns:
            (x, y) coordinates of the port
        """
        x = self.right if side == Side.EAST else self.left
        return (x, self.top + self.height * offset)

    def to_dict(self) -> dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "height": self.height,
            "width": self.width,
            "layer": self.layer,
            "isDragged": self.is_overridden,
        }


@dataclass
class LinkPath:
    """Connector for one link in one frame."""

    source: str
    target: str
    value: float
    curve: CubicBezier

    @property
    def path(self) -> str:
        """Serialized SVG path of the connector curve."""
        return self.curve.to_path()

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "path": self.path,
            "value": self.value,
        }


@dataclass
class LayoutState:
    """
    Engine output for one frame.

    Attributes:
        timestamp: Timestamp of the source frame
        node_positions: Node name -> geometry
        link_paths: Connectors in frame link order
    """

    timestamp: Any
    node_positions: dict[str, NodePosition] = field(default_factory=dict)
    link_paths: list[LinkPath] = field(default_factory=list)

    @property
    def layers(self) -> dict[int, list[str]]:
        """Node names grouped by layer, each group sorted top to bottom."""
        grouped: dict[int, list[str]] = {}
        for name, pos in self.node_positions.items():
            grouped.setdefault(pos.layer, []).append(name)
        for names in grouped.values():
            names.sort(key=lambda n: self.node_positions[n].y)
        return dict(sorted(grouped.items()))

    def is_empty(self) -> bool:
        return not self.node_positions

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping in the shape consumed by renderers."""
        return {
            "timestamp": self.timestamp,
            "nodePositions": {name: pos.to_dict() for name, pos in self.node_positions.items()},
            "linkPaths": [link.to_dict() for link in self.link_paths],
        }

    def __repr__(self) -> str:
        return (
            f"LayoutState(timestamp={self.timestamp!r}, nodes={len(self.node_positions)}, "
            f"links={len(self.link_paths)})"
        )


# =============================================================================
# Type aliases for the Pythonic API
# =============================================================================

FrameLike = Union[Frame, Mapping[str, Any]]
"""Input type for frames: Frame objects or mappings with timestamp/nodes/links."""

OverrideLike = Union[tuple[float, float], Sequence[float], Mapping[str, float]]
"""Position override: (x, y) pair or mapping with 'x' and 'y'."""

SizeType = Union[tuple[float, float], list[float], Sequence[float]]
"""Canvas size: (width, height) tuple, list, or sequence."""

EventCallback = Callable[[Optional[Event]], None]


__all__ = [
    "EventType",
    "Event",
    "EventCallback",
    "Side",
    "Frame",
    "FrameNode",
    "FrameLink",
    "link_key",
    "NodePosition",
    "LinkPath",
    "LayoutState",
    # Pythonic API type aliases
    "FrameLike",
    "OverrideLike",
    "SizeType",
]
