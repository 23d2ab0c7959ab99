"""
Tunable layout constants.

All empirically chosen numbers used by the planner and the stabilizer live
here so callers can adjust them without touching the algorithms.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Optional

from .validation import InvalidConfigError, validate_alpha


@dataclass(frozen=True)
class LayoutConfig:
    """
    Geometry and heuristic parameters shared by both layout engines.

    Attributes:
        margin_top: Space above the usable area
        margin_right: Space right of the usable area
        margin_bottom: Space below the usable area
        margin_left: Space left of the usable area
        node_width: Fixed width of every node rectangle
        node_padding: Vertical gap between nodes of the same layer
        min_node_height: Minimum node height. None derives it from the
            canvas height as ``max(15, min(30, height / 20))``.
        max_node_height: Maximum node height
        value_weight: Weight of aggregate value in the ordering score
        connection_weight: Weight of connection count in the ordering score
        score_tolerance: Relative score difference below which two nodes
            are ordered alphabetically instead of by score
        center_heavy_nodes: Place the heaviest nodes in the middle of their
            layer instead of at the top
        smoothing_alpha: Exponential smoothing factor for the real-time
            stabilizer (lower = smoother, higher = more reactive)
        stale_ticks: Ticks a node may be absent before its cache entry
            is evicted
        port_spacing: Node height per connector port
        min_ports: Minimum number of ports on a node edge
        curvature: Horizontal position of the connector control points
            as a fraction of the port-to-port distance
    """

    margin_top: float = 20.0
    margin_right: float = 20.0
    margin_bottom: float = 20.0
    margin_left: float = 20.0
    node_width: float = 20.0
    node_padding: float = 10.0
    min_node_height: Optional[float] = None
    max_node_height: float = 100.0
    value_weight: float = 0.7
    connection_weight: float = 10.0
    score_tolerance: float = 0.2
    center_heavy_nodes: bool = True
    smoothing_alpha: float = 0.3
    stale_ticks: int = 5
    port_spacing: float = 10.0
    min_ports: int = 3
    curvature: float = 0.5

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name in ("min_node_height", "center_heavy_nodes"):
                continue
            value = getattr(self, f.name)
            if value < 0:
                raise InvalidConfigError(f"{f.name} must be non-negative, got {value}")

        if self.node_width <= 0:
            raise InvalidConfigError(f"node_width must be positive, got {self.node_width}")
        if self.max_node_height <= 0:
            raise InvalidConfigError(
                f"max_node_height must be positive, got {self.max_node_height}"
            )
        if self.min_node_height is not None and self.min_node_height <= 0:
            raise InvalidConfigError(
                f"min_node_height must be positive, got {self.min_node_height}"
            )
        if self.port_spacing <= 0:
            raise InvalidConfigError(f"port_spacing must be positive, got {self.port_spacing}")
        if self.min_ports < 1:
            raise InvalidConfigError(f"min_ports must be >= 1, got {self.min_ports}")
        try:
            validate_alpha(self.smoothing_alpha)
        except ValueError as exc:
            raise InvalidConfigError(str(exc)) from exc

    def usable_width(self, width: float) -> float:
        """Horizontal space left inside the margins."""
        return max(0.0, width - self.margin_left - self.margin_right)

    def usable_height(self, height: float) -> float:
        """Vertical space left inside the margins."""
        return max(0.0, height - self.margin_top - self.margin_bottom)

    def min_height_for(self, height: float) -> float:
        """Minimum node height for a canvas of the given height."""
        if self.min_node_height is not None:
            return self.min_node_height
        return max(15.0, min(30.0, height / 20.0))


DEFAULT_CONFIG = LayoutConfig()


__all__ = ["LayoutConfig", "DEFAULT_CONFIG"]
