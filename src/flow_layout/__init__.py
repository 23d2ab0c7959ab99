"""
flow-layout: Temporally stable layouts for animated flow (Sankey) diagrams.

This package positions the nodes and routes the links of a flow graph that
changes over time, so that an animation between frames stays calm.

Available engines:
- historical: Batch planner with one global ordering for a known sequence
- realtime: Incremental stabilizer with a caller-owned smoothing cache
"""

__version__ = "0.1.0"

# Base class shared by both engines
from .base import BaseFlowLayout

# Tunable constants
from .config import DEFAULT_CONFIG, LayoutConfig

# Historical planner
from .historical import HistoricalLayout, plan_historical_layout

# Stability metrics
from .metrics import (
    distinct_orderings,
    height_fit_violations,
    layer_conflicts,
    mean_displacement,
    stability_summary,
    vertical_order,
)

# Position overrides
from .overrides import (
    apply_position_override,
    collect_overrides,
    reset_overrides,
    resolve_overrides,
)

# Ports and connectors
from .ports import CubicBezier, Port, PortAllocator, pick_port, port_count, route_links

# Preprocessing utilities
from .preprocessing import (
    assign_layers,
    detect_cycle,
    has_cycle,
    remove_cycles,
    topological_sort,
)

# Real-time stabilizer
from .realtime import (
    CachedNode,
    RealtimeLayout,
    SmoothingCache,
    StabilizedFrame,
    stabilize_realtime_layout,
)

# Synthetic data
from .synthetic import generate_frames
from .types import (
    Event,
    EventType,
    Frame,
    FrameLike,
    FrameLink,
    FrameNode,
    LayoutState,
    LinkPath,
    NodePosition,
    OverrideLike,
    Side,
    SizeType,
)

# Validation utilities
from .validation import (
    DroppedLinkWarning,
    GraphStructureWarning,
    InvalidCanvasSizeError,
    InvalidConfigError,
    InvalidFrameError,
    InvalidLinkError,
    LayoutWarning,
    SkippedFrameWarning,
    StreamOrderWarning,
    ValidationError,
    coerce_frame,
    validate_canvas_size,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Frame",
    "FrameNode",
    "FrameLink",
    "NodePosition",
    "LinkPath",
    "LayoutState",
    "EventType",
    "Event",
    "Side",
    # Type aliases for API
    "FrameLike",
    "OverrideLike",
    "SizeType",
    # Configuration
    "LayoutConfig",
    "DEFAULT_CONFIG",
    # Engines
    "BaseFlowLayout",
    "HistoricalLayout",
    "plan_historical_layout",
    "RealtimeLayout",
    "CachedNode",
    "SmoothingCache",
    "StabilizedFrame",
    "stabilize_realtime_layout",
    # Overrides
    "apply_position_override",
    "collect_overrides",
    "reset_overrides",
    "resolve_overrides",
    # Ports
    "Port",
    "PortAllocator",
    "CubicBezier",
    "port_count",
    "pick_port",
    "route_links",
    # Preprocessing
    "assign_layers",
    "detect_cycle",
    "has_cycle",
    "remove_cycles",
    "topological_sort",
    # Metrics
    "vertical_order",
    "distinct_orderings",
    "layer_conflicts",
    "height_fit_violations",
    "mean_displacement",
    "stability_summary",
    # Synthetic data
    "generate_frames",
    # Validation
    "ValidationError",
    "InvalidCanvasSizeError",
    "InvalidConfigError",
    "InvalidFrameError",
    "InvalidLinkError",
    "LayoutWarning",
    "DroppedLinkWarning",
    "SkippedFrameWarning",
    "GraphStructureWarning",
    "StreamOrderWarning",
    "coerce_frame",
    "validate_canvas_size",
]
