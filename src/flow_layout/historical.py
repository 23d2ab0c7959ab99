"""
Historical layout planner.

Lays out a whole, known-in-advance frame sequence with one global node
ordering so that nodes never jump between frames:

1. Gather the union of nodes and their aggregate values across all frames
2. Assign layers from the structurally richest frame
3. Order each layer by a value/connection score
4. Size and stack nodes per layer, place layers horizontally
5. Materialize one LayoutState per frame from the fixed geometry
"""

from __future__ import annotations

import warnings
from collections import defaultdict
from typing import Any, Mapping, Optional, Sequence

from typing_extensions import Self

from .base import BaseFlowLayout
from .config import LayoutConfig
from .geometry import allocate_heights, fit_padding, layer_x_positions, stack_layer
from .overrides import resolve_overrides
from .ports import route_links
from .preprocessing import assign_layers, group_by_layer, has_cycle, remove_cycles
from .types import (
    EventCallback,
    EventType,
    Frame,
    FrameLike,
    FrameLink,
    LayoutState,
    NodePosition,
    OverrideLike,
    SizeType,
)
from .validation import (
    GraphStructureWarning,
    SkippedFrameWarning,
    ValidationError,
    coerce_frame,
    drop_invalid_links,
)


class HistoricalLayout(BaseFlowLayout):
    """
    Stable layout for a complete frame sequence.

    Every frame shares one node ordering, one layering and one set of node
    heights, so the animation only changes which nodes and links are shown
    and how thick the links are.

    Example:
        layout = HistoricalLayout(
            frames=[
                {"timestamp": 0, "nodes": ["A", "B", "C"],
                 "links": [{"source": "A", "target": "B", "value": 10},
                           {"source": "B", "target": "C", "value": 5}]},
                {"timestamp": 1, "nodes": ["A", "B", "C"],
                 "links": [{"source": "A", "target": "B", "value": 20},
                           {"source": "B", "target": "C", "value": 15}]},
            ],
            size=(800, 600),
        )
        layout.run()
        layout.states[0].node_positions["B"].layer  # 1
    """

    def __init__(
        self,
        *,
        frames: Optional[Sequence[FrameLike]] = None,
        size: SizeType = (800.0, 600.0),
        config: Optional[LayoutConfig] = None,
        overrides: Optional[Mapping[str, OverrideLike]] = None,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        """
        Initialize the planner.

        Args:
            frames: Frame sequence (Frame objects or mappings), any order
            size: Canvas size as (width, height)
            config: Geometry and heuristic parameters
            overrides: Node name -> (x, y) positions that replace computed ones
            on_start: Callback for start event
            on_tick: Callback fired once per produced LayoutState
            on_end: Callback for end event
        """
        super().__init__(
            size=size,
            config=config,
            overrides=overrides,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )
        self._frames: list[Frame] = []
        self._states: list[LayoutState] = []

        # Global geometry shared by every frame
        self._node_values: dict[str, float] = {}
        self._connection_counts: dict[str, int] = {}
        self._node_layer: dict[str, int] = {}
        self._layers: list[list[str]] = []
        self._node_y: dict[str, float] = {}
        self._node_height: dict[str, float] = {}
        self._layer_x: dict[int, float] = {}
        self._reference_index: Optional[int] = None

        if frames is not None:
            self.frames = frames

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def frames(self) -> list[Frame]:
        """Get the normalized frames that passed validation."""
        return self._frames

    @frames.setter
    def frames(self, value: Sequence[FrameLike]) -> None:
        """
        Set frames, dropping malformed ones.

        Frames that cannot be normalized, have no nodes, or lose every link
        to validation are skipped with a SkippedFrameWarning.
        """
        self._frames = []
        for index, raw in enumerate(value):
            try:
                frame = coerce_frame(raw)
            except ValidationError as exc:
                warnings.warn(
                    f"Skipping frame {index}: {exc}", SkippedFrameWarning, stacklevel=3
                )
                continue

            if not frame.nodes:
                warnings.warn(
                    f"Skipping frame {frame.timestamp!r}: frame has no nodes",
                    SkippedFrameWarning,
                    stacklevel=3,
                )
                continue

            cleaned = drop_invalid_links(frame)
            if frame.links and not cleaned.links:
                warnings.warn(
                    f"Skipping frame {frame.timestamp!r}: all links reference unknown nodes",
                    SkippedFrameWarning,
                    stacklevel=3,
                )
                continue
            self._frames.append(cleaned)

    @property
    def states(self) -> list[LayoutState]:
        """Get the layout states produced by run(), one per valid frame."""
        return self._states

    @property
    def node_layers(self) -> dict[str, int]:
        """Get the permanent layer of every node seen in any frame."""
        return dict(self._node_layer)

    @property
    def layer_order(self) -> list[list[str]]:
        """Get the fixed top-to-bottom node order of each layer."""
        return [list(layer) for layer in self._layers]

    @property
    def node_values(self) -> dict[str, float]:
        """Get the aggregate value of every node across all frames."""
        return dict(self._node_values)

    @property
    def reference_frame(self) -> Optional[Frame]:
        """Get the frame whose topology was used for layering."""
        if self._reference_index is None:
            return None
        return self._frames[self._reference_index]

    # -------------------------------------------------------------------------
    # Phase 1: Aggregation
    # -------------------------------------------------------------------------

    def _gather(self) -> list[str]:
        """Collect the node union, aggregate values and connection counts."""
        names: dict[str, None] = {}
        values: dict[str, float] = defaultdict(float)
        connections: dict[str, int] = defaultdict(int)

        for frame in self._frames:
            for node in frame.nodes:
                names.setdefault(node.name, None)
            for link in frame.links:
                values[link.source] += link.value
                values[link.target] += link.value
                connections[link.source] += 1
                connections[link.target] += 1

        self._node_values = {name: values.get(name, 0.0) for name in names}
        self._connection_counts = {name: connections.get(name, 0) for name in names}
        return list(names)

    def _select_reference_frame(self) -> Frame:
        """Pick the frame with the most nodes + links (first one on ties)."""
        best_index = 0
        best_size = -1
        for index, frame in enumerate(self._frames):
            size = len(frame.nodes) + len(frame.links)
            if size > best_size:
                best_index, best_size = index, size
        self._reference_index = best_index
        return self._frames[best_index]

    # -------------------------------------------------------------------------
    # Phase 2: Layer Assignment
    # -------------------------------------------------------------------------

    def _assign_layers(self, names: list[str], reference: Frame) -> None:
        """Layer every node from the reference frame's link topology."""
        links: Sequence[Any] = reference.links
        if has_cycle(names, links):
            edges, reversed_edges = remove_cycles(names, links)
            warnings.warn(
                f"Reference frame {reference.timestamp!r} contains cycles; "
                f"reversed {len(reversed_edges)} link(s) for layering.",
                GraphStructureWarning,
                stacklevel=4,
            )
            links = [FrameLink(source=src, target=tgt) for src, tgt in edges]

        self._node_layer = assign_layers(names, links)

    # -------------------------------------------------------------------------
    # Phase 3: Ordering within layers
    # -------------------------------------------------------------------------

    def _score(self, name: str) -> float:
        return (
            self.config.value_weight * self._node_values.get(name, 0.0)
            + self.config.connection_weight * self._connection_counts.get(name, 0)
        )

    def _order_layer(self, names: list[str]) -> list[str]:
        """
        Order one layer by descending score.

        Nodes whose scores are within ``score_tolerance`` of their tier's
        leader form a tier ordered alphabetically. With
        ``center_heavy_nodes`` the heaviest tier goes in the middle and the
        following tiers alternate above and below it.
        """
        ranked = sorted(names, key=lambda n: (-self._score(n), n))

        tiers: list[list[str]] = []
        leader_score = 0.0
        for name in ranked:
            score = self._score(name)
            if tiers and leader_score - score <= score * self.config.score_tolerance:
                tiers[-1].append(name)
            else:
                tiers.append([name])
                leader_score = score
        for tier in tiers:
            tier.sort()

        if not self.config.center_heavy_nodes:
            return [name for tier in tiers for name in tier]

        ordered: list[str] = []
        for rank, tier in enumerate(tiers):
            if rank % 2 == 1:
                ordered = tier + ordered
            else:
                ordered = ordered + tier
        return ordered

    # -------------------------------------------------------------------------
    # Phase 4: Coordinate Assignment
    # -------------------------------------------------------------------------

    def _assign_coordinates(self) -> None:
        """Compute the global y/height of every node and x of every layer."""
        config = self.config
        usable_height = config.usable_height(self.height)
        min_height = config.min_height_for(self.height)

        for layer in self._layers:
            padding = fit_padding(len(layer), usable_height, config.node_padding)
            heights = allocate_heights(
                [self._node_values.get(name, 0.0) for name in layer],
                usable_height,
                min_height,
                config.max_node_height,
                padding,
            )
            ys = stack_layer(heights, config.margin_top, usable_height, padding)
            for name, y, h in zip(layer, ys, heights):
                self._node_y[name] = float(y)
                self._node_height[name] = float(h)

        self._layer_x = layer_x_positions(range(len(self._layers)), self.width, config)

    # -------------------------------------------------------------------------
    # Phase 5: Per-frame materialization
    # -------------------------------------------------------------------------

    def _materialize(self, frame: Frame, overrides: Mapping[str, tuple[float, float]]) -> LayoutState:
        """Build the LayoutState of one frame from the global geometry."""
        config = self.config
        positions: dict[str, NodePosition] = {}

        for node in frame.nodes:
            name = node.name
            layer = self._node_layer[name]
            position = NodePosition(
                x=self._layer_x.get(layer, config.margin_left),
                y=self._node_y[name],
                height=self._node_height[name],
                width=config.node_width,
                layer=layer,
            )
            positions[name] = self._apply_override(name, position, overrides)

        links = route_links(positions, frame.links, config=config)
        return LayoutState(timestamp=frame.timestamp, node_positions=positions, link_paths=links)

    # -------------------------------------------------------------------------
    # Layout Computation
    # -------------------------------------------------------------------------

    def run(self, **kwargs: Any) -> Self:
        """
        Compute the global geometry and one LayoutState per frame.

        Frames that fail while being materialized are skipped with a
        SkippedFrameWarning; the rest of the batch still renders.

        Returns:
            self (for chaining)
        """
        self._states = []
        self.trigger({"type": EventType.start, "index": 0})

        if self._frames:
            names = self._gather()
            reference = self._select_reference_frame()
            self._assign_layers(names, reference)
            self._layers = [self._order_layer(layer) for layer in group_by_layer(self._node_layer)]
            self._assign_coordinates()

            overrides = resolve_overrides(self._frames, self._overrides)
            for index, frame in enumerate(self._frames):
                try:
                    state = self._materialize(frame, overrides)
                except (KeyError, ValueError, TypeError) as exc:
                    warnings.warn(
                        f"Error processing frame {frame.timestamp!r}: {exc}",
                        SkippedFrameWarning,
                        stacklevel=2,
                    )
                    continue
                self._states.append(state)
                self.trigger(
                    {"type": EventType.tick, "index": index, "timestamp": frame.timestamp, "state": state}
                )

        self.trigger({"type": EventType.end, "index": len(self._states)})
        return self


def plan_historical_layout(
    frames: Sequence[FrameLike],
    width: float = 800.0,
    height: float = 600.0,
    overrides: Optional[Mapping[str, OverrideLike]] = None,
    config: Optional[LayoutConfig] = None,
) -> list[LayoutState]:
    """
    Lay out a complete frame sequence with one stable global ordering.

    Args:
        frames: Frames in any order (Frame objects or mappings)
        width: Canvas width
        height: Canvas height
        overrides: Node name -> (x, y) positions that replace computed ones
        config: Geometry and heuristic parameters

    Returns:
        One LayoutState per valid frame, in input order
    """
    layout = HistoricalLayout(
        frames=frames,
        size=(width, height),
        config=config,
        overrides=overrides,
    )
    return layout.run().states


__all__ = ["HistoricalLayout", "plan_historical_layout"]
