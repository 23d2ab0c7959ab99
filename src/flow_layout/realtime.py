"""
Real-time layout stabilizer.

Lays out a stream of frames one at a time. Nothing about the future is
known, so stability comes from a caller-owned SmoothingCache that remembers
each node's layer, smoothed position and height, and each link's smoothed
value between calls:

1. Normalize the frame and drop dangling links
2. Infer layers for nodes never seen before (then keep them forever)
3. Accumulate node values, smooth link values
4. Order each layer by remembered position, blend sizes and positions
5. Place layers horizontally and build node/link geometry
6. Evict nodes and links that have been gone for too long

The cache must be threaded through calls in arrival order; independent
streams use independent caches.
"""

from __future__ import annotations

import warnings
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, NamedTuple, Optional, Sequence

import numpy as np
from typing_extensions import Self

from .base import BaseFlowLayout
from .config import LayoutConfig
from .geometry import (
    allocate_heights,
    blend,
    fit_heights,
    fit_padding,
    layer_x_positions,
    settle_layer,
    stack_layer,
)
from .overrides import resolve_overrides
from .ports import route_links
from .preprocessing import build_adjacency, topological_sort
from .types import (
    EventCallback,
    EventType,
    Frame,
    FrameLike,
    LayoutState,
    NodePosition,
    OverrideLike,
    SizeType,
)
from .validation import (
    SkippedFrameWarning,
    StreamOrderWarning,
    ValidationError,
    coerce_frame,
    drop_invalid_links,
    parse_timestamp,
)


@dataclass
class CachedNode:
    """
    Remembered state of one node.

    Attributes:
        layer: Permanent layer, assigned on first sight
        last_seen: Tick at which the node was last visible
        y: Last smoothed y (None until first placed)
        height: Last smoothed height (None until first placed)
        sink: True if the node had inbound but no outbound links when first seen
    """

    layer: int
    last_seen: float
    y: Optional[float] = None
    height: Optional[float] = None
    sink: bool = False

    @property
    def y_index(self) -> int:
        """Alias of ``layer`` under its historical cache name."""
        return self.layer


@dataclass
class SmoothingCache:
    """
    Caller-owned state of one real-time session.

    Entries go through an explicit lifecycle: insert() on first sight,
    touch()/place() while visible, evict_stale() once gone for longer than
    the staleness window. A node's layer is never changed after insert().
    """

    nodes: dict[str, CachedNode] = field(default_factory=dict)
    link_values: dict[str, float] = field(default_factory=dict)
    last_tick: Optional[float] = None

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, name: str) -> Optional[CachedNode]:
        return self.nodes.get(name)

    def insert(self, name: str, layer: int, tick: float, sink: bool = False) -> CachedNode:
        """Create the entry for a new node; an existing entry is returned unchanged."""
        entry = self.nodes.get(name)
        if entry is None:
            entry = CachedNode(layer=layer, last_seen=tick, sink=sink)
            self.nodes[name] = entry
        return entry

    def touch(self, name: str, tick: float) -> CachedNode:
        entry = self.nodes[name]
        entry.last_seen = tick
        return entry

    def place(self, name: str, y: float, height: float) -> None:
        """Store the smoothed geometry of a node."""
        entry = self.nodes[name]
        entry.y = y
        entry.height = height

    def smooth_link(self, key: str, value: float, alpha: float) -> float:
        """
        Fold a raw link value into the smoothed estimate.

        A link without history starts from 0, so new links grow in.
        """
        smoothed = blend(self.link_values.get(key, 0.0), value, alpha)
        self.link_values[key] = smoothed
        return smoothed

    def max_layer(self, include_sinks: bool = True) -> Optional[int]:
        layers = [e.layer for e in self.nodes.values() if include_sinks or not e.sink]
        return max(layers, default=None)

    def evict_stale(
        self,
        tick: float,
        visible: Iterable[str],
        active_links: Iterable[str],
        window: int,
    ) -> tuple[list[str], list[str]]:
        """
        Drop nodes unseen for more than ``window`` ticks and links absent now.

        Returns:
            (evicted node names, evicted link keys)
        """
        visible_set = set(visible)
        active_set = set(active_links)
        threshold = tick - window

        stale_nodes = [
            name
            for name, entry in self.nodes.items()
            if entry.last_seen < threshold and name not in visible_set
        ]
        for name in stale_nodes:
            del self.nodes[name]

        stale_links = [key for key in self.link_values if key not in active_set]
        for key in stale_links:
            del self.link_values[key]

        return stale_nodes, stale_links

    @classmethod
    def seeded_from(cls, layout: LayoutState, tick: float) -> SmoothingCache:
        """Rebuild a cache from a previously returned LayoutState."""
        cache = cls(last_tick=tick)
        deepest = max((p.layer for p in layout.node_positions.values()), default=0)
        for name, position in layout.node_positions.items():
            cache.nodes[name] = CachedNode(
                layer=position.layer,
                last_seen=tick,
                y=None if position.is_overridden else position.y,
                height=position.height,
                sink=0 < position.layer == deepest,
            )
        for link in layout.link_paths:
            cache.link_values[f"{link.source}->{link.target}"] = link.value
        return cache


class StabilizedFrame(NamedTuple):
    """Result of one stabilizer call."""

    layout: LayoutState
    cache: SmoothingCache


class RealtimeLayout(BaseFlowLayout):
    """
    Incremental layout for streamed frames.

    The layout object holds only configuration; per-stream state lives in
    the SmoothingCache passed to and returned from step().

    Example:
        layout = RealtimeLayout(size=(800, 600))
        cache = None
        state = None
        for frame in stream:
            state, cache = layout.step(frame, state, cache)
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
        Initialize the stabilizer.

        Args:
            frames: Recorded stream to replay with run()
            size: Canvas size as (width, height)
            config: Geometry and heuristic parameters
            overrides: Node name -> (x, y) positions that replace computed ones
            on_start: Callback for start event (run() only)
            on_tick: Callback fired once per produced LayoutState
            on_end: Callback for end event (run() only)
        """
        super().__init__(
            size=size,
            config=config,
            overrides=overrides,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )
        self._frames: list[FrameLike] = list(frames) if frames is not None else []
        self._states: list[LayoutState] = []
        self._cache: Optional[SmoothingCache] = None

    @property
    def states(self) -> list[LayoutState]:
        """Get the layout states produced by the last run()."""
        return self._states

    @property
    def cache(self) -> Optional[SmoothingCache]:
        """Get the cache left by the last run()."""
        return self._cache

    # -------------------------------------------------------------------------
    # Layer inference
    # -------------------------------------------------------------------------

    def _infer_layers(self, frame: Frame, cache: SmoothingCache, tick: float) -> None:
        """
        Assign layers to nodes the cache has never seen.

        Sources (no inbound links) go to layer 0. Intermediate nodes go one
        past their deepest cached predecessor, or to layer 1 if none is
        known. Sinks go one past the deepest non-sink layer, and never
        before their own predecessors. New nodes are resolved sources
        first, then intermediates in topological order, then sinks.
        """
        names = frame.node_names
        new = [name for name in names if name not in cache]
        if not new:
            return

        outgoing, incoming = build_adjacency(names, frame.links)

        def after_parents(name: str) -> Optional[int]:
            parents = [cache.nodes[p].layer for p in incoming[name] if p in cache]
            return max(parents) + 1 if parents else None

        sinks = [n for n in new if incoming[n] and not outgoing[n]]
        middles = [n for n in new if incoming[n] and outgoing[n]]

        for name in new:
            if not incoming[name]:
                cache.insert(name, 0, tick)

        order = topological_sort(names, frame.links) or names
        rank = {name: i for i, name in enumerate(order)}
        for name in sorted(middles, key=rank.__getitem__):
            layer = after_parents(name)
            cache.insert(name, layer if layer is not None else 1, tick)

        if sinks:
            deepest = cache.max_layer(include_sinks=False)
            sink_layer = 1 if deepest is None else deepest + 1
            for name in sinks:
                layer = max(sink_layer, after_parents(name) or 1)
                cache.insert(name, layer, tick, sink=True)

    # -------------------------------------------------------------------------
    # Vertical placement
    # -------------------------------------------------------------------------

    def _place_layer(
        self,
        members: list[str],
        node_values: Mapping[str, float],
        cache: SmoothingCache,
    ) -> None:
        """Size and position one layer, smoothing against the cache."""
        config = self.config
        alpha = config.smoothing_alpha
        usable = config.usable_height(self.height)

        # Keep the remembered order; nodes never placed go last
        members = sorted(members, key=lambda n: (cache.nodes[n].y is None, cache.nodes[n].y or 0.0))

        padding = fit_padding(len(members), usable, config.node_padding)
        targets = allocate_heights(
            [node_values.get(name, 0.0) for name in members],
            usable,
            config.min_height_for(self.height),
            config.max_node_height,
            padding,
        )
        heights = np.array(
            [blend(cache.nodes[n].height, float(t), alpha) for n, t in zip(members, targets)]
        )
        heights = fit_heights(heights, max(0.0, usable - (len(members) - 1) * padding))

        target_ys = stack_layer(heights, config.margin_top, usable, padding)
        ys = np.array([blend(cache.nodes[n].y, float(t), alpha) for n, t in zip(members, target_ys)])
        ys = settle_layer(ys, heights, config.margin_top, usable, padding)

        for name, y, h in zip(members, ys, heights):
            cache.place(name, float(y), float(h))

    # -------------------------------------------------------------------------
    # Layout Computation
    # -------------------------------------------------------------------------

    def step(
        self,
        frame: FrameLike,
        previous_layout: Optional[LayoutState] = None,
        cache: Optional[SmoothingCache] = None,
    ) -> StabilizedFrame:
        """
        Lay out one streamed frame.

        Args:
            frame: Current frame (Frame or mapping)
            previous_layout: LayoutState returned by the previous call; used
                to rebuild the cache when ``cache`` is None
            cache: Cache returned by the previous call, or None to start

        Returns:
            StabilizedFrame(layout, cache). The cache is updated in place
            and returned for threading into the next call.

        Raises:
            InvalidFrameError: If the frame cannot be normalized
        """
        config = self.config
        current = drop_invalid_links(coerce_frame(frame))
        tick = current.tick if current.tick is not None else parse_timestamp(current.timestamp)

        if cache is None:
            cache = (
                SmoothingCache.seeded_from(previous_layout, tick)
                if previous_layout is not None
                else SmoothingCache()
            )
        elif cache.last_tick is not None and tick < cache.last_tick:
            warnings.warn(
                f"Frame tick {tick} is older than the last processed tick {cache.last_tick}",
                StreamOrderWarning,
                stacklevel=2,
            )

        names = current.node_names
        if not names:
            warnings.warn(
                f"Frame {current.timestamp!r} has no nodes; returning an empty layout",
                SkippedFrameWarning,
                stacklevel=2,
            )

        self._infer_layers(current, cache, tick)
        for name in names:
            cache.touch(name, tick)

        # Raw values drive sizing; smoothed values drive link weight
        node_values: dict[str, float] = defaultdict(float)
        link_totals: dict[str, float] = {}
        for link in current.links:
            node_values[link.source] += link.value
            node_values[link.target] += link.value
            link_totals[link.key] = link_totals.get(link.key, 0.0) + link.value
        smoothed = {
            key: cache.smooth_link(key, value, config.smoothing_alpha)
            for key, value in link_totals.items()
        }

        by_layer: dict[int, list[str]] = defaultdict(list)
        for name in names:
            by_layer[cache.nodes[name].layer].append(name)
        for members in by_layer.values():
            self._place_layer(members, node_values, cache)

        layer_x = layer_x_positions((e.layer for e in cache.nodes.values()), self.width, config)
        overrides = resolve_overrides([current], self._overrides)
        positions: dict[str, NodePosition] = {}
        for name in names:
            entry = cache.nodes[name]
            position = NodePosition(
                x=layer_x.get(entry.layer, config.margin_left),
                y=entry.y if entry.y is not None else config.margin_top,
                height=entry.height if entry.height is not None else 0.0,
                width=config.node_width,
                layer=entry.layer,
            )
            positions[name] = self._apply_override(name, position, overrides)

        links = route_links(positions, current.links, values=smoothed, config=config)
        state = LayoutState(timestamp=current.timestamp, node_positions=positions, link_paths=links)

        if tick > config.stale_ticks:
            cache.evict_stale(tick, names, link_totals.keys(), config.stale_ticks)
        cache.last_tick = tick

        self.trigger({"type": EventType.tick, "timestamp": current.timestamp, "state": state})
        return StabilizedFrame(state, cache)

    def run(self, frames: Optional[Sequence[FrameLike]] = None, **kwargs: Any) -> Self:
        """
        Replay a recorded stream through a fresh cache.

        Args:
            frames: Frames to replay (default: the frames given at construction)

        Malformed frames are skipped with a SkippedFrameWarning.

        Returns:
            self (for chaining)
        """
        if frames is not None:
            self._frames = list(frames)
        self._states = []
        self._cache = None
        state: Optional[LayoutState] = None
        self.trigger({"type": EventType.start, "index": 0})

        for index, frame in enumerate(self._frames):
            try:
                state, self._cache = self.step(frame, state, self._cache)
            except ValidationError as exc:
                warnings.warn(f"Skipping frame {index}: {exc}", SkippedFrameWarning, stacklevel=2)
                continue
            self._states.append(state)

        self.trigger({"type": EventType.end, "index": len(self._states)})
        return self


def stabilize_realtime_layout(
    frame: FrameLike,
    previous_layout: Optional[LayoutState] = None,
    cache: Optional[SmoothingCache] = None,
    width: float = 800.0,
    height: float = 600.0,
    overrides: Optional[Mapping[str, OverrideLike]] = None,
    config: Optional[LayoutConfig] = None,
) -> StabilizedFrame:
    """
    Lay out one streamed frame against a caller-owned cache.

    Args:
        frame: Current frame (Frame or mapping)
        previous_layout: LayoutState returned by the previous call, or None
        cache: SmoothingCache returned by the previous call, or None to start
        width: Canvas width
        height: Canvas height
        overrides: Node name -> (x, y) positions that replace computed ones
        config: Geometry and heuristic parameters

    Returns:
        StabilizedFrame(layout, cache)
    """
    layout = RealtimeLayout(size=(width, height), config=config, overrides=overrides)
    return layout.step(frame, previous_layout, cache)


__all__ = [
    "CachedNode",
    "SmoothingCache",
    "StabilizedFrame",
    "RealtimeLayout",
    "stabilize_realtime_layout",
]
