"""
Position override data contract.

A drag interaction outside the engine stores a node's new position on the
frames (``FrameNode.custom_x``/``custom_y``) or hands the engines an explicit
mapping. These helpers are pure: they return new frames and never mutate the
ones they are given.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Optional, Sequence

from .types import Frame, FrameLike, LayoutState, OverrideLike
from .validation import ValidationError, coerce_frame, coerce_override, parse_timestamp


def apply_position_override(
    frames: Sequence[FrameLike],
    node_name: str,
    x: float,
    y: float,
) -> list[Frame]:
    """
    Set an override position for a node in every frame that contains it.

    Args:
        frames: Frames to update
        node_name: Name of the dragged node
        x: New x coordinate (top-left)
        y: New y coordinate (top-left)

    Returns:
        New list of frames; frames without the node are returned unchanged.
    """
    updated: list[Frame] = []
    for raw in frames:
        frame = coerce_frame(raw)
        if node_name not in frame.node_names:
            updated.append(frame)
            continue
        nodes = [
            replace(node, custom_x=float(x), custom_y=float(y)) if node.name == node_name else node
            for node in frame.nodes
        ]
        updated.append(replace(frame, nodes=nodes))
    return updated


def reset_overrides(
    frames: Sequence[FrameLike],
    node_names: Optional[Iterable[str]] = None,
) -> list[Frame]:
    """
    Remove override positions from frames.

    Args:
        frames: Frames to update
        node_names: Only clear these nodes (default: all nodes)

    Returns:
        New list of frames without the selected overrides
    """
    selected = set(node_names) if node_names is not None else None
    updated: list[Frame] = []
    for raw in frames:
        frame = coerce_frame(raw)
        nodes = [
            replace(node, custom_x=None, custom_y=None)
            if selected is None or node.name in selected
            else node
            for node in frame.nodes
        ]
        updated.append(replace(frame, nodes=nodes))
    return updated


def collect_overrides(layouts: Iterable[LayoutState]) -> dict[str, tuple[float, float]]:
    """
    Extract the nodes that currently carry an override.

    Later layouts win when a node is overridden in several of them.

    Returns:
        Node name -> (x, y) mapping suitable for persisting by the host
    """
    collected: dict[str, tuple[float, float]] = {}
    for state in layouts:
        for name, position in state.node_positions.items():
            if position.is_overridden:
                collected[name] = (position.x, position.y)
    return collected


def resolve_overrides(
    frames: Sequence[Frame],
    overrides: Optional[Mapping[str, OverrideLike]] = None,
) -> dict[str, tuple[float, float]]:
    """
    Merge node-level overrides found in frames with an explicit mapping.

    Frame overrides are applied oldest first, so the most recent frame
    wins; the explicit mapping wins over all of them.
    """
    resolved: dict[str, tuple[float, float]] = {}
    for frame in sorted(frames, key=_frame_order):
        for node in frame.nodes:
            if node.has_override:
                resolved[node.name] = (float(node.custom_x), float(node.custom_y))  # type: ignore[arg-type]

    if overrides:
        for name, position in overrides.items():
            resolved[name] = coerce_override(position)
    return resolved


def _frame_order(frame: Frame) -> float:
    try:
        return parse_timestamp(frame.timestamp)
    except ValidationError:
        return float("-inf")


__all__ = [
    "apply_position_override",
    "reset_overrides",
    "collect_overrides",
    "resolve_overrides",
]
