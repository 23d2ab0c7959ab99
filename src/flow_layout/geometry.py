"""
Shared geometry for the historical planner and the real-time stabilizer.

Both engines place layers the same way horizontally and size nodes the same
way vertically; they differ only in where the values come from and whether
the result is smoothed against the previous frame.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from .config import LayoutConfig


def layer_x_positions(
    layers: Iterable[int],
    width: float,
    config: LayoutConfig,
) -> dict[int, float]:
    """
    Spread layers evenly across the usable width.

    The last layer ends flush with the right margin. A single layer sits
    on the left margin.

    Args:
        layers: Layer indices in use (the highest one sets the layer count)
        width: Canvas width
        config: Layout configuration

    Returns:
        Mapping from every layer index in ``range(layer_count)`` to its x.
    """
    layer_count = max(layers, default=0) + 1
    if layer_count == 1:
        return {0: config.margin_left}

    span = max(0.0, config.usable_width(width) - config.node_width)
    spacing = span / (layer_count - 1)
    return {layer: config.margin_left + layer * spacing for layer in range(layer_count)}


def fit_padding(count: int, usable_height: float, padding: float) -> float:
    """
    Shrink the inter-node padding when it alone would eat the layer.

    Padding never takes more than half the usable height.
    """
    if count < 2:
        return padding
    return min(padding, usable_height / (2 * (count - 1)))


def allocate_heights(
    values: Sequence[float],
    usable_height: float,
    min_height: float,
    max_height: float,
    padding: float,
) -> np.ndarray:
    """
    Size the nodes of one layer proportionally to their values.

    Each node gets its share of the layer's total value times the height
    left after padding, clamped to ``[min_height, max_height]``. Values
    below 1 count as 1 so empty nodes stay visible. When the clamped
    heights plus padding exceed the usable height, all heights are scaled
    by one factor so the layer fits exactly.

    Args:
        values: Node values in layer order
        usable_height: Vertical space inside the margins
        min_height: Minimum node height
        max_height: Maximum node height
        padding: Gap between consecutive nodes (already fitted)

    Returns:
        Array of node heights in layer order
    """
    count = len(values)
    if count == 0:
        return np.zeros(0)

    available = max(0.0, usable_height - (count - 1) * padding)
    weights = np.maximum(np.asarray(values, dtype=float), 1.0)
    proportions = weights / weights.sum()
    heights = np.clip(np.floor(proportions * available), min_height, max(min_height, max_height))
    return fit_heights(heights, available)


def fit_heights(heights: np.ndarray, available: float) -> np.ndarray:
    """Scale heights down by a single factor if their sum exceeds ``available``."""
    total = float(heights.sum())
    if total > available and total > 0:
        return heights * (available / total)
    return heights


def stack_layer(
    heights: np.ndarray,
    top: float,
    usable_height: float,
    padding: float,
) -> np.ndarray:
    """
    Stack nodes top to bottom and center the block vertically.

    Returns:
        Array of node y coordinates (top edges) in layer order
    """
    if len(heights) == 0:
        return np.zeros(0)

    block = float(heights.sum()) + padding * (len(heights) - 1)
    offset = max(0.0, (usable_height - block) / 2)
    steps = np.concatenate(([0.0], np.cumsum(heights + padding)[:-1]))
    return top + offset + steps


def settle_layer(
    ys: np.ndarray,
    heights: np.ndarray,
    top: float,
    usable_height: float,
    padding: float,
) -> np.ndarray:
    """
    Push smoothed node positions apart so they neither overlap nor leave
    the usable area, keeping their order.

    Assumes the heights plus padding fit in ``usable_height``.
    """
    settled = np.array(ys, dtype=float)
    count = len(settled)
    if count == 0:
        return settled

    bottom = top + usable_height
    floor = top
    for i in range(count):
        settled[i] = max(settled[i], floor)
        floor = settled[i] + heights[i] + padding

    ceiling = bottom
    for i in range(count - 1, -1, -1):
        settled[i] = min(settled[i], ceiling - heights[i])
        ceiling = settled[i] - padding

    return settled


def blend(previous: Optional[float], current: float, alpha: float) -> float:
    """
    Exponential smoothing step: ``previous * (1 - alpha) + current * alpha``.

    Without a previous estimate the current value is returned unchanged.
    """
    if previous is None:
        return current
    return previous * (1 - alpha) + current * alpha


__all__ = [
    "layer_x_positions",
    "fit_padding",
    "allocate_heights",
    "fit_heights",
    "stack_layer",
    "settle_layer",
    "blend",
]
