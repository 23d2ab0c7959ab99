"""
Temporal stability metrics.

Quantitative measures of how calm an animated flow layout is:
- Vertical order: top-to-bottom node order of each layer
- Distinct orderings: how many different orders a node set goes through
- Layer conflicts: nodes whose layer changes between frames
- Height fit violations: layers taller than the canvas
- Mean displacement: average node movement between consecutive frames

All metrics work on LayoutState sequences from either engine.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from .config import DEFAULT_CONFIG, LayoutConfig
from .types import LayoutState

Signature = tuple[tuple[int, tuple[str, ...]], ...]


def vertical_order(state: LayoutState) -> Signature:
    """
    Top-to-bottom order signature of a layout.

    Returns:
        Tuple of (layer, names ordered by y) pairs, sorted by layer
    """
    return tuple((layer, tuple(names)) for layer, names in state.layers.items())


def distinct_orderings(states: Sequence[LayoutState]) -> int:
    """
    Count distinct vertical orderings across frames.

    Only nodes present in every frame are compared, so nodes that come and
    go do not count as reorderings.

    Returns:
        Number of distinct orderings (1 for a perfectly stable sequence,
        0 for an empty one)
    """
    if not states:
        return 0

    common = set(states[0].node_positions)
    for state in states[1:]:
        common &= set(state.node_positions)

    signatures = set()
    for state in states:
        signatures.add(
            tuple(
                (layer, tuple(n for n in names if n in common))
                for layer, names in state.layers.items()
                if any(n in common for n in names)
            )
        )
    return len(signatures)


def layer_conflicts(states: Sequence[LayoutState]) -> dict[str, set[int]]:
    """
    Find nodes that were placed in more than one layer.

    Returns:
        Node name -> set of layers, only for nodes with more than one
    """
    seen: dict[str, set[int]] = {}
    for state in states:
        for name, position in state.node_positions.items():
            seen.setdefault(name, set()).add(position.layer)
    return {name: layers for name, layers in seen.items() if len(layers) > 1}


def height_fit_violations(
    states: Sequence[LayoutState],
    height: float,
    config: LayoutConfig = DEFAULT_CONFIG,
    tolerance: float = 1e-6,
) -> list[tuple[Any, int]]:
    """
    Find layers whose non-overridden nodes leave the usable canvas height.

    Returns:
        List of (timestamp, layer) pairs
    """
    top = config.margin_top
    bottom = height - config.margin_bottom
    violations: list[tuple[Any, int]] = []

    for state in states:
        for layer, names in state.layers.items():
            placed = [
                state.node_positions[n] for n in names if not state.node_positions[n].is_overridden
            ]
            if not placed:
                continue
            span_top = min(p.top for p in placed)
            span_bottom = max(p.bottom for p in placed)
            if span_top < top - tolerance or span_bottom > bottom + tolerance:
                violations.append((state.timestamp, layer))
    return violations


def mean_displacement(states: Sequence[LayoutState]) -> float:
    """
    Average distance a node moves between consecutive frames.

    Only nodes present in both frames of a pair contribute.

    Returns:
        Mean Euclidean displacement (0.0 if nothing can be compared)
    """
    moves: list[float] = []
    for previous, current in zip(states, states[1:]):
        shared = [n for n in current.node_positions if n in previous.node_positions]
        if not shared:
            continue
        before = np.array([[previous.node_positions[n].x, previous.node_positions[n].y] for n in shared])
        after = np.array([[current.node_positions[n].x, current.node_positions[n].y] for n in shared])
        moves.extend(np.linalg.norm(after - before, axis=1).tolist())

    if not moves:
        return 0.0
    return float(np.mean(moves))


def stability_summary(
    states: Sequence[LayoutState],
    height: Optional[float] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    """
    Compute a summary of stability metrics.

    Args:
        states: Layout states in display order
        height: Canvas height; enables the height-fit check
        config: Layout configuration used to produce the states

    Returns:
        Dictionary with all metrics:
        - frames: Number of states
        - distinct_orderings: Number of distinct vertical orderings
        - layer_conflicts: Number of nodes seen in several layers
        - height_fit_violations: Number of overflowing layers (None without height)
        - mean_displacement: Average per-frame node movement
    """
    return {
        "frames": len(states),
        "distinct_orderings": distinct_orderings(states),
        "layer_conflicts": len(layer_conflicts(states)),
        "height_fit_violations": (
            len(height_fit_violations(states, height, config)) if height is not None else None
        ),
        "mean_displacement": mean_displacement(states),
    }


__all__ = [
    "vertical_order",
    "distinct_orderings",
    "layer_conflicts",
    "height_fit_violations",
    "mean_displacement",
    "stability_summary",
]
