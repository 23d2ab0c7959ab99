"""
Synthetic flow data.

Generates frame streams shaped like a typical service topology: sources feed
intermediates, intermediates feed targets, and some sources skip straight to
targets. Useful for demos, benchmarks and tests.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from .types import Frame, FrameLink, FrameNode

DEFAULT_SOURCES = ["Client", "API Gateway"]
DEFAULT_INTERMEDIATES = ["Load Balancer", "App Server", "Cache", "Queue"]
DEFAULT_TARGETS = ["Database", "Blob Storage", "Analytics", "3rd Party API"]


def split_roles(names: Sequence[str]) -> tuple[list[str], list[str], list[str]]:
    """
    Split a flat node list into sources, intermediates and targets.

    The first third become sources, the last third targets (at least one
    each) and the rest intermediates.
    """
    n = len(names)
    s = max(1, n // 3)
    t = max(1, n // 3)
    i = max(0, n - s - t)
    names = list(names)
    return names[:s], names[s : s + i], names[s + i :]


def generate_links(
    sources: Sequence[str],
    intermediates: Sequence[str],
    targets: Sequence[str],
    rng: random.Random,
    direct_probability: float = 0.3,
    value_range: tuple[int, int] = (10, 100),
) -> list[FrameLink]:
    """
    Draw one frame's worth of links.

    Args:
        sources: Source node names
        intermediates: Intermediate node names
        targets: Target node names
        rng: Random generator
        direct_probability: Chance that a source also links straight to targets
        value_range: Inclusive range of integer link values

    Returns:
        List of links
    """
    low, high = value_range
    links: list[FrameLink] = []

    def pick(pool: Sequence[str]) -> list[str]:
        return rng.sample(list(pool), rng.randint(1, len(pool)))

    for source in sources:
        if intermediates:
            for intermediate in pick(intermediates):
                links.append(FrameLink(source, intermediate, float(rng.randint(low, high))))
        if targets and (not intermediates or rng.random() < direct_probability):
            for target in pick(targets):
                links.append(FrameLink(source, target, float(rng.randint(low, high))))

    if targets:
        for intermediate in intermediates:
            for target in pick(targets):
                links.append(FrameLink(intermediate, target, float(rng.randint(low, high))))

    return links


def generate_frames(
    sources: Optional[Sequence[str]] = None,
    intermediates: Optional[Sequence[str]] = None,
    targets: Optional[Sequence[str]] = None,
    steps: int = 60,
    interval: float = 60.0,
    start: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> list[Frame]:
    """
    Generate a synthetic frame stream.

    Args:
        sources: Source node names (default: a small cloud topology)
        intermediates: Intermediate node names
        targets: Target node names
        steps: Number of frames
        interval: Seconds between frames
        start: Timestamp of the first frame (default: now, UTC)
        seed: Random seed for reproducibility

    Returns:
        Frames with ISO-8601 timestamps and ticks 1..steps
    """
    if steps < 0:
        raise ValueError(f"steps must be non-negative, got {steps}")
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    if sources is None and intermediates is None and targets is None:
        sources, intermediates, targets = DEFAULT_SOURCES, DEFAULT_INTERMEDIATES, DEFAULT_TARGETS
    sources = list(sources or [])
    intermediates = list(intermediates or [])
    targets = list(targets or [])

    rng = random.Random(seed)
    start = start or datetime.now(timezone.utc).replace(microsecond=0)
    names = sources + intermediates + targets

    frames = []
    for step in range(steps):
        moment = start + timedelta(seconds=step * interval)
        frames.append(
            Frame(
                timestamp=moment.isoformat(),
                nodes=[FrameNode(name) for name in names],
                links=generate_links(sources, intermediates, targets, rng),
                tick=float(step + 1),
            )
        )
    return frames


__all__ = ["generate_frames", "generate_links", "split_roles"]
