"""
Input validation utilities for the flow layout engines.

Provides centralized validation and normalization for frames, links,
canvas size, overrides and layout parameters. Programmer errors raise
descriptive exceptions; data problems inside a frame (dangling links,
bad values) are reported as warnings and dropped.
"""

from __future__ import annotations

import math
import warnings
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from .types import Frame, FrameLink, FrameLike, FrameNode, OverrideLike


class ValidationError(ValueError):
    """Base exception for layout validation errors."""

    pass


class InvalidCanvasSizeError(ValidationError):
    """Raised when canvas dimensions are invalid."""

    pass


class InvalidFrameError(ValidationError):
    """Raised when a frame is malformed."""

    pass


class InvalidLinkError(ValidationError):
    """Raised when a link references unknown nodes or carries a bad value."""

    pass


class InvalidConfigError(ValidationError):
    """Raised when a layout parameter is out of range."""

    pass


class LayoutWarning(UserWarning):
    """Base warning for recoverable layout diagnostics."""

    pass


class DroppedLinkWarning(LayoutWarning):
    """Issued once per link removed from a frame."""

    pass


class SkippedFrameWarning(LayoutWarning):
    """Issued when a frame produces no layout."""

    pass


class GraphStructureWarning(LayoutWarning):
    """Issued when graph structure doesn't match the layered acyclic model."""

    pass


class StreamOrderWarning(LayoutWarning):
    """Issued when a real-time frame arrives with an older tick than the last one."""

    pass


def validate_canvas_size(size: Sequence[float]) -> tuple[float, float]:
    """
    Validate canvas size dimensions.

    Args:
        size: [width, height] sequence

    Returns:
        Validated (width, height) tuple

    Raises:
        InvalidCanvasSizeError: If dimensions are invalid
    """
    if len(size) < 2:
        raise InvalidCanvasSizeError(
            f"Canvas size must have 2 elements [width, height], got {len(size)}"
        )

    width, height = float(size[0]), float(size[1])

    if not width > 0:
        raise InvalidCanvasSizeError(f"Canvas width must be positive, got {width}")
    if not height > 0:
        raise InvalidCanvasSizeError(f"Canvas height must be positive, got {height}")

    return width, height


def validate_alpha(alpha: float) -> float:
    """
    Validate a smoothing factor is in valid range.

    Args:
        alpha: Alpha value

    Returns:
        Validated alpha value

    Raises:
        ValidationError: If alpha not in [0, 1]
    """
    if not 0 <= alpha <= 1:
        raise ValidationError(f"alpha must be in [0, 1], got {alpha}")
    return alpha


def parse_timestamp(timestamp: Any) -> float:
    """
    Convert a frame timestamp to seconds since the epoch.

    Accepts numbers (already epoch seconds), datetimes and ISO-8601 strings
    (a trailing ``Z`` is accepted, naive values are read as UTC).

    Raises:
        InvalidFrameError: If the timestamp cannot be interpreted
    """
    if isinstance(timestamp, bool):
        raise InvalidFrameError(f"Unparseable timestamp: {timestamp!r}")
    if isinstance(timestamp, (int, float)):
        return float(timestamp)
    if isinstance(timestamp, datetime):
        moment = timestamp
    elif isinstance(timestamp, str):
        text = timestamp.strip()
        try:
            return float(text)
        except ValueError:
            pass
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidFrameError(f"Unparseable timestamp: {timestamp!r}") from exc
    else:
        raise InvalidFrameError(f"Unparseable timestamp: {timestamp!r}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def coerce_override(value: OverrideLike) -> tuple[float, float]:
    """
    Normalize a position override to an (x, y) tuple.

    Raises:
        ValidationError: If the value has no usable x/y pair
    """
    if isinstance(value, Mapping):
        if "x" not in value or "y" not in value:
            raise ValidationError(f"Override mapping needs 'x' and 'y', got {dict(value)}")
        x, y = value["x"], value["y"]
    else:
        if len(value) < 2:
            raise ValidationError(f"Override must be an (x, y) pair, got {value!r}")
        x, y = value[0], value[1]
    return float(x), float(y)


def coerce_frame(frame: FrameLike) -> Frame:
    """
    Normalize a frame given as a Frame or a mapping.

    Node entries may be strings, FrameNode objects or mappings keyed by
    ``name`` or ``id``; override coordinates may be spelled ``custom_x`` or
    ``customX``. Duplicate node names keep their first occurrence.

    Raises:
        InvalidFrameError: If the frame or one of its nodes is malformed
    """
    if isinstance(frame, Frame):
        timestamp = frame.timestamp
        raw_nodes: Sequence[Any] = frame.nodes
        raw_links: Sequence[Any] = frame.links
        tick = frame.tick
    elif isinstance(frame, Mapping):
        if "timestamp" not in frame and "tick" not in frame:
            raise InvalidFrameError("Frame needs a 'timestamp' or a 'tick'")
        timestamp = frame.get("timestamp", frame.get("tick"))
        raw_nodes = frame.get("nodes") or []
        raw_links = frame.get("links") or []
        tick = frame.get("tick")
    else:
        raise InvalidFrameError(f"Frame must be a Frame or a mapping, got {type(frame).__name__}")

    if tick is not None:
        try:
            tick = float(tick)
        except (TypeError, ValueError) as exc:
            raise InvalidFrameError(f"Frame tick must be numeric, got {tick!r}") from exc

    nodes: list[FrameNode] = []
    seen: set[str] = set()
    for raw in raw_nodes:
        node = _coerce_node(raw)
        if node.name in seen:
            continue
        seen.add(node.name)
        nodes.append(node)

    links = [_coerce_link(raw) for raw in raw_links]
    return Frame(timestamp=timestamp, nodes=nodes, links=links, tick=tick)


def validate_frame_links(
    frame: Frame,
    strict: bool = False,
) -> list[tuple[int, str]]:
    """
    Check that every link of a frame joins two nodes of that frame.

    Args:
        frame: Normalized frame
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (link_index, issue_description) tuples

    Raises:
        InvalidLinkError: If strict=True and invalid links found
    """
    names = set(frame.node_names)
    issues: list[tuple[int, str]] = []

    for i, link in enumerate(frame.links):
        source_ok = link.source in names
        target_ok = link.target in names
        if not (source_ok and target_ok):
            issues.append(
                (
                    i,
                    f"Link {link.source} -> {link.target}: "
                    f"source exists: {source_ok}, target exists: {target_ok}",
                )
            )
        elif not math.isfinite(link.value) or link.value < 0:
            issues.append((i, f"Link {link.source} -> {link.target}: invalid value {link.value}"))

    if strict and issues:
        msg = "Invalid links:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidLinkError(msg)

    return issues


def drop_invalid_links(frame: Frame) -> Frame:
    """
    Return a copy of the frame without links that fail validation.

    Each dropped link is reported with a DroppedLinkWarning.
    """
    issues = validate_frame_links(frame, strict=False)
    if not issues:
        return frame

    bad = {index for index, _ in issues}
    for _, message in issues:
        warnings.warn(f"Removing invalid link: {message}", DroppedLinkWarning, stacklevel=3)

    return Frame(
        timestamp=frame.timestamp,
        nodes=list(frame.nodes),
        links=[link for i, link in enumerate(frame.links) if i not in bad],
        tick=frame.tick,
    )


def _coerce_node(raw: Any) -> FrameNode:
    if isinstance(raw, FrameNode):
        node = raw
    elif isinstance(raw, str):
        node = FrameNode(name=raw)
    elif isinstance(raw, Mapping):
        name = raw.get("name") or raw.get("id")
        node = FrameNode(
            name=name,
            custom_x=_first_present(raw, "custom_x", "customX"),
            custom_y=_first_present(raw, "custom_y", "customY"),
        )
    else:
        name = getattr(raw, "name", None) or getattr(raw, "id", None)
        node = FrameNode(
            name=name,
            custom_x=getattr(raw, "custom_x", None),
            custom_y=getattr(raw, "custom_y", None),
        )

    if not isinstance(node.name, str) or not node.name:
        raise InvalidFrameError(f"Node is missing a name: {raw!r}")
    return node


def _coerce_link(raw: Any) -> FrameLink:
    if isinstance(raw, FrameLink):
        return raw
    if isinstance(raw, Mapping):
        source, target, value = raw.get("source"), raw.get("target"), raw.get("value", 0.0)
    else:
        source = getattr(raw, "source", None)
        target = getattr(raw, "target", None)
        value = getattr(raw, "value", 0.0)

    try:
        number = float(value)
    except (TypeError, ValueError):
        # Caught by validate_frame_links and dropped there
        number = math.nan
    return FrameLink(
        source="" if source is None else str(source),
        target="" if target is None else str(target),
        value=number,
    )


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        if mapping.get(key) is not None:
            return float(mapping[key])
    return None


__all__ = [
    "ValidationError",
    "InvalidCanvasSizeError",
    "InvalidFrameError",
    "InvalidLinkError",
    "InvalidConfigError",
    "LayoutWarning",
    "DroppedLinkWarning",
    "SkippedFrameWarning",
    "GraphStructureWarning",
    "StreamOrderWarning",
    "validate_canvas_size",
    "validate_alpha",
    "validate_frame_links",
    "drop_invalid_links",
    "parse_timestamp",
    "coerce_frame",
    "coerce_override",
]
