"""
Base class for the flow layout engines.

BaseFlowLayout provides the shared infrastructure of the historical planner
and the real-time stabilizer:

- Canvas size management and validation
- Layout configuration
- Caller-supplied position overrides
- Event system (start/tick/end events)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from typing_extensions import Self

from .config import DEFAULT_CONFIG, LayoutConfig
from .types import (
    Event,
    EventCallback,
    EventType,
    NodePosition,
    OverrideLike,
    SizeType,
)
from .validation import coerce_override, validate_canvas_size


class BaseFlowLayout(ABC):
    """
    Abstract base class for both layout engines.

    Example:
        layout = HistoricalLayout(
            frames=frames,
            size=(800, 600),
        )
        layout.run()

        for state in layout.states:
            print(state.timestamp, len(state.node_positions))
    """

    def __init__(
        self,
        *,
        size: SizeType = (800.0, 600.0),
        config: Optional[LayoutConfig] = None,
        overrides: Optional[Mapping[str, OverrideLike]] = None,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        """
        Initialize layout with configuration.

        Args:
            size: Canvas size as (width, height)
            config: Geometry and heuristic parameters
            overrides: Node name -> (x, y) positions that replace computed ones
            on_start: Callback for start event
            on_tick: Callback fired once per produced LayoutState
            on_end: Callback for end event
        """
        self._canvas_size: tuple[float, float] = (800.0, 600.0)
        self._config: LayoutConfig = DEFAULT_CONFIG
        self._overrides: dict[str, tuple[float, float]] = {}
        self._events: dict[EventType, EventCallback] = {}

        self.size = size
        if config is not None:
            self.config = config
        if overrides is not None:
            self.overrides = overrides

        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def size(self) -> tuple[float, float]:
        """Get canvas size as (width, height)."""
        return self._canvas_size

    @size.setter
    def size(self, value: SizeType) -> None:
        """
        Set canvas size.

        Raises:
            InvalidCanvasSizeError: If width or height is not positive.
        """
        self._canvas_size = validate_canvas_size(value)

    @property
    def width(self) -> float:
        return self._canvas_size[0]

    @property
    def height(self) -> float:
        return self._canvas_size[1]

    @property
    def config(self) -> LayoutConfig:
        """Get layout configuration."""
        return self._config

    @config.setter
    def config(self, value: LayoutConfig) -> None:
        if not isinstance(value, LayoutConfig):
            raise TypeError(f"config must be a LayoutConfig, got {type(value).__name__}")
        self._config = value

    @property
    def overrides(self) -> dict[str, tuple[float, float]]:
        """Get caller-supplied position overrides."""
        return self._overrides

    @overrides.setter
    def overrides(self, value: Mapping[str, OverrideLike]) -> None:
        """Set overrides from a mapping of name -> (x, y) or {'x', 'y'}."""
        self._overrides = {name: coerce_override(pos) for name, pos in value.items()}

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: EventCallback) -> Self:
        """
        Subscribe to a layout event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Trigger an event, calling the registered callback."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def run(self, **kwargs: Any) -> Self:
        """
        Run the layout over all frames given to the engine.

        Returns:
            self (for chaining)
        """
        pass

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _apply_override(
        self,
        name: str,
        position: NodePosition,
        overrides: Mapping[str, tuple[float, float]],
    ) -> NodePosition:
        """Replace a computed position with an override, if one exists."""
        override = overrides.get(name)
        if override is None:
            return position
        position.x, position.y = override
        position.is_overridden = True
        return position


__all__ = ["BaseFlowLayout"]
