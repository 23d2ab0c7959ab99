"""Tests for temporal stability metrics."""

import pytest

from flow_layout import LayoutState, NodePosition
from flow_layout.metrics import (
    distinct_orderings,
    height_fit_violations,
    layer_conflicts,
    mean_displacement,
    stability_summary,
    vertical_order,
)


def _state(timestamp, **nodes):
    """Build a state from name=(x, y, height, layer) keyword arguments."""
    return LayoutState(
        timestamp=timestamp,
        node_positions={
            name: NodePosition(x=x, y=y, height=h, width=20, layer=layer)
            for name, (x, y, h, layer) in nodes.items()
        },
    )


class TestOrderings:
    """Tests for vertical order signatures."""

    def test_vertical_order(self):
        state = _state(0, A=(0, 50, 10, 0), B=(0, 10, 10, 0), C=(100, 0, 10, 1))
        assert vertical_order(state) == ((0, ("B", "A")), (1, ("C",)))

    def test_stable_sequence(self):
        states = [_state(t, A=(0, 10, 10, 0), B=(0, 50, 10, 0)) for t in range(3)]
        assert distinct_orderings(states) == 1

    def test_swap_counted(self):
        states = [_state(0, A=(0, 10, 10, 0), B=(0, 50, 10, 0)), _state(1, A=(0, 50, 10, 0), B=(0, 10, 10, 0))]
        assert distinct_orderings(states) == 2

    def test_transient_nodes_ignored(self):
        """Nodes missing from some frames do not count as reordering."""
        states = [
            _state(0, A=(0, 10, 10, 0), B=(0, 50, 10, 0)),
            _state(1, C=(0, 0, 10, 0), A=(0, 20, 10, 0), B=(0, 60, 10, 0)),
        ]
        assert distinct_orderings(states) == 1

    def test_empty(self):
        assert distinct_orderings([]) == 0


class TestLayerConflicts:
    """Tests for layer_conflicts."""

    def test_none(self):
        states = [_state(t, A=(0, 0, 10, 0)) for t in range(2)]
        assert layer_conflicts(states) == {}

    def test_moved_node(self):
        states = [_state(0, A=(0, 0, 10, 0)), _state(1, A=(0, 0, 10, 1))]
        assert layer_conflicts(states) == {"A": {0, 1}}


class TestHeightFit:
    """Tests for height_fit_violations."""

    def test_inside(self):
        assert height_fit_violations([_state(0, A=(0, 20, 560, 0))], 600) == []

    def test_overflow(self):
        assert height_fit_violations([_state(7, A=(0, 500, 200, 0))], 600) == [(7, 0)]

    def test_overridden_nodes_ignored(self):
        state = _state(0, A=(0, 900, 10, 0))
        state.node_positions["A"].is_overridden = True
        assert height_fit_violations([state], 600) == []


class TestDisplacement:
    """Tests for mean_displacement."""

    def test_static(self):
        states = [_state(t, A=(0, 0, 10, 0)) for t in range(3)]
        assert mean_displacement(states) == 0.0

    def test_moving(self):
        states = [_state(0, A=(0, 0, 10, 0), B=(0, 0, 10, 0)), _state(1, A=(3, 4, 10, 0), B=(0, 0, 10, 0))]
        assert mean_displacement(states) == pytest.approx(2.5)

    def test_nothing_to_compare(self):
        assert mean_displacement([_state(0, A=(0, 0, 10, 0))]) == 0.0


class TestSummary:
    """Tests for stability_summary."""

    def test_keys(self):
        states = [_state(t, A=(0, 20, 10, 0)) for t in range(2)]
        summary = stability_summary(states, height=600)
        assert summary == {
            "frames": 2,
            "distinct_orderings": 1,
            "layer_conflicts": 0,
            "height_fit_violations": 0,
            "mean_displacement": 0.0,
        }

    def test_without_height(self):
        assert stability_summary([])["height_fit_violations"] is None
