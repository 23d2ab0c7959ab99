"""Tests for the position override helpers."""

import pytest

from flow_layout import (
    Frame,
    FrameNode,
    LayoutState,
    NodePosition,
    ValidationError,
    apply_position_override,
    collect_overrides,
    reset_overrides,
    resolve_overrides,
)


@pytest.fixture
def frames():
    return [
        {"timestamp": "2024-01-01T00:00:00Z", "nodes": ["A", "B"], "links": []},
        {"timestamp": "2024-01-01T00:01:00Z", "nodes": ["A"], "links": []},
    ]


class TestApplyOverride:
    """Tests for apply_position_override."""

    def test_sets_override_where_present(self, frames):
        updated = apply_position_override(frames, "B", 10, 20)
        b = updated[0].nodes[1]
        assert (b.custom_x, b.custom_y) == (10.0, 20.0)
        assert updated[1].node_names == ["A"]

    def test_does_not_mutate_input(self):
        original = Frame(timestamp=0, nodes=[FrameNode("A")])
        apply_position_override([original], "A", 1, 2)
        assert original.nodes[0].custom_x is None

    def test_reset_all(self, frames):
        updated = apply_position_override(frames, "A", 1, 2)
        cleared = reset_overrides(updated)
        assert not any(node.has_override for frame in cleared for node in frame.nodes)

    def test_reset_selected(self, frames):
        updated = apply_position_override(apply_position_override(frames, "A", 1, 2), "B", 3, 4)
        cleared = reset_overrides(updated, ["A"])
        assert not cleared[0].nodes[0].has_override
        assert cleared[0].nodes[1].has_override


class TestResolveOverrides:
    """Tests for merging node-level and explicit overrides."""

    def test_latest_frame_wins(self):
        older = Frame(timestamp="2024-01-01T00:00:00Z", nodes=[FrameNode("A", 1, 1)])
        newer = Frame(timestamp="2024-01-01T00:05:00Z", nodes=[FrameNode("A", 9, 9)])
        assert resolve_overrides([newer, older]) == {"A": (9.0, 9.0)}

    def test_explicit_wins(self):
        frame = Frame(timestamp=0, nodes=[FrameNode("A", 1, 1)])
        assert resolve_overrides([frame], {"A": {"x": 5, "y": 6}}) == {"A": (5.0, 6.0)}

    def test_half_override_ignored(self):
        """A node with only one coordinate set is not overridden."""
        frame = Frame(timestamp=0, nodes=[FrameNode("A", custom_x=1)])
        assert resolve_overrides([frame]) == {}

    def test_bad_explicit_override(self):
        with pytest.raises(ValidationError):
            resolve_overrides([], {"A": {"x": 1}})


class TestCollectOverrides:
    """Tests for collect_overrides."""

    def test_collects_flagged_nodes(self):
        state = LayoutState(
            timestamp=0,
            node_positions={
                "A": NodePosition(1, 2, 10, 20, 0, is_overridden=True),
                "B": NodePosition(3, 4, 10, 20, 1),
            },
        )
        assert collect_overrides([state]) == {"A": (1, 2)}

    def test_later_layout_wins(self):
        first = LayoutState(0, {"A": NodePosition(1, 1, 10, 20, 0, is_overridden=True)})
        second = LayoutState(1, {"A": NodePosition(7, 7, 10, 20, 0, is_overridden=True)})
        assert collect_overrides([first, second]) == {"A": (7, 7)}

    def test_nothing_overridden(self):
        assert collect_overrides([LayoutState(0)]) == {}
