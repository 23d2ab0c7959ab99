"""Tests for the historical layout planner."""

import pytest

from flow_layout import (
    EventType,
    GraphStructureWarning,
    HistoricalLayout,
    InvalidCanvasSizeError,
    LayoutConfig,
    SkippedFrameWarning,
    apply_position_override,
    collect_overrides,
    distinct_orderings,
    generate_frames,
    height_fit_violations,
    layer_conflicts,
    plan_historical_layout,
)


def _frame(timestamp, nodes, links):
    return {
        "timestamp": timestamp,
        "nodes": [{"name": n} for n in nodes],
        "links": [{"source": s, "target": t, "value": v} for s, t, v in links],
    }


@pytest.fixture
def chain_frames():
    """Two frames of a three-node chain with growing values."""
    return [
        _frame(0, ["A", "B", "C"], [("A", "B", 10), ("B", "C", 5)]),
        _frame(1, ["A", "B", "C"], [("A", "B", 20), ("B", "C", 15)]),
    ]


@pytest.fixture
def fan_in_frames():
    """Three sources feeding one target with very different volumes."""
    return [
        _frame(0, ["S1", "S2", "S3", "T"], [("S1", "T", 100), ("S2", "T", 10), ("S3", "T", 50)]),
    ]


class TestChainLayout:
    """Tests on a simple A -> B -> C chain."""

    def test_one_state_per_frame(self, chain_frames):
        states = plan_historical_layout(chain_frames, 800, 600)
        assert len(states) == 2
        assert [s.timestamp for s in states] == [0, 1]

    def test_layers(self, chain_frames):
        """Each node of the chain gets its own layer."""
        states = plan_historical_layout(chain_frames, 800, 600)
        for state in states:
            assert state.node_positions["A"].layer == 0
            assert state.node_positions["B"].layer == 1
            assert state.node_positions["C"].layer == 2

    def test_geometry_identical_across_frames(self, chain_frames):
        """Positions and heights do not move between frames."""
        first, second = plan_historical_layout(chain_frames, 800, 600)
        for name in ("A", "B", "C"):
            a, b = first.node_positions[name], second.node_positions[name]
            assert (a.x, a.y, a.height) == (b.x, b.y, b.height)
        assert second.node_positions["B"].height >= first.node_positions["B"].height

    def test_layers_spread_across_width(self, chain_frames):
        state = plan_historical_layout(chain_frames, 800, 600)[0]
        assert state.node_positions["A"].x == 20
        assert state.node_positions["C"].right == 780

    def test_single_node_layers_clamped_and_centered(self, chain_frames):
        """A lone node takes the maximum height, centered vertically."""
        position = plan_historical_layout(chain_frames, 800, 600)[0].node_positions["A"]
        assert position.height == 100
        assert position.y == 250

    def test_links_follow_frame(self, chain_frames):
        """Links keep frame order and raw values."""
        state = plan_historical_layout(chain_frames, 800, 600)[1]
        assert [(p.source, p.target, p.value) for p in state.link_paths] == [
            ("A", "B", 20),
            ("B", "C", 15),
        ]
        assert state.link_paths[0].path.startswith("M ")

    def test_to_dict(self, chain_frames):
        """Serialized states use renderer field names."""
        data = plan_historical_layout(chain_frames, 800, 600)[0].to_dict()
        assert set(data) == {"timestamp", "nodePositions", "linkPaths"}
        assert data["nodePositions"]["A"]["isDragged"] is False


class TestOrdering:
    """Tests for score-based ordering within a layer."""

    def test_center_heavy(self, fan_in_frames):
        """The heaviest source sits in the middle of its layer."""
        layout = HistoricalLayout(frames=fan_in_frames, size=(800, 600)).run()
        assert layout.layer_order[0] == ["S3", "S1", "S2"]
        assert layout.states[0].layers[0] == ["S3", "S1", "S2"]

    def test_descending_without_centering(self, fan_in_frames):
        config = LayoutConfig(center_heavy_nodes=False)
        layout = HistoricalLayout(frames=fan_in_frames, size=(800, 600), config=config).run()
        assert layout.layer_order[0] == ["S1", "S3", "S2"]

    def test_similar_scores_alphabetical(self):
        """Nodes with near-equal scores are ordered by name."""
        frames = [_frame(0, ["Zed", "Amy", "T"], [("Zed", "T", 50), ("Amy", "T", 48)])]
        config = LayoutConfig(center_heavy_nodes=False)
        layout = HistoricalLayout(frames=frames, config=config).run()
        assert layout.layer_order[0] == ["Amy", "Zed"]

    def test_stable_ordering_over_time(self):
        """A constant node set keeps one ordering in every frame."""
        frames = generate_frames(steps=15, seed=7)
        states = plan_historical_layout(frames, 800, 600)
        assert distinct_orderings(states) == 1
        assert layer_conflicts(states) == {}

    def test_node_values(self, chain_frames):
        """Node values aggregate in- and outflow over all frames."""
        layout = HistoricalLayout(frames=chain_frames).run()
        assert layout.node_values == {"A": 30, "B": 50, "C": 20}


class TestHeightFit:
    """Tests that crowded layers still fit the canvas."""

    def test_crowded_layer_fits(self):
        sources = [f"S{i}" for i in range(10)]
        frames = [_frame(0, sources + ["T"], [(s, "T", 10) for s in sources])]
        states = plan_historical_layout(frames, 400, 100)
        assert height_fit_violations(states, 100) == []
        ys = sorted(states[0].node_positions[s].y for s in sources)
        assert ys == sorted(set(ys))

    def test_synthetic_stream_fits(self):
        states = plan_historical_layout(generate_frames(steps=10, seed=3), 800, 300)
        assert height_fit_violations(states, 300) == []


class TestPartialFrames:
    """Tests for frames that show only part of the graph."""

    def test_missing_nodes_omitted(self):
        frames = [
            _frame(0, ["A", "B", "C"], [("A", "B", 10), ("B", "C", 5)]),
            _frame(1, ["A", "B"], [("A", "B", 10)]),
        ]
        states = plan_historical_layout(frames)
        assert set(states[1].node_positions) == {"A", "B"}
        assert states[1].node_positions["B"].layer == 1

    def test_nodes_outside_reference_go_left(self):
        """A node the richest frame does not know is placed in layer 0."""
        frames = [
            _frame(0, ["A", "B", "C"], [("A", "B", 10), ("B", "C", 5)]),
            _frame(1, ["D"], []),
        ]
        layout = HistoricalLayout(frames=frames).run()
        assert layout.reference_frame.timestamp == 0
        assert layout.node_layers["D"] == 0

    def test_output_in_input_order(self):
        """Out-of-order timestamps keep their input order."""
        frames = [
            _frame(5, ["A", "B"], [("A", "B", 1)]),
            _frame(1, ["A", "B"], [("A", "B", 2)]),
        ]
        assert [s.timestamp for s in plan_historical_layout(frames)] == [5, 1]


class TestMalformedInput:
    """Tests for degraded input handling."""

    def test_empty_sequence(self):
        assert plan_historical_layout([]) == []

    def test_frame_without_nodes_skipped(self, chain_frames):
        with pytest.warns(SkippedFrameWarning, match="no nodes"):
            states = plan_historical_layout(chain_frames + [_frame(2, [], [])])
        assert len(states) == 2

    def test_frame_with_only_dangling_links_skipped(self, chain_frames):
        bad = _frame(2, ["A"], [("A", "Z", 3)])
        with pytest.warns(SkippedFrameWarning, match="unknown nodes"):
            states = plan_historical_layout(chain_frames + [bad])
        assert len(states) == 2

    def test_malformed_frame_skipped(self, chain_frames):
        with pytest.warns(SkippedFrameWarning, match="Skipping frame 2"):
            states = plan_historical_layout(chain_frames + [{"nodes": ["A"]}])
        assert len(states) == 2

    def test_cycle_is_broken(self):
        """Cycles are broken with a warning instead of failing."""
        frames = [_frame(0, ["A", "B", "C"], [("A", "B", 5), ("B", "C", 5), ("C", "A", 5)])]
        with pytest.warns(GraphStructureWarning, match="cycles"):
            states = plan_historical_layout(frames)
        layers = {n: p.layer for n, p in states[0].node_positions.items()}
        assert layers["A"] == 0
        assert len(states[0].link_paths) == 3

    def test_invalid_canvas(self, chain_frames):
        with pytest.raises(InvalidCanvasSizeError):
            plan_historical_layout(chain_frames, width=0)


class TestOverrides:
    """Tests for position overrides in the planner."""

    def test_explicit_override(self, chain_frames):
        states = plan_historical_layout(chain_frames, overrides={"B": (300, 120)})
        for state in states:
            position = state.node_positions["B"]
            assert (position.x, position.y) == (300, 120)
            assert position.is_overridden
        assert collect_overrides(states) == {"B": (300.0, 120.0)}

    def test_links_follow_override(self, chain_frames):
        """Connectors attach to the overridden position."""
        state = plan_historical_layout(chain_frames, overrides={"B": (300, 120)})[0]
        incoming = state.link_paths[0]
        assert incoming.curve.end[0] == 300

    def test_frame_override_applies_everywhere(self, chain_frames):
        """An override stored in the latest frame is used for every frame."""
        frames = chain_frames[:1] + apply_position_override(chain_frames[1:], "A", 1, 2)
        states = plan_historical_layout(frames)
        assert (states[0].node_positions["A"].x, states[0].node_positions["A"].y) == (1, 2)

    def test_explicit_beats_frame_override(self, chain_frames):
        frames = apply_position_override(chain_frames, "A", 1, 2)
        states = plan_historical_layout(frames, overrides={"A": {"x": 7, "y": 8}})
        assert (states[0].node_positions["A"].x, states[0].node_positions["A"].y) == (7, 8)


class TestEvents:
    """Tests for layout lifecycle events."""

    def test_event_sequence(self, chain_frames):
        seen = []
        layout = HistoricalLayout(
            frames=chain_frames,
            on_start=lambda e: seen.append(e["type"]),
            on_tick=lambda e: seen.append(e["type"]),
        )
        layout.on("end", lambda e: seen.append(e["type"]))
        layout.run()
        assert seen == [EventType.start, EventType.tick, EventType.tick, EventType.end]

    def test_tick_carries_state(self, chain_frames):
        states = []
        HistoricalLayout(frames=chain_frames, on_tick=lambda e: states.append(e["state"])).run()
        assert [s.timestamp for s in states] == [0, 1]
