"""Tests for port assignment and connector routing."""

import pytest

from flow_layout import CubicBezier, FrameLink, NodePosition, PortAllocator, Side
from flow_layout.ports import Port, connector, pick_port, port_count, route_links


def _node(x, y, height=50.0, layer=0):
    return NodePosition(x=x, y=y, height=height, width=20.0, layer=layer)


class TestPortCount:
    """Tests for port_count."""

    def test_scales_with_height(self):
        assert port_count(50) == 5
        assert port_count(105) == 10

    def test_minimum(self):
        """Short nodes still get the minimum number of ports."""
        assert port_count(10) == 3
        assert port_count(0) == 3


class TestPickPort:
    """Tests for middle-out port selection."""

    def test_middle_first(self):
        assert pick_port(5, set()) == 2

    def test_alternates_outward(self):
        """Free ports are found above, then below, moving outward."""
        claimed = set()
        picks = []
        for _ in range(5):
            index = pick_port(5, claimed)
            claimed.add(index)
            picks.append(index)
        assert picks == [2, 1, 3, 0, 4]

    def test_exhausted_reuses_middle(self):
        assert pick_port(3, {0, 1, 2}) == 1

    def test_port_position(self):
        """Ports are spread evenly between the node's top and bottom."""
        assert Port("A", Side.EAST, 2, 5).position == pytest.approx(0.5)
        assert Port("A", Side.EAST, 0, 3).position == pytest.approx(0.25)


class TestPortAllocator:
    """Tests for per-side port claims."""

    def test_sides_are_independent(self):
        """Incoming and outgoing links of one node never compete."""
        allocator = PortAllocator()
        east = allocator.claim("B", Side.EAST, 50)
        west = allocator.claim("B", Side.WEST, 50)
        assert east.index == west.index == 2

    def test_repeated_claims_spread(self):
        allocator = PortAllocator()
        first = allocator.claim("A", Side.EAST, 50)
        second = allocator.claim("A", Side.EAST, 50)
        assert (first.index, second.index) == (2, 1)
        assert allocator.claimed("A", Side.EAST) == frozenset({1, 2})

    def test_reset(self):
        allocator = PortAllocator()
        allocator.claim("A", Side.EAST, 50)
        allocator.reset()
        assert allocator.claimed("A", Side.EAST) == frozenset()


class TestConnector:
    """Tests for connector curves."""

    def test_s_curve_path(self):
        """Control points sit halfway, each at its own endpoint's height."""
        source, target = _node(0, 0), _node(200, 100, layer=1)
        curve = connector(source, target, Port("A", Side.EAST, 2, 5), Port("B", Side.WEST, 2, 5))
        assert curve.start == (20.0, 25.0)
        assert curve.end == (200.0, 125.0)
        assert curve.to_path() == "M 20.00,25.00 C 110.00,25.00 110.00,125.00 200.00,125.00"

    def test_point_at_endpoints(self):
        curve = CubicBezier((0, 0), (5, 0), (5, 10), (10, 10))
        assert curve.point_at(0) == (0, 0)
        assert curve.point_at(1) == (10, 10)
        assert curve.point_at(0.5) == pytest.approx((5.0, 5.0))

    def test_degenerate(self):
        """Zero-length connectors are flagged."""
        assert CubicBezier((1, 1), (1, 1), (1, 1), (1, 1)).is_degenerate
        assert not CubicBezier((0, 0), (1, 0), (1, 1), (2, 1)).is_degenerate


class TestRouteLinks:
    """Tests for route_links."""

    def test_one_path_per_link(self):
        positions = {"A": _node(0, 0), "B": _node(200, 0, layer=1), "C": _node(200, 100, layer=1)}
        links = [FrameLink("A", "B", 10), FrameLink("A", "C", 5)]
        paths = route_links(positions, links)
        assert [(p.source, p.target, p.value) for p in paths] == [("A", "B", 10), ("A", "C", 5)]
        # Second outgoing link of A takes the port above the middle
        assert paths[0].curve.start[1] == pytest.approx(25.0)
        assert paths[1].curve.start[1] == pytest.approx(50.0 * 2 / 6)

    def test_missing_endpoint_skipped(self):
        positions = {"A": _node(0, 0)}
        assert route_links(positions, [FrameLink("A", "B", 1)]) == []

    def test_reported_values(self):
        """Supplied values replace the raw link values."""
        positions = {"A": _node(0, 0), "B": _node(200, 0, layer=1)}
        paths = route_links(positions, [FrameLink("A", "B", 10)], values={"A->B": 3.0})
        assert paths[0].value == 3.0

    def test_path_serialization(self):
        positions = {"A": _node(0, 0), "B": _node(200, 0, layer=1)}
        link = route_links(positions, [FrameLink("A", "B", 10)])[0]
        assert link.path.startswith("M 20.00,25.00 C ")
        assert link.to_dict() == {"source": "A", "target": "B", "path": link.path, "value": 10}
