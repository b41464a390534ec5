"""Tests for the insert fixup and the cost/time roll-up."""

from __future__ import annotations

import pytest

from planchecker.parser.models import Explain, Node, Plan
from planchecker.parser.parser import parse_plan
from planchecker.parser.rollup import (
    apply_insert_fixup,
    compute_percentages,
    compute_self_values,
    rollup,
)


def node(total: float, ms_end: float | None = None, **kwargs) -> Node:
    return Node(indent=0, offset=0, total_cost=total, ms_end=ms_end, **kwargs)


class TestInsertFixup:
    """Cost-less roots borrow the figures of the next node."""

    def test_insert_root_gets_child_cost(self) -> None:
        text = (
            " Insert (slice0; segments: 4)  (rows=100 width=4)\n"
            "   ->  Seq Scan on t1  (cost=0.00..50.00 rows=100 width=4)"
        )
        explain = parse_plan(text)

        assert explain.root.total_cost == 50.0
        assert explain.root.startup_cost == 0.0

    def test_copies_timing(self) -> None:
        root = node(0.0)
        child = node(50.0, ms_end=12.0, startup_cost=1.0, ms_offset=0.5, is_analyzed=True)
        explain = Explain(nodes=[root, child])

        assert apply_insert_fixup(explain)
        assert root.total_cost == 50.0
        assert root.startup_cost == 1.0
        assert root.ms_end == 12.0
        assert root.ms_offset == 0.5
        assert root.is_analyzed

    def test_costed_root_untouched(self) -> None:
        explain = Explain(nodes=[node(10.0), node(50.0)])

        assert not apply_insert_fixup(explain)
        assert explain.nodes[0].total_cost == 10.0

    def test_single_node_untouched(self) -> None:
        explain = Explain(nodes=[node(0.0)])

        assert not apply_insert_fixup(explain)


class TestSelfValues:
    """Exclusive cost and time."""

    def test_children_and_subplans_subtracted_from_cost(self) -> None:
        parent = node(100.0)
        parent.sub_nodes = [node(30.0)]
        parent.sub_plans = [Plan(name="SubPlan 1", indent=0, offset=0, top_node=node(20.0))]

        compute_self_values(parent)

        assert parent.self_cost == 50.0

    def test_subplan_time_not_subtracted(self) -> None:
        parent = node(100.0, ms_end=80.0)
        parent.sub_nodes = [node(30.0, ms_end=50.0)]
        parent.sub_plans = [
            Plan(name="SubPlan 1", indent=0, offset=0, top_node=node(20.0, ms_end=25.0))
        ]

        compute_self_values(parent)

        assert parent.self_time == 30.0

    def test_negative_clamped_to_zero(self) -> None:
        parent = node(10.0, ms_end=5.0)
        parent.sub_nodes = [node(15.0, ms_end=8.0)]

        compute_self_values(parent)

        assert parent.self_cost == 0.0
        assert parent.self_time == 0.0

    def test_missing_child_time_counts_as_zero(self) -> None:
        parent = node(10.0, ms_end=5.0)
        parent.sub_nodes = [node(4.0)]

        compute_self_values(parent)

        assert parent.self_time == 5.0

    def test_no_time_without_ms_end(self) -> None:
        parent = node(10.0)

        compute_self_values(parent)

        assert parent.self_time is None


class TestPercentages:
    """Shares of the root totals."""

    def test_percentages(self) -> None:
        n = node(50.0, ms_end=10.0)
        compute_self_values(n)
        compute_percentages(n, 200.0, 40.0)

        assert n.cost_percent == pytest.approx(25.0)
        assert n.time_percent == pytest.approx(25.0)

    def test_zero_total_gives_none(self) -> None:
        n = node(0.0, ms_end=0.0)
        compute_self_values(n)
        compute_percentages(n, 0.0, 0.0)

        assert n.cost_percent is None
        assert n.time_percent is None

    def test_missing_total_time_gives_none(self) -> None:
        n = node(5.0)
        compute_self_values(n)
        compute_percentages(n, 10.0, None)

        assert n.cost_percent == pytest.approx(50.0)
        assert n.time_percent is None


class TestRollupOnFixtures:
    """Roll-up over parsed plans."""

    def test_analyze_self_costs(self, analyze_plan: str) -> None:
        explain = parse_plan(analyze_plan)

        assert [n.self_cost for n in explain.nodes] == pytest.approx([0, 0, 431, 0, 0, 431])
        assert explain.nodes[2].cost_percent == pytest.approx(50.0)
        assert explain.nodes[5].cost_percent == pytest.approx(50.0)

    def test_analyze_self_times(self, analyze_plan: str) -> None:
        explain = parse_plan(analyze_plan)

        assert [n.self_time for n in explain.nodes] == pytest.approx([13, 429, 3000, 100, 3800, 100])

    def test_subplan_cost_excluded(self, subplan_plan: str) -> None:
        explain = parse_plan(subplan_plan)

        assert explain.nodes[1].self_cost == pytest.approx(1311.35)
        assert all(n.self_time is None for n in explain.nodes)

    def test_rollup_on_empty_explain(self) -> None:
        explain = Explain()

        rollup(explain)

        assert explain.nodes == []
