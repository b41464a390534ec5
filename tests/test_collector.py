"""
Tests for the line classifier and single-pass collector.

The collector only records positions and raw lines; tree shape and node
details are covered in test_tree.py and test_node_detail.py.
"""

from __future__ import annotations

import pytest

from planchecker.exceptions import PlanIndentationError
from planchecker.parser.collector import LineCollector, get_indent, is_noise, strip_quotes


def collect(text: str):
    return LineCollector(text.splitlines()).collect()


class TestHelpers:
    """Line-level helpers."""

    def test_get_indent(self) -> None:
        assert get_indent("   ->  Hash") == 3
        assert get_indent("Seq Scan") == 0
        assert get_indent("") == 0

    def test_strip_quotes_adds_leading_space(self) -> None:
        assert strip_quotes('"->  Seq Scan on t1"') == " ->  Seq Scan on t1"

    def test_strip_quotes_tolerates_trailing_cr(self) -> None:
        assert strip_quotes('"  Filter: a = 1"\r') == "   Filter: a = 1"

    def test_strip_quotes_leaves_plain_lines(self) -> None:
        assert strip_quotes("   Filter: a = '\"'") == "   Filter: a = '\"'"

    @pytest.mark.parametrize(
        "line",
        ["", "    ", "                QUERY PLAN", "----------------"],
    )
    def test_noise(self, line: str) -> None:
        assert is_noise(line)

    def test_annotation_is_not_noise(self) -> None:
        assert not is_noise("   Filter: a = 1")


class TestNodesAndPlans:
    """Node and SubPlan line handling."""

    def test_positions_recorded(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        assert [n.indent for n in explain.nodes] == [1, 3, 9, 9, 15, 21]
        # Two heading lines precede the first node
        assert explain.nodes[0].offset == 2
        assert explain.nodes[1].offset == 4

    def test_annotations_attached_to_latest_node(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        hash_join = explain.nodes[1]
        assert hash_join.header.strip().startswith("->  Hash Join")
        assert len(hash_join.annotations) == 3
        assert hash_join.annotations[0].strip().startswith("Hash Cond:")

    def test_implicit_top_plan_created_once(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        assert [p.name for p in explain.plans] == ["Plan"]
        assert explain.plans[0].offset == explain.nodes[0].offset

    def test_subplans_collected(self, subplan_plan: str) -> None:
        explain = collect(subplan_plan)

        assert [p.name for p in explain.plans] == ["Plan", "SubPlan 1", "SubPlan 2"]
        assert [(p.indent, p.offset) for p in explain.plans[1:]] == [(9, 3), (9, 10)]
        assert len(explain.nodes) == 9

    def test_filter_mentioning_subplan_is_annotation(self, subplan_plan: str) -> None:
        explain = collect(subplan_plan)

        assert explain.nodes[1].annotations == ["         Filter: (SubPlan 1) > 0"]

    def test_subplan_before_first_node_ignored(self) -> None:
        explain = collect("SubPlan 1\nSeq Scan on t  (cost=0.00..1.00 rows=5 width=4)")

        assert [p.name for p in explain.plans] == ["Plan"]

    def test_quoted_lines(self) -> None:
        text = '"Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)"\n"  Filter: a = 1"'
        explain = collect(text)

        assert len(explain.nodes) == 1
        assert explain.nodes[0].indent == 1
        assert explain.nodes[0].annotations == ["   Filter: a = 1"]


class TestIndentation:
    """The indentation contract is enforced while collecting."""

    def test_first_node_indented_too_far(self) -> None:
        line = "    Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)"

        with pytest.raises(PlanIndentationError) as exc_info:
            collect(line)

        assert exc_info.value.first_node
        assert exc_info.value.line == line
        assert line in exc_info.value.message
        assert exc_info.value.source == "indentation"

    def test_later_node_not_indented(self) -> None:
        text = (
            " Gather Motion 2:1  (slice1; segments: 2)  (cost=0.00..10.00 rows=5 width=8)\n"
            " ->  Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)"
        )

        with pytest.raises(PlanIndentationError) as exc_info:
            collect(text)

        assert not exc_info.value.first_node
        assert "->  Seq Scan on t1" in exc_info.value.message


class TestAggregates:
    """Slice stats, statement stats, settings, optimizer status, runtime."""

    def test_slice_stats(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        assert len(explain.slice_stats) == 3
        assert explain.slice_stats[0] == "(slice0)    Executor memory: 386K bytes."

    def test_statement_stats(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        assert explain.memory_used == 128000
        assert explain.memory_wanted == 172374

    def test_missing_statement_stats(self, subplan_plan: str) -> None:
        explain = collect(subplan_plan)

        assert explain.memory_used is None
        assert explain.memory_wanted is None
        assert explain.runtime is None

    def test_settings(self, subplan_plan: str) -> None:
        explain = collect(subplan_plan)

        assert [(s.name, s.value) for s in explain.settings] == [
            ("enable_hashjoin", "off"),
            ("enable_nestloop", "on"),
            ("optimizer", "off"),
        ]
        assert explain.optimizer == "off"

    def test_optimizer_status_and_runtime(self, analyze_plan: str) -> None:
        explain = collect(analyze_plan)

        assert explain.optimizer_status == "legacy query optimizer"
        assert explain.runtime == pytest.approx(7442.441)

    def test_lines_after_aggregates_not_annotations(self) -> None:
        text = (
            "Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)\n"
            " Settings:  optimizer=on\n"
            "   Filter: a = 1"
        )
        explain = collect(text)

        assert explain.nodes[0].annotations == []

    def test_block_consumption_resumes_at_next_section(self) -> None:
        text = (
            "Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)\n"
            " Slice statistics:\n"
            "   (slice0)    Executor memory: 386K bytes.\n"
            " Total runtime: 12.5 ms"
        )
        explain = collect(text)

        assert explain.slice_stats == ["(slice0)    Executor memory: 386K bytes."]
        assert explain.runtime == 12.5
