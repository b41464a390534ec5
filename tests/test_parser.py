"""
End-to-end tests for parse_plan() and parse_plan_file().

Covers the error contract, the warnings produced on the fixture plans and
the configuration threaded through a parse.
"""

from __future__ import annotations

import logging
import threading
from datetime import date

import pytest

from planchecker import (
    CheckerConfig,
    EmptyPlanError,
    NodeParseError,
    NoNodesFoundError,
    ParseError,
    PlanIndentationError,
    parse_plan,
    parse_plan_file,
    render_json,
)
from planchecker.checks import CheckEngine, PlanRule
from planchecker.exceptions import ConfigurationError
from planchecker.parser.models import Explain
from planchecker.tracing import is_tracing

SMALL_PLAN = "Seq Scan on t1 (cost=0.00..10.00 rows=5 width=8)"


def warning_pairs(warnings) -> list[tuple[str, str]]:
    return [(w.cause, w.resolution) for w in warnings]


def debug_messages(records, thread_name: str | None = None) -> list[str]:
    return [
        r.getMessage()
        for r in records
        if r.name.startswith("planchecker")
        and r.levelno == logging.DEBUG
        and (thread_name is None or r.threadName == thread_name)
    ]


class TestErrors:
    """Either a full Explain or an exception; nothing in between."""

    @pytest.mark.parametrize("text", ["", "   \n\n  "])
    def test_empty_input(self, text: str) -> None:
        with pytest.raises(EmptyPlanError) as exc_info:
            parse_plan(text)

        assert exc_info.value.source == "empty_input"

    def test_no_nodes(self) -> None:
        with pytest.raises(NoNodesFoundError) as exc_info:
            parse_plan("                QUERY PLAN\n-------------\nnothing to see\n(0 rows)")

        assert exc_info.value.message == "Could not find any nodes in plan"

    def test_indentation_error_names_line(self) -> None:
        text = (
            " Gather Motion 2:1  (slice1; segments: 2)  (cost=0.00..10.00 rows=5 width=8)\n"
            "->  Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)"
        )

        with pytest.raises(PlanIndentationError) as exc_info:
            parse_plan(text)

        assert "->  Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)" in exc_info.value.message
        assert "Recommend running EXPLAIN again" in exc_info.value.message

    def test_errors_share_one_base(self) -> None:
        for exc_type in (EmptyPlanError, NoNodesFoundError, PlanIndentationError, NodeParseError):
            assert issubclass(exc_type, ParseError)

    def test_unknown_excluded_rule(self) -> None:
        config = CheckerConfig(exclude_rules=frozenset({"NOT_A_RULE"}))

        with pytest.raises(ConfigurationError):
            parse_plan("Seq Scan on t1 (cost=0.00..10.00 rows=1 width=8)", config)


class TestSmallPlans:
    """Single-node plans written inline."""

    def test_single_seq_scan(self) -> None:
        explain = parse_plan("Seq Scan on t1 (cost=0.00..10.00 rows=1 width=8)")

        root = explain.root
        assert root is explain.nodes[0]
        assert root.operator == "Seq Scan on t1"
        assert root.object_name == "t1"
        assert root.slice is None
        assert not explain.is_analyzed
        assert warning_pairs(explain.all_warnings()) == [
            ("Estimated rows is 1", 'May need to run ANALYZE on table "t1"'),
        ]
        assert root.cost_percent == pytest.approx(100.0)

    def test_settings_line(self) -> None:
        text = (
            "Seq Scan on t1 (cost=0.00..10.00 rows=10 width=8)\n"
            " Settings:  enable_hashjoin=off; optimizer=on"
        )
        explain = parse_plan(text)

        assert [(s.name, s.value) for s in explain.settings] == [
            ("enable_hashjoin", "off"),
            ("optimizer", "on"),
        ]
        assert explain.optimizer == "on"
        assert warning_pairs(explain.warnings) == [
            (
                '"enable_hashjoin" GUC has non-default value "off"',
                'Check if "enable_hashjoin" GUC is required',
            ),
        ]
        assert explain.root.warnings == []

    def test_quoted_gui_output(self) -> None:
        text = (
            '"Gather Motion 2:1  (slice1; segments: 2)  (cost=0.00..10.00 rows=10 width=8)"\n'
            '"  ->  Seq Scan on t1  (cost=0.00..10.00 rows=5 width=8)"\n'
            '"        Filter: a = 1"'
        )
        explain = parse_plan(text)

        assert [n.operator for n in explain.nodes] == ["Gather Motion 2:1", "Seq Scan on t1"]
        assert explain.nodes[1].filter == "a = 1"

    def test_parse_is_deterministic(self, analyze_plan: str) -> None:
        assert render_json(parse_plan(analyze_plan)) == render_json(parse_plan(analyze_plan))


class TestFixturePlans:
    """Warnings on the larger fixture plans."""

    def test_analyze_warnings(self, analyze_plan: str) -> None:
        explain = parse_plan(analyze_plan)
        nodes = explain.nodes

        assert explain.is_analyzed
        assert warning_pairs(nodes[1].warnings) == [
            ("Total 2 spilling segments found", "Review query"),
            ("Data skew on segment seg0", "Review query"),
        ]
        assert warning_pairs(nodes[2].warnings) == [
            ("Actual rows is higher than estimated rows", 'Need to run ANALYZE on table "sales"'),
            ("Filter using function", "Check if function can be avoided"),
        ]
        assert warning_pairs(nodes[5].warnings) == [
            (
                "Actual rows is higher than estimated rows",
                'Need to run ANALYZE on table "sales_1_prt_2"',
            ),
            (
                "Scan on what appears to be a child partition",
                "Recommend using root partition when ORCA is enabled",
            ),
        ]
        assert nodes[0].warnings == nodes[3].warnings == nodes[4].warnings == []
        assert warning_pairs(explain.warnings) == [
            (
                "ORCA enabled but plan was produced by legacy query optimizer",
                "No Action Required",
            ),
        ]
        assert len(explain.all_warnings()) == 7

    def test_analyze_fields(self, analyze_plan: str) -> None:
        explain = parse_plan(analyze_plan)

        assert [n.slice for n in explain.nodes] == [2, None, None, None, 1, None]
        assert explain.nodes[1].spill_files == 2
        assert explain.nodes[0].ms_end == 7442
        assert explain.runtime == pytest.approx(7442.441)

    def test_subplan_warnings(self, subplan_plan: str) -> None:
        explain = parse_plan(subplan_plan)

        assert [w.cause for w in explain.warnings] == [
            '"enable_hashjoin" GUC has non-default value "off"',
            '"enable_nestloop" GUC has non-default value "on"',
        ]
        customers = explain.nodes[8]
        assert customers.operator == "Seq Scan on customers c"
        assert warning_pairs(customers.warnings) == [
            ("Estimated rows is 1", 'May need to run ANALYZE on table "customers"'),
        ]
        assert len(explain.all_warnings()) == 3

    def test_orca_partition_warnings(self, orca_partition_plan: str) -> None:
        explain = parse_plan(orca_partition_plan)
        selector, dynamic_scan = explain.nodes[2], explain.nodes[3]

        assert [w.cause for w in selector.warnings] == ["33% (40 out of 120) partitions selected"]
        assert [w.cause for w in dynamic_scan.warnings] == [
            "Estimated rows is 1",
            "33% (40 out of 120) partitions scanned",
        ]
        assert dynamic_scan.partitions_scanned == 40
        assert explain.warnings == []


class TestConfiguration:
    """CheckerConfig threaded through parse_plan()."""

    def test_excluded_rule_not_run(self, analyze_plan: str) -> None:
        config = CheckerConfig(exclude_rules=frozenset({"DATA_SKEW", "PLANNER_FALLBACK"}))
        explain = parse_plan(analyze_plan, config)

        assert "Data skew on segment seg0" not in [w.cause for w in explain.all_warnings()]
        assert explain.warnings == []

    def test_threshold_override(self, orca_partition_plan: str) -> None:
        config = CheckerConfig(rules={"PARTITION_SCANS": {"max_percent": 50}})
        explain = parse_plan(orca_partition_plan, config)

        assert explain.nodes[2].warnings == []

    def test_trace_is_per_parse(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="planchecker")

        parse_plan(SMALL_PLAN, CheckerConfig(trace=True))
        traced = debug_messages(caplog.records)
        caplog.clear()
        parse_plan(SMALL_PLAN)

        assert any(m.startswith("Parsed 1 nodes") for m in traced)
        assert debug_messages(caplog.records) == []
        assert logging.getLogger("planchecker").level == logging.DEBUG

    def test_trace_leaves_logger_level_alone(self) -> None:
        package_logger = logging.getLogger("planchecker")
        before = package_logger.level

        parse_plan(SMALL_PLAN, CheckerConfig(trace=True))

        assert package_logger.level == before

    def test_overlapping_parses_keep_their_own_trace(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="planchecker")
        package_logger = logging.getLogger("planchecker")
        all_inside = threading.Barrier(3)

        class WaitForOthers(PlanRule):
            rule_id = "WAIT_FOR_OTHERS"
            name = "waitForOthers"
            created_at = date(2020, 1, 1)

            def evaluate(self, target: Explain) -> None:
                all_inside.wait(timeout=10)

        engine = CheckEngine([WaitForOthers()])
        failures: list[Exception] = []

        def run(trace: bool) -> None:
            try:
                parse_plan(SMALL_PLAN, CheckerConfig(trace=trace), engine)
            except Exception as e:
                failures.append(e)

        threads = [
            threading.Thread(target=run, args=(True,), name="traced-a"),
            threading.Thread(target=run, args=(True,), name="traced-b"),
            threading.Thread(target=run, args=(False,), name="quiet"),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert failures == []
        for name in ("traced-a", "traced-b"):
            assert any(
                m.startswith("Parsed 1 nodes") for m in debug_messages(caplog.records, name)
            )
        assert debug_messages(caplog.records, "quiet") == []
        assert package_logger.level == logging.DEBUG
        assert not is_tracing()

        caplog.clear()
        parse_plan(SMALL_PLAN)

        assert debug_messages(caplog.records) == []


class TestParsePlanFile:
    def test_reads_file(self, fixture_path) -> None:
        explain = parse_plan_file(fixture_path / "subplans.txt")

        assert len(explain.nodes) == 9
        assert [p.name for p in explain.plans] == ["Plan", "SubPlan 1", "SubPlan 2"]

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_plan_file(tmp_path / "missing.txt")

        assert exc_info.value.source == "file_read"
        assert exc_info.value.to_dict()["source"] == "file_read"
