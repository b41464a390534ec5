"""
Checks evaluated against a single plan node.

Registration order below is catalog order and evaluation order.
"""

from __future__ import annotations

import re
from datetime import date

from pydantic import Field

from planchecker.checks.base import NodeRule, RuleConfig
from planchecker.checks.registry import register_rule
from planchecker.parser.models import Node, ObjectType

REVIEW_QUERY = "Review query"
ELIMINATE_PARTITIONS = "Check if partitions can be eliminated"


# =============================================================================
# Estimated rows
# =============================================================================


class EstimatedRowsConfig(RuleConfig):
    """
    Attributes:
        suspicious_rows: Estimated row count that suggests missing statistics.
    """

    suspicious_rows: int = Field(default=1, ge=0)


_SCAN_OPERATOR = re.compile(
    r"(Dynamic Table|Table|Parquet table|Bitmap Index|Bitmap Append-Only Row-Oriented|Seq) Scan"
)

_MAINTENANCE_ACTIONS = {
    ObjectType.TABLE: "ANALYZE on table",
    ObjectType.INDEX: "REINDEX on index",
}


def _maintenance_hint(prefix: str, target: Node) -> str:
    # No verb when the scanned object could not be identified
    action = _MAINTENANCE_ACTIONS.get(target.object_type)
    parts = [prefix, action, f'"{target.object_name or ""}"']
    return " ".join(p for p in parts if p)


@register_rule
class EstimatedRows(NodeRule):
    """
    Scan with an estimate of exactly one row.

    The planner falls back to 1 when a table was never analyzed. On an
    EXPLAIN ANALYZE plan, more than one actual (or average) row confirms
    the statistics are wrong.
    """

    rule_id = "ESTIMATED_ROWS"
    name = "checkNodeEstimatedRows"
    description = "Scan node with estimated rows equal to 1"
    created_at = date(2016, 5, 24)
    config_schema = EstimatedRowsConfig

    def evaluate(self, target: Node) -> None:
        if not _SCAN_OPERATOR.search(target.operator):
            return
        if target.rows != self.config.suspicious_rows:
            return

        if target.is_analyzed:
            if (target.actual_rows or 0) > 1 or (target.avg_rows or 0) > 1:
                target.add_warning(
                    "Actual rows is higher than estimated rows",
                    _maintenance_hint("Need to run", target),
                )
        else:
            target.add_warning("Estimated rows is 1", _maintenance_hint("May need to run", target))


# =============================================================================
# Nested loop
# =============================================================================


@register_rule
class NestedLoop(NodeRule):
    """Every nested loop join deserves a second look."""

    rule_id = "NESTED_LOOP"
    name = "checkNodeNestedLoop"
    description = "Nested Loops"
    created_at = date(2016, 5, 23)

    def evaluate(self, target: Node) -> None:
        if "Nested Loop" in target.operator:
            target.add_warning("Nested Loop", REVIEW_QUERY)


# =============================================================================
# Spill files
# =============================================================================


class SpillingConfig(RuleConfig):
    min_spill_files: int = Field(default=1, ge=1)


@register_rule
class Spilling(NodeRule):
    rule_id = "SPILLING"
    name = "checkNodeSpilling"
    description = "Spill files"
    created_at = date(2016, 5, 31)
    config_schema = SpillingConfig

    def evaluate(self, target: Node) -> None:
        if target.spill_files is not None and target.spill_files >= self.config.min_spill_files:
            target.add_warning(
                f"Total {target.spill_files} spilling segments found",
                REVIEW_QUERY,
            )


# =============================================================================
# Repeated scans
# =============================================================================


class ScansConfig(RuleConfig):
    max_scans: int = Field(default=1, ge=1, description="Scans allowed before warning")


@register_rule
class Scans(NodeRule):
    """Node executed more than once, typically the inner side of a loop."""

    rule_id = "NODE_SCANS"
    name = "checkNodeScans"
    description = "Node looping multiple times"
    created_at = date(2016, 5, 31)
    config_schema = ScansConfig

    def evaluate(self, target: Node) -> None:
        if target.scans is not None and target.scans > self.config.max_scans:
            target.add_warning(
                f"This node is executed {target.scans} times",
                REVIEW_QUERY,
            )


# =============================================================================
# Partition scans
# =============================================================================


class PartitionScansConfig(RuleConfig):
    """
    Attributes:
        max_partitions: Partition count at which a scan is flagged.
        max_percent: Share of all partitions (integer percent) at which
            a selection or scan is flagged.
    """

    max_partitions: int = Field(default=100, ge=1)
    max_percent: int = Field(default=25, ge=0, le=100)


@register_rule
class PartitionScans(NodeRule):
    """
    Too many (or zero) partitions touched.

    Legacy planner plans show one Append child per partition. ORCA plans
    report "Partitions selected" on the Partition Selector and "Partitions
    scanned" on the Dynamic Table Scan.
    """

    rule_id = "PARTITION_SCANS"
    name = "checkNodePartitionScans"
    description = "Number of partition scans greater than 100 or 25%"
    created_at = date(2016, 5, 31)
    config_schema = PartitionScansConfig

    def evaluate(self, target: Node) -> None:
        if "Append" in target.operator and len(target.sub_nodes) >= self.config.max_partitions:
            target.add_warning(
                f"Detected {len(target.sub_nodes)} partition scans",
                ELIMINATE_PARTITIONS,
            )

        if "Partition Selector" in target.operator and target.partitions_selected is not None:
            self._check_count(
                target,
                target.partitions_selected,
                target.partitions_selected_total,
                "selected",
            )

        if "Dynamic Table Scan" in target.operator and target.partitions_scanned is not None:
            self._check_count(
                target,
                target.partitions_scanned,
                target.partitions_scanned_total,
                "scanned",
            )

    def _check_count(self, target: Node, count: int, total: int | None, verb: str) -> None:
        if count >= self.config.max_partitions:
            target.add_warning(f"Detected {count} partition scans", ELIMINATE_PARTITIONS)

        if count == 0:
            target.add_warning(f"Zero partitions {verb}", REVIEW_QUERY)
        elif total:
            percent = count * 100 // total
            if percent >= self.config.max_percent:
                target.add_warning(
                    f"{percent}% ({count} out of {total}) partitions {verb}",
                    ELIMINATE_PARTITIONS,
                )


# =============================================================================
# Data skew
# =============================================================================


class DataSkewConfig(RuleConfig):
    """
    Attributes:
        min_rows: Actual or average rows needed before skew is considered.
        min_workers: Workers must exceed this; with two workers one extra
            row on one segment already looks like skew.
    """

    min_rows: float = Field(default=10000.0, ge=0)
    min_workers: int = Field(default=2, ge=0)


@register_rule
class DataSkew(NodeRule):
    """
    One segment produced more than half of all rows.

        Rows out:  Avg 500000.0 rows x 8 workers.  Max 3000000 rows (seg3) ...
    """

    rule_id = "DATA_SKEW"
    name = "checkNodeDataSkew"
    description = "Data skew"
    created_at = date(2016, 6, 2)
    config_schema = DataSkewConfig

    def evaluate(self, target: Node) -> None:
        actual = target.actual_rows or 0.0
        avg = target.avg_rows or 0.0
        cause = f"Data skew on segment {target.max_segment}" if target.max_segment else "Data skew"
        if actual < self.config.min_rows and avg < self.config.min_rows:
            return

        if avg > 0:
            workers = target.workers or 0
            max_rows = target.max_rows or 0.0
            if max_rows > avg * workers / 2.0 and workers > self.config.min_workers:
                target.add_warning(cause, REVIEW_QUERY)
        elif actual > 0 and target.max_segment is not None:
            # Rows reported for a single segment only
            target.add_warning(cause, REVIEW_QUERY)


# =============================================================================
# Filter using a function
# =============================================================================


# upper(brief_status::text) = ANY ('{SIGNED,BRIEF,PROPO}'::text[])
_FUNCTION_CALL = re.compile(r"\S+\(.*\) ")


@register_rule
class FilterWithFunction(NodeRule):
    rule_id = "FILTER_WITH_FUNCTION"
    name = "checkNodeFilterWithFunction"
    description = "Filter clause using function"
    created_at = date(2016, 6, 6)

    def evaluate(self, target: Node) -> None:
        if target.filter and _FUNCTION_CALL.search(target.filter):
            target.add_warning("Filter using function", "Check if function can be avoided")
