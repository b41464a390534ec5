"""
Checks evaluated once against the whole Explain.
"""

from __future__ import annotations

import re
from datetime import date

from pydantic import Field

from planchecker.checks.base import Optimizer, PlanRule, RuleConfig
from planchecker.checks.registry import register_rule
from planchecker.parser.models import Explain

# Documented defaults of the planner method GUCs
ENABLE_GUC_DEFAULTS: dict[str, str] = {
    "enable_bitmapscan": "on",
    "enable_groupagg": "on",
    "enable_hashagg": "on",
    "enable_hashjoin": "on",
    "enable_indexscan": "on",
    "enable_seqscan": "on",
    "enable_sort": "on",
    "enable_tidscan": "on",
    "enable_nestloop": "off",
    "enable_mergejoin": "off",
}


class MotionCountConfig(RuleConfig):
    max_motions: int = Field(default=5, ge=1, description="Motions at which to warn")


_MOTION = re.compile(r"(Broadcast|Redistribute) Motion")


@register_rule
class MotionCount(PlanRule):
    rule_id = "MOTION_COUNT"
    name = "checkExplainMotionCount"
    description = "Number of Broadcast/Redistribute Motion nodes greater than 5"
    created_at = date(2016, 5, 23)
    config_schema = MotionCountConfig

    def evaluate(self, target: Explain) -> None:
        count = sum(1 for n in target.nodes if _MOTION.search(n.operator))
        if count >= self.config.max_motions:
            target.add_warning(f"Found {count} Redistribute/Broadcast motions", "Review query")


class SliceCountConfig(RuleConfig):
    max_slices: int = Field(default=100, ge=1, description="Slices allowed before warning")


@register_rule
class SliceCount(PlanRule):
    """Counts distinct slice ids; a motion and its slice's other nodes share one."""

    rule_id = "SLICE_COUNT"
    name = "checkExplainSliceCount"
    description = "Number of slices greater than 100"
    created_at = date(2016, 5, 31)
    config_schema = SliceCountConfig

    def evaluate(self, target: Explain) -> None:
        slices = {n.slice for n in target.nodes if n.slice is not None}
        if len(slices) > self.config.max_slices:
            target.add_warning(f"Found {len(slices)} slices", "Review query")


@register_rule
class PlannerFallback(PlanRule):
    """
    ORCA was enabled but could not plan the query.

        Settings:  optimizer=on
        Optimizer status: legacy query optimizer
    """

    rule_id = "PLANNER_FALLBACK"
    name = "checkExplainPlannerFallback"
    description = "ORCA fallback to legacy query planner"
    created_at = date(2016, 5, 31)
    optimizers = (Optimizer.ORCA,)

    def evaluate(self, target: Explain) -> None:
        if "legacy query optimizer" not in target.optimizer_status:
            return
        if any(s.name == "optimizer" and s.value == "on" for s in target.settings):
            target.add_warning(
                "ORCA enabled but plan was produced by legacy query optimizer",
                "No Action Required",
            )


@register_rule
class EnableGucNonDefault(PlanRule):
    rule_id = "NON_DEFAULT_GUC"
    name = "checkExplainEnableGucNonDefault"
    description = '"enable_" GUCs configured with non-default values'
    created_at = date(2016, 6, 6)

    def evaluate(self, target: Explain) -> None:
        for setting in target.settings:
            default = ENABLE_GUC_DEFAULTS.get(setting.name)
            if default is not None and setting.value != default:
                target.add_warning(
                    f'"{setting.name}" GUC has non-default value "{setting.value}"',
                    f'Check if "{setting.name}" GUC is required',
                )


# ->  Seq Scan on sales_1_prt_outlying_years s  (cost=0.00..55276.72 rows=2476236 width=8)
_CHILD_PARTITION = re.compile(r"_[0-9]+_prt_")


@register_rule
class OrcaChildPartitionScan(PlanRule):
    """
    Scan that names a child partition directly.

    ORCA only eliminates partitions when the query goes through the root
    table. The warning is attached to the offending node.
    """

    rule_id = "ORCA_CHILD_PARTITION_SCAN"
    name = "checkExplainOrcaChildPartitionScan"
    description = "Scan on child partition instead of root partition"
    created_at = date(2016, 6, 8)
    optimizers = (Optimizer.ORCA,)

    def evaluate(self, target: Explain) -> None:
        if target.optimizer != "on":
            return

        for node in target.nodes:
            if _CHILD_PARTITION.search(node.operator):
                node.add_warning(
                    "Scan on what appears to be a child partition",
                    "Recommend using root partition when ORCA is enabled",
                )
