"""Plan checks: rule base classes, registry and the engine that runs them."""

from planchecker.checks.base import NodeRule, Optimizer, PlanRule, Rule, RuleConfig, RuleScope
from planchecker.checks.engine import CheckEngine, list_checks
from planchecker.checks.node_rules import (
    DataSkew,
    EstimatedRows,
    FilterWithFunction,
    NestedLoop,
    PartitionScans,
    Scans,
    Spilling,
)
from planchecker.checks.plan_rules import (
    EnableGucNonDefault,
    MotionCount,
    OrcaChildPartitionScan,
    PlannerFallback,
    SliceCount,
)
from planchecker.checks.registry import RuleRegistry, get_registry, register_rule

__all__ = [
    "CheckEngine",
    "list_checks",
    "NodeRule",
    "Optimizer",
    "PlanRule",
    "Rule",
    "RuleConfig",
    "RuleRegistry",
    "RuleScope",
    "get_registry",
    "register_rule",
    # Node rules
    "DataSkew",
    "EstimatedRows",
    "FilterWithFunction",
    "NestedLoop",
    "PartitionScans",
    "Scans",
    "Spilling",
    # Plan rules
    "EnableGucNonDefault",
    "MotionCount",
    "OrcaChildPartitionScan",
    "PlannerFallback",
    "SliceCount",
]
