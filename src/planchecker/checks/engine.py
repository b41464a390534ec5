"""
Check engine.

Instantiates the registered rules for one configuration and runs them:
node rules once per node, plan rules once per parse, each in catalog order.
"""

from __future__ import annotations

from typing import Sequence

from pydantic import ValidationError

from planchecker.checks.base import NodeRule, PlanRule, Rule, RuleScope
from planchecker.checks.registry import RuleRegistry, get_registry
from planchecker.config import CheckerConfig
from planchecker.exceptions import ConfigurationError, RuleError
from planchecker.parser.models import Explain, Node
from planchecker.tracing import get_logger

logger = get_logger(__name__)


class CheckEngine:
    """
    Runs node and plan rules and collects their warnings.

    Example:
        >>> engine = CheckEngine.from_config(CheckerConfig(exclude_rules={"NESTED_LOOP"}))
        >>> for node in explain.nodes:
        ...     engine.run_node_rules(node)
        >>> engine.run_plan_rules(explain)
    """

    def __init__(self, rules: Sequence[Rule]) -> None:
        self.node_rules: list[NodeRule] = [r for r in rules if isinstance(r, NodeRule)]
        self.plan_rules: list[PlanRule] = [r for r in rules if isinstance(r, PlanRule)]

    @classmethod
    def from_config(
        cls,
        config: CheckerConfig,
        registry: RuleRegistry | None = None,
    ) -> CheckEngine:
        """
        Build an engine with every registered rule the config leaves enabled.

        Raises:
            ConfigurationError: If the config names an unknown rule or an
                override fails the rule's config schema.
        """
        registry = registry or get_registry()

        unknown = {r for r in config.exclude_rules | set(config.rules) if r not in registry}
        if unknown:
            raise ConfigurationError(
                f"Unknown rule id(s): {', '.join(sorted(unknown))}",
                config_key="rules",
            )

        rules: list[Rule] = []
        for rule_cls in registry.filter(exclude=config.exclude_rules):
            try:
                rule = rule_cls(config.rules.get(rule_cls.rule_id))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid configuration for rule '{rule_cls.rule_id}': {e}",
                    config_key=rule_cls.rule_id,
                ) from e

            if not rule.config.enabled:
                logger.debug("Rule %s disabled by configuration", rule.rule_id)
                continue
            rules.append(rule)

        return cls(rules)

    def run_node_rules(self, node: Node) -> None:
        """
        Evaluate every node rule against node.

        Raises:
            RuleError: If a rule raises; the parse is aborted.
        """
        for rule in self.node_rules:
            try:
                rule.evaluate(node)
            except Exception as e:
                raise RuleError(rule.rule_id, e, operator=node.operator) from e

    def run_plan_rules(self, explain: Explain) -> None:
        """
        Evaluate every plan rule against explain.

        Raises:
            RuleError: If a rule raises; the parse is aborted.
        """
        for rule in self.plan_rules:
            try:
                rule.evaluate(explain)
            except Exception as e:
                raise RuleError(rule.rule_id, e) from e

    @property
    def rules(self) -> list[Rule]:
        return [*self.node_rules, *self.plan_rules]

    def __repr__(self) -> str:
        return (
            f"CheckEngine(node_rules={len(self.node_rules)}, "
            f"plan_rules={len(self.plan_rules)})"
        )


def list_checks(registry: RuleRegistry | None = None) -> list[dict[str, object]]:
    """Catalog entries for every registered rule, node rules first."""
    registry = registry or get_registry()
    return [
        rule_cls.describe()
        for scope in (RuleScope.NODE, RuleScope.PLAN)
        for rule_cls in registry.by_scope(scope)
    ]
