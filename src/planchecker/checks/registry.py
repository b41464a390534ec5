"""
Rule registry for centralized check management.

Rules register themselves with the @register_rule decorator when their
module is imported. Registration order is catalog order, which is also
evaluation order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from planchecker.checks.base import Rule, RuleScope

T = TypeVar("T", bound="Rule")


class RuleRegistry:
    """
    Registry of check classes.

    Example:
        @register_rule
        class NestedLoop(NodeRule):
            rule_id = "NESTED_LOOP"
            ...

        registry = get_registry()
        rules = registry.filter(exclude={"NESTED_LOOP"})
    """

    def __init__(self) -> None:
        self._rules: dict[str, type[Rule]] = {}

    def register(self, rule_cls: type[T]) -> type[T]:
        """
        Register a rule class.

        Raises:
            ValueError: If a rule with the same ID is already registered
        """
        rule_id = rule_cls.rule_id

        if rule_id in self._rules:
            existing = self._rules[rule_id]
            raise ValueError(
                f"Rule '{rule_id}' already registered by {existing.__module__}.{existing.__name__}. "
                f"Cannot register {rule_cls.__module__}.{rule_cls.__name__}"
            )

        self._rules[rule_id] = rule_cls
        return rule_cls

    def all(self) -> list[type[Rule]]:
        """All registered rule classes, in registration order."""
        return list(self._rules.values())

    def all_ids(self) -> list[str]:
        return list(self._rules.keys())

    def by_scope(self, scope: RuleScope) -> list[type[Rule]]:
        """Registered rules of one scope, in registration order."""
        return [r for r in self._rules.values() if r.scope == scope]

    def filter(
        self,
        include: set[str] | None = None,
        exclude: set[str] | frozenset[str] | None = None,
    ) -> list[type[Rule]]:
        """
        Get a filtered list of rule classes.

        Args:
            include: If provided, only include these rule IDs
            exclude: If provided, exclude these rule IDs

        Example:
            rules = registry.filter(exclude={"DATA_SKEW"})
        """
        rules = self.all()

        if include is not None:
            rules = [r for r in rules if r.rule_id in include]

        if exclude is not None:
            rules = [r for r in rules if r.rule_id not in exclude]

        return rules

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules


# Global registry instance
_global_registry = RuleRegistry()


def get_registry() -> RuleRegistry:
    """Get the global rule registry."""
    return _global_registry


def register_rule(rule_cls: type[T]) -> type[T]:
    """Decorator to register a rule with the global registry."""
    return _global_registry.register(rule_cls)
