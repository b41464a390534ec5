"""
Base classes for plan checks.

Checks come in two scopes:
1. NodeRule - looks at one fully populated Node, may add warnings to it
2. PlanRule - looks at the whole Explain once every node has been checked

Rules are observers. They read cost, time and row fields and only ever
append warnings; they never modify anything else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from planchecker.parser.models import Explain, Node


class RuleScope(str, Enum):
    """What a rule is evaluated against."""
    NODE = "node"
    PLAN = "plan"


class Optimizer(str, Enum):
    """Query optimizers a rule is meaningful for."""
    ORCA = "orca"
    LEGACY = "legacy"


class RuleConfig(BaseModel):
    """
    Base configuration for all rules.

    Rules define their thresholds by subclassing this. Every config supports
    'enabled' so a rule can be switched off without excluding it by id.

    Example:
        class SpillingConfig(RuleConfig):
            min_spill_files: int = 1
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True


class Rule(ABC):
    """
    Abstract base class for checks.

    Attributes:
        rule_id: Unique identifier, UPPER_SNAKE_CASE (e.g., "NESTED_LOOP")
        name: Short human-readable name shown in the check catalog
        description: One-line description for the check catalog
        created_at: Date the check was introduced
        optimizers: Optimizers the check applies to (informational)
        scope: NODE or PLAN, set by NodeRule / PlanRule
        config_schema: Pydantic model for rule configuration (default: RuleConfig)
    """

    rule_id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    created_at: ClassVar[date]
    optimizers: ClassVar[tuple[Optimizer, ...]] = (Optimizer.ORCA, Optimizer.LEGACY)
    scope: ClassVar[RuleScope]

    config_schema: ClassVar[type[RuleConfig]] = RuleConfig

    def __init__(self, config: RuleConfig | dict[str, Any] | None = None) -> None:
        """
        Initialize the rule with configuration.

        Args:
            config: Configuration as RuleConfig instance, dict, or None for defaults.
                    If dict, it's validated against config_schema.
        """
        if config is None:
            self.config = self.config_schema()
        elif isinstance(config, dict):
            self.config = self.config_schema(**config)
        else:
            self.config = config

    @abstractmethod
    def evaluate(self, target: Any) -> None:
        """Inspect target and attach any warnings to it."""

    @classmethod
    def describe(cls) -> dict[str, Any]:
        """Catalog entry for listings and the web page."""
        return {
            "rule_id": cls.rule_id,
            "name": cls.name,
            "description": cls.description,
            "created_at": cls.created_at.isoformat(),
            "scope": cls.scope.value,
            "optimizers": [o.value for o in cls.optimizers],
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule_id={self.rule_id!r}, scope={self.scope.value})"


class NodeRule(Rule):
    """A check run once per node, after the node's roll-up."""

    scope = RuleScope.NODE

    @abstractmethod
    def evaluate(self, target: Node) -> None:
        ...


class PlanRule(Rule):
    """A check run once per parse, after every node rule."""

    scope = RuleScope.PLAN

    @abstractmethod
    def evaluate(self, target: Explain) -> None:
        ...
