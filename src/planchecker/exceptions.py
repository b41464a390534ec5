"""
Package-level exception hierarchy for planchecker.

All exceptions inherit from PlanCheckerError, enabling:
- Catching all planchecker errors with a single except clause
- Context fields for debugging (source category, offending line, rule_id)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    PlanCheckerError
    ├── ParseError              – EXPLAIN text could not be turned into a tree
    │   ├── EmptyPlanError      – Nothing but whitespace was supplied
    │   ├── PlanIndentationError – Node line indented against the contract
    │   ├── NodeParseError      – Node header line could not be parsed
    │   └── NoNodesFoundError   – No plan node lines at all
    ├── RuleError               – A check raised while evaluating
    └── ConfigurationError      – Invalid checker configuration
"""

from __future__ import annotations

from typing import Any

_REEXPLAIN_HINT = (
    "Recommend running EXPLAIN again and resubmitting the plan.\n"
    "Do not manually adjust the indentation as this will lead to incorrect parsing!"
)


class PlanCheckerError(Exception):
    """
    Base exception for all planchecker errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanCheckerError):
    """
    Failed to turn EXPLAIN text into a plan tree.

    Attributes:
        source: Category of the failure ("empty_input", "indentation",
            "node_header", "no_nodes", "file_read", ...).
    """

    def __init__(self, message: str, source: str = "unknown") -> None:
        self.source = source
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result


class EmptyPlanError(ParseError):
    """The supplied plan text was empty."""

    def __init__(self, message: str = "Plan text is empty") -> None:
        super().__init__(message, source="empty_input")


class PlanIndentationError(ParseError):
    """
    A node line violated the indentation contract.

    The first node must be indented by at most one space and every later
    node by at least two. Anything else means the whitespace was mangled
    while copying the plan.

    Attributes:
        line: The offending raw line (trailing spaces removed).
        first_node: Whether the offending line was the first node.
    """

    def __init__(self, line: str, *, first_node: bool) -> None:
        self.line = line.rstrip(" ")
        self.first_node = first_node
        where = "first plan node" if first_node else "line"
        super().__init__(
            f"Detected wrong indentation on {where}:\n{self.line}\n\n{_REEXPLAIN_HINT}\n",
            source="indentation",
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["line"] = self.line
        return result


class NodeParseError(ParseError):
    """
    A node header did not match the node shape.

    Attributes:
        line: The header line that failed to parse.
    """

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"Unable to parse node:\n{line.strip()}", source="node_header")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["line"] = self.line
        return result


class NoNodesFoundError(ParseError):
    """The text contained no plan node lines."""

    def __init__(self) -> None:
        super().__init__("Could not find any nodes in plan", source="no_nodes")


# ── Check Errors ─────────────────────────────────────────────────────────


class RuleError(PlanCheckerError):
    """
    Error during rule execution.

    Captures which rule failed and, for node rules, which operator it was
    looking at.

    Attributes:
        rule_id: The ID of the rule that failed.
        operator: Operator of the node being checked (if known).
        original_error: The underlying exception.
    """

    def __init__(
        self,
        rule_id: str,
        original_error: Exception,
        operator: str | None = None,
    ) -> None:
        self.rule_id = rule_id
        self.operator = operator
        self.original_error = original_error

        context = f"Rule '{rule_id}'"
        if operator:
            context += f" on '{operator}'"

        message = (
            f"{context} failed: "
            f"{original_error.__class__.__name__}: {original_error}"
        )
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output / logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "rule_id": self.rule_id,
            "operator": self.operator,
            "original_error_type": self.original_error.__class__.__name__,
            "original_error_message": str(self.original_error),
        }


class ConfigurationError(PlanCheckerError):
    """
    Error in checker configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
