"""planchecker - Greenplum EXPLAIN plan parser and checker."""

__version__ = "0.3.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from planchecker.exceptions import (
    PlanCheckerError,
    ParseError,
    EmptyPlanError,
    PlanIndentationError,
    NodeParseError,
    NoNodesFoundError,
    RuleError,
    ConfigurationError,
)

from planchecker.config import CheckerConfig, get_config
from planchecker.parser.models import Explain, Node, ObjectType, Plan, PlanWarning, Setting
from planchecker.parser.parser import parse_plan, parse_plan_file
from planchecker.checks import CheckEngine, list_checks
from planchecker.output import (
    OutputFormat,
    render,
    render_explain,
    render_html,
    render_json,
    render_text,
)

__all__ = [
    "__version__",
    # Exceptions
    "PlanCheckerError",
    "ParseError",
    "EmptyPlanError",
    "PlanIndentationError",
    "NodeParseError",
    "NoNodesFoundError",
    "RuleError",
    "ConfigurationError",
    # Core
    "CheckerConfig",
    "get_config",
    "parse_plan",
    "parse_plan_file",
    "CheckEngine",
    "list_checks",
    # Models
    "Explain",
    "Node",
    "ObjectType",
    "Plan",
    "PlanWarning",
    "Setting",
    # Output
    "OutputFormat",
    "render",
    "render_explain",
    "render_html",
    "render_json",
    "render_text",
]
