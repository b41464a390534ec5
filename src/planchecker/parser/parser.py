"""
Parse Greenplum EXPLAIN text into a checked plan tree.

This is the single entry point of the core. The pipeline is strictly
forward:

    text -> LineCollector -> build_tree -> parse_node_details
         -> insert fixup -> roll-up -> node rules -> plan rules

Either a fully populated Explain is returned or a ParseError / RuleError is
raised; nothing partially built escapes.
"""

from __future__ import annotations

from pathlib import Path

from planchecker.checks.engine import CheckEngine
from planchecker.config import DEFAULT_CONFIG, CheckerConfig
from planchecker.exceptions import EmptyPlanError, NoNodesFoundError, ParseError
from planchecker.parser.collector import LineCollector
from planchecker.parser.models import Explain
from planchecker.parser.node_detail import parse_node_details
from planchecker.parser.rollup import apply_insert_fixup, rollup
from planchecker.parser.tree import build_tree
from planchecker.tracing import get_logger, tracing

logger = get_logger(__name__)


def parse_plan(
    text: str,
    config: CheckerConfig | None = None,
    engine: CheckEngine | None = None,
) -> Explain:
    """
    Parse EXPLAIN or EXPLAIN ANALYZE output and run every enabled check.

    Args:
        text: Plan text as printed by psql (per-line double quotes from GUI
            clients are removed automatically)
        config: Checker configuration (default: CheckerConfig())
        engine: Pre-built check engine; built from config when omitted

    Returns:
        The parsed Explain with warnings attached

    Raises:
        EmptyPlanError: If text is empty or whitespace
        PlanIndentationError: If a node line breaks the indentation contract
        NodeParseError: If a node header cannot be parsed
        NoNodesFoundError: If text has no node lines
        RuleError: If a check fails
        ConfigurationError: If config names unknown rules or bad thresholds

    Example:
        >>> explain = parse_plan("Seq Scan on t1  (cost=0.00..10.00 rows=1 width=8)")
        >>> explain.root.warnings[0].cause
        'Estimated rows is 1'
    """
    config = config or DEFAULT_CONFIG

    if not text or not text.strip():
        raise EmptyPlanError()

    with tracing(config.trace):
        if engine is None:
            engine = CheckEngine.from_config(config)

        explain = LineCollector(text.splitlines()).collect()

        if not explain.nodes:
            raise NoNodesFoundError()

        build_tree(explain)

        for node in explain.nodes:
            parse_node_details(node)

        apply_insert_fixup(explain)
        rollup(explain)

        for node in explain.nodes:
            engine.run_node_rules(node)
        engine.run_plan_rules(explain)

        logger.debug(
            "Parsed %d nodes, %d plans, %d warnings",
            len(explain.nodes),
            len(explain.plans),
            len(explain.all_warnings()),
        )

    return explain


def parse_plan_file(path: str | Path, config: CheckerConfig | None = None) -> Explain:
    """
    Read a plan from disk and parse it.

    Raises:
        ParseError: With source "file_read" if the file cannot be read,
            otherwise anything parse_plan() raises
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ParseError(f"Could not read plan file {path}: {e}", source="file_read") from e

    return parse_plan(text, config)
