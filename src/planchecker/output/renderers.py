"""
Output renderers for a parsed Explain.

- render_text:    console tree with rich markup for warnings
- render_html:    the same tree as an HTML fragment for the web page
- render_json:    stable JSON via the schema models
- render_explain: the plan re-emitted in EXPLAIN's own line format

The text and HTML renderers share one depth-first walk: slice marker,
node line, annotation lines, warnings, then child nodes, then sub plans.
"""

from __future__ import annotations

import html
import json
from enum import Enum

from rich.markup import escape

from planchecker.config import DEFAULT_CONFIG, CheckerConfig
from planchecker.output.schema import (
    ExplainSchema,
    NodeSchema,
    PlanSchema,
    SettingSchema,
    WarningSchema,
)
from planchecker.parser.models import Explain, Node, Plan, PlanWarning


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    HTML = "html"
    JSON = "json"
    EXPLAIN = "explain"


def render(
    explain: Explain,
    format: OutputFormat = OutputFormat.TEXT,
    config: CheckerConfig | None = None,
) -> str:
    """
    Render a parsed plan in the specified format.

    Args:
        explain: Parsed plan
        format: Output format
        config: Indent width and warning style (default: CheckerConfig())

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(explain, config)
    elif format == OutputFormat.HTML:
        return render_html(explain, config)
    elif format == OutputFormat.JSON:
        return render_json(explain)
    elif format == OutputFormat.EXPLAIN:
        return render_explain(explain)
    else:
        raise ValueError(f"Unknown output format: {format}")


def _format_node_line(node: Node) -> str:
    line = (
        f"-> {node.operator} | startup cost {node.startup_cost:.2f} "
        f"| total cost {node.total_cost:.2f} | rows {node.rows} | width {node.width}"
    )
    if node.cost_percent is not None:
        line += f" | self cost {node.self_cost:.2f} ({node.cost_percent:.2f}%)"
    if node.self_time is not None and node.time_percent is not None:
        line += f" | self time {node.self_time:.2f} ms ({node.time_percent:.2f}%)"
    return line


def _format_warning(warning: PlanWarning) -> str:
    return f"WARNING: {warning.cause} | {warning.resolution}"


# =============================================================================
# Shared tree walk
# =============================================================================


class _TreeFormatter:
    """Formats the pieces of the tree walk; subclasses pick the markup."""

    def __init__(self, config: CheckerConfig) -> None:
        self.config = config
        self.lines: list[str] = []

    def indent(self, depth: int) -> str:
        return " " * (depth * self.config.indent_width)

    def quote(self, text: str) -> str:
        return text

    def slice_marker(self, depth: int, slice_id: int) -> None:
        self.lines.append("")
        self.lines.append(f"{self.indent(depth)}   // Slice {slice_id}")

    def node(self, depth: int, node: Node) -> None:
        self.lines.append(f"{self.indent(depth)}{self.quote(_format_node_line(node))}")

    def annotation(self, depth: int, line: str) -> None:
        self.lines.append(f"{self.indent(depth)}   {self.quote(line.strip())}")

    def warning(self, depth: int, warning: PlanWarning) -> None:
        self.lines.append(f"{self.indent(depth)}   {self.quote(_format_warning(warning))}")

    def plan_name(self, depth: int, plan: Plan) -> None:
        self.lines.append(f"{self.indent(depth)}{self.quote(plan.name)}")

    def heading(self, text: str) -> None:
        self.lines.append(text)

    def detail(self, text: str) -> None:
        self.lines.append(f"\t{self.quote(text)}")

    def plan_warning(self, warning: PlanWarning) -> None:
        self.lines.append(self.quote(_format_warning(warning)))

    def walk_node(self, node: Node, depth: int) -> None:
        depth += 1

        if node.slice is not None:
            self.slice_marker(depth, node.slice)

        self.node(depth, node)

        for line in node.annotations:
            self.annotation(depth, line)

        for warning in node.warnings:
            self.warning(depth, warning)

        for child in node.sub_nodes:
            self.walk_node(child, depth)

        for plan in node.sub_plans:
            self.walk_plan(plan, depth)

    def walk_plan(self, plan: Plan, depth: int) -> None:
        depth += 1
        self.plan_name(depth, plan)
        if plan.top_node is not None:
            self.walk_node(plan.top_node, depth)

    def walk(self, explain: Explain) -> str:
        self.heading("Plan:")
        if explain.root is not None:
            self.walk_node(explain.root, 0)

        if explain.warnings:
            self.lines.append("")
            for warning in explain.warnings:
                self.plan_warning(warning)

        self.lines.append("")

        if explain.slice_stats:
            self.heading("Slice statistics:")
            for stat in explain.slice_stats:
                self.detail(stat)

        if explain.memory_used is not None:
            self.heading("Statement statistics:")
            self.detail(f"Memory used: {explain.memory_used}K bytes")
            if explain.memory_wanted is not None:
                self.detail(f"Memory wanted: {explain.memory_wanted}K bytes")

        if explain.settings:
            self.heading("Settings:")
            for setting in explain.settings:
                self.detail(f"{setting.name} = {setting.value}")

        if explain.optimizer_status:
            self.heading("Optimizer status:")
            self.detail(explain.optimizer_status)

        if explain.runtime is not None:
            self.heading("Total runtime:")
            self.detail(f"{explain.runtime:.0f} ms")

        return "\n".join(self.lines)


# =============================================================================
# Text renderer (terminal)
# =============================================================================


class _RichFormatter(_TreeFormatter):
    def quote(self, text: str) -> str:
        return escape(text)

    def _styled(self, text: str) -> str:
        return f"[{self.config.warning_style}]{escape(text)}[/]"

    def warning(self, depth: int, warning: PlanWarning) -> None:
        self.lines.append(f"{self.indent(depth)}   {self._styled(_format_warning(warning))}")

    def plan_warning(self, warning: PlanWarning) -> None:
        self.lines.append(self._styled(_format_warning(warning)))


def render_text(explain: Explain, config: CheckerConfig | None = None) -> str:
    """
    Render the plan tree for the console.

    The result contains rich markup (warnings are wrapped in
    config.warning_style); print it with a rich Console.
    """
    return _RichFormatter(config or DEFAULT_CONFIG).walk(explain)


# =============================================================================
# HTML renderer
# =============================================================================


class _HtmlFormatter(_TreeFormatter):
    def quote(self, text: str) -> str:
        return html.escape(text, quote=False)

    def slice_marker(self, depth: int, slice_id: int) -> None:
        self.lines.append(
            f'{self.indent(depth)}   <span class="label label-success">Slice {slice_id}</span>'
        )

    def node(self, depth: int, node: Node) -> None:
        self.lines.append(f"{self.indent(depth)}<strong>{self.quote(_format_node_line(node))}</strong>")

    def warning(self, depth: int, warning: PlanWarning) -> None:
        self.lines.append(
            f'{self.indent(depth)}   <span class="label label-danger">'
            f"{self.quote(_format_warning(warning))}</span>"
        )

    def plan_name(self, depth: int, plan: Plan) -> None:
        self.lines.append(f"{self.indent(depth)}<strong>{self.quote(plan.name)}</strong>")

    def heading(self, text: str) -> None:
        self.lines.append(f"<strong>{self.quote(text)}</strong>")

    def plan_warning(self, warning: PlanWarning) -> None:
        self.lines.append(
            f'\t<span class="label label-danger">{self.quote(_format_warning(warning))}</span>'
        )


def render_html(explain: Explain, config: CheckerConfig | None = None) -> str:
    """Render the plan tree as an HTML fragment meant for a <pre> block."""
    return _HtmlFormatter(config or DEFAULT_CONFIG).walk(explain)


# =============================================================================
# JSON renderer (uses schema models)
# =============================================================================


def _node_to_schema(node: Node) -> NodeSchema:
    return NodeSchema(
        operator=node.operator,
        object_name=node.object_name,
        object_type=node.object_type.value if node.object_type else None,
        slice=node.slice,
        startup_cost=node.startup_cost,
        total_cost=node.total_cost,
        rows=node.rows,
        width=node.width,
        self_cost=node.self_cost,
        cost_percent=node.cost_percent,
        self_time=node.self_time,
        time_percent=node.time_percent,
        is_analyzed=node.is_analyzed,
        actual_rows=node.actual_rows,
        avg_rows=node.avg_rows,
        workers=node.workers,
        max_rows=node.max_rows,
        max_segment=node.max_segment,
        scans=node.scans,
        ms_first=node.ms_first,
        ms_end=node.ms_end,
        ms_offset=node.ms_offset,
        avg_mem=node.avg_mem,
        max_mem=node.max_mem,
        spill_files=node.spill_files,
        spill_reuse=node.spill_reuse,
        partitions_selected=node.partitions_selected,
        partitions_selected_total=node.partitions_selected_total,
        partitions_scanned=node.partitions_scanned,
        partitions_scanned_total=node.partitions_scanned_total,
        filter=node.filter,
        annotations=[line.strip() for line in node.annotations],
        warnings=[_warning_to_schema(w) for w in node.warnings],
        sub_nodes=[_node_to_schema(child) for child in node.sub_nodes],
        sub_plans=[_plan_to_schema(plan) for plan in node.sub_plans],
    )


def _plan_to_schema(plan: Plan) -> PlanSchema:
    return PlanSchema(
        name=plan.name,
        top_node=_node_to_schema(plan.top_node) if plan.top_node is not None else None,
    )


def _warning_to_schema(warning: PlanWarning) -> WarningSchema:
    return WarningSchema(cause=warning.cause, resolution=warning.resolution)


def explain_to_schema(explain: Explain) -> ExplainSchema:
    """Convert a parsed Explain to the stable output schema."""
    top = explain.top_plan
    return ExplainSchema(
        plan=_plan_to_schema(top) if top is not None else PlanSchema(name="Plan"),
        warnings=[_warning_to_schema(w) for w in explain.warnings],
        warning_count=len(explain.all_warnings()),
        slice_stats=list(explain.slice_stats),
        memory_used=explain.memory_used,
        memory_wanted=explain.memory_wanted,
        settings=[SettingSchema(name=s.name, value=s.value) for s in explain.settings],
        optimizer=explain.optimizer,
        optimizer_status=explain.optimizer_status,
        runtime=explain.runtime,
    )


def render_json(explain: Explain, indent: int = 2) -> str:
    """
    Render the parsed plan as stable JSON.

    Suitable for API responses and scripting.
    """
    return json.dumps(explain_to_schema(explain).model_dump(mode="json"), indent=indent)


# =============================================================================
# EXPLAIN text renderer
# =============================================================================

# ->  Seq Scan on t1  (cost=0.00..50.00 rows=100 width=4)
_ARROW = "->  "
_ROOT_INDENT = 1


def _explain_node_line(node: Node) -> str:
    label = node.operator
    if node.slice is not None:
        label += f"  (slice{node.slice})"
    return (
        f"{label}  (cost={node.startup_cost:.2f}..{node.total_cost:.2f} "
        f"rows={node.rows} width={node.width})"
    )


def _emit_node(node: Node, indent: int, lines: list[str], is_root: bool = False) -> None:
    prefix = "" if is_root else _ARROW
    lines.append(" " * indent + prefix + _explain_node_line(node))

    # Children and annotations start two columns right of the operator text
    column = indent + len(prefix) + 2
    for line in node.annotations:
        lines.append(" " * column + line.strip())

    for child in node.sub_nodes:
        _emit_node(child, column, lines)

    for plan in node.sub_plans:
        lines.append(" " * column + plan.name)
        if plan.top_node is not None:
            _emit_node(plan.top_node, column + 2, lines)


def render_explain(explain: Explain) -> str:
    """
    Re-emit the plan in EXPLAIN's own text format.

    Parsing the output again reproduces operators, costs, rows, widths,
    slice ids and the tree shape. Original whitespace is not preserved.
    """
    lines: list[str] = []

    if explain.root is not None:
        _emit_node(explain.root, _ROOT_INDENT, lines, is_root=True)

    if explain.slice_stats:
        lines.append(" Slice statistics:")
        lines.extend(f"   {stat}" for stat in explain.slice_stats)

    if explain.memory_used is not None or explain.memory_wanted is not None:
        lines.append(" Statement statistics:")
        if explain.memory_used is not None:
            lines.append(f"   Memory used: {explain.memory_used}K bytes")
        if explain.memory_wanted is not None:
            lines.append(f"   Memory wanted: {explain.memory_wanted}K bytes")

    if explain.settings:
        settings = "; ".join(f"{s.name}={s.value}" for s in explain.settings)
        lines.append(f" Settings:  {settings}")

    if explain.optimizer_status:
        lines.append(f" Optimizer status: {explain.optimizer_status}")

    if explain.runtime is not None:
        lines.append(f" Total runtime: {explain.runtime:.3f} ms")

    return "\n".join(lines)
