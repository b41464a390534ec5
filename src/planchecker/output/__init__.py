"""
Output module - rendering of parsed plans.

Usage:
    from planchecker.output import render_text, render_json

    explain = parse_plan(text)
    console.print(render_text(explain))
    return render_json(explain)
"""

from planchecker.output.renderers import (
    OutputFormat,
    explain_to_schema,
    render,
    render_explain,
    render_html,
    render_json,
    render_text,
)
from planchecker.output.schema import ExplainSchema, NodeSchema, PlanSchema

__all__ = [
    "OutputFormat",
    "explain_to_schema",
    "render",
    "render_explain",
    "render_html",
    "render_json",
    "render_text",
    "ExplainSchema",
    "NodeSchema",
    "PlanSchema",
]
