"""
EXPLAIN text parsing.

The entry point is planchecker.parser.parser.parse_plan (re-exported from
the top-level package). This package namespace only exposes the models so
the checks can import them without pulling in the pipeline.
"""

from planchecker.parser.models import Explain, Node, ObjectType, Plan, PlanWarning, Setting

__all__ = [
    "Explain",
    "Node",
    "ObjectType",
    "Plan",
    "PlanWarning",
    "Setting",
]
