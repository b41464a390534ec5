"""
Cost and time roll-up.

Turns the cumulative figures printed for every node into exclusive (self)
figures and each node's share of the whole plan:

    self_cost = total_cost - sum(child total_cost) - sum(sub plan top total_cost)
    self_time = ms_end     - sum(child ms_end)

Sub plan time is not subtracted; the format does not report it separately.
"""

from __future__ import annotations

from planchecker.parser.models import Explain, Node
from planchecker.tracing import get_logger

logger = get_logger(__name__)


def apply_insert_fixup(explain: Explain) -> bool:
    """
    Give a cost-less root node the figures of the node below it.

    Insert, Update and Delete are printed without a cost range:

        Insert (slice0; segments: 4)  (rows=13200 width=32)
          ->  Seq Scan on t1  (cost=0.00..50.00 rows=100 width=4)

    Returns:
        True if the root was updated
    """
    if len(explain.nodes) < 2 or explain.nodes[0].total_cost != 0:
        return False

    root, source = explain.nodes[0], explain.nodes[1]
    root.total_cost = source.total_cost
    root.startup_cost = source.startup_cost
    root.ms_end = source.ms_end
    root.ms_offset = source.ms_offset
    root.is_analyzed = source.is_analyzed

    logger.debug("Copied cost %.2f from %r into %r", root.total_cost, source.operator, root.operator)
    return True


def compute_self_values(node: Node) -> None:
    """Set self_cost and self_time from the node's direct children."""
    child_cost = sum(child.total_cost for child in node.sub_nodes)
    child_cost += sum(
        plan.top_node.total_cost for plan in node.sub_plans if plan.top_node is not None
    )
    node.self_cost = max(node.total_cost - child_cost, 0.0)

    if node.ms_end is None:
        node.self_time = None
    else:
        child_time = sum(child.ms_end or 0.0 for child in node.sub_nodes)
        node.self_time = max(node.ms_end - child_time, 0.0)


def compute_percentages(node: Node, total_cost: float, total_time: float | None) -> None:
    """Set cost_percent and time_percent; None when there is nothing to divide by."""
    node.cost_percent = _percent(node.self_cost, total_cost)
    node.time_percent = _percent(node.self_time, total_time)


def _percent(part: float | None, whole: float | None) -> float | None:
    if part is None or not whole:
        return None
    return part / whole * 100


def rollup(explain: Explain) -> None:
    """
    Compute self values and percentages for every node.

    Self values only look one level down, at cumulative figures, so nodes
    can be handled in any order. Percentages are relative to nodes[0].
    """
    if not explain.nodes:
        return

    for node in explain.nodes:
        compute_self_values(node)

    root = explain.nodes[0]
    for node in explain.nodes:
        compute_percentages(node, root.total_cost, root.ms_end)

    logger.debug("Rolled up %d nodes, total cost %.2f", len(explain.nodes), root.total_cost)
