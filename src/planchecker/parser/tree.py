"""
Tree reconstruction from indentation and line offsets.

The EXPLAIN text has no explicit nesting markers; structure is conveyed
only by how far each line is indented and where it sits in the text. The
collector records (indent, offset) for every node and plan, and this module
turns those positions into parent/child edges:

    Plan 0 ("Plan")
        top node
            sub nodes ...
            sub plans
                Plan "SubPlan 1"
                    top node
                        ...

Edge resolution works on plain position lists addressed by index, so it
can be exercised without building any Node objects. link_tree() then
applies the edges to the collected models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from planchecker.parser.models import Explain
from planchecker.tracing import get_logger

logger = get_logger(__name__)

# "SubPlan 1" is always followed directly by its top node, two columns deeper:
#  SubPlan 1
#    ->  Limit  (cost=0.00..9.23 rows=1 width=0)
SUBPLAN_TOP_INDENT = 2
SUBPLAN_TOP_OFFSET = 1


@dataclass(frozen=True)
class Position:
    """Where a node or plan header sits in the source text."""

    indent: int
    offset: int


@dataclass
class TreeEdges:
    """
    Index-based edges between collected nodes and plans.

    Attributes:
        node_parent: child node index -> parent node index
        plan_parent: plan index -> index of the node that owns it
        plan_top: plan index -> index of its top node
        roots: node indexes with no parent and no plan; a well-formed plan
            has exactly one, the first node
        orphan_plans: sub plan indexes no node could own
    """

    node_parent: dict[int, int] = field(default_factory=dict)
    plan_parent: dict[int, int] = field(default_factory=dict)
    plan_top: dict[int, int] = field(default_factory=dict)
    roots: list[int] = field(default_factory=list)
    orphan_plans: list[int] = field(default_factory=list)

    @property
    def root(self) -> int | None:
        """The overall root node (earliest root candidate)."""
        return min(self.roots) if self.roots else None


def attach_plans(nodes: Sequence[Position], plans: Sequence[Position]) -> tuple[dict[int, int], list[int]]:
    """
    Find the owning node of every sub plan.

    The owner is the nearest node above the plan header that is indented
    strictly less than the header. plans[0] is the implicit top-level plan
    and is skipped.

    Returns:
        (plan index -> node index, indexes of plans without an owner)
    """
    parents: dict[int, int] = {}
    orphans: list[int] = []

    for i in range(len(plans) - 1, 0, -1):
        plan = plans[i]
        for p in range(len(nodes) - 1, -1, -1):
            node = nodes[p]
            if node.indent < plan.indent and node.offset < plan.offset:
                parents[i] = p
                break
        else:
            orphans.append(i)

    return parents, sorted(orphans)


def find_plan_for_top(node: Position, plans: Sequence[Position]) -> int | None:
    """Index of the sub plan whose header sits directly above node, if any."""
    for p in range(len(plans) - 1, 0, -1):
        plan = plans[p]
        if (
            node.indent - SUBPLAN_TOP_INDENT == plan.indent
            and node.offset - SUBPLAN_TOP_OFFSET == plan.offset
        ):
            return p
    return None


def attach_nodes(
    nodes: Sequence[Position],
    plans: Sequence[Position],
) -> tuple[dict[int, int], dict[int, int], list[int]]:
    """
    Find the parent of every node.

    A node directly under a "SubPlan" header becomes that plan's top node.
    Otherwise its parent is the nearest earlier node with a strictly
    smaller indent. Equal indents are siblings, never parents.

    Returns:
        (child node -> parent node, plan -> top node, root candidates)
    """
    node_parent: dict[int, int] = {}
    plan_top: dict[int, int] = {}
    roots: list[int] = []

    for i in range(len(nodes) - 1, -1, -1):
        node = nodes[i]

        plan_index = find_plan_for_top(node, plans)
        if plan_index is not None:
            plan_top[plan_index] = i
            continue

        for p in range(i - 1, -1, -1):
            if nodes[p].indent < node.indent:
                node_parent[i] = p
                break
        else:
            roots.append(i)

    return node_parent, plan_top, sorted(roots)


def build_edges(nodes: Sequence[Position], plans: Sequence[Position]) -> TreeEdges:
    """Resolve every edge of the tree from positions alone."""
    plan_parent, orphan_plans = attach_plans(nodes, plans)
    node_parent, plan_top, roots = attach_nodes(nodes, plans)
    return TreeEdges(
        node_parent=node_parent,
        plan_parent=plan_parent,
        plan_top=plan_top,
        roots=roots,
        orphan_plans=orphan_plans,
    )


def build_tree(explain: Explain) -> TreeEdges:
    """
    Link the collected nodes and plans of explain into a tree.

    Children are attached in source order. Returns the edges that were
    applied so callers can inspect them.
    """
    logger.debug("Building tree from %d nodes, %d plans", len(explain.nodes), len(explain.plans))

    edges = build_edges(
        [Position(n.indent, n.offset) for n in explain.nodes],
        [Position(p.indent, p.offset) for p in explain.plans],
    )
    link_tree(explain, edges)
    return edges


def link_tree(explain: Explain, edges: TreeEdges) -> None:
    """Apply resolved edges to the Node and Plan models."""
    for child, parent in sorted(edges.node_parent.items()):
        explain.nodes[parent].sub_nodes.append(explain.nodes[child])

    for plan_index, parent in sorted(edges.plan_parent.items()):
        explain.nodes[parent].sub_plans.append(explain.plans[plan_index])

    for plan_index, top in edges.plan_top.items():
        explain.plans[plan_index].top_node = explain.nodes[top]

    for plan_index in edges.orphan_plans:
        logger.warning("No parent node found for %r", explain.plans[plan_index].name)

    for plan_index, plan in enumerate(explain.plans[1:], start=1):
        if plan_index not in edges.plan_top:
            logger.warning("No top node found for %r", plan.name)

    if len(edges.roots) > 1:
        logger.warning(
            "Found %d root node candidates (lines %s); using the first",
            len(edges.roots),
            ", ".join(str(explain.nodes[r].offset + 1) for r in edges.roots),
        )

    if edges.root is not None and explain.plans:
        explain.plans[0].top_node = explain.nodes[edges.root]
