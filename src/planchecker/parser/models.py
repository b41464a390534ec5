"""
Pydantic models for Greenplum EXPLAIN / EXPLAIN ANALYZE text output.

The structure is:
- Explain: One parse result, owning the flat node/plan lists and the
  plan-wide aggregates (slice stats, memory, settings, runtime)
- Plan: A named execution fragment ("Plan" or "SubPlan N") with one top node
- Node: One "->" execution step, linked to its child nodes and sub plans

Values that only exist in EXPLAIN ANALYZE output are None when absent.

Reference: https://docs.vmware.com/en/VMware-Greenplum/index.html (EXPLAIN)
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field


class ObjectType(str, Enum):
    """Kind of object a scan node reads."""
    TABLE = "TABLE"
    INDEX = "INDEX"


class Setting(BaseModel):
    """A GUC recorded in the "Settings:" line."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class PlanWarning(BaseModel):
    """A performance-review warning attached to a node or the whole plan."""

    model_config = ConfigDict(frozen=True)

    cause: str = Field(..., description="What caused the warning")
    resolution: str = Field(..., description="What should be done to resolve it")


class Node(BaseModel):
    """
    Represents a single execution step in the plan.

    indent and offset locate the node in the source text and are the only
    inputs to tree building. lines[0] is always the node header; the rest
    are its annotation lines, verbatim.

    Fields are divided into:
    - Header fields: Parsed from lines[0]
    - Derived fields: Filled by the roll-up after the tree is built
    - EXPLAIN ANALYZE fields: None unless the annotation reports them
    """

    # =========================================================================
    # Position in the source text
    # =========================================================================

    indent: int = Field(..., ge=0, description="Number of leading spaces")
    offset: int = Field(..., ge=0, description="0-based line number")
    lines: list[str] = Field(default_factory=list, description="Header + annotations")

    # =========================================================================
    # Header fields
    # =========================================================================

    operator: str = ""
    object_name: str | None = None
    object_type: ObjectType | None = None
    slice: int | None = None
    startup_cost: float = 0.0
    total_cost: float = 0.0
    rows: int = 0
    width: int = 0

    # =========================================================================
    # Derived fields
    # =========================================================================

    self_cost: float = 0.0
    cost_percent: float | None = None
    self_time: float | None = None
    time_percent: float | None = None

    # =========================================================================
    # EXPLAIN ANALYZE fields
    # =========================================================================

    is_analyzed: bool = False
    actual_rows: float | None = None
    avg_rows: float | None = None
    workers: int | None = None
    max_rows: float | None = None
    max_segment: str | None = None
    scans: int | None = None
    ms_first: float | None = None
    ms_end: float | None = None
    ms_offset: float | None = None
    avg_mem: float | None = None
    max_mem: float | None = None
    spill_files: int | None = None
    spill_reuse: int | None = None
    partitions_selected: int | None = None
    partitions_selected_total: int | None = None
    partitions_scanned: int | None = None
    partitions_scanned_total: int | None = None
    filter: str | None = None

    # =========================================================================
    # Tree links and findings
    # =========================================================================

    sub_nodes: list[Node] = Field(default_factory=list, repr=False)
    sub_plans: list[Plan] = Field(default_factory=list, repr=False)
    warnings: list[PlanWarning] = Field(default_factory=list)

    @property
    def header(self) -> str:
        """The raw node line."""
        return self.lines[0] if self.lines else ""

    @property
    def annotations(self) -> list[str]:
        """Raw annotation lines below the header."""
        return self.lines[1:]

    def add_warning(self, cause: str, resolution: str) -> None:
        """Attach a warning to this node."""
        self.warnings.append(PlanWarning(cause=cause, resolution=resolution))

    def iter_subtree(self) -> Iterator[Node]:
        """Depth-first walk: this node, child nodes, then sub plan trees."""
        yield self
        for child in self.sub_nodes:
            yield from child.iter_subtree()
        for plan in self.sub_plans:
            if plan.top_node is not None:
                yield from plan.top_node.iter_subtree()


class Plan(BaseModel):
    """
    A named plan fragment.

    The implicit top-level plan is named "Plan"; every other plan comes
    from a "SubPlan N" header line.
    """

    name: str
    indent: int = Field(..., ge=0)
    offset: int = Field(..., ge=0)
    top_node: Node | None = Field(default=None, repr=False)


class Explain(BaseModel):
    """
    Result of parsing one EXPLAIN output.

    nodes and plans keep creation order; plans[0] is the implicit
    top-level plan and nodes[0] is the first node line in the text.
    """

    nodes: list[Node] = Field(default_factory=list, repr=False)
    plans: list[Plan] = Field(default_factory=list, repr=False)

    slice_stats: list[str] = Field(default_factory=list)
    memory_used: int | None = Field(default=None, description="Statement memory used, KB")
    memory_wanted: int | None = Field(default=None, description="Statement memory wanted, KB")
    settings: list[Setting] = Field(default_factory=list)
    optimizer: str = Field(default="", description="Value of the optimizer GUC")
    optimizer_status: str = ""
    runtime: float | None = Field(default=None, description="Total runtime in ms")

    warnings: list[PlanWarning] = Field(default_factory=list)

    @property
    def top_plan(self) -> Plan | None:
        """The implicit top-level plan."""
        return self.plans[0] if self.plans else None

    @property
    def root(self) -> Node | None:
        """Root node of the whole tree."""
        top = self.top_plan
        return top.top_node if top else None

    @property
    def is_analyzed(self) -> bool:
        """True if any node carries EXPLAIN ANALYZE statistics."""
        return any(n.is_analyzed for n in self.nodes)

    def add_warning(self, cause: str, resolution: str) -> None:
        """Attach a plan-wide warning."""
        self.warnings.append(PlanWarning(cause=cause, resolution=resolution))

    def all_warnings(self) -> list[PlanWarning]:
        """Plan-wide warnings followed by every node warning."""
        found = list(self.warnings)
        for node in self.nodes:
            found.extend(node.warnings)
        return found


Node.model_rebuild()
Plan.model_rebuild()
Explain.model_rebuild()
