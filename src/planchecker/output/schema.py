"""
JSON schema definitions for stable API output.

The parse models carry tree-building state (indent, offset, raw lines)
that is meaningless to API consumers; these models expose only the plan
itself. Version is bumped on breaking changes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = "1.0"


class WarningSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    cause: str
    resolution: str


class SettingSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class NodeSchema(BaseModel):
    """Schema for one plan node and its subtree."""

    model_config = ConfigDict(frozen=True)

    operator: str = Field(..., description="Operator text, e.g. 'Seq Scan on sales'")
    object_name: str | None = Field(None, description="Scanned table or index")
    object_type: str | None = Field(None, description="TABLE or INDEX")
    slice: int | None = Field(None, description="Distributed slice id")
    startup_cost: float
    total_cost: float
    rows: int = Field(..., description="Estimated rows")
    width: int

    self_cost: float = Field(..., description="Cost excluding children")
    cost_percent: float | None = Field(None, description="Share of the root's total cost")
    self_time: float | None = Field(None, description="Milliseconds excluding children")
    time_percent: float | None = Field(None, description="Share of the root's time")

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

    annotations: list[str] = Field(default_factory=list, description="Raw annotation lines")
    warnings: list[WarningSchema] = Field(default_factory=list)
    sub_nodes: list[NodeSchema] = Field(default_factory=list)
    sub_plans: list[PlanSchema] = Field(default_factory=list)


class PlanSchema(BaseModel):
    """Schema for a named plan fragment."""

    model_config = ConfigDict(frozen=True)

    name: str
    top_node: NodeSchema | None = None


class ExplainSchema(BaseModel):
    """Top-level schema for one parsed EXPLAIN."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(SCHEMA_VERSION, description="Output schema version")
    plan: PlanSchema
    warnings: list[WarningSchema] = Field(default_factory=list, description="Plan-wide warnings")
    warning_count: int = Field(0, description="Plan-wide plus node warnings")
    slice_stats: list[str] = Field(default_factory=list)
    memory_used: int | None = Field(None, description="KB")
    memory_wanted: int | None = Field(None, description="KB")
    settings: list[SettingSchema] = Field(default_factory=list)
    optimizer: str = ""
    optimizer_status: str = ""
    runtime: float | None = Field(None, description="Total runtime in ms")


NodeSchema.model_rebuild()
PlanSchema.model_rebuild()
ExplainSchema.model_rebuild()
