"""
Node detail extraction.

Fills in a Node from its raw lines. Example input:

  ->  Hash Join  (cost=0.00..862.00 rows=1 width=16)
        Hash Cond: public.sales.id = public.sales.year
        Rows out:  11000 rows (seg0) with 6897 ms to first row, 7429 ms to end, start offset by 40 ms.
        Executor memory:  127501K bytes avg, 127501K bytes max (seg0).
        Work_mem used:  127501K bytes avg, 127501K bytes max (seg0). Workfile: (2 spilling, 0 reused)
        Work_mem wanted: 171875K bytes avg, 171875K bytes max (seg0) to lessen workfile I/O affecting 2 workers.

Every annotation line is tested against every pattern independently; one
line can feed several fields.
"""

from __future__ import annotations

import re

from planchecker.exceptions import NodeParseError
from planchecker.parser import patterns
from planchecker.parser.models import Node, ObjectType
from planchecker.tracing import get_logger

logger = get_logger(__name__)

_ANALYZE_FIELDS = (
    "actual_rows",
    "avg_rows",
    "workers",
    "max_rows",
    "max_segment",
    "scans",
    "ms_first",
    "ms_end",
    "ms_offset",
    "avg_mem",
    "max_mem",
    "spill_files",
    "spill_reuse",
    "partitions_selected",
    "partitions_selected_total",
    "partitions_scanned",
    "partitions_scanned_total",
    "filter",
)


def parse_node_details(node: Node) -> None:
    """
    Populate header and annotation fields of node.

    Raises:
        NodeParseError: If lines[0] does not have the node shape.
    """
    _reset(node)
    _parse_header(node)

    for line in node.annotations:
        _parse_annotation(node, line)

    # Greenplum prints the elapsed time once when first row and end coincide
    if node.ms_first is None and node.ms_end is not None:
        node.ms_first = node.ms_end


def _reset(node: Node) -> None:
    for name in _ANALYZE_FIELDS:
        setattr(node, name, None)
    node.is_analyzed = False
    node.object_name = None
    node.object_type = None
    node.slice = None


def _parse_header(node: Node) -> None:
    # ->  Broadcast Motion 1:2  (slice1)  (cost=0.00..27.48 rows=1124 width=208)
    match = patterns.NODE.search(node.header)
    if match is None:
        raise NodeParseError(node.header)

    label = match.group(1).strip(" ->")

    slice_match = patterns.SLICE.search(label)
    if slice_match:
        node.operator = slice_match.group(1).strip()
        node.slice = _to_int(slice_match.group(2), "slice")
    else:
        node.operator = label.strip()

    table = patterns.TABLE_SCAN.search(node.operator)
    if table:
        node.object_name = table.group(2)
        node.object_type = ObjectType.TABLE

    index = patterns.INDEX_SCAN.search(node.operator)
    if index:
        node.object_name = index.group(2)
        node.object_type = ObjectType.INDEX

    node.startup_cost = _to_float(match.group(3), "startup cost") or 0.0
    node.total_cost = _to_float(match.group(4), "total cost") or 0.0
    node.rows = _to_int(match.group(5), "rows") or 0
    node.width = _to_int(match.group(6), "width") or 0

    logger.debug(
        "Node %r slice=%s cost=%s..%s rows=%s width=%s",
        node.operator, node.slice, node.startup_cost, node.total_cost, node.rows, node.width,
    )


def _parse_annotation(node: Node, line: str) -> None:
    if patterns.ANALYZE_MARKER in line:
        node.is_analyzed = True
        _parse_row_stats(node, line)

    if patterns.WORK_MEM_MARKER in line:
        if m := patterns.WORK_MEM_AVG.search(line):
            node.avg_mem = _to_float(m.group(1), "avg mem")
        if m := patterns.WORK_MEM_MAX.search(line):
            node.max_mem = _to_float(m.group(1), "max mem")

    if m := patterns.SPILL.search(line):
        node.spill_files = _to_int(m.group(1), "spill files")
        node.spill_reuse = _to_int(m.group(2), "spill reuse")

    if m := patterns.PARTITIONS_SELECTED.search(line):
        node.partitions_selected = _to_int(m.group(1), "partitions selected")
        node.partitions_selected_total = _to_int(m.group(2), "partitions selected total")

    if m := patterns.PARTITIONS_SCANNED.search(line):
        # May be an average across segments: "Partitions scanned:  Avg 4.5 (out of 12)"
        scanned = _to_float(m.group(1), "partitions scanned")
        node.partitions_scanned = int(scanned) if scanned is not None else None
        node.partitions_scanned_total = _to_int(m.group(2), "partitions scanned total")

    if m := patterns.FILTER.search(line):
        node.filter = m.group(1)


def _parse_row_stats(node: Node, line: str) -> None:
    # Rows out:  Avg 1000.0 rows x 4 workers.  Max 900 rows (seg3) with 50 ms to end, start offset by 2 ms.
    # Rows out:  11000 rows (seg0) with 6897 ms to first row, 7429 ms to end, start offset by 40 ms.
    # Rows out:  4 rows at destination with 7442 ms to end, start offset by 1.1 ms.
    if m := patterns.ROWS_AT_DESTINATION.search(line):
        node.actual_rows = _to_float(m.group(1), "actual rows")
    if m := patterns.ROWS_WITH_MS.search(line):
        node.actual_rows = _to_float(m.group(1), "actual rows")
    if m := patterns.MAX_ROWS.search(line):
        node.max_rows = _to_float(m.group(1), "max rows", node.max_rows)
    if m := patterns.MS_FIRST.search(line):
        node.ms_first = _to_float(m.group(1), "ms first", node.ms_first)
    if m := patterns.MS_END.search(line):
        node.ms_end = _to_float(m.group(1), "ms end", node.ms_end)
    if m := patterns.MS_OFFSET.search(line):
        node.ms_offset = _to_float(m.group(1), "ms offset", node.ms_offset)
    if m := patterns.AVG_ROWS.search(line):
        node.avg_rows = _to_float(m.group(1), "avg rows", node.avg_rows)
    if m := patterns.WORKERS.search(line):
        node.workers = _to_int(m.group(1), "workers")
    if m := patterns.SCANS.search(line):
        node.scans = _to_int(m.group(1), "scans")
    if m := patterns.MAX_SEGMENT.search(line):
        node.max_segment = m.group(1)

    if m := patterns.MAX_ROWS_SEGMENT.search(line):
        node.max_rows = _to_float(m.group(1), "max rows", node.max_rows)
    elif m := patterns.ROWS_SEGMENT.search(line):
        node.actual_rows = _to_float(m.group(1), "actual rows", node.actual_rows)


_INT_PATTERN = re.compile(r"^-?\d+$")


def _to_int(text: str | None, label: str) -> int | None:
    """Parse an integer token; malformed tokens are logged and dropped."""
    if text is None:
        return None
    text = text.strip()
    if _INT_PATTERN.match(text):
        return int(text)
    try:
        return int(float(text))
    except ValueError:
        logger.debug("Could not parse %s from %r", label, text)
        return None


def _to_float(text: str | None, label: str, current: float | None = None) -> float | None:
    """Parse a float token, keeping current when the token is malformed."""
    if text is None:
        return current
    try:
        return float(text.strip())
    except ValueError:
        logger.debug("Could not parse %s from %r", label, text)
        return current
