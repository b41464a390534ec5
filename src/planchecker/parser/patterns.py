"""
Compiled regular expressions for the Greenplum EXPLAIN text format.

Line-level patterns decide what kind of line the collector is looking at.
Node-level patterns are only ever applied to the annotation block of a
single node. All patterns are searched (not anchored) unless they say so.
"""

from __future__ import annotations

import re

# =========================================================================
# Line kinds
# =========================================================================

# ->  Broadcast Motion 1:2  (slice1)  (cost=0.00..27.48 rows=1124 width=208)
#     Insert (slice0; segments: 4)  (rows=13200 width=32)
NODE = re.compile(r"(.*) \((cost=(.*)\.\.(.*) )?rows=(.*) width=(.*)\)")

#   SubPlan 2
SUBPLAN = re.compile(r"^\s*SubPlan\s")

SLICE_STATS = re.compile(r"^\s*Slice statistics:")
STATEMENT_STATS = re.compile(r"^\s*Statement statistics:")
SETTINGS = re.compile(r"^\s*Settings:\s*(.*)$")
OPTIMIZER = re.compile(r"^\s*Optimizer status:\s*(.*)$")
RUNTIME = re.compile(r"^\s*Total runtime:\s*(\S*)")

QUERY_PLAN_HEADING = "QUERY PLAN"

# =========================================================================
# Aggregate section contents
# =========================================================================

MEMORY_USED = re.compile(r"Memory used:\s+([0-9.-]+)K bytes")
MEMORY_WANTED = re.compile(r"Memory wanted:\s+([0-9.-]+)K bytes")

# =========================================================================
# Node header
# =========================================================================

# Gather Motion 2:1  (slice1; segments: 2)
SLICE = re.compile(r"(.*)  \(slice([0-9]*)")

# Seq Scan on sales / Bitmap Heap Scan on t / Index Scan using idx on t
TABLE_SCAN = re.compile(r" Scan (on|using) (\S+)")
INDEX_SCAN = re.compile(r"Index.*Scan (on|using) (\S+)")

# =========================================================================
# Node annotations (EXPLAIN ANALYZE)
# =========================================================================

# Only lines containing this marker carry row/timing statistics
ANALYZE_MARKER = "ms to end"

ROWS_AT_DESTINATION = re.compile(r"(\d+) rows at destination")
ROWS_WITH_MS = re.compile(r"(\d+) rows with \S+ ms")
MAX_ROWS = re.compile(r"Max (\S+) rows")
MS_FIRST = re.compile(r" (\S+) ms to first row")
MS_END = re.compile(r" (\S+) ms to end")
MS_OFFSET = re.compile(r"start offset by (\S+) ms")
AVG_ROWS = re.compile(r"Avg (\S+) ")
WORKERS = re.compile(r" x (\d+) workers")
SCANS = re.compile(r"of (\d+) scans")
MAX_SEGMENT = re.compile(r" \((seg\d+)\) ")

# "Max 900 rows (seg3)" wins over the looser "11000 rows (seg0)"
MAX_ROWS_SEGMENT = re.compile(r"Max (\S+) rows \(")
ROWS_SEGMENT = re.compile(r" (\S+) rows \(")

WORK_MEM_MARKER = "Work_mem used"
WORK_MEM_AVG = re.compile(r"Work_mem used:\s+(\d+)K bytes avg")
WORK_MEM_MAX = re.compile(r"\s+(\d+)K bytes max")

SPILL = re.compile(r"\((\d+) spilling,\s+(\d+) reused\)")

PARTITIONS_SELECTED = re.compile(r"Partitions selected:\s+(\d+) \(out of (\d+)\)")
PARTITIONS_SCANNED = re.compile(r"Partitions scanned:\s+(?:Avg )?(\S+) \(out of (\d+)\)")

FILTER = re.compile(r"Filter: (.*)")
