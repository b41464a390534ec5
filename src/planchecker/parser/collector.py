"""
Line classifier and single-pass collector.

Walks the EXPLAIN text once, top to bottom, and turns it into flat Node and
Plan records plus the plan-wide aggregates. Nothing here knows about the
tree; nodes only remember their indentation, their line offset and their
raw lines. Tree building happens afterwards in planchecker.parser.tree.

Each line is classified in priority order:
1. Noise (blank, "QUERY PLAN" heading, "-----" rule)  -> dropped
2. Node line                                          -> new Node
3. "SubPlan N"                                        -> new Plan
4. "Slice statistics:"                                -> consumes indented block
5. "Statement statistics:"                            -> consumes indented block
6. "Settings:"
7. "Optimizer status:"
8. "Total runtime:"
9. Indented line while the plan section is open       -> annotation of last Node
10. Anything else                                     -> dropped
"""

from __future__ import annotations

from planchecker.exceptions import PlanIndentationError
from planchecker.parser import patterns
from planchecker.parser.models import Explain, Node, Plan, Setting
from planchecker.tracing import get_logger

logger = get_logger(__name__)

TOP_PLAN_NAME = "Plan"


def get_indent(line: str) -> int:
    """Number of leading spaces."""
    return len(line) - len(line.lstrip(" "))


def strip_quotes(line: str) -> str:
    """
    Undo the per-line double quoting some GUI clients (pgAdmin) add.

    The quotes are removed and a single space is put in front so the
    columns line up with psql output again.
    """
    stripped = line.rstrip("\r\n\t ")
    if len(stripped) > 2 and stripped[0] == '"' and stripped[-1] == '"':
        return " " + stripped[1:-1]
    return line


def is_noise(line: str) -> bool:
    """Blank lines, the QUERY PLAN heading and the dashed rule under it."""
    return (
        not line.strip()
        or patterns.QUERY_PLAN_HEADING in line
        or line.startswith("-")
    )


class LineCollector:
    """
    Single pass over the plan text.

    Example:
        >>> explain = LineCollector(text.splitlines()).collect()
        >>> len(explain.nodes), len(explain.plans)
    """

    def __init__(self, lines: list[str]) -> None:
        self.lines = [strip_quotes(line) for line in lines]
        self.explain = Explain()
        self._offset = 0
        self._plan_finished = False

    def collect(self) -> Explain:
        """Classify every line and return the populated Explain."""
        logger.debug("Parsing %d lines", len(self.lines))

        while self._offset < len(self.lines):
            line = self.lines[self._offset]
            logger.debug("LINE %d: %s", self._offset + 1, line)
            self._parse_line(line)
            self._offset += 1

        return self.explain

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _parse_line(self, line: str) -> None:
        if is_noise(line):
            logger.debug("Skipping noise")
        elif patterns.NODE.search(line):
            self._create_node(line)
        elif patterns.SUBPLAN.search(line):
            self._create_plan(line)
        elif patterns.SLICE_STATS.search(line):
            self._parse_slice_stats()
        elif patterns.STATEMENT_STATS.search(line):
            self._parse_statement_stats()
        elif m := patterns.SETTINGS.search(line):
            self._parse_settings(m.group(1))
        elif m := patterns.OPTIMIZER.search(line):
            self._parse_optimizer(m.group(1))
        elif m := patterns.RUNTIME.search(line):
            self._parse_runtime(m.group(1))
        elif get_indent(line) > 1 and not self._plan_finished and self.explain.nodes:
            self.explain.nodes[-1].lines.append(line)
        else:
            logger.debug("Skipping unclassified line")

    # =========================================================================
    # Nodes and plans
    # =========================================================================

    def _create_node(self, line: str) -> None:
        # ->  Seq Scan on sales_1_prt_outlying_years sales  (cost=0.00..67657.90 rows=2477 width=8)
        indent = get_indent(line)
        first = not self.explain.nodes

        if first and indent > 1:
            raise PlanIndentationError(line, first_node=True)
        if not first and indent < 2:
            raise PlanIndentationError(line, first_node=False)

        node = Node(indent=indent, offset=self._offset, lines=[line])

        if first:
            self.explain.plans.append(
                Plan(name=TOP_PLAN_NAME, indent=0, offset=self._offset)
            )

        self.explain.nodes.append(node)
        logger.debug("Created node %d at indent %d", len(self.explain.nodes) - 1, indent)

    def _create_plan(self, line: str) -> None:
        # SubPlan 2
        #   ->  Limit  (cost=0.00..0.64 rows=1 width=0)
        if not self.explain.nodes:
            logger.debug("Ignoring sub plan header before the first node")
            return

        plan = Plan(name=line.strip(), indent=get_indent(line), offset=self._offset)
        self.explain.plans.append(plan)
        logger.debug("Created plan %r at indent %d", plan.name, plan.indent)

    # =========================================================================
    # Aggregate sections
    # =========================================================================

    def _consume_block(self) -> list[str]:
        """
        Take every following line indented by more than one space.

        Leaves the cursor on the last consumed line so the main loop resumes
        at the first line that is not part of the block.
        """
        block: list[str] = []
        i = self._offset + 1
        while i < len(self.lines) and get_indent(self.lines[i]) > 1:
            block.append(self.lines[i])
            i += 1
        self._offset = i - 1
        return block

    def _parse_slice_stats(self) -> None:
        # Slice statistics:
        #   (slice0) Executor memory: 2466K bytes.
        #   (slice1) Executor memory: 4146K bytes avg x 96 workers, 4146K bytes max (seg7).
        self._plan_finished = True
        for line in self._consume_block():
            stat = line.strip()
            if stat:
                self.explain.slice_stats.append(stat)
        logger.debug("Collected %d slice statistics lines", len(self.explain.slice_stats))

    def _parse_statement_stats(self) -> None:
        # Statement statistics:
        #   Memory used: 128000K bytes
        #   Memory wanted: 1525449K bytes
        self._plan_finished = True
        for line in self._consume_block():
            if m := patterns.MEMORY_USED.search(line):
                self.explain.memory_used = _parse_kilobytes(m.group(1))
            elif m := patterns.MEMORY_WANTED.search(line):
                self.explain.memory_wanted = _parse_kilobytes(m.group(1))

    def _parse_settings(self, text: str) -> None:
        # Settings:  enable_hashjoin=off; enable_indexscan=off; join_collapse_limit=1; optimizer=on
        self._plan_finished = True
        for item in text.strip().split("; "):
            if not item.strip():
                continue
            name, _, value = item.partition("=")
            setting = Setting(name=name.strip(), value=value.strip())
            self.explain.settings.append(setting)
            logger.debug("Setting %s=%s", setting.name, setting.value)

            if setting.name == "optimizer":
                self.explain.optimizer = setting.value

    def _parse_optimizer(self, text: str) -> None:
        # Optimizer status: legacy query optimizer
        # Optimizer status: PQO version 1.620
        self._plan_finished = True
        self.explain.optimizer_status = text.strip()
        logger.debug("Optimizer status %s", self.explain.optimizer_status)

    def _parse_runtime(self, token: str) -> None:
        # Total runtime: 7442.441 ms
        self._plan_finished = True
        try:
            self.explain.runtime = float(token)
        except ValueError:
            logger.debug("Could not parse runtime %r", token)
        logger.debug("Runtime %s", self.explain.runtime)


def _parse_kilobytes(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        logger.debug("Could not parse memory value %r", text)
        return None
