"""
Shared fixtures.

Larger plan texts live in tests/fixtures/*.txt. Tiny plans are written
inline in the test that uses them.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from planchecker.config import reset_config

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    """Load a plan text fixture."""
    return (FIXTURES_DIR / f"{name}.txt").read_text()


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from PLANCHECKER_* variables in the environment."""
    for name in ("TRACE", "INDENT_WIDTH", "WARNING_STYLE", "EXCLUDE_RULES"):
        monkeypatch.delenv(f"PLANCHECKER_{name}", raising=False)
    reset_config()


@pytest.fixture
def analyze_plan() -> str:
    """EXPLAIN ANALYZE of a hash join with a broadcast motion and spill."""
    return load_fixture("explain_analyze")


@pytest.fixture
def subplan_plan() -> str:
    """Legacy planner plan with two correlated sub plans."""
    return load_fixture("subplans")


@pytest.fixture
def orca_partition_plan() -> str:
    """ORCA plan with a Partition Selector and Dynamic Table Scan."""
    return load_fixture("orca_partitions")


@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR
