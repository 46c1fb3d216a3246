"""Static registry of the session tables read by the dashboard.

Each practice agent writes its sessions into its own table. The registry is the
only source of table names that ever reach a SQL string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

ALL_AGENTS = "all"


@dataclass(frozen=True)
class TableSpec:
    """One physical session table and the agent label stamped on its rows."""

    table_name: str
    agent_label: str


TABLE_REGISTRY: Tuple[TableSpec, ...] = (
    TableSpec("Tracking-acolyte-biosimilars-and-specialty-drugs", "101- Block 3 - Practice Session"),
    TableSpec("Tracking-acolyte-drug-statistics", "101 - Block 5 - Practice Session"),
    TableSpec("Tracking-acolyte-drug-pricing-access", "101 - Block 9 - Practice Session"),
    TableSpec("Tracking-acolyte-workplacesim", "101 - Block 12 - Practice (Workplace Sim)"),
    TableSpec("Tracking-acolyte-103-drug-pricing-analogy", "103- Block 3 - Practice Session"),
    TableSpec("Tracking-acolyte-103-pricing-models", "103 - Block 5 - Practice Session"),
    TableSpec("Tracking-acolyte-103-formulary-and-plan-designn", "103 - Block 7 - Practice Session"),
    TableSpec("Tracking-acolyte-103-practice", "103 - Block 10 - Practice (Workplace Sim)"),
    TableSpec(
        "Tracking-103 - Workplace Sim : Nondiscrimination Testing",
        "103-workplace-sim-nondiscrimination-testing",
    ),
)


class UnknownTableError(ValueError):
    """Raised when a table name outside the registry is about to be queried."""


def agent_labels(specs: Iterable[TableSpec] = TABLE_REGISTRY) -> List[str]:
    """Return the agent labels in registry order."""
    return [spec.agent_label for spec in specs]


def is_all_agents(agent: Optional[str]) -> bool:
    """Return True when the agent filter means "every agent"."""
    return agent is None or not agent.strip() or agent == ALL_AGENTS


def select_specs(specs: Sequence[TableSpec], agent: Optional[str]) -> List[TableSpec]:
    """Return the specs whose label matches ``agent`` (all of them for the "all" sentinel)."""
    if is_all_agents(agent):
        return list(specs)
    return [spec for spec in specs if spec.agent_label == agent]


def validate_registry(specs: Sequence[TableSpec]) -> None:
    """Reject an empty registry or one with duplicate table names."""
    if not specs:
        raise ValueError("The table registry is empty.")
    seen = set()
    for spec in specs:
        if not spec.table_name.strip() or not spec.agent_label.strip():
            raise ValueError(f"Registry entry has a blank table name or label: {spec!r}")
        if spec.table_name in seen:
            raise ValueError(f"Table {spec.table_name!r} is registered more than once.")
        seen.add(spec.table_name)
