"""Tests for the session table registry."""

from __future__ import annotations

import pytest

from backend.registry import (
    ALL_AGENTS,
    TABLE_REGISTRY,
    TableSpec,
    agent_labels,
    is_all_agents,
    select_specs,
    validate_registry,
)


def test_registry_lists_nine_unique_tables():
    names = [spec.table_name for spec in TABLE_REGISTRY]
    assert len(names) == 9
    assert len(set(names)) == 9
    validate_registry(TABLE_REGISTRY)


def test_registry_keeps_names_with_spaces_and_colons():
    assert TableSpec(
        "Tracking-103 - Workplace Sim : Nondiscrimination Testing",
        "103-workplace-sim-nondiscrimination-testing",
    ) in TABLE_REGISTRY


def test_agent_labels_follow_registry_order():
    labels = agent_labels()
    assert labels[0] == "101- Block 3 - Practice Session"
    assert labels[-1] == "103-workplace-sim-nondiscrimination-testing"


@pytest.mark.parametrize("agent", [None, "", "   ", ALL_AGENTS])
def test_all_agents_sentinel(agent):
    assert is_all_agents(agent)
    assert select_specs(TABLE_REGISTRY, agent) == list(TABLE_REGISTRY)


def test_select_specs_matches_one_label():
    selected = select_specs(TABLE_REGISTRY, "103 - Block 5 - Practice Session")
    assert [spec.table_name for spec in selected] == ["Tracking-acolyte-103-pricing-models"]


def test_select_specs_unknown_label_is_empty():
    assert select_specs(TABLE_REGISTRY, "Nobody") == []


def test_validate_registry_rejects_duplicates():
    specs = (TableSpec("t1", "A"), TableSpec("t1", "B"))
    with pytest.raises(ValueError, match="more than once"):
        validate_registry(specs)


def test_validate_registry_rejects_empty_and_blank():
    with pytest.raises(ValueError):
        validate_registry(())
    with pytest.raises(ValueError):
        validate_registry((TableSpec(" ", "A"),))
