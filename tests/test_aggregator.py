"""Aggregated summaries of component trees."""

from __future__ import annotations

import dataclasses

import pytest

from stackprobe.aggregator import AGGREGATE_FIELDS, Aggregator, parse_fields
from stackprobe.identity import assign_ids
from stackprobe.models import Dependency, GitInfo, License, ScanMetadata
from stackprobe.payload import ComponentNode, Payload

METADATA = ScanMetadata(scan_path="/work", timestamp="2026-01-01T00:00:00+00:00")
GIT = GitInfo("main", "abc1234", "https://example.com/org/repo.git")


def _tree(reverse_children: bool = False) -> ComponentNode:
    root = Payload("main", ["/"])
    root.git = GIT
    root.add_primary_tech("python", "matched extension: .py")
    root.add_language("Python", 3)
    root.add_dependency(Dependency("python", "django", "4.2"))
    root.metadata = dataclasses.replace(METADATA)

    api = Payload("api", ["/api/package.json"])
    api.git = GIT
    api.add_primary_tech("nodejs", "matched file: package.json")
    api.add_tech("python", "matched extension: .py")
    api.add_language("Python", 2)
    api.add_language("TypeScript", 4)
    api.add_dependency(Dependency("python", "django", "4.2"))
    api.add_dependency(Dependency("npm", "pg", "8"))
    api.add_license(License("MIT", "manifest", "api/package.json"))

    database = Payload("PostgreSQL", ["/api/package.json"])
    database.add_primary_tech("postgresql", "dependency pg matched")
    api.add_child(database)

    children = [api, Payload("docs", ["/docs"])]
    if reverse_children:
        children.reverse()
    for child in children:
        root.add_child(child)
    return assign_ids(root, "root")


def test_aggregate_unions_techs_and_sums_languages() -> None:
    tree = _tree()
    summary = Aggregator().aggregate(tree)

    assert summary.techs == ("nodejs", "postgresql", "python")
    assert summary.tech == ("nodejs", "postgresql", "python")
    assert summary.languages == {"Python": 5, "TypeScript": 4}
    assert set(summary.techs) == {tech for node in tree.iter_nodes() for tech in node.techs}


def test_aggregate_unions_reasons_instead_of_overwriting() -> None:
    summary = Aggregator().aggregate(_tree())

    assert summary.reason["python"] == ("matched extension: .py",)
    assert summary.reason["_license"] == ("license detected: MIT (from api/package.json)",)


def test_aggregate_dedupes_dependencies_and_git() -> None:
    summary = Aggregator().aggregate(_tree())

    assert summary.dependencies == (Dependency("npm", "pg", "8"), Dependency("python", "django", "4.2"))
    assert summary.git == (GIT,)
    assert summary.licenses == ("MIT",)


def test_aggregate_relabels_a_copy_of_the_metadata() -> None:
    tree = _tree()

    data = Aggregator().to_dict(tree)

    assert data["metadata"]["format"] == "aggregated"
    assert tree.metadata is not None and tree.metadata.format == "full"


def test_aggregate_is_idempotent_and_order_independent() -> None:
    aggregator = Aggregator()
    tree = _tree()

    first = aggregator.to_dict(tree)
    assert aggregator.to_dict(tree) == first
    assert aggregator.to_dict(_tree(reverse_children=True)) == first


def test_field_selection_limits_output() -> None:
    data = Aggregator(["techs", "languages"]).to_dict(_tree())

    assert set(data) == {"metadata", "techs", "languages"}


def test_full_output_uses_list_shapes() -> None:
    data = Aggregator().to_dict(_tree())

    assert set(AGGREGATE_FIELDS) <= set(data)
    assert data["dependencies"] == [["npm", "pg", "8"], ["python", "django", "4.2"]]
    assert data["git"] == [GIT.to_dict()]


def test_unknown_field_is_rejected() -> None:
    with pytest.raises(ValueError):
        Aggregator(["techs", "colour"])


def test_parse_fields() -> None:
    assert parse_fields(None) is None
    assert parse_fields("") is None
    assert parse_fields("techs, languages,,") == ["techs", "languages"]
