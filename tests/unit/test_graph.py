"""Unit tests for featurelink.graph and the exporters."""

import json
from pathlib import Path

import pytest

from featurelink.exporters.dot import export_dot
from featurelink.exporters.json_export import export_json
from featurelink.graph import (
    CONTAINS,
    IMPLEMENTED_BY,
    TAGGED,
    TRANSFORMED_BY,
    build_link_graph,
    edge_counts,
    link_graph_to_json,
    steps_implemented_by,
)
from featurelink.models import LinkerConfig
from featurelink.pipeline import PipelineResult, run_pipeline
from featurelink.registry import Registry


@pytest.fixture
def linked(feature_project: Path) -> PipelineResult:
    return run_pipeline(
        feature_project / "features",
        feature_project / "step_definitions.yaml",
        LinkerConfig(exclude_tags=["wip"]),
    )


class TestBuildLinkGraph:
    def test_edge_counts(self, linked: PipelineResult) -> None:
        g = build_link_graph(linked.registry)
        assert edge_counts(g) == {
            CONTAINS: 19,
            IMPLEMENTED_BY: 4,
            TAGGED: 2,
            TRANSFORMED_BY: 2,
        }

    def test_node_kinds(self, linked: PipelineResult) -> None:
        g = build_link_graph(linked.registry)
        feature_id = "features/accounts/signup.feature"
        assert g.nodes[feature_id]["kind"] == "feature"
        assert g.nodes[f"{feature_id}:background"]["kind"] == "background"
        assert g.nodes[f"{feature_id}:scenario_2"]["kind"] == "outline"
        assert g.nodes[f"{feature_id}:scenario_2:example_1"]["kind"] == "example"
        assert g.nodes["tag:@smoke"]["kind"] == "tag"

    def test_unused_definition_is_isolated(self, linked: PipelineResult) -> None:
        g = build_link_graph(linked.registry)
        assert g.in_degree("step_definition4") == 0

    def test_steps_implemented_by(self, linked: PipelineResult) -> None:
        g = build_link_graph(linked.registry)
        outline = "features/accounts/signup.feature:scenario_2"
        assert steps_implemented_by(g, "step_definition3") == [
            f"{outline}:example_1:step_1",
            f"{outline}:example_2:step_1",
        ]
        assert steps_implemented_by(g, "step_transform1") == steps_implemented_by(g, "step_definition3")

    def test_empty_registry(self, registry: Registry) -> None:
        g = build_link_graph(registry)
        assert g.number_of_nodes() == 0
        assert edge_counts(g) == {}


class TestLinkGraphToJson:
    def test_top_level_keys(self, linked: PipelineResult) -> None:
        data = link_graph_to_json(linked.registry)
        assert set(data) == {"features", "step_definitions", "transforms", "tags"}

    def test_steps_reference_definitions(self, linked: PipelineResult) -> None:
        feature = link_graph_to_json(linked.registry)["features"][0]
        assert feature["total_scenarios"] == 3
        assert feature["background"]["steps"][0]["definition"] == "step_definition1"

        outline = feature["scenarios"][1]
        assert outline["kind"] == "outline"
        assert [e["name"] for e in outline["examples"]] == ["Small"]
        first = outline["scenarios"][0]["steps"][0]
        assert first["text"] == "I have 3 apple(s)"
        assert first["transforms"] == ["step_transform1"]
        assert outline["steps"][0]["definition"] is None

    def test_definitions_list_steps(self, linked: PipelineResult) -> None:
        definitions = link_graph_to_json(linked.registry)["step_definitions"]
        assert [len(d["steps"]) for d in definitions] == [1, 1, 2, 0]


class TestExporters:
    def test_export_json_is_valid(self, linked: PipelineResult) -> None:
        data = json.loads(export_json(linked.registry))
        assert [t["value"] for t in data["tags"]] == ["@accounts", "@smoke"]

    def test_export_dot(self, linked: PipelineResult) -> None:
        dot = export_dot(linked.registry)
        assert dot.startswith("digraph feature_links {")
        assert dot.endswith("}")
        assert '"tag:@smoke" [shape=note, label="smoke"];' in dot
        assert 'label="implemented_by", style=bold' in dot

    def test_export_dot_escapes_patterns(self, linked: PipelineResult) -> None:
        dot = export_dot(linked.registry)
        assert r'label="/^I have (\\d+) (\\w+)\\(s\\)$/"' in dot
