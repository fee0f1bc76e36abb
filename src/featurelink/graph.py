"""Graph views of a linked registry."""

from __future__ import annotations

from collections import Counter
from typing import Any

import networkx as nx

from featurelink.models import (
    Examples,
    Feature,
    RegistryKind,
    Scenario,
    ScenarioOutline,
    Step,
    StepDefinition,
    Tag,
    Transform,
)
from featurelink.registry import Registry

CONTAINS = "contains"
IMPLEMENTED_BY = "implemented_by"
TRANSFORMED_BY = "transformed_by"
TAGGED = "tagged"


def build_link_graph(registry: Registry) -> nx.DiGraph:
    """Build a DiGraph of features, scenarios, steps, definitions, transforms and tags.

    Edges carry a ``relation`` attribute: ``contains`` for ownership,
    ``implemented_by`` from a step to its definition, ``transformed_by``
    from a step to each of its transforms, ``tagged`` from an owner to a tag.
    """
    g: nx.DiGraph[str] = nx.DiGraph()

    for definition in registry.find_all(RegistryKind.STEP_DEFINITION):
        g.add_node(definition.id, kind="step_definition", label=definition.pattern)
    for transform in registry.find_all(RegistryKind.STEP_TRANSFORM):
        g.add_node(transform.id, kind="step_transform", label=transform.pattern)
    for tag in registry.find_all(RegistryKind.TAG):
        g.add_node(tag.id, kind="tag", label=tag.name)

    for feature in registry.find_all(RegistryKind.FEATURE):
        g.add_node(feature.id, kind="feature", label=feature.title)
        _add_tags(g, feature.id, feature.tags)
        if feature.background is not None:
            _add_scenario(g, feature.id, feature.background)
        for scenario in feature.scenarios:
            _add_scenario(g, feature.id, scenario)

    return g


def edge_counts(g: nx.DiGraph) -> dict[str, int]:
    """Number of edges per relation."""
    counts = Counter(data.get("relation") for _, _, data in g.edges(data=True))
    return {relation: counts[relation] for relation in sorted(counts)}


def steps_implemented_by(g: nx.DiGraph, definition_id: str) -> list[str]:
    """Ids of the steps linked to one definition or transform."""
    return sorted(
        source for source, _, data in g.in_edges(definition_id, data=True)
        if data.get("relation") in (IMPLEMENTED_BY, TRANSFORMED_BY)
    )


def link_graph_to_json(registry: Registry) -> dict[str, Any]:
    """Export the linked model as a JSON-serializable dictionary."""
    return {
        "features": [_feature_to_json(f) for f in registry.find_all(RegistryKind.FEATURE)],
        "step_definitions": [
            _definition_to_json(d) for d in registry.find_all(RegistryKind.STEP_DEFINITION)
        ],
        "transforms": [
            _transform_to_json(t) for t in registry.find_all(RegistryKind.STEP_TRANSFORM)
        ],
        "tags": [_tag_to_json(t) for t in registry.find_all(RegistryKind.TAG)],
    }


def _add_scenario(g: nx.DiGraph, parent_id: str, scenario: Scenario | ScenarioOutline) -> None:
    g.add_node(scenario.id, kind=scenario.kind.value, label=scenario.title)
    g.add_edge(parent_id, scenario.id, relation=CONTAINS)
    _add_tags(g, scenario.id, scenario.tags)
    for step in scenario.steps:
        _add_step(g, scenario.id, step)

    if isinstance(scenario, ScenarioOutline):
        for examples in scenario.examples:
            g.add_node(examples.id, kind="examples", label=examples.name)
            g.add_edge(scenario.id, examples.id, relation=CONTAINS)
            _add_tags(g, examples.id, examples.tags)
        for example in scenario.scenarios:
            _add_scenario(g, scenario.id, example)


def _add_step(g: nx.DiGraph, parent_id: str, step: Step) -> None:
    g.add_node(step.id, kind="step", label=f"{step.keyword}{step.text}")
    g.add_edge(parent_id, step.id, relation=CONTAINS)
    if step.definition is not None:
        g.add_edge(step.id, step.definition.id, relation=IMPLEMENTED_BY)
    for transform in step.transforms:
        g.add_edge(step.id, transform.id, relation=TRANSFORMED_BY)


def _add_tags(g: nx.DiGraph, owner_id: str, tags: list[Tag]) -> None:
    for tag in tags:
        g.add_edge(owner_id, tag.id, relation=TAGGED)


def _feature_to_json(feature: Feature) -> dict[str, Any]:
    return {
        "id": feature.id,
        "name": feature.name,
        "keyword": feature.keyword,
        "title": feature.title,
        "location": str(feature.location),
        "tags": [t.id for t in feature.tags],
        "total_scenarios": feature.total_scenarios,
        "background": (
            _scenario_to_json(feature.background) if feature.background is not None else None
        ),
        "scenarios": [_scenario_to_json(s) for s in feature.scenarios],
    }


def _scenario_to_json(scenario: Scenario | ScenarioOutline) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": scenario.id,
        "kind": scenario.kind.value,
        "keyword": scenario.keyword,
        "title": scenario.title,
        "location": str(scenario.location),
        "tags": [t.id for t in scenario.tags],
        "steps": [_step_to_json(s) for s in scenario.steps],
    }
    if isinstance(scenario, ScenarioOutline):
        data["examples"] = [_examples_to_json(e) for e in scenario.examples]
        data["scenarios"] = [_scenario_to_json(s) for s in scenario.scenarios]
    return data


def _examples_to_json(examples: Examples) -> dict[str, Any]:
    return {
        "id": examples.id,
        "name": examples.name,
        "tags": [t.id for t in examples.tags],
        "rows": examples.rows,
    }


def _step_to_json(step: Step) -> dict[str, Any]:
    return {
        "id": step.id,
        "keyword": step.keyword,
        "text": step.text,
        "location": str(step.location),
        "doc_string": step.doc_string,
        "table": step.table,
        "definition": step.definition.id if step.definition is not None else None,
        "transforms": [t.id for t in step.transforms],
    }


def _definition_to_json(definition: StepDefinition) -> dict[str, Any]:
    return {
        "id": definition.id,
        "keyword": definition.keyword,
        "pattern": definition.pattern,
        "source": definition.source,
        "pending": definition.pending,
        "steps": list(definition.steps),
    }


def _transform_to_json(transform: Transform) -> dict[str, Any]:
    return {
        "id": transform.id,
        "keyword": transform.keyword,
        "pattern": transform.pattern,
        "source": transform.source,
        "steps": list(transform.steps),
    }


def _tag_to_json(tag: Tag) -> dict[str, Any]:
    return {
        "id": tag.id,
        "name": tag.name,
        "value": tag.value,
        "total_scenarios": tag.total_scenarios,
        "owners": list(tag.owners),
    }
