"""Build the featurelink domain model from a parsed Gherkin document.

The input is the mapping produced by the official Gherkin parser
(camelCase keys such as ``docString``, ``dataTable``, ``tableHeader``).
Optional keys may be missing or ``None``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePath
from typing import Any

from featurelink.models import (
    Examples,
    Feature,
    Location,
    Namespace,
    Scenario,
    ScenarioKind,
    ScenarioOutline,
    Step,
)
from featurelink.outline import explode_row
from featurelink.registry import Registry
from featurelink.tags import TagRegistryAdapter

logger = logging.getLogger(__name__)

AstNode = Mapping[str, Any]


def feature_name_from_path(file: str) -> str:
    """Display name of a feature: its file name without ``.feature``, dots as underscores."""
    return PurePath(file).name.replace(".feature", "").replace(".", "_")


def find_or_create_namespace(
    registry: Registry, file: str, source_path: Path | None = None,
) -> Namespace:
    """Return the namespace for the directory of ``file``, creating each segment on demand.

    A ``README.md`` next to the feature (``source_path`` when given, else
    ``file``) becomes the description of a namespace that has none.
    """
    namespace = registry.root_namespace()
    path = PurePath(file)
    for directory in path.parent.parts:
        if directory in (".", path.anchor):
            continue
        child = namespace.child(directory)
        if child is None:
            child = registry.insert(Namespace(
                id=f"{namespace.id}/{directory}",
                name=directory,
                parent_id=namespace.id,
            ))
            namespace.children[directory] = child
        namespace = child

    readme = Path(source_path or file).parent / "README.md"
    if namespace.description == "" and readme.is_file():
        namespace.description = readme.read_text()
    return namespace


def build_step(node: AstNode, step_id: str, container_id: str, file: str) -> Step:
    """Build one Step from a Gherkin step node."""
    step = Step(
        id=step_id,
        keyword=node["keyword"],
        text=node["text"],
        location=_location(node, file),
        scenario_id=container_id,
    )

    doc_string = node.get("docString")
    if doc_string:
        step.doc_string = doc_string["content"]

    data_table = node.get("dataTable")
    if data_table:
        step.table = [_cell_values(row) for row in data_table.get("rows") or []]

    return step


class FeatureBuilder:
    """Turns one Gherkin document into a Feature and its scenarios.

    Features, scenarios and examples whose own tags intersect
    ``exclude_tags`` are skipped before any object is created.
    """

    def __init__(
        self,
        registry: Registry,
        file: str,
        exclude_tags: Iterable[str] = (),
        source_path: Path | None = None,
    ) -> None:
        self.registry = registry
        self.file = PurePath(file).as_posix()
        self.tags = TagRegistryAdapter(registry, self.file, exclude_tags)
        self.namespace = find_or_create_namespace(registry, self.file, source_path)
        self.feature: Feature | None = None

    def process(self, document: AstNode) -> Feature | None:
        feature_node = document.get("feature")
        if not feature_node:
            return None

        if self.tags.has_exclude_tags(feature_node.get("tags")):
            logger.debug("Skipping excluded feature %s", self.file)
            return None

        feature = Feature(
            id=self.file,
            name=feature_name_from_path(self.file),
            keyword=feature_node.get("keyword", ""),
            title=feature_node.get("name") or "",
            location=_location(feature_node, self.file),
            description=feature_node.get("description") or "",
            comments="\n".join(c["text"] for c in document.get("comments") or []),
            namespace_id=self.namespace.id,
        )
        self.feature = feature
        self.registry.insert(feature)
        if feature.id not in self.namespace.feature_ids:
            self.namespace.feature_ids.append(feature.id)
        self.tags.resolve_all(feature_node.get("tags"), feature)

        self._process_children(feature_node.get("children") or [], allow_rules=True)

        for tag in feature.tags:
            tag.total_scenarios += feature.total_scenarios

        logger.debug(
            "Built feature %s: %d scenario(s), %d executable",
            feature.id, len(feature.scenarios), feature.total_scenarios,
        )
        return feature

    def _process_children(self, children: Iterable[AstNode], allow_rules: bool) -> None:
        for child in children:
            if child.get("background"):
                self._process_background(child["background"])
            elif child.get("scenario"):
                self._process_scenario(child["scenario"])
            elif allow_rules and child.get("rule"):
                # Rules add no model object of their own.
                self._process_children(child["rule"].get("children") or [], allow_rules=False)

    def _process_background(self, node: AstNode) -> None:
        feature = self._require_feature()
        background = Scenario(
            id=f"{feature.id}:background",
            kind=ScenarioKind.BACKGROUND,
            keyword=node.get("keyword", ""),
            title=node.get("name") or "",
            location=_location(node, self.file),
            description=node.get("description") or "",
            feature_id=feature.id,
        )
        self.registry.insert(background)
        feature.background = background
        self._build_steps(node, background)

    def _process_scenario(self, node: AstNode) -> None:
        if self.tags.has_exclude_tags(node.get("tags")):
            return

        if node.get("examples"):
            self._process_scenario_outline(node)
        else:
            self._process_regular_scenario(node)

    def _process_regular_scenario(self, node: AstNode) -> None:
        feature = self._require_feature()
        scenario = Scenario(
            id=f"{feature.id}:scenario_{len(feature.scenarios) + 1}",
            kind=ScenarioKind.SCENARIO,
            keyword=node.get("keyword", ""),
            title=node.get("name") or "",
            location=_location(node, self.file),
            description=node.get("description") or "",
            feature_id=feature.id,
        )
        self.registry.insert(scenario)
        self.tags.resolve_all(node.get("tags"), scenario)

        feature.scenarios.append(scenario)
        self._build_steps(node, scenario)

        feature.total_scenarios += 1
        self.tags.update_tag_stats(scenario, feature)

    def _process_scenario_outline(self, node: AstNode) -> None:
        feature = self._require_feature()
        outline = ScenarioOutline(
            id=f"{feature.id}:scenario_{len(feature.scenarios) + 1}",
            keyword=node.get("keyword", ""),
            title=node.get("name") or "",
            location=_location(node, self.file),
            description=node.get("description") or "",
            feature_id=feature.id,
        )
        self.registry.insert(outline)
        self.tags.resolve_all(node.get("tags"), outline)

        self._build_steps(node, outline)
        for examples_node in node.get("examples") or []:
            self._process_examples(examples_node, outline)

        feature.scenarios.append(outline)
        feature.total_scenarios += len(outline.scenarios)
        self.tags.update_tag_stats(outline, feature, len(outline.scenarios))

    def _process_examples(self, node: AstNode, outline: ScenarioOutline) -> None:
        if self.tags.has_exclude_tags(node.get("tags")):
            return

        name = node.get("name") or f"examples_{len(outline.examples)}"
        examples = Examples(
            id=f"{outline.id}:examples_{len(outline.examples)}",
            name=name,
            keyword=node.get("keyword", ""),
            title=node.get("name") or "",
            location=_location(node, self.file),
            description=node.get("description") or "",
            outline_id=outline.id,
        )
        self.registry.insert(examples)
        self.tags.resolve_all(node.get("tags"), examples)

        headers: list[str] = []
        header_node = node.get("tableHeader")
        if header_node:
            headers = _cell_values(header_node)
            examples.rows = [headers]
        else:
            examples.has_header = False

        body = [_cell_values(row) for row in node.get("tableBody") or []]
        examples.rows.extend(body)
        outline.examples.append(examples)

        for row in body:
            scenario = explode_row(outline, headers, row)
            self.registry.insert(scenario)
            for step in scenario.steps:
                self.registry.insert(step)
            outline.scenarios.append(scenario)

    def _build_steps(self, node: AstNode, container: Scenario | ScenarioOutline) -> None:
        for step_node in node.get("steps") or []:
            step = build_step(
                step_node,
                step_id=f"{container.id}:step_{len(container.steps) + 1}",
                container_id=container.id,
                file=self.file,
            )
            self.registry.insert(step)
            container.steps.append(step)

    def _require_feature(self) -> Feature:
        if self.feature is None:
            raise RuntimeError("No feature is being built")
        return self.feature


def build_feature(
    registry: Registry,
    document: AstNode,
    file: str,
    exclude_tags: Iterable[str] = (),
    source_path: Path | None = None,
) -> Feature | None:
    """Build the Feature for one parsed document, or None if it has none or is excluded."""
    return FeatureBuilder(registry, file, exclude_tags, source_path).process(document)


def _location(node: AstNode, file: str) -> Location:
    location = node.get("location") or {}
    return Location(file, int(location.get("line", 0)))


def _cell_values(row: AstNode) -> list[str]:
    return [cell.get("value", "") for cell in row.get("cells") or []]
