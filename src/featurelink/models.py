"""Core data models for featurelink."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

DEFAULT_STEP_KEYWORDS = ["Given", "When", "Then", "And", "But"]


class FeatureLinkError(Exception):
    """Base class for featurelink errors."""


class RegistryKind(Enum):
    """Kinds of objects held by a Registry."""

    NAMESPACE = "namespace"
    FEATURE = "feature"
    SCENARIO = "scenario"
    SCENARIO_OUTLINE = "scenario_outline"
    EXAMPLES = "examples"
    STEP = "step"
    TAG = "tag"
    STEP_DEFINITION = "step_definition"
    STEP_TRANSFORM = "step_transform"


class ScenarioKind(Enum):
    """Variant tag for scenario-like step containers."""

    BACKGROUND = "background"
    SCENARIO = "scenario"
    OUTLINE = "outline"
    EXAMPLE = "example"  # one row exploded out of an outline


@dataclass(frozen=True)
class Location:
    """Where an object was declared."""

    file: str
    line: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass
class Namespace:
    """A directory segment that features are placed under."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.NAMESPACE

    id: str
    name: str
    parent_id: str | None = None
    description: str = ""
    children: dict[str, Namespace] = field(default_factory=dict)
    feature_ids: list[str] = field(default_factory=list)

    def child(self, name: str) -> Namespace | None:
        return self.children.get(name)


@dataclass(eq=False)
class Tag:
    """A label shared by every feature, scenario or examples block declaring it.

    ``value`` is the raw token (``@smoke``) and ``name`` the identifier with
    the sigil stripped. ``owners`` holds the ids of the declaring objects.
    """

    registry_kind: ClassVar[RegistryKind] = RegistryKind.TAG

    id: str
    name: str
    value: str
    owners: list[str] = field(default_factory=list)
    files: list[Location] = field(default_factory=list)
    total_scenarios: int = 0


@dataclass(eq=False)
class StepDefinition:
    """A pattern-bearing step implementation extracted from source code."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.STEP_DEFINITION

    id: str
    keyword: str
    pattern: str
    source: str = ""
    pending: bool = False
    steps: list[str] = field(default_factory=list)


@dataclass(eq=False)
class Transform:
    """A pattern-bearing argument transform (``Transform`` or ``ParameterType``)."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.STEP_TRANSFORM

    id: str
    keyword: str
    pattern: str
    source: str = ""
    steps: list[str] = field(default_factory=list)


@dataclass
class Step:
    """One step line, optionally carrying a doc string or a data table."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.STEP

    id: str
    keyword: str
    text: str
    location: Location
    scenario_id: str | None = None
    doc_string: str | None = None
    table: list[list[str]] | None = None
    definition: StepDefinition | None = None
    transforms: list[Transform] = field(default_factory=list)

    @property
    def is_linked(self) -> bool:
        return self.definition is not None


@dataclass
class Scenario:
    """A background, a plain scenario, or one scenario exploded from an outline."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.SCENARIO

    id: str
    kind: ScenarioKind
    keyword: str
    title: str
    location: Location
    description: str = ""
    comments: str = ""
    steps: list[Step] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    feature_id: str | None = None
    outline_id: str | None = None


@dataclass
class Examples:
    """One examples table of an outline. ``rows[0]`` is the header when present."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.EXAMPLES

    id: str
    name: str
    keyword: str
    title: str
    location: Location
    description: str = ""
    rows: list[list[str]] = field(default_factory=list)
    has_header: bool = True
    tags: list[Tag] = field(default_factory=list)
    outline_id: str | None = None

    @property
    def headers(self) -> list[str]:
        return self.rows[0] if self.has_header and self.rows else []

    @property
    def data_rows(self) -> list[list[str]]:
        return self.rows[1:] if self.has_header else list(self.rows)


@dataclass
class ScenarioOutline:
    """A scenario template plus the concrete scenarios exploded from its examples."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.SCENARIO_OUTLINE

    id: str
    keyword: str
    title: str
    location: Location
    description: str = ""
    comments: str = ""
    kind: ScenarioKind = ScenarioKind.OUTLINE
    steps: list[Step] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    examples: list[Examples] = field(default_factory=list)
    scenarios: list[Scenario] = field(default_factory=list)
    feature_id: str | None = None


ScenarioLike = Union[Scenario, ScenarioOutline]


@dataclass
class Feature:
    """One feature document."""

    registry_kind: ClassVar[RegistryKind] = RegistryKind.FEATURE

    id: str
    name: str
    keyword: str
    title: str
    location: Location
    description: str = ""
    comments: str = ""
    tags: list[Tag] = field(default_factory=list)
    scenarios: list[ScenarioLike] = field(default_factory=list)
    background: Scenario | None = None
    total_scenarios: int = 0
    namespace_id: str | None = None

    def executable_scenarios(self) -> list[Scenario]:
        """Concrete scenarios, with outlines replaced by their exploded rows."""
        result: list[Scenario] = []
        for scenario in self.scenarios:
            if isinstance(scenario, ScenarioOutline):
                result.extend(scenario.scenarios)
            else:
                result.append(scenario)
        return result

    def step_containers(self) -> list[Scenario]:
        """Background (if any) followed by every executable scenario."""
        containers = [self.background] if self.background is not None else []
        return containers + self.executable_scenarios()


@dataclass
class LinkerConfig:
    """Project configuration for featurelink."""

    version: str = "0.1.0"
    features_dir: str = "features"
    definitions_file: str = "step_definitions.yaml"
    exclude_tags: list[str] = field(default_factory=list)
    step_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_STEP_KEYWORDS))

    @property
    def excluded(self) -> list[str]:
        """Exclusion identifiers with any leading sigil removed, in order, without repeats."""
        result: list[str] = []
        for tag in self.exclude_tags:
            name = tag[1:] if tag.startswith("@") else tag
            if name not in result:
                result.append(name)
        return result


@dataclass
class LinkReport:
    """Outcome of one linking pass."""

    linked_steps: list[str] = field(default_factory=list)
    unmatched_steps: list[str] = field(default_factory=list)
    unused_definitions: list[str] = field(default_factory=list)
    failed_features: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return len(self.failed_features) == 0
