"""Link feature steps to step definitions and transforms.

A linking pass has two phases. The cache phase compiles the pattern of
every registered step definition and transform, in registration order.
The matching phase walks each feature's background and executable
scenarios (exploded outline rows, never outline templates) and attaches
to every step the first definition whose pattern matches its text, then
every transform whose pattern matches one of the captured groups.

Patterns use Python ``re`` syntax and are searched, not anchored; a
pattern wrapped in slashes (``/^a user (.*)$/``) has the slashes removed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from featurelink.models import (
    Feature,
    LinkReport,
    RegistryKind,
    Scenario,
    Step,
    StepDefinition,
    Transform,
)
from featurelink.registry import Registry

logger = logging.getLogger(__name__)


def pattern_to_regex(value: Any) -> re.Pattern[str] | None:
    """Compile a stored pattern string, or return None if it cannot be used."""
    if not isinstance(value, str):
        return None

    clean = value.strip()
    if clean.startswith("/") and clean.endswith("/"):
        clean = clean[1:-1]

    try:
        return re.compile(clean)
    except re.error as exc:
        logger.warning("Invalid regex in step pattern %r: %s", value, exc)
        return None


@dataclass
class PatternCache:
    """Compiled patterns paired with their records, in registration order.

    Records with identical patterns each keep their own entry, so the
    first registered one is always found first.
    """

    definitions: list[tuple[re.Pattern[str], StepDefinition]] = field(default_factory=list)
    transforms: list[tuple[re.Pattern[str], Transform]] = field(default_factory=list)

    @classmethod
    def from_registry(cls, registry: Registry) -> PatternCache:
        cache = cls()
        for definition in registry.find_all(RegistryKind.STEP_DEFINITION):
            regex = pattern_to_regex(definition.pattern)
            if regex is not None:
                cache.definitions.append((regex, definition))
        for transform in registry.find_all(RegistryKind.STEP_TRANSFORM):
            regex = pattern_to_regex(transform.pattern)
            if regex is not None:
                cache.transforms.append((regex, transform))
        logger.debug(
            "Cached %d step definition(s) and %d transform(s)",
            len(cache.definitions), len(cache.transforms),
        )
        return cache

    def first_definition(self, text: str) -> tuple[StepDefinition, re.Match[str]] | None:
        for regex, definition in self.definitions:
            match = regex.search(text)
            if match:
                return definition, match
        return None

    def matching_transforms(self, value: str) -> list[Transform]:
        return [t for regex, t in self.transforms if regex.search(value)]


class LinkingPass:
    """One linking run over every feature in a registry.

    The pattern cache belongs to the pass: it is built on first use and
    discarded with the pass, so a new pass always sees the current
    population of definitions and transforms.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry
        self._cache: PatternCache | None = None
        self.report = LinkReport()

    @property
    def cache(self) -> PatternCache:
        if self._cache is None:
            self._cache = PatternCache.from_registry(self.registry)
        return self._cache

    def reset(self) -> None:
        """Drop the cache and every link left over from an earlier pass."""
        self._cache = None
        self.report = LinkReport()
        for step in self.registry.find_all(RegistryKind.STEP):
            step.definition = None
            step.transforms = []
        for definition in self.registry.find_all(RegistryKind.STEP_DEFINITION):
            definition.steps = []
        for transform in self.registry.find_all(RegistryKind.STEP_TRANSFORM):
            transform.steps = []

    def run(self) -> LinkReport:
        self.reset()
        for feature in self.registry.find_all(RegistryKind.FEATURE):
            logger.debug("Linking steps for feature: %s", feature.name)
            self.link_feature(feature)

        self.report.unused_definitions = [
            d.id for d in self.registry.find_all(RegistryKind.STEP_DEFINITION) if not d.steps
        ]
        return self.report

    def link_feature(self, feature: Feature) -> bool:
        """Link one feature. Failures are logged and reported, never raised."""
        try:
            self.match_steps(feature)
        except Exception as exc:
            logger.warning("Failed to link steps for feature '%s': %s", feature.name, exc)
            logger.debug("Link failure in %s", feature.id, exc_info=True)
            self.report.failed_features.append(feature.id)
            return False
        return True

    def match_steps(self, feature: Feature) -> None:
        cache = self.cache
        for scenario in feature.step_containers():
            self._match_scenario(scenario, cache)

    def _match_scenario(self, scenario: Scenario, cache: PatternCache) -> None:
        for step in scenario.steps:
            if self.match_step(step, cache):
                self.report.linked_steps.append(step.id)
            else:
                self.report.unmatched_steps.append(step.id)

    def match_step(self, step: Step, cache: PatternCache) -> bool:
        found = cache.first_definition(step.text)
        if found is None:
            return False

        definition, match = found
        step.definition = definition
        if step.id not in definition.steps:
            definition.steps.append(step.id)

        for captured in match.groups():
            if not captured:
                continue
            for transform in cache.matching_transforms(captured):
                if transform not in step.transforms:
                    step.transforms.append(transform)
                if step.id not in transform.steps:
                    transform.steps.append(step.id)
        return True


def link_features(registry: Registry) -> LinkReport:
    """Run a fresh linking pass over every feature in ``registry``."""
    return LinkingPass(registry).run()
