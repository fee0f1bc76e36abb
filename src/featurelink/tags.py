"""Shared tag lookup, exclusion checks and usage counting."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from featurelink.models import Feature, Location, ScenarioLike, Tag
from featurelink.registry import Registry


def strip_sigil(token: str) -> str:
    return token[1:] if token.startswith("@") else token


def tag_id(raw_name: str) -> str:
    return f"tag:{raw_name}"


class TagRegistryAdapter:
    """The only place Tag objects are created.

    Tags are looked up by their raw token, so ``@smoke`` declared in two
    files resolves to one shared instance. Owners keep the Tag itself;
    the Tag keeps owner ids.
    """

    def __init__(
        self,
        registry: Registry,
        file: str,
        exclude_tags: Iterable[str] = (),
    ) -> None:
        self.registry = registry
        self.file = file
        self.exclude_tags = [strip_sigil(t) for t in exclude_tags]

    def find_or_create(self, raw_name: str, owner: Any, line: int = 0) -> Tag:
        tag = self.registry.get(tag_id(raw_name))
        if tag is None:
            name = strip_sigil(raw_name)
            tag = self.registry.insert(Tag(id=tag_id(raw_name), name=name, value=raw_name))

        tag.files.append(Location(self.file, line or owner.location.line))

        if tag not in owner.tags:
            owner.tags.append(tag)
        if owner.id not in tag.owners:
            tag.owners.append(owner.id)
        return tag

    def resolve_all(self, tag_nodes: Iterable[Mapping[str, Any]] | None, owner: Any) -> None:
        for node in tag_nodes or ():
            location = node.get("location") or {}
            self.find_or_create(node["name"], owner, location.get("line", 0))

    def has_exclude_tags(self, tag_nodes: Iterable[Mapping[str, Any]] | None) -> bool:
        """True when any declared tag is in the exclusion set."""
        if not tag_nodes or not self.exclude_tags:
            return False
        names = {strip_sigil(node["name"]) for node in tag_nodes}
        return any(name in names for name in self.exclude_tags)

    def update_tag_stats(self, scenario: ScenarioLike, feature: Feature, count: int = 1) -> None:
        """Count ``count`` scenarios against each tag the feature does not already carry."""
        seen: list[Tag] = []
        for tag in scenario.tags:
            if tag in seen or tag in feature.tags:
                continue
            seen.append(tag)
            tag.total_scenarios += count
