"""Load step definition and transform records from a YAML manifest.

Manifest format::

    constants:
      COUNT: '\\d+'
    step_definitions:
      - keyword: Given
        pattern: '/^I have (#{COUNT}) apples$/'
        source: steps/fruit_steps.rb:12
    transforms:
      - keyword: Transform
        pattern: '/^(\\d+)$/'

``#{NAME}`` inside a pattern is replaced with the named constant. A constant
value loses its slashes and anchors, and its groups become non-capturing. The
patterns themselves are stored as strings and only compiled by the linker.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from featurelink.models import (
    DEFAULT_STEP_KEYWORDS,
    FeatureLinkError,
    RegistryKind,
    StepDefinition,
    Transform,
)
from featurelink.registry import Registry

logger = logging.getLogger(__name__)

INTERPOLATION_RE = re.compile(r"#\{\s*(\w+)\s*\}")
NAMED_GROUP_RE = re.compile(r"(?<!\\)\(\?P<\w+>")
CAPTURE_GROUP_RE = re.compile(r"(?<!\\)\((?!\?)")
MAX_INTERPOLATION_DEPTH = 16
TRANSFORM_KEYWORDS = ("Transform", "ParameterType")


class DefinitionError(FeatureLinkError):
    """Raised when a definitions manifest cannot be loaded."""


def strip_slashes(value: str) -> str:
    if value.startswith("/"):
        value = value[1:]
    if value.endswith("/"):
        value = value[:-1]
    return value


def strip_anchors(value: str) -> str:
    """Drop a leading ``^`` and an unescaped trailing ``$``."""
    if value.startswith("^"):
        value = value[1:]
    if value.endswith("$") and not value.endswith("\\$"):
        value = value[:-1]
    return value


def convert_captures(value: str) -> str:
    """Turn capturing groups into non-capturing ones.

    Escaped parentheses are left alone. An interpolated constant adds no
    groups to the pattern it lands in.
    """
    value = NAMED_GROUP_RE.sub("(?:", value)
    return CAPTURE_GROUP_RE.sub("(?:", value)


def _constant_value(value: Any) -> str:
    return convert_captures(strip_anchors(strip_slashes(str(value))))


def substitute_constants(pattern: str, constants: Mapping[str, str]) -> str:
    """Expand ``#{NAME}`` interpolations until none are left.

    An unknown constant is replaced by its bare name with a warning.
    """
    for _ in range(MAX_INTERPOLATION_DEPTH):
        names = INTERPOLATION_RE.findall(pattern)
        if not names:
            return pattern
        for name in names:
            if name in constants:
                value = _constant_value(constants[name])
            else:
                logger.warning("Could not resolve interpolated constant [%s]", name)
                value = name
            token = re.compile(r"#\{\s*" + re.escape(name) + r"\s*\}")
            pattern = token.sub(lambda _m, v=value: v, pattern)

    logger.warning("Interpolation in pattern did not settle: %s", pattern)
    return pattern


def parse_definitions(
    data: Any,
    registry: Registry,
    step_keywords: Iterable[str] = DEFAULT_STEP_KEYWORDS,
    source: str = "<manifest>",
) -> tuple[list[StepDefinition], list[Transform]]:
    """Register the records of an already-loaded manifest mapping."""
    if data is None:
        return [], []
    if not isinstance(data, dict):
        raise DefinitionError(f"Invalid definitions format in {source}: expected mapping")

    constants = data.get("constants") or {}
    if not isinstance(constants, dict):
        raise DefinitionError(f"Invalid constants in {source}: expected mapping")

    keywords = list(step_keywords)
    definitions: list[StepDefinition] = []
    for entry in _records(data, "step_definitions", source):
        keyword = str(entry.get("keyword", ""))
        if keyword not in keywords:
            logger.debug("Skipping step definition with keyword %r in %s", keyword, source)
            continue
        index = registry.count(RegistryKind.STEP_DEFINITION) + 1
        definition = StepDefinition(
            id=str(entry.get("id") or f"step_definition{index}"),
            keyword=keyword,
            pattern=substitute_constants(_pattern(entry, source), constants),
            source=str(entry.get("source", "")),
            pending=bool(entry.get("pending", False)),
        )
        definitions.append(registry.insert(definition))

    transforms: list[Transform] = []
    for entry in _records(data, "transforms", source):
        keyword = str(entry.get("keyword") or "Transform")
        if keyword not in TRANSFORM_KEYWORDS:
            logger.warning("Unknown transform keyword %r in %s", keyword, source)
        index = registry.count(RegistryKind.STEP_TRANSFORM) + 1
        transform = Transform(
            id=str(entry.get("id") or f"step_transform{index}"),
            keyword=keyword,
            pattern=substitute_constants(_pattern(entry, source), constants),
            source=str(entry.get("source", "")),
        )
        transforms.append(registry.insert(transform))

    return definitions, transforms


def load_definitions(
    path: Path,
    registry: Registry,
    step_keywords: Iterable[str] = DEFAULT_STEP_KEYWORDS,
) -> tuple[list[StepDefinition], list[Transform]]:
    """Load a YAML manifest and register its step definitions and transforms."""
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise DefinitionError(f"Invalid YAML in {path}: {exc}") from exc
    return parse_definitions(raw, registry, step_keywords, source=str(path))


def _records(data: dict[str, Any], key: str, source: str) -> list[dict[str, Any]]:
    records = data.get(key) or []
    if not isinstance(records, list):
        raise DefinitionError(f"Invalid {key} in {source}: expected list")
    for entry in records:
        if not isinstance(entry, dict):
            raise DefinitionError(f"Invalid entry in {key} of {source}: expected mapping")
    return records


def _pattern(entry: dict[str, Any], source: str) -> str:
    if "pattern" not in entry:
        raise DefinitionError(f"Missing 'pattern' in {source}: {entry}")
    return str(entry["pattern"])
