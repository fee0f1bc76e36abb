"""One full pass: build every feature, register definitions, then link."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from featurelink.builder import build_feature
from featurelink.definitions import load_definitions
from featurelink.linker import LinkingPass
from featurelink.models import Feature, LinkerConfig, LinkReport, RegistryKind
from featurelink.parser import find_feature_files, load_feature_ast
from featurelink.registry import Registry

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything produced by one pass."""

    registry: Registry
    features: list[Feature] = field(default_factory=list)
    report: LinkReport = field(default_factory=LinkReport)
    skipped_files: list[str] = field(default_factory=list)


def build_features(
    registry: Registry,
    paths: Iterable[Path],
    config: LinkerConfig,
    base: Path | None = None,
) -> tuple[list[Feature], list[str]]:
    """Parse and build each feature file. Returns (features, skipped file names).

    A file whose document cannot be built leaves nothing behind in the
    registry: the objects it created are removed and shared tags and
    namespaces are restored.
    """
    features: list[Feature] = []
    skipped: list[str] = []
    for path in paths:
        file = _display_path(path, base)
        document = load_feature_ast(path)
        if document is None:
            skipped.append(file)
            continue
        checkpoint = registry.checkpoint()
        try:
            feature = build_feature(registry, document, file, config.excluded, source_path=path)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Failed to build %s: %s", file, exc)
            logger.debug("Build failure in %s", file, exc_info=True)
            checkpoint.rollback()
            feature = None
        if feature is None:
            skipped.append(file)
            continue
        features.append(feature)
    return features, skipped


def run_pipeline(
    features_root: Path,
    definitions_path: Path | None,
    config: LinkerConfig | None = None,
    registry: Registry | None = None,
) -> PipelineResult:
    """Run a complete pass over ``features_root``.

    The registry is cleared first so nothing from an earlier pass survives.
    Linking only starts once every feature and every definition is registered.
    """
    config = config or LinkerConfig()
    registry = registry if registry is not None else Registry()
    registry.clear()

    base = features_root if features_root.is_dir() else features_root.parent
    features, skipped = build_features(
        registry, find_feature_files(features_root), config, base=base.parent,
    )

    if definitions_path is not None and definitions_path.exists():
        load_definitions(definitions_path, registry, config.step_keywords)
    elif definitions_path is not None:
        logger.warning("Definitions file not found: %s", definitions_path)

    report = LinkingPass(registry).run()
    logger.debug(
        "Linked %d step(s), %d unmatched, %d tag(s)",
        len(report.linked_steps), len(report.unmatched_steps),
        len(registry.find_all(RegistryKind.TAG)),
    )
    return PipelineResult(
        registry=registry, features=features, report=report, skipped_files=skipped,
    )


def _display_path(path: Path, base: Path | None) -> str:
    if base is not None:
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            pass
    return Path(os.path.normpath(path)).as_posix()
