"""Read ``.feature`` files into Gherkin documents.

Parsing is delegated to the official Cucumber Gherkin parser; this module
only decides which files to read and turns failures into warnings so that
one broken file does not stop a run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from gherkin.errors import ParserError
from gherkin.parser import Parser
from gherkin.token_scanner import TokenScanner

logger = logging.getLogger(__name__)

FEATURE_SUFFIX = ".feature"


def parse_feature_string(content: str) -> dict[str, Any]:
    """Parse Gherkin source text. Raises ``ParserError`` on invalid input."""
    return Parser().parse(TokenScanner(content))


def load_feature_ast(path: Path) -> dict[str, Any] | None:
    """Parse one feature file, or return None (with a warning) if it cannot be read."""
    try:
        content = path.read_text(encoding="utf-8")
        return parse_feature_string(content)
    except (OSError, ParserError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        logger.debug("Parse failure in %s", path, exc_info=True)
        return None


def find_feature_files(root: Path) -> Iterator[Path]:
    """Yield feature files under ``root`` (or ``root`` itself) in sorted order."""
    if root.is_file():
        if root.suffix == FEATURE_SUFFIX:
            yield root
        return
    yield from sorted(p for p in root.rglob(f"*{FEATURE_SUFFIX}") if p.is_file())
