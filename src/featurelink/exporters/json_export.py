"""JSON export for linked feature graphs."""

from __future__ import annotations

import json

from featurelink.graph import link_graph_to_json
from featurelink.registry import Registry


def export_json(registry: Registry, indent: int = 2) -> str:
    """Export a linked registry as a JSON string."""
    return json.dumps(link_graph_to_json(registry), indent=indent)
