"""Graphviz DOT export for linked feature graphs."""

from __future__ import annotations

from featurelink.graph import IMPLEMENTED_BY, TAGGED, TRANSFORMED_BY, build_link_graph
from featurelink.registry import Registry

NODE_SHAPES = {
    "feature": "folder",
    "background": "box",
    "scenario": "box",
    "outline": "box3d",
    "example": "box",
    "examples": "tab",
    "step": "ellipse",
    "step_definition": "component",
    "step_transform": "cds",
    "tag": "note",
}

EDGE_STYLES = {
    IMPLEMENTED_BY: "bold",
    TRANSFORMED_BY: "dashed",
    TAGGED: "dotted",
}


def export_dot(registry: Registry) -> str:
    """Export a linked registry as a Graphviz DOT string."""
    g = build_link_graph(registry)
    lines = ["digraph feature_links {", "  rankdir=LR;", ""]

    for node_id, data in g.nodes(data=True):
        shape = NODE_SHAPES.get(data.get("kind", ""), "ellipse")
        label = _escape(data.get("label") or node_id)
        lines.append(f'  "{_escape(node_id)}" [shape={shape}, label="{label}"];')

    lines.append("")
    for source, target, data in g.edges(data=True):
        relation = data.get("relation", "")
        attrs = f'label="{relation}"'
        if relation in EDGE_STYLES:
            attrs += f", style={EDGE_STYLES[relation]}"
        lines.append(f'  "{_escape(source)}" -> "{_escape(target)}" [{attrs}];')

    lines.append("}")
    return "\n".join(lines)


def _escape(text: str) -> str:
    """Escape a string for DOT format."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
