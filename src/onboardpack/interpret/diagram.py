"""Mermaid diagram sanitization and the fallback diagram.

Models asked for a bare flowchart still wrap it in fences or surround it
with commentary. :func:`sanitize_diagram` keeps only the lines that belong
to the flowchart grammar, starting at the first ``graph``/``flowchart``
declaration.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

_FENCE = re.compile(r"```(?:mermaid)?\n?")
_NODE_ID = r"[A-Za-z_][A-Za-z0-9_]*"
_GRAPH_LINE = re.compile(
    rf"^{_NODE_ID}\s*(?:-->|---|-\.->|==>)"  # edges
    rf"|^{_NODE_ID}[\[({{>]"  # node declarations
)
_DIRECTIVES = ("classDef ", "class ", "style ", "linkStyle ", "click ", "direction ")
_DECLARATIONS = ("graph ", "flowchart ")

DEFAULT_DIAGRAM = "graph TD\n    A[Project] --> B[Source]\n    A --> C[Tests]\n    A --> D[Config]"
MAX_DIAGRAM_DIRS = 8


def _is_graph_line(stripped: str) -> bool:
    return (
        stripped.startswith("subgraph ")
        or stripped == "end"
        or stripped.startswith(_DIRECTIVES)
        or _GRAPH_LINE.match(stripped) is not None
    )


def sanitize_diagram(text: str) -> str:
    """Reduce model output to a flowchart description.

    Args:
        text: Raw model output

    Returns:
        Diagram text that always starts with ``graph`` or ``flowchart``
    """
    lines: list[str] = []
    started = False

    for line in _FENCE.sub("", text).split("\n"):
        stripped = line.strip()
        if not stripped:
            if started:
                lines.append("")
            continue
        if stripped.startswith(_DECLARATIONS):
            started = True
            lines.append(stripped)
            continue
        if started and _is_graph_line(stripped):
            lines.append(line)

    cleaned = "\n".join(lines).strip()
    if not cleaned.startswith(("graph", "flowchart")):
        cleaned = f"graph TD\n{cleaned}"
    return cleaned


def fallback_diagram(project_name: str | None, top_level_dirs: Sequence[str] = ()) -> str:
    """Build a directory-layout diagram without a model.

    Args:
        project_name: Repository name; None when nothing was scanned
        top_level_dirs: Directories directly under the repository root

    Returns:
        Flowchart of the root and up to :data:`MAX_DIAGRAM_DIRS` directories
    """
    if project_name is None:
        return DEFAULT_DIAGRAM

    dirs = list(top_level_dirs[:MAX_DIAGRAM_DIRS])
    lines = ["graph TD", f"    Root[{project_name}]"]
    for name in dirs:
        node_id = re.sub(r"[^a-zA-Z0-9]", "_", name)
        lines.append(f"    Root --> {node_id}[{name}/]")

    if "src" in dirs and "dist" in dirs:
        lines.append("    src --> |build| dist")
    if "src" in dirs and "tests" in dirs:
        lines.append("    tests --> |test| src")

    return "\n".join(lines) + "\n"
