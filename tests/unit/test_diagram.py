"""Unit tests for diagram sanitization and the fallback diagram."""

from __future__ import annotations

from onboardpack.interpret.diagram import DEFAULT_DIAGRAM, fallback_diagram, sanitize_diagram


class TestSanitizeDiagram:
    def test_strips_prose_and_fences(self) -> None:
        raw = "Here is a diagram:\n```\ngraph TD\nA-->B\nSome prose\n```"
        assert sanitize_diagram(raw) == "graph TD\nA-->B"

    def test_mermaid_fence_and_flowchart(self) -> None:
        raw = "```mermaid\nflowchart LR\n    api[API] --> db[(DB)]\n```\nThat's it."
        assert sanitize_diagram(raw) == "flowchart LR\n    api[API] --> db[(DB)]"

    def test_keeps_subgraphs_and_directives(self) -> None:
        raw = (
            "graph TD\n"
            "    subgraph Frontend\n"
            "        ui[UI]\n"
            "    end\n"
            "    ui -.-> api\n"
            "    ui ==> cache\n"
            "    classDef hot fill:#f00\n"
            "    style ui fill:#bbf\n"
            "Note: the UI calls the API\n"
        )
        cleaned = sanitize_diagram(raw)
        assert "subgraph Frontend" in cleaned
        assert "    end" in cleaned
        assert "ui -.-> api" in cleaned
        assert "ui ==> cache" in cleaned
        assert "classDef hot" in cleaned
        assert "style ui" in cleaned
        assert "Note:" not in cleaned

    def test_missing_declaration_gets_default_header(self) -> None:
        assert sanitize_diagram("just some words") == "graph TD\n"

    def test_lines_before_declaration_dropped(self) -> None:
        assert sanitize_diagram("A-->B\ngraph TD\nC-->D").startswith("graph TD\nC-->D")


class TestFallbackDiagram:
    def test_no_metadata(self) -> None:
        assert fallback_diagram(None) == DEFAULT_DIAGRAM
        assert DEFAULT_DIAGRAM.startswith("graph TD")

    def test_directories_and_conventions(self) -> None:
        diagram = fallback_diagram("svc", ["src", "tests", "dist", ".github"])
        lines = diagram.splitlines()

        assert lines[0] == "graph TD"
        assert lines[1] == "    Root[svc]"
        assert "    Root --> src[src/]" in lines
        assert "    Root --> _github[.github/]" in lines
        assert "    src --> |build| dist" in lines
        assert "    tests --> |test| src" in lines
        assert diagram.endswith("\n")

    def test_caps_directories(self) -> None:
        dirs = [f"d{i}" for i in range(12)]
        diagram = fallback_diagram("svc", dirs)
        assert diagram.count("Root -->") == 8
