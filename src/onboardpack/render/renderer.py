"""Markdown and Mermaid output for a compiled onboarding pack."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from onboardpack.pipeline.technology import LEARN_MCP_URL, LearnTool
from onboardpack.templating import PACKAGE_ROOT, TemplateLoader

if TYPE_CHECKING:
    from onboardpack.pipeline.artifacts import OnboardingPack
    from onboardpack.pipeline.technology import LearnQuery

logger = structlog.get_logger(__name__)

DOCUMENT_TEMPLATE_DIR = PACKAGE_ROOT / "render" / "templates"

OUTPUT_FILES = ("ONBOARDING.md", "RUNBOOK.md", "TASKS.md", "AGENTS.md", "diagram.mmd")
VALIDATION_FILE = "VALIDATION.md"


def learn_call(query: LearnQuery) -> str:
    """Format a documentation query as the MCP tool call a reader would run."""
    if query.tool == LearnTool.CODE_SAMPLE_SEARCH:
        return f'{query.tool.value}(query="{query.query}", language="{query.language or "csharp"}")'
    return f'{query.tool.value}(query="{query.query}")'


def complexity_label(dependency_count: int) -> str:
    if dependency_count > 20:
        return "High"
    if dependency_count > 8:
        return "Medium"
    return "Low"


class PackRenderer:
    """Renders an :class:`OnboardingPack` into files under ``output_dir``.

    Attributes:
        output_dir: Directory receiving the documents; created on write
        templates: Loader for the document templates
    """

    def __init__(self, output_dir: Path, templates: TemplateLoader | None = None) -> None:
        self.output_dir = Path(output_dir)
        self.templates = templates or TemplateLoader(DOCUMENT_TEMPLATE_DIR)
        self.templates.env.filters["learn_call"] = learn_call
        self.templates.env.filters["code"] = lambda value: f"`{value}`"

    def render(self, file_name: str, pack: OnboardingPack) -> str:
        """Render one output document to text."""
        return self.templates.render(
            f"{file_name}.j2",
            pack=pack,
            learn_url=LEARN_MCP_URL,
            complexity=complexity_label(len(pack.onboarding.external_dependencies)),
        )

    def write(self, pack: OnboardingPack) -> list[Path]:
        """Write every output document.

        ``VALIDATION.md`` is only written when technologies were detected.

        Returns:
            Paths of the written files, in write order

        Raises:
            OSError: If the directory or a file cannot be written
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        names = list(OUTPUT_FILES)
        if pack.technologies:
            names.append(VALIDATION_FILE)

        written: list[Path] = []
        for name in names:
            path = self.output_dir / name
            path.write_text(self.render(name, pack), encoding="utf-8")
            logger.debug("output_file_written", path=str(path))
            written.append(path)

        logger.info("output_files_written", output_dir=str(self.output_dir), count=len(written))
        return written
