"""Prompt-level operations over any inference provider.

:class:`ModelAssistant` turns repository facts into prompts, sends them
through whichever :class:`InferenceProvider` the run holds, and returns
the raw reply text. Interpreting that text is left to
:mod:`onboardpack.interpret`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from onboardpack.providers.base import InferenceProvider, InferenceRequest
from onboardpack.templating import PACKAGE_ROOT, TemplateLoader

logger = structlog.get_logger(__name__)

PROMPT_TEMPLATE_DIR = PACKAGE_ROOT / "prompts" / "templates"

SUMMARY_CONTENT_LIMIT = 8000
CONFIG_CONTENT_LIMIT = 4000
DEPENDENCY_LIMIT = 50

ARCHITECTURE_PATTERNS = (
    "Monolith",
    "Microservices",
    "Monorepo",
    "Notebook/Script Collection",
    "Serverless",
    "CLI Tool",
    "Library/SDK",
    "Plugin/Extension",
)


class ModelAssistant:
    """Builds prompts for each generation task and runs them.

    Attributes:
        provider: Inference provider used for every call
        templates: Loader for the system prompt templates
    """

    def __init__(
        self,
        provider: InferenceProvider,
        templates: TemplateLoader | None = None,
        temperature: float | None = None,
    ) -> None:
        self.provider = provider
        self.templates = templates or TemplateLoader(PROMPT_TEMPLATE_DIR)
        self.temperature = temperature

    async def _ask(self, operation: str, template: str, prompt: str, max_tokens: int, **context) -> str:
        request = InferenceRequest(
            prompt=prompt,
            system_prompt=self.templates.render(template, **context).strip(),
            max_tokens=max_tokens,
            temperature=self.temperature,
        )
        logger.debug("assistant_request", operation=operation, prompt_length=len(prompt))
        response = await self.provider.complete(request)
        return response.content

    async def summarize_file(self, file_path: str, content: str) -> str:
        """Summarize one source file in under a hundred words."""
        return await self._ask(
            "summarize_file",
            "summarize_file.j2",
            f"File: {file_path}\n\nContent:\n{content[:SUMMARY_CONTENT_LIMIT]}",
            max_tokens=256,
        )

    async def extract_config_patterns(self, file_path: str, content: str) -> str:
        return await self._ask(
            "extract_config_patterns",
            "config_patterns.j2",
            f"File: {file_path}\n\nContent:\n{content[:CONFIG_CONTENT_LIMIT]}",
            max_tokens=512,
        )

    async def analyze_dependencies(self, dependencies: Sequence[str], ecosystem: str) -> str:
        listing = "\n".join(dependencies[:DEPENDENCY_LIMIT])
        return await self._ask(
            "analyze_dependencies",
            "dependencies.j2",
            f"Ecosystem: {ecosystem}\n\nDependencies:\n{listing}",
            max_tokens=1024,
        )

    async def generate_architecture_summary(
        self, structure: str, key_file_summaries: Mapping[str, str]
    ) -> str:
        """Describe the architecture from the directory tree and file summaries.

        Args:
            structure: Formatted directory tree
            key_file_summaries: File path to summary

        Returns:
            Markdown architecture description
        """
        summaries = "\n".join(f"{path}: {summary}" for path, summary in key_file_summaries.items())
        return await self._ask(
            "generate_architecture_summary",
            "architecture.j2",
            f"Directory Structure:\n{structure}\n\nKey File Summaries:\n{summaries}",
            max_tokens=1024,
            patterns=ARCHITECTURE_PATTERNS,
        )

    async def generate_starter_tasks(
        self,
        repo_context: str,
        tech_stack: Sequence[str],
        key_files: Sequence[str] = (),
        batch_start: int = 1,
        batch_end: int = 10,
    ) -> str:
        """Ask for tasks ``batch_start`` through ``batch_end`` as a numbered list.

        The reply is meant for :func:`onboardpack.interpret.tasks.parse_tasks`.
        """
        return await self._ask(
            "generate_starter_tasks",
            "starter_tasks.j2",
            (
                f"Repository Context:\n{repo_context}\n\n"
                f"Tech Stack: {', '.join(tech_stack)}\n\n"
                f"Key Files:\n{chr(10).join(key_files)}"
            ),
            max_tokens=2048,
            batch_start=batch_start,
            batch_end=batch_end,
        )

    async def generate_mermaid_diagram(
        self, components: Sequence[str], relationships: str
    ) -> str:
        """Ask for a flowchart; the reply still needs sanitizing."""
        return await self._ask(
            "generate_mermaid_diagram",
            "mermaid_diagram.j2",
            f"Components:\n{chr(10).join(components)}\n\nRelationships:\n{relationships}",
            max_tokens=512,
            min_subgraphs=2,
            min_nodes=8,
            max_nodes=15,
        )
