"""Jinja2 template loading.

Prompt templates live in ``onboardpack/prompts/templates`` and document
templates in ``onboardpack/render/templates``; both are shipped as package
data and loaded through :class:`TemplateLoader`.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

if TYPE_CHECKING:
    from jinja2 import Template

PACKAGE_ROOT = Path(__file__).parent


class TemplateLoader:
    """Loads and caches Jinja2 templates from one or more directories.

    Templates are plain text (prompts, Markdown, Mermaid), so autoescaping
    only applies to HTML/XML names. Undefined variables raise instead of
    rendering as empty strings.

    Attributes:
        template_dirs: Directories searched, in order
        env: Jinja2 Environment with configured loaders and caching
    """

    def __init__(self, *template_dirs: Path) -> None:
        self.template_dirs = list(template_dirs)
        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in self.template_dirs]),
            autoescape=select_autoescape(),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            cache_size=50,
            auto_reload=False,
        )

    def load_template(self, template_name: str) -> Template:
        """Load a template by name.

        Raises:
            jinja2.TemplateNotFound: If no directory has the template
        """
        return self.env.get_template(template_name)

    def render(self, template_name: str, **context: Any) -> str:
        return self.load_template(template_name).render(**context)

    def list_templates(self) -> list[str]:
        return sorted(self.env.list_templates())
