"""Unit tests for the Jinja2 template loader."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import TemplateNotFound, UndefinedError

from onboardpack.prompts.assistant import PROMPT_TEMPLATE_DIR
from onboardpack.render.renderer import DOCUMENT_TEMPLATE_DIR
from onboardpack.templating import TemplateLoader


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    (tmp_path / "greeting.md.j2").write_text("Hello {{ name }} <b>\n", encoding="utf-8")
    return tmp_path


def test_render(template_dir: Path) -> None:
    loader = TemplateLoader(template_dir)
    assert loader.render("greeting.md.j2", name="Ada") == "Hello Ada <b>\n"


def test_undefined_variable_raises(template_dir: Path) -> None:
    with pytest.raises(UndefinedError):
        TemplateLoader(template_dir).render("greeting.md.j2")


def test_missing_template(template_dir: Path) -> None:
    with pytest.raises(TemplateNotFound):
        TemplateLoader(template_dir).load_template("missing.j2")


def test_packaged_templates() -> None:
    assert TemplateLoader(PROMPT_TEMPLATE_DIR).list_templates() == [
        "architecture.j2",
        "config_patterns.j2",
        "dependencies.j2",
        "mermaid_diagram.j2",
        "starter_tasks.j2",
        "summarize_file.j2",
    ]
    assert "TASKS.md.j2" in TemplateLoader(DOCUMENT_TEMPLATE_DIR).list_templates()
