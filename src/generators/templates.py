"""Jinja2 template rendering for embedded boilerplate.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``src/generators/templates/`` directory and renders them with
component-specific context data.  Used by the fallback generators and by
bootstrap executors that write a few files on top of the tool's output.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders Jinja2 templates for generated components.

    Templates live under a configurable directory and are addressed by their
    relative path (e.g. ``"android/settings.gradle.j2"``).  Undefined context
    variables raise instead of rendering as empty strings.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = slugify
        self.env.filters["pascal_case"] = pascal_case

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(_write_file, out, content)
        return out

    async def render_files(
        self,
        files: dict[str, str],
        output_dir: str | Path,
        context: dict[str, Any],
    ) -> list[Path]:
        """Render a ``relative output path -> template path`` map under *output_dir*."""
        base = Path(output_dir)
        written: list[Path] = []
        for rel_path, template_path in files.items():
            written.append(await self.render_to_file(template_path, base / rel_path, context))
        return written

    def has_template(self, template_path: str) -> bool:
        return (self.template_dir / template_path).is_file()


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def slugify(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def pascal_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[^A-Za-z0-9]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
