"""Render templates and write generated output.

Takes the context from context_builder and produces the generated module.
Rendering happens fully in memory; the target file is replaced only once
every pass has succeeded.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import jinja2

from .errors import OutputError, RenderError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Rendered in this order and concatenated
TEMPLATES = ("header.py.j2", "dispatchers.py.j2", "validators.py.j2")


def _py_literal(value: Any) -> str:
    """Render a str or int as a Python literal."""
    return json.dumps(value, ensure_ascii=False)


def make_environment(template_dir: Path = TEMPLATE_DIR) -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters["pyliteral"] = _py_literal
    return env


def render(context: dict[str, Any], template_dir: Path = TEMPLATE_DIR) -> str:
    """Render every template with the same context."""
    env = make_environment(template_dir)
    parts = []
    for name in TEMPLATES:
        try:
            template = env.get_template(name)
        except jinja2.TemplateNotFound as exc:
            raise RenderError(f"missing template {name} in {template_dir}") from exc
        except jinja2.TemplateSyntaxError as exc:
            raise RenderError(f"{name}:{exc.lineno}: {exc.message}") from exc
        try:
            parts.append(template.render(**context))
        except jinja2.TemplateError as exc:
            raise RenderError(f"failed to render {name}: {exc}") from exc
        logger.debug("rendered %s", name)
    return "".join(parts)


def write_output(text: str, output_path: Path) -> None:
    """Atomically replace output_path with text."""
    directory = output_path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=f".{output_path.name}.", suffix=".tmp",
        )
    except OSError as exc:
        raise OutputError(f"cannot write {output_path}: {exc.strerror or exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, output_path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise OutputError(f"cannot write {output_path}: {exc.strerror or exc}") from exc


def generate(
    context: dict[str, Any],
    output_path: Path,
    template_dir: Path = TEMPLATE_DIR,
) -> Path:
    """Render the templates and write the result to output_path."""
    output = render(context, template_dir)
    write_output(output, output_path)
    logger.debug("wrote %d bytes to %s", len(output), output_path)
    return output_path
