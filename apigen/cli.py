"""CLI entry point for apigen."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click

from .codegen import generate
from .context_builder import DEFAULT_AUTH_HEADER, DEFAULT_AUTH_TOKEN, build_context
from .errors import GenerationError
from .loader import load_source
from .scanner import scan


def run(
    source_path: Path,
    output_path: Path,
    module: str | None = None,
    auth_header: str = DEFAULT_AUTH_HEADER,
    auth_token: str = DEFAULT_AUTH_TOKEN,
) -> dict[str, Any]:
    """Load, scan, compile and emit. Returns the template context."""
    source = load_source(source_path, module)
    result = scan(source)
    context = build_context(
        result,
        module=source.module,
        source_name=source_path.name,
        auth_header=auth_header,
        auth_token=auth_token,
    )
    generate(context, output_path)
    return context


@click.command()
@click.argument("source", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--module", default=None, help="Import name of SOURCE in the generated code (default: file stem).")
@click.option("--auth-header", default=DEFAULT_AUTH_HEADER, show_default=True, help="Header checked on auth routes.")
@click.option("--auth-token", default=DEFAULT_AUTH_TOKEN, show_default=True, help="Token baked in as default; APIGEN_AUTH_TOKEN overrides it at import.")
@click.option("-v", "--verbose", is_flag=True, help="Log scanning and compilation details.")
def main(
    source: Path,
    output: Path,
    module: str | None,
    auth_header: str,
    auth_token: str,
    verbose: bool,
):
    """Generate HTTP dispatchers and validators from SOURCE into OUTPUT."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        context = run(source, output, module, auth_header, auth_token)
    except GenerationError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Generated {output} ({context['dispatcher_count']} dispatchers,"
        f" {context['validator_count']} validators)"
    )
