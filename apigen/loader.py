"""Load and parse the annotated source module.

Reads one Python file and returns its top-level declarations.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import SourceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    path: Path
    module: str  # import name used by the generated module
    declarations: tuple[ast.stmt, ...]


def load_source(path: Path, module: str | None = None) -> SourceFile:
    """Load the source file from disk and parse it."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceError(f"cannot read {path}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise SourceError(f"cannot decode {path}: {exc.reason}") from exc

    try:
        tree = ast.parse(text, filename=str(path))
    except SyntaxError as exc:
        raise SourceError(f"{path}:{exc.lineno}: {exc.msg}") from exc
    except ValueError as exc:
        raise SourceError(f"{path}: {exc}") from exc

    logger.debug("parsed %s: %d top-level declarations", path, len(tree.body))
    return SourceFile(
        path=path,
        module=module or path.stem,
        declarations=tuple(tree.body),
    )


def get_classes(declarations: tuple[ast.stmt, ...]) -> list[ast.ClassDef]:
    """Extract top-level class definitions."""
    return [d for d in declarations if isinstance(d, ast.ClassDef)]


def get_functions(
    declarations: tuple[ast.stmt, ...],
) -> list[ast.FunctionDef | ast.AsyncFunctionDef]:
    """Extract top-level function definitions."""
    return [
        d for d in declarations
        if isinstance(d, (ast.FunctionDef, ast.AsyncFunctionDef))
    ]
