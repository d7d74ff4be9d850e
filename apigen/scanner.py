"""Find annotated methods and annotated classes in the parsed source.

A method is annotated when its docstring carries the ``apigen:api`` marker.
It must be a plain instance method of a top-level class, with exactly one
parameter besides ``self`` annotated with a class name. The class becomes
the grouping key (receiver).

A class is annotated when at least one of its fields carries an
``apivalidator:`` tag.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass

from .annotations import API_MARKER, has_api_marker, parse_api_annotation
from .errors import AnnotationError
from .loader import SourceFile, get_classes, get_functions
from .models import AnnotatedMethod, StructValidator
from .tags import compile_struct, has_tagged_fields

logger = logging.getLogger(__name__)

_FORBIDDEN_DECORATORS = {"staticmethod", "classmethod"}


@dataclass(frozen=True)
class ScanResult:
    methods: tuple[AnnotatedMethod, ...]
    structs: tuple[StructValidator, ...]


def _decorator_names(func: ast.FunctionDef | ast.AsyncFunctionDef) -> set[str]:
    names = set()
    for dec in func.decorator_list:
        if isinstance(dec, ast.Name):
            names.add(dec.id)
        elif isinstance(dec, ast.Attribute):
            names.add(dec.attr)
    return names


def _argument_type(func: ast.FunctionDef, where: str) -> str:
    """Return the class name of the single non-self parameter."""
    args = func.args
    positional = args.posonlyargs + args.args
    if args.vararg or args.kwarg or args.kwonlyargs:
        raise AnnotationError(f"{where}: only one positional parameter besides self is allowed")
    if not positional or positional[0].arg != "self":
        raise AnnotationError(f"{where}: annotated method must take self as receiver")
    if len(positional) != 2:
        raise AnnotationError(
            f"{where}: annotated method must take exactly one parameter besides self"
        )
    param = positional[1]
    if not isinstance(param.annotation, ast.Name):
        raise AnnotationError(
            f"{where}: parameter {param.arg!r} must be annotated with a class name"
        )
    return param.annotation.id


def _scan_method(
    class_def: ast.ClassDef,
    func: ast.FunctionDef | ast.AsyncFunctionDef,
    source: str,
    position: int,
) -> AnnotatedMethod:
    where = f"{source}:{func.lineno} {class_def.name}.{func.name}"

    forbidden = _decorator_names(func) & _FORBIDDEN_DECORATORS
    if forbidden:
        raise AnnotationError(
            f"{where}: {sorted(forbidden)[0]} has no instance receiver"
        )
    if isinstance(func, ast.AsyncFunctionDef):
        raise AnnotationError(f"{where}: async methods are not supported")

    annotation = parse_api_annotation(ast.get_docstring(func) or "", where)
    return AnnotatedMethod(
        receiver=class_def.name,
        url=annotation.url,
        auth=annotation.auth,
        http_method=annotation.method,
        target=func.name,
        arg_type=_argument_type(func, where),
        position=position,
    )


def scan(source: SourceFile) -> ScanResult:
    """Classify the top-level declarations of one source file."""
    name = source.path.name

    for func in get_functions(source.declarations):
        if has_api_marker(ast.get_docstring(func)):
            raise AnnotationError(
                f"{name}:{func.lineno} {func.name}: {API_MARKER} on a function"
                " without a receiver class"
            )

    methods: list[AnnotatedMethod] = []
    structs: list[StructValidator] = []

    for class_def in get_classes(source.declarations):
        annotated = False
        for stmt in class_def.body:
            if not isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            if not has_api_marker(ast.get_docstring(stmt)):
                continue
            methods.append(_scan_method(class_def, stmt, name, len(methods)))
            annotated = True

        if has_tagged_fields(class_def):
            structs.append(compile_struct(class_def, name, len(structs)))
            annotated = True

        if not annotated:
            logger.debug("%s:%d %s: no annotations, skipped", name, class_def.lineno, class_def.name)

    logger.debug("scanned %s: %d methods, %d classes", name, len(methods), len(structs))
    return ScanResult(methods=tuple(methods), structs=tuple(structs))
