"""Compile ``apivalidator:`` field tags into validator rules.

A tagged field is an annotated class attribute whose ``typing.Annotated``
metadata holds a string starting with the marker:

    login: Annotated[str, "apivalidator:required,min=10"] = ""

Handles:
- Kind from the declared type (str / int only)
- Bare "required" clause
- paramname=, default=, min=, max=, enum=a|b|c clauses
- Short tags ("apivalidator:" with no body) yield no validator
- Duplicate request parameter names within one class
- Classes the generated validator cannot build: not a dataclass, or an
  unvalidated field without a default
"""

from __future__ import annotations

import ast
import logging
import re

from .errors import TagError
from .models import FieldValidator, Kind, StructValidator

logger = logging.getLogger(__name__)

VALIDATOR_MARKER = "apivalidator:"

_KINDS: dict[str, Kind] = {
    "str": Kind.STRING,
    "int": Kind.INT,
}

_CLAUSE_KEYS = {"paramname", "default", "min", "max", "enum"}

# Same shape the generated code accepts for INT values
_INT_LITERAL = re.compile(r"[+-]?[0-9]+")


def _is_annotated(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id == "Annotated"
    if isinstance(node, ast.Attribute):
        return node.attr == "Annotated"
    return False


def _split_annotated(annotation: ast.expr) -> tuple[ast.expr, list[ast.expr]] | None:
    """Return (declared type, metadata) of an ``Annotated[...]`` expression."""
    if not isinstance(annotation, ast.Subscript) or not _is_annotated(annotation.value):
        return None
    args = annotation.slice
    if not isinstance(args, ast.Tuple) or len(args.elts) < 2:
        return None
    return args.elts[0], list(args.elts[1:])


def field_tag(stmt: ast.stmt) -> tuple[str, ast.expr, str] | None:
    """Extract (field name, declared type, raw tag) from a class body statement."""
    if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
        return None
    parts = _split_annotated(stmt.annotation)
    if parts is None:
        return None
    declared, metadata = parts
    for item in metadata:
        if (
            isinstance(item, ast.Constant)
            and isinstance(item.value, str)
            and item.value.startswith(VALIDATOR_MARKER)
        ):
            return stmt.target.id, declared, item.value
    return None


def has_tagged_fields(class_def: ast.ClassDef) -> bool:
    return any(field_tag(stmt) is not None for stmt in class_def.body)


def _resolve_kind(declared: ast.expr, where: str) -> Kind:
    """Map the declared field type to a validator kind."""
    name = declared.id if isinstance(declared, ast.Name) else ast.unparse(declared)
    kind = _KINDS.get(name)
    if kind is None:
        raise TagError(f"{where}: unsupported field type {name!r} (expected str or int)")
    return kind


def _parse_int(value: str, key: str, where: str) -> int:
    if not _INT_LITERAL.fullmatch(value):
        raise TagError(f"{where}: {key}={value!r} is not an integer")
    return int(value)


def _parse_enum(value: str, where: str) -> tuple[str, ...]:
    members = tuple(value.split("|"))
    if any(not m for m in members):
        raise TagError(f"{where}: enum={value!r} has an empty member")
    return members


def compile_field(
    field_name: str,
    declared: ast.expr,
    tag: str,
    where: str,
) -> FieldValidator | None:
    """Compile one tagged field into its validator rule."""
    if len(tag) <= len(VALIDATOR_MARKER):
        logger.debug("%s: empty tag, no validator", where)
        return None

    kind = _resolve_kind(declared, where)
    body = tag[len(VALIDATOR_MARKER):]

    options: dict[str, str] = {}
    required = False
    for raw_clause in body.split(","):
        clause = raw_clause.strip()
        if clause == "required":
            required = True
            continue
        if clause.count("=") != 1:
            raise TagError(f"{where}: malformed clause {clause!r} (expected key=value)")
        key, value = clause.split("=")
        key = key.strip()
        if key not in _CLAUSE_KEYS:
            raise TagError(f"{where}: unknown validator {key!r}")
        if key in options:
            raise TagError(f"{where}: validator {key!r} given twice")
        options[key] = value.strip()

    param_name = options.get("paramname", field_name.lower())
    if not param_name:
        raise TagError(f"{where}: paramname must not be empty")

    default = options.get("default")
    if default is not None and kind is Kind.INT:
        _parse_int(default, "default", where)

    min_value = _parse_int(options["min"], "min", where) if "min" in options else None
    max_value = _parse_int(options["max"], "max", where) if "max" in options else None
    if min_value is not None and max_value is not None and min_value > max_value:
        raise TagError(f"{where}: min={min_value} is greater than max={max_value}")

    enum = _parse_enum(options["enum"], where) if "enum" in options else None
    if enum is not None and default and default not in enum:
        raise TagError(f"{where}: default={default!r} is not one of the enum values")

    return FieldValidator(
        field_name=field_name,
        param_name=param_name,
        kind=kind,
        required=required,
        default=default,
        min=min_value,
        max=max_value,
        enum=enum,
    )


def _decorated_as_dataclass(class_def: ast.ClassDef) -> bool:
    for dec in class_def.decorator_list:
        target = dec.func if isinstance(dec, ast.Call) else dec
        if isinstance(target, ast.Name) and target.id == "dataclass":
            return True
        if isinstance(target, ast.Attribute) and target.attr == "dataclass":
            return True
    return False


def _needs_no_argument(annotation: ast.expr) -> bool:
    """ClassVar and KW_ONLY annotations are not __init__ parameters."""
    if isinstance(annotation, ast.Subscript):
        annotation = annotation.value
    if isinstance(annotation, ast.Name):
        return annotation.id in ("ClassVar", "KW_ONLY")
    if isinstance(annotation, ast.Attribute):
        return annotation.attr in ("ClassVar", "KW_ONLY")
    return False


def compile_struct(class_def: ast.ClassDef, source: str, position: int = 0) -> StructValidator:
    """Compile every tagged field of a class, in declaration order."""
    validators: dict[str, FieldValidator] = {}
    seen_params: dict[str, str] = {}

    for stmt in class_def.body:
        if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
            continue
        field_name = stmt.target.id
        where = f"{source}:{stmt.lineno} {class_def.name}.{field_name}"

        tagged = field_tag(stmt)
        validator = None
        if tagged is not None:
            validator = compile_field(field_name, tagged[1], tagged[2], where)
        if validator is None:
            # the generated validator never passes this field to __init__
            if stmt.value is None and not _needs_no_argument(stmt.annotation):
                raise TagError(f"{where}: field is not validated and has no default")
            continue

        other = seen_params.get(validator.param_name)
        if other is not None:
            raise TagError(
                f"{where}: request parameter {validator.param_name!r}"
                f" is already used by {class_def.name}.{other}"
            )
        seen_params[validator.param_name] = field_name
        validators[field_name] = validator

    if not _decorated_as_dataclass(class_def):
        raise TagError(
            f"{source}:{class_def.lineno} {class_def.name}: a class with"
            " apivalidator fields must be a dataclass"
        )

    logger.debug("compiled %s: %d validated fields", class_def.name, len(validators))
    return StructValidator(
        struct_name=class_def.name,
        validators=validators,
        position=position,
    )
