"""Build Jinja2 template context from the scan result.

Groups annotated methods by receiver, fixes the emission order and
assembles the context dict shared by every template.

Ordering (identical input gives identical output):
- receivers sorted by class name
- methods within a receiver sorted by URL, ties by declaration order
- validators and their fields in declaration order
"""

from __future__ import annotations

from typing import Any

from .errors import AnnotationError, ConfigError
from .models import AnnotatedMethod, ApiSurface, FieldValidator, Kind, StructValidator
from .naming import (
    auth_environ_key,
    dispatcher_name,
    handler_name,
    is_module_name,
    validator_name,
)
from .scanner import ScanResult

DEFAULT_AUTH_HEADER = "X-Auth"
DEFAULT_AUTH_TOKEN = "100500"

# Environment variable the generated module reads the auth token from
AUTH_TOKEN_ENV = "APIGEN_AUTH_TOKEN"


def group_methods(methods: tuple[AnnotatedMethod, ...]) -> list[ApiSurface]:
    """Group methods by receiver in a deterministic order."""
    grouped: dict[str, list[AnnotatedMethod]] = {}
    for method in methods:
        grouped.setdefault(method.receiver, []).append(method)

    surfaces = []
    for receiver in sorted(grouped):
        ordered = sorted(grouped[receiver], key=lambda m: (m.url, m.position))
        _check_unique(receiver, ordered)
        surfaces.append(ApiSurface(receiver=receiver, methods=tuple(ordered)))
    return surfaces


def _check_unique(receiver: str, methods: list[AnnotatedMethod]) -> None:
    urls: dict[str, str] = {}
    targets: set[str] = set()
    for method in methods:
        if method.url in urls:
            raise AnnotationError(
                f"{receiver}: url {method.url!r} is registered by both"
                f" {urls[method.url]} and {method.target}"
            )
        if method.target in targets:
            raise AnnotationError(f"{receiver}: method {method.target!r} is annotated twice")
        urls[method.url] = method.target
        targets.add(method.target)


def _build_field(validator: FieldValidator) -> dict[str, Any]:
    p = validator.param_name
    is_int = validator.kind is Kind.INT
    length = "" if is_int else "len "
    field: dict[str, Any] = {
        "name": validator.field_name,
        "param": p,
        "is_int": is_int,
        "required": validator.required,
        "default": validator.default,
        "zero": validator.zero_value,
        "min": validator.min,
        "max": validator.max,
        "enum": list(validator.enum) if validator.enum is not None else None,
        "empty_message": f"{p} must me not empty",
        "int_message": f"{p} must be int",
    }
    if validator.min is not None:
        field["min_message"] = f"{p} {length}must be >= {validator.min}"
    if validator.max is not None:
        field["max_message"] = f"{p} {length}must be <= {validator.max}"
    if validator.enum is not None:
        field["enum_message"] = f"{p} must be one of [{', '.join(validator.enum)}]"
    return field


def _build_validator(struct: StructValidator) -> dict[str, Any]:
    return {
        "struct": struct.struct_name,
        "name": validator_name(struct.struct_name),
        "fields": [_build_field(v) for v in struct.validators.values()],
    }


def _build_dispatcher(surface: ApiSurface, validators: dict[str, str]) -> dict[str, Any]:
    routes = []
    for method in surface.methods:
        validator = validators.get(method.arg_type)
        if validator is None:
            raise AnnotationError(
                f"{surface.receiver}.{method.target}: argument type"
                f" {method.arg_type!r} has no apivalidator fields in this source"
            )
        routes.append({
            "url": method.url,
            "target": method.target,
            "handler": handler_name(method.target),
            "auth": method.auth,
            "http_method": method.http_method.value,
            "arg_type": method.arg_type,
            "validator": validator,
        })
    return {
        "receiver": surface.receiver,
        "name": dispatcher_name(surface.receiver),
        "routes": routes,
    }


def build_context(
    scan: ScanResult,
    module: str,
    source_name: str,
    auth_header: str = DEFAULT_AUTH_HEADER,
    auth_token: str = DEFAULT_AUTH_TOKEN,
) -> dict[str, Any]:
    """Build the full template context from the scan result."""
    if not is_module_name(module):
        raise ConfigError(
            f"{module!r} is not an importable module name; pass --module"
        )
    if not auth_header.strip():
        raise ConfigError("auth header name must not be empty")

    structs = sorted(scan.structs, key=lambda s: s.position)
    validators = [_build_validator(s) for s in structs]
    by_struct = {v["struct"]: v["name"] for v in validators}

    surfaces = group_methods(scan.methods)
    dispatchers = [_build_dispatcher(s, by_struct) for s in surfaces]

    imports = sorted({s.receiver for s in surfaces} | set(by_struct))

    return {
        "source_name": source_name,
        "module": module,
        "imports": imports,
        "auth_header": auth_header.strip(),
        "auth_environ_key": auth_environ_key(auth_header),
        "auth_token": auth_token,
        "auth_token_env": AUTH_TOKEN_ENV,
        "dispatchers": dispatchers,
        "validators": validators,
        "dispatcher_count": len(dispatchers),
        "validator_count": len(validators),
    }
