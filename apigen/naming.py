"""Names used in the generated module.

Pattern:
  receiver class   -> {Receiver}Dispatcher
  receiver method  -> _handle_{method}
  annotated class  -> validate_{snake_case_class}
  auth header      -> WSGI environ key HTTP_{HEADER}

Examples:
  MyApi              -> MyApiDispatcher
  create             -> _handle_create
  CreateParams       -> validate_create_params
  HTTPRequestParams  -> validate_http_request_params
  X-Auth             -> HTTP_X_AUTH
"""

from __future__ import annotations

import keyword
import re

_MODULE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


def _camel_to_snake(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def dispatcher_name(receiver: str) -> str:
    return f"{receiver}Dispatcher"


def handler_name(target: str) -> str:
    return f"_handle_{target}"


def validator_name(struct_name: str) -> str:
    """Build the validator function name for an annotated class.

    Returns a name like 'validate_create_params'.
    """
    name = _camel_to_snake(struct_name)
    name = re.sub(r"_+", "_", name).strip("_")
    return f"validate_{name}"


def auth_environ_key(header: str) -> str:
    """Map an HTTP header name to its key in a WSGI environ."""
    return "HTTP_" + header.strip().upper().replace("-", "_")


def is_module_name(name: str) -> bool:
    """Check that a dotted name can be used in an import statement."""
    if not _MODULE_NAME.match(name):
        return False
    return not any(keyword.iskeyword(part) for part in name.split("."))
