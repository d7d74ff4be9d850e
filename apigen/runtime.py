"""Runtime helpers imported by generated modules.

Business code raises ``ApiError`` to answer with its own HTTP status;
any other exception becomes a 500. Everything here is stateless, so
generated dispatchers can serve concurrent requests.
"""

from __future__ import annotations

import dataclasses
import json
import re
from collections.abc import Callable
from http import HTTPStatus
from typing import Any
from urllib.parse import parse_qs

_INT_VALUE = re.compile(r"[+-]?[0-9]+")
_FORM_TYPE = "application/x-www-form-urlencoded"


class ApiError(Exception):
    """A business error with a declared HTTP status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def request_path(environ: dict[str, Any]) -> str:
    return environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")


def _read_body(environ: dict[str, Any]) -> str:
    content_type = environ.get("CONTENT_TYPE", "")
    if content_type and not content_type.startswith(_FORM_TYPE):
        return ""
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    if length <= 0:
        return ""
    return environ["wsgi.input"].read(length).decode("utf-8", errors="replace")


def read_params(environ: dict[str, Any]) -> dict[str, str]:
    """Request parameters: form body for POST, query string otherwise.

    Only the first value of a repeated parameter is kept.
    """
    if environ.get("REQUEST_METHOD") == "POST":
        raw = _read_body(environ)
    else:
        raw = environ.get("QUERY_STRING", "")
    parsed = parse_qs(raw, keep_blank_values=True)
    return {name: values[0] for name, values in parsed.items()}


def parse_int(raw: str) -> int | None:
    """Parse a decimal integer, or None if raw is not one."""
    if not _INT_VALUE.fullmatch(raw):
        return None
    return int(raw)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses to dicts, also inside lists, tuples and dicts."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def encode_json(payload: Any) -> bytes:
    """Serialise a payload; raises TypeError or ValueError if it is not JSON."""
    return json.dumps(payload).encode("utf-8")


def _status_line(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return f"{status} Unknown"


def json_response(
    start_response: Callable[..., Any],
    status: int,
    payload: dict[str, Any] | bytes,
) -> list[bytes]:
    """Send a JSON envelope through a WSGI start_response.

    ``payload`` may already be encoded with ``encode_json``.
    """
    body = payload if isinstance(payload, bytes) else encode_json(payload)
    start_response(_status_line(status), [
        ("Content-Type", "application/json"),
        ("Content-Length", str(len(body))),
    ])
    return [body]
