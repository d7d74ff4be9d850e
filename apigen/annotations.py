"""Parse ``apigen:api`` method annotations.

The payload is the JSON object that follows the marker in the method
docstring:

    apigen:api {"url": "/user/create", "auth": true, "method": "POST"}

Keys:
- url     required, non-empty, starts with "/"
- auth    optional bool, default false
- method  optional, "" (any), "GET" or "POST"
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import AnnotationError
from .models import ApiAnnotation, HTTPMethod

logger = logging.getLogger(__name__)

API_MARKER = "apigen:api"

_KNOWN_KEYS = {"url", "auth", "method"}


def has_api_marker(docstring: str | None) -> bool:
    return bool(docstring) and API_MARKER in docstring


def _payload_text(docstring: str, where: str) -> str:
    """Strip everything up to and including the marker."""
    if docstring.count(API_MARKER) > 1:
        raise AnnotationError(f"{where}: more than one {API_MARKER} marker")
    _, _, payload = docstring.partition(API_MARKER)
    return payload.strip()


def _parse_method(value: Any, where: str) -> HTTPMethod:
    if not isinstance(value, str):
        raise AnnotationError(f"{where}: 'method' must be a string, got {value!r}")
    try:
        return HTTPMethod(value)
    except ValueError:
        allowed = ", ".join(repr(m.value) for m in HTTPMethod)
        raise AnnotationError(
            f"{where}: unsupported method {value!r} (expected one of {allowed})"
        ) from None


def parse_api_annotation(docstring: str, where: str) -> ApiAnnotation:
    """Parse the annotation payload of one method.

    ``where`` names the method in error messages, e.g. 'api.py:12 MyApi.create'.
    """
    payload = _payload_text(docstring, where)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise AnnotationError(f"{where}: malformed {API_MARKER} payload: {exc}") from exc

    if not isinstance(data, dict):
        raise AnnotationError(f"{where}: {API_MARKER} payload must be a JSON object")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise AnnotationError(f"{where}: unknown annotation keys: {', '.join(unknown)}")

    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise AnnotationError(f"{where}: 'url' must be a non-empty string")
    if not url.startswith("/"):
        raise AnnotationError(f"{where}: 'url' must start with '/', got {url!r}")

    auth = data.get("auth", False)
    if not isinstance(auth, bool):
        raise AnnotationError(f"{where}: 'auth' must be true or false, got {auth!r}")

    method = _parse_method(data.get("method", ""), where)

    logger.debug("%s: url=%s auth=%s method=%s", where, url, auth, method.value or "ANY")
    return ApiAnnotation(url=url, auth=auth, method=method)
