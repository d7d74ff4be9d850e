"""Records compiled from the annotated source.

All of them are created once per run and never mutated afterwards.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class HTTPMethod(str, enum.Enum):
    ANY = ""
    GET = "GET"
    POST = "POST"


class Kind(str, enum.Enum):
    STRING = "str"
    INT = "int"


@dataclass(frozen=True)
class ApiAnnotation:
    """Payload of one ``apigen:api`` marker."""

    url: str
    auth: bool = False
    method: HTTPMethod = HTTPMethod.ANY


@dataclass(frozen=True)
class AnnotatedMethod:
    receiver: str  # owning class, the grouping key
    url: str
    auth: bool
    http_method: HTTPMethod
    target: str  # method name on the receiver
    arg_type: str  # class of the single non-self parameter
    position: int  # declaration order within the source file


@dataclass(frozen=True)
class FieldValidator:
    field_name: str
    param_name: str
    kind: Kind
    required: bool = False
    default: str | None = None
    min: int | None = None  # value for INT, length for STRING
    max: int | None = None
    enum: tuple[str, ...] | None = None

    @property
    def zero_value(self) -> str | int:
        return 0 if self.kind is Kind.INT else ""


@dataclass(frozen=True)
class StructValidator:
    struct_name: str
    validators: dict[str, FieldValidator] = field(default_factory=dict)
    position: int = 0


@dataclass(frozen=True)
class ApiSurface:
    """All annotated methods sharing one receiver class."""

    receiver: str
    methods: tuple[AnnotatedMethod, ...]
