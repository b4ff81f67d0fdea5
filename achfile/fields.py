"""Fixed-width field codec.

Every column of a NACHA record is described by a :class:`FieldSpec`. Numeric
fields hold non-negative integers rendered zero-filled on the left,
alphanumeric fields hold text blank-filled on the right and routing fields
hold text blank-filled on the left (the ``bTTTTAAAAC`` layout used by the
file header). Digit fields keep dates and times as raw digit strings and may
be allowed to stay blank. A spec may carry a constant literal, in which case
the field has no value of its own and always renders that literal.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Union

from .errors import FieldError

FieldValue = Union[int, str]


class FieldKind(str, Enum):
    NUMERIC = "numeric"
    ALPHANUMERIC = "alphanumeric"
    ROUTING = "routing"
    DIGITS = "digits"


@dataclass(frozen=True)
class FieldSpec:
    """Column layout for one field; ``start`` is the 0-based column."""

    name: str
    start: int
    width: int
    kind: FieldKind = FieldKind.ALPHANUMERIC
    constant: Optional[str] = None
    allowed: Optional[FrozenSet[FieldValue]] = None
    blank_ok: bool = False

    @property
    def end(self) -> int:
        return self.start + self.width

    @property
    def is_constant(self) -> bool:
        return self.constant is not None


def numeric(name: str, start: int, width: int, **kwargs) -> FieldSpec:
    return FieldSpec(name, start, width, FieldKind.NUMERIC, **kwargs)


def alpha(name: str, start: int, width: int, **kwargs) -> FieldSpec:
    return FieldSpec(name, start, width, FieldKind.ALPHANUMERIC, **kwargs)


def routing(name: str, start: int, width: int) -> FieldSpec:
    return FieldSpec(name, start, width, FieldKind.ROUTING)


def digits(name: str, start: int, width: int, blank_ok: bool = False) -> FieldSpec:
    return FieldSpec(name, start, width, FieldKind.DIGITS, blank_ok=blank_ok)


def constant(name: str, start: int, literal: str) -> FieldSpec:
    return FieldSpec(name, start, len(literal), FieldKind.ALPHANUMERIC, constant=literal)


def decode_field(raw: str, spec: FieldSpec) -> Optional[FieldValue]:
    """Decode the raw columns of ``spec``; constants decode to ``None``."""

    if len(raw) != spec.width:
        raise FieldError(spec.name, f"expected {spec.width} characters, got {len(raw)}")

    if spec.is_constant:
        if raw != spec.constant:
            raise FieldError(spec.name, f"expected literal {spec.constant!r}, got {raw!r}")
        return None

    value: FieldValue
    if spec.kind is FieldKind.NUMERIC:
        # str.isdigit() accepts non-ASCII digits such as superscripts
        if not (raw.isascii() and raw.isdigit()):
            raise FieldError(spec.name, f"non-digit characters in numeric field {raw!r}")
        value = int(raw)
    elif spec.kind is FieldKind.ROUTING:
        value = raw.lstrip(" ")
    elif spec.kind is FieldKind.DIGITS:
        value = _check_digits("" if raw == " " * spec.width else raw, spec)
    else:
        value = raw.rstrip(" ")

    if spec.allowed is not None and value not in spec.allowed:
        raise FieldError(spec.name, f"value {value!r} not in {sorted(spec.allowed)}")
    return value


def encode_field(value: Optional[FieldValue], spec: FieldSpec) -> str:
    """Render ``value`` into exactly ``spec.width`` characters."""

    if spec.is_constant:
        return spec.constant  # type: ignore[return-value]

    if spec.allowed is not None and value not in spec.allowed:
        raise FieldError(spec.name, f"value {value!r} not in {sorted(spec.allowed)}")

    if spec.kind is FieldKind.NUMERIC:
        if isinstance(value, bool) or not isinstance(value, int):
            raise FieldError(spec.name, f"expected an integer, got {value!r}")
        if value < 0:
            raise FieldError(spec.name, f"negative value {value}")
        text = str(value)
        if len(text) > spec.width:
            raise FieldError(spec.name, f"value {value} exceeds {spec.width} digits")
        return text.rjust(spec.width, "0")

    text = "" if value is None else value
    if not isinstance(text, str):
        raise FieldError(spec.name, f"expected text, got {value!r}")
    if spec.kind is FieldKind.DIGITS:
        return _check_digits(text, spec) or " " * spec.width
    if not text.isascii():
        raise FieldError(spec.name, f"non-ASCII characters in {text!r}")
    if len(text) > spec.width:
        raise FieldError(spec.name, f"{len(text)} characters exceed width {spec.width}")
    if spec.kind is FieldKind.ROUTING:
        return text.rjust(spec.width, " ")
    return text.ljust(spec.width, " ")


def _check_digits(text: str, spec: FieldSpec) -> str:
    """Exactly ``spec.width`` ASCII digits, or empty when the field may be blank."""

    if not text:
        if spec.blank_ok:
            return ""
        raise FieldError(spec.name, "required digits are blank")
    if len(text) != spec.width or not (text.isascii() and text.isdigit()):
        raise FieldError(spec.name, f"expected {spec.width} digits, got {text!r}")
    return text


__all__ = [
    "FieldKind",
    "FieldSpec",
    "FieldValue",
    "alpha",
    "constant",
    "decode_field",
    "digits",
    "encode_field",
    "numeric",
    "routing",
]
