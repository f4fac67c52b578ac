"""
camunda8_sdk.tier1_runtime.lossless_json
──────────────────────────────────────────
Lossless JSON codec. The gateway sends entity keys as 64-bit integers, which
most JSON consumers cannot hold exactly. Every numeric literal is first read
into a LosslessNumber (the exact literal text); the Schema passed by the
caller then decides per field whether it becomes a str, an int, a nested
object, or a native number. Unannotated numbers that a double cannot hold
exactly raise UnsafeNumberError instead of being silently corrupted.

Serialization is the mirror image: int64/bigint fields are written back as
bare JSON integers, never as quoted strings.

Usage::

    job = lossless_parse(body, JOB_SCHEMA)
    jobs = lossless_parse(body, JOB_SCHEMA, array_key="jobs")
    text = lossless_stringify(job)
"""
from __future__ import annotations

import dataclasses
import datetime as _dt
import json
import math
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from camunda8_sdk.tier0_core.errors import (
    LosslessJsonError,
    ShapeMismatchError,
    TypeMismatchError,
    UnsafeNumberError,
    UnsupportedTypeError,
)
from camunda8_sdk.tier1_runtime.schema import (
    OPAQUE,
    Directive,
    FieldDirective,
    LosslessDto,
    Schema,
)

MAX_SAFE_INTEGER = 2**53 - 1

_INTEGER_TEXT = re.compile(r"^-?(0|[1-9][0-9]*)$")


# ── LosslessNumber ─────────────────────────────────────────────────────────────

class LosslessNumber:
    """Exact text of a JSON numeric literal."""

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    @property
    def is_integer(self) -> bool:
        return bool(_INTEGER_TEXT.match(self.value))

    def to_int(self) -> int:
        """Exact big-integer value. Raises ValueError for non-integer text."""
        if not self.is_integer:
            raise ValueError(f"{self.value} is not an integer literal")
        return int(self.value)

    def to_decimal(self) -> Decimal:
        return Decimal(self.value)

    def unsafe_reason(self) -> str | None:
        """Why a native number would lose this value, or None when it is safe."""
        if self.is_integer:
            return None if abs(int(self.value)) <= MAX_SAFE_INTEGER else "truncate_integer"
        as_float = float(self.value)
        if math.isinf(as_float):
            return "overflow"
        digits = _significant_digits(self.value)
        if as_float == 0.0:
            return "underflow" if digits else None
        if digits != _significant_digits(repr(as_float)):
            return "truncate_float"
        return None

    def to_native(self, path: str = "$") -> int | float:
        """Convert to int/float, or raise UnsafeNumberError naming *path*."""
        reason = self.unsafe_reason()
        if reason is not None:
            raise UnsafeNumberError(path=path, value=self.value, reason=reason)
        return int(self.value) if self.is_integer else float(self.value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"LosslessNumber({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LosslessNumber):
            return self.to_decimal() == other.to_decimal()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_decimal())


def _significant_digits(text: str) -> str:
    mantissa = text.lower().lstrip("+-").split("e")[0]
    return mantissa.replace(".", "").lstrip("0").rstrip("0")


def _reject_constant(name: str) -> Any:
    raise LosslessJsonError(
        user_message=f"Invalid JSON: {name} is not a valid JSON number",
        literal=name,
    )


def _json_type(value: Any) -> str:
    if isinstance(value, LosslessNumber):
        return "number"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


# ── Parse ──────────────────────────────────────────────────────────────────────

def lossless_parse(
    text: str | bytes,
    schema: Schema | None = None,
    array_key: str | None = None,
) -> Any:
    """
    Parse *text* without precision loss and resolve numbers per *schema*.

    With *array_key*, the document must be an object holding that key; the
    value under it is decoded (typically an array of *schema* objects).
    Returns a LosslessDto for objects parsed with a schema, a list for
    arrays, or a plain value.
    """
    try:
        document = json.loads(
            text,
            parse_int=LosslessNumber,
            parse_float=LosslessNumber,
            parse_constant=_reject_constant,
        )
    except json.JSONDecodeError as exc:
        raise LosslessJsonError(
            user_message=f"Invalid JSON: {exc.msg} at position {exc.pos}",
        ) from exc

    if array_key:
        if not isinstance(document, dict) or document.get(array_key) is None:
            raise ShapeMismatchError(
                user_message=(
                    f"Attempted to parse key {array_key} on an object that does "
                    f"not have this key: {_stringify_raw(document)}"
                ),
                array_key=array_key,
            )
        return _decode_root(document[array_key], schema, array_key)
    return _decode_root(document, schema, "")


def _decode_root(value: Any, schema: Schema | None, path: str) -> Any:
    if isinstance(value, list):
        shape = schema or OPAQUE
        return [
            _decode_object(item, shape, f"{path}[{i}]")
            if isinstance(item, dict)
            else _coerce(item, f"{path}[{i}]")
            for i, item in enumerate(value)
        ]
    if isinstance(value, dict) and schema is not None:
        return _decode_object(value, schema, path)
    return _coerce(value, path)


def _decode_object(obj: dict, schema: Schema, path: str) -> LosslessDto:
    result = LosslessDto(schema=schema)
    for key, value in obj.items():
        field_path = _join(path, key)
        directive = schema.directive_for(key)
        if directive.kind is Directive.PLAIN_NUMBER:
            result[key] = _coerce(value, field_path)
        else:
            result[key] = _apply_directive(value, directive, field_path)
    return result


def _apply_directive(value: Any, directive: FieldDirective, path: str) -> Any:
    kind = directive.kind
    if value is None:
        return None

    if kind is Directive.NESTED:
        child = directive.child
        if isinstance(value, dict):
            return _decode_object(value, child, path)
        if isinstance(value, list):
            items = []
            for i, item in enumerate(value):
                if item is not None and not isinstance(item, dict):
                    raise TypeMismatchError(
                        user_message=(
                            f'Unexpected type: received JSON {_json_type(item)} value for '
                            f'nested {child.name} field "{path}[{i}]", expected object'
                        ),
                        path=f"{path}[{i}]",
                    )
                items.append(None if item is None else _decode_object(item, child, f"{path}[{i}]"))
            return items
        raise TypeMismatchError(
            user_message=(
                f'Unexpected type: received JSON {_json_type(value)} value for nested '
                f'{child.name} field "{path}", expected object or array'
            ),
            path=path,
        )

    if directive.is_array:
        label = "Int64StringArray" if kind is Directive.INT64_STRING_ARRAY else "BigIntValueArray"
        if not isinstance(value, list):
            raise TypeMismatchError(
                user_message=(
                    f'Unexpected type: received JSON {_json_type(value)} value for '
                    f'{label} field "{path}", expected array'
                ),
                path=path,
            )
        as_bigint = kind is Directive.BIGINT_ARRAY
        return [
            _int64_scalar(item, as_bigint, f"{path}[{i}]", label)
            for i, item in enumerate(value)
        ]

    as_bigint = kind is Directive.BIGINT
    label = "BigIntValue" if as_bigint else "Int64String"
    if isinstance(value, list):
        raise TypeMismatchError(
            user_message=(
                f'Unexpected type: received JSON array value for {label} field "{path}", '
                f"expected number. If you are expecting an array, use the {label}Array directive."
            ),
            path=path,
        )
    return _int64_scalar(value, as_bigint, path, label)


def _int64_scalar(value: Any, as_bigint: bool, path: str, label: str) -> str | int:
    if not isinstance(value, LosslessNumber):
        raise TypeMismatchError(
            user_message=(
                f'Unexpected type: received JSON {_json_type(value)} value for '
                f'{label} field "{path}", expected number'
            ),
            path=path,
        )
    if not value.is_integer:
        raise TypeMismatchError(
            user_message=(
                f'Unexpected value: {label} field "{path}" holds non-integer number '
                f"{value.value}, expected an integer"
            ),
            path=path,
        )
    return int(value.value) if as_bigint else value.value


def _coerce(value: Any, path: str) -> Any:
    """Turn every remaining LosslessNumber into a native number, or raise."""
    if isinstance(value, LosslessNumber):
        return value.to_native(path or "$")
    if isinstance(value, dict):
        return {k: _coerce(v, _join(path, k)) for k, v in value.items()}
    if isinstance(value, list):
        return [_coerce(item, f"{path}[{i}]") for i, item in enumerate(value)]
    return value


# ── Serialize ──────────────────────────────────────────────────────────────────

def lossless_stringify(value: Any, schema: Schema | None = None) -> str:
    """
    Serialize *value* to compact JSON. Fields directed as int64 strings or
    bigints (by the value's own schema, or *schema*) are written as bare
    JSON integers.
    """
    return _encode(value, schema, "$")


def _stringify_raw(value: Any) -> str:
    return _encode(value, None, "$")


def _encode(value: Any, schema: Schema | None, path: str) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, LosslessNumber):
        return value.value
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedTypeError(
                user_message=f"Non-finite number {value!r} at '{path}' cannot be written as JSON",
                path=path,
            )
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise UnsupportedTypeError(
                user_message=f"Non-finite number {value} at '{path}' cannot be written as JSON",
                path=path,
            )
        return str(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (_dt.date, _dt.time)):
        raise UnsupportedTypeError(
            user_message=(
                f"Date type not supported in variables ('{path}'). Please serialize "
                "with .isoformat() before passing to Camunda"
            ),
            path=path,
        )
    if isinstance(value, (set, frozenset)):
        raise UnsupportedTypeError(
            user_message=(
                f"Set type not supported in variables ('{path}'). Please serialize "
                "with list() before passing to Camunda"
            ),
            path=path,
        )
    if isinstance(value, LosslessDto):
        return _encode_object(value, value.schema, path)
    if isinstance(value, dict):
        return _encode_object(value, schema or OPAQUE, path)
    if isinstance(value, Mapping):
        raise UnsupportedTypeError(
            user_message=(
                f"Map type {type(value).__name__} not supported in variables ('{path}'). "
                "Please serialize with dict() before passing to Camunda"
            ),
            path=path,
        )
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(
            _encode(item, schema, f"{path}[{i}]") for i, item in enumerate(value)
        ) + "]"
    if isinstance(value, BaseModel):
        return _encode_object(value.model_dump(by_alias=True), schema or OPAQUE, path)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return _encode_object(data, schema or OPAQUE, path)
    raise UnsupportedTypeError(
        user_message=f"Type {type(value).__name__} at '{path}' cannot be written as JSON",
        path=path,
    )


def _encode_object(obj: Mapping[str, Any], schema: Schema, path: str) -> str:
    members = []
    for key, item in obj.items():
        if not isinstance(key, str):
            raise UnsupportedTypeError(
                user_message=f"Object key {key!r} at '{path}' must be a string",
                path=path,
            )
        field_path = _join(path, key)
        directive = schema.directive_for(key)
        if directive.kind is Directive.NESTED:
            encoded = _encode(item, directive.child, field_path)
        elif directive.is_array and item is not None:
            if not isinstance(item, (list, tuple)):
                raise TypeMismatchError(
                    user_message=f"Field '{field_path}' is directed as an array, got {type(item).__name__}",
                    path=field_path,
                )
            encoded = "[" + ",".join(
                _encode_int64(el, f"{field_path}[{i}]") for i, el in enumerate(item)
            ) + "]"
        elif directive.is_int64:
            encoded = _encode_int64(item, field_path)
        else:
            encoded = _encode(item, None, field_path)
        members.append(f"{json.dumps(key, ensure_ascii=False)}:{encoded}")
    return "{" + ",".join(members) + "}"


def _encode_int64(value: Any, path: str) -> str:
    if value is None:
        return "null"
    if isinstance(value, LosslessNumber) and value.is_integer:
        return value.value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and _INTEGER_TEXT.match(value):
        return value
    raise TypeMismatchError(
        user_message=f"Field '{path}' is directed as an int64 but holds {value!r}",
        path=path,
    )


__all__ = [
    "LosslessNumber", "MAX_SAFE_INTEGER", "lossless_parse", "lossless_stringify",
]
