"""
camunda8_sdk.tier1_runtime.schema
───────────────────────────────────
Field metadata registry. A Schema is a named, statically declared mapping of
wire field name → FieldDirective. The lossless codec takes a Schema as an
explicit argument and asks it how each field's numbers should be decoded.

    PROCESS_VARS = Schema("ProcessVars", {
        "orderId": INT64_STRING,
        "amounts": BIGINT_ARRAY,
        "customer": nested(CUSTOMER),
    })

Schemas compare and hash by identity: two schemas declaring the same fields
are still distinct shapes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class Directive(str, Enum):
    PLAIN_NUMBER = "plain_number"
    INT64_STRING = "int64_string"
    INT64_STRING_ARRAY = "int64_string_array"
    BIGINT = "bigint"
    BIGINT_ARRAY = "bigint_array"
    NESTED = "nested"


@dataclass(frozen=True)
class FieldDirective:
    """How one field's numeric (or nested object) content is decoded."""

    kind: Directive
    child: "Schema | None" = None

    def __post_init__(self) -> None:
        if self.kind is Directive.NESTED and self.child is None:
            raise ValueError("a nested directive needs a child schema")
        if self.kind is not Directive.NESTED and self.child is not None:
            raise ValueError(f"{self.kind.value} directive cannot carry a child schema")

    @property
    def is_array(self) -> bool:
        return self.kind in (Directive.INT64_STRING_ARRAY, Directive.BIGINT_ARRAY)

    @property
    def is_int64(self) -> bool:
        return self.kind in (
            Directive.INT64_STRING, Directive.INT64_STRING_ARRAY,
            Directive.BIGINT, Directive.BIGINT_ARRAY,
        )

    def __repr__(self) -> str:
        if self.child is not None:
            return f"nested({self.child.name})"
        return self.kind.name


PLAIN_NUMBER = FieldDirective(Directive.PLAIN_NUMBER)
INT64_STRING = FieldDirective(Directive.INT64_STRING)
INT64_STRING_ARRAY = FieldDirective(Directive.INT64_STRING_ARRAY)
BIGINT = FieldDirective(Directive.BIGINT)
BIGINT_ARRAY = FieldDirective(Directive.BIGINT_ARRAY)


def nested(child: "Schema") -> FieldDirective:
    """Decode the field (or each element of it) with *child*."""
    return FieldDirective(Directive.NESTED, child)


class Schema:
    """Named shape descriptor: field name → directive."""

    __slots__ = ("name", "_fields", "base")

    def __init__(
        self,
        name: str,
        fields: Mapping[str, FieldDirective] | None = None,
        base: "Schema | None" = None,
    ) -> None:
        merged: dict[str, FieldDirective] = dict(base._fields) if base else {}
        for key, directive in (fields or {}).items():
            if not isinstance(directive, FieldDirective):
                raise TypeError(
                    f"{name}.{key}: expected a FieldDirective, got {type(directive).__name__}"
                )
            merged[key] = directive
        self.name = name
        self.base = base
        self._fields = MappingProxyType(merged)

    @property
    def fields(self) -> Mapping[str, FieldDirective]:
        return self._fields

    def directive_for(self, key: str) -> FieldDirective:
        return self._fields.get(key, PLAIN_NUMBER)

    def extend(self, name: str, fields: Mapping[str, FieldDirective]) -> "Schema":
        """Compose a new schema over this one; *fields* override base fields."""
        return Schema(name, fields, base=self)

    def is_subschema_of(self, other: "Schema") -> bool:
        schema: Schema | None = self
        while schema is not None:
            if schema is other:
                return True
            schema = schema.base
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, {dict(self._fields)!r})"


# The empty shape: no directives, every number must be natively safe.
OPAQUE = Schema("Opaque")


class LosslessDto(dict):
    """
    A decoded JSON object that remembers the Schema it was parsed with, so
    lossless_stringify can write int64 fields back as bare JSON integers.
    Fields are readable as keys or attributes. Attribute access only reaches
    fields that do not share a name with a dict method or with ``schema``;
    read fields such as ``items``, ``keys``, ``values``, ``get``, ``copy``,
    ``pop``, ``update`` or ``schema`` by subscript (``dto["items"]``).
    """

    __slots__ = ("_schema",)

    def __init__(self, data: Mapping[str, Any] | None = None, schema: Schema | None = None) -> None:
        super().__init__(data or {})
        self._schema = schema or OPAQUE

    @property
    def schema(self) -> Schema:
        return self._schema

    def __getattr__(self, item: str) -> Any:
        if item.startswith("_"):
            raise AttributeError(item)
        try:
            return self[item]
        except KeyError:
            raise AttributeError(
                f"{self._schema.name} has no field {item!r}"
            ) from None

    def __reduce__(self) -> tuple:
        return (self.__class__, (dict(self), self._schema))


__all__ = [
    "Directive", "FieldDirective", "Schema", "LosslessDto", "OPAQUE", "nested",
    "PLAIN_NUMBER", "INT64_STRING", "INT64_STRING_ARRAY", "BIGINT", "BIGINT_ARRAY",
]
