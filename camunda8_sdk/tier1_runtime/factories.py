"""
camunda8_sdk.tier1_runtime.factories
──────────────────────────────────────
Memoized schema composition. A job (or a create-process-instance response)
has a fixed envelope, but its ``variables`` and ``customHeaders`` are shaped
by the application. A factory combines the envelope with the caller's shapes
into one Schema so the codec resolves directives inside user payloads too.

The cache is keyed by the identities of the shapes (Schema hashes by
identity), is never evicted, and returns the same Schema object for the same
shapes.
"""
from __future__ import annotations

from typing import Sequence

from camunda8_sdk.tier1_runtime.schema import OPAQUE, Schema, nested


class SpecialisedSchemaFactory:
    """Builds ``envelope`` + ``nested(shape)`` schemas for the given fields."""

    def __init__(self, envelope: Schema, specialised_fields: Sequence[str]) -> None:
        self.envelope = envelope
        self.specialised_fields = tuple(specialised_fields)
        self._cache: dict[tuple[Schema, ...], Schema] = {}

    def get_or_create(self, *shapes: Schema | None) -> Schema:
        if len(shapes) > len(self.specialised_fields):
            raise TypeError(
                f"{self.envelope.name} takes at most {len(self.specialised_fields)} "
                f"shapes ({', '.join(self.specialised_fields)}), got {len(shapes)}"
            )
        key = tuple(shape or OPAQUE for shape in shapes)
        key += (OPAQUE,) * (len(self.specialised_fields) - len(key))

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        name = f"{self.envelope.name}[{', '.join(s.name for s in key)}]"
        schema = self.envelope.extend(
            name,
            {field: nested(shape) for field, shape in zip(self.specialised_fields, key)},
        )
        self._cache[key] = schema
        return schema

    def __len__(self) -> int:
        return len(self._cache)


__all__ = ["SpecialisedSchemaFactory"]
