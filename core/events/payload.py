"""
Brickflow Events — Tagged Payloads
===================================
Every event type has exactly one frozen payload record.

Python field names are snake_case; the stored (wire) form uses
camelCase keys, e.g. ``quantity_tonnes`` → ``quantityTonnes``.
Money travels as a decimal string ("4375.00") so it survives JSON exactly.
A field may pin its wire key explicitly with ``wire_field("targetTPH")``.

Encoding is exhaustive in both directions: decoding rejects missing
required fields and unknown keys.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, Mapping, Tuple

from core.events.errors import PayloadFieldError

_WIRE_KEY = "wire"


def wire_field(name: str, *, default: Any = None, required: bool = False):
    """Payload field with an explicit wire key (optional unless ``required``)."""
    if required:
        return dataclasses.field(metadata={_WIRE_KEY: name})
    return dataclasses.field(default=default, metadata={_WIRE_KEY: name})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _wire_name(f: dataclasses.Field) -> str:
    return f.metadata.get(_WIRE_KEY) or _camel(f.name)


def encode_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    return value


@dataclasses.dataclass(frozen=True)
class EventPayload:
    """Base for tagged payload variants. Subclasses must be frozen dataclasses."""

    _wire_cache: ClassVar[Dict[type, Tuple[Tuple[str, str], ...]]] = {}

    @classmethod
    def _wire_fields(cls) -> Tuple[Tuple[str, str], ...]:
        cached = EventPayload._wire_cache.get(cls)
        if cached is None:
            cached = tuple(
                (f.name, _wire_name(f)) for f in dataclasses.fields(cls)
            )
            EventPayload._wire_cache[cls] = cached
        return cached

    def to_dict(self) -> dict:
        return {
            wire: encode_value(getattr(self, name))
            for name, wire in self._wire_fields()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        known = {wire for _, wire in cls._wire_fields()}
        unknown = sorted(set(data) - known)
        if unknown:
            raise PayloadFieldError(
                cls.__name__, f"unknown field(s) {', '.join(unknown)}"
            )

        kwargs = {}
        for f in dataclasses.fields(cls):
            wire = _wire_name(f)
            if wire in data:
                kwargs[f.name] = data[wire]
            elif (
                f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING
            ):
                raise PayloadFieldError(
                    cls.__name__, f"missing required field '{wire}'"
                )
        return cls(**kwargs)
