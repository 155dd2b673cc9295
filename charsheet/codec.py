"""
JSON codec for character documents.

Documents are written with camelCase keys and a ``schemaVersion`` marker so
that older payloads (local rows, remote blobs, export files) are migrated on
load instead of being silently misread. Missing optional fields fall back to
their defaults, so every decoded document is fully formed.
"""

import dataclasses
import functools
import json
from enum import Enum
from typing import Any, Union, get_args, get_origin, get_type_hints

from charsheet.errors import DocumentFormatError
from charsheet.models import (
    SPELL_SLOT_LEVELS,
    Ability,
    Alignment,
    CharacterDocument,
    FeatureCategory,
    LocalCharacter,
)

SCHEMA_KEY = "schemaVersion"

# 1: separate "features" and "traits" lists, no version marker
# 2: single tagged "features" list
SCHEMA_VERSION = 2


def _wire_name(f: dataclasses.Field) -> str:
    if "wire" in f.metadata:
        return f.metadata["wire"]
    head, *rest = f.name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@functools.lru_cache(maxsize=None)
def _field_specs(cls) -> tuple:
    hints = get_type_hints(cls)
    return tuple((f, _wire_name(f), hints[f.name]) for f in dataclasses.fields(cls))


def _encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return {wire: _encode(getattr(value, f.name)) for f, wire, _ in _field_specs(type(value))}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _encode(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    return value


def _decode(tp: Any, value: Any, path: str) -> Any:
    if dataclasses.is_dataclass(tp):
        return _decode_dataclass(tp, value, path)

    origin = get_origin(tp)
    if origin is Union:
        if value is None:
            return None
        inner = [arg for arg in get_args(tp) if arg is not type(None)]
        return _decode(inner[0], value, path)
    if origin is list:
        if not isinstance(value, list):
            raise DocumentFormatError(f"{path}: expected a list")
        (item_type,) = get_args(tp)
        return [_decode(item_type, v, f"{path}[{i}]") for i, v in enumerate(value)]
    if origin is dict:
        if not isinstance(value, dict):
            raise DocumentFormatError(f"{path}: expected an object")
        _, item_type = get_args(tp)
        return {str(k): _decode(item_type, v, f"{path}.{k}") for k, v in value.items()}

    if tp is bool:
        if not isinstance(value, bool):
            raise DocumentFormatError(f"{path}: expected a boolean")
        return value
    if tp in (int, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DocumentFormatError(f"{path}: expected a number")
        if tp is int and isinstance(value, float) and not value.is_integer():
            raise DocumentFormatError(f"{path}: expected a whole number")
        return tp(value)
    if tp is str:
        if not isinstance(value, str):
            raise DocumentFormatError(f"{path}: expected a string")
        return value
    return value


def _decode_dataclass(cls, data: Any, path: str):
    if not isinstance(data, dict):
        raise DocumentFormatError(f"{path}: expected an object")

    kwargs = {}
    for f, wire, tp in _field_specs(cls):
        if wire in data:
            kwargs[f.name] = _decode(tp, data[wire], f"{path}.{wire}")
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            raise DocumentFormatError(f"{path}: missing required field '{wire}'")
    return cls(**kwargs)


def migrate_document(payload: dict) -> dict:
    """Bring a raw document payload up to SCHEMA_VERSION."""
    version = payload.get(SCHEMA_KEY, 1)
    if not isinstance(version, int) or isinstance(version, bool):
        raise DocumentFormatError(f"Invalid schema version: {version!r}")
    if version > SCHEMA_VERSION:
        raise DocumentFormatError(
            f"Document schema version {version} is newer than supported ({SCHEMA_VERSION})"
        )

    if version < 2:
        payload = dict(payload)
        features = payload.get("features") or []
        traits = payload.pop("traits", None) or []
        if not isinstance(features, list) or not isinstance(traits, list):
            raise DocumentFormatError("features and traits must be lists")
        if not all(isinstance(f, dict) for f in features + traits):
            raise DocumentFormatError("feature entries must be objects")
        payload["features"] = (
            [{"category": FeatureCategory.FEATURE.value, **f} for f in features]
            + [{**t, "category": FeatureCategory.TRAIT.value} for t in traits]
        )
        payload[SCHEMA_KEY] = 2

    return payload


def document_to_dict(document: CharacterDocument) -> dict:
    payload = _encode(document)
    payload[SCHEMA_KEY] = SCHEMA_VERSION
    return payload


def _check_choices(document: CharacterDocument):
    """Reject values outside the fixed vocabularies the sheet understands."""
    ability = document.spellcasting.spellcasting_ability
    if ability and ability not in {a.value for a in Ability}:
        raise DocumentFormatError(
            f"data.spellcasting.spellcastingAbility: unknown ability {ability!r}"
        )
    alignment = document.basic_info.alignment
    if alignment and alignment not in {a.value for a in Alignment}:
        raise DocumentFormatError(f"data.basicInfo.alignment: unknown alignment {alignment!r}")
    for level in document.spellcasting.spell_slots:
        if level not in SPELL_SLOT_LEVELS:
            raise DocumentFormatError(f"data.spellcasting.spellSlots: invalid slot level {level!r}")
    for i, feature in enumerate(document.features):
        if feature.category not in {c.value for c in FeatureCategory}:
            raise DocumentFormatError(
                f"data.features[{i}].category: unknown category {feature.category!r}"
            )


def document_from_dict(payload: Any) -> CharacterDocument:
    if not isinstance(payload, dict):
        raise DocumentFormatError("Character data must be a JSON object")
    payload = migrate_document(payload)
    document = _decode_dataclass(CharacterDocument, payload, "data")
    _check_choices(document)
    return document


def dumps_document(document: CharacterDocument) -> str:
    """Serialize a document into the opaque string stored remotely."""
    return json.dumps(document_to_dict(document))


def loads_document(text: str) -> CharacterDocument:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise DocumentFormatError(f"Invalid character JSON: {e}") from e
    return document_from_dict(payload)


def local_character_to_dict(record: LocalCharacter) -> dict:
    """Build the export envelope for a locally stored character."""
    return {
        "id": record.local_id,
        "name": record.name,
        "data": document_to_dict(record.data),
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
    }
