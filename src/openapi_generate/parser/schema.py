"""Recursive conversion of raw OpenAPI schema nodes into ParsedSchema."""

import logging
from collections.abc import Mapping
from typing import Any, Callable

from .base import ParsedSchema

logger = logging.getLogger(__name__)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _anything(value: Any) -> bool:
    return True


# OpenAPI key -> (ParsedSchema field, accepted value). A value of the wrong
# shape (e.g. Swagger 2 style ``required: true`` on a property) is dropped.
_COPIED_KEYS: dict[str, tuple[str, Callable[[Any], bool]]] = {
    "format": ("format", is_string),
    "description": ("description", is_string),
    "title": ("title", is_string),
    "enum": ("enum", lambda value: isinstance(value, list)),
    "default": ("default", _anything),
    "example": ("example", _anything),
    "nullable": ("nullable", lambda value: isinstance(value, bool)),
    "minimum": ("minimum", is_number),
    "maximum": ("maximum", is_number),
    "minLength": ("min_length", is_count),
    "maxLength": ("max_length", is_count),
    "pattern": ("pattern", is_string),
    "required": ("required", is_string_list),
}

_COMPOSITION_KEYS: dict[str, str] = {
    "oneOf": "one_of",
    "anyOf": "any_of",
    "allOf": "all_of",
}


def is_ref(node: Any) -> bool:
    return isinstance(node, Mapping) and "$ref" in node


def parse_schema(node: Any, _active: frozenset[int] = frozenset()) -> ParsedSchema:
    """Convert a schema object (or a reference object) into a ParsedSchema.

    References are kept as ``$ref`` leaves. ``_active`` holds the ids of the
    nodes currently being converted so that a document whose references were
    already inlined into a cyclic structure still terminates.
    """
    if not isinstance(node, Mapping):
        return ParsedSchema()

    if is_ref(node):
        return ParsedSchema(ref=str(node["$ref"]))

    if id(node) in _active:
        logger.debug("Cyclic schema structure; substituting a plain object")
        return ParsedSchema(type="object")
    active = _active | {id(node)}

    fields: dict[str, Any] = {}

    if "type" in node:
        schema_type = node["type"]
        # 3.1 type unions: only the first member is kept.
        if isinstance(schema_type, list):
            schema_type = schema_type[0] if schema_type else None
        if is_string(schema_type):
            fields["type"] = schema_type

    for key, (field, accepts) in _COPIED_KEYS.items():
        if key not in node:
            continue
        if accepts(node[key]):
            fields[field] = node[key]
        else:
            logger.debug("Dropping schema keyword %s with unexpected value %r", key, node[key])

    properties = node.get("properties")
    if isinstance(properties, Mapping):
        fields["properties"] = {
            str(name): parse_schema(prop, active) for name, prop in properties.items()
        }

    if "items" in node and node["items"] is not None:
        fields["items"] = parse_schema(node["items"], active)

    for key, field in _COMPOSITION_KEYS.items():
        members = node.get(key)
        if isinstance(members, list):
            fields[field] = [parse_schema(member, active) for member in members]

    if "additionalProperties" in node:
        extra = node["additionalProperties"]
        if isinstance(extra, bool):
            fields["additional_properties"] = extra
        else:
            fields["additional_properties"] = parse_schema(extra, active)

    return ParsedSchema(**fields)
