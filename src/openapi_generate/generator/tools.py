"""Convert parsed OpenAPI operations into tool-call schemas.

Handles:
- Parameters as top-level input properties
- Request body flattening (with ``body_`` prefix on name collisions)
- Lazy ``#/components/schemas/`` $ref resolution with cycle breaking
- allOf merging; oneOf/anyOf kept element-wise
- Tool naming, descriptions and per-tag counts
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from openapi_generate.envelope import ErrorCode, ToolResponse, error_response, success_response
from openapi_generate.parser.base import (
    MediaType,
    ParsedDocument,
    ParsedOperation,
    ParsedPath,
    ParsedSchema,
)

logger = logging.getLogger(__name__)

COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"

# Request body media types, most preferred first.
PREFERRED_BODY_TYPES = ("application/json", "application/x-www-form-urlencoded")

MAX_TOOL_NAME_LENGTH = 64

UNTAGGED = "untagged"


class InputSchema(BaseModel):
    type: Literal["object"] = "object"
    properties: dict[str, dict[str, Any]]
    required: list[str]


class ToolSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: InputSchema = Field(alias="inputSchema")


class ToolSummary(BaseModel):
    total_tools: int
    by_tag: dict[str, int]


class ToolSchemaSet(BaseModel):
    tools: list[ToolSchema]
    summary: ToolSummary


@dataclass(frozen=True)
class SchemaContext:
    """Read-only lookup table threaded through every conversion call."""

    schemas: Mapping[str, ParsedSchema] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "schemas", MappingProxyType(dict(self.schemas)))

    def lookup(self, ref: str) -> tuple[str, ParsedSchema] | None:
        if not ref.startswith(COMPONENT_SCHEMA_PREFIX):
            return None
        name = ref[len(COMPONENT_SCHEMA_PREFIX):]
        schema = self.schemas.get(name)
        return (name, schema) if schema is not None else None


_paths_adapter = TypeAdapter(list[ParsedPath])
_schemas_adapter = TypeAdapter(dict[str, ParsedSchema])


def generate_tool_schemas(parsed: ParsedDocument | Mapping[str, Any] | None) -> ToolResponse:
    """Generate one tool schema per operation, plus a summary."""
    try:
        if isinstance(parsed, ParsedDocument):
            paths, schemas = parsed.paths, parsed.schemas
        else:
            if not isinstance(parsed, Mapping):
                return error_response(ErrorCode.INVALID_INPUT, "Invalid parsed spec provided")
            if not isinstance(parsed.get("paths"), list):
                return error_response(ErrorCode.INVALID_INPUT, "Parsed spec must contain paths array")
            try:
                paths = _paths_adapter.validate_python(parsed["paths"])
                schemas = _schemas_adapter.validate_python(parsed.get("schemas") or {})
            except ValidationError as e:
                return error_response(
                    ErrorCode.INVALID_INPUT,
                    "Parsed spec does not match the expected structure",
                    {"errors": [err["msg"] for err in e.errors()]},
                )

        ctx = SchemaContext(schemas)
        tools: list[ToolSchema] = []
        by_tag: dict[str, int] = {}

        for path in paths:
            for operation in path.operations:
                tools.append(operation_to_tool(operation, ctx))
                for tag in operation.tags or [UNTAGGED]:
                    by_tag[tag] = by_tag.get(tag, 0) + 1

        return success_response(
            ToolSchemaSet(
                tools=tools,
                summary=ToolSummary(total_tools=len(tools), by_tag=by_tag),
            )
        )
    except Exception as e:
        logger.exception("Failed to generate tool schemas")
        return error_response(
            ErrorCode.INTERNAL_ERROR,
            "Failed to generate tool schemas",
            {"error": str(e)},
        )


def operation_to_tool(operation: ParsedOperation, ctx: SchemaContext) -> ToolSchema:
    """Build the tool schema for a single operation."""
    properties: dict[str, dict[str, Any]] = {}
    required: list[str] = []

    for param in operation.parameters:
        prop = convert_schema_to_json_schema(param.schema_, ctx)
        if param.description:
            prop["description"] = param.description
        properties[param.name] = prop
        if param.required and param.name not in required:
            required.append(param.name)

    body = operation.request_body
    media = select_body_media(body.content) if body is not None else None
    if media is not None:
        body_schema = convert_schema_to_json_schema(media.schema_, ctx)

        if is_flattenable(body_schema):
            param_names = set(properties)
            for name, value in body_schema["properties"].items():
                properties[body_key(name, param_names)] = value

            if body.required:
                for name in body_schema.get("required") or []:
                    key = body_key(name, param_names)
                    if key not in required:
                        required.append(key)
        else:
            if body.description:
                body_schema["description"] = body.description
            properties["body"] = body_schema
            if body.required and "body" not in required:
                required.append("body")

    return ToolSchema(
        name=sanitize_tool_name(operation.operation_id),
        description=build_tool_description(operation),
        input_schema=InputSchema(type="object", properties=properties, required=required),
    )


def is_flattenable(body_schema: Mapping[str, Any]) -> bool:
    """An object body with declared properties is spread into the tool input."""
    return body_schema.get("type") == "object" and bool(body_schema.get("properties"))


def body_key(name: str, param_names: set[str]) -> str:
    # Parameters keep the plain name; a clashing body field gets a prefix.
    return f"body_{name}" if name in param_names else name


def select_body_media(content: Mapping[str, MediaType]) -> MediaType | None:
    """Pick the request body media entry: JSON, then form, then the first one."""
    for media_type in PREFERRED_BODY_TYPES:
        if media_type in content:
            return content[media_type]
    return next(iter(content.values()), None)


# ParsedSchema field -> JSON Schema key, copied when set.
_COPIED_FIELDS: dict[str, str] = {
    "type": "type",
    "format": "format",
    "description": "description",
    "title": "title",
    "enum": "enum",
    "default": "default",
    "example": "example",
    "nullable": "nullable",
    "minimum": "minimum",
    "maximum": "maximum",
    "min_length": "minLength",
    "max_length": "maxLength",
    "pattern": "pattern",
    "required": "required",
}


def convert_schema_to_json_schema(
    schema: ParsedSchema,
    ctx: SchemaContext,
    _stack: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    """Produce a JSON Schema node, inlining component references.

    ``_stack`` holds the component names being expanded on the current
    branch; a reference back into it becomes a plain object.
    """
    if schema.ref is not None:
        found = ctx.lookup(schema.ref)
        if found is None:
            logger.debug("Unresolved reference %s", schema.ref)
            return {"type": "object"}
        name, target = found
        if name in _stack:
            logger.debug("Breaking reference cycle at %s", name)
            return {"type": "object"}
        return convert_schema_to_json_schema(target, ctx, _stack | {name})

    if schema.all_of is not None:
        merged: dict[str, Any] = {"type": "object", "properties": {}, "required": []}
        for member in schema.all_of:
            converted = convert_schema_to_json_schema(member, ctx, _stack)
            if "properties" in converted:
                merged["properties"].update(converted["properties"])
            if "required" in converted:
                merged["required"].extend(converted["required"])
        return merged

    set_fields = schema.model_fields_set
    node: dict[str, Any] = {}
    for attr, key in _COPIED_FIELDS.items():
        if attr in set_fields:
            value = getattr(schema, attr)
            node[key] = list(value) if isinstance(value, list) else value

    if schema.properties is not None:
        node["properties"] = {
            name: convert_schema_to_json_schema(prop, ctx, _stack)
            for name, prop in schema.properties.items()
        }

    if schema.items is not None:
        node["items"] = convert_schema_to_json_schema(schema.items, ctx, _stack)

    if schema.one_of is not None:
        node["oneOf"] = [convert_schema_to_json_schema(s, ctx, _stack) for s in schema.one_of]

    if schema.any_of is not None:
        node["anyOf"] = [convert_schema_to_json_schema(s, ctx, _stack) for s in schema.any_of]

    extra = schema.additional_properties
    if isinstance(extra, bool):
        node["additionalProperties"] = extra
    elif extra is not None:
        node["additionalProperties"] = convert_schema_to_json_schema(extra, ctx, _stack)

    return node


def build_tool_description(operation: ParsedOperation) -> str:
    parts = []
    if operation.summary:
        parts.append(operation.summary)
    if operation.description and operation.description != operation.summary:
        parts.append(operation.description)
    if operation.deprecated:
        parts.append("[DEPRECATED]")
    if operation.method:
        parts.append(f"[{operation.method.upper()}]")
    return " ".join(parts).strip() or f"Execute {operation.operation_id}"


def sanitize_tool_name(name: str) -> str:
    """Restrict a name to ``[a-z0-9_-]``, at most 64 characters.

    Idempotent: the result sanitizes to itself.
    """
    name = re.sub(r"[^a-zA-Z0-9_-]", "_", name)
    name = re.sub(r"_+", "_", name)
    name = name.strip("_").lower()
    return name[:MAX_TOOL_NAME_LENGTH].strip("_")
