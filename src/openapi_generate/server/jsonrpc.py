"""JSON-RPC 2.0 dispatch for the tool endpoint.

Each message is handled on its own; the dispatcher keeps no state between
requests beyond the configuration it was built with.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from openapi_generate.config import ServerConfig
from openapi_generate.envelope import ErrorCode, ToolResponse, error_response
from openapi_generate.generator.scaffold import LANGUAGES, PROTOCOL_VERSION, generate_server_scaffold
from openapi_generate.generator.tools import generate_tool_schemas
from openapi_generate.parser.openapi import openapi_parse

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

_PARSED_SPEC = {
    "type": "object",
    "description": "Parsed OpenAPI spec from openapi_parse tool",
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "openapi_parse",
        "description": (
            "Parse an OpenAPI spec from URL or JSON string. Returns structured "
            "representation of endpoints, parameters, schemas."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "spec_url_or_json": {
                    "type": "string",
                    "description": "URL to OpenAPI spec or raw JSON string of the spec",
                },
            },
            "required": ["spec_url_or_json"],
        },
    },
    {
        "name": "generate_tool_schemas",
        "description": "Generate tool definitions from a parsed OpenAPI spec",
        "inputSchema": {
            "type": "object",
            "properties": {"parsed_spec": _PARSED_SPEC},
            "required": ["parsed_spec"],
        },
    },
    {
        "name": "generate_server_scaffold",
        "description": "Generate a complete tool server scaffold for a parsed OpenAPI spec",
        "inputSchema": {
            "type": "object",
            "properties": {
                "parsed_spec": _PARSED_SPEC,
                "language": {
                    "type": "string",
                    "enum": list(LANGUAGES),
                    "description": "Target language for the generated server",
                },
                "options": {
                    "type": "object",
                    "description": "Optional scaffold generation options",
                    "properties": {
                        "server_name": {"type": "string", "description": "Name for the generated server"},
                        "server_version": {"type": "string", "description": "Version for the generated server"},
                        "author": {"type": "string", "description": "Author name"},
                        "include_tests": {"type": "boolean", "description": "Whether to include test files"},
                        "base_url": {"type": "string", "description": "Base URL for API calls"},
                    },
                },
            },
            "required": ["parsed_spec", "language"],
        },
    },
]

TOOL_NAMES = [tool["name"] for tool in TOOL_DEFINITIONS]


class InvalidParams(Exception):
    """tools/call arrived without a usable tool name."""


def rpc_result(msg_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


def rpc_error(msg_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


def tool_content(envelope: ToolResponse) -> dict[str, Any]:
    """Wrap an envelope the way tools/call results are returned."""
    text = json.dumps(envelope.to_dict(), indent=2)
    return {"content": [{"type": "text", "text": text}]}


class Dispatcher:
    """Routes JSON-RPC messages to protocol handlers and tools."""

    def __init__(self, config: ServerConfig):
        self.config = config
        self._methods: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }
        self._tools: dict[str, Callable[[dict[str, Any]], Awaitable[ToolResponse]]] = {
            "openapi_parse": self._openapi_parse,
            "generate_tool_schemas": self._generate_tool_schemas,
            "generate_server_scaffold": self._generate_server_scaffold,
        }

    async def handle_payload(self, payload: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Answer a decoded request body; None means nothing to send back."""
        if isinstance(payload, list):
            if not payload:
                return rpc_error(None, INVALID_REQUEST, "Invalid Request")
            responses = []
            for message in payload:
                response = await self.handle_message(message)
                if response is not None:
                    responses.append(response)
            return responses or None
        return await self.handle_message(payload)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            return rpc_error(None, INVALID_REQUEST, "Invalid Request")

        method = message["method"]
        if "id" not in message:
            logger.debug("Notification %s", method)
            return None

        msg_id = message["id"]
        handler = self._methods.get(method)
        if handler is None:
            return rpc_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return rpc_error(msg_id, INVALID_PARAMS, "Invalid params")

        try:
            result = await handler(params)
        except InvalidParams as e:
            return rpc_error(msg_id, INVALID_PARAMS, f"Invalid params: {e}")
        return rpc_result(msg_id, result)

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self.config.name, "version": self.config.version},
        }

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": TOOL_DEFINITIONS}

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise InvalidParams("name is required")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParams("arguments must be an object")

        tool = self._tools.get(name)
        if tool is None:
            envelope = error_response(
                ErrorCode.INVALID_INPUT,
                f"Unknown tool: {name}",
                {"available_tools": TOOL_NAMES},
            )
        else:
            logger.info("Calling tool %s", name)
            envelope = await tool(arguments)
        return tool_content(envelope)

    async def _openapi_parse(self, args: dict[str, Any]) -> ToolResponse:
        source = args.get("spec_url_or_json")
        if not source:
            return error_response(ErrorCode.INVALID_INPUT, "spec_url_or_json is required")
        if not isinstance(source, (str, dict)):
            return error_response(
                ErrorCode.INVALID_INPUT, "spec_url_or_json must be a string or an object"
            )
        return await openapi_parse(source, timeout=self.config.fetch_timeout)

    async def _generate_tool_schemas(self, args: dict[str, Any]) -> ToolResponse:
        parsed_spec = args.get("parsed_spec")
        if not parsed_spec:
            return error_response(ErrorCode.INVALID_INPUT, "parsed_spec is required")
        return generate_tool_schemas(parsed_spec)

    async def _generate_server_scaffold(self, args: dict[str, Any]) -> ToolResponse:
        parsed_spec = args.get("parsed_spec")
        if not parsed_spec:
            return error_response(ErrorCode.INVALID_INPUT, "parsed_spec is required")
        return generate_server_scaffold(parsed_spec, args.get("language"), args.get("options"))
