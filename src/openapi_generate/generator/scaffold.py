"""Scaffold generator: emits a runnable tool server for a parsed document.

Two target languages are supported. Both scaffolds expose the generated
tool schemas over a JSON-RPC ``/mcp`` endpoint and forward each tool call
to the described HTTP operation.
"""

import json
import logging
import re
from collections.abc import Mapping
from pprint import pformat
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from openapi_generate.envelope import ErrorCode, ToolResponse, error_response, success_response
from openapi_generate.generator.tools import (
    SchemaContext,
    ToolSchema,
    body_key,
    convert_schema_to_json_schema,
    is_flattenable,
    operation_to_tool,
    select_body_media,
)
from openapi_generate.parser.base import ParsedDocument, ParsedOperation

logger = logging.getLogger(__name__)

LANGUAGES = ("typescript", "python")

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_SERVER_NAME = "openapi-mcp-server"
PROTOCOL_VERSION = "2024-11-05"


class ScaffoldOptions(BaseModel):
    server_name: str | None = None
    server_version: str | None = None
    author: str | None = None
    include_tests: bool = True
    base_url: str | None = None


class GeneratedFile(BaseModel):
    path: str
    content: str


class GeneratedScaffold(BaseModel):
    files: list[GeneratedFile]
    language: Literal["typescript", "python"]
    tool_count: int


def generate_server_scaffold(
    parsed: ParsedDocument | Mapping[str, Any] | None,
    language: str,
    options: ScaffoldOptions | Mapping[str, Any] | None = None,
) -> ToolResponse:
    """Generate scaffold files for ``language`` from a parsed document."""
    try:
        if language not in LANGUAGES:
            return error_response(
                ErrorCode.INVALID_INPUT,
                'language must be "typescript" or "python"',
                {"provided_language": language},
            )
        try:
            if not isinstance(parsed, ParsedDocument):
                parsed = ParsedDocument.model_validate(parsed)
            if not isinstance(options, ScaffoldOptions):
                options = ScaffoldOptions.model_validate(options or {})
        except ValidationError as e:
            return error_response(
                ErrorCode.INVALID_INPUT,
                "Invalid parsed spec or options provided",
                {"errors": [err["msg"] for err in e.errors()]},
            )

        gen = ScaffoldGenerator(parsed, options)
        files = gen.generate(language)
        return success_response(
            GeneratedScaffold(files=files, language=language, tool_count=len(gen.routes))
        )
    except Exception as e:
        logger.exception("Failed to generate server scaffold")
        return error_response(
            ErrorCode.INTERNAL_ERROR,
            "Failed to generate server scaffold",
            {"error": str(e)},
        )


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


class ScaffoldGenerator:
    """Renders scaffold files for one parsed document."""

    def __init__(self, parsed: ParsedDocument, options: ScaffoldOptions | None = None):
        self.parsed = parsed
        options = options or ScaffoldOptions()

        title_slug = slugify(parsed.info.title)
        self.server_name = options.server_name or (f"{title_slug}-mcp" if title_slug else DEFAULT_SERVER_NAME)
        self.server_version = options.server_version or parsed.info.version or "1.0.0"
        self.author = options.author or ""
        self.include_tests = options.include_tests
        if options.base_url:
            self.base_url = options.base_url
        elif parsed.servers:
            self.base_url = parsed.servers[0].url
        else:
            self.base_url = DEFAULT_BASE_URL

        self.routes = self._build_routes()

    # -- tool routing ---------------------------------------------------------

    def _build_routes(self) -> list[dict[str, Any]]:
        """Pair each generated tool with how its arguments map onto the request."""
        ctx = SchemaContext(self.parsed.schemas)
        routes = []
        for path in self.parsed.paths:
            for operation in path.operations:
                tool = operation_to_tool(operation, ctx)
                routes.append(self._route_for(path.path, operation, tool, ctx))
        return routes

    def _route_for(
        self,
        path: str,
        operation: ParsedOperation,
        tool: ToolSchema,
        ctx: SchemaContext,
    ) -> dict[str, Any]:
        params = {p.name: p.location for p in operation.parameters}
        body_mode = None
        body_fields: dict[str, str] = {}

        body = operation.request_body
        media = select_body_media(body.content) if body is not None else None
        if media is not None:
            body_schema = convert_schema_to_json_schema(media.schema_, ctx)
            if is_flattenable(body_schema):
                body_mode = "flatten"
                param_names = set(params)
                body_fields = {
                    body_key(name, param_names): name for name in body_schema["properties"]
                }
            else:
                body_mode = "whole"

        return {
            "tool": tool.model_dump(by_alias=True),
            "name": tool.name,
            "method": operation.method,
            "path": path,
            "params": params,
            "body": body_mode,
            "body_fields": body_fields,
        }

    def _tool_definitions(self) -> list[dict[str, Any]]:
        return [route["tool"] for route in self.routes]

    def _route_table(self, body_fields_key: str) -> dict[str, dict[str, Any]]:
        return {
            route["name"]: {
                "method": route["method"],
                "path": route["path"],
                "params": route["params"],
                "body": route["body"],
                body_fields_key: route["body_fields"],
            }
            for route in self.routes
        }

    # -- orchestration --------------------------------------------------------

    def generate(self, language: str) -> list[GeneratedFile]:
        if language == "typescript":
            files = self._typescript_files()
        elif language == "python":
            files = self._python_files()
        else:
            raise ValueError(f"Unsupported language: {language}")
        logger.info("Rendered %d %s scaffold files for %s", len(files), language, self.server_name)
        return [GeneratedFile(path=path, content=content) for path, content in files.items()]

    def _typescript_files(self) -> dict[str, str]:
        files = {
            "package.json": self._render_ts_package_json(),
            "tsconfig.json": self._render_ts_tsconfig(),
            "src/index.ts": TS_INDEX,
            "src/server.ts": TS_SERVER,
            "src/types.ts": TS_TYPES,
            "src/config.ts": self._render_ts_config(),
            "src/tools/index.ts": self._render_ts_tools(),
            "src/transport/http.ts": TS_HTTP_TRANSPORT,
            "README.md": self._render_readme("typescript"),
        }
        if self.include_tests:
            files["tests/unit/tools.test.ts"] = self._render_ts_tests()
        return files

    def _python_files(self) -> dict[str, str]:
        files = {
            "pyproject.toml": self._render_py_pyproject(),
            "src/__init__.py": "",
            "src/main.py": PY_MAIN,
            "src/server.py": PY_SERVER,
            "src/types.py": PY_TYPES,
            "src/config.py": self._render_py_config(),
            "src/tools/__init__.py": self._render_py_tools(),
            "README.md": self._render_readme("python"),
        }
        if self.include_tests:
            files["tests/test_tools.py"] = self._render_py_tests()
        return files

    # -- TypeScript -----------------------------------------------------------

    def _render_ts_package_json(self) -> str:
        package = {
            "name": self.server_name,
            "version": self.server_version,
            "description": f"Tool server for {self.parsed.info.title}",
            "type": "module",
            "main": "dist/index.js",
            "bin": {self.server_name: "dist/index.js"},
            "scripts": {
                "build": "tsc",
                "start": "node dist/index.js",
                "dev": "tsx src/index.ts",
                "test": "vitest run",
            },
            "author": self.author,
            "license": "MIT",
            "devDependencies": {
                "@types/node": "^20.11.0",
                "tsx": "^4.7.0",
                "typescript": "^5.3.0",
                "vitest": "^1.2.0",
            },
        }
        return json.dumps(package, indent=2) + "\n"

    def _render_ts_tsconfig(self) -> str:
        tsconfig = {
            "compilerOptions": {
                "target": "ES2022",
                "module": "NodeNext",
                "moduleResolution": "NodeNext",
                "outDir": "dist",
                "rootDir": "src",
                "strict": True,
                "esModuleInterop": True,
                "skipLibCheck": True,
                "declaration": True,
            },
            "include": ["src/**/*"],
            "exclude": ["node_modules", "dist", "tests"],
        }
        return json.dumps(tsconfig, indent=2) + "\n"

    def _render_ts_config(self) -> str:
        lines = [
            "export const config = {",
            f"  name: process.env.MCP_SERVER_NAME || {json.dumps(self.server_name)},",
            f"  version: process.env.MCP_SERVER_VERSION || {json.dumps(self.server_version)},",
            f"  baseUrl: process.env.API_BASE_URL || {json.dumps(self.base_url)},",
            "  apiToken: process.env.API_TOKEN || '',",
            "  host: process.env.HOST || '0.0.0.0',",
            "  port: parseInt(process.env.PORT || '8080', 10),",
            "};",
        ]
        return "\n".join(lines) + "\n"

    def _render_ts_tools(self) -> str:
        tools = json.dumps(self._tool_definitions(), indent=2)
        routes = json.dumps(self._route_table("bodyFields"), indent=2)
        return (
            TS_TOOLS_HEADER
            + f"export const tools: ToolDefinition[] = {tools};\n\n"
            + f"const routes: Record<string, ToolRoute> = {routes};\n"
            + TS_TOOLS_CALL
        )

    def _render_ts_tests(self) -> str:
        return TS_TESTS.replace("__TOOL_COUNT__", str(len(self.routes)))

    # -- Python ---------------------------------------------------------------

    def _render_py_pyproject(self) -> str:
        lines = [
            "[build-system]",
            'requires = ["hatchling"]',
            'build-backend = "hatchling.build"',
            "",
            "[project]",
            f"name = {json.dumps(self.server_name)}",
            f"version = {json.dumps(self.server_version)}",
            f"description = {json.dumps('Tool server for ' + self.parsed.info.title)}",
        ]
        if self.author:
            lines.append(f"authors = [{{ name = {json.dumps(self.author)} }}]")
        lines += [
            'requires-python = ">=3.10"',
            "dependencies = [",
            '    "httpx>=0.25",',
            '    "starlette>=0.35",',
            '    "uvicorn>=0.24",',
            "]",
            "",
            "[project.optional-dependencies]",
            'test = ["pytest>=7.0"]',
            "",
            "[tool.hatch.build.targets.wheel]",
            'packages = ["src"]',
            "",
            "[tool.pytest.ini_options]",
            'pythonpath = ["."]',
        ]
        return "\n".join(lines) + "\n"

    def _render_py_config(self) -> str:
        return (
            '"""Runtime settings, overridable through the environment."""\n'
            "\n"
            "import os\n"
            "\n"
            f'SERVER_NAME = os.getenv("MCP_SERVER_NAME", {self.server_name!r})\n'
            f'SERVER_VERSION = os.getenv("MCP_SERVER_VERSION", {self.server_version!r})\n'
            f'BASE_URL = os.getenv("API_BASE_URL", {self.base_url!r})\n'
            'API_TOKEN = os.getenv("API_TOKEN", "")\n'
            'HOST = os.getenv("HOST", "0.0.0.0")\n'
            'PORT = int(os.getenv("PORT", "8080"))\n'
            'REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))\n'
        )

    def _render_py_tools(self) -> str:
        tools = pformat(self._tool_definitions(), indent=1, width=100, sort_dicts=False)
        routes = pformat(self._route_table("body_fields"), indent=1, width=100, sort_dicts=False)
        return (
            PY_TOOLS_HEADER
            + f"TOOLS = {tools}\n\n"
            + f"ROUTES = {routes}\n"
            + PY_TOOLS_CALL
        )

    def _render_py_tests(self) -> str:
        return PY_TESTS.replace("__TOOL_COUNT__", str(len(self.routes)))

    # -- shared ---------------------------------------------------------------

    def _render_readme(self, language: str) -> str:
        info = self.parsed.info
        lines = [f"# {self.server_name}", ""]
        if info.description:
            lines += [info.description, ""]
        lines += [
            f"Generated from **{info.title}** (version {info.version}, "
            f"OpenAPI {self.parsed.openapi_version}).",
            "",
            "## Running",
            "",
            "```bash",
        ]
        if language == "typescript":
            lines += ["npm install", "npm run build", "npm start"]
        else:
            lines += ['pip install -e ".[test]"', "python -m src.main"]
        lines += [
            "```",
            "",
            f"Requests are forwarded to `{self.base_url}` (override with `API_BASE_URL`).",
            "",
            f"## Tools ({len(self.routes)})",
            "",
        ]
        for route in self.routes:
            lines.append(f"- `{route['name']}`: {route['method']} {route['path']}")
        return "\n".join(lines) + "\n"


TS_INDEX = """#!/usr/bin/env node
import { config } from './config.js';
import { startHttpTransport } from './transport/http.js';

startHttpTransport(config).catch((error) => {
  console.error('Fatal error:', error);
  process.exit(1);
});
"""

TS_TYPES = """export type ErrorCode =
  | 'INVALID_INPUT'
  | 'UPSTREAM_ERROR'
  | 'RATE_LIMITED'
  | 'TIMEOUT'
  | 'PARSE_ERROR'
  | 'INTERNAL_ERROR';

export interface ResponseMeta {
  source?: string;
  retrieved_at: string;
  warnings: string[];
}

export interface SuccessResponse<T> {
  ok: true;
  data: T;
  meta: ResponseMeta;
}

export interface ErrorResponse {
  ok: false;
  error: {
    code: ErrorCode;
    message: string;
    details: Record<string, unknown>;
  };
  meta: {
    retrieved_at: string;
  };
}

export type ToolResponse<T> = SuccessResponse<T> | ErrorResponse;

export interface ToolDefinition {
  name: string;
  description: string;
  inputSchema: {
    type: 'object';
    properties: Record<string, unknown>;
    required: string[];
  };
}

export interface ToolRoute {
  method: string;
  path: string;
  params: Record<string, 'query' | 'header' | 'path' | 'cookie'>;
  body: 'flatten' | 'whole' | null;
  bodyFields: Record<string, string>;
}

export function successResponse<T>(data: T, meta: Partial<ResponseMeta> = {}): SuccessResponse<T> {
  return {
    ok: true,
    data,
    meta: {
      retrieved_at: new Date().toISOString(),
      warnings: [],
      ...meta,
    },
  };
}

export function errorResponse(
  code: ErrorCode,
  message: string,
  details: Record<string, unknown> = {}
): ErrorResponse {
  return {
    ok: false,
    error: { code, message, details },
    meta: { retrieved_at: new Date().toISOString() },
  };
}
"""

TS_SERVER = """import { config } from './config.js';
import { tools, callTool } from './tools/index.js';

export interface JsonRpcRequest {
  jsonrpc: '2.0';
  id?: string | number | null;
  method: string;
  params?: Record<string, unknown>;
}

export interface JsonRpcResponse {
  jsonrpc: '2.0';
  id: string | number | null;
  result?: unknown;
  error?: { code: number; message: string; data?: unknown };
}

const PROTOCOL_VERSION = '2024-11-05';

export async function handleRpc(request: JsonRpcRequest): Promise<JsonRpcResponse | null> {
  if (request.id === undefined) {
    return null;
  }
  const id = request.id;

  switch (request.method) {
    case 'initialize':
      return {
        jsonrpc: '2.0',
        id,
        result: {
          protocolVersion: PROTOCOL_VERSION,
          capabilities: { tools: {} },
          serverInfo: { name: config.name, version: config.version },
        },
      };
    case 'ping':
      return { jsonrpc: '2.0', id, result: {} };
    case 'tools/list':
      return { jsonrpc: '2.0', id, result: { tools } };
    case 'tools/call': {
      const params = request.params ?? {};
      if (typeof params.name !== 'string') {
        return { jsonrpc: '2.0', id, error: { code: -32602, message: 'Invalid params: name is required' } };
      }
      const args = (params.arguments as Record<string, unknown> | undefined) ?? {};
      const result = await callTool(params.name, args);
      return {
        jsonrpc: '2.0',
        id,
        result: { content: [{ type: 'text', text: JSON.stringify(result, null, 2) }] },
      };
    }
    default:
      return { jsonrpc: '2.0', id, error: { code: -32601, message: `Method not found: ${request.method}` } };
  }
}
"""

TS_HTTP_TRANSPORT = """import { createServer, IncomingMessage, ServerResponse } from 'http';
import { handleRpc, type JsonRpcRequest } from '../server.js';

interface HttpConfig {
  name: string;
  version: string;
  host: string;
  port: number;
}

function sendJson(res: ServerResponse, status: number, body: unknown, headers: Record<string, string> = {}): void {
  res.writeHead(status, { 'Content-Type': 'application/json', ...headers });
  res.end(JSON.stringify(body));
}

async function readBody(req: IncomingMessage): Promise<string> {
  const chunks: Buffer[] = [];
  for await (const chunk of req) {
    chunks.push(chunk as Buffer);
  }
  return Buffer.concat(chunks).toString('utf-8');
}

async function handleMcp(req: IncomingMessage, res: ServerResponse): Promise<void> {
  if (req.method !== 'POST') {
    sendJson(res, 405, { error: 'Method not allowed' }, { Allow: 'POST' });
    return;
  }

  let payload: unknown;
  try {
    payload = JSON.parse(await readBody(req));
  } catch {
    sendJson(res, 200, { jsonrpc: '2.0', id: null, error: { code: -32700, message: 'Parse error' } });
    return;
  }

  if (Array.isArray(payload)) {
    const responses = [];
    for (const message of payload) {
      const response = await handleRpc(message as JsonRpcRequest);
      if (response) responses.push(response);
    }
    if (responses.length === 0) {
      res.writeHead(202);
      res.end();
      return;
    }
    sendJson(res, 200, responses);
    return;
  }

  const response = await handleRpc(payload as JsonRpcRequest);
  if (!response) {
    res.writeHead(202);
    res.end();
    return;
  }
  sendJson(res, 200, response);
}

export async function startHttpTransport(config: HttpConfig): Promise<void> {
  const httpServer = createServer(async (req, res) => {
    const url = new URL(req.url || '/', `http://${req.headers.host || 'localhost'}`);
    try {
      switch (url.pathname) {
        case '/mcp':
          await handleMcp(req, res);
          break;
        case '/health':
          sendJson(res, 200, {
            status: 'ok',
            server: config.name,
            version: config.version,
            timestamp: new Date().toISOString(),
          });
          break;
        case '/info':
          sendJson(res, 200, {
            name: config.name,
            version: config.version,
            transport: 'http',
            capabilities: { tools: true },
          });
          break;
        default:
          sendJson(res, 404, { error: 'Not found' });
      }
    } catch (error) {
      console.error('Error handling request:', error);
      if (!res.headersSent) {
        sendJson(res, 500, { error: 'Internal server error' });
      }
    }
  });

  httpServer.listen(config.port, config.host, () => {
    console.error(`${config.name} running on http://${config.host}:${config.port}`);
  });
}
"""

TS_TOOLS_HEADER = """import { config } from '../config.js';
import {
  type ToolDefinition,
  type ToolResponse,
  type ToolRoute,
  errorResponse,
  successResponse,
} from '../types.js';

"""

TS_TOOLS_CALL = r"""
export async function callTool(
  name: string,
  args: Record<string, unknown> = {}
): Promise<ToolResponse<unknown>> {
  const route = routes[name];
  if (!route) {
    return errorResponse('INVALID_INPUT', `Unknown tool: ${name}`, {
      available_tools: tools.map((t) => t.name),
    });
  }

  let path = route.path;
  const query = new URLSearchParams();
  const headers: Record<string, string> = { Accept: 'application/json' };
  const cookies: string[] = [];
  const fields: Record<string, unknown> = {};
  let body: unknown = undefined;

  for (const [key, value] of Object.entries(args)) {
    if (value === undefined || value === null) continue;
    const location = route.params[key];
    if (location === 'path') {
      path = path.replace(`{${key}}`, encodeURIComponent(String(value)));
    } else if (location === 'query') {
      query.append(key, String(value));
    } else if (location === 'header') {
      headers[key] = String(value);
    } else if (location === 'cookie') {
      cookies.push(`${key}=${encodeURIComponent(String(value))}`);
    } else if (route.body === 'whole' && key === 'body') {
      body = value;
    } else if (route.body === 'flatten' && key in route.bodyFields) {
      fields[route.bodyFields[key]] = value;
    }
  }

  if (route.body === 'flatten' && Object.keys(fields).length > 0) body = fields;
  if (cookies.length > 0) headers['Cookie'] = cookies.join('; ');
  if (config.apiToken) headers['Authorization'] = `Bearer ${config.apiToken}`;
  if (body !== undefined) headers['Content-Type'] = 'application/json';

  const qs = query.toString();
  const url = `${config.baseUrl.replace(/\/$/, '')}${path}${qs ? `?${qs}` : ''}`;

  try {
    const response = await fetch(url, {
      method: route.method,
      headers,
      body: body === undefined ? undefined : JSON.stringify(body),
    });
    const text = await response.text();
    let data: unknown = text;
    try {
      data = text ? JSON.parse(text) : null;
    } catch {
      // non-JSON payloads are returned as text
    }
    if (!response.ok) {
      return errorResponse('UPSTREAM_ERROR', `Upstream returned ${response.status}`, {
        status: response.status,
        body: data,
      });
    }
    return successResponse(data, { source: url });
  } catch (error) {
    return errorResponse('UPSTREAM_ERROR', 'Request failed', {
      error: error instanceof Error ? error.message : String(error),
    });
  }
}
"""

TS_TESTS = """import { describe, it, expect } from 'vitest';
import { tools, callTool } from '../../src/tools/index.js';

describe('tools', () => {
  it('exposes one tool per operation', () => {
    expect(tools.length).toBe(__TOOL_COUNT__);
  });

  it('uses valid tool names and object input schemas', () => {
    for (const tool of tools) {
      expect(tool.name).toMatch(/^[a-z0-9_-]{1,64}$/);
      expect(tool.inputSchema.type).toBe('object');
    }
  });

  it('rejects unknown tools', async () => {
    const result = await callTool('does_not_exist');
    expect(result.ok).toBe(false);
    if (!result.ok) {
      expect(result.error.code).toBe('INVALID_INPUT');
    }
  });
});
"""

PY_MAIN = '''#!/usr/bin/env python3
"""Entry point: python -m src.main"""

import uvicorn

from .config import HOST, PORT
from .server import app


def main() -> None:
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
'''

PY_TYPES = '''"""Response envelope shared by every tool."""

from datetime import datetime, timezone
from typing import Any, Literal, TypedDict


class ResponseMeta(TypedDict, total=False):
    source: str
    retrieved_at: str
    warnings: list[str]


class SuccessResponse(TypedDict):
    ok: Literal[True]
    data: Any
    meta: ResponseMeta


class ErrorResponse(TypedDict):
    ok: Literal[False]
    error: dict[str, Any]
    meta: dict[str, str]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_response(data: Any, source: str | None = None) -> SuccessResponse:
    meta: ResponseMeta = {"retrieved_at": _timestamp(), "warnings": []}
    if source is not None:
        meta["source"] = source
    return {"ok": True, "data": data, "meta": meta}


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> ErrorResponse:
    return {
        "ok": False,
        "error": {"code": code, "message": message, "details": details or {}},
        "meta": {"retrieved_at": _timestamp()},
    }
'''

PY_SERVER = '''"""JSON-RPC endpoint exposing the generated tools over HTTP."""

import json
from datetime import datetime, timezone

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .config import SERVER_NAME, SERVER_VERSION
from .tools import TOOLS, call_tool

PROTOCOL_VERSION = "2024-11-05"


def _error(msg_id, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


async def handle_rpc(message) -> dict | None:
    if not isinstance(message, dict) or not isinstance(message.get("method"), str):
        return _error(None, -32600, "Invalid Request")
    if "id" not in message:
        return None

    msg_id = message["id"]
    method = message["method"]
    params = message.get("params") or {}

    if method == "initialize":
        result = {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        }
    elif method == "ping":
        result = {}
    elif method == "tools/list":
        result = {"tools": TOOLS}
    elif method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str):
            return _error(msg_id, -32602, "Invalid params: name is required")
        envelope = await call_tool(name, params.get("arguments") or {})
        result = {"content": [{"type": "text", "text": json.dumps(envelope, indent=2)}]}
    else:
        return _error(msg_id, -32601, f"Method not found: {method}")

    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


async def mcp_endpoint(request: Request) -> Response:
    try:
        payload = json.loads(await request.body())
    except ValueError:
        return JSONResponse(_error(None, -32700, "Parse error"))

    if isinstance(payload, list):
        responses = []
        for message in payload:
            response = await handle_rpc(message)
            if response is not None:
                responses.append(response)
        return JSONResponse(responses) if responses else Response(status_code=202)

    response = await handle_rpc(payload)
    return JSONResponse(response) if response is not None else Response(status_code=202)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({
        "status": "ok",
        "server": SERVER_NAME,
        "version": SERVER_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def info(request: Request) -> JSONResponse:
    return JSONResponse({
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "transport": "http",
        "capabilities": {"tools": True},
    })


app = Starlette(routes=[
    Route("/mcp", mcp_endpoint, methods=["POST"]),
    Route("/health", health, methods=["GET"]),
    Route("/info", info, methods=["GET"]),
])
'''

PY_TOOLS_HEADER = '''"""Generated tool definitions and the HTTP calls behind them."""

from urllib.parse import quote

import httpx

from ..config import API_TOKEN, BASE_URL, REQUEST_TIMEOUT
from ..types import error_response, success_response

'''

PY_TOOLS_CALL = '''

async def call_tool(name: str, arguments: dict | None = None) -> dict:
    route = ROUTES.get(name)
    if route is None:
        return error_response(
            "INVALID_INPUT",
            f"Unknown tool: {name}",
            {"available_tools": [tool["name"] for tool in TOOLS]},
        )

    path = route["path"]
    query: dict = {}
    headers = {"Accept": "application/json"}
    cookies: dict = {}
    fields: dict = {}
    body = None

    for key, value in (arguments or {}).items():
        if value is None:
            continue
        location = route["params"].get(key)
        if location == "path":
            path = path.replace("{" + key + "}", quote(str(value), safe=""))
        elif location == "query":
            query[key] = value
        elif location == "header":
            headers[key] = str(value)
        elif location == "cookie":
            cookies[key] = str(value)
        elif route["body"] == "whole" and key == "body":
            body = value
        elif route["body"] == "flatten" and key in route["body_fields"]:
            fields[route["body_fields"][key]] = value

    if route["body"] == "flatten" and fields:
        body = fields
    if API_TOKEN:
        headers["Authorization"] = f"Bearer {API_TOKEN}"

    url = BASE_URL.rstrip("/") + path
    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT, cookies=cookies) as client:
            resp = await client.request(route["method"], url, params=query, headers=headers, json=body)
    except httpx.HTTPError as e:
        return error_response("UPSTREAM_ERROR", "Request failed", {"error": str(e)})

    try:
        data = resp.json() if resp.content else None
    except ValueError:
        data = resp.text
    if resp.is_error:
        return error_response(
            "UPSTREAM_ERROR",
            f"Upstream returned {resp.status_code}",
            {"status": resp.status_code, "body": data},
        )
    return success_response(data, source=url)
'''

PY_TESTS = '''import asyncio
import re

from src.tools import ROUTES, TOOLS, call_tool


class TestTools:
    def test_tool_count(self):
        assert len(TOOLS) == __TOOL_COUNT__

    def test_tool_names_and_schemas(self):
        for tool in TOOLS:
            assert re.fullmatch(r"[a-z0-9_-]{1,64}", tool["name"])
            assert tool["inputSchema"]["type"] == "object"

    def test_every_tool_has_a_route(self):
        assert {tool["name"] for tool in TOOLS} == set(ROUTES)

    def test_unknown_tool(self):
        result = asyncio.run(call_tool("does_not_exist"))
        assert result["ok"] is False
        assert result["error"]["code"] == "INVALID_INPUT"
'''
