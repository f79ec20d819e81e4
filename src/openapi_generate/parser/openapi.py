"""OpenAPI 3.x document parser.

Walks info, servers, paths and components of a loaded document and builds
the ParsedDocument model. ``openapi_parse`` wraps retrieval, the version
gate and parsing into a single envelope-returning entry point.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from openapi_generate.envelope import (
    ErrorCode,
    PipelineError,
    ToolResponse,
    error_response,
    failure_from,
    success_response,
)

from .base import (
    ApiInfo,
    ApiKeySecurityScheme,
    HttpSecurityScheme,
    MediaType,
    OAuth2SecurityScheme,
    OAuthFlow,
    OAuthFlows,
    OpenIdConnectSecurityScheme,
    ParsedDocument,
    ParsedOperation,
    ParsedParameter,
    ParsedPath,
    ParsedRequestBody,
    ParsedResponse,
    ParsedSchema,
    ParsedSecurityScheme,
    ParsedServer,
    ServerVariable,
)
from .detect import detect_openapi_version, is_openapi3
from .loader import DEFAULT_FETCH_TIMEOUT, load_document, source_tag
from .schema import is_ref, is_string, is_string_list, parse_schema

logger = logging.getLogger(__name__)

# Operations within a path are always emitted in this order.
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

PARAMETER_LOCATIONS = ("query", "header", "path", "cookie")

API_KEY_LOCATIONS = ("query", "header", "cookie")


async def openapi_parse(
    source: str | Mapping[str, Any],
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> ToolResponse:
    """Parse an OpenAPI document given as JSON text, URL, file path or dict."""
    try:
        try:
            doc = await load_document(source, timeout=timeout)
        except PipelineError as e:
            return failure_from(e)

        if not is_openapi3(doc):
            return error_response(
                ErrorCode.INVALID_INPUT,
                "Only OpenAPI 3.0 and 3.1 specifications are supported",
                {"provided_version": detect_openapi_version(doc)},
            )

        parsed = parse_spec(doc)
        return success_response(parsed, source=source_tag(source))
    except Exception as e:
        logger.exception("Unexpected error while parsing OpenAPI spec")
        return error_response(
            ErrorCode.INTERNAL_ERROR,
            "Unexpected error while parsing OpenAPI spec",
            {"error": str(e)},
        )


def parse_spec(doc: Mapping[str, Any]) -> ParsedDocument:
    """Build the ParsedDocument for a document that passed the version gate."""
    components = _mapping(doc.get("components"))
    return ParsedDocument(
        openapi_version=doc["openapi"],
        info=_parse_info(_mapping(doc.get("info"))),
        servers=_parse_servers(doc.get("servers")),
        paths=_parse_paths(_mapping(doc.get("paths"))),
        schemas=_parse_schemas(_mapping(components.get("schemas"))),
        security_schemes=_parse_security_schemes(_mapping(components.get("securitySchemes"))),
    )


def generate_operation_id(method: str, path: str) -> str:
    """Derive an operation id from method and path template.

    ``GET /users/{userId}/posts`` becomes ``get_users_userid_posts``.
    """
    path_part = re.sub(r"^/", "", path)
    path_part = re.sub(r"\{([^}]+)\}", r"\1", path_part)
    path_part = re.sub(r"[^a-zA-Z0-9]+", "_", path_part)
    path_part = path_part.strip("_")
    return f"{method}_{path_part}".lower()


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _copy_strings(source: Mapping[str, Any], fields: dict[str, Any], *keys: str) -> None:
    """Copy the given keys whose values are strings; anything else is dropped."""
    for key in keys:
        if key not in source:
            continue
        if is_string(source[key]):
            fields[key] = source[key]
        else:
            logger.debug("Dropping %s with unexpected value %r", key, source[key])


def _parse_info(info: Mapping[str, Any]) -> ApiInfo:
    fields: dict[str, Any] = {
        "title": str(info.get("title", "")),
        "version": str(info.get("version", "")),
    }
    _copy_strings(info, fields, "description")
    return ApiInfo(**fields)


def _parse_servers(servers: Any) -> list[ParsedServer]:
    if not isinstance(servers, list):
        return []

    result = []
    for server in servers:
        if not isinstance(server, Mapping) or not is_string(server.get("url")):
            continue
        fields: dict[str, Any] = {"url": server["url"]}
        _copy_strings(server, fields, "description")
        variables = server.get("variables")
        if isinstance(variables, Mapping):
            fields["variables"] = {
                str(name): _parse_server_variable(_mapping(var)) for name, var in variables.items()
            }
        result.append(ParsedServer(**fields))
    return result


def _parse_server_variable(var: Mapping[str, Any]) -> ServerVariable:
    fields: dict[str, Any] = {"default": str(var.get("default", ""))}
    if isinstance(var.get("enum"), list):
        fields["enum"] = [str(value) for value in var["enum"]]
    _copy_strings(var, fields, "description")
    return ServerVariable(**fields)


def _parse_paths(paths: Mapping[str, Any]) -> list[ParsedPath]:
    return [
        ParsedPath(path=str(path), operations=_parse_path_operations(str(path), _mapping(item)))
        for path, item in paths.items()
    ]


def _parse_path_operations(path: str, path_item: Mapping[str, Any]) -> list[ParsedOperation]:
    path_parameters = _list(path_item.get("parameters"))

    operations = []
    for method in HTTP_METHODS:
        operation = path_item.get(method)
        if isinstance(operation, Mapping):
            operations.append(_parse_operation(method, path, operation, path_parameters))
    return operations


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _parse_operation(
    method: str,
    path: str,
    operation: Mapping[str, Any],
    path_parameters: list[Any],
) -> ParsedOperation:
    all_parameters = path_parameters + _list(operation.get("parameters"))

    fields: dict[str, Any] = {
        "method": method.upper(),
        "operation_id": _operation_id(method, path, operation.get("operationId")),
        "parameters": _parse_parameters(all_parameters),
        "responses": _parse_responses(_mapping(operation.get("responses"))),
    }
    _copy_strings(operation, fields, "summary", "description")
    if is_string_list(operation.get("tags")):
        fields["tags"] = operation["tags"]
    if isinstance(operation.get("deprecated"), bool):
        fields["deprecated"] = operation["deprecated"]
    if "requestBody" in operation:
        request_body = _parse_request_body(operation["requestBody"])
        if request_body is not None:
            fields["request_body"] = request_body
    if isinstance(operation.get("security"), list):
        fields["security"] = _parse_security_requirements(operation["security"])

    return ParsedOperation(**fields)


def _operation_id(method: str, path: str, declared: Any) -> str:
    if is_string(declared) and declared:
        return declared
    return generate_operation_id(method, path)


def _parse_security_requirements(requirements: list[Any]) -> list[dict[str, list[str]]]:
    result = []
    for req in requirements:
        if not isinstance(req, Mapping):
            continue
        result.append({
            str(name): [str(scope) for scope in scopes]
            for name, scopes in req.items()
            if isinstance(scopes, list)
        })
    return result


def _parse_parameters(params: list[Any]) -> list[ParsedParameter]:
    result = []
    for p in params:
        if is_ref(p):
            # Parameter references are not resolved; only inline objects are kept.
            logger.debug("Dropping parameter reference %s", p["$ref"])
            continue
        if not isinstance(p, Mapping) or not is_string(p.get("name")):
            continue
        if p.get("in") not in PARAMETER_LOCATIONS:
            continue

        location = p["in"]
        fields: dict[str, Any] = {
            "name": p["name"],
            "location": location,
            # Path parameters are always required, whatever the document says.
            "required": bool(p.get("required")) or location == "path",
            "schema_": parse_schema(p.get("schema") or {"type": "string"}),
        }
        _copy_strings(p, fields, "description")
        if isinstance(p.get("deprecated"), bool):
            fields["deprecated"] = p["deprecated"]
        result.append(ParsedParameter(**fields))
    return result


def _parse_content(content: Mapping[str, Any]) -> dict[str, MediaType]:
    return {
        str(media_type): MediaType(schema_=parse_schema(_mapping(media).get("schema") or {}))
        for media_type, media in content.items()
    }


def _parse_request_body(body: Any) -> ParsedRequestBody | None:
    if not isinstance(body, Mapping) or is_ref(body):
        return None

    fields: dict[str, Any] = {
        "required": bool(body.get("required", False)),
        "content": _parse_content(_mapping(body.get("content"))),
    }
    _copy_strings(body, fields, "description")
    return ParsedRequestBody(**fields)


def _parse_responses(responses: Mapping[str, Any]) -> list[ParsedResponse]:
    result = []
    for status_code, resp in responses.items():
        if is_ref(resp):
            logger.debug("Dropping response reference %s", resp["$ref"])
            continue
        resp = _mapping(resp)
        fields: dict[str, Any] = {
            "status_code": str(status_code),
            "description": resp["description"] if is_string(resp.get("description")) else "",
        }
        if isinstance(resp.get("content"), Mapping):
            fields["content"] = _parse_content(resp["content"])
        result.append(ParsedResponse(**fields))
    return result


def _parse_schemas(schemas: Mapping[str, Any]) -> dict[str, ParsedSchema]:
    return {str(name): parse_schema(schema) for name, schema in schemas.items()}


def _parse_security_schemes(schemes: Mapping[str, Any]) -> dict[str, ParsedSecurityScheme]:
    result = {}
    for name, scheme in schemes.items():
        if is_ref(scheme) or not isinstance(scheme, Mapping):
            logger.debug("Dropping security scheme %s", name)
            continue
        parsed = _parse_security_scheme(scheme)
        if parsed is None:
            logger.debug("Unsupported security scheme %s of type %r", name, scheme.get("type"))
            continue
        result[str(name)] = parsed
    return result


def _parse_security_scheme(scheme: Mapping[str, Any]) -> ParsedSecurityScheme | None:
    scheme_type = scheme.get("type")
    common: dict[str, Any] = {"type": scheme_type}
    _copy_strings(scheme, common, "description")

    if scheme_type == "apiKey":
        name, location = scheme.get("name", ""), scheme.get("in", "header")
        if not is_string(name) or location not in API_KEY_LOCATIONS:
            return None
        return ApiKeySecurityScheme(**common, name=name, location=location)
    if scheme_type == "http":
        http_scheme = scheme.get("scheme", "")
        if not is_string(http_scheme):
            return None
        fields = dict(common, scheme=http_scheme)
        if is_string(scheme.get("bearerFormat")):
            fields["bearer_format"] = scheme["bearerFormat"]
        return HttpSecurityScheme(**fields)
    if scheme_type == "oauth2":
        return OAuth2SecurityScheme(**common, flows=_parse_oauth_flows(_mapping(scheme.get("flows"))))
    if scheme_type == "openIdConnect":
        url = scheme.get("openIdConnectUrl", "")
        if not is_string(url):
            return None
        return OpenIdConnectSecurityScheme(**common, open_id_connect_url=url)
    return None


def _parse_oauth_flows(flows: Mapping[str, Any]) -> OAuthFlows:
    # OpenAPI flow key -> (OAuthFlows field, URL keys carried by that flow)
    flow_fields = {
        "implicit": ("implicit", ("authorizationUrl",)),
        "password": ("password", ("tokenUrl",)),
        "clientCredentials": ("client_credentials", ("tokenUrl",)),
        "authorizationCode": ("authorization_code", ("authorizationUrl", "tokenUrl")),
    }
    url_fields = {
        "authorizationUrl": "authorization_url",
        "tokenUrl": "token_url",
        "refreshUrl": "refresh_url",
    }

    parsed: dict[str, OAuthFlow] = {}
    for key, (field, url_keys) in flow_fields.items():
        flow = flows.get(key)
        if not isinstance(flow, Mapping):
            continue
        scopes = _mapping(flow.get("scopes"))
        values: dict[str, Any] = {
            "scopes": {str(scope): text for scope, text in scopes.items() if is_string(text)},
        }
        for url_key in url_keys + ("refreshUrl",):
            if is_string(flow.get(url_key)):
                values[url_fields[url_key]] = flow[url_key]
        parsed[field] = OAuthFlow(**values)
    return OAuthFlows(**parsed)
