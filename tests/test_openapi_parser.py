import asyncio
import json
from pathlib import Path

from openapi_generate.envelope import ErrorCode, ErrorResponse, SuccessResponse, UpstreamError
from openapi_generate.parser.base import (
    ApiKeySecurityScheme,
    HttpSecurityScheme,
    OAuth2SecurityScheme,
    OpenIdConnectSecurityScheme,
    dump_model,
)
from openapi_generate.parser.openapi import generate_operation_id, openapi_parse, parse_spec

FIXTURES = Path(__file__).parent / "fixtures"


def _parse(source):
    return asyncio.run(openapi_parse(source))


def _doc(paths=None, **extra):
    doc = {"openapi": "3.0.0", "info": {"title": "Test", "version": "1.0.0"}, "paths": paths or {}}
    doc.update(extra)
    return doc


class TestOpenApiParse:
    def test_parse_petstore_yaml(self):
        result = _parse(str(FIXTURES / "petstore.yaml"))
        assert isinstance(result, SuccessResponse)
        doc = result.data
        assert doc.openapi_version == "3.0.3"
        assert doc.info.title == "Swagger Petstore"
        assert doc.info.description == "A sample API that manages pets"
        assert [p.path for p in doc.paths] == ["/pets", "/pets/{petId}"]
        assert sum(len(p.operations) for p in doc.paths) == 3
        assert result.meta.source == str(FIXTURES / "petstore.yaml")

    def test_parse_json_text(self):
        text = (FIXTURES / "petstore.json").read_text()
        result = _parse(text)
        assert isinstance(result, SuccessResponse)
        assert result.meta.source == "json_input"
        assert result.data.openapi_version == "3.1.0"

    def test_parse_mapping(self):
        result = _parse(_doc())
        assert isinstance(result, SuccessResponse)
        assert result.meta.source == "document"
        assert result.data.paths == []

    def test_invalid_json(self):
        result = _parse("{not valid json")
        assert isinstance(result, ErrorResponse)
        assert result.error.code == ErrorCode.PARSE_ERROR
        assert result.error.message == "Invalid JSON provided"

    def test_swagger2_rejected(self):
        result = _parse(json.dumps({"swagger": "2.0", "info": {}, "paths": {}}))
        assert isinstance(result, ErrorResponse)
        assert result.error.code == ErrorCode.INVALID_INPUT
        assert result.error.details == {"provided_version": "2.0"}

    def test_missing_version_rejected(self):
        result = _parse({"info": {"title": "x"}})
        assert result.error.details == {"provided_version": "unknown"}

    def test_upstream_failure(self, monkeypatch):
        async def fail(url, timeout):
            raise UpstreamError("Failed to fetch or parse OpenAPI spec from URL", {"url": url, "error": "boom"})

        monkeypatch.setattr("openapi_generate.parser.loader.fetch_document", fail)
        result = _parse("https://example.com/openapi.json")
        assert isinstance(result, ErrorResponse)
        assert result.error.code == ErrorCode.UPSTREAM_ERROR
        assert result.error.details["url"] == "https://example.com/openapi.json"

    def test_url_source_tag(self, monkeypatch):
        async def fetch(url, timeout):
            return _doc()

        monkeypatch.setattr("openapi_generate.parser.loader.fetch_document", fetch)
        result = _parse("https://example.com/openapi.json")
        assert result.meta.source == "https://example.com/openapi.json"

    def test_unexpected_error_is_internal(self, monkeypatch):
        def explode(doc):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("openapi_generate.parser.openapi.parse_spec", explode)
        result = _parse(_doc())
        assert result.error.code == ErrorCode.INTERNAL_ERROR
        assert result.error.details == {"error": "kaboom"}

    def test_malformed_values_do_not_fail_the_parse(self):
        result = _parse(_doc(
            {"/pets": {"post": {
                "description": 42,
                "tags": "pets",
                "deprecated": "no",
                "requestBody": {"content": {"application/json": {"schema": {
                    "type": "object",
                    "properties": {"name": {"type": "string", "required": True}},
                }}}},
                "responses": {"201": {"description": 201}},
            }}},
            info={"title": "Test", "version": "1.0.0", "description": 42},
            components={"securitySchemes": {"key": {"type": "apiKey", "name": "k", "in": "body"}}},
        ))
        assert isinstance(result, SuccessResponse)
        op = result.data.paths[0].operations[0]
        assert dump_model(op.request_body.content["application/json"].schema_.properties["name"]) == {
            "type": "string"
        }
        assert op.description is None
        assert op.tags is None
        assert op.deprecated is None
        assert op.responses[0].description == ""
        assert result.data.info.description is None
        assert result.data.security_schemes == {}

    def test_serialized_envelope(self):
        d = _parse(str(FIXTURES / "petstore.yaml")).to_dict()
        assert d["ok"] is True
        limit = d["data"]["paths"][0]["operations"][0]["parameters"][0]
        assert limit == {
            "name": "limit",
            "in": "query",
            "description": "How many items to return at one time (max 100)",
            "required": False,
            "schema": {"type": "integer", "format": "int32", "maximum": 100},
        }


class TestParseSpecOperations:
    def test_method_order_and_uppercase(self):
        op = {"responses": {}}
        doc = parse_spec(_doc({"/x": {"post": op, "delete": op, "get": op, "trace": op}}))
        assert [o.method for o in doc.paths[0].operations] == ["GET", "POST", "DELETE", "TRACE"]

    def test_non_method_keys_ignored(self):
        doc = parse_spec(_doc({"/x": {"summary": "s", "servers": [], "get": {}}}))
        assert len(doc.paths[0].operations) == 1

    def test_generated_operation_id(self):
        doc = parse_spec(_doc({"/users/{userId}/posts": {"get": {}}}))
        assert doc.paths[0].operations[0].operation_id == "get_users_userid_posts"

    def test_path_level_parameters_come_first(self):
        doc = parse_spec(_doc({
            "/items/{id}": {
                "parameters": [{"name": "id", "in": "path", "schema": {"type": "string"}}],
                "get": {"parameters": [{"name": "q", "in": "query"}]},
            }
        }))
        params = doc.paths[0].operations[0].parameters
        assert [p.name for p in params] == ["id", "q"]

    def test_path_parameter_always_required(self):
        doc = parse_spec(_doc({
            "/items/{id}": {"get": {"parameters": [{"name": "id", "in": "path", "required": False}]}}
        }))
        assert doc.paths[0].operations[0].parameters[0].required is True

    def test_parameter_schema_defaults_to_string(self):
        doc = parse_spec(_doc({"/x": {"get": {"parameters": [{"name": "q", "in": "query"}]}}}))
        param = doc.paths[0].operations[0].parameters[0]
        assert dump_model(param.schema_) == {"type": "string"}
        assert param.required is False

    def test_parameter_references_dropped(self):
        doc = parse_spec(_doc({
            "/x": {"get": {"parameters": [
                {"$ref": "#/components/parameters/Limit"},
                {"name": "q", "in": "query"},
            ]}}
        }))
        assert [p.name for p in doc.paths[0].operations[0].parameters] == ["q"]

    def test_malformed_parameters_skipped(self):
        doc = parse_spec(_doc({
            "/x": {"get": {"parameters": [{"in": "query"}, {"name": "b", "in": "body"}]}}
        }))
        assert doc.paths[0].operations[0].parameters == []

    def test_request_body(self):
        doc = parse_spec(_doc({
            "/x": {"post": {"requestBody": {
                "description": "payload",
                "required": True,
                "content": {"application/json": {"schema": {"type": "object"}}},
            }}}
        }))
        body = doc.paths[0].operations[0].request_body
        assert body.required is True
        assert body.description == "payload"
        assert body.content["application/json"].schema_.type == "object"

    def test_request_body_reference_dropped(self):
        doc = parse_spec(_doc({
            "/x": {"post": {"requestBody": {"$ref": "#/components/requestBodies/Pet"}}}
        }))
        assert doc.paths[0].operations[0].request_body is None

    def test_responses(self):
        doc = parse_spec(_doc({
            "/x": {"get": {"responses": {
                200: {"description": "ok", "content": {"application/json": {"schema": {"type": "string"}}}},
                "404": {"$ref": "#/components/responses/NotFound"},
                "default": {},
            }}}
        }))
        responses = doc.paths[0].operations[0].responses
        assert [r.status_code for r in responses] == ["200", "default"]
        assert responses[0].content["application/json"].schema_.type == "string"
        assert responses[1].description == ""
        assert responses[1].content is None

    def test_optional_operation_fields(self):
        doc = parse_spec(_doc({
            "/x": {"get": {
                "operationId": "getX",
                "summary": "Get X",
                "tags": ["x"],
                "deprecated": True,
                "security": [{"api_key": []}],
            }}
        }))
        op = doc.paths[0].operations[0]
        assert op.operation_id == "getX"
        assert op.tags == ["x"]
        assert op.deprecated is True
        assert op.security == [{"api_key": []}]
        assert "description" not in dump_model(op)

    def test_malformed_operation_fields_dropped(self):
        doc = parse_spec(_doc({
            "/x": {"get": {
                "operationId": 12,
                "summary": ["s"],
                "tags": ["ok", 3],
                "security": [{"api_key": "read"}, "bad", {"oauth": ["read", 1]}],
                "parameters": [
                    {"name": 5, "in": "query"},
                    {"name": "q", "in": "query", "description": {"x": 1}, "deprecated": "yes"},
                ],
            }}
        }))
        op = doc.paths[0].operations[0]
        assert op.operation_id == "get_x"
        assert op.summary is None
        assert op.tags is None
        assert op.security == [{}, {"oauth": ["read", "1"]}]
        assert [p.name for p in op.parameters] == ["q"]
        assert op.parameters[0].description is None
        assert op.parameters[0].deprecated is None


class TestParseSpecDocument:
    def test_servers_with_variables(self):
        doc = parse_spec(_doc(servers=[
            {
                "url": "https://{region}.example.com",
                "description": "Regional",
                "variables": {"region": {"default": "eu", "enum": ["eu", "us"]}},
            },
            {"description": "no url"},
        ]))
        assert len(doc.servers) == 1
        assert doc.servers[0].variables["region"].default == "eu"
        assert doc.servers[0].variables["region"].enum == ["eu", "us"]

    def test_malformed_server_values(self):
        doc = parse_spec(_doc(servers=[
            {
                "url": "https://{port}.example.com",
                "description": 1,
                "variables": {"port": {"default": 8080, "enum": [8080, 8443], "description": False}},
            },
            {"url": 42},
        ]))
        assert len(doc.servers) == 1
        assert doc.servers[0].description is None
        port = doc.servers[0].variables["port"]
        assert port.default == "8080"
        assert port.enum == ["8080", "8443"]
        assert port.description is None

    def test_missing_info_fields(self):
        doc = parse_spec({"openapi": "3.1.0"})
        assert doc.info.title == ""
        assert doc.info.version == ""
        assert doc.paths == []
        assert doc.schemas == {}

    def test_component_schemas_keep_references(self):
        result = _parse(str(FIXTURES / "petstore.yaml"))
        schemas = result.data.schemas
        assert set(schemas) == {"Pet", "Pets", "CreatePetRequest", "Error"}
        assert schemas["Pets"].items.ref == "#/components/schemas/Pet"

    def test_security_schemes(self):
        doc = parse_spec(_doc(components={"securitySchemes": {
            "key": {"type": "apiKey", "name": "X-Key", "in": "header"},
            "bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
            "oauth": {"type": "oauth2", "flows": {
                "clientCredentials": {"tokenUrl": "https://auth/token", "scopes": {"read": "Read"}},
                "authorizationCode": {
                    "authorizationUrl": "https://auth/authorize",
                    "tokenUrl": "https://auth/token",
                    "refreshUrl": "https://auth/refresh",
                    "scopes": {},
                },
            }},
            "oidc": {"type": "openIdConnect", "openIdConnectUrl": "https://auth/.well-known"},
            "mtls": {"type": "mutualTLS"},
            "shared": {"$ref": "#/components/securitySchemes/key"},
        }}))
        schemes = doc.security_schemes
        assert set(schemes) == {"key", "bearer", "oauth", "oidc"}
        assert isinstance(schemes["key"], ApiKeySecurityScheme)
        assert isinstance(schemes["bearer"], HttpSecurityScheme)
        assert schemes["bearer"].bearer_format == "JWT"
        assert isinstance(schemes["oauth"], OAuth2SecurityScheme)
        assert schemes["oauth"].flows.client_credentials.scopes == {"read": "Read"}
        assert schemes["oauth"].flows.authorization_code.refresh_url == "https://auth/refresh"
        assert schemes["oauth"].flows.implicit is None
        assert isinstance(schemes["oidc"], OpenIdConnectSecurityScheme)

    def test_malformed_security_schemes_dropped(self):
        doc = parse_spec(_doc(components={"securitySchemes": {
            "body_key": {"type": "apiKey", "name": "k", "in": "body"},
            "nameless": {"type": "apiKey", "name": 1, "in": "query"},
            "http": {"type": "http", "scheme": None},
            "oidc": {"type": "openIdConnect", "openIdConnectUrl": 3},
            "cookie": {"type": "apiKey", "name": "sid", "in": "cookie", "description": 9},
            "oauth": {"type": "oauth2", "flows": {"password": {
                "tokenUrl": 1, "scopes": {"read": "Read", "write": None},
            }}},
        }}))
        schemes = doc.security_schemes
        assert set(schemes) == {"cookie", "oauth"}
        assert schemes["cookie"].location == "cookie"
        assert schemes["cookie"].description is None
        assert schemes["oauth"].flows.password.token_url is None
        assert schemes["oauth"].flows.password.scopes == {"read": "Read"}


class TestGenerateOperationId:
    def test_examples(self):
        assert generate_operation_id("get", "/users/{userId}/posts") == "get_users_userid_posts"
        assert generate_operation_id("post", "/") == "post_"
        assert generate_operation_id("delete", "/a-b/c.d") == "delete_a_b_c_d"

    def test_path_templates(self):
        assert generate_operation_id("get", "/users") == "get_users"
        assert generate_operation_id("post", "/users/{id}") == "post_users_id"
        assert generate_operation_id("delete", "/users/{userId}/posts/{postId}") == "delete_users_userid_posts_postid"
