"""Normalized data models for parsed OpenAPI documents.

The document parser converts raw OpenAPI 3.x input into these models and
every downstream step (tool schemas, scaffolds, the JSON-RPC endpoint)
consumes them. All models are frozen: a parse produces fresh values and
nothing mutates them afterwards.

Attribute names are snake_case; where the OpenAPI spelling differs
(``$ref``, ``in``, ``minLength`` ...) it is kept as the alias, which is
what ``model_dump(by_alias=True)`` emits.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ParsedSchema(_Frozen):
    """Internal schema node.

    Only keys present in the source are set, so ``exclude_unset`` dumps
    reproduce exactly what the document declared. A ``$ref`` is kept as a
    leaf and only resolved later, during tool-schema generation.
    """

    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None
    format: str | None = None
    description: str | None = None
    title: str | None = None
    enum: list[Any] | None = None
    default: Any = None
    example: Any = None
    nullable: bool | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    required: list[str] | None = None
    properties: dict[str, "ParsedSchema"] | None = None
    items: "ParsedSchema | None" = None
    one_of: list["ParsedSchema"] | None = Field(default=None, alias="oneOf")
    any_of: list["ParsedSchema"] | None = Field(default=None, alias="anyOf")
    all_of: list["ParsedSchema"] | None = Field(default=None, alias="allOf")
    additional_properties: "bool | ParsedSchema | None" = Field(
        default=None, alias="additionalProperties"
    )


ParsedSchema.model_rebuild()


class ServerVariable(_Frozen):
    default: str
    enum: list[str] | None = None
    description: str | None = None


class ParsedServer(_Frozen):
    url: str
    description: str | None = None
    variables: dict[str, ServerVariable] | None = None


class ApiInfo(_Frozen):
    title: str
    version: str
    description: str | None = None


class ParsedParameter(_Frozen):
    """A single operation parameter (query, header, path or cookie)."""

    name: str
    location: Literal["query", "header", "path", "cookie"] = Field(alias="in")
    description: str | None = None
    required: bool
    deprecated: bool | None = None
    schema_: ParsedSchema = Field(alias="schema")


class MediaType(_Frozen):
    schema_: ParsedSchema = Field(alias="schema")


class ParsedRequestBody(_Frozen):
    description: str | None = None
    required: bool = False
    content: dict[str, MediaType] = {}


class ParsedResponse(_Frozen):
    status_code: str
    description: str = ""
    content: dict[str, MediaType] | None = None


class ParsedOperation(_Frozen):
    """One HTTP method bound to one path template."""

    method: str  # GET / PUT / POST / DELETE / OPTIONS / HEAD / PATCH / TRACE
    operation_id: str
    summary: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    parameters: list[ParsedParameter] = []
    request_body: ParsedRequestBody | None = None
    responses: list[ParsedResponse] = []
    security: list[dict[str, list[str]]] | None = None
    deprecated: bool | None = None


class ParsedPath(_Frozen):
    path: str
    operations: list[ParsedOperation] = []


class OAuthFlow(_Frozen):
    authorization_url: str | None = None
    token_url: str | None = None
    refresh_url: str | None = None
    scopes: dict[str, str] = {}


class OAuthFlows(_Frozen):
    implicit: OAuthFlow | None = None
    password: OAuthFlow | None = None
    client_credentials: OAuthFlow | None = Field(default=None, alias="clientCredentials")
    authorization_code: OAuthFlow | None = Field(default=None, alias="authorizationCode")


class ApiKeySecurityScheme(_Frozen):
    type: Literal["apiKey"]
    description: str | None = None
    name: str
    location: Literal["query", "header", "cookie"] = Field(alias="in")


class HttpSecurityScheme(_Frozen):
    type: Literal["http"]
    description: str | None = None
    scheme: str
    bearer_format: str | None = None


class OAuth2SecurityScheme(_Frozen):
    type: Literal["oauth2"]
    description: str | None = None
    flows: OAuthFlows = OAuthFlows()


class OpenIdConnectSecurityScheme(_Frozen):
    type: Literal["openIdConnect"]
    description: str | None = None
    open_id_connect_url: str


ParsedSecurityScheme = Annotated[
    Union[
        ApiKeySecurityScheme,
        HttpSecurityScheme,
        OAuth2SecurityScheme,
        OpenIdConnectSecurityScheme,
    ],
    Field(discriminator="type"),
]


class ParsedDocument(_Frozen):
    """Root result of parsing one OpenAPI document."""

    openapi_version: str
    info: ApiInfo
    servers: list[ParsedServer] = []
    paths: list[ParsedPath] = []
    schemas: dict[str, ParsedSchema] = {}
    security_schemes: dict[str, ParsedSecurityScheme] = {}


def dump_model(model: BaseModel) -> dict[str, Any]:
    """JSON-ready dict of a model, keeping only the keys that were set."""
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)
