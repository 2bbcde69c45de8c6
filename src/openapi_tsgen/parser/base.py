"""Data models for a loaded API description document.

The loader validates the raw JSON/YAML tree into these models. Schema
objects stay raw (``dict`` or ``bool``): the synthesizer dispatches on
their keywords itself.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DocModel(BaseModel):
    """Base for document objects: camelCase keys, unknown keys (x-*) kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ServerVariable(DocModel):
    default: str = ""
    description: str = ""
    enum: list[str] = []


class Server(DocModel):
    url: str
    description: str = ""
    variables: dict[str, ServerVariable] = {}


class OAuthFlow(DocModel):
    authorization_url: str = ""
    token_url: str = ""
    refresh_url: str = ""
    scopes: dict[str, str] = {}


class OAuthFlows(DocModel):
    implicit: OAuthFlow | None = None
    password: OAuthFlow | None = None
    client_credentials: OAuthFlow | None = None
    authorization_code: OAuthFlow | None = None


class SecurityScheme(DocModel):
    ref: str | None = Field(None, alias="$ref")
    type: str = ""  # apiKey / http / oauth2 / openIdConnect / mutualTLS
    description: str = ""
    name: str = ""
    in_: str = Field("", alias="in")
    scheme: str = ""
    bearer_format: str = ""
    flows: OAuthFlows | None = None
    open_id_connect_url: str = ""


class MediaType(DocModel):
    schema_: Any = Field(None, alias="schema")


class Header(DocModel):
    ref: str | None = Field(None, alias="$ref")
    description: str = ""
    required: bool = False
    schema_: Any = Field(None, alias="schema")
    content: dict[str, MediaType] = {}


class Parameter(DocModel):
    """A single parameter (path, query, header, or cookie), or a $ref to one."""

    ref: str | None = Field(None, alias="$ref")
    name: str = ""
    in_: str = Field("", alias="in")  # path / query / header / cookie
    required: bool = False
    description: str = ""
    schema_: Any = Field(None, alias="schema")
    content: dict[str, MediaType] = {}


class RequestBody(DocModel):
    ref: str | None = Field(None, alias="$ref")
    description: str = ""
    required: bool = False
    content: dict[str, MediaType] = {}


class Response(DocModel):
    ref: str | None = Field(None, alias="$ref")
    description: str = ""
    headers: dict[str, Header] = {}
    content: dict[str, MediaType] = {}


SecurityRequirement = dict[str, list[str]]


class ApiOperation(DocModel):
    """One HTTP method on a path item."""

    operation_id: str = ""
    summary: str = ""
    parameters: list[Parameter] = []
    request_body: RequestBody | None = None
    responses: dict[str, Response] = {}
    security: list[SecurityRequirement] | None = None
    servers: list[Server] = []

    @field_validator("responses", mode="before")
    @classmethod
    def _status_codes_as_strings(cls, value: Any) -> Any:
        # YAML reads `200:` as an int key
        if isinstance(value, dict):
            return {str(k): v for k, v in value.items() if not str(k).startswith("x-")}
        return value


HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head", "trace")


class PathItem(DocModel):
    ref: str | None = Field(None, alias="$ref")
    summary: str = ""
    parameters: list[Parameter] = []
    servers: list[Server] = []
    get: ApiOperation | None = None
    post: ApiOperation | None = None
    put: ApiOperation | None = None
    patch: ApiOperation | None = None
    delete: ApiOperation | None = None
    options: ApiOperation | None = None
    head: ApiOperation | None = None
    trace: ApiOperation | None = None

    def operations(self) -> list[tuple[str, ApiOperation]]:
        """Declared operations in canonical method order."""
        return [(m, getattr(self, m)) for m in HTTP_METHODS if getattr(self, m) is not None]


class Components(DocModel):
    schemas: dict[str, Any] = {}
    responses: dict[str, Response] = {}
    request_bodies: dict[str, RequestBody] = {}
    parameters: dict[str, Parameter] = {}
    headers: dict[str, Header] = {}
    security_schemes: dict[str, SecurityScheme] = {}
    path_items: dict[str, PathItem] = {}


class ApiDocument(DocModel):
    """Root of a loaded document."""

    openapi: str = ""
    info: dict[str, Any] = {}
    paths: dict[str, PathItem] = {}
    webhooks: dict[str, PathItem] = {}
    components: Components = Field(default_factory=Components)
    servers: list[Server] = []
    security: list[SecurityRequirement] | None = None

    @field_validator("paths", "webhooks", mode="before")
    @classmethod
    def _drop_extensions(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if not str(k).startswith("x-")}
        return value

    def raw_sections(self) -> dict[str, dict[str, Any]]:
        """Section -> name -> object, keyed the way pointers address them."""
        c = self.components
        return {
            "schemas": c.schemas,
            "responses": c.responses,
            "requestBodies": c.request_bodies,
            "parameters": c.parameters,
            "headers": c.headers,
            "securitySchemes": c.security_schemes,
            "pathItems": c.path_items,
        }
