"""Typed OpenAPI 3.0 document structures.

Field names follow Python conventions; aliases carry the OpenAPI spelling
and are used when dumping. Absent optional members are left out of the
output entirely.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from openapi_assembler.config import OPENAPI_VERSION


class DocumentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Contact(DocumentModel):
    name: str | None = None
    url: str | None = None
    email: str | None = None


class License(DocumentModel):
    name: str
    url: str | None = None


class Info(DocumentModel):
    title: str
    version: str
    description: str | None = None
    terms_of_service: str | None = Field(default=None, alias="termsOfService")
    contact: Contact | None = None
    license: License | None = None


class ExternalDocs(DocumentModel):
    url: str
    description: str | None = None


class Tag(DocumentModel):
    name: str
    description: str | None = None
    external_docs: ExternalDocs | None = Field(default=None, alias="externalDocs")


class MediaType(DocumentModel):
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")


class Parameter(DocumentModel):
    name: str
    location: str = Field(alias="in")
    description: str | None = None
    required: bool
    schema_: dict[str, Any] = Field(default_factory=lambda: {"type": "string"}, alias="schema")


class RequestBody(DocumentModel):
    description: str | None = None
    content: dict[str, MediaType]
    required: bool


class Response(DocumentModel):
    description: str
    content: dict[str, MediaType] | None = None


class Operation(DocumentModel):
    summary: str | None = None
    description: str | None = None
    handler_function: str | None = Field(default=None, alias="x-handler-function")
    tags: list[str] | None = None
    parameters: list[Parameter] | None = None
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, Response]
    security: list[dict[str, list[str]]] | None = None


class PathItem(DocumentModel):
    get: Operation | None = None
    post: Operation | None = None
    put: Operation | None = None
    delete: Operation | None = None
    patch: Operation | None = None
    head: Operation | None = None
    options: Operation | None = None

    def set_operation(self, method: str, operation: Operation) -> bool:
        """Assign an operation to its method slot; False for unknown methods."""
        field = method.lower()
        if field not in type(self).model_fields:
            return False
        setattr(self, field, operation)
        return True


class SecurityScheme(DocumentModel):
    scheme_type: str = Field(alias="type")
    description: str | None = None
    name: str | None = None
    location: str | None = Field(default=None, alias="in")
    scheme: str | None = None
    bearer_format: str | None = Field(default=None, alias="bearerFormat")

    @classmethod
    def api_key(cls, name: str, location: str) -> "SecurityScheme":
        return cls(scheme_type="apiKey", name=name, location=location)

    @classmethod
    def http(cls, scheme: str) -> "SecurityScheme":
        return cls(scheme_type="http", scheme=scheme)

    @classmethod
    def bearer(cls, bearer_format: str | None = None) -> "SecurityScheme":
        return cls(scheme_type="http", scheme="bearer", bearer_format=bearer_format)

    def with_description(self, description: str) -> "SecurityScheme":
        return self.model_copy(update={"description": description})


class Components(DocumentModel):
    schemas: dict[str, dict[str, Any]] | None = None
    security_schemes: dict[str, SecurityScheme] | None = Field(default=None, alias="securitySchemes")


class OpenAPI(DocumentModel):
    openapi: str = OPENAPI_VERSION
    info: Info
    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: Components | None = None
    tags: list[Tag] | None = None

    def to_json(self, indent: int | None = None) -> str:
        if indent is None:
            return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def fallback(cls) -> "OpenAPI":
        """Minimal well-formed document returned when assembly output fails."""
        return cls(openapi=OPENAPI_VERSION, info=Info(title="Error", version="0.0.0"))
