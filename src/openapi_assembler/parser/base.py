"""Structured forms of handler metadata.

Raw encoded fields are decoded once into tagged items, then the plain
text items are parsed into the parameter / response / request body models
the assembler consumes.
"""

from typing import Literal, Union

from pydantic import BaseModel

JSON_CONTENT_TYPE = "application/json"


class TagItem(BaseModel):
    kind: Literal["tag"] = "tag"
    value: str


class AuthRequired(BaseModel):
    kind: Literal["auth_required"] = "auth_required"


class ExplicitType(BaseModel):
    kind: Literal["explicit_type"] = "explicit_type"
    name: str


class DefaultErrorType(BaseModel):
    kind: Literal["default_error_type"] = "default_error_type"
    name: str


class PlainText(BaseModel):
    kind: Literal["plain_text"] = "plain_text"
    text: str


MetadataItem = Union[TagItem, AuthRequired, ExplicitType, DefaultErrorType, PlainText]


class HandlerMetadata(BaseModel):
    """A handler record with every raw field decoded into tagged items."""

    function_name: str
    summary: str
    description: str
    tags: list[TagItem]
    parameters: list[MetadataItem]
    responses: list[MetadataItem]
    request_body: list[MetadataItem]
    raw_request_body: str = ""

    @property
    def requires_auth(self) -> bool:
        return any(isinstance(item, AuthRequired) for item in self.parameters)

    @property
    def default_error_type(self) -> str | None:
        found = None
        for item in self.responses:
            if isinstance(item, DefaultErrorType):
                found = item.name
        return found

    @property
    def explicit_type(self) -> str | None:
        for item in self.request_body:
            if isinstance(item, ExplicitType):
                return item.name
        return None

    @property
    def has_request_body(self) -> bool:
        return bool(self.request_body)


class ParsedParameter(BaseModel):
    """A single operation parameter (path, query, or header)."""

    name: str
    location: str  # path / query / header
    description: str = ""
    required: bool = False
    example: str | None = None
    default: str | None = None

    def schema_dict(self) -> dict:
        schema: dict = {"type": "string"}
        if self.default is not None and self.location != "path":
            schema["default"] = self.default
        if self.example is not None:
            schema["example"] = self.example
        return schema


class ParsedResponse(BaseModel):
    """One declared response: status code, description, resolved schema."""

    status_code: str
    description: str
    schema_ref: str | None = None


class ParsedRequestBody(BaseModel):
    """A request body: either a reference to a registered schema or inline fields."""

    required: bool = True
    description: str = "Request body"
    content_type: str = JSON_CONTENT_TYPE
    schema_ref: str | None = None
    properties: dict[str, dict] = {}

    def schema_dict(self) -> dict:
        if self.schema_ref:
            return {"$ref": f"#/components/schemas/{self.schema_ref}"}
        if not self.properties:
            return {"type": "object"}
        return {"type": "object", "properties": dict(self.properties)}
