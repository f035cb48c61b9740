"""Lenient parser for handler metadata text.

Each raw encoded field is a JSON array of strings written from doc
comments. Nothing here raises on bad input: undecodable arrays fall back
to a delimiter split, and lines that do not follow the grammar degrade to
a fallback value or are dropped.

Grammar per field:

- tags:          ``"users"``
- parameters:    ``"id (path): The user ID [example: 42, default: 1]"``
                 plus the ``"__REQUIRES_AUTH__"`` marker
- responses:     ``"404: User not found"`` plus ``"ErrorType: <Name>"``
- request body:  optional leading ``"Type: <Name>"``, then
                 ``"Content-Type: <mime>"``, ``"- field (type): text"`` and
                 free description lines
"""

import json
import re

from openapi_assembler.parser.base import (
    AuthRequired,
    DefaultErrorType,
    ExplicitType,
    HandlerMetadata,
    MetadataItem,
    ParsedParameter,
    ParsedRequestBody,
    ParsedResponse,
    PlainText,
    TagItem,
)
from openapi_assembler.registry.base import HandlerRecord

AUTH_SENTINEL = "__REQUIRES_AUTH__"
EXPLICIT_TYPE_PREFIX = "Type: "
ERROR_TYPE_PREFIX = "ErrorType: "
CONTENT_TYPE_MARKER = "Content-Type:"

LEGACY_SEPARATOR_RE = re.compile(r"\"\s*,\s*\"")


def decode_raw_field(raw: str | None) -> list[str]:
    """Decode a raw encoded field into its list of strings."""
    text = (raw or "").strip()
    if not text or text == "[]":
        return []
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return _legacy_split(text)

    if isinstance(data, list):
        return [item if isinstance(item, str) else json.dumps(item) for item in data]
    if isinstance(data, str):
        return [data] if data else []
    return _legacy_split(text)


def _legacy_split(text: str) -> list[str]:
    """Old delimiter-based decoding for arrays that are not valid JSON."""
    inner = text.removeprefix("[").removesuffix("]")
    if '"' in inner:
        pieces = LEGACY_SEPARATOR_RE.split(inner)
    else:
        pieces = inner.split(",")

    items = []
    for piece in pieces:
        item = piece.strip(" \t\r\n\"',")
        if item:
            items.append(item)
    return items


def decode_tag_items(raw: str | None) -> list[TagItem]:
    return [TagItem(value=s.strip()) for s in decode_raw_field(raw) if s.strip()]


def decode_parameter_items(raw: str | None) -> list[MetadataItem]:
    items: list[MetadataItem] = []
    for line in decode_raw_field(raw):
        if line.strip() == AUTH_SENTINEL:
            items.append(AuthRequired())
        else:
            items.append(PlainText(text=line))
    return items


def decode_response_items(raw: str | None) -> list[MetadataItem]:
    items: list[MetadataItem] = []
    for line in decode_raw_field(raw):
        if line.startswith(ERROR_TYPE_PREFIX):
            # Drop module qualifiers such as "crate::errors::AppError"
            name = line[len(ERROR_TYPE_PREFIX):].strip().split("::")[-1]
            items.append(DefaultErrorType(name=name))
        else:
            items.append(PlainText(text=line))
    return items


def decode_request_body_items(raw: str | None) -> list[MetadataItem]:
    items: list[MetadataItem] = []
    for index, line in enumerate(decode_raw_field(raw)):
        if index == 0 and line.startswith(EXPLICIT_TYPE_PREFIX):
            items.append(ExplicitType(name=line[len(EXPLICIT_TYPE_PREFIX):].strip()))
        else:
            items.append(PlainText(text=line))
    return items


def decode_handler(record: HandlerRecord) -> HandlerMetadata:
    """Decode all raw fields of a handler record into tagged items."""
    return HandlerMetadata(
        function_name=record.function_name,
        summary=record.summary,
        description=record.description,
        tags=decode_tag_items(record.tags),
        parameters=decode_parameter_items(record.parameters),
        responses=decode_response_items(record.responses),
        request_body=decode_request_body_items(record.request_body),
        raw_request_body=record.request_body,
    )


def _split_name_and_kind(left: str) -> tuple[str, str] | None:
    """Split ``"name (kind)"`` into its two parts."""
    start = left.find("(")
    end = left.find(")")
    if start == -1 or end <= start:
        return None
    name = left[:start].strip()
    kind = left[start + 1:end].strip()
    if not name or not kind:
        return None
    return name, kind


def parse_description_metadata(description: str) -> tuple[str, str | None, str | None]:
    """Pull a trailing ``[example: v, default: v]`` block off a description.

    Returns (clean_description, example, default). Unknown keys are ignored.
    """
    start = description.rfind("[")
    if start == -1:
        return description, None, None
    end = description.find("]", start)
    if end == -1:
        return description, None, None

    example = None
    default = None
    for part in description[start + 1:end].split(","):
        key, sep, value = part.strip().partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "example":
            example = value.strip()
        elif key == "default":
            default = value.strip()

    return description[:start].strip(), example, default


def parse_parameter(text: str) -> ParsedParameter:
    """Parse one parameter line, falling back to an ``unknown`` query parameter."""
    left, sep, right = text.partition(":")
    if sep:
        parts = _split_name_and_kind(left.strip())
        if parts:
            name, location = parts
            description, example, default = parse_description_metadata(right.strip())
            return ParsedParameter(
                name=name,
                location=location,
                description=description,
                required=location == "path",
                example=example,
                default=default if location != "path" else None,
            )

    return ParsedParameter(name="unknown", location="query", description=text, required=False)


def parse_parameters(items: list[MetadataItem]) -> list[ParsedParameter]:
    return [parse_parameter(item.text) for item in items if isinstance(item, PlainText)]


def parse_response_line(text: str) -> ParsedResponse | None:
    """Parse ``"<code>: <description>"``; anything without a 3-digit code is None."""
    code, sep, description = text.partition(":")
    code = code.strip()
    if not sep or len(code) != 3 or not (code.isascii() and code.isdigit()):
        return None
    return ParsedResponse(status_code=code, description=description.strip())


def parse_responses(items: list[MetadataItem]) -> list[ParsedResponse]:
    responses = []
    for item in items:
        if not isinstance(item, PlainText):
            continue
        response = parse_response_line(item.text)
        if response is not None:
            responses.append(response)
    return responses


def parse_request_body(items: list[MetadataItem]) -> ParsedRequestBody:
    """Build an inline request body from content-type, field and description lines."""
    description = "Request body"
    content_type = None
    properties: dict[str, dict] = {}

    for item in items:
        if not isinstance(item, PlainText):
            continue
        line = item.text.strip()
        if not line:
            continue
        if CONTENT_TYPE_MARKER in line:
            mime = line.split(CONTENT_TYPE_MARKER, 1)[1].strip()
            if mime:
                content_type = mime
        elif line.startswith("- "):
            field = _parse_field_line(line[2:])
            if field:
                name, schema = field
                properties[name] = schema
        else:
            description = line

    body = ParsedRequestBody(description=description, properties=properties)
    if content_type:
        body.content_type = content_type
    return body


def _parse_field_line(text: str) -> tuple[str, dict] | None:
    left, sep, right = text.partition(":")
    if not sep:
        return None
    parts = _split_name_and_kind(left.strip())
    if not parts:
        return None
    name, field_type = parts
    return name, {"type": field_type, "description": right.strip()}
