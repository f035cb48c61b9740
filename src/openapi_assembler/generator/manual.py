"""Hand-assembled JSON rendering of an OpenAPI document.

Produces the same members as ``OpenAPI.to_json`` by writing each object
out field by field. Scalars and free-form schema objects are encoded with
``json.dumps``; everything else is concatenated here.
"""

import json
from typing import Any

from openapi_assembler.generator.document import (
    Components,
    Info,
    MediaType,
    OpenAPI,
    Operation,
    Parameter,
    PathItem,
    RequestBody,
    Response,
    SecurityScheme,
    Tag,
)

METHOD_ORDER = ("get", "post", "put", "delete", "patch", "head", "options")


def _str(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _raw(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _obj(members: list[tuple[str, str | None]]) -> str:
    """Join pre-rendered members, skipping the ones rendered as None."""
    body = ",".join(f"{_str(key)}:{value}" for key, value in members if value is not None)
    return "{" + body + "}"


def _opt_str(value: str | None) -> str | None:
    return None if value is None else _str(value)


def render_info(info: Info) -> str:
    contact = None
    if info.contact is not None:
        contact = _obj([
            ("name", _opt_str(info.contact.name)),
            ("url", _opt_str(info.contact.url)),
            ("email", _opt_str(info.contact.email)),
        ])
    license_ = None
    if info.license is not None:
        license_ = _obj([("name", _str(info.license.name)), ("url", _opt_str(info.license.url))])
    return _obj([
        ("title", _str(info.title)),
        ("version", _str(info.version)),
        ("description", _opt_str(info.description)),
        ("termsOfService", _opt_str(info.terms_of_service)),
        ("contact", contact),
        ("license", license_),
    ])


def _render_content(content: dict[str, MediaType] | None) -> str | None:
    if content is None:
        return None
    members = []
    for mime, media in content.items():
        schema = None if media.schema_ is None else _raw(media.schema_)
        members.append((mime, _obj([("schema", schema)])))
    return _obj(members)


def render_parameter(param: Parameter) -> str:
    return _obj([
        ("name", _str(param.name)),
        ("in", _str(param.location)),
        ("description", _opt_str(param.description)),
        ("required", "true" if param.required else "false"),
        ("schema", _raw(param.schema_)),
    ])


def render_request_body(body: RequestBody) -> str:
    return _obj([
        ("description", _opt_str(body.description)),
        ("content", _render_content(body.content)),
        ("required", "true" if body.required else "false"),
    ])


def render_response(response: Response) -> str:
    return _obj([
        ("description", _str(response.description)),
        ("content", _render_content(response.content)),
    ])


def render_operation(operation: Operation) -> str:
    tags = None
    if operation.tags is not None:
        tags = "[" + ",".join(_str(t) for t in operation.tags) + "]"
    parameters = None
    if operation.parameters is not None:
        parameters = "[" + ",".join(render_parameter(p) for p in operation.parameters) + "]"
    request_body = None
    if operation.request_body is not None:
        request_body = render_request_body(operation.request_body)
    responses = _obj([(code, render_response(r)) for code, r in operation.responses.items()])
    security = None
    if operation.security is not None:
        security = _raw(operation.security)

    return _obj([
        ("summary", _opt_str(operation.summary)),
        ("description", _opt_str(operation.description)),
        ("x-handler-function", _opt_str(operation.handler_function)),
        ("tags", tags),
        ("parameters", parameters),
        ("requestBody", request_body),
        ("responses", responses),
        ("security", security),
    ])


def render_path_item(item: PathItem) -> str:
    members = []
    for method in METHOD_ORDER:
        operation = getattr(item, method)
        if operation is not None:
            members.append((method, render_operation(operation)))
    return _obj(members)


def render_security_scheme(scheme: SecurityScheme) -> str:
    return _obj([
        ("type", _str(scheme.scheme_type)),
        ("description", _opt_str(scheme.description)),
        ("name", _opt_str(scheme.name)),
        ("in", _opt_str(scheme.location)),
        ("scheme", _opt_str(scheme.scheme)),
        ("bearerFormat", _opt_str(scheme.bearer_format)),
    ])


def render_components(components: Components) -> str:
    schemas = None
    if components.schemas is not None:
        schemas = _obj([(name, _raw(schema)) for name, schema in components.schemas.items()])
    security_schemes = None
    if components.security_schemes is not None:
        security_schemes = _obj([
            (name, render_security_scheme(s)) for name, s in components.security_schemes.items()
        ])
    return _obj([("schemas", schemas), ("securitySchemes", security_schemes)])


def render_tag(tag: Tag) -> str:
    external_docs = None
    if tag.external_docs is not None:
        external_docs = _obj([
            ("url", _str(tag.external_docs.url)),
            ("description", _opt_str(tag.external_docs.description)),
        ])
    return _obj([
        ("name", _str(tag.name)),
        ("description", _opt_str(tag.description)),
        ("externalDocs", external_docs),
    ])


def render_json(document: OpenAPI) -> str:
    """Render a complete document as a compact JSON string."""
    paths = _obj([(path, render_path_item(item)) for path, item in document.paths.items()])
    components = None
    if document.components is not None:
        components = render_components(document.components)
    tags = None
    if document.tags is not None:
        tags = "[" + ",".join(render_tag(t) for t in document.tags) + "]"

    return _obj([
        ("openapi", _str(document.openapi)),
        ("info", render_info(document.info)),
        ("paths", paths),
        ("components", components),
        ("tags", tags),
    ])
