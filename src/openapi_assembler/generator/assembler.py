"""Document assembler: builds an OpenAPI document from registries and routes.

Pipeline for one ``openapi_document()`` call:

1. clear the used schema set
2. group routes by path, in first-registration order
3. build each operation from its decoded handler metadata, recording the
   schemas its request body and responses reference
4. follow ``$ref`` links to close the used set
5. emit info, paths, components (used schemas, security scheme) and tags

A router is single-shot per call and not safe to assemble from several
threads at once; independent routers over the same registries are.
"""

import logging

import yaml
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from openapi_assembler.config import AssemblerConfig
from openapi_assembler.generator.document import (
    Components,
    Contact,
    ExternalDocs,
    Info,
    License,
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
from openapi_assembler.generator.manual import render_json
from openapi_assembler.parser.base import (
    JSON_CONTENT_TYPE,
    HandlerMetadata,
    ParsedParameter,
    ParsedRequestBody,
    ParsedResponse,
)
from openapi_assembler.parser.metadata import decode_handler, parse_parameters, parse_responses
from openapi_assembler.registry.base import (
    HandlerRecord,
    Registry,
    SchemaRecord,
    handler_registry,
    schema_registry,
)
from openapi_assembler.registry.routes import SUPPORTED_METHODS, MethodRouter, RouteEntry
from openapi_assembler.resolver.schemas import SCHEMA_REF_PREFIX, SchemaResolver

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_DESCRIPTION = "Successful response"
MISSING_DOCS_DESCRIPTION = "No description available"
EMPTY_OBJECT_SCHEMA = {"type": "object", "properties": {}}

SERIALIZATION_ERRORS = (ValidationError, PydanticSerializationError, TypeError, ValueError, RecursionError)


def to_openapi_path(path: str) -> str:
    """Convert ``:name`` placeholder segments to ``{name}``."""
    segments = []
    for segment in path.split("/"):
        if segment.startswith(":"):
            segments.append("{" + segment[1:] + "}")
        else:
            segments.append(segment)
    return "/".join(segments)


def _ref(name: str) -> dict:
    return {"$ref": SCHEMA_REF_PREFIX + name}


class ApiRouter:
    """Route table plus API metadata, assembled into an OpenAPI document on demand."""

    def __init__(
        self,
        title: str,
        version: str,
        handlers: Registry[HandlerRecord] | None = None,
        schemas: Registry[SchemaRecord] | None = None,
        config: AssemblerConfig | None = None,
    ):
        self.config = config or AssemblerConfig()
        self.handlers = handler_registry if handlers is None else handlers
        self.schemas = schema_registry if schemas is None else schemas
        self.info = Info(title=title, version=version)
        self.tags: list[Tag] = []
        self.routes: list[RouteEntry] = []
        self.resolver = SchemaResolver(self.schemas, self.config)

    @property
    def used_schemas(self) -> set[str]:
        return self.resolver.used

    # -- builder -----------------------------------------------------------

    def description(self, description: str) -> "ApiRouter":
        self.info.description = description
        return self

    def terms_of_service(self, url: str) -> "ApiRouter":
        self.info.terms_of_service = url
        return self

    def contact(self, name: str | None = None, url: str | None = None, email: str | None = None) -> "ApiRouter":
        self.info.contact = Contact(name=name, url=url, email=email)
        return self

    def contact_email(self, email: str) -> "ApiRouter":
        return self.contact(email=email)

    def license(self, name: str, url: str | None = None) -> "ApiRouter":
        self.info.license = License(name=name, url=url)
        return self

    def tag(self, name: str, description: str | None = None) -> "ApiRouter":
        self.tags.append(Tag(name=name, description=description))
        return self

    def tag_with_docs(
        self,
        name: str,
        description: str | None,
        docs_description: str | None,
        docs_url: str,
    ) -> "ApiRouter":
        docs = ExternalDocs(url=docs_url, description=docs_description)
        self.tags.append(Tag(name=name, description=description, external_docs=docs))
        return self

    def route(self, path: str, method_router: MethodRouter | dict) -> "ApiRouter":
        """Register every method handled at ``path``."""
        if isinstance(method_router, dict):
            method_router = MethodRouter.from_mapping(method_router)
        self.routes.extend(method_router.entries(path))
        return self

    def merge(self, other: "ApiRouter") -> "ApiRouter":
        """Absorb another router's routes and tags (by name).

        Schema usage is not carried over; it is recomputed on every assembly.
        """
        self.routes.extend(other.routes)
        known = {t.name for t in self.tags}
        for tag in other.tags:
            if tag.name not in known:
                self.tags.append(tag)
                known.add(tag.name)
        return self

    # -- assembly ----------------------------------------------------------

    def group_routes_by_path(self) -> dict[str, list[RouteEntry]]:
        groups: dict[str, list[RouteEntry]] = {}
        for route in self.routes:
            groups.setdefault(route.path, []).append(route)
        return groups

    def _build_parameters(self, params: list[ParsedParameter]) -> list[Parameter]:
        return [
            Parameter(
                name=p.name,
                location=p.location,
                description=p.description,
                required=p.required,
                schema_=p.schema_dict(),
            )
            for p in params
        ]

    def _build_request_body(self, body: ParsedRequestBody) -> RequestBody:
        return RequestBody(
            description=body.description,
            content={body.content_type: MediaType(schema_=body.schema_dict())},
            required=body.required,
        )

    def _build_response(self, response: ParsedResponse) -> Response:
        code = response.status_code
        if code == "204":
            return Response(description=response.description)
        if code.startswith("2"):
            schema = _ref(response.schema_ref) if response.schema_ref else dict(EMPTY_OBJECT_SCHEMA)
            return Response(
                description=response.description,
                content={JSON_CONTENT_TYPE: MediaType(schema_=schema)},
            )
        if response.schema_ref:
            return Response(
                description=response.description,
                content={JSON_CONTENT_TYPE: MediaType(schema_=_ref(response.schema_ref))},
            )
        return Response(description=response.description)

    def _undocumented_operation(self, route: RouteEntry) -> Operation:
        return Operation(
            summary=route.summary or f"{route.method} {route.path}",
            description=MISSING_DOCS_DESCRIPTION,
            handler_function=route.function_name,
            responses={"200": Response(description=DEFAULT_RESPONSE_DESCRIPTION)},
        )

    def build_operation(self, route: RouteEntry, metadata: HandlerMetadata | None) -> Operation:
        """Build one operation, recording referenced schemas as a side effect."""
        if metadata is None:
            return self._undocumented_operation(route)

        tags = [t.value for t in metadata.tags]
        parameters = self._build_parameters(parse_parameters(metadata.parameters))

        request_body = None
        if metadata.has_request_body:
            request_body = self._build_request_body(self.resolver.resolve_request_body(metadata))

        parsed = parse_responses(metadata.responses)
        security = None
        if metadata.requires_auth:
            security = [{self.config.security_scheme_name: []}]
            if not any(r.status_code == "401" for r in parsed):
                parsed.append(ParsedResponse(status_code="401", description=self.config.unauthorized_description))

        responses: dict[str, Response] = {}
        for response in parsed:
            resolved = self.resolver.resolve_response(response, metadata.default_error_type)
            responses[resolved.status_code] = self._build_response(resolved)
        if not responses:
            responses["200"] = Response(description=DEFAULT_RESPONSE_DESCRIPTION)

        return Operation(
            summary=metadata.summary,
            description=metadata.description,
            handler_function=route.function_name,
            tags=tags or None,
            parameters=parameters or None,
            request_body=request_body,
            responses=responses,
            security=security,
        )

    def _decoded_handlers(self) -> dict[str, HandlerMetadata]:
        decoded: dict[str, HandlerMetadata] = {}
        for record in self.handlers:
            if record.function_name not in decoded:
                decoded[record.function_name] = decode_handler(record)
        return decoded

    def build_paths(self, decoded: dict[str, HandlerMetadata]) -> dict[str, PathItem]:
        paths: dict[str, PathItem] = {}
        for path, routes in self.group_routes_by_path().items():
            item = PathItem()
            for route in routes:
                if route.method not in SUPPORTED_METHODS:
                    logger.warning("Unsupported HTTP method %s for %s; skipped", route.method, path)
                    continue
                operation = self.build_operation(route, decoded.get(route.function_name))
                item.set_operation(route.method, operation)
            paths[to_openapi_path(path)] = item
        return paths

    def has_auth_endpoints(self, decoded: dict[str, HandlerMetadata]) -> bool:
        return any(
            route.function_name in decoded and decoded[route.function_name].requires_auth
            for route in self.routes
            if route.method in SUPPORTED_METHODS
        )

    def build_security_schemes(self) -> dict[str, SecurityScheme]:
        scheme = SecurityScheme.api_key(self.config.security_header, "header").with_description(
            self.config.security_description
        )
        return {self.config.security_scheme_name: scheme}

    def build_components(self, has_auth: bool) -> Components | None:
        schemas = {record.type_name: record.parsed() for record in self.resolver.used_records()}
        if not schemas and not has_auth:
            return None
        return Components(
            schemas=schemas or None,
            security_schemes=self.build_security_schemes() if has_auth else None,
        )

    def _assemble(self) -> OpenAPI:
        self.resolver.reset()
        decoded = self._decoded_handlers()
        paths = self.build_paths(decoded)
        self.resolver.close_over_references()
        return OpenAPI(
            openapi=self.config.openapi_version,
            info=self.info.model_copy(deep=True),
            paths=paths,
            components=self.build_components(self.has_auth_endpoints(decoded)),
            tags=[t.model_copy(deep=True) for t in self.tags] or None,
        )

    def openapi_document(self) -> OpenAPI:
        """Assemble the typed document; never raises."""
        try:
            return self._assemble()
        except SERIALIZATION_ERRORS:
            logger.exception("Failed to assemble OpenAPI document; returning fallback")
            return OpenAPI.fallback()

    def openapi_json(self, indent: int | None = None) -> str:
        """Typed document serialized generically to JSON."""
        document = self.openapi_document()
        try:
            return document.to_json(indent=indent)
        except SERIALIZATION_ERRORS:
            logger.exception("Failed to serialize OpenAPI spec; returning fallback")
            return OpenAPI.fallback().to_json()

    def openapi_json_manual(self) -> str:
        """Hand-assembled JSON string with the same members as ``openapi_json``."""
        document = self.openapi_document()
        try:
            return render_json(document)
        except SERIALIZATION_ERRORS:
            logger.exception("Failed to render OpenAPI spec; returning fallback")
            return OpenAPI.fallback().to_json()

    def openapi_yaml(self) -> str:
        """Top-level stub only: openapi, info title/version and empty paths."""
        stub = {
            "openapi": self.config.openapi_version,
            "info": {"title": self.info.title, "version": self.info.version},
            "paths": {},
        }
        return yaml.safe_dump(stub, sort_keys=False, allow_unicode=True)

    # -- schema usage ------------------------------------------------------

    def unused_schemas(self) -> list[str]:
        """Registered schemas no operation reaches; assembles first if needed."""
        if not self.resolver.used:
            self.openapi_document()
        return self.resolver.unused()

    def unused_schemas_current(self) -> list[str]:
        """Unused schemas according to the last assembly, without re-assembling."""
        return self.resolver.unused()

    def warn_unused_schemas(self) -> list[str]:
        unused = self.unused_schemas()
        if unused:
            logger.warning(
                "The following schemas are defined but never used in the OpenAPI spec: %s",
                ", ".join(unused),
            )
        return unused
