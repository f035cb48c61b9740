"""Bootstrap file loader.

Populates handler and schema registries and a router from one YAML or
JSON file, standing in for the startup step that registers documented
handlers and types:

    info: {title: Pets, version: 1.0.0}
    tags: [{name: pets, description: Pet operations}]
    handlers:
      - function_name: get_pet
        summary: Get a pet
        parameters: ["id (path): Pet ID"]
        responses: ["200: Returns Pet"]
    schemas:
      - type_name: Pet
        schema: {type: object}
    routes:
      /pets/:id: {get: get_pet}
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from openapi_assembler.config import AssemblerConfig
from openapi_assembler.generator.assembler import ApiRouter
from openapi_assembler.registry.base import (
    HandlerRecord,
    Registry,
    SchemaRecord,
    register_handler,
    register_schema,
)


class BootstrapError(ValueError):
    """Raised when a bootstrap file cannot be read into registries."""


class ContactEntry(BaseModel):
    name: str | None = None
    url: str | None = None
    email: str | None = None


class LicenseEntry(BaseModel):
    name: str
    url: str | None = None


class InfoEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    title: str = "API"
    version: str = "0.1.0"
    description: str | None = None
    terms_of_service: str | None = Field(default=None, alias="termsOfService")
    contact: ContactEntry | None = None
    license: LicenseEntry | None = None


class ExternalDocsEntry(BaseModel):
    url: str
    description: str | None = None


class TagEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str | None = None
    external_docs: ExternalDocsEntry | None = Field(default=None, alias="externalDocs")


class HandlerEntry(BaseModel):
    function_name: str
    summary: str = ""
    description: str = ""
    parameters: str | list[str] | None = None
    responses: str | list[str] | None = None
    request_body: str | list[str] | None = None
    tags: str | list[str] | None = None


class SchemaEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type_name: str
    schema_: dict | None = Field(default=None, alias="schema")
    json_text: str | None = Field(default=None, alias="schema_json")


class RouteEntryModel(BaseModel):
    path: str
    method: str
    handler: str


class Bootstrap(BaseModel):
    """Contents of a bootstrap file."""

    info: InfoEntry = Field(default_factory=InfoEntry)
    tags: list[TagEntry] = []
    handlers: list[HandlerEntry] = []
    schemas: list[SchemaEntry] = []
    routes: list[RouteEntryModel] | dict[str, dict[str, str]] = []

    def handler_registry(self) -> Registry[HandlerRecord]:
        registry: Registry[HandlerRecord] = Registry()
        for entry in self.handlers:
            register_handler(**entry.model_dump(), registry=registry)
        return registry

    def schema_registry(self) -> Registry[SchemaRecord]:
        registry: Registry[SchemaRecord] = Registry()
        for entry in self.schemas:
            if entry.schema_ is not None:
                register_schema(entry.type_name, entry.schema_, registry=registry)
            else:
                register_schema(entry.type_name, entry.json_text or "{}", registry=registry)
        return registry

    def route_map(self) -> dict[str, dict[str, str]]:
        """Routes as path -> {method: handler}, in file order."""
        if isinstance(self.routes, dict):
            return {path: dict(methods) for path, methods in self.routes.items()}
        routes: dict[str, dict[str, str]] = {}
        for route in self.routes:
            routes.setdefault(route.path, {})[route.method.upper()] = route.handler
        return routes

    def build_router(self, config: AssemblerConfig | None = None) -> ApiRouter:
        router = ApiRouter(
            self.info.title,
            self.info.version,
            handlers=self.handler_registry(),
            schemas=self.schema_registry(),
            config=config,
        )
        if self.info.description:
            router.description(self.info.description)
        if self.info.terms_of_service:
            router.terms_of_service(self.info.terms_of_service)
        if self.info.contact:
            router.contact(**self.info.contact.model_dump())
        if self.info.license:
            router.license(self.info.license.name, self.info.license.url)
        for tag in self.tags:
            if tag.external_docs:
                router.tag_with_docs(tag.name, tag.description, tag.external_docs.description, tag.external_docs.url)
            else:
                router.tag(tag.name, tag.description)
        for path, methods in self.route_map().items():
            router.route(path, methods)
        return router


def load_bootstrap(file_path: Path) -> Bootstrap:
    """Read a YAML or JSON bootstrap file."""
    text = file_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BootstrapError(f"{file_path}: not valid YAML/JSON ({e})") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise BootstrapError(f"{file_path}: top level must be a mapping")

    try:
        return Bootstrap.model_validate(data)
    except ValidationError as e:
        raise BootstrapError(f"{file_path}: {e}") from e
