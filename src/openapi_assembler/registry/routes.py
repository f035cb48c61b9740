"""Route table entries and per-path method routers."""

from typing import Callable

from pydantic import BaseModel, model_validator

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


class RouteEntry(BaseModel):
    """One (path, method, handler) triple in the route table."""

    path: str  # /users/:id
    method: str  # GET / POST / ...
    function_name: str
    summary: str | None = None

    @model_validator(mode="after")
    def _fill_summary(self):
        self.method = self.method.upper()
        if self.summary is None:
            self.summary = f"{self.method} {self.path}"
        return self


def handler_name(handler: Callable | str) -> str:
    """Return the stable identifier of a handler: its name, or the string itself."""
    if isinstance(handler, str):
        return handler
    name = getattr(handler, "__name__", None)
    if name is None:
        name = type(handler).__name__
    return name.split(".")[-1]


class MethodRouter:
    """Maps HTTP methods to handler names for a single path."""

    def __init__(self):
        self.handler_names: dict[str, str] = {}

    def with_handler_name(self, method: str, name: str) -> "MethodRouter":
        self.handler_names[method.upper()] = name
        return self

    def get_handler_name(self, method: str) -> str | None:
        return self.handler_names.get(method.upper())

    def get(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("GET", handler_name(handler))

    def post(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("POST", handler_name(handler))

    def put(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("PUT", handler_name(handler))

    def delete(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("DELETE", handler_name(handler))

    def patch(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("PATCH", handler_name(handler))

    def head(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("HEAD", handler_name(handler))

    def options(self, handler: Callable | str) -> "MethodRouter":
        return self.with_handler_name("OPTIONS", handler_name(handler))

    @classmethod
    def from_mapping(cls, mapping: dict[str, Callable | str]) -> "MethodRouter":
        router = cls()
        for method, handler in mapping.items():
            router.with_handler_name(method, handler_name(handler))
        return router

    def entries(self, path: str) -> list[RouteEntry]:
        return [
            RouteEntry(path=path, method=method, function_name=name)
            for method, name in self.handler_names.items()
        ]


def get(handler: Callable | str) -> MethodRouter:
    return MethodRouter().get(handler)


def post(handler: Callable | str) -> MethodRouter:
    return MethodRouter().post(handler)


def put(handler: Callable | str) -> MethodRouter:
    return MethodRouter().put(handler)


def delete(handler: Callable | str) -> MethodRouter:
    return MethodRouter().delete(handler)


def patch(handler: Callable | str) -> MethodRouter:
    return MethodRouter().patch(handler)


def head(handler: Callable | str) -> MethodRouter:
    return MethodRouter().head(handler)


def options(handler: Callable | str) -> MethodRouter:
    return MethodRouter().options(handler)
