"""Registry records and the append-only registries that hold them.

Handler and schema records are written once, before any assembly runs,
and only read afterwards. Assemblers take the registries they read from
at construction time; the process-wide defaults below exist for callers
that populate a single global catalog at startup.
"""

import json
from typing import Generic, Iterator, TypeVar

from pydantic import BaseModel, ConfigDict

GENERIC_OBJECT_SCHEMA = {"type": "object"}


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


class HandlerRecord(BaseModel):
    """Documentation for one route handler.

    The four metadata fields are raw encoded: JSON arrays of strings in the
    metadata micro-grammar (see ``openapi_assembler.parser.metadata``).
    """

    model_config = ConfigDict(frozen=True)

    function_name: str
    summary: str = ""
    description: str = ""
    parameters: str = "[]"
    responses: str = "[]"
    request_body: str = "[]"
    tags: str = "[]"

    @property
    def key(self) -> str:
        return self.function_name


class SchemaRecord(BaseModel):
    """A named JSON Schema, kept as the text it was registered with."""

    model_config = ConfigDict(frozen=True)

    type_name: str
    json_text: str

    @property
    def key(self) -> str:
        return self.type_name

    def parsed(self) -> dict:
        """Parse the schema text, degrading to a generic object schema.

        Text that is not a JSON object, nests too deeply to decode, or uses
        the non-standard NaN/Infinity constants counts as malformed.
        """
        try:
            data = json.loads(self.json_text, parse_constant=_reject_constant)
        except (json.JSONDecodeError, ValueError, RecursionError):
            return dict(GENERIC_OBJECT_SCHEMA)
        if not isinstance(data, dict):
            return dict(GENERIC_OBJECT_SCHEMA)
        return data


T = TypeVar("T", HandlerRecord, SchemaRecord)


class Registry(Generic[T]):
    """Ordered, append-only collection of records looked up by key.

    The same key may be registered more than once; lookups return the first
    registration and nothing is ever de-duplicated or rejected.
    """

    def __init__(self, records: list[T] | None = None):
        self._records: list[T] = list(records or [])

    def register(self, record: T) -> T:
        self._records.append(record)
        return record

    def find(self, key: str) -> T | None:
        for record in self._records:
            if record.key == key:
                return record
        return None

    def keys(self) -> list[str]:
        """Distinct keys in first-registration order."""
        seen: dict[str, None] = {}
        for record in self._records:
            seen.setdefault(record.key, None)
        return list(seen)

    def __contains__(self, key: object) -> bool:
        return any(record.key == key for record in self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)


handler_registry: Registry[HandlerRecord] = Registry()
schema_registry: Registry[SchemaRecord] = Registry()


def _encode_field(value: str | list[str] | None) -> str:
    if value is None:
        return "[]"
    if isinstance(value, str):
        return value
    return json.dumps(list(value))


def register_handler(
    function_name: str,
    summary: str = "",
    description: str = "",
    parameters: str | list[str] | None = None,
    responses: str | list[str] | None = None,
    request_body: str | list[str] | None = None,
    tags: str | list[str] | None = None,
    registry: Registry[HandlerRecord] | None = None,
) -> HandlerRecord:
    """Append a handler record; list fields are JSON-encoded, strings kept raw."""
    record = HandlerRecord(
        function_name=function_name,
        summary=summary,
        description=description,
        parameters=_encode_field(parameters),
        responses=_encode_field(responses),
        request_body=_encode_field(request_body),
        tags=_encode_field(tags),
    )
    target = handler_registry if registry is None else registry
    return target.register(record)


def register_schema(
    type_name: str,
    schema: str | dict,
    registry: Registry[SchemaRecord] | None = None,
) -> SchemaRecord:
    """Append a schema record. Mappings are dumped in compact JSON form."""
    if isinstance(schema, dict):
        json_text = json.dumps(schema, separators=(",", ":"))
    else:
        json_text = schema
    record = SchemaRecord(type_name=type_name, json_text=json_text)
    target = schema_registry if registry is None else registry
    return target.register(record)
