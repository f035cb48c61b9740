"""Schema usage tracking for one assembly run.

Operations seed the used set through request body and response matching;
``close_over_references`` then follows ``$ref`` links inside the raw schema
text until nothing new is reachable. Matching walks registered names in
first-registration order and the first hit wins.
"""

import logging
import re

from openapi_assembler.config import AssemblerConfig
from openapi_assembler.parser.base import HandlerMetadata, ParsedRequestBody, ParsedResponse
from openapi_assembler.parser.metadata import parse_request_body
from openapi_assembler.registry.base import Registry, SchemaRecord

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = "#/components/schemas/"
SCHEMA_REF_RE = re.compile(r"\"\$ref\"\s*:\s*\"#/components/schemas/([^\"]*)\"")


def extract_schema_references(json_text: str) -> list[str]:
    """Names referenced via ``"$ref":"#/components/schemas/<name>"``, in order."""
    return SCHEMA_REF_RE.findall(json_text)


class SchemaResolver:
    """Decides which registered schemas an assembled document must carry."""

    def __init__(self, schemas: Registry[SchemaRecord], config: AssemblerConfig | None = None):
        self.schemas = schemas
        self.config = config or AssemblerConfig()
        self.used: set[str] = set()

    def reset(self) -> None:
        self.used.clear()

    def registered_names(self) -> list[str]:
        return self.schemas.keys()

    def mark_used(self, name: str) -> str:
        self.used.add(name)
        return name

    def resolve_request_body(self, metadata: HandlerMetadata) -> ParsedRequestBody:
        """Resolve a handler's request body, preferring registered schemas.

        An explicit ``Type:`` naming a registered schema short-circuits the
        rest of the field; otherwise the first registered name found anywhere
        in the raw text is referenced; otherwise the body is built inline.
        """
        explicit = metadata.explicit_type
        if explicit and explicit in self.schemas:
            return ParsedRequestBody(schema_ref=self.mark_used(explicit))

        for name in self.registered_names():
            if name in metadata.raw_request_body:
                return ParsedRequestBody(schema_ref=self.mark_used(name))

        return parse_request_body(metadata.request_body)

    def match_success_schema(self, description: str) -> str | None:
        lowered = description.lower()
        for name in self.registered_names():
            if name.lower() in lowered:
                return name
            for keyword, fragment in self.config.keyword_pairings:
                if keyword in description and fragment in name:
                    return name
        return None

    def match_error_schema(self, description: str, default_error_type: str | None = None) -> str | None:
        suffix = self.config.error_suffix
        names = self.registered_names()

        # Explicit mention of an error schema wins
        for name in names:
            if name.endswith(suffix) and name in description:
                return name

        if default_error_type:
            name = self.config.error_aliases.get(default_error_type, default_error_type)
            if name in self.schemas:
                return name

        if "error" in description.lower():
            for name in names:
                if name.endswith(suffix):
                    return name
        return None

    def resolve_response(self, response: ParsedResponse, default_error_type: str | None = None) -> ParsedResponse:
        """Attach at most one schema to a response, recording it as used."""
        code = response.status_code
        if code == "204":
            return response
        if code.startswith("2"):
            name = self.match_success_schema(response.description)
        else:
            name = self.match_error_schema(response.description, default_error_type)
        if name is None:
            return response
        return response.model_copy(update={"schema_ref": self.mark_used(name)})

    def close_over_references(self) -> set[str]:
        """Grow the used set with every registered schema reachable by ``$ref``."""
        found_new = True
        passes = 0
        while found_new:
            found_new = False
            passes += 1
            for name in sorted(self.used):
                record = self.schemas.find(name)
                if record is None:
                    continue
                for ref in extract_schema_references(record.json_text):
                    if ref not in self.used and ref in self.schemas:
                        self.used.add(ref)
                        found_new = True
        logger.debug("Schema closure settled after %d passes: %d schemas used", passes, len(self.used))
        return self.used

    def used_records(self) -> list[SchemaRecord]:
        """First registration of each used schema, in registry order."""
        records = []
        for name in self.registered_names():
            if name in self.used:
                records.append(self.schemas.find(name))
        return records

    def unused(self) -> list[str]:
        return sorted(name for name in self.registered_names() if name not in self.used)
