"""Assembler settings: document constants, security scheme and matching tables."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

OPENAPI_VERSION = "3.0.0"
DEFAULT_SECURITY_SCHEME = "sessionAuth"
DEFAULT_SECURITY_HEADER = "x-session-secret"


class AssemblerConfig(BaseModel):
    """Tunable constants used while assembling a document."""

    openapi_version: str = OPENAPI_VERSION
    security_scheme_name: str = DEFAULT_SECURITY_SCHEME
    security_header: str = DEFAULT_SECURITY_HEADER
    security_description: str = "API session token for authentication"
    unauthorized_description: str = "Authentication token required or invalid"
    error_suffix: str = "Error"
    # legacy error type name -> registered schema name
    error_aliases: dict[str, str] = Field(default_factory=lambda: {"AppError": "ErrorResponse"})
    # (keyword in response description, fragment in schema name)
    keyword_pairings: list[tuple[str, str]] = Field(
        default_factory=lambda: [("user", "User"), ("greeting", "Greet"), ("hello", "Hello")]
    )


def load_config(file_path: Path | None = None) -> AssemblerConfig:
    """Load settings from a YAML file; no file means all defaults."""
    if file_path is None:
        return AssemblerConfig()
    data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
    return AssemblerConfig.model_validate(data)
