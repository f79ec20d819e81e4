"""Detect the OpenAPI version family of a loaded document."""

from collections.abc import Mapping
from typing import Any


def detect_openapi_version(doc: Any) -> str:
    """Return the declared version string, or 'unknown'.

    Looks at ``openapi`` first and falls back to ``swagger`` so that 2.0
    documents report their version when they are rejected.
    """
    if not isinstance(doc, Mapping):
        return "unknown"
    for key in ("openapi", "swagger"):
        value = doc.get(key)
        if value:
            return str(value)
    return "unknown"


def is_openapi3(doc: Any) -> bool:
    """True when ``openapi`` is a string in the 3.x family."""
    if not isinstance(doc, Mapping):
        return False
    version = doc.get("openapi")
    return isinstance(version, str) and version.startswith("3.")


def is_openapi31(doc: Any) -> bool:
    return is_openapi3(doc) and doc["openapi"].startswith("3.1")
