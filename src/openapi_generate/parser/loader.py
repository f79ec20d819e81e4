"""Retrieve raw OpenAPI documents from JSON text, URLs or local files.

Retrieval is the only I/O in the pipeline. Local ``$ref`` pointers are left
in place; the schema converter resolves component references lazily.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
import yaml

from openapi_generate.envelope import DocumentParseError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0


def is_json_text(source: str) -> bool:
    return source.strip().startswith("{")


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def source_tag(source: str | Mapping[str, Any]) -> str:
    """Label recorded in the envelope meta for where a document came from."""
    if isinstance(source, Mapping):
        return "document"
    if is_json_text(source):
        return "json_input"
    return source


def decode_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentParseError("Invalid JSON provided", {"error": str(e)}) from e


def _decode_document(text: str, location: str) -> Any:
    # YAML is a superset of JSON, so both document flavours load here.
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise UpstreamError(
            "Failed to fetch or parse OpenAPI spec from URL",
            {"url": location, "error": str(e)},
        ) from e


async def fetch_document(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> Any:
    """Download and decode a document over HTTP(S)."""
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            resp = await client.get(url)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        raise UpstreamError(
            "Failed to fetch or parse OpenAPI spec from URL",
            {"url": url, "error": str(e) or e.__class__.__name__},
        ) from e
    logger.info("Fetched %s (%d bytes)", url, len(resp.content))
    return _decode_document(resp.text, url)


def read_document(path: str | Path) -> Any:
    """Read and decode a document from the local filesystem."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise UpstreamError(
            "Failed to fetch or parse OpenAPI spec from URL",
            {"url": str(path), "error": str(e)},
        ) from e
    return _decode_document(text, str(path))


async def load_document(
    source: str | Mapping[str, Any],
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> Any:
    """Turn any supported source form into a decoded document."""
    if isinstance(source, Mapping):
        return source
    if is_json_text(source):
        return decode_json(source)
    if is_url(source):
        return await fetch_document(source, timeout=timeout)
    return read_document(source)
