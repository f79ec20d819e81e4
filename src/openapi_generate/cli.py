"""CLI entry point for openapi-generate."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from openapi_generate.config import ConfigError, ServerConfig, load_config
from openapi_generate.envelope import ErrorResponse, ToolResponse
from openapi_generate.generator.scaffold import LANGUAGES, ScaffoldOptions, generate_server_scaffold
from openapi_generate.generator.tools import generate_tool_schemas
from openapi_generate.parser.openapi import openapi_parse

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _config(**overrides) -> ServerConfig:
    try:
        return load_config(**overrides)
    except ConfigError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


def _parse(source: str) -> ToolResponse:
    config = _config()
    return asyncio.run(openapi_parse(source, timeout=config.fetch_timeout))


def _emit(envelope: ToolResponse, output: Path | None = None):
    """Print or save an envelope; a failure envelope ends the command with status 1."""
    text = json.dumps(envelope.to_dict(), indent=2)
    if output is not None and not isinstance(envelope, ErrorResponse):
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"Saved to {output}")
    else:
        click.echo(text)
    if isinstance(envelope, ErrorResponse):
        sys.exit(1)


@click.group()
@click.option("--log-level", default="WARNING", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging verbosity (written to stderr).")
def main(log_level: str):
    """openapi-generate: parse OpenAPI documents into tool schemas and server scaffolds."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("source")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Write the JSON result to this file.")
def parse(source: str, output: Path | None):
    """Parse an OpenAPI 3.x document (URL, file path or JSON text)."""
    _emit(_parse(source), output)


@main.command()
@click.argument("source")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Write the JSON result to this file.")
def tools(source: str, output: Path | None):
    """Generate tool schemas for every operation of a document."""
    parsed = _parse(source)
    if isinstance(parsed, ErrorResponse):
        _emit(parsed)
    _emit(generate_tool_schemas(parsed.data), output)


@main.command()
@click.argument("source")
@click.option("-o", "--output", required=True, type=click.Path(file_okay=False, path_type=Path), help="Output directory for the generated server.")
@click.option("--language", required=True, type=click.Choice(LANGUAGES), help="Target language.")
@click.option("--server-name", default=None, help="Name of the generated server.")
@click.option("--server-version", default=None, help="Version of the generated server.")
@click.option("--author", default=None, help="Author recorded in the package metadata.")
@click.option("--base-url", default=None, help="Base URL the generated tools call.")
@click.option("--no-tests", is_flag=True, default=False, help="Skip generated test files.")
def scaffold(
    source: str,
    output: Path,
    language: str,
    server_name: str | None,
    server_version: str | None,
    author: str | None,
    base_url: str | None,
    no_tests: bool,
):
    """Generate a tool server scaffold from a document."""
    parsed = _parse(source)
    if isinstance(parsed, ErrorResponse):
        _emit(parsed)

    options = ScaffoldOptions(
        server_name=server_name,
        server_version=server_version,
        author=author,
        base_url=base_url,
        include_tests=not no_tests,
    )
    result = generate_server_scaffold(parsed.data, language, options)
    if isinstance(result, ErrorResponse):
        _emit(result)

    for generated in result.data.files:
        file_path = output / generated.path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(generated.content, encoding="utf-8")
        click.echo(f"  Created {file_path}")

    click.echo(f"Generated {len(result.data.files)} files ({result.data.tool_count} tools) in {output}")


@main.command()
@click.option("--host", default=None, help="Interface to bind (overrides MCP_HOST).")
@click.option("--port", default=None, type=int, help="Port to listen on (overrides MCP_PORT).")
def serve(host: str | None, port: int | None):
    """Run the JSON-RPC HTTP endpoint."""
    from openapi_generate.server.http import serve as run_server

    config = _config(host=host, port=port)
    click.echo(f"Serving {config.name} on http://{config.host}:{config.port}/mcp")
    run_server(config)
