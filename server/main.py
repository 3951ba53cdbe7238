# server/main.py
import logging
import sys

import click
from fastmcp import FastMCP

from app.config import Settings
from app.di import Container, build_container
from app.errors import ConfigError
from app.logging import configure_logging
from server.registry import build_tool_registry, register_into_fastmcp

logger = logging.getLogger(__name__)


def create_app(container: Container) -> FastMCP:
    """
    Create the FastMCP host and register every tool from the shared registry.
    Keep the server (protocol) separate from tool/service logic.
    """
    s = container.settings
    mcp = FastMCP(s.SERVER_NAME, version=s.SERVER_VERSION)
    register_into_fastmcp(mcp, build_tool_registry(container))
    return mcp


@click.command()
@click.argument("directories", nargs=-1)
@click.option("--transport", type=click.Choice(["stdio", "http"]), default="stdio", show_default=True,
              help="stdio: launched by the client; http: JSON-RPC endpoint on MCP_HTTP_HOST:MCP_HTTP_PORT")
def cli(directories, transport):
    """Secure MCP filesystem server restricted to DIRECTORIES (or ALLOWED_DIRECTORIES)."""
    settings = Settings()
    configure_logging(settings.LOG_LEVEL)

    if not directories and not settings.allowed_directories():
        click.echo("Usage: python -m server.main <allowed-directory> [additional-directories...]", err=True)
        sys.exit(1)
    try:
        container = build_container(settings, list(directories))
    except ConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    logger.info("Allowed directories: %s", container.roots.describe())

    if transport == "http":
        import uvicorn
        from server.http_app import create_http_app

        app = create_http_app(build_tool_registry(container), settings)
        uvicorn.run(app, host=settings.MCP_HTTP_HOST, port=settings.MCP_HTTP_PORT)
        return

    logger.info("Secure MCP Filesystem Server running on stdio")
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    create_app(container).run(transport="stdio")


if __name__ == "__main__":
    cli()
