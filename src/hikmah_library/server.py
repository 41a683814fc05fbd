"""Al Hikmah Library MCP server.

A bilingual (English/Arabic) library exposed over MCP:
- Resources: the book catalog and its categories
- Tools: borrowing, bookmarks, accounts, catalog editing and the Islamic
  knowledge assistant

Run with ``hikmah-library`` (stdio by default). Logs go to stderr because
stdout carries the stdio transport.
"""

import logging
import os
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_settings
from .library import get_library
from .resources import all_resources
from .tools import all_tools

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    name=settings.server_name,
    version=settings.server_version,
    instructions=(
        "Al Hikmah Library - a bilingual (English/Arabic) Islamic library. Use resources "
        "to browse books and categories, tools to borrow, return and renew books, manage "
        "bookmarks and accounts, and ask the knowledge assistant questions with Quran and "
        "hadith references. Tools that act for a user take that user's actor_id."
    ),
)


for resource in all_resources:
    uri = resource.get("uri_template", resource.get("uri"))
    if not uri:
        logger.error("Resource missing URI: %s", resource)
        continue

    logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
    mcp.resource(
        uri=uri,
        name=resource["name"],
        description=resource["description"],
        mime_type=resource["mime_type"],
    )(resource["handler"])

logger.info("Registered %d resources", len(all_resources))

for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    mcp.tool(name=tool["name"], description=tool["description"])(tool["handler"])

logger.info("Registered %d tools", len(all_tools))


def run_server() -> None:
    """Run on the configured transport until interrupted."""
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if settings.transport == "streamable_http":
        logger.info("Listening on http://%s:%s", settings.http_host, settings.http_port)
        mcp.run(transport="streamable-http", host=settings.http_host, port=settings.http_port)
    else:
        mcp.run(transport="stdio")


def main() -> None:
    """Entry point: open the store, then serve."""
    try:
        logger.info("=" * 60)
        logger.info("Al Hikmah Library MCP Server")
        logger.info("Version: %s", settings.server_version)
        logger.info("Transport: %s", settings.transport)
        logger.info("AI provider: %s", settings.ai_provider)
        logger.info("=" * 60)

        get_library()
        if settings.ai_provider == "openai" and not (
            settings.openai_api_key or os.environ.get("OPENAI_API_KEY")
        ):
            logger.warning("No OpenAI API key configured; the assistant will apologize")
        logger.info("Store ready (%s)", settings.database_url or settings.database_path)

        run_server()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
