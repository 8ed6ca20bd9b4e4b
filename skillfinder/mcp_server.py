"""
SkillFinder MCP Server.

Transport: stdio.

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}
"""

import argparse
import logging
import os
import signal
import sys
from contextlib import asynccontextmanager
from typing import Annotated, Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .common.config import FinderConfig, load_config
from .retriever.orchestrator import PeopleFinder, create_people_finder

logger = logging.getLogger("skillfinder.mcp")


class MCPServerApp:
    """
    MCP server exposing the people finder as tools.

    The finder is optional: without a search site or access token the server
    still starts and reports why searching is unavailable.
    """

    def __init__(
            self,
            finder: Optional[PeopleFinder],
            config: Optional[FinderConfig] = None,
            mcp_server_name: str = "skillfinder_mcp_server",
        ) -> None:
        """
        Args:
            finder (PeopleFinder): Configured finder, or None when search is not configured.
            config (FinderConfig): Loaded configuration, used for status reporting.
            mcp_server_name (str): The name of the MCP server.
        """
        self.finder = finder
        self.config = config or FinderConfig()
        self.mcp = FastMCP(name=mcp_server_name, lifespan=self.lifespan)

        # ---------- MCP Tools: Find People ---------- #
        @self.mcp.tool(
            name="find_people",
            description=(
                "Find colleagues by skill, department or office from a free-text request, "
                "e.g. 'who knows Kubernetes in the Platform department?'."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_find_people(
            query: Annotated[str, Field(description="free-text description of the people to find")],
        ) -> Dict[str, Any]:
            """
            Runs the extract -> build -> search -> merge pipeline.

            Returns:
                Dict[str, Any]: Matching people (display name, email, skills,
                department, location) in first-found order.
            """
            if self.finder is None:
                return {
                    "ok": False,
                    "error": "People search is not configured. Set SHAREPOINT_SITE_URL and "
                             "SHAREPOINT_ACCESS_TOKEN and restart the MCP server."
                }
            people = await self.finder.search(query)
            return {
                "ok": True,
                "results": [p.to_dict() for p in people],
                "count": len(people),
            }

        # ---------- MCP Tools: Status ---------- #
        @self.mcp.tool(
            name="finder_status",
            description="Report whether model-based extraction and people search are configured.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_finder_status() -> Dict[str, Any]:
            """
            Returns the current configuration status (no secrets).
            """
            return {
                "ok": True,
                "search_configured": self.finder is not None,
                "site_url": self.config.search.site_url or None,
                "llm_provider": self.config.llm.provider,
                "llm_extraction": self.config.llm.is_configured,
                "mode": "llm extraction" if self.config.llm.is_configured else "raw query passthrough",
            }

    @asynccontextmanager
    async def lifespan(self, server: FastMCP):
        """Release the finder's HTTP client on shutdown"""
        try:
            yield {}
        finally:
            if self.finder is not None:
                logger.info("Closing people finder")
                await self.finder.aclose()

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def build_app(config: FinderConfig, server_name: str) -> MCPServerApp:
    finder = None
    if config.search.site_url and config.search.access_token:
        finder = create_people_finder(config)
        logger.info("People search configured for %s", config.search.site_url)
    else:
        logger.warning("SHAREPOINT_SITE_URL or SHAREPOINT_ACCESS_TOKEN missing - find_people will be unavailable")

    if not config.llm.is_configured:
        logger.warning("Extraction model not configured - queries are searched as typed")

    return MCPServerApp(finder=finder, config=config, mcp_server_name=server_name)


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the SkillFinder MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("MCP_SERVER_NAME", "skillfinder_mcp_server"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--site-url",
        default=None,
        help="SharePoint site root (overrides SHAREPOINT_SITE_URL).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level.",
    )
    args = parser.parse_args()

    # stdout carries the stdio protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config = load_config()
    if args.site_url:
        config.search.site_url = args.site_url

    app = build_app(config, args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
