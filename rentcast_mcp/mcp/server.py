"""Main MCP server for the Rentcast adapter."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import mcp.types as types
from loguru import logger
from mcp.server import Server
from pydantic import ValidationError

from rentcast_mcp import __version__
from rentcast_mcp.core.client import RentcastClient
from rentcast_mcp.logging import setup_logger
from rentcast_mcp.mcp.plugin import discover
from rentcast_mcp.settings import Settings, get_settings

SERVER_NAME = "rentcast-mcp"


def format_validation_error(exc: ValidationError) -> str:
    details = ", ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in exc.errors()
    )
    return f"Invalid parameters: {details}"


def list_tool_definitions(registry: Dict[str, Dict[str, Any]]) -> list[types.Tool]:
    return [
        types.Tool(name=name, description=meta["description"], inputSchema=meta["inputSchema"])
        for name, meta in registry.items()
    ]


async def dispatch_tool(
    registry: Dict[str, Dict[str, Any]],
    client: RentcastClient,
    name: str,
    arguments: Optional[dict],
) -> str:
    """Validate *arguments*, run tool *name* and return its text.

    Every failure mode (unknown tool, invalid arguments, unexpected error in
    the implementation) is reported as text; nothing propagates to the
    transport.
    """

    arguments = arguments or {}
    logger.info(f"🔧 [MCP SERVER] Tool called: {name} with arguments: {arguments}")

    if name not in registry:
        error_msg = f"Tool '{name}' not found. Available tools: {', '.join(sorted(registry))}"
        logger.error(error_msg)
        return error_msg

    meta = registry[name]
    try:
        request = meta["model"].model_validate(arguments)
    except ValidationError as exc:
        logger.warning(f"⚠️  [MCP SERVER] Invalid arguments for {name}: {exc.error_count()} error(s)")
        return format_validation_error(exc)

    try:
        return await meta["fn"](client, request)
    except Exception as exc:
        logger.exception(f"💥 [MCP SERVER] Error handling tool {name}: {exc}")
        return f"Failed to run {name}: {exc}"


def create_mcp_server(client: Optional[RentcastClient] = None, settings: Optional[Settings] = None) -> Server:
    """Create and configure the MCP server with all Rentcast tools.

    The server, its :class:`RentcastClient` and that client's governor form
    one session: the call budget lives exactly as long as this object graph.
    """

    if client is None:
        client = RentcastClient.from_settings(settings or get_settings())

    server = Server(SERVER_NAME, version=__version__)
    registry = discover()

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        """List available tools."""
        return list_tool_definitions(registry)

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        """Handle tool calls."""
        text = await dispatch_tool(registry, client, name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------
async def run_stdio(settings: Settings) -> None:
    """Serve over stdin/stdout until the client disconnects."""
    from mcp.server.stdio import stdio_server

    async with RentcastClient.from_settings(settings) as client:
        server = create_mcp_server(client)
        async with stdio_server() as (read_stream, write_stream):
            logger.info("✅ [MCP SERVER] Rentcast MCP server ready on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())


def run_sse(settings: Settings, host: str, port: int) -> None:
    """Serve over HTTP/SSE with uvicorn."""
    import uvicorn
    from mcp.server.sse import SseServerTransport
    from starlette.applications import Starlette
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import Mount, Route

    client = RentcastClient.from_settings(settings)
    server = create_mcp_server(client)

    # The client POSTs messages here after opening the event stream
    sse_transport = SseServerTransport("/mcp/messages/")

    async def sse_endpoint(request: Request):
        async with sse_transport.connect_sse(request.scope, request.receive, request._send) as streams:
            await server.run(streams[0], streams[1], server.create_initialization_options())
        return Response(status_code=204)

    @asynccontextmanager
    async def lifespan(_app):
        yield
        await client.aclose()

    app = Starlette(
        routes=[
            Route("/mcp/sse", endpoint=sse_endpoint, methods=["GET"]),
            Mount("/mcp/messages/", app=sse_transport.handle_post_message),
        ],
        lifespan=lifespan,
    )

    logger.info(f"📡 [MCP SERVER] Starting HTTP/SSE server on {host}:{port}...")
    uvicorn.run(app, host=host, port=port)


def run_server(
    transport: str = "stdio",
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: Optional[str] = None,
) -> None:
    """Run the Rentcast MCP server on *transport* (``stdio`` or ``sse``)."""

    settings = get_settings()
    setup_logger(log_level, settings=settings)

    logger.info("🚀 [MCP SERVER] Starting Rentcast MCP Server...")
    logger.info(f"[MCP SERVER] API call limit: {settings.MAX_API_CALLS_PER_SESSION}")
    logger.info(f"[MCP SERVER] API key: {settings.masked_api_key}")
    logger.info(f"[MCP SERVER] Base URL: {settings.RENTCAST_BASE_URL}")

    if transport == "sse":
        run_sse(settings, host or settings.HOST, port or settings.PORT)
    else:
        asyncio.run(run_stdio(settings))


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Rentcast real-estate data as MCP tools")
    parser.add_argument("--transport", choices=("stdio", "sse"), default="stdio", help="MCP transport")
    parser.add_argument("--host", type=str, default=None, help="Bind address for the sse transport")
    parser.add_argument("--port", type=int, default=None, help="Port for the sse transport")
    parser.add_argument(
        "--log-level", choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"), default=None, help="Override LOG_LEVEL"
    )
    args = parser.parse_args(argv)

    try:
        get_settings()
    except ValidationError as exc:
        logger.error(f"❌ [MCP SERVER] Invalid configuration: {exc}")
        return 1

    try:
        run_server(args.transport, args.host, args.port, log_level=args.log_level)
    except KeyboardInterrupt:
        logger.info("[MCP SERVER] Shutting down Rentcast MCP Server...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
