"""Rentcast MCP Module - Model Context Protocol server components."""

from .server import create_mcp_server, main, run_server

__all__ = ["create_mcp_server", "main", "run_server"]
