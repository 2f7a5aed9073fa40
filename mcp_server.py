#!/usr/bin/env python3
"""
Rentcast MCP Server - Entry Point

Runs the MCP server over stdio (default) or HTTP/SSE (``--transport sse``).
"""

import sys

from rentcast_mcp.mcp.server import main

if __name__ == "__main__":
    sys.exit(main())
