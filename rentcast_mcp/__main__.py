import sys

from rentcast_mcp.mcp.server import main

sys.exit(main())
