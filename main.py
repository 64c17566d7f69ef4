"""
Entry point — starts the FalkorDB MCP server.

Transport and connection settings come from the environment (or .env):

    MCP_TRANSPORT=stdio   python main.py     # default, for local MCP clients
    MCP_TRANSPORT=sse     python main.py     # HTTP on HOST:PORT

Equivalent to:
    python -m src.server.server
"""

from src.server.server import main

if __name__ == "__main__":
    main()
