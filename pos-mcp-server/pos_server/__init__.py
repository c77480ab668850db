"""Point-of-sale terminal: catalog, cart and checkout over MCP or HTTP."""

__version__ = "0.1.0"
