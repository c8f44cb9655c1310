"""
Stock valuation MCP server package.

This package exposes MCP tools for:
- Stock valuation models (PE band, DDM, DCF, Graham number, ...)
- Financial analysis and portfolio management calculators
- SET Watch market data (statistics, financial statements, historical ratios)
- Web search, page extraction and news
- Math, time and filesystem utilities

Every tool is registered once in an immutable registry and reached through a
single dispatcher, whether the request arrives over stdio or HTTP.
"""

__version__ = "1.0.0"

SERVER_NAME = "stock-valuation-mcp"
