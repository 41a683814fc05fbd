"""Al Hikmah Library: a bilingual library service exposed over MCP."""

__version__ = "0.1.0"
