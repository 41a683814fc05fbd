"""
MCP resources for the Al Hikmah Library server.

Resources are the read-only side: the catalog and its categories. Anything
that changes state is a tool.
"""

from .books import book_resources
from .categories import category_resources

all_resources = book_resources + category_resources

__all__ = ["all_resources", "book_resources", "category_resources"]
