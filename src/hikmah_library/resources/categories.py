"""Category resource: library://categories/list, with live book counts."""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..errors import LibraryError
from ..library import get_library

logger = logging.getLogger(__name__)


async def list_categories_handler() -> dict[str, Any]:
    try:
        categories = get_library().catalog.list_categories()
    except LibraryError as e:
        logger.exception("Error in categories/list resource")
        raise ResourceError(f"Failed to retrieve categories: {e.message}") from e

    return {"categories": [c.model_dump(mode="json") for c in categories]}


category_resources: list[dict[str, Any]] = [
    {
        "uri": "library://categories/list",
        "name": "Categories",
        "description": "Catalog categories in English and Arabic with their book counts",
        "mime_type": "application/json",
        "handler": list_categories_handler,
    },
]
