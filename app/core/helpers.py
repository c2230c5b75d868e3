"""
Helper functions for common infrastructure operations.

Domain-agnostic utilities:
- String hashing
- UUID validation
- Pagination metadata and in-memory page slicing

Usage:
    from core.helpers import calculate_pagination, paginate_sequence

    items, pagination = paginate_sequence(records, page=2, per_page=10)
"""

from __future__ import annotations

import hashlib
import math
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import Any


def hash_string(value: str, algorithm: str = "sha256") -> str:
    """
    Hash a string using the specified algorithm.

    Example:
        hashed = hash_string("deposit:1234", "sha256")
    """
    hasher = hashlib.new(algorithm)
    hasher.update(value.encode("utf-8"))
    return hasher.hexdigest()


def validate_uuid(value: str) -> bool:
    """Check if string is a valid UUID."""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError):
        return False


def calculate_pagination(total: int, page: int, per_page: int) -> dict:
    """
    Calculate pagination metadata.

    total_pages is never below 1, so an empty result is page 1 of 1.

    Example:
        calculate_pagination(total=25, page=3, per_page=10)
        # {
        #     "total": 25,
        #     "page": 3,
        #     "per_page": 10,
        #     "total_pages": 3,
        #     "has_next": False,
        #     "has_previous": True,
        #     "start_index": 20,
        #     "end_index": 25
        # }
    """
    total_pages = max(1, math.ceil(total / per_page)) if per_page > 0 else 1
    page = max(1, page)

    has_next = page < total_pages
    has_previous = page > 1

    start_index = (page - 1) * per_page
    end_index = min(page * per_page, total)

    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "has_next": has_next,
        "has_previous": has_previous,
        "start_index": start_index,
        "end_index": max(start_index, end_index),
    }


def paginate_sequence(
    items: Sequence[Any], page: int, per_page: int
) -> tuple[list[Any], dict[str, Any]]:
    """
    Slice an already ordered sequence and build the API pagination block.

    Pages past the end return an empty slice with accurate metadata.

    Returns:
        (page_items, pagination) where pagination uses the API's
        camelCase keys.
    """
    meta = calculate_pagination(len(items), page, per_page)
    page_items = list(items[meta["start_index"] : meta["end_index"]])
    pagination = {
        "currentPage": meta["page"],
        "totalPages": meta["total_pages"],
        "totalItems": meta["total"],
        "itemsPerPage": meta["per_page"],
        "hasNextPage": meta["has_next"],
        "hasPreviousPage": meta["has_previous"],
    }
    return page_items, pagination
