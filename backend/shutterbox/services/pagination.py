"""
Shutterbox Backend — Offset Pagination
========================================

What:  The count + page query pair every listing endpoint runs.
How:   fetch_page() counts the filtered query, then fetches one ordered
       slice of it. page_info() turns the numbers into the response block.

    page=2, limit=12, total=30  →  OFFSET 12 LIMIT 12,  total_pages=3
"""

import logging
import math
from typing import Any, List, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import DatabaseError
from shutterbox.schemas.common import PageInfo

logger = logging.getLogger(__name__)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def like_pattern(term: str) -> str:
    """Substring pattern for ILIKE with the wildcards in `term` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def fetch_page(
    db: AsyncSession,
    query: Select,
    page: int,
    limit: int,
    *order_by: Any,
    resource: str = "records",
) -> Tuple[List[Any], int]:
    """
    Run the count and the page query.

    Returns:
        (rows on this page, total matching rows)

    Raises:
        DatabaseError: either query failed
    """
    try:
        total = (await db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await db.execute(
            query.order_by(*order_by).offset((page - 1) * limit).limit(limit)
        )
        rows = list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error("Database error listing %s: %s", resource, e, exc_info=True)
        raise DatabaseError(
            message=f"Could not retrieve {resource}. Please try again.",
            context={"error_type": type(e).__name__},
        )
    return rows, total


def page_info(page: int, limit: int, total: int) -> PageInfo:
    total_pages = math.ceil(total / limit) if total else 0
    return PageInfo(
        current_page=page,
        total_pages=total_pages,
        total=total,
        limit=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
