# Overview: Page/limit pagination shared by every list endpoint.

from __future__ import annotations

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def normalize_page(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_LIMIT (default 20)."""
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_LIMIT, 1), MAX_LIMIT)
    return page, limit


def paginate(query, *, page: int | None = None, limit: int | None = None) -> tuple[list, dict]:
    """
    Run an ordered query for one page.

    Returns (rows, meta) where meta is {total, page, limit, totalPages}.
    """
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 0
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
    }
