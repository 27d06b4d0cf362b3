# Overview: Shared listing envelope for seller-scoped read models.

from __future__ import annotations

from flask import current_app


def paginate(query, page: int | None, per_page: int | None) -> dict:
    """
    Stable page of query results with the listing envelope.

    Without a page the whole result is returned as {"items", "count"}.
    Page sizes default to DEFAULT_PAGE_SIZE and are capped at MAX_PAGE_SIZE.
    """
    if page is None:
        rows = query.all()
        return {"items": [r.to_dict() for r in rows], "count": len(rows)}

    max_page_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    per_page = min(per_page or current_app.config.get("DEFAULT_PAGE_SIZE", 20), max_page_size)
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [r.to_dict() for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
