"""
Storefront API - Shared Helpers
================================
Pure utility functions with NO database or module dependencies.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

_CENT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """Coerce a price-like value to a Decimal rounded to cents."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    """Price of `quantity` units, rounded to cents."""
    return to_money(to_money(unit_price) * quantity)


def normalize_paging(page: Optional[int], limit: Optional[int]) -> Tuple[int, int, int]:
    """
    Clamp page/limit query values.
    Returns: (page, limit, offset)
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    limit = min(limit, MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
