# sitegate/utils/pagination.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Tuple, TypedDict

from sqlalchemy.orm import Query
from sqlalchemy.sql import and_, or_

from sitegate.domain.errors import ValidationFailed

MAX_PAGE_SIZE = 100


class CursorMeta(TypedDict):
    has_more: bool
    next_cursor: Optional[str]


def encode_cursor(created_at: datetime, row_id: Any) -> str:
    """Format: ISO8601|<id>"""
    if not isinstance(created_at, datetime) or row_id is None:
        raise ValueError("created_at and row_id are required to encode cursor")

    return f"{created_at.isoformat()}|{row_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    if not cursor or "|" not in cursor:
        raise ValidationFailed("Invalid cursor format")

    try:
        ts_str, row_id = cursor.split("|", 1)
        return datetime.fromisoformat(ts_str), row_id
    except ValueError as exc:
        raise ValidationFailed("Invalid cursor format") from exc


def parse_limit(raw: Optional[str], default: int = 20) -> int:
    try:
        limit = int(raw) if raw is not None else default
    except ValueError as exc:
        raise ValidationFailed("limit must be an integer") from exc

    if limit <= 0:
        raise ValidationFailed("limit must be greater than zero")
    return min(limit, MAX_PAGE_SIZE)


def paginate_newest_first(
    query: Query,
    *,
    model: Any,
    cursor: Optional[str],
    limit: int,
) -> tuple[list[Any], CursorMeta]:
    """
    Keyset pagination over (created_at DESC, id DESC).

    Fetches limit + 1 rows to detect continuation; the cursor of the last
    returned row fetches the next (older) page.
    """
    if cursor:
        cursor_ts, cursor_id = decode_cursor(cursor)
        query = query.filter(
            or_(
                model.created_at < cursor_ts,
                and_(model.created_at == cursor_ts, model.id < cursor_id),
            )
        )

    rows = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .limit(limit + 1)
        .all()
    )

    has_more = len(rows) > limit
    items = rows[:limit]

    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_cursor(last.created_at, last.id)

    return items, {"has_more": has_more, "next_cursor": next_cursor}
