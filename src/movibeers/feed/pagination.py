"""Keyset cursors for the feed.

A cursor encodes the (created_at, post id) of the last post on a page as
base64 JSON. Ties on created_at are broken by id, so pages never skip or
repeat posts that share a timestamp.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

from movibeers.errors import ValidationFailed
from movibeers.models import Post


def encode_cursor(created_at: datetime, post_id: str) -> str:
    """Encode a cursor from post fields."""
    payload = {"time": created_at.isoformat(), "id": post_id}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    """Decode a cursor into (created_at, post id).

    Raises:
        ValidationFailed: If the cursor is malformed.
    """
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        created_at = datetime.fromisoformat(data["time"])
        post_id = str(data["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise ValidationFailed(f"Invalid cursor: {e}", field="cursor") from e
    if created_at.tzinfo is None:
        # Naive timestamps are read as UTC.
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at, post_id


@dataclass
class FeedPage:
    posts: list[Post] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


def page_from(rows: list[Post], limit: int) -> FeedPage:
    """Build a page from up to ``limit + 1`` rows fetched newest-first."""
    has_more = len(rows) > limit
    posts = rows[:limit]
    next_cursor = None
    if has_more and posts:
        last = posts[-1]
        next_cursor = encode_cursor(last.created_at, last.id or "")
    return FeedPage(posts=posts, next_cursor=next_cursor, has_more=has_more)
