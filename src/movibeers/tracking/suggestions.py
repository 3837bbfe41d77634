"""Popular-name suggestions drawn from previously logged activities."""

from __future__ import annotations

from collections import Counter

import structlog

from movibeers.models import ActivityType, activity_collection
from movibeers.store import Query, RecordStore, StoreError
from movibeers.tracking.standardize import standardize_beer_name, standardize_movie_title

logger = structlog.get_logger()

MIN_QUERY_LENGTH = 2

# Upper bound on matching activity documents read per lookup.
SCAN_LIMIT = 500

# Private-use code point sorting after any printable character.
PREFIX_SENTINEL = "\uf8ff"


class SuggestionService:
    def __init__(self, store: RecordStore, scan_limit: int = SCAN_LIMIT) -> None:
        self.store = store
        self.scan_limit = scan_limit

    async def popular(self, activity_type: ActivityType, query: str, limit: int = 5) -> list[str]:
        """Names starting with ``query``, most frequently logged first.

        Failures degrade to an empty list; suggestions are never load-bearing.
        """
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        if activity_type is ActivityType.BEER:
            prefix = standardize_beer_name(query)
        else:
            prefix = standardize_movie_title(query)

        stmt = (
            Query()
            .where("title", ">=", prefix)
            .where("title", "<", prefix + PREFIX_SENTINEL)
            .order_by("title")
            .limit(self.scan_limit)
        )
        try:
            records = await self.store.query(activity_collection(activity_type), stmt)
        except StoreError:
            logger.warning("suggestions_unavailable", type=activity_type.value, query=query, exc_info=True)
            return []

        counts = Counter(r.data["title"] for r in records if r.data.get("title"))
        # Counter.most_common keeps first-seen order on ties, which is alphabetical here.
        return [title for title, _ in counts.most_common(limit)]
