from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from .config import ACTIVITY_DEFAULT_COLLECTION, ACTIVITY_DEFAULT_LIMIT


@dataclass(frozen=True)
class ActivityEntry:
    action: str
    detail: str
    created_at: Optional[str]

    @classmethod
    def from_row(cls, row: dict) -> "ActivityEntry":
        return cls(
            action=str(row.get("action") or ""),
            detail=str(row.get("detail") or row.get("description") or ""),
            created_at=None if row.get("created_at") is None else str(row.get("created_at")),
        )


def recent_activity(
    store,
    email: Optional[str],
    limit: int = ACTIVITY_DEFAULT_LIMIT,
    collection: str = ACTIVITY_DEFAULT_COLLECTION,
) -> List[ActivityEntry]:
    """Most recent activity rows for the signed-in user, newest first.

    Read-only. Without an email there is nothing to query.
    """
    email = (email or "").strip()
    if not email or limit <= 0:
        return []
    rows = store.fetch_all(
        collection,
        order_by="created_at",
        descending=True,
        limit=limit,
        filters=[("user_email", email)],
    )
    return [ActivityEntry.from_row(r) for r in rows[:limit]]
