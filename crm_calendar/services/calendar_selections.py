"""Persistence of which Google calendars each user syncs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from crm_calendar.clients import RecordStore
from crm_calendar.models.oauth import CalendarSelection
from crm_calendar.services.google_tokens import user_partition_key

SELECTION_SORT_KEY_PREFIX = "calendar#google#"


class SelectionStore:
    """One row per (user, calendar); a row exists only while the calendar is on."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def upsert(self, user_id: str, *, calendar_id: str, calendar_name: str) -> None:
        self._store.put_item(
            {
                "pk": user_partition_key(user_id),
                "sk": f"{SELECTION_SORT_KEY_PREFIX}{calendar_id}",
                "user_id": user_id,
                "calendar_id": calendar_id,
                "calendar_name": calendar_name,
                "is_selected": True,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def delete(self, user_id: str, *, calendar_id: str) -> None:
        self._store.delete_item(
            partition_key=user_partition_key(user_id),
            sort_key=f"{SELECTION_SORT_KEY_PREFIX}{calendar_id}",
        )

    def list(self, user_id: str, *, selected_only: bool = False) -> List[CalendarSelection]:
        items = self._store.list_items_with_prefix(
            partition_key=user_partition_key(user_id),
            sort_key_prefix=SELECTION_SORT_KEY_PREFIX,
        )
        selections = [
            CalendarSelection(
                user_id=user_id,
                calendar_id=item["calendar_id"],
                calendar_name=item.get("calendar_name") or item["calendar_id"],
                is_selected=bool(item.get("is_selected", True)),
                updated_at=item.get("updated_at") or datetime.now(timezone.utc),
            )
            for item in items
        ]
        if selected_only:
            return [selection for selection in selections if selection.is_selected]
        return selections

    def delete_all(self, user_id: str) -> int:
        return self._store.delete_items_with_prefix(
            partition_key=user_partition_key(user_id),
            sort_key_prefix=SELECTION_SORT_KEY_PREFIX,
        )


__all__ = ["SELECTION_SORT_KEY_PREFIX", "SelectionStore"]
