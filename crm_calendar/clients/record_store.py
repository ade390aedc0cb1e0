"""Shared contract for the ``(pk, sk)`` keyed record backends."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class PersistenceError(Exception):
    """Raised when a record backend fails to read or write."""


class RecordStore(Protocol):
    def put_item(self, item: Dict[str, Any]) -> None: ...

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]: ...

    def delete_item(self, *, partition_key: str, sort_key: str) -> None: ...

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]: ...

    def delete_items_with_prefix(self, *, partition_key: str, sort_key_prefix: str) -> int: ...


__all__ = ["PersistenceError", "RecordStore"]
