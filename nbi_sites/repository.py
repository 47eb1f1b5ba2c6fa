"""
Design (repository.py)
- Purpose: Own the live report and site collections behind a tiny API (and a lock), so the UI
           and the importer never touch shared lists directly.
- Inputs: ProblemReport / Site objects and ids.
- Outputs: Snapshots (copies) of the current collection; a version counter for change checks.
- Side effects: Updates the internal ordered dict; bumps version on every mutation.
- Thread-safety: All mutating methods take the internal lock; snapshot returns copies.
"""

import threading
from typing import Dict, Generic, Iterable, List, Optional, TypeVar

from .models import ProblemReport, Site

T = TypeVar("T", ProblemReport, Site)


class _Collection(Generic[T]):
    """
    Design (_Collection)
    - State:
        _items: {id -> record}, insertion ordered (table order)
        _version: int, incremented on every successful mutation
        _lock: threading.Lock to protect all mutating/reading operations
    - Invariant: ids are unique (dict keys).
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, T] = {}
        self._version = 0
        for item in items:
            if item.id in self._items:
                raise ValueError(f"Duplicate id: {item.id}")
            self._items[item.id] = item

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    # -------- CRUD --------

    def add(self, item: T) -> None:
        """
        Purpose: Append a new record.
        Side effects: Mutates _items; bumps version.
        Raises: ValueError if the id is already present.
        """
        with self._lock:
            if item.id in self._items:
                raise ValueError(f"Duplicate id: {item.id}")
            self._items[item.id] = item
            self._version += 1

    def update(self, item: T) -> None:
        """
        Purpose: Replace an existing record in place (same id, same position).
        Raises: KeyError if no record has that id.
        """
        with self._lock:
            if item.id not in self._items:
                raise KeyError(item.id)
            self._items[item.id] = item
            self._version += 1

    def get(self, item_id: str) -> Optional[T]:
        with self._lock:
            return self._items.get(item_id)

    def remove(self, item_id: str) -> bool:
        """
        Purpose: Remove the one record with this id.
        Outputs: True if something was removed; unknown ids are a no-op (False).
        """
        with self._lock:
            if self._items.pop(item_id, None) is None:
                return False
            self._version += 1
            return True

    def replace_all(self, items: Iterable[T]) -> None:
        """
        Purpose: Swap the whole collection (confirmed import).
        Raises: ValueError on duplicate ids; the current collection is left untouched.
        """
        fresh: Dict[str, T] = {}
        for item in items:
            if item.id in fresh:
                raise ValueError(f"Duplicate id: {item.id}")
            fresh[item.id] = item
        with self._lock:
            self._items = fresh
            self._version += 1

    def extend(self, items: Iterable[T]) -> None:
        """
        Purpose: Append many records at once.
        Raises: ValueError if any id collides (with the collection or within items);
                nothing is added in that case.
        """
        items = list(items)
        with self._lock:
            seen = set(self._items)
            for item in items:
                if item.id in seen:
                    raise ValueError(f"Duplicate id: {item.id}")
                seen.add(item.id)
            for item in items:
                self._items[item.id] = item
            self._version += 1

    def clear_all(self) -> None:
        with self._lock:
            self._items.clear()
            self._version += 1

    # -------- Snapshots for safe reading --------

    def snapshot(self) -> List[T]:
        """Copy of the records in table order."""
        with self._lock:
            return list(self._items.values())

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._items)


class ReportRepo(_Collection[ProblemReport]):
    """Live ProblemReport collection."""


class SiteRepo(_Collection[Site]):
    """Live Site collection with the search used by the Sites tab."""

    def search(self, term: str) -> List[Site]:
        """
        Purpose: Case-insensitive filter on location, device, SDWAN id and LAN IP.
        Outputs: Matching sites in table order (all sites for an empty term).
        """
        needle = (term or "").strip().lower()
        sites = self.snapshot()
        if not needle:
            return sites
        return [
            s for s in sites
            if any(
                needle in value.lower()
                for value in (s.site_location_name, s.device_name, s.sdwan_site_id, s.lan_ip)
            )
        ]
