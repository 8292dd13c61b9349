"""Lazily loaded, memoized reference catalog (categories -> groups -> items).

The cache reads its source once, on first access. A missing or malformed source
leaves it loaded but empty; nothing here raises to the caller. Mutations return a
MutationOutcome instead of failing, and successful ones set the dirty flag so the
host can decide when to persist.
"""

from __future__ import annotations

import threading
import xml.etree.ElementTree as ET
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .logger import logger
from .models import CacheState, Group, Item, MutationOutcome
from .sources import ReferenceDataSource


def parse_catalog(data: bytes) -> Tuple[List[str], Dict[str, List[Group]]]:
    """Parse catalog XML into (ordered category names, name -> groups).

    Raises ET.ParseError on malformed input.
    """
    root = ET.fromstring(data)
    categories: List[str] = []
    catalog: Dict[str, List[Group]] = {}
    for cat_el in root.iter("category"):
        name = cat_el.get("name", "")
        groups: List[Group] = []
        for group_el in cat_el.iter("group"):
            title = group_el.get("name") or group_el.get("title") or ""
            # Trim only: empty items are kept
            items = [Item("".join(item_el.itertext()).strip()) for item_el in group_el.iter("item")]
            groups.append(Group(title, items))
        if name not in catalog:
            categories.append(name)
        catalog[name] = groups
    return categories, catalog


class CatalogCache:
    def __init__(self, source: ReferenceDataSource):
        self.source = source
        self._lock = threading.Lock()
        self._state = CacheState.UNLOADED
        self._categories: Tuple[str, ...] = ()
        self._catalog: Dict[str, List[Group]] = {}
        self._catalog_view: Mapping[str, List[Group]] = MappingProxyType(self._catalog)
        self._dirty = False

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is CacheState.LOADED

    # ------------------------------------------------------------------ load

    def _ensure_loaded(self) -> None:
        if self._state is CacheState.LOADED:
            return
        with self._lock:
            if self._state is CacheState.LOADED:
                return
            self._load()

    def _load(self) -> None:
        # Caller holds the lock
        categories: List[str] = []
        catalog: Dict[str, List[Group]] = {}
        try:
            data = self.source.read()
            if data is None:
                logger.error(f"Catalog source unavailable: {self.source!r}")
            else:
                categories, catalog = parse_catalog(data)
                logger.info(f"Loaded catalog with {len(categories)} categories from {self.source!r}")
        except Exception as e:
            logger.error(f"Failed to load catalog from {self.source!r}: {e}")
            categories, catalog = [], {}
        self._categories = tuple(categories)
        self._catalog = catalog
        self._catalog_view = MappingProxyType(catalog)
        self._state = CacheState.LOADED

    # ----------------------------------------------------------------- reads

    def get_ordered_categories(self) -> Tuple[str, ...]:
        self._ensure_loaded()
        return self._categories

    def get_catalog(self) -> Mapping[str, List[Group]]:
        """Read-only view of category name -> groups, the same object on every call.

        Groups and items are the live catalog nodes. Change membership through
        add_item/remove_item; after editing an item in place call mark_dirty.
        """
        self._ensure_loaded()
        return self._catalog_view

    def find_items(self, query: str) -> List[Tuple[str, Group, Item]]:
        """Case-insensitive substring search over item text, in catalog order."""
        self._ensure_loaded()
        needle = (query or "").lower()
        hits: List[Tuple[str, Group, Item]] = []
        for name in self._categories:
            for group in self._catalog.get(name, []):
                for item in group.items:
                    if needle in item.text.lower():
                        hits.append((name, group, item))
        return hits

    # ------------------------------------------------------------- mutation

    def add_item(self, category: str, group_title: str, item: Item) -> MutationOutcome:
        with self._lock:
            if self._state is not CacheState.LOADED:
                return MutationOutcome.NOT_LOADED
            groups = self._catalog.get(category)
            if groups is None:
                return MutationOutcome.NOT_FOUND
            for group in groups:
                if group.title == group_title:
                    group.items.append(item)
                    self._dirty = True
                    return MutationOutcome.APPLIED
            return MutationOutcome.NOT_FOUND

    def remove_item(self, item: Item) -> MutationOutcome:
        """Remove the first occurrence of this exact item anywhere in the catalog."""
        with self._lock:
            if self._state is not CacheState.LOADED:
                return MutationOutcome.NOT_LOADED
            for name in self._categories:
                for group in self._catalog.get(name, []):
                    idx = group.index_of(item)
                    if idx >= 0:
                        del group.items[idx]
                        self._dirty = True
                        return MutationOutcome.APPLIED
            return MutationOutcome.NOT_FOUND

    def get_item(self, category: str, group_title: str, index: int) -> Optional[Item]:
        """Item at a position, addressing the first group with that title."""
        self._ensure_loaded()
        for group in self._catalog.get(category, []):
            if group.title == group_title:
                if 0 <= index < len(group.items):
                    return group.items[index]
                return None
        return None

    # ------------------------------------------------------------ dirty flag

    def has_pending_changes(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def commit_pending(self) -> None:
        self._dirty = False
