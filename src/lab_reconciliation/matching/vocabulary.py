# ============================================================================
# src/lab_reconciliation/matching/vocabulary.py
# ============================================================================
"""
Canonical Vocabulary

Read-only snapshot of canonical items and their aliases, indexed for the
lookups the resolver needs. Items in the reserved "Unmapped" category are
holding pens for unresolved names and are never offered as match targets.

Built once per ingestion run (usually from the record store) and injected
into the resolver; learning an alias produces a new snapshot.
"""

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..constants import UNMAPPED_CATEGORY
from ..core.context import AliasEntry, CanonicalItem
from .similarity import normalize_name


def _exact_key(text: str) -> str:
    return (text or '').strip().lower()


class CanonicalVocabulary:
    """
    Immutable index over canonical items and aliases.

    Args:
        items: Canonical items. Unmapped-category items are ignored.
        aliases: Alias entries. Aliases pointing at unknown items are ignored.
    """

    def __init__(self, items: Iterable[CanonicalItem], aliases: Iterable[AliasEntry] = ()):
        items_by_id: Dict[str, CanonicalItem] = {}
        for item in items:
            if item.category == UNMAPPED_CATEGORY:
                continue
            items_by_id[item.id] = item

        alias_list = tuple(a for a in aliases if a.canonical_id in items_by_id)

        exact: Dict[str, str] = {}
        normalized: Dict[str, str] = {}

        # Aliases first so a curated spelling wins over a display name collision
        for alias in alias_list:
            exact.setdefault(_exact_key(alias.alias), alias.canonical_id)
            normalized.setdefault(normalize_name(alias.alias), alias.canonical_id)

        for item in items_by_id.values():
            for name in (item.name, item.display_name):
                if not name:
                    continue
                exact.setdefault(_exact_key(name), item.id)
                normalized.setdefault(normalize_name(name), item.id)

        normalized.pop('', None)

        self._items = MappingProxyType(items_by_id)
        self._aliases = alias_list
        self._exact = MappingProxyType(exact)
        self._normalized = MappingProxyType(normalized)

    @classmethod
    def from_store(cls, store) -> "CanonicalVocabulary":
        """Snapshot the vocabulary currently held by a RecordStore."""
        return cls(store.list_canonical_items(), store.list_aliases())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @property
    def items(self) -> Mapping[str, CanonicalItem]:
        return self._items

    @property
    def aliases(self) -> Tuple[AliasEntry, ...]:
        return self._aliases

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, canonical_id: str) -> bool:
        return canonical_id in self._items

    def get(self, canonical_id: str) -> Optional[CanonicalItem]:
        return self._items.get(canonical_id)

    def lookup_exact(self, raw_name: str) -> Optional[str]:
        """Case-insensitive exact match against aliases and canonical names."""
        return self._exact.get(_exact_key(raw_name))

    def lookup_normalized(self, raw_name: str) -> Optional[str]:
        key = normalize_name(raw_name)
        if not key:
            return None
        return self._normalized.get(key)

    def canonical_candidates(self) -> Iterator[Tuple[str, str]]:
        """(candidate text, canonical id) for every canonical name and display name."""
        for item in self._items.values():
            yield item.name, item.id
            if item.display_name and item.display_name != item.name:
                yield item.display_name, item.id

    def alias_candidates(self) -> Iterator[Tuple[str, str]]:
        for alias in self._aliases:
            yield alias.alias, alias.canonical_id

    # ------------------------------------------------------------------
    # Copy-on-write updates
    # ------------------------------------------------------------------
    def with_aliases(self, new_aliases: List[AliasEntry]) -> "CanonicalVocabulary":
        return CanonicalVocabulary(self._items.values(), self._aliases + tuple(new_aliases))
