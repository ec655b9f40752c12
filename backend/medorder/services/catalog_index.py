"""
Fuzzy-searchable snapshot of catalog item names.

The index is a cache over the catalog table. It is rebuilt after every
committed order and every admin catalog edit; between rebuilds it may be
stale. A stale index can only cause a miss: callers re-resolve every fuzzy
candidate against the store before using it.
"""
import logging
from typing import Iterable, List, Optional, Tuple, Union

from rapidfuzz import fuzz, process, utils
from sqlalchemy.orm import Session

from medorder.core.config import settings
from medorder.models.catalog import CatalogItem

logger = logging.getLogger(__name__)

IndexInput = Union[str, Tuple[Optional[int], str]]


def normalize_name(name: str) -> str:
    """Lowercase and collapse whitespace. 'PARACETAMOL  500 ' -> 'paracetamol 500'"""
    if not name:
        return ""
    return " ".join(name.lower().split())


class CatalogIndex:
    """
    Normalized name -> (item id, display name), with a rapidfuzz search over
    the display names.

    Scores are 0..100 (fuzz.WRatio). Anything below `score_cutoff` is never
    returned. WRatio rates substrings highly ("ace" scores 90 against
    "Paracetamol"), so a candidate must also reach `min_ratio` on the whole
    name, and queries shorter than MIN_QUERY_LENGTH never match.
    """

    MIN_QUERY_LENGTH = 3

    def __init__(self, score_cutoff: float = None, limit: int = 5, min_ratio: float = 50.0):
        self.score_cutoff = settings.FUZZY_SCORE_CUTOFF if score_cutoff is None else score_cutoff
        self.limit = limit
        self.min_ratio = min_ratio
        self._entries: dict = {}
        self._names: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self._names)

    def rebuild(self, items: Iterable[IndexInput]) -> "CatalogIndex":
        """Replace the snapshot. Accepts names or (id, name) pairs."""
        entries = {}
        for item in items:
            if isinstance(item, str):
                item_id, name = None, item
            else:
                item_id, name = item
            key = normalize_name(name)
            if key:
                entries[key] = (item_id, name.strip())

        # Sorted so equal catalogs always produce identical search results
        names = tuple(sorted(name for _, name in entries.values()))

        # Swap both at once; readers see either the old or the new snapshot
        self._entries, self._names = entries, names
        logger.info(f"[CatalogIndex] Rebuilt with {len(names)} items")
        return self

    def refresh(self, db: Session) -> "CatalogIndex":
        """Rebuild from the catalog table."""
        rows = db.query(CatalogItem.id, CatalogItem.name).all()
        return self.rebuild((row.id, row.name) for row in rows)

    def search(self, query: str) -> List[Tuple[str, float]]:
        """Best-first (name, score) pairs at or above the cutoff. Empty if none."""
        if len(normalize_name(query)) < self.MIN_QUERY_LENGTH or not self._names:
            return []

        matches = process.extract(
            query,
            self._names,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            score_cutoff=self.score_cutoff,
            limit=self.limit,
        )
        results = sorted(
            (
                (name, float(score))
                for name, score, _ in matches
                if fuzz.ratio(query, name, processor=utils.default_process) >= self.min_ratio
            ),
            key=lambda m: (-m[1], m[0]),
        )
        logger.debug(f"[CatalogIndex] '{query}' -> {results}")
        return results

    def lookup_id(self, name: str) -> Optional[int]:
        entry = self._entries.get(normalize_name(name))
        return entry[0] if entry else None


_catalog_index: Optional[CatalogIndex] = None


def get_catalog_index() -> CatalogIndex:
    """Get or create the process-wide index instance."""
    global _catalog_index
    if _catalog_index is None:
        _catalog_index = CatalogIndex()
    return _catalog_index
