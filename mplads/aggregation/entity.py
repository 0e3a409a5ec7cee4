"""Entity resolution across the two MP stores.

The summary store (denormalized, rebuilt by the batch job) and the MP
registry (canonical) describe the same members under independent ids and
slightly different spellings. Records are matched on a normalized key:

    "A Kumar", "X", "Bihar"   → "a kumar|x|bihar"
    "a   kumar", "X", "Bihar" → "a kumar|x|bihar"

Merge policy: summary-store identities win; a registry identity is added
only when its key is not already present.
"""

import logging
from typing import Iterable, List, Optional

from mplads.aggregation.scope import Scope
from mplads.data.store import RecordStore
from mplads.errors import NotFound
from mplads.models.records import MPIdentity
from mplads.utils.normalize import join_key, normalize_component

logger = logging.getLogger(__name__)


class EntityResolver:
    """Produces canonical MP identities from the two stores."""

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def normalize_key(name: Optional[str], constituency: Optional[str], state: Optional[str]) -> str:
        return join_key((name, constituency, state))

    @staticmethod
    def merge(fresher: Iterable[MPIdentity], canonical: Iterable[MPIdentity]) -> List[MPIdentity]:
        """Deduplicated identity list, fresher-store records first.

        A final pass dedupes by key again, since either store may already
        hold duplicates of its own.
        """
        seen = set()
        merged: List[MPIdentity] = []
        for mp in list(fresher) + list(canonical):
            if mp.key in seen:
                continue
            seen.add(mp.key)
            merged.append(mp)
        return merged

    def identities(
        self,
        scope: Scope,
        state: Optional[str] = None,
        constituency: Optional[str] = None,
        query: Optional[str] = None,
    ) -> List[MPIdentity]:
        fresher = self.store.summary_identities(scope, state=state, constituency=constituency)
        canonical = self.store.registry_identities(scope, state=state, constituency=constituency)
        merged = self.merge(fresher, canonical)
        if query:
            merged = [mp for mp in merged if matches_search(mp, query)]
        return merged

    def find(self, scope: Scope, identity: MPIdentity) -> Optional[MPIdentity]:
        """The stored identity with the same key, or None."""
        candidates = self.identities(scope, state=identity.state, constituency=identity.constituency or None)
        for mp in candidates:
            if mp.key == identity.key:
                return mp
        return None

    def exists(self, scope: Scope, identity: MPIdentity) -> bool:
        return self.find(scope, identity) is not None

    def resolve_id(self, record_id: str) -> MPIdentity:
        """Look up a surrogate id in the summary store, then the registry.

        Raises:
            NotFound: neither store has the id
        """
        identity = self.store.find_summary_identity(record_id)
        if identity is None:
            identity = self.store.find_registry_identity(record_id)
        if identity is None:
            raise NotFound("MP", record_id)
        return identity


def matches_search(mp: MPIdentity, query: str) -> bool:
    """Name search tolerant of word order ("modi narendra" finds "Narendra Modi").

    Matches when the whole query, the reversed two-word query, or every word
    of the query appears in the name; or the query appears in the
    constituency or state.
    """
    return matches_text(query, mp.name, mp.constituency, mp.state)


def matches_text(query: str, name: Optional[str], constituency: Optional[str], state: Optional[str]) -> bool:
    q = normalize_component(query)
    if not q:
        return True
    name = normalize_component(name)
    if q in name or q in normalize_component(constituency) or q in normalize_component(state):
        return True
    words = q.split(" ")
    if len(words) == 2 and f"{words[1]} {words[0]}" in name:
        return True
    return len(words) >= 2 and all(w in name for w in words)
