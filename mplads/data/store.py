"""Record stores - read access to the MPLADS collections.

The engine reads six collections through one interface:

    allocations, expenditures, works_completed, works_recommended
        term-scoped records, filtered with Scope.to_mongo_filter()
    summaries (type=mp_summary)
        the denormalized "fresher" identity store (has lsTerm)
    mps
        the canonical MP registry (no lsTerm; gated by house only)

MongoRecordStore binds the interface to pymongo; InMemoryRecordStore holds
plain lists and is used by tests and fixtures. Both apply the same scope
predicate, so results agree for the same data.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from bson import ObjectId
from pydantic import ValidationError
from pymongo.database import Database

from mplads import config
from mplads.models.records import (
    LOK_SABHA,
    RAJYA_SABHA,
    AllocationRecord,
    ExpenditureRecord,
    MPIdentity,
    TermRecord,
    WorkRecord,
    WorkStatus,
)
from mplads.utils.normalize import normalize_component

if TYPE_CHECKING:
    from mplads.aggregation.scope import Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALLOCATIONS = "allocations"
EXPENDITURES = "expenditures"
WORKS_COMPLETED = "works_completed"
WORKS_RECOMMENDED = "works_recommended"
SUMMARIES = "summaries"
MPS = "mps"


class RecordStore(ABC):
    """Read interface over the four record sets and the two identity stores.

    All record methods take the same slice arguments: ``state`` and
    ``constituency`` narrow by location, ``mp`` narrows to one identity.
    """

    @abstractmethod
    def allocations(self, scope: "Scope", *, state=None, constituency=None, mp=None) -> List[AllocationRecord]:
        ...

    @abstractmethod
    def expenditures(self, scope: "Scope", *, state=None, constituency=None, mp=None) -> List[ExpenditureRecord]:
        ...

    @abstractmethod
    def completed_works(self, scope: "Scope", *, state=None, constituency=None, mp=None) -> List[WorkRecord]:
        ...

    @abstractmethod
    def recommended_works(self, scope: "Scope", *, state=None, constituency=None, mp=None) -> List[WorkRecord]:
        ...

    @abstractmethod
    def summary_identities(self, scope: "Scope", *, state=None, constituency=None) -> List[MPIdentity]:
        """Identities from the denormalized summary store (the fresher one)."""

    @abstractmethod
    def registry_identities(self, scope: "Scope", *, state=None, constituency=None) -> List[MPIdentity]:
        """Identities from the canonical MP registry."""

    @abstractmethod
    def find_summary_identity(self, record_id: str) -> Optional[MPIdentity]:
        ...

    @abstractmethod
    def find_registry_identity(self, record_id: str) -> Optional[MPIdentity]:
        ...


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

def in_slice(mp: MPIdentity, state: Optional[str], constituency: Optional[str], target: Optional[MPIdentity]) -> bool:
    if state is not None and mp.state_key != normalize_component(state):
        return False
    if constituency is not None and mp.constituency_key != normalize_component(constituency):
        return False
    if target is not None and mp.key != target.key:
        return False
    return True


class InMemoryRecordStore(RecordStore):
    """List-backed store.

    ``summary_mps`` holds (identity, lsTerm) pairs because summary documents
    are stored per term; ``registry_mps`` holds bare identities.
    """

    def __init__(
        self,
        allocations: Iterable[AllocationRecord] = (),
        expenditures: Iterable[ExpenditureRecord] = (),
        completed: Iterable[WorkRecord] = (),
        recommended: Iterable[WorkRecord] = (),
        summary_mps: Iterable[Tuple[MPIdentity, Optional[int]]] = (),
        registry_mps: Iterable[MPIdentity] = (),
    ):
        self._allocations = list(allocations)
        self._expenditures = list(expenditures)
        self._completed = list(completed)
        self._recommended = list(recommended)
        self._summary_mps = list(summary_mps)
        self._registry_mps = list(registry_mps)

    def _select(self, records: List[T], scope: "Scope", state, constituency, mp) -> List[T]:
        return [
            r for r in records
            if scope.matches(r.house, r.ls_term) and in_slice(r.mp, state, constituency, mp)
        ]

    def allocations(self, scope, *, state=None, constituency=None, mp=None):
        return self._select(self._allocations, scope, state, constituency, mp)

    def expenditures(self, scope, *, state=None, constituency=None, mp=None):
        return self._select(self._expenditures, scope, state, constituency, mp)

    def completed_works(self, scope, *, state=None, constituency=None, mp=None):
        return self._select(self._completed, scope, state, constituency, mp)

    def recommended_works(self, scope, *, state=None, constituency=None, mp=None):
        return self._select(self._recommended, scope, state, constituency, mp)

    def summary_identities(self, scope, *, state=None, constituency=None):
        return [
            mp for mp, ls_term in self._summary_mps
            if scope.matches(mp.house, ls_term) and in_slice(mp, state, constituency, None)
        ]

    def registry_identities(self, scope, *, state=None, constituency=None):
        houses = _scope_houses(scope)
        return [
            mp for mp in self._registry_mps
            if mp.house in houses and in_slice(mp, state, constituency, None)
        ]

    def find_summary_identity(self, record_id):
        for mp, _ in self._summary_mps:
            if mp.record_id == record_id:
                return mp
        return None

    def find_registry_identity(self, record_id):
        for mp in self._registry_mps:
            if mp.record_id == record_id:
                return mp
        return None


def _scope_houses(scope: "Scope") -> Tuple[str, ...]:
    houses = []
    if scope.includes_rajya_sabha:
        houses.append(RAJYA_SABHA)
    if scope.includes_lok_sabha:
        houses.append(LOK_SABHA)
    return tuple(houses)


# =============================================================================
# MONGO STORE
# =============================================================================

def loose_exact(value: str) -> Dict[str, str]:
    """Case-insensitive, whitespace-tolerant exact-match regex."""
    words = normalize_component(value).split(" ")
    pattern = r"\s+".join(re.escape(w) for w in words if w)
    return {"$regex": rf"^\s*{pattern}\s*$", "$options": "i"}


def build_filter(
    scope_filter: Dict[str, Any],
    *,
    state: Optional[str] = None,
    constituency: Optional[str] = None,
    mp: Optional[MPIdentity] = None,
    name_field: str = "mpName",
) -> Dict[str, Any]:
    """AND the scope predicate with the slice arguments."""
    clauses = [scope_filter]
    if mp is not None:
        state = mp.state
        constituency = mp.constituency or None
        clauses.append({name_field: loose_exact(mp.name)})
    if state:
        clauses.append({"state": loose_exact(state)})
    if constituency:
        clauses.append({"constituency": loose_exact(constituency)})
    if len(clauses) == 1:
        return dict(scope_filter)
    return {"$and": clauses}


def registry_filter(scope: "Scope") -> Dict[str, Any]:
    """The MP registry has no lsTerm, so it is gated by house alone."""
    houses = _scope_houses(scope)
    if len(houses) == 1:
        return {"house": houses[0]}
    return {"house": {"$in": list(houses)}}


class MongoRecordStore(RecordStore):
    """pymongo-backed store over the original collection layout.

    Each call issues one query per collection; ``row_limit`` caps how many
    raw rows a single query may feed into an aggregation.
    """

    def __init__(self, db: Database, row_limit: Optional[int] = None):
        self.db = db
        self.row_limit = row_limit if row_limit is not None else config.AGGREGATION_ROW_LIMIT

    def _load(self, collection: str, query: Dict[str, Any], parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        cursor = self.db[collection].find(query)
        if self.row_limit:
            cursor = cursor.limit(self.row_limit)

        records: List[T] = []
        rows = 0
        skipped = 0
        for doc in cursor:
            rows += 1
            try:
                records.append(parse(doc))
            except (ValidationError, ValueError, TypeError) as e:
                skipped += 1
                logger.debug(f"Skipping malformed {collection} document {doc.get('_id')}: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped:,} malformed documents in {collection}")
        if self.row_limit and rows >= self.row_limit:
            logger.warning(f"{collection} query hit the row limit ({self.row_limit:,}); results are truncated")
        return records

    def _records(self, collection, parse, scope, state, constituency, mp) -> List[TermRecord]:
        query = build_filter(scope.to_mongo_filter(), state=state, constituency=constituency, mp=mp)
        records = self._load(collection, query, parse)
        if mp is not None:
            # regex matched loosely; confirm on the normalized key
            records = [r for r in records if r.mp.key == mp.key]
        return records

    def allocations(self, scope, *, state=None, constituency=None, mp=None):
        return self._records(ALLOCATIONS, AllocationRecord.from_mongo_doc, scope, state, constituency, mp)

    def expenditures(self, scope, *, state=None, constituency=None, mp=None):
        return self._records(EXPENDITURES, ExpenditureRecord.from_mongo_doc, scope, state, constituency, mp)

    def completed_works(self, scope, *, state=None, constituency=None, mp=None):
        parse = lambda doc: WorkRecord.from_mongo_doc(doc, WorkStatus.COMPLETED)  # noqa: E731
        return self._records(WORKS_COMPLETED, parse, scope, state, constituency, mp)

    def recommended_works(self, scope, *, state=None, constituency=None, mp=None):
        parse = lambda doc: WorkRecord.from_mongo_doc(doc, WorkStatus.RECOMMENDED)  # noqa: E731
        return self._records(WORKS_RECOMMENDED, parse, scope, state, constituency, mp)

    def summary_identities(self, scope, *, state=None, constituency=None):
        query = build_filter(
            {"$and": [{"type": "mp_summary"}, scope.to_mongo_filter()]},
            state=state,
            constituency=constituency,
        )
        return self._load(SUMMARIES, query, lambda doc: MPIdentity.from_mongo_doc(doc, source="summary"))

    def registry_identities(self, scope, *, state=None, constituency=None):
        query = build_filter(registry_filter(scope), state=state, constituency=constituency, name_field="name")
        return self._load(MPS, query, lambda doc: MPIdentity.from_mongo_doc(doc, source="mp"))

    def _find_by_id(self, collection: str, record_id: str, extra: Dict[str, Any], source: str) -> Optional[MPIdentity]:
        if not ObjectId.is_valid(record_id):
            return None
        doc = self.db[collection].find_one({"_id": ObjectId(record_id), **extra})
        if doc is None:
            return None
        return MPIdentity.from_mongo_doc(doc, source=source)

    def find_summary_identity(self, record_id):
        return self._find_by_id(SUMMARIES, record_id, {"type": "mp_summary"}, "summary")

    def find_registry_identity(self, record_id):
        return self._find_by_id(MPS, record_id, {}, "mp")
