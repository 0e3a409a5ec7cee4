"""QueryFacade - the read surface controllers call.

Every method resolves to JSON-serializable dicts and is memoized in the
injected AggregationCache under ``{method}:{canonical-query-string}``:

    getOverview:house=lok-sabha&ls_term=18
    user:42:getOverview:house=both&ls_term=both

A transiently empty scope (batch rebuild in progress) is returned as-is,
with zero values; only an unknown entity raises NotFound.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from mplads.aggregation.entity import EntityResolver, matches_text
from mplads.aggregation.scope import Scope, TermHouseScope
from mplads.aggregation.summary import EntityRef, SummaryComputer
from mplads.cache import TTL_LONG, TTL_MEDIUM, TTL_SHORT, AggregationCache, make_cache_key
from mplads.errors import NotFound
from mplads.models.records import MPIdentity
from mplads.models.summary import SummaryRecord, summary_field
from mplads.utils.normalize import normalize_component

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20
DEFAULT_PAGE_SIZE = 20
DEFAULT_STATE_LIMIT = 50
DEFAULT_SORT = "utilization_percentage"


def _sorted(summaries: List[SummaryRecord], sort_by: str, order: str) -> List[SummaryRecord]:
    """Order summaries by one field; missing values always go last."""
    field = summary_field(sort_by)
    if field is None:
        logger.warning(f"Unknown sort field {sort_by!r}, sorting by {DEFAULT_SORT}")
        field = DEFAULT_SORT
    present = [s for s in summaries if getattr(s, field) is not None]
    missing = [s for s in summaries if getattr(s, field) is None]
    present.sort(key=lambda s: normalize_component(s.mp_name or s.state))
    present.sort(key=lambda s: getattr(s, field), reverse=(order != "asc"))
    return present + missing


def _identity_params(mp: MPIdentity) -> Dict[str, Any]:
    return {
        "mp": mp.name,
        "mp_house": mp.house,
        "state": mp.state,
        "constituency": mp.constituency or None,
    }


def _identity_payload(mp: MPIdentity) -> Dict[str, Any]:
    return {
        "id": mp.record_id,
        "name": mp.name,
        "house": mp.house,
        "state": mp.state,
        "constituency": mp.constituency or None,
    }


class QueryFacade:
    """Cached summary queries over a SummaryComputer.

    Args:
        computer: SummaryComputer bound to a RecordStore
        cache: AggregationCache instance (one per process, or one per test)
        scope_resolver: TermHouseScope used by ``scope_for``
    """

    def __init__(
        self,
        computer: SummaryComputer,
        cache: AggregationCache,
        scope_resolver: Optional[TermHouseScope] = None,
    ):
        self.computer = computer
        self.cache = cache
        self.scope_resolver = scope_resolver or TermHouseScope()

    @property
    def resolver(self) -> EntityResolver:
        return self.computer.resolver

    def scope_for(self, house: Any = None, ls_term: Any = None) -> Scope:
        return self.scope_resolver.resolve(house, ls_term)

    def _key(self, method: str, scope: Scope, params: Optional[Dict[str, Any]] = None, user_id: Optional[str] = None) -> str:
        return make_cache_key(method, {**scope.params(), **(params or {})}, user_id=user_id)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def get_overview(self, scope: Scope, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Aggregate across every MP in the scope."""
        key = self._key("getOverview", scope, user_id=user_id)
        return self.cache.get_or_compute(
            key,
            lambda: self.computer.compute_for_scope(scope, EntityRef.overall()).model_dump(mode="json"),
            ttl=TTL_LONG,
        )

    def get_mp_summary(self, scope: Scope, mp: MPIdentity, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Summary for one MP.

        Raises:
            NotFound: the MP is in neither identity store for this scope
        """
        key = self._key("getMPSummary", scope, _identity_params(mp), user_id=user_id)

        def compute() -> Dict[str, Any]:
            stored = self.resolver.find(scope, mp)
            if stored is None:
                raise NotFound("MP", mp.name)
            return self.computer.compute_for_scope(scope, EntityRef.for_mp(stored)).model_dump(mode="json")

        return self.cache.get_or_compute(key, compute, ttl=TTL_MEDIUM)

    def get_state_summary(self, scope: Scope, state: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Summary for one state, summed over its MPs.

        Raises:
            NotFound: no MP of the scope is known in this state
        """
        key = self._key("getStateSummary", scope, {"state": state}, user_id=user_id)

        def compute() -> Dict[str, Any]:
            if not self.resolver.identities(scope, state=state):
                raise NotFound("State", state)
            return self.computer.compute_for_scope(scope, EntityRef.for_state(state)).model_dump(mode="json")

        return self.cache.get_or_compute(key, compute, ttl=TTL_MEDIUM)

    def get_constituency_summary(
        self,
        scope: Scope,
        state: str,
        constituency: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Constituency rows of a state, highest utilization first.

        With ``constituency`` set the list holds that single constituency.

        Raises:
            NotFound: no MP of the scope is known for the state/constituency
        """
        key = self._key(
            "getConstituencySummary", scope, {"state": state, "constituency": constituency}, user_id=user_id
        )

        def compute() -> List[Dict[str, Any]]:
            if not self.resolver.identities(scope, state=state, constituency=constituency):
                raise NotFound("Constituency" if constituency else "State", constituency or state)
            rows = self.computer.constituency_breakdown(scope, state, constituency)
            return [row.model_dump(mode="json") for row in rows]

        return self.cache.get_or_compute(key, compute, ttl=TTL_MEDIUM)

    def list_mp_summaries(
        self,
        scope: Scope,
        state: Optional[str] = None,
        query: Optional[str] = None,
        sort_by: str = DEFAULT_SORT,
        order: str = "desc",
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Paginated per-MP summaries, optionally narrowed to a state and a search.

        ``sort_by`` takes a SummaryRecord field or its collection name
        (``utilizationPercentage``); unknown fields sort by utilization.

        Returns:
            {"summaries": [...], "pagination": {"current_page", "total_pages",
            "total_count", "limit"}}
        """
        page = max(1, int(page))
        limit = max(1, int(limit))
        params = {
            "state": state,
            "search": query or None,
            "sort_by": sort_by,
            "order": order,
            "page": page,
            "limit": limit,
        }
        key = self._key("getMPSummaries", scope, params, user_id=user_id)

        def compute() -> Dict[str, Any]:
            summaries = self.computer.compute_many(scope, state=state)
            if query:
                summaries = [s for s in summaries if matches_text(query, s.mp_name, s.constituency, s.state)]
            ordered = _sorted(summaries, sort_by, order)
            start = (page - 1) * limit
            return {
                "summaries": [s.model_dump(mode="json") for s in ordered[start:start + limit]],
                "pagination": {
                    "current_page": page,
                    "total_pages": math.ceil(len(ordered) / limit),
                    "total_count": len(ordered),
                    "limit": limit,
                },
            }

        return self.cache.get_or_compute(key, compute, ttl=TTL_MEDIUM)

    def list_state_summaries(
        self,
        scope: Scope,
        sort_by: str = DEFAULT_SORT,
        order: str = "desc",
        limit: int = DEFAULT_STATE_LIMIT,
        user_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """One summary per state of the scope, best utilization first by default."""
        limit = max(1, int(limit))
        key = self._key(
            "getStateSummaries", scope, {"sort_by": sort_by, "order": order, "limit": limit}, user_id=user_id
        )

        def compute() -> List[Dict[str, Any]]:
            rows = _sorted(self.computer.state_breakdown(scope), sort_by, order)
            return [row.model_dump(mode="json") for row in rows[:limit]]

        return self.cache.get_or_compute(key, compute, ttl=TTL_MEDIUM)

    # ------------------------------------------------------------------
    # MP lookups
    # ------------------------------------------------------------------

    def get_mp_detail(self, scope: Scope, record_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """MP identity, summary and expenditure breakdown by surrogate id.

        Raises:
            NotFound: the id is in neither store
        """
        key = self._key("getMPDetail", scope, {"id": record_id}, user_id=user_id)

        def compute() -> Dict[str, Any]:
            mp = self.resolver.resolve_id(record_id)
            summary = self.computer.compute_for_scope(scope, EntityRef.for_mp(mp))
            return {
                "mp": _identity_payload(mp),
                "summary": summary.model_dump(mode="json"),
                **self.computer.expenditure_breakdown(scope, mp),
            }

        return self.cache.get_or_compute(key, compute, ttl=TTL_SHORT)

    def search_mps(self, scope: Scope, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Dict[str, Any]]:
        """Merged, deduplicated MP identities matching ``query``. Not cached."""
        matches = self.resolver.identities(scope, query=query)
        logger.debug(f"Search {query!r} in {scope.label}: {len(matches)} matches")
        return [_identity_payload(mp) for mp in matches[: max(0, limit)]]

    def invalidate(self, pattern: str) -> int:
        return self.cache.invalidate(pattern)
