"""Summary computation - allocations, expenditures and works joined per entity.

Per MP, within a Scope:
1. allocated_amount      = Σ allocation.allocated_amount
2. total_expenditure     = Σ expenditure.amount (+ transaction / payment counts)
3. completed works       = deduped completed set (count, value, images, rating)
4. recommended works     = recommended set reconciled against completed (pending only);
                           works are reconciled state-wide, then split per MP
5. derived fields, with guards:

    utilization_percentage = min(exp / alloc * 100, 999.99)    if alloc > 0
                             100 if exp > 0 else 0             if alloc == 0
    completion_rate        = completed / (completed + pending) * 100, 0 when both are 0
    payment_gap_percentage = (exp - completed_value) / exp * 100, 0 when exp == 0,
                             clamped at 0 (and flagged) when completed_value > exp
    pending_works          = max(0, pending - completed)   display approximation
    pending_works_reconciled = pending                     true pending set size
    unspent_amount         = alloc - exp                   negative means overspend

State, constituency and overall summaries are sums of per-MP summaries with
the percentages re-derived from the summed numerators and denominators.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from mplads.aggregation.entity import EntityResolver
from mplads.aggregation.scope import Scope
from mplads.aggregation.works import WorkReconciler
from mplads.data.store import RecordStore, in_slice
from mplads.errors import AggregationInconsistency
from mplads.models.records import (
    AllocationRecord,
    ExpenditureRecord,
    MPIdentity,
    WorkRecord,
)
from mplads.models.summary import SummaryLevel, SummaryRecord
from mplads.utils.normalize import normalize_component

logger = logging.getLogger(__name__)

UTILIZATION_CAP = 999.99
YEARLY_TREND_LIMIT = 20
CATEGORY_LIMIT = 50
UNCATEGORIZED = "Uncategorized"

# Summed when rolling per-MP summaries up to a larger entity
_SUMMED_FIELDS = (
    "allocated_amount",
    "total_expenditure",
    "transaction_count",
    "successful_payments",
    "pending_payments",
    "in_progress_amount",
    "completed_works_count",
    "completed_works_value",
    "works_with_images",
    "rated_works_count",
    "recommended_works_count",
    "recommended_works_value",
    "mp_count",
)


# =============================================================================
# METRICS
# =============================================================================

def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def utilization_percentage(allocated: float, expenditure: float) -> float:
    if allocated > 0:
        return _finite(min(expenditure / allocated * 100, UTILIZATION_CAP))
    return 100.0 if expenditure > 0 else 0.0


def completion_rate(completed_count: int, pending_count: int) -> float:
    total = completed_count + pending_count
    if total <= 0:
        return 0.0
    return _finite(completed_count / total * 100)


def payment_gap_percentage(expenditure: float, completed_value: float) -> Tuple[float, bool]:
    """Share of disbursed money not tied to a completed work.

    Returns (gap, clamped); clamped is True when completed_value exceeded
    expenditure and the gap was forced to 0.
    """
    if expenditure <= 0:
        return 0.0, False
    gap = (expenditure - completed_value) / expenditure * 100
    if gap < 0:
        return 0.0, True
    return _finite(gap), False


def pending_works_estimate(recommended_count: int, completed_count: int) -> int:
    return max(0, recommended_count - completed_count)


def _derive(values: Dict[str, Any], rating_sum: float, context: str) -> Dict[str, Any]:
    """Fill the derived fields of ``values`` (sums already in place)."""
    allocated = values["allocated_amount"]
    expenditure = values["total_expenditure"]
    completed = values["completed_works_count"]
    pending = values["recommended_works_count"]
    flags = values.setdefault("data_quality_flags", [])

    gap, clamped = payment_gap_percentage(expenditure, values["completed_works_value"])
    if clamped:
        issue = AggregationInconsistency(
            "completed_value_exceeds_expenditure",
            f"{context}: completed works value {values['completed_works_value']:,.2f} "
            f"exceeds expenditure {expenditure:,.2f}; payment gap clamped to 0",
        )
        logger.warning(str(issue))
        if issue.code not in flags:
            flags.append(issue.code)

    rated = values["rated_works_count"]
    mp_count = values["mp_count"]
    values.update(
        utilization_percentage=utilization_percentage(allocated, expenditure),
        completion_rate=completion_rate(completed, pending),
        payment_gap_percentage=gap,
        pending_works=pending_works_estimate(pending, completed),
        pending_works_reconciled=pending,
        unspent_amount=allocated - expenditure,
        avg_rating=(rating_sum / rated) if rated else None,
        avg_allocation=(allocated / mp_count) if mp_count else 0.0,
    )
    return values


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass(frozen=True)
class EntityRef:
    """What to summarize: one MP, a state, a constituency, or everything."""

    level: SummaryLevel
    mp: Optional[MPIdentity] = None
    state: Optional[str] = None
    constituency: Optional[str] = None

    @classmethod
    def for_mp(cls, mp: MPIdentity) -> "EntityRef":
        return cls(SummaryLevel.MP, mp=mp, state=mp.state, constituency=mp.constituency or None)

    @classmethod
    def for_state(cls, state: str) -> "EntityRef":
        return cls(SummaryLevel.STATE, state=state)

    @classmethod
    def for_constituency(cls, state: str, constituency: str) -> "EntityRef":
        return cls(SummaryLevel.CONSTITUENCY, state=state, constituency=constituency)

    @classmethod
    def overall(cls) -> "EntityRef":
        return cls(SummaryLevel.OVERALL)


@dataclass
class _Bucket:
    """Records of one MP; works already reconciled across the slice."""

    mp: Optional[MPIdentity] = None
    allocations: List[AllocationRecord] = field(default_factory=list)
    expenditures: List[ExpenditureRecord] = field(default_factory=list)
    completed: List[WorkRecord] = field(default_factory=list)
    pending: List[WorkRecord] = field(default_factory=list)
    flags: Set[str] = field(default_factory=set)


# =============================================================================
# COMPUTER
# =============================================================================

class SummaryComputer:
    """Computes SummaryRecords from a RecordStore.

    Stateless apart from ``computations``, a counter of summaries computed
    from raw records (useful to observe cache behaviour).
    """

    def __init__(
        self,
        store: RecordStore,
        resolver: Optional[EntityResolver] = None,
        reconciler: Optional[WorkReconciler] = None,
    ):
        self.store = store
        self.resolver = resolver or EntityResolver(store)
        self.reconciler = reconciler or WorkReconciler()
        self.computations = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compute_for_scope(self, scope: Scope, entity: EntityRef) -> SummaryRecord:
        self.computations += 1
        if entity.level is SummaryLevel.MP:
            buckets = self._collect(scope, mp=entity.mp)
            return self._summarize_mp(scope, entity.mp, buckets.get(entity.mp.key, _Bucket()))

        summaries = self.compute_many(scope, state=entity.state, constituency=entity.constituency)
        return self.combine(
            summaries,
            level=entity.level,
            scope=scope,
            state=entity.state,
            constituency=entity.constituency,
        )

    def compute_many(
        self,
        scope: Scope,
        state: Optional[str] = None,
        constituency: Optional[str] = None,
    ) -> List[SummaryRecord]:
        """Per-MP summaries for every MP in the slice.

        MPs come from the merged identity stores, followed by any MP that
        only appears in the records themselves, so no money is dropped.
        """
        buckets = self._collect(scope, state=state, constituency=constituency)
        identities = self.resolver.identities(scope, state=state, constituency=constituency)

        known = {mp.key for mp in identities}
        for key, bucket in buckets.items():
            if key not in known:
                identities.append(bucket.mp)
                known.add(key)

        return [
            self._summarize_mp(scope, mp, buckets.get(mp.key, _Bucket()))
            for mp in identities
        ]

    def constituency_breakdown(
        self,
        scope: Scope,
        state: str,
        constituency: Optional[str] = None,
    ) -> List[SummaryRecord]:
        """One summary per constituency of a state, highest utilization first.

        Members without a constituency (Rajya Sabha) are not part of any
        constituency row.
        """
        self.computations += 1
        groups: Dict[str, List[SummaryRecord]] = defaultdict(list)
        names: Dict[str, str] = {}
        for summary in self.compute_many(scope, state=state, constituency=constituency):
            key = normalize_component(summary.constituency)
            if not key:
                continue
            groups[key].append(summary)
            names.setdefault(key, summary.constituency)

        rows = [
            self.combine(
                members,
                level=SummaryLevel.CONSTITUENCY,
                scope=scope,
                state=members[0].state or state,
                constituency=names[key],
            )
            for key, members in groups.items()
        ]
        rows.sort(key=lambda s: (-s.utilization_percentage, normalize_component(s.constituency)))
        return rows

    def state_breakdown(
        self,
        scope: Scope,
        summaries: Optional[Iterable[SummaryRecord]] = None,
    ) -> List[SummaryRecord]:
        """One summary per state, ordered by state name.

        ``summaries`` are per-MP summaries already computed for the scope;
        they are computed here when omitted.
        """
        if summaries is None:
            summaries = self.compute_many(scope)
        groups: Dict[str, List[SummaryRecord]] = defaultdict(list)
        for summary in summaries:
            groups[normalize_component(summary.state)].append(summary)

        return [
            self.combine(groups[key], level=SummaryLevel.STATE, scope=scope, state=groups[key][0].state)
            for key in sorted(groups)
        ]

    def expenditure_breakdown(self, scope: Scope, mp: MPIdentity) -> Dict[str, List[Dict[str, Any]]]:
        """Yearly expenditure trend and category breakdown for one MP."""
        expenditures = self.store.expenditures(scope, mp=mp)

        by_year: Dict[int, List[float]] = defaultdict(list)
        by_category: Dict[str, List[float]] = defaultdict(list)
        for e in expenditures:
            if e.date is not None:
                by_year[e.date.year].append(e.amount)
            by_category[e.category or UNCATEGORIZED].append(e.amount)

        years = sorted(by_year)[-YEARLY_TREND_LIMIT:]
        yearly_trend = [
            {"year": year, "total_amount": sum(by_year[year]), "transaction_count": len(by_year[year])}
            for year in years
        ]
        categories = sorted(by_category.items(), key=lambda item: (-sum(item[1]), item[0]))
        category_breakdown = [
            {
                "category": category,
                "total_amount": sum(amounts),
                "transaction_count": len(amounts),
                "avg_amount": sum(amounts) / len(amounts),
            }
            for category, amounts in categories[:CATEGORY_LIMIT]
        ]
        return {"yearly_trend": yearly_trend, "category_breakdown": category_breakdown}

    @staticmethod
    def combine(
        summaries: Iterable[SummaryRecord],
        level: SummaryLevel,
        scope: Scope,
        state: Optional[str] = None,
        constituency: Optional[str] = None,
    ) -> SummaryRecord:
        """Roll per-MP summaries up into one summary of a larger entity."""
        summaries = list(summaries)
        values: Dict[str, Any] = {f: 0 for f in _SUMMED_FIELDS}
        rating_sum = 0.0
        flags: List[str] = []
        houses = set()

        for s in summaries:
            for f in _SUMMED_FIELDS:
                values[f] += getattr(s, f)
            if s.avg_rating is not None:
                rating_sum += s.avg_rating * s.rated_works_count
            for flag in s.data_quality_flags:
                if flag not in flags:
                    flags.append(flag)
            houses.add(s.house)

        values["data_quality_flags"] = flags
        context = f"{level.value} {constituency or state or 'overall'} ({scope.label})"
        _derive(values, rating_sum, context)

        return SummaryRecord(
            level=level,
            scope=scope.label,
            house=houses.pop() if len(houses) == 1 else None,
            state=state,
            constituency=constituency,
            **values,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collect(
        self,
        scope: Scope,
        state: Optional[str] = None,
        constituency: Optional[str] = None,
        mp: Optional[MPIdentity] = None,
    ) -> Dict[str, _Bucket]:
        """One read per record set, grouped by MP key.

        Works are read for the whole state (or everything) and reconciled in
        one pass before being split per MP, so a work filed under two MP
        spellings is counted once.
        """
        buckets: Dict[str, _Bucket] = {}
        kwargs = {"state": state, "constituency": constituency, "mp": mp}

        def bucket(identity: MPIdentity) -> _Bucket:
            if identity.key not in buckets:
                buckets[identity.key] = _Bucket(mp=identity)
            return buckets[identity.key]

        for record in self.store.allocations(scope, **kwargs):
            bucket(record.mp).allocations.append(record)
        for record in self.store.expenditures(scope, **kwargs):
            bucket(record.mp).expenditures.append(record)

        works_state = mp.state if mp is not None else state
        completed = self.store.completed_works(scope, state=works_state)
        recommended = self.store.recommended_works(scope, state=works_state)
        reconciled = self.reconciler.reconcile(completed, recommended)

        filers: Dict[str, MPIdentity] = {}
        for work in completed + recommended:
            filers.setdefault(work.mp.key, work.mp)
        for identity in filers.values():
            if in_slice(identity, state, constituency, mp):
                bucket(identity)

        for work in reconciled.completed:
            if in_slice(work.mp, state, constituency, mp):
                bucket(work.mp).completed.append(work)
        for work in reconciled.pending:
            if in_slice(work.mp, state, constituency, mp):
                bucket(work.mp).pending.append(work)
        for issue in reconciled.inconsistencies:
            for key in issue.context.get("mp_keys", ()):
                if key in buckets:
                    buckets[key].flags.add(issue.code)

        return buckets

    def _summarize_mp(self, scope: Scope, mp: MPIdentity, bucket: _Bucket) -> SummaryRecord:
        completed_value = sum(w.amount for w in bucket.completed)
        ratings = [w.average_rating for w in bucket.completed if w.average_rating is not None]

        values: Dict[str, Any] = {
            "allocated_amount": sum(a.allocated_amount for a in bucket.allocations),
            "total_expenditure": sum(e.amount for e in bucket.expenditures),
            "transaction_count": len(bucket.expenditures),
            "successful_payments": sum(1 for e in bucket.expenditures if e.is_successful),
            "pending_payments": sum(1 for e in bucket.expenditures if e.is_in_progress),
            "in_progress_amount": sum(e.amount for e in bucket.expenditures if e.is_in_progress),
            "completed_works_count": len(bucket.completed),
            "completed_works_value": completed_value,
            "works_with_images": sum(1 for w in bucket.completed if w.has_image),
            "rated_works_count": len(ratings),
            "recommended_works_count": len(bucket.pending),
            "recommended_works_value": sum(w.amount for w in bucket.pending),
            "mp_count": 1,
            "data_quality_flags": sorted(bucket.flags),
        }
        _derive(values, sum(ratings), f"MP {mp.name} ({scope.label})")

        return SummaryRecord(
            level=SummaryLevel.MP,
            scope=scope.label,
            mp_name=mp.name,
            house=mp.house,
            state=mp.state,
            constituency=mp.constituency or None,
            **values,
        )
