"""Work reconciliation - completed vs recommended works.

There is no status field upstream. A work moves from recommended to
completed informally: once a completed record exists with the same
(house, lsTerm, state, workId) key, the recommended record describes the
same physical work and must drop out of the "pending" totals. Both may
coexist for a while because of reporting lag; that coexistence resolves to
COMPLETED, never to "counted twice".

Steps:
1. Dedupe each set on its own (term re-syncs produce duplicate rows):
   keep the latest date, then the larger amount.
2. Drop recommended works whose key is in the deduped completed set
   (one set lookup per record, no per-record queries).
3. Report keys that arrive under more than one MP spelling. The key has no
   MP component, so callers reconcile a whole state at once and only then
   split the survivors per MP.

Works without a workId cannot be matched; they are kept as-is.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Set, Tuple

from mplads.errors import AggregationInconsistency
from mplads.models.records import WorkRecord

logger = logging.getLogger(__name__)

_EPOCH = datetime.min


def _preference(record: WorkRecord) -> Tuple[datetime, float, str, str]:
    """Ordering for duplicate rows: latest date, larger amount, then a stable tail."""
    date = record.date.replace(tzinfo=None) if record.date else _EPOCH
    return (date, record.amount, record.mp.key, record.description or "")


@dataclass
class ReconciledWorks:
    """Completed works plus the recommended works still pending."""

    completed: List[WorkRecord] = field(default_factory=list)
    pending: List[WorkRecord] = field(default_factory=list)
    superseded: int = 0
    inconsistencies: List[AggregationInconsistency] = field(default_factory=list)

    @property
    def completed_value(self) -> float:
        return sum(w.amount for w in self.completed)

    @property
    def pending_value(self) -> float:
        return sum(w.amount for w in self.pending)

    def works(self) -> List[WorkRecord]:
        """Every physical work exactly once, completed first."""
        return self.completed + self.pending


class WorkReconciler:
    """Dedupes and cross-references completed and recommended works."""

    @staticmethod
    def dedupe_within_set(records: Iterable[WorkRecord]) -> List[WorkRecord]:
        """Keep one record per match key.

        Output preserves the order in which keys were first seen; unmatched
        (no workId) records keep their position.
        """
        chosen: Dict[Tuple, WorkRecord] = {}
        order: List[object] = []
        for record in records:
            key = record.match_key
            if key is None:
                order.append(record)
                continue
            current = chosen.get(key)
            if current is None:
                chosen[key] = record
                order.append(key)
            elif _preference(record) > _preference(current):
                chosen[key] = record

        return [item if isinstance(item, WorkRecord) else chosen[item] for item in order]

    def reconcile_pending(
        self,
        completed: Iterable[WorkRecord],
        recommended: Iterable[WorkRecord],
    ) -> List[WorkRecord]:
        """Recommended works with no completed counterpart."""
        return self.reconcile(completed, recommended).pending

    def reconcile(
        self,
        completed: Iterable[WorkRecord],
        recommended: Iterable[WorkRecord],
    ) -> ReconciledWorks:
        completed = list(completed)
        recommended = list(recommended)
        done = self.dedupe_within_set(completed)
        proposed = self.dedupe_within_set(recommended)

        completed_keys: Set[Tuple] = {w.match_key for w in done if w.match_key is not None}

        pending: List[WorkRecord] = []
        superseded = 0
        for work in proposed:
            if work.match_key is not None and work.match_key in completed_keys:
                superseded += 1
                continue
            pending.append(work)

        result = ReconciledWorks(completed=done, pending=pending, superseded=superseded)
        result.inconsistencies = self._shared_works(completed + recommended, result)
        return result

    @staticmethod
    def _shared_works(rows: List[WorkRecord], result: ReconciledWorks) -> List[AggregationInconsistency]:
        """Report work ids filed under more than one MP identity.

        Each such work is still counted once, for the MP that owns the
        surviving row (the completed one when there is one).
        """
        filers: Dict[Tuple, Set[str]] = defaultdict(set)
        for work in rows:
            if work.match_key is not None:
                filers[work.match_key].add(work.mp.key)

        owners: Dict[Tuple, str] = {}
        for work in result.pending + result.completed:
            if work.match_key is not None:
                owners[work.match_key] = work.mp.key

        issues = [
            AggregationInconsistency(
                "work_filed_under_multiple_mps",
                f"work {key} filed under {len(mp_keys)} MPs; counted once for {owners.get(key)}",
                {"key": key, "mp_keys": sorted(mp_keys), "owner": owners.get(key)},
            )
            for key, mp_keys in filers.items()
            if len(mp_keys) > 1
        ]
        if issues:
            logger.warning(f"{len(issues)} work id(s) filed under more than one MP, e.g. {issues[0]}")
        return issues
