"""Fund utilization aggregation engine.

Leaves first:
- scope    → TermHouseScope / Scope: house + Lok Sabha term gating
- entity   → EntityResolver: one identity per MP across the two stores
- works    → WorkReconciler: completed vs recommended dedup
- summary  → SummaryComputer: per-MP summaries and their rollups

Data Flow:
  record stores → EntityResolver / WorkReconciler → SummaryComputer → cache → QueryFacade
"""

from .scope import Scope, TermHouseScope, parse_ls_term
from .entity import EntityResolver, matches_search
from .works import ReconciledWorks, WorkReconciler
from .summary import (
    EntityRef,
    SummaryComputer,
    UTILIZATION_CAP,
    utilization_percentage,
    completion_rate,
    payment_gap_percentage,
    pending_works_estimate,
)

__all__ = [
    "Scope",
    "TermHouseScope",
    "parse_ls_term",
    "EntityResolver",
    "matches_search",
    "ReconciledWorks",
    "WorkReconciler",
    "EntityRef",
    "SummaryComputer",
    "UTILIZATION_CAP",
    "utilization_percentage",
    "completion_rate",
    "payment_gap_percentage",
    "pending_works_estimate",
]
