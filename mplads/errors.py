"""Error taxonomy for the fund utilization engine.

Caller-visible:
- NotFound: the requested MP / state / constituency is unknown to both stores
- InvalidScope: structurally invalid house/term input from a collaborator

Internal (logged, never propagated to a request):
- CacheDegraded: the cache could not store an entry
- AggregationInconsistency: upstream data broke an invariant and was normalized
"""

from typing import Any, Dict, Optional


class MPLADSError(Exception):
    """Base class for all engine errors."""


class NotFound(MPLADSError):
    """No matching identity in either record store."""

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class InvalidScope(MPLADSError):
    """House/term selection that cannot be interpreted at all."""


class CacheDegraded(MPLADSError):
    """Non-fatal cache failure (capacity or memory eviction did not free room)."""


class AggregationInconsistency(MPLADSError):
    """An invariant violation found while aggregating.

    Carries a short machine-readable ``code`` that ends up in the
    ``data_quality_flags`` of the affected summary.
    """

    def __init__(self, code: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.code = code
        self.context = context or {}
        super().__init__(f"[{code}] {message}")
