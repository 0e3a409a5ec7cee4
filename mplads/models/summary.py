"""SummaryRecord - the engine's output row.

One model serves every aggregation level (mp, state, constituency,
overall). Per-MP rows are computed from raw records; every other level is a
sum of per-MP rows with the percentage fields re-derived from the sums.

Stored in the ``summaries`` collection with the camelCase field names the
original collection used, e.g.:

    {
        "type": "mp_summary",
        "mpName": "A Kumar",
        "house": "Lok Sabha",
        "state": "Bihar",
        "constituency": "X",
        "lsTerm": 18,
        "allocatedAmount": 50000000.0,
        "totalExpenditure": 25000000.0,
        "utilizationPercentage": 50.0,
        ...
    }
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SummaryLevel(str, Enum):
    MP = "mp"
    STATE = "state"
    CONSTITUENCY = "constituency"
    OVERALL = "overall"


# Python field name -> summaries collection field name
_MONGO_FIELDS = {
    "mp_name": "mpName",
    "house": "house",
    "state": "state",
    "constituency": "constituency",
    "allocated_amount": "allocatedAmount",
    "total_expenditure": "totalExpenditure",
    "transaction_count": "transactionCount",
    "successful_payments": "successfulPayments",
    "pending_payments": "pendingPayments",
    "in_progress_amount": "inProgressPayments",
    "completed_works_count": "completedWorksCount",
    "completed_works_value": "completedWorksValue",
    "works_with_images": "worksWithImages",
    "rated_works_count": "ratedWorksCount",
    "avg_rating": "avgRating",
    "recommended_works_count": "recommendedWorksCount",
    "recommended_works_value": "totalRecommendedAmount",
    "utilization_percentage": "utilizationPercentage",
    "completion_rate": "completionRate",
    "payment_gap_percentage": "paymentGapPercentage",
    "pending_works": "pendingWorks",
    "pending_works_reconciled": "pendingWorksReconciled",
    "unspent_amount": "unspentAmount",
    "mp_count": "mpCount",
    "avg_allocation": "avgAllocation",
    "data_quality_flags": "dataQualityFlags",
}


class SummaryRecord(BaseModel):
    """Financial summary for one entity within one house/term scope.

    Two pending-work figures are kept on purpose and must not be conflated:
    - pending_works: max(0, recommended - completed), a display approximation
    - pending_works_reconciled: size of the reconciled pending set

    recommended_works_count already counts only the reconciled pending set,
    so pending_works_reconciled always equals recommended_works_count.
    """

    level: SummaryLevel
    scope: str = Field(..., description="Scope label, e.g. 'Lok Sabha 18' or 'Rajya Sabha + Lok Sabha 17,18'")

    # Identity (whatever applies at this level)
    mp_name: Optional[str] = None
    house: Optional[str] = None
    state: Optional[str] = None
    constituency: Optional[str] = None

    # Money
    allocated_amount: float = 0.0
    total_expenditure: float = 0.0
    transaction_count: int = 0
    successful_payments: int = 0
    pending_payments: int = 0
    in_progress_amount: float = 0.0

    # Works
    completed_works_count: int = 0
    completed_works_value: float = 0.0
    works_with_images: int = 0
    rated_works_count: int = 0
    avg_rating: Optional[float] = None
    recommended_works_count: int = 0
    recommended_works_value: float = 0.0

    # Derived
    utilization_percentage: float = 0.0
    completion_rate: float = 0.0
    payment_gap_percentage: float = 0.0
    pending_works: int = 0
    pending_works_reconciled: int = 0
    unspent_amount: float = 0.0

    # Rollups
    mp_count: int = 0
    avg_allocation: float = 0.0

    data_quality_flags: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            self.allocated_amount == 0
            and self.transaction_count == 0
            and self.completed_works_count == 0
            and self.recommended_works_count == 0
        )

    def to_mongo_doc(self, ls_term: Optional[int] = None) -> Dict[str, Any]:
        """Convert to a ``summaries`` collection document."""
        doc: Dict[str, Any] = {"type": f"{self.level.value}_summary", "lsTerm": ls_term}
        for field, mongo_field in _MONGO_FIELDS.items():
            doc[mongo_field] = getattr(self, field)
        # Older readers look for these names
        doc["totalCompletedAmount"] = self.completed_works_value
        doc["totalAllocated"] = self.allocated_amount
        doc["summaryUpdatedAt"] = datetime.now().isoformat()
        return doc

    @classmethod
    def from_mongo_doc(cls, doc: Dict[str, Any], scope: str) -> "SummaryRecord":
        level = (doc.get("type") or "mp_summary").replace("_summary", "")
        values: Dict[str, Any] = {"level": SummaryLevel(level), "scope": scope}
        for field, mongo_field in _MONGO_FIELDS.items():
            if doc.get(mongo_field) is not None:
                values[field] = doc[mongo_field]
        if "allocated_amount" not in values and doc.get("totalAllocated") is not None:
            values["allocated_amount"] = doc["totalAllocated"]
        if "completed_works_value" not in values and doc.get("totalCompletedAmount") is not None:
            values["completed_works_value"] = doc["totalCompletedAmount"]
        return cls(**values)


def summary_field(name: str) -> Optional[str]:
    """SummaryRecord field for a python or collection field name, or None."""
    if name in _MONGO_FIELDS:
        return name
    for field, mongo_field in _MONGO_FIELDS.items():
        if mongo_field == name:
            return field
    return None
