"""Data models for the MPLADS fund utilization engine.

Usage:
    from mplads.models import MPIdentity, AllocationRecord, SummaryRecord

    mp = MPIdentity(name="A Kumar", house="Lok Sabha", state="Bihar", constituency="X")
    allocation = AllocationRecord(mp=mp, ls_term=18, allocated_amount=50_000_000)
"""

from .records import (
    LOK_SABHA,
    RAJYA_SABHA,
    LS_TERMS,
    PAYMENT_SUCCESS,
    PAYMENT_IN_PROGRESS,
    canonical_house,
    WorkStatus,
    MPIdentity,
    AllocationRecord,
    ExpenditureRecord,
    WorkRecord,
)

from .summary import (
    SummaryLevel,
    SummaryRecord,
    summary_field,
)

__all__ = [
    # House / term constants
    "LOK_SABHA",
    "RAJYA_SABHA",
    "LS_TERMS",
    "PAYMENT_SUCCESS",
    "PAYMENT_IN_PROGRESS",
    "canonical_house",

    # Source records
    "WorkStatus",
    "MPIdentity",
    "AllocationRecord",
    "ExpenditureRecord",
    "WorkRecord",

    # Output
    "SummaryLevel",
    "SummaryRecord",
    "summary_field",
]
