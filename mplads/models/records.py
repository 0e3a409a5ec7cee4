"""Record models for the four MPLADS source collections.

Every record hangs off an MPIdentity plus the Lok Sabha term it belongs to:
- AllocationRecord: fund allocated to one MP for one term (or Rajya Sabha)
- ExpenditureRecord: one disbursed payment
- WorkRecord: a development work, either RECOMMENDED or COMPLETED

House/term invariant (checked at construction):
    Rajya Sabha → ls_term is None
    Lok Sabha   → ls_term in {17, 18}

Source documents use the camelCase field names of the original MongoDB
collections (mpName, lsTerm, expenditureAmount, ...); each model has a
``from_mongo_doc`` to map them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mplads.utils.normalize import join_key, normalize_component


LOK_SABHA = "Lok Sabha"
RAJYA_SABHA = "Rajya Sabha"
LS_TERMS: Tuple[int, ...] = (17, 18)

PAYMENT_SUCCESS = "Payment Success"
PAYMENT_IN_PROGRESS = "Payment In Progress"


def canonical_house(value: Any) -> Optional[str]:
    """Map loose house spellings ("lok-sabha", "RAJYA SABHA") to the canonical name.

    Returns None when the value names neither house.
    """
    text = normalize_component(str(value).replace("-", " ").replace("_", " ")) if value else ""
    if text in ("lok sabha", "ls", "loksabha"):
        return LOK_SABHA
    if text in ("rajya sabha", "rs", "rajyasabha"):
        return RAJYA_SABHA
    return None


class WorkStatus(str, Enum):
    """Derived state of a work.

    There is no status column upstream: a work is COMPLETED when a record
    exists in the completed collection, RECOMMENDED otherwise.
    """
    RECOMMENDED = "recommended"
    COMPLETED = "completed"


# =============================================================================
# MP IDENTITY
# =============================================================================

class MPIdentity(BaseModel):
    """Who an MP is, independent of which store described them.

    Identity is the normalized ``name|constituency|state|house`` key; the
    surrogate ``record_id`` and ``source`` are carried along for lookups
    but never compared.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    house: str
    state: str
    constituency: str = ""

    record_id: Optional[str] = Field(default=None, description="Surrogate id in the source store")
    source: Optional[str] = Field(default=None, description="'summary' or 'mp'")

    @field_validator("house", mode="before")
    @classmethod
    def _canonical_house(cls, value: Any) -> str:
        house = canonical_house(value)
        if house is None:
            raise ValueError(f"unknown house: {value!r}")
        return house

    @field_validator("constituency", mode="before")
    @classmethod
    def _blank_constituency(cls, value: Any) -> str:
        return "" if value is None else value

    @property
    def key(self) -> str:
        return join_key((self.name, self.constituency, self.state, self.house))

    @property
    def state_key(self) -> str:
        return normalize_component(self.state)

    @property
    def constituency_key(self) -> str:
        return normalize_component(self.constituency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MPIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    @classmethod
    def from_mongo_doc(cls, doc: Dict[str, Any], source: Optional[str] = None) -> "MPIdentity":
        """Build from either an ``mps`` document (``name``) or a record document (``mpName``)."""
        name = doc.get("mpName") or doc.get("name") or ""
        record_id = doc.get("_id")
        return cls(
            name=name,
            house=doc.get("house"),
            state=doc.get("state") or "",
            constituency=doc.get("constituency"),
            record_id=str(record_id) if record_id is not None else None,
            source=source,
        )


# =============================================================================
# TERM-SCOPED RECORDS
# =============================================================================

class TermRecord(BaseModel):
    """Common shape: an MP plus the Lok Sabha term (None for Rajya Sabha)."""

    mp: MPIdentity
    ls_term: Optional[int] = None

    @model_validator(mode="after")
    def _check_house_term(self):
        if self.mp.house == RAJYA_SABHA and self.ls_term is not None:
            raise ValueError(f"Rajya Sabha record carries lsTerm={self.ls_term}")
        if self.mp.house == LOK_SABHA and self.ls_term not in LS_TERMS:
            raise ValueError(f"Lok Sabha record has lsTerm={self.ls_term}, expected one of {LS_TERMS}")
        return self

    @property
    def house(self) -> str:
        return self.mp.house

    @property
    def state(self) -> str:
        return self.mp.state


def _term_from_doc(doc: Dict[str, Any]) -> Optional[int]:
    value = doc.get("lsTerm")
    return int(value) if value is not None else None


def _work_id_from_doc(doc: Dict[str, Any]) -> Optional[int]:
    value = doc.get("workId", doc.get("work_id"))
    if value is None or value == "":
        return None
    return int(value)


class AllocationRecord(TermRecord):
    """Fund allocated to one MP for one term. Superseded wholesale on re-ingestion."""

    allocated_amount: float = Field(default=0.0, ge=0)

    @classmethod
    def from_mongo_doc(cls, doc: Dict[str, Any]) -> "AllocationRecord":
        return cls(
            mp=MPIdentity.from_mongo_doc(doc),
            ls_term=_term_from_doc(doc),
            allocated_amount=float(doc.get("allocatedAmount") or 0),
        )


class ExpenditureRecord(TermRecord):
    """One disbursed payment, optionally linked to a work."""

    work_id: Optional[int] = None
    amount: float = 0.0
    payment_status: Optional[str] = None
    date: Optional[datetime] = None
    category: Optional[str] = None

    @property
    def is_successful(self) -> bool:
        return "success" in normalize_component(self.payment_status)

    @property
    def is_in_progress(self) -> bool:
        status = normalize_component(self.payment_status)
        return "progress" in status or "pending" in status

    @classmethod
    def from_mongo_doc(cls, doc: Dict[str, Any]) -> "ExpenditureRecord":
        amount = doc.get("expenditureAmount")
        if amount is None:
            amount = doc.get("amount")
        return cls(
            mp=MPIdentity.from_mongo_doc(doc),
            ls_term=_term_from_doc(doc),
            work_id=_work_id_from_doc(doc),
            amount=float(amount or 0),
            payment_status=doc.get("paymentStatus"),
            date=doc.get("expenditureDate") or doc.get("date"),
            category=doc.get("category") or doc.get("expenditureCategory"),
        )


class WorkRecord(TermRecord):
    """A development work. Recommended and completed works share this shape."""

    status: WorkStatus
    work_id: Optional[int] = None
    amount: float = 0.0
    date: Optional[datetime] = None
    category: Optional[str] = None
    description: Optional[str] = None
    has_image: bool = False
    average_rating: Optional[float] = None

    @property
    def match_key(self) -> Optional[Tuple[str, Optional[int], str, int]]:
        """(house, ls_term, state, work_id); None when the work has no id."""
        if self.work_id is None:
            return None
        return (self.house, self.ls_term, self.mp.state_key, self.work_id)

    @classmethod
    def from_mongo_doc(cls, doc: Dict[str, Any], status: WorkStatus) -> "WorkRecord":
        if status is WorkStatus.COMPLETED:
            amount = doc.get("finalAmount")
            date = doc.get("completedDate")
        else:
            amount = doc.get("recommendedAmount")
            date = doc.get("recommendationDate")
        return cls(
            mp=MPIdentity.from_mongo_doc(doc),
            ls_term=_term_from_doc(doc),
            status=status,
            work_id=_work_id_from_doc(doc),
            amount=float(amount or 0),
            date=date,
            category=doc.get("workCategory"),
            description=doc.get("workDescription"),
            has_image=bool(doc.get("hasImage", False)),
            average_rating=doc.get("averageRating"),
        )
