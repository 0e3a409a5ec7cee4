"""Tests for Mongo document mapping and filter construction (no server needed)."""

import re
from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from mplads.data.store import MongoRecordStore, build_filter, loose_exact, registry_filter
from mplads.models.records import (
    LOK_SABHA,
    RAJYA_SABHA,
    AllocationRecord,
    ExpenditureRecord,
    MPIdentity,
    WorkRecord,
    WorkStatus,
)
from mplads.models.summary import SummaryLevel, SummaryRecord


class FakeCursor(list):
    def limit(self, n):
        return FakeCursor(self[:n])


class FakeCollection:
    def __init__(self, docs):
        self.docs = docs
        self.queries = []

    def find(self, query):
        self.queries.append(query)
        return FakeCursor(self.docs)

    def find_one(self, query):
        self.queries.append(query)
        for doc in self.docs:
            if doc.get("_id") == query.get("_id"):
                return doc
        return None


class FakeDB(dict):
    def __missing__(self, name):
        self[name] = FakeCollection([])
        return self[name]


# ============================================================================
# DOCUMENT MAPPING
# ============================================================================

def test_records_map_from_original_field_names():
    expenditure = ExpenditureRecord.from_mongo_doc({
        "mpName": "A Kumar", "house": "Lok Sabha", "state": "Bihar", "constituency": "X",
        "lsTerm": 18, "expenditureAmount": 125000, "paymentStatus": "Payment Success",
        "expenditureDate": datetime(2024, 1, 2), "workId": "123", "expenditureCategory": "Roads",
    })
    assert expenditure.amount == 125000
    assert expenditure.work_id == 123
    assert expenditure.category == "Roads"
    assert expenditure.is_successful and not expenditure.is_in_progress

    completed = WorkRecord.from_mongo_doc(
        {"mpName": "A Kumar", "house": "Lok Sabha", "state": "Bihar", "lsTerm": 18,
         "workId": 7, "finalAmount": 520000, "completedDate": datetime(2024, 5, 1), "hasImage": True},
        WorkStatus.COMPLETED,
    )
    assert completed.amount == 520000
    assert completed.has_image
    assert completed.match_key == (LOK_SABHA, 18, "bihar", 7)


def test_rajya_sabha_record_with_term_is_rejected():
    with pytest.raises(ValidationError):
        AllocationRecord.from_mongo_doc(
            {"mpName": "C Rao", "house": "Rajya Sabha", "state": "Bihar", "lsTerm": 18, "allocatedAmount": 1}
        )


def test_lok_sabha_record_needs_known_term():
    with pytest.raises(ValidationError):
        AllocationRecord.from_mongo_doc({"mpName": "A", "house": "Lok Sabha", "state": "Bihar", "lsTerm": 16})


def test_negative_allocation_is_rejected(make_mp):
    with pytest.raises(ValidationError):
        AllocationRecord(mp=make_mp(), ls_term=18, allocated_amount=-1)


def test_summary_document_round_trip_keeps_original_names():
    summary = SummaryRecord(
        level=SummaryLevel.MP, scope="Lok Sabha 18", mp_name="A Kumar", house=LOK_SABHA,
        state="Bihar", constituency="X", allocated_amount=100.0, completed_works_value=40.0,
        recommended_works_value=10.0,
    )
    doc = summary.to_mongo_doc(ls_term=18)
    assert doc["type"] == "mp_summary"
    assert doc["lsTerm"] == 18
    assert doc["totalAllocated"] == doc["allocatedAmount"] == 100.0
    assert doc["totalCompletedAmount"] == 40.0
    assert doc["totalRecommendedAmount"] == 10.0
    assert MPIdentity.from_mongo_doc(doc).name == "A Kumar"

    restored = SummaryRecord.from_mongo_doc(doc, scope="Lok Sabha 18")
    assert restored.allocated_amount == 100.0
    assert restored.level is SummaryLevel.MP


# ============================================================================
# FILTERS
# ============================================================================

def test_loose_exact_matches_case_and_spacing():
    regex = loose_exact("A  Kumar")
    pattern = re.compile(regex["$regex"], re.IGNORECASE)
    assert pattern.match("a kumar")
    assert pattern.match("  A   KUMAR ")
    assert not pattern.match("A Kumar Singh")


def test_build_filter_without_slice_is_the_scope(ls18):
    assert build_filter(ls18.to_mongo_filter()) == {"house": LOK_SABHA, "lsTerm": 18}


def test_build_filter_with_mp(ls18, make_mp):
    query = build_filter(ls18.to_mongo_filter(), mp=make_mp())
    clauses = query["$and"]
    assert clauses[0] == {"house": LOK_SABHA, "lsTerm": 18}
    assert [next(iter(c)) for c in clauses[1:]] == ["mpName", "state", "constituency"]


def test_registry_filter_is_house_only(mixed18, rajya):
    assert registry_filter(rajya) == {"house": RAJYA_SABHA}
    assert registry_filter(mixed18) == {"house": {"$in": [RAJYA_SABHA, LOK_SABHA]}}


# ============================================================================
# MONGO STORE
# ============================================================================

def test_mongo_store_skips_malformed_documents(ls18):
    db = FakeDB()
    db["allocations"] = FakeCollection([
        {"mpName": "A Kumar", "house": "Lok Sabha", "state": "Bihar", "lsTerm": 18, "allocatedAmount": 100},
        {"mpName": "Broken", "house": "Senate", "state": "Bihar", "lsTerm": 18},
    ])
    records = MongoRecordStore(db, row_limit=10).allocations(ls18)
    assert [r.mp.name for r in records] == ["A Kumar"]


def test_mongo_store_applies_row_limit(ls18):
    db = FakeDB()
    doc = {"mpName": "A", "house": "Lok Sabha", "state": "Bihar", "lsTerm": 18, "expenditureAmount": 1}
    db["expenditures"] = FakeCollection([dict(doc) for _ in range(5)])
    assert len(MongoRecordStore(db, row_limit=3).expenditures(ls18)) == 3


def test_mongo_store_summary_identities_filter_by_type(ls18):
    db = FakeDB()
    MongoRecordStore(db).summary_identities(ls18, state="Bihar")
    query = db["summaries"].queries[0]
    assert query["$and"][0] == {"$and": [{"type": "mp_summary"}, {"house": LOK_SABHA, "lsTerm": 18}]}


def test_mongo_store_find_by_id():
    oid = ObjectId()
    db = FakeDB()
    db["mps"] = FakeCollection([{"_id": oid, "name": "D Das", "house": "Lok Sabha", "state": "Bihar"}])
    store = MongoRecordStore(db)
    assert store.find_registry_identity(str(oid)).record_id == str(oid)
    assert store.find_registry_identity("not-an-object-id") is None
    assert store.find_summary_identity(str(oid)) is None
