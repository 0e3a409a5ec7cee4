"""Shared fixtures: record factories and a small in-memory MPLADS dataset.

Dataset (amounts in rupees):

    Lok Sabha 18
      A Kumar   Bihar/X        alloc 5.0 Cr   spent 2.5 Cr   works 123 (completed, also recommended), 124 (pending)
      B Singh   Bihar/Y        alloc 1.0 Cr   spent 0
      D Das     Bihar/Z        registry only, no records
      E Patil   Maharashtra/Pune alloc 5.0 Cr spent 5.0 Cr
    Lok Sabha 17
      A Kumar   Bihar/X        alloc 5.0 Cr   spent 4.5 Cr
    Rajya Sabha
      C Rao     Bihar          alloc 5.0 Cr   spent 10 L
"""

from datetime import datetime

import pytest

from mplads.aggregation.scope import Scope
from mplads.models.records import (
    LOK_SABHA,
    PAYMENT_IN_PROGRESS,
    PAYMENT_SUCCESS,
    RAJYA_SABHA,
    AllocationRecord,
    ExpenditureRecord,
    MPIdentity,
    WorkRecord,
    WorkStatus,
)
from mplads.data.store import InMemoryRecordStore


def _mp(name="A Kumar", house=LOK_SABHA, state="Bihar", constituency="X", record_id=None, source=None):
    return MPIdentity(
        name=name,
        house=house,
        state=state,
        constituency=constituency,
        record_id=record_id,
        source=source,
    )


def _term_for(mp, ls_term):
    return None if mp.house == RAJYA_SABHA else ls_term


def _allocation(mp, amount, ls_term=18):
    return AllocationRecord(mp=mp, ls_term=_term_for(mp, ls_term), allocated_amount=amount)


def _expenditure(mp, amount, ls_term=18, status=PAYMENT_SUCCESS, date=None, category=None, work_id=None):
    return ExpenditureRecord(
        mp=mp,
        ls_term=_term_for(mp, ls_term),
        amount=amount,
        payment_status=status,
        date=date,
        category=category,
        work_id=work_id,
    )


def _work(mp, status, work_id, amount, date=None, ls_term=18, **extra):
    return WorkRecord(
        mp=mp,
        ls_term=_term_for(mp, ls_term),
        status=status,
        work_id=work_id,
        amount=amount,
        date=date,
        **extra,
    )


@pytest.fixture
def make_mp():
    return _mp


@pytest.fixture
def make_allocation():
    return _allocation


@pytest.fixture
def make_expenditure():
    return _expenditure


@pytest.fixture
def make_work():
    return _work


@pytest.fixture
def ls18():
    return Scope(house=LOK_SABHA, selection="18")


@pytest.fixture
def ls17():
    return Scope(house=LOK_SABHA, selection="17")


@pytest.fixture
def rajya():
    return Scope(house=RAJYA_SABHA, selection="18")


@pytest.fixture
def mixed18():
    return Scope(house=None, selection="18")


@pytest.fixture
def kumar():
    return _mp("A Kumar", record_id="s18")


@pytest.fixture
def sample_store(kumar):
    singh = _mp("B Singh", constituency="Y")
    rao = _mp("C Rao", house=RAJYA_SABHA, constituency=None)
    patil = _mp("E Patil", state="Maharashtra", constituency="Pune")
    das = _mp("D Das", constituency="Z", record_id="r4", source="mp")

    completed = WorkStatus.COMPLETED
    recommended = WorkStatus.RECOMMENDED

    return InMemoryRecordStore(
        allocations=[
            _allocation(kumar, 50_000_000),
            _allocation(kumar, 50_000_000, ls_term=17),
            _allocation(singh, 10_000_000),
            _allocation(patil, 50_000_000),
            _allocation(rao, 50_000_000),
        ],
        expenditures=[
            _expenditure(kumar, 20_000_000, date=datetime(2023, 3, 1), category="Roads"),
            _expenditure(kumar, 5_000_000, status=PAYMENT_IN_PROGRESS, date=datetime(2024, 2, 1), category="Water"),
            _expenditure(kumar, 45_000_000, ls_term=17, date=datetime(2021, 7, 1), category="Roads"),
            _expenditure(patil, 50_000_000, date=datetime(2024, 1, 15)),
            _expenditure(rao, 1_000_000, date=datetime(2022, 9, 1)),
        ],
        completed=[
            _work(kumar, completed, 123, 520_000, datetime(2024, 5, 1), has_image=True, average_rating=4.0),
            _work(kumar, completed, 123, 510_000, datetime(2024, 4, 1)),
        ],
        recommended=[
            _work(kumar, recommended, 123, 500_000, datetime(2023, 1, 1)),
            _work(kumar, recommended, 124, 300_000, datetime(2023, 6, 1)),
        ],
        summary_mps=[
            (kumar, 18),
            (_mp("A Kumar", record_id="s17", source="summary"), 17),
        ],
        registry_mps=[
            _mp("a   kumar", record_id="r1", source="mp"),
            _mp("B Singh", constituency="Y", record_id="r2", source="mp"),
            _mp("C Rao", house=RAJYA_SABHA, constituency=None, record_id="r3", source="mp"),
            das,
            _mp("E Patil", state="Maharashtra", constituency="Pune", record_id="r5", source="mp"),
        ],
    )
