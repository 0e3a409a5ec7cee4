"""Tests for completed/recommended work reconciliation."""

from datetime import datetime

import pytest

from mplads.aggregation.works import WorkReconciler
from mplads.models.records import WorkStatus

COMPLETED = WorkStatus.COMPLETED
RECOMMENDED = WorkStatus.RECOMMENDED


@pytest.fixture
def reconciler():
    return WorkReconciler()


@pytest.fixture
def state_x(make_mp):
    return make_mp("A Kumar", state="X", constituency="C1")


def test_completed_work_drops_out_of_pending(reconciler, make_work, state_x):
    completed = [make_work(state_x, COMPLETED, 123, 520_000, datetime(2024, 5, 1))]
    recommended = [make_work(state_x, RECOMMENDED, 123, 500_000, datetime(2023, 1, 1))]

    result = reconciler.reconcile(completed, recommended)

    assert result.pending == []
    assert [(w.work_id, w.amount) for w in result.completed] == [(123, 520_000)]
    assert result.superseded == 1
    assert result.inconsistencies == []


def test_match_ignores_mp_spelling_and_amount(reconciler, make_work, make_mp):
    completed = [make_work(make_mp("A Kumar", state="X"), COMPLETED, 7, 100, datetime(2024, 1, 1))]
    recommended = [make_work(make_mp("Kumar A.", state=" x "), RECOMMENDED, 7, 95, datetime(2023, 1, 1))]
    assert reconciler.reconcile_pending(completed, recommended) == []


def test_different_term_is_a_different_work(reconciler, make_work, state_x):
    completed = [make_work(state_x, COMPLETED, 123, 520_000, ls_term=17)]
    recommended = [make_work(state_x, RECOMMENDED, 123, 500_000, ls_term=18)]
    assert len(reconciler.reconcile_pending(completed, recommended)) == 1


def test_recommended_tie_keeps_larger_amount(make_work, state_x):
    same_day = datetime(2023, 6, 1)
    rows = [
        make_work(state_x, RECOMMENDED, 55, 400_000, same_day),
        make_work(state_x, RECOMMENDED, 55, 450_000, same_day),
    ]
    deduped = WorkReconciler.dedupe_within_set(rows)
    assert [w.amount for w in deduped] == [450_000]


def test_dedupe_keeps_latest_date(make_work, state_x):
    rows = [
        make_work(state_x, COMPLETED, 9, 900_000, datetime(2023, 1, 1)),
        make_work(state_x, COMPLETED, 9, 100_000, datetime(2024, 1, 1)),
    ]
    assert [w.amount for w in WorkReconciler.dedupe_within_set(rows)] == [100_000]


def test_dedupe_is_order_independent(make_work, state_x):
    a = make_work(state_x, COMPLETED, 9, 100, datetime(2024, 1, 1), description="a")
    b = make_work(state_x, COMPLETED, 9, 100, datetime(2024, 1, 1), description="b")
    assert WorkReconciler.dedupe_within_set([a, b]) == WorkReconciler.dedupe_within_set([b, a])


def test_works_without_id_are_kept(reconciler, make_work, state_x):
    completed = [make_work(state_x, COMPLETED, None, 10)]
    recommended = [make_work(state_x, RECOMMENDED, None, 10), make_work(state_x, RECOMMENDED, None, 20)]
    result = reconciler.reconcile(completed, recommended)
    assert len(result.completed) == 1
    assert len(result.pending) == 2


def test_reconcile_is_idempotent(reconciler, make_work, state_x):
    completed = [
        make_work(state_x, COMPLETED, 1, 100, datetime(2024, 1, 1)),
        make_work(state_x, COMPLETED, 1, 90, datetime(2023, 1, 1)),
    ]
    recommended = [
        make_work(state_x, RECOMMENDED, 1, 80),
        make_work(state_x, RECOMMENDED, 2, 70, datetime(2023, 1, 1)),
        make_work(state_x, RECOMMENDED, 2, 75, datetime(2023, 1, 1)),
        make_work(state_x, RECOMMENDED, 3, 60),
    ]

    first = reconciler.reconcile(completed, recommended)
    second = reconciler.reconcile(first.completed, first.pending)

    assert [w.work_id for w in first.pending] == [2, 3]
    assert second.pending == first.pending
    assert second.completed == first.completed


def test_union_has_each_work_once(reconciler, make_work, state_x):
    completed = [make_work(state_x, COMPLETED, i, 10) for i in (1, 2, 2, 3)]
    recommended = [make_work(state_x, RECOMMENDED, i, 10) for i in (2, 3, 4, 4, 5)]
    keys = [w.match_key for w in reconciler.reconcile(completed, recommended).works()]
    assert len(keys) == len(set(keys)) == 5


def test_work_under_two_mps_is_reported(reconciler, make_work, make_mp):
    short, full = make_mp("A Kumar"), make_mp("Anil Kumar")
    completed = [make_work(short, COMPLETED, 123, 520_000)]
    recommended = [make_work(full, RECOMMENDED, 123, 500_000)]

    result = reconciler.reconcile(completed, recommended)

    assert result.pending == []
    [issue] = result.inconsistencies
    assert issue.code == "work_filed_under_multiple_mps"
    assert issue.context["mp_keys"] == sorted([short.key, full.key])
    assert issue.context["owner"] == short.key
