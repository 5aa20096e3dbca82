"""Tests for the read-only consistency monitor."""

import pytest

from chatseq.core.modules.sequence.models import ConsistencyStatus, ScopeKind
from chatseq.core.modules.sequence.monitor import ConsistencyMonitor
from chatseq.errors import PersistenceError


@pytest.mark.asyncio
async def test_healthy_when_counters_are_at_or_above_durable_max(counters, durable):
    chats = durable.add_scope(ScopeKind.CHATS)
    messages = durable.add_scope(ScopeKind.MESSAGES)
    durable.seed(chats, [1, 2])
    await counters.set(chats, 2)
    await counters.set(messages, 7)

    report = await ConsistencyMonitor(counters, durable).check()

    assert report.status == ConsistencyStatus.HEALTHY
    assert report.warnings == []
    assert [s.consistent for s in report.scopes] == [True, True]


@pytest.mark.asyncio
async def test_warning_when_any_sampled_counter_lags(counters, durable):
    ok = durable.add_scope(ScopeKind.CHATS)
    lagging = durable.add_scope(ScopeKind.MESSAGES)
    durable.seed(lagging, [1, 2, 3])
    await counters.set(lagging, 1)

    report = await ConsistencyMonitor(counters, durable).check()

    assert report.status == ConsistencyStatus.WARNING
    assert report.warnings == [f"{lagging.key}: counter (1) < durable max (3)"]
    assert {s.scope: s.consistent for s in report.scopes} == {ok.key: True, lagging.key: False}


@pytest.mark.asyncio
async def test_check_never_mutates_either_store(counters, durable):
    scope = durable.add_scope(ScopeKind.CHATS)
    durable.seed(scope, [1, 2, 3])
    counters.writes = 0
    counters_before = dict(counters.values)
    durable_before = durable.snapshot()
    monitor = ConsistencyMonitor(counters, durable)

    for _ in range(3):
        report = await monitor.check()
        assert report.status == ConsistencyStatus.WARNING

    assert counters.values == counters_before
    assert counters.writes == 0
    assert counters.increments == 0
    assert durable.snapshot() == durable_before
    assert durable.inserts == 0


@pytest.mark.asyncio
async def test_sample_size_bounds_inspected_scopes(counters, durable):
    for _ in range(4):
        durable.add_scope(ScopeKind.CHATS)

    report = await ConsistencyMonitor(counters, durable, sample_size=10).check(sample_size=3)

    assert len(report.scopes) == 3


@pytest.mark.asyncio
async def test_read_errors_propagate(counters, durable):
    scope = durable.add_scope(ScopeKind.CHATS)
    durable.failing_scopes.add(scope.key)

    with pytest.raises(PersistenceError):
        await ConsistencyMonitor(counters, durable).check()


@pytest.mark.asyncio
async def test_report_serializes_consistency_flag(counters, durable):
    scope = durable.add_scope(ScopeKind.CHATS)
    durable.seed(scope, [1])

    data = (await ConsistencyMonitor(counters, durable).check()).model_dump(mode="json")

    assert data["status"] == "warning"
    assert data["scopes"] == [{"scope": scope.key, "counter_value": 0, "db_max": 1, "consistent": False}]


@pytest.mark.parametrize("size", [0, -3])
def test_rejects_non_positive_sample_size(counters, durable, size):
    with pytest.raises(ValueError, match="sample_size"):
        ConsistencyMonitor(counters, durable, sample_size=size)


@pytest.mark.asyncio
async def test_check_rejects_zero_sample_override(counters, durable):
    durable.add_scope(ScopeKind.CHATS)

    with pytest.raises(ValueError, match="sample_size"):
        await ConsistencyMonitor(counters, durable).check(sample_size=0)
