import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from chatseq.core.core import Service
from chatseq.core.db import SequencedModel
from chatseq.core.modules.sequence.allocator import SequenceAllocator
from chatseq.core.modules.sequence.durable import MongoDurableStore
from chatseq.core.modules.sequence.models import ConsistencyReport, ReconcileReport, ReconcileResult, Scope
from chatseq.core.modules.sequence.monitor import ConsistencyMonitor
from chatseq.core.modules.sequence.reconciler import Reconciler

logger = structlog.get_logger(__name__)


class SequenceService(Service):
    """Allocation, reconciliation and drift monitoring over the counter and durable stores.

    Runs a sampled reconciliation once on startup. If that pass had to correct
    anything, the counter store has most likely lost its state, and a full
    rebuild is started in the background.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self.durable = MongoDurableStore(database)
        self._allocator: SequenceAllocator | None = None
        self._reconciler: Reconciler | None = None
        self._monitor: ConsistencyMonitor | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._pending_scopes: set[str] = set()

    async def on_start(self) -> None:
        config = self.core.config
        counters = self.core.services.counter.store
        self._allocator = SequenceAllocator(
            counters,
            self.durable,
            max_attempts=config.allocation_max_attempts,
            timeout=config.store_timeout,
            on_exhausted=self.schedule_reconcile,
        )
        self._reconciler = Reconciler(
            counters,
            self.durable,
            sample_size=config.reconcile_sample_size,
            batch_size=config.rebuild_batch_size,
        )
        self._monitor = ConsistencyMonitor(counters, self.durable, sample_size=config.monitor_sample_size)

        if config.reconcile_on_start:
            report = await self.reconciler.reconcile_all()
            if report.corrected:
                logger.warning("counter_store_drift_on_start", corrected=len(report.corrected))
                self._spawn(self.reconciler.rebuild_all(), "counter_rebuild")

    async def on_stop(self) -> None:
        """Cancel background reconciliation still in flight."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def allocator(self) -> SequenceAllocator:
        if self._allocator is None:
            raise RuntimeError("Sequence service not started")
        return self._allocator

    @property
    def reconciler(self) -> Reconciler:
        if self._reconciler is None:
            raise RuntimeError("Sequence service not started")
        return self._reconciler

    @property
    def monitor(self) -> ConsistencyMonitor:
        if self._monitor is None:
            raise RuntimeError("Sequence service not started")
        return self._monitor

    async def allocate(self, scope: Scope, payload: dict[str, Any] | None = None) -> SequencedModel:
        return await self.allocator.allocate(scope, payload)

    async def reconcile(self, scope: Scope) -> ReconcileResult:
        return await self.reconciler.reconcile(scope)

    async def reconcile_all(self, full: bool = False) -> ReconcileReport:
        if full:
            return await self.reconciler.rebuild_all()
        return await self.reconciler.reconcile_all()

    async def check(self) -> ConsistencyReport:
        return await self.monitor.check()

    def schedule_reconcile(self, scope: Scope) -> None:
        """Reconcile a scope in the background, at most once at a time per scope."""
        if scope.key in self._pending_scopes:
            return
        self._pending_scopes.add(scope.key)
        task = self._spawn(self.reconciler.reconcile(scope), f"reconcile:{scope.key}")
        task.add_done_callback(lambda _: self._pending_scopes.discard(scope.key))

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            logger.error("background_task_failed", task=task.get_name(), error=str(exc), exc_info=exc)
