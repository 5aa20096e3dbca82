"""Raises drifted counters back to the durable maximum.

Drift appears when the counter store loses state (restart without
persistence, replacement) while the durable store keeps every number ever
assigned. Counters are only ever raised here, never lowered.
"""

from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from chatseq.core.modules.counter.store import CounterStore
from chatseq.core.modules.sequence.durable import DurableStore
from chatseq.core.modules.sequence.models import ReconcileReport, ReconcileResult, Scope, ScopeCheck, ScopeKind
from chatseq.errors import SequenceError

logger = structlog.get_logger(__name__)


def _pass_id() -> str:
    return uuid4().hex[:8]


def require_positive(name: str, value: int) -> int:
    if value < 1:
        raise ValueError(f"{name} must be at least 1")
    return value


async def inspect_scope(counters: CounterStore, durable: DurableStore, scope: Scope) -> ScopeCheck:
    """Compare the counter of a scope against its durable maximum. Read-only."""
    db_max = await durable.max_number(scope)
    counter_value = await counters.get(scope) or 0
    return ScopeCheck(scope=scope.key, counter_value=counter_value, db_max=db_max)


class Reconciler:
    def __init__(
        self, counters: CounterStore, durable: DurableStore, sample_size: int = 10, batch_size: int = 500
    ) -> None:
        self._counters = counters
        self._durable = durable
        self._sample_size = require_positive("sample_size", sample_size)
        self._batch_size = require_positive("batch_size", batch_size)

    async def reconcile(self, scope: Scope) -> ReconcileResult:
        """Raise the counter of `scope` to the durable maximum if it lags behind.

        The counter is raised with a compare-and-set, so a counter that live
        allocations pushed past a stale maximum is left where it is.
        """
        check = await inspect_scope(self._counters, self._durable, scope)
        if check.consistent:
            return ReconcileResult(
                scope=scope.key, before=check.counter_value, after=check.counter_value, db_max=check.db_max
            )

        after = await self._counters.raise_to(scope, check.db_max)
        logger.warning(
            "counter_drift_corrected",
            scope=scope.key,
            counter_value=check.counter_value,
            db_max=check.db_max,
            after=after,
        )
        return ReconcileResult(
            scope=scope.key, before=check.counter_value, after=after, db_max=check.db_max, corrected=True
        )

    async def reconcile_all(self, sample_size: int | None = None) -> ReconcileReport:
        """Reconcile a bounded sample of scopes of each kind.

        Safe to run repeatedly and alongside live traffic. A failing scope is
        reported in its result and does not stop the others.
        """
        limit = self._sample_size if sample_size is None else require_positive("sample_size", sample_size)
        with bound_contextvars(reconcile_pass=_pass_id(), mode="sampled"):
            report = await self._reconcile_sample(limit)
            self._log_report("reconcile_all_finished", report)
        return report

    async def rebuild_all(self, batch_size: int | None = None) -> ReconcileReport:
        """Reconcile every known scope, paging through parents in batches."""
        batch = self._batch_size if batch_size is None else require_positive("batch_size", batch_size)
        with bound_contextvars(reconcile_pass=_pass_id(), mode="full"):
            report = await self._reconcile_every_scope(batch)
            self._log_report("rebuild_all_finished", report)
        return report

    async def _reconcile_sample(self, limit: int) -> ReconcileReport:
        report = ReconcileReport()
        for kind in ScopeKind:
            try:
                scopes = await self._durable.sample_scopes(kind, limit)
            except SequenceError as e:
                logger.error("reconcile_sampling_failed", kind=kind, error=str(e))
                report.results.append(ReconcileResult(scope=f"{kind}:*", error=str(e)))
                continue
            for scope in scopes:
                report.results.append(await self._reconcile_safely(scope))
        return report

    async def _reconcile_every_scope(self, batch: int) -> ReconcileReport:
        report = ReconcileReport()
        for kind in ScopeKind:
            skip = 0
            while True:
                try:
                    scopes = await self._durable.sample_scopes(kind, batch, skip=skip)
                except SequenceError as e:
                    logger.error("rebuild_page_failed", kind=kind, skip=skip, error=str(e))
                    report.results.append(ReconcileResult(scope=f"{kind}:*", error=str(e)))
                    break
                for scope in scopes:
                    report.results.append(await self._reconcile_safely(scope))
                if len(scopes) < batch:
                    break
                skip += batch
        return report

    async def _reconcile_safely(self, scope: Scope) -> ReconcileResult:
        try:
            return await self.reconcile(scope)
        except SequenceError as e:
            logger.error("reconcile_scope_failed", scope=scope.key, error=str(e))
            return ReconcileResult(scope=scope.key, error=str(e))

    @staticmethod
    def _log_report(event: str, report: ReconcileReport) -> None:
        logger.info(
            event,
            scopes=len(report.results),
            corrected=len(report.corrected),
            failed=len(report.failed),
        )
