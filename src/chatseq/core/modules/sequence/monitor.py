import structlog

from chatseq.core.modules.counter.store import CounterStore
from chatseq.core.modules.sequence.durable import DurableStore
from chatseq.core.modules.sequence.models import ConsistencyReport, ConsistencyStatus, ScopeKind
from chatseq.core.modules.sequence.reconciler import inspect_scope, require_positive

logger = structlog.get_logger(__name__)


class ConsistencyMonitor:
    """Samples counter drift without touching either store.

    Detection only. Reacting to a warning (running the reconciler) is left to
    an operator or supervisor so the two can be scheduled independently.
    """

    def __init__(self, counters: CounterStore, durable: DurableStore, sample_size: int = 10) -> None:
        self._counters = counters
        self._durable = durable
        self._sample_size = require_positive("sample_size", sample_size)

    async def check(self, sample_size: int | None = None) -> ConsistencyReport:
        limit = self._sample_size if sample_size is None else require_positive("sample_size", sample_size)
        report = ConsistencyReport(status=ConsistencyStatus.HEALTHY)

        for kind in ScopeKind:
            for scope in await self._durable.sample_scopes(kind, limit):
                check = await inspect_scope(self._counters, self._durable, scope)
                report.scopes.append(check)
                if not check.consistent:
                    report.status = ConsistencyStatus.WARNING
                    report.warnings.append(
                        f"{scope.key}: counter ({check.counter_value}) < durable max ({check.db_max})"
                    )

        if report.status == ConsistencyStatus.WARNING:
            logger.warning("counter_drift_detected", drifted=len(report.warnings), sampled=len(report.scopes))
        return report
