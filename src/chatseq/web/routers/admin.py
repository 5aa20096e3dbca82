"""Operator endpoints for counter recovery."""

from typing import Annotated

from fastapi import APIRouter, Query

from chatseq.core.modules.sequence.models import ReconcileReport
from chatseq.web.deps import AppDep

router = APIRouter(tags=["admin"])


@router.post(
    "/admin/reconcile",
    summary="Reconcile sequence counters",
    description=(
        "Raise every sampled counter that lags behind the highest persisted number. "
        "With `full=true`, walk every application and chat instead of a sample. "
        "Failures on individual scopes are reported per scope and do not stop the run."
    ),
    operation_id="reconcileCounters",
    responses={200: {"description": "Per-scope reconciliation results"}},
)
async def reconcile_counters(
    app: AppDep, full: Annotated[bool, Query(description="Reconcile all scopes, not a sample")] = False
) -> ReconcileReport:
    return await app.reconcile_counters(full=full)


@router.post(
    "/admin/counts/sync",
    summary="Resync cached child counts",
    description="Recompute `chats_count` and `messages_count` from persisted records.",
    operation_id="syncCounts",
    responses={200: {"description": "Number of records whose cached count was fixed"}},
)
async def sync_counts(app: AppDep) -> dict[str, int]:
    return await app.sync_counts()
