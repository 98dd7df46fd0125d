"""
One reconciliation run, end to end.

fetch snapshot -> read route table -> reconcile -> apply (or stop at the
plan for a dry run). Every step is logged and recorded as a run event.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .apply import ApplyResult, ApplyStatus, apply_plan
from .clouds import CloudEnvironment
from .config import Settings
from .errors import StudrError
from .events import RunLog
from .reconciler import Operation, ReconciliationPlan, reconcile
from .routetable.gateway import RouteTableGateway
from .routetable.models import RouteTableRef, RouteTableSnapshot
from .snapshot import ServiceTagSnapshot, fetch_snapshot, load_snapshot_file
from .state import new_run_id

logger = logging.getLogger(__name__)

SnapshotSource = Callable[[CloudEnvironment], ServiceTagSnapshot]


@dataclass
class RunRequest:
    """What the caller asked for."""
    tags: List[str]
    resource_group: str
    route_table: str
    operation: Operation = Operation.SYNC
    dry_run: bool = False
    snapshot_file: Optional[str] = None

    @property
    def ref(self) -> RouteTableRef:
        return RouteTableRef(resource_group=self.resource_group, name=self.route_table)


class RunStatus:
    APPLIED = "applied"
    NO_CHANGE = "no_change"
    PLANNED = "planned"


@dataclass
class RunResult:
    run_id: str
    status: str
    table_id: str
    snapshot_change_number: int
    plan: ReconciliationPlan = field(default_factory=ReconciliationPlan)
    applied: Optional[ApplyResult] = None
    # Table after the plan; only set for a dry run.
    projected: Optional[RouteTableSnapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "table_id": self.table_id,
            "snapshot_change_number": self.snapshot_change_number,
            "plan": self.plan.to_dict(),
            "applied": self.applied.to_dict() if self.applied else None,
            "projected_routes": self.projected.names() if self.projected is not None else None,
        }


def default_gateway(settings: Settings) -> RouteTableGateway:
    from .routetable.azure import AzureRouteTableGateway

    return AzureRouteTableGateway(subscription_id=settings.subscription_id, cloud=settings.cloud)


def load_snapshot(settings: Settings, request: RunRequest) -> ServiceTagSnapshot:
    if request.snapshot_file:
        return load_snapshot_file(request.snapshot_file, cloud=settings.cloud)
    return fetch_snapshot(settings.cloud, timeout=settings.http_timeout)


def run(
    settings: Settings,
    request: RunRequest,
    gateway: Optional[RouteTableGateway] = None,
    snapshot_source: Optional[SnapshotSource] = None,
    run_id: Optional[str] = None,
) -> RunResult:
    """
    Reconcile one route table against the current service tags.

    Args:
        settings: Run settings
        request: Tags, target table and operation
        gateway: Route table gateway; defaults to the Azure gateway
        snapshot_source: Callable returning the snapshot for a cloud; defaults
            to the snapshot file or the published document
        run_id: Run ID to record events under; generated if omitted

    Returns:
        RunResult

    Raises:
        StudrError: Any failure, after it has been recorded as an ERROR event
    """
    run_id = run_id or new_run_id()
    ref = request.ref
    log = RunLog(run_id, enabled=settings.record_events)

    log.started(settings.cloud.value, request.tags, request.operation.value, ref, request.dry_run)
    logger.info(
        f"Run {run_id}: {request.operation.value} {', '.join(request.tags)} on {ref} ({settings.cloud})"
    )

    try:
        if snapshot_source is not None:
            snapshot = snapshot_source(settings.cloud)
        else:
            snapshot = load_snapshot(settings, request)
        log.snapshot_loaded(snapshot)

        table = (gateway or default_gateway(settings)).open(ref)
        current = table.snapshot()
        log.table_loaded(ref, current)

        plan = reconcile(
            current,
            snapshot,
            request.tags,
            request.operation,
            prefix=settings.route_prefix,
            capacity=settings.capacity,
        )
        log.plan_computed(plan, len(current))

        result = RunResult(
            run_id=run_id,
            status=RunStatus.PLANNED,
            table_id=ref.table_id,
            snapshot_change_number=snapshot.change_number,
            plan=plan,
        )

        if request.dry_run:
            table.discard()
            result.projected = current.with_plan(plan)
            log.dry_run(plan, result.projected)
            logger.info(f"Dry run: {ref} left unchanged, would hold {len(result.projected)} routes")
            return result

        result.applied = apply_plan(table, plan)
        if result.applied.status == ApplyStatus.NO_CHANGE:
            result.status = RunStatus.NO_CHANGE
            log.no_change(ref)
        else:
            result.status = RunStatus.APPLIED
            log.applied(result.applied)
        return result

    except StudrError as e:
        log.failed(e)
        logger.error(f"Run {run_id} failed: {e}")
        raise
