"""
Per-run event log.

Each run appends one JSON object per line to ``<STUDR_HOME>/<run_id>/logs.ndjson``.
``RunLog`` is the only writer: it knows which events a reconciliation run
produces and what each one carries, so the runner never builds payloads itself.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .apply import ApplyResult
from .reconciler.plan import ReconciliationPlan
from .routetable.models import RouteTableRef, RouteTableSnapshot
from .snapshot.models import ServiceTagSnapshot
from .state import get_run_dir

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "logs.ndjson"


class EventTypes:
    RUN_START = "RUN_START"
    SNAPSHOT_FETCHED = "SNAPSHOT_FETCHED"
    TABLE_LOADED = "TABLE_LOADED"
    PLAN_COMPUTED = "PLAN_COMPUTED"
    DRY_RUN = "DRY_RUN"
    APPLY_DONE = "APPLY_DONE"
    NO_CHANGE = "NO_CHANGE"
    ERROR = "ERROR"


class RunLog:
    """
    Event recorder for one reconciliation run.

    When ``enabled`` is False every method is a no-op and no directory is
    created, so ``--no-record-events`` leaves STUDR_HOME untouched.
    """

    def __init__(self, run_id: str, enabled: bool = True):
        self.run_id = run_id
        self.enabled = enabled

    @property
    def path(self) -> Path:
        return get_run_dir(self.run_id) / LOG_FILE_NAME

    def _write(self, event_type: str, data: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        log_file = get_run_dir(self.run_id, create=True) / LOG_FILE_NAME
        event = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "type": event_type,
            "data": data,
        }
        with open(log_file, "a") as f:
            f.write(json.dumps(event) + "\n")
        logger.debug(f"{self.run_id} {event_type}")

    def started(
        self,
        cloud: str,
        tags: Sequence[str],
        operation: str,
        ref: RouteTableRef,
        dry_run: bool,
    ) -> None:
        self._write(EventTypes.RUN_START, {
            "cloud": cloud,
            "tags": list(tags),
            "operation": operation,
            "table_id": ref.table_id,
            "dry_run": dry_run,
        })

    def snapshot_loaded(self, snapshot: ServiceTagSnapshot) -> None:
        self._write(EventTypes.SNAPSHOT_FETCHED, {
            "cloud": snapshot.cloud,
            "change_number": snapshot.change_number,
            "tags": len(snapshot),
        })

    def table_loaded(self, ref: RouteTableRef, current: RouteTableSnapshot) -> None:
        self._write(EventTypes.TABLE_LOADED, {"table_id": ref.table_id, "routes": len(current)})

    def plan_computed(self, plan: ReconciliationPlan, current_size: int) -> None:
        self._write(EventTypes.PLAN_COMPUTED, {
            "remove": len(plan.to_remove),
            "add": len(plan.to_add),
            "projected_routes": plan.projected_size(current_size),
            "tags": [tag_plan.to_dict() for tag_plan in plan.tags],
        })

    def dry_run(self, plan: ReconciliationPlan, projected: RouteTableSnapshot) -> None:
        """Record the table the plan would produce; nothing was sent."""
        self._write(EventTypes.DRY_RUN, {
            "remove": len(plan.to_remove),
            "add": len(plan.to_add),
            "projected_routes": projected.names(),
        })

    def applied(self, result: ApplyResult) -> None:
        self._write(EventTypes.APPLY_DONE, result.to_dict())

    def no_change(self, ref: RouteTableRef) -> None:
        self._write(EventTypes.NO_CHANGE, {"table_id": ref.table_id})

    def failed(self, error: Exception) -> None:
        self._write(EventTypes.ERROR, {"kind": type(error).__name__, "message": str(error)})

    def events(self) -> List[Dict[str, Any]]:
        return read_events(self.run_id)


def read_events(run_id: str) -> List[Dict[str, Any]]:
    """
    Read all events recorded for a run.

    Args:
        run_id: Run ID

    Returns:
        List of events in write order, skipping malformed lines

    Raises:
        ValueError: If run ID is invalid
    """
    logs_file = get_run_dir(run_id) / LOG_FILE_NAME
    if not logs_file.exists():
        return []

    events = []
    with open(logs_file, "r") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning(f"Skipping malformed event at {logs_file}:{lineno}")
    return events


def last_event(run_id: str) -> Optional[Dict[str, Any]]:
    events = read_events(run_id)
    return events[-1] if events else None
