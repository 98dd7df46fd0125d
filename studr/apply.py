"""
Pushes a reconciliation plan to a route table.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from .errors import ApplyError
from .reconciler.plan import ReconciliationPlan
from .routetable.gateway import RouteTableHandle

logger = logging.getLogger(__name__)


class ApplyStatus:
    APPLIED = "applied"
    NO_CHANGE = "no_change"


@dataclass
class ApplyResult:
    table_id: str
    status: str
    removed: int = 0
    added: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_id": self.table_id,
            "status": self.status,
            "removed": self.removed,
            "added": self.added,
        }


def apply_plan(table: RouteTableHandle, plan: ReconciliationPlan) -> ApplyResult:
    """
    Apply a plan to an opened route table and commit it once.

    Removals are staged first, then additions, then the table is committed
    in a single call. Nothing is retried and nothing is rolled back: on
    failure the handle's staged state is discarded and the remote table is
    the only truth left.

    Args:
        table: Opened route table handle
        plan: Plan produced by reconcile()

    Returns:
        ApplyResult with status "applied" or "no_change"

    Raises:
        ApplyError: If staging or the commit fails
    """
    table_id = table.ref.table_id

    if plan.is_empty:
        logger.info(f"No route changes needed for {table_id}")
        return ApplyResult(table_id=table_id, status=ApplyStatus.NO_CHANGE)

    step = "stage"
    try:
        for name in plan.to_remove:
            table.remove_route(name)
        for route in plan.to_add:
            table.add_route(route)
        step = "commit"
        table.commit()
    except Exception as e:
        table.discard()
        logger.error(f"Failed to {step} route changes for {table_id}: {e}")
        raise ApplyError(f"Failed to {step} route changes for {table_id}: {e}") from e

    logger.info(f"Applied to {table_id}: removed {len(plan.to_remove)}, added {len(plan.to_add)}")
    return ApplyResult(
        table_id=table_id,
        status=ApplyStatus.APPLIED,
        removed=len(plan.to_remove),
        added=len(plan.to_add),
    )
