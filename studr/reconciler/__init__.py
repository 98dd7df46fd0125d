"""
Reconciliation of managed routes against service tag snapshots.
"""

from .plan import Operation, ReconciliationPlan, TagPlan
from .engine import DEFAULT_CAPACITY, DEFAULT_PREFIX, plan_tag, reconcile

__all__ = [
    "Operation",
    "ReconciliationPlan",
    "TagPlan",
    "DEFAULT_CAPACITY",
    "DEFAULT_PREFIX",
    "plan_tag",
    "reconcile",
]
