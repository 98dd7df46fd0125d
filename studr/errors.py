"""
Error taxonomy for reconciliation runs.

Every failure a run can end with derives from StudrError so callers can
catch the whole family in one place and still switch on the specific kind.
"""

from typing import Optional


class StudrError(Exception):
    """Base class for all studr failures."""


class ConfigError(StudrError, ValueError):
    """Configuration value is missing or malformed."""


class InvalidNameComponent(StudrError, ValueError):
    """A managed route name cannot be built from the given components."""

    def __init__(self, component: str, value: object, reason: str):
        self.component = component
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid route name component {component}={value!r}: {reason}")


class SnapshotUnavailable(StudrError):
    """The service tag document could not be fetched or parsed."""


class RouteTableNotFound(StudrError):
    """The target route table does not exist."""

    def __init__(self, table_id: str, detail: Optional[str] = None):
        self.table_id = table_id
        message = f"Route table not found: {table_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RouteTableUnavailable(StudrError):
    """The route table could not be read for a reason other than absence."""


class ReconcileError(StudrError):
    """A plan could not be produced for the requested tags."""


class UnknownServiceTag(ReconcileError):
    """A requested tag is absent from the snapshot."""

    def __init__(self, tag: str, cloud: Optional[str] = None):
        self.tag = tag
        self.cloud = cloud
        where = f" in {cloud} snapshot" if cloud else ""
        super().__init__(f"Unknown service tag: {tag}{where}")


class CapacityExceeded(ReconcileError):
    """The aggregated plan would leave more routes than the table allows."""

    def __init__(self, projected: int, capacity: int):
        self.projected = projected
        self.capacity = capacity
        super().__init__(
            f"Route table would hold {projected} routes, exceeding the limit of {capacity}"
        )


class ApplyError(StudrError):
    """A remote mutation or the table commit failed."""
