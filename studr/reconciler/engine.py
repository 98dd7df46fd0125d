"""
Route table reconciliation.

Works out, for a set of service tags, which managed routes have to go and
which have to be created so that the table holds exactly one current route
set per tag. Pure computation: nothing here reads or writes a route table.
"""

import logging
from datetime import date
from typing import Iterable, List, Set, Union

from ..errors import CapacityExceeded, ReconcileError, UnknownServiceTag
from ..naming import date_stamp, format_route_name, is_owned, parse_route_name, route_name_stem
from ..routetable.models import NextHopType, Route, RouteTableSnapshot
from ..snapshot.models import ServiceTagSnapshot, TagEntry
from .plan import Operation, ReconciliationPlan, TagPlan

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "STUDR"
# Azure allows at most 400 routes per route table
DEFAULT_CAPACITY = 400


def _dedupe_targets(targets: Union[str, Iterable[str]]) -> List[str]:
    # A lone tag name is one target, not a sequence of characters.
    if isinstance(targets, str):
        targets = [targets]
    seen: Set[str] = set()
    unique: List[str] = []
    for target in targets:
        name = (target or "").strip()
        if not name or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        unique.append(name)
    return unique


def _resolve_entries(snapshot: ServiceTagSnapshot, targets: List[str]) -> List[TagEntry]:
    entries: List[TagEntry] = []
    resolved: Set[str] = set()
    for target in targets:
        entry = snapshot.lookup(target)
        if entry is None:
            raise UnknownServiceTag(target, cloud=snapshot.cloud)
        if entry.name in resolved:
            continue
        resolved.add(entry.name)
        entries.append(entry)
    return entries


def _stage_routes(prefix: str, cloud: str, entry: TagEntry, today: str) -> List[Route]:
    return [
        Route(
            name=format_route_name(prefix, cloud, entry.name, entry.change_number, index, today),
            address_prefix=address_prefix,
            next_hop_type=NextHopType.INTERNET,
        )
        for index, address_prefix in enumerate(entry.address_prefixes)
    ]


def _matches_entry(current: RouteTableSnapshot, owned: List[str], entry: TagEntry) -> bool:
    """Check that current-version routes hold exactly the tag's (index, prefix) pairs."""
    expected = set(enumerate(entry.address_prefixes))
    actual = set()
    for name in owned:
        parsed = parse_route_name(name)
        actual.add((parsed.index, current.routes[name].address_prefix))
    return len(owned) == len(expected) and actual == expected


def plan_tag(
    current: RouteTableSnapshot,
    snapshot: ServiceTagSnapshot,
    entry: TagEntry,
    operation: Operation,
    prefix: str,
    today: str,
) -> TagPlan:
    """
    Decide what to do with one tag's managed routes.

    Args:
        current: Current route table contents
        snapshot: Service tag snapshot the entry came from
        entry: Tag to reconcile
        operation: SYNC or REMOVE
        prefix: Route name prefix
        today: Date stamp for newly created routes

    Returns:
        TagPlan with the routes to remove and add for this tag
    """
    stem = route_name_stem(prefix, snapshot.cloud, entry.name)
    owned = sorted(name for name in current.routes if is_owned(name, stem))

    stale = []
    for name in owned:
        parsed = parse_route_name(name)
        # a name under our stem that does not decode has no known version
        if parsed is None or parsed.tag_change_number != entry.change_number:
            stale.append(name)

    tag_plan = TagPlan(
        tag=entry.name,
        change_number=entry.change_number,
        stem=stem,
        owned=owned,
        stale=stale,
    )

    if operation is Operation.REMOVE:
        tag_plan.to_remove = list(owned)
        tag_plan.reason = f"remove requested, {len(owned)} managed routes"
        return tag_plan

    if stale:
        tag_plan.to_remove = list(owned)
        tag_plan.reason = (
            f"{len(stale)} of {len(owned)} routes not at change number {entry.change_number}"
        )
    elif not owned:
        tag_plan.reason = "no managed routes yet"
    elif not _matches_entry(current, owned, entry):
        tag_plan.to_remove = list(owned)
        tag_plan.reason = "managed routes differ from the tag's prefix list"
    else:
        tag_plan.reason = f"up to date at change number {entry.change_number}"
        return tag_plan

    tag_plan.to_add = _stage_routes(prefix, snapshot.cloud, entry, today)
    return tag_plan


def reconcile(
    current: RouteTableSnapshot,
    snapshot: ServiceTagSnapshot,
    targets: Union[str, Iterable[str]],
    operation: Union[str, Operation],
    prefix: str = DEFAULT_PREFIX,
    capacity: int = DEFAULT_CAPACITY,
    today: Union[str, date, None] = None,
) -> ReconciliationPlan:
    """
    Compute the route changes that bring a table in line with a snapshot.

    All requested tags are resolved before anything is planned and the
    capacity limit is checked once over the combined plan, so either every
    tag gets a plan or none does.

    Args:
        current: Current route table contents
        snapshot: Service tag snapshot
        targets: Service tag names (case-insensitive, duplicates ignored; a single
            name is accepted as a one-tag request)
        operation: Operation.SYNC ("add"/"sync") or Operation.REMOVE
        prefix: Route name prefix
        capacity: Maximum number of routes the table may hold
        today: Date stamp (or date) for new route names; defaults to today

    Returns:
        ReconciliationPlan, empty when the table is already in the desired state

    Raises:
        ReconcileError: If no targets were given
        UnknownServiceTag: If a target is not in the snapshot
        CapacityExceeded: If the resulting table would exceed capacity
        InvalidNameComponent: If prefix or tag names cannot be encoded
    """
    operation = Operation.parse(operation)
    names = _dedupe_targets(targets)
    if not names:
        raise ReconcileError("At least one service tag is required")
    if capacity < 0:
        raise ReconcileError(f"Capacity must not be negative, got {capacity}")

    if today is None:
        today = date_stamp()
    elif isinstance(today, date):
        today = date_stamp(today)

    entries = _resolve_entries(snapshot, names)

    plan = ReconciliationPlan()
    removing: Set[str] = set()
    for entry in entries:
        tag_plan = plan_tag(current, snapshot, entry, operation, prefix, today)
        logger.info(f"{tag_plan.tag}: {tag_plan.reason}")
        for name in tag_plan.to_remove:
            if name not in removing:
                removing.add(name)
                plan.to_remove.append(name)
        plan.to_add.extend(tag_plan.to_add)
        plan.tags.append(tag_plan)

    projected = plan.projected_size(len(current))
    if projected > capacity:
        logger.error(
            f"Plan refused: {len(current)} routes - {len(plan.to_remove)} + {len(plan.to_add)} "
            f"= {projected} > {capacity}"
        )
        raise CapacityExceeded(projected, capacity)

    logger.info(
        f"Plan for {', '.join(e.name for e in entries)}: "
        f"remove {len(plan.to_remove)}, add {len(plan.to_add)}"
    )
    return plan
