"""
Managed route naming.

Every route studr creates is named

    {prefix}-{cloud}-{tag}-{tagChangeNumber}-{index}-{date}

so that the route carries its own provenance and can be recognised again
on later runs. format_route_name is the only place such names are built.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import InvalidNameComponent

SEPARATOR = "-"
DATE_FORMAT = "%Y%m%d"
# Azure rejects route names longer than this
MAX_ROUTE_NAME_LENGTH = 80


@dataclass(frozen=True)
class ManagedRouteName:
    """Decoded parts of a managed route name."""
    prefix: str
    cloud: str
    tag: str
    tag_change_number: int
    index: int
    date: str  # YYYYMMDD

    def format(self) -> str:
        return format_route_name(
            self.prefix, self.cloud, self.tag, self.tag_change_number, self.index, self.date
        )

    @property
    def stem(self) -> str:
        return route_name_stem(self.prefix, self.cloud, self.tag)


def _check_text(component: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidNameComponent(component, value, "must be a non-empty string")
    if SEPARATOR in value:
        raise InvalidNameComponent(component, value, f"must not contain {SEPARATOR!r}")


def _check_number(component: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidNameComponent(component, value, "must be a non-negative integer")


def _is_ascii_number(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _is_date_stamp(value: str) -> bool:
    return isinstance(value, str) and len(value) == 8 and _is_ascii_number(value)


def route_name_stem(prefix: str, cloud: str, tag: str) -> str:
    """
    Build the name prefix shared by every route owned by one tag.

    Args:
        prefix: Route name prefix (e.g. "STUDR")
        cloud: Cloud name as published in the snapshot
        tag: Service tag name

    Returns:
        "{prefix}-{cloud}-{tag}-"

    Raises:
        InvalidNameComponent: If a component is empty or contains the separator
    """
    _check_text("prefix", prefix)
    _check_text("cloud", cloud)
    _check_text("tag", tag)
    return SEPARATOR.join([prefix, cloud, tag]) + SEPARATOR


def format_route_name(
    prefix: str,
    cloud: str,
    tag: str,
    tag_change_number: int,
    index: int,
    date: str,
) -> str:
    """
    Build a managed route name.

    Args:
        prefix: Route name prefix
        cloud: Cloud name as published in the snapshot
        tag: Service tag name
        tag_change_number: Change number of the tag's prefix list
        index: Ordinal of the prefix within the tag
        date: Creation date stamp, YYYYMMDD

    Returns:
        Route name

    Raises:
        InvalidNameComponent: If any component cannot be encoded
    """
    stem = route_name_stem(prefix, cloud, tag)
    _check_number("tag_change_number", tag_change_number)
    _check_number("index", index)
    if not _is_date_stamp(date):
        raise InvalidNameComponent("date", date, "must be an 8 digit YYYYMMDD stamp")

    name = f"{stem}{tag_change_number}{SEPARATOR}{index}{SEPARATOR}{date}"
    if len(name) > MAX_ROUTE_NAME_LENGTH:
        raise InvalidNameComponent(
            "name", name, f"longer than {MAX_ROUTE_NAME_LENGTH} characters"
        )
    return name


def parse_route_name(name: str) -> Optional[ManagedRouteName]:
    """
    Decode a route name produced by format_route_name.

    Route tables routinely hold hand-made routes, so anything that does not
    follow the scheme yields None instead of an error.

    Args:
        name: Route name

    Returns:
        ManagedRouteName, or None if the name is not a managed route name
    """
    if not isinstance(name, str):
        return None

    parts = name.split(SEPARATOR)
    if len(parts) != 6:
        return None

    prefix, cloud, tag, change_number, index, date = parts
    if not prefix or not cloud or not tag:
        return None
    if not _is_ascii_number(change_number) or not _is_ascii_number(index):
        return None
    if not _is_date_stamp(date):
        return None

    return ManagedRouteName(
        prefix=prefix,
        cloud=cloud,
        tag=tag,
        tag_change_number=int(change_number),
        index=int(index),
        date=date,
    )


def is_owned(name: str, stem: str) -> bool:
    """Check whether a route name falls under a stem. Azure names are case-insensitive."""
    return name.casefold().startswith(stem.casefold())


def date_stamp(when: Optional[datetime] = None) -> str:
    """
    Format a date as YYYYMMDD.

    Args:
        when: Moment to format; defaults to now (UTC)

    Returns:
        Date stamp string
    """
    when = when or datetime.now(timezone.utc)
    return when.strftime(DATE_FORMAT)
