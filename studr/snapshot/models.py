"""
Typed view over a downloaded service tag document.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import SnapshotUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagEntry:
    """One service tag and its current prefix list."""
    name: str
    change_number: int
    address_prefixes: Tuple[str, ...]
    region: Optional[str] = None
    system_service: Optional[str] = None


@dataclass(frozen=True)
class ServiceTagSnapshot:
    """A versioned set of service tags for one cloud."""
    cloud: str
    change_number: int
    tags: Mapping[str, TagEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        index = {name.casefold(): entry for name, entry in self.tags.items()}
        object.__setattr__(self, "_by_folded_name", index)

    def lookup(self, tag: str) -> Optional[TagEntry]:
        """
        Find a tag by name, ignoring case.

        Args:
            tag: Service tag name (e.g. "AzureCloud.westeurope")

        Returns:
            TagEntry, or None if the snapshot has no such tag
        """
        return self._by_folded_name.get(tag.casefold())

    def __contains__(self, tag: str) -> bool:
        return self.lookup(tag) is not None

    def __len__(self) -> int:
        return len(self.tags)

    @classmethod
    def from_document(cls, document: Any) -> "ServiceTagSnapshot":
        """
        Build a snapshot from the parsed JSON document.

        Args:
            document: Deserialized service tag JSON

        Returns:
            ServiceTagSnapshot

        Raises:
            SnapshotUnavailable: If the document does not have the expected shape
        """
        if not isinstance(document, dict):
            raise SnapshotUnavailable("Service tag document root must be an object")

        cloud = document.get("cloud")
        if not isinstance(cloud, str) or not cloud:
            raise SnapshotUnavailable("Service tag document has no cloud name")
        change_number = _as_int(document.get("changeNumber"), "changeNumber")

        values = document.get("values")
        if not isinstance(values, list):
            raise SnapshotUnavailable("Service tag document has no values list")

        tags: Dict[str, TagEntry] = {}
        for value in values:
            entry = _parse_value(value)
            if entry.name in tags:
                logger.warning(f"Duplicate service tag {entry.name} in document, keeping first")
                continue
            tags[entry.name] = entry

        return cls(cloud=cloud, change_number=change_number, tags=tags)


def _as_int(raw: Any, label: str) -> int:
    if isinstance(raw, bool):
        raise SnapshotUnavailable(f"{label} must be an integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise SnapshotUnavailable(f"{label} must be an integer, got {raw!r}") from exc


def _unique(prefixes: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    ordered: List[str] = []
    for prefix in prefixes:
        if prefix in seen:
            continue
        seen.add(prefix)
        ordered.append(prefix)
    return tuple(ordered)


def _parse_value(value: Any) -> TagEntry:
    if not isinstance(value, dict):
        raise SnapshotUnavailable(f"Service tag entry must be an object, got {value!r}")

    name = value.get("name")
    if not isinstance(name, str) or not name:
        raise SnapshotUnavailable("Service tag entry has no name")

    properties = value.get("properties")
    if not isinstance(properties, dict):
        raise SnapshotUnavailable(f"Service tag {name} has no properties")

    prefixes = properties.get("addressPrefixes")
    if not isinstance(prefixes, list) or not all(isinstance(p, str) for p in prefixes):
        raise SnapshotUnavailable(f"Service tag {name} has no addressPrefixes list")

    return TagEntry(
        name=name,
        change_number=_as_int(properties.get("changeNumber"), f"{name}.changeNumber"),
        address_prefixes=_unique(prefixes),
        region=properties.get("region") or None,
        system_service=properties.get("systemService") or None,
    )
