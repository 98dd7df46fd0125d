from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

from ..errors import ConfigError
from ..routetable.models import Route


class Operation(str, Enum):
    SYNC = "sync"
    REMOVE = "remove"

    @classmethod
    def parse(cls, value: Union[str, "Operation"]) -> "Operation":
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        if wanted in ("add", "sync"):
            return cls.SYNC
        if wanted == "remove":
            return cls.REMOVE
        raise ConfigError(f"Unknown operation: {value!r} (expected add, sync or remove)")


@dataclass
class TagPlan:
    """Decision taken for one service tag."""
    tag: str
    change_number: int
    stem: str
    owned: List[str] = field(default_factory=list)
    stale: List[str] = field(default_factory=list)
    to_remove: List[str] = field(default_factory=list)
    to_add: List[Route] = field(default_factory=list)
    reason: str = ""

    @property
    def changed(self) -> bool:
        return bool(self.to_remove or self.to_add)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "change_number": self.change_number,
            "owned": len(self.owned),
            "stale": len(self.stale),
            "remove": list(self.to_remove),
            "add": [route.name for route in self.to_add],
            "reason": self.reason,
        }


@dataclass
class ReconciliationPlan:
    to_remove: List[str] = field(default_factory=list)
    to_add: List[Route] = field(default_factory=list)
    tags: List[TagPlan] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_remove and not self.to_add

    def projected_size(self, current_size: int) -> int:
        return current_size - len(self.to_remove) + len(self.to_add)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to_remove": list(self.to_remove),
            "to_add": [
                {
                    "name": route.name,
                    "address_prefix": route.address_prefix,
                    "next_hop_type": route.next_hop_type,
                }
                for route in self.to_add
            ],
            "tags": [tag_plan.to_dict() for tag_plan in self.tags],
        }
