"""
Data models for route tables.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional


class NextHopType:
    INTERNET = "Internet"
    VIRTUAL_APPLIANCE = "VirtualAppliance"
    VNET_LOCAL = "VnetLocal"
    VIRTUAL_NETWORK_GATEWAY = "VirtualNetworkGateway"
    NONE = "None"


@dataclass(frozen=True)
class Route:
    """A single named route."""
    name: str
    address_prefix: str
    next_hop_type: str = NextHopType.INTERNET
    next_hop_ip_address: Optional[str] = None


@dataclass(frozen=True)
class RouteTableRef:
    """Address of a route table within a subscription."""
    resource_group: str
    name: str

    @property
    def table_id(self) -> str:
        return f"{self.resource_group}/{self.name}"

    def __str__(self) -> str:
        return self.table_id


@dataclass(frozen=True)
class RouteTableSnapshot:
    """
    Contents of a route table at one point in time.

    Values are never changed in place; with_plan and friends return a new
    snapshot.
    """
    routes: Mapping[str, Route] = field(default_factory=dict)

    @classmethod
    def from_routes(cls, routes: Iterable[Route]) -> "RouteTableSnapshot":
        by_name: Dict[str, Route] = {}
        for route in routes:
            if route.name in by_name:
                raise ValueError(f"Duplicate route name: {route.name}")
            by_name[route.name] = route
        return cls(routes=by_name)

    def __len__(self) -> int:
        return len(self.routes)

    def __contains__(self, name: str) -> bool:
        return name in self.routes

    def names(self) -> List[str]:
        return list(self.routes)

    def get(self, name: str) -> Optional[Route]:
        return self.routes.get(name)

    def without(self, names: Iterable[str]) -> "RouteTableSnapshot":
        dropped = set(names)
        return RouteTableSnapshot(
            routes={name: route for name, route in self.routes.items() if name not in dropped}
        )

    def with_routes(self, routes: Iterable[Route]) -> "RouteTableSnapshot":
        merged = dict(self.routes)
        for route in routes:
            merged[route.name] = route
        return RouteTableSnapshot(routes=merged)

    def with_plan(self, plan) -> "RouteTableSnapshot":
        """Return the table as it would look after the plan is applied."""
        return self.without(plan.to_remove).with_routes(plan.to_add)
