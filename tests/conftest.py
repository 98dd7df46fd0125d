"""
Shared fixtures: an in-memory route table gateway and snapshot builders.
"""

from typing import Dict, List, Optional

import pytest

from studr.errors import RouteTableNotFound
from studr.routetable import (
    Route,
    RouteTableGateway,
    RouteTableHandle,
    RouteTableRef,
    RouteTableSnapshot,
)
from studr.snapshot import ServiceTagSnapshot

TODAY = "20240115"


class FakeRouteTableHandle(RouteTableHandle):
    """Route table handle that records every call."""

    def __init__(self, gateway, ref: RouteTableRef, routes: List[Route], fail_on: Optional[str] = None):
        self._gateway = gateway
        self.ref = ref
        self.routes: Dict[str, Route] = {r.name: r for r in routes}
        self.fail_on = fail_on
        self.calls: List[tuple] = []
        self.discarded = False

    def snapshot(self) -> RouteTableSnapshot:
        return RouteTableSnapshot(routes=dict(self.routes))

    def remove_route(self, name: str) -> None:
        self.calls.append(("remove", name))
        if self.fail_on == "remove":
            raise RuntimeError("remove rejected")
        del self.routes[name]

    def add_route(self, route: Route) -> None:
        self.calls.append(("add", route.name))
        if self.fail_on == "add":
            raise RuntimeError("add rejected")
        self.routes[route.name] = route

    def commit(self) -> None:
        self.calls.append(("commit",))
        if self.fail_on == "commit":
            raise RuntimeError("commit rejected")
        self._gateway.tables[self.ref.table_id] = list(self.routes.values())

    def discard(self) -> None:
        self.discarded = True


class FakeRouteTableGateway(RouteTableGateway):
    def __init__(self, tables: Dict[str, List[Route]], fail_on: Optional[str] = None):
        self.tables = tables
        self.fail_on = fail_on
        self.handles: List[FakeRouteTableHandle] = []

    def open(self, ref: RouteTableRef) -> FakeRouteTableHandle:
        if ref.table_id not in self.tables:
            raise RouteTableNotFound(ref.table_id)
        handle = FakeRouteTableHandle(self, ref, self.tables[ref.table_id], fail_on=self.fail_on)
        self.handles.append(handle)
        return handle


def build_document(tags: Dict[str, tuple], cloud: str = "Public", change_number: int = 10) -> dict:
    return {
        "changeNumber": change_number,
        "cloud": cloud,
        "values": [
            {
                "name": name,
                "id": name,
                "properties": {
                    "changeNumber": tag_change,
                    "region": "",
                    "platform": "Azure",
                    "systemService": "",
                    "addressPrefixes": list(prefixes),
                },
            }
            for name, (tag_change, prefixes) in tags.items()
        ],
    }


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_snapshot():
    def _make(tags: Dict[str, tuple], cloud: str = "Public", change_number: int = 10) -> ServiceTagSnapshot:
        return ServiceTagSnapshot.from_document(build_document(tags, cloud, change_number))
    return _make


@pytest.fixture
def make_document():
    return build_document


@pytest.fixture
def make_gateway():
    def _make(tables: Dict[str, List[Route]], fail_on: Optional[str] = None) -> FakeRouteTableGateway:
        return FakeRouteTableGateway(tables, fail_on=fail_on)
    return _make


@pytest.fixture
def studr_home(tmp_path, monkeypatch):
    monkeypatch.setenv("STUDR_HOME", str(tmp_path / "home"))
    for name in ("STUDR_CLOUD", "STUDR_PREFIX", "STUDR_CAPACITY", "STUDR_HTTP_TIMEOUT",
                 "STUDR_RECORD_EVENTS", "AZURE_SUBSCRIPTION_ID"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "home"
