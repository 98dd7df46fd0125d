"""
Tests for the reconciliation engine.
"""

from datetime import date

import pytest

from studr.errors import CapacityExceeded, ReconcileError, UnknownServiceTag
from studr.naming import format_route_name
from studr.reconciler import Operation, reconcile
from studr.routetable import NextHopType, Route, RouteTableSnapshot

FOO = {"Foo": (3, ["10.0.0.0/8", "10.1.0.0/16"])}


def table(*routes):
    return RouteTableSnapshot.from_routes(routes)


def unrelated(count):
    return [Route(f"manual-{i}", f"192.168.{i % 256}.0/24", NextHopType.VIRTUAL_APPLIANCE, "10.0.0.4")
            for i in range(count)]


def managed(tag, change, prefixes, day="20240101", prefix="STUDR", cloud="Public"):
    return [Route(format_route_name(prefix, cloud, tag, change, i, day), p)
            for i, p in enumerate(prefixes)]


class TestSync:
    """Test sync (add) planning."""

    def test_scenario_empty_table(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)

        plan = reconcile(table(), snapshot, ["Foo"], Operation.SYNC, prefix="STUDR", today=today)

        assert plan.to_remove == []
        assert plan.to_add == [
            Route(f"STUDR-Public-Foo-3-0-{today}", "10.0.0.0/8", NextHopType.INTERNET),
            Route(f"STUDR-Public-Foo-3-1-{today}", "10.1.0.0/16", NextHopType.INTERNET),
        ]
        assert plan.tags[0].reason == "no managed routes yet"

    def test_idempotence(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        current = table(*unrelated(3))

        first = reconcile(current, snapshot, ["Foo"], "add", today=today)
        assert not first.is_empty

        second = reconcile(current.with_plan(first), snapshot, ["Foo"], "add", today="20240301")
        assert second.is_empty
        assert second.tags[0].reason.startswith("up to date")

    def test_version_drift_replaces_whole_set(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        # index 0 is current, index 1 comes from an older change number
        current = table(
            Route(format_route_name("STUDR", "Public", "Foo", 3, 0, "20240101"), "10.0.0.0/8"),
            Route(format_route_name("STUDR", "Public", "Foo", 2, 1, "20231201"), "10.1.0.0/16"),
        )

        plan = reconcile(current, snapshot, ["Foo"], Operation.SYNC, today=today)

        assert sorted(plan.to_remove) == sorted(current.names())
        assert [r.name for r in plan.to_add] == [
            f"STUDR-Public-Foo-3-0-{today}",
            f"STUDR-Public-Foo-3-1-{today}",
        ]
        assert plan.tags[0].stale == ["STUDR-Public-Foo-2-1-20231201"]

    def test_unparseable_name_under_stem_is_stale(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        current = table(*managed("Foo", 3, ["10.0.0.0/8", "10.1.0.0/16"]),
                        Route("STUDR-Public-Foo-handmade", "10.9.0.0/16"))

        plan = reconcile(current, snapshot, ["Foo"], Operation.SYNC, today=today)

        assert "STUDR-Public-Foo-handmade" in plan.to_remove
        assert len(plan.to_remove) == 3
        assert len(plan.to_add) == 2

    def test_missing_current_route_is_repaired(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        current = table(*managed("Foo", 3, ["10.0.0.0/8"]))

        plan = reconcile(current, snapshot, ["Foo"], Operation.SYNC, today=today)

        assert plan.to_remove == ["STUDR-Public-Foo-3-0-20240101"]
        assert len(plan.to_add) == 2

    def test_prefix_order_drives_indices(self, make_snapshot, today):
        snapshot = make_snapshot({"Bar": (1, ["10.2.0.0/16", "10.0.0.0/8", "10.1.0.0/16"])})
        plan = reconcile(table(), snapshot, ["Bar"], Operation.SYNC, today=today)
        assert [(r.name.split("-")[4], r.address_prefix) for r in plan.to_add] == [
            ("0", "10.2.0.0/16"), ("1", "10.0.0.0/8"), ("2", "10.1.0.0/16"),
        ]

    def test_today_accepts_date(self, make_snapshot):
        plan = reconcile(table(), make_snapshot(FOO), ["Foo"], "sync", today=date(2024, 2, 29))
        assert plan.to_add[0].name.endswith("-20240229")

    def test_tag_lookup_uses_snapshot_name(self, make_snapshot, today):
        snapshot = make_snapshot({"AzureCloud.westeurope": (7, ["20.0.0.0/8"])})
        plan = reconcile(table(), snapshot, ["azurecloud.WESTEUROPE", "AzureCloud.westeurope"],
                         Operation.SYNC, today=today)
        assert [r.name for r in plan.to_add] == [f"STUDR-Public-AzureCloud.westeurope-7-0-{today}"]

    def test_routes_of_other_prefix_are_foreign(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        current = table(*managed("Foo", 1, ["10.0.0.0/8"], prefix="OTHER"))

        plan = reconcile(current, snapshot, ["Foo"], Operation.SYNC, today=today)

        assert plan.to_remove == []
        assert len(plan.to_add) == 2


class TestRemove:
    """Test remove planning."""

    def test_remove_only(self, make_snapshot, today):
        snapshot = make_snapshot({"T": (9, ["10.0.0.0/8"])})
        owned = managed("T", 4, ["1.0.0.0/8", "2.0.0.0/8", "3.0.0.0/8"])

        plan = reconcile(table(*owned), snapshot, ["T"], Operation.REMOVE, today=today)

        assert sorted(plan.to_remove) == sorted(r.name for r in owned)
        assert plan.to_add == []

    def test_remove_with_nothing_owned(self, make_snapshot):
        plan = reconcile(table(*unrelated(2)), make_snapshot(FOO), ["Foo"], "remove")
        assert plan.is_empty


class TestIsolation:
    """Test that routes of other tags and manual routes are never touched."""

    def test_only_requested_tags_are_touched(self, make_snapshot, today):
        snapshot = make_snapshot({
            "Foo": (3, ["10.0.0.0/8"]),
            "Bar": (5, ["172.16.0.0/12"]),
        })
        current = table(
            *unrelated(4),
            *managed("Foo", 2, ["10.0.0.0/8"]),
            *managed("Bar", 4, ["172.16.0.0/12"]),
        )

        for operation in (Operation.SYNC, Operation.REMOVE):
            plan = reconcile(current, snapshot, ["Foo"], operation, today=today)
            touched = set(plan.to_remove) | {r.name for r in plan.to_add}
            assert touched
            assert all(name.startswith("STUDR-Public-Foo-") for name in touched)


class TestFailures:
    """Test all-or-nothing failures."""

    def test_unknown_tag(self, make_snapshot):
        with pytest.raises(UnknownServiceTag, match="Nope"):
            reconcile(table(), make_snapshot(FOO), ["Foo", "Nope"], Operation.SYNC)

    def test_empty_targets(self, make_snapshot):
        with pytest.raises(ReconcileError):
            reconcile(table(), make_snapshot(FOO), [], Operation.SYNC)
        with pytest.raises(ReconcileError):
            reconcile(table(), make_snapshot(FOO), ["", "  "], Operation.SYNC)

    def test_single_tag_string_is_one_target(self, make_snapshot, today):
        plan = reconcile(table(), make_snapshot(FOO), "Foo", Operation.SYNC, today=today)
        assert [t.tag for t in plan.tags] == ["Foo"]
        assert len(plan.to_add) == 2

    def test_unknown_operation(self, make_snapshot):
        with pytest.raises(ValueError):
            reconcile(table(), make_snapshot(FOO), ["Foo"], "upsert")

    def test_capacity_atomicity(self, make_snapshot, today):
        snapshot = make_snapshot({"Five": (1, [f"10.{i}.0.0/16" for i in range(5)])})
        current = table(*unrelated(398))

        with pytest.raises(CapacityExceeded) as excinfo:
            reconcile(current, snapshot, ["Five"], Operation.SYNC, today=today)

        assert excinfo.value.projected == 403
        assert excinfo.value.capacity == 400
        assert len(current) == 398

    def test_capacity_is_checked_over_all_tags(self, make_snapshot, today):
        snapshot = make_snapshot({
            "A": (1, ["10.0.0.0/8", "10.1.0.0/16"]),
            "B": (1, ["10.2.0.0/16", "10.3.0.0/16"]),
        })
        current = table(*unrelated(7))

        # each tag alone fits in 10, together they do not
        assert reconcile(current, snapshot, ["A"], Operation.SYNC, capacity=10, today=today)
        assert reconcile(current, snapshot, ["B"], Operation.SYNC, capacity=10, today=today)
        with pytest.raises(CapacityExceeded):
            reconcile(current, snapshot, ["A", "B"], Operation.SYNC, capacity=10, today=today)

    def test_replacement_counts_removals(self, make_snapshot, today):
        snapshot = make_snapshot(FOO)
        current = table(*unrelated(398), *managed("Foo", 2, ["10.0.0.0/8", "10.1.0.0/16"]))

        plan = reconcile(current, snapshot, ["Foo"], Operation.SYNC, today=today)

        assert plan.projected_size(len(current)) == 400
