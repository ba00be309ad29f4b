"""EventReconciler - merge semantics over immutable snapshots"""
import itertools
import json

import pytest

from complaint_sync.domain.enums import ComplaintStatus
from complaint_sync.domain.models import ChangeNotification, Complaint
from complaint_sync.sync.reconciler import EventReconciler

from tests.conftest import envelope, make_complaint_data


def complaint(complaint_id: str, minutes: int = 0, **overrides) -> Complaint:
    return Complaint.model_validate(make_complaint_data(complaint_id, minutes, **overrides))


def upsert(complaint_id: str, minutes: int = 0, **overrides) -> ChangeNotification:
    return ChangeNotification.upsert(complaint(complaint_id, minutes, **overrides))


@pytest.fixture
def reconciler() -> EventReconciler:
    return EventReconciler()


class TestUpsert:

    def test_insert_orders_newest_first(self, reconciler):
        snapshot = reconciler.empty()
        for cid, minutes in (("old", 0), ("new", 30), ("mid", 15)):
            snapshot = reconciler.apply(snapshot, upsert(cid, minutes))

        assert snapshot.ids == ("new", "mid", "old")
        assert snapshot.version == 3

    def test_update_replaces_in_place(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1", 0))
        snapshot = reconciler.apply(snapshot, upsert("c2", 5))

        snapshot = reconciler.apply(snapshot, upsert("c1", 0, status="resolved"))

        assert snapshot.ids == ("c2", "c1")
        assert snapshot.get("c1").status == ComplaintStatus.RESOLVED

    def test_duplicate_notification_is_idempotent(self, reconciler):
        change = upsert("c1", 0, status="in_progress")
        once = reconciler.apply(reconciler.empty(), change)
        twice = reconciler.apply(once, change)

        assert twice is once
        assert twice.items == once.items

    def test_created_for_known_id_acts_as_update(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1"))
        snapshot = reconciler.apply(snapshot, ChangeNotification.upsert(complaint("c1", title="Renamed")))

        assert len(snapshot) == 1
        assert snapshot.get("c1").title == "Renamed"

    def test_missing_created_at_sorts_oldest(self, reconciler):
        undated = Complaint.model_validate({"_id": "undated"})
        snapshot = reconciler.apply(reconciler.empty(), ChangeNotification.upsert(undated))
        snapshot = reconciler.apply(snapshot, upsert("dated", 0))

        assert snapshot.ids == ("dated", "undated")

    def test_equal_timestamps_keep_newest_arrival_first(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("first", 0))
        snapshot = reconciler.apply(snapshot, upsert("second", 0))

        assert snapshot.ids == ("second", "first")


class TestDelete:

    def test_delete_removes(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1"))
        snapshot = reconciler.apply(snapshot, ChangeNotification.deletion("c1"))

        assert len(snapshot) == 0
        assert "c1" not in snapshot

    def test_delete_unknown_id_is_noop(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1"))
        after = reconciler.apply(snapshot, ChangeNotification.deletion("ghost"))

        assert after is snapshot

    def test_last_applied_wins(self, reconciler):
        base = reconciler.apply(reconciler.empty(), upsert("c1"))

        # late update after a delete brings the record back
        revived = reconciler.apply(
            reconciler.apply(base, ChangeNotification.deletion("c1")),
            upsert("c1", status="resolved")
        )
        assert revived.get("c1").status == ComplaintStatus.RESOLVED

        # delete after an update removes it
        removed = reconciler.apply(
            reconciler.apply(base, upsert("c1", status="resolved")),
            ChangeNotification.deletion("c1")
        )
        assert "c1" not in removed


class TestConvergence:

    def test_any_order_of_distinct_ids_converges(self, reconciler):
        changes = [
            upsert("a", 0),
            upsert("b", 10, status="in_progress"),
            upsert("c", 20, priority="urgent"),
            ChangeNotification.deletion("d"),
        ]
        seeded = reconciler.apply(reconciler.empty(), upsert("d", 5))

        results = []
        for order in itertools.permutations(changes):
            snapshot = seeded
            for change in order:
                snapshot = reconciler.apply(snapshot, change)
            results.append(snapshot.items)

        assert all(items == results[0] for items in results)
        assert [c.id for c in results[0]] == ["c", "b", "a"]


class TestRetentionCap:

    def test_never_exceeds_cap_and_evicts_oldest(self):
        reconciler = EventReconciler(max_size=3)
        snapshot = reconciler.empty()
        for minutes in range(5):
            snapshot = reconciler.apply(snapshot, upsert(f"c{minutes}", minutes))
            assert len(snapshot) <= 3

        assert snapshot.ids == ("c4", "c3", "c2")

    def test_older_than_everything_retained_is_evicted_on_arrival(self):
        reconciler = EventReconciler(max_size=2)
        snapshot = reconciler.empty()
        for cid, minutes in (("a", 10), ("b", 20)):
            snapshot = reconciler.apply(snapshot, upsert(cid, minutes))

        snapshot = reconciler.apply(snapshot, upsert("ancient", 0))

        assert snapshot.ids == ("b", "a")

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            EventReconciler(max_size=0)


class TestRawMessages:

    def test_malformed_frame_leaves_snapshot(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1"))

        assert reconciler.apply_raw(snapshot, "{broken") is snapshot
        assert reconciler.apply_raw(snapshot, {"type": "complaint_updated", "data": {}}) is snapshot
        assert reconciler.apply_raw(snapshot, {"type": "pong"}) is snapshot

    def test_valid_frame_applies(self, reconciler):
        snapshot = reconciler.apply_raw(
            reconciler.empty(),
            envelope("NEW_COMPLAINT", make_complaint_data("c1"))
        )
        assert snapshot.ids == ("c1",)

    def test_out_of_range_timestamp_frame_is_dropped(self, reconciler):
        snapshot = reconciler.apply(reconciler.empty(), upsert("c1"))
        infinite = json.dumps(envelope("complaint_created", make_complaint_data("x", createdAt=float("inf"))))

        assert "Infinity" in infinite
        assert reconciler.apply_raw(snapshot, infinite) is snapshot
        assert reconciler.apply_raw(
            snapshot, envelope("complaint_updated", make_complaint_data("x", createdAt=1e22))
        ) is snapshot


class TestReplaceAll:

    def test_refetch_drops_entries_missed_while_disconnected(self, reconciler):
        snapshot = reconciler.empty()
        for cid in ("a", "b", "gone"):
            snapshot = reconciler.apply(snapshot, upsert(cid))

        refreshed = reconciler.replace_all(snapshot, [make_complaint_data("a"), make_complaint_data("b", 5)])

        assert refreshed.ids == ("b", "a")
        assert refreshed.version == snapshot.version + 1

    def test_invalid_records_are_dropped_individually(self, reconciler):
        snapshot = reconciler.replace_all(reconciler.empty(), [
            make_complaint_data("ok"),
            {"title": "no id"},
            make_complaint_data("bad", status="escalated"),
            "not a record",
        ])
        assert snapshot.ids == ("ok",)

    def test_out_of_range_timestamps_are_dropped_individually(self, reconciler):
        snapshot = reconciler.replace_all(reconciler.empty(), [
            make_complaint_data("a"),
            make_complaint_data("b", createdAt=1e22),
            make_complaint_data("c", createdAt=float("nan")),
        ])
        assert snapshot.ids == ("a",)

    def test_duplicate_ids_keep_last_value(self, reconciler):
        snapshot = reconciler.replace_all(reconciler.empty(), [
            make_complaint_data("c1", status="pending"),
            make_complaint_data("c1", status="closed"),
        ])

        assert len(snapshot) == 1
        assert snapshot.get("c1").status == ComplaintStatus.CLOSED

    def test_cap_applies_to_refetch(self):
        reconciler = EventReconciler(max_size=2)
        snapshot = reconciler.replace_all(
            reconciler.empty(),
            [make_complaint_data(f"c{i}", i) for i in range(4)]
        )
        assert snapshot.ids == ("c3", "c2")
