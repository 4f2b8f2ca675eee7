"""Tests for moving undefined resources into category partitions."""
import json
import threading
from unittest.mock import MagicMock

import pytest

from vet1stop.errors import RepositoryError
from vet1stop.migrate.reclassify import (
    FailedMove,
    PartialMoveWarning,
    reclassify_undefined,
    write_audit_log,
)
from vet1stop.search.predicates import MATCH_ALL
from vet1stop.storage.models import Resource
from vet1stop.tagging.taxonomy import PLACEHOLDER_NOTE

_MATCHING = [
    ("m1", "Military Medical Records Help"),        # health
    ("m2", "Flight School Scholarships"),           # education
    ("m3", "Veteran Job Board"),                    # jobs
    ("m4", "Veteran Owned Business Directory"),     # shop
    ("m5", "Local Chapter Meetups"),                # local
    ("m6", "Monthly News Roundup"),                 # social
]
_NON_MATCHING = [
    ("n1", "Honor Flight"),
    ("n2", "Gold Star Families"),
    ("n3", "Patriot Guard Riders"),
    ("n4", "Veterans of Foreign Wars"),
]


def _fixed_clock():
    return "2025-06-01T12:00:00+00:00"


@pytest.fixture()
def undefined_batch(store):
    repo = store.partition("undefined")
    for rid, title in _MATCHING + _NON_MATCHING:
        repo.insert_one(Resource(id=rid, title=title, category="undefined"))
    return repo


class TestReclassify:
    def test_moves_matching_and_keeps_rest(self, store, undefined_batch):
        summary = reclassify_undefined(store, clock=_fixed_clock)

        assert summary.total == 10
        assert summary.moved_total == 6
        assert summary.moved == {
            "health": 1, "education": 1, "jobs": 1, "shop": 1, "local": 1, "social": 1,
        }
        assert summary.uncategorized == 4
        assert summary.errors == 0
        assert summary.partial_moves == []

        remaining = sorted(r.id for r in undefined_batch.find(MATCH_ALL))
        assert remaining == ["n1", "n2", "n3", "n4"]

    def test_moved_record_fields(self, store, undefined_batch):
        reclassify_undefined(store, clock=_fixed_clock)

        moved = store.partition("health").find(MATCH_ALL)
        assert len(moved) == 1
        res = moved[0]
        assert res.id == "m1"
        assert res.title == "Military Medical Records Help"
        assert res.category == "health"
        assert res.note == PLACEHOLDER_NOTE
        assert res.updated_at == _fixed_clock()

    def test_audit_entries(self, store, undefined_batch):
        summary = reclassify_undefined(store, clock=_fixed_clock)

        by_id = {e.resource_id: e for e in summary.audit}
        assert set(by_id) == {rid for rid, _ in _MATCHING}
        entry = by_id["m3"]
        assert entry.old_partition == "undefinedResources"
        assert entry.new_partition == "jobResources"
        assert entry.timestamp == _fixed_clock()
        assert entry.keywords == ("job",)

    def test_partition_counts_after_run(self, store, undefined_batch):
        summary = reclassify_undefined(store)
        assert summary.partition_counts["undefinedResources"] == 4
        assert summary.partition_counts["shopResources"] == 1
        assert summary.partition_counts["lifeLeisureResources"] == 0

    def test_second_run_is_a_no_op(self, store):
        repo = store.partition("undefined")
        repo.insert_one(Resource(id="a", title="Housing Assistance"))
        reclassify_undefined(store)

        summary = reclassify_undefined(store)
        assert summary.total == 0
        assert summary.moved_total == 0
        assert summary.errors == 0
        assert summary.audit == []

    def test_dry_run_writes_nothing(self, store, undefined_batch):
        summary = reclassify_undefined(store, dry_run=True)

        assert summary.dry_run is True
        assert summary.moved_total == 6
        assert undefined_batch.count(MATCH_ALL) == 10
        assert store.partition("health").count(MATCH_ALL) == 0

    def test_cancel_stops_at_record_boundary(self, store, undefined_batch):
        cancel = threading.Event()
        cancel.set()
        summary = reclassify_undefined(store, cancel=cancel)

        assert summary.cancelled is True
        assert summary.moved_total == 0
        assert undefined_batch.count(MATCH_ALL) == 10

    def test_cancel_midway(self, store, undefined_batch):
        cancel = MagicMock()
        cancel.is_set.side_effect = [False, False, True]
        summary = reclassify_undefined(store, cancel=cancel)

        assert summary.cancelled is True
        processed = summary.moved_total + summary.uncategorized
        assert processed == 2
        # Every processed record is fully in one place.
        catalog = store.catalog()
        assert catalog.count(MATCH_ALL) == 10


def _mock_store(records, target=None):
    source = MagicMock()
    source.find.return_value = records
    source.delete_one.return_value = True
    source.count.return_value = 0
    target = target or MagicMock()
    target.count.return_value = 0

    store = MagicMock()
    store.partition.side_effect = lambda cat: source if cat == "undefined" else target
    return store, source, target


class TestFailureHandling:
    def test_source_read_failure_is_fatal(self):
        store, source, _ = _mock_store([])
        source.find.side_effect = RepositoryError("connection refused")
        with pytest.raises(RepositoryError):
            reclassify_undefined(store)

    def test_insert_failure_keeps_source_and_continues(self):
        records = [
            Resource(id="a", title="Job Fair"),
            Resource(id="b", title="Career Coaching"),
        ]
        store, source, target = _mock_store(records)
        target.insert_one.side_effect = [RepositoryError("disk full"), "b"]

        summary = reclassify_undefined(store)

        assert summary.errors == 1
        assert summary.failed == [FailedMove(
            resource_id="a",
            old_partition="undefinedResources",
            new_partition="jobResources",
            reason="disk full",
        )]
        assert summary.moved == {"jobs": 1}
        source.delete_one.assert_called_once_with("b")

    def test_rerun_after_partial_move_reports_duplicate(self, store, tmp_settings):
        store.partition("undefined").insert_one(Resource(id="x", title="Medical Records"))
        store.partition("health").insert_one(Resource(id="x", title="Medical Records",
                                                       category="health"))

        summary = reclassify_undefined(store)

        assert summary.errors == 0
        assert summary.moved == {}
        assert [w.resource_id for w in summary.partial_moves] == ["x"]
        assert summary.partial_moves[0].new_partition == "healthResources"
        assert store.partition("undefined").count(MATCH_ALL) == 1

        data = json.loads(write_audit_log(summary, tmp_settings.audit_dir).read_text())
        assert data["partial_moves"][0]["resource_id"] == "x"

    def test_delete_failure_is_partial_move(self, caplog):
        records = [Resource(id="a", title="Discount Store")]
        store, source, target = _mock_store(records)
        source.delete_one.side_effect = RepositoryError("timeout")

        with caplog.at_level("WARNING", logger="vet1stop.migrate.reclassify"):
            summary = reclassify_undefined(store)

        assert summary.partial_moves == [PartialMoveWarning(
            resource_id="a",
            old_partition="undefinedResources",
            new_partition="shopResources",
            reason="timeout",
        )]
        assert summary.moved == {"shop": 1}
        assert summary.errors == 0
        assert "PartialMoveWarning" in caplog.text

    def test_delete_matching_nothing_is_partial_move(self):
        records = [Resource(id="a", title="Community Garden")]
        store, source, _ = _mock_store(records)
        source.delete_one.return_value = False

        summary = reclassify_undefined(store)
        assert len(summary.partial_moves) == 1
        assert summary.partial_moves[0].new_partition == "localResources"


class TestAuditLog:
    def test_write_audit_log(self, store, undefined_batch, tmp_settings):
        summary = reclassify_undefined(store, clock=_fixed_clock)
        path = write_audit_log(summary, tmp_settings.audit_dir)

        assert path.exists()
        assert path.name.startswith("reclassify-audit-")
        data = json.loads(path.read_text())
        assert data["moved_total"] == 6
        assert data["uncategorized"] == 4
        assert len(data["audit"]) == 6
        assert data["audit"][0]["old_partition"] == "undefinedResources"
