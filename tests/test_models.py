"""Tests for the Resource record and document mapping."""
from dataclasses import replace

from vet1stop.storage.models import Resource, partition_for


class TestDocumentMapping:
    def test_from_legacy_document(self):
        doc = {
            "_id": "65f0c0ffee",
            "title": "Team Rubicon",
            "description": None,
            "category": "local",
            "sourceName": "Team Rubicon",
            "isPremiumContent": 0,
            "tags": ["disaster", "volunteer"],
            "isPremium": False,
            "location": {"city": "Louisville"},
        }
        res = Resource.from_document(doc)
        assert res.id == "65f0c0ffee"
        assert res.description == ""
        assert res.source_name == "Team Rubicon"
        assert res.is_premium_content is False
        assert res.tags == ("disaster", "volunteer")
        assert res.extra == {"isPremium": False, "location": {"city": "Louisville"}}

    def test_round_trip(self):
        res = Resource(id="a", title="T", tags=("x",), extra={"phone": "555"})
        assert Resource.from_document(res.to_document()) == res

    def test_extras_do_not_override_fields(self):
        res = Resource(id="a", title="Real", extra={"title": "Shadow"})
        assert res.to_document()["title"] == "Real"

    def test_immutable_updates(self):
        res = Resource(id="a", category="undefined")
        moved = replace(res, category="shop", note="n")
        assert res.category == "undefined"
        assert moved.partition == "shopResources"


class TestPartitions:
    def test_partition_for(self):
        assert partition_for("health") == "healthResources"
        assert partition_for("life_leisure") == "lifeLeisureResources"
        assert partition_for(" JOBS ") == "jobResources"
        assert partition_for("mystery") == "undefinedResources"
        assert partition_for(None) == "undefinedResources"

