"""Tests for the in-memory entity directory."""

import json

import pytest

from domain.directory import SAMPLE_ENTITIES, InMemoryEntityDirectory


@pytest.mark.asyncio
class TestInMemoryEntityDirectory:
    async def test_lookup_by_id_and_name(self, directory):
        by_id = await directory.find_by_id("E1")
        by_name = await directory.find_by_name("Acme Corp")
        assert by_id is not None and by_id == by_name
        assert by_id.keywords == ("widgets",)

    async def test_unknown_lookups(self, directory):
        assert await directory.find_by_id("nope") is None
        assert await directory.find_by_name("nope") is None
        assert await directory.related_entities("nope") == []

    async def test_related_entities_preserve_order(self, directory):
        assert await directory.related_entities("E1") == ["Globex", "Initech", "Umbrella"]

    async def test_related_list_is_a_copy(self, directory):
        related = await directory.related_entities("E1")
        related.clear()
        assert await directory.related_entities("E1") == ["Globex", "Initech", "Umbrella"]

    async def test_duplicate_ids_keep_first(self):
        directory = InMemoryEntityDirectory(
            [{"id": "X", "name": "First"}, {"id": "X", "name": "Second"}]
        )
        assert len(directory) == 1
        assert (await directory.find_by_id("X")).name == "First"

    async def test_sample_data(self):
        directory = InMemoryEntityDirectory.with_sample_data()
        assert len(directory) == len(SAMPLE_ENTITIES)
        entity = await directory.find_by_id("9700150084994")
        assert entity.name == "台湾中小企業銀行股份有限公司"
        assert "西京信用金庫" in await directory.related_entities(entity.id)
        assert (await directory.revenue_ranges(entity.id))["西京信用金庫"] == "100億円〜500億円"

    async def test_revenue_ranges_of_related_entities(self, directory):
        assert await directory.revenue_ranges("E1") == {"Globex": "$10M-$50M"}
        assert await directory.revenue_ranges("E2") == {}
        assert await directory.revenue_ranges("nope") == {}

    async def test_revenue_table_covers_peers_without_entries(self, acme_entities):
        directory = InMemoryEntityDirectory(acme_entities, {"Umbrella": "$1B+", "Globex": "$50M-$100M"})
        ranges = await directory.revenue_ranges("E1")
        assert list(ranges) == ["Globex", "Umbrella"]
        assert ranges["Globex"] == "$50M-$100M"


class TestFromJson:
    def test_list_file(self, tmp_path, acme_entities):
        path = tmp_path / "entities.json"
        path.write_text(json.dumps(acme_entities), encoding="utf-8")
        assert len(InMemoryEntityDirectory.from_json(path)) == len(acme_entities)

    def test_wrapped_file(self, tmp_path, acme_entities):
        path = tmp_path / "entities.json"
        path.write_text(json.dumps({"entities": acme_entities[:2]}), encoding="utf-8")
        assert len(InMemoryEntityDirectory.from_json(path)) == 2

    @pytest.mark.asyncio
    async def test_revenue_ranges_from_file(self, tmp_path, acme_entities):
        path = tmp_path / "entities.json"
        payload = {"entities": acme_entities, "revenue_ranges": {"Initech": "$1M-$10M"}}
        path.write_text(json.dumps(payload), encoding="utf-8")
        directory = InMemoryEntityDirectory.from_json(path)
        assert await directory.revenue_ranges("E1") == {"Globex": "$10M-$50M", "Initech": "$1M-$10M"}

    def test_invalid_entity(self, tmp_path):
        path = tmp_path / "entities.json"
        path.write_text(json.dumps([{"id": "", "name": "Nameless"}]), encoding="utf-8")
        with pytest.raises(ValueError):
            InMemoryEntityDirectory.from_json(path)

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "entities.json"
        path.write_text(json.dumps("not a list"), encoding="utf-8")
        with pytest.raises(ValueError):
            InMemoryEntityDirectory.from_json(path)
