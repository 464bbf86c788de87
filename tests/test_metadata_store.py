"""
Tests for the federation metadata store.
"""

import json
import logging
import threading
from unittest.mock import MagicMock

import pytest

from cassandrastore.core.types import Consistency
from cassandrastore.db import queries
from cassandrastore.errors import PreconditionViolation, TransientStorageError
from cassandrastore.metadata.cache import MetadataSetCache
from cassandrastore.metadata.store import (
    CassandraMetadataStore, HIDE_FROM_DISCOVERY, ENTITY_CATEGORY, is_hidden_from_discovery
)


IDP = "https://idp.example"
IDP_SET = "saml20-idp-remote"


def feed_queries(client):
    return [q for q, _, _ in client.executed if q == queries.FEED_SELECT]


class TestEntityLifecycle:
    """Test insert, lookup and deletion of entities."""

    def test_insert_then_get_metadata(self, metadata_store):
        metadata_store.insert("edugain", IDP, {"entityid": IDP, "name": "Example"}, {}, "authA",
                              is_update=False)

        assert metadata_store.get_metadata(IDP, IDP_SET) == {"entityid": IDP, "name": "Example"}

    def test_get_entity_returns_metadata_only(self, metadata_store):
        metadata_store.insert("feedA", IDP, {"name": "Example"}, {"DisplayName": "Ex"}, "authA")

        assert metadata_store.get_entity("feedA", IDP) == {"name": "Example"}

    def test_get_entity_missing(self, metadata_store):
        assert metadata_store.get_entity("edugain", "https://unknown.example") is None

    def test_get_metadata_other_set(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        client.executed.clear()

        assert metadata_store.get_metadata(IDP, "saml20-sp-remote") is None
        assert client.executed == []

    def test_get_metadata_reads_edugain_only(self, metadata_store):
        metadata_store.insert("otherfeed", IDP, {"name": "Example"}, {}, "authA")
        assert metadata_store.get_metadata(IDP, IDP_SET) is None

    def test_first_insert_sets_created(self, metadata_store, clock):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA", is_update=False)

        row = metadata_store.get_feed("edugain")[IDP]
        assert row["created"] == int(clock.now)
        assert row["updated"] is None

    def test_update_on_first_write_never_sets_created(self, metadata_store, clock):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA", is_update=True)

        row = metadata_store.get_feed("edugain")[IDP]
        assert row["created"] is None
        assert row["updated"] == int(clock.now)

    def test_update_keeps_created(self, metadata_store, clock):
        metadata_store.insert("edugain", IDP, {"name": "Old"}, {}, "authA")
        created = int(clock.now)
        clock.advance(100)
        metadata_store.insert("edugain", IDP, {"name": "New"}, {}, "authA", is_update=True)

        row = metadata_store.get_feed("edugain")[IDP]
        assert row["created"] == created
        assert row["updated"] == created + 100
        assert row["metadata"] == {"name": "New"}

    def test_insert_uses_server_timestamp(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")

        query, params, consistency = client.executed[-1]
        assert "toTimestamp(now())" in query
        assert "created" in query and "updated" not in query
        assert params["enabled"] is True
        assert json.loads(params["metadata"]) == {"name": "Example"}
        assert consistency == Consistency.QUORUM

    def test_insert_rejects_non_mapping_metadata(self, metadata_store, client):
        with pytest.raises(PreconditionViolation):
            metadata_store.insert("edugain", IDP, ["not", "a", "dict"], {}, "authA")
        assert client.executed == []

    def test_soft_delete_hides_entity(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        metadata_store.soft_delete("edugain", IDP)

        assert metadata_store.get_entity("edugain", IDP) is None
        assert metadata_store.get_metadata(IDP, IDP_SET) is None
        assert IDP not in metadata_store.get_feed("edugain")
        assert IDP not in metadata_store.get_metadata_set(IDP_SET)

    def test_soft_delete_keeps_row(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        metadata_store.soft_delete("edugain", IDP)

        query, params, _ = client.executed[-1]
        assert query == queries.ENTITY_SOFT_DELETE
        assert set(params) == {"feed", "entityid", "enabled"}
        assert params["enabled"] is False

        row = client.execute(queries.ENTITY_SELECT, {"feed": "edugain", "entityid": IDP})[0]
        assert json.loads(row["metadata"]) == {"name": "Example"}
        assert row["enabled"] is False

    def test_reinsert_after_soft_delete(self, metadata_store):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        metadata_store.soft_delete("edugain", IDP)
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA", is_update=True)

        assert metadata_store.get_entity("edugain", IDP) == {"name": "Example"}

    def test_hard_delete(self, metadata_store):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        metadata_store.delete("edugain", IDP)

        assert metadata_store.get_entity("edugain", IDP) is None
        assert metadata_store.get_reg_auth_ui("edugain", "authA") == {}
        assert metadata_store.get_logo("edugain", IDP) is None

    def test_delete_missing_is_noop(self, metadata_store):
        metadata_store.delete("edugain", "https://unknown.example")


class TestFeedListing:
    """Test feed and registration authority listings."""

    def test_get_feed_decodes_rows(self, metadata_store, client, clock):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {"DisplayName": "Ex"}, "authA")
        client.put_entity_columns("edugain", IDP, verification='{"status": "ok"}', logo_etag="e1")

        feed = metadata_store.get_feed("edugain")
        row = feed[IDP]

        assert row["metadata"] == {"name": "Example"}
        assert row["uimeta"] == {"DisplayName": "Ex"}
        assert row["verification"] == {"status": "ok"}
        assert row["reg"] == "authA"
        assert row["logo_etag"] == "e1"
        assert row["created"] == int(clock.now)

    def test_get_feed_skips_disabled(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {}, "authA")
        metadata_store.soft_delete("edugain", "https://b.example")

        assert list(metadata_store.get_feed("edugain")) == ["https://a.example"]

    def test_get_feed_is_scoped(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        metadata_store.insert("kalmar", "https://b.example", {"name": "B"}, {}, "authA")

        assert list(metadata_store.get_feed("kalmar")) == ["https://b.example"]
        assert metadata_store.get_feed("empty") == {}

    def test_malformed_column_does_not_drop_row(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        client.put_entity_columns("edugain", IDP, verification="{broken", uimeta=None)

        row = metadata_store.get_feed("edugain")[IDP]
        assert row["verification"] is None
        assert row["uimeta"] is None
        assert row["metadata"] == {"name": "Example"}

    def test_reg_auth_filters_by_authority(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {"n": "A"}, "authA")
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {"n": "B"}, "authB")

        result = metadata_store.get_reg_auth_ui("edugain", "authA")

        assert list(result) == ["https://a.example"]
        assert result["https://a.example"]["uimeta"] == {"n": "A"}
        assert "metadata" not in result["https://a.example"]

    def test_reg_auth_includes_soft_deleted(self, metadata_store):
        """The administrative view still shows disabled entities."""
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        metadata_store.soft_delete("edugain", IDP)

        result = metadata_store.get_reg_auth_ui("edugain", "authA", exclude_hidden=False)

        assert IDP in result
        assert result[IDP]["enabled"] is False
        assert metadata_store.get_entity("edugain", IDP) is None

    def test_reg_auth_exclude_hidden(self, metadata_store):
        metadata_store.insert("edugain", "https://visible.example", {"name": "V"}, {}, "authA")
        metadata_store.insert("edugain", "https://flag.example",
                              {"name": "F", "hide.from.discovery": True}, {}, "authA")
        metadata_store.insert("edugain", "https://refeds.example",
                              {"name": "R", "EntityAttributes": {ENTITY_CATEGORY: [HIDE_FROM_DISCOVERY]}},
                              {}, "authA")

        shown = metadata_store.get_reg_auth_ui("edugain", "authA", exclude_hidden=True)
        everything = metadata_store.get_reg_auth_ui("edugain", "authA")

        assert list(shown) == ["https://visible.example"]
        assert len(everything) == 3

    def test_get_logo(self, metadata_store, client):
        metadata_store.insert("edugain", IDP, {"name": "Example"}, {}, "authA")
        client.put_entity_columns("edugain", IDP, logo=b"\x89PNG", logo_etag="etag-1")

        logo = metadata_store.get_logo("edugain", IDP)

        assert logo == {"enabled": True, "logo": b"\x89PNG", "logo_updated": None, "logo_etag": "etag-1"}

    def test_get_logo_missing(self, metadata_store):
        assert metadata_store.get_logo("edugain", IDP) is None

    @pytest.mark.parametrize("feed, entity_id", [(None, IDP), ("edugain", 42)])
    def test_get_logo_rejects_non_strings(self, metadata_store, client, feed, entity_id):
        with pytest.raises(PreconditionViolation):
            metadata_store.get_logo(feed, entity_id)
        assert client.executed == []


class TestHiddenFromDiscovery:
    """Test detection of entities hidden from discovery."""

    def test_flags(self):
        assert is_hidden_from_discovery({"hide.from.discovery": True})
        assert is_hidden_from_discovery({"EntityAttributes": {ENTITY_CATEGORY: HIDE_FROM_DISCOVERY}})
        assert not is_hidden_from_discovery({"EntityAttributes": {ENTITY_CATEGORY: ["http://refeds.org/category/research-and-scholarship"]}})
        assert not is_hidden_from_discovery({"name": "x"})
        assert not is_hidden_from_discovery(None)
        assert not is_hidden_from_discovery("hidden")


class TestMetadataSet:
    """Test the cached identity provider metadata set."""

    def test_builds_from_edugain(self, metadata_store, client):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {}, "authA")
        metadata_store.insert("edugain", "https://c.example", {"name": "C"}, {}, "authA")
        metadata_store.soft_delete("edugain", "https://c.example")
        client.put_entity_columns("edugain", "https://d.example", enabled=True, metadata='"just a string"')
        metadata_store.insert("otherfeed", "https://e.example", {"name": "E"}, {}, "authA")

        result = metadata_store.get_metadata_set(IDP_SET)

        assert result == {
            "https://a.example": {"name": "A", "entityid": "https://a.example"},
            "https://b.example": {"name": "B", "entityid": "https://b.example"},
        }

    def test_entityid_overrides_stored_value(self, metadata_store):
        metadata_store.insert("edugain", IDP, {"entityid": "stale", "name": "Example"}, {}, "authA")
        assert metadata_store.get_metadata_set(IDP_SET)[IDP]["entityid"] == IDP

    def test_unsupported_set_is_empty_without_queries(self, metadata_store, client):
        assert metadata_store.get_metadata_set("unsupported-set") == {}
        assert metadata_store.get_metadata_set("unsupported-set") == {}
        assert client.executed == []

    def test_unsupported_set_is_not_cached(self, metadata_store, metrics):
        for index in range(5):
            assert metadata_store.get_metadata_set(f"made-up-set-{index}") == {}

        assert "made-up-set-0" not in metadata_store.cache
        assert metrics.get_sample(
            'cassandrastore_cache_operations_total', {'set_name': 'made-up-set-0', 'status': 'miss'}
        ) is None

    def test_returned_set_is_a_private_copy(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")

        first = metadata_store.get_metadata_set(IDP_SET)
        first["https://a.example"]["name"] = "changed"
        first["https://other.example"] = {"name": "Other"}

        second = metadata_store.get_metadata_set(IDP_SET)
        assert second == {"https://a.example": {"name": "A", "entityid": "https://a.example"}}
        second.clear()

        assert list(metadata_store.get_metadata_set(IDP_SET)) == ["https://a.example"]

    def test_set_is_cached(self, metadata_store, client):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")

        first = metadata_store.get_metadata_set(IDP_SET)
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {}, "authA")
        second = metadata_store.get_metadata_set(IDP_SET)

        assert second == first
        assert list(second) == ["https://a.example"]
        assert len(feed_queries(client)) == 1

    def test_cache_is_per_store(self, metadata_store, client, metrics):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        metadata_store.get_metadata_set(IDP_SET)
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {}, "authA")

        fresh = CassandraMetadataStore(client=client, metrics=metrics)
        assert sorted(fresh.get_metadata_set(IDP_SET)) == ["https://a.example", "https://b.example"]

    def test_cache_clear(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        metadata_store.get_metadata_set(IDP_SET)
        metadata_store.insert("edugain", "https://b.example", {"name": "B"}, {}, "authA")

        metadata_store.cache.clear()
        assert len(metadata_store.get_metadata_set(IDP_SET)) == 2

    def test_concurrent_first_access_loads_once(self, metadata_store, client):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(metadata_store.get_metadata_set(IDP_SET))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result == results[0] for result in results)
        assert len(feed_queries(client)) == 1

    def test_cache_hits_are_counted(self, metadata_store, metrics):
        metadata_store.get_metadata_set(IDP_SET)
        metadata_store.get_metadata_set(IDP_SET)

        assert metrics.get_sample(
            'cassandrastore_cache_operations_total', {'set_name': IDP_SET, 'status': 'miss'}
        ) == 1.0
        assert metrics.get_sample(
            'cassandrastore_cache_operations_total', {'set_name': IDP_SET, 'status': 'hit'}
        ) == 1.0

    def test_failed_load_is_not_cached(self, metrics):
        client = MagicMock()
        client.execute.side_effect = [TransientStorageError("timeout"), []]
        store = CassandraMetadataStore(client=client, metrics=metrics)

        with pytest.raises(TransientStorageError):
            store.get_metadata_set(IDP_SET)
        assert store.get_metadata_set(IDP_SET) == {}
        assert client.execute.call_count == 2

    def test_for_entities(self, metadata_store):
        metadata_store.insert("edugain", "https://a.example", {"name": "A"}, {}, "authA")

        result = metadata_store.get_metadata_for_entities(
            ["https://a.example", "https://missing.example"], IDP_SET
        )
        assert result == {"https://a.example": {"name": "A"}}


class TestMetadataStoreFailures:
    """Test propagation of cluster failures."""

    @pytest.mark.parametrize("call", [
        lambda store: store.get_entity("edugain", IDP),
        lambda store: store.get_feed("edugain"),
        lambda store: store.get_reg_auth_ui("edugain", "authA"),
        lambda store: store.get_logo("edugain", IDP),
        lambda store: store.insert("edugain", IDP, {}, {}, "authA"),
        lambda store: store.soft_delete("edugain", IDP),
        lambda store: store.delete("edugain", IDP),
    ])
    def test_errors_propagate_unmodified(self, metrics, caplog, call):
        client = MagicMock()
        error = TransientStorageError("no quorum")
        client.execute.side_effect = error
        store = CassandraMetadataStore(client=client, metrics=metrics)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(TransientStorageError) as exc_info:
                call(store)

        assert exc_info.value is error
        assert client.execute.call_count == 1
        assert any("metadata." in record.getMessage() for record in caplog.records)

    def test_cache_object_can_be_shared(self, client, metrics):
        cache = MetadataSetCache(metrics)
        first = CassandraMetadataStore(client=client, metrics=metrics, cache=cache)
        second = CassandraMetadataStore(client=client, metrics=metrics, cache=cache)

        first.get_metadata_set(IDP_SET)
        second.get_metadata_set(IDP_SET)

        assert len(feed_queries(client)) == 1
