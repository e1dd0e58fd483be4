"""Tests for incident records and the cache writer."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

from services.incident_enrichment.cache_keys import CacheKeyBuilder
from services.incident_enrichment.cache_store import CacheStore, GuardedCacheStore
from services.incident_enrichment.errors import CacheOperationError
from services.incident_enrichment.field_catalog import FieldCatalog
from services.incident_enrichment.records import IncidentRecord, IncidentWriter

_TS = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestIncidentRecord:

    def test_json_shape(self):
        record = IncidentRecord(
            uuid="u-1",
            name="Port scan",
            priority="high",
            source="Intrusion",
            domain_uuid="org-1",
            first_event_at=_TS,
        )
        assert json.loads(record.to_json()) == {
            "uuid": "u-1",
            "name": "Port scan",
            "priority": "high",
            "source": "Intrusion",
            "domain_uuid": "org-1",
            "first_event_at": "2026-02-01T12:00:00+00:00",
        }


class TestIncidentWriter:

    def setup_method(self):
        self.builder = CacheKeyBuilder(FieldCatalog.from_maps())

    def _writer(self, store):
        return IncidentWriter(self.builder, GuardedCacheStore(store), cache_expiration=600)

    def test_save_incident_without_expiration(self, memory_store):
        record = IncidentRecord("u-1", "n", "high", "Intrusion")
        assert self._writer(memory_store).save_incident("p", record) is True
        assert memory_store.get("p:incident:u-1") == record.to_json()
        assert memory_store.ttl_of("p:incident:u-1") is None

    def test_save_incident_fields_with_ttl(self, memory_store):
        written = self._writer(memory_store).save_incident_fields(
            "p", "u-1", {"src_ip": "1.2.3.4", "dst_port": 80}
        )
        assert written == 2
        assert memory_store.get("p:ip:1.2.3.4") == "u-1"
        assert memory_store.get("p:port:80") == "u-1"
        assert memory_store.ttl_of("p:port:80") == 600

    def test_refresh_keeps_bound_incident(self, memory_store, clock):
        memory_store.set("p:ip:1.2.3.4", "u-old", 600)
        clock.advance(500)
        refreshed = self._writer(memory_store).update_fields_expiration_time(
            "p", {"src_ip": "1.2.3.4", "dst_ip": "9.9.9.9"}
        )
        assert refreshed == 1
        assert memory_store.get("p:ip:1.2.3.4") == "u-old"
        assert memory_store.ttl_of("p:ip:1.2.3.4") == 600
        assert memory_store.get("p:ip:9.9.9.9") is None

    def test_relation_links_first_partner(self, memory_store):
        memory_store.set("p:port:22", "u-port", 600)
        memory_store.set("p:ip:1.2.3.4", "u-ip", 600)
        partner = self._writer(memory_store).save_incident_relation(
            "p", "u-new", {"dst_ip": "5.5.5.5", "dst_port": 22, "src_ip": "1.2.3.4"}
        )
        assert partner == "u-port"
        assert memory_store.get("p:relation:u-new") == "u-port"
        assert memory_store.ttl_of("p:relation:u-new") is None

    def test_relation_without_partner(self, memory_store):
        partner = self._writer(memory_store).save_incident_relation(
            "p", "u-new", {"src_ip": "1.2.3.4"}
        )
        assert partner is None
        assert memory_store.keys() == []

    def test_failed_writes_are_reported_not_raised(self):
        backend = MagicMock(spec=CacheStore)
        backend.set.side_effect = CacheOperationError("down")
        writer = self._writer(backend)
        assert writer.save_incident("p", IncidentRecord("u", "n", "high", "s")) is False
        assert writer.save_incident_fields("p", "u", {"src_ip": "1.2.3.4"}) == 0
