"""Tests for event access and extraction helpers."""

from datetime import datetime, timezone

from services.incident_enrichment.events import (
    DEFAULT_INCIDENT_NAME,
    DictEventAdapter,
    event_domain_uuid,
    event_name,
    event_priority,
    event_timestamp,
    observed_fields,
)


class TestDictEventAdapter:

    def test_plain_fields(self):
        event = DictEventAdapter({"src_ip": "1.2.3.4"})
        assert event.get_field("src_ip") == "1.2.3.4"
        assert event.get_field("dst_ip") is None

    def test_field_references(self):
        raw = {"source": {"ip": "1.2.3.4"}}
        event = DictEventAdapter(raw)
        assert event.get_field("[source][ip]") == "1.2.3.4"
        event.set_field("[enrichment][incident_uuid]", "u-1")
        assert raw["enrichment"] == {"incident_uuid": "u-1"}

    def test_set_field_mutates_event(self):
        raw = {}
        DictEventAdapter(raw).set_field("incident_uuid", "u-1")
        assert raw == {"incident_uuid": "u-1"}


class TestObservedFields:

    def test_none_values_excluded_and_order_kept(self):
        event = DictEventAdapter({"dst_ip": "5.6.7.8", "src_ip": None, "dst_port": 0})
        fields = observed_fields(event, ["src_ip", "dst_port", "dst_ip", "lan_ip"])
        assert list(fields.items()) == [("dst_port", 0), ("dst_ip", "5.6.7.8")]


class TestEventMetadata:

    def test_priority_fallback_chain(self):
        assert event_priority(DictEventAdapter({"priority": "High", "severity": "low"})) == "high"
        assert event_priority(DictEventAdapter({"severity": "LOW"})) == "low"
        assert event_priority(DictEventAdapter({"syslogseverity_text": "notice"})) == "notice"
        assert event_priority(DictEventAdapter({})) == "unknown"
        assert event_priority(DictEventAdapter({"priority": "p1"})) == "unknown"

    def test_name(self):
        assert event_name(DictEventAdapter({"msg": "ET SCAN"})) == "ET SCAN"
        assert event_name(DictEventAdapter({})) == DEFAULT_INCIDENT_NAME

    def test_domain_uuid_precedence(self):
        event = DictEventAdapter({
            "service_provider_uuid": "sp",
            "namespace_uuid": "ns",
            "organization_uuid": "org",
        })
        assert event_domain_uuid(event) == "org"
        assert event_domain_uuid(DictEventAdapter({"service_provider_uuid": "sp", "namespace_uuid": "ns"})) == "ns"
        assert event_domain_uuid(DictEventAdapter({"service_provider_uuid": "sp"})) == "sp"
        assert event_domain_uuid(DictEventAdapter({})) is None

    def test_timestamp_from_epoch(self):
        ts = event_timestamp(DictEventAdapter({"timestamp": 1700000000}))
        assert ts == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_timestamp_from_iso_string(self):
        ts = event_timestamp(DictEventAdapter({"timestamp": "2026-02-01T12:00:00Z"}))
        assert ts == datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_timestamp_missing_or_invalid(self):
        assert event_timestamp(DictEventAdapter({})) is None
        assert event_timestamp(DictEventAdapter({"timestamp": "yesterday"})) is None
        assert event_timestamp(DictEventAdapter({"timestamp": "1700000000000"})) is None
        assert event_timestamp(DictEventAdapter({"timestamp": 1700000000000})) is None
