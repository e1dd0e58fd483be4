"""
Event access for the enrichment filter.

The hosting pipeline owns the event; the engine only reads a handful of
fields from it and writes ``incident_uuid`` back.  ``DictEventAdapter``
covers plain dict events and understands Logstash-style ``[a][b]`` field
references.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from services.incident_enrichment.severity import normalize_priority

logger = logging.getLogger(__name__)

MSG = "msg"
PRIORITY = "priority"
SEVERITY = "severity"
SYSLOGSEVERITY_TEXT = "syslogseverity_text"
NAMESPACE_UUID = "namespace_uuid"
ORGANIZATION_UUID = "organization_uuid"
SERVICE_PROVIDER_UUID = "service_provider_uuid"
TIMESTAMP = "timestamp"
INCIDENT_UUID = "incident_uuid"

DEFAULT_INCIDENT_NAME = "Unknown incident"

_FIELD_REFERENCE_RE = re.compile(r"\[([^\[\]]+)\]")


class EventAdapter(ABC):
    """Field access on a single event."""

    @abstractmethod
    def get_field(self, name: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set_field(self, name: str, value: Any) -> None:
        ...


class DictEventAdapter(EventAdapter):
    """Adapter over a dict event, mutated in place."""

    def __init__(self, event: Dict[str, Any]):
        self.event = event

    @staticmethod
    def _path(name: str) -> List[str]:
        parts = _FIELD_REFERENCE_RE.findall(name)
        if parts and "".join(f"[{p}]" for p in parts) == name:
            return parts
        return [name]

    def get_field(self, name: str) -> Optional[Any]:
        node: Any = self.event
        for part in self._path(name):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def set_field(self, name: str, value: Any) -> None:
        path = self._path(name)
        node = self.event
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[path[-1]] = value


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------


def observed_fields(event: EventAdapter, incident_fields: Iterable[str]) -> "OrderedDict[str, Any]":
    """Configured identity fields present on *event*, in configured order.

    Fields whose value is None are left out entirely.
    """
    fields: "OrderedDict[str, Any]" = OrderedDict()
    for name in incident_fields:
        value = event.get_field(name)
        if value is not None:
            fields[name] = value
    return fields


def event_priority(event: EventAdapter) -> str:
    """First of priority, severity, syslog severity text; normalised."""
    for name in (PRIORITY, SEVERITY, SYSLOGSEVERITY_TEXT):
        value = event.get_field(name)
        if value:
            return normalize_priority(value)
    return normalize_priority(None)


def event_name(event: EventAdapter) -> str:
    return event.get_field(MSG) or DEFAULT_INCIDENT_NAME


def event_domain_uuid(event: EventAdapter) -> Optional[str]:
    """Narrowest domain: organization, then namespace, then service provider."""
    for name in (ORGANIZATION_UUID, NAMESPACE_UUID, SERVICE_PROVIDER_UUID):
        value = event.get_field(name)
        if value:
            return value
    return None


def event_timestamp(event: EventAdapter) -> Optional[datetime]:
    """Event timestamp as an aware UTC datetime.

    Accepts epoch seconds, ISO-8601 strings and datetimes. Anything else
    yields None.
    """
    value = event.get_field(TIMESTAMP)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("[INCIDENT-ENRICHMENT] Invalid epoch timestamp: %r", value)
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            try:
                return datetime.fromtimestamp(int(text), tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.warning("[INCIDENT-ENRICHMENT] Invalid epoch timestamp: %r", value)
                return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("[INCIDENT-ENRICHMENT] Invalid timestamp: %r", value)
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
