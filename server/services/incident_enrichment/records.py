"""
Incident records, field memberships and relation links.

All writes are independent single-key operations through the guarded
cache; a failed write is logged there and reported back as False.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from services.incident_enrichment.cache_keys import CacheKeyBuilder
from services.incident_enrichment.cache_store import NO_EXPIRATION, GuardedCacheStore

logger = logging.getLogger(__name__)


def new_incident_uuid() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class IncidentRecord:
    """Metadata persisted once when an incident is opened."""

    uuid: str
    name: str
    priority: str
    source: str
    domain_uuid: Optional[str] = None
    first_event_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "uuid": self.uuid,
            "name": self.name,
            "priority": self.priority,
            "source": self.source,
            "domain_uuid": self.domain_uuid,
            "first_event_at": (
                self.first_event_at.isoformat() if self.first_event_at else None
            ),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class IncidentWriter:
    """Persists incident state in the shared cache."""

    def __init__(
        self,
        key_builder: CacheKeyBuilder,
        cache: GuardedCacheStore,
        cache_expiration: int,
    ):
        self.key_builder = key_builder
        self.cache = cache
        self.cache_expiration = cache_expiration

    def lookup_incident_uuid(self, prefix: str, field_name: str, value: Any) -> Optional[str]:
        """Incident uuid currently bound to a field value, if any."""
        return self.cache.get(self.key_builder.build_key(prefix, field_name, value)) or None

    def save_incident(self, prefix: str, record: IncidentRecord) -> bool:
        """Store the incident record as JSON, without expiration."""
        key = self.key_builder.build_incident_key(prefix, record.uuid)
        saved = self.cache.set(key, record.to_json(), NO_EXPIRATION)
        if saved:
            logger.info("[INCIDENT-ENRICHMENT] Incident saved successfully with key: %s", key)
        return saved

    def save_incident_fields(
        self, prefix: str, incident_uuid: str, fields: Mapping[str, Any]
    ) -> int:
        """Bind each field value to *incident_uuid* with the membership TTL.

        Returns:
            int: number of memberships written.
        """
        written = 0
        for field_name, value in fields.items():
            key = self.key_builder.build_key(prefix, field_name, value)
            if self.cache.set(key, incident_uuid, self.cache_expiration):
                written += 1
            else:
                logger.warning(
                    "[INCIDENT-ENRICHMENT] Failed to save incident field %s", field_name
                )
        return written

    def update_fields_expiration_time(self, prefix: str, fields: Mapping[str, Any]) -> int:
        """Extend the TTL of existing memberships, keeping their incident.

        Memberships that expired meanwhile are skipped.

        Returns:
            int: number of memberships refreshed.
        """
        refreshed = 0
        for field_name, value in fields.items():
            key = self.key_builder.build_key(prefix, field_name, value)
            if self.cache.touch(key, self.cache_expiration):
                refreshed += 1
        return refreshed

    def save_incident_relation(
        self, prefix: str, incident_uuid: str, fields: Mapping[str, Any]
    ) -> Optional[str]:
        """Link *incident_uuid* to the first incident found among *fields*.

        Returns:
            Optional[str]: the partner uuid, or None when no partner was found
            or the link could not be written.
        """
        partner_uuid = self._first_partner(prefix, fields.items())
        if partner_uuid is None:
            return None

        key = self.key_builder.build_relation_key(prefix, incident_uuid)
        if not self.cache.set(key, partner_uuid, NO_EXPIRATION):
            logger.error(
                "[INCIDENT-ENRICHMENT] Failed to save incident relation %s -> %s",
                incident_uuid,
                partner_uuid,
            )
            return None
        return partner_uuid

    def _first_partner(self, prefix: str, fields: Iterable) -> Optional[str]:
        for field_name, value in fields:
            partner_uuid = self.lookup_incident_uuid(prefix, field_name, value)
            if partner_uuid:
                return partner_uuid
        return None
