"""
Per-event incident enrichment filter.

Wires the field catalog, key builder, cache, scorer and decision engine
together and runs them on each event handed over by the hosting pipeline.
The filter never drops or fails an event: cache problems only mean the
event leaves without an ``incident_uuid``.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional

from services.incident_enrichment.cache_keys import CacheKeyBuilder
from services.incident_enrichment.cache_store import (
    CacheStore,
    GuardedCacheStore,
    RedisCacheStore,
)
from services.incident_enrichment.decision_engine import (
    EnrichmentResult,
    IncidentDecisionEngine,
    Outcome,
)
from services.incident_enrichment.errors import ConfigurationError
from services.incident_enrichment.events import (
    INCIDENT_UUID,
    NAMESPACE_UUID,
    DictEventAdapter,
    EventAdapter,
    event_domain_uuid,
    event_name,
    event_priority,
    event_timestamp,
    observed_fields,
)
from services.incident_enrichment.records import IncidentWriter
from services.incident_enrichment.scoring import ScoreAggregator
from services.incident_enrichment.severity import PriorityGate, SeverityScaleRegistry

if TYPE_CHECKING:
    from config.incident_enrichment import IncidentEnrichmentSettings

logger = logging.getLogger(__name__)


def resolve_cache_servers(settings: "IncidentEnrichmentSettings") -> List[str]:
    """Configured endpoints, or the process-wide default list when unset."""
    from utils.cache.redis_client import default_cache_servers

    return list(settings.cache_backend_address) or default_cache_servers()


class IncidentEnrichmentFilter:
    """Attach ``incident_uuid`` to events based on shared cache state.

    Args:
        settings: Validated filter configuration.
        store: Cache backend to use instead of connecting to Redis.
    """

    def __init__(
        self,
        settings: "IncidentEnrichmentSettings",
        store: Optional[CacheStore] = None,
    ) -> None:
        self.settings = settings
        self._store = store
        self.engine: Optional[IncidentDecisionEngine] = None
        self.key_builder: Optional[CacheKeyBuilder] = None

    @property
    def is_active(self) -> bool:
        return self.engine is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def register(self) -> "IncidentEnrichmentFilter":
        """Build the engine. Stays inert if the cache cannot be reached."""
        logger.info("[INCIDENT-ENRICHMENT] Registering incident enrichment filter")
        try:
            store = self._store if self._store is not None else self._connect()
            catalog = self.settings.field_catalog()
        except ConfigurationError as e:
            logger.error("[INCIDENT-ENRICHMENT] Failed to initialize cache: %s", e)
            self.engine = None
            return self

        cache = GuardedCacheStore(store)
        self.key_builder = CacheKeyBuilder(catalog, key_root=self.settings.key_root)
        registry = SeverityScaleRegistry(self.settings.severity_scales)
        gate = PriorityGate(registry, self.settings.source, self.settings.minimum_priority)

        self.engine = IncidentDecisionEngine(
            aggregator=ScoreAggregator(catalog, self.key_builder, cache),
            writer=IncidentWriter(self.key_builder, cache, self.settings.cache_expiration),
            gate=gate,
            source=self.settings.source,
            match_threshold=self.settings.match_threshold,
        )
        return self

    def _connect(self) -> CacheStore:
        from utils.cache.redis_client import get_redis_client

        servers = resolve_cache_servers(self.settings)
        client = get_redis_client(servers, socket_timeout=self.settings.cache_socket_timeout)
        if client is None:
            raise ConfigurationError(
                f"Cache backend unreachable at {', '.join(servers)}"
            )
        return RedisCacheStore(client)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enrich(self, event: EventAdapter) -> EnrichmentResult:
        """Decide the incident for *event* and write ``incident_uuid`` on it."""
        if self.engine is None:
            logger.debug("[INCIDENT-ENRICHMENT] Inactive, passing event through")
            return EnrichmentResult(outcome=Outcome.NOOP)

        try:
            prefix = self.key_builder.key_prefix(event.get_field(NAMESPACE_UUID))
            priority = event_priority(event)
            fields = observed_fields(event, self.settings.incident_fields)

            result = self.engine.process(
                fields,
                prefix,
                priority,
                name=event_name(event),
                domain_uuid=event_domain_uuid(event),
                first_event_at=event_timestamp(event),
            )
        except Exception:
            logger.exception("[INCIDENT-ENRICHMENT] Unexpected error during enrichment")
            return EnrichmentResult(outcome=Outcome.NOOP)

        if result.incident_uuid:
            event.set_field(INCIDENT_UUID, result.incident_uuid)
        return result

    def filter(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Enrich a dict event in place and return it."""
        self.enrich(DictEventAdapter(event))
        return event

    def filter_events(self, events: Iterable[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
        for event in events:
            yield self.filter(event)
