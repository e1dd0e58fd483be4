"""Cache-backed event-to-incident enrichment."""

from services.incident_enrichment.cache_keys import CacheKeyBuilder, stringify_value
from services.incident_enrichment.cache_store import (
    CacheStore,
    GuardedCacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)
from services.incident_enrichment.decision_engine import (
    EnrichmentResult,
    IncidentDecisionEngine,
    Outcome,
)
from services.incident_enrichment.enrichment_filter import IncidentEnrichmentFilter
from services.incident_enrichment.errors import (
    CacheOperationError,
    ConfigurationError,
    IncidentEnrichmentError,
)
from services.incident_enrichment.events import DictEventAdapter, EventAdapter
from services.incident_enrichment.field_catalog import FieldCatalog, FieldSpec
from services.incident_enrichment.records import IncidentRecord, IncidentWriter
from services.incident_enrichment.scoring import FieldScores, ScoreAggregator
from services.incident_enrichment.severity import (
    PriorityGate,
    SeverityScaleRegistry,
    normalize_priority,
)

__all__ = [
    "CacheKeyBuilder",
    "stringify_value",
    "CacheStore",
    "GuardedCacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "EnrichmentResult",
    "IncidentDecisionEngine",
    "Outcome",
    "IncidentEnrichmentFilter",
    "CacheOperationError",
    "ConfigurationError",
    "IncidentEnrichmentError",
    "DictEventAdapter",
    "EventAdapter",
    "FieldCatalog",
    "FieldSpec",
    "IncidentRecord",
    "IncidentWriter",
    "FieldScores",
    "ScoreAggregator",
    "PriorityGate",
    "SeverityScaleRegistry",
    "normalize_priority",
]
