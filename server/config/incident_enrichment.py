"""
Incident Enrichment Configuration

Settings for the incident enrichment filter. Values are passed explicitly
to the filter; nothing here is read at import time.

Environment variables (all optional except fields and source):
    INCIDENT_ENRICHMENT_CACHE_EXPIRATION       membership TTL in seconds
    INCIDENT_ENRICHMENT_CACHE_BACKEND_ADDRESS  comma-separated host:port list
    INCIDENT_ENRICHMENT_INCIDENT_FIELDS        comma-separated or JSON list
    INCIDENT_ENRICHMENT_SOURCE                 e.g. Intrusion, Vault
    INCIDENT_ENRICHMENT_FIELD_SCORES           JSON object field -> score
    INCIDENT_ENRICHMENT_FIELD_MAP              JSON object field -> category
    INCIDENT_ENRICHMENT_MINIMUM_PRIORITY       e.g. high
    INCIDENT_ENRICHMENT_SEVERITY_SCALES        JSON object source -> {label: rank}
    INCIDENT_ENRICHMENT_MATCH_THRESHOLD        score for a confident match
"""

import json
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.incident_enrichment.errors import ConfigurationError
from services.incident_enrichment.field_catalog import FieldCatalog

ENV_PREFIX = "INCIDENT_ENRICHMENT_"

DEFAULT_CACHE_EXPIRATION = 600
DEFAULT_MINIMUM_PRIORITY = "high"
DEFAULT_MATCH_THRESHOLD = 100


class IncidentEnrichmentSettings(BaseModel):
    """Validated configuration for one enrichment filter instance."""

    model_config = ConfigDict(frozen=True)

    cache_expiration: int = Field(default=DEFAULT_CACHE_EXPIRATION, gt=0)
    cache_backend_address: List[str] = Field(default_factory=list)
    cache_socket_timeout: float = Field(default=5, gt=0)
    incident_fields: List[str] = Field(min_length=1)
    source: str
    field_scores: Dict[str, int] = Field(default_factory=dict)
    field_map: Dict[str, str] = Field(default_factory=dict)
    minimum_priority: str = DEFAULT_MINIMUM_PRIORITY
    severity_scales: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    match_threshold: int = Field(default=DEFAULT_MATCH_THRESHOLD, gt=0)
    key_root: str = Field(default="rbincident", min_length=1)

    @field_validator("cache_backend_address", mode="before")
    @classmethod
    def _split_addresses(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value

    @field_validator("incident_fields")
    @classmethod
    def _no_blank_fields(cls, value: List[str]) -> List[str]:
        if any(not name.strip() for name in value):
            raise ValueError("incident_fields must not contain blank names")
        return value

    @field_validator("field_scores")
    @classmethod
    def _non_negative_scores(cls, value: Dict[str, int]) -> Dict[str, int]:
        negative = [name for name, score in value.items() if score < 0]
        if negative:
            raise ValueError(f"field_scores must be non-negative: {negative}")
        return value

    @field_validator("minimum_priority")
    @classmethod
    def _lower_priority(cls, value: str) -> str:
        return value.strip().lower()

    @classmethod
    def load(cls, data: Dict[str, Any]) -> "IncidentEnrichmentSettings":
        """Validate *data*, raising ``ConfigurationError`` on bad input."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid incident enrichment settings: {e}", cause=e) from e

    @classmethod
    def from_env(cls) -> "IncidentEnrichmentSettings":
        """Load configuration from environment variables (and .env)."""
        load_dotenv()

        data: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is None or raw.strip() == "":
                continue
            data[name] = _parse_env_value(name, raw)
        return cls.load(data)

    def field_catalog(self) -> FieldCatalog:
        return FieldCatalog.from_maps(self.field_scores, self.field_map)


def _parse_env_value(name: str, raw: str) -> Any:
    text = raw.strip()
    if text[:1] in ("{", "["):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"{ENV_PREFIX}{name.upper()} is not valid JSON: {e}", cause=e
            ) from e
    if name == "incident_fields":
        return [s.strip() for s in text.split(",") if s.strip()]
    return text
