"""
Incident decision engine.

Classifies an event as matching an existing incident, opening a related
incident, opening a brand-new incident, or doing nothing, and applies the
cache writes that go with each outcome.

Outcomes, in priority order:

* total score >= threshold: attach to the incident bound to the
  top-scoring field; new fields join that incident.
* 0 < total score < threshold: open a new incident, keep already-bound
  fields where they are, and link the new incident to the first of them.
* total score == 0: open a new incident owning every observed field.
* The last two only happen when the priority gate is open.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from services.incident_enrichment.records import (
    IncidentRecord,
    IncidentWriter,
    new_incident_uuid,
)
from services.incident_enrichment.scoring import FieldScores, ScoreAggregator
from services.incident_enrichment.severity import PriorityGate

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Decision taken for one event."""

    MATCHED_EXISTING = "matched_existing"
    MATCH_MISSED = "match_missed"
    RELATED = "related"
    NEW = "new"
    NOOP = "noop"


@dataclass(frozen=True)
class EnrichmentResult:
    """Outcome of the incident decision for one event."""

    outcome: Outcome
    incident_uuid: Optional[str] = None
    score: int = 0
    partner_uuid: Optional[str] = None
    scores: Dict[str, int] = field(default_factory=dict)


class IncidentDecisionEngine:
    """Three-way incident decision over a pre-write score snapshot."""

    MATCH_THRESHOLD: int = 100

    def __init__(
        self,
        aggregator: ScoreAggregator,
        writer: IncidentWriter,
        gate: PriorityGate,
        source: str,
        *,
        match_threshold: Optional[int] = None,
    ) -> None:
        self.aggregator = aggregator
        self.writer = writer
        self.gate = gate
        self.source = source
        self.match_threshold = (
            match_threshold if match_threshold is not None else self.MATCH_THRESHOLD
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(
        self,
        fields: Mapping[str, Any],
        prefix: str,
        priority: str,
        *,
        name: str,
        domain_uuid: Optional[str] = None,
        first_event_at: Optional[datetime] = None,
    ) -> EnrichmentResult:
        """Score *fields* against the cache and decide.

        Args:
            fields: Observed identity fields (name -> value) in input order,
                without None values.
            prefix: Tenant key prefix.
            priority: Normalised event priority.
            name: Incident display name, used if an incident is opened.
            domain_uuid: Domain identifier for a new incident record.
            first_event_at: Event time for a new incident record.
        """
        scores = self.aggregator.score(fields, prefix)
        return self.decide(
            fields,
            scores,
            prefix,
            priority,
            name=name,
            domain_uuid=domain_uuid,
            first_event_at=first_event_at,
        )

    def decide(
        self,
        fields: Mapping[str, Any],
        scores: FieldScores,
        prefix: str,
        priority: str,
        *,
        name: str,
        domain_uuid: Optional[str] = None,
        first_event_at: Optional[datetime] = None,
    ) -> EnrichmentResult:
        """Decide from an already computed score snapshot and apply writes."""
        total = scores.total

        if total >= self.match_threshold:
            return self._process_existing_incident(fields, scores, prefix)

        if not self.gate.is_open(priority):
            logger.debug(
                "[INCIDENT-ENRICHMENT] Priority %r below minimum %r for source %r (score=%d)",
                priority,
                self.gate.minimum_priority,
                self.source,
                total,
            )
            return EnrichmentResult(
                outcome=Outcome.NOOP, score=total, scores=scores.as_dict()
            )

        record = IncidentRecord(
            uuid=new_incident_uuid(),
            name=name,
            priority=priority,
            source=self.source,
            domain_uuid=domain_uuid,
            first_event_at=first_event_at,
        )
        return self._process_new_incident(fields, scores, prefix, record)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _partition(fields: Mapping[str, Any], scores: FieldScores):
        """Split *fields* by snapshot score into (zero, positive), input order."""
        zero: "OrderedDict[str, Any]" = OrderedDict()
        positive: "OrderedDict[str, Any]" = OrderedDict()
        for field_name, value in fields.items():
            if scores.get(field_name) == 0:
                zero[field_name] = value
            else:
                positive[field_name] = value
        return zero, positive

    def _process_existing_incident(
        self,
        fields: Mapping[str, Any],
        scores: FieldScores,
        prefix: str,
    ) -> EnrichmentResult:
        top_field = scores.top_field
        incident_uuid = self.writer.lookup_incident_uuid(prefix, top_field, fields[top_field])

        if not incident_uuid:
            # Membership expired or was evicted after scoring
            logger.info(
                "[INCIDENT-ENRICHMENT] Membership for field %s vanished before match (score=%d)",
                top_field,
                scores.total,
            )
            return EnrichmentResult(
                outcome=Outcome.MATCH_MISSED, score=scores.total, scores=scores.as_dict()
            )

        fields_to_save, fields_to_update = self._partition(fields, scores)
        if fields_to_save:
            self.writer.save_incident_fields(prefix, incident_uuid, fields_to_save)
        self.writer.update_fields_expiration_time(prefix, fields_to_update)

        logger.info(
            "[INCIDENT-ENRICHMENT] Event matched incident %s (score=%d, new_fields=%s)",
            incident_uuid,
            scores.total,
            list(fields_to_save),
        )
        return EnrichmentResult(
            outcome=Outcome.MATCHED_EXISTING,
            incident_uuid=incident_uuid,
            score=scores.total,
            scores=scores.as_dict(),
        )

    def _process_new_incident(
        self,
        fields: Mapping[str, Any],
        scores: FieldScores,
        prefix: str,
        record: IncidentRecord,
    ) -> EnrichmentResult:
        fields_to_save, fields_to_update = self._partition(fields, scores)

        self.writer.save_incident(prefix, record)
        if fields_to_save:
            self.writer.save_incident_fields(prefix, record.uuid, fields_to_save)

        partner_uuid = None
        outcome = Outcome.NEW
        if fields_to_update:
            outcome = Outcome.RELATED
            self.writer.update_fields_expiration_time(prefix, fields_to_update)
            partner_uuid = self.writer.save_incident_relation(
                prefix, record.uuid, fields_to_update
            )

        logger.info(
            "[INCIDENT-ENRICHMENT] Opened incident %s (outcome=%s, score=%d, priority=%s, partner=%s)",
            record.uuid,
            outcome.value,
            scores.total,
            record.priority,
            partner_uuid,
        )
        return EnrichmentResult(
            outcome=outcome,
            incident_uuid=record.uuid,
            score=scores.total,
            partner_uuid=partner_uuid,
            scores=scores.as_dict(),
        )
