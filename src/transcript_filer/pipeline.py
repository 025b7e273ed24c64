"""Transcript processing pipeline.

Routing runs first; its project and confidence become the arbitration
context that decides which ambiguous corrections may be applied.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from transcript_filer.config import FilerSettings, load_routing_config
from transcript_filer.errors import TranscriptFilerError
from transcript_filer.knowledge.store import KnowledgeStore, StaticKnowledgeStore, YamlKnowledgeStore
from transcript_filer.logging import (
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)
from transcript_filer.models.routing import RoutingConfig, RoutingContext, RoutingDecision
from transcript_filer.routing.engine import RoutingEngine
from transcript_filer.vocabulary.arbiter import ArbitrationContext
from transcript_filer.vocabulary.correction import CorrectionOutcome, TranscriptCorrector
from transcript_filer.vocabulary.database import MappingDatabase

logger = get_logger(__name__)


@dataclass
class ProcessedTranscript:
    """Everything the calling phase needs to write the transcript out."""

    decision: RoutingDecision
    output_path: str
    correction: CorrectionOutcome

    @property
    def text(self) -> str:
        return self.correction.text

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.decision.project_id,
            "confidence": self.decision.confidence,
            "reasoning": self.decision.reasoning,
            "auto_tags": list(self.decision.auto_tags),
            "output_path": self.output_path,
            "stats": self.correction.stats.to_dict(),
        }


class TranscriptProcessor:
    """Routes, then corrects, one transcript at a time."""

    def __init__(self, routing: RoutingEngine, corrector: TranscriptCorrector):
        self.routing = routing
        self.corrector = corrector

    @classmethod
    def from_settings(
        cls,
        settings: FilerSettings,
        routing_config: RoutingConfig | dict[str, Any] | None = None,
        store: KnowledgeStore | None = None,
    ) -> "TranscriptProcessor":
        """Build a processor from settings.

        Args:
            settings: Top-level settings
            routing_config: Routing configuration; read from
                ``settings.routing_config_path`` when omitted
            store: Knowledge store; defaults to the YAML store

        Raises:
            ConfigurationError: If settings or routing configuration are invalid
            ResourceError: If a routing config path is set but unreadable
        """
        store = store or YamlKnowledgeStore()

        if routing_config is None:
            if settings.routing_config_path:
                routing_config = load_routing_config(settings.routing_config_path)
            else:
                routing_config = {"default": {"path": "~/notes"}}

        entities = store.load_entities(settings.database.resolved_context_paths())
        routing = RoutingEngine(routing_config, entities)
        # Entities are read once and shared by routing and the mapping database
        database = MappingDatabase(settings.database, store=StaticKnowledgeStore(entities))
        corrector = TranscriptCorrector(database, settings.correction)
        return cls(routing, corrector)

    def process(self, context: RoutingContext) -> ProcessedTranscript:
        """Route a transcript, correct it under that routing, and resolve its output path."""
        started = time.perf_counter()
        log_operation_start(logger, "process transcript", source_file=context.source_file)

        decision = self.routing.route(context)
        try:
            correction = self.corrector.correct(
                context.transcript_text, ArbitrationContext.from_decision(decision)
            )
        except TranscriptFilerError as e:
            log_operation_failed(
                logger, "process transcript", e, source_file=context.source_file
            )
            raise
        output_path = self.routing.build_output_path(decision, context)

        log_operation_complete(
            logger,
            "process transcript",
            duration=time.perf_counter() - started,
            project=decision.project_id,
            replacements=correction.stats.total_replacements,
        )
        return ProcessedTranscript(decision=decision, output_path=output_path, correction=correction)
