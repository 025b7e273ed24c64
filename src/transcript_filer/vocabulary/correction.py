"""Transcript correction using tiered sounds-like mappings.

Runs the correction pass over a transcript once routing has decided which
project it belongs to:

1. Tier 1 mappings, always
2. Tier 2 mappings for the routed project, gated by the collision arbiter
3. Tier 3 mappings, only when enabled and gated the same way

Without a project the pass degrades to tier 1 only.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from transcript_filer.config import CorrectionSettings
from transcript_filer.logging import get_logger
from transcript_filer.models.mapping import Mapping
from transcript_filer.vocabulary.arbiter import ArbitrationContext, CollisionArbiter
from transcript_filer.vocabulary.database import MappingDatabase
from transcript_filer.vocabulary.replacer import ReplacementResult, TextReplacer

logger = get_logger(__name__)


@dataclass
class AppliedMapping:
    """Summary of one mapping that fired."""

    sounds_like: str
    correct_text: str
    tier: int
    occurrences: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sounds_like": self.sounds_like,
            "correct_text": self.correct_text,
            "tier": self.tier,
            "occurrences": self.occurrences,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppliedMapping":
        return cls(
            sounds_like=data["sounds_like"],
            correct_text=data["correct_text"],
            tier=data["tier"],
            occurrences=data["occurrences"],
        )


@dataclass
class CorrectionStats:
    """Audit payload for one correction pass.

    Nothing is written unless the caller calls ``save``.
    """

    tier1_replacements: int = 0
    tier2_replacements: int = 0
    tier3_replacements: int = 0
    total_replacements: int = 0
    tier1_mappings_considered: int = 0
    tier2_mappings_considered: int = 0
    project_context: str | None = None
    classification_confidence: float | None = None
    processing_time_ms: float = 0.0
    applied_mappings: list[AppliedMapping] = field(default_factory=list)

    def record(self, tier: int, result: ReplacementResult) -> None:
        """Fold one tier's replacement result into the totals."""
        if tier == 1:
            self.tier1_replacements += result.count
        elif tier == 2:
            self.tier2_replacements += result.count
        else:
            self.tier3_replacements += result.count
        self.total_replacements += result.count

        for mapping in result.applied_mappings:
            self.applied_mappings.append(
                AppliedMapping(
                    sounds_like=mapping.sounds_like,
                    correct_text=mapping.correct_text,
                    tier=tier,
                    occurrences=result.occurrences_for(mapping),
                )
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tier1_replacements": self.tier1_replacements,
            "tier2_replacements": self.tier2_replacements,
            "tier3_replacements": self.tier3_replacements,
            "total_replacements": self.total_replacements,
            "tier1_mappings_considered": self.tier1_mappings_considered,
            "tier2_mappings_considered": self.tier2_mappings_considered,
            "project_context": self.project_context,
            "classification_confidence": self.classification_confidence,
            "processing_time_ms": self.processing_time_ms,
            "applied_mappings": [m.to_dict() for m in self.applied_mappings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrectionStats":
        """Create from dictionary."""
        return cls(
            tier1_replacements=data.get("tier1_replacements", 0),
            tier2_replacements=data.get("tier2_replacements", 0),
            tier3_replacements=data.get("tier3_replacements", 0),
            total_replacements=data.get("total_replacements", 0),
            tier1_mappings_considered=data.get("tier1_mappings_considered", 0),
            tier2_mappings_considered=data.get("tier2_mappings_considered", 0),
            project_context=data.get("project_context"),
            classification_confidence=data.get("classification_confidence"),
            processing_time_ms=data.get("processing_time_ms", 0.0),
            applied_mappings=[
                AppliedMapping.from_dict(m) for m in data.get("applied_mappings", [])
            ],
        )

    def save(self, path: Path | str) -> None:
        """Save stats to a JSON file.

        Args:
            path: Path to save to
        """
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Path | str) -> "CorrectionStats":
        """Load stats saved by ``save``."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class CorrectionOutcome:
    """Corrected text with the replacement audit trail."""

    text: str
    result: ReplacementResult
    stats: CorrectionStats

    @property
    def replacements_made(self) -> bool:
        return self.stats.total_replacements > 0


class TranscriptCorrector:
    """Applies database mappings to transcripts under arbiter control.

    The database is loaded on first use and reused for every later call.
    """

    def __init__(
        self,
        database: MappingDatabase,
        settings: CorrectionSettings | None = None,
        arbiter: CollisionArbiter | None = None,
        replacer: TextReplacer | None = None,
    ):
        """Initialize corrector.

        Args:
            database: Mapping database (loaded lazily)
            settings: Correction settings
            arbiter: Gate for tier 2/3 mappings
            replacer: Text replacer; built from settings when omitted
        """
        self.database = database
        self.settings = settings or CorrectionSettings()
        self.arbiter = arbiter or CollisionArbiter(
            use_capitalization_hints=self.settings.use_capitalization_hints
        )
        self.replacer = replacer or TextReplacer(
            preserve_case=self.settings.preserve_case,
            use_word_boundaries=self.settings.use_word_boundaries,
        )

    def select_gated(
        self,
        mappings: Sequence[Mapping],
        context: ArbitrationContext,
        text: str,
    ) -> list[Mapping]:
        """Filter ambiguous mappings through the arbiter, one winner per key.

        Keys keep the order of their first appearance in ``mappings``.
        """
        by_key: dict[str, list[Mapping]] = {}
        for mapping in mappings:
            hinted = context.with_hint(
                self.arbiter.detect_capitalization_hint(mapping.sounds_like, text)
            )
            if self.arbiter.is_applicable(mapping, hinted):
                by_key.setdefault(mapping.sounds_like, []).append(mapping)

        selected: list[Mapping] = []
        for candidates in by_key.values():
            winner = self.arbiter.resolve_collision(candidates, context)
            if winner is not None:
                selected.append(winner)
        return selected

    def correct(self, text: str, context: ArbitrationContext | None = None) -> CorrectionOutcome:
        """Correct a transcript.

        Args:
            text: Transcript text
            context: Project and confidence from routing; None means tier 1 only

        Returns:
            CorrectionOutcome with corrected text, replacement details and stats
        """
        started = time.perf_counter()
        context = context or ArbitrationContext()
        self.database.load()

        stats = CorrectionStats(
            project_context=context.project,
            classification_confidence=context.confidence if context.project else None,
        )
        combined = ReplacementResult(text=text)

        tier1 = self.database.get_tier1_mappings()
        stats.tier1_mappings_considered = len(tier1)
        self._apply(combined, stats, 1, tier1)

        if context.project:
            tier2 = self.database.get_tier2_mappings_for_project(context.project)
            stats.tier2_mappings_considered = len(tier2)
            applicable = self.select_gated(tier2, context, combined.text)
            logger.debug(
                f"{len(applicable)} of {len(tier2)} Tier 2 mappings passed "
                f"confidence and project checks",
                extra={"project": context.project},
            )
            self._apply(combined, stats, 2, applicable)

            if self.settings.apply_tier3:
                tier3 = self.select_gated(self.database.get_tier3_mappings(), context, combined.text)
                self._apply(combined, stats, 3, tier3)
        else:
            logger.debug("No project in context, skipping Tier 2 replacements")

        stats.processing_time_ms = round((time.perf_counter() - started) * 1000, 3)

        logger.info(
            f"Correction complete: {stats.total_replacements} replacements "
            f"(Tier 1: {stats.tier1_replacements}, Tier 2: {stats.tier2_replacements}, "
            f"Tier 3: {stats.tier3_replacements}) in {stats.processing_time_ms}ms",
            extra={"project": context.project},
        )
        return CorrectionOutcome(text=combined.text, result=combined, stats=stats)

    def _apply(
        self,
        combined: ReplacementResult,
        stats: CorrectionStats,
        tier: int,
        mappings: Sequence[Mapping],
    ) -> None:
        if not mappings:
            return
        result = self.replacer.apply_replacements(combined.text, mappings)
        stats.record(tier, result)
        combined.text = result.text
        combined.count += result.count
        combined.applied_mappings.extend(result.applied_mappings)
        combined.occurrences.extend(result.occurrences)
