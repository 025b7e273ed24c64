"""Vocabulary module for transcript correction.

Provides the tiered sounds-like mapping database, the collision arbiter
that gates ambiguous mappings, and the word-boundary text replacer.
"""

from transcript_filer.vocabulary.arbiter import (
    ArbitrationContext,
    CapitalizationHint,
    CollisionArbiter,
    ReplacementDecision,
)
from transcript_filer.vocabulary.correction import (
    CorrectionOutcome,
    CorrectionStats,
    TranscriptCorrector,
)
from transcript_filer.vocabulary.database import MappingDatabase, MappingSnapshot
from transcript_filer.vocabulary.replacer import (
    ReplacementOccurrence,
    ReplacementResult,
    TextReplacer,
)
from transcript_filer.vocabulary.terms import TermRegistry, TierRegistries

__all__ = [
    "ArbitrationContext",
    "CapitalizationHint",
    "CollisionArbiter",
    "CorrectionOutcome",
    "CorrectionStats",
    "MappingDatabase",
    "MappingSnapshot",
    "ReplacementDecision",
    "ReplacementOccurrence",
    "ReplacementResult",
    "TermRegistry",
    "TextReplacer",
    "TierRegistries",
    "TranscriptCorrector",
]
