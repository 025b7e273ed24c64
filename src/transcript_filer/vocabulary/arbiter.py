"""Collision arbitration for ambiguous mappings.

Decides when a tier 2/3 mapping may be applied given what routing
concluded about the transcript, and picks one winner when several
mappings claim the same sounds-like key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from transcript_filer.logging import get_logger
from transcript_filer.models.mapping import (
    Mapping,
    Tier1Mapping,
    Tier2Mapping,
    Tier3Mapping,
    normalize_key,
)
from transcript_filer.models.routing import RoutingDecision

logger = get_logger(__name__)

# How far a proper-noun capitalization hint raises confidence
CONFIDENCE_BAND = 0.1
MAX_CONFIDENCE = 0.99

_SENTENCE_END = re.compile(r"[.!?][\"')\]]*\s*$")


class CapitalizationHint(str, Enum):
    PROPER_NOUN = "proper-noun"
    COMMON_TERM = "common-term"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ArbitrationContext:
    """What the routing step concluded about the transcript."""

    project: str | None = None
    confidence: float = 0.0
    capitalization_hint: CapitalizationHint = CapitalizationHint.UNKNOWN

    @classmethod
    def from_decision(cls, decision: RoutingDecision) -> "ArbitrationContext":
        return cls(project=decision.project_id, confidence=decision.confidence)

    def with_hint(self, hint: CapitalizationHint) -> "ArbitrationContext":
        return replace(self, capitalization_hint=hint)


@dataclass
class ReplacementDecision:
    """Outcome of arbitrating one sounds-like key."""

    should_replace: bool
    reason: str
    confidence: float
    mapping: Mapping | None = None


class CollisionArbiter:
    """Gatekeeper for ambiguous corrections."""

    def __init__(self, use_capitalization_hints: bool = True):
        """Initialize the arbiter.

        Args:
            use_capitalization_hints: Let mid-sentence capitals nudge confidence
        """
        self.use_capitalization_hints = use_capitalization_hints

    def effective_confidence(self, context: ArbitrationContext) -> float:
        """Routing confidence, nudged up one band by a proper-noun hint.

        Reported on decisions that already passed a gate; never used as the gate.
        """
        confidence = context.confidence
        if (
            self.use_capitalization_hints
            and context.capitalization_hint is CapitalizationHint.PROPER_NOUN
        ):
            confidence = min(confidence + CONFIDENCE_BAND, MAX_CONFIDENCE)
        return max(confidence, context.confidence)

    def should_apply_tier2(self, mapping: Mapping, context: ArbitrationContext) -> bool:
        """Check a tier 2 mapping against project scope and confidence.

        The transcript must be tied to a project, the mapping must be scoped
        to that project (or be in the generic bucket), and confidence must
        reach the mapping's gate. The capitalization hint plays no part here;
        it only raises the confidence reported once a mapping has passed.
        """
        if not isinstance(mapping, Tier2Mapping):
            return False

        if not context.project:
            logger.debug(
                f'Skipping Tier 2 replacement for "{mapping.sounds_like}": no project in context'
            )
            return False

        if not (mapping.is_generic or mapping.is_scoped_to(context.project)):
            logger.debug(
                f'Skipping Tier 2 replacement for "{mapping.sounds_like}": '
                f'project "{context.project}" not in scope {list(mapping.scoped_to_projects or ())}'
            )
            return False

        confidence = context.confidence
        if confidence < mapping.min_confidence:
            logger.debug(
                f'Skipping Tier 2 replacement for "{mapping.sounds_like}": '
                f"confidence {confidence:.2f} < {mapping.min_confidence:.2f}"
            )
            return False

        return True

    def should_apply_tier3(self, mapping: Mapping, context: ArbitrationContext) -> bool:
        """Tier 3 needs a project and a confidence above its (high) gate."""
        if not isinstance(mapping, Tier3Mapping) or not context.project:
            return False
        return context.confidence >= mapping.min_confidence

    def is_applicable(self, mapping: Mapping, context: ArbitrationContext) -> bool:
        if isinstance(mapping, Tier1Mapping):
            return True
        if isinstance(mapping, Tier2Mapping):
            return self.should_apply_tier2(mapping, context)
        return self.should_apply_tier3(mapping, context)

    def resolve_collision(
        self,
        candidates: Sequence[Mapping],
        context: ArbitrationContext | None = None,
    ) -> Mapping | None:
        """Pick one mapping among candidates sharing a key.

        Order: a mapping scoped to the context's project (any project when
        there is no context) beats a generic one; then the higher declared
        confidence; then entity id and correct text, lexically.
        """
        if not candidates:
            return None

        project = context.project if context else None

        def sort_key(mapping: Mapping) -> tuple:
            if isinstance(mapping, Tier2Mapping):
                scoped = mapping.is_scoped_to(project) if project else not mapping.is_generic
            else:
                scoped = False
            declared = getattr(mapping, "min_confidence", 1.0)
            return (not scoped, -declared, mapping.entity_id, mapping.correct_text)

        winner = min(candidates, key=sort_key)
        if len(candidates) > 1:
            logger.debug(
                f'Resolved collision for "{winner.sounds_like}" -> "{winner.correct_text}" '
                f"({len(candidates)} candidates)"
            )
        return winner

    def detect_capitalization_hint(self, term: str, surrounding_text: str) -> CapitalizationHint:
        """Read a proper-noun signal from how ``term`` is written in the text.

        A capital mid-sentence suggests a proper noun; lowercase suggests the
        common word; a capital at the start of a sentence says nothing.
        """
        if not self.use_capitalization_hints or not surrounding_text or not term:
            return CapitalizationHint.UNKNOWN

        body = r"\s+".join(re.escape(part) for part in normalize_key(term).split())
        match = re.search(rf"(?<!\w){body}(?!\w)", surrounding_text, re.IGNORECASE)
        if not match:
            return CapitalizationHint.UNKNOWN

        first = match.group(0)[0]
        if not first.isupper():
            return CapitalizationHint.COMMON_TERM

        before = surrounding_text[:match.start()].rstrip()
        if not before or _SENTENCE_END.search(before):
            return CapitalizationHint.UNKNOWN

        return CapitalizationHint.PROPER_NOUN

    def decide_replacement(
        self,
        sounds_like: str,
        candidates: Sequence[Mapping],
        context: ArbitrationContext,
        surrounding_text: str = "",
    ) -> ReplacementDecision:
        """Decide whether (and with which mapping) to replace one key."""
        if not candidates:
            return ReplacementDecision(False, "No mappings available", 1.0)

        if surrounding_text and context.capitalization_hint is CapitalizationHint.UNKNOWN:
            context = context.with_hint(
                self.detect_capitalization_hint(sounds_like, surrounding_text)
            )

        if len(candidates) == 1:
            mapping = candidates[0]
            if isinstance(mapping, Tier1Mapping):
                return ReplacementDecision(True, "Tier 1 mapping (always safe)", 1.0, mapping)
            if self.is_applicable(mapping, context):
                return ReplacementDecision(
                    True,
                    f"Tier {mapping.tier} mapping (project: {context.project}, "
                    f"confidence: {context.confidence})",
                    self.effective_confidence(context),
                    mapping,
                )
            return ReplacementDecision(False, f"Tier {mapping.tier} conditions not met", 0.5)

        applicable = [m for m in candidates if self.is_applicable(m, context)]
        winner = self.resolve_collision(applicable, context)
        if winner is not None:
            return ReplacementDecision(
                True,
                f"Collision resolved ({len(candidates)} candidates, {len(applicable)} applicable)",
                self.effective_confidence(context),
                winner,
            )

        if context.capitalization_hint is CapitalizationHint.COMMON_TERM:
            return ReplacementDecision(False, "Capitalization hint suggests common term", 0.7)

        return ReplacementDecision(False, "Collision could not be resolved", 0.5)
