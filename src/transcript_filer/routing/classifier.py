"""Multi-signal project classifier.

Scores each configured project against a transcript. A project matches
when one of its explicit phrases, or a phrase belonging to an associated
entity (name, sounds-like variant, trigger phrase), appears in the text.
Topics and inferred context type only add confidence to a project that
already matches.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from transcript_filer.knowledge.store import build_entity_index
from transcript_filer.logging import get_logger
from transcript_filer.models.entity import Entity, EntityType
from transcript_filer.models.routing import (
    ClassificationResult,
    ClassificationSignal,
    ContextType,
    ProjectRoute,
    RoutingContext,
    SignalType,
)

logger = get_logger(__name__)

SIGNAL_WEIGHTS: dict[SignalType, float] = {
    SignalType.EXPLICIT_PHRASE: 0.9,
    SignalType.ASSOCIATED_PERSON: 0.6,
    SignalType.ASSOCIATED_COMPANY: 0.5,
    SignalType.ASSOCIATED_TERM: 0.5,
    SignalType.TOPIC: 0.3,
    SignalType.CONTEXT_TYPE: 0.2,
}

# Signals that on their own make a project a match
MATCHING_SIGNALS = frozenset(
    {
        SignalType.EXPLICIT_PHRASE,
        SignalType.ASSOCIATED_PERSON,
        SignalType.ASSOCIATED_COMPANY,
        SignalType.ASSOCIATED_TERM,
    }
)

MAX_CONFIDENCE = 0.99

_ASSOCIATION_SIGNALS = {
    EntityType.PERSON: SignalType.ASSOCIATED_PERSON,
    EntityType.COMPANY: SignalType.ASSOCIATED_COMPANY,
    EntityType.TERM: SignalType.ASSOCIATED_TERM,
}

WORK_INDICATORS = ("meeting", "project", "deadline", "team", "client", "report")
PERSONAL_INDICATORS = ("family", "weekend", "vacation", "hobby", "friend")


def infer_context_type(text: str) -> ContextType:
    """Guess whether lowercase ``text`` is about work or personal life."""
    work = sum(1 for word in WORK_INDICATORS if word in text)
    personal = sum(1 for word in PERSONAL_INDICATORS if word in text)

    if work > personal + 1:
        return ContextType.WORK
    if personal > work + 1:
        return ContextType.PERSONAL
    return ContextType.MIXED


def calculate_confidence(signals: Sequence[ClassificationSignal]) -> float:
    """Weighted average with diminishing returns for later signals, capped at 0.99."""
    if not signals:
        return 0.0

    weighted_sum = 0.0
    total_factor = 0.0
    for i, signal in enumerate(signals):
        position_factor = 1 / (1 + i * 0.3)
        weighted_sum += signal.weight * position_factor
        total_factor += position_factor

    return min(weighted_sum / max(total_factor, 1.0), MAX_CONFIDENCE)


def build_reasoning(signals: Sequence[ClassificationSignal]) -> str:
    parts = []
    for s in signals:
        if s.type is SignalType.EXPLICIT_PHRASE:
            parts.append(f'explicit phrase: "{s.value}"')
        elif s.type is SignalType.TOPIC:
            parts.append(f"topic: {s.value}")
        elif s.type is SignalType.CONTEXT_TYPE:
            parts.append(f"context: {s.value}")
        else:
            parts.append(f"mentioned {s.value} ({s.type.value.replace('_', ' ')})")
    return ", ".join(parts)


class ProjectClassifier:
    """Scores projects against transcript text."""

    def __init__(self, entities: Iterable[Entity] = ()):
        """Initialize classifier.

        Args:
            entities: Knowledge store entities whose phrases projects inherit
        """
        self._index = build_entity_index(e for e in entities if e.active)

    def _related_entities(self, route: ProjectRoute) -> list[Entity]:
        """Entities associated with a project, explicitly or by their own ``projects``."""
        classification = route.classification
        related: dict[tuple[EntityType, str], Entity] = {}

        explicit = (
            (EntityType.PERSON, classification.associated_people),
            (EntityType.COMPANY, classification.associated_companies),
            (EntityType.TERM, classification.associated_terms),
        )
        for entity_type, ids in explicit:
            for entity_id in ids:
                entity = self._index[entity_type].get(entity_id)
                if entity is not None:
                    related.setdefault((entity_type, entity_id), entity)

        for entity_type in _ASSOCIATION_SIGNALS:
            for entity in self._index[entity_type].values():
                if route.project_id in entity.projects:
                    related.setdefault((entity_type, entity.id), entity)

        return list(related.values())

    def score(self, route: ProjectRoute, text: str) -> ClassificationResult | None:
        """Score one project against lowercase ``text``; None when it does not match."""
        classification = route.classification
        signals: list[ClassificationSignal] = []

        for phrase in classification.explicit_phrases:
            if phrase.strip() and phrase.lower() in text:
                signals.append(
                    ClassificationSignal(
                        type=SignalType.EXPLICIT_PHRASE,
                        value=phrase,
                        weight=SIGNAL_WEIGHTS[SignalType.EXPLICIT_PHRASE],
                    )
                )

        for entity in self._related_entities(route):
            if any(phrase and phrase in text for phrase in entity.match_phrases()):
                signal_type = _ASSOCIATION_SIGNALS[entity.type]
                signals.append(
                    ClassificationSignal(
                        type=signal_type,
                        value=entity.name,
                        weight=SIGNAL_WEIGHTS[signal_type],
                    )
                )

        if not any(s.type in MATCHING_SIGNALS for s in signals):
            return None

        for topic in classification.topics:
            if topic.strip() and topic.lower() in text:
                signals.append(
                    ClassificationSignal(
                        type=SignalType.TOPIC,
                        value=topic,
                        weight=SIGNAL_WEIGHTS[SignalType.TOPIC],
                    )
                )

        if infer_context_type(text) is classification.context_type:
            signals.append(
                ClassificationSignal(
                    type=SignalType.CONTEXT_TYPE,
                    value=classification.context_type.value,
                    weight=SIGNAL_WEIGHTS[SignalType.CONTEXT_TYPE],
                )
            )

        return ClassificationResult(
            project_id=route.project_id,
            confidence=calculate_confidence(signals),
            signals=signals,
            reasoning=build_reasoning(signals),
        )

    def classify_routes(
        self,
        context: RoutingContext,
        routes: Sequence[ProjectRoute],
    ) -> list[tuple[ProjectRoute, ClassificationResult]]:
        """Matching active routes with their scores, in configuration order."""
        text = context.transcript_text.lower()
        matches = []
        for route in routes:
            if not route.active:
                continue
            result = self.score(route, text)
            if result is not None:
                matches.append((route, result))

        logger.debug(
            f"Classified transcript against {len(routes)} projects: {len(matches)} matched",
            extra={"matched": [r.project_id for _, r in matches]},
        )
        return matches

    def classify(
        self,
        context: RoutingContext,
        routes: Sequence[ProjectRoute],
    ) -> list[ClassificationResult]:
        """Classification results for matching projects, in configuration order."""
        return [result for _, result in self.classify_routes(context, routes)]
