"""Sounds-like mapping database.

Aggregates sounds-like mappings from every entity in the knowledge store,
classifies each into a risk tier, and records collisions (keys claimed
by more than one mapping).

Example:
    database = MappingDatabase(DatabaseSettings(context_paths=["~/notes/context"]))
    database.load()
    safe = database.get_tier1_mappings()
    scoped = database.get_tier2_mappings_for_project("protokoll")
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from transcript_filer.config import DatabaseSettings
from transcript_filer.errors import configuration_error_from
from transcript_filer.knowledge.store import KnowledgeStore, YamlKnowledgeStore
from transcript_filer.logging import get_logger
from transcript_filer.models.entity import EntityType
from transcript_filer.models.mapping import (
    GENERIC_BUCKET,
    Collision,
    CollisionRisk,
    Mapping,
    MappingCandidate,
    Tier1Mapping,
    Tier2Mapping,
    Tier3Mapping,
    normalize_key,
)
from transcript_filer.vocabulary.terms import TierRegistries

logger = get_logger(__name__)


@dataclass
class MappingSnapshot:
    """Everything built by one load, organized for lookup."""

    mappings: list[Mapping] = field(default_factory=list)
    tier1: list[Tier1Mapping] = field(default_factory=list)
    # Keyed by project id, plus GENERIC_BUCKET
    tier2: dict[str, list[Tier2Mapping]] = field(default_factory=dict)
    tier3: list[Tier3Mapping] = field(default_factory=list)
    collisions: dict[str, Collision] = field(default_factory=dict)

    @property
    def tier2_count(self) -> int:
        return len({id(m) for bucket in self.tier2.values() for m in bucket})

    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.mappings),
            "tier1": len(self.tier1),
            "tier2": self.tier2_count,
            "tier3": len(self.tier3),
            "collisions": len(self.collisions),
        }


def collision_risk_for(competitors: int) -> CollisionRisk:
    """Risk of an ambiguous mapping given how many other mappings share its key."""
    if competitors <= 1:
        return CollisionRisk.LOW
    if competitors == 2:
        return CollisionRisk.MEDIUM
    return CollisionRisk.HIGH


class MappingDatabase:
    """Tiered database of sounds-like mappings.

    The knowledge store is read exactly once per instance, however many
    times (or from however many threads) ``load()`` and the queries are
    called.
    """

    def __init__(
        self,
        settings: DatabaseSettings | dict[str, Any] | None = None,
        store: KnowledgeStore | None = None,
    ):
        """Initialize the database.

        Args:
            settings: Database settings (or a dict of them)
            store: Entity source; defaults to the YAML knowledge store

        Raises:
            ConfigurationError: If settings or term registries are malformed
        """
        if isinstance(settings, dict):
            try:
                settings = DatabaseSettings.model_validate(settings)
            except PydanticValidationError as e:
                raise configuration_error_from(e, "database settings") from e

        self.settings = settings or DatabaseSettings()
        self.registries = TierRegistries(self.settings.common_terms, self.settings.generic_terms)
        self._store = store or YamlKnowledgeStore()

        self._lock = threading.Lock()
        self._snapshot: MappingSnapshot | None = None
        # key -> number of mappings sharing it, for keys with more than one
        self._shared_keys: dict[str, int] = {}
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def load(self) -> MappingSnapshot:
        """Load and classify all mappings, once.

        Returns:
            The cached snapshot on every call after the first
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._build()
            return self._snapshot

    def _gather_candidates(self) -> list[MappingCandidate]:
        paths = self.settings.resolved_context_paths()
        entities = self._store.load_entities(paths)
        self.load_count += 1

        candidates: list[MappingCandidate] = []
        seen: set[tuple[str, str, str]] = set()

        for entity in entities:
            if not entity.active:
                logger.debug(f"Skipping inactive {entity.type.value}: {entity.id}")
                continue

            for variant in entity.sounds_like:
                candidate = MappingCandidate(
                    sounds_like=variant,
                    correct_text=entity.name,
                    entity_type=entity.type,
                    entity_id=entity.id,
                    projects=entity.projects,
                )
                if candidate.sounds_like is None:
                    continue
                # Same variant listed twice for one entity is not a collision
                identity = (candidate.sounds_like, entity.type.value, entity.id)
                if identity in seen:
                    continue
                seen.add(identity)
                candidates.append(candidate)

        logger.info(
            f"Gathered {len(candidates)} sounds_like candidates from {len(entities)} entities",
            extra={"context_paths": [str(p) for p in paths]},
        )
        return candidates

    def _build(self) -> MappingSnapshot:
        logger.info("Loading sounds_like database")
        candidates = self._gather_candidates()

        key_counts: dict[str, int] = {}
        for candidate in candidates:
            key_counts[candidate.sounds_like] = key_counts.get(candidate.sounds_like, 0) + 1

        if self.settings.detect_collisions:
            self._shared_keys = {k: n for k, n in key_counts.items() if n > 1}
        else:
            self._shared_keys = {}

        snapshot = MappingSnapshot()
        for candidate in candidates:
            mapping = self.build_mapping(candidate)
            snapshot.mappings.append(mapping)

            if isinstance(mapping, Tier1Mapping):
                snapshot.tier1.append(mapping)
            elif isinstance(mapping, Tier2Mapping):
                buckets = mapping.scoped_to_projects or (GENERIC_BUCKET,)
                for bucket in buckets:
                    snapshot.tier2.setdefault(bucket, []).append(mapping)
            else:
                snapshot.tier3.append(mapping)

        for key in self._shared_keys:
            shared = tuple(m for m in snapshot.mappings if m.sounds_like == key)
            snapshot.collisions[key] = Collision(sounds_like=key, mappings=shared)
            logger.debug(f'Collision detected for "{key}": {len(shared)} mappings')

        summary = snapshot.summary()
        logger.info(
            f"Sounds_like database loaded: {summary['total']} mappings "
            f"(Tier 1={summary['tier1']}, Tier 2={summary['tier2']}, Tier 3={summary['tier3']}, "
            f"collisions={summary['collisions']})",
            extra=summary,
        )
        return snapshot

    def classify_tier(self, mapping: Any) -> int:
        """Classify a (possibly partial) mapping into tier 1, 2 or 3.

        Accepts a mapping, a candidate, a dict, or a bare sounds-like string.
        Collision-based promotion reflects the last load.
        """
        if isinstance(mapping, str):
            sounds_like = mapping
        elif isinstance(mapping, dict):
            sounds_like = mapping.get("sounds_like")
        else:
            sounds_like = getattr(mapping, "sounds_like", None)

        if not sounds_like:
            return 3

        key = normalize_key(sounds_like)
        if not key or self.registries.is_generic(key):
            return 3
        if self.registries.is_common(key):
            return 2
        if key in self._shared_keys:
            return 2
        return 1

    def collision_risk(self, sounds_like: str, tier: int) -> CollisionRisk:
        if tier == 1:
            return CollisionRisk.NONE
        competitors = self._shared_keys.get(normalize_key(sounds_like), 1) - 1
        return collision_risk_for(competitors)

    def build_mapping(self, candidate: MappingCandidate) -> Mapping:
        """Turn a candidate into the tier variant it classifies as."""
        tier = self.classify_tier(candidate)
        common = {
            "sounds_like": candidate.sounds_like,
            "correct_text": candidate.correct_text,
            "entity_type": candidate.entity_type,
            "entity_id": candidate.entity_id,
        }

        if tier == 1:
            mapping: Mapping = Tier1Mapping(**common)
        elif tier == 2:
            if candidate.entity_type is EntityType.PROJECT:
                scope: tuple[str, ...] | None = (candidate.entity_id,)
            elif candidate.projects:
                scope = tuple(candidate.projects)
            else:
                scope = None
            mapping = Tier2Mapping(
                **common,
                collision_risk=self.collision_risk(candidate.sounds_like, tier),
                scoped_to_projects=scope,
                min_confidence=self.settings.tier2_confidence,
            )
        else:
            mapping = Tier3Mapping(
                **common,
                collision_risk=self.collision_risk(candidate.sounds_like, tier),
                min_confidence=self.settings.tier3_confidence,
            )

        logger.debug(
            f'Classified "{mapping.sounds_like}" -> "{mapping.correct_text}" '
            f"({mapping.entity_type.value}:{mapping.entity_id}) as Tier {mapping.tier} "
            f"(risk: {mapping.collision_risk.value})"
        )
        return mapping

    @property
    def mappings(self) -> list[Mapping]:
        return list(self.load().mappings)

    def get_tier1_mappings(self) -> list[Tier1Mapping]:
        """Get tier 1 (always safe) mappings, in load order."""
        return list(self.load().tier1)

    def get_tier2_mappings_for_project(self, project_id: str | None) -> list[Tier2Mapping]:
        """Get tier 2 mappings scoped to a project, followed by the generic bucket.

        Unknown projects get only the generic bucket.
        """
        tier2 = self.load().tier2
        generic = tier2.get(GENERIC_BUCKET, [])
        if not project_id or project_id == GENERIC_BUCKET:
            return list(generic)
        return [*tier2.get(project_id, []), *generic]

    def get_tier3_mappings(self) -> list[Tier3Mapping]:
        return list(self.load().tier3)

    def lookup(self, sounds_like: str) -> list[Mapping]:
        """All mappings for a key, any tier."""
        key = normalize_key(sounds_like)
        return [m for m in self.load().mappings if m.sounds_like == key]

    def has_collision(self, sounds_like: str) -> bool:
        return normalize_key(sounds_like) in self.load().collisions

    def get_collision(self, sounds_like: str) -> Collision | None:
        return self.load().collisions.get(normalize_key(sounds_like))

    def get_all_collisions(self) -> list[Collision]:
        return list(self.load().collisions.values())
