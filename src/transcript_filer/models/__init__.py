"""Data models for transcript-filer.

This module provides Pydantic models for entities, sounds-like mappings, and routing.
"""

from __future__ import annotations

from transcript_filer.models.entity import Entity, EntityType
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
    parse_mapping,
)
from transcript_filer.models.routing import (
    ClassificationResult,
    ClassificationSignal,
    ConflictResolution,
    ContextType,
    FilenameOption,
    FilesystemStructure,
    ProjectClassification,
    ProjectRoute,
    RouteDestination,
    RoutingConfig,
    RoutingContext,
    RoutingDecision,
    SignalType,
)

__all__ = [
    # Entity models
    "Entity",
    "EntityType",
    # Mapping models
    "GENERIC_BUCKET",
    "Collision",
    "CollisionRisk",
    "Mapping",
    "MappingCandidate",
    "Tier1Mapping",
    "Tier2Mapping",
    "Tier3Mapping",
    "normalize_key",
    "parse_mapping",
    # Routing models
    "ClassificationResult",
    "ClassificationSignal",
    "ConflictResolution",
    "ContextType",
    "FilenameOption",
    "FilesystemStructure",
    "ProjectClassification",
    "ProjectRoute",
    "RouteDestination",
    "RoutingConfig",
    "RoutingContext",
    "RoutingDecision",
    "SignalType",
]
