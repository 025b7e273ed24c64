"""Sounds-like mapping models.

A mapping is a rule "when the transcript says X, the speaker meant Y".
Mappings are a tagged union keyed by ``tier``; each tier only carries the
fields that make sense for it:

- Tier 1: unambiguous misspelling of a name; always safe, never scoped
- Tier 2: a real word that also sounds like an entity; gated on project and confidence
- Tier 3: a generic word; gated on confidence only, off by default
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from transcript_filer.errors import ValidationError
from transcript_filer.models.entity import EntityType

# Tier-2 bucket for mappings that are not tied to any project
GENERIC_BUCKET = "_generic"

DEFAULT_TIER2_CONFIDENCE = 0.6
DEFAULT_TIER3_CONFIDENCE = 0.9


def normalize_key(value: str) -> str:
    """Normalize a sounds-like key for storage and lookup."""
    return " ".join(value.split()).lower()


class CollisionRisk(str, Enum):
    """How likely a mapping is to fire on text that did not mean the entity."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MappingCandidate(BaseModel):
    """An unclassified mapping gathered from an entity's phonetic variants."""

    model_config = ConfigDict(frozen=True)

    sounds_like: str | None = None
    correct_text: str
    entity_type: EntityType
    entity_id: str
    projects: tuple[str, ...] = ()

    @field_validator("sounds_like")
    @classmethod
    def _normalize(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_key(value) or None


class _MappingBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    sounds_like: str = Field(min_length=1)
    correct_text: str = Field(min_length=1)
    entity_type: EntityType
    entity_id: str = Field(min_length=1)

    @field_validator("sounds_like", mode="before")
    @classmethod
    def _normalize(cls, value: object) -> object:
        if isinstance(value, str):
            return normalize_key(value)
        return value


class Tier1Mapping(_MappingBase):
    """Always-safe correction."""

    tier: Literal[1] = 1
    collision_risk: CollisionRisk = CollisionRisk.NONE

    @model_validator(mode="after")
    def _no_risk(self) -> "Tier1Mapping":
        if self.collision_risk is not CollisionRisk.NONE:
            raise ValueError("tier 1 mappings cannot carry a collision risk")
        return self


class Tier2Mapping(_MappingBase):
    """Project-scoped correction for a word that is also a common term.

    ``scoped_to_projects`` of None places the mapping in the generic
    bucket, applicable in any confidently classified project.
    """

    tier: Literal[2] = 2
    collision_risk: CollisionRisk = CollisionRisk.LOW
    scoped_to_projects: tuple[str, ...] | None = None
    min_confidence: float = Field(default=DEFAULT_TIER2_CONFIDENCE, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_scope(self) -> "Tier2Mapping":
        if self.collision_risk is CollisionRisk.NONE:
            raise ValueError("tier 2 mappings must carry a collision risk")
        if self.entity_type is EntityType.PROJECT:
            if not self.scoped_to_projects or self.entity_id not in self.scoped_to_projects:
                raise ValueError(
                    f"project mapping '{self.entity_id}' must be scoped to its own project"
                )
        return self

    @property
    def is_generic(self) -> bool:
        return self.scoped_to_projects is None

    def is_scoped_to(self, project_id: str | None) -> bool:
        return bool(project_id) and project_id in (self.scoped_to_projects or ())


class Tier3Mapping(_MappingBase):
    """Correction for a generic word; too ambiguous to apply without strong context."""

    tier: Literal[3] = 3
    collision_risk: CollisionRisk = CollisionRisk.LOW
    min_confidence: float = Field(default=DEFAULT_TIER3_CONFIDENCE, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _has_risk(self) -> "Tier3Mapping":
        if self.collision_risk is CollisionRisk.NONE:
            raise ValueError("tier 3 mappings must carry a collision risk")
        return self


Mapping = Annotated[
    Union[Tier1Mapping, Tier2Mapping, Tier3Mapping],
    Field(discriminator="tier"),
]

_mapping_adapter: TypeAdapter[Mapping] = TypeAdapter(Mapping)


def parse_mapping(data: dict) -> Tier1Mapping | Tier2Mapping | Tier3Mapping:
    """Build the right tier variant from a plain dict (e.g. a saved audit file).

    Raises:
        ValidationError: If the dict is not a valid mapping of its tier
    """
    try:
        return _mapping_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid sounds-like mapping",
            context={"sounds_like": data.get("sounds_like"), "tier": data.get("tier")},
        ) from e


class Collision(BaseModel):
    """A sounds-like key claimed by two or more mappings."""

    model_config = ConfigDict(frozen=True)

    sounds_like: str
    mappings: tuple[Mapping, ...]

    @property
    def count(self) -> int:
        return len(self.mappings)

    @property
    def entity_ids(self) -> list[str]:
        return sorted({m.entity_id for m in self.mappings})
