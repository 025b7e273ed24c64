"""Knowledge entity model.

An Entity is something the user talks about often enough that the
transcription engine should spell it correctly: a project, a person,
a term of art, or a company.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityType(str, Enum):
    """Kinds of entities in the knowledge store."""

    PROJECT = "project"
    PERSON = "person"
    TERM = "term"
    COMPANY = "company"


class Entity(BaseModel):
    """A known entity with its phonetic variants and trigger phrases.

    ``name`` is always the preferred spelling. ``sounds_like`` holds what
    speech-to-text tends to produce instead (e.g. "protocol" for "Protokoll").
    ``trigger_phrases`` are phrases that signal the entity is being
    discussed, used when routing. ``projects`` relates non-project
    entities to the projects they belong to.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: EntityType
    sounds_like: tuple[str, ...] = ()
    trigger_phrases: tuple[str, ...] = ()
    projects: tuple[str, ...] = ()
    active: bool = True

    @field_validator("sounds_like", "trigger_phrases", "projects", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        # YAML writes "sounds_like:" with no items as null
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("sounds_like", "trigger_phrases")
    @classmethod
    def _drop_blank(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(v.strip() for v in value if v and v.strip())

    def match_phrases(self) -> list[str]:
        """All lowercase phrases that indicate this entity was mentioned."""
        phrases = [self.name, *self.sounds_like, *self.trigger_phrases]
        seen: dict[str, None] = {}
        for phrase in phrases:
            seen.setdefault(phrase.lower(), None)
        return list(seen)
