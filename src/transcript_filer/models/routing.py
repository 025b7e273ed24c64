"""Routing configuration and decision models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class FilesystemStructure(str, Enum):
    """Date-derived subdirectory layout under a destination path."""

    NONE = "none"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"


class FilenameOption(str, Enum):
    """Components that may appear in an output filename."""

    DATE = "date"
    TIME = "time"
    SUBJECT = "subject"


class ContextType(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    MIXED = "mixed"


class ConflictResolution(str, Enum):
    """How to pick one project when several match.

    PRIMARY: first configured match wins.
    ASK / ALL: highest confidence wins; the rest are reported as alternates
    so the caller can prompt or file copies.
    """

    PRIMARY = "primary"
    ASK = "ask"
    ALL = "all"


class SignalType(str, Enum):
    EXPLICIT_PHRASE = "explicit_phrase"
    ASSOCIATED_PERSON = "associated_person"
    ASSOCIATED_COMPANY = "associated_company"
    ASSOCIATED_TERM = "associated_term"
    TOPIC = "topic"
    CONTEXT_TYPE = "context_type"


class RouteDestination(BaseModel):
    """Where and how a transcript is written."""

    path: str
    structure: FilesystemStructure = FilesystemStructure.MONTH
    filename_options: list[FilenameOption] = Field(
        default_factory=lambda: [FilenameOption.DATE, FilenameOption.TIME, FilenameOption.SUBJECT]
    )


class ProjectClassification(BaseModel):
    """Signals that tie a transcript to a project."""

    context_type: ContextType = ContextType.WORK
    explicit_phrases: list[str] = Field(default_factory=list)
    associated_people: list[str] = Field(default_factory=list)
    associated_companies: list[str] = Field(default_factory=list)
    associated_terms: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)


class ProjectRoute(BaseModel):
    """A configured routing target."""

    project_id: str = Field(min_length=1)
    classification: ProjectClassification = Field(default_factory=ProjectClassification)
    destination: RouteDestination
    auto_tags: list[str] = Field(default_factory=list)
    active: bool = True


class RoutingConfig(BaseModel):
    """Routing configuration supplied by the owning process."""

    default: RouteDestination
    projects: list[ProjectRoute] = Field(default_factory=list)
    conflict_resolution: ConflictResolution = ConflictResolution.PRIMARY


class RoutingContext(BaseModel):
    """The transcript being routed."""

    transcript_text: str
    audio_date: datetime = Field(default_factory=datetime.now)
    source_file: str = ""


class ClassificationSignal(BaseModel):
    type: SignalType
    value: str
    weight: float = Field(ge=0.0, le=1.0)


class ClassificationResult(BaseModel):
    """How well one project matched a transcript."""

    project_id: str
    confidence: float
    signals: list[ClassificationSignal] = Field(default_factory=list)
    reasoning: str = ""


class RoutingDecision(BaseModel):
    """The chosen destination for a transcript.

    ``project_id`` is None when nothing matched; ``destination`` is then
    the configured default.
    """

    project_id: str | None = None
    destination: RouteDestination
    auto_tags: list[str] = Field(default_factory=list)
    confidence: float = 1.0
    signals: list[ClassificationSignal] = Field(default_factory=list)
    reasoning: str = ""
    alternate_matches: list[ClassificationResult] = Field(default_factory=list)
