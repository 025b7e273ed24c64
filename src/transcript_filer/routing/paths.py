"""Output path building for routed transcripts.

Directories follow the destination's date structure; filenames carry only
the date parts the directories do not already encode.
"""

from __future__ import annotations

import os
import re
from datetime import datetime
from pathlib import Path, PurePath
from typing import Sequence

from transcript_filer.models.routing import (
    FilenameOption,
    FilesystemStructure,
    RouteDestination,
    RoutingContext,
)

DOCUMENT_EXTENSION = ".md"
FALLBACK_FILENAME = "transcript"

_SUBJECT_PREFIXES = re.compile(
    r"^(this is a note about|note about|regarding|re:|meeting notes?:?)",
    re.IGNORECASE,
)


def slugify(text: str, max_length: int = 40) -> str:
    """Lowercase ASCII slug with single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug[:max_length].rstrip("-")


def source_stem(source_file: str) -> str:
    if not source_file:
        return ""
    return slugify(PurePath(source_file).stem)


def extract_subject(text: str, source_file: str) -> str:
    """Slug of the transcript's first sentence, else of the source filename."""
    first_sentence = re.split(r"[.!?]", text, maxsplit=1)[0].strip()
    cleaned = _SUBJECT_PREFIXES.sub("", first_sentence).strip()

    if 3 < len(cleaned) < 50:
        subject = slugify(cleaned)
        if subject:
            return subject

    return source_stem(source_file)


def expand_path(path: str) -> str:
    return os.path.expanduser(path)


def build_directory_path(base_path: str, structure: FilesystemStructure, date: datetime) -> Path:
    """Append year / month / day directories (unpadded) per ``structure``."""
    base = Path(base_path)
    year, month, day = str(date.year), str(date.month), str(date.day)

    if structure is FilesystemStructure.YEAR:
        return base / year
    if structure is FilesystemStructure.MONTH:
        return base / year / month
    if structure is FilesystemStructure.DAY:
        return base / year / month / day
    return base


def _date_part(date: datetime, structure: FilesystemStructure) -> str:
    # Only what the directory structure has not already said
    if structure is FilesystemStructure.DAY:
        return ""
    if structure is FilesystemStructure.MONTH:
        return f"{date.day:02d}"
    if structure is FilesystemStructure.YEAR:
        return f"{date.month:02d}-{date.day:02d}"
    return f"{date:%y%m%d}"


def build_filename(
    options: Sequence[FilenameOption],
    context: RoutingContext,
    structure: FilesystemStructure,
) -> str:
    """Assemble the filename (without extension) from the selected options."""
    date = context.audio_date
    parts: list[str] = []

    for option in options:
        if option is FilenameOption.DATE:
            parts.append(_date_part(date, structure))
        elif option is FilenameOption.TIME:
            parts.append(f"{date.hour:02d}{date.minute:02d}")
        elif option is FilenameOption.SUBJECT:
            parts.append(extract_subject(context.transcript_text, context.source_file))

    filename = re.sub(r"-{2,}", "-", "-".join(p for p in parts if p)).strip("-")
    return filename or source_stem(context.source_file) or FALLBACK_FILENAME


def build_output_path(destination: RouteDestination, context: RoutingContext) -> str:
    """Full output path for a transcript filed under ``destination``."""
    directory = build_directory_path(
        expand_path(destination.path), destination.structure, context.audio_date
    )
    filename = build_filename(destination.filename_options, context, destination.structure)
    return str(directory / f"{filename}{DOCUMENT_EXTENSION}")
