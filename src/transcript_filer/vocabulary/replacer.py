"""Word-boundary text replacement with case preservation.

Casing follows an ASCII-only policy: only the letters a-z/A-Z decide the
case style of a matched token, and only those letters are ever re-cased
in the replacement. Non-ASCII letters ("Observasjon", "Ærlig") pass
through untouched.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from transcript_filer.logging import get_logger
from transcript_filer.models.mapping import Mapping

logger = get_logger(__name__)

_TO_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)
_TO_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class CaseStyle(str, Enum):
    UPPER = "upper"
    LOWER = "lower"
    TITLE = "title"
    MIXED = "mixed"


def ascii_upper(text: str) -> str:
    return text.translate(_TO_UPPER)


def ascii_lower(text: str) -> str:
    return text.translate(_TO_LOWER)


def get_case_style(token: str) -> CaseStyle:
    """Case style of a token, judged on its ASCII letters only."""
    letters = [c for c in token if c in string.ascii_letters]
    if not letters:
        return CaseStyle.MIXED

    if all(c in string.ascii_uppercase for c in letters):
        # A single capital ("I") reads as title case
        return CaseStyle.UPPER if len(letters) > 1 else CaseStyle.TITLE
    if all(c in string.ascii_lowercase for c in letters):
        return CaseStyle.LOWER
    if letters[0] in string.ascii_uppercase and all(
        c in string.ascii_lowercase for c in letters[1:]
    ):
        return CaseStyle.TITLE
    return CaseStyle.MIXED


def apply_case_style(replacement: str, style: CaseStyle) -> str:
    """Re-case ``replacement`` to mirror a matched token's style."""
    if not replacement:
        return replacement
    if style is CaseStyle.UPPER:
        return ascii_upper(replacement)
    if style is CaseStyle.LOWER:
        return ascii_lower(replacement)
    if style is CaseStyle.TITLE:
        # First letter up, the rest as declared ("github" stays "GitHub"-shaped)
        return ascii_upper(replacement[0]) + replacement[1:]
    return replacement


@dataclass
class ReplacementOccurrence:
    """One replaced span. ``index`` is relative to the text the mapping was applied to."""

    mapping: Mapping
    matched_text: str
    replacement: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sounds_like": self.mapping.sounds_like,
            "matched_text": self.matched_text,
            "replacement": self.replacement,
            "index": self.index,
            "tier": self.mapping.tier,
            "entity_id": self.mapping.entity_id,
        }


@dataclass
class ReplacementResult:
    """Text after replacement plus what happened to it."""

    text: str
    count: int = 0
    applied_mappings: list[Mapping] = field(default_factory=list)
    occurrences: list[ReplacementOccurrence] = field(default_factory=list)

    def occurrences_for(self, mapping: Mapping) -> int:
        return sum(1 for o in self.occurrences if o.mapping is mapping)


class TextReplacer:
    """Applies sounds-like mappings to text.

    Example:
        replacer = TextReplacer()
        result = replacer.apply_replacements(text, database.get_tier1_mappings())
    """

    def __init__(
        self,
        preserve_case: bool = True,
        use_word_boundaries: bool = True,
        case_insensitive: bool = True,
    ):
        """Initialize the replacer.

        Args:
            preserve_case: Mirror the matched token's casing in the replacement
            use_word_boundaries: Only match standalone words ("call" not in "recall")
            case_insensitive: Match regardless of case
        """
        self.preserve_case = preserve_case
        self.use_word_boundaries = use_word_boundaries
        self.case_insensitive = case_insensitive
        self._patterns: dict[str, re.Pattern[str]] = {}

    def _pattern(self, sounds_like: str) -> re.Pattern[str]:
        pattern = self._patterns.get(sounds_like)
        if pattern is None:
            # Multi-word keys match any run of whitespace between words
            body = r"\s+".join(re.escape(part) for part in sounds_like.split())
            if self.use_word_boundaries:
                body = rf"(?<!\w){body}(?!\w)"
            flags = re.IGNORECASE if self.case_insensitive else 0
            pattern = re.compile(body, flags)
            self._patterns[sounds_like] = pattern
        return pattern

    def _replacement_for(self, matched: str, mapping: Mapping) -> str:
        if not self.preserve_case:
            return mapping.correct_text
        return apply_case_style(mapping.correct_text, get_case_style(matched))

    def apply_single_replacement(self, text: str, mapping: Mapping) -> ReplacementResult:
        """Replace every standalone occurrence of one mapping's key.

        Args:
            text: Text to scan
            mapping: Mapping to apply

        Returns:
            ReplacementResult with occurrences indexed into ``text``
        """
        occurrences: list[ReplacementOccurrence] = []
        pieces: list[str] = []
        last_end = 0

        for match in self._pattern(mapping.sounds_like).finditer(text):
            matched = match.group(0)
            replacement = self._replacement_for(matched, mapping)
            occurrences.append(
                ReplacementOccurrence(
                    mapping=mapping,
                    matched_text=matched,
                    replacement=replacement,
                    index=match.start(),
                )
            )
            pieces.append(text[last_end:match.start()])
            pieces.append(replacement)
            last_end = match.end()

        if not occurrences:
            return ReplacementResult(text=text)

        pieces.append(text[last_end:])
        count = len(occurrences)
        logger.debug(
            f'Replaced "{mapping.sounds_like}" -> "{mapping.correct_text}" '
            f"({count} occurrence{'s' if count != 1 else ''})"
        )
        return ReplacementResult(
            text="".join(pieces),
            count=count,
            applied_mappings=[mapping],
            occurrences=occurrences,
        )

    def apply_replacements(self, text: str, mappings: Sequence[Mapping]) -> ReplacementResult:
        """Apply mappings strictly in order, each to the previous one's output.

        Args:
            text: Text to correct
            mappings: Ordered mappings

        Returns:
            Aggregated ReplacementResult; ``applied_mappings`` lists only
            mappings that matched
        """
        result = ReplacementResult(text=text)

        for mapping in mappings:
            single = self.apply_single_replacement(result.text, mapping)
            if single.count:
                result.text = single.text
                result.count += single.count
                result.applied_mappings.append(mapping)
                result.occurrences.extend(single.occurrences)

        if mappings:
            logger.debug(
                f"Applied {len(mappings)} mappings, made {result.count} replacements "
                f"({len(result.applied_mappings)} mappings had matches)"
            )
        return result
