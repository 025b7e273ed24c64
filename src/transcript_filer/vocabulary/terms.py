"""Term registries for tier classification.

A sounds-like variant that is also an ordinary word cannot be replaced
blindly. Two registries hold those words:

- common terms: real words that also sound like a specific entity
  ("protocol" vs. a project called "Protokoll") -> tier 2
- generic terms: words too ordinary to ever mean one entity
  ("meeting", "update") -> tier 3
"""

from __future__ import annotations

from typing import Any, Iterable

from transcript_filer.errors import ConfigurationError
from transcript_filer.models.mapping import normalize_key

DEFAULT_COMMON_TERMS: tuple[str, ...] = (
    "protocol",
    "observation",
    "composition",
    "gateway",
    "service",
    "system",
    "platform",
)

DEFAULT_GENERIC_TERMS: tuple[str, ...] = (
    "meeting",
    "update",
    "work",
    "project",
    "task",
    "issue",
    "discussion",
    "review",
    "the",
    "a",
    "an",
)


class TermRegistry:
    """A case-insensitive set of terms.

    Example:
        registry = TermRegistry(["Protocol", "gateway"], name="common")
        "PROTOCOL" in registry  # True
    """

    def __init__(self, terms: Iterable[Any] = (), name: str = "terms"):
        """Initialize the registry.

        Args:
            terms: Initial terms
            name: Registry name used in error messages

        Raises:
            ConfigurationError: If any term is not a non-empty string
        """
        self.name = name
        self._terms: dict[str, None] = {}
        for term in terms:
            self.add_term(term)

    def add_term(self, term: Any) -> None:
        """Add a term.

        Raises:
            ConfigurationError: If the term is not a non-empty string
        """
        if not isinstance(term, str) or not term.strip():
            raise ConfigurationError(
                f"Malformed entry in {self.name} registry",
                context={"registry": self.name, "entry": repr(term)},
            )
        self._terms[normalize_key(term)] = None

    def remove_term(self, term: str) -> bool:
        """Remove a term; returns True if it was present."""
        key = normalize_key(term)
        if key not in self._terms:
            return False
        del self._terms[key]
        return True

    def get_all_terms(self) -> list[str]:
        return list(self._terms)

    def __contains__(self, term: object) -> bool:
        if not isinstance(term, str):
            return False
        return normalize_key(term) in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self):
        return iter(self._terms)


class TierRegistries:
    """The common-terms and generic-terms registries, checked for overlap."""

    def __init__(
        self,
        common_terms: Iterable[Any] | None = None,
        generic_terms: Iterable[Any] | None = None,
    ):
        """Build both registries.

        Args:
            common_terms: Tier-2 words; None uses DEFAULT_COMMON_TERMS
            generic_terms: Tier-3 words; None uses DEFAULT_GENERIC_TERMS

        Raises:
            ConfigurationError: If an entry is malformed or a word is in both registries
        """
        if isinstance(common_terms, str) or isinstance(generic_terms, str):
            raise ConfigurationError("Term registries must be lists of words, not a string")

        self.common = TermRegistry(
            DEFAULT_COMMON_TERMS if common_terms is None else common_terms, name="common"
        )
        self.generic = TermRegistry(
            DEFAULT_GENERIC_TERMS if generic_terms is None else generic_terms, name="generic"
        )

        overlap = sorted(t for t in self.common if t in self.generic)
        if overlap:
            raise ConfigurationError(
                "Terms cannot be both common and generic",
                context={"terms": overlap},
            )

    def is_common(self, term: str) -> bool:
        return term in self.common

    def is_generic(self, term: str) -> bool:
        return term in self.generic
