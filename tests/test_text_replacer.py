"""Tests for word-boundary text replacement."""

import pytest

from transcript_filer.models import EntityType, Tier1Mapping
from transcript_filer.vocabulary.replacer import (
    CaseStyle,
    TextReplacer,
    apply_case_style,
    get_case_style,
)


def mapping(sounds_like, correct_text, entity_id="x"):
    return Tier1Mapping(
        sounds_like=sounds_like,
        correct_text=correct_text,
        entity_type=EntityType.TERM,
        entity_id=entity_id,
    )


class TestCaseStyle:
    """Tests for case style detection and application."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("PROTOCOL", CaseStyle.UPPER),
            ("protocol", CaseStyle.LOWER),
            ("Protocol", CaseStyle.TITLE),
            ("I", CaseStyle.TITLE),
            ("iPhone", CaseStyle.MIXED),
            ("123", CaseStyle.MIXED),
        ],
    )
    def test_get_case_style(self, token, expected):
        """Test case style of common token shapes."""
        assert get_case_style(token) is expected

    def test_non_ascii_letters_ignored(self):
        """Test only ASCII letters decide the style."""
        assert get_case_style("ærlig") is CaseStyle.LOWER
        assert get_case_style("ÆRLIG") is CaseStyle.UPPER

    def test_apply_title_keeps_rest(self):
        """Test title case only raises the first letter."""
        assert apply_case_style("gitHub", CaseStyle.TITLE) == "GitHub"
        assert apply_case_style("", CaseStyle.UPPER) == ""
        assert apply_case_style("Mixed", CaseStyle.MIXED) == "Mixed"


class TestApplySingleReplacement:
    """Tests for apply_single_replacement."""

    def test_case_preserved(self):
        """Test upper, title and lower matches keep their shape."""
        replacer = TextReplacer(preserve_case=True)
        result = replacer.apply_single_replacement(
            "PROTOCOL Protocol protocol", mapping("protocol", "Protokoll")
        )

        assert result.text == "PROTOKOLL Protokoll protokoll"
        assert result.count == 3

    def test_declared_casing_without_preservation(self):
        """Test the declared replacement is used verbatim without case preservation."""
        replacer = TextReplacer(preserve_case=False)
        result = replacer.apply_single_replacement(
            "Make a call but not recall", mapping("call", "Call")
        )

        assert result.text == "Make a Call but not recall"
        assert result.count == 1

    def test_word_boundaries_off(self):
        """Test substrings are replaced when word boundaries are disabled."""
        replacer = TextReplacer(preserve_case=False, use_word_boundaries=False)
        result = replacer.apply_single_replacement(
            "Make a call but not recall", mapping("call", "Call")
        )

        assert result.text == "Make a Call but not reCall"
        assert result.count == 2

    def test_punctuation_is_a_boundary(self):
        """Test punctuation ends a word but letters do not."""
        replacer = TextReplacer()
        result = replacer.apply_single_replacement(
            "The protocol. Two protocols.", mapping("protocol", "Protokoll")
        )

        assert result.text == "The protokoll. Two protocols."

    def test_multi_word_key(self):
        """Test multi-word keys match across any whitespace."""
        replacer = TextReplacer(preserve_case=False)
        result = replacer.apply_single_replacement(
            "we use pro  to\ncall daily", mapping("pro to call", "Protokoll")
        )

        assert result.text == "we use Protokoll daily"

    def test_regex_characters_escaped(self):
        """Test keys are matched literally."""
        replacer = TextReplacer(preserve_case=False)
        result = replacer.apply_single_replacement(
            "written in c++ and c", mapping("c++", "C++")
        )

        assert result.text == "written in C++ and c"
        assert result.count == 1

    def test_occurrences(self):
        """Test occurrences record matched text and position."""
        replacer = TextReplacer()
        result = replacer.apply_single_replacement("Pria met pria", mapping("pria", "Priya"))

        assert [(o.matched_text, o.replacement, o.index) for o in result.occurrences] == [
            ("Pria", "Priya", 0),
            ("pria", "priya", 9),
        ]
        assert result.occurrences[0].to_dict()["sounds_like"] == "pria"

    def test_no_match(self):
        """Test no match leaves text alone."""
        replacer = TextReplacer()
        result = replacer.apply_single_replacement("nothing here", mapping("pria", "Priya"))

        assert result.text == "nothing here"
        assert result.count == 0
        assert result.applied_mappings == []

    def test_non_ascii_replacement(self):
        """Test non-ASCII letters in the replacement are never re-cased."""
        replacer = TextReplacer(preserve_case=True)
        rule = mapping("arlig", "Ærlig")

        assert replacer.apply_single_replacement("arlig", rule).text == "Ærlig"
        assert replacer.apply_single_replacement("ARLIG", rule).text == "ÆRLIG"


class TestApplyReplacements:
    """Tests for apply_replacements."""

    def test_empty_mappings(self):
        """Test no mappings returns the text with count 0."""
        result = TextReplacer().apply_replacements("Some text", [])

        assert result.text == "Some text"
        assert result.count == 0
        assert result.applied_mappings == []

    def test_sequential_application(self):
        """Test each mapping sees the previous mapping's output."""
        replacer = TextReplacer(preserve_case=False)
        first = mapping("alpha", "Beta", "a")
        second = mapping("beta", "Gamma", "b")

        result = replacer.apply_replacements("alpha here", [first, second])

        assert result.text == "Gamma here"
        assert result.count == 2
        assert result.applied_mappings == [first, second]

    def test_only_matching_mappings_listed(self):
        """Test mappings without matches are not reported as applied."""
        replacer = TextReplacer()
        hit = mapping("pria", "Priya", "priya")
        miss = mapping("yan", "Jan", "jan")

        result = replacer.apply_replacements("pria and pria", [miss, hit])

        assert result.applied_mappings == [hit]
        assert result.occurrences_for(hit) == 2
        assert result.occurrences_for(miss) == 0

    def test_deterministic(self):
        """Test the same input always gives the same output."""
        replacer = TextReplacer()
        rules = [mapping("pria", "Priya", "p"), mapping("protocol", "Protokoll", "k")]
        text = "Pria said the PROTOCOL was fine, pria agreed."

        first = replacer.apply_replacements(text, rules)
        second = replacer.apply_replacements(text, rules)

        assert first.text == second.text == "Priya said the PROTOKOLL was fine, priya agreed."
        assert first.count == second.count == 3
