"""Unit tests for WordResult and LineResult invariants and wire form."""

import pytest

from cadence.syllables import LineResult, Token, WordResult


class TestWordResult:
    """Test per-word result invariants."""

    def test_count_derived_from_break_positions(self):
        """Test a successful word has one more syllable than breaks."""
        word = WordResult("beautiful", "beautiful", 3, (4, 6))
        assert word.syllables == ("beau", "ti", "ful")
        assert word.hyphenated == "beau·ti·ful"

    def test_mismatched_count_rejected(self):
        """Test count and positions must agree."""
        with pytest.raises(ValueError, match="syllable_count must be 3"):
            WordResult("beautiful", "beautiful", 2, (4, 6))

    @pytest.mark.parametrize("positions", [(0,), (9,), (6, 4), (4, 4)])
    def test_positions_must_be_strictly_increasing_and_inside(self, positions):
        """Test break positions outside (0, len) or out of order are rejected."""
        with pytest.raises(ValueError, match="break_positions"):
            WordResult("beautiful", "beautiful", len(positions) + 1, positions)

    def test_failed_word_has_no_syllables(self):
        """Test failed words contribute zero syllables."""
        word = WordResult("xyzzy", "xyzzy", 0, success=False, error="no pattern")
        assert word.hyphenated == "xyzzy"
        with pytest.raises(ValueError):
            WordResult("xyzzy", "xyzzy", 2, (2,), success=False, error="no pattern")

    def test_empty_cleaned_word_has_no_syllables(self):
        """Test punctuation-only tokens count zero."""
        word = WordResult("#", "", 0)
        assert word.syllables == ()
        assert word.hyphenated == "#"
        with pytest.raises(ValueError):
            WordResult("#", "", 1)

    def test_to_dict_uses_camel_case(self):
        """Test the wire form keys."""
        data = WordResult("day,", "day", 1, start=10).to_dict()
        assert data == {
            "word": "day,",
            "cleaned": "day",
            "hyphenated": "day",
            "syllableCount": 1,
            "breakPositions": [],
            "success": True,
            "start": 10,
        }

    def test_from_dict_restores_error(self):
        """Test failed words keep their reason through the wire form."""
        original = WordResult("xyzzy", "xyzzy", 0, success=False, error="no pattern", start=3)
        assert WordResult.from_dict(original.to_dict()) == original


class TestLineResult:
    """Test aggregation invariants."""

    def test_from_words_sums_counts(self):
        """Test total equals the sum of word counts."""
        words = [
            WordResult("beautiful", "beautiful", 3, (4, 6)),
            WordResult("day", "day", 1, start=10),
        ]
        result = LineResult.from_words(0, words)
        assert result.total_syllables == 4
        assert result.success is True
        assert result.errors == ()

    def test_from_words_collects_errors(self):
        """Test one failed word marks the line failed and records the reason."""
        words = [
            WordResult("good", "good", 1),
            WordResult("bad", "bad", 0, success=False, error="no pattern", start=5),
        ]
        result = LineResult.from_words(2, words)
        assert result.total_syllables == 1
        assert result.success is False
        assert result.errors == ("bad: no pattern",)

    def test_inconsistent_total_rejected(self):
        """Test a hand-built total must match the words."""
        with pytest.raises(ValueError, match="total_syllables"):
            LineResult(0, 5, (WordResult("day", "day", 1),))

    def test_inconsistent_success_rejected(self):
        """Test success must mirror the words."""
        failed = WordResult("bad", "bad", 0, success=False, error="x")
        with pytest.raises(ValueError, match="success"):
            LineResult(0, 0, (failed,), success=True)

    def test_negative_line_number_rejected(self):
        with pytest.raises(ValueError):
            LineResult.empty(-1)

    def test_empty(self):
        """Test the blank-line result."""
        result = LineResult.empty(4)
        assert result.line_number == 4
        assert result.total_syllables == 0
        assert result.words == ()
        assert result.success is True
        assert repr(result) == "LineResult(line=4, syllables=0, words=0)"

    def test_word_count_skips_punctuation(self):
        """Test tokens without letters are not counted as words."""
        result = LineResult.from_words(0, [WordResult("#", "", 0), WordResult("comment", "comment", 2, (3,))])
        assert result.word_count == 1

    def test_to_dict_omits_empty_errors(self):
        """Test errors only appear on the wire when present."""
        assert "errors" not in LineResult.empty(0).to_dict()
        failed = LineResult.from_words(0, [WordResult("bad", "bad", 0, success=False, error="x")])
        assert failed.to_dict()["errors"] == ["bad: x"]

    def test_from_dict_rejects_broken_payload(self):
        """Test decoding re-checks the invariants."""
        data = LineResult.from_words(0, [WordResult("day", "day", 1)]).to_dict()
        data["totalSyllables"] = 7
        with pytest.raises(ValueError):
            LineResult.from_dict(data)


class TestToken:
    def test_end_offset(self):
        assert Token("world!", 6).end == 12
