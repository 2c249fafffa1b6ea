"""Tests for the text diagnostics engine."""

import pytest

from recast.pipeline import TextDiagnostics, analyze
from recast.pipeline.diagnostics import estimate_syllables


SAMPLE_TEXTS = [
    "Hello",
    "The report was written by the team. It was submitted.",
    "Short. Then a considerably longer sentence follows here with many more words in it!",
    "Unbelievably, institutional administrative considerations necessitated reorganization.",
    "...!!!???",
    "word " * 500,
    "Was it done? Yes. It was done, was made, was built, and was sent.",
    "12345 67890. $$$ ###.",
    "\n\t  multiple   spaces\tand\nnewlines . here",
]


class TestAnalyzeEdgeCases:
    """Degenerate inputs never fail and yield zeros."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_blank_text_returns_zeros(self, text):
        assert analyze(text) == TextDiagnostics(0.0, 0.0, 0.0)

    def test_punctuation_only_returns_zeros(self):
        """No sentence fragments survive the split."""
        assert analyze("...!!!???") == TextDiagnostics(0.0, 0.0, 0.0)

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_metrics_always_in_range(self, text):
        result = analyze(text)
        for value in (
            result.passive_voice_ratio,
            result.sentence_length_variance,
            result.complex_word_density,
        ):
            assert 0.0 <= value <= 100.0

    def test_analyze_is_deterministic(self):
        text = SAMPLE_TEXTS[2]
        assert analyze(text) == analyze(text)


class TestPassiveVoice:
    """Test passive voice ratio."""

    def test_report_scenario_is_fully_passive(self):
        """Two sentences, two passive constructions."""
        result = analyze("The report was written by the team. It was submitted.")
        assert result.passive_voice_ratio == 100.0

    def test_active_text_has_no_passive(self):
        result = analyze("The team wrote the report. They submitted it on time.")
        assert result.passive_voice_ratio == 0.0

    def test_ratio_is_capped(self):
        """More matches than sentences caps at 100."""
        result = analyze("It was made and was done and was sent.")
        assert result.passive_voice_ratio == 100.0

    def test_half_passive(self):
        result = analyze("The cake was baked. We ate it.")
        assert result.passive_voice_ratio == 50.0

    def test_common_adverbs_are_not_participles(self):
        result = analyze("It was then fine. The door is often open.")
        assert result.passive_voice_ratio == 0.0


class TestSentenceVariance:
    """Test sentence length variance."""

    def test_single_sentence_has_no_variance(self):
        assert analyze("The quick brown fox jumps.").sentence_length_variance == 0.0

    def test_uniform_sentences_have_no_variance(self):
        result = analyze("One two three. Four five six. Seven eight nine.")
        assert result.sentence_length_variance == 0.0

    def test_normalized_standard_deviation(self):
        """Lengths 3 and 7: mean 5, population stddev 2 -> 40."""
        result = analyze("One two three. One two three four five six seven.")
        assert result.sentence_length_variance == 40.0

    def test_variance_is_capped(self):
        text = "A. B. C. " + " ".join(["word"] * 20) + "."
        assert analyze(text).sentence_length_variance == 100.0


class TestComplexWordDensity:
    """Test complex word density."""

    def test_simple_words(self):
        assert analyze("The cat sat on the mat.").complex_word_density == 0.0

    def test_all_complex_words(self):
        assert analyze("Beautiful information.").complex_word_density == 100.0

    def test_density_is_rounded(self):
        """One of three words is complex."""
        assert analyze("cat dog beautiful").complex_word_density == 33.33


class TestEstimateSyllables:
    """Test the syllable heuristic."""

    @pytest.mark.parametrize(
        "word,expected",
        [
            ("cat", 1),
            ("the", 1),
            ("hello", 2),
            ("yellow", 2),
            ("computer", 3),
            ("beautiful", 3),
            ("information", 4),
        ],
    )
    def test_known_words(self, word, expected):
        assert estimate_syllables(word) == expected

    def test_minimum_is_one(self):
        assert estimate_syllables("rhythm") >= 1
        assert estimate_syllables("123") == 1
        assert estimate_syllables("") == 1

    def test_punctuation_is_ignored(self):
        assert estimate_syllables("Computer,") == estimate_syllables("computer")
