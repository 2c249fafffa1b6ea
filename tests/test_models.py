"""Tests for pipeline data models."""

import pytest
from pydantic import ValidationError

from recast.pipeline import (
    Intent,
    OutputBuffer,
    RewriteOutcome,
    RewriteRequest,
    TargetLength,
    count_words,
)


class TestRewriteRequest:
    """Test RewriteRequest validation."""

    def test_defaults(self):
        request = RewriteRequest(text="Some text")
        assert request.intent == Intent.HUMANIZE
        assert request.target_tone == "neutral"
        assert request.target_length == TargetLength.MEDIUM
        assert request.style_samples == ()

    def test_camel_case_aliases(self):
        request = RewriteRequest.model_validate(
            {
                "text": "Some text",
                "intent": "expand",
                "targetTone": "formal",
                "targetLength": "long",
                "styleSamples": ["one", "two"],
            }
        )
        assert request.target_tone == "formal"
        assert request.target_length == TargetLength.LONG
        assert request.style_samples == ("one", "two")

    def test_field_names_accepted(self):
        request = RewriteRequest(text="Some text", target_tone="casual")
        assert request.target_tone == "casual"

    @pytest.mark.parametrize("alias", ["grammar-fix", "grammar_fix", "Grammar", " GRAMMAR "])
    def test_intent_normalization(self, alias):
        assert RewriteRequest(text="x", intent=alias).intent == Intent.GRAMMAR

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_rejected(self, text):
        with pytest.raises(ValidationError, match="Text is required"):
            RewriteRequest(text=text)

    def test_unknown_intent_rejected(self):
        with pytest.raises(ValidationError):
            RewriteRequest(text="x", intent="poetry")

    def test_unknown_length_rejected(self):
        with pytest.raises(ValidationError):
            RewriteRequest(text="x", targetLength="epic")

    def test_blank_tone_defaults_to_neutral(self):
        assert RewriteRequest(text="x", targetTone="  ").target_tone == "neutral"
        assert RewriteRequest(text="x", targetTone=None).target_tone == "neutral"

    def test_request_is_immutable(self):
        request = RewriteRequest(text="x")
        with pytest.raises(ValidationError):
            request.text = "y"


class TestOutputBuffer:
    """Test OutputBuffer."""

    def test_seal_returns_outcome(self):
        buffer = OutputBuffer("model-x", "Humanize - neutral tone")
        for chunk in ["Hello ", "there ", "world."]:
            buffer.append(chunk)

        outcome = buffer.seal()

        assert outcome == RewriteOutcome(
            text="Hello there world.",
            word_count=3,
            model_identifier="model-x",
            title="Humanize - neutral tone",
        )
        assert buffer.sealed

    def test_counters(self):
        buffer = OutputBuffer("m", "t")
        buffer.append("ab")
        buffer.append("cde")
        assert buffer.chunk_count == 2
        assert buffer.char_count == 5
        assert buffer.text == "abcde"

    def test_append_after_seal_raises(self):
        buffer = OutputBuffer("m", "t")
        buffer.seal()
        with pytest.raises(RuntimeError):
            buffer.append("late")

    def test_seal_twice_raises(self):
        buffer = OutputBuffer("m", "t")
        buffer.seal()
        with pytest.raises(RuntimeError):
            buffer.seal()

    def test_empty_buffer_has_zero_words(self):
        assert OutputBuffer("m", "t").seal().word_count == 0


def test_count_words():
    assert count_words("") == 0
    assert count_words("  one\ttwo\nthree  ") == 3
    assert count_words("chunk-split words") == 2
