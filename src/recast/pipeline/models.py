"""Data models for the rewrite pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Intent(str, Enum):
    """Category of rewrite operation."""

    HUMANIZE = "humanize"
    SUMMARIZE = "summarize"
    EXPAND = "expand"
    SIMPLIFY = "simplify"
    GRAMMAR = "grammar"


# Alternate spellings accepted on input
INTENT_ALIASES = {
    "grammar-fix": Intent.GRAMMAR,
    "grammar_fix": Intent.GRAMMAR,
}


class TargetLength(str, Enum):
    """Desired output length relative to the source text."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ProviderKind(str, Enum):
    """Backend class a request is routed to."""

    LOW_COST = "low_cost"
    HIGH_REASONING = "high_reasoning"


class RewriteRequest(BaseModel):
    """Immutable input to one pipeline invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    intent: Intent = Intent.HUMANIZE
    target_tone: str = Field(default="neutral", alias="targetTone")
    target_length: TargetLength = Field(default=TargetLength.MEDIUM, alias="targetLength")
    style_samples: tuple[str, ...] = Field(default=(), alias="styleSamples")

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Text is required")
        return value

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: Any) -> Any:
        if isinstance(value, str):
            return INTENT_ALIASES.get(value.strip().lower(), value.strip().lower())
        return value

    @field_validator("target_tone", mode="before")
    @classmethod
    def _default_blank_tone(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "neutral"
        return value


@dataclass(frozen=True)
class TextDiagnostics:
    """Structural metrics of a text, each in the range 0-100."""

    passive_voice_ratio: float = 0.0
    sentence_length_variance: float = 0.0
    complex_word_density: float = 0.0

    def to_dict(self) -> dict:
        return {
            "passive_voice_ratio": self.passive_voice_ratio,
            "sentence_length_variance": self.sentence_length_variance,
            "complex_word_density": self.complex_word_density,
        }


@dataclass(frozen=True)
class ModelSelection:
    """Backend chosen for a request."""

    provider_kind: ProviderKind
    model_identifier: str


@dataclass(frozen=True)
class RewriteOutcome:
    """Completed output of a clean stream, ready for billing."""

    text: str
    word_count: int
    model_identifier: str
    title: str


def count_words(text: str) -> int:
    """Count whitespace-delimited words."""
    return len(text.split())


class OutputBuffer:
    """Accumulates streamed chunks for a single relay.

    Owned by exactly one relay. Sealing hands the contents off as a
    ``RewriteOutcome``; the buffer accepts no further chunks afterwards.
    """

    def __init__(self, model_identifier: str, title: str):
        self.model_identifier = model_identifier
        self.title = title
        self._chunks: list[str] = []
        self._sealed = False

    def append(self, chunk: str):
        if self._sealed:
            raise RuntimeError("Output buffer already sealed")
        self._chunks.append(chunk)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def char_count(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> RewriteOutcome:
        if self._sealed:
            raise RuntimeError("Output buffer already sealed")
        self._sealed = True
        text = self.text
        return RewriteOutcome(
            text=text,
            word_count=count_words(text),
            model_identifier=self.model_identifier,
            title=self.title,
        )
