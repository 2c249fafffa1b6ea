"""Fast structural diagnostics for input text.

Pure CPU-bound analysis with regular expressions and string handling; no model
calls. Never raises: degenerate input yields all-zero diagnostics so analysis
cannot block a rewrite.
"""

import math
import re

from .models import TextDiagnostics

SENTENCE_SPLIT = re.compile(r"[.!?]+")

# Common irregular past participles that do not end in -ed/-en/-wn
IRREGULAR_PARTICIPLES = (
    "made", "done", "built", "sent", "found", "held", "kept", "left", "lost",
    "paid", "said", "sold", "told", "thought", "brought", "bought", "caught",
    "taught", "put", "set", "read", "run", "begun", "sung", "won", "hit", "cut",
    "led", "met", "felt", "heard", "meant", "spent", "understood", "hung",
    "shut", "spread", "struck", "stuck", "taken", "bound", "fed", "lit", "shot",
)

# Words ending in -en/-wn that are not participles
NOT_PARTICIPLES = (
    "then", "when", "often", "even", "open", "seven", "eleven", "ten", "own",
    "down", "town", "brown", "golden", "garden", "children", "women", "men",
    "listen", "been",
)

PASSIVE_PATTERN = re.compile(
    r"\b(?:am|is|are|was|were|be|been|being)\s+"
    r"(?!(?:" + "|".join(NOT_PARTICIPLES) + r")\b)"
    r"(?:\w+(?:ed|en|wn)|" + "|".join(IRREGULAR_PARTICIPLES) + r")\b",
    re.IGNORECASE,
)

SILENT_SUFFIX = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
VOWEL_GROUP = re.compile(r"[aeiouy]+")
NON_LETTER = re.compile(r"[^a-z]")

COMPLEX_WORD_SYLLABLES = 3


def analyze(text: str) -> TextDiagnostics:
    """Compute passive ratio, sentence-length variance and complex-word density.

    Args:
        text: Raw input text

    Returns:
        TextDiagnostics with each metric in [0, 100], rounded to 2 decimals
    """
    if not text or not text.strip():
        return TextDiagnostics()

    sentences = [s for s in SENTENCE_SPLIT.split(text) if s.strip()]
    words = text.split()

    if not sentences or not words:
        return TextDiagnostics()

    return TextDiagnostics(
        passive_voice_ratio=round(passive_voice_ratio(text, len(sentences)), 2),
        sentence_length_variance=round(sentence_length_variance(sentences), 2),
        complex_word_density=round(complex_word_density(words), 2),
    )


def passive_voice_ratio(text: str, sentence_count: int) -> float:
    """Passive constructions per sentence, as a capped percentage."""
    if sentence_count <= 0:
        return 0.0
    matches = len(PASSIVE_PATTERN.findall(text))
    return min(matches / sentence_count * 100, 100.0)


def sentence_length_variance(sentences: list[str]) -> float:
    """Coefficient of variation of sentence lengths, as a capped percentage.

    Uniform sentence length reads as mechanical; a higher value signals a
    more natural rhythm.
    """
    lengths = [len(s.split()) for s in sentences]
    lengths = [n for n in lengths if n > 0]
    if not lengths:
        return 0.0

    mean = sum(lengths) / len(lengths)
    variance = sum((n - mean) ** 2 for n in lengths) / len(lengths)
    return min(math.sqrt(variance) / mean * 100, 100.0)


def complex_word_density(words: list[str]) -> float:
    """Percentage of words with three or more estimated syllables."""
    if not words:
        return 0.0
    complex_count = sum(1 for w in words if estimate_syllables(w) >= COMPLEX_WORD_SYLLABLES)
    return complex_count / len(words) * 100


def estimate_syllables(word: str) -> int:
    """Estimate syllables by counting vowel groups after stripping silent endings."""
    word = NON_LETTER.sub("", word.lower())
    if not word:
        return 1

    word = SILENT_SUFFIX.sub("", word)
    word = re.sub(r"^y", "", word)

    return max(len(VOWEL_GROUP.findall(word)), 1)
