"""Prompt composition for rewrite requests.

The composed prompt is ordered by priority: role preamble, task, diagnostic
requirements, style exemplars, tone and length, source text, closing
instruction. Diagnostic directives are discrete tiers per dimension so that
prompts stay stable across small changes in the measured metrics.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import InvalidRequestError
from .models import Intent, RewriteRequest, TargetLength, TextDiagnostics

ROLE_PREAMBLE = """You are an Expert Human Editor with 20+ years of professional writing experience.
Your task is to rewrite the provided text according to the user's specifications.
Rewrite literally: keep the author's meaning and structure, and do not embellish.

CRITICAL INSTRUCTIONS:
- Output ONLY the rewritten text - no explanations, no meta-commentary
- Do NOT add facts, claims, statistics, names or examples that are not in the original
- Preserve the core meaning and key information
- Maintain factual accuracy
- Adapt to the specified tone and intent
- Follow the style examples provided as your writing DNA"""

INTENT_INSTRUCTIONS = {
    Intent.HUMANIZE: (
        "Transform this text to sound more natural and human-written, "
        "reducing any robotic or AI-like qualities"
    ),
    Intent.SUMMARIZE: "Condense this text while preserving all key information and main points",
    Intent.EXPAND: (
        "Elaborate on this text by adding relevant details, examples, and explanations "
        "while maintaining the core message"
    ),
    Intent.SIMPLIFY: (
        "Make this text easier to understand by using simpler words and clearer "
        "sentence structures"
    ),
    Intent.GRAMMAR: (
        "Fix grammatical errors, improve sentence structure, and enhance overall "
        "writing quality"
    ),
}

LENGTH_INSTRUCTIONS = {
    TargetLength.SHORT: "Significantly shorter - remove redundancies and focus on essentials",
    TargetLength.MEDIUM: (
        "Approximately same length - maintain balance between conciseness and completeness"
    ),
    TargetLength.LONG: "Expanded version - elaborate on existing points with fuller explanations",
}

INTENT_TITLES = {
    Intent.HUMANIZE: "Humanize",
    Intent.SUMMARIZE: "Summarize",
    Intent.EXPAND: "Expand",
    Intent.SIMPLIFY: "Simplify",
    Intent.GRAMMAR: "Grammar Check",
}

# Directive thresholds
PASSIVE_CRITICAL = 20.0
PASSIVE_MODERATE = 10.0
VARIANCE_CRITICAL = 20.0
VARIANCE_MODERATE = 40.0
DENSITY_HIGH = 30.0
DENSITY_LOW = 5.0

BALANCED_LINE = (
    "Text analysis shows good balance. Maintain current balance while applying the primary task."
)


class DirectiveTier(str, Enum):
    """Severity of a diagnostic directive."""

    CRITICAL = "critical"
    MODERATE = "moderate"
    OPTIONAL = "optional"
    NONE = "none"


@dataclass(frozen=True)
class Directive:
    """Tier decision for one diagnostic dimension."""

    dimension: str
    tier: DirectiveTier
    text: Optional[str] = None


def _passive_directive(ratio: float) -> Directive:
    if ratio > PASSIVE_CRITICAL:
        return Directive(
            "passive_voice",
            DirectiveTier.CRITICAL,
            f"CRITICAL: Drastically reduce passive voice from {ratio:.1f}% to below 5%. "
            "Convert passive constructions to active voice.",
        )
    if ratio > PASSIVE_MODERATE:
        return Directive(
            "passive_voice",
            DirectiveTier.MODERATE,
            f"MODERATE: Moderately reduce passive voice from {ratio:.1f}% to improve engagement.",
        )
    return Directive("passive_voice", DirectiveTier.NONE)


def _variance_directive(variance: float) -> Directive:
    if variance < VARIANCE_CRITICAL:
        return Directive(
            "sentence_variance",
            DirectiveTier.CRITICAL,
            f"CRITICAL: Add significant sentence length variation. Current variance "
            f"({variance:.1f}) is too uniform. Mix short, medium, and long sentences "
            "for natural rhythm.",
        )
    if variance < VARIANCE_MODERATE:
        return Directive(
            "sentence_variance",
            DirectiveTier.MODERATE,
            f"MODERATE: Increase sentence variety. Current variance ({variance:.1f}) "
            "could be more dynamic.",
        )
    return Directive("sentence_variance", DirectiveTier.NONE)


def _density_directive(density: float) -> Directive:
    if density > DENSITY_HIGH:
        return Directive(
            "complex_words",
            DirectiveTier.MODERATE,
            f"MODERATE: Reduce complex vocabulary density from {density:.1f}%. Use simpler "
            "alternatives where appropriate while maintaining accuracy.",
        )
    if density < DENSITY_LOW:
        return Directive(
            "complex_words",
            DirectiveTier.OPTIONAL,
            "OPTIONAL: You may add precise terminology if the subject matter warrants it. "
            f"Current density: {density:.1f}%.",
        )
    return Directive("complex_words", DirectiveTier.NONE)


def plan_directives(diagnostics: TextDiagnostics) -> list[Directive]:
    """Decide one directive tier per diagnostic dimension, in prompt order."""
    return [
        _passive_directive(diagnostics.passive_voice_ratio),
        _variance_directive(diagnostics.sentence_length_variance),
        _density_directive(diagnostics.complex_word_density),
    ]


def diagnosis_lines(diagnostics: TextDiagnostics) -> list[str]:
    """Render the requirements section; never empty."""
    lines = [d.text for d in plan_directives(diagnostics) if d.text]
    return lines or [BALANCED_LINE]


def _intent(value) -> Intent:
    try:
        return Intent(value)
    except ValueError:
        valid = ", ".join(i.value for i in Intent)
        raise InvalidRequestError(f"Invalid intent. Must be one of: {valid}") from None


def _length(value) -> TargetLength:
    try:
        return TargetLength(value)
    except ValueError:
        valid = ", ".join(length.value for length in TargetLength)
        raise InvalidRequestError(f"Invalid target length. Must be one of: {valid}") from None


def compose(request: RewriteRequest, diagnostics: TextDiagnostics) -> str:
    """Build the complete model prompt for a rewrite request.

    Args:
        request: The validated rewrite request
        diagnostics: Output of ``analyze`` for ``request.text``

    Returns:
        Prompt string

    Raises:
        InvalidRequestError: If intent or target length is not recognized
    """
    task = INTENT_INSTRUCTIONS[_intent(request.intent)]
    length = LENGTH_INSTRUCTIONS[_length(request.target_length)]

    sections = [ROLE_PREAMBLE, "---", f"PRIMARY TASK: {task}"]

    sections.append(
        "CONTENT ANALYSIS & REQUIREMENTS:\n" + "\n".join(diagnosis_lines(diagnostics))
    )

    if request.style_samples:
        examples = "\n".join(
            f'Example {index}: "{sample}"'
            for index, sample in enumerate(request.style_samples, start=1)
        )
        sections.append(f"WRITING STYLE DNA (ADHERE TO THIS VOICE):\n{examples}")

    sections.append(f"TONE: {request.target_tone}\nLENGTH: {length}")

    sections.append(
        "ORIGINAL TEXT TO REWRITE:\n"
        "<<<BEGIN TEXT>>>\n"
        f"{request.text}\n"
        "<<<END TEXT>>>"
    )

    sections.append(
        "Output ONLY the rewritten text, with no commentary, headings or quotation marks.\n\n"
        "REWRITTEN TEXT:"
    )

    return "\n\n".join(sections)


def build_title(request: RewriteRequest) -> str:
    """Title recorded in the usage log, derived from intent and tone."""
    try:
        label = INTENT_TITLES[Intent(request.intent)]
    except ValueError:
        label = "Rewrite"
    return f"{label} - {request.target_tone} tone"
