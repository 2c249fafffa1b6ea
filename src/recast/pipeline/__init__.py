"""Rewrite pipeline: diagnostics, prompt composition and stream relay."""

from .models import (
    Intent,
    TargetLength,
    ProviderKind,
    RewriteRequest,
    TextDiagnostics,
    ModelSelection,
    RewriteOutcome,
    OutputBuffer,
    count_words,
)
from .diagnostics import analyze
from .prompts import compose, build_title, plan_directives, Directive, DirectiveTier
from .relay import StreamRelay, RelayStream

__all__ = [
    "Intent",
    "TargetLength",
    "ProviderKind",
    "RewriteRequest",
    "TextDiagnostics",
    "ModelSelection",
    "RewriteOutcome",
    "OutputBuffer",
    "count_words",
    "analyze",
    "compose",
    "build_title",
    "plan_directives",
    "Directive",
    "DirectiveTier",
    "StreamRelay",
    "RelayStream",
]
