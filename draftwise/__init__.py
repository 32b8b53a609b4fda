"""Draftwise - AI writing suggestions with change-aware caching"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules don't pull in the LLM SDKs
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name in ("Suggestion", "WritingGoals", "SuggestionRequest", "SuggestionResponse"):
        from draftwise.suggestions import models

        return getattr(models, name)

    if name == "SuggestionOrchestrator":
        from draftwise.analysis.orchestrator import SuggestionOrchestrator

        return SuggestionOrchestrator

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Suggestion",
    "WritingGoals",
    "SuggestionRequest",
    "SuggestionResponse",
    "SuggestionOrchestrator",
]
