"""Placeholder suggestions used when automatic unification cannot run."""

from __future__ import annotations

from .models import FileVersionGroup, UnificationSuggestion


def build_placeholder(group: FileVersionGroup, *, reason: str | None = None) -> UnificationSuggestion:
    """Return a suggestion that asks for manual harmonization of ``group``."""
    components = ", ".join(group.components)
    rationale = (
        f"Automatic unification is unavailable; harmonize {group.relative_path} "
        f"manually across {components}."
    )
    if reason:
        rationale = f"{rationale} ({reason})"
    return UnificationSuggestion(
        relative_path=group.relative_path,
        merged_text="",
        rationale=rationale,
        placeholder=True,
    )


__all__ = ["build_placeholder"]
