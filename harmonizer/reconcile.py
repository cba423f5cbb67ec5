"""Cross-module reconciliation of scripts and dependency ranges."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .logging import get_logger
from .models import DEV_PREFIX, Module, Reconciliation, Suggestion, Summary, ValueMap

_LEAD_IN = re.compile(r"^[^\d]*")
_LEADING_INT = re.compile(r"\d+")

_LOGGER = get_logger("reconcile")


def parse_version(specifier: str) -> Tuple[int, int, int]:
    """Return ``(major, minor, patch)`` for a range-ish version string.

    Range markers and other non-numeric lead-in characters are dropped; each
    component is the leading integer of its dot-separated part, 0 otherwise.
    """
    cleaned = _LEAD_IN.sub("", specifier)
    parts = cleaned.split(".")
    numbers: List[int] = []
    for index in range(3):
        part = parts[index] if index < len(parts) else ""
        match = _LEADING_INT.match(part)
        numbers.append(int(match.group(0)) if match else 0)
    return numbers[0], numbers[1], numbers[2]


def build_value_maps(modules: Sequence[Module]) -> Tuple[Dict[str, ValueMap], Dict[str, ValueMap]]:
    """Fold every module's scripts and dependencies into per-key value maps."""
    scripts: Dict[str, ValueMap] = {}
    dependencies: Dict[str, ValueMap] = {}
    position = 0
    for module in modules:
        manifest = module.manifest or {}
        for key, value in _string_entries(manifest.get("scripts")):
            scripts.setdefault(key, ValueMap()).add(module.name, value, position)
            position += 1
        for key, value in _string_entries(manifest.get("dependencies")):
            dependencies.setdefault(key, ValueMap()).add(module.name, value, position)
            position += 1
        for key, value in _string_entries(manifest.get("devDependencies")):
            dependencies.setdefault(f"{DEV_PREFIX}{key}", ValueMap()).add(
                module.name, value, position
            )
            position += 1
    return scripts, dependencies


def most_common_value(values: ValueMap) -> str:
    """Highest count wins; equal counts go to the value seen first."""
    ranked = sorted(values.counts(), key=lambda item: -item[1])
    return ranked[0][0]


def highest_version(values: ValueMap) -> str:
    """Highest ``(major, minor, patch)`` wins; equal tuples go to the value seen first."""
    ranked = sorted(values.distinct_values(), key=parse_version, reverse=True)
    # sorted(reverse=True) keeps equal elements in their original order.
    return ranked[0]


def classify(key: str, values: ValueMap, *, scope: str) -> Suggestion:
    distinct = values.distinct_values()
    modules = values.as_dict()
    if len(distinct) == 1:
        return Suggestion(kind="uniform", key=key, scope=scope, modules=modules, value=distinct[0])
    recommended = highest_version(values) if scope == "dependency" else most_common_value(values)
    return Suggestion(
        kind="decision",
        key=key,
        scope=scope,
        modules=modules,
        recommended_value=recommended,
        variant_counts=dict(values.counts()),
    )


class ReconciliationEngine:
    """Classifies every script and dependency key across the collected modules."""

    def reconcile(self, modules: Sequence[Module]) -> Reconciliation:
        scripts, dependencies = build_value_maps(modules)
        script_suggestions = [
            classify(key, values, scope="script") for key, values in scripts.items()
        ]
        dependency_suggestions = [
            classify(key, values, scope="dependency") for key, values in dependencies.items()
        ]
        summary = Summary(
            module_count=len(modules),
            script_keys=len(scripts),
            dependency_keys=len(dependencies),
            scripts_needing_sync=sum(1 for s in script_suggestions if s.is_decision),
            deps_needing_sync=sum(1 for s in dependency_suggestions if s.is_decision),
        )
        _LOGGER.info(
            "Reconciled %d module(s): %d script key(s) and %d dependency key(s) need a decision",
            summary.module_count,
            summary.scripts_needing_sync,
            summary.deps_needing_sync,
        )
        return Reconciliation(script_suggestions, dependency_suggestions, summary)


def _string_entries(section: Any) -> List[Tuple[str, str]]:
    if not isinstance(section, Mapping):
        return []
    return [(str(key), value) for key, value in section.items() if isinstance(value, str)]


__all__ = [
    "ReconciliationEngine",
    "build_value_maps",
    "classify",
    "highest_version",
    "most_common_value",
    "parse_version",
]
