"""Core data models shared across harmonizer components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEV_PREFIX = "dev:"


@dataclass(frozen=True)
class Module:
    """One monorepo module identified by its manifest file."""

    path: str
    name: str
    kind: str
    manifest: Optional[Dict[str, Any]]

    @property
    def has_manifest(self) -> bool:
        return self.manifest is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "type": self.kind,
            "hasPackageJson": self.has_manifest,
        }


@dataclass(frozen=True)
class ValueRecord:
    """A single module contribution to a cross-module key."""

    module: str
    value: str
    first_seen: int


class ValueMap:
    """Ordered module -> value contributions for one script or dependency key.

    Records keep the position at which each module first contributed, so the
    first-seen tie-break does not depend on mapping iteration order.
    """

    def __init__(self) -> None:
        self._records: List[ValueRecord] = []
        self._index: Dict[str, int] = {}

    def add(self, module: str, value: str, first_seen: int) -> None:
        position = self._index.get(module)
        if position is None:
            self._index[module] = len(self._records)
            self._records.append(ValueRecord(module, value, first_seen))
            return
        # A repeated module name replaces the value in place.
        previous = self._records[position]
        self._records[position] = ValueRecord(module, value, previous.first_seen)

    def distinct_values(self) -> List[str]:
        """Distinct values ordered by first appearance."""
        ordered = sorted(self._records, key=lambda record: record.first_seen)
        seen: List[str] = []
        for record in ordered:
            if record.value not in seen:
                seen.append(record.value)
        return seen

    def counts(self) -> List[Tuple[str, int]]:
        """``(value, modules using it)`` pairs in first-seen order."""
        totals: Dict[str, int] = {}
        for record in self._records:
            totals[record.value] = totals.get(record.value, 0) + 1
        return [(value, totals[value]) for value in self.distinct_values()]

    def as_dict(self) -> Dict[str, str]:
        return {record.module: record.value for record in self._records}


@dataclass
class Suggestion:
    """Reconciliation outcome for one script or dependency key."""

    kind: str
    key: str
    scope: str
    modules: Dict[str, str]
    value: Optional[str] = None
    recommended_value: Optional[str] = None
    variant_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def is_decision(self) -> bool:
        return self.kind == "decision"

    def to_dict(self) -> Dict[str, Any]:
        value_label = "version" if self.scope == "dependency" else "value"
        if not self.is_decision:
            return {
                "kind": self.kind,
                "key": self.key,
                value_label: self.value,
                "modules": dict(self.modules),
            }
        recommended_label = (
            "recommendedVersion" if self.scope == "dependency" else "recommendedValue"
        )
        return {
            "kind": self.kind,
            "key": self.key,
            recommended_label: self.recommended_value,
            "variantCounts": dict(self.variant_counts),
            "modules": dict(self.modules),
        }


@dataclass
class Summary:
    """Tally of a reconciliation run."""

    module_count: int
    script_keys: int
    dependency_keys: int
    scripts_needing_sync: int
    deps_needing_sync: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "moduleCount": self.module_count,
            "scriptKeys": self.script_keys,
            "dependencyKeys": self.dependency_keys,
            "scriptsNeedingSync": self.scripts_needing_sync,
            "depsNeedingSync": self.deps_needing_sync,
        }


@dataclass
class Reconciliation:
    """Decision set produced by the reconciliation engine."""

    script_suggestions: List[Suggestion]
    dependency_suggestions: List[Suggestion]
    summary: Summary

    def script_decisions(self) -> Dict[str, str]:
        return {
            s.key: s.recommended_value
            for s in self.script_suggestions
            if s.is_decision and s.recommended_value is not None
        }

    def dependency_decisions(self) -> Dict[str, str]:
        return {
            s.key: s.recommended_value
            for s in self.dependency_suggestions
            if s.is_decision and s.recommended_value is not None
        }

    def suggestions_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "scripts": [s.to_dict() for s in self.script_suggestions],
            "dependencies": [s.to_dict() for s in self.dependency_suggestions],
        }


@dataclass(frozen=True)
class Component:
    """A named component directory scanned for file unification."""

    name: str
    path: str


@dataclass
class FileVersion:
    """One component's copy of a shared relative path."""

    component: str
    absolute_path: str
    content: str


@dataclass
class FileVersionGroup:
    """Copies of the same relative path found in two or more components."""

    relative_path: str
    entries: List[FileVersion] = field(default_factory=list)

    @property
    def components(self) -> List[str]:
        names: List[str] = []
        for entry in self.entries:
            if entry.component not in names:
                names.append(entry.component)
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relativePath": self.relative_path,
            "entries": [
                {"component": entry.component, "absolutePath": entry.absolute_path}
                for entry in self.entries
            ],
        }


@dataclass
class UnificationSuggestion:
    """Merged proposal for a file version group."""

    relative_path: str
    merged_text: str
    rationale: str
    placeholder: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relativePath": self.relative_path,
            "mergedText": self.merged_text,
            "rationale": self.rationale,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class CommitFile:
    """A path and its full content destined for a single new commit."""

    path: str
    content: str


@dataclass(frozen=True)
class RepoMeta:
    """Resolved repository coordinates for one request."""

    owner: str
    repo: str
    default_branch: str
    default_branch_sha: str
    base_tree_sha: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
