"""Same-path source file grouping across components and unification dispatch."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..config import DEFAULT_EXTENSIONS, DEFAULT_MAX_CHARS
from ..errors import UnificationReplyError, UnificationUnavailable
from ..failsafe import build_placeholder
from ..logging import get_logger
from ..models import Component, FileVersion, FileVersionGroup, UnificationSuggestion

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
}


class Unifier(Protocol):
    """Merges several versions of one file into a single proposal."""

    def unify(self, path: str, versions: Sequence[FileVersion]) -> Tuple[str, str]: ...


class FileUnificationOrchestrator:
    """Finds files shared by path across components and proposes merged versions."""

    def __init__(
        self,
        root: str | Path,
        unifier: Unifier | None = None,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.unifier = unifier
        self.extensions = {ext.lower() for ext in extensions}
        self.max_chars = max_chars
        self.logger = get_logger("unify")

    def collect_diffs(self, components: Sequence[Component]) -> List[FileVersionGroup]:
        """Group files by component-relative path, keeping paths seen in 2+ components."""
        groups: Dict[str, FileVersionGroup] = {}
        for component in components:
            component_root = self._component_root(component)
            if not component_root.is_dir():
                raise FileNotFoundError(f"Component path not found: {component.path}")
            for path in self._iter_source_files(component_root):
                relative = path.relative_to(component_root).as_posix()
                group = groups.setdefault(relative, FileVersionGroup(relative_path=relative))
                group.entries.append(
                    FileVersion(
                        component=component.name,
                        absolute_path=str(path),
                        content=path.read_text(encoding="utf-8", errors="replace"),
                    )
                )

        shared = [group for group in groups.values() if len(group.components) >= 2]
        self.logger.info(
            "Found %d shared path(s) across %d component(s)", len(shared), len(components)
        )
        return shared

    def build_suggestions(self, groups: Sequence[FileVersionGroup]) -> List[UnificationSuggestion]:
        suggestions: List[UnificationSuggestion] = []
        unifier = self.unifier
        unavailable: Optional[str] = None if unifier is not None else "no unifier configured"
        for group in groups:
            if unifier is None or unavailable is not None:
                suggestions.append(build_placeholder(group, reason=unavailable))
                continue
            versions = [self._bounded(entry) for entry in group.entries]
            try:
                merged, rationale = unifier.unify(group.relative_path, versions)
            except UnificationUnavailable as exc:
                self.logger.warning("Unification unavailable, falling back to placeholders: %s", exc)
                unavailable = str(exc)
                suggestions.append(build_placeholder(group, reason=unavailable))
                continue
            except UnificationReplyError as exc:
                self.logger.warning("Unusable unification reply for %s: %s", group.relative_path, exc)
                suggestions.append(build_placeholder(group, reason=str(exc)))
                continue
            suggestions.append(
                UnificationSuggestion(
                    relative_path=group.relative_path,
                    merged_text=merged,
                    rationale=rationale,
                )
            )
        return suggestions

    def apply(
        self, suggestions: Sequence[UnificationSuggestion], target: Component
    ) -> int:
        """Write accepted merged contents into the target component; return the count."""
        target_root = self._component_root(target)
        applied = 0
        for suggestion in suggestions:
            if suggestion.placeholder or not suggestion.merged_text:
                self.logger.debug("Skipping %s: no merged text", suggestion.relative_path)
                continue
            destination = self._inside(target_root, suggestion.relative_path)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(suggestion.merged_text, encoding="utf-8")
            applied += 1
        self.logger.info("Applied %d unified file(s) to %s", applied, target.name or target.path)
        return applied

    # ------------------------------------------------------------------
    # Helpers

    def _bounded(self, entry: FileVersion) -> FileVersion:
        if len(entry.content) <= self.max_chars:
            return entry
        return FileVersion(
            component=entry.component,
            absolute_path=entry.absolute_path,
            content=entry.content[: self.max_chars],
        )

    def _component_root(self, component: Component) -> Path:
        return self._inside(self.root, component.path)

    @staticmethod
    def _inside(base: Path, relative: str) -> Path:
        candidate = (base / relative).resolve()
        if candidate != base and base not in candidate.parents:
            raise ValueError(f"Path escapes {base}: {relative}")
        return candidate

    def _iter_source_files(self, root: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
            current = Path(dirpath)
            for filename in sorted(filenames):
                if Path(filename).suffix.lower() in self.extensions:
                    yield current / filename


__all__ = ["FileUnificationOrchestrator", "Unifier"]
