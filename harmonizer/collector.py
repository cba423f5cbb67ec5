"""Manifest discovery and module tagging."""

from __future__ import annotations

import json
import os
import posixpath
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from .errors import CollectionError
from .github.client import GitHubClient
from .logging import get_logger
from .models import Module

MANIFEST_FILENAME = "package.json"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    ".turbo",
    ".next",
    "dist",
}

_KIND_BY_PREFIX = (
    ("apps/", "app"),
    ("packages/", "package"),
)


class ManifestSource(Protocol):
    """Where manifests are listed and read from."""

    def list_paths(self) -> List[str]: ...

    def read_text(self, path: str) -> str: ...


class GitHubManifestSource:
    """Reads manifests from a remote tree at a fixed commit."""

    def __init__(self, client: GitHubClient, sha: str) -> None:
        self.client = client
        self.sha = sha

    def list_paths(self) -> List[str]:
        return [
            str(item["path"])
            for item in self.client.get_tree(self.sha)
            if item.get("type") == "blob" and isinstance(item.get("path"), str)
        ]

    def read_text(self, path: str) -> str:
        return self.client.get_file_content(path, ref=self.sha)


class LocalManifestSource:
    """Reads manifests from a local checkout."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise FileNotFoundError(f"Repository path not found: {root}")

    def list_paths(self) -> List[str]:
        return list(self._iter_paths())

    def read_text(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")

    def _iter_paths(self) -> Iterator[str]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
            current = Path(dirpath)
            for filename in sorted(filenames):
                yield (current / filename).relative_to(self.root).as_posix()


class ManifestCollector:
    """Builds the module list for a set of root path prefixes."""

    def __init__(self) -> None:
        self.logger = get_logger("collector")

    def collect(self, source: ManifestSource, paths: Sequence[str]) -> List[Module]:
        prefixes = [prefix.strip().strip("/") for prefix in paths if prefix and prefix.strip("/")]
        modules: List[Module] = []
        for path in source.list_paths():
            if not is_manifest_path(path, prefixes):
                continue
            manifest: Optional[Dict[str, Any]]
            try:
                manifest = self._load(source, path)
            except CollectionError as exc:
                self.logger.warning("Treating %s as an empty module: %s", path, exc)
                manifest = None
            modules.append(build_module(path, manifest))
        self.logger.info("Collected %d module(s) under %s", len(modules), ", ".join(prefixes))
        return modules

    @staticmethod
    def _load(source: ManifestSource, path: str) -> Dict[str, Any]:
        try:
            text = source.read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise CollectionError(f"unable to read manifest: {exc}") from exc
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise CollectionError(f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CollectionError("manifest root is not an object")
        return data


def is_manifest_path(path: str, prefixes: Sequence[str]) -> bool:
    if posixpath.basename(path) != MANIFEST_FILENAME:
        return False
    return any(path.startswith(f"{prefix}/") for prefix in prefixes)


def build_module(path: str, manifest: Optional[Dict[str, Any]]) -> Module:
    declared = manifest.get("name") if manifest else None
    name = declared if isinstance(declared, str) and declared else guess_module_name(path)
    return Module(path=path, name=name, kind=infer_module_kind(path), manifest=manifest)


def guess_module_name(path: str) -> str:
    parts = path.split("/")
    if len(parts) >= 2:
        return parts[-2]
    return path.replace(f"/{MANIFEST_FILENAME}", "")


def infer_module_kind(path: str) -> str:
    for prefix, kind in _KIND_BY_PREFIX:
        if path.startswith(prefix):
            return kind
    return "unknown"


__all__ = [
    "GitHubManifestSource",
    "LocalManifestSource",
    "ManifestCollector",
    "ManifestSource",
    "build_module",
    "guess_module_name",
    "infer_module_kind",
]
