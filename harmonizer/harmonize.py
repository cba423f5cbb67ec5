"""Write reconciliation decisions back into per-module manifests."""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, Mapping, Sequence

from .models import DEV_PREFIX, CommitFile, Module


def harmonize(
    modules: Sequence[Module],
    script_decisions: Mapping[str, str],
    dependency_decisions: Mapping[str, str],
) -> Dict[str, Dict[str, Any]]:
    """Return ``{manifest path: harmonized manifest}`` for every module.

    Script decisions are written into every module. Dependency decisions only
    overwrite keys the module already declares in the matching scope.
    """
    harmonized: Dict[str, Dict[str, Any]] = {}
    for module in modules:
        manifest = copy.deepcopy(module.manifest) if module.manifest else {}

        if script_decisions:
            scripts = manifest.setdefault("scripts", {})
            if isinstance(scripts, dict):
                scripts.update(script_decisions)

        for key, version in dependency_decisions.items():
            if key.startswith(DEV_PREFIX):
                section_name, name = "devDependencies", key[len(DEV_PREFIX):]
            else:
                section_name, name = "dependencies", key
            section = manifest.get(section_name)
            if isinstance(section, dict) and name in section:
                section[name] = version

        harmonized[module.path] = manifest
    return harmonized


def render_manifest(manifest: Mapping[str, Any]) -> str:
    """Serialize a manifest the way npm writes package.json."""
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def build_commit_plan(harmonized: Mapping[str, Mapping[str, Any]]) -> list[CommitFile]:
    return [
        CommitFile(path=path, content=render_manifest(manifest))
        for path, manifest in harmonized.items()
    ]


__all__ = ["build_commit_plan", "harmonize", "render_manifest"]
