"""Request-level orchestration for plan, apply and file unification flows."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from .collector import GitHubManifestSource, ManifestCollector, ManifestSource
from .config import HarmonizerConfig, load_config
from .errors import ConfigError
from .github.client import GitHubClient
from .github.pipeline import BranchNamer, CommitResult, RemoteCommitPipeline
from .harmonize import build_commit_plan, harmonize
from .logging import get_logger
from .models import (
    Component,
    FileVersionGroup,
    Module,
    Reconciliation,
    UnificationSuggestion,
)
from .reconcile import ReconciliationEngine
from .unify.llm import LLMUnifier
from .unify.orchestrator import FileUnificationOrchestrator, Unifier

DEFAULT_APPLY_MESSAGE = "code-harmonizer auto apply"


@dataclass
class PlanOutcome:
    """Result of a dry-run reconciliation."""

    repo: str
    default_branch: str
    modules: List[Module]
    reconciliation: Reconciliation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "mode": "plan",
            "repo": self.repo,
            "defaultBranch": self.default_branch,
            "summary": self.reconciliation.summary.to_dict(),
            "suggestions": self.reconciliation.suggestions_dict(),
            "modules": [module.to_dict() for module in self.modules],
        }


@dataclass
class ApplyOutcome(PlanOutcome):
    """Result of a reconciliation committed as a pull request."""

    commit: Optional[CommitResult] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["mode"] = "apply"
        if self.commit is not None:
            payload["branch"] = self.commit.branch
            payload["pr"] = self.commit.pr_dict()
        return payload


@dataclass
class PreviewOutcome:
    """Shared-path groups and the proposed unified versions."""

    diffs: List[FileVersionGroup]
    suggestions: List[UnificationSuggestion]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "result": {
                "diffs": [group.to_dict() for group in self.diffs],
                "suggestions": [suggestion.to_dict() for suggestion in self.suggestions],
            },
        }


class Harmonizer:
    """Coordinates collection, reconciliation, commit and unification for one request."""

    def __init__(
        self,
        config: HarmonizerConfig | None = None,
        *,
        client_factory: Callable[[HarmonizerConfig], GitHubClient] | None = None,
        unifier: Unifier | None = None,
        collector: ManifestCollector | None = None,
        engine: ReconciliationEngine | None = None,
    ) -> None:
        self.config = config or load_config()
        self._client_factory = client_factory or _default_client
        self._unifier = unifier
        self.collector = collector or ManifestCollector()
        self.engine = engine or ReconciliationEngine()
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Manifest flows

    def plan(self, paths: Sequence[str] | None = None) -> PlanOutcome:
        """Collect and reconcile manifests without writing anything."""
        client = self._client_factory(self.config)
        meta = client.get_repo_meta(self.config.github.default_branch)
        self.logger.info("Planning harmonization for %s@%s", meta.full_name, meta.default_branch)
        modules = self._collect(GitHubManifestSource(client, meta.default_branch_sha), paths)
        return PlanOutcome(
            repo=meta.full_name,
            default_branch=meta.default_branch,
            modules=modules,
            reconciliation=self.engine.reconcile(modules),
        )

    def plan_local(self, source: ManifestSource, paths: Sequence[str] | None = None) -> PlanOutcome:
        """Reconcile manifests read from an arbitrary source, e.g. a local checkout."""
        modules = self._collect(source, paths)
        return PlanOutcome(
            repo=str(getattr(source, "root", "")),
            default_branch="",
            modules=modules,
            reconciliation=self.engine.reconcile(modules),
        )

    def apply(
        self,
        paths: Sequence[str] | None = None,
        apply_message: str | None = None,
    ) -> ApplyOutcome:
        """Reconcile, harmonize and commit the result as a new pull request."""
        client = self._client_factory(self.config)
        meta = client.get_repo_meta(self.config.github.default_branch)
        self.logger.info("Applying harmonization to %s@%s", meta.full_name, meta.default_branch)
        modules = self._collect(GitHubManifestSource(client, meta.default_branch_sha), paths)
        reconciliation = self.engine.reconcile(modules)
        harmonized = harmonize(
            modules,
            reconciliation.script_decisions(),
            reconciliation.dependency_decisions(),
        )

        title = build_pr_title()
        body = build_pr_body(reconciliation, apply_message or DEFAULT_APPLY_MESSAGE)
        pipeline = RemoteCommitPipeline(
            client, branch_namer=BranchNamer(self.config.github.branch_prefix)
        )
        commit = pipeline.commit(
            meta.default_branch_sha,
            meta.default_branch,
            build_commit_plan(harmonized),
            title,
            body,
            base_tree_sha=meta.base_tree_sha,
        )
        return ApplyOutcome(
            repo=meta.full_name,
            default_branch=meta.default_branch,
            modules=modules,
            reconciliation=reconciliation,
            commit=commit,
        )

    # ------------------------------------------------------------------
    # File unification flows

    def preview(self, components: Sequence[Component]) -> PreviewOutcome:
        unification = self._unification()
        diffs = unification.collect_diffs(components)
        return PreviewOutcome(diffs=diffs, suggestions=unification.build_suggestions(diffs))

    def apply_unified(
        self, suggestions: Sequence[UnificationSuggestion], target: Component
    ) -> int:
        return self._unification().apply(suggestions, target)

    # ------------------------------------------------------------------
    # Helpers

    def _collect(self, source: ManifestSource, paths: Sequence[str] | None) -> List[Module]:
        return self.collector.collect(
            source, list(paths) if paths is not None else self.config.paths
        )

    def _unification(self) -> FileUnificationOrchestrator:
        unify_cfg = self.config.unify
        if unify_cfg.repo_root is None:
            raise ConfigError("REPO_ROOT must be configured for file unification")
        unifier = self._unifier
        if unifier is None and unify_cfg.api_key:
            unifier = LLMUnifier(
                unify_cfg.api_key,
                model=unify_cfg.model,
                base_url=unify_cfg.base_url,
            )
        if unifier is None:
            self.logger.info("No unifier configured; suggestions will be placeholders")
        return FileUnificationOrchestrator(
            Path(unify_cfg.repo_root),
            unifier,
            extensions=unify_cfg.extensions,
            max_chars=unify_cfg.max_chars,
        )


def _default_client(config: HarmonizerConfig) -> GitHubClient:
    return GitHubClient(
        config.github.repo,
        config.github.token,
        api_url=config.github.api_url,
        request_timeout=config.request_timeout,
    )


def build_pr_title(now: datetime | None = None) -> str:
    moment = (now or datetime.now(UTC)).isoformat().replace("+00:00", "Z")
    return f"code-harmonizer: monorepo sync ({moment})"


def build_pr_body(reconciliation: Reconciliation, apply_message: str) -> str:
    lines = [
        "Automatic harmonization by code-harmonizer.",
        "",
        "## Summary",
        "- scripts and dependencies unified across modules",
        "- version ranges raised to the highest declared version where modules disagreed",
        "",
        "## Technical summary",
        "```json",
        json.dumps(reconciliation.summary.to_dict(), indent=2),
        "```",
        "",
        apply_message,
    ]
    return "\n".join(lines)


__all__ = [
    "ApplyOutcome",
    "Harmonizer",
    "PlanOutcome",
    "PreviewOutcome",
    "build_pr_body",
    "build_pr_title",
]
