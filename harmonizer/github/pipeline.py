"""Branch, commit and pull request creation over the GitHub git data API.

The pipeline is a fixed sequence of phases. Each phase issues exactly one kind
of remote call and feeds its output to the next one. Nothing is rolled back:
when a phase fails, whatever earlier phases created (the branch ref, blobs, a
tree or a dangling commit) stays on the remote, and the raised
:class:`~harmonizer.errors.PipelineError` records what exists so callers can
inspect the repository before retrying.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..config import DEFAULT_BRANCH_PREFIX
from ..errors import PipelineError, RemoteAPIError
from ..logging import get_logger
from ..models import CommitFile
from .client import RepositoryAPI

FILE_MODE = "100644"


class Phase(Enum):
    CREATE_BRANCH = "create_branch"
    CREATE_BLOBS = "create_blobs"
    CREATE_TREE = "create_tree"
    CREATE_COMMIT = "create_commit"
    UPDATE_REF = "update_ref"
    OPEN_PULL_REQUEST = "open_pull_request"
    DONE = "done"


_TRANSITIONS: Dict[Phase, Phase] = {
    Phase.CREATE_BRANCH: Phase.CREATE_BLOBS,
    Phase.CREATE_BLOBS: Phase.CREATE_TREE,
    Phase.CREATE_TREE: Phase.CREATE_COMMIT,
    Phase.CREATE_COMMIT: Phase.UPDATE_REF,
    Phase.UPDATE_REF: Phase.OPEN_PULL_REQUEST,
    Phase.OPEN_PULL_REQUEST: Phase.DONE,
}


def next_phase(phase: Phase) -> Phase:
    """Return the phase that follows ``phase``."""
    if phase is Phase.DONE:
        raise ValueError("commit pipeline already finished")
    return _TRANSITIONS[phase]


@dataclass
class PipelineState:
    """Everything the pipeline has produced so far."""

    base_sha: str
    base_tree_sha: str
    base_branch: str
    branch: str
    files: List[CommitFile]
    title: str
    body: str
    branch_created: bool = False
    tree_entries: List[Dict[str, str]] = field(default_factory=list)
    tree_sha: str = ""
    commit_sha: str = ""
    pr_number: Optional[int] = None
    pr_url: Optional[str] = None

    @property
    def branch_ref(self) -> str:
        return f"refs/heads/{self.branch}"


@dataclass
class CommitResult:
    """Outcome of a fully completed pipeline run."""

    branch: str
    commit_sha: str
    pr_number: Optional[int]
    pr_url: Optional[str]

    def pr_dict(self) -> Dict[str, object]:
        return {"prNumber": self.pr_number, "prUrl": self.pr_url, "commitSha": self.commit_sha}


class BranchNamer:
    """Generates ``<prefix>-<epoch ms>`` names, strictly increasing within a process."""

    def __init__(self, prefix: str = DEFAULT_BRANCH_PREFIX) -> None:
        self.prefix = prefix.strip().replace(" ", "-").rstrip("-/") or DEFAULT_BRANCH_PREFIX
        self._lock = threading.Lock()
        self._last = 0

    def __call__(self) -> str:
        with self._lock:
            stamp = max(int(time.time() * 1000), self._last + 1)
            self._last = stamp
        return f"{self.prefix}-{stamp}"


def _require_sha(response: Dict[str, object], endpoint: str) -> str:
    sha = response.get("sha")
    if not isinstance(sha, str) or not sha:
        raise RemoteAPIError(endpoint, None, "response has no sha")
    return sha


class RemoteCommitPipeline:
    """Drives the six-phase commit protocol against a :class:`RepositoryAPI`."""

    def __init__(self, api: RepositoryAPI, *, branch_namer: BranchNamer | None = None) -> None:
        self.api = api
        self.branch_namer = branch_namer or BranchNamer()
        self.logger = get_logger("pipeline")

    def commit(
        self,
        base_sha: str,
        base_branch: str,
        files: Sequence[CommitFile],
        title: str,
        body: str,
        *,
        base_tree_sha: str | None = None,
    ) -> CommitResult:
        state = PipelineState(
            base_sha=base_sha,
            base_tree_sha=base_tree_sha or base_sha,
            base_branch=base_branch,
            branch=self.branch_namer(),
            files=list(files),
            title=title,
            body=body,
        )
        phase = Phase.CREATE_BRANCH
        while phase is not Phase.DONE:
            try:
                self._run_phase(phase, state)
            except RemoteAPIError as exc:
                self.logger.error(
                    "Commit pipeline failed during %s (branch created: %s): %s",
                    phase.value,
                    state.branch_created,
                    exc,
                )
                raise PipelineError(phase, state, exc) from exc
            phase = next_phase(phase)

        return CommitResult(
            branch=state.branch,
            commit_sha=state.commit_sha,
            pr_number=state.pr_number,
            pr_url=state.pr_url,
        )

    def _run_phase(self, phase: Phase, state: PipelineState) -> None:
        handler = {
            Phase.CREATE_BRANCH: self._create_branch,
            Phase.CREATE_BLOBS: self._create_blobs,
            Phase.CREATE_TREE: self._create_tree,
            Phase.CREATE_COMMIT: self._create_commit,
            Phase.UPDATE_REF: self._update_ref,
            Phase.OPEN_PULL_REQUEST: self._open_pull_request,
        }[phase]
        handler(state)

    def _create_branch(self, state: PipelineState) -> None:
        self.logger.info("Creating branch %s at %s", state.branch, state.base_sha)
        self.api.create_ref(state.branch_ref, state.base_sha)
        state.branch_created = True

    def _create_blobs(self, state: PipelineState) -> None:
        for item in state.files:
            blob_sha = _require_sha(self.api.create_blob(item.content), "git/blobs")
            state.tree_entries.append(
                {"path": item.path, "mode": FILE_MODE, "type": "blob", "sha": blob_sha}
            )
        self.logger.debug("Uploaded %d blob(s)", len(state.tree_entries))

    def _create_tree(self, state: PipelineState) -> None:
        tree = self.api.create_tree(state.base_tree_sha, state.tree_entries)
        state.tree_sha = _require_sha(tree, "git/trees")

    def _create_commit(self, state: PipelineState) -> None:
        commit = self.api.create_commit(state.title, state.tree_sha, [state.base_sha])
        state.commit_sha = _require_sha(commit, "git/commits")
        self.logger.info("Created commit %s", state.commit_sha)

    def _update_ref(self, state: PipelineState) -> None:
        self.api.update_ref(state.branch, state.commit_sha, force=True)

    def _open_pull_request(self, state: PipelineState) -> None:
        pr = self.api.create_pull_request(state.title, state.branch, state.base_branch, state.body)
        number = pr.get("number")
        state.pr_number = number if isinstance(number, int) else None
        url = pr.get("html_url")
        state.pr_url = url if isinstance(url, str) else None
        self.logger.info("Opened pull request %s", state.pr_url or state.pr_number)


__all__ = [
    "BranchNamer",
    "CommitResult",
    "Phase",
    "PipelineState",
    "RemoteCommitPipeline",
    "next_phase",
]
