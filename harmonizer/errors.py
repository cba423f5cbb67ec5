"""Exception hierarchy shared across harmonizer components."""

from __future__ import annotations

from typing import Any, Optional


class HarmonizerError(RuntimeError):
    """Base class for errors raised by code-harmonizer."""


class ConfigError(HarmonizerError):
    """Raised when configuration is missing or cannot be parsed."""


class CollectionError(HarmonizerError):
    """Raised when a single manifest cannot be read or parsed.

    The collector always recovers from this error by degrading the module to
    an empty contributor; it never reaches API callers.
    """


class RemoteAPIError(HarmonizerError):
    """Raised when the repository provider returns a non-success response."""

    def __init__(self, path: str, status: Optional[int], body: str) -> None:
        self.path = path
        self.status = status
        self.body = body
        status_label = status if status is not None else "unreachable"
        super().__init__(f"GitHub API error for {path}: {status_label} {body}".rstrip())


class PipelineError(RemoteAPIError):
    """A commit pipeline phase failed after earlier phases may have mutated remote state."""

    def __init__(self, phase: Any, state: Any, cause: RemoteAPIError) -> None:
        super().__init__(cause.path, cause.status, cause.body)
        self.phase = phase
        self.state = state
        self.args = (f"{cause} (commit pipeline stopped at {phase.value})",)


class UnificationUnavailable(HarmonizerError):
    """Signals that the unification collaborator cannot be used right now."""


class UnificationReplyError(HarmonizerError):
    """The unification collaborator answered, but not with a usable merge."""


__all__ = [
    "CollectionError",
    "ConfigError",
    "HarmonizerError",
    "PipelineError",
    "RemoteAPIError",
    "UnificationReplyError",
    "UnificationUnavailable",
]
