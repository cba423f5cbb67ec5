"""GitHub REST client and the remote commit pipeline."""

from .client import GitHubClient, RepositoryAPI
from .pipeline import CommitResult, Phase, RemoteCommitPipeline

__all__ = ["CommitResult", "GitHubClient", "Phase", "RemoteCommitPipeline", "RepositoryAPI"]
