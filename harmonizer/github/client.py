"""Thin GitHub REST client covering the repository, git data and pulls endpoints."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..config import DEFAULT_API_URL, DEFAULT_TIMEOUT
from ..errors import ConfigError, RemoteAPIError
from ..logging import get_logger
from ..models import RepoMeta

USER_AGENT = "code-harmonizer/1.0"

_LOGGER = get_logger("github")


@dataclass
class GitHubRequest:
    """Represents one call against the GitHub REST API."""

    method: str
    path: str
    url: str
    headers: Dict[str, str]
    body: Optional[bytes]
    timeout: float


class RepositoryAPI(Protocol):
    """Remote calls the commit pipeline depends on."""

    def create_ref(self, ref: str, sha: str) -> Dict[str, Any]: ...

    def create_blob(self, content: str) -> Dict[str, Any]: ...

    def create_tree(self, base_tree: str, entries: Sequence[Dict[str, str]]) -> Dict[str, Any]: ...

    def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> Dict[str, Any]: ...

    def update_ref(self, branch: str, sha: str, *, force: bool = True) -> Dict[str, Any]: ...

    def create_pull_request(self, title: str, head: str, base: str, body: str) -> Dict[str, Any]: ...


class GitHubClient:
    """Issues authenticated JSON requests against a single repository."""

    def __init__(
        self,
        repo: str | None,
        token: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: float = DEFAULT_TIMEOUT,
        transport: Callable[[GitHubRequest], Any] | None = None,
    ) -> None:
        owner, _, name = (repo or "").partition("/")
        if not owner or not name or "/" in name:
            raise ConfigError("GITHUB_REPO must be configured as 'owner/repo'")
        self.owner, self.repo = owner, name
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self._transport = transport or self._http_transport

    # ------------------------------------------------------------------
    # Read endpoints

    def get_repo_meta(self, default_branch: str | None = None) -> RepoMeta:
        """Resolve the base branch name, its tip sha and the tip's tree sha."""
        repo_info = self.request("GET", self._repo_path())
        branch_name = default_branch or str(repo_info.get("default_branch") or "main")
        branch_info = self.request(
            "GET", self._repo_path(f"/branches/{quote(branch_name, safe='')}")
        )
        commit = branch_info.get("commit") or {}
        sha = str(commit.get("sha") or "")
        if not sha:
            raise RemoteAPIError(f"branches/{branch_name}", None, "branch has no commit sha")
        tree = (commit.get("commit") or {}).get("tree") or {}
        return RepoMeta(
            owner=self.owner,
            repo=self.repo,
            default_branch=branch_name,
            default_branch_sha=sha,
            base_tree_sha=str(tree.get("sha") or sha),
        )

    def get_tree(self, sha: str) -> List[Dict[str, Any]]:
        """Return the recursive tree listing for ``sha``."""
        payload = self.request("GET", self._repo_path(f"/git/trees/{sha}?recursive=1"))
        if payload.get("truncated"):
            _LOGGER.warning("Tree listing for %s was truncated by GitHub", sha)
        tree = payload.get("tree")
        return tree if isinstance(tree, list) else []

    def get_file_content(self, path: str, ref: str | None = None) -> str:
        """Return the decoded text of ``path`` from the contents API."""
        suffix = f"/contents/{quote(path, safe='/')}"
        if ref:
            suffix += f"?ref={quote(ref, safe='')}"
        api_path = self._repo_path(suffix)
        payload = self.request("GET", api_path)
        content = payload.get("content")
        if not isinstance(content, str):
            # Files above the contents API size limit come back without inline content.
            raise RemoteAPIError(api_path, None, "response has no inline content")
        try:
            raw = base64.b64decode(content.replace("\n", ""), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise RemoteAPIError(api_path, None, "content is not valid base64") from exc
        return raw.decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Write endpoints

    def create_ref(self, ref: str, sha: str) -> Dict[str, Any]:
        return self.request("POST", self._repo_path("/git/refs"), {"ref": ref, "sha": sha})

    def create_blob(self, content: str) -> Dict[str, Any]:
        return self.request(
            "POST", self._repo_path("/git/blobs"), {"content": content, "encoding": "utf-8"}
        )

    def create_tree(self, base_tree: str, entries: Sequence[Dict[str, str]]) -> Dict[str, Any]:
        return self.request(
            "POST",
            self._repo_path("/git/trees"),
            {"base_tree": base_tree, "tree": list(entries)},
        )

    def create_commit(self, message: str, tree: str, parents: Sequence[str]) -> Dict[str, Any]:
        return self.request(
            "POST",
            self._repo_path("/git/commits"),
            {"message": message, "tree": tree, "parents": list(parents)},
        )

    def update_ref(self, branch: str, sha: str, *, force: bool = True) -> Dict[str, Any]:
        return self.request(
            "PATCH",
            self._repo_path(f"/git/refs/heads/{branch}"),
            {"sha": sha, "force": force},
        )

    def create_pull_request(self, title: str, head: str, base: str, body: str) -> Dict[str, Any]:
        return self.request(
            "POST",
            self._repo_path("/pulls"),
            {"title": title, "head": head, "base": base, "body": body},
        )

    # ------------------------------------------------------------------
    # Transport

    def request(self, method: str, path: str, body: Any = None) -> Dict[str, Any]:
        """Send a request and return the decoded JSON object."""
        if not self.token:
            raise ConfigError("Missing GITHUB_TOKEN in environment")
        headers = {
            "Authorization": f"Bearer {self.token}",
            "User-Agent": USER_AGENT,
            "Accept": "application/vnd.github+json",
        }
        data: Optional[bytes] = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        request = GitHubRequest(
            method=method,
            path=path,
            url=f"{self.api_url}{path}",
            headers=headers,
            body=data,
            timeout=self.request_timeout,
        )
        _LOGGER.debug("%s %s", method, path)
        payload = self._transport(request)
        return payload if isinstance(payload, dict) else {}

    def _repo_path(self, suffix: str = "") -> str:
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    @staticmethod
    def _http_transport(request: GitHubRequest) -> Any:
        http_request = Request(
            request.url, data=request.body, headers=request.headers, method=request.method
        )
        try:
            with urlopen(http_request, timeout=request.timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            raise RemoteAPIError(request.path, exc.code, detail.strip() or str(exc.reason)) from exc
        except URLError as exc:
            raise RemoteAPIError(request.path, None, str(exc.reason)) from exc

        if not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RemoteAPIError(request.path, None, "response was not valid JSON") from exc


__all__ = ["GitHubClient", "GitHubRequest", "RepositoryAPI", "USER_AGENT"]
