"""Tests for the GitHub REST client."""

from __future__ import annotations

import base64
import io
import json
from typing import Any, Dict, List
from urllib.error import HTTPError, URLError

import pytest

from harmonizer.errors import ConfigError, RemoteAPIError
from harmonizer.github.client import GitHubClient, GitHubRequest


class _Recorder:
    def __init__(self, responses: Dict[str, Any]) -> None:
        self.responses = responses
        self.requests: List[GitHubRequest] = []

    def __call__(self, request: GitHubRequest) -> Any:
        self.requests.append(request)
        return self.responses.get(f"{request.method} {request.path}", {})


def test_get_repo_meta_resolves_branch_and_tree() -> None:
    transport = _Recorder(
        {
            "GET /repos/acme/mono": {"default_branch": "trunk"},
            "GET /repos/acme/mono/branches/trunk": {
                "commit": {"sha": "c0ffee", "commit": {"tree": {"sha": "7ree"}}}
            },
        }
    )
    client = GitHubClient("acme/mono", "token", transport=transport)

    meta = client.get_repo_meta()

    assert meta.default_branch == "trunk"
    assert meta.default_branch_sha == "c0ffee"
    assert meta.base_tree_sha == "7ree"
    assert meta.full_name == "acme/mono"


def test_get_repo_meta_honours_branch_override() -> None:
    transport = _Recorder(
        {
            "GET /repos/acme/mono": {"default_branch": "main"},
            "GET /repos/acme/mono/branches/release": {"commit": {"sha": "abc"}},
        }
    )
    client = GitHubClient("acme/mono", "token", transport=transport)

    meta = client.get_repo_meta("release")

    assert meta.default_branch == "release"
    assert meta.base_tree_sha == "abc"


def test_get_file_content_decodes_base64() -> None:
    encoded = base64.b64encode(b'{"name": "web"}').decode("ascii")
    wrapped = encoded[:8] + "\n" + encoded[8:]
    transport = _Recorder(
        {"GET /repos/acme/mono/contents/apps/web/package.json?ref=abc": {"content": wrapped}}
    )
    client = GitHubClient("acme/mono", "token", transport=transport)

    assert client.get_file_content("apps/web/package.json", ref="abc") == '{"name": "web"}'


def test_get_file_content_without_inline_content_raises() -> None:
    client = GitHubClient("acme/mono", "token", transport=_Recorder({}))

    with pytest.raises(RemoteAPIError) as excinfo:
        client.get_file_content("apps/big/package.json")

    assert excinfo.value.path == "/repos/acme/mono/contents/apps/big/package.json"


def test_get_file_content_rejects_corrupt_base64() -> None:
    transport = _Recorder(
        {"GET /repos/acme/mono/contents/apps/web/package.json": {"content": "not*base64"}}
    )
    client = GitHubClient("acme/mono", "token", transport=transport)

    with pytest.raises(RemoteAPIError):
        client.get_file_content("apps/web/package.json")


def test_write_endpoints_send_expected_payloads() -> None:
    transport = _Recorder({})
    client = GitHubClient("acme/mono", "token", transport=transport)

    client.create_ref("refs/heads/feature", "base")
    client.create_blob("content\n")
    client.create_tree("tree0", [{"path": "a", "mode": "100644", "type": "blob", "sha": "b1"}])
    client.create_commit("title", "tree1", ["base"])
    client.update_ref("feature", "commit1")
    client.create_pull_request("title", "feature", "main", "body")

    calls = [(r.method, r.path, json.loads(r.body or b"null")) for r in transport.requests]
    assert calls == [
        ("POST", "/repos/acme/mono/git/refs", {"ref": "refs/heads/feature", "sha": "base"}),
        ("POST", "/repos/acme/mono/git/blobs", {"content": "content\n", "encoding": "utf-8"}),
        (
            "POST",
            "/repos/acme/mono/git/trees",
            {
                "base_tree": "tree0",
                "tree": [{"path": "a", "mode": "100644", "type": "blob", "sha": "b1"}],
            },
        ),
        (
            "POST",
            "/repos/acme/mono/git/commits",
            {"message": "title", "tree": "tree1", "parents": ["base"]},
        ),
        ("PATCH", "/repos/acme/mono/git/refs/heads/feature", {"sha": "commit1", "force": True}),
        (
            "POST",
            "/repos/acme/mono/pulls",
            {"title": "title", "head": "feature", "base": "main", "body": "body"},
        ),
    ]
    headers = transport.requests[0].headers
    assert headers["Authorization"] == "Bearer token"
    assert headers["Accept"] == "application/vnd.github+json"
    assert headers["Content-Type"] == "application/json"


def test_missing_token_is_a_config_error() -> None:
    client = GitHubClient("acme/mono", None, transport=_Recorder({}))

    with pytest.raises(ConfigError):
        client.get_tree("abc")


@pytest.mark.parametrize("repo", [None, "", "acme", "acme/mono/extra", "/mono", "acme/"])
def test_invalid_repo_identifier_is_rejected(repo) -> None:
    with pytest.raises(ConfigError):
        GitHubClient(repo, "token")


def test_http_transport_posts_json(monkeypatch) -> None:
    captured: Dict[str, Any] = {}

    class FakeResponse:
        def read(self):
            return json.dumps({"sha": "b1"}).encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["method"] = request.get_method()
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse()

    monkeypatch.setattr("harmonizer.github.client.urlopen", fake_urlopen)

    client = GitHubClient(
        "acme/mono", "secret", api_url="https://ghe.example.com/api/v3/", request_timeout=12.0
    )
    result = client.create_blob("hello")

    assert result == {"sha": "b1"}
    assert captured["url"] == "https://ghe.example.com/api/v3/repos/acme/mono/git/blobs"
    assert captured["method"] == "POST"
    assert captured["headers"]["authorization"] == "Bearer secret"
    assert captured["headers"]["user-agent"] == "code-harmonizer/1.0"
    assert captured["payload"] == {"content": "hello", "encoding": "utf-8"}
    assert captured["timeout"] == 12.0


def test_http_transport_surfaces_status_and_body(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise HTTPError(
            request.full_url, 422, "Unprocessable", {}, io.BytesIO(b'{"message":"Reference already exists"}')
        )

    monkeypatch.setattr("harmonizer.github.client.urlopen", fake_urlopen)
    client = GitHubClient("acme/mono", "secret")

    with pytest.raises(RemoteAPIError) as excinfo:
        client.create_ref("refs/heads/x", "abc")

    assert excinfo.value.status == 422
    assert excinfo.value.path == "/repos/acme/mono/git/refs"
    assert "Reference already exists" in str(excinfo.value)
    assert str(excinfo.value).startswith("GitHub API error for /repos/acme/mono/git/refs: 422")


def test_http_transport_wraps_connection_errors(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr("harmonizer.github.client.urlopen", fake_urlopen)
    client = GitHubClient("acme/mono", "secret")

    with pytest.raises(RemoteAPIError) as excinfo:
        client.get_tree("abc")

    assert excinfo.value.status is None
    assert "connection refused" in str(excinfo.value)
