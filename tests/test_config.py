"""Tests for harmonizer.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from harmonizer.config import (
    DEFAULT_API_URL,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_CHARS,
    HarmonizerConfig,
    load_config,
)
from harmonizer.errors import ConfigError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path, env={})

    assert isinstance(config, HarmonizerConfig)
    assert config.paths == ["apps", "packages"]
    assert config.github.repo is None
    assert config.github.token is None
    assert config.github.default_branch is None
    assert config.github.api_url == DEFAULT_API_URL
    assert config.github.branch_prefix == "code-harmonizer"
    assert config.unify.repo_root is None
    assert config.unify.api_key is None
    assert config.unify.extensions == list(DEFAULT_EXTENSIONS)
    assert config.unify.max_chars == DEFAULT_MAX_CHARS
    assert config.request_timeout == pytest.approx(30.0)


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".harmonizer.yml"
    config_file.write_text(
        """
paths:
  - apps
  - libs
request_timeout: 12
github:
  repo: "acme/mono"
  default_branch: "trunk"
  api_url: "https://ghe.example.com/api/v3"
  branch_prefix: "sync"
unify:
  repo_root: "~/src/mono"
  model: "gpt-4o-mini"
  extensions: [ts, ".vue"]
  max_chars: 4000
""",
        encoding="utf-8",
    )

    config = load_config(config_file, env={})

    assert config.paths == ["apps", "libs"]
    assert config.request_timeout == pytest.approx(12.0)
    assert config.github.repo == "acme/mono"
    assert config.github.default_branch == "trunk"
    assert config.github.api_url == "https://ghe.example.com/api/v3"
    assert config.github.branch_prefix == "sync"
    assert config.unify.repo_root == Path("~/src/mono").expanduser()
    assert config.unify.model == "gpt-4o-mini"
    assert config.unify.extensions == [".ts", ".vue"]
    assert config.unify.max_chars == 4000


def test_directory_argument_reads_default_filename(tmp_path: Path) -> None:
    (tmp_path / ".harmonizer.yml").write_text("paths: [services]\n", encoding="utf-8")

    config = load_config(tmp_path, env={})

    assert config.paths == ["services"]


def test_environment_overrides_file_values(tmp_path: Path) -> None:
    config_file = tmp_path / ".harmonizer.yml"
    config_file.write_text(
        "github:\n  repo: acme/from-file\n  token: file-token\n",
        encoding="utf-8",
    )

    config = load_config(
        config_file,
        env={
            "GITHUB_REPO": "acme/from-env",
            "GITHUB_DEFAULT_BRANCH": "develop",
            "GITHUB_API_URL": "https://ghe.example.com/api/v3/",
            "REPO_ROOT": str(tmp_path),
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_MODEL": "gpt-4.1",
            "OPENAI_BASE_URL": "http://localhost:8000/v1",
        },
    )

    assert config.github.repo == "acme/from-env"
    assert config.github.token == "file-token"
    assert config.github.default_branch == "develop"
    assert config.github.api_url == "https://ghe.example.com/api/v3"
    assert config.unify.repo_root == tmp_path
    assert config.unify.api_key == "sk-test"
    assert config.unify.model == "gpt-4.1"
    assert config.unify.base_url == "http://localhost:8000/v1"


def test_empty_environment_values_do_not_clear_file_values(tmp_path: Path) -> None:
    config_file = tmp_path / ".harmonizer.yml"
    config_file.write_text("github:\n  token: file-token\n", encoding="utf-8")

    config = load_config(config_file, env={"GITHUB_TOKEN": ""})

    assert config.github.token == "file-token"


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    config_file = tmp_path / ".harmonizer.yml"
    config_file.write_text("github: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_file, env={})


def test_non_mapping_root_raises_config_error(tmp_path: Path) -> None:
    config_file = tmp_path / ".harmonizer.yml"
    config_file.write_text("- apps\n- packages\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_file, env={})

