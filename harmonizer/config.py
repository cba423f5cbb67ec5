"""Configuration loading for code-harmonizer (.harmonizer.yml + environment)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".harmonizer.yml"
DEFAULT_PATHS = ("apps", "packages")
DEFAULT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH_PREFIX = "code-harmonizer"
DEFAULT_MAX_CHARS = 12000
DEFAULT_TIMEOUT = 30.0


@dataclass
class GitHubConfig:
    """Remote repository settings."""

    repo: Optional[str] = None
    default_branch: Optional[str] = None
    token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    branch_prefix: str = DEFAULT_BRANCH_PREFIX


@dataclass
class UnifyConfig:
    """File unification settings."""

    repo_root: Optional[Path] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    max_chars: int = DEFAULT_MAX_CHARS


@dataclass
class HarmonizerConfig:
    """Effective process configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    unify: UnifyConfig = field(default_factory=UnifyConfig)
    paths: List[str] = field(default_factory=lambda: list(DEFAULT_PATHS))
    request_timeout: float = DEFAULT_TIMEOUT


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> HarmonizerConfig:
    """Load configuration from an optional YAML file, overlaid with environment variables."""
    environ = os.environ if env is None else env
    data: Dict[str, Any] = {}
    config_file = _resolve_config_path(config_path)
    if config_file is not None and config_file.exists():
        data = _read_config(config_file)

    github_data = _as_dict(data.get("github"))
    unify_data = _as_dict(data.get("unify"))

    github = GitHubConfig(
        repo=_as_str(github_data.get("repo")),
        default_branch=_as_str(github_data.get("default_branch")),
        token=_as_str(github_data.get("token")),
        api_url=_as_str(github_data.get("api_url")) or DEFAULT_API_URL,
        branch_prefix=_as_str(github_data.get("branch_prefix")) or DEFAULT_BRANCH_PREFIX,
    )

    repo_root = _as_str(unify_data.get("repo_root"))
    extensions = _as_str_list(unify_data.get("extensions"))
    unify = UnifyConfig(
        repo_root=Path(repo_root).expanduser() if repo_root else None,
        api_key=_as_str(unify_data.get("api_key")),
        model=_as_str(unify_data.get("model")),
        base_url=_as_str(unify_data.get("base_url")),
        extensions=[_normalise_extension(ext) for ext in extensions] or list(DEFAULT_EXTENSIONS),
        max_chars=_as_int(unify_data.get("max_chars")) or DEFAULT_MAX_CHARS,
    )

    config = HarmonizerConfig(
        github=github,
        unify=unify,
        paths=_as_str_list(data.get("paths")) or list(DEFAULT_PATHS),
        request_timeout=_as_float(data.get("request_timeout")) or DEFAULT_TIMEOUT,
    )
    _apply_env(config, environ)
    return config


def _apply_env(config: HarmonizerConfig, env: Mapping[str, str]) -> None:
    github = config.github
    github.repo = env.get("GITHUB_REPO") or github.repo
    github.default_branch = env.get("GITHUB_DEFAULT_BRANCH") or github.default_branch
    github.token = env.get("GITHUB_TOKEN") or github.token
    github.api_url = (env.get("GITHUB_API_URL") or github.api_url).rstrip("/")

    unify = config.unify
    repo_root = env.get("REPO_ROOT")
    if repo_root:
        unify.repo_root = Path(repo_root).expanduser()
    unify.api_key = env.get("OPENAI_API_KEY") or unify.api_key
    unify.model = env.get("OPENAI_MODEL") or unify.model
    unify.base_url = env.get("OPENAI_BASE_URL") or unify.base_url


def _resolve_config_path(config_path: Path | None) -> Path | None:
    if config_path is None:
        return (Path.cwd() / CONFIG_FILENAME).resolve()
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _normalise_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
