"""CLI entrypoints for code-harmonizer commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from .collector import LocalManifestSource
from .config import load_config
from .errors import HarmonizerError, PipelineError
from .logging import configure_logging
from .models import Component
from .orchestrator import Harmonizer


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        dest="paths",
        action="append",
        default=None,
        help="Root path prefix holding module manifests (repeatable; defaults to apps and packages).",
    )


def _component(value: str) -> Component:
    name, sep, path = value.partition("=")
    if not sep:
        return Component(name=value, path=value)
    if not path:
        raise argparse.ArgumentTypeError(f"component '{value}' is missing a path")
    return Component(name=name or path, path=path)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code-harmonizer",
        description="Reconcile package manifests and shared source files across a monorepo.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .harmonizer.yml (defaults to the current directory).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also append timestamped log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser(
        "plan",
        help="Report script and dependency decisions without writing anything.",
    )
    _add_verbose_option(plan_parser, suppress_default=True)
    _add_path_option(plan_parser)
    plan_parser.add_argument(
        "--local",
        type=Path,
        default=None,
        help="Read manifests from a local checkout instead of the remote repository.",
    )

    apply_parser = subparsers.add_parser(
        "apply",
        help="Commit harmonized manifests to a new branch and open a pull request.",
    )
    _add_verbose_option(apply_parser, suppress_default=True)
    _add_path_option(apply_parser)
    apply_parser.add_argument(
        "--message",
        default=None,
        help="Extra text appended to the pull request body.",
    )

    preview_parser = subparsers.add_parser(
        "preview",
        help="Group same-path source files across components and propose unified versions.",
    )
    _add_verbose_option(preview_parser, suppress_default=True)
    preview_parser.add_argument(
        "--component",
        dest="components",
        action="append",
        type=_component,
        required=True,
        help="Component as NAME=PATH relative to REPO_ROOT (repeatable).",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for code-harmonizer commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        harmonizer = Harmonizer(load_config(args.config))
        payload = _dispatch(harmonizer, args)
    except PipelineError as exc:
        parser.exit(
            1,
            f"code-harmonizer {args.command} failed: {exc}\n"
            "The remote repository may be partially updated; check it before retrying.\n",
        )
    except (HarmonizerError, FileNotFoundError, ValueError) as exc:
        parser.exit(1, f"code-harmonizer {args.command} failed: {exc}\n")
    print(json.dumps(payload, indent=2))


def _dispatch(harmonizer: Harmonizer, args: argparse.Namespace) -> Dict[str, Any]:
    paths: List[str] | None = getattr(args, "paths", None)
    if args.command == "plan":
        if args.local is not None:
            return harmonizer.plan_local(LocalManifestSource(args.local), paths).to_dict()
        return harmonizer.plan(paths).to_dict()
    if args.command == "apply":
        return harmonizer.apply(paths, args.message).to_dict()
    if args.command == "preview":
        return harmonizer.preview(args.components).to_dict()
    raise HarmonizerError(f"Unknown command {args.command}")  # pragma: no cover - argparse enforces choices


if __name__ == "__main__":
    main(sys.argv[1:])
