"""Tests for harmonizer.harmonize."""

from __future__ import annotations

import json

from harmonizer.harmonize import build_commit_plan, harmonize, render_manifest
from harmonizer.models import Module
from harmonizer.reconcile import ReconciliationEngine


def _modules() -> list[Module]:
    return [
        Module(
            path="apps/web/package.json",
            name="web",
            kind="app",
            manifest={
                "name": "web",
                "scripts": {"build": "tsc", "lint": "eslint ."},
                "dependencies": {"react": "^17.0.0"},
                "devDependencies": {"vitest": "^0.34.0"},
            },
        ),
        Module(
            path="apps/admin/package.json",
            name="admin",
            kind="app",
            manifest={
                "name": "admin",
                "scripts": {"build": "vite build"},
                "dependencies": {"react": "^18.2.0", "zod": "^3.0.0"},
                "devDependencies": {"vitest": "^1.2.0"},
            },
        ),
        Module(
            path="packages/ui/package.json",
            name="ui",
            kind="package",
            manifest={
                "name": "ui",
                "scripts": {"build": "tsc"},
                "peerDependencies": {"react": ">=17"},
            },
        ),
    ]


def _harmonize(modules: list[Module]) -> dict:
    result = ReconciliationEngine().reconcile(modules)
    return harmonize(modules, result.script_decisions(), result.dependency_decisions())


def test_dependency_decisions_only_overwrite_existing_keys() -> None:
    harmonized = _harmonize(_modules())

    assert harmonized["apps/web/package.json"]["dependencies"] == {"react": "^18.2.0"}
    assert harmonized["apps/admin/package.json"]["dependencies"]["react"] == "^18.2.0"
    assert "dependencies" not in harmonized["packages/ui/package.json"]
    assert "devDependencies" not in harmonized["packages/ui/package.json"]
    assert harmonized["packages/ui/package.json"]["peerDependencies"] == {"react": ">=17"}


def test_dev_dependency_scope_is_preserved() -> None:
    harmonized = _harmonize(_modules())

    assert harmonized["apps/web/package.json"]["devDependencies"] == {"vitest": "^1.2.0"}
    assert "vitest" not in harmonized["apps/web/package.json"]["dependencies"]


def test_script_decisions_apply_to_every_module() -> None:
    harmonized = _harmonize(_modules())

    for manifest in harmonized.values():
        assert manifest["scripts"]["build"] == "tsc"
    # Uniform keys are left alone.
    assert "lint" not in harmonized["apps/admin/package.json"]["scripts"]


def test_originals_are_not_mutated() -> None:
    modules = _modules()
    before = json.dumps([module.manifest for module in modules], sort_keys=True)

    _harmonize(modules)

    assert json.dumps([module.manifest for module in modules], sort_keys=True) == before


def test_absent_manifest_gets_empty_shell_with_scripts() -> None:
    modules = _modules() + [
        Module(path="apps/broken/package.json", name="broken", kind="app", manifest=None)
    ]

    harmonized = _harmonize(modules)

    assert harmonized["apps/broken/package.json"] == {"scripts": {"build": "tsc"}}


def test_harmonization_is_idempotent() -> None:
    modules = _modules()
    first = ReconciliationEngine().reconcile(modules)
    decisions = {**first.script_decisions(), **first.dependency_decisions()}
    harmonized = harmonize(modules, first.script_decisions(), first.dependency_decisions())

    rerun_modules = [
        Module(path=m.path, name=m.name, kind=m.kind, manifest=harmonized[m.path]) for m in modules
    ]
    second = ReconciliationEngine().reconcile(rerun_modules)
    suggestions = {
        s.key: s for s in second.script_suggestions + second.dependency_suggestions
    }

    assert decisions
    for key, recommended in decisions.items():
        assert suggestions[key].kind == "uniform"
        assert suggestions[key].value == recommended


def test_non_mapping_sections_are_left_untouched() -> None:
    modules = [
        Module(path="apps/a/package.json", name="a", kind="app", manifest={"scripts": {"build": "tsc"}}),
        Module(path="apps/b/package.json", name="b", kind="app", manifest={"scripts": {"build": "vite"}}),
        Module(path="apps/c/package.json", name="c", kind="app", manifest={"scripts": "make"}),
    ]

    harmonized = _harmonize(modules)

    assert harmonized["apps/c/package.json"]["scripts"] == "make"


def test_render_manifest_is_pretty_printed_with_newline() -> None:
    text = render_manifest({"name": "web", "description": "café"})

    assert text == '{\n  "name": "web",\n  "description": "café"\n}\n'


def test_commit_plan_keeps_module_order() -> None:
    harmonized = _harmonize(_modules())

    plan = build_commit_plan(harmonized)

    assert [item.path for item in plan] == [
        "apps/web/package.json",
        "apps/admin/package.json",
        "packages/ui/package.json",
    ]
    assert json.loads(plan[0].content)["dependencies"]["react"] == "^18.2.0"
