"""FastAPI application exposing the harmonizer over HTTP."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import HarmonizerError
from ..logging import get_logger
from ..models import Component, UnificationSuggestion
from ..orchestrator import Harmonizer

T = TypeVar("T")

_LOGGER = get_logger("service")


class PlanRequest(BaseModel):
    paths: Optional[List[str]] = None


class ApplyRequest(PlanRequest):
    applyMessage: Optional[str] = None


class ComponentModel(BaseModel):
    name: Optional[str] = None
    path: str

    def to_component(self) -> Component:
        return Component(name=self.name or self.path, path=self.path)


class PreviewRequest(BaseModel):
    components: List[ComponentModel] = []


class SuggestionModel(BaseModel):
    relativePath: str
    mergedText: str = ""
    rationale: str = ""
    placeholder: bool = False

    def to_suggestion(self) -> UnificationSuggestion:
        return UnificationSuggestion(
            relative_path=self.relativePath,
            merged_text=self.mergedText,
            rationale=self.rationale,
            placeholder=self.placeholder,
        )


class UnifiedApplyRequest(BaseModel):
    suggestions: List[SuggestionModel] = []
    targetComponent: Union[ComponentModel, str, None] = None

    def target(self) -> Component:
        target = self.targetComponent
        if isinstance(target, ComponentModel):
            return target.to_component()
        if isinstance(target, str) and target:
            return Component(name=target, path=target)
        raise HarmonizerError("targetComponent is required")


class HealthResponse(BaseModel):
    ok: bool
    module: str
    status: str


def _default_harmonizer() -> Harmonizer:
    return Harmonizer()


async def read_body(request: Request) -> Dict[str, Any]:
    """Return the JSON object body, or ``{}`` when it is missing or malformed."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def _error_response(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"ok": False, "error": str(exc) or exc.__class__.__name__})


def create_app(
    harmonizer_factory: Callable[[], Harmonizer] = _default_harmonizer,
) -> FastAPI:
    """Create the FastAPI application exposing harmonizer operations."""

    app = FastAPI(title="Code Harmonizer", version="1.0.0")

    async def guarded(label: str, work: Callable[[], Dict[str, Any]]) -> JSONResponse:
        try:
            payload = await _run_blocking(work)
        except Exception as exc:
            _LOGGER.exception("%s failed: %s", label, exc)
            return _error_response(exc)
        return JSONResponse(content=payload)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(ok=True, module="code-harmonizer", status="online")

    @app.post("/harmonize/plan")
    async def harmonize_plan(request: Request) -> JSONResponse:
        body = await read_body(request)

        def _work() -> Dict[str, Any]:
            payload = PlanRequest.model_validate(body)
            return harmonizer_factory().plan(payload.paths).to_dict()

        return await guarded("plan", _work)

    @app.post("/harmonize/apply")
    async def harmonize_apply(request: Request) -> JSONResponse:
        body = await read_body(request)

        def _work() -> Dict[str, Any]:
            payload = ApplyRequest.model_validate(body)
            outcome = harmonizer_factory().apply(payload.paths, payload.applyMessage)
            return outcome.to_dict()

        return await guarded("apply", _work)

    async def unify_preview(request: Request) -> JSONResponse:
        body = await read_body(request)

        def _work() -> Dict[str, Any]:
            payload = PreviewRequest.model_validate(body)
            components = [item.to_component() for item in payload.components]
            return harmonizer_factory().preview(components).to_dict()

        return await guarded("preview", _work)

    async def unify_apply(request: Request) -> JSONResponse:
        body = await read_body(request)

        def _work() -> Dict[str, Any]:
            payload = UnifiedApplyRequest.model_validate(body)
            suggestions = [item.to_suggestion() for item in payload.suggestions]
            applied = harmonizer_factory().apply_unified(suggestions, payload.target())
            return {"ok": True, "applied": applied}

        return await guarded("unified apply", _work)

    for prefix in ("/api/code-harmonizer", "/api/harmonize"):
        app.add_api_route(f"{prefix}/preview", unify_preview, methods=["POST"])
        app.add_api_route(f"{prefix}/apply", unify_apply, methods=["POST"])
    # /harmonize/apply is taken by the manifest flow; only preview gets the short alias.
    app.add_api_route("/harmonize/preview", unify_preview, methods=["POST"])

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "read_body", "run_service"]
