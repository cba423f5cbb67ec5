"""OpenAI-compatible chat completion adapter for file unification."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import UnificationReplyError, UnificationUnavailable
from ..models import FileVersion

SYSTEM_PROMPT = (
    "You merge divergent copies of the same source file from several monorepo "
    "components into one version that preserves every component's behaviour."
)


@dataclass
class CompletionRequest:
    """Represents one chat completion call."""

    prompt: str
    system: Optional[str]
    model: str
    base_url: str
    api_key: str
    temperature: Optional[float]
    request_timeout: Optional[float]


class LLMUnifier:
    """Asks a chat completion endpoint to merge file versions into one."""

    DEFAULT_MODEL = "gpt-4.1-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        *,
        model: str | None = None,
        base_url: str | None = None,
        temperature: Optional[float] = 0.0,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[CompletionRequest], str] | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def unify(self, path: str, versions: Sequence[FileVersion]) -> Tuple[str, str]:
        """Return ``(merged text, rationale)`` for the given versions of ``path``."""
        request = CompletionRequest(
            prompt=build_prompt(path, versions),
            system=SYSTEM_PROMPT,
            model=self.model,
            base_url=self.base_url,
            api_key=self.api_key,
            temperature=self.temperature,
            request_timeout=self.request_timeout,
        )
        return parse_reply(self._runner(request))

    @staticmethod
    def _http_runner(request: CompletionRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMUnifier._build_messages(request.system, request.prompt),
            "response_format": {"type": "json_object"},
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }
        http_request = Request(
            endpoint, data=json.dumps(payload).encode("utf-8"), headers=headers, method="POST"
        )
        timeout = request.request_timeout or 120.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise UnificationUnavailable(
                f"unification endpoint failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise UnificationUnavailable(f"unification endpoint unreachable: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise UnificationUnavailable("unification endpoint returned invalid JSON") from exc

        content = LLMUnifier._extract_content(response_payload)
        if not content:
            raise UnificationUnavailable("unification endpoint returned an empty response")
        return content

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: Any) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        return ""


def build_prompt(path: str, versions: Sequence[FileVersion]) -> str:
    blocks = "\n".join(f"--- {version.component} ---\n{version.content}\n" for version in versions)
    return (
        f"Unify these component versions of the same file ({path}):\n\n"
        f"{blocks}\n"
        "Return ONLY JSON:\n"
        '{\n "unified": "<unified code>",\n "why": "<explanation>"\n}\n'
    )


def parse_reply(reply: str) -> Tuple[str, str]:
    """Extract ``unified``/``why`` from the model's JSON reply."""
    try:
        data = json.loads(reply)
    except json.JSONDecodeError as exc:
        raise UnificationReplyError("unification reply was not JSON") from exc
    if not isinstance(data, dict) or not isinstance(data.get("unified"), str):
        raise UnificationReplyError("unification reply is missing the 'unified' field")
    why = data.get("why")
    return data["unified"], why if isinstance(why, str) else ""


__all__ = ["CompletionRequest", "LLMUnifier", "build_prompt", "parse_reply"]
