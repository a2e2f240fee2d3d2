from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from extractbench.config import OPENROUTER_BASE
from extractbench.errors import SchemaConformanceError, TransportError
from extractbench.models import Extraction, ExtractionRequest, ModelPricing, Usage
from extractbench.schema import UserProfile, schema_prompt

logger = logging.getLogger(__name__)

TRANSPORT_ATTEMPTS = 3

REPAIR_PROMPT = "Recall the function correctly, fix the errors and return valid JSON:\n{errors}"


@dataclass
class OpenRouterClient:
    """Structured-output client for an OpenAI-compatible chat completions API.

    ``extract`` asks for a JSON object, validates it against ``UserProfile`` and
    re-asks the model with the validation errors up to ``repair_retries`` times.
    """

    api_key: str
    base_url: str = OPENROUTER_BASE
    timeout: float = 60.0
    repair_retries: int = 3
    referer: str | None = None
    title: str | None = None
    backoff: float = 0.5
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "OpenRouterClient":
        if self._client is None:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            if self.referer:
                headers["HTTP-Referer"] = self.referer
            if self.title:
                headers["X-Title"] = self.title
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self.transport,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json_body: dict[str, Any] | None) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("OpenRouterClient is not initialized. Use 'async with'.")

        backoff = self.backoff
        last_exc: Exception | None = None
        for _ in range(TRANSPORT_ATTEMPTS):
            try:
                response = await self._client.request(method, path, json=json_body)
            except httpx.HTTPError as exc:
                last_exc = exc
            else:
                status = response.status_code
                if status < 400:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise TransportError(f"{method} {path} returned a non-JSON body") from exc
                last_exc = TransportError(f"{method} {path} returned HTTP {status}: {_error_message(response)}")
                # Client errors other than rate limiting will not change on retry.
                if status < 500 and status != 429:
                    raise last_exc
            await asyncio.sleep(backoff)
            backoff *= 2
        if isinstance(last_exc, TransportError):
            raise last_exc
        raise TransportError(f"{method} {path} failed: {last_exc}") from last_exc

    async def extract(self, request: ExtractionRequest) -> Extraction:
        payload = request.to_payload()
        messages = [{"role": "system", "content": schema_prompt()}, *payload["messages"]]
        usage: Usage | None = None
        last_error: ValidationError | None = None

        for attempt in range(self.repair_retries + 1):
            payload["messages"] = messages
            data = await self._request("POST", "/chat/completions", payload)
            step_usage = _parse_usage(data)
            if step_usage is not None:
                usage = step_usage if usage is None else usage + step_usage

            content = _message_content(data)
            try:
                value = UserProfile.model_validate_json(_strip_fences(content))
            except ValidationError as exc:
                last_error = exc
                logger.debug("%s: schema repair attempt %d: %s", request.model, attempt + 1, exc)
                messages = [
                    *messages,
                    {"role": "assistant", "content": content},
                    {"role": "user", "content": REPAIR_PROMPT.format(errors=exc)},
                ]
                continue
            return Extraction(value=value, usage=usage)

        raise SchemaConformanceError(
            f"{request.model}: response did not match schema after "
            f"{self.repair_retries + 1} attempt(s): {last_error}",
            attempts=self.repair_retries + 1,
        )

    async def fetch_models(self) -> dict[str, ModelPricing]:
        """Pricing per 1M tokens keyed by model id. Models without usable prices are skipped."""
        data = await self._request("GET", "/models", None)
        entries = ((item.get("id"), _per_million(item.get("pricing"))) for item in data.get("data", []))
        return {model_id: pricing for model_id, pricing in entries if model_id and pricing is not None}


def _message_content(data: dict[str, Any]) -> str:
    if "error" in data:
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else error
        raise TransportError(f"Provider error: {message}")
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise TransportError("Malformed chat completion response") from exc
    return content or ""


def _parse_usage(data: dict[str, Any]) -> Usage | None:
    usage = data.get("usage")
    if not usage:
        return None
    return Usage(
        prompt_tokens=int(usage.get("prompt_tokens") or 0),
        completion_tokens=int(usage.get("completion_tokens") or 0),
    )


def _strip_fences(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _per_million(pricing: Any) -> ModelPricing | None:
    if not isinstance(pricing, dict):
        return None
    try:
        input_cost = float(pricing["prompt"]) * 1_000_000
        output_cost = float(pricing["completion"]) * 1_000_000
    except (KeyError, TypeError, ValueError):
        return None
    # OpenRouter reports -1 for variably priced routers
    if input_cost < 0 or output_cost < 0:
        return None
    return ModelPricing(input=input_cost, output=output_cost)


def _error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error")
    except (ValueError, AttributeError):
        error = None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.text[:200] or response.reason_phrase
