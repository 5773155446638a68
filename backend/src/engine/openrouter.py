"""OpenRouter API client and the parallel fan-out used by every council stage."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from ..config import (
    OPENROUTER_API_KEY,
    OPENROUTER_API_URL,
    OPENROUTER_MAX_CONCURRENCY,
    OPENROUTER_TIMEOUT_SECONDS,
)
from ..utils.redact import redact_secrets, truncate
from .errors import (
    ModelProtocolError,
    ModelQueryError,
    ModelTimeoutError,
    ModelTransportError,
    ModelUpstreamError,
)

logger = logging.getLogger(__name__)


@dataclass
class ModelReply:
    model: str
    content: str
    reasoning_details: Any
    usage: Optional[dict[str, Any]]
    latency_ms: int


Messages = List[Dict[str, str]]
Invoker = Callable[..., Awaitable[ModelReply]]


_SEMAPHORE = asyncio.Semaphore(max(1, OPENROUTER_MAX_CONCURRENCY))
_CLIENT: httpx.AsyncClient | None = None


def set_client(client: httpx.AsyncClient | None) -> None:
    global _CLIENT
    _CLIENT = client


def _get_client(timeout_seconds: float) -> httpx.AsyncClient:
    global _CLIENT
    if _CLIENT is not None:
        return _CLIENT
    logger.warning("OpenRouter httpx client not set via lifespan; creating a fallback client.")
    _CLIENT = httpx.AsyncClient(timeout=timeout_seconds)
    return _CLIENT


def _parse_reply(model: str, resp: httpx.Response, latency_ms: int) -> ModelReply:
    try:
        data = resp.json()
    except ValueError as e:
        raise ModelProtocolError(model, f"invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ModelProtocolError(model, "response body is not an object")

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ModelProtocolError(model, "no choices in response")

    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        raise ModelProtocolError(model, "first choice has no message")

    content = message.get("content")
    if not isinstance(content, str):
        raise ModelProtocolError(model, "no content in first choice")

    usage = data.get("usage") if isinstance(data.get("usage"), dict) else None
    return ModelReply(
        model=model,
        content=content,
        reasoning_details=message.get("reasoning_details"),
        usage=usage,
        latency_ms=latency_ms,
    )


async def query_model(
    model: str,
    messages: Messages,
    *,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
) -> ModelReply:
    """Send one chat completion request. Single round trip, no retries."""
    headers = {
        "Authorization": f"Bearer {OPENROUTER_API_KEY}",
        "Content-Type": "application/json",
    }

    payload: dict[str, Any] = {"model": model, "messages": messages}
    if temperature is not None:
        payload["temperature"] = temperature
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    timeout = timeout_seconds if timeout_seconds is not None else OPENROUTER_TIMEOUT_SECONDS
    client = _get_client(timeout)

    # Queueing for a slot does not count against the per-model timeout.
    async with _SEMAPHORE:
        start = time.monotonic()
        try:
            resp = await asyncio.wait_for(
                client.post(OPENROUTER_API_URL, headers=headers, json=payload, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ModelTimeoutError(model, f"no response within {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ModelTransportError(model, redact_secrets(f"request failed: {e}")) from e
        latency_ms = int((time.monotonic() - start) * 1000)

    if resp.status_code != 200:
        raise ModelUpstreamError(model, resp.status_code, redact_secrets(truncate(resp.text)))

    return _parse_reply(model, resp, latency_ms)


async def query_models_parallel(
    models: Iterable[str],
    messages: Messages,
    *,
    timeout_seconds: Optional[float] = None,
    invoke: Invoker = query_model,
) -> Dict[str, ModelReply]:
    """
    Query every model concurrently and return replies for the ones that succeeded.

    A failing model is logged and left out of the result; it never cancels its
    siblings and never raises. When every model fails the result is empty.
    The returned dict iterates in the order of `models`.
    """
    ordered = list(dict.fromkeys(models))

    async def _one(model: str) -> Optional[ModelReply]:
        try:
            return await invoke(model, messages, timeout_seconds=timeout_seconds)
        except ModelQueryError as e:
            logger.warning("Model %s failed: %s", model, redact_secrets(str(e)))
        except Exception:
            logger.exception("Unexpected error querying model %s", model)
        return None

    results = await asyncio.gather(*[_one(model) for model in ordered])
    return {model: reply for model, reply in zip(ordered, results) if reply is not None}
