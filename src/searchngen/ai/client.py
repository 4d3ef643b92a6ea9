"""Async completion client built around OpenAI-compatible endpoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, cast

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..chat.errors import STATUS_MESSAGES, InvalidCredential, RemoteError

LOGGER = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    APIConnectionError,
    APITimeoutError,
    RateLimitError,
    InternalServerError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the completion client."""

    base_url: str
    api_key: str
    model: str
    temperature: float = 0.5
    organization: str | None = None
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    debug_logging: bool = False


class CompletionClient:
    """Async client returning whole assistant replies with retry semantics."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)
        self._models_cache: List[str] | None = None
        self._models_lock = asyncio.Lock()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete(self, messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam]) -> str:
        """Return the assistant reply for ``messages``, raising :class:`RemoteError` on failure."""

        payload = self._build_chat_payload(self._coerce_messages(messages))
        LOGGER.debug(
            "Requesting chat completion via %s with %s message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            LOGGER.debug("Completion payload: %s", payload)

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.chat.completions.create(**payload)
        except (APIError, httpx.HTTPError) as exc:
            raise to_remote_error(exc) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise RemoteError("The completion response did not contain any choices.")
        content = getattr(choices[0].message, "content", None)
        return content or ""

    async def list_models(self, *, force_refresh: bool = False) -> List[str]:
        """Return a list of supported model identifiers."""

        if self._models_cache is not None and not force_refresh:
            return list(self._models_cache)

        async with self._models_lock:
            if self._models_cache is not None and not force_refresh:
                return list(self._models_cache)

            response = await self._client.models.list()
            models = [item.id for item in response.data if getattr(item, "id", None)]
            self._models_cache = models
            return list(models)

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            max_retries=0,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        )

    def _coerce_messages(
        self, messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam]
    ) -> List[ChatCompletionMessageParam]:
        normalized: List[ChatCompletionMessageParam] = []
        for message in messages:
            try:
                normalized.append(cast(ChatCompletionMessageParam, dict(message)))
            except (TypeError, ValueError) as exc:
                raise TypeError("Messages must be mapping-like objects") from exc
        if not normalized:
            raise ValueError("At least one message is required to request a completion")
        return normalized

    def _build_chat_payload(self, messages: Sequence[ChatCompletionMessageParam]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": list(messages),
        }
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        return payload


def to_remote_error(exc: BaseException) -> RemoteError:
    """Normalize an OpenAI/httpx failure into a :class:`RemoteError`."""

    if isinstance(exc, APIStatusError):
        status = exc.status_code
        return RemoteError(
            str(exc),
            http_status=status,
            http_status_text=_status_line_text(status, getattr(exc, "response", None)),
            message=_provider_message(getattr(exc, "body", None)) or None,
        )
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return RemoteError(
            str(exc),
            http_status=status,
            http_status_text=_status_line_text(status, exc.response),
        )
    if isinstance(exc, APIError):
        return RemoteError(str(exc) or type(exc).__name__, message=exc.message or None)
    return RemoteError(str(exc) or type(exc).__name__)


async def validate_api_key(
    api_key: str,
    *,
    base_url: str = "https://api.openai.com/v1",
    client: AsyncOpenAI | None = None,
) -> List[str]:
    """Confirm ``api_key`` by listing models; raise :class:`InvalidCredential` otherwise."""

    if not api_key or not api_key.strip():
        raise InvalidCredential("The API key can not be empty")
    candidate = CompletionClient(
        ClientSettings(base_url=base_url, api_key=api_key.strip(), model="", max_retries=1),
        client=client,
    )
    try:
        return await candidate.list_models()
    except (APIError, httpx.HTTPError) as exc:
        LOGGER.info("API key validation failed: %s", exc)
        raise InvalidCredential("Your API key is invalid") from exc


def _status_line_text(status: int, response: httpx.Response | None) -> str | None:
    # Statuses with a dedicated explanation are classified by code alone.
    if status in STATUS_MESSAGES or response is None:
        return None
    return response.reason_phrase or None


def _provider_message(body: Any) -> str:
    if isinstance(body, Mapping):
        error = body.get("error", body)
        if isinstance(error, Mapping):
            message = error.get("message")
            if isinstance(message, str):
                return message.strip()
    if isinstance(body, str):
        return body.strip()
    return ""


__all__ = ["ClientSettings", "CompletionClient", "to_remote_error", "validate_api_key"]
