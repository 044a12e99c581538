"""OpenAI-compatible HTTP backends (transcription and chat-based cleanup).

Both backends share one request path: transient failures (transport
errors, 429, 5xx) are retried with exponential backoff, every request
races the caller's cancellation event, and the whole call (retries
included) is bounded by ``timeout_s``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from voxpipe._types import TranscriptionOutput
from voxpipe.backends.interface import TextCleaner, Transcriber
from voxpipe.exceptions import (
    DeadlineExceededError,
    OperationCancelledError,
    TextCleaningError,
    TranscriptionError,
)
from voxpipe.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger("backends.openai_http")

DEFAULT_BASE_URL = "https://api.openai.com/v1"

# Retried with backoff; any other 4xx fails immediately.
_RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})

CLEANUP_SYSTEM_PROMPT = (
    "Clean up the following transcribed text. "
    "ONLY fix issues - do NOT add new content or information. "
    "Remove filler words (um, uh, like, you know, I mean). "
    "Fix grammar errors and add proper punctuation. "
    "Ensure proper capitalization. "
    "Keep the original meaning and length - just clean it up."
)


class _OpenAIRequester:
    """Retrying, cancellable POST against an OpenAI-compatible API."""

    def __init__(
        self,
        *,
        provider: str,
        api_key: str,
        base_url: str,
        http_timeout_s: float,
        max_retries: int,
        retry_backoff_s: float,
        error_factory: Callable[[str, str], Exception],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            msg = "API key cannot be empty"
            raise ValueError(msg)
        self._provider = provider
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http_timeout_s = http_timeout_s
        self._max_retries = max(0, max_retries)
        self._retry_backoff_s = max(0.0, retry_backoff_s)
        self._error_factory = error_factory
        self._transport = transport

    async def post(
        self,
        path: str,
        *,
        operation: str,
        cancel_event: asyncio.Event | None,
        timeout_s: float | None,
        **request_kwargs: Any,
    ) -> httpx.Response:
        """POST ``path`` and return the first non-error response.

        Raises:
            OperationCancelledError: ``cancel_event`` was set.
            DeadlineExceededError: ``timeout_s`` elapsed.
            Exception from ``error_factory``: non-retryable status or retries exhausted.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_s if timeout_s is not None else None
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {self._api_key}"}

        attempt = 0
        async with httpx.AsyncClient(
            timeout=self._http_timeout_s, transport=self._transport
        ) as client:
            while True:
                attempt += 1
                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelledError(operation)

                remaining = _remaining(loop, deadline)
                try:
                    response = await _race(
                        client.post(url, headers=headers, **request_kwargs),
                        cancel_event=cancel_event,
                        timeout_s=remaining,
                        operation=operation,
                        budget_s=timeout_s,
                    )
                except httpx.TransportError as e:
                    reason = str(e) or type(e).__name__
                else:
                    if response.status_code < 400:
                        return response
                    reason = f"HTTP {response.status_code}: {_error_message(response)}"
                    if response.status_code not in _RETRYABLE_STATUS:
                        raise self._error_factory(self._provider, reason)

                if attempt > self._max_retries:
                    raise self._error_factory(
                        self._provider, f"{reason} (after {attempt} attempts)"
                    )

                delay = self._retry_backoff_s * (2 ** (attempt - 1))
                logger.info(
                    "http_retry",
                    provider=self._provider,
                    operation=operation,
                    attempt=attempt + 1,
                    delay_s=delay,
                    reason=reason,
                )
                if delay > 0:
                    await _race(
                        asyncio.sleep(delay),
                        cancel_event=cancel_event,
                        timeout_s=_remaining(loop, deadline),
                        operation=operation,
                        budget_s=timeout_s,
                    )


class OpenAITranscriber(Transcriber):
    """Transcribes audio via ``POST /audio/transcriptions``.

    Requests ``verbose_json`` so the detected language comes back with
    the text.

    Args:
        api_key: Bearer token.
        base_url: API root (e.g. ``https://api.openai.com/v1``).
        model: Transcription model name.
        language: Optional ISO language hint.
        http_timeout_s: Per-request HTTP timeout.
        max_retries: Retries after the first attempt for transient failures.
        retry_backoff_s: Initial backoff, doubled per retry.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "whisper-1",
        language: str | None = None,
        http_timeout_s: float = 60.0,
        max_retries: int = 2,
        retry_backoff_s: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._language = language
        self._requester = _OpenAIRequester(
            provider=self.provider,
            api_key=api_key,
            base_url=base_url,
            http_timeout_s=http_timeout_s,
            max_retries=max_retries,
            retry_backoff_s=retry_backoff_s,
            error_factory=TranscriptionError,
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return "OpenAI"

    @property
    def model(self) -> str:
        return self._model

    async def transcribe(
        self,
        audio: bytes,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> TranscriptionOutput:
        data = {"model": self._model, "response_format": "verbose_json"}
        if self._language:
            data["language"] = self._language

        response = await self._requester.post(
            "/audio/transcriptions",
            operation="Transcription",
            cancel_event=cancel_event,
            timeout_s=timeout_s,
            files={"file": ("audio.wav", audio, "audio/wav")},
            data=data,
        )

        try:
            body = response.json()
        except ValueError:
            # response_format fallback: some compatible servers answer in plain text
            return TranscriptionOutput(text=response.text.strip())

        if not isinstance(body, dict) or "text" not in body:
            raise TranscriptionError(self.provider, "Response has no 'text' field")
        language = body.get("language") or None
        return TranscriptionOutput(text=str(body["text"]).strip(), language=language)


class OpenAIChatCleaner(TextCleaner):
    """Cleans transcripts via ``POST /chat/completions`` with a cleanup prompt.

    Args:
        api_key: Bearer token.
        base_url: API root.
        model: Chat model name.
        system_prompt: Instructions sent as the system message.
        temperature: Sampling temperature.
        http_timeout_s: Per-request HTTP timeout.
        max_retries: Retries after the first attempt for transient failures.
        retry_backoff_s: Initial backoff, doubled per retry.
        transport: Optional httpx transport.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "gpt-4o-mini",
        system_prompt: str = CLEANUP_SYSTEM_PROMPT,
        temperature: float = 0.3,
        http_timeout_s: float = 60.0,
        max_retries: int = 2,
        retry_backoff_s: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._requester = _OpenAIRequester(
            provider=self.provider,
            api_key=api_key,
            base_url=base_url,
            http_timeout_s=http_timeout_s,
            max_retries=max_retries,
            retry_backoff_s=retry_backoff_s,
            error_factory=TextCleaningError,
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return "OpenAI"

    @property
    def model(self) -> str:
        return self._model

    async def clean(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": text},
            ],
            "temperature": self._temperature,
        }
        response = await self._requester.post(
            "/chat/completions",
            operation="Text cleaning",
            cancel_event=cancel_event,
            timeout_s=timeout_s,
            json=payload,
        )

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TextCleaningError(self.provider, f"Malformed response: {e}") from e
        return str(content or "").strip()


async def _race(
    awaitable: Awaitable[Any],
    *,
    cancel_event: asyncio.Event | None,
    timeout_s: float | None,
    operation: str,
    budget_s: float | None,
) -> Any:
    """Await ``awaitable`` unless cancellation or the timeout wins first."""
    if timeout_s is not None and timeout_s <= 0:
        raise DeadlineExceededError(budget_s or 0.0)

    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future[Any]] = {task}
    cancel_waiter: asyncio.Future[Any] | None = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    try:
        done, _pending = await asyncio.wait(
            waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        pending = [w for w in waiters if not w.done()]
        for waiter in pending:
            waiter.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if task in done:
        return task.result()
    if cancel_waiter is not None and cancel_waiter in done:
        raise OperationCancelledError(operation)
    raise DeadlineExceededError(budget_s or timeout_s or 0.0)


def _remaining(loop: asyncio.AbstractEventLoop, deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return deadline - loop.time()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
        message = body.get("error", {}).get("message")
    except Exception:
        message = None
    return str(message) if message else response.text[:200]
