"""LLM gateway — one async call signature over OpenAI, Anthropic and Google.

The model id determines the provider; the caller passes credentials per
call. Every request is bounded by ``config.REQUEST_TIMEOUT_SECONDS``.

Error handling:
  - SDK exceptions are mapped onto a small ErrorKind vocabulary and
    re-raised as LLMError with a clean, readable message.
  - The Google transport retries with a fixed delay table: "unavailable"
    errors at most twice, other transient errors at most five times.
    Bad requests and invalid credentials are never retried.
  - Backoff waits honour a CancellationToken.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception

import config
from pipeline.cancellation import CancellationLike, OperationCancelled, cancellable_sleep
from pipeline.extraction import parse_json_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Usage callback (set by the caller to feed its own ledger)
# ---------------------------------------------------------------------------
_usage_callback: Callable[[str, str, int, int], None] | None = None


def set_usage_callback(cb: Callable[[str, str, int, int], None] | None):
    """Set a callback(provider, model, input_tokens, output_tokens) called once per successful model call."""
    global _usage_callback
    _usage_callback = cb


def _record_usage(provider: str, model: str, input_tokens: int, output_tokens: int):
    logger.info("Token usage: %s/%s in=%d out=%d", provider, model, input_tokens, output_tokens)
    if _usage_callback is None:
        return
    try:
        _usage_callback(provider, model, int(input_tokens or 0), int(output_tokens or 0))
    except Exception:
        logger.warning("Usage callback failed for %s/%s", provider, model, exc_info=True)


# ---------------------------------------------------------------------------
# Model registry
# ---------------------------------------------------------------------------

class ModelInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    provider: str
    description: str = ""


SUPPORTED_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(id="gpt-4o", label="GPT-4o", provider="openai", description="Flagship multimodal"),
    ModelInfo(id="gpt-4o-mini", label="GPT-4o mini", provider="openai", description="Fast and cheap"),
    ModelInfo(id="gpt-4.1", label="GPT-4.1", provider="openai", description="Long-context flagship"),
    ModelInfo(id="o3", label="o3", provider="openai", description="Reasoning model"),
    ModelInfo(id="claude-sonnet-4-20250514", label="Claude Sonnet 4", provider="anthropic", description="Balanced model"),
    ModelInfo(id="claude-3-5-sonnet-20241022", label="Claude 3.5 Sonnet", provider="anthropic", description="Balanced performance"),
    ModelInfo(id="claude-3-5-haiku-20241022", label="Claude 3.5 Haiku", provider="anthropic", description="Fastest Claude"),
    ModelInfo(id="gemini-2.5-pro", label="Gemini 2.5 Pro", provider="google", description="Advanced reasoning"),
    ModelInfo(id="gemini-2.5-flash", label="Gemini 2.5 Flash", provider="google", description="Fast model"),
    ModelInfo(id="gemini-2.0-flash", label="Gemini 2.0 Flash", provider="google", description="Quick responses"),
)

# Unlisted ids are routed by prefix so newly released models work without a registry edit.
_PROVIDER_PREFIXES = (
    ("gpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
    ("claude-", "anthropic"),
    ("gemini-", "google"),
)


def get_model(model_id: str) -> ModelInfo | None:
    for info in SUPPORTED_MODELS:
        if info.id == model_id:
            return info
    for prefix, provider in _PROVIDER_PREFIXES:
        if model_id and model_id.startswith(prefix):
            return ModelInfo(id=model_id, label=model_id, provider=provider)
    return None


def get_models_by_provider(provider: str) -> list[ModelInfo]:
    return [m for m in SUPPORTED_MODELS if m.provider == provider]


# ---------------------------------------------------------------------------
# Credentials and attachments
# ---------------------------------------------------------------------------

class ApiKeys(BaseModel):
    gemini: str = ""
    openai: str = ""
    anthropic: str = ""

    def for_provider(self, provider: str) -> str:
        return {
            "google": self.gemini,
            "openai": self.openai,
            "anthropic": self.anthropic,
        }.get(provider, "")

    @classmethod
    def from_env(cls) -> "ApiKeys":
        return cls(
            gemini=config.GOOGLE_API_KEY,
            openai=config.OPENAI_API_KEY,
            anthropic=config.ANTHROPIC_API_KEY,
        )


class Attachment(BaseModel):
    url: str
    content_type: str = "image/png"
    label: str = ""

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


def _coerce_keys(credentials: ApiKeys | Mapping[str, str] | None) -> ApiKeys:
    if isinstance(credentials, ApiKeys):
        return credentials
    return ApiKeys.model_validate(dict(credentials or {}))


def _with_reference_lines(user_prompt: str, attachments: list[Attachment]) -> str:
    """Non-image attachments are referenced by URL in the prompt text."""
    refs = [a for a in attachments if not a.is_image]
    if not refs:
        return user_prompt
    lines = [f"- {a.label or 'Attachment'} ({a.content_type}): {a.url}" for a in refs]
    return user_prompt + "\n\nAttached references:\n" + "\n".join(lines)


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------

class ErrorKind(str, enum.Enum):
    UNAVAILABLE = "unavailable"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    INVALID_CREDENTIAL = "invalid_credential"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class LLMError(Exception):
    """Clean error from an LLM call with a human-readable message."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        model: str = "",
        cause: Exception | None = None,
        kind: ErrorKind = ErrorKind.UNKNOWN,
    ):
        self.provider = provider
        self.model = model
        self.cause = cause
        self.kind = kind
        super().__init__(message)


class MissingCredentialError(LLMError):
    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message, provider=provider, model=model, kind=ErrorKind.INVALID_CREDENTIAL)


class LLMTimeoutError(LLMError):
    def __init__(self, message: str, provider: str = "", model: str = "", cause: Exception | None = None):
        super().__init__(message, provider=provider, model=model, cause=cause, kind=ErrorKind.TIMEOUT)


class ResponseParseError(LLMError):
    """Model text could not be decoded as JSON."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message, kind=ErrorKind.BAD_REQUEST)


_NON_RETRYABLE = {ErrorKind.BAD_REQUEST, ErrorKind.INVALID_CREDENTIAL}


def _status_code(exc: BaseException) -> int | None:
    # openai / anthropic expose status_code; google-genai APIError exposes code
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, LLMError):
        return exc.kind
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT

    status = _status_code(exc)
    if status is not None:
        if status in (503, 529):
            return ErrorKind.UNAVAILABLE
        if status == 429:
            return ErrorKind.RATE_LIMITED
        if status in (401, 403):
            return ErrorKind.INVALID_CREDENTIAL
        if status in (400, 404, 413, 422):
            return ErrorKind.BAD_REQUEST
        return ErrorKind.UNKNOWN

    msg = str(exc).lower()
    if "unavailable" in msg or "overloaded" in msg:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.UNKNOWN


def _extract_error_message(exc: Exception, provider: str, model: str, kind: ErrorKind) -> str:
    """Pull out a clean, human-readable error message from an API exception."""
    msg = str(exc)
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            msg = inner["message"]

    if kind is ErrorKind.INVALID_CREDENTIAL:
        return f"[{provider}] Authentication failed: check the {provider} API key."
    if len(msg) > 300:
        msg = msg[:300] + "..."
    if kind is ErrorKind.BAD_REQUEST:
        return f"[{provider}/{model}] Bad request: {msg}"
    if kind is ErrorKind.RATE_LIMITED:
        return f"[{provider}/{model}] Rate limit exceeded: {msg}"
    if kind is ErrorKind.UNAVAILABLE:
        return f"[{provider}/{model}] Service temporarily unavailable: {msg}"
    return f"[{provider}/{model}] {msg}"


def _to_llm_error(exc: Exception, provider: str, model: str) -> LLMError:
    if isinstance(exc, LLMError):
        return exc
    kind = classify_error(exc)
    return LLMError(_extract_error_message(exc, provider, model, kind), provider=provider, model=model, cause=exc, kind=kind)


# ---------------------------------------------------------------------------
# Timeout and retry policy
# ---------------------------------------------------------------------------

RETRY_DELAYS: tuple[float, ...] = (1, 2, 4, 8, 16)
UNAVAILABLE_MAX_RETRIES = 2
TRANSIENT_MAX_RETRIES = 5


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, LLMError) and exc.kind not in _NON_RETRYABLE


def _stop_tiered(retry_state: RetryCallState) -> bool:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if getattr(exc, "kind", None) is ErrorKind.UNAVAILABLE:
        limit = UNAVAILABLE_MAX_RETRIES
    else:
        limit = TRANSIENT_MAX_RETRIES
    return retry_state.attempt_number > limit


def _wait_from_table(retry_state: RetryCallState) -> float:
    delays = RETRY_DELAYS
    return delays[min(retry_state.attempt_number - 1, len(delays) - 1)]


def _log_retry(retry_state: RetryCallState):
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying after attempt %d (%s): %s",
        retry_state.attempt_number,
        getattr(getattr(exc, "kind", None), "value", "unknown"),
        exc,
    )


async def _with_tiered_retry(fn: Callable[[], Awaitable[str]], cancellation: CancellationLike = None) -> str:
    retrying = AsyncRetrying(
        retry=retry_if_exception(_is_retryable),
        stop=_stop_tiered,
        wait=_wait_from_table,
        sleep=lambda delay: cancellable_sleep(delay, cancellation),
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn()
    raise AssertionError("unreachable")


async def _with_timeout(awaitable: Awaitable[Any], provider: str, model: str) -> Any:
    timeout = config.REQUEST_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise LLMTimeoutError(
            f"[{provider}/{model}] Request timed out after {timeout:g}s",
            provider=provider,
            model=model,
            cause=exc,
        ) from exc


# ---------------------------------------------------------------------------
# Provider-specific call implementations
# ---------------------------------------------------------------------------

# Models that require max_completion_tokens instead of the legacy max_tokens.
_OPENAI_NEW_TOKEN_PARAM_PREFIXES = (
    "gpt-4o", "gpt-4.1", "gpt-4.5", "gpt-5", "o1", "o3", "o4",
)

_JSON_ONLY_INSTRUCTION = (
    "\n\nIMPORTANT: Respond ONLY with a valid JSON object. No markdown fences, no explanation, no preamble."
)


async def _call_openai(
    user_prompt: str,
    system_prompt: str,
    model: str,
    api_key: str,
    *,
    attachments: list[Attachment],
    json_mode: bool,
    temperature: float | None,
    max_tokens: int,
    cancellation: CancellationLike = None,
) -> str:
    from openai import AsyncOpenAI

    images = [a for a in attachments if a.is_image]
    text = _with_reference_lines(user_prompt, attachments)
    if images:
        content: Any = [{"type": "text", "text": text}] + [
            {"type": "image_url", "image_url": {"url": a.url}} for a in images
        ]
    else:
        content = text

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": content})

    kwargs: dict = {"model": model, "messages": messages}
    if any(model.startswith(p) for p in _OPENAI_NEW_TOKEN_PARAM_PREFIXES):
        kwargs["max_completion_tokens"] = max_tokens
    else:
        kwargs["max_tokens"] = max_tokens
    if temperature is not None:
        kwargs["temperature"] = temperature
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    async with AsyncOpenAI(api_key=api_key, max_retries=0) as client:
        response = await _with_timeout(client.chat.completions.create(**kwargs), "openai", model)

    content_text = response.choices[0].message.content or ""
    if response.usage:
        _record_usage("openai", model, response.usage.prompt_tokens or 0, response.usage.completion_tokens or 0)
    logger.info("OpenAI [%s]: %d chars", model, len(content_text))
    return content_text


async def _call_anthropic(
    user_prompt: str,
    system_prompt: str,
    model: str,
    api_key: str,
    *,
    attachments: list[Attachment],
    json_mode: bool,
    temperature: float | None,
    max_tokens: int,
    cancellation: CancellationLike = None,
) -> str:
    from anthropic import AsyncAnthropic

    effective_system = system_prompt
    if json_mode:
        effective_system += _JSON_ONLY_INSTRUCTION

    images = [a for a in attachments if a.is_image]
    text = _with_reference_lines(user_prompt, attachments)
    if images:
        content: Any = [
            {"type": "image", "source": {"type": "url", "url": a.url}} for a in images
        ] + [{"type": "text", "text": text}]
    else:
        content = text

    kwargs: dict = {
        "model": model,
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": content}],
    }
    if effective_system.strip():
        kwargs["system"] = effective_system.strip()
    if temperature is not None:
        kwargs["temperature"] = temperature

    async with AsyncAnthropic(api_key=api_key, max_retries=0) as client:
        response = await _with_timeout(client.messages.create(**kwargs), "anthropic", model)

    content_text = "".join(
        block.text for block in response.content if getattr(block, "type", "") == "text"
    )
    _record_usage("anthropic", model, response.usage.input_tokens or 0, response.usage.output_tokens or 0)
    logger.info("Anthropic [%s]: %d chars", model, len(content_text))
    return content_text


async def _call_google(
    user_prompt: str,
    system_prompt: str,
    model: str,
    api_key: str,
    *,
    attachments: list[Attachment],
    json_mode: bool,
    temperature: float | None,
    max_tokens: int,
    cancellation: CancellationLike = None,
) -> str:
    from google import genai
    from google.genai import types

    client = genai.Client(api_key=api_key)
    gen_config = types.GenerateContentConfig(
        system_instruction=system_prompt or None,
        temperature=temperature,
        max_output_tokens=max_tokens,
        response_mime_type="application/json" if json_mode else None,
    )

    images = [a for a in attachments if a.is_image]
    text = _with_reference_lines(user_prompt, attachments)
    if images:
        contents: Any = [types.Part.from_text(text=text)] + [
            types.Part.from_uri(file_uri=a.url, mime_type=a.content_type) for a in images
        ]
    else:
        contents = text

    async def _attempt() -> str:
        try:
            response = await _with_timeout(
                client.aio.models.generate_content(model=model, contents=contents, config=gen_config),
                "google",
                model,
            )
        except LLMError:
            raise
        except Exception as exc:
            raise _to_llm_error(exc, "google", model) from exc

        content_text = response.text or ""
        if not content_text:
            raise LLMError(f"[google/{model}] No response text", provider="google", model=model)
        meta = getattr(response, "usage_metadata", None)
        if meta:
            _record_usage(
                "google",
                model,
                getattr(meta, "prompt_token_count", 0) or 0,
                getattr(meta, "candidates_token_count", 0) or 0,
            )
        logger.info("Google [%s]: %d chars", model, len(content_text))
        return content_text

    return await _with_tiered_retry(_attempt, cancellation)


# Provider dispatch
_PROVIDERS = {
    "openai": _call_openai,
    "anthropic": _call_anthropic,
    "google": _call_google,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def call_model(
    model_id: str,
    user_prompt: str,
    system_prompt: str = "",
    credentials: ApiKeys | Mapping[str, str] | None = None,
    attachments: list[Attachment] | None = None,
    *,
    json_mode: bool = False,
    temperature: float | None = None,
    max_tokens: int | None = None,
    cancellation: CancellationLike = None,
) -> str:
    """Call a model by id and return raw text. Provider-agnostic.

    Raises MissingCredentialError before any network call when the
    provider's key is absent, LLMTimeoutError on expiry, and LLMError for
    everything else the provider reports.
    """
    info = get_model(model_id)
    if info is None:
        raise LLMError(
            f"Unknown model: '{model_id}'. Available: {[m.id for m in SUPPORTED_MODELS]}",
            model=model_id,
            kind=ErrorKind.BAD_REQUEST,
        )

    api_key = _coerce_keys(credentials).for_provider(info.provider)
    if not api_key:
        raise MissingCredentialError(
            f"No API key configured for provider '{info.provider}' (model '{model_id}').",
            provider=info.provider,
            model=model_id,
        )

    transport = _PROVIDERS[info.provider]
    logger.info("LLM call: provider=%s, model=%s, json_mode=%s", info.provider, model_id, json_mode)
    try:
        return await transport(
            user_prompt,
            system_prompt or "",
            info.id,
            api_key,
            attachments=[Attachment.model_validate(a) for a in attachments or []],
            json_mode=json_mode,
            temperature=temperature,
            max_tokens=max_tokens or config.MAX_OUTPUT_TOKENS,
            cancellation=cancellation,
        )
    except OperationCancelled:
        raise
    except LLMError as exc:
        logger.error("LLM call failed: %s", exc)
        raise
    except Exception as exc:
        err = _to_llm_error(exc, info.provider, model_id)
        logger.error("LLM call failed: %s", err)
        raise err from exc


def parse_json_response(text: str | dict | list) -> Any:
    """Decode model output: fenced block first, then the whole string, then the outer object."""
    if isinstance(text, (dict, list)):
        return text
    parsed = parse_json_text(text or "")
    if parsed is None:
        snippet = (text or "")[:200]
        logger.debug("Unparseable model response: %s", snippet)
        raise ResponseParseError("Failed to parse JSON response", raw=text or "")
    return parsed


async def call_model_json(
    model_id: str,
    user_prompt: str,
    system_prompt: str = "",
    credentials: ApiKeys | Mapping[str, str] | None = None,
    attachments: list[Attachment] | None = None,
    **kwargs: Any,
) -> Any:
    text = await call_model(model_id, user_prompt, system_prompt, credentials, attachments, json_mode=True, **kwargs)
    return parse_json_response(text)


def make_model_caller(
    model_id: str,
    credentials: ApiKeys | Mapping[str, str] | None,
    *,
    json_mode: bool = True,
    cancellation: CancellationLike = None,
    default_temperature: float | None = None,
):
    """Build an async ``call_llm(user_prompt, system_prompt, *, temperature=None)``.

    ``default_temperature`` applies to calls that don't pass their own.

    In JSON mode the reply is decoded when possible; undecodable text is
    returned as-is for the caller's fallback handling.
    """

    async def call_llm(user_prompt: str, system_prompt: str = "", *, temperature: float | None = None):
        text = await call_model(
            model_id,
            user_prompt,
            system_prompt,
            credentials,
            json_mode=json_mode,
            temperature=default_temperature if temperature is None else temperature,
            cancellation=cancellation,
        )
        if not json_mode:
            return text
        try:
            return parse_json_response(text)
        except ResponseParseError:
            logger.warning("Model %s returned non-JSON text in JSON mode; passing raw text through", model_id)
            return text

    return call_llm
