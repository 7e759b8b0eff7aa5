from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from pipeline.cancellation import CancellationToken, OperationCancelled
from pipeline.llm import (
    ApiKeys,
    Attachment,
    ErrorKind,
    LLMError,
    LLMTimeoutError,
    MissingCredentialError,
    ResponseParseError,
    _record_usage,
    _with_reference_lines,
    _with_tiered_retry,
    _with_timeout,
    call_model,
    call_model_json,
    classify_error,
    get_model,
    get_models_by_provider,
    make_model_caller,
    parse_json_response,
    set_usage_callback,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
        self.body = {"error": {"message": f"{message} (from body)"}}


def fixture_flaky(kind: ErrorKind, failures: int = 99):
    """An async callable that fails ``failures`` times with ``kind`` then returns "ok"."""
    calls = []

    async def fn():
        calls.append(1)
        if len(calls) <= failures:
            raise LLMError(f"attempt {len(calls)}", provider="google", model="gemini-2.5-flash", kind=kind)
        return "ok"

    return fn, calls


@patch("pipeline.llm.RETRY_DELAYS", (0, 0, 0, 0, 0))
class TieredRetryTests(unittest.TestCase):
    def test_unavailable_gives_three_attempts(self):
        fn, calls = fixture_flaky(ErrorKind.UNAVAILABLE)
        with self.assertRaises(LLMError) as ctx:
            asyncio.run(_with_tiered_retry(fn))
        self.assertEqual(len(calls), 3)
        self.assertEqual(ctx.exception.kind, ErrorKind.UNAVAILABLE)

    def test_other_transient_errors_give_six_attempts(self):
        fn, calls = fixture_flaky(ErrorKind.RATE_LIMITED)
        with self.assertRaises(LLMError):
            asyncio.run(_with_tiered_retry(fn))
        self.assertEqual(len(calls), 6)

    def test_bad_request_is_not_retried(self):
        fn, calls = fixture_flaky(ErrorKind.BAD_REQUEST)
        with self.assertRaises(LLMError):
            asyncio.run(_with_tiered_retry(fn))
        self.assertEqual(len(calls), 1)

    def test_recovers_after_transient_failures(self):
        fn, calls = fixture_flaky(ErrorKind.UNKNOWN, failures=2)
        self.assertEqual(asyncio.run(_with_tiered_retry(fn)), "ok")
        self.assertEqual(len(calls), 3)

    def test_cancellation_stops_backoff(self):
        fn, calls = fixture_flaky(ErrorKind.UNAVAILABLE)

        async def run():
            token = CancellationToken()
            token.cancel()
            return await _with_tiered_retry(fn, token)

        with self.assertRaises(OperationCancelled):
            asyncio.run(run())
        self.assertEqual(len(calls), 1)

    def test_callable_cancellation(self):
        fn, calls = fixture_flaky(ErrorKind.UNKNOWN)
        with self.assertRaises(OperationCancelled):
            asyncio.run(_with_tiered_retry(fn, lambda: True))
        self.assertEqual(len(calls), 1)


class ClassifyErrorTests(unittest.TestCase):
    def test_status_codes(self):
        self.assertEqual(classify_error(_StatusError("x", 503)), ErrorKind.UNAVAILABLE)
        self.assertEqual(classify_error(_StatusError("x", 429)), ErrorKind.RATE_LIMITED)
        self.assertEqual(classify_error(_StatusError("x", 401)), ErrorKind.INVALID_CREDENTIAL)
        self.assertEqual(classify_error(_StatusError("x", 400)), ErrorKind.BAD_REQUEST)
        self.assertEqual(classify_error(_StatusError("x", 500)), ErrorKind.UNKNOWN)

    def test_message_and_timeout(self):
        self.assertEqual(classify_error(RuntimeError("Model is overloaded")), ErrorKind.UNAVAILABLE)
        self.assertEqual(classify_error(asyncio.TimeoutError()), ErrorKind.TIMEOUT)
        self.assertEqual(classify_error(LLMError("x", kind=ErrorKind.BAD_REQUEST)), ErrorKind.BAD_REQUEST)


class RegistryTests(unittest.TestCase):
    def test_listed_and_prefixed_models(self):
        self.assertEqual(get_model("gpt-4o").provider, "openai")
        self.assertEqual(get_model("claude-opus-5").provider, "anthropic")
        self.assertEqual(get_model("gemini-3-pro").provider, "google")
        self.assertIsNone(get_model("llama-3"))
        self.assertEqual({m.provider for m in get_models_by_provider("google")}, {"google"})

    def test_keys_per_provider(self):
        keys = ApiKeys(gemini="g", openai="o")
        self.assertEqual(keys.for_provider("google"), "g")
        self.assertEqual(keys.for_provider("anthropic"), "")

    def test_reference_lines_for_non_image_attachments(self):
        text = _with_reference_lines("Judge this", [
            Attachment(url="https://x/a.png"),
            Attachment(url="https://x/b.pdf", content_type="application/pdf", label="Spec"),
        ])
        self.assertEqual(text, "Judge this\n\nAttached references:\n- Spec (application/pdf): https://x/b.pdf")


class CallModelTests(unittest.TestCase):
    def test_unknown_model(self):
        with self.assertRaises(LLMError) as ctx:
            asyncio.run(call_model("llama-3", "hi", credentials={"openai": "k"}))
        self.assertEqual(ctx.exception.kind, ErrorKind.BAD_REQUEST)

    def test_missing_key_fails_before_transport(self):
        transport = AsyncMock(return_value="never")
        with patch.dict("pipeline.llm._PROVIDERS", {"anthropic": transport}):
            with self.assertRaises(MissingCredentialError) as ctx:
                asyncio.run(call_model("claude-3-5-haiku-20241022", "hi", credentials=ApiKeys(openai="k")))
        transport.assert_not_called()
        self.assertEqual(ctx.exception.provider, "anthropic")

    def test_dispatches_to_provider_transport(self):
        transport = AsyncMock(return_value="hello")
        with patch.dict("pipeline.llm._PROVIDERS", {"openai": transport}):
            text = asyncio.run(call_model("gpt-4o", "hi", "sys", {"openai": "k"}, json_mode=True, temperature=0.2))

        self.assertEqual(text, "hello")
        args, kwargs = transport.call_args
        self.assertEqual(args, ("hi", "sys", "gpt-4o", "k"))
        self.assertTrue(kwargs["json_mode"])
        self.assertEqual(kwargs["temperature"], 0.2)

    def test_sdk_errors_are_wrapped(self):
        transport = AsyncMock(side_effect=_StatusError("rate limited", 429))
        with patch.dict("pipeline.llm._PROVIDERS", {"openai": transport}):
            with self.assertRaises(LLMError) as ctx:
                asyncio.run(call_model("gpt-4o", "hi", credentials={"openai": "k"}))

        self.assertEqual(ctx.exception.kind, ErrorKind.RATE_LIMITED)
        self.assertIn("rate limited (from body)", str(ctx.exception))
        self.assertIsInstance(ctx.exception.cause, _StatusError)

    def test_auth_errors_have_readable_message(self):
        transport = AsyncMock(side_effect=_StatusError("bad key", 401))
        with patch.dict("pipeline.llm._PROVIDERS", {"anthropic": transport}):
            with self.assertRaises(LLMError) as ctx:
                asyncio.run(call_model("claude-sonnet-4-20250514", "hi", credentials={"anthropic": "k"}))
        self.assertEqual(str(ctx.exception), "[anthropic] Authentication failed: check the anthropic API key.")

    def test_timeout(self):
        async def run():
            with patch("config.REQUEST_TIMEOUT_SECONDS", 0.01):
                await _with_timeout(asyncio.sleep(1), "openai", "gpt-4o")

        with self.assertRaises(LLMTimeoutError) as ctx:
            asyncio.run(run())
        self.assertEqual(ctx.exception.kind, ErrorKind.TIMEOUT)


class JsonResponseTests(unittest.TestCase):
    def test_parse_strategies(self):
        self.assertEqual(parse_json_response('```json\n{"a": 1}\n```'), {"a": 1})
        self.assertEqual(parse_json_response('{"a": 2}'), {"a": 2})
        self.assertEqual(parse_json_response('Sure! {"a": 3} Hope that helps.'), {"a": 3})
        self.assertEqual(parse_json_response({"a": 4}), {"a": 4})

    def test_unparseable_raises(self):
        with self.assertRaises(ResponseParseError) as ctx:
            parse_json_response("no json here")
        self.assertEqual(ctx.exception.raw, "no json here")

    def test_call_model_json_forces_json_mode(self):
        mock = AsyncMock(return_value='```json\n{"ok": true}\n```')
        with patch("pipeline.llm.call_model", mock):
            data = asyncio.run(call_model_json("gemini-2.5-flash", "u", "s", {"gemini": "k"}))
        self.assertEqual(data, {"ok": True})
        self.assertTrue(mock.call_args.kwargs["json_mode"])

    def test_model_caller_decodes_or_passes_text_through(self):
        mock = AsyncMock(side_effect=['{"expanded_prompt": "x"}', "plain text"])
        with patch("pipeline.llm.call_model", mock):
            call_llm = make_model_caller("gpt-4o", {"openai": "k"})
            first = asyncio.run(call_llm("u", "s", temperature=0.3))
            second = asyncio.run(call_llm("u"))

        self.assertEqual(first, {"expanded_prompt": "x"})
        self.assertEqual(second, "plain text")
        self.assertEqual(mock.call_args_list[0].kwargs["temperature"], 0.3)
        self.assertTrue(mock.call_args_list[0].kwargs["json_mode"])

    def test_model_caller_default_temperature(self):
        mock = AsyncMock(return_value="{}")
        with patch("pipeline.llm.call_model", mock):
            call_llm = make_model_caller("gpt-4o", {"openai": "k"}, default_temperature=0.7)
            asyncio.run(call_llm("u"))
            asyncio.run(call_llm("u", temperature=0.1))
        self.assertEqual([c.kwargs["temperature"] for c in mock.call_args_list], [0.7, 0.1])


class UsageCallbackTests(unittest.TestCase):
    def setUp(self):
        self.addCleanup(set_usage_callback, None)

    def test_callback_receives_counts(self):
        cb = MagicMock()
        set_usage_callback(cb)
        _record_usage("google", "gemini-2.5-flash", 120, 45)
        cb.assert_called_once_with("google", "gemini-2.5-flash", 120, 45)

    def test_callback_failure_is_logged_not_raised(self):
        set_usage_callback(MagicMock(side_effect=RuntimeError("ledger down")))
        with self.assertLogs("pipeline.llm", level="WARNING"):
            _record_usage("openai", "gpt-4o", 1, 1)


if __name__ == "__main__":
    unittest.main()
