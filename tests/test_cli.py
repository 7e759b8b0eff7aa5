from __future__ import annotations

import asyncio
import os
import signal
import unittest
from unittest.mock import patch

import main


def fixture_experiment() -> dict:
    return {
        "prompt": "write an email",
        "output_type": "comms",
        "matrix": {"tones": ["casual"], "lengths": ["short"], "formats": ["email"]},
    }


@unittest.skipUnless(os.name == "posix", "loop signal handlers need a POSIX event loop")
class RunMatrixInterruptTests(unittest.TestCase):
    def test_ctrl_c_cancels_token_and_returns_finished_cells(self):
        seen = {}

        async def fake_run_matrix_experiment(**kwargs):
            token = kwargs["cancellation_token"]
            signal.raise_signal(signal.SIGINT)
            for _ in range(100):
                if token.cancelled:
                    break
                await asyncio.sleep(0.01)
            seen["cancelled"] = token.cancelled
            return ["finished cell"]

        with patch("main.run_matrix_experiment", side_effect=fake_run_matrix_experiment):
            results = asyncio.run(main._run_matrix(fixture_experiment(), "gpt-4o"))

        self.assertEqual(results, ["finished cell"])
        self.assertTrue(seen["cancelled"])

    def test_architect_caller_uses_role_temperature(self):
        async def fake_run_matrix_experiment(**kwargs):
            return []

        with patch("main.make_model_caller") as make_caller, \
                patch("main.run_matrix_experiment", side_effect=fake_run_matrix_experiment):
            asyncio.run(main._run_matrix(fixture_experiment(), "gpt-4o"))

        self.assertEqual(make_caller.call_args.kwargs["default_temperature"], 0.7)


if __name__ == "__main__":
    unittest.main()
