from __future__ import annotations

import unittest

from fakes import FakeBackend
from heatdriver.models import GateState
from heatdriver.readback import ReadbackGate


class ReadbackGateTests(unittest.TestCase):
    def test_only_one_request_outstanding(self) -> None:
        backend = FakeBackend(readiness=[False])
        gate = ReadbackGate()

        self.assertTrue(gate.try_issue(backend))
        self.assertFalse(gate.try_issue(backend))
        self.assertEqual(backend.count("request_diagnostic"), 1)
        self.assertTrue(gate.outstanding)

    def test_poll_without_request_leaves_backend_alone(self) -> None:
        backend = FakeBackend()
        gate = ReadbackGate()

        self.assertIsNone(gate.poll(backend))
        self.assertEqual(backend.calls, [])

    def test_completed_readback_returns_value_and_rearms(self) -> None:
        backend = FakeBackend(readiness=[False, True], diagnostic_value=12.5)
        gate = ReadbackGate()
        gate.try_issue(backend)

        self.assertIsNone(gate.poll(backend))
        self.assertEqual(gate.state, GateState.AWAITING_COMPLETION)
        self.assertEqual(gate.poll(backend), 12.5)
        self.assertEqual(gate.state, GateState.AWAITING_ISSUE)
        self.assertEqual(backend.count("fetch_diagnostic"), 1)

    def test_reset_abandons_outstanding_request(self) -> None:
        backend = FakeBackend(readiness=[False])
        gate = ReadbackGate()
        gate.try_issue(backend)
        gate.reset()

        self.assertFalse(gate.outstanding)
        self.assertTrue(gate.try_issue(backend))


if __name__ == "__main__":
    unittest.main()
