from __future__ import annotations

import logging

from .models import GateState

logger = logging.getLogger(__name__)


class ReadbackGate:
    """Two-phase handshake for the energy readback.

    A request is issued on one tick and its result consumed on a later one, so
    a tick never waits on the backend. At most one request is outstanding.
    A request the backend never reports as ready leaves the gate in
    AWAITING_COMPLETION; stepping carries on, only the diagnostic stalls.
    """

    def __init__(self):
        self.state = GateState.AWAITING_ISSUE

    @property
    def outstanding(self) -> bool:
        return self.state is GateState.AWAITING_COMPLETION

    def try_issue(self, backend) -> bool:
        if self.state is not GateState.AWAITING_ISSUE:
            return False
        backend.request_diagnostic()
        self.state = GateState.AWAITING_COMPLETION
        return True

    def poll(self, backend) -> float | None:
        if self.state is not GateState.AWAITING_COMPLETION:
            return None
        if not backend.is_diagnostic_ready():
            return None
        value = float(backend.fetch_diagnostic())
        self.state = GateState.AWAITING_ISSUE
        logger.debug("Diagnostic readback completed: %r", value)
        return value

    def reset(self) -> None:
        self.state = GateState.AWAITING_ISSUE
