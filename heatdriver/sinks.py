from __future__ import annotations

import abc
import logging

logger = logging.getLogger(__name__)


def format_diagnostic(value: float, simulated_time: float) -> str:
    return f"total energy: {value}\ntime: {simulated_time}"


def format_geometry(width: int, height: int) -> str:
    return f"{width}x{height}"


class UiSink(abc.ABC):
    """Where the driver publishes status text, diagnostics and geometry."""

    @abc.abstractmethod
    def publish(self, message: str) -> None: ...

    @abc.abstractmethod
    def publish_diagnostic(self, value: float, simulated_time: float) -> None: ...

    @abc.abstractmethod
    def publish_geometry(self, width: int, height: int) -> None: ...


class LoggingSink(UiSink):
    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger
        self.last_message: str | None = None
        self.last_diagnostic: tuple[float, float] | None = None
        self.last_geometry: tuple[int, int] | None = None

    def publish(self, message: str) -> None:
        self.last_message = message
        self.log.info(message)

    def publish_diagnostic(self, value: float, simulated_time: float) -> None:
        self.last_diagnostic = (value, simulated_time)
        self.log.info(format_diagnostic(value, simulated_time).replace("\n", ", "))

    def publish_geometry(self, width: int, height: int) -> None:
        self.last_geometry = (width, height)
        self.log.info("grid shape %s", format_geometry(width, height))


class RecordingSink(UiSink):
    """Keeps every publication in order; used by tests and the command interpreter."""

    def __init__(self):
        self.events: list[tuple[str, tuple]] = []

    def publish(self, message: str) -> None:
        self.events.append(("message", (message,)))

    def publish_diagnostic(self, value: float, simulated_time: float) -> None:
        self.events.append(("diagnostic", (value, simulated_time)))

    def publish_geometry(self, width: int, height: int) -> None:
        self.events.append(("geometry", (width, height)))

    def of_kind(self, kind: str) -> list[tuple]:
        return [payload for event_kind, payload in self.events if event_kind == kind]

    def clear(self) -> None:
        self.events.clear()
