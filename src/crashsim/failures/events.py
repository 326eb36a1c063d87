"""
Failure notification events.

The failure system publishes to a sink callable supplied by its owner.
Delivery is fire-and-forget, once per trigger.
"""

from dataclasses import dataclass
from typing import Callable, List, Union

from ..core.severity import Severity
from .types import FailurePayload, FailureType


@dataclass(frozen=True)
class FailureOccurred:
    type: FailureType
    severity: Severity
    payload: FailurePayload


@dataclass(frozen=True)
class CriticalMessage:
    title: str
    content: str
    severity: Severity = Severity.CRITICAL


FailureEvent = Union[FailureOccurred, CriticalMessage]
EventSink = Callable[[FailureEvent], None]


def null_sink(event: FailureEvent) -> None:
    pass


class EventRecorder:
    """Sink that keeps every event it receives."""

    def __init__(self):
        self.events: List[FailureEvent] = []

    def __call__(self, event: FailureEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self):
        self.events.clear()
