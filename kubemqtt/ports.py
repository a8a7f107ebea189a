"""
Ports
=====

Capability interfaces between the reporting core and its concrete clients.

- Publisher: MQTT side (publish + wait for ack)
- PodLister: Kubernetes side (list current Pods)
- Clock: time source used to stamp messages

Diseño: los reporters solo conocen estos protocolos, nunca paho ni el
cliente de kubernetes. Los tests usan fakes de estas mismas interfaces.
"""
from datetime import datetime
from typing import Any, List, Protocol, runtime_checkable


class PublishError(Exception):
    """A single publish was rejected, timed out, or never left the client."""

    def __init__(self, topic: str, reason: str, rc: int = 0):
        super().__init__(f"publish to '{topic}' failed: {reason}")
        self.topic = topic
        self.reason = reason
        self.rc = rc


@runtime_checkable
class Publisher(Protocol):
    """Publish a payload and block until the broker acknowledges it."""

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        """
        Raises:
            PublishError: If the message could not be delivered to the broker
        """
        ...


@runtime_checkable
class PodLister(Protocol):
    """List every Pod visible to the cluster client."""

    def list_pods(self) -> List[Any]:
        ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in the local timezone (offset-aware)."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock:
    """Clock frozen at a given instant."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


__all__ = [
    "PublishError",
    "Publisher",
    "PodLister",
    "Clock",
    "SystemClock",
    "FixedClock",
]
