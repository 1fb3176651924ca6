"""
Lifecycle events and the observer bus.

Adapters report progress of a request/response exchange by setting the
last event on the request. Every attached observer interested in that
kind of event is then called synchronously, in attachment order, with the
request as its only argument and reads the event via ``last_event``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Protocol, Tuple, Union


class EventKind(str, Enum):
    """Closed vocabulary of lifecycle events."""

    START = "start"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    SENT_HEADERS = "sentHeaders"
    SENT_BODY_PART = "sentBodyPart"
    SENT_BODY = "sentBody"
    RECEIVED_HEADERS = "receivedHeaders"
    RECEIVED_BODY_PART = "receivedBodyPart"
    RECEIVED_ENCODED_BODY_PART = "receivedEncodedBodyPart"
    RECEIVED_BODY = "receivedBody"
    WARNING = "warning"


@dataclass(frozen=True)
class Event:
    """A single lifecycle event.

    Payloads per kind:
        connect: pool key string
        sentHeaders: raw header block
        sentBodyPart: number of bytes written
        receivedHeaders / receivedBody: the Response
        receivedBodyPart / receivedEncodedBodyPart: raw body bytes
        warning: diagnostic message
    """

    kind: EventKind
    data: Any = None

    @property
    def name(self) -> str:
        return self.kind.value


class Observer(Protocol):
    def update(self, subject: "Subject") -> None:
        ...


EventLike = Union[EventKind, str]


def _as_kind(kind: EventLike) -> EventKind:
    if isinstance(kind, EventKind):
        return kind
    return EventKind(kind)


class Subject:
    """Observer bus mixed into Request."""

    def __init__(self) -> None:
        self._observers: List[Tuple[Observer, Optional[FrozenSet[EventKind]]]] = []
        self._last_event = Event(EventKind.START)

    def attach(self, observer: Observer, events: Optional[Iterable[EventLike]] = None) -> None:
        """Attach an observer, optionally limited to a set of event kinds.

        Attaching an observer that is already attached does nothing.
        """
        for attached, _ in self._observers:
            if attached is observer:
                return
        interests = None if events is None else frozenset(_as_kind(e) for e in events)
        self._observers.append((observer, interests))

    def detach(self, observer: Observer) -> None:
        for index, (attached, _) in enumerate(self._observers):
            if attached is observer:
                del self._observers[index]
                return

    @property
    def observers(self) -> List[Observer]:
        return [observer for observer, _ in self._observers]

    def notify(self) -> None:
        kind = self._last_event.kind
        # Observers may detach themselves while being notified
        for observer, interests in list(self._observers):
            if interests is None or kind in interests:
                observer.update(self)

    def set_last_event(self, kind: EventLike, data: Any = None) -> None:
        self._last_event = Event(_as_kind(kind), data)
        self.notify()

    @property
    def last_event(self) -> Event:
        return self._last_event

    def get_last_event(self) -> Event:
        return self._last_event
