"""
Push-style notification between the live router and its listeners.

A publisher holds weak references to its subscribers, so a listener that goes out of scope stops
receiving messages without unsubscribing.
"""

from typing import Protocol
from weakref import WeakSet

from swaproute.types.abstract import AbstractPoolState


class AbstractPublisherMessage:
    """
    Base for every message delivered to a subscriber.
    """


class PoolStateMessage(AbstractPublisherMessage):
    state: AbstractPoolState


class Subscriber(Protocol):
    def notify(self, publisher: "Publisher", message: AbstractPublisherMessage) -> None: ...


class Publisher(Protocol):
    _subscribers: WeakSet[Subscriber]

    def subscribe(self, subscriber: Subscriber) -> None: ...

    def unsubscribe(self, subscriber: Subscriber) -> None: ...


class PublisherMixin:
    """
    Default subscription handling for classes that keep a `_subscribers` WeakSet.
    """

    _subscribers: WeakSet[Subscriber]

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)

    def _notify_subscribers(self, message: AbstractPublisherMessage) -> None:
        # Copy first, a subscriber may unsubscribe while being notified
        for subscriber in tuple(self._subscribers):
            subscriber.notify(publisher=self, message=message)
