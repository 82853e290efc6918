from .abstract import AbstractPoolState
from .messaging import (
    AbstractPublisherMessage,
    PoolStateMessage,
    Publisher,
    PublisherMixin,
    Subscriber,
)

__all__ = (
    "AbstractPoolState",
    "AbstractPublisherMessage",
    "PoolStateMessage",
    "Publisher",
    "PublisherMixin",
    "Subscriber",
)
