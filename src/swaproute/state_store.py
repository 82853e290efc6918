import threading
from collections.abc import Iterator

from eth_typing import ChecksumAddress

from swaproute.events import ChainLogEvent, apply_event
from swaproute.exceptions import UnknownPool
from swaproute.logging import logger
from swaproute.quoting import PoolState


class PoolStateStore:
    """
    The current state of every tracked pool, keyed by pool address.

    States are immutable, so readers may hold a state returned by the store without copying it.
    Writes are serialized by a lock, which allows ingestion and route queries to run on separate
    threads.
    """

    def __init__(self) -> None:
        self._states: dict[ChecksumAddress, PoolState] = {}
        self._excluded: dict[ChecksumAddress, str] = {}
        self._state_lock = threading.Lock()

    def __contains__(self, address: object) -> bool:
        return address in self._states

    def __iter__(self) -> Iterator[PoolState]:
        return iter(self.snapshot().values())

    def __len__(self) -> int:
        return len(self._states)

    @property
    def excluded(self) -> dict[ChecksumAddress, str]:
        """
        Pools which could not be fetched, with the reason for each.
        """
        with self._state_lock:
            return dict(self._excluded)

    def addresses(self) -> tuple[ChecksumAddress, ...]:
        with self._state_lock:
            return tuple(self._states)

    def get(self, address: ChecksumAddress) -> PoolState:
        try:
            return self._states[address]
        except KeyError:
            raise UnknownPool(address) from None

    def snapshot(self) -> dict[ChecksumAddress, PoolState]:
        with self._state_lock:
            return dict(self._states)

    def set(self, state: PoolState) -> None:
        """
        Record the full state of a pool, replacing any previous state.
        """

        with self._state_lock:
            self._states[state.address] = state
            self._excluded.pop(state.address, None)

    def mark_excluded(self, address: ChecksumAddress, reason: str) -> None:
        with self._state_lock:
            self._states.pop(address, None)
            self._excluded[address] = reason
        logger.info(f"Excluded pool {address}: {reason}")

    def apply(self, event: ChainLogEvent) -> PoolState:
        """
        Apply a decoded event to the one pool that emitted it and return its new state.

        Raises `UnknownPool` if the pool is not tracked.
        """

        with self._state_lock:
            try:
                state = self._states[event.address]
            except KeyError:
                raise UnknownPool(event.address) from None

            new_state = apply_event(state, event.payload, event.block_number)
            self._states[event.address] = new_state
            return new_state
