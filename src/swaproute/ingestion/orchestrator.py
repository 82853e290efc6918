"""
Bulk state acquisition at startup, and the live loop that keeps the graph and the routes current as
pool events arrive.
"""

import asyncio
import dataclasses
from collections.abc import AsyncIterable, Callable, Iterable
from concurrent.futures import Executor
from weakref import WeakSet

from eth_typing import ChecksumAddress
from web3.types import BlockIdentifier

from swaproute.config import settings
from swaproute.directory import AnyPoolRecord, PoolDirectory
from swaproute.events import ChainLogEvent
from swaproute.exceptions import SwaprouteError, UnknownPool
from swaproute.graph import SwapGraph, build_graph, update_pool_edges
from swaproute.ingestion.fetchers import fetch_pool_state
from swaproute.ingestion.reader import ChainReader
from swaproute.logging import logger
from swaproute.pathfinding import ShortestPath, best_path
from swaproute.quoting import PoolState
from swaproute.state_store import PoolStateStore
from swaproute.types import (
    AbstractPublisherMessage,
    PoolStateMessage,
    PublisherMixin,
    Subscriber,
)
from swaproute.types.aliases import BlockNumber


@dataclasses.dataclass(slots=True)
class BulkFetchReport:
    fetched: list[ChecksumAddress] = dataclasses.field(default_factory=list)
    excluded: dict[ChecksumAddress, str] = dataclasses.field(default_factory=dict)


async def bulk_fetch(
    records: Iterable[AnyPoolRecord],
    reader: ChainReader,
    directory: PoolDirectory,
    store: PoolStateStore,
    max_concurrency: int | None = None,
    block_identifier: BlockIdentifier | None = None,
    executor: Executor | None = None,
) -> BulkFetchReport:
    """
    Fetch the state of every pool concurrently, with at most `max_concurrency` pools in flight, and
    record the results in the store. A pool that fails to fetch is excluded and logged, and does not
    affect the others.
    """

    if max_concurrency is None:
        max_concurrency = settings.ingestion.max_concurrency

    semaphore = asyncio.Semaphore(max_concurrency)
    report = BulkFetchReport()

    async def fetch_one(record: AnyPoolRecord) -> None:
        async with semaphore:
            try:
                state = await fetch_pool_state(
                    record=record,
                    reader=reader,
                    directory=directory,
                    block_identifier=block_identifier,
                    executor=executor,
                )
            except SwaprouteError as exc:
                reason = str(exc)
            except Exception as exc:
                # Unexpected failures are isolated to their pool like any chain read error
                logger.exception(f"Unexpected error fetching pool {record.address}")
                reason = f"{type(exc).__name__}: {exc}"
            else:
                store.set(state)
                report.fetched.append(record.address)
                return

        logger.warning(f"Could not fetch pool {record.address}: {reason}")
        store.mark_excluded(record.address, reason)
        report.excluded[record.address] = reason

    await asyncio.gather(*(fetch_one(record) for record in records))

    logger.info(
        f"Fetched {len(report.fetched)} pools, excluded {len(report.excluded)} "
        f"(max concurrency {max_concurrency})"
    )
    return report


@dataclasses.dataclass(slots=True, frozen=True)
class RouteQuery:
    start: ChecksumAddress
    end: ChecksumAddress


@dataclasses.dataclass(slots=True, frozen=True)
class RouteUpdate(AbstractPublisherMessage):
    """
    A message carrying the current best path for a route query.
    """

    query: RouteQuery
    path: ShortestPath
    block_number: BlockNumber | None = None


@dataclasses.dataclass(slots=True, frozen=True)
class PoolStateUpdated(PoolStateMessage):
    state: PoolState


class LiveRouter(PublisherMixin):
    """
    Applies pool events to the state store in arrival order. After each event the graph edges of the
    affected pool are recomputed (or the whole graph is rebuilt when `full_rebuild` is set), and
    every route query is re-run. Each result is delivered to the `on_route` callback and to the
    subscribers of this router.
    """

    def __init__(
        self,
        store: PoolStateStore,
        directory: PoolDirectory,
        queries: Iterable[RouteQuery],
        *,
        on_route: Callable[[RouteUpdate], None] | None = None,
        full_rebuild: bool | None = None,
        reference_trade_size: int | None = None,
        accept_approximate: bool | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.queries = list(queries)
        self.on_route = on_route
        self.full_rebuild = (
            full_rebuild if full_rebuild is not None else settings.routing.full_rebuild_on_event
        )
        self.reference_trade_size = reference_trade_size
        self.accept_approximate = accept_approximate
        self.events_processed = 0
        self.events_skipped = 0

        self._subscribers: WeakSet[Subscriber] = WeakSet()
        self.graph: SwapGraph = self._build_graph()

    def _build_graph(self) -> SwapGraph:
        return build_graph(
            store=self.store,
            directory=self.directory,
            reference_trade_size=self.reference_trade_size,
            accept_approximate=self.accept_approximate,
        )

    def find_routes(self, block_number: BlockNumber | None = None) -> list[RouteUpdate]:
        """
        Run every route query against the current graph and publish the results.
        """

        updates = [
            RouteUpdate(
                query=query,
                path=best_path(self.graph, query.start, query.end),
                block_number=block_number,
            )
            for query in self.queries
        ]

        for update in updates:
            if self.on_route is not None:
                self.on_route(update)
            self._notify_subscribers(update)

        return updates

    def process_event(self, event: ChainLogEvent) -> PoolState | None:
        """
        Apply one event and refresh the routes. Returns the new state of the pool, or `None` if the
        event was skipped.
        """

        try:
            state = self.store.apply(event)
        except UnknownPool:
            logger.debug(f"Skipping event for untracked pool {event.address}")
            self.events_skipped += 1
            return None
        except SwaprouteError as exc:
            logger.warning(f"Skipping event for pool {event.address}: {exc}")
            self.events_skipped += 1
            return None

        if self.full_rebuild:
            self.graph = self._build_graph()
        else:
            update_pool_edges(
                graph=self.graph,
                state=state,
                directory=self.directory,
                reference_trade_size=self.reference_trade_size,
                accept_approximate=self.accept_approximate,
            )

        self.events_processed += 1
        self._notify_subscribers(PoolStateUpdated(state=state))
        self.find_routes(event.block_number)
        return state

    async def run(self, stream: AsyncIterable[ChainLogEvent]) -> None:
        """
        Consume the event stream until it is exhausted.
        """

        async for event in stream:
            self.process_event(event)

        logger.info(
            f"Event stream ended after {self.events_processed} events "
            f"({self.events_skipped} skipped)"
        )
