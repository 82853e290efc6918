from collections.abc import AsyncIterator

import aiohttp
import pytest

from swaproute.directory import ConstantProductPoolRecord, PoolDirectory
from swaproute.erc20 import Erc20Token
from swaproute.events import (
    CONSTANT_PRODUCT_SYNC_TOPIC,
    ChainLogEvent,
    ConstantProductSync,
    StableSwapExchange,
)
from swaproute.ingestion.orchestrator import (
    LiveRouter,
    PoolStateUpdated,
    RouteQuery,
    RouteUpdate,
    bulk_fetch,
)
from swaproute.state_store import PoolStateStore
from swaproute.types import AbstractPublisherMessage, Publisher
from swaproute.uniswap.v2_types import ConstantProductPoolState
from tests.addresses import (
    DAI,
    DAI_WETH_POOL,
    USDC,
    USDC_DAI_POOL,
    USDC_WETH_POOL,
    WETH,
    make_address,
)
from tests.ingestion.fake_reader import (
    ConcurrencyTrackingReader,
    FailingChainReader,
    FakeChainReader,
)

RESERVES = {
    USDC_WETH_POOL: (20_000_000 * 10**6, 10_000 * 10**18),
    USDC_DAI_POOL: (5_000_000 * 10**18, 5_000_000 * 10**6),
    DAI_WETH_POOL: (2_000_000 * 10**18, 1_000 * 10**18),
}


class MessageCollector:
    def __init__(self) -> None:
        self.messages: list[AbstractPublisherMessage] = []

    def notify(self, publisher: Publisher, message: AbstractPublisherMessage) -> None:
        self.messages.append(message)


@pytest.fixture
async def store(directory: PoolDirectory) -> PoolStateStore:
    store = PoolStateStore()
    reader = FakeChainReader(
        {
            (address, "getReserves()", ()): (*reserves, 0)
            for address, reserves in RESERVES.items()
        }
    )
    await bulk_fetch(directory.pools, reader, directory, store)
    return store


def sync(address, reserves0: int, reserves1: int, block: int) -> ChainLogEvent:
    return ChainLogEvent(
        topic=CONSTANT_PRODUCT_SYNC_TOPIC,
        address=address,
        payload=ConstantProductSync(reserves_token0=reserves0, reserves_token1=reserves1),
        block_number=block,
    )


async def test_bulk_fetch(directory: PoolDirectory):
    store = PoolStateStore()
    reader = FakeChainReader(
        {
            (USDC_WETH_POOL, "getReserves()", ()): (*RESERVES[USDC_WETH_POOL], 0),
            (DAI_WETH_POOL, "getReserves()", ()): (*RESERVES[DAI_WETH_POOL], 0),
        }
    )

    report = await bulk_fetch(
        directory.pools, reader, directory, store, max_concurrency=1, block_identifier=123
    )

    assert sorted(report.fetched) == sorted([USDC_WETH_POOL, DAI_WETH_POOL])
    assert list(report.excluded) == [USDC_DAI_POOL]
    assert "reverted" in report.excluded[USDC_DAI_POOL]
    assert len(store) == 2
    assert USDC_DAI_POOL in store.excluded

    state = store.get(USDC_WETH_POOL)
    assert isinstance(state, ConstantProductPoolState)
    assert (state.reserves_token0, state.reserves_token1) == RESERVES[USDC_WETH_POOL]
    assert state.block == 123


async def test_bulk_fetch_with_no_records(directory: PoolDirectory):
    store = PoolStateStore()
    report = await bulk_fetch([], FakeChainReader(), directory, store)
    assert report.fetched == []
    assert report.excluded == {}


@pytest.mark.parametrize(
    "failure",
    [
        RuntimeError("unexpected"),
        aiohttp.ClientConnectionError("connection refused"),
        TimeoutError(),
    ],
    ids=["runtime error", "client connection error", "timeout"],
)
async def test_bulk_fetch_isolates_unexpected_errors(directory: PoolDirectory, failure: Exception):
    store = PoolStateStore()
    reader = FailingChainReader(
        {
            (address, "getReserves()", ()): (*reserves, 0)
            for address, reserves in RESERVES.items()
        },
        failures={USDC_DAI_POOL: failure},
    )

    report = await bulk_fetch(directory.pools, reader, directory, store)

    assert sorted(report.fetched) == sorted([USDC_WETH_POOL, DAI_WETH_POOL])
    assert list(report.excluded) == [USDC_DAI_POOL]
    assert type(failure).__name__ in report.excluded[USDC_DAI_POOL]
    assert USDC_DAI_POOL in store.excluded
    assert USDC_WETH_POOL in store
    assert DAI_WETH_POOL in store


@pytest.mark.parametrize("max_concurrency", [1, 3])
async def test_bulk_fetch_limits_pools_in_flight(tokens: list[Erc20Token], max_concurrency: int):
    pools = [
        ConstantProductPoolRecord(address=make_address(1_000 + i), token0=USDC, token1=WETH)
        for i in range(8)
    ]
    directory = PoolDirectory(tokens=tokens, pools=pools)
    reader = ConcurrencyTrackingReader(
        {(pool.address, "getReserves()", ()): (10**12, 10**21, 0) for pool in pools}
    )
    store = PoolStateStore()

    report = await bulk_fetch(
        directory.pools, reader, directory, store, max_concurrency=max_concurrency
    )

    assert len(report.fetched) == len(pools)
    assert len(store) == len(pools)
    assert reader.peak_in_flight == max_concurrency


async def test_find_routes(store: PoolStateStore, directory: PoolDirectory):
    updates: list[RouteUpdate] = []
    router = LiveRouter(
        store,
        directory,
        [RouteQuery(start=USDC, end=WETH), RouteQuery(start=WETH, end=DAI)],
        on_route=updates.append,
        reference_trade_size=1,
    )
    collector = MessageCollector()
    router.subscribe(collector)

    results = router.find_routes(block_number=10)
    assert results == updates
    assert collector.messages == updates
    assert [update.query.start for update in updates] == [USDC, WETH]
    assert all(update.block_number == 10 for update in updates)
    assert updates[0].path.pools == (USDC_WETH_POOL,)
    assert updates[1].path.found


@pytest.mark.parametrize("full_rebuild", [False, True])
async def test_route_changes_after_event(
    store: PoolStateStore, directory: PoolDirectory, full_rebuild: bool
):
    updates: list[RouteUpdate] = []
    router = LiveRouter(
        store,
        directory,
        [RouteQuery(start=USDC, end=WETH)],
        on_route=updates.append,
        full_rebuild=full_rebuild,
        reference_trade_size=1,
    )
    collector = MessageCollector()
    router.subscribe(collector)

    assert router.find_routes()[0].path.pools == (USDC_WETH_POOL,)

    # Draining the direct pool makes the route through DAI cheaper
    new_state = router.process_event(sync(USDC_WETH_POOL, 10 * 10**6, 5 * 10**15, block=11))
    assert new_state is not None
    assert new_state.block == 11
    assert store.get(USDC_WETH_POOL) is new_state

    assert updates[-1].path.tokens == (USDC, DAI, WETH)
    assert updates[-1].path.pools == (USDC_DAI_POOL, DAI_WETH_POOL)
    assert updates[-1].block_number == 11
    assert router.events_processed == 1

    state_messages = [
        message for message in collector.messages if isinstance(message, PoolStateUpdated)
    ]
    assert [message.state for message in state_messages] == [new_state]


async def test_skipped_events(store: PoolStateStore, directory: PoolDirectory):
    updates: list[RouteUpdate] = []
    router = LiveRouter(
        store, directory, [RouteQuery(start=USDC, end=WETH)], on_route=updates.append
    )

    assert router.process_event(sync(make_address(1), 1, 1, block=1)) is None
    assert (
        router.process_event(
            ChainLogEvent(
                topic=CONSTANT_PRODUCT_SYNC_TOPIC,
                address=USDC_WETH_POOL,
                payload=StableSwapExchange(sold_id=0, tokens_sold=1, bought_id=1, tokens_bought=1),
            )
        )
        is None
    )
    assert router.events_skipped == 2
    assert router.events_processed == 0
    assert updates == []


async def test_run(store: PoolStateStore, directory: PoolDirectory):
    updates: list[RouteUpdate] = []
    router = LiveRouter(
        store,
        directory,
        [RouteQuery(start=USDC, end=WETH)],
        on_route=updates.append,
        reference_trade_size=1,
    )

    async def stream() -> AsyncIterator[ChainLogEvent]:
        yield sync(USDC_WETH_POOL, 10 * 10**6, 5 * 10**15, block=20)
        yield sync(make_address(1), 1, 1, block=20)
        yield sync(USDC_WETH_POOL, *RESERVES[USDC_WETH_POOL], block=21)

    await router.run(stream())

    assert router.events_processed == 2
    assert router.events_skipped == 1
    assert [update.block_number for update in updates] == [20, 21]
    assert updates[0].path.pools == (USDC_DAI_POOL, DAI_WETH_POOL)
    assert updates[1].path.pools == (USDC_WETH_POOL,)


async def test_unsubscribe(store: PoolStateStore, directory: PoolDirectory):
    router = LiveRouter(store, directory, [RouteQuery(start=USDC, end=WETH)])
    collector = MessageCollector()
    router.subscribe(collector)
    router.unsubscribe(collector)
    router.find_routes()
    assert collector.messages == []
