import threading

import pytest

from swaproute.events import (
    CONSTANT_PRODUCT_SYNC_TOPIC,
    ChainLogEvent,
    ConstantProductSync,
    StableSwapExchange,
)
from swaproute.exceptions import ExternalUpdateError, UnknownPool
from swaproute.state_store import PoolStateStore
from swaproute.uniswap.v2_types import ConstantProductPoolState
from tests.addresses import DAI, DAI_WETH_POOL, USDC, USDC_WETH_POOL, WETH, make_address


def make_state(address=USDC_WETH_POOL, token0=USDC, token1=WETH) -> ConstantProductPoolState:
    return ConstantProductPoolState(
        address=address,
        token0=token0,
        token1=token1,
        fee=30,
        reserves_token0=10**12,
        reserves_token1=10**21,
    )


def sync_event(address, reserves0: int, reserves1: int, block: int = 1) -> ChainLogEvent:
    return ChainLogEvent(
        topic=CONSTANT_PRODUCT_SYNC_TOPIC,
        address=address,
        payload=ConstantProductSync(reserves_token0=reserves0, reserves_token1=reserves1),
        block_number=block,
    )


def test_set_and_get():
    store = PoolStateStore()
    state = make_state()
    store.set(state)

    assert USDC_WETH_POOL in store
    assert len(store) == 1
    assert store.get(USDC_WETH_POOL) is state
    assert store.addresses() == (USDC_WETH_POOL,)
    assert list(store) == [state]

    with pytest.raises(UnknownPool):
        store.get(DAI_WETH_POOL)


def test_snapshot_is_a_copy():
    store = PoolStateStore()
    store.set(make_state())
    snapshot = store.snapshot()
    store.set(make_state(address=DAI_WETH_POOL, token0=DAI))
    assert len(snapshot) == 1
    assert len(store) == 2


def test_apply_updates_only_the_emitting_pool():
    store = PoolStateStore()
    store.set(make_state())
    other = make_state(address=DAI_WETH_POOL, token0=DAI)
    store.set(other)

    new_state = store.apply(sync_event(USDC_WETH_POOL, 5, 6, block=42))
    assert new_state.reserves_token0 == 5
    assert new_state.block == 42
    assert store.get(USDC_WETH_POOL) is new_state
    assert store.get(DAI_WETH_POOL) is other


def test_apply_to_unknown_pool():
    store = PoolStateStore()
    with pytest.raises(UnknownPool):
        store.apply(sync_event(make_address(1), 1, 1))


def test_failed_apply_keeps_previous_state():
    store = PoolStateStore()
    state = make_state()
    store.set(state)
    with pytest.raises(ExternalUpdateError):
        store.apply(
            ChainLogEvent(
                topic=CONSTANT_PRODUCT_SYNC_TOPIC,
                address=USDC_WETH_POOL,
                payload=StableSwapExchange(sold_id=0, tokens_sold=1, bought_id=1, tokens_bought=1),
            )
        )
    assert store.get(USDC_WETH_POOL) is state


def test_mark_excluded():
    store = PoolStateStore()
    store.set(make_state())
    store.mark_excluded(USDC_WETH_POOL, "timed out")
    assert USDC_WETH_POOL not in store
    assert store.excluded == {USDC_WETH_POOL: "timed out"}

    # A later successful fetch clears the exclusion
    store.set(make_state())
    assert store.excluded == {}


def test_concurrent_applies():
    store = PoolStateStore()
    store.set(make_state())

    def worker(offset: int) -> None:
        for i in range(100):
            store.apply(sync_event(USDC_WETH_POOL, offset + i, offset + i, block=i))

    threads = [threading.Thread(target=worker, args=(n * 1_000,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final_state = store.get(USDC_WETH_POOL)
    assert final_state.reserves_token0 == final_state.reserves_token1
    assert final_state.block == 99
