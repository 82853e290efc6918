"""
Decoded chain events and their application to pool states.

Each payload describes the change reported by one pool log. `apply_event` returns a new state with
the change applied, leaving the original state untouched.
"""

import dataclasses

from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from hexbytes import HexBytes

from swaproute.curve.types import StableSwapPoolState
from swaproute.exceptions import ExternalUpdateError
from swaproute.logging import logger
from swaproute.quoting import PoolState
from swaproute.types.aliases import BlockNumber
from swaproute.uniswap.v2_types import ConstantProductPoolState
from swaproute.uniswap.v3_libraries.liquidity_math import add_delta
from swaproute.uniswap.v3_libraries.tick_bitmap import flip_tick
from swaproute.uniswap.v3_types import (
    ConcentratedLiquidityPoolState,
    Liquidity,
    LiquidityAtTick,
    SqrtPriceX96,
    Tick,
)


def _event_topic(signature: str) -> HexBytes:
    return HexBytes(keccak(text=signature))


CONSTANT_PRODUCT_SYNC_TOPIC = _event_topic("Sync(uint112,uint112)")
CONCENTRATED_LIQUIDITY_SWAP_TOPIC = _event_topic(
    "Swap(address,address,int256,int256,uint160,uint128,int24)"
)
CONCENTRATED_LIQUIDITY_MINT_TOPIC = _event_topic(
    "Mint(address,address,int24,int24,uint128,uint256,uint256)"
)
CONCENTRATED_LIQUIDITY_BURN_TOPIC = _event_topic(
    "Burn(address,int24,int24,uint128,uint256,uint256)"
)
STABLESWAP_TOKEN_EXCHANGE_TOPIC = _event_topic(
    "TokenExchange(address,int128,uint256,int128,uint256)"
)
# Liquidity events carry fixed-size arrays, so the topic depends on the number of coins
STABLESWAP_ADD_LIQUIDITY_TOPICS: dict[int, HexBytes] = {
    n: _event_topic(f"AddLiquidity(address,uint256[{n}],uint256[{n}],uint256,uint256)")
    for n in range(2, 9)
}
STABLESWAP_REMOVE_LIQUIDITY_TOPICS: dict[int, HexBytes] = {
    n: _event_topic(f"RemoveLiquidity(address,uint256[{n}],uint256[{n}],uint256)")
    for n in range(2, 9)
}


@dataclasses.dataclass(slots=True, frozen=True)
class ConstantProductSync:
    reserves_token0: int
    reserves_token1: int


@dataclasses.dataclass(slots=True, frozen=True)
class ConcentratedLiquiditySwap:
    sqrt_price_x96: SqrtPriceX96
    liquidity: Liquidity
    tick: Tick


@dataclasses.dataclass(slots=True, frozen=True)
class ConcentratedLiquidityPositionUpdate:
    """
    A Mint (positive liquidity) or Burn (negative liquidity) over a tick range.
    """

    tick_lower: Tick
    tick_upper: Tick
    liquidity: int


@dataclasses.dataclass(slots=True, frozen=True)
class StableSwapExchange:
    sold_id: int
    tokens_sold: int
    bought_id: int
    tokens_bought: int


@dataclasses.dataclass(slots=True, frozen=True)
class StableSwapLiquidityUpdate:
    """
    Signed per-coin balance changes from an AddLiquidity (positive) or RemoveLiquidity (negative)
    event.
    """

    deltas: tuple[int, ...]


type PoolEventPayload = (
    ConstantProductSync
    | ConcentratedLiquiditySwap
    | ConcentratedLiquidityPositionUpdate
    | StableSwapExchange
    | StableSwapLiquidityUpdate
)


@dataclasses.dataclass(slots=True, frozen=True)
class ChainLogEvent:
    topic: HexBytes
    address: ChecksumAddress
    payload: PoolEventPayload
    block_number: BlockNumber | None = None
    log_index: int | None = None


def _apply_position_update(
    state: ConcentratedLiquidityPoolState,
    update: ConcentratedLiquidityPositionUpdate,
    block: BlockNumber | None,
) -> ConcentratedLiquidityPoolState:
    if update.tick_lower >= update.tick_upper:
        raise ExternalUpdateError(
            message=f"Invalid tick range {update.tick_lower}-{update.tick_upper}"
        )

    # Modify copies so the original state is unaffected
    tick_bitmap = dict(state.tick_bitmap)
    tick_data = dict(state.tick_data)
    liquidity = state.liquidity
    update_block = block if block is not None else 0

    # Adjust in-range liquidity if the modified region includes the active tick
    if update.tick_lower <= state.tick < update.tick_upper:
        liquidity = add_delta(liquidity, update.liquidity)

    for tick in (update.tick_lower, update.tick_upper):
        if tick % state.tick_spacing != 0:
            raise ExternalUpdateError(message=f"Tick {tick} is not a multiple of the tick spacing")

        current = tick_data.get(tick)
        if current is None:
            current = LiquidityAtTick(liquidity_net=0, liquidity_gross=0, block=update_block)
            flip_tick(tick_bitmap, tick, state.tick_spacing, update_block)

        liquidity_gross = current.liquidity_gross + update.liquidity
        if liquidity_gross < 0:
            raise ExternalUpdateError(message=f"Negative gross liquidity at tick {tick}")

        if liquidity_gross == 0:
            # No remaining position references this tick, so it becomes uninitialized
            tick_data.pop(tick, None)
            flip_tick(tick_bitmap, tick, state.tick_spacing, update_block)
            continue

        tick_data[tick] = LiquidityAtTick(
            liquidity_net=(
                current.liquidity_net + update.liquidity
                if tick == update.tick_lower
                else current.liquidity_net - update.liquidity
            ),
            liquidity_gross=liquidity_gross,
            block=update_block,
        )

    return dataclasses.replace(
        state,
        liquidity=liquidity,
        tick_bitmap=tick_bitmap,
        tick_data=tick_data,
        block=block,
    )


def _apply_balance_deltas(
    state: StableSwapPoolState,
    deltas: tuple[int, ...],
    block: BlockNumber | None,
) -> StableSwapPoolState:
    if len(deltas) != len(state.balances):
        raise ExternalUpdateError(
            message=f"Expected {len(state.balances)} balance changes, got {len(deltas)}"
        )

    balances = tuple(balance + delta for balance, delta in zip(state.balances, deltas, strict=True))
    if any(balance < 0 for balance in balances):
        raise ExternalUpdateError(message=f"Update would leave negative balances {balances}")

    return dataclasses.replace(state, balances=balances, block=block)


def apply_event(
    state: PoolState,
    payload: PoolEventPayload,
    block: BlockNumber | None = None,
) -> PoolState:
    """
    Apply a decoded event payload to the state of the pool that emitted it.

    Raises `ExternalUpdateError` if the payload does not belong to the pool's venue or would produce
    an invalid state.
    """

    logger.debug(f"Applying {payload} to {state.address} at block {block}")

    match state, payload:
        case ConstantProductPoolState(), ConstantProductSync():
            return dataclasses.replace(
                state,
                reserves_token0=payload.reserves_token0,
                reserves_token1=payload.reserves_token1,
                block=block,
            )
        case ConcentratedLiquidityPoolState(), ConcentratedLiquiditySwap():
            return dataclasses.replace(
                state,
                sqrt_price_x96=payload.sqrt_price_x96,
                liquidity=payload.liquidity,
                tick=payload.tick,
                block=block,
            )
        case ConcentratedLiquidityPoolState(), ConcentratedLiquidityPositionUpdate():
            return _apply_position_update(state, payload, block)
        case StableSwapPoolState(), StableSwapExchange():
            n_coins = len(state.balances)
            if not (0 <= payload.sold_id < n_coins and 0 <= payload.bought_id < n_coins):
                raise ExternalUpdateError(message=f"Coin index out of range in {payload}")
            deltas = [0] * n_coins
            deltas[payload.sold_id] += payload.tokens_sold
            deltas[payload.bought_id] -= payload.tokens_bought
            return _apply_balance_deltas(state, tuple(deltas), block)
        case StableSwapPoolState(), StableSwapLiquidityUpdate():
            return _apply_balance_deltas(state, payload.deltas, block)
        case _:
            raise ExternalUpdateError(
                message=f"{type(payload).__name__} cannot be applied to {type(state).__name__}"
            )
