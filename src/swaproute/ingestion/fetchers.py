"""
Fetch the full state of a pool from the chain, one function per venue.
"""

import asyncio
import itertools
from collections.abc import Iterable
from concurrent.futures import Executor

from web3.types import BlockIdentifier

from swaproute.curve.stableswap_math import rate_for_decimals
from swaproute.curve.types import StableSwapPoolState
from swaproute.directory import (
    AnyPoolRecord,
    ConcentratedLiquidityPoolRecord,
    ConstantProductPoolRecord,
    PoolDirectory,
    StableSwapPoolRecord,
)
from swaproute.ingestion.reader import ChainCall, ChainReader
from swaproute.logging import logger
from swaproute.quoting import PoolState
from swaproute.types.aliases import BlockNumber
from swaproute.uniswap.v2_types import ConstantProductPoolState
from swaproute.uniswap.v3_functions import get_tick_bitmap_words
from swaproute.uniswap.v3_libraries.tick_bitmap import decode_bitmap_word
from swaproute.uniswap.v3_types import (
    BitmapAtWord,
    BitmapWord,
    ConcentratedLiquidityPoolState,
    LiquidityAtTick,
    Tick,
)

SLOT0_TYPES = ("uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool")
TICK_STRUCT_TYPES = (
    "uint128",  # liquidityGross
    "int128",  # liquidityNet
    "uint256",  # feeGrowthOutside0X128
    "uint256",  # feeGrowthOutside1X128
    "int56",  # tickCumulativeOutside
    "uint160",  # secondsPerLiquidityOutsideX128
    "uint32",  # secondsOutside
    "bool",  # initialized
)


def _block_number(block_identifier: BlockIdentifier | None) -> BlockNumber | None:
    return block_identifier if isinstance(block_identifier, int) else None


async def fetch_constant_product_state(
    record: ConstantProductPoolRecord,
    reader: ChainReader,
    block_identifier: BlockIdentifier | None = None,
) -> ConstantProductPoolState:
    reserves0, reserves1, _ = await reader.read(
        ChainCall(
            address=record.address,
            function_prototype="getReserves()",
            return_types=("uint112", "uint112", "uint32"),
        ),
        block_identifier=block_identifier,
    )
    return ConstantProductPoolState(
        address=record.address,
        block=_block_number(block_identifier),
        token0=record.token0,
        token1=record.token1,
        fee=record.fee,
        reserves_token0=reserves0,
        reserves_token1=reserves1,
    )


def _decode_bitmap_words(
    bitmaps: Iterable[tuple[BitmapWord, int]],
    tick_spacing: int,
) -> list[Tick]:
    return list(
        itertools.chain.from_iterable(
            decode_bitmap_word(word_pos, bitmap, tick_spacing) for word_pos, bitmap in bitmaps
        )
    )


async def fetch_concentrated_liquidity_state(
    record: ConcentratedLiquidityPoolRecord,
    reader: ChainReader,
    block_identifier: BlockIdentifier | None = None,
    executor: Executor | None = None,
) -> ConcentratedLiquidityPoolState:
    """
    Fetch the price, the active liquidity, and every initialized tick of the pool.

    The bitmap is read for every word in the tick spacing's range. Words that are set are decoded
    into ticks, optionally on the provided executor, and the liquidity of each tick is then read in
    a second batch.
    """

    calls = [
        ChainCall(address=record.address, function_prototype="slot0()", return_types=SLOT0_TYPES),
        ChainCall(
            address=record.address, function_prototype="liquidity()", return_types=("uint128",)
        ),
    ]
    if record.tick_spacing is None:
        calls.append(
            ChainCall(
                address=record.address,
                function_prototype="tickSpacing()",
                return_types=("int24",),
            )
        )

    (sqrt_price_x96, tick, *_), (liquidity,), *rest = await reader.read_batch(
        calls, block_identifier=block_identifier
    )
    tick_spacing: int = rest[0][0] if rest else record.tick_spacing

    word_positions = get_tick_bitmap_words(tick_spacing)
    bitmap_results = await reader.read_batch(
        [
            ChainCall(
                address=record.address,
                function_prototype="tickBitmap(int16)",
                return_types=("uint256",),
                arguments=(word_pos,),
            )
            for word_pos in word_positions
        ],
        block_identifier=block_identifier,
    )
    block = _block_number(block_identifier) or 0
    tick_bitmap = {
        word_pos: BitmapAtWord(bitmap=bitmap, block=block)
        for word_pos, (bitmap,) in zip(word_positions, bitmap_results, strict=True)
        if bitmap != 0
    }
    set_words = [(word_pos, word.bitmap) for word_pos, word in tick_bitmap.items()]

    if executor is not None:
        initialized_ticks = await asyncio.get_running_loop().run_in_executor(
            executor, _decode_bitmap_words, set_words, tick_spacing
        )
    else:
        initialized_ticks = _decode_bitmap_words(set_words, tick_spacing)

    tick_results = await reader.read_batch(
        [
            ChainCall(
                address=record.address,
                function_prototype="ticks(int24)",
                return_types=TICK_STRUCT_TYPES,
                arguments=(initialized_tick,),
            )
            for initialized_tick in initialized_ticks
        ],
        block_identifier=block_identifier,
    )
    tick_data = {
        initialized_tick: LiquidityAtTick(
            liquidity_net=liquidity_net, liquidity_gross=liquidity_gross, block=block
        )
        for initialized_tick, (liquidity_gross, liquidity_net, *_) in zip(
            initialized_ticks, tick_results, strict=True
        )
    }

    logger.debug(
        f"Fetched {len(tick_data)} initialized ticks in {len(tick_bitmap)} words for pool "
        f"{record.address}"
    )

    return ConcentratedLiquidityPoolState(
        address=record.address,
        block=_block_number(block_identifier),
        token0=record.token0,
        token1=record.token1,
        fee=record.fee,
        tick_spacing=tick_spacing,
        liquidity=liquidity,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        tick_bitmap=tick_bitmap,
        tick_data=tick_data,
    )


async def fetch_stableswap_state(
    record: StableSwapPoolRecord,
    reader: ChainReader,
    directory: PoolDirectory,
    block_identifier: BlockIdentifier | None = None,
) -> StableSwapPoolState:
    """
    Fetch the coin balances of the pool, plus the amplification coefficient and fee if the record
    does not provide them. Rates are derived from the decimal places of each coin.
    """

    # Raises UnknownToken or SwaprouteValueError before any chain read for a missing coin or an
    # unsupported number of decimals
    rates = tuple(rate_for_decimals(directory.get_token(coin).decimals) for coin in record.coins)

    calls = [
        ChainCall(
            address=record.address,
            function_prototype=f"balances({record.coin_index_type})",
            return_types=("uint256",),
            arguments=(index,),
        )
        for index in range(len(record.coins))
    ]
    if record.amplification is None:
        calls.append(
            ChainCall(
                address=record.address,
                # A_precise() reports A * A_PRECISION
                function_prototype="A_precise()" if record.a_precision != 1 else "A()",
                return_types=("uint256",),
            )
        )
    if record.fee is None:
        calls.append(
            ChainCall(address=record.address, function_prototype="fee()", return_types=("uint256",))
        )

    results = await reader.read_batch(calls, block_identifier=block_identifier)
    balances = tuple(balance for (balance,) in results[: len(record.coins)])
    extra = iter(value for (value,) in results[len(record.coins) :])

    amplification = next(extra) if record.amplification is None else record.amplification
    fee = next(extra) if record.fee is None else record.fee

    return StableSwapPoolState(
        address=record.address,
        block=_block_number(block_identifier),
        coins=record.coins,
        balances=balances,
        rates=rates,
        amplification=amplification,
        fee=fee,
        a_precision=record.a_precision,
    )


async def fetch_pool_state(
    record: AnyPoolRecord,
    reader: ChainReader,
    directory: PoolDirectory,
    block_identifier: BlockIdentifier | None = None,
    executor: Executor | None = None,
) -> PoolState:
    match record:
        case ConstantProductPoolRecord():
            return await fetch_constant_product_state(record, reader, block_identifier)
        case ConcentratedLiquidityPoolRecord():
            return await fetch_concentrated_liquidity_state(
                record, reader, block_identifier, executor
            )
        case StableSwapPoolRecord():
            return await fetch_stableswap_state(record, reader, directory, block_identifier)
