"""
Live pool events from an `eth_subscribe("logs")` websocket subscription.
"""

from collections.abc import AsyncIterator, Iterable
from typing import Any, cast

import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import AsyncWeb3, WebSocketProvider
from web3.types import LogReceipt, LogsSubscriptionArg

from swaproute.checksum_cache import get_checksum_address
from swaproute.events import (
    CONCENTRATED_LIQUIDITY_BURN_TOPIC,
    CONCENTRATED_LIQUIDITY_MINT_TOPIC,
    CONCENTRATED_LIQUIDITY_SWAP_TOPIC,
    CONSTANT_PRODUCT_SYNC_TOPIC,
    STABLESWAP_ADD_LIQUIDITY_TOPICS,
    STABLESWAP_REMOVE_LIQUIDITY_TOPICS,
    STABLESWAP_TOKEN_EXCHANGE_TOPIC,
    ChainLogEvent,
    ConcentratedLiquidityPositionUpdate,
    ConcentratedLiquiditySwap,
    ConstantProductSync,
    PoolEventPayload,
    StableSwapExchange,
    StableSwapLiquidityUpdate,
)
from swaproute.exceptions import ExternalUpdateError
from swaproute.logging import logger

_ADD_LIQUIDITY_COIN_COUNTS = {
    topic: n_coins for n_coins, topic in STABLESWAP_ADD_LIQUIDITY_TOPICS.items()
}
_REMOVE_LIQUIDITY_COIN_COUNTS = {
    topic: n_coins for n_coins, topic in STABLESWAP_REMOVE_LIQUIDITY_TOPICS.items()
}

POOL_EVENT_TOPICS: tuple[HexBytes, ...] = (
    CONSTANT_PRODUCT_SYNC_TOPIC,
    CONCENTRATED_LIQUIDITY_SWAP_TOPIC,
    CONCENTRATED_LIQUIDITY_MINT_TOPIC,
    CONCENTRATED_LIQUIDITY_BURN_TOPIC,
    STABLESWAP_TOKEN_EXCHANGE_TOPIC,
    *STABLESWAP_ADD_LIQUIDITY_TOPICS.values(),
    *STABLESWAP_REMOVE_LIQUIDITY_TOPICS.values(),
)


def _decode_indexed_tick(topic: bytes) -> int:
    (tick,) = eth_abi.abi.decode(types=["int24"], data=topic)
    return cast("int", tick)


def _decode_payload(
    topic: HexBytes,
    topics: list[HexBytes],
    data: bytes,
) -> PoolEventPayload | None:
    if topic == CONSTANT_PRODUCT_SYNC_TOPIC:
        reserves0, reserves1 = eth_abi.abi.decode(types=["uint112", "uint112"], data=data)
        return ConstantProductSync(reserves_token0=reserves0, reserves_token1=reserves1)

    if topic == CONCENTRATED_LIQUIDITY_SWAP_TOPIC:
        _, _, sqrt_price_x96, liquidity, tick = eth_abi.abi.decode(
            types=["int256", "int256", "uint160", "uint128", "int24"], data=data
        )
        return ConcentratedLiquiditySwap(
            sqrt_price_x96=sqrt_price_x96, liquidity=liquidity, tick=tick
        )

    if topic == CONCENTRATED_LIQUIDITY_MINT_TOPIC:
        # Mint(address sender, address indexed owner, int24 indexed tickLower,
        #      int24 indexed tickUpper, uint128 amount, uint256 amount0, uint256 amount1)
        _, amount, _, _ = eth_abi.abi.decode(
            types=["address", "uint128", "uint256", "uint256"], data=data
        )
        return ConcentratedLiquidityPositionUpdate(
            tick_lower=_decode_indexed_tick(topics[2]),
            tick_upper=_decode_indexed_tick(topics[3]),
            liquidity=amount,
        )

    if topic == CONCENTRATED_LIQUIDITY_BURN_TOPIC:
        # Burn(address indexed owner, int24 indexed tickLower, int24 indexed tickUpper,
        #      uint128 amount, uint256 amount0, uint256 amount1)
        amount, _, _ = eth_abi.abi.decode(types=["uint128", "uint256", "uint256"], data=data)
        return ConcentratedLiquidityPositionUpdate(
            tick_lower=_decode_indexed_tick(topics[2]),
            tick_upper=_decode_indexed_tick(topics[3]),
            liquidity=-amount,
        )

    if topic == STABLESWAP_TOKEN_EXCHANGE_TOPIC:
        sold_id, tokens_sold, bought_id, tokens_bought = eth_abi.abi.decode(
            types=["int128", "uint256", "int128", "uint256"], data=data
        )
        return StableSwapExchange(
            sold_id=sold_id,
            tokens_sold=tokens_sold,
            bought_id=bought_id,
            tokens_bought=tokens_bought,
        )

    if (n_coins := _ADD_LIQUIDITY_COIN_COUNTS.get(topic)) is not None:
        token_amounts, *_ = eth_abi.abi.decode(
            types=[f"uint256[{n_coins}]", f"uint256[{n_coins}]", "uint256", "uint256"], data=data
        )
        return StableSwapLiquidityUpdate(deltas=tuple(token_amounts))

    if (n_coins := _REMOVE_LIQUIDITY_COIN_COUNTS.get(topic)) is not None:
        token_amounts, *_ = eth_abi.abi.decode(
            types=[f"uint256[{n_coins}]", f"uint256[{n_coins}]", "uint256"], data=data
        )
        return StableSwapLiquidityUpdate(deltas=tuple(-amount for amount in token_amounts))

    return None


def decode_log(log: LogReceipt | dict[str, Any]) -> ChainLogEvent | None:
    """
    Decode a raw log into a `ChainLogEvent`. Returns `None` for logs that are not pool events.

    Raises `ExternalUpdateError` if the log has a known topic but a malformed body.
    """

    topics = [HexBytes(topic) for topic in log["topics"]]
    if not topics:
        return None

    try:
        payload = _decode_payload(topics[0], topics, HexBytes(log["data"]))
    except (DecodingError, IndexError) as exc:
        raise ExternalUpdateError(message=f"Could not decode log {log}") from exc

    if payload is None:
        return None

    return ChainLogEvent(
        topic=topics[0],
        address=get_checksum_address(log["address"]),
        payload=payload,
        block_number=log.get("blockNumber"),
        log_index=log.get("logIndex"),
    )


class Web3LogSubscription:
    """
    An async iterable of decoded pool events, read from a websocket log subscription. Logs that
    cannot be decoded are logged and skipped.
    """

    def __init__(
        self,
        w3: AsyncWeb3[WebSocketProvider],
        addresses: Iterable[ChecksumAddress],
    ) -> None:
        self.w3 = w3
        self.addresses = list(addresses)
        self.subscription_id: str | None = None

    def __aiter__(self) -> AsyncIterator[ChainLogEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[ChainLogEvent]:
        self.subscription_id = await self.w3.eth.subscribe(
            "logs",
            LogsSubscriptionArg(
                address=self.addresses,
                topics=[list(POOL_EVENT_TOPICS)],
            ),
        )
        logger.info(
            f"Subscribed to pool events for {len(self.addresses)} pools "
            f"(subscription {self.subscription_id})"
        )

        async for message in self.w3.socket.process_subscriptions():
            try:
                event = decode_log(cast("LogReceipt", message["result"]))
            except ExternalUpdateError as exc:
                logger.warning(f"Skipping undecodable log: {exc}")
                continue

            if event is not None:
                yield event

    async def unsubscribe(self) -> None:
        if self.subscription_id is not None:
            await self.w3.eth.unsubscribe(self.subscription_id)
            self.subscription_id = None
