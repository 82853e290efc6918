from swaproute.ingestion.fetchers import (
    fetch_concentrated_liquidity_state,
    fetch_constant_product_state,
    fetch_pool_state,
    fetch_stableswap_state,
)
from swaproute.ingestion.orchestrator import (
    BulkFetchReport,
    LiveRouter,
    PoolStateUpdated,
    RouteQuery,
    RouteUpdate,
    bulk_fetch,
)
from swaproute.ingestion.reader import ChainCall, ChainReader, Web3ChainReader
from swaproute.ingestion.subscription import Web3LogSubscription, decode_log

__all__ = (
    "BulkFetchReport",
    "ChainCall",
    "ChainReader",
    "LiveRouter",
    "PoolStateUpdated",
    "RouteQuery",
    "RouteUpdate",
    "Web3ChainReader",
    "Web3LogSubscription",
    "bulk_fetch",
    "decode_log",
    "fetch_concentrated_liquidity_state",
    "fetch_constant_product_state",
    "fetch_pool_state",
    "fetch_stableswap_state",
)
