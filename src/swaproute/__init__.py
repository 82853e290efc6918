from .checksum_cache import get_checksum_address
from .config import settings
from .logging import logger
from .version import __version__

# isort: split

from .curve import StableSwapPoolState, quote_stableswap
from .directory import PoolDirectory, load_directory
from .erc20 import Erc20Token
from .events import ChainLogEvent, apply_event
from .graph import SwapEdge, SwapGraph, build_bidirectional_graph, build_graph
from .ingestion import (
    ChainCall,
    ChainReader,
    LiveRouter,
    RouteQuery,
    RouteUpdate,
    Web3ChainReader,
    Web3LogSubscription,
    bulk_fetch,
)
from .pathfinding import ShortestPath, best_path, enumerate_paths
from .quoting import PoolState, quote
from .state_store import PoolStateStore
from .types.quote import QuoteFailure, SwapQuote
from .uniswap import (
    ConcentratedLiquidityPoolState,
    ConstantProductPoolState,
    quote_concentrated_liquidity,
    quote_constant_product,
)

__all__ = (
    "ChainCall",
    "ChainLogEvent",
    "ChainReader",
    "ConcentratedLiquidityPoolState",
    "ConstantProductPoolState",
    "Erc20Token",
    "LiveRouter",
    "PoolDirectory",
    "PoolState",
    "PoolStateStore",
    "QuoteFailure",
    "RouteQuery",
    "RouteUpdate",
    "ShortestPath",
    "StableSwapPoolState",
    "SwapEdge",
    "SwapGraph",
    "SwapQuote",
    "Web3ChainReader",
    "Web3LogSubscription",
    "__version__",
    "apply_event",
    "best_path",
    "bulk_fetch",
    "build_bidirectional_graph",
    "build_graph",
    "enumerate_paths",
    "get_checksum_address",
    "load_directory",
    "logger",
    "quote",
    "quote_concentrated_liquidity",
    "quote_constant_product",
    "quote_stableswap",
    "settings",
)
