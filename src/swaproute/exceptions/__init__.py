from swaproute.exceptions.base import SwaprouteError, SwaprouteValueError
from swaproute.exceptions.directory import DirectoryError, UnknownToken
from swaproute.exceptions.evm import EVMRevertError
from swaproute.exceptions.fetching import ChainReadError, ChainReadTimeout, FetchingError
from swaproute.exceptions.liquidity_pool import (
    ExternalUpdateError,
    IncompleteSwap,
    InvalidSwapInputAmount,
    LiquidityPoolError,
    NoLiquidity,
    UnknownPool,
)
from swaproute.exceptions.routing import RoutingError

from . import (
    directory,
    evm,
    fetching,
    liquidity_pool,
    routing,
)

__all__ = (
    "ChainReadError",
    "ChainReadTimeout",
    "DirectoryError",
    "EVMRevertError",
    "ExternalUpdateError",
    "FetchingError",
    "IncompleteSwap",
    "InvalidSwapInputAmount",
    "LiquidityPoolError",
    "NoLiquidity",
    "RoutingError",
    "SwaprouteError",
    "SwaprouteValueError",
    "UnknownPool",
    "UnknownToken",
    "directory",
    "evm",
    "fetching",
    "liquidity_pool",
    "routing",
)
