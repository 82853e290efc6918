from eth_typing import ChecksumAddress

from swaproute.curve.stableswap_math import quote_stableswap
from swaproute.curve.types import StableSwapPoolState
from swaproute.exceptions import SwaprouteValueError, UnknownToken
from swaproute.types.quote import SwapQuote
from swaproute.uniswap.v2_functions import quote_constant_product
from swaproute.uniswap.v2_types import ConstantProductPoolState
from swaproute.uniswap.v3_simulation import quote_concentrated_liquidity
from swaproute.uniswap.v3_types import ConcentratedLiquidityPoolState

type PoolState = ConstantProductPoolState | ConcentratedLiquidityPoolState | StableSwapPoolState


def _token_index(state: PoolState, token: ChecksumAddress) -> int:
    try:
        return state.tokens.index(token)
    except ValueError:
        raise UnknownToken(token) from None


def quote(
    state: PoolState,
    token_in: ChecksumAddress,
    token_out: ChecksumAddress,
    amount_in: int,
    *,
    accept_approximate: bool = True,
) -> SwapQuote:
    """
    Quote an exact input swap of `token_in` for `token_out` through the pool described by `state`.

    Raises `UnknownToken` if either token is not held by the pool.
    """

    if token_in == token_out:
        raise SwaprouteValueError(message="Input and output tokens must differ.")

    i = _token_index(state, token_in)
    j = _token_index(state, token_out)

    match state:
        case ConstantProductPoolState():
            return quote_constant_product(state=state, zero_for_one=i == 0, amount_in=amount_in)
        case ConcentratedLiquidityPoolState():
            return quote_concentrated_liquidity(
                state=state, zero_for_one=i == 0, amount_in=amount_in
            )
        case StableSwapPoolState():
            return quote_stableswap(
                state=state,
                i=i,
                j=j,
                amount_in=amount_in,
                accept_approximate=accept_approximate,
            )
        case _:
            raise SwaprouteValueError(message=f"Unsupported pool state {type(state).__name__}")
