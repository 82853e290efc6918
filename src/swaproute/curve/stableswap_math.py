"""
Invariant math for StableSwap pools.

The invariant D and the post-swap balance y are solved with Newton's method, bounded at 255
iterations with a convergence tolerance of 1 unit. Instead of reverting like the pool contracts, the
solvers report how the iteration ended so that callers can decide whether to trust an approximate
result.

Reference: https://github.com/curveresearch/notes/blob/main/stableswap.pdf
"""

import math
from collections.abc import Iterable, Sequence
from fractions import Fraction

from swaproute.curve.types import StableSwapPoolState
from swaproute.exceptions import InvalidSwapInputAmount, SwaprouteValueError
from swaproute.numeric import Convergence, SolverResult, checked_div, digits_close
from swaproute.slippage import calc_slippage
from swaproute.types.quote import QuoteFailure, SwapQuote

MAX_ITERATIONS = 255
PRECISION = 10**18
FEE_DENOMINATOR = 10**10


MAX_COIN_DECIMALS = 36


def rate_for_decimals(decimals: int) -> int:
    """
    The multiplier normalizing a balance with this many decimal places to 18 decimal places.

    Raises `SwaprouteValueError` for coins with more than 36 decimal places, whose rate would not be
    an integer.
    """

    if not (0 <= decimals <= MAX_COIN_DECIMALS):
        raise SwaprouteValueError(
            message=f"StableSwap coins support 0 to {MAX_COIN_DECIMALS} decimals, got {decimals}"
        )
    return 10 ** (MAX_COIN_DECIMALS - decimals)


def xp(rates: Iterable[int], balances: Iterable[int]) -> tuple[int, ...]:
    """
    Normalize the pool balances to 18 decimal places.
    """

    return tuple(
        rate * balance // PRECISION for rate, balance in zip(rates, balances, strict=True)
    )


def get_d(
    xp: Sequence[int],
    amplification: int,
    a_precision: int = 1,
) -> SolverResult:
    """
    Solve for the StableSwap invariant D.
    """

    n_coins = len(xp)
    s = sum(xp)
    if s == 0:
        return SolverResult(value=0, status=Convergence.CONVERGED, iterations=0)

    d = s
    a_nn = amplification * n_coins

    for iteration in range(1, MAX_ITERATIONS + 1):
        d_p = d
        for x in xp:
            d_p = checked_div(d_p * d, x * n_coins)
            if d_p is None:
                return SolverResult(value=d, status=Convergence.DIVERGED, iterations=iteration)

        d_prev = d
        d = checked_div(
            (a_nn * s // a_precision + d_p * n_coins) * d,
            (a_nn - a_precision) * d // a_precision + (n_coins + 1) * d_p,
        )
        if d is None or d <= 0:
            return SolverResult(value=d_prev, status=Convergence.DIVERGED, iterations=iteration)

        if digits_close(d, d_prev):
            return SolverResult(value=d, status=Convergence.CONVERGED, iterations=iteration)

    return SolverResult(value=d, status=Convergence.EXHAUSTED, iterations=MAX_ITERATIONS)


def get_y(
    i: int,
    j: int,
    x: int,
    xp: Sequence[int],
    amplification: int,
    a_precision: int = 1,
) -> SolverResult:
    """
    Calculate the balance of coin j after the balance of coin i is set to x, holding D constant.

    Done by solving the quadratic equation iteratively:
    x_1**2 + x_1 * (sum' - (A*n**n - 1) * D / (A * n**n)) = D ** (n + 1) / (n ** (2 * n) * prod' * A)
    x_1**2 + b*x_1 = c

    x_1 = (x_1**2 + c) / (2*x_1 + b)

    The reported status is the weaker of the D and y solutions.
    """

    n_coins = len(xp)
    if i == j:
        raise SwaprouteValueError(message="same coin")
    if not (0 <= i < n_coins and 0 <= j < n_coins):
        raise SwaprouteValueError(message=f"coin index out of range for a {n_coins} coin pool")

    d_result = get_d(xp, amplification, a_precision)
    d = d_result.value
    if d_result.status is Convergence.DIVERGED or d == 0:
        return SolverResult(value=xp[j], status=Convergence.DIVERGED, iterations=0)

    a_nn = amplification * n_coins
    c = d
    s = 0
    for coin_index in range(n_coins):
        if coin_index == i:
            _x = x
        elif coin_index != j:
            _x = xp[coin_index]
        else:
            continue
        if _x <= 0:
            return SolverResult(value=xp[j], status=Convergence.DIVERGED, iterations=0)
        s += _x
        c = c * d // (_x * n_coins)

    c = c * d * a_precision // (a_nn * n_coins)
    b = s + d * a_precision // a_nn

    y = d
    for iteration in range(1, MAX_ITERATIONS + 1):
        y_prev = y
        y = checked_div(y * y + c, 2 * y + b - d)
        if y is None or y < 0:
            return SolverResult(
                value=y_prev,
                status=Convergence.DIVERGED,
                iterations=iteration,
            )
        if digits_close(y, y_prev):
            return SolverResult(
                value=y,
                status=Convergence.weakest(d_result.status, Convergence.CONVERGED),
                iterations=iteration,
            )

    return SolverResult(value=y, status=Convergence.EXHAUSTED, iterations=MAX_ITERATIONS)


def get_dy(state: StableSwapPoolState, i: int, j: int, dx: int) -> SolverResult:
    """
    Calculate the amount of coin j received for dx of coin i, net of the pool fee. A negative
    value means the pool cannot deliver any output for this input.
    """

    balances_xp = xp(state.rates, state.balances)
    x = balances_xp[i] + dx * state.rates[i] // PRECISION
    y_result = get_y(i, j, x, balances_xp, state.amplification, state.a_precision)

    dy = (balances_xp[j] - y_result.value - 1) * PRECISION // state.rates[j]
    fee = state.fee * dy // FEE_DENOMINATOR
    return SolverResult(
        value=dy - fee,
        status=y_result.status,
        iterations=y_result.iterations,
    )


def marginal_price(state: StableSwapPoolState, i: int, j: int) -> Fraction | None:
    """
    The marginal price of coin i in units of coin j, both normalized to 18 decimals, derived from
    the invariant:

        price = (Ann * x_i + D_P) * x_j / ((Ann * x_j + D_P) * x_i)

    where D_P = D**(n+1) / (n**n * prod(x)). Returns None if the invariant cannot be solved.
    """

    balances_xp = xp(state.rates, state.balances)
    if any(balance == 0 for balance in balances_xp):
        return None

    d_result = get_d(balances_xp, state.amplification, state.a_precision)
    if d_result.status is Convergence.DIVERGED:
        return None

    n_coins = len(balances_xp)
    d = d_result.value
    ann = Fraction(state.amplification * n_coins, state.a_precision)
    d_p = Fraction(d ** (n_coins + 1), n_coins**n_coins * math.prod(balances_xp))

    x_i = balances_xp[i]
    x_j = balances_xp[j]
    return (ann * x_i + d_p) * x_j / ((ann * x_j + d_p) * x_i)


def quote_stableswap(
    state: StableSwapPoolState,
    i: int,
    j: int,
    amount_in: int,
    accept_approximate: bool = True,
) -> SwapQuote:
    """
    Quote an exact input swap of coin i for coin j. Slippage compares the marginal price at the
    current balances with the effective price of the trade, both in normalized units.
    """

    if amount_in < 0:
        raise InvalidSwapInputAmount

    start_price = marginal_price(state, i, j)
    if start_price is None:
        return SwapQuote.failed(amount_in=amount_in, reason=QuoteFailure.NO_LIQUIDITY)

    if amount_in == 0:
        return SwapQuote(amount_in=0, amount_out=0, slippage=0)

    dy = get_dy(state, i, j, amount_in)
    match dy.status:
        case Convergence.DIVERGED:
            return SwapQuote.failed(
                amount_in=amount_in,
                reason=QuoteFailure.SOLVER_DIVERGED,
                convergence=dy.status,
            )
        case Convergence.EXHAUSTED if not accept_approximate:
            return SwapQuote.failed(
                amount_in=amount_in,
                reason=QuoteFailure.SOLVER_DIVERGED,
                convergence=dy.status,
            )

    if dy.value <= 0:
        return SwapQuote.failed(
            amount_in=amount_in,
            reason=QuoteFailure.INSUFFICIENT_LIQUIDITY,
            convergence=dy.status,
        )

    end_price = Fraction(dy.value * state.rates[j], amount_in * state.rates[i])
    return SwapQuote(
        amount_in=amount_in,
        amount_out=dy.value,
        slippage=calc_slippage(expected_price=start_price, effective_price=end_price),
        convergence=dy.status,
    )
