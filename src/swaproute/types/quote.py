import dataclasses
import enum

from swaproute.numeric import Convergence
from swaproute.types.aliases import Slippage


class QuoteFailure(enum.Enum):
    NO_LIQUIDITY = enum.auto()
    INSUFFICIENT_LIQUIDITY = enum.auto()
    SOLVER_DIVERGED = enum.auto()


@dataclasses.dataclass(slots=True, frozen=True)
class SwapQuote:
    """
    The result of quoting an exact input swap through one pool. A quote that could not be
    completed carries a `failure` reason, and its `amount_out` and `slippage` are zero.
    """

    amount_in: int
    amount_out: int
    slippage: Slippage
    convergence: Convergence = Convergence.CONVERGED
    failure: QuoteFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(
        cls,
        amount_in: int,
        reason: QuoteFailure,
        convergence: Convergence = Convergence.CONVERGED,
    ) -> "SwapQuote":
        return cls(
            amount_in=amount_in,
            amount_out=0,
            slippage=0,
            convergence=convergence,
            failure=reason,
        )
