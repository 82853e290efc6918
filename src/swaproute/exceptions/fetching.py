"""
Errors raised while reading pool state from a node.
"""

from swaproute.exceptions.base import SwaprouteError


class FetchingError(SwaprouteError):
    """
    Base for chain access errors.
    """


class ChainReadError(FetchingError):
    """
    A call reverted, or its return data did not match the expected types.
    """


class ChainReadTimeout(ChainReadError):
    """
    A call kept failing with transport errors until the retry budget was spent.
    """

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max_retries
        super().__init__(message=f"Chain read failed after {max_retries} tries.")

    def __reduce__(self) -> tuple[type["ChainReadTimeout"], tuple[int]]:
        return self.__class__, (self.max_retries,)
