from swaproute.exceptions.base import SwaprouteError


class EVMRevertError(SwaprouteError):
    """
    Raised when a simulated EVM contract operation would revert.
    """

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(message=f"EVM Revert: {error}")

    def __reduce__(self) -> tuple[type["EVMRevertError"], tuple[str]]:
        return self.__class__, (self.error,)
