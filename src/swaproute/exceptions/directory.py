from typing import Any

from eth_typing import ChecksumAddress

from swaproute.exceptions.base import SwaprouteError


class DirectoryError(SwaprouteError):
    """
    Exception raised by the pool & token directory.
    """


class UnknownToken(DirectoryError):
    """
    Raised when a token address is not present in the directory.
    """

    def __init__(self, token: ChecksumAddress | str) -> None:
        self.token = token
        super().__init__(message=f"Token {token} is unknown.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.token,)
