class SwaprouteError(Exception):
    """
    Root of the exception hierarchy for this package.

    Failures that the router can absorb (a pool that cannot be fetched, a direction that cannot be
    quoted, an undecodable log) are reported through subclasses, so callers can handle them apart
    from errors raised by web3, pydantic, or the interpreter:

    ```
    try:
        await bulk_fetch(...)
    except ChainReadError:
        ... # retry later, or route without the pool
    except SwaprouteError:
        ... # any other router failure
    ```

    The optional message is kept on the `.message` attribute.
    """

    message: str | None = None

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
            super().__init__(message)


class SwaprouteValueError(SwaprouteError):
    """
    Raised when an argument is outside the domain of the pool math or the directory.
    """