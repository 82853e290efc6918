import functools

from cchecksum import to_checksum_address
from eth_typing import ChecksumAddress


@functools.cache
def get_checksum_address(address: str | bytes) -> ChecksumAddress:
    """
    Checksum an address, memoized since the same pool and token addresses recur in every event.
    """

    return to_checksum_address(address)
