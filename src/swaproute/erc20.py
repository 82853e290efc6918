from typing import Annotated

import pydantic
from eth_typing import ChecksumAddress

from swaproute.checksum_cache import get_checksum_address
from swaproute.validation.evm_values import ValidatedUint8

type Address = Annotated[ChecksumAddress, pydantic.AfterValidator(get_checksum_address)]


class Erc20Token(pydantic.BaseModel, frozen=True):
    """
    An ERC-20 token known to the router. The symbol and name are used for display only.
    """

    address: Address
    decimals: ValidatedUint8
    symbol: str = ""
    name: str = ""

    def __str__(self) -> str:
        return self.symbol or self.address

    def scaled(self, whole_units: int) -> int:
        """
        Convert an amount of whole tokens to the token's smallest unit.
        """
        return whole_units * 10**self.decimals
