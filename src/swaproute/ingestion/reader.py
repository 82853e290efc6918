"""
Read-only access to contract state through `eth_call`.
"""

import dataclasses
import itertools
from collections.abc import Sequence
from typing import Any, Protocol, cast

import aiohttp
import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from hexbytes import HexBytes
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from web3 import AsyncBaseProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.types import BlockIdentifier, TxParams

from swaproute.config import settings
from swaproute.exceptions import ChainReadError, ChainReadTimeout
from swaproute.logging import logger

# Raised by the async HTTP and websocket providers once their own retries are exhausted
TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    TimeoutError,
    OSError,
    aiohttp.ClientError,
    Web3Exception,
)


@dataclasses.dataclass(slots=True, frozen=True)
class ChainCall:
    """
    A single contract call, e.g.
    `ChainCall(pool, "getReserves()", ("uint112", "uint112", "uint32"))`
    """

    address: ChecksumAddress
    function_prototype: str
    return_types: tuple[str, ...]
    arguments: tuple[Any, ...] = ()

    @property
    def argument_types(self) -> list[str]:
        """
        The argument types named in the prototype, e.g. `["uint256"]` for `balances(uint256)`.
        """

        start = self.function_prototype.find("(") + 1
        end = self.function_prototype.rfind(")")
        argument_list = self.function_prototype[start:end]
        return argument_list.split(",") if argument_list else []

    @property
    def calldata(self) -> bytes:
        selector = keccak(text=self.function_prototype)[:4]
        return selector + eth_abi.abi.encode(types=self.argument_types, args=self.arguments)


class ChainReader(Protocol):
    """
    Performs read-only contract calls and returns the decoded results.
    """

    async def read(
        self,
        call: ChainCall,
        block_identifier: BlockIdentifier | None = None,
    ) -> tuple[Any, ...]: ...

    async def read_batch(
        self,
        calls: Sequence[ChainCall],
        block_identifier: BlockIdentifier | None = None,
    ) -> list[tuple[Any, ...]]: ...


class Web3ChainReader:
    """
    A `ChainReader` backed by an `AsyncWeb3` instance. Batches are sent as JSON-RPC batch requests,
    split into chunks of at most `max_batch_size` calls. Transient transport failures are retried
    with exponential backoff, reverts are not.
    """

    def __init__(
        self,
        w3: AsyncWeb3[AsyncBaseProvider],
        max_batch_size: int | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.w3 = w3
        self.max_batch_size = (
            max_batch_size if max_batch_size is not None else settings.ingestion.max_batch_size
        )
        self.max_retries = (
            max_retries if max_retries is not None else settings.ingestion.max_retries
        )

    def _retrier(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential_jitter(),
            retry=retry_if_exception_type(TRANSPORT_ERRORS)
            & retry_if_not_exception_type(ContractLogicError),
        )

    @staticmethod
    def _decode(call: ChainCall, result: bytes) -> tuple[Any, ...]:
        try:
            return eth_abi.abi.decode(types=call.return_types, data=result)
        except DecodingError as exc:
            raise ChainReadError(
                message=f"Could not decode result of {call.function_prototype} at {call.address}"
            ) from exc

    async def read(
        self,
        call: ChainCall,
        block_identifier: BlockIdentifier | None = None,
    ) -> tuple[Any, ...]:
        try:
            async for attempt in self._retrier():
                with attempt:
                    result = await self.w3.eth.call(
                        transaction=TxParams(to=call.address, data=call.calldata),
                        block_identifier=block_identifier,
                    )
        except RetryError as exc:
            raise ChainReadTimeout(max_retries=self.max_retries) from exc.last_attempt.exception()
        except ContractLogicError as exc:
            raise ChainReadError(
                message=f"Call to {call.function_prototype} at {call.address} reverted"
            ) from exc
        except Exception as exc:
            raise ChainReadError(
                message=f"Call to {call.function_prototype} at {call.address} failed: {exc!r}"
            ) from exc

        return self._decode(call, result)

    async def _execute_chunk(
        self,
        chunk: Sequence[ChainCall],
        block_identifier: BlockIdentifier | None,
    ) -> list[HexBytes]:
        async with self.w3.batch_requests() as batch:
            for call in chunk:
                batch.add(
                    self.w3.eth.call(
                        transaction=TxParams(to=call.address, data=call.calldata),
                        block_identifier=block_identifier,
                    )
                )
            return cast("list[HexBytes]", await batch.async_execute())

    async def read_batch(
        self,
        calls: Sequence[ChainCall],
        block_identifier: BlockIdentifier | None = None,
    ) -> list[tuple[Any, ...]]:
        results: list[tuple[Any, ...]] = []

        for chunk in itertools.batched(calls, self.max_batch_size):
            logger.debug(f"Executing batch of {len(chunk)} calls")
            try:
                async for attempt in self._retrier():
                    with attempt:
                        raw_results = await self._execute_chunk(chunk, block_identifier)
            except RetryError as exc:
                raise ChainReadTimeout(
                    max_retries=self.max_retries
                ) from exc.last_attempt.exception()
            except ContractLogicError as exc:
                raise ChainReadError(message="A call in the batch reverted") from exc
            except Exception as exc:
                raise ChainReadError(
                    message=f"Batch of {len(chunk)} calls failed: {exc!r}"
                ) from exc

            results.extend(
                self._decode(call, result) for call, result in zip(chunk, raw_results, strict=True)
            )

        return results
