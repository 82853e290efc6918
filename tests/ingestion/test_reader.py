from types import SimpleNamespace
from typing import Any

import aiohttp
import eth_abi.abi
import pytest
import tenacity
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, Web3Exception

from swaproute.exceptions import ChainReadError, ChainReadTimeout
from swaproute.ingestion import reader as reader_module
from swaproute.ingestion.reader import ChainCall, Web3ChainReader
from tests.addresses import CURVE_3POOL, USDC_WETH_POOL

GET_RESERVES = ChainCall(
    address=USDC_WETH_POOL,
    function_prototype="getReserves()",
    return_types=("uint112", "uint112", "uint32"),
)
RESERVES_RESULT = HexBytes(eth_abi.abi.encode(["uint112", "uint112", "uint32"], [1, 2, 3]))


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(reader_module, "wait_exponential_jitter", tenacity.wait_none)


class FakeEth:
    """
    Answers `eth_call` requests from a queue of results. Exceptions in the queue are raised instead.
    """

    def __init__(self, results: list[Any]) -> None:
        self.results = results
        self.requests: list[tuple[dict[str, Any], Any]] = []

    async def call(self, transaction: dict[str, Any], block_identifier: Any = None) -> HexBytes:
        self.requests.append((transaction, block_identifier))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeBatch:
    def __init__(self, w3: "FakeWeb3") -> None:
        self.w3 = w3
        self.requests: list[Any] = []

    async def __aenter__(self) -> "FakeBatch":
        return self

    async def __aexit__(self, *args: object) -> None:
        for request in self.requests:
            # Close unawaited coroutines
            request.close()

    def add(self, request: Any) -> None:
        self.requests.append(request)

    async def async_execute(self) -> list[HexBytes]:
        self.w3.batch_sizes.append(len(self.requests))
        response = self.w3.batch_results.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeWeb3(SimpleNamespace):
    def __init__(self, results: list[Any] | None = None, batch_results: list[Any] | None = None):
        super().__init__(eth=FakeEth(results or []))
        self.batch_results = batch_results or []
        self.batch_sizes: list[int] = []

    def batch_requests(self) -> FakeBatch:
        return FakeBatch(self)


def test_calldata():
    call = ChainCall(
        address=CURVE_3POOL,
        function_prototype="balances(uint256)",
        return_types=("uint256",),
        arguments=(2,),
    )
    assert call.calldata == HexBytes(
        "0x4903b0d1"
        "0000000000000000000000000000000000000000000000000000000000000002"
    )
    assert GET_RESERVES.calldata == HexBytes("0x0902f1ac")


@pytest.mark.parametrize(
    ("prototype", "expected"),
    [
        ("getReserves()", []),
        ("balances(uint256)", ["uint256"]),
        ("get_dy(int128,int128,uint256)", ["int128", "int128", "uint256"]),
        ("ticks(int24)", ["int24"]),
    ],
)
def test_argument_types(prototype: str, expected: list[str]):
    call = ChainCall(address=CURVE_3POOL, function_prototype=prototype, return_types=())
    assert call.argument_types == expected


async def test_read():
    w3 = FakeWeb3(results=[RESERVES_RESULT])
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]

    assert await reader.read(GET_RESERVES, block_identifier=100) == (1, 2, 3)
    transaction, block_identifier = w3.eth.requests[0]
    assert transaction["to"] == USDC_WETH_POOL
    assert transaction["data"] == GET_RESERVES.calldata
    assert block_identifier == 100


async def test_read_retries_transient_errors():
    w3 = FakeWeb3(results=[Web3Exception("connection reset"), RESERVES_RESULT])
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]
    assert await reader.read(GET_RESERVES) == (1, 2, 3)
    assert len(w3.eth.requests) == 2


async def test_read_gives_up_after_max_retries():
    w3 = FakeWeb3(results=[Web3Exception("connection reset")] * 3)
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]
    with pytest.raises(ChainReadTimeout) as exc_info:
        await reader.read(GET_RESERVES)
    assert exc_info.value.max_retries == 3
    assert len(w3.eth.requests) == 3


async def test_read_does_not_retry_reverts():
    w3 = FakeWeb3(results=[ContractLogicError("execution reverted"), RESERVES_RESULT])
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]
    with pytest.raises(ChainReadError, match="reverted"):
        await reader.read(GET_RESERVES)
    assert len(w3.eth.requests) == 1


async def test_read_undecodable_result():
    w3 = FakeWeb3(results=[HexBytes(b"")])
    reader = Web3ChainReader(w3, max_retries=1)  # type: ignore[arg-type]
    with pytest.raises(ChainReadError, match="Could not decode"):
        await reader.read(GET_RESERVES)


async def test_read_batch_chunks_requests():
    w3 = FakeWeb3(
        batch_results=[
            [RESERVES_RESULT, RESERVES_RESULT],
            [RESERVES_RESULT, RESERVES_RESULT],
            [RESERVES_RESULT],
        ]
    )
    reader = Web3ChainReader(w3, max_batch_size=2, max_retries=1)  # type: ignore[arg-type]

    results = await reader.read_batch([GET_RESERVES] * 5)
    assert results == [(1, 2, 3)] * 5
    assert w3.batch_sizes == [2, 2, 1]


async def test_read_batch_retries_chunk():
    w3 = FakeWeb3(batch_results=[Web3Exception("batch failed"), [RESERVES_RESULT]])
    reader = Web3ChainReader(w3, max_batch_size=10, max_retries=2)  # type: ignore[arg-type]
    assert await reader.read_batch([GET_RESERVES]) == [(1, 2, 3)]
    assert w3.batch_sizes == [1, 1]


async def test_read_batch_revert():
    w3 = FakeWeb3(batch_results=[ContractLogicError("execution reverted")])
    reader = Web3ChainReader(w3, max_retries=2)  # type: ignore[arg-type]
    with pytest.raises(ChainReadError, match="reverted"):
        await reader.read_batch([GET_RESERVES])


async def test_read_empty_batch():
    w3 = FakeWeb3()
    reader = Web3ChainReader(w3)  # type: ignore[arg-type]
    assert await reader.read_batch([]) == []
    assert w3.batch_sizes == []


@pytest.mark.parametrize(
    "transport_error",
    [
        TimeoutError(),
        aiohttp.ClientConnectionError("connection refused"),
        ConnectionResetError(),
    ],
    ids=["timeout", "client connection error", "connection reset"],
)
async def test_read_retries_provider_transport_errors(transport_error: Exception):
    w3 = FakeWeb3(results=[transport_error, RESERVES_RESULT])
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]
    assert await reader.read(GET_RESERVES) == (1, 2, 3)
    assert len(w3.eth.requests) == 2


async def test_read_provider_transport_errors_become_timeout():
    w3 = FakeWeb3(results=[aiohttp.ClientConnectionError("connection refused")] * 2)
    reader = Web3ChainReader(w3, max_retries=2)  # type: ignore[arg-type]
    with pytest.raises(ChainReadTimeout) as exc_info:
        await reader.read(GET_RESERVES)
    assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)
    assert len(w3.eth.requests) == 2


async def test_read_unexpected_error_becomes_chain_read_error():
    w3 = FakeWeb3(results=[ValueError("malformed response"), RESERVES_RESULT])
    reader = Web3ChainReader(w3, max_retries=3)  # type: ignore[arg-type]
    with pytest.raises(ChainReadError, match="malformed response"):
        await reader.read(GET_RESERVES)
    assert len(w3.eth.requests) == 1


async def test_read_batch_provider_transport_errors():
    w3 = FakeWeb3(batch_results=[TimeoutError(), [RESERVES_RESULT]])
    reader = Web3ChainReader(w3, max_retries=2)  # type: ignore[arg-type]
    assert await reader.read_batch([GET_RESERVES]) == [(1, 2, 3)]
    assert w3.batch_sizes == [1, 1]

    w3 = FakeWeb3(batch_results=[aiohttp.ServerDisconnectedError()] * 2)
    reader = Web3ChainReader(w3, max_retries=2)  # type: ignore[arg-type]
    with pytest.raises(ChainReadTimeout):
        await reader.read_batch([GET_RESERVES])


async def test_read_batch_unexpected_error_becomes_chain_read_error():
    w3 = FakeWeb3(batch_results=[KeyError("result")])
    reader = Web3ChainReader(w3, max_retries=2)  # type: ignore[arg-type]
    with pytest.raises(ChainReadError, match="Batch of 1 calls failed"):
        await reader.read_batch([GET_RESERVES])
