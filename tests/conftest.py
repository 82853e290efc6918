import logging

import pytest

from swaproute.directory import ConstantProductPoolRecord, PoolDirectory
from swaproute.erc20 import Erc20Token
from swaproute.logging import logger
from tests.addresses import DAI, DAI_WETH_POOL, USDC, USDC_DAI_POOL, USDC_WETH_POOL, USDT, WETH


@pytest.fixture(scope="session", autouse=True)
def _set_swaproute_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    logger.setLevel(logging.DEBUG)


@pytest.fixture
def tokens() -> list[Erc20Token]:
    return [
        Erc20Token(address=USDC, decimals=6, symbol="USDC", name="USD Coin"),
        Erc20Token(address=DAI, decimals=18, symbol="DAI", name="Dai Stablecoin"),
        Erc20Token(address=WETH, decimals=18, symbol="WETH", name="Wrapped Ether"),
        Erc20Token(address=USDT, decimals=6, symbol="USDT", name="Tether USD"),
    ]


@pytest.fixture
def directory(tokens: list[Erc20Token]) -> PoolDirectory:
    return PoolDirectory(
        tokens=tokens,
        pools=[
            ConstantProductPoolRecord(address=USDC_WETH_POOL, token0=USDC, token1=WETH),
            ConstantProductPoolRecord(address=USDC_DAI_POOL, token0=DAI, token1=USDC),
            ConstantProductPoolRecord(address=DAI_WETH_POOL, token0=DAI, token1=WETH),
        ],
    )
