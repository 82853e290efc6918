import json
import logging
import pathlib

import pytest
from click.testing import CliRunner

import swaproute.cli
from swaproute import __version__
from swaproute.cli import cli
from swaproute.config import settings
from swaproute.pathfinding import ShortestPath
from tests.addresses import DAI, DAI_WETH_POOL, USDC, USDC_DAI_POOL, WETH


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def directory_file(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "directory.json"
    path.write_text(
        json.dumps(
            {
                "tokens": [
                    {"address": USDC, "decimals": 6, "symbol": "USDC"},
                    {"address": DAI, "decimals": 18, "symbol": "DAI"},
                    {"address": WETH, "decimals": 18, "symbol": "WETH"},
                ],
                "pools": [
                    {
                        "kind": "constant_product",
                        "address": USDC_DAI_POOL,
                        "token0": DAI,
                        "token1": USDC,
                    },
                    {
                        "kind": "constant_product",
                        "address": DAI_WETH_POOL,
                        "token0": DAI,
                        "token1": WETH,
                    },
                ],
            }
        )
    )
    return path


def test_cli_help(runner: CliRunner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("config", "route", "watch"):
        assert command in result.output


def test_cli_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_config_show_default(runner: CliRunner):
    result = runner.invoke(cli, ["config", "show"])
    assert result.exit_code == 0
    assert "[routing]" in result.output


def test_cli_config_show_json(runner: CliRunner):
    result = runner.invoke(cli, ["config", "show", "--json"])
    assert result.exit_code == 0
    config = json.loads(result.output)
    assert config["routing"]["reference_trade_size"] == settings.routing.reference_trade_size
    assert config["ingestion"]["max_batch_size"] == settings.ingestion.max_batch_size


def test_cli_config_show_toml(runner: CliRunner):
    result = runner.invoke(cli, ["config", "show", "--toml"])
    assert result.exit_code == 0
    assert "[ingestion]" in result.output


def test_cli_route(
    runner: CliRunner, directory_file: pathlib.Path, monkeypatch: pytest.MonkeyPatch
):
    requests = []

    async def fake_route(endpoint, directory, start, end, size) -> ShortestPath:
        requests.append((str(endpoint), start, end, size))
        return ShortestPath(
            tokens=(USDC, DAI, WETH),
            pools=(USDC_DAI_POOL, DAI_WETH_POOL),
            fees=(30, 30),
            cost=600_070,
        )

    monkeypatch.setattr(swaproute.cli, "_route", fake_route)

    result = runner.invoke(
        cli,
        [
            "route",
            "--directory",
            str(directory_file),
            "--start",
            "usdc",
            "--end",
            WETH.lower(),
            "--size",
            "10",
            "--rpc",
            "http://localhost:8545",
        ],
    )
    assert result.exit_code == 0, result.output
    assert requests == [("http://localhost:8545/", USDC, WETH, 10)]
    assert "Route: USDC -> DAI -> WETH" in result.output
    assert f"Pools: {USDC_DAI_POOL}, {DAI_WETH_POOL}" in result.output
    assert "Cost: 600070 (0.600070%)" in result.output


def test_cli_route_without_path(
    runner: CliRunner, directory_file: pathlib.Path, monkeypatch: pytest.MonkeyPatch
):
    async def fake_route(**_) -> ShortestPath:
        return ShortestPath()

    monkeypatch.setattr(swaproute.cli, "_route", fake_route)
    result = runner.invoke(
        cli,
        [
            "route",
            "--directory",
            str(directory_file),
            "--start",
            "WETH",
            "--end",
            "USDC",
            "--rpc",
            "http://localhost:8545",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "No route found" in result.output


def test_cli_route_unknown_token(runner: CliRunner, directory_file: pathlib.Path):
    result = runner.invoke(
        cli,
        [
            "route",
            "--directory",
            str(directory_file),
            "--start",
            "FOO",
            "--end",
            "USDC",
            "--rpc",
            "http://localhost:8545",
        ],
    )
    assert result.exit_code == 2
    assert "not a known symbol" in result.output


def test_cli_route_without_endpoint(
    runner: CliRunner, directory_file: pathlib.Path, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setattr(settings, "rpc", {})
    result = runner.invoke(
        cli,
        ["route", "--directory", str(directory_file), "--start", "WETH", "--end", "USDC"],
    )
    assert result.exit_code == 2
    assert "No RPC endpoint configured for chain 1" in result.output


def test_cli_watch_requires_websocket(runner: CliRunner, directory_file: pathlib.Path):
    result = runner.invoke(
        cli,
        [
            "watch",
            "--directory",
            str(directory_file),
            "--start",
            "WETH",
            "--end",
            "USDC",
            "--rpc",
            "http://localhost:8545",
        ],
    )
    assert result.exit_code == 2
    assert "websocket" in result.output


def test_cli_route_missing_directory(runner: CliRunner, tmp_path: pathlib.Path):
    result = runner.invoke(
        cli,
        ["route", "--directory", str(tmp_path / "missing.json"), "--start", "A", "--end", "B"],
    )
    assert result.exit_code == 2


def test_cli_verbose(runner: CliRunner, monkeypatch: pytest.MonkeyPatch):
    levels = []
    monkeypatch.setattr(swaproute.cli, "set_level", levels.append)
    result = runner.invoke(cli, ["--verbose", "config", "show"])
    assert result.exit_code == 0
    assert levels == [logging.DEBUG]
