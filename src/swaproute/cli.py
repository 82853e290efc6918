import asyncio
import logging
from pathlib import Path
from typing import Literal

import click
import tomlkit
from eth_typing import ChecksumAddress
from pydantic import HttpUrl, TypeAdapter, WebsocketUrl
from web3 import AsyncHTTPProvider, AsyncIPCProvider, AsyncWeb3, WebSocketProvider

from swaproute.checksum_cache import get_checksum_address
from swaproute.config import settings
from swaproute.directory import PoolDirectory, load_directory
from swaproute.graph import build_graph
from swaproute.ingestion import (
    LiveRouter,
    RouteQuery,
    RouteUpdate,
    Web3ChainReader,
    Web3LogSubscription,
    bulk_fetch,
)
from swaproute.logging import set_level
from swaproute.pathfinding import ShortestPath, best_path
from swaproute.slippage import SLIPPAGE_DECIMALS
from swaproute.state_store import PoolStateStore
from swaproute.types.aliases import ChainId
from swaproute.version import __version__


def _resolve_token(directory: PoolDirectory, token: str) -> ChecksumAddress:
    """
    Accept a token address or a symbol listed in the directory.
    """

    for known_token in directory.tokens:
        if known_token.symbol and known_token.symbol.lower() == token.lower():
            return known_token.address

    try:
        return get_checksum_address(token)
    except (TypeError, ValueError):
        raise click.BadParameter(f"{token!r} is not a known symbol or a valid address") from None


def _resolve_endpoint(rpc: str | None, chain_id: ChainId) -> HttpUrl | WebsocketUrl | Path:
    if rpc is not None:
        return TypeAdapter(HttpUrl | WebsocketUrl | Path).validate_python(rpc)
    try:
        return settings.rpc[chain_id]
    except KeyError:
        raise click.UsageError(
            f"No RPC endpoint configured for chain {chain_id}. Pass --rpc or add one to the config."
        ) from None


def _format_path(directory: PoolDirectory, path: ShortestPath) -> str:
    if not path.found:
        return "No route found"

    symbols = " -> ".join(str(directory.get_token(token)) for token in path.tokens)
    cost_percent = path.cost / 10**SLIPPAGE_DECIMALS
    lines = [
        f"Route: {symbols}",
        f"Pools: {', '.join(path.pools)}",
        f"Fees: {', '.join(str(fee) for fee in path.fees)}",
        f"Cost: {path.cost} ({cost_percent:.6f}%)",
    ]
    return "\n".join(lines)


def _persistent_provider(
    endpoint: WebsocketUrl | Path,
) -> WebSocketProvider | AsyncIPCProvider:
    if isinstance(endpoint, Path):
        return AsyncIPCProvider(endpoint)
    return WebSocketProvider(str(endpoint))


async def _build_store(
    w3: AsyncWeb3,
    directory: PoolDirectory,
) -> PoolStateStore:
    store = PoolStateStore()
    await bulk_fetch(
        records=directory.pools,
        reader=Web3ChainReader(w3),
        directory=directory,
        store=store,
    )
    return store


async def _route(
    endpoint: HttpUrl | WebsocketUrl | Path,
    directory: PoolDirectory,
    start: ChecksumAddress,
    end: ChecksumAddress,
    size: int,
) -> ShortestPath:
    if isinstance(endpoint, HttpUrl):
        store = await _build_store(AsyncWeb3(AsyncHTTPProvider(str(endpoint))), directory)
    else:
        # Websocket and IPC providers hold a persistent connection
        async with AsyncWeb3(_persistent_provider(endpoint)) as w3:
            store = await _build_store(w3, directory)

    return best_path(build_graph(store, directory, reference_trade_size=size), start, end)


async def _watch(
    endpoint: WebsocketUrl,
    directory: PoolDirectory,
    start: ChecksumAddress,
    end: ChecksumAddress,
    size: int,
) -> None:
    def print_route(update: RouteUpdate) -> None:
        click.echo(f"Block {update.block_number}")
        click.echo(_format_path(directory, update.path))

    async with AsyncWeb3(_persistent_provider(endpoint)) as w3:
        store = await _build_store(w3, directory)
        router = LiveRouter(
            store=store,
            directory=directory,
            queries=[RouteQuery(start=start, end=end)],
            on_route=print_route,
            reference_trade_size=size,
        )
        router.find_routes()
        await router.run(Web3LogSubscription(w3, store.addresses()))


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages")
def cli(verbose: bool) -> None:
    if verbose:
        set_level(logging.DEBUG)


@cli.group()
def config() -> None:
    """
    Configuration commands
    """


@config.command("show")
@click.option(
    "--json",
    "output_format",
    flag_value="json",
    type=str,
    help="Show configuration in JSON format",
)
@click.option(
    "--toml",
    "output_format",
    flag_value="toml",
    type=str,
    help="Show configuration in TOML format (default)",
    default=True,
)
def config_show(output_format: Literal["json", "toml"]) -> None:
    """
    Display the current configuration in JSON or TOML (default) format.
    """

    match output_format:
        case "json":
            click.echo(
                TypeAdapter(dict).dump_json(
                    settings.model_dump(mode="json"),
                    indent=2,
                ),
            )
        case "toml":
            click.echo(
                tomlkit.dumps(
                    settings.model_dump(mode="json"),
                ),
            )


_route_options = [
    click.option(
        "--directory",
        "directory_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        required=True,
        help="JSON file listing the tokens and pools to route through",
    ),
    click.option("--start", required=True, help="Input token address or symbol"),
    click.option("--end", required=True, help="Output token address or symbol"),
    click.option(
        "--size",
        type=click.IntRange(min=1),
        default=None,
        help="Reference trade size in whole units of each input token",
    ),
    click.option("--rpc", default=None, help="RPC endpoint, overriding the configured one"),
    click.option("--chain-id", type=int, default=1, show_default=True),
]


def route_options[F](func: F) -> F:
    for option in reversed(_route_options):
        func = option(func)
    return func


@cli.command("route")
@route_options
def route(
    directory_path: Path,
    start: str,
    end: str,
    size: int | None,
    rpc: str | None,
    chain_id: int,
) -> None:
    """
    Fetch the current state of every pool in the directory and print the lowest cost route.
    """

    directory = load_directory(directory_path)
    path = asyncio.run(
        _route(
            endpoint=_resolve_endpoint(rpc, chain_id),
            directory=directory,
            start=_resolve_token(directory, start),
            end=_resolve_token(directory, end),
            size=size if size is not None else settings.routing.reference_trade_size,
        )
    )
    click.echo(_format_path(directory, path))


@cli.command("watch")
@route_options
def watch(
    directory_path: Path,
    start: str,
    end: str,
    size: int | None,
    rpc: str | None,
    chain_id: int,
) -> None:
    """
    Print the lowest cost route, then print it again after every pool event. Requires a websocket
    endpoint.
    """

    endpoint = _resolve_endpoint(rpc, chain_id)
    if not isinstance(endpoint, WebsocketUrl):
        raise click.UsageError("Watching pool events requires a websocket (ws:// or wss://) endpoint")

    directory = load_directory(directory_path)
    asyncio.run(
        _watch(
            endpoint=endpoint,
            directory=directory,
            start=_resolve_token(directory, start),
            end=_resolve_token(directory, end),
            size=size if size is not None else settings.routing.reference_trade_size,
        )
    )
