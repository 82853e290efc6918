"""
The routing graph: tokens are nodes and every quotable direction of a pool is a weighted edge.
"""

import dataclasses
import itertools
from collections.abc import Iterable, Iterator

import networkx as nx
from eth_typing import ChecksumAddress

from swaproute.config import settings
from swaproute.directory import PoolDirectory
from swaproute.exceptions import SwaprouteError
from swaproute.logging import logger
from swaproute.quoting import PoolState, quote
from swaproute.state_store import PoolStateStore
from swaproute.types.aliases import Slippage


@dataclasses.dataclass(slots=True, frozen=True)
class SwapEdge:
    token_in: ChecksumAddress
    token_out: ChecksumAddress
    pool: ChecksumAddress
    cost: Slippage
    fee: int


class SwapGraph:
    """
    Directed multigraph of swap edges, keyed by the input token. Edges are also indexed by pool, so
    the edges of a single pool can be replaced without touching the rest of the graph.
    """

    def __init__(self, edges: Iterable[SwapEdge] = ()) -> None:
        # Inner dicts preserve insertion order and are keyed by (pool, token_out)
        self._adjacency: dict[
            ChecksumAddress, dict[tuple[ChecksumAddress, ChecksumAddress], SwapEdge]
        ] = {}
        self._pool_edges: dict[ChecksumAddress, tuple[SwapEdge, ...]] = {}
        self._excluded_directions: dict[ChecksumAddress, int] = {}

        for pool, pool_edges in itertools.groupby(
            sorted(edges, key=lambda edge: edge.pool), key=lambda edge: edge.pool
        ):
            self.replace_pool_edges(pool, pool_edges)

    def __contains__(self, token: object) -> bool:
        return token in self._adjacency

    def __getitem__(self, token: ChecksumAddress) -> list[SwapEdge]:
        return self.edges_from(token)

    def __len__(self) -> int:
        return sum(len(edges) for edges in self._pool_edges.values())

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(tokens={len(self.tokens)}, pools={len(self.pools)}, "
            f"edges={len(self)})"
        )

    @property
    def edges(self) -> Iterator[SwapEdge]:
        for edges in self._pool_edges.values():
            yield from edges

    @property
    def excluded_directions(self) -> int:
        """
        The number of pool directions omitted because their quote failed.
        """
        return sum(self._excluded_directions.values())

    @property
    def pools(self) -> tuple[ChecksumAddress, ...]:
        return tuple(self._pool_edges)

    @property
    def tokens(self) -> tuple[ChecksumAddress, ...]:
        return tuple(self._adjacency)

    def edges_from(self, token: ChecksumAddress) -> list[SwapEdge]:
        """
        The outgoing edges of a token. A token with no edges has an empty list.
        """

        outgoing = self._adjacency.get(token)
        return [] if outgoing is None else list(outgoing.values())

    def min_cost(self) -> Slippage | None:
        return min((edge.cost for edge in self.edges), default=None)

    def pool_edges(self, pool: ChecksumAddress) -> tuple[SwapEdge, ...]:
        return self._pool_edges.get(pool, ())

    def remove_pool(self, pool: ChecksumAddress) -> None:
        for edge in self._pool_edges.pop(pool, ()):
            outgoing = self._adjacency[edge.token_in]
            del outgoing[edge.pool, edge.token_out]
        self._excluded_directions.pop(pool, None)

    def replace_pool_edges(
        self,
        pool: ChecksumAddress,
        edges: Iterable[SwapEdge],
        excluded_directions: int = 0,
    ) -> None:
        """
        Replace every edge sourced from the pool. The cost is proportional to the number of edges
        for the pool.
        """

        new_edges = tuple(edges)
        directions: set[tuple[ChecksumAddress, ChecksumAddress]] = set()
        for edge in new_edges:
            if edge.pool != pool:
                raise SwaprouteError(message=f"Edge {edge} does not belong to pool {pool}")
            if (edge.token_in, edge.token_out) in directions:
                raise SwaprouteError(
                    message=(
                        f"Pool {pool} has more than one {edge.token_in} -> {edge.token_out} edge"
                    )
                )
            directions.add((edge.token_in, edge.token_out))

        self.remove_pool(pool)
        for edge in new_edges:
            self._adjacency.setdefault(edge.token_in, {})[edge.pool, edge.token_out] = edge
            # Register the output token as a node, even if it has no outgoing edges
            self._adjacency.setdefault(edge.token_out, {})

        self._pool_edges[pool] = new_edges
        if excluded_directions:
            self._excluded_directions[pool] = excluded_directions

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Export the graph as a networkx directed multigraph. Edges are keyed by pool address and carry
        `cost` and `fee` attributes.
        """

        graph = nx.MultiDiGraph()
        graph.add_nodes_from(self._adjacency)
        graph.add_edges_from(
            (edge.token_in, edge.token_out, edge.pool, {"cost": edge.cost, "fee": edge.fee})
            for edge in self.edges
        )
        return graph


def edges_for_state(
    state: PoolState,
    directory: PoolDirectory,
    reference_trade_size: int | None = None,
    accept_approximate: bool | None = None,
) -> tuple[list[SwapEdge], int]:
    """
    Quote every ordered token pair held by the pool at the reference trade size, expressed in whole
    units of the input token. Returns the edges for the directions that could be quoted, and the
    number of directions that could not.

    Raises `UnknownToken` if the directory does not hold a token of the pool.
    """

    if reference_trade_size is None:
        reference_trade_size = settings.routing.reference_trade_size
    if accept_approximate is None:
        accept_approximate = settings.routing.accept_approximate_solutions

    edges: list[SwapEdge] = []
    excluded_directions = 0

    for token_in, token_out in itertools.permutations(state.tokens, 2):
        result = quote(
            state,
            token_in,
            token_out,
            directory.get_token(token_in).scaled(reference_trade_size),
            accept_approximate=accept_approximate,
        )
        if not result.ok:
            logger.debug(
                f"Excluding {token_in} -> {token_out} on pool {state.address}: {result.failure}"
            )
            excluded_directions += 1
            continue

        edges.append(
            SwapEdge(
                token_in=token_in,
                token_out=token_out,
                pool=state.address,
                cost=result.slippage,
                fee=state.fee,
            )
        )

    return edges, excluded_directions


def update_pool_edges(
    graph: SwapGraph,
    state: PoolState,
    directory: PoolDirectory,
    reference_trade_size: int | None = None,
    accept_approximate: bool | None = None,
) -> None:
    """
    Recompute the edges of a single pool after its state changed.
    """

    try:
        edges, excluded_directions = edges_for_state(
            state=state,
            directory=directory,
            reference_trade_size=reference_trade_size,
            accept_approximate=accept_approximate,
        )
    except SwaprouteError as exc:
        logger.warning(f"Removing pool {state.address} from the graph: {exc}")
        graph.remove_pool(state.address)
        return

    graph.replace_pool_edges(state.address, edges, excluded_directions)


def build_graph(
    store: PoolStateStore,
    directory: PoolDirectory,
    reference_trade_size: int | None = None,
    accept_approximate: bool | None = None,
) -> SwapGraph:
    """
    Build the routing graph from every pool state in the store.
    """

    graph = SwapGraph()
    excluded_pools = 0

    for state in store:
        update_pool_edges(
            graph=graph,
            state=state,
            directory=directory,
            reference_trade_size=reference_trade_size,
            accept_approximate=accept_approximate,
        )
        if not graph.pool_edges(state.address):
            excluded_pools += 1

    logger.info(
        f"Built graph with {len(graph.tokens)} tokens and {len(graph)} edges from "
        f"{len(store)} pools ({excluded_pools} pools without edges, "
        f"{graph.excluded_directions} directions excluded, "
        f"{len(store.excluded)} pools excluded at fetch)"
    )
    return graph


def build_bidirectional_graph(
    edges: Iterable[tuple[ChecksumAddress, ChecksumAddress, ChecksumAddress, int, int, int]],
) -> SwapGraph:
    """
    Build a graph from (token_a, token_b, pool, cost_a_to_b, cost_b_to_a, fee) tuples, adding an
    edge in each direction.
    """

    return SwapGraph(
        itertools.chain.from_iterable(
            (
                SwapEdge(token_in=token_a, token_out=token_b, pool=pool, cost=cost_ab, fee=fee),
                SwapEdge(token_in=token_b, token_out=token_a, pool=pool, cost=cost_ba, fee=fee),
            )
            for token_a, token_b, pool, cost_ab, cost_ba, fee in edges
        )
    )
