import dataclasses
import heapq
import itertools

import networkx as nx
from eth_typing import ChecksumAddress

from swaproute.exceptions import RoutingError
from swaproute.graph import SwapEdge, SwapGraph
from swaproute.logging import logger


@dataclasses.dataclass(slots=True, frozen=True)
class ShortestPath:
    """
    A route between two tokens. An empty `tokens` sequence means that no path was found, which is
    distinct from a zero cost route.
    """

    tokens: tuple[ChecksumAddress, ...] = ()
    pools: tuple[ChecksumAddress, ...] = ()
    fees: tuple[int, ...] = ()
    cost: int = 0

    @property
    def found(self) -> bool:
        return len(self.tokens) > 0

    @property
    def hops(self) -> int:
        return len(self.pools)

    @classmethod
    def from_edges(cls, start: ChecksumAddress, edges: list[SwapEdge]) -> "ShortestPath":
        return cls(
            tokens=(start, *(edge.token_out for edge in edges)),
            pools=tuple(edge.pool for edge in edges),
            fees=tuple(edge.fee for edge in edges),
            cost=sum(edge.cost for edge in edges),
        )


def default_shift(graph: SwapGraph) -> int:
    """
    The per-hop weight shift that makes every edge weight positive. Graphs where every edge cost is
    already positive are searched without a shift.
    """

    min_cost = graph.min_cost()
    if min_cost is None or min_cost > 0:
        return 0
    return abs(min_cost) + 1


def best_path(
    graph: SwapGraph,
    start: ChecksumAddress,
    end: ChecksumAddress,
    shift: int | None = None,
) -> ShortestPath:
    """
    Find the lowest cost path from `start` to `end` using Dijkstra's algorithm.

    Every edge weight used by the search is offset by `shift`, so edges with a negative cost (a
    favorable price impact) do not break the greedy search. The reported cost is the sum of the
    unshifted edge costs along the path.
    """

    if shift is None:
        shift = default_shift(graph)
    elif shift < 0:
        raise RoutingError(message=f"Weight shift must be non-negative, got {shift}")

    if start == end:
        return ShortestPath(tokens=(start,))

    if start not in graph:
        logger.debug(f"Start token {start} is not in the graph")
        return ShortestPath()

    # The counter breaks ties between equal weights, so edges are never compared directly
    counter = itertools.count()
    best_weight: dict[ChecksumAddress, int] = {start: 0}
    previous_edge: dict[ChecksumAddress, SwapEdge] = {}
    queue: list[tuple[int, int, ChecksumAddress]] = [(0, next(counter), start)]
    visited: set[ChecksumAddress] = set()

    while queue:
        weight, _, token = heapq.heappop(queue)
        if token in visited:
            continue
        visited.add(token)

        if token == end:
            break

        for edge in graph.edges_from(token):
            if edge.token_out in visited:
                continue
            new_weight = weight + edge.cost + shift
            if new_weight < best_weight.get(edge.token_out, new_weight + 1):
                best_weight[edge.token_out] = new_weight
                previous_edge[edge.token_out] = edge
                heapq.heappush(queue, (new_weight, next(counter), edge.token_out))
    else:
        logger.debug(f"No path from {start} to {end}")
        return ShortestPath()

    path_edges: list[SwapEdge] = []
    token = end
    while token != start:
        edge = previous_edge[token]
        path_edges.append(edge)
        token = edge.token_in
    path_edges.reverse()

    path = ShortestPath.from_edges(start, path_edges)
    assert path.cost == best_weight[end] - shift * path.hops
    return path


def enumerate_paths(
    graph: SwapGraph,
    start: ChecksumAddress,
    end: ChecksumAddress,
    max_hops: int | None = None,
) -> list[ShortestPath]:
    """
    Enumerate every simple path from `start` to `end`, sorted by ascending cost. The number of paths
    grows exponentially with the graph size, so this is intended for small graphs and verification.
    """

    if start == end:
        return [ShortestPath(tokens=(start,))]

    nx_graph = graph.to_networkx()
    if start not in nx_graph or end not in nx_graph:
        return []

    paths = [
        ShortestPath(
            tokens=(start, *(token_out for _, token_out, _ in edge_path)),
            pools=tuple(pool for _, _, pool in edge_path),
            fees=tuple(nx_graph.edges[edge]["fee"] for edge in edge_path),
            cost=sum(nx_graph.edges[edge]["cost"] for edge in edge_path),
        )
        for edge_path in nx.all_simple_edge_paths(nx_graph, start, end, cutoff=max_hops)
    ]
    paths.sort(key=lambda path: (path.cost, path.hops))
    return paths
