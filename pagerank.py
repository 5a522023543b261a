import math
import time
from typing import List, NamedTuple, Sequence, Tuple

from link_graph import LinkGraph

DAMPING = 0.85
CONVERGENCE_WINDOW = 4
MAX_PERPLEXITY_STEP = 1.0


class RankState(NamedTuple):
    """Initialized graph: uniform ranks, sink slots, empty perplexity trace."""

    graph: LinkGraph
    ranks: List[float]
    sinks: Tuple[int, ...]
    perplexity: List[float]


class PageRankResult(NamedTuple):
    graph: LinkGraph
    ranks: Tuple[float, ...]
    perplexity: Tuple[float, ...]
    iterations: int
    converged: bool
    seconds: float

    def score(self, page_id: int) -> float:
        return self.ranks[self.graph.slots[page_id]]

    def scores(self) -> List[Tuple[int, float]]:
        """(pageId, rank) pairs by ascending page id."""
        ids = self.graph.page_ids
        return sorted((ids[s], r) for s, r in enumerate(self.ranks))

    def top_k(self, k: int) -> List[int]:
        """
        Page ids of the k highest ranks, highest first. Equal ranks are
        ordered by ascending page id. k larger than the graph returns every page.
        """
        if k < 0:
            raise ValueError(f"k must be non-negative, got {k}")
        ids = self.graph.page_ids
        ranks = self.ranks
        order = sorted(range(len(ids)), key=lambda s: (-ranks[s], ids[s]))
        return [ids[s] for s in order[: min(k, len(ids))]]


def initialize(graph: LinkGraph) -> RankState:
    n = len(graph)
    if n == 0:
        raise ValueError("cannot rank an empty graph")
    return RankState(
        graph=graph,
        ranks=[1.0 / n] * n,
        sinks=tuple(graph.sinks()),
        perplexity=[],
    )


def perplexity(ranks: Sequence[float]) -> float:
    h = 0.0
    for r in ranks:
        h += r * math.log2(r)
    return 2.0 ** (-h)


def is_converged(trace: Sequence[float]) -> bool:
    # last 4 values must agree on the units digit and move by at most 1.0
    if len(trace) < CONVERGENCE_WINDOW:
        return False
    window = trace[-CONVERGENCE_WINDOW:]
    for p1, p2 in zip(window, window[1:]):
        if math.floor(p1) % 10 != math.floor(p2) % 10:
            return False
        if abs(p1 - p2) > MAX_PERPLEXITY_STEP:
            return False
    return True


def update_ranks(
    graph: LinkGraph,
    ranks: Sequence[float],
    sinks: Sequence[int],
    d: float = DAMPING,
    out_degrees: Sequence[int] | None = None,
) -> List[float]:
    """One synchronous round; reads only `ranks`, returns a fresh vector."""
    n = len(ranks)
    if out_degrees is None:
        out_degrees = graph.out_degrees()

    sink_mass = 0.0
    for s in sinks:
        sink_mass += ranks[s]
    base = ((1.0 - d) + d * sink_mass) / n

    new_ranks = [0.0] * n
    for a, incoming in enumerate(graph.incoming):
        v = base
        for t in incoming:
            v += d * ranks[t] / out_degrees[t]
        new_ranks[a] = v
    return new_ranks


def run_pagerank(
    state: RankState,
    d: float = DAMPING,
    max_iter: int | None = None,
) -> PageRankResult:
    if max_iter is not None and max_iter < 1:
        raise ValueError(f"max_iter must be at least 1, got {max_iter}")
    graph = state.graph
    out_degrees = graph.out_degrees()
    ranks = list(state.ranks)
    trace = list(state.perplexity)

    start = time.time()
    it = 0
    converged = is_converged(trace)
    while not converged:
        if max_iter is not None and it >= max_iter:
            break
        ranks = update_ranks(graph, ranks, state.sinks, d, out_degrees)
        trace.append(perplexity(ranks))
        it += 1
        converged = is_converged(trace)
    end = time.time()

    return PageRankResult(
        graph=graph,
        ranks=tuple(ranks),
        perplexity=tuple(trace),
        iterations=it,
        converged=converged,
        seconds=end - start,
    )
