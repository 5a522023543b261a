#!/usr/bin/env python3

import argparse
import json
import os
import sys
import time
from datetime import datetime, timezone
from typing import List

from link_graph import LinkGraph, RecordParseError, degree_stats, parse_records
from pagerank import initialize, run_pagerank
from rank_storage import StorageError, read_lines, write_perplexity, write_scores

INPUT = os.environ.get("PAGERANK_INPUT", "citeseer.dat")
PERPLEXITY_OUT = os.environ.get("PERPLEXITY_OUT", "perplexity.out")
SCORES_OUT = os.environ.get("SCORES_OUT", "pr_scores.out")
# argparse applies the option types to these string defaults
TOPK = os.environ.get("TOPK", "100")
MAX_ITER = os.environ.get("MAX_ITER") or None


def _count(minimum: int):
    def parse(value: str) -> int:
        try:
            n = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
        if n < minimum:
            raise argparse.ArgumentTypeError(f"must be at least {minimum}, got {n}")
        return n
    return parse


def _log(event_type: str, stream=None, **fields):
    payload = {
        "event_type": event_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        **fields,
    }
    print(json.dumps(payload), file=stream or sys.stdout)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="PageRank over a line-oriented in-link file.")
    ap.add_argument("--input", default=INPUT, help='Local path or "gs://bucket/object".')
    ap.add_argument("--perplexity-out", default=PERPLEXITY_OUT)
    ap.add_argument("--scores-out", default=SCORES_OUT)
    ap.add_argument("--topk", type=_count(0), default=TOPK, help="Number of top pages to print (default 100).")
    ap.add_argument("--max-iter", type=_count(1), default=MAX_ITER, help="Optional cap on iterations.")
    return ap


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    t_all0 = time.time()
    try:
        graph = LinkGraph.load(parse_records(read_lines(args.input)))
        state = initialize(graph)
    except (StorageError, RecordParseError, ValueError) as e:
        _log("load_failed", stream=sys.stderr, input=args.input, error=str(e))
        return 2
    read_s = time.time() - t_all0
    _log("graph_loaded", input=args.input, pages=len(graph), links=graph.edge_count, sinks=len(state.sinks))

    result = run_pagerank(state, max_iter=args.max_iter)
    _log("pagerank_done", iterations=result.iterations, converged=result.converged, seconds=round(result.seconds, 3))
    if not result.converged:
        _log("iteration_cap_reached", stream=sys.stderr, max_iter=args.max_iter)

    exit_code = 0
    try:
        write_perplexity(args.perplexity_out, result.perplexity)
        write_scores(args.scores_out, result.scores())
        _log("outputs_written", perplexity=args.perplexity_out, scores=args.scores_out)
    except StorageError as e:
        _log("write_failed", stream=sys.stderr, error=str(e))
        exit_code = 1

    stats = degree_stats(graph)
    top = result.top_k(args.topk)
    t_all1 = time.time()

    print(f"PAGES: {len(graph)}")
    print(f"LINKS: {graph.edge_count}")
    print(f"SINKS: {len(state.sinks)}")
    print(f"READ_SECONDS: {read_s:.3f}")
    print(f"PAGERANK_SECONDS: {result.seconds:.3f}")
    print(f"TOTAL_SECONDS: {(t_all1 - t_all0):.3f}")
    print(f"PAGERANK_ITERS: {result.iterations}")

    print("\nINCOMING_LINKS_STATS:")
    print(stats["incoming"])
    print("\nOUTGOING_LINKS_STATS:")
    print(stats["outgoing"])

    print("\nTOP_PAGES_BY_PAGERANK:")
    for pid in top:
        print(f"{pid}\t{result.score(pid):.10f}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
