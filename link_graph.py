import re
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

Record = Tuple[int, List[int]]

PAGE_ID_RE = re.compile(r"[+-]?[0-9]+")
QUINTILES = [0, 20, 40, 60, 80, 100]


class RecordParseError(ValueError):
    """
    line_no counts input lines (unit="line") or records handed to
    LinkGraph.load (unit="record"), starting at 1.
    """

    def __init__(self, line_no: int, token, line: str = "", field: str = "page id", unit: str = "line", reason: str = ""):
        msg = f"{unit} {line_no}: " + (reason or f"invalid {field} {token!r}")
        if line:
            msg += f" in {line.strip()!r}"
        super().__init__(msg)
        self.line_no = line_no
        self.token = token
        self.field = field


def parse_page_id(token, line_no: int, line: str = "", unit: str = "line") -> int:
    if isinstance(token, bool):
        raise RecordParseError(line_no, token, line, unit=unit)
    if isinstance(token, int):
        return token
    if isinstance(token, str) and PAGE_ID_RE.fullmatch(token):
        return int(token)
    raise RecordParseError(line_no, token, line, unit=unit)


def parse_records(lines: Iterable[str]) -> List[Record]:
    """
    Each line: <pageId> <inLinkId> <inLinkId> ...
    Blank lines are skipped. The first bad token aborts the whole parse.
    """
    records: List[Record] = []
    for line_no, line in enumerate(lines, start=1):
        tokens = line.split()
        if not tokens:
            continue
        ids = [parse_page_id(t, line_no, line) for t in tokens]
        records.append((ids[0], ids[1:]))
    return records


class LinkGraph:
    """
    Directed page graph kept as an arena: every page id owns one integer slot
    (first-appearance order) and neighbors are stored as slot numbers.
    Topology is fixed once load() returns.
    """

    def __init__(self):
        self.page_ids: List[int] = []
        self.slots: Dict[int, int] = {}
        self.incoming: List[List[int]] = []
        self.outgoing: List[List[int]] = []
        self._edges = set()

    @classmethod
    def load(cls, records: Iterable[Tuple[object, Sequence[object]]]) -> "LinkGraph":
        graph = cls()
        for rec_no, (page, in_links) in enumerate(records, start=1):
            dst = graph._slot(parse_page_id(page, rec_no, unit="record"))
            for token in in_links:
                src = graph._slot(parse_page_id(token, rec_no, unit="record"))
                graph._link(src, dst)
        return graph

    def _slot(self, page_id: int) -> int:
        slot = self.slots.get(page_id)
        if slot is None:
            slot = len(self.page_ids)
            self.slots[page_id] = slot
            self.page_ids.append(page_id)
            self.incoming.append([])
            self.outgoing.append([])
        return slot

    def _link(self, src: int, dst: int) -> None:
        if (src, dst) in self._edges:
            return
        self._edges.add((src, dst))
        self.incoming[dst].append(src)
        self.outgoing[src].append(dst)

    def __len__(self) -> int:
        return len(self.page_ids)

    def __contains__(self, page_id) -> bool:
        return page_id in self.slots

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def in_links(self, page_id: int) -> List[int]:
        return [self.page_ids[s] for s in self.incoming[self.slots[page_id]]]

    def out_links(self, page_id: int) -> List[int]:
        return [self.page_ids[s] for s in self.outgoing[self.slots[page_id]]]

    def out_degrees(self) -> List[int]:
        return [len(outs) for outs in self.outgoing]

    def sinks(self) -> List[int]:
        return [slot for slot, outs in enumerate(self.outgoing) if not outs]


def degree_summary(degrees: Sequence[int]) -> Dict:
    if not degrees:
        return {"count": 0, "min": 0, "max": 0, "avg": 0.0, "median": 0.0, "quintiles": [0.0] * len(QUINTILES)}
    arr = np.asarray(degrees, dtype=float)
    return {
        "count": len(degrees),
        "min": int(arr.min()),
        "max": int(arr.max()),
        "avg": float(arr.mean()),
        "median": float(np.median(arr)),
        "quintiles": np.percentile(arr, QUINTILES).tolist(),
    }


def degree_stats(graph: LinkGraph) -> Dict[str, Dict]:
    return {
        "incoming": degree_summary([len(ins) for ins in graph.incoming]),
        "outgoing": degree_summary(graph.out_degrees()),
    }
