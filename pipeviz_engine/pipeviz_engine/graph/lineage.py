"""Transitive upstream/downstream closure with hop counts.

Closures are computed breadth-first, so the first time a node is reached is
also its minimum hop count from the start.  Every traversal is
visited-guarded: it terminates on cyclic graphs and never reports the start
node as its own ancestor or descendant.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping

from pipeviz_engine.models.analysis import LineageEntry

logger = logging.getLogger(__name__)

Adjacency = Mapping[str, Iterable[str]]


def _sort_key(entry: LineageEntry) -> tuple[int, str]:
    return (entry.depth, entry.name)


def compute_closure(
    adjacency: Adjacency,
    start: str | Iterable[str],
    max_depth: int | None = None,
) -> list[LineageEntry]:
    """Return every node reachable from *start*, each at its minimum depth.

    Parameters
    ----------
    adjacency:
        ``node -> neighbours`` in the direction of travel (pass the
        ``downstream`` index for descendants, ``upstream`` for ancestors).
    start:
        A node name, or several names walked simultaneously as one
        virtual source.  Start nodes are never part of the result.
    max_depth:
        Stop expanding after this many hops.  ``None`` walks the whole
        closure.

    Returns
    -------
    list[LineageEntry]
        Sorted by ``(depth, name)``.
    """
    starts = [start] if isinstance(start, str) else list(start)
    excluded = set(starts)
    depths: dict[str, int] = {}
    queue: deque[tuple[str, int]] = deque((s, 0) for s in starts)
    visited: set[str] = set(starts)

    while queue:
        current, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbour in sorted(adjacency.get(current, ())):
            if neighbour in visited:
                continue
            visited.add(neighbour)
            if neighbour not in excluded:
                depths[neighbour] = depth + 1
            queue.append((neighbour, depth + 1))

    return sorted((LineageEntry(name=name, depth=d) for name, d in depths.items()), key=_sort_key)


def merge_lineage(
    *entry_lists: Iterable[LineageEntry],
    exclude: Iterable[str] = (),
) -> list[LineageEntry]:
    """Combine several closures, keeping each node once at its minimum depth.

    Names in *exclude* are dropped from the merged result.
    """
    excluded = set(exclude)
    best: dict[str, int] = {}
    for entries in entry_lists:
        for entry in entries:
            if entry.name in excluded:
                continue
            if entry.name not in best or entry.depth < best[entry.name]:
                best[entry.name] = entry.depth
    return sorted((LineageEntry(name=name, depth=d) for name, d in best.items()), key=_sort_key)


def lineage_names(entries: Iterable[LineageEntry]) -> list[str]:
    """Project a closure onto its node names, preserving order."""
    return [e.name for e in entries]
