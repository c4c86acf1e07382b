"""Circular dependency detection over declared ``upstream_pipelines``.

The dependency graph here is pipelines only; data-flow edges are ignored.
With group collapsing enabled every pipeline is projected onto its group
name first, and references between two siblings of the same group are not
treated as dependencies.  A pipeline naming itself still is.

Detection reports one cycle per strongly connected region it touches rather
than enumerating every elementary cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pipeviz_engine.models.estate import EstateConfig
from pipeviz_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


def build_collapse(config: EstateConfig, collapse_groups: bool = True) -> Callable[[str], str]:
    """Return the ``pipeline -> group | pipeline`` projection for *config*."""
    if not collapse_groups:
        return lambda name: name
    group_of = {p.name: p.group for p in config.pipelines if p.group}
    return lambda name: group_of.get(name, name)


def dependency_adjacency(config: EstateConfig, collapse_groups: bool = True) -> dict[str, list[str]]:
    """Build ``node -> dependants`` from ``upstream_pipelines`` references.

    Nodes appear in declaration order and each neighbour list keeps the
    order in which the edge was first declared.
    """
    collapse = build_collapse(config, collapse_groups)
    graph: dict[str, list[str]] = {}
    for p in config.pipelines:
        graph.setdefault(collapse(p.name), [])

    for p in config.pipelines:
        node = collapse(p.name)
        for dep in p.upstream_pipelines:
            source = collapse(dep)
            if source not in graph:
                continue
            if source == node and dep != p.name:
                # Sibling reference inside one group.
                continue
            if node not in graph[source]:
                graph[source].append(node)
    return graph


def _find_cycle(
    graph: dict[str, list[str]],
    root: str,
    visited: set[str],
    on_stack: set[str],
) -> list[str] | None:
    """Depth-first search from *root*; return the first cycle closed, if any."""
    path: list[str] = [root]
    visited.add(root)
    on_stack.add(root)
    frames = [iter(graph.get(root, ()))]

    while frames:
        for neighbour in frames[-1]:
            if neighbour not in visited:
                visited.add(neighbour)
                on_stack.add(neighbour)
                path.append(neighbour)
                frames.append(iter(graph.get(neighbour, ())))
                break
            if neighbour in on_stack:
                cycle = path[path.index(neighbour):]
                cycle.append(neighbour)
                return cycle
        else:
            on_stack.discard(path.pop())
            frames.pop()

    return None


@profile_operation("graph.detect_cycles")
def detect_cycles(config: EstateConfig, collapse_groups: bool = True) -> list[list[str]]:
    """Find circular dependencies among pipelines (or collapsed groups).

    Each cycle is returned closed, with its first node repeated at the end,
    e.g. ``["A", "B", "C", "A"]``.  After a cycle is found, the search
    forgets everything except that cycle's members before moving on to the
    next unvisited root.
    """
    graph = dependency_adjacency(config, collapse_groups)
    cycles: list[list[str]] = []
    visited: set[str] = set()
    on_stack: set[str] = set()

    for root in graph:
        if root in visited:
            continue
        cycle = _find_cycle(graph, root, visited, on_stack)
        if cycle is None:
            continue
        cycles.append(cycle)
        visited = set(cycle)
        on_stack = set()

    if cycles:
        logger.warning(
            "Detected %d dependency cycle(s): %s",
            len(cycles),
            "; ".join(" -> ".join(c) for c in cycles),
        )
    return cycles
