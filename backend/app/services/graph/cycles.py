"""Cycle detection for candidate dependency edges.

The graph passed in is assumed acyclic. Adding ``task_id -> dep`` closes a
cycle exactly when ``task_id`` is reachable from ``dep`` over the existing
edges, so each candidate dependency is searched depth-first for a path back
to ``task_id``.
"""
from typing import Iterable, List, Mapping, Optional, Set


def find_cycle(
    adjacency: Mapping[int, Iterable[int]],
    task_id: int,
    dependency_ids: Iterable[int],
) -> Optional[List[int]]:
    """Return the cycle that ``task_id -> dependency_ids`` would close, or None.

    The result lists task ids along the dependency direction and ends where
    it starts, e.g. ``[a, b, a]`` for "a depends on b, b depends on a".
    ``adjacency`` is only read.
    """
    candidates = list(dependency_ids)
    if task_id in candidates:
        return [task_id, task_id]

    # Shared across candidates: these nodes were fully searched and cannot
    # reach task_id, so a second path into them is not a cycle.
    explored: Set[int] = set()
    for dep in candidates:
        path = _search(adjacency, task_id, dep, explored)
        if path:
            return path
    return None


def would_create_cycle(
    adjacency: Mapping[int, Iterable[int]],
    task_id: int,
    dependency_ids: Iterable[int],
) -> bool:
    return find_cycle(adjacency, task_id, dependency_ids) is not None


def _search(
    adjacency: Mapping[int, Iterable[int]],
    target: int,
    start: int,
    explored: Set[int],
) -> Optional[List[int]]:
    if start in explored:
        return None

    path: List[int] = [start]
    on_path: Set[int] = {start}
    pending = [_successors(adjacency, start)]

    while pending:
        nxt = next(pending[-1], None)
        if nxt is None:
            # backtrack
            pending.pop()
            done = path.pop()
            on_path.discard(done)
            explored.add(done)
            continue
        if nxt == target:
            return [target] + path + [target]
        if nxt in on_path:
            # Only reachable if the existing edges were already cyclic.
            return path[path.index(nxt):] + [nxt]
        if nxt in explored:
            continue
        path.append(nxt)
        on_path.add(nxt)
        pending.append(_successors(adjacency, nxt))
    return None


def _successors(adjacency: Mapping[int, Iterable[int]], node: int):
    return iter(sorted(adjacency.get(node, ())))

