from typing import Dict, Iterable, List, Mapping, Set
from app.services.graph.exceptions import CycleDetected

def topological_order(adjacency: Mapping[int, Iterable[int]]) -> List[int]:
    """Order task ids so every task comes after the tasks it depends on."""
    deps: Dict[int, List[int]] = {tid: sorted(d) for tid, d in adjacency.items()}
    visited: Set[int] = set()
    result: List[int] = []

    for root in sorted(deps):
        if root in visited:
            continue
        # explicit stack: deep chains must not hit the recursion limit
        temp: List[int] = [root]
        on_path: Set[int] = {root}
        frames = [iter(deps[root])]
        while frames:
            dep = next(frames[-1], None)
            if dep is None:
                frames.pop()
                tid = temp.pop()
                on_path.discard(tid)
                visited.add(tid)
                result.append(tid)
                continue
            if dep not in deps or dep in visited:
                continue
            if dep in on_path:
                path = temp[temp.index(dep):] + [dep]
                raise CycleDetected(f"Cycle detected at {dep}", path=path)
            temp.append(dep)
            on_path.add(dep)
            frames.append(iter(deps[dep]))
    # Dependencies first
    return result
