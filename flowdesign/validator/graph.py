# flowdesign/validator/graph.py
"""Graph algorithms shared by the flow and system validators.

Everything here works on a plain adjacency mapping (node id -> successor
ids in traversal order) so the same code serves per-flow node graphs and
the system-wide orchestration reference graph.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, List, Mapping, Optional, Sequence, Set, Tuple

WHITE = 0  # not visited
GRAY = 1  # on the current DFS path
BLACK = 2  # finished


def reachable_from(
    adjacency: Mapping[str, Sequence[str]],
    roots: Iterable[str],
) -> Set[str]:
    """Every node transitively reachable from ``roots`` (roots included).

    Targets missing from ``adjacency`` are dangling edges and are not part
    of the result.
    """
    seen: Set[str] = set()
    queue = deque(root for root in roots if root in adjacency)
    seen.update(queue)

    while queue:
        current = queue.popleft()
        for target in adjacency.get(current, ()):
            if target in adjacency and target not in seen:
                seen.add(target)
                queue.append(target)

    return seen


def find_cycles(
    adjacency: Mapping[str, Sequence[str]],
    stop_at_first: bool = False,
) -> List[List[str]]:
    """Three-colour DFS; one cycle per back-edge to a gray node.

    Each cycle is returned as a closed path, e.g. ``["a", "b", "a"]``.
    Roots are visited in adjacency order and children in list order, so
    the result is deterministic. The walk is iterative to stay clear of the
    recursion limit on long flows.
    """
    color = {node: WHITE for node in adjacency}
    cycles: List[List[str]] = []

    for root in adjacency:
        if color[root] != WHITE:
            continue

        color[root] = GRAY
        path = [root]
        stack = [(root, iter(adjacency[root]))]

        while stack:
            node, children = stack[-1]
            descended = False
            for child in children:
                state = color.get(child)
                if state is None:
                    continue
                if state == GRAY:
                    start = path.index(child)
                    cycles.append(path[start:] + [child])
                    if stop_at_first:
                        return cycles
                elif state == WHITE:
                    color[child] = GRAY
                    path.append(child)
                    stack.append((child, iter(adjacency[child])))
                    descended = True
                    break
            if not descended:
                color[node] = BLACK
                path.pop()
                stack.pop()

    return cycles


def find_cycle(adjacency: Mapping[str, Sequence[str]]) -> Optional[List[str]]:
    """First cycle found, or None for an acyclic graph."""
    cycles = find_cycles(adjacency, stop_at_first=True)
    return cycles[0] if cycles else None


def format_cycle(cycle: Sequence[str]) -> str:
    return " -> ".join(cycle)


# ============================================================================
# Typo suggestions for unresolved references
# ============================================================================


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate Levenshtein edit distance between two strings.

    Used for typo detection in unresolved references.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row: List[int] = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row: List[int] = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def suggest_typos(name: str, candidates: Iterable[str], max_dist: int = 2) -> List[str]:
    """
    Suggest similar names using Levenshtein distance.

    Returns up to 3 suggestions with distance <= max_dist, sorted by distance.
    """
    suggestions: List[Tuple[int, str]] = []
    for candidate in set(candidates):
        dist = levenshtein_distance(name.lower(), candidate.lower())
        if dist <= max_dist:
            suggestions.append((dist, candidate))

    suggestions.sort(key=lambda x: (x[0], x[1]))

    return [s[1] for s in suggestions[:3]]


def did_you_mean(name: str, candidates: Iterable[str], fallback: str) -> str:
    """Suggestion text for an unresolved reference."""
    matches = suggest_typos(name, candidates)
    if matches:
        return "Did you mean " + ", ".join(f"'{m}'" for m in matches) + "?"
    return fallback
