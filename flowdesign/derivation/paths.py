"""
paths.py - Enumerate entry-to-terminal test paths of a flow.

Depth-first walk from the entry along each node's successors in branch
table order. A path is recorded when it reaches a terminal node. A node
already on the current path is never entered again, so cyclic input still
terminates; a self-referencing structure (e.g. an agent loop calling back
into itself) is represented by a single visit per path.

Usage:
    from flowdesign.derivation.paths import derive_test_paths

    for path in derive_test_paths(graph):
        print(path.id, path.classification.value, " -> ".join(path.node_ids))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from flowdesign.config.runtime_config import get_max_paths
from flowdesign.spec.kinds import FAILURE_BRANCHES, NodeKind
from flowdesign.spec.types import (
    FAILURE_OUTCOMES,
    SUCCESS_OUTCOMES,
    FlowGraph,
    Node,
    TerminalSpec,
    as_number,
)

logger = logging.getLogger(__name__)

PATH_ID_PREFIX = "path-"


class PathClassification(str, Enum):
    HAPPY_PATH = "happy_path"
    ERROR_PATH = "error_path"
    EDGE_CASE = "edge_case"


@dataclass(frozen=True)
class TestPath:
    """One entry-to-terminal route through a flow.

    Attributes:
        id: ``path-1``, ``path-2``, ... in discovery order.
        classification: happy_path, error_path or edge_case.
        node_ids: Visited node ids, entry first, terminal last.
        expected_outcome: Short description of the terminal's outcome.
        branches: Branch taken out of each node but the last.
    """

    __test__ = False  # not a pytest test class

    id: str
    classification: PathClassification
    node_ids: Tuple[str, ...]
    expected_outcome: str
    branches: Tuple[str, ...] = ()

    @property
    def terminal_id(self) -> str:
        return self.node_ids[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "classification": self.classification.value,
            "node_ids": list(self.node_ids),
            "expected_outcome": self.expected_outcome,
            "branches": list(self.branches),
        }


# =============================================================================
# Classification
# =============================================================================


def terminal_signals_failure(spec: TerminalSpec) -> bool:
    if spec.outcome and spec.outcome.strip().lower() in FAILURE_OUTCOMES:
        return True
    status = as_number(spec.status_code)
    if status is not None and status >= 400:
        return True
    return bool(spec.error_code)


def terminal_signals_success(spec: TerminalSpec) -> bool:
    if spec.outcome and spec.outcome.strip().lower() in SUCCESS_OUTCOMES:
        return True
    status = as_number(spec.status_code)
    if status is not None:
        return 200 <= status < 400
    return not spec.outcome


def classify_path(branches: Tuple[str, ...], terminal: Node) -> PathClassification:
    """Failure signals win; otherwise a success-range terminal is the happy path."""
    spec = terminal.spec if isinstance(terminal.spec, TerminalSpec) else TerminalSpec()
    if any(branch in FAILURE_BRANCHES for branch in branches) or terminal_signals_failure(spec):
        return PathClassification.ERROR_PATH
    if terminal_signals_success(spec):
        return PathClassification.HAPPY_PATH
    return PathClassification.EDGE_CASE


def expected_outcome(terminal: Node) -> str:
    """e.g. ``success``, ``error 404 USER_NOT_FOUND``, ``201``."""
    spec = terminal.spec if isinstance(terminal.spec, TerminalSpec) else TerminalSpec()
    parts: List[str] = []
    if spec.outcome:
        parts.append(spec.outcome)
    if spec.status_code is not None:
        parts.append(str(spec.status_code))
    if spec.error_code:
        parts.append(spec.error_code)
    if not parts:
        return "success"
    return " ".join(parts)


# =============================================================================
# Enumeration
# =============================================================================


def _entry_ids(graph: FlowGraph) -> List[str]:
    triggers = graph.triggers()
    if triggers:
        return [triggers[0].id]
    return graph.roots()


def _walk(graph: FlowGraph, entry: str) -> Iterator[Tuple[Tuple[str, ...], Tuple[str, ...]]]:
    """Yield ``(node_ids, branches)`` for every terminal reached from ``entry``."""
    nodes: Dict[str, Node] = {}
    for node in graph.nodes:
        nodes.setdefault(node.id, node)

    path = [entry]
    branches: List[str] = []
    on_path = {entry}
    stack = [iter(nodes[entry].edges())]

    if nodes[entry].kind == NodeKind.TERMINAL:
        yield tuple(path), ()
        return

    while stack:
        advanced = False
        for branch, target in stack[-1]:
            if target not in nodes or target in on_path:
                continue
            path.append(target)
            branches.append(branch)
            if nodes[target].kind == NodeKind.TERMINAL:
                yield tuple(path), tuple(branches)
                path.pop()
                branches.pop()
                continue
            on_path.add(target)
            stack.append(iter(nodes[target].edges()))
            advanced = True
            break
        if not advanced:
            stack.pop()
            on_path.discard(path.pop())
            if branches:
                branches.pop()


def derive_test_paths(graph: FlowGraph, max_paths: Optional[int] = None) -> List[TestPath]:
    """Enumerate every entry-to-terminal path of ``graph``.

    Args:
        graph: The flow snapshot.
        max_paths: Stop after this many paths. Defaults to the configured
            ``derivation.max_paths``.

    Returns:
        TestPaths in discovery order. Dead-end branches produce no path.
    """
    limit = max_paths if max_paths is not None else get_max_paths()
    paths: List[TestPath] = []

    for entry in _entry_ids(graph):
        for node_ids, branches in _walk(graph, entry):
            if len(paths) >= limit:
                logger.warning(
                    "Flow %s has more than %d test paths; enumeration truncated",
                    graph.id,
                    limit,
                )
                return paths
            terminal = graph.node(node_ids[-1])
            if terminal is None:
                continue
            paths.append(
                TestPath(
                    id=f"{PATH_ID_PREFIX}{len(paths) + 1}",
                    classification=classify_path(branches, terminal),
                    node_ids=node_ids,
                    expected_outcome=expected_outcome(terminal),
                    branches=branches,
                )
            )

    logger.debug("Derived %d test paths for flow %s", len(paths), graph.id)
    return paths
