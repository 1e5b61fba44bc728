"""
flowdesign/derivation - Test paths and boundary cases derived from a flow.

Usage:
    from flowdesign.derivation import derive

    derivation = derive(graph)
    derivation.paths           # entry-to-terminal TestPaths
    derivation.boundary_tests  # BoundaryTests per input field
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from flowdesign.spec.types import FlowGraph

from .boundaries import (
    BoundaryKind,
    BoundaryTest,
    derive_boundary_tests,
    field_boundary_tests,
)
from .paths import (
    PathClassification,
    TestPath,
    classify_path,
    derive_test_paths,
)


@dataclass(frozen=True)
class Derivation:
    """Everything derived from one flow, ready for the generation step."""

    flow_id: str
    paths: Tuple[TestPath, ...] = ()
    boundary_tests: Tuple[BoundaryTest, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_id": self.flow_id,
            "paths": [p.to_dict() for p in self.paths],
            "boundary_tests": [t.to_dict() for t in self.boundary_tests],
        }


def derive(graph: FlowGraph, max_paths: Optional[int] = None) -> Derivation:
    """Derive test paths and boundary cases for ``graph``."""
    return Derivation(
        flow_id=graph.id,
        paths=tuple(derive_test_paths(graph, max_paths)),
        boundary_tests=tuple(derive_boundary_tests(graph)),
    )


__all__ = [
    "BoundaryKind",
    "BoundaryTest",
    "Derivation",
    "PathClassification",
    "TestPath",
    "classify_path",
    "derive",
    "derive_boundary_tests",
    "derive_test_paths",
    "field_boundary_tests",
]
