"""
flowdesign - Analysis core of a visual flow-design tool.

Validates flow graphs (flow, domain and system scope) and derives test
paths and boundary-value cases from them. Every entry point is a pure
function of an immutable snapshot.

Usage:
    from flowdesign import derive, flow_from_dict, validate_flow

    graph = flow_from_dict(payload)
    result = validate_flow(graph)
    derivation = derive(graph)
"""

from .config import ReferenceRegistry, load_registry
from .derivation import (
    BoundaryKind,
    BoundaryTest,
    Derivation,
    PathClassification,
    TestPath,
    derive,
    derive_boundary_tests,
    derive_test_paths,
)
from .spec import (
    Domain,
    EventDeclaration,
    FlowGraph,
    FlowKind,
    InputField,
    Node,
    NodeKind,
    SnapshotError,
    System,
    domain_from_dict,
    flow_from_dict,
    system_from_dict,
)
from .validator import (
    GateDecision,
    IssueCategory,
    Scope,
    Severity,
    ValidationIssue,
    ValidationResult,
    implementation_gate,
    validate_all,
    validate_domain,
    validate_flow,
    validate_system,
)

__version__ = "0.1.0"

__all__ = [
    "BoundaryKind",
    "BoundaryTest",
    "Derivation",
    "Domain",
    "EventDeclaration",
    "FlowGraph",
    "FlowKind",
    "GateDecision",
    "InputField",
    "IssueCategory",
    "Node",
    "NodeKind",
    "PathClassification",
    "ReferenceRegistry",
    "Scope",
    "Severity",
    "SnapshotError",
    "System",
    "TestPath",
    "ValidationIssue",
    "ValidationResult",
    "derive",
    "derive_boundary_tests",
    "derive_test_paths",
    "domain_from_dict",
    "flow_from_dict",
    "implementation_gate",
    "load_registry",
    "system_from_dict",
    "validate_all",
    "validate_domain",
    "validate_flow",
    "validate_system",
]
