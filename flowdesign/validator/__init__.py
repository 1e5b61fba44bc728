"""
flowdesign/validator - Flow, domain and system validation.

Usage:
    from flowdesign.validator import validate_flow, validate_all, implementation_gate

    result = validate_flow(graph)
    decision = implementation_gate(validate_all(system, registry))
"""

from .domain import validate_domain
from .errors import (
    IssueCategory,
    Scope,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from .flow import validate_flow
from .gate import GateDecision, implementation_gate, validate_all
from .graph import find_cycle, find_cycles, reachable_from, suggest_typos
from .report import build_report_json, build_report_markdown
from .system import orchestration_graph, validate_system

__all__ = [
    "GateDecision",
    "IssueCategory",
    "Scope",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "build_report_json",
    "build_report_markdown",
    "find_cycle",
    "find_cycles",
    "implementation_gate",
    "orchestration_graph",
    "reachable_from",
    "suggest_typos",
    "validate_all",
    "validate_domain",
    "validate_flow",
    "validate_system",
]
