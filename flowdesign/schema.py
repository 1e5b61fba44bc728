"""
Pydantic payload models handed to the external generation step.

The analysis core returns plain dataclasses; these models are the typed,
serialisable form of those results for whatever consumes them next
(indicators in the editor, the implement gate, code/test generation).

Usage:
    from flowdesign.schema import DerivationReport, ValidationReport

    report = ValidationReport.from_results(validate_all(system))
    payload = report.model_dump_json()
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from flowdesign.derivation import Derivation
from flowdesign.validator.errors import ValidationIssue, ValidationResult
from flowdesign.validator.gate import implementation_gate


# =============================================================================
# Validation
# =============================================================================


class IssuePayload(BaseModel):
    """Single validation issue."""
    severity: Literal["error", "warning", "info"] = Field(description="Fixed per rule; only errors block")
    category: str = Field(description="Issue category (e.g. graph_completeness, event_wiring)")
    message: str = Field(description="Human-readable description of the defect")
    flow_id: Optional[str] = Field(None, description="Flow the issue belongs to")
    node_id: Optional[str] = Field(None, description="Node the issue belongs to")
    domain_id: Optional[str] = Field(None, description="Domain the issue belongs to")
    suggestion: Optional[str] = Field(None, description="Suggested fix")

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> "IssuePayload":
        return cls(
            severity=issue.severity.value,
            category=issue.category.value,
            message=issue.message,
            flow_id=issue.flow_id,
            node_id=issue.node_id,
            domain_id=issue.domain_id,
            suggestion=issue.suggestion,
        )


class ScopeResult(BaseModel):
    """Issues of one validated flow, domain or the system."""
    scope: Literal["flow", "domain", "system"] = Field(description="What the result covers")
    target_id: str = Field(description="Flow id, domain name, or 'system'")
    is_valid: bool = Field(description="True when no error-severity issue is present")
    issues: List[IssuePayload] = Field(default_factory=list, description="Issues in discovery order")


class ValidationReport(BaseModel):
    """Every scope of one validation run plus the implement decision."""
    implementation_allowed: bool = Field(description="False while any scope has an error")
    error_count: int = Field(description="Total error-severity issues")
    warning_count: int = Field(description="Total warning-severity issues")
    results: List[ScopeResult] = Field(default_factory=list, description="Per-scope results")

    @classmethod
    def from_results(cls, results: Sequence[ValidationResult]) -> "ValidationReport":
        decision = implementation_gate(results)
        return cls(
            implementation_allowed=decision.allowed,
            error_count=len(decision.blocking),
            warning_count=len(decision.warnings),
            results=[
                ScopeResult(
                    scope=r.scope.value,
                    target_id=r.target_id,
                    is_valid=r.is_valid,
                    issues=[IssuePayload.from_issue(i) for i in r.issues],
                )
                for r in results
            ],
        )


# =============================================================================
# Derivation
# =============================================================================


class TestPathPayload(BaseModel):
    """One entry-to-terminal path."""
    __test__ = False  # not a pytest test class

    id: str = Field(description="path-1, path-2, ... in discovery order")
    classification: Literal["happy_path", "error_path", "edge_case"] = Field(description="Path class")
    node_ids: List[str] = Field(description="Node ids from entry to terminal")
    expected_outcome: str = Field(description="Outcome the terminal signals")
    branches: List[str] = Field(default_factory=list, description="Branch taken out of each step")


class BoundaryTestPayload(BaseModel):
    """One boundary-value input case."""
    field: str = Field(description="Input field name")
    kind: Literal[
        "valid", "missing", "below-min", "at-min", "at-max", "above-max", "bad-format"
    ] = Field(description="Which boundary the case probes")
    value: Any = Field(None, description="Input value; None for the missing case")
    expect_success: bool = Field(description="Whether the input must be accepted")
    expected_error: Optional[str] = Field(None, description="Configured error text for rejections")
    node_id: Optional[str] = Field(None, description="Input node declaring the field")


class DerivationReport(BaseModel):
    """Test paths and boundary cases of one flow."""
    flow_id: str = Field(description="Flow the cases were derived from")
    paths: List[TestPathPayload] = Field(default_factory=list, description="Derived test paths")
    boundary_tests: List[BoundaryTestPayload] = Field(default_factory=list, description="Boundary cases")

    @classmethod
    def from_derivation(cls, derivation: Derivation) -> "DerivationReport":
        return cls(
            flow_id=derivation.flow_id,
            paths=[TestPathPayload(**p.to_dict()) for p in derivation.paths],
            boundary_tests=[BoundaryTestPayload(**t.to_dict()) for t in derivation.boundary_tests],
        )
