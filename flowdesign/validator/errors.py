# flowdesign/validator/errors.py
"""Validation issue collection and formatting."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Issue message template: [ERROR] category: location problem
ISSUE_TEMPLATE = "[{severity}] {category}: {location} {message}"
FIX_TEMPLATE = "\n  Fix: {suggestion}"


class Severity(str, Enum):
    """Fixed per rule; only ERROR blocks implementation."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    """Closed set of issue categories."""

    GRAPH_COMPLETENESS = "graph_completeness"
    SPEC_COMPLETENESS = "spec_completeness"
    REFERENCE_INTEGRITY = "reference_integrity"
    EVENT_WIRING = "event_wiring"
    PAYLOAD_COMPATIBILITY = "payload_compatibility"
    DUPLICATE = "duplicate"
    CYCLE = "cycle"
    AGENT_COMPLETENESS = "agent_completeness"
    ORCHESTRATION = "orchestration"


class Scope(str, Enum):
    """What a ValidationResult covers."""

    FLOW = "flow"
    DOMAIN = "domain"
    SYSTEM = "system"


@dataclass(frozen=True)
class ValidationIssue:
    """One defect found by a validator."""

    severity: Severity
    category: IssueCategory
    message: str
    flow_id: Optional[str] = None
    node_id: Optional[str] = None
    domain_id: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def location(self) -> str:
        """``domain/flow#node`` with whatever parts are known."""
        location = ""
        if self.domain_id:
            location = self.domain_id
        if self.flow_id:
            location = f"{location}/{self.flow_id}" if location else self.flow_id
        if self.node_id:
            location = f"{location}#{self.node_id}"
        return location or "-"

    def format(self) -> str:
        """Format issue message."""
        text = ISSUE_TEMPLATE.format(
            severity=self.severity.value.upper(),
            category=self.category.value,
            location=self.location,
            message=self.message,
        )
        if self.suggestion:
            text += FIX_TEMPLATE.format(suggestion=self.suggestion)
        return text

    def to_dict(self) -> Dict[str, Any]:
        """Convert issue to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
        }
        if self.flow_id is not None:
            result["flow_id"] = self.flow_id
        if self.node_id is not None:
            result["node_id"] = self.node_id
        if self.domain_id is not None:
            result["domain_id"] = self.domain_id
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


@dataclass
class ValidationResult:
    """Collects every issue a validator finds for one scope target.

    Issues keep discovery order, which is deterministic for a given
    snapshot.
    """

    scope: Scope
    target_id: str
    issues: List[ValidationIssue] = field(default_factory=list)

    def add(
        self,
        severity: Severity,
        category: IssueCategory,
        message: str,
        *,
        flow_id: Optional[str] = None,
        node_id: Optional[str] = None,
        domain_id: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> ValidationIssue:
        issue = ValidationIssue(
            severity=severity,
            category=category,
            message=message,
            flow_id=flow_id,
            node_id=node_id,
            domain_id=domain_id,
            suggestion=suggestion,
        )
        self.issues.append(issue)
        return issue

    def add_error(self, category: IssueCategory, message: str, **where: Any) -> ValidationIssue:
        """Add an error (blocks implementation)."""
        return self.add(Severity.ERROR, category, message, **where)

    def add_warning(self, category: IssueCategory, message: str, **where: Any) -> ValidationIssue:
        """Add a warning (advisory, does not block)."""
        return self.add(Severity.WARNING, category, message, **where)

    def add_info(self, category: IssueCategory, message: str, **where: Any) -> ValidationIssue:
        """Add an informational note."""
        return self.add(Severity.INFO, category, message, **where)

    def extend(self, other: "ValidationResult") -> None:
        """Extend with issues from another result."""
        self.issues.extend(other.issues)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def infos(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def is_valid(self) -> bool:
        """True when no error-severity issue is present."""
        return not self.has_errors()

    def has_errors(self) -> bool:
        return any(i.severity == Severity.ERROR for i in self.issues)

    def has_warnings(self) -> bool:
        return any(i.severity == Severity.WARNING for i in self.issues)

    def by_category(self, category: IssueCategory) -> List[ValidationIssue]:
        return [i for i in self.issues if i.category == category]

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "scope": self.scope.value,
            "target_id": self.target_id,
            "is_valid": self.is_valid,
            "issues": [i.to_dict() for i in self.issues],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "info_count": len(self.infos),
            "status": "FAIL" if self.has_errors() else "PASS",
        }
