"""
report.py - Render validation results for the editing layer.

Two renderings of the same list of ValidationResults:
- build_report_json: machine-readable summary
- build_report_markdown: human-readable report, one section per scope

Both are deterministic; pass ``timestamp`` to stamp the report.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .errors import IssueCategory, ValidationIssue, ValidationResult
from .gate import implementation_gate

# Section titles for the checks summary, in display order
CATEGORY_TITLES = [
    (IssueCategory.GRAPH_COMPLETENESS, "Graph Completeness"),
    (IssueCategory.SPEC_COMPLETENESS, "Spec Completeness"),
    (IssueCategory.REFERENCE_INTEGRITY, "Reference Integrity"),
    (IssueCategory.EVENT_WIRING, "Event Wiring"),
    (IssueCategory.PAYLOAD_COMPATIBILITY, "Payload Compatibility"),
    (IssueCategory.DUPLICATE, "Duplicates"),
    (IssueCategory.CYCLE, "Cycles"),
    (IssueCategory.AGENT_COMPLETENESS, "Agent Completeness"),
    (IssueCategory.ORCHESTRATION, "Orchestration"),
]


def _issue_entry(issue: ValidationIssue) -> Dict[str, Any]:
    return {
        "category": issue.category.value,
        "location": issue.location,
        "message": issue.message,
        "suggestions": [issue.suggestion] if issue.suggestion else [],
    }


def build_report_json(results: Sequence[ValidationResult], timestamp: Optional[str] = None) -> Dict[str, Any]:
    """Build the JSON report for a validation run."""
    decision = implementation_gate(results)
    report: Dict[str, Any] = {
        "status": "PASSED" if decision.allowed else "FAILED",
        "implementation_allowed": decision.allowed,
        "scopes": [
            {
                "scope": r.scope.value,
                "target_id": r.target_id,
                "status": "FAIL" if r.has_errors() else "PASS",
            }
            for r in results
        ],
        "error_count": len(decision.blocking),
        "warning_count": len(decision.warnings),
        "errors": [_issue_entry(i) for i in decision.blocking],
        "warnings": [_issue_entry(i) for i in decision.warnings],
    }
    if timestamp:
        report["timestamp"] = timestamp
    return report


def build_report_markdown(results: Sequence[ValidationResult], timestamp: Optional[str] = None) -> str:
    """Build markdown validation report.

    Generates a human-readable markdown report with title, status,
    checks performed, and any errors/warnings per scope.
    """
    decision = implementation_gate(results)
    lines: List[str] = []

    lines.append("# Flow Design Validation Report")
    lines.append("")
    if timestamp:
        lines.append(f"**Timestamp**: {timestamp}")
    lines.append(f"**Status**: {'PASSED' if decision.allowed else 'FAILED'}")
    lines.append(f"**Implementation**: {'allowed' if decision.allowed else 'blocked'}")
    lines.append("")

    lines.append("## Checks Performed")
    lines.append("")
    for category, title in CATEGORY_TITLES:
        has_error = any(i.category == category for i in decision.blocking)
        marker = "[ ]" if has_error else "[x]"
        lines.append(f"- {marker} {title}")
    lines.append("")

    for result in results:
        if not result.issues:
            continue
        lines.append(f"## {result.scope.value.title()}: {result.target_id}")
        lines.append("")
        for issue in result.issues:
            lines.append(f"### {issue.severity.value.upper()} {issue.category.value}")
            lines.append(f"**Location**: {issue.location}")
            lines.append(f"**Problem**: {issue.message}")
            if issue.suggestion:
                lines.append(f"**Fix**: {issue.suggestion}")
            lines.append("")

    if not decision.blocking and not decision.warnings:
        lines.append("_No errors or warnings found._")
        lines.append("")

    return "\n".join(lines)
