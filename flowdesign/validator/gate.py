"""
gate.py - Run every scope and decide whether implementation may proceed.

Usage:
    from flowdesign.validator.gate import implementation_gate, validate_all

    results = validate_all(system, registry)
    decision = implementation_gate(results)
    if not decision.allowed:
        for issue in decision.blocking:
            print(issue.format())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flowdesign.config.reference_registry import ReferenceRegistry
from flowdesign.spec.types import System

from .domain import validate_domain
from .errors import ValidationIssue, ValidationResult
from .flow import validate_flow
from .system import validate_system

logger = logging.getLogger(__name__)


def validate_all(system: System, registry: Optional[ReferenceRegistry] = None) -> List[ValidationResult]:
    """Validate every flow, then every domain, then the system.

    Flow-scope issues are tagged with the owning domain so they can be
    located once aggregated.
    """
    results: List[ValidationResult] = []

    for domain, flow in system.all_flows():
        result = validate_flow(flow, registry)
        result.issues = [_in_domain(issue, domain.name) for issue in result.issues]
        results.append(result)

    for domain in system.domains:
        results.append(validate_domain(domain))

    results.append(validate_system(system))

    logger.debug(
        "Validated %d scopes: %d errors",
        len(results),
        sum(len(r.errors) for r in results),
    )
    return results


def _in_domain(issue: ValidationIssue, domain_name: str) -> ValidationIssue:
    if issue.domain_id is not None:
        return issue
    return ValidationIssue(
        severity=issue.severity,
        category=issue.category,
        message=issue.message,
        flow_id=issue.flow_id,
        node_id=issue.node_id,
        domain_id=domain_name,
        suggestion=issue.suggestion,
    )


@dataclass(frozen=True)
class GateDecision:
    """Whether the "generate implementation" action may run.

    Attributes:
        allowed: False while any scope has an error-severity issue.
        blocking: Every error, in result order.
        warnings: Every warning, in result order (advisory only).
    """

    allowed: bool
    blocking: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "blocking": [i.to_dict() for i in self.blocking],
            "warnings": [i.to_dict() for i in self.warnings],
        }


def implementation_gate(results: Iterable[ValidationResult]) -> GateDecision:
    """Refuse implementation while any result contains an error."""
    blocking: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []
    for result in results:
        blocking.extend(result.errors)
        warnings.extend(result.warnings)

    if blocking:
        logger.info("Implementation blocked by %d error(s)", len(blocking))

    return GateDecision(
        allowed=not blocking,
        blocking=tuple(blocking),
        warnings=tuple(warnings),
    )
