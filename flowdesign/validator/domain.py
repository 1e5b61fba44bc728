"""
domain.py - Domain-scope validation.

Checks the consistency of one domain's flows and event declarations:
- Flow ids are unique within the domain
- No two http triggers share a (METHOD, path) route
- Event declarations name flows of this domain
- Event nodes publish declared events
- No flow declares the same published event twice
"""

from __future__ import annotations

import logging
from typing import Dict, Set, Tuple

from flowdesign.spec.types import Domain, EventSpec

from .errors import IssueCategory, Scope, ValidationResult
from .graph import did_you_mean

logger = logging.getLogger(__name__)


def validate_domain(domain: Domain) -> ValidationResult:
    """Validate one domain.

    Flow contents are not re-checked here; run validate_flow on each flow.
    """
    result = ValidationResult(scope=Scope.DOMAIN, target_id=domain.name)

    _check_duplicate_flows(domain, result)
    _check_duplicate_routes(domain, result)
    _check_event_owners(domain, result)
    _check_undeclared_event_nodes(domain, result)
    _check_duplicate_publications(domain, result)

    logger.debug(
        "Validated domain %s: %d flows, %d errors, %d warnings",
        domain.name,
        len(domain.flows),
        len(result.errors),
        len(result.warnings),
    )
    return result


def _check_duplicate_flows(domain: Domain, result: ValidationResult) -> None:
    seen: Set[str] = set()
    for flow in domain.flows:
        if flow.id in seen:
            result.add_error(
                IssueCategory.DUPLICATE,
                f"Flow id '{flow.id}' is defined more than once in domain '{domain.name}'",
                domain_id=domain.name,
                flow_id=flow.id,
                suggestion="Rename one of the flows",
            )
        seen.add(flow.id)


def _check_duplicate_routes(domain: Domain, result: ValidationResult) -> None:
    # (METHOD, path) -> (flow id, node id) of the first declaration
    routes: Dict[Tuple[str, str], Tuple[str, str]] = {}
    for flow in domain.flows:
        for node_id, method, path in flow.http_routes():
            key = (method, path)
            first = routes.get(key)
            if first is None:
                routes[key] = (flow.id, node_id)
                continue
            result.add_error(
                IssueCategory.DUPLICATE,
                f"Route {method} {path} of trigger '{node_id}' in flow '{flow.id}' "
                f"duplicates trigger '{first[1]}' in flow '{first[0]}'",
                domain_id=domain.name,
                flow_id=flow.id,
                node_id=node_id,
                suggestion="Give each http trigger a distinct method and path",
            )


def _check_event_owners(domain: Domain, result: ValidationResult) -> None:
    flow_ids = domain.flow_ids()
    known = set(flow_ids)
    declarations = [("published", d) for d in domain.published_events]
    declarations += [("consumed", d) for d in domain.consumed_events]

    for side, declaration in declarations:
        if declaration.flow_id is None or declaration.flow_id in known:
            continue
        result.add_error(
            IssueCategory.REFERENCE_INTEGRITY,
            f"Event '{declaration.event}' is {side} by unknown flow '{declaration.flow_id}' "
            f"in domain '{domain.name}'",
            domain_id=domain.name,
            suggestion=did_you_mean(declaration.flow_id, flow_ids, "Reference a flow of this domain"),
        )


def _check_undeclared_event_nodes(domain: Domain, result: ValidationResult) -> None:
    published = {d.event for d in domain.published_events}
    for flow in domain.flows:
        for node in flow.nodes:
            spec = node.spec
            if not isinstance(spec, EventSpec) or not spec.event_name:
                continue
            if spec.event_name in published:
                continue
            result.add_warning(
                IssueCategory.EVENT_WIRING,
                f"Event node '{node.id}' emits '{spec.event_name}', which domain "
                f"'{domain.name}' does not declare as published",
                domain_id=domain.name,
                flow_id=flow.id,
                node_id=node.id,
                suggestion="Add the event to the domain's published events",
            )


def _check_duplicate_publications(domain: Domain, result: ValidationResult) -> None:
    seen: Set[Tuple[str, str]] = set()
    for declaration in domain.published_events:
        key = (declaration.event, declaration.flow_id or "")
        if key in seen:
            owner = f" by flow '{declaration.flow_id}'" if declaration.flow_id else ""
            result.add_warning(
                IssueCategory.DUPLICATE,
                f"Event '{declaration.event}' is declared as published more than once{owner}",
                domain_id=domain.name,
                flow_id=declaration.flow_id,
            )
        seen.add(key)
