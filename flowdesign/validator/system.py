"""
system.py - System-scope validation.

Cross-domain checks over the whole system snapshot:
- Domain names are unique; flow ids are unambiguous across domains
- Event wiring: every consumed event has a publisher somewhere
- Payload shapes of matched publishers/consumers are compatible
- Cross-flow references (sub-flows, orchestration members) resolve
- The orchestration reference graph is acyclic

The orchestration reference graph is built once from every orchestrator,
smart_router and handoff node in the system (flow id -> referenced flow
ids) and is independent of the per-flow cycle check.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

from flowdesign.spec.kinds import FlowKind
from flowdesign.spec.types import (
    AgentGroupSpec,
    Domain,
    EventDeclaration,
    HandoffSpec,
    Node,
    OrchestratorSpec,
    SmartRouterSpec,
    SubFlowSpec,
    System,
)

from .errors import IssueCategory, Scope, ValidationResult
from .graph import did_you_mean, find_cycles, format_cycle

logger = logging.getLogger(__name__)

SYSTEM_TARGET = "system"

# Payload type accepted for any declared type
ANY_TYPE = "any"

# (domain, declaration) pairs, keyed by event name
EventIndex = Dict[str, List[Tuple[Domain, EventDeclaration]]]


def validate_system(system: System) -> ValidationResult:
    """Validate cross-domain wiring and references of a full system."""
    result = ValidationResult(scope=Scope.SYSTEM, target_id=SYSTEM_TARGET)

    _check_duplicate_domains(system, result)
    _check_ambiguous_flows(system, result)
    publishers = _index_events(system, published=True)
    consumers = _index_events(system, published=False)
    _check_event_wiring(publishers, consumers, result)
    _check_payload_shapes(publishers, consumers, result)
    _check_flow_references(system, result)
    _check_orchestration_cycles(system, result)

    logger.debug(
        "Validated system: %d domains, %d errors, %d warnings",
        len(system.domains),
        len(result.errors),
        len(result.warnings),
    )
    return result


# =============================================================================
# Names
# =============================================================================


def _check_duplicate_domains(system: System, result: ValidationResult) -> None:
    seen: Set[str] = set()
    for domain in system.domains:
        if domain.name in seen:
            result.add_error(
                IssueCategory.DUPLICATE,
                f"Domain name '{domain.name}' is used more than once",
                domain_id=domain.name,
                suggestion="Rename one of the domains",
            )
        seen.add(domain.name)


def _check_ambiguous_flows(system: System, result: ValidationResult) -> None:
    owners: Dict[str, str] = {}
    for domain, flow in system.all_flows():
        first = owners.setdefault(flow.id, domain.name)
        if first != domain.name:
            result.add_warning(
                IssueCategory.DUPLICATE,
                f"Flow id '{flow.id}' is defined in domains '{first}' and '{domain.name}'; "
                f"cross-flow references to it are ambiguous",
                domain_id=domain.name,
                flow_id=flow.id,
            )


# =============================================================================
# Event wiring
# =============================================================================


def _index_events(system: System, published: bool) -> EventIndex:
    index: EventIndex = {}
    for domain in system.domains:
        declarations = domain.published_events if published else domain.consumed_events
        for declaration in declarations:
            index.setdefault(declaration.event, []).append((domain, declaration))
    return index


def _check_event_wiring(publishers: EventIndex, consumers: EventIndex, result: ValidationResult) -> None:
    known_events = sorted(publishers)
    reported: Set[Tuple[str, str]] = set()

    for event, declarations in consumers.items():
        if event in publishers:
            continue
        for domain, declaration in declarations:
            if (domain.name, event) in reported:
                continue
            reported.add((domain.name, event))
            result.add_error(
                IssueCategory.EVENT_WIRING,
                f"Domain '{domain.name}' consumes event '{event}', which no domain publishes",
                domain_id=domain.name,
                flow_id=declaration.flow_id,
                suggestion=did_you_mean(event, known_events, "Publish the event from some domain or drop the consumer"),
            )

    reported.clear()
    for event, declarations in publishers.items():
        if event in consumers:
            continue
        for domain, declaration in declarations:
            if (domain.name, event) in reported:
                continue
            reported.add((domain.name, event))
            result.add_warning(
                IssueCategory.EVENT_WIRING,
                f"Domain '{domain.name}' publishes event '{event}', which no domain consumes",
                domain_id=domain.name,
                flow_id=declaration.flow_id,
            )


def _describe(domain: Domain, declaration: EventDeclaration) -> str:
    if declaration.flow_id:
        return f"{domain.name}/{declaration.flow_id}"
    return domain.name


def _check_payload_shapes(publishers: EventIndex, consumers: EventIndex, result: ValidationResult) -> None:
    for event, consumed in consumers.items():
        for consumer_domain, consumer in consumed:
            if consumer.payload is None:
                continue
            for publisher_domain, publisher in publishers.get(event, ()):
                if publisher.payload is None:
                    continue
                _compare_payloads(event, publisher_domain, publisher, consumer_domain, consumer, result)


def _compare_payloads(
    event: str,
    publisher_domain: Domain,
    publisher: EventDeclaration,
    consumer_domain: Domain,
    consumer: EventDeclaration,
    result: ValidationResult,
) -> None:
    if publisher.payload is None or consumer.payload is None:
        return
    source = _describe(publisher_domain, publisher)
    sink = _describe(consumer_domain, consumer)

    for name, expected in consumer.payload.items():
        if name not in publisher.payload:
            result.add_error(
                IssueCategory.PAYLOAD_COMPATIBILITY,
                f"Event '{event}': consumer {sink} expects field '{name}', "
                f"which publisher {source} does not provide",
                domain_id=consumer_domain.name,
                flow_id=consumer.flow_id,
                suggestion=f"Add '{name}' to the payload published by {source}",
            )
            continue
        actual = publisher.payload[name]
        if ANY_TYPE not in (expected, actual) and expected != actual:
            result.add_warning(
                IssueCategory.PAYLOAD_COMPATIBILITY,
                f"Event '{event}': field '{name}' is '{actual}' at publisher {source} "
                f"but '{expected}' at consumer {sink}",
                domain_id=consumer_domain.name,
                flow_id=consumer.flow_id,
            )

    extra = [name for name in publisher.payload if name not in consumer.payload]
    if extra:
        result.add_info(
            IssueCategory.PAYLOAD_COMPATIBILITY,
            f"Event '{event}': publisher {source} sends fields unused by consumer {sink}: "
            + ", ".join(extra),
            domain_id=consumer_domain.name,
            flow_id=consumer.flow_id,
        )


# =============================================================================
# Cross-flow references
# =============================================================================


def _flow_references(node: Node) -> List[Tuple[str, str]]:
    """``(role, flow id)`` pairs a node points at."""
    spec = node.spec
    if isinstance(spec, SubFlowSpec):
        return [("sub-flow", spec.flow_ref)] if spec.flow_ref else []
    if isinstance(spec, OrchestratorSpec):
        return [("agent", agent) for agent in spec.agents]
    if isinstance(spec, SmartRouterSpec):
        return [(f"route '{route}'", target) for route, target in sorted(spec.routes.items())]
    if isinstance(spec, HandoffSpec):
        return [("handoff target", spec.target)] if spec.target else []
    if isinstance(spec, AgentGroupSpec):
        return [("group member", member) for member in spec.members]
    return []


def _check_flow_references(system: System, result: ValidationResult) -> None:
    index = system.flow_index()
    flow_ids = list(index)

    for domain, flow in system.all_flows():
        for node in flow.nodes:
            for role, target in _flow_references(node):
                referenced = index.get(target)
                if referenced is None:
                    result.add_error(
                        IssueCategory.REFERENCE_INTEGRITY,
                        f"{node.kind.value} '{node.id}' {role} references unknown flow '{target}'",
                        domain_id=domain.name,
                        flow_id=flow.id,
                        node_id=node.id,
                        suggestion=did_you_mean(target, flow_ids, "Reference an existing flow id"),
                    )
                elif isinstance(node.spec, OrchestratorSpec) and referenced.kind != FlowKind.AGENT:
                    result.add_warning(
                        IssueCategory.ORCHESTRATION,
                        f"Orchestrator '{node.id}' agent '{target}' is a {referenced.kind.value} flow, "
                        f"not an agent flow",
                        domain_id=domain.name,
                        flow_id=flow.id,
                        node_id=node.id,
                    )


def orchestration_graph(system: System) -> Dict[str, List[str]]:
    """Flow id -> flow ids it hands control to via orchestration nodes.

    Only orchestrator agents, smart_router targets and handoff targets form
    edges; unresolved targets are left out.
    """
    index = system.flow_index()
    adjacency: Dict[str, List[str]] = {flow_id: [] for flow_id in index}

    for _, flow in system.all_flows():
        targets = adjacency[flow.id]
        for node in flow.nodes:
            if not isinstance(node.spec, (OrchestratorSpec, SmartRouterSpec, HandoffSpec)):
                continue
            for _, target in _flow_references(node):
                if target in index and target not in targets:
                    targets.append(target)

    return adjacency


def _check_orchestration_cycles(system: System, result: ValidationResult) -> None:
    for cycle in find_cycles(orchestration_graph(system)):
        result.add_error(
            IssueCategory.CYCLE,
            f"Orchestration cycle: {format_cycle(cycle)}",
            flow_id=cycle[0],
            suggestion="Break the cycle so control cannot pass back to a calling flow",
        )

