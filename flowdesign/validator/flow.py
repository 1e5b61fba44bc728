"""
flow.py - Flow-scope validation.

Validates one FlowGraph:
- Entry: exactly one trigger for traditional/agent graphs
- Edges: targets exist, branch names are valid for the node kind
- Reachability from the entry, dead ends
- Branch completeness per kind (decision true/false, store success, ...)
- Cycles (traditional graphs only)
- Agent loop and orchestration member completeness
- Kind-specific spec completeness
- Error-code and schema references, when a registry is supplied

Every check runs on every call; one failing check never hides another.

Usage:
    from flowdesign.validator.flow import validate_flow

    result = validate_flow(graph, registry)
    if not result.is_valid:
        for issue in result.errors:
            print(issue.format())
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from flowdesign.config.reference_registry import ReferenceRegistry
from flowdesign.spec.kinds import (
    IMPLICIT_EXIT_KINDS,
    FlowKind,
    NodeKind,
    branch_rule,
)
from flowdesign.spec.types import (
    DATA_STORE_OPERATIONS,
    FIELD_FORMATS,
    FIELD_TYPES,
    HTTP_METHODS,
    TRIGGER_TYPES,
    AgentGroupSpec,
    AgentLoopSpec,
    DataStoreSpec,
    DecisionSpec,
    EventSpec,
    FlowGraph,
    HandoffSpec,
    InputField,
    InputSpec,
    LlmCallSpec,
    LoopSpec,
    Node,
    OrchestratorSpec,
    ParallelSpec,
    ServiceCallSpec,
    SmartRouterSpec,
    SubFlowSpec,
    TerminalSpec,
    ToolSpec,
    TriggerSpec,
    as_number,
)

from .errors import IssueCategory, Scope, ValidationResult
from .graph import did_you_mean, find_cycle, format_cycle, reachable_from

logger = logging.getLogger(__name__)

GRAPH = IssueCategory.GRAPH_COMPLETENESS
SPEC = IssueCategory.SPEC_COMPLETENESS
REFERENCE = IssueCategory.REFERENCE_INTEGRITY

# Minimum member counts for orchestration nodes
MIN_ORCHESTRATOR_AGENTS = 1
MIN_ROUTER_ROUTES = 1
MIN_GROUP_MEMBERS = 2


def validate_flow(graph: FlowGraph, registry: Optional[ReferenceRegistry] = None) -> ValidationResult:
    """Validate one flow graph.

    Args:
        graph: The flow snapshot.
        registry: Error codes and schema names the flow may reference. When
            None, registry references are not checked.

    Returns:
        ValidationResult with scope "flow" and every issue found.
    """
    result = ValidationResult(scope=Scope.FLOW, target_id=graph.id)

    _check_duplicate_nodes(graph, result)
    roots = _check_entry(graph, result)
    _check_edges(graph, result)
    reachable = _check_reachability(graph, roots, result)
    _check_dead_ends(graph, reachable, result)
    _check_branch_completeness(graph, result)
    _check_cycles(graph, result)
    _check_agent_loops(graph, result)
    _check_orchestration_members(graph, result)
    _check_node_specs(graph, result)
    if registry is not None:
        _check_registry_references(graph, registry, result)

    logger.debug(
        "Validated flow %s: %d nodes, %d errors, %d warnings",
        graph.id,
        len(graph.nodes),
        len(result.errors),
        len(result.warnings),
    )
    return result


# =============================================================================
# Structure
# =============================================================================


def _check_duplicate_nodes(graph: FlowGraph, result: ValidationResult) -> None:
    seen: Set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            result.add_error(
                IssueCategory.DUPLICATE,
                f"Node id '{node.id}' is used more than once in flow '{graph.id}'",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Give every node a unique id",
            )
        seen.add(node.id)


def _check_entry(graph: FlowGraph, result: ValidationResult) -> List[str]:
    """Report missing/duplicate triggers; return the ids to walk from."""
    triggers = graph.triggers()

    if len(triggers) > 1:
        first = triggers[0]
        for extra in triggers[1:]:
            result.add_error(
                GRAPH,
                f"Flow '{graph.id}' has more than one trigger: '{extra.id}' duplicates '{first.id}'",
                flow_id=graph.id,
                node_id=extra.id,
                suggestion="Keep a single trigger node as the flow entry",
            )

    if triggers:
        return [node.id for node in triggers]

    if graph.kind == FlowKind.ORCHESTRATION:
        return graph.roots()

    result.add_error(
        GRAPH,
        f"Flow '{graph.id}' has no trigger node",
        flow_id=graph.id,
        suggestion="Add a trigger node as the entry of the flow",
    )
    return []


def _check_edges(graph: FlowGraph, result: ValidationResult) -> None:
    node_ids = graph.node_ids()
    known = set(node_ids)

    for node in graph.nodes:
        rule = branch_rule(node.kind, node.parallel_branches)
        for branch, target in sorted(node.outgoing.items()):
            if not rule.is_allowed(branch):
                if rule.allowed:
                    expected = ", ".join(f"'{name}'" for name in rule.allowed)
                    suggestion = f"Use one of {expected}"
                else:
                    suggestion = "Remove the outgoing edge; terminal nodes end the flow"
                result.add_error(
                    GRAPH,
                    f"Node '{node.id}' ({node.kind.value}) has unknown branch '{branch}'",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion=suggestion,
                )
            if target not in known:
                result.add_error(
                    REFERENCE,
                    f"Branch '{branch}' of node '{node.id}' points to missing node '{target}'",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion=did_you_mean(target, node_ids, "Connect the branch to an existing node"),
                )


def _check_reachability(graph: FlowGraph, roots: List[str], result: ValidationResult) -> Set[str]:
    if not roots:
        return set()

    reachable = reachable_from(graph.adjacency(), roots)
    reported: Set[str] = set()
    for node in graph.nodes:
        if node.kind == NodeKind.TRIGGER or node.id in reachable or node.id in reported:
            continue
        reported.add(node.id)
        result.add_error(
            GRAPH,
            f"Node '{node.id}' is unreachable from the entry of flow '{graph.id}'",
            flow_id=graph.id,
            node_id=node.id,
            suggestion="Connect the node to the flow or remove it",
        )
    return reachable


def _check_dead_ends(graph: FlowGraph, reachable: Set[str], result: ValidationResult) -> None:
    reported: Set[str] = set()
    for node in graph.nodes:
        if node.id not in reachable or node.id in reported:
            continue
        if node.kind == NodeKind.TERMINAL or node.kind in IMPLICIT_EXIT_KINDS:
            continue
        if node.successors():
            continue
        reported.add(node.id)
        result.add_error(
            GRAPH,
            f"Node '{node.id}' ({node.kind.value}) is a dead end: it has no outgoing edges "
            f"and is not a terminal",
            flow_id=graph.id,
            node_id=node.id,
            suggestion="Connect the node onward or end the branch with a terminal node",
        )


def _check_branch_completeness(graph: FlowGraph, result: ValidationResult) -> None:
    for node in graph.nodes:
        rule = branch_rule(node.kind, node.parallel_branches)
        for branch in rule.required:
            if branch not in node.outgoing:
                result.add_error(
                    GRAPH,
                    f"Node '{node.id}' ({node.kind.value}) is missing required branch '{branch}'",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion=f"Wire the '{branch}' branch",
                )
        for branch in rule.advisory:
            if branch not in node.outgoing:
                result.add_warning(
                    GRAPH,
                    f"Node '{node.id}' ({node.kind.value}) has no '{branch}' branch",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion=f"Wire the '{branch}' branch so that outcome is handled explicitly",
                )


def _check_cycles(graph: FlowGraph, result: ValidationResult) -> None:
    # Agent loops iterate by design; orchestration cycles are checked system-wide
    if graph.kind != FlowKind.TRADITIONAL:
        return

    cycle = find_cycle(graph.adjacency())
    if cycle:
        result.add_error(
            IssueCategory.CYCLE,
            f"Flow '{graph.id}' contains a cycle: {format_cycle(cycle)}",
            flow_id=graph.id,
            suggestion="Traditional flows must be acyclic; use a loop node for iteration",
        )


# =============================================================================
# Agent and orchestration nodes
# =============================================================================


def _check_agent_loops(graph: FlowGraph, result: ValidationResult) -> None:
    tool_ids = [node.id for node in graph.nodes_of_kind(NodeKind.TOOL)]

    for node in graph.nodes_of_kind(NodeKind.AGENT_LOOP):
        spec = node.spec
        if not isinstance(spec, AgentLoopSpec):
            continue

        tools: List[Node] = []
        for tool_id in spec.tools:
            target = graph.node(tool_id)
            if target is None:
                result.add_error(
                    REFERENCE,
                    f"Agent loop '{node.id}' references missing tool '{tool_id}'",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion=did_you_mean(tool_id, tool_ids, "Add the tool node or remove the reference"),
                )
            elif target.kind != NodeKind.TOOL:
                result.add_error(
                    REFERENCE,
                    f"Agent loop '{node.id}' references '{tool_id}', which is a "
                    f"{target.kind.value} node, not a tool",
                    flow_id=graph.id,
                    node_id=node.id,
                )
            else:
                tools.append(target)

        if not tools:
            result.add_error(
                IssueCategory.AGENT_COMPLETENESS,
                f"Agent loop '{node.id}' has no tools",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Attach at least one tool, including one flagged terminal",
            )
        elif not any(isinstance(t.spec, ToolSpec) and t.spec.terminal for t in tools):
            result.add_error(
                IssueCategory.AGENT_COMPLETENESS,
                f"Agent loop '{node.id}' has no terminal tool, so the loop could never end",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Flag one tool as terminal (e.g. a final-answer tool)",
            )

        if spec.max_iterations is None:
            result.add_warning(
                IssueCategory.AGENT_COMPLETENESS,
                f"Agent loop '{node.id}' has no iteration bound",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Set max_iterations to cap runaway loops",
            )
        else:
            bound = as_number(spec.max_iterations)
            if bound is None or bound < 1:
                result.add_error(
                    SPEC,
                    f"Agent loop '{node.id}' has invalid max_iterations {spec.max_iterations!r}",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion="Use a positive integer",
                )


def _check_member_count(
    graph: FlowGraph,
    node: Node,
    members: List[str],
    minimum: int,
    noun: str,
    result: ValidationResult,
) -> None:
    if len(members) < minimum:
        result.add_error(
            IssueCategory.ORCHESTRATION,
            f"{node.kind.value} '{node.id}' needs at least {minimum} {noun}, has {len(members)}",
            flow_id=graph.id,
            node_id=node.id,
        )
    duplicates = sorted({m for m in members if members.count(m) > 1})
    for member in duplicates:
        result.add_warning(
            IssueCategory.ORCHESTRATION,
            f"{node.kind.value} '{node.id}' lists '{member}' more than once",
            flow_id=graph.id,
            node_id=node.id,
        )


def _check_orchestration_members(graph: FlowGraph, result: ValidationResult) -> None:
    for node in graph.nodes:
        spec = node.spec
        if isinstance(spec, OrchestratorSpec):
            _check_member_count(graph, node, list(spec.agents), MIN_ORCHESTRATOR_AGENTS, "agent(s)", result)
        elif isinstance(spec, SmartRouterSpec):
            if len(spec.routes) < MIN_ROUTER_ROUTES:
                result.add_error(
                    IssueCategory.ORCHESTRATION,
                    f"smart_router '{node.id}' needs at least {MIN_ROUTER_ROUTES} route(s), has 0",
                    flow_id=graph.id,
                    node_id=node.id,
                )
        elif isinstance(spec, AgentGroupSpec):
            _check_member_count(graph, node, list(spec.members), MIN_GROUP_MEMBERS, "members", result)
        elif isinstance(spec, HandoffSpec) and not spec.target:
            result.add_error(
                IssueCategory.ORCHESTRATION,
                f"handoff '{node.id}' has no target",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Set target to the id of the flow receiving control",
            )


# =============================================================================
# Spec completeness
# =============================================================================


def _missing(graph: FlowGraph, node: Node, what: str, result: ValidationResult, error: bool = True) -> None:
    message = f"{node.kind.value} '{node.id}' has no {what}"
    if error:
        result.add_error(SPEC, message, flow_id=graph.id, node_id=node.id)
    else:
        result.add_warning(SPEC, message, flow_id=graph.id, node_id=node.id)


def _check_trigger(graph: FlowGraph, node: Node, spec: TriggerSpec, result: ValidationResult) -> None:
    if not spec.trigger_type:
        result.add_error(
            SPEC,
            f"Trigger '{node.id}' has no trigger type",
            flow_id=graph.id,
            node_id=node.id,
            suggestion="Set trigger_type to one of " + ", ".join(TRIGGER_TYPES),
        )
        return
    if spec.trigger_type not in TRIGGER_TYPES:
        result.add_error(
            SPEC,
            f"Trigger '{node.id}' has unknown trigger type '{spec.trigger_type}'",
            flow_id=graph.id,
            node_id=node.id,
            suggestion="Use one of " + ", ".join(TRIGGER_TYPES),
        )
        return

    if spec.trigger_type == "http":
        if not spec.method:
            _missing(graph, node, "http method", result)
        elif spec.method.strip().upper() not in HTTP_METHODS:
            result.add_error(
                SPEC,
                f"Trigger '{node.id}' has unknown http method '{spec.method}'",
                flow_id=graph.id,
                node_id=node.id,
                suggestion="Use one of " + ", ".join(HTTP_METHODS),
            )
        if not spec.path:
            _missing(graph, node, "http path", result)
        elif not spec.path.startswith("/"):
            result.add_warning(
                SPEC,
                f"Trigger '{node.id}' path '{spec.path}' does not start with '/'",
                flow_id=graph.id,
                node_id=node.id,
            )
    elif spec.trigger_type == "event" and not spec.event_name:
        _missing(graph, node, "event name", result)
    elif spec.trigger_type == "schedule" and not spec.schedule:
        _missing(graph, node, "schedule", result)


def _check_input_field(graph: FlowGraph, node: Node, item: InputField, result: ValidationResult) -> None:
    label = f"Field '{item.name}' of input '{node.id}'"
    where = {"flow_id": graph.id, "node_id": node.id}

    if not item.type:
        result.add_error(SPEC, f"{label} has no type", suggestion="Use one of " + ", ".join(FIELD_TYPES), **where)
    elif item.type not in FIELD_TYPES:
        result.add_error(
            SPEC,
            f"{label} has unknown type '{item.type}'",
            suggestion="Use one of " + ", ".join(FIELD_TYPES),
            **where,
        )

    if item.required and not item.message_for("required"):
        result.add_warning(
            SPEC,
            f"{label} is required but has no error message",
            suggestion="Configure the message shown when the field is missing",
            **where,
        )

    for name in ("min_length", "max_length", "minimum", "maximum"):
        value = getattr(item, name)
        if value is not None and as_number(value) is None:
            result.add_error(SPEC, f"{label} has non-numeric {name} {value!r}", **where)

    if item.type in FIELD_TYPES:
        length_set = item.min_length is not None or item.max_length is not None
        range_set = item.minimum is not None or item.maximum is not None
        if length_set and not item.is_string:
            result.add_warning(SPEC, f"{label} declares a length bound its type '{item.type}' ignores", **where)
        if range_set and not item.is_numeric:
            result.add_warning(SPEC, f"{label} declares a value range its type '{item.type}' ignores", **where)

    low, high = item.lower_bound(), item.upper_bound()
    if low is not None and high is not None and low > high:
        result.add_error(SPEC, f"{label} has a minimum ({low}) above its maximum ({high})", **where)
    if item.is_string and low is not None and low < 0:
        result.add_error(SPEC, f"{label} has a negative min_length ({low})", **where)

    if item.format and item.format not in FIELD_FORMATS:
        result.add_warning(
            SPEC,
            f"{label} has unknown format '{item.format}'",
            suggestion="Use one of " + ", ".join(FIELD_FORMATS),
            **where,
        )
    if item.pattern:
        try:
            re.compile(item.pattern)
        except re.error as e:
            result.add_error(SPEC, f"{label} has an invalid pattern: {e}", **where)


def _check_input(graph: FlowGraph, node: Node, spec: InputSpec, result: ValidationResult) -> None:
    if not spec.fields:
        result.add_warning(SPEC, f"Input '{node.id}' declares no fields", flow_id=graph.id, node_id=node.id)
        return

    seen: Set[str] = set()
    for item in spec.fields:
        if not item.name:
            result.add_error(SPEC, f"Input '{node.id}' has a field without a name", flow_id=graph.id, node_id=node.id)
            continue
        if item.name in seen:
            result.add_error(
                IssueCategory.DUPLICATE,
                f"Input '{node.id}' declares field '{item.name}' more than once",
                flow_id=graph.id,
                node_id=node.id,
            )
        seen.add(item.name)
        _check_input_field(graph, node, item, result)


def _check_node_specs(graph: FlowGraph, result: ValidationResult) -> None:
    for node in graph.nodes:
        spec = node.spec
        if isinstance(spec, TriggerSpec):
            _check_trigger(graph, node, spec, result)
        elif isinstance(spec, InputSpec):
            _check_input(graph, node, spec, result)
        elif isinstance(spec, DecisionSpec):
            if not spec.condition:
                _missing(graph, node, "condition", result)
        elif isinstance(spec, DataStoreSpec):
            if not spec.operation:
                _missing(graph, node, "operation", result)
            elif spec.operation not in DATA_STORE_OPERATIONS:
                result.add_warning(
                    SPEC,
                    f"data_store '{node.id}' has unusual operation '{spec.operation}'",
                    flow_id=graph.id,
                    node_id=node.id,
                    suggestion="Expected one of " + ", ".join(DATA_STORE_OPERATIONS),
                )
            if not spec.model:
                _missing(graph, node, "model", result)
        elif isinstance(spec, ServiceCallSpec):
            if not spec.endpoint and not spec.service:
                _missing(graph, node, "service or endpoint", result)
        elif isinstance(spec, EventSpec):
            if not spec.event_name:
                _missing(graph, node, "event name", result)
        elif isinstance(spec, SubFlowSpec):
            if not spec.flow_ref:
                _missing(graph, node, "flow reference", result)
        elif isinstance(spec, LlmCallSpec):
            if not spec.prompt:
                _missing(graph, node, "prompt", result)
            if not spec.model:
                _missing(graph, node, "model", result, error=False)
        elif isinstance(spec, LoopSpec):
            if not spec.collection:
                _missing(graph, node, "collection", result, error=False)
            if spec.max_iterations is not None:
                bound = as_number(spec.max_iterations)
                if bound is None or bound < 1:
                    result.add_error(
                        SPEC,
                        f"loop '{node.id}' has invalid max_iterations {spec.max_iterations!r}",
                        flow_id=graph.id,
                        node_id=node.id,
                    )
        elif isinstance(spec, ParallelSpec):
            if not isinstance(spec.branches, int) or spec.branches < 2:
                result.add_error(
                    SPEC,
                    f"parallel '{node.id}' must fan out to at least 2 branches, declares {spec.branches!r}",
                    flow_id=graph.id,
                    node_id=node.id,
                )
        elif isinstance(spec, TerminalSpec):
            if not spec.outcome and spec.status_code is None and not spec.error_code:
                result.add_info(
                    SPEC,
                    f"Terminal '{node.id}' declares no outcome; derived paths treat it as success",
                    flow_id=graph.id,
                    node_id=node.id,
                )


# =============================================================================
# Registry references
# =============================================================================


def _check_error_code(
    graph: FlowGraph,
    node: Node,
    code: Optional[str],
    registry: ReferenceRegistry,
    result: ValidationResult,
) -> None:
    if code and not registry.has_error_code(code):
        result.add_error(
            REFERENCE,
            f"{node.kind.value} '{node.id}' uses unregistered error code '{code}'",
            flow_id=graph.id,
            node_id=node.id,
            suggestion=did_you_mean(code, registry.error_codes, "Register the error code or pick an existing one"),
        )


def _check_schema(
    graph: FlowGraph,
    node: Node,
    name: Optional[str],
    registry: ReferenceRegistry,
    result: ValidationResult,
) -> None:
    if name and not registry.has_schema(name):
        result.add_error(
            REFERENCE,
            f"{node.kind.value} '{node.id}' references unknown schema '{name}'",
            flow_id=graph.id,
            node_id=node.id,
            suggestion=did_you_mean(name, registry.schemas, "Define the schema or pick an existing one"),
        )


def _check_registry_references(graph: FlowGraph, registry: ReferenceRegistry, result: ValidationResult) -> None:
    for node in graph.nodes:
        spec = node.spec
        if isinstance(spec, (TerminalSpec, ServiceCallSpec)):
            _check_error_code(graph, node, spec.error_code, registry, result)
        elif isinstance(spec, DataStoreSpec):
            _check_schema(graph, node, spec.model, registry, result)
            _check_error_code(graph, node, spec.error_code, registry, result)
        elif isinstance(spec, InputSpec):
            _check_schema(graph, node, spec.schema, registry, result)
