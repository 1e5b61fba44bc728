"""
flowdesign/spec - Snapshot data model for flows, domains and systems.

Usage:
    from flowdesign.spec import FlowGraph, Node, NodeKind, flow_from_dict

    graph = FlowGraph(
        id="signup",
        nodes=(
            Node("start", NodeKind.TRIGGER, {"trigger_type": "manual"}, {"default": "done"}),
            Node("done", NodeKind.TERMINAL, {"outcome": "success"}),
        ),
    )
    same = flow_from_dict({"id": "signup", "nodes": [...]})
"""

from .kinds import (
    AGENT_KINDS,
    BRANCH_TABLE,
    DEFAULT_BRANCH,
    FAILURE_BRANCHES,
    IMPLICIT_EXIT_KINDS,
    ORCHESTRATION_KINDS,
    TRADITIONAL_KINDS,
    BranchRule,
    FlowKind,
    NodeKind,
    branch_rule,
    order_branches,
)
from .types import (
    AgentGroupSpec,
    AgentLoopSpec,
    DataStoreSpec,
    DecisionSpec,
    Domain,
    EventDeclaration,
    EventSpec,
    FlowGraph,
    GuardrailSpec,
    HandoffSpec,
    InputField,
    InputSpec,
    LlmCallSpec,
    LoopSpec,
    MemorySpec,
    Node,
    NodeSpec,
    OrchestratorSpec,
    ParallelSpec,
    ProcessSpec,
    ServiceCallSpec,
    SmartRouterSpec,
    SPEC_TYPES,
    SubFlowSpec,
    System,
    TerminalSpec,
    ToolSpec,
    TriggerSpec,
    input_field_from_dict,
    node_spec_from_dict,
)
from .loader import (
    SnapshotError,
    domain_from_dict,
    event_from_dict,
    flow_from_dict,
    node_from_dict,
    system_from_dict,
)

__all__ = [
    # Kinds and branch table
    "AGENT_KINDS",
    "BRANCH_TABLE",
    "DEFAULT_BRANCH",
    "FAILURE_BRANCHES",
    "IMPLICIT_EXIT_KINDS",
    "ORCHESTRATION_KINDS",
    "TRADITIONAL_KINDS",
    "BranchRule",
    "FlowKind",
    "NodeKind",
    "branch_rule",
    "order_branches",
    # Records
    "Domain",
    "EventDeclaration",
    "FlowGraph",
    "InputField",
    "Node",
    "System",
    # Node spec variants
    "NodeSpec",
    "SPEC_TYPES",
    "AgentGroupSpec",
    "AgentLoopSpec",
    "DataStoreSpec",
    "DecisionSpec",
    "EventSpec",
    "GuardrailSpec",
    "HandoffSpec",
    "InputSpec",
    "LlmCallSpec",
    "LoopSpec",
    "MemorySpec",
    "OrchestratorSpec",
    "ParallelSpec",
    "ProcessSpec",
    "ServiceCallSpec",
    "SmartRouterSpec",
    "SubFlowSpec",
    "TerminalSpec",
    "ToolSpec",
    "TriggerSpec",
    # Parsing
    "SnapshotError",
    "domain_from_dict",
    "event_from_dict",
    "flow_from_dict",
    "input_field_from_dict",
    "node_from_dict",
    "node_spec_from_dict",
    "system_from_dict",
]
