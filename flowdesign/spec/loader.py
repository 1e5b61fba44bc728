"""
loader.py - Build snapshots from the plain dictionaries the editor hands over.

The editing layer stores flows as JSON-like documents. Two edge layouts are
accepted and merged: an ``outgoing`` mapping on each node, and a graph-level
``edges`` list of ``{source, target, branch}`` records (the canvas layout).
Keys may be snake_case or camelCase.

Parsing is tolerant: anything that can still be represented is kept so the
validator can report it. Only payloads that cannot become a snapshot at all
(a node without an id, an unknown node kind) raise SnapshotError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .kinds import DEFAULT_BRANCH, FlowKind, NodeKind
from .types import (
    Domain,
    EventDeclaration,
    FlowGraph,
    Node,
    System,
    node_spec_from_dict,
)

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a payload cannot be turned into a snapshot."""

    def __init__(self, location: str, problem: str):
        self.location = location
        self.problem = problem
        super().__init__(f"{location}: {problem}")


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins (snake_case first, then camelCase aliases)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# Flows
# =============================================================================


def node_from_dict(data: Mapping[str, Any], flow_id: str = "?") -> Node:
    """Parse one node."""
    node_id = _pick(data, "id")
    if not isinstance(node_id, str) or not node_id:
        raise SnapshotError(f"flow '{flow_id}'", "node without an id")

    kind_str = _pick(data, "kind", "type")
    try:
        kind = NodeKind(kind_str)
    except ValueError:
        raise SnapshotError(
            f"flow '{flow_id}', node '{node_id}'",
            f"unknown node kind '{kind_str}'",
        )

    outgoing = _pick(data, "outgoing", "branches", default={})
    if not isinstance(outgoing, Mapping):
        outgoing = {}

    return Node(
        id=node_id,
        kind=kind,
        spec=node_spec_from_dict(kind, _pick(data, "spec", "config", default={})),
        outgoing={str(branch): str(target) for branch, target in outgoing.items()},
        label=_pick(data, "label", "name", default=""),
    )


def _merge_edges(
    nodes: List[Node],
    edges: Iterable[Mapping[str, Any]],
    flow_id: str,
) -> List[Node]:
    extra: Dict[str, Dict[str, str]] = {}
    for edge in edges:
        source = _pick(edge, "source", "from")
        target = _pick(edge, "target", "to")
        if not source or not target:
            logger.debug("Skipping incomplete edge in flow %s: %r", flow_id, edge)
            continue
        branch = _pick(edge, "branch", "label", "source_handle", "sourceHandle", default=DEFAULT_BRANCH)
        extra.setdefault(str(source), {})[str(branch)] = str(target)

    if not extra:
        return nodes

    merged = []
    for node in nodes:
        added = extra.pop(node.id, None)
        if added:
            outgoing = dict(node.outgoing)
            for branch, target in added.items():
                outgoing.setdefault(branch, target)
            node = Node(id=node.id, kind=node.kind, spec=node.spec, outgoing=outgoing, label=node.label)
        merged.append(node)

    for source in extra:
        logger.debug("Flow %s has edges from unknown node '%s'", flow_id, source)
    return merged


def flow_from_dict(data: Mapping[str, Any]) -> FlowGraph:
    """Parse a flow graph."""
    flow_id = _pick(data, "id", "flow_id", "flowId")
    if not isinstance(flow_id, str) or not flow_id:
        raise SnapshotError("flow", "flow without an id")

    kind_str = _pick(data, "kind", "flow_kind", "flowKind", default=FlowKind.TRADITIONAL.value)
    try:
        kind = FlowKind(kind_str)
    except ValueError:
        raise SnapshotError(f"flow '{flow_id}'", f"unknown flow kind '{kind_str}'")

    nodes = [node_from_dict(item, flow_id) for item in _pick(data, "nodes", default=[])]
    nodes = _merge_edges(nodes, _pick(data, "edges", default=[]), flow_id)

    return FlowGraph(
        id=flow_id,
        nodes=tuple(nodes),
        kind=kind,
        name=_pick(data, "name", "title", default=""),
    )


# =============================================================================
# Domains and systems
# =============================================================================


def event_from_dict(data: Mapping[str, Any]) -> EventDeclaration:
    """Parse a published/consumed event declaration."""
    event = _pick(data, "event", "name", "event_name", "eventName")
    if not isinstance(event, str) or not event:
        raise SnapshotError("event", "event declaration without a name")

    payload: Optional[Mapping[str, str]] = None
    raw_payload = _pick(data, "payload", "payload_shape", "payloadShape")
    if isinstance(raw_payload, Mapping):
        payload = {str(key): str(value) for key, value in raw_payload.items()}
    elif isinstance(raw_payload, (list, tuple)):
        # A bare field list declares names without types
        payload = {str(key): "any" for key in raw_payload}

    return EventDeclaration(
        event=event,
        flow_id=_pick(data, "flow_id", "flowId", "flow"),
        payload=payload,
    )


def domain_from_dict(data: Mapping[str, Any]) -> Domain:
    """Parse a domain with its flows and event declarations."""
    name = _pick(data, "name", "id")
    if not isinstance(name, str) or not name:
        raise SnapshotError("domain", "domain without a name")

    return Domain(
        name=name,
        flows=tuple(flow_from_dict(item) for item in _pick(data, "flows", default=[])),
        published_events=tuple(
            event_from_dict(item)
            for item in _pick(data, "published_events", "publishedEvents", "publishes", default=[])
        ),
        consumed_events=tuple(
            event_from_dict(item)
            for item in _pick(data, "consumed_events", "consumedEvents", "consumes", default=[])
        ),
    )


def system_from_dict(data: Mapping[str, Any]) -> System:
    """Parse a full system snapshot."""
    domains = tuple(domain_from_dict(item) for item in _pick(data, "domains", default=[]))
    logger.debug("Parsed system snapshot with %d domains", len(domains))
    return System(domains=domains)
