"""
types.py - Dataclasses for flow, domain and system snapshots.

These types are the read-only snapshot the editing layer hands to the
validators and the deriver. Node specs are a closed set of tagged variants
keyed by NodeKind (see SPEC_TYPES); every spec keeps unrecognised custom
fields in ``extra`` so nothing the editor stores is lost.

All spec fields default to "unset" so an incomplete node is still
representable; the validator reports what is missing instead of the model
refusing it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type

from .kinds import (
    DEFAULT_PARALLEL_BRANCHES,
    FlowKind,
    NodeKind,
    order_branches,
)

logger = logging.getLogger(__name__)

TRIGGER_TYPES = ("http", "event", "schedule", "manual")
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

STRING_FIELD_TYPES = ("string", "text", "email", "url", "password")
NUMERIC_FIELD_TYPES = ("integer", "number")
OTHER_FIELD_TYPES = ("boolean", "date", "datetime", "array", "object", "file")
FIELD_TYPES = STRING_FIELD_TYPES + NUMERIC_FIELD_TYPES + OTHER_FIELD_TYPES

FIELD_FORMATS = ("email", "url", "uuid", "date", "datetime", "phone")

DATA_STORE_OPERATIONS = ("create", "read", "update", "delete", "list", "upsert", "query")

SUCCESS_OUTCOMES = ("success", "ok", "completed")
FAILURE_OUTCOMES = ("error", "failure", "failed", "rejected")


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` if it is a real number (not a bool), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


# =============================================================================
# Input fields
# =============================================================================


@dataclass(frozen=True)
class InputField:
    """One declared field of an input node, with its validation rules.

    For string-like types ``min_length``/``max_length`` bound the length;
    for ``integer``/``number`` ``minimum``/``maximum`` bound the value.
    ``messages`` maps a constraint (``required``, ``min``, ``max``,
    ``format``, ``type``) to the error text shown to the user; the generic
    ``error_message`` is the fallback.
    """

    name: str
    type: Optional[str] = None
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    format: Optional[str] = None
    pattern: Optional[str] = None
    error_message: Optional[str] = None
    messages: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_FIELD_TYPES

    @property
    def is_string(self) -> bool:
        return self.type in STRING_FIELD_TYPES

    def lower_bound(self) -> Optional[float]:
        """Minimum that applies to this field's type, if declared."""
        if self.is_numeric:
            return as_number(self.minimum)
        if self.is_string:
            return as_number(self.min_length)
        return None

    def upper_bound(self) -> Optional[float]:
        """Maximum that applies to this field's type, if declared."""
        if self.is_numeric:
            return as_number(self.maximum)
        if self.is_string:
            return as_number(self.max_length)
        return None

    def message_for(self, constraint: str) -> Optional[str]:
        """Configured error text for a constraint, falling back to error_message."""
        message = self.messages.get(constraint)
        if message:
            return message
        return self.error_message or None


# =============================================================================
# Node specs (one variant per NodeKind)
# =============================================================================


@dataclass(frozen=True)
class NodeSpec:
    """Base of every node spec; ``extra`` holds unrecognised custom fields."""

    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriggerSpec(NodeSpec):
    trigger_type: Optional[str] = None
    method: Optional[str] = None
    path: Optional[str] = None
    event_name: Optional[str] = None
    schedule: Optional[str] = None


@dataclass(frozen=True)
class InputSpec(NodeSpec):
    fields: Tuple[InputField, ...] = ()
    schema: Optional[str] = None


@dataclass(frozen=True)
class ProcessSpec(NodeSpec):
    action: Optional[str] = None


@dataclass(frozen=True)
class DecisionSpec(NodeSpec):
    condition: Optional[str] = None


@dataclass(frozen=True)
class TerminalSpec(NodeSpec):
    outcome: Optional[str] = None
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class DataStoreSpec(NodeSpec):
    operation: Optional[str] = None
    model: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class ServiceCallSpec(NodeSpec):
    service: Optional[str] = None
    method: Optional[str] = None
    endpoint: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class EventSpec(NodeSpec):
    event_name: Optional[str] = None
    payload: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LoopSpec(NodeSpec):
    collection: Optional[str] = None
    max_iterations: Optional[int] = None


@dataclass(frozen=True)
class ParallelSpec(NodeSpec):
    branches: int = DEFAULT_PARALLEL_BRANCHES


@dataclass(frozen=True)
class SubFlowSpec(NodeSpec):
    flow_ref: Optional[str] = None


@dataclass(frozen=True)
class LlmCallSpec(NodeSpec):
    model: Optional[str] = None
    prompt: Optional[str] = None


@dataclass(frozen=True)
class AgentLoopSpec(NodeSpec):
    """Agent loop: calls ``tools`` (node ids) until a terminal tool fires."""

    tools: Tuple[str, ...] = ()
    max_iterations: Optional[int] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class ToolSpec(NodeSpec):
    """A tool callable by an agent loop; ``terminal`` tools end the loop."""

    name: Optional[str] = None
    terminal: bool = False


@dataclass(frozen=True)
class MemorySpec(NodeSpec):
    store: Optional[str] = None


@dataclass(frozen=True)
class GuardrailSpec(NodeSpec):
    rules: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OrchestratorSpec(NodeSpec):
    agents: Tuple[str, ...] = ()
    strategy: Optional[str] = None


@dataclass(frozen=True)
class SmartRouterSpec(NodeSpec):
    routes: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HandoffSpec(NodeSpec):
    target: Optional[str] = None


@dataclass(frozen=True)
class AgentGroupSpec(NodeSpec):
    members: Tuple[str, ...] = ()


SPEC_TYPES: Mapping[NodeKind, Type[NodeSpec]] = {
    NodeKind.TRIGGER: TriggerSpec,
    NodeKind.INPUT: InputSpec,
    NodeKind.PROCESS: ProcessSpec,
    NodeKind.DECISION: DecisionSpec,
    NodeKind.TERMINAL: TerminalSpec,
    NodeKind.DATA_STORE: DataStoreSpec,
    NodeKind.SERVICE_CALL: ServiceCallSpec,
    NodeKind.EVENT: EventSpec,
    NodeKind.LOOP: LoopSpec,
    NodeKind.PARALLEL: ParallelSpec,
    NodeKind.SUB_FLOW: SubFlowSpec,
    NodeKind.LLM_CALL: LlmCallSpec,
    NodeKind.AGENT_LOOP: AgentLoopSpec,
    NodeKind.TOOL: ToolSpec,
    NodeKind.MEMORY: MemorySpec,
    NodeKind.GUARDRAIL: GuardrailSpec,
    NodeKind.ORCHESTRATOR: OrchestratorSpec,
    NodeKind.SMART_ROUTER: SmartRouterSpec,
    NodeKind.HANDOFF: HandoffSpec,
    NodeKind.AGENT_GROUP: AgentGroupSpec,
}


# =============================================================================
# Graph records
# =============================================================================


@dataclass(frozen=True)
class Node:
    """A node of a flow graph.

    ``spec`` may be given as a mapping, in which case it is parsed into the
    variant for ``kind``. ``outgoing`` maps branch name to target node id.
    """

    id: str
    kind: NodeKind
    spec: NodeSpec = None  # type: ignore[assignment]
    outgoing: Mapping[str, str] = field(default_factory=dict)
    label: str = ""

    def __post_init__(self) -> None:
        kind = NodeKind(self.kind)
        object.__setattr__(self, "kind", kind)

        spec_cls = SPEC_TYPES[kind]
        spec = self.spec
        if spec is None:
            spec = spec_cls()
        elif isinstance(spec, Mapping):
            spec = node_spec_from_dict(kind, spec)
        elif not isinstance(spec, spec_cls):
            raise TypeError(
                f"Node '{self.id}' of kind '{kind.value}' needs a {spec_cls.__name__}, "
                f"got {type(spec).__name__}"
            )
        object.__setattr__(self, "spec", spec)
        object.__setattr__(self, "outgoing", dict(self.outgoing or {}))

    @property
    def parallel_branches(self) -> int:
        if isinstance(self.spec, ParallelSpec) and isinstance(self.spec.branches, int):
            return self.spec.branches
        return DEFAULT_PARALLEL_BRANCHES

    def edges(self) -> List[Tuple[str, str]]:
        """``(branch, target)`` pairs in traversal order.

        Agent loops also get one implicit ``tool`` edge per configured tool.
        """
        pairs = order_branches(self.kind, self.outgoing, self.parallel_branches)
        if isinstance(self.spec, AgentLoopSpec):
            pairs.extend(("tool", tool_id) for tool_id in self.spec.tools)
        return pairs

    def successors(self) -> List[str]:
        return [target for _, target in self.edges()]


@dataclass(frozen=True)
class FlowGraph:
    """One editable flow: nodes plus their labelled outgoing edges."""

    id: str
    nodes: Tuple[Node, ...] = ()
    kind: FlowKind = FlowKind.TRADITIONAL
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", FlowKind(self.kind))
        object.__setattr__(self, "nodes", tuple(self.nodes))

    def node(self, node_id: str) -> Optional[Node]:
        """First node with ``node_id``, or None."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def nodes_of_kind(self, *kinds: NodeKind) -> List[Node]:
        return [node for node in self.nodes if node.kind in kinds]

    def triggers(self) -> List[Node]:
        return self.nodes_of_kind(NodeKind.TRIGGER)

    def adjacency(self) -> Dict[str, List[str]]:
        """Node id to successor ids; first occurrence wins for duplicate ids."""
        adjacency: Dict[str, List[str]] = {}
        for node in self.nodes:
            if node.id not in adjacency:
                adjacency[node.id] = node.successors()
        return adjacency

    def roots(self) -> List[str]:
        """Entry points: trigger ids, or every node nothing points at."""
        triggers = [node.id for node in self.triggers()]
        if triggers:
            return triggers
        adjacency = self.adjacency()
        targets = {target for successors in adjacency.values() for target in successors}
        roots = [node_id for node_id in adjacency if node_id not in targets]
        if not roots and adjacency:
            roots = [next(iter(adjacency))]
        return roots

    def http_routes(self) -> List[Tuple[str, str, str]]:
        """``(node_id, METHOD, path)`` for every http trigger with both set."""
        routes = []
        for node in self.triggers():
            spec = node.spec
            if not isinstance(spec, TriggerSpec) or spec.trigger_type != "http":
                continue
            if not spec.method or not spec.path:
                continue
            routes.append((node.id, spec.method.strip().upper(), normalize_path(spec.path)))
        return routes


def normalize_path(path: str) -> str:
    """Normalise an http path for comparison (trailing slash dropped)."""
    stripped = path.strip()
    if len(stripped) > 1:
        stripped = stripped.rstrip("/") or "/"
    return stripped


@dataclass(frozen=True)
class EventDeclaration:
    """A published or consumed event of a domain.

    ``payload`` is the declared shape (field name to type name); None means
    the side did not declare one and no shape matching is done.
    """

    event: str
    flow_id: Optional[str] = None
    payload: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class Domain:
    """A named grouping of flows plus its event declarations."""

    name: str
    flows: Tuple[FlowGraph, ...] = ()
    published_events: Tuple[EventDeclaration, ...] = ()
    consumed_events: Tuple[EventDeclaration, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "flows", tuple(self.flows))
        object.__setattr__(self, "published_events", tuple(self.published_events))
        object.__setattr__(self, "consumed_events", tuple(self.consumed_events))

    def flow_ids(self) -> List[str]:
        return [flow.id for flow in self.flows]


@dataclass(frozen=True)
class System:
    """Every domain of the designed system."""

    domains: Tuple[Domain, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "domains", tuple(self.domains))

    def all_flows(self) -> Iterator[Tuple[Domain, FlowGraph]]:
        for domain in self.domains:
            for flow in domain.flows:
                yield domain, flow

    def flow_index(self) -> Dict[str, FlowGraph]:
        """Flow id to flow; the first declaration wins."""
        index: Dict[str, FlowGraph] = {}
        for _, flow in self.all_flows():
            index.setdefault(flow.id, flow)
        return index


# =============================================================================
# Parsing helpers
# =============================================================================


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    """``maxIterations`` -> ``max_iterations``; snake_case keys pass through."""
    return _CAMEL_RE.sub("_", key).lower()


def _coerce(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(value)
    return value


def _split_known(cls: type, data: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in data.items():
        name = key if key in known else snake_case(key)
        if name in known and name != "extra":
            kwargs[name] = _coerce(value)
        else:
            extra[key] = value
    return kwargs, extra


def as_flag(value: Any, default: bool = False) -> bool:
    """Strict boolean: real booleans and "true"/"false" strings only.

    Anything else (including 0/1 and other strings) yields ``default``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    if value is not None:
        logger.debug("Ignoring non-boolean flag value %r", value)
    return default


def input_field_from_dict(data: Mapping[str, Any]) -> InputField:
    """Parse an InputField; unknown keys are dropped."""
    kwargs, _ = _split_known(InputField, data)
    kwargs.setdefault("name", "")
    messages = kwargs.get("messages")
    if not isinstance(messages, Mapping):
        if messages:
            logger.debug("Dropping non-mapping messages of field %r", kwargs["name"])
        messages = {}
    kwargs["messages"] = dict(messages)
    kwargs["required"] = as_flag(kwargs.get("required"))
    return InputField(**kwargs)


def node_spec_from_dict(kind: NodeKind, data: Optional[Mapping[str, Any]]) -> NodeSpec:
    """Parse the spec variant for ``kind`` from a dictionary.

    Keys may be snake_case or camelCase. Anything the variant does not know
    lands in ``extra``, as does a ``routes`` value that is not a mapping.
    """
    spec_cls = SPEC_TYPES[NodeKind(kind)]
    kwargs, extra = _split_known(spec_cls, data or {})

    if spec_cls is InputSpec:
        kwargs["fields"] = tuple(
            input_field_from_dict(item)
            for item in kwargs.get("fields", ())
            if isinstance(item, Mapping)
        )
    if "routes" in kwargs:
        routes = kwargs["routes"]
        if isinstance(routes, Mapping):
            kwargs["routes"] = dict(routes)
        elif routes:
            extra["routes"] = list(routes) if isinstance(routes, tuple) else routes
            del kwargs["routes"]
        else:
            kwargs["routes"] = {}
    if "payload" in kwargs:
        payload = kwargs["payload"]
        if isinstance(payload, Mapping):
            kwargs["payload"] = {str(key): str(value) for key, value in payload.items()}
        elif isinstance(payload, tuple):
            # A bare field list declares names without types
            kwargs["payload"] = {str(key): "any" for key in payload}
        elif payload:
            extra["payload"] = payload
            del kwargs["payload"]
        else:
            kwargs["payload"] = {}
    if "terminal" in kwargs:
        kwargs["terminal"] = as_flag(kwargs["terminal"])

    return spec_cls(extra=extra, **kwargs)
