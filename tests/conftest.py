"""
Test fixtures and builders for flowdesign tests.

Builders keep fixtures terse: a flow is a list of ``node(...)`` records,
and the ``signup_flow`` fixture is a complete, valid traditional flow used
as the baseline that individual tests break.
"""

from typing import Any, Dict, Optional

import pytest

from flowdesign.config.runtime_config import reset_config
from flowdesign.spec import Domain, EventDeclaration, FlowGraph, FlowKind, Node, System


def node(node_id: str, kind: str, spec: Optional[Dict[str, Any]] = None, **outgoing: str) -> Node:
    """Build a node; keyword arguments are branch -> target."""
    return Node(id=node_id, kind=kind, spec=spec or {}, outgoing=dict(outgoing))


def branches(node_id: str, kind: str, spec: Optional[Dict[str, Any]], outgoing: Dict[str, str]) -> Node:
    """Build a node whose branch names are not Python identifiers (e.g. branch-0)."""
    return Node(id=node_id, kind=kind, spec=spec or {}, outgoing=outgoing)


def trigger(node_id: str = "start", target: Optional[str] = None) -> Node:
    outgoing = {"default": target} if target else {}
    return Node(id=node_id, kind="trigger", spec={"trigger_type": "manual"}, outgoing=outgoing)


def terminal(node_id: str = "end", outcome: Optional[str] = "success", **spec: Any) -> Node:
    if outcome is not None:
        spec["outcome"] = outcome
    return Node(id=node_id, kind="terminal", spec=spec)


def flow(flow_id: str, *nodes: Node, kind: FlowKind = FlowKind.TRADITIONAL) -> FlowGraph:
    return FlowGraph(id=flow_id, nodes=nodes, kind=kind)


def http_flow(flow_id: str, method: str = "POST", path: str = "/users") -> FlowGraph:
    """Minimal valid flow entered through an http trigger."""
    return flow(
        flow_id,
        Node(
            id="start",
            kind="trigger",
            spec={"trigger_type": "http", "method": method, "path": path},
            outgoing={"default": "end"},
        ),
        terminal("end"),
    )


def domain(name: str, *flows: FlowGraph, publishes=(), consumes=()) -> Domain:
    return Domain(
        name=name,
        flows=flows,
        published_events=tuple(_event(e) for e in publishes),
        consumed_events=tuple(_event(e) for e in consumes),
    )


def _event(value) -> EventDeclaration:
    if isinstance(value, EventDeclaration):
        return value
    return EventDeclaration(event=value)


def system(*domains: Domain) -> System:
    return System(domains=domains)


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Isolate every test from FLOWDESIGN_* variables and cached settings."""
    for name in ("FLOWDESIGN_CONFIG", "FLOWDESIGN_MAX_PATHS", "FLOWDESIGN_NUMBER_STEP", "FLOWDESIGN_STRING_FILL"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def signup_flow() -> FlowGraph:
    """Valid signup flow: http trigger, input, decision, store, terminals."""
    return flow(
        "signup",
        Node(
            id="start",
            kind="trigger",
            spec={"trigger_type": "http", "method": "POST", "path": "/signup"},
            outgoing={"default": "form"},
        ),
        Node(
            id="form",
            kind="input",
            spec={
                "fields": [
                    {
                        "name": "email",
                        "type": "string",
                        "required": True,
                        "format": "email",
                        "error_message": "Email is required",
                    },
                ],
            },
            outgoing={"valid": "exists", "invalid": "bad_request"},
        ),
        Node(
            id="exists",
            kind="decision",
            spec={"condition": "user exists"},
            outgoing={"true": "conflict", "false": "save"},
        ),
        Node(
            id="save",
            kind="data_store",
            spec={"operation": "create", "model": "User"},
            outgoing={"success": "created", "error": "failed"},
        ),
        terminal("created", outcome="success", status_code=201),
        terminal("conflict", outcome="rejected", status_code=409, error_code="USER_EXISTS"),
        terminal("bad_request", outcome="error", status_code=400, error_code="INVALID_EMAIL"),
        terminal("failed", outcome="error", status_code=500, error_code="STORE_FAILED"),
    )
