# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""StateGraph - builder and compiled form of a workflow graph.

Nodes reference each other only by name. A ``StateGraph`` is mutated by
the builder methods and then compiled into an immutable
``CompiledGraph`` that carries the precomputed indices the executor
needs (successors, predecessors, branch flags, reachable set) and can be
shared across concurrent runs.

Example:
    from stepgraph import StateGraph, BranchResult

    graph = StateGraph()
    graph.add_node("pre", lambda v: v.as_string().lower())
    graph.add_node("validate", lambda v: len(v.as_string()) > 3)
    graph.add_branch(
        "route",
        lambda v: "ok" if v.as_bool() else "bad",
        ends={"ok": "success", "bad": "error"},
    )
    graph.add_node("success", lambda v: {"success": True, "data": v})
    graph.add_node("error", lambda v: {"success": False})
    graph.add_edge("pre", "validate").add_edge("validate", "route")
    graph.add_edge("route", "success").add_edge("route", "error")
    graph.set_entry_point("pre").set_finish_point("success")

    app = graph.compile()
    outputs = await app.invoke({"raw": "HelloWorld"})
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Any, AsyncIterator, Mapping, Optional, Union

from stepgraph.config.settings import EngineSettings
from stepgraph.core.channels import (
    Channel,
    ChannelPolicy,
    LastValueChannel,
    is_output_channel,
    output_channel_name,
)
from stepgraph.core.errors import CompilationError, CompilationErrorKind
from stepgraph.core.retry import ExponentialBackoff, FixedDelay, NoRetry, RetryPolicy
from stepgraph.core.value import Value
from stepgraph.framework.diagnostics import ExecutionObserver
from stepgraph.framework.executor import ExecutionResult, StepSnapshot, WorkflowExecutor
from stepgraph.framework.nodes import BranchSpec, NodeBody, NodeSpec, passthrough

logger = logging.getLogger(__name__)


def _index_edges(
    node_names: list[str], edges: list[tuple[str, str]]
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Successor and predecessor lists in edge insertion order."""
    successors: dict[str, list[str]] = {name: [] for name in node_names}
    predecessors: dict[str, list[str]] = {name: [] for name in node_names}
    for source, target in edges:
        successors.setdefault(source, []).append(target)
        predecessors.setdefault(target, []).append(source)
    return successors, predecessors


def _find_reachable(entry_point: Optional[str], successors: Mapping[str, list[str]]) -> set[str]:
    """Find all nodes reachable from the entry point."""
    if not entry_point:
        return set()

    reachable: set[str] = set()
    to_visit = [entry_point]
    while to_visit:
        node_id = to_visit.pop()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        to_visit.extend(successors.get(node_id, []))
    return reachable


# =============================================================================
# Retry policy (de)serialization
# =============================================================================


def _retry_from_schema(node_id: str, retry_def: Any) -> Optional[RetryPolicy]:
    if retry_def is None:
        return None
    if not isinstance(retry_def, dict):
        raise ValueError(f"Node '{node_id}': retry must be a mapping, got {retry_def!r}")

    retry_type = retry_def.get("type", "fixed_delay")
    params = {k: v for k, v in retry_def.items() if k != "type"}
    try:
        if retry_type == "fixed_delay":
            return FixedDelay(**params)
        if retry_type == "exponential_backoff":
            return ExponentialBackoff(**params)
        if retry_type == "none":
            return NoRetry()
    except TypeError as e:
        raise ValueError(f"Node '{node_id}': invalid {retry_type} retry: {e}") from e
    raise ValueError(f"Node '{node_id}': unsupported retry type '{retry_type}'")


def _retry_to_schema(policy: RetryPolicy) -> dict[str, Any]:
    if isinstance(policy, FixedDelay):
        return {"type": "fixed_delay", "delay_ms": policy.delay_ms, "max_retries": policy.max_retries}
    if isinstance(policy, ExponentialBackoff):
        return {
            "type": "exponential_backoff",
            "initial_delay_ms": policy.initial_delay_ms,
            "max_delay_ms": policy.max_delay_ms,
            "max_retries": policy.max_retries,
            "multiplier": policy.multiplier,
        }
    return {"type": "none"}


# =============================================================================
# Compiled graph
# =============================================================================


class CompiledGraph:
    """Immutable, validated graph ready for execution.

    Created by ``StateGraph.compile()``; never mutated afterwards.
    """

    def __init__(
        self,
        nodes: Mapping[str, NodeSpec],
        edges: list[tuple[str, str]],
        entry_point: str,
        finish_point: str,
        channels: Mapping[str, Channel],
        state_schema: str = "State",
    ):
        """Initialize compiled graph.

        Args:
            nodes: Node registry (branch nodes carry a BranchSpec)
            edges: Deduplicated edges in insertion order
            entry_point: Starting node
            finish_point: Node whose output becomes final_result
            channels: Declared channel template
            state_schema: Name of the state type, informational
        """
        names = list(nodes)
        successors, predecessors = _index_edges(names, edges)

        self._nodes: Mapping[str, NodeSpec] = MappingProxyType(dict(nodes))
        self._node_names: tuple[str, ...] = tuple(names)
        self._edges: tuple[tuple[str, str], ...] = tuple(edges)
        self._successors = MappingProxyType({k: tuple(v) for k, v in successors.items()})
        self._predecessors = MappingProxyType({k: tuple(v) for k, v in predecessors.items()})
        self._branches = frozenset(
            name
            for name, spec in nodes.items()
            if isinstance(spec, BranchSpec) or len(successors[name]) > 1
        )
        self._entry_point = entry_point
        self._finish_point = finish_point
        self._reachable = frozenset(_find_reachable(entry_point, successors))
        self._channels = MappingProxyType({k: ch.copy() for k, ch in channels.items()})
        self._state_schema = state_schema

    # -------------------------------------------------------------------------
    # Read-only structure
    # -------------------------------------------------------------------------

    @property
    def node_names(self) -> tuple[str, ...]:
        return self._node_names

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        return self._edges

    @property
    def entry_point(self) -> str:
        return self._entry_point

    @property
    def finish_point(self) -> str:
        return self._finish_point

    @property
    def reachable(self) -> frozenset[str]:
        return self._reachable

    @property
    def state_schema(self) -> str:
        return self._state_schema

    def predecessors(self, name: str) -> tuple[str, ...]:
        return self._predecessors[name]

    def successors(self, name: str) -> tuple[str, ...]:
        return self._successors[name]

    def is_branch(self, name: str) -> bool:
        return name in self._branches

    def get_node(self, name: str) -> NodeSpec:
        try:
            return self._nodes[name]
        except KeyError:
            raise KeyError(f"Node '{name}' not found") from None

    def channel_template(self) -> dict[str, Channel]:
        """Fresh channels for a new run: declared ones, then one per node output."""
        template = {name: channel.copy() for name, channel in self._channels.items()}
        for name in self._node_names:
            template.setdefault(output_channel_name(name), LastValueChannel())
        return template

    def to_schema(self) -> dict[str, Any]:
        """Get graph structure as a plain dictionary.

        The result is accepted by ``StateGraph.from_schema`` when the
        registry maps each ``func`` to its callable.
        """
        nodes = []
        for name, spec in self._nodes.items():
            node_def: dict[str, Any] = {
                "id": name,
                "type": "branch" if isinstance(spec, BranchSpec) else "function",
            }
            if spec.body is passthrough:
                node_def["type"] = "passthrough"
            else:
                node_def["func"] = getattr(spec.body, "__qualname__", type(spec.body).__name__)
            if isinstance(spec, BranchSpec) and spec.ends:
                node_def["ends"] = dict(spec.ends)
            if spec.metadata.retry_policy is not None:
                node_def["retry"] = _retry_to_schema(spec.metadata.retry_policy)
            if spec.metadata.input_channel is not None:
                node_def["input_channel"] = spec.metadata.input_channel
            if spec.metadata.cache_key is not None:
                node_def["cache_key"] = spec.metadata.cache_key
            nodes.append(node_def)

        channels = []
        for name, channel in self._channels.items():
            channel_def: dict[str, Any] = {"name": name, "policy": channel.policy.value}
            if channel.policy is ChannelPolicy.LAST_VALUE and not channel.is_empty():
                channel_def["initial"] = channel.read().to_python()
            channels.append(channel_def)

        return {
            "state_schema": self._state_schema,
            "nodes": nodes,
            "edges": [{"source": s, "target": t} for s, t in self._edges],
            "entry_point": self._entry_point,
            "finish_point": self._finish_point,
            "channels": channels,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledGraph):
            return NotImplemented
        return self.to_schema() == other.to_schema()

    def __repr__(self) -> str:
        return (
            f"CompiledGraph(nodes={list(self._node_names)}, entry='{self._entry_point}', "
            f"finish='{self._finish_point}')"
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def executor(
        self,
        max_steps: Optional[int] = None,
        *,
        settings: Optional[EngineSettings] = None,
        observer: Optional[ExecutionObserver] = None,
    ) -> WorkflowExecutor:
        return WorkflowExecutor(self, max_steps=max_steps, settings=settings, observer=observer)

    async def invoke(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
        *,
        settings: Optional[EngineSettings] = None,
        observer: Optional[ExecutionObserver] = None,
    ) -> dict[str, Value]:
        """Execute the graph and return its output mapping.

        Args:
            input_map: Initial channel values (plain data or Values)
            max_steps: Super-step bound (default: settings.max_steps)
            settings: Engine settings (default: load_settings())
            observer: Optional lifecycle observer

        Returns:
            ``final_result`` (if the finish node produced a value) plus
            every other non-null channel by name

        Raises:
            WorkflowError: Any PlanError, NodeError or StateError of the run
        """
        executor = self.executor(max_steps, settings=settings, observer=observer)
        return await executor.invoke(input_map)

    async def run(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
        *,
        settings: Optional[EngineSettings] = None,
        observer: Optional[ExecutionObserver] = None,
    ) -> ExecutionResult:
        """Execute the graph and return outputs with run statistics."""
        executor = self.executor(max_steps, settings=settings, observer=observer)
        return await executor.run(input_map)

    async def stream(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
        *,
        settings: Optional[EngineSettings] = None,
        observer: Optional[ExecutionObserver] = None,
    ) -> AsyncIterator[StepSnapshot]:
        """Yield a StepSnapshot after every super-step."""
        executor = self.executor(max_steps, settings=settings, observer=observer)
        async for snapshot in executor.stream(input_map):
            yield snapshot


# =============================================================================
# Builder
# =============================================================================


class StateGraph:
    """Builder for workflow graphs.

    Every builder method returns the builder for chaining. Structural
    problems are reported by ``compile()``, not by the builder methods.

    Example:
        graph = StateGraph()
        graph.add_node("a", step_a).add_node("b", step_b)
        graph.add_edge("a", "b")
        graph.set_entry_point("a").set_finish_point("b")
        app = graph.compile()
    """

    def __init__(self, state_schema: str = "State"):
        """Initialize StateGraph.

        Args:
            state_schema: Name of the state type, informational
        """
        self._state_schema = state_schema
        self._nodes: dict[str, NodeSpec] = {}
        self._branches: dict[str, BranchSpec] = {}
        self._edges: list[tuple[str, str]] = []
        self._channels: dict[str, Channel] = {}
        self._entry_point: Optional[str] = None
        self._finish_point: Optional[str] = None

    @property
    def nodes(self) -> Mapping[str, NodeSpec]:
        return MappingProxyType(self._nodes)

    @property
    def branches(self) -> Mapping[str, BranchSpec]:
        return MappingProxyType(self._branches)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return list(self._edges)

    def _make_spec(
        self,
        name: str,
        spec: Union[NodeSpec, NodeBody],
        retry_policy: Optional[RetryPolicy],
        cache_key: Optional[str],
        input_channel: Optional[str],
        extra: Mapping[str, Any],
    ) -> NodeSpec:
        if not isinstance(spec, NodeSpec):
            spec = NodeSpec(body=spec)
        spec = spec.named(name)
        if retry_policy is not None:
            spec = spec.with_retry_policy(retry_policy)
        if cache_key is not None:
            spec = spec.with_cache_key(cache_key)
        if input_channel is not None:
            spec = spec.with_input_channel(input_channel)
        if extra:
            merged = {**spec.metadata.extra, **extra}
            spec = spec.with_metadata(replace(spec.metadata, extra=merged))
        return spec

    def _register(self, name: str, spec: NodeSpec) -> None:
        if name in self._nodes:
            raise ValueError(f"Node '{name}' already exists")
        self._nodes[name] = spec
        if isinstance(spec, BranchSpec):
            self._branches[name] = spec

    def add_node(
        self,
        name: str,
        spec: Union[NodeSpec, NodeBody],
        *,
        retry_policy: Optional[RetryPolicy] = None,
        cache_key: Optional[str] = None,
        input_channel: Optional[str] = None,
        **extra: Any,
    ) -> "StateGraph":
        """Add a node to the graph.

        Args:
            name: Unique node name
            spec: NodeSpec, or a plain callable to wrap in one
            retry_policy: Overrides the spec's retry policy
            cache_key: Overrides the spec's cache key
            input_channel: Channel to read the node's input from
            **extra: Additional metadata

        Returns:
            Self for chaining

        Raises:
            ValueError: If node already exists
        """
        self._register(
            name, self._make_spec(name, spec, retry_policy, cache_key, input_channel, extra)
        )
        logger.debug(f"Added node: {name}")
        return self

    def add_branch(
        self,
        name: str,
        spec: Union[BranchSpec, NodeBody],
        *,
        ends: Optional[Mapping[str, str]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        cache_key: Optional[str] = None,
        input_channel: Optional[str] = None,
        **extra: Any,
    ) -> "StateGraph":
        """Add a branch node, whose body returns a routing decision.

        Args:
            name: Unique node name
            spec: BranchSpec, or a plain callable to wrap in one
            ends: Overrides the spec's label-to-node mapping

        Returns:
            Self for chaining
        """
        if isinstance(spec, NodeSpec) and not isinstance(spec, BranchSpec):
            raise TypeError(f"Branch '{name}' needs a BranchSpec, got {type(spec).__name__}")
        if not isinstance(spec, BranchSpec):
            spec = BranchSpec(body=spec)
        if ends is not None:
            spec = spec.with_ends(ends)
        self._register(
            name, self._make_spec(name, spec, retry_policy, cache_key, input_channel, extra)
        )
        logger.debug(f"Added branch: {name}")
        return self

    def add_edge(self, source: str, target: str) -> "StateGraph":
        """Add a directed edge; adding the same edge twice is a no-op.

        Args:
            source: Source node name
            target: Target node name

        Returns:
            Self for chaining
        """
        edge = (source, target)
        if edge not in self._edges:
            self._edges.append(edge)
            logger.debug(f"Added edge: {source} -> {target}")
        return self

    def add_conditional_edges(self, source: str, spec: Union[BranchSpec, NodeBody]) -> "StateGraph":
        """Register ``source`` as a branch and wire an edge to each of its ends.

        Args:
            source: Branch node name
            spec: BranchSpec carrying ``ends``

        Returns:
            Self for chaining

        Raises:
            ValueError: If the spec declares no ends
        """
        if not isinstance(spec, BranchSpec):
            spec = BranchSpec(body=spec)
        if not spec.ends:
            raise ValueError(f"Conditional edges from '{source}' need a BranchSpec with ends")
        self.add_branch(source, spec)
        for target in spec.targets():
            self.add_edge(source, target)
        logger.debug(f"Added conditional edges: {source} -> {list(spec.targets())}")
        return self

    def set_entry_point(self, name: str) -> "StateGraph":
        self._entry_point = name
        return self

    def set_finish_point(self, name: str) -> "StateGraph":
        self._finish_point = name
        return self

    def add_channel(self, name: str, channel: Optional[Channel] = None) -> "StateGraph":
        """Declare a channel in the template (LastValue if none is given).

        Raises:
            ValueError: If the name is an output channel name
        """
        if is_output_channel(name):
            raise ValueError(f"Channel name '{name}' is reserved for node outputs")
        self._channels[name] = channel if channel is not None else LastValueChannel()
        return self

    def compile(self) -> CompiledGraph:
        """Validate the graph and freeze it.

        Returns:
            CompiledGraph ready for execution

        Raises:
            CompilationError: For the first violated invariant
        """
        self._validate()
        assert self._entry_point is not None and self._finish_point is not None
        compiled = CompiledGraph(
            nodes=self._nodes,
            edges=list(self._edges),
            entry_point=self._entry_point,
            finish_point=self._finish_point,
            channels=self._channels,
            state_schema=self._state_schema,
        )
        logger.debug(f"Compiled graph: {compiled!r}")
        return compiled

    def _validate(self) -> None:
        if not self._nodes:
            raise CompilationError(
                CompilationErrorKind.MISSING_NODE,
                "Graph has no nodes",
                recovery_hint="Add nodes with add_node() before compiling",
            )
        for role, point in (("Entry", self._entry_point), ("Finish", self._finish_point)):
            if point is None:
                raise CompilationError(
                    CompilationErrorKind.MISSING_NODE,
                    f"{role} point is not set",
                    recovery_hint=f"Call set_{role.lower()}_point() before compiling",
                )
            if point not in self._nodes:
                raise CompilationError(
                    CompilationErrorKind.MISSING_NODE,
                    f"{role} point '{point}' is not a defined node",
                    node=point,
                )

        for source, target in self._edges:
            if source == target:
                raise CompilationError(
                    CompilationErrorKind.SELF_LOOP,
                    f"Node '{source}' has an edge to itself",
                    node=source,
                )

        for source, target in self._edges:
            for endpoint in (source, target):
                if endpoint not in self._nodes:
                    raise CompilationError(
                        CompilationErrorKind.DANGLING_EDGE,
                        f"Edge '{source}' -> '{target}' references undefined node '{endpoint}'",
                        node=endpoint,
                        details={"source": source, "target": target},
                    )
        for name, spec in self._branches.items():
            for label, target in (spec.ends or {}).items():
                if target not in self._nodes:
                    raise CompilationError(
                        CompilationErrorKind.DANGLING_EDGE,
                        f"Branch '{name}' maps '{label}' to undefined node '{target}'",
                        node=target,
                        details={"branch": name, "label": label},
                    )

        successors, predecessors = _index_edges(list(self._nodes), self._edges)
        branches = {
            name
            for name in self._nodes
            if name in self._branches or len(successors[name]) > 1
        }
        for name, preds in predecessors.items():
            gates = [p for p in preds if p in branches]
            if len(gates) > 1:
                raise CompilationError(
                    CompilationErrorKind.BRANCH_CONFLICT,
                    f"Node '{name}' has more than one branch predecessor: {gates}",
                    node=name,
                    details={"branches": gates},
                )

        if self._finish_point not in _find_reachable(self._entry_point, successors):
            raise CompilationError(
                CompilationErrorKind.UNREACHABLE_FINISH,
                f"Finish point '{self._finish_point}' is not reachable from "
                f"entry point '{self._entry_point}'",
                node=self._finish_point,
            )

    @classmethod
    def from_schema(
        cls,
        schema: Union[dict[str, Any], str],
        node_registry: Optional[Mapping[str, NodeBody]] = None,
        state_schema: str = "State",
    ) -> "StateGraph":
        """Create a StateGraph from a schema dictionary or YAML string.

        Args:
            schema: Either a dictionary schema or YAML string containing:
                - nodes: list of {id, func, type (function|branch|passthrough),
                  retry, input_channel, ends, ...}
                - edges: list of {source, target}
                - entry_point, and optionally finish_point
                - optional channels: list of {name, policy, initial}
            node_registry: Maps ``func`` names to callables
            state_schema: Name of the state type

        Returns:
            StateGraph instance ready for compilation

        Raises:
            ValueError: If schema is invalid or missing required fields
            TypeError: If a node type is unsupported

        Example with YAML:
            yaml_schema = \"""
            nodes:
              - id: pre
                func: preprocess
              - id: route
                type: branch
                func: route
                ends: {ok: done, bad: fail}
              - id: done
                type: passthrough
              - id: fail
                type: passthrough
            edges:
              - {source: pre, target: route}
              - {source: route, target: done}
              - {source: route, target: fail}
            entry_point: pre
            finish_point: done
            \"""
            graph = StateGraph.from_schema(yaml_schema, node_registry=registry)
        """
        import yaml

        if isinstance(schema, str):
            try:
                schema_dict = yaml.safe_load(schema)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML schema: {e}") from e
        else:
            schema_dict = schema

        if not isinstance(schema_dict, dict):
            raise ValueError(f"Schema must be a mapping, got {type(schema_dict).__name__}")

        required_fields = ["nodes", "edges", "entry_point"]
        missing_fields = [f for f in required_fields if f not in schema_dict]
        if missing_fields:
            raise ValueError(f"Schema missing required fields: {missing_fields}")

        node_registry = node_registry or {}
        graph = cls(state_schema=schema_dict.get("state_schema", state_schema))

        for channel_def in schema_dict.get("channels") or []:
            if not isinstance(channel_def, dict) or not channel_def.get("name"):
                raise ValueError(f"Invalid channel definition: {channel_def}")
            try:
                channel = Channel.from_policy(
                    channel_def.get("policy", ChannelPolicy.LAST_VALUE.value),
                    channel_def.get("initial"),
                )
            except ValueError as e:
                raise ValueError(f"Channel '{channel_def['name']}': {e}") from e
            graph.add_channel(channel_def["name"], channel)

        reserved = {"id", "type", "func", "retry", "input_channel", "ends", "cache_key"}
        for node_def in schema_dict["nodes"]:
            if not isinstance(node_def, dict):
                raise ValueError(f"Invalid node definition: {node_def}")

            node_id = node_def.get("id")
            if not node_id:
                raise ValueError("Node definition must have 'id' field")

            node_type = node_def.get("type", "function")
            extra = {k: v for k, v in node_def.items() if k not in reserved}
            options: dict[str, Any] = dict(
                retry_policy=_retry_from_schema(node_id, node_def.get("retry")),
                cache_key=node_def.get("cache_key"),
                input_channel=node_def.get("input_channel"),
            )

            if node_type == "passthrough":
                graph.add_node(node_id, passthrough, **options, **extra)
                continue

            if node_type not in ("function", "branch"):
                raise TypeError(f"Unsupported node type: {node_type}")

            func_name = node_def.get("func")
            if not func_name:
                raise ValueError(f"{node_type.capitalize()} node '{node_id}' must specify 'func'")
            if func_name not in node_registry:
                raise ValueError(
                    f"Node function '{func_name}' not found in node_registry. "
                    f"Available: {list(node_registry.keys())}"
                )

            if node_type == "function":
                graph.add_node(node_id, node_registry[func_name], **options, **extra)
            else:
                ends = node_def.get("ends")
                if ends is not None and not isinstance(ends, dict):
                    raise ValueError(f"Branch '{node_id}': ends must be a mapping, got {ends!r}")
                graph.add_branch(node_id, node_registry[func_name], ends=ends, **options, **extra)

        for edge_def in schema_dict["edges"]:
            if not isinstance(edge_def, dict):
                raise ValueError(f"Invalid edge definition: {edge_def}")
            source = edge_def.get("source")
            if not source:
                raise ValueError("Edge definition must have 'source' field")
            target = edge_def.get("target")
            if not target:
                raise ValueError("Edge definition must have 'target' field")
            if not isinstance(source, str) or not isinstance(target, str):
                raise ValueError(f"Edge endpoints must be node names: {edge_def}")
            graph.add_edge(source, target)

        entry_point = schema_dict["entry_point"]
        if entry_point not in graph._nodes:
            raise ValueError(
                f"Entry point '{entry_point}' not found in nodes. "
                f"Available nodes: {list(graph._nodes.keys())}"
            )
        graph.set_entry_point(entry_point)

        finish_point = schema_dict.get("finish_point")
        if finish_point is not None:
            if finish_point not in graph._nodes:
                raise ValueError(
                    f"Finish point '{finish_point}' not found in nodes. "
                    f"Available nodes: {list(graph._nodes.keys())}"
                )
            graph.set_finish_point(finish_point)

        return graph


__all__ = ["StateGraph", "CompiledGraph"]
