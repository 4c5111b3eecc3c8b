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


"""Super-step executor.

A run is a loop of super-steps over a compiled graph:

    Seed    - copy the channel template and write the input mapping
    Plan    - pick every node whose predecessors allow it to run
    Execute - run the whole frontier concurrently (asyncio.gather)
    Update  - publish outputs and buffered writes, mark nodes completed

until the frontier is empty or ``max_steps`` super-steps have run. Plan
and Update never suspend; Execute is the only await point, so writes of
step k are visible to the Plan of step k+1 and to nothing earlier.

Branch gating:
    A branch publishes its resolved targets into ``{branch}_output`` as a
    String or an Array of String. Unselected successors of a decided
    branch are *dead* for the rest of the run, as is any node whose
    predecessors are all dead. AND-joins ignore dead predecessors. A plain
    node with several successors whose output is anything else selects
    none of them.

Input resolution (first match wins):
    1. ``input_channel`` from the node's metadata
    2. no predecessors: the first non-null non-output channel
    3. behind a branch B: the output of a completed predecessor of B;
       a Bool there is skipped for result sinks (names containing
       success, error or result) by hopping back once more from the
       first completed predecessor of B
    4. the first completed predecessor's output, else the first
       predecessor's output
    5. Null

Example:
    executor = WorkflowExecutor(compiled, max_steps=10)
    outputs = await executor.invoke({"raw": "seed"})
    outputs["final_result"]
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Mapping, Optional, Sequence

from stepgraph.config.log_config import trace
from stepgraph.config.settings import EngineSettings, load_settings
from stepgraph.core.channels import ChannelPolicy, output_channel_name
from stepgraph.core.errors import (
    BoundExceeded,
    NodeError,
    NodeErrorKind,
    PlanError,
    PlanErrorKind,
    StateError,
    StateErrorKind,
    WorkflowError,
)
from stepgraph.core.retry import NO_RETRY, RetryContext, RetryExecutor
from stepgraph.core.value import NULL, Value, ValueKind
from stepgraph.framework.diagnostics import ExecutionObserver, notify
from stepgraph.framework.nodes import BranchSpec, NodeContext
from stepgraph.framework.state import WorkflowState

if TYPE_CHECKING:
    from stepgraph.framework.graph import CompiledGraph

logger = logging.getLogger(__name__)

FINAL_RESULT_KEY = "final_result"

# Substrings marking a node as a result sink for the Bool-skip rule
RESULT_SINK_MARKERS = ("success", "error", "result")


@dataclass
class ExecutionTask:
    """One node scheduled in one super-step."""

    node: str
    step: int
    input: Value = NULL
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])


@dataclass
class NodeOutcome:
    """Successful result of an ExecutionTask."""

    node: str
    value: Value
    writes: list[tuple[str, Value]] = field(default_factory=list)
    attempts: int = 1


@dataclass(frozen=True)
class StepSnapshot:
    """Channel values right after the Update of one super-step.

    Attributes:
        step: Number of committed super-steps (1 after the first)
        executed: Nodes committed by this super-step, in frontier order
        values: Every channel's value after the Update
    """

    step: int
    executed: tuple[str, ...]
    values: Mapping[str, Value]


@dataclass
class ExecutionResult:
    """Result of a completed run.

    Attributes:
        outputs: ``final_result`` plus every other non-null channel
        completed_nodes: Nodes in completion order
        steps: Committed super-steps
        bound_exceeded: True if the loop stopped at max_steps with work left
        duration: Wall time of the run in seconds
    """

    outputs: dict[str, Value]
    completed_nodes: list[str]
    steps: int
    bound_exceeded: bool = False
    duration: float = 0.0

    @property
    def final_result(self) -> Optional[Value]:
        return self.outputs.get(FINAL_RESULT_KEY)


class WorkflowExecutor:
    """Drives super-steps over a CompiledGraph.

    One executor may be reused for several runs; ``state`` always holds
    the state of the latest run, including a run that failed.
    """

    def __init__(
        self,
        graph: "CompiledGraph",
        max_steps: Optional[int] = None,
        settings: Optional[EngineSettings] = None,
        observer: Optional[ExecutionObserver] = None,
    ):
        """Initialize executor.

        Args:
            graph: Compiled graph to run
            max_steps: Super-step bound (default: settings.max_steps)
            settings: Engine settings (default: load_settings())
            observer: Optional lifecycle observer
        """
        self.graph = graph
        self.settings = settings or load_settings()
        self.max_steps = self._check_max_steps(
            self.settings.max_steps if max_steps is None else max_steps
        )
        self.observer = observer
        self.state: Optional[WorkflowState] = None
        self.bound_exceeded = False

    @staticmethod
    def _check_max_steps(max_steps: int) -> int:
        if max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {max_steps}")
        return max_steps

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def invoke(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
    ) -> dict[str, Value]:
        """Run to completion and return the output mapping."""
        result = await self.run(input_map, max_steps)
        return result.outputs

    async def run(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
    ) -> ExecutionResult:
        """Run to completion and return outputs plus run statistics.

        Raises:
            PlanError: A branch decision cannot be honoured
            NodeError: A node body failed after its retry budget
            StateError: User code misused a channel
            BoundExceeded: Only when raise_on_bound_exceeded is set
        """
        start_time = time.time()
        async for _ in self._supersteps(input_map, max_steps):
            pass
        return self._finish(start_time)

    async def stream(
        self,
        input_map: Optional[Mapping[str, Any]] = None,
        max_steps: Optional[int] = None,
    ) -> AsyncIterator[StepSnapshot]:
        """Yield a StepSnapshot after every committed super-step."""
        start_time = time.time()
        async for snapshot in self._supersteps(input_map, max_steps):
            yield snapshot
        self._finish(start_time)

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def _seed(self, input_map: Optional[Mapping[str, Any]]) -> WorkflowState:
        state = WorkflowState(self.graph.channel_template())
        for key, value in (input_map or {}).items():
            if not isinstance(key, str):
                raise TypeError(f"Input keys must be channel names (str), got {key!r}")
            state.write(key, value)
        return state

    async def _supersteps(
        self,
        input_map: Optional[Mapping[str, Any]],
        max_steps: Optional[int],
    ) -> AsyncIterator[StepSnapshot]:
        bound = self.max_steps if max_steps is None else self._check_max_steps(max_steps)
        state = self._seed(input_map)
        self.state = state
        self.bound_exceeded = False
        notify(self.observer, "run_start", self.graph.entry_point, bound)

        try:
            while state.step < bound:
                frontier = self._plan(state)
                if not frontier:
                    break
                executed = await self._superstep(state, frontier)
                yield StepSnapshot(
                    step=state.step, executed=tuple(executed), values=state.snapshot()
                )
            else:
                pending = self._plan(state, strict=False)
                if pending:
                    self.bound_exceeded = True
                    if self.settings.raise_on_bound_exceeded:
                        raise BoundExceeded(bound, pending)
                    logger.warning(
                        f"Stopped after max_steps={bound} with nodes still eligible: {pending}"
                    )
        except WorkflowError as e:
            e.state = state
            raise

    async def _superstep(self, state: WorkflowState, frontier: list[str]) -> list[str]:
        step = state.step
        logger.debug(f"Step {step}: frontier={frontier}")
        notify(self.observer, "step_start", step, frontier)

        outcomes, failure = await self._execute(state, frontier)
        self._update(state, outcomes)
        if failure is not None:
            raise failure

        state.step += 1
        executed = [outcome.node for outcome in outcomes]
        notify(self.observer, "step_complete", step, executed)
        return executed

    def _finish(self, start_time: float) -> ExecutionResult:
        state = self.state
        assert state is not None
        result = ExecutionResult(
            outputs=self._collect(state),
            completed_nodes=list(state.completed_nodes),
            steps=state.step,
            bound_exceeded=self.bound_exceeded,
            duration=time.time() - start_time,
        )
        logger.info(
            f"Run finished: steps={result.steps}, completed={len(result.completed_nodes)}, "
            f"final_result={'present' if result.final_result is not None else 'absent'}"
        )
        notify(self.observer, "run_complete", result)
        return result

    # -------------------------------------------------------------------------
    # Plan
    # -------------------------------------------------------------------------

    def _plan(self, state: WorkflowState, strict: bool = True) -> list[str]:
        """Select the frontier in node declaration order.

        With ``strict`` False, unreadable branch decisions count as
        undecided instead of raising.
        """
        decisions: dict[str, Optional[tuple[str, ...]]] = {}
        dead = self._dead_nodes(state, decisions, strict)

        frontier = []
        for name in self.graph.node_names:
            if state.is_completed(name) or name in dead:
                continue
            if self._is_eligible(name, state, dead, decisions, strict):
                frontier.append(name)
        return frontier

    def _is_eligible(
        self,
        name: str,
        state: WorkflowState,
        dead: set[str],
        decisions: dict[str, Optional[tuple[str, ...]]],
        strict: bool,
    ) -> bool:
        predecessors = self.graph.predecessors(name)
        if not predecessors:
            return True

        gate = self._branch_predecessor(name)
        if gate is not None:
            targets = self._decision(gate, state, decisions, strict)
            return targets is not None and name in targets

        live = [p for p in predecessors if p not in dead]
        return bool(live) and all(state.is_completed(p) for p in live)

    def _dead_nodes(
        self,
        state: WorkflowState,
        decisions: dict[str, Optional[tuple[str, ...]]],
        strict: bool,
    ) -> set[str]:
        dead: set[str] = set()
        changed = True
        while changed:
            changed = False
            for name in self.graph.node_names:
                if name in dead or state.is_completed(name):
                    continue
                if self._is_dead(name, state, dead, decisions, strict):
                    dead.add(name)
                    changed = True
        return dead

    def _is_dead(
        self,
        name: str,
        state: WorkflowState,
        dead: set[str],
        decisions: dict[str, Optional[tuple[str, ...]]],
        strict: bool,
    ) -> bool:
        predecessors = self.graph.predecessors(name)
        if not predecessors:
            return False

        gate = self._branch_predecessor(name)
        if gate is not None:
            if gate in dead:
                return True
            targets = self._decision(gate, state, decisions, strict)
            return targets is not None and name not in targets

        return all(p in dead for p in predecessors)

    def _branch_predecessor(self, name: str) -> Optional[str]:
        for pred in self.graph.predecessors(name):
            if self.graph.is_branch(pred):
                return pred
        return None

    def _decision(
        self,
        branch: str,
        state: WorkflowState,
        decisions: dict[str, Optional[tuple[str, ...]]],
        strict: bool,
    ) -> Optional[tuple[str, ...]]:
        """Resolved targets of a completed branch, None while undecided."""
        if branch in decisions:
            return decisions[branch]
        if not state.is_completed(branch):
            decisions[branch] = None
            return None

        try:
            targets = self._read_decision(branch, state)
        except PlanError:
            if strict:
                raise
            targets = None
        decisions[branch] = targets
        return targets

    def _read_decision(self, branch: str, state: WorkflowState) -> tuple[str, ...]:
        """Targets selected by a completed branch.

        A structural branch (plain node with several successors) whose
        output is not a String or an Array of String selects nothing, so
        all of its successors become dead.
        """
        value = state.read_output(branch)
        if value.kind is ValueKind.STRING:
            targets: tuple[str, ...] = (value.data,)
        elif value.kind is ValueKind.ARRAY and all(
            item.kind is ValueKind.STRING for item in value.data
        ):
            targets = tuple(item.data for item in value.data)
        elif not isinstance(self.graph.get_node(branch), BranchSpec):
            trace(logger, "Structural branch '%s' published %r; no successor selected", branch, value)
            return ()
        else:
            raise PlanError(
                PlanErrorKind.INVALID_DECISION,
                f"Branch '{branch}' published {value!r}; expected a String or an "
                f"Array of String naming its successors",
                branch=branch,
            )

        successors = self.graph.successors(branch)
        for target in targets:
            if target not in successors:
                raise PlanError(
                    PlanErrorKind.BRANCH_TARGET_NOT_SUCCESSOR,
                    f"Branch '{branch}' selected '{target}', which is not one of its "
                    f"successors {list(successors)}",
                    branch=branch,
                    target=target,
                )
        return targets

    # -------------------------------------------------------------------------
    # Input resolution
    # -------------------------------------------------------------------------

    def _resolve_input(self, name: str, state: WorkflowState) -> Value:
        input_channel = self.graph.get_node(name).metadata.input_channel
        if input_channel is not None:
            if not state.has_channel(input_channel):
                raise StateError(
                    StateErrorKind.CHANNEL_NOT_FOUND,
                    f"Node '{name}' declares input channel '{input_channel}', "
                    f"which does not exist",
                    channel=input_channel,
                    node=name,
                )
            return state.read(input_channel)

        predecessors = self.graph.predecessors(name)
        if not predecessors:
            for _, channel in state.input_channels():
                value = channel.read()
                if not value.is_null:
                    return value
            return NULL

        gate = self._branch_predecessor(name)
        if gate is not None:
            value = self._input_behind_branch(name, gate, state)
            if value is not None:
                return value

        for pred in predecessors:
            if state.is_completed(pred):
                return state.read_output(pred)
        return state.read_output(predecessors[0])

    def _input_behind_branch(
        self, name: str, gate: str, state: WorkflowState
    ) -> Optional[Value]:
        sources = [p for p in self.graph.predecessors(gate) if state.is_completed(p)]
        if not sources:
            return None

        source = sources[0]
        value = state.read_output(source)
        if value.kind is not ValueKind.BOOL or not self._is_result_sink(name):
            return value

        # only the first completed source is hopped through
        for upstream in self.graph.predecessors(source):
            if not state.is_completed(upstream):
                continue
            candidate = state.read_output(upstream)
            if candidate.kind is not ValueKind.BOOL:
                trace(logger, "Node '%s' skips Bool from '%s', reads '%s'", name, source, upstream)
                return candidate
        return value

    def _is_result_sink(self, name: str) -> bool:
        if not self.settings.bool_skip_heuristic:
            return False
        lowered = name.lower()
        return any(marker in lowered for marker in RESULT_SINK_MARKERS)

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    async def _execute(
        self, state: WorkflowState, frontier: list[str]
    ) -> tuple[list[NodeOutcome], Optional[BaseException]]:
        """Run the frontier concurrently.

        Returns the successful outcomes in frontier order and the first
        failure in frontier order, if any.
        """
        snapshot = state.snapshot()
        tasks = [ExecutionTask(node=name, step=state.step) for name in frontier]
        results = await asyncio.gather(
            *(self._run_task(task, state, snapshot) for task in tasks),
            return_exceptions=True,
        )

        outcomes: list[NodeOutcome] = []
        failure: Optional[BaseException] = None
        for task, result in zip(tasks, results):
            if isinstance(result, NodeOutcome):
                outcomes.append(result)
                notify(self.observer, "node_complete", task.node, task.step, result.value)
                continue
            if not isinstance(result, Exception):
                # CancelledError raised from inside a body
                raise result
            logger.error(f"Node '{task.node}' failed at step {task.step}: {result}")
            notify(self.observer, "node_failed", task.node, task.step, result)
            if failure is None:
                failure = result
        return outcomes, failure

    async def _run_task(
        self,
        task: ExecutionTask,
        state: WorkflowState,
        snapshot: Mapping[str, Value],
    ) -> NodeOutcome:
        spec = self.graph.get_node(task.node)
        task.input = self._resolve_input(task.node, state)
        trace(logger, "Node '%s' [%s] input=%r", task.node, task.task_id, task.input)
        notify(self.observer, "node_start", task.node, task.step)

        async def attempt(retry_context: RetryContext) -> tuple[Value, list[tuple[str, Value]]]:
            ctx = NodeContext(
                step=task.step,
                node_name=task.node,
                attempt=retry_context.attempt,
                metadata=spec.metadata,
                channels=snapshot,
            )
            value = await spec.call(
                task.input, ctx, run_sync_in_thread=self.settings.run_sync_in_thread
            )
            return value, ctx.pending_writes

        def on_retry(retry_context: RetryContext, delay: float) -> None:
            notify(
                self.observer,
                "node_retry",
                task.node,
                task.step,
                retry_context.attempt,
                delay,
                retry_context.last_exception,
            )

        executor = RetryExecutor(spec.metadata.retry_policy or NO_RETRY, on_retry=on_retry)
        result = await executor.execute_async(attempt)

        if result.success:
            value, writes = result.result
            return NodeOutcome(task.node, value, writes, result.attempts)

        error = result.exception
        assert error is not None
        if isinstance(error, WorkflowError):
            raise error
        if result.attempts > 1:
            raise NodeError(
                NodeErrorKind.RETRIES_EXHAUSTED,
                f"Node '{task.node}' failed after {result.attempts} attempts: {error}",
                node=task.node,
                step=task.step,
                attempts=result.attempts,
            ) from error
        raise NodeError(
            NodeErrorKind.BODY_ERROR,
            f"Node '{task.node}' failed: {error}",
            node=task.node,
            step=task.step,
        ) from error

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def _update(self, state: WorkflowState, outcomes: Sequence[NodeOutcome]) -> None:
        self._check_write_conflicts(state, outcomes)
        for outcome in outcomes:
            state.publish_output(outcome.node, outcome.value)
            for channel, value in outcome.writes:
                state.write(channel, value)
            state.mark_completed(outcome.node)

    def _check_write_conflicts(
        self, state: WorkflowState, outcomes: Sequence[NodeOutcome]
    ) -> None:
        writers: dict[str, str] = {}
        for outcome in outcomes:
            for channel, _ in outcome.writes:
                if state.get_channel(channel).policy is not ChannelPolicy.LAST_VALUE:
                    continue
                first = writers.setdefault(channel, outcome.node)
                if first != outcome.node:
                    raise StateError(
                        StateErrorKind.WRITE_CONFLICT,
                        f"Nodes '{first}' and '{outcome.node}' both wrote LastValue "
                        f"channel '{channel}' in step {state.step}",
                        channel=channel,
                        node=outcome.node,
                    )

    # -------------------------------------------------------------------------
    # Collect
    # -------------------------------------------------------------------------

    def _collect(self, state: WorkflowState) -> dict[str, Value]:
        outputs: dict[str, Value] = {}
        finish_channel = output_channel_name(self.graph.finish_point)
        final = state.read_output(self.graph.finish_point)
        if not final.is_null:
            outputs[FINAL_RESULT_KEY] = final

        for name, channel in state.channels.items():
            if name == finish_channel or name in outputs:
                continue
            value = channel.read()
            if not value.is_null:
                outputs[name] = value
        return outputs


__all__ = [
    "FINAL_RESULT_KEY",
    "ExecutionTask",
    "ExecutionResult",
    "StepSnapshot",
    "WorkflowExecutor",
]
