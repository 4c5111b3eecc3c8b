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


"""Property-based tests for the super-step executor.

Uses Hypothesis to generate acyclic graphs with random fan-out; every
node with more than one successor becomes a branch that selects a random
non-empty subset of its successors. Invariants checked:
1. No node completes twice
2. Completed successors of a branch were all selected by it
3. Predecessors complete in strictly earlier super-steps, and every
   predecessor that never completes is dead
4. One step_start event per committed super-step
5. Compilation and execution are deterministic
"""

import asyncio
from dataclasses import dataclass

from hypothesis import HealthCheck, Phase, given, settings
from hypothesis import strategies as st

from stepgraph.framework.diagnostics import RecordingObserver
from stepgraph.framework.graph import StateGraph
from stepgraph.framework.nodes import BranchResult


@dataclass
class GeneratedGraph:
    graph: StateGraph
    names: list
    edges: list
    decisions: dict


def _drop_branch_conflicts(names: list, edges: list) -> list:
    edges = list(edges)
    while True:
        successors = {name: [t for s, t in edges if s == name] for name in names}
        branches = {name for name, targets in successors.items() if len(targets) > 1}
        conflict = None
        for target in names:
            gates = [s for s, t in edges if t == target and s in branches]
            if len(gates) > 1:
                conflict = (gates[-1], target)
                break
        if conflict is None:
            return edges
        edges.remove(conflict)


def _reachable(entry: str, edges: list) -> list:
    seen = [entry]
    for source in seen:
        for s, t in edges:
            if s == source and t not in seen:
                seen.append(t)
    return seen


def _returns(result):
    return lambda value: result


@st.composite
def generated_graphs(draw):
    size = draw(st.integers(min_value=2, max_value=7))
    names = [f"n{i}" for i in range(size)]
    edges = [
        (names[i], names[j])
        for i in range(size)
        for j in range(i + 1, size)
        if draw(st.booleans())
    ]
    edges = _drop_branch_conflicts(names, edges)

    graph = StateGraph()
    decisions = {}
    for name in names:
        targets = [t for s, t in edges if s == name]
        if len(targets) > 1:
            chosen = draw(st.lists(st.sampled_from(targets), min_size=1, unique=True))
            decisions[name] = sorted(chosen)
            graph.add_branch(name, _returns(BranchResult.multi(decisions[name])))
        else:
            graph.add_node(name, _returns(name))
    for source, target in edges:
        graph.add_edge(source, target)

    finish = draw(st.sampled_from(_reachable(names[0], edges)))
    graph.set_entry_point(names[0]).set_finish_point(finish)
    return GeneratedGraph(graph=graph, names=names, edges=edges, decisions=decisions)


def _expected_dead(generated: GeneratedGraph, completed: set) -> set:
    """Dead nodes of a finished run, walked in topological (name) order."""
    dead = set()
    for name in generated.names:
        preds = [s for s, t in generated.edges if t == name]
        if not preds:
            continue
        gates = [p for p in preds if p in generated.decisions]
        if gates:
            gate = gates[0]
            if gate in dead or (gate in completed and name not in generated.decisions[gate]):
                dead.add(name)
        elif all(p in dead for p in preds):
            dead.add(name)
    return dead


def _run(generated: GeneratedGraph):
    recorder = RecordingObserver()
    compiled = generated.graph.compile()
    result = asyncio.run(compiled.run(max_steps=len(generated.names) + 1, observer=recorder))
    return result, recorder


PROPERTY_SETTINGS = settings(
    max_examples=60,
    deadline=None,
    phases=[Phase.generate, Phase.shrink],
    suppress_health_check=[HealthCheck.too_slow],
)


class TestScheduling:
    """Invariants of the frontier selection."""

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_nodes_complete_at_most_once(self, generated):
        result, _ = _run(generated)
        assert len(result.completed_nodes) == len(set(result.completed_nodes))
        assert not result.bound_exceeded

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_branch_successors_follow_decision(self, generated):
        result, _ = _run(generated)
        completed = set(result.completed_nodes)
        for branch, selected in generated.decisions.items():
            if branch not in completed:
                continue
            for source, target in generated.edges:
                if source == branch and target in completed:
                    assert target in selected

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_predecessors_complete_in_earlier_steps(self, generated):
        result, recorder = _run(generated)
        step_of = {e.payload["node"]: e.payload["step"] for e in recorder.of("node_complete")}

        for node in result.completed_nodes:
            preds = [s for s, t in generated.edges if t == node]
            if not preds:
                assert step_of[node] == 0
                continue
            done = [p for p in preds if p in step_of]
            assert done
            for pred in done:
                assert step_of[pred] < step_of[node]

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_missing_predecessors_are_dead(self, generated):
        result, recorder = _run(generated)
        completed = set(result.completed_nodes)
        dead = _expected_dead(generated, completed)
        step_of = {e.payload["node"]: e.payload["step"] for e in recorder.of("node_complete")}

        assert completed.isdisjoint(dead)
        assert completed | dead == set(generated.names)
        for node in result.completed_nodes:
            preds = [s for s, t in generated.edges if t == node]
            if any(p in generated.decisions for p in preds):
                continue
            for pred in preds:
                if pred in completed:
                    assert step_of[pred] < step_of[node]
                else:
                    assert pred in dead

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_one_step_event_per_superstep(self, generated):
        result, recorder = _run(generated)
        starts = recorder.of("step_start")
        completes = recorder.of("step_complete")

        assert len(starts) == result.steps
        assert [e.payload["frontier"] for e in starts] == [
            e.payload["executed"] for e in completes
        ]
        flattened = [name for e in completes for name in e.payload["executed"]]
        assert flattened == result.completed_nodes


class TestDeterminism:
    """Repeated compilation and execution give identical results."""

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_compile_is_deterministic(self, generated):
        assert generated.graph.compile() == generated.graph.compile()

    @given(generated=generated_graphs())
    @PROPERTY_SETTINGS
    def test_runs_are_repeatable(self, generated):
        first, _ = _run(generated)
        second, _ = _run(generated)
        assert first.outputs == second.outputs
        assert first.completed_nodes == second.completed_nodes
        assert first.steps == second.steps
