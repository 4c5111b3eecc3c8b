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


"""Graph factories shared by the unit, integration and property tests.

Usage:
    from tests.factories import build_validation_graph, build_chain

    graph = build_validation_graph(valid=True)
    outputs = await graph.compile().invoke({"raw": "HelloWorld"})
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from stepgraph import BranchResult, StateGraph, Value

VALIDATION_ENDS = {"success": "Success", "error": "Error"}


def build_validation_graph(
    valid: bool = True,
    *,
    label: Optional[str] = None,
    sink_names: tuple[str, str] = ("Success", "Error"),
) -> StateGraph:
    """Pre -> Validate -> Branch -> {Success, Error} -> Summary.

    ``Validate`` returns ``valid``; ``Branch`` picks ``label`` if given,
    otherwise "success"/"error" from the Bool it receives.
    """
    ok_name, fail_name = sink_names

    def route(value: Value) -> BranchResult:
        if label is not None:
            return BranchResult.single(label)
        return BranchResult.single("success" if value.as_bool() else "error")

    graph = StateGraph("ValidationState")
    graph.add_node("Pre", lambda v: v.as_string().strip().lower())
    graph.add_node("Validate", lambda v: valid)
    graph.add_branch("Branch", route, ends={"success": ok_name, "error": fail_name})
    graph.add_node(ok_name, lambda v: {"success": True, "data": v})
    graph.add_node(fail_name, lambda v: {"success": False, "data": v})
    graph.add_node("Summary", lambda v: v)
    graph.add_edge("Pre", "Validate")
    graph.add_edge("Validate", "Branch")
    graph.add_edge("Branch", ok_name)
    graph.add_edge("Branch", fail_name)
    graph.add_edge(ok_name, "Summary")
    graph.add_edge(fail_name, "Summary")
    graph.set_entry_point("Pre").set_finish_point("Summary")
    return graph


def build_chain(length: int, body: Optional[Callable[[Value], Any]] = None) -> StateGraph:
    """N1 -> N2 -> ... -> N{length}; each node appends its index by default."""

    def default_body(index: int) -> Callable[[Value], Any]:
        def append(value: Value) -> str:
            prefix = value.as_string() or ""
            return f"{prefix}{index}"

        return append

    graph = StateGraph()
    names = [f"N{i}" for i in range(1, length + 1)]
    for index, name in enumerate(names, start=1):
        graph.add_node(name, body or default_body(index))
    for source, target in zip(names, names[1:]):
        graph.add_edge(source, target)
    graph.set_entry_point(names[0]).set_finish_point(names[-1])
    return graph
