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


"""Tests for how the executor picks each node's input value."""

import pytest

from stepgraph.config.settings import EngineSettings
from stepgraph.core.errors import StateError, StateErrorKind
from stepgraph.core.value import NULL, Value
from stepgraph.framework.graph import StateGraph
from stepgraph.framework.nodes import passthrough
from tests.factories import build_validation_graph


def recording(seen: list, result=None):
    """Body that records its input and returns ``result`` (or the input)."""

    def body(value):
        seen.append(value)
        return value if result is None else result

    return body


class TestInputChannel:
    """Test the input_channel metadata override."""

    @pytest.mark.asyncio
    async def test_reads_declared_channel(self):
        seen = []
        graph = StateGraph().add_channel("config")
        graph.add_node("A", lambda v: "from A")
        graph.add_node("B", recording(seen), input_channel="config")
        graph.add_edge("A", "B").set_entry_point("A").set_finish_point("B")

        await graph.compile().invoke({"config": {"retries": 2}})
        assert seen == [Value.of({"retries": 2})]

    @pytest.mark.asyncio
    async def test_unknown_channel_fails(self):
        graph = StateGraph()
        graph.add_node("A", passthrough, input_channel="nowhere")
        graph.set_entry_point("A").set_finish_point("A")

        with pytest.raises(StateError) as exc_info:
            await graph.compile().invoke()
        assert exc_info.value.kind is StateErrorKind.CHANNEL_NOT_FOUND
        assert exc_info.value.node == "A"
        assert "'nowhere'" in str(exc_info.value)


class TestRootNodes:
    """Test input for nodes without predecessors."""

    @pytest.mark.asyncio
    async def test_first_non_null_channel(self):
        seen = []
        graph = StateGraph().add_channel("empty").add_channel("second")
        graph.add_node("A", recording(seen))
        graph.set_entry_point("A").set_finish_point("A")

        await graph.compile().invoke({"second": "value"})
        assert seen == [Value.string("value")]

    @pytest.mark.asyncio
    async def test_no_input_gives_null(self):
        seen = []
        graph = StateGraph().add_node("A", recording(seen, result="done"))
        graph.set_entry_point("A").set_finish_point("A")

        await graph.compile().invoke()
        assert seen == [NULL]


class TestBehindBranch:
    """Test input for successors of a branch."""

    @pytest.mark.asyncio
    async def test_reads_value_routed_by_branch(self):
        seen = []
        graph = StateGraph()
        graph.add_node("Load", lambda v: {"id": 7})
        graph.add_branch("Route", lambda v: "Handle")
        graph.add_node("Handle", recording(seen)).add_node("Other", passthrough)
        graph.add_edge("Load", "Route").add_edge("Route", "Handle").add_edge("Route", "Other")
        graph.set_entry_point("Load").set_finish_point("Handle")

        await graph.compile().invoke()
        assert seen == [Value.of({"id": 7})]

    @pytest.mark.asyncio
    async def test_result_sink_skips_bool(self):
        result = await build_validation_graph(valid=True).compile().run({"raw": " Hi "})
        assert result.outputs["Success_output"].get("data") == Value.string("hi")

    @pytest.mark.asyncio
    async def test_sink_markers_are_case_insensitive(self):
        graph = build_validation_graph(valid=True, sink_names=("RESULT_OK", "Failure"))
        outputs = await graph.compile().invoke({"raw": "Hi"})
        assert outputs["RESULT_OK_output"].get("data") == Value.string("hi")

    @pytest.mark.asyncio
    async def test_other_names_receive_bool(self):
        graph = build_validation_graph(valid=True, sink_names=("Publish", "Reject"))
        outputs = await graph.compile().invoke({"raw": "Hi"})
        assert outputs["Publish_output"].get("data") == Value.boolean(True)

    @pytest.mark.asyncio
    async def test_heuristic_can_be_disabled(self):
        settings = EngineSettings(bool_skip_heuristic=False)
        outputs = await build_validation_graph(valid=True).compile().invoke(
            {"raw": "Hi"}, settings=settings
        )
        assert outputs["Success_output"].get("data") == Value.boolean(True)

    @pytest.mark.asyncio
    async def test_input_channel_beats_branch_rule(self):
        seen = []
        graph = StateGraph("ValidationState")
        graph.add_node("Validate", lambda v: True)
        graph.add_branch("Check", lambda v: "Success")
        graph.add_node("Success", recording(seen), input_channel="raw")
        graph.add_node("Error", passthrough)
        graph.add_edge("Validate", "Check").add_edge("Check", "Success").add_edge("Check", "Error")
        graph.set_entry_point("Validate").set_finish_point("Success")

        await graph.compile().invoke({"raw": "original"})
        assert seen == [Value.string("original")]

    @pytest.mark.asyncio
    async def test_bool_skip_hops_only_from_first_source(self):
        seen = []
        graph = StateGraph()
        graph.add_node("Flag", lambda v: False).add_node("Text", lambda v: "text")
        graph.add_node("CheckA", lambda v: True).add_node("CheckB", lambda v: True)
        graph.add_branch("Route", lambda v: "Success")
        graph.add_node("Success", recording(seen)).add_node("Error", passthrough)
        graph.add_edge("Flag", "CheckA").add_edge("Text", "CheckB")
        graph.add_edge("CheckA", "Route").add_edge("CheckB", "Route")
        graph.add_edge("Route", "Success").add_edge("Route", "Error")
        graph.set_entry_point("Flag").set_finish_point("Success")

        await graph.compile().invoke()
        assert seen == [Value.boolean(True)]


class TestDefaultRule:
    """Test input for ordinary and join nodes."""

    @pytest.mark.asyncio
    async def test_join_reads_first_completed_predecessor(self):
        seen = []
        graph = StateGraph()
        graph.add_node("A", lambda v: "a").add_node("B", lambda v: "b")
        graph.add_node("Join", recording(seen))
        graph.add_edge("B", "Join").add_edge("A", "Join")
        graph.set_entry_point("A").set_finish_point("Join")

        await graph.compile().invoke()
        assert seen == [Value.string("b")]

    @pytest.mark.asyncio
    async def test_join_after_branch_skips_dead_predecessor(self):
        result = await build_validation_graph(valid=False).compile().run({"raw": "X"})
        summary_input = result.final_result
        assert summary_input.get("success") == Value.boolean(False)
        assert "Success" not in result.completed_nodes
