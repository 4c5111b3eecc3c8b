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


"""Tests for StateGraph.from_schema."""

import pytest

from stepgraph.core.channels import TopicChannel
from stepgraph.core.retry import ExponentialBackoff, FixedDelay
from stepgraph.core.value import Value
from stepgraph.framework.graph import StateGraph
from stepgraph.framework.nodes import BranchSpec, passthrough


def preprocess(value):
    return value.as_string().lower()


def route(value):
    return "ok" if value.as_string() else "bad"


REGISTRY = {"preprocess": preprocess, "route": route}

YAML_SCHEMA = """
state_schema: TextState
nodes:
  - id: pre
    func: preprocess
    retry:
      type: exponential_backoff
      initial_delay_ms: 10
      max_delay_ms: 100
      max_retries: 2
  - id: router
    type: branch
    func: route
    ends: {ok: done, bad: fail}
  - id: done
    type: passthrough
    input_channel: raw
    owner: qa
  - id: fail
    type: passthrough
edges:
  - {source: pre, target: router}
  - {source: router, target: done}
  - {source: router, target: fail}
entry_point: pre
finish_point: done
channels:
  - {name: raw, policy: last_value, initial: seed}
  - {name: log, policy: topic}
"""


class TestFromSchema:
    """Test declarative graph loading."""

    def test_yaml_schema(self):
        graph = StateGraph.from_schema(YAML_SCHEMA, node_registry=REGISTRY)
        compiled = graph.compile()

        assert compiled.state_schema == "TextState"
        assert compiled.node_names == ("pre", "router", "done", "fail")
        assert compiled.successors("router") == ("done", "fail")
        assert compiled.finish_point == "done"

        assert compiled.get_node("pre").metadata.retry_policy == ExponentialBackoff(10, 100, 2)
        router = compiled.get_node("router")
        assert isinstance(router, BranchSpec)
        assert router.resolve("ok") == ("done",)

        done = compiled.get_node("done")
        assert done.body is passthrough
        assert done.metadata.input_channel == "raw"
        assert done.metadata.extra == {"owner": "qa"}

        template = compiled.channel_template()
        assert template["raw"].read() == Value.string("seed")
        assert isinstance(template["log"], TopicChannel)

    @pytest.mark.asyncio
    async def test_loaded_graph_runs(self):
        compiled = StateGraph.from_schema(YAML_SCHEMA, node_registry=REGISTRY).compile()
        outputs = await compiled.invoke({"raw": "HELLO"})
        assert outputs["final_result"] == Value.string("HELLO")
        assert outputs["pre_output"] == Value.string("hello")
        assert outputs["router_output"] == Value.string("done")

    def test_dict_schema_with_fixed_delay(self):
        schema = {
            "nodes": [{"id": "a", "func": "preprocess", "retry": {"delay_ms": 5, "max_retries": 1}}],
            "edges": [],
            "entry_point": "a",
            "finish_point": "a",
        }
        compiled = StateGraph.from_schema(schema, node_registry=REGISTRY).compile()
        assert compiled.get_node("a").metadata.retry_policy == FixedDelay(5, 1)

    def test_round_trip_through_to_schema(self):
        compiled = StateGraph.from_schema(YAML_SCHEMA, node_registry=REGISTRY).compile()
        reloaded = StateGraph.from_schema(compiled.to_schema(), node_registry=REGISTRY)
        assert reloaded.compile() == compiled

    @pytest.mark.parametrize(
        "schema, message",
        [
            ("nodes: [", "Invalid YAML"),
            ("- a\n- b\n", "mapping"),
            ({"nodes": [], "edges": []}, "missing required fields"),
            ({"nodes": [{"func": "preprocess"}], "edges": [], "entry_point": "a"}, "'id'"),
            ({"nodes": [{"id": "a"}], "edges": [], "entry_point": "a"}, "must specify 'func'"),
            ({"nodes": [{"id": "a", "func": "nope"}], "edges": [], "entry_point": "a"}, "not found"),
            (
                {"nodes": [{"id": "a", "func": "preprocess"}], "edges": [], "entry_point": "b"},
                "Entry point 'b'",
            ),
            (
                {
                    "nodes": [{"id": "a", "func": "preprocess"}],
                    "edges": [{"source": "a"}],
                    "entry_point": "a",
                },
                "'target'",
            ),
            (
                {
                    "nodes": [{"id": "a", "func": "preprocess", "retry": {"type": "jitter"}}],
                    "edges": [],
                    "entry_point": "a",
                },
                "unsupported retry type",
            ),
            (
                {
                    "nodes": [{"id": "a", "type": "passthrough"}],
                    "edges": [],
                    "entry_point": "a",
                    "channels": [{"name": "x", "policy": "ephemeral"}],
                },
                "Channel 'x'",
            ),
        ],
    )
    def test_invalid_schemas(self, schema, message):
        with pytest.raises(ValueError, match=message):
            StateGraph.from_schema(schema, node_registry=REGISTRY)

    def test_unknown_node_type(self):
        schema = {"nodes": [{"id": "a", "type": "agent"}], "edges": [], "entry_point": "a"}
        with pytest.raises(TypeError, match="Unsupported node type"):
            StateGraph.from_schema(schema, node_registry=REGISTRY)
