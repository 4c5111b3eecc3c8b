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


"""
stepgraph - a super-step (Pregel-style) workflow execution engine.

Build a graph of named nodes, compile it, and run it in synchronous
rounds: every eligible node of a round runs concurrently, and their
results become visible together at the start of the next round.

Simple API:
    from stepgraph import StateGraph

    graph = StateGraph()
    graph.add_node("a", lambda v: "x")
    graph.add_node("b", lambda v: v.as_string() + "y")
    graph.add_edge("a", "b").set_entry_point("a").set_finish_point("b")

    outputs = await graph.compile().invoke({"raw": "seed"})
    outputs["final_result"]  # Value.string('xy')
"""

__version__ = "0.1.0"
__author__ = "Vijaykumar Singh"
__email__ = "singhvjd@gmail.com"
__license__ = "Apache-2.0"

from stepgraph.config import EngineSettings, configure_logging_levels, load_settings
from stepgraph.core import (
    NULL,
    BoundExceeded,
    Channel,
    ChannelPolicy,
    CompilationError,
    CompilationErrorKind,
    ExponentialBackoff,
    FixedDelay,
    LastValueChannel,
    NodeError,
    NodeErrorKind,
    NoRetry,
    PlanError,
    PlanErrorKind,
    RetryPolicy,
    StateError,
    StateErrorKind,
    TopicChannel,
    Value,
    ValueKind,
    WorkflowError,
)
from stepgraph.framework import (
    BranchResult,
    BranchSpec,
    CompiledGraph,
    ExecutionObserver,
    ExecutionResult,
    LoggingObserver,
    NodeContext,
    NodeMetadata,
    NodeSpec,
    RecordingObserver,
    StateGraph,
    StepSnapshot,
    WorkflowExecutor,
    WorkflowState,
    branch,
    node,
)

__all__ = [
    "__version__",
    # Config
    "EngineSettings",
    "configure_logging_levels",
    "load_settings",
    # Values and channels
    "NULL",
    "Value",
    "ValueKind",
    "Channel",
    "ChannelPolicy",
    "LastValueChannel",
    "TopicChannel",
    # Errors
    "WorkflowError",
    "CompilationError",
    "CompilationErrorKind",
    "PlanError",
    "PlanErrorKind",
    "NodeError",
    "NodeErrorKind",
    "StateError",
    "StateErrorKind",
    "BoundExceeded",
    # Retry
    "RetryPolicy",
    "NoRetry",
    "FixedDelay",
    "ExponentialBackoff",
    # Authoring
    "NodeSpec",
    "BranchSpec",
    "BranchResult",
    "NodeMetadata",
    "NodeContext",
    "node",
    "branch",
    # Graph and execution
    "StateGraph",
    "CompiledGraph",
    "WorkflowExecutor",
    "WorkflowState",
    "ExecutionResult",
    "StepSnapshot",
    "ExecutionObserver",
    "LoggingObserver",
    "RecordingObserver",
]
