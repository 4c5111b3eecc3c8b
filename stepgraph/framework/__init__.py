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


"""Graph authoring and execution: nodes, builder, executor, observers."""

from stepgraph.framework.diagnostics import (
    ExecutionObserver,
    LoggingObserver,
    ObservedEvent,
    RecordingObserver,
)
from stepgraph.framework.executor import (
    FINAL_RESULT_KEY,
    ExecutionResult,
    ExecutionTask,
    StepSnapshot,
    WorkflowExecutor,
)
from stepgraph.framework.graph import CompiledGraph, StateGraph
from stepgraph.framework.nodes import (
    BranchResult,
    BranchSpec,
    NodeContext,
    NodeMetadata,
    NodeSpec,
    ParamShape,
    branch,
    node,
    passthrough,
)
from stepgraph.framework.state import WorkflowState

__all__ = [
    "ExecutionObserver",
    "LoggingObserver",
    "ObservedEvent",
    "RecordingObserver",
    "FINAL_RESULT_KEY",
    "ExecutionResult",
    "ExecutionTask",
    "StepSnapshot",
    "WorkflowExecutor",
    "CompiledGraph",
    "StateGraph",
    "BranchResult",
    "BranchSpec",
    "NodeContext",
    "NodeMetadata",
    "NodeSpec",
    "ParamShape",
    "branch",
    "node",
    "passthrough",
    "WorkflowState",
]
