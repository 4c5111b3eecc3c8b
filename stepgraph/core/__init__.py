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


"""Core building blocks: values, channels, errors and retry policies."""

from stepgraph.core.channels import (
    Channel,
    ChannelPolicy,
    LastValueChannel,
    TopicChannel,
    is_output_channel,
    output_channel_name,
)
from stepgraph.core.errors import (
    BoundExceeded,
    CompilationError,
    CompilationErrorKind,
    NodeError,
    NodeErrorKind,
    PlanError,
    PlanErrorKind,
    StateError,
    StateErrorKind,
    WorkflowError,
)
from stepgraph.core.retry import (
    NO_RETRY,
    ExponentialBackoff,
    FixedDelay,
    NoRetry,
    RetryContext,
    RetryExecutor,
    RetryPolicy,
    RetryResult,
)
from stepgraph.core.value import NULL, Value, ValueKind

__all__ = [
    "Channel",
    "ChannelPolicy",
    "LastValueChannel",
    "TopicChannel",
    "is_output_channel",
    "output_channel_name",
    "BoundExceeded",
    "CompilationError",
    "CompilationErrorKind",
    "NodeError",
    "NodeErrorKind",
    "PlanError",
    "PlanErrorKind",
    "StateError",
    "StateErrorKind",
    "WorkflowError",
    "NO_RETRY",
    "ExponentialBackoff",
    "FixedDelay",
    "NoRetry",
    "RetryContext",
    "RetryExecutor",
    "RetryPolicy",
    "RetryResult",
    "NULL",
    "Value",
    "ValueKind",
]
