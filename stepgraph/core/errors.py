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

"""Structured errors raised by the workflow engine.

This module provides:
- A base ``WorkflowError`` with a message, details and a recovery hint
- One subclass per failure family, each tagged with a ``kind`` enum:

    CompilationError  - the graph violates a structural invariant
    PlanError         - a branch decision cannot be honoured
    NodeError         - a node body failed (after its retry budget)
    StateError        - user code referenced or wrote a channel illegally
    BoundExceeded     - the loop stopped at max_steps with work left
                        (informational; only raised when configured)

Messages always name the offending node, and where relevant the
predecessor, target or channel involved.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from stepgraph.framework.state import WorkflowState


class WorkflowError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description
        details: Structured context (node, target, channel, ...)
        recovery_hint: Optional suggestion for the graph author
        state: The partially advanced run state, when raised from a run
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recovery_hint = recovery_hint
        self.state: Optional["WorkflowState"] = None

    @property
    def kind_name(self) -> Optional[str]:
        kind = getattr(self, "kind", None)
        return kind.value if isinstance(kind, Enum) else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.message,
            "type": type(self).__name__,
            "kind": self.kind_name,
            "recovery_hint": self.recovery_hint,
            "details": self.details,
        }

    def __str__(self) -> str:
        result = self.message
        if self.recovery_hint:
            result += f"\nRecovery hint: {self.recovery_hint}"
        return result


# =============================================================================
# Compilation
# =============================================================================


class CompilationErrorKind(Enum):
    MISSING_NODE = "missing_node"
    UNREACHABLE_FINISH = "unreachable_finish"
    SELF_LOOP = "self_loop"
    DANGLING_EDGE = "dangling_edge"
    BRANCH_CONFLICT = "branch_conflict"


class CompilationError(WorkflowError):
    """The builder's graph violates a compile-time invariant."""

    def __init__(
        self,
        kind: CompilationErrorKind,
        message: str,
        *,
        node: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        details = dict(details or {})
        if node is not None:
            details.setdefault("node", node)
        super().__init__(message, details=details, recovery_hint=recovery_hint)
        self.kind = kind
        self.node = node


# =============================================================================
# Planning
# =============================================================================


class PlanErrorKind(Enum):
    BRANCH_TARGET_NOT_SUCCESSOR = "branch_target_not_successor"
    INVALID_DECISION = "invalid_decision"


class PlanError(WorkflowError):
    """A branch produced a decision the graph cannot honour."""

    def __init__(
        self,
        kind: PlanErrorKind,
        message: str,
        *,
        branch: str,
        target: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"branch": branch}
        if target is not None:
            details["target"] = target
        super().__init__(message, details=details)
        self.kind = kind
        self.branch = branch
        self.target = target


# =============================================================================
# Node execution
# =============================================================================


class NodeErrorKind(Enum):
    BODY_ERROR = "body_error"
    RETRIES_EXHAUSTED = "retries_exhausted"


class NodeError(WorkflowError):
    """A node body failed and its retry budget (if any) is spent."""

    def __init__(
        self,
        kind: NodeErrorKind,
        message: str,
        *,
        node: str,
        step: int,
        attempts: int = 1,
    ):
        super().__init__(
            message,
            details={"node": node, "step": step, "attempts": attempts},
        )
        self.kind = kind
        self.node = node
        self.step = step
        self.attempts = attempts


# =============================================================================
# State access
# =============================================================================


class StateErrorKind(Enum):
    CHANNEL_NOT_FOUND = "channel_not_found"
    RESERVED_CHANNEL = "reserved_channel"
    WRITE_CONFLICT = "write_conflict"


class StateError(WorkflowError):
    """User code referenced an unknown channel or wrote one illegally."""

    def __init__(
        self,
        kind: StateErrorKind,
        message: str,
        *,
        channel: str,
        node: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"channel": channel}
        if node is not None:
            details["node"] = node
        super().__init__(message, details=details)
        self.kind = kind
        self.channel = channel
        self.node = node


# =============================================================================
# Step bound
# =============================================================================


class BoundExceeded(WorkflowError):
    """The super-step loop stopped at max_steps with nodes still eligible.

    Not an error by default; only raised when the engine is configured
    with ``raise_on_bound_exceeded``.
    """

    def __init__(self, max_steps: int, pending: list[str]):
        super().__init__(
            f"Stopped after max_steps={max_steps} with nodes still eligible: {pending}",
            details={"max_steps": max_steps, "pending": list(pending)},
            recovery_hint="Raise max_steps or inspect completed_nodes for a stalled path",
        )
        self.max_steps = max_steps
        self.pending = list(pending)


__all__ = [
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
]
