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


"""Node and branch specifications.

A node body is any callable taking ``(input)`` or ``(input, ctx)``. It
may be a plain function or a coroutine function; the engine inspects the
signature once and records the result in ``ParamShape``. Whatever the
body returns is converted with ``Value.of``.

Retry, caching and input hints live beside the body in ``NodeMetadata``
rather than in its type.

Example:
    @node("upper", retry_policy=FixedDelay(100, 3))
    async def upper(value, ctx):
        return value.as_string().upper()

    @branch("route", ends={"ok": "Success", "bad": "Error"})
    def route(value):
        return "ok" if value.as_bool() else "bad"
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from stepgraph.core.channels import is_output_channel
from stepgraph.core.errors import PlanError, PlanErrorKind, StateError, StateErrorKind
from stepgraph.core.retry import RetryPolicy
from stepgraph.core.value import Value, ValueKind

logger = logging.getLogger(__name__)

NodeBody = Callable[..., Any]


# =============================================================================
# Metadata
# =============================================================================


@dataclass(frozen=True)
class ParamShape:
    """How a body wants to be called."""

    takes_context: bool = False
    is_async: bool = False

    @classmethod
    def detect(cls, body: NodeBody) -> "ParamShape":
        is_async = inspect.iscoroutinefunction(body) or inspect.iscoroutinefunction(
            getattr(body, "__call__", None)
        )
        try:
            signature = inspect.signature(body)
        except (TypeError, ValueError):
            return cls(takes_context=False, is_async=is_async)

        positional = 0
        for param in signature.parameters.values():
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                return cls(takes_context=True, is_async=is_async)
            if param.kind in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            ):
                positional += 1
        return cls(takes_context=positional >= 2, is_async=is_async)


@dataclass(frozen=True)
class NodeMetadata:
    """Side-by-side hints for a node body.

    Attributes:
        retry_policy: Policy applied around each call (None means no retry)
        cache_key: Opaque key for callers that memoise node results
        input_channel: Channel read as the node's input, bypassing the
            predecessor-based input resolution
        tags: Free-form labels
        extra: Anything else passed to ``add_node(**extra)``
    """

    retry_policy: Optional[RetryPolicy] = None
    cache_key: Optional[str] = None
    input_channel: Optional[str] = None
    tags: tuple[str, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class NodeContext:
    """Per-attempt view handed to a node body.

    ``read`` sees channel values as they were at the end of the previous
    super-step. ``write`` buffers a channel write; buffered writes are
    applied during Update after the node's own output, and only if the
    node succeeds.
    """

    step: int
    node_name: str
    attempt: int = 1
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    channels: Mapping[str, Value] = field(default_factory=dict)
    pending_writes: list[tuple[str, Value]] = field(default_factory=list, repr=False)

    def read(self, channel: str) -> Value:
        try:
            return self.channels[channel]
        except KeyError:
            raise StateError(
                StateErrorKind.CHANNEL_NOT_FOUND,
                f"Node '{self.node_name}' read unknown channel '{channel}'",
                channel=channel,
                node=self.node_name,
            ) from None

    def write(self, channel: str, value: Any) -> None:
        if is_output_channel(channel):
            raise StateError(
                StateErrorKind.RESERVED_CHANNEL,
                f"Node '{self.node_name}' cannot write '{channel}': output channels "
                f"are written only by their own node",
                channel=channel,
                node=self.node_name,
            )
        if channel not in self.channels:
            raise StateError(
                StateErrorKind.CHANNEL_NOT_FOUND,
                f"Node '{self.node_name}' wrote unknown channel '{channel}'",
                channel=channel,
                node=self.node_name,
            )
        self.pending_writes.append((channel, Value.of(value)))


# =============================================================================
# Specs
# =============================================================================


@dataclass(frozen=True)
class NodeSpec:
    """A node body plus its metadata."""

    body: NodeBody
    name: Optional[str] = None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    shape: ParamShape = field(init=False, compare=False)

    def __post_init__(self) -> None:
        if not callable(self.body):
            raise TypeError(f"Node body must be callable, got {type(self.body).__name__}")
        object.__setattr__(self, "shape", ParamShape.detect(self.body))

    def with_retry_policy(self, policy: Optional[RetryPolicy]) -> "NodeSpec":
        return replace(self, metadata=replace(self.metadata, retry_policy=policy))

    def with_cache_key(self, cache_key: Optional[str]) -> "NodeSpec":
        return replace(self, metadata=replace(self.metadata, cache_key=cache_key))

    def with_input_channel(self, channel: Optional[str]) -> "NodeSpec":
        return replace(self, metadata=replace(self.metadata, input_channel=channel))

    def with_metadata(self, metadata: NodeMetadata) -> "NodeSpec":
        return replace(self, metadata=metadata)

    def named(self, name: str) -> "NodeSpec":
        return self if self.name == name else replace(self, name=name)

    async def call(
        self,
        value: Value,
        ctx: NodeContext,
        *,
        run_sync_in_thread: bool = False,
    ) -> Value:
        """Invoke the body once and convert its result to a Value."""
        args: tuple[Any, ...] = (value, ctx) if self.shape.takes_context else (value,)
        if self.shape.is_async:
            result = await self.body(*args)
        elif run_sync_in_thread:
            result = await asyncio.to_thread(self.body, *args)
        else:
            result = self.body(*args)
        # partials and callable objects can still hand back a coroutine
        if inspect.isawaitable(result):
            result = await result
        return self._convert(result)

    def _convert(self, result: Any) -> Value:
        return Value.of(result)


@dataclass(frozen=True)
class BranchResult:
    """Routing decision returned by a branch body."""

    labels: tuple[str, ...]
    is_multi: bool = False

    @classmethod
    def single(cls, label: str) -> "BranchResult":
        return cls(labels=(label,), is_multi=False)

    @classmethod
    def multi(cls, labels: Iterable[str]) -> "BranchResult":
        if isinstance(labels, (set, frozenset)):
            labels = sorted(labels)
        return cls(labels=tuple(dict.fromkeys(labels)), is_multi=True)

    @classmethod
    def coerce(cls, obj: Any) -> "BranchResult":
        """Accept a BranchResult, a label, a collection of labels, or a Value.

        Raises:
            TypeError: If obj is none of these
        """
        if isinstance(obj, BranchResult):
            return obj
        if isinstance(obj, Value):
            if obj.kind is ValueKind.STRING:
                return cls.single(obj.data)
            if obj.kind is ValueKind.ARRAY and all(
                item.kind is ValueKind.STRING for item in obj.data
            ):
                return cls.multi(item.data for item in obj.data)
            raise TypeError(f"Branch decision must be a String or Array of String, got {obj!r}")
        if isinstance(obj, str):
            return cls.single(obj)
        if isinstance(obj, (list, tuple, set, frozenset)) and all(
            isinstance(label, str) for label in obj
        ):
            return cls.multi(obj)
        raise TypeError(f"Unsupported branch decision type: {type(obj).__name__}")


@dataclass(frozen=True)
class BranchSpec(NodeSpec):
    """A node whose result is a routing decision.

    ``ends`` maps decision labels to successor names; labels missing from
    the mapping are used as node names unchanged.
    """

    ends: Optional[Mapping[str, str]] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.ends is not None:
            object.__setattr__(self, "ends", MappingProxyType(dict(self.ends)))

    def with_ends(self, ends: Optional[Mapping[str, str]]) -> "BranchSpec":
        return replace(self, ends=ends)

    def targets(self) -> tuple[str, ...]:
        """Distinct successor names named by ``ends``, in declaration order."""
        if not self.ends:
            return ()
        return tuple(dict.fromkeys(self.ends.values()))

    def resolve(self, result: Union[BranchResult, Any]) -> tuple[str, ...]:
        decision = BranchResult.coerce(result)
        ends = self.ends or {}
        return tuple(dict.fromkeys(ends.get(label, label) for label in decision.labels))

    def _convert(self, result: Any) -> Value:
        try:
            decision = BranchResult.coerce(result)
        except TypeError as e:
            raise PlanError(
                PlanErrorKind.INVALID_DECISION,
                f"Branch '{self.name}' returned an invalid decision: {e}",
                branch=self.name or "<unnamed>",
            ) from e
        targets = self.resolve(decision)
        if decision.is_multi:
            return Value.array(targets)
        return Value.string(targets[0])


# =============================================================================
# Decorators
# =============================================================================


def _metadata(
    retry_policy: Optional[RetryPolicy],
    cache_key: Optional[str],
    input_channel: Optional[str],
    tags: Iterable[str],
    extra: Mapping[str, Any],
) -> NodeMetadata:
    return NodeMetadata(
        retry_policy=retry_policy,
        cache_key=cache_key,
        input_channel=input_channel,
        tags=tuple(tags),
        extra=dict(extra),
    )


def node(
    name: Optional[str] = None,
    *,
    retry_policy: Optional[RetryPolicy] = None,
    cache_key: Optional[str] = None,
    input_channel: Optional[str] = None,
    tags: Iterable[str] = (),
    **extra: Any,
) -> Callable[[NodeBody], NodeSpec]:
    """Decorator turning a function into a NodeSpec."""

    def decorator(func: NodeBody) -> NodeSpec:
        return NodeSpec(
            body=func,
            name=name or func.__name__,
            metadata=_metadata(retry_policy, cache_key, input_channel, tags, extra),
        )

    return decorator


def branch(
    name: Optional[str] = None,
    *,
    ends: Optional[Mapping[str, str]] = None,
    retry_policy: Optional[RetryPolicy] = None,
    cache_key: Optional[str] = None,
    input_channel: Optional[str] = None,
    tags: Iterable[str] = (),
    **extra: Any,
) -> Callable[[NodeBody], BranchSpec]:
    """Decorator turning a function into a BranchSpec."""

    def decorator(func: NodeBody) -> BranchSpec:
        return BranchSpec(
            body=func,
            name=name or func.__name__,
            metadata=_metadata(retry_policy, cache_key, input_channel, tags, extra),
            ends=ends,
        )

    return decorator


def passthrough(value: Value) -> Value:
    """Identity body, used for ``passthrough`` schema nodes."""
    return value


__all__ = [
    "NodeBody",
    "ParamShape",
    "NodeMetadata",
    "NodeContext",
    "NodeSpec",
    "BranchResult",
    "BranchSpec",
    "node",
    "branch",
    "passthrough",
]
