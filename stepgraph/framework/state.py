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


"""Per-run mutable state owned by the executor."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from stepgraph.core.channels import Channel, LastValueChannel, is_output_channel, output_channel_name
from stepgraph.core.errors import StateError, StateErrorKind
from stepgraph.core.value import NULL, Value

logger = logging.getLogger(__name__)


class WorkflowState:
    """Channels, completed nodes and the step counter of one run.

    Attributes:
        channels: Channel map, in creation order
        completed_nodes: Nodes that finished successfully, in completion order
        step: Number of committed super-steps
    """

    def __init__(self, channels: Optional[Mapping[str, Channel]] = None):
        self.channels: dict[str, Channel] = dict(channels or {})
        self.completed_nodes: list[str] = []
        self._completed: set[str] = set()
        self.step = 0

    def has_channel(self, name: str) -> bool:
        return name in self.channels

    def get_channel(self, name: str) -> Channel:
        try:
            return self.channels[name]
        except KeyError:
            raise StateError(
                StateErrorKind.CHANNEL_NOT_FOUND,
                f"Channel '{name}' does not exist",
                channel=name,
            ) from None

    def read(self, name: str) -> Value:
        return self.get_channel(name).read()

    def read_output(self, node: str) -> Value:
        """Read a node's output channel, Null if it was never created."""
        channel = self.channels.get(output_channel_name(node))
        return channel.read() if channel is not None else NULL

    def write(self, name: str, value: Any) -> None:
        """Write a channel, creating a LastValue channel on demand."""
        channel = self.channels.get(name)
        if channel is None:
            channel = LastValueChannel()
            self.channels[name] = channel
        channel.write(value)

    def publish_output(self, node: str, value: Value) -> None:
        self.write(output_channel_name(node), value)

    def mark_completed(self, node: str) -> None:
        if node not in self._completed:
            self._completed.add(node)
            self.completed_nodes.append(node)

    def is_completed(self, node: str) -> bool:
        return node in self._completed

    def input_channels(self) -> Iterator[tuple[str, Channel]]:
        """Channels that are not ``*_output`` channels, in creation order."""
        for name, channel in self.channels.items():
            if not is_output_channel(name):
                yield name, channel

    def snapshot(self) -> Mapping[str, Value]:
        """Read-only view of every channel's current value."""
        return MappingProxyType({name: ch.read() for name, ch in self.channels.items()})

    def __repr__(self) -> str:
        return (
            f"WorkflowState(step={self.step}, completed={self.completed_nodes}, "
            f"channels={list(self.channels)})"
        )


__all__ = ["WorkflowState"]
