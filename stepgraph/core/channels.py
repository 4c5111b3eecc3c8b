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

"""Named single-slot mailboxes with an update policy.

Policies:
    LAST_VALUE - a write replaces the prior content (used by every
                 ``{node}_output`` channel)
    TOPIC      - an accumulator; every write appends and a read returns
                 all values written so far as an Array
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from stepgraph.core.value import NULL, Value

OUTPUT_SUFFIX = "_output"


def output_channel_name(node_name: str) -> str:
    """Name of the implicit channel a node publishes its result into."""
    return f"{node_name}{OUTPUT_SUFFIX}"


def is_output_channel(channel_name: str) -> bool:
    return channel_name.endswith(OUTPUT_SUFFIX)


class ChannelPolicy(Enum):
    """Update policy of a channel, fixed at construction."""

    LAST_VALUE = "last_value"
    TOPIC = "topic"


class Channel(ABC):
    """Base class for channels.

    Reads never fail: a channel that was never written reads as its
    initial value (``Null`` unless given).
    """

    policy: ChannelPolicy

    @classmethod
    def new_last_value(cls, initial: Any = NULL) -> "LastValueChannel":
        return LastValueChannel(initial)

    @classmethod
    def new_topic(cls) -> "TopicChannel":
        return TopicChannel()

    @classmethod
    def from_policy(cls, policy: ChannelPolicy | str, initial: Any = NULL) -> "Channel":
        """Create a channel from a policy name (used by schema loading)."""
        policy = ChannelPolicy(policy)
        if policy is ChannelPolicy.TOPIC:
            topic = TopicChannel()
            if not Value.of(initial).is_null:
                topic.write(initial)
            return topic
        return LastValueChannel(initial)

    @abstractmethod
    def read(self) -> Value:
        """Return the current content."""

    @abstractmethod
    def write(self, value: Any) -> None:
        """Apply a write according to the channel's policy."""

    @abstractmethod
    def copy(self) -> "Channel":
        """Return an independent copy with the same content."""

    def is_empty(self) -> bool:
        return self.read().is_null


class LastValueChannel(Channel):
    """Holds only the most recent write."""

    policy = ChannelPolicy.LAST_VALUE

    __slots__ = ("_value",)

    def __init__(self, initial: Any = NULL):
        self._value = Value.of(initial)

    def read(self) -> Value:
        return self._value

    def write(self, value: Any) -> None:
        self._value = Value.of(value)

    def copy(self) -> "LastValueChannel":
        return LastValueChannel(self._value)

    def __repr__(self) -> str:
        return f"LastValueChannel({self._value!r})"


class TopicChannel(Channel):
    """Accumulates every write in order."""

    policy = ChannelPolicy.TOPIC

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: list[Value] = []

    def read(self) -> Value:
        if not self._values:
            return NULL
        return Value.array(self._values)

    def write(self, value: Any) -> None:
        self._values.append(Value.of(value))

    def values(self) -> list[Value]:
        return list(self._values)

    def copy(self) -> "TopicChannel":
        clone = TopicChannel()
        clone._values = list(self._values)
        return clone

    def __repr__(self) -> str:
        return f"TopicChannel({len(self._values)} values)"


__all__ = [
    "Channel",
    "ChannelPolicy",
    "LastValueChannel",
    "TopicChannel",
    "OUTPUT_SUFFIX",
    "output_channel_name",
    "is_output_channel",
]
