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

"""Tagged dynamic values carried through a workflow graph.

Every channel holds a ``Value`` and every node body receives and returns
one. A value is one of six kinds:

    NULL    - the distinguished "absent" value
    BOOL    - True / False
    NUMBER  - a float
    STRING  - a str
    ARRAY   - an ordered sequence of values
    OBJECT  - a mapping of str names to values

Equality is structural. Node authors rarely build values by hand;
``Value.of`` converts plain Python data and ``to_python`` converts back.

Example:
    v = Value.of({"name": "x", "tags": ["a", "b"], "ok": True})
    v.get("ok").as_bool()        # True
    v.to_python()["tags"]        # ["a", "b"]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional


class ValueKind(Enum):
    """Variants of a workflow value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True, eq=False)
class Value:
    """Immutable tagged value.

    Attributes:
        kind: The variant tag
        data: Payload (None, bool, float, str, tuple of Value, or a
            read-only mapping of str to Value)
    """

    kind: ValueKind
    data: Any = None

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def null(cls) -> "Value":
        return NULL

    @classmethod
    def boolean(cls, value: bool) -> "Value":
        return cls(ValueKind.BOOL, bool(value))

    @classmethod
    def number(cls, value: float) -> "Value":
        if isinstance(value, bool):
            raise TypeError("bool is not a number; use Value.boolean()")
        return cls(ValueKind.NUMBER, float(value))

    @classmethod
    def string(cls, value: str) -> "Value":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return cls(ValueKind.STRING, value)

    @classmethod
    def array(cls, items: Iterable[Any]) -> "Value":
        return cls(ValueKind.ARRAY, tuple(cls.of(item) for item in items))

    @classmethod
    def object(cls, members: Mapping[str, Any]) -> "Value":
        converted: dict[str, Value] = {}
        for key, item in members.items():
            if not isinstance(key, str):
                raise TypeError(f"Object keys must be str, got {type(key).__name__}")
            converted[key] = cls.of(item)
        return cls(ValueKind.OBJECT, MappingProxyType(converted))

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Convert plain Python data into a Value.

        Args:
            obj: None, bool, int, float, str, list/tuple, dict with str
                keys, or an existing Value (returned unchanged)

        Returns:
            The converted Value

        Raises:
            TypeError: If obj (or something nested in it) is unsupported
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return NULL
        # bool before int: bool is an int subclass
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, (int, float)):
            return cls.number(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, (list, tuple)):
            return cls.array(obj)
        if isinstance(obj, Mapping):
            return cls.object(obj)
        raise TypeError(f"Cannot convert {type(obj).__name__} to Value")

    # -------------------------------------------------------------------------
    # Predicates and accessors
    # -------------------------------------------------------------------------

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_string(self) -> Optional[str]:
        return self.data if self.kind is ValueKind.STRING else None

    def as_bool(self) -> Optional[bool]:
        return self.data if self.kind is ValueKind.BOOL else None

    def as_number(self) -> Optional[float]:
        return self.data if self.kind is ValueKind.NUMBER else None

    def as_array(self) -> Optional[tuple["Value", ...]]:
        return self.data if self.kind is ValueKind.ARRAY else None

    def as_object(self) -> Optional[Mapping[str, "Value"]]:
        return self.data if self.kind is ValueKind.OBJECT else None

    def get(self, key: str, default: Optional["Value"] = None) -> Optional["Value"]:
        """Look up an object member; returns default for non-objects."""
        if self.kind is not ValueKind.OBJECT:
            return default
        return self.data.get(key, default)

    def to_python(self) -> Any:
        """Convert back to plain Python data."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.OBJECT:
            return {key: item.to_python() for key, item in self.data.items()}
        return self.data

    # -------------------------------------------------------------------------
    # Dunder methods
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is ValueKind.OBJECT:
            return dict(self.data) == dict(other.data)
        return bool(self.data == other.data)

    def __hash__(self) -> int:
        if self.kind is ValueKind.OBJECT:
            return hash((self.kind, frozenset(self.data.items())))
        return hash((self.kind, self.data))

    def __repr__(self) -> str:
        if self.kind is ValueKind.NULL:
            return "Value.null()"
        constructor = "boolean" if self.kind is ValueKind.BOOL else self.kind.value
        return f"Value.{constructor}({self.to_python()!r})"


NULL = Value(ValueKind.NULL)


__all__ = [
    "NULL",
    "Value",
    "ValueKind",
]
