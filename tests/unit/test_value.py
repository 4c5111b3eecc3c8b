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


"""Tests for stepgraph.core.value."""

import pytest

from stepgraph.core.value import NULL, Value, ValueKind


class TestConstructors:
    """Test the per-kind constructors."""

    def test_null_is_singleton(self):
        assert Value.null() is NULL
        assert NULL.is_null
        assert NULL.kind == ValueKind.NULL

    def test_boolean(self):
        v = Value.boolean(True)
        assert v.kind == ValueKind.BOOL
        assert v.as_bool() is True

    def test_number_rejects_bool(self):
        with pytest.raises(TypeError):
            Value.number(True)

    def test_number_stores_float(self):
        assert Value.number(3).as_number() == 3.0

    def test_string_type_checked(self):
        with pytest.raises(TypeError):
            Value.string(42)

    def test_array_converts_items(self):
        v = Value.array([1, "a", None])
        assert v.as_array() == (Value.number(1), Value.string("a"), NULL)

    def test_object_requires_str_keys(self):
        with pytest.raises(TypeError):
            Value.object({1: "x"})


class TestConversion:
    """Test Value.of and to_python."""

    def test_of_passes_values_through(self):
        v = Value.string("x")
        assert Value.of(v) is v

    def test_of_treats_bool_before_int(self):
        assert Value.of(True).kind == ValueKind.BOOL
        assert Value.of(1).kind == ValueKind.NUMBER

    def test_of_nested(self):
        v = Value.of({"name": "x", "tags": ["a", "b"], "ok": True, "n": None})
        assert v.kind == ValueKind.OBJECT
        assert v.get("ok") == Value.boolean(True)
        assert v.get("tags").as_array()[1] == Value.string("b")
        assert v.get("n").is_null

    def test_of_unsupported_type(self):
        with pytest.raises(TypeError, match="Cannot convert"):
            Value.of(object())

    def test_to_python_round_trips_plain_data(self):
        data = {"a": [1.0, "two", False], "b": {"c": None}}
        assert Value.of(data).to_python() == data

    def test_object_is_read_only(self):
        v = Value.of({"a": 1})
        with pytest.raises(TypeError):
            v.as_object()["b"] = Value.number(2)


class TestAccessors:
    """Kind mismatches return None instead of raising."""

    def test_mismatch_returns_none(self):
        v = Value.string("x")
        assert v.as_bool() is None
        assert v.as_number() is None
        assert v.as_array() is None
        assert v.as_object() is None

    def test_get_on_non_object_returns_default(self):
        assert Value.string("x").get("a") is None
        assert Value.string("x").get("a", NULL) is NULL


class TestEquality:
    """Equality is structural."""

    def test_structural_equality(self):
        assert Value.of({"a": [1, 2]}) == Value.of({"a": [1, 2]})
        assert Value.of({"a": [1, 2]}) != Value.of({"a": [2, 1]})

    def test_kind_matters(self):
        assert Value.of(1) != Value.of("1")
        assert Value.of(False) != NULL

    def test_hashable(self):
        assert len({Value.of({"a": 1}), Value.of({"a": 1}), Value.of("a")}) == 2

    def test_repr(self):
        assert repr(NULL) == "Value.null()"
        assert repr(Value.boolean(False)) == "Value.boolean(False)"
        assert repr(Value.string("x")) == "Value.string('x')"
