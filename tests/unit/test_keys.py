# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for binding key inspection."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Any, Optional, Union

import pytest

from miruken.keys import (
    element_type,
    is_assignable,
    is_instance_of,
    is_optional,
    is_type_key,
    key_name,
    strip_deferred,
    unwrap_annotated,
)
from miruken.promise import Promise


class Animal:
    pass


class Dog(Animal):
    pass


# =============================================================================
# Assignability
# =============================================================================


class TestIsAssignable:
    """Tests for variance between type keys."""

    @pytest.mark.parametrize(
        ("target", "source", "expected"),
        [
            (Animal, Dog, True),
            (Dog, Animal, False),
            (Any, Dog, True),
            (Dog, Any, False),
            (Optional[Animal], Dog, True),
            (Animal, Union[Dog, Animal], True),
            (Dog, Union[Dog, int], False),
            (list[Animal], list[Dog], True),
            (list[Dog], list[Animal], False),
            (Sequence[Animal], list[Dog], True),
            (list, list[Dog], True),
            (Annotated[Animal, "meta"], Dog, True),
        ],
    )
    def test_assignable(self, target: Any, source: Any, expected: bool) -> None:
        assert is_assignable(target, source) is expected

    def test_instance_of(self) -> None:
        assert is_instance_of(Dog(), Optional[Animal])
        assert is_instance_of([1], list[int])
        assert not is_instance_of(1, list[int])
        assert not is_instance_of("x", "key")
        assert is_instance_of(None, Any)


# =============================================================================
# Type Inspection
# =============================================================================


class TestTypeInspection:
    """Tests for unwrapping optional, deferred and sequence types."""

    def test_is_type_key(self) -> None:
        assert is_type_key(Dog)
        assert is_type_key(list[int])
        assert is_type_key(Any)
        assert not is_type_key("name")

    def test_key_name(self) -> None:
        assert key_name(Dog) == "Dog"
        assert key_name("name") == "'name'"

    def test_is_optional(self) -> None:
        assert is_optional(Optional[int]) == (True, int)
        assert is_optional(int | None) == (True, int)
        assert is_optional(int) == (False, int)
        assert is_optional(Optional[Union[int, str]]) == (True, Union[int, str])

    def test_strip_deferred(self) -> None:
        assert strip_deferred(Promise[int]) == (int, True)
        assert strip_deferred(Promise) == (Any, True)
        assert strip_deferred(int) == (int, False)

    @pytest.mark.parametrize(
        ("tp", "expected"),
        [
            (list[int], int),
            (Sequence[Dog], Dog),
            (tuple[int, ...], int),
            (tuple[int, str], None),
            (list, Any),
            (int, None),
        ],
    )
    def test_element_type(self, tp: Any, expected: Any) -> None:
        assert element_type(tp) == expected

    def test_unwrap_annotated(self) -> None:
        assert unwrap_annotated(Annotated[int, "a", "b"]) == (int, ("a", "b"))
        assert unwrap_annotated(int) == (int, ())
