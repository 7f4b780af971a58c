# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for composable options.

Tests cover:
    - merge_options rules (unset fields, lists, incompatible types)
    - with_options / get_options through decorated handler chains
    - Options injected into handler methods with FromOptions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional

import pytest
from pydantic import Field

from miruken.args import FromOptions
from miruken.composition import build_up
from miruken.context import Context
from miruken.filter import ModelFilterOptions
from miruken.handles import execute, handles
from miruken.options import ModelOptions, get_options, merge_options, with_options

# =============================================================================
# Fixtures
# =============================================================================


class ModelRetryOptions(ModelOptions):
    attempts: Optional[int] = None
    tags: list[str] = Field(default_factory=list)


@dataclass
class Fetch:
    url: str


class Fetcher:
    @handles
    def fetch(
        self,
        fetch: Fetch,
        options: Annotated[Optional[ModelRetryOptions], FromOptions] = None,
    ) -> int:
        return options.attempts if options and options.attempts else 1


class StrictFetcher:
    @handles
    def fetch(
        self,
        fetch: Fetch,
        options: Annotated[ModelRetryOptions, FromOptions],
    ) -> list[str]:
        return options.tags


# =============================================================================
# Merging
# =============================================================================


class TestMergeOptions:
    """Tests for merge_options."""

    def test_unset_fields_take_source(self) -> None:
        target = ModelRetryOptions()
        assert merge_options(target, ModelRetryOptions(attempts=3))
        assert target.attempts == 3
        assert "attempts" in target.model_fields_set

    def test_set_fields_win(self) -> None:
        target = ModelRetryOptions(attempts=1)
        merge_options(target, ModelRetryOptions(attempts=5))
        assert target.attempts == 1

    def test_lists_are_concatenated(self) -> None:
        target = ModelRetryOptions(tags=["a"])
        merge_options(target, ModelRetryOptions(tags=["b", "c"]))
        assert target.tags == ["a", "b", "c"]

    def test_source_list_is_copied(self) -> None:
        source = ModelRetryOptions(tags=["a"])
        target = ModelRetryOptions()
        merge_options(target, source)
        target.tags.append("b")
        assert source.tags == ["a"]

    def test_defaults_are_not_merged(self) -> None:
        target = ModelRetryOptions(attempts=2)
        merge_options(target, ModelRetryOptions())
        assert target.attempts == 2
        assert target.tags == []

    def test_incompatible_types(self) -> None:
        target = ModelRetryOptions()
        assert not merge_options(target, ModelFilterOptions(skip_filters=True))
        assert target.model_fields_set == set()

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValueError):
            ModelRetryOptions(retries=3)  # type: ignore[call-arg]


# =============================================================================
# Handler Chains
# =============================================================================


class TestGetOptions:
    """Tests for with_options and get_options."""

    def test_none_without_options(self) -> None:
        assert get_options(Context(), ModelRetryOptions) is None

    def test_single_contribution(self) -> None:
        handler = build_up(Context(), with_options(ModelRetryOptions(attempts=2)))
        options = get_options(handler, ModelRetryOptions)
        assert options is not None
        assert options.attempts == 2

    def test_outermost_contribution_wins(self) -> None:
        handler = build_up(
            Context(),
            with_options(ModelRetryOptions(attempts=3, tags=["inner"])),
            with_options(ModelRetryOptions(attempts=5, tags=["outer"])),
        )
        options = get_options(handler, ModelRetryOptions)
        assert options.attempts == 5
        assert options.tags == ["outer", "inner"]

    def test_merges_into_given_instance(self) -> None:
        handler = build_up(Context(), with_options(ModelRetryOptions(attempts=4)))
        given = ModelRetryOptions(tags=["given"])
        assert get_options(handler, given) is given
        assert given.attempts == 4
        assert given.tags == ["given"]

    def test_other_options_types_ignored(self) -> None:
        handler = build_up(Context(), with_options(ModelRetryOptions(attempts=1)))
        assert get_options(handler, ModelFilterOptions) is None

    def test_requires_options(self) -> None:
        with pytest.raises(ValueError):
            with_options(None)  # type: ignore[arg-type]


# =============================================================================
# Injection
# =============================================================================


class TestFromOptions:
    """Tests for options injected into handler methods."""

    def test_optional_options_absent(self) -> None:
        assert execute(Context(Fetcher()), Fetch("a")) == 1

    def test_optional_options_present(self) -> None:
        handler = build_up(
            Context(Fetcher()), with_options(ModelRetryOptions(attempts=7))
        )
        assert execute(handler, Fetch("a")) == 7

    def test_required_options(self) -> None:
        handler = build_up(
            Context(StrictFetcher()), with_options(ModelRetryOptions(tags=["x"]))
        )
        assert execute(handler, Fetch("a")) == ["x"]
