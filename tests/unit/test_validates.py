# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for validation.

Tests cover:
    - Outcome paths in dot and bracket notation
    - validate running every matching validator, with groups
    - Asynchronous validators
    - The validation filter rejecting invalid commands before the handler
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pytest

from miruken import validates as validation
from miruken.context import Context
from miruken.handler import Handler
from miruken.handles import execute, handles
from miruken.promise import Promise
from miruken.setup import setup
from miruken.validates import (
    Outcome,
    ValidateProvider,
    Validates,
    groups,
    validate,
    validates,
)

# =============================================================================
# Messages
# =============================================================================


@dataclass
class Address:
    street: Optional[str] = None
    zip: Optional[str] = None


@dataclass
class CreateUser:
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None
    home: Optional[Address] = None
    work: list[Address] = field(default_factory=list)


@dataclass
class Team:
    name: str
    outcome: Optional[Outcome] = None

    def set_validation_outcome(self, outcome: Outcome) -> None:
        self.outcome = outcome


def _copy_errors(nested: Outcome, outcome: Outcome, prefix: str) -> None:
    for name in nested.fields:
        for error in nested.field_errors(name):
            outcome.add_error(f"{prefix}.{name}", error)


# =============================================================================
# Validators
# =============================================================================


class AddressValidator:
    @validates
    def address(self, address: Address, v: Validates) -> None:
        if not address.street:
            v.outcome.add_error("Street", ValueError("street is required"))
        if not address.zip:
            v.outcome.add_error("Zip", ValueError("zip is required"))


class UserValidator:
    @validates
    def user(self, user: CreateUser, v: Validates, composer: Handler) -> None:
        outcome = v.outcome
        if not user.name:
            outcome.add_error("Name", ValueError("name is required"))
        if not user.email or "@" not in user.email:
            outcome.add_error("Email", ValueError("email is invalid"))
        if not user.password:
            outcome.add_error("Password", ValueError("password is required"))
        if user.age is None or user.age < 0:
            outcome.add_error("Age", ValueError("age must be positive"))
        if user.home is not None:
            _copy_errors(validate(composer, user.home), outcome, "Home")
        for index, address in enumerate(user.work):
            _copy_errors(validate(composer, address), outcome, f"Work[{index}]")


class TeamValidator:
    @validates
    def name(self, team: Team, v: Validates) -> None:
        if len(team.name) < 3:
            v.outcome.add_error("Name", ValueError("too short"))

    @validates(groups("strict"))
    def strict(self, team: Team, v: Validates) -> None:
        if not team.name.istitle():
            v.outcome.add_error("Name", ValueError("not a title"))


class SlowValidator:
    @validates
    async def name(self, team: Team, v: Validates) -> None:
        if team.name == "slow":
            v.outcome.add_error("Name", ValueError("slow team"))


class Users:
    def __init__(self) -> None:
        self.created: list[CreateUser] = []

    @handles
    def create(self, command: CreateUser) -> str:
        self.created.append(command)
        return command.name or ""


class OutputChecked:
    @handles(ValidateProvider(output=True))
    def rename(self, team: Team) -> Team:
        return Team(team.name.strip())


# =============================================================================
# Outcome
# =============================================================================


class TestOutcome:
    """Tests for addressing errors by property path."""

    def test_valid_when_empty(self) -> None:
        outcome = Outcome()
        assert outcome.valid
        assert outcome.fields == []
        assert str(outcome) == ""

    def test_add_and_read(self) -> None:
        outcome = Outcome()
        error = ValueError("required")
        outcome.add_error("Name", error)
        assert not outcome.valid
        assert outcome.fields == ["Name"]
        assert outcome.field_errors("Name") == [error]
        assert outcome.field_errors("Email") == []

    @pytest.mark.parametrize(
        ("written", "read"),
        [
            ("Work[0].Street", "Work.0.Street"),
            ("Work.0.Street", "Work[0].Street"),
            ("a.b[0].c", "a.b.0.c"),
            ("Home.Street", "Home.Street"),
        ],
    )
    def test_dot_and_bracket_paths_agree(self, written: str, read: str) -> None:
        outcome = Outcome()
        error = ValueError("required")
        outcome.add_error(written, error)
        assert outcome.field_errors(read) == [error]

    def test_nested_outcomes(self) -> None:
        outcome = Outcome()
        outcome.add_error("Home.Street", ValueError("street"))
        outcome.add_error("Home.Zip", ValueError("zip"))
        assert outcome.fields == ["Home"]
        home = outcome.path("Home")
        assert home is not None
        assert home.fields == ["Street", "Zip"]
        assert outcome.path("Work") is None
        assert str(outcome) == "Home: (Street: street; Zip: zip)"

    def test_require_path(self) -> None:
        outcome = Outcome()
        nested = outcome.require_path("Work[1]")
        assert outcome.require_path("Work.1") is nested
        assert nested.valid

    @pytest.mark.parametrize("path", ["", "a[", "a[]", "a]b", "."])
    def test_malformed_paths(self, path: str) -> None:
        with pytest.raises(ValueError):
            Outcome().add_error(path, ValueError("x"))

    def test_rejects_outcome_as_error(self) -> None:
        with pytest.raises(ValueError):
            Outcome().add_error("Name", Outcome())


# =============================================================================
# Validate
# =============================================================================


class TestValidate:
    """Tests for running validators."""

    def test_valid(self) -> None:
        outcome = validate(Context(TeamValidator()), Team("Core"))
        assert outcome.valid

    def test_invalid(self) -> None:
        outcome = validate(Context(TeamValidator()), Team("ab"))
        assert [str(e) for e in outcome.field_errors("Name")] == ["too short"]

    def test_without_validators(self) -> None:
        assert validate(Context(), Team("ab")).valid

    def test_publishes_outcome_to_source(self) -> None:
        team = Team("ab")
        outcome = validate(Context(TeamValidator()), team)
        assert team.outcome is outcome

    def test_group_runs_only_when_requested(self) -> None:
        handler = Context(TeamValidator())
        assert validate(handler, Team("core")).valid
        strict = validate(handler, Team("core"), groups("strict"))
        assert [str(e) for e in strict.field_errors("Name")] == ["not a title"]

    def test_any_group(self) -> None:
        outcome = validate(Context(TeamValidator()), Team("core"), groups("*"))
        assert not outcome.valid

    def test_asynchronous_validator(self) -> None:
        result = validate(Context(SlowValidator()), Team("slow"))
        assert isinstance(result, Promise)
        assert not result.await_(5).valid

    def test_requires_source(self) -> None:
        with pytest.raises(ValueError):
            validate(Context(), None)


# =============================================================================
# Validation Filter
# =============================================================================


@pytest.fixture
def users() -> Users:
    return Users()


@pytest.fixture
def validated(users: Users) -> Handler:
    return (
        setup(validation.feature())
        .specs(UserValidator, AddressValidator)
        .handlers(users)
        .handler()
    )


class TestValidateFilter:
    """Tests for validating commands before they are handled."""

    def test_invalid_command_is_not_handled(
        self, validated: Handler, users: Users
    ) -> None:
        command = CreateUser(email="john", home=Address(), work=[Address()])
        with pytest.raises(Outcome) as exc_info:
            execute(validated, command)
        assert users.created == []
        outcome = exc_info.value
        for path in (
            "Age",
            "Email",
            "Home.Street",
            "Home.Zip",
            "Name",
            "Password",
            "Work[0].Street",
            "Work[0].Zip",
        ):
            assert outcome.field_errors(path), path

    def test_valid_command_is_handled(
        self, validated: Handler, users: Users
    ) -> None:
        command = CreateUser(
            name="John",
            email="john@example.com",
            password="secret",
            age=30,
            home=Address("Main St", "12345"),
        )
        assert execute(validated, command) == "John"
        assert users.created == [command]

    def test_output_validation(self) -> None:
        handler = Context(OutputChecked(), TeamValidator())
        assert execute(handler, Team("Core")).name == "Core"
        with pytest.raises(Outcome):
            execute(handler, Team(" ab "))
