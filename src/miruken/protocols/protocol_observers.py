# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Descriptor factory observer protocols."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.binding import Binding
    from miruken.descriptor import HandlerDescriptor
    from miruken.policy import Policy


@runtime_checkable
class ProtocolBindingObserver(Protocol):
    def binding_created(
        self,
        policy: Policy,
        descriptor: HandlerDescriptor,
        binding: Binding,
    ) -> None:
        """Called once for every binding parsed from a handler spec."""
        ...


@runtime_checkable
class ProtocolDescriptorObserver(Protocol):
    def descriptor_created(self, descriptor: HandlerDescriptor) -> None:
        """Called once when a handler spec is first described."""
        ...


__all__ = ["ProtocolBindingObserver", "ProtocolDescriptorObserver"]
