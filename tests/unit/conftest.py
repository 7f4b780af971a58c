# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Shared pytest configuration for all unit tests.

This conftest.py automatically applies the `unit` marker to all tests
in the tests/unit/ directory hierarchy, so individual files do not need
to set pytestmark.

This enables selective test execution:
    # Run only unit tests
    pytest -m unit

    # Run all except unit tests
    pytest -m "not unit"
"""

from __future__ import annotations

import pytest

from miruken.descriptor import HandlerDescriptorFactory


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Add the unit marker to every test in the unit directory."""
    unit_marker = pytest.mark.unit

    for item in items:
        if "tests/unit" in str(item.fspath):
            if not any(marker.name == "unit" for marker in item.iter_markers()):
                item.add_marker(unit_marker)


@pytest.fixture
def factory() -> HandlerDescriptorFactory:
    """Fresh descriptor factory, isolated from the process default."""
    return HandlerDescriptorFactory()
