# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the messaging api.

This package contains tests for:
- Stash get/put/drop through the handler chain
- Sequential and concurrent scheduling
- Routing, batch routing and the pass-through router
"""
