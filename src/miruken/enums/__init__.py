# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Miruken Enumerations Module.

Exports:
    EnumContextEndReason: Reason attached to context end notifications
    EnumContextState: Context lifecycle state (ACTIVE, ENDING, ENDED)
    EnumFilterStage: Well-known filter pipeline stage numbers
    EnumFormatDirection: Direction of a mapping format
    EnumFormatRule: Comparison rule of a mapping format
    EnumMirukenErrorCode: Error classification for the dispatch engine
    EnumSemanticFlags: Broadcast and best effort dispatch semantics
    EnumTraversingAxis: Graph traversal axes
"""

from miruken.enums.enum_context_state import EnumContextEndReason, EnumContextState
from miruken.enums.enum_filter_stage import EnumFilterStage
from miruken.enums.enum_format import EnumFormatDirection, EnumFormatRule
from miruken.enums.enum_miruken_error_code import EnumMirukenErrorCode
from miruken.enums.enum_semantic_flags import EnumSemanticFlags
from miruken.enums.enum_traversing_axis import EnumTraversingAxis

__all__: list[str] = [
    "EnumContextEndReason",
    "EnumContextState",
    "EnumFilterStage",
    "EnumFormatDirection",
    "EnumFormatRule",
    "EnumMirukenErrorCode",
    "EnumSemanticFlags",
    "EnumTraversingAxis",
]
