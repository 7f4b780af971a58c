# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Messaging api: send/post/publish, stash, scheduling and routing."""

from miruken.api.feature import ApiFeature, feature
from miruken.api.message import post, publish, send
from miruken.api.route import (
    BatchRouter,
    PassThroughRouter,
    RouteReply,
    Routed,
    Routes,
    RoutesFilter,
    route_to,
)
from miruken.api.schedule import (
    ConcurrentBatch,
    Published,
    ScheduledResult,
    Scheduler,
    SequentialBatch,
    concurrent,
    sequential,
)
from miruken.api.stash import (
    Stash,
    StashDrop,
    StashGet,
    StashPut,
    stash_drop,
    stash_get,
    stash_put,
)

__all__: list[str] = [
    "ApiFeature",
    "BatchRouter",
    "ConcurrentBatch",
    "PassThroughRouter",
    "Published",
    "RouteReply",
    "Routed",
    "Routes",
    "RoutesFilter",
    "ScheduledResult",
    "Scheduler",
    "SequentialBatch",
    "Stash",
    "StashDrop",
    "StashGet",
    "StashPut",
    "concurrent",
    "feature",
    "post",
    "publish",
    "route_to",
    "send",
    "sequential",
    "stash_drop",
    "stash_get",
    "stash_put",
]
