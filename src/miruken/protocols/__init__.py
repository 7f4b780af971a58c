# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for miruken.

Protocols are duck-typed interfaces. Classes satisfy them structurally by
providing matching members; no inheritance is required.

Protocols:
    - ProtocolTraversing: Node of a traversal graph
    - ProtocolFilter / ProtocolFilterProvider: Filter pipeline stages and sources
    - ProtocolDisposable: Releasable resource
    - ProtocolCustomizeDispatch / ProtocolPolicyDispatch: Dispatch hooks
    - ProtocolCallbackGuard: Approves or vetoes a binding
    - ProtocolContext*Observer: Context lifecycle notifications
    - ProtocolEffect: Side behavior returned from a handler
    - ProtocolBatching: Batch participant
    - ProtocolBindingObserver / ProtocolDescriptorObserver: Descriptor factory events
    - ProtocolBootstrap: Startup/shutdown participant
    - ProtocolConfigProvider: Typed configuration source
    - ProtocolFeature: Installable setup feature
"""

from miruken.protocols.protocol_batching import ProtocolBatching
from miruken.protocols.protocol_bootstrap import ProtocolBootstrap
from miruken.protocols.protocol_config_provider import ProtocolConfigProvider
from miruken.protocols.protocol_context_observer import (
    ProtocolChildContextEndedObserver,
    ProtocolChildContextEndingObserver,
    ProtocolContextEndedObserver,
    ProtocolContextEndingObserver,
    ProtocolContextualChangedObserver,
    ProtocolContextualChangingObserver,
)
from miruken.protocols.protocol_dispatch import (
    ProtocolCallbackGuard,
    ProtocolCustomizeDispatch,
    ProtocolPolicyDispatch,
)
from miruken.protocols.protocol_disposable import ProtocolDisposable
from miruken.protocols.protocol_effect import ProtocolEffect
from miruken.protocols.protocol_feature import ProtocolFeature
from miruken.protocols.protocol_filter import ProtocolFilter, ProtocolFilterProvider
from miruken.protocols.protocol_observers import (
    ProtocolBindingObserver,
    ProtocolDescriptorObserver,
)
from miruken.protocols.protocol_traversing import ProtocolTraversing

__all__: list[str] = [
    "ProtocolBatching",
    "ProtocolBindingObserver",
    "ProtocolBootstrap",
    "ProtocolCallbackGuard",
    "ProtocolChildContextEndedObserver",
    "ProtocolChildContextEndingObserver",
    "ProtocolConfigProvider",
    "ProtocolContextEndedObserver",
    "ProtocolContextEndingObserver",
    "ProtocolContextualChangedObserver",
    "ProtocolContextualChangingObserver",
    "ProtocolCustomizeDispatch",
    "ProtocolDescriptorObserver",
    "ProtocolDisposable",
    "ProtocolEffect",
    "ProtocolFeature",
    "ProtocolFilter",
    "ProtocolFilterProvider",
    "ProtocolPolicyDispatch",
    "ProtocolTraversing",
]
