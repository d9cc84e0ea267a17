from __future__ import annotations

"""Inter-process communication helpers for the plugin host launcher.

This package provides the typed activation messages and the broadcast
channel used by the primary process to talk to the helper process.  Keeping
the wire layer in a dedicated top-level package lets the helper side import
the exact same message definitions.
"""

# Export public symbols so ``from ipc import *`` exposes them.
from .messages import (  # noqa: F401
    Message,
    MessageDecodeError,
    SetSourceContext,
    SourceContext,
    TogglePluginHostWindow,
    UNKNOWN_PID,
    decode,
    encode,
)
from .channel import ActivationChannel, Subscription  # noqa: F401
