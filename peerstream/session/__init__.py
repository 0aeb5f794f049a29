"""File selection, flow control and diagnostics for stream sessions.

:class:`~peerstream.session.session.StreamSession` is imported from its own
module since it depends on the gateway, which depends on the selector.
"""

from __future__ import annotations

from peerstream.session.diagnostics import DiagnosticsMonitor
from peerstream.session.flow_control import FlowController
from peerstream.session.selector import FileSelector, include_all, resolve_primary

__all__ = [
    "DiagnosticsMonitor",
    "FileSelector",
    "FlowController",
    "include_all",
    "resolve_primary",
]
