"""
LSP host adapter for live human edit tracking.

This module provides:
- LSP server for editor integration (stdio or TCP)
- didChange/didClose wiring into a tracking session
- Idle and shutdown flushing of open segments
"""

from .server import create_server, start_server

__all__ = ["create_server", "start_server"]
