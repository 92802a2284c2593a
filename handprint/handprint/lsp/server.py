"""
LSP server that feeds live editor changes into a tracking session.

Provides:
- didChange: classify and segment every edit notification
- didClose: close the document's open segment
- Idle flush on the server's event loop
- Flush of every open segment when the server stops
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from .. import __version__
from ..config import TrackingConfig, config_from_mapping, default_config_path, load_config
from ..tracking.convert import notification_from_lsp, uri_to_path
from ..tracking.ledger import SegmentLedger
from ..tracking.recorder import SegmentRecorder
from ..tracking.session import TrackingSession

logger = logging.getLogger(__name__)

IDLE_FLUSH_INTERVAL_SECONDS = 0.5


class HandprintLanguageServer(LanguageServer):
    """Language server that tracks human edit segments."""

    def __init__(
        self,
        workspace_path: Path | None = None,
        config: TrackingConfig | None = None,
    ):
        super().__init__(name="handprint-lsp", version=__version__)
        self.workspace_path = workspace_path
        self.tracking_config = config
        self.session: TrackingSession | None = None
        self._line_counts: dict[str, int] = {}
        self._idle_task: asyncio.Task | None = None
        if workspace_path:
            self.set_workspace_path(workspace_path)

    def set_workspace_path(self, path: Path, overrides: dict[str, Any] | None = None) -> None:
        """Set the workspace root and (re)build the tracking session."""
        if self.session is not None:
            self.session.flush_all()
        self.workspace_path = path
        config = self.tracking_config
        if config is None:
            try:
                config = load_config(default_config_path(path))
            except ValueError:
                logger.exception(f"Invalid tracking config in {path}, using defaults")
                config = TrackingConfig()
        try:
            config = config_from_mapping(overrides, config)
        except ValueError:
            logger.exception("Invalid initializationOptions ignored")
        ledger = SegmentLedger(path)
        recorder = SegmentRecorder(
            ledger,
            min_segment_chars_no_whitespace=config.min_segment_chars_no_whitespace,
            record_enabled=config.record_enabled,
        )
        self.session = TrackingSession(config, recorder=recorder, text_provider=self.read_lines)
        logger.info(
            f"Tracking started for {path}: recordEnabled={config.record_enabled} "
            f"segmentIdleMs={config.segment_idle_ms} maxSegmentChars={config.max_segment_chars}"
        )

    def read_lines(self, uri: str, start_line: int, end_line_exclusive: int) -> str | None:
        """Text of [start_line, end_line_exclusive), one trailing newline per line."""
        document = self.workspace.get_text_document(uri)
        lines = document.lines[start_line:end_line_exclusive]
        return "".join(line.rstrip("\r\n") + "\n" for line in lines)

    def remember_line_count(self, uri: str) -> None:
        document = self.workspace.get_text_document(uri)
        self._line_counts[uri] = len(document.lines)

    def forget_document(self, uri: str) -> None:
        self._line_counts.pop(uri, None)

    def previous_line_count(self, uri: str) -> int | None:
        return self._line_counts.get(uri)


def handle_did_change(server: HandprintLanguageServer, params: lsp.DidChangeTextDocumentParams) -> None:
    """Feed one didChange notification to the session.

    Failures are logged, never raised: a tracking bug must not break editing.
    """
    if server.session is None:
        return
    uri = params.text_document.uri
    try:
        notification = notification_from_lsp(
            uri,
            params.content_changes,
            previous_line_count=server.previous_line_count(uri),
        )
        server.session.handle_change(notification)
        server.remember_line_count(uri)
    except Exception:
        logger.exception(f"Tracking error for {uri}; forcing its segment closed")
        server.session.close_segment(uri)


def handle_did_close(server: HandprintLanguageServer, params: lsp.DidCloseTextDocumentParams) -> None:
    if server.session is None:
        return
    uri = params.text_document.uri
    logger.info(f"Document closed event for {uri}")
    server.forget_document(uri)
    server.session.close_document(uri)


async def _idle_flush_loop(server: HandprintLanguageServer, interval: float) -> None:
    """Periodically close segments that went idle."""
    while True:
        await asyncio.sleep(interval)
        if server.session is None:
            continue
        try:
            server.session.flush_idle()
        except Exception:
            logger.exception("Idle flush failed")


def create_server(
    workspace_path: Path | None = None,
    config: TrackingConfig | None = None,
) -> HandprintLanguageServer:
    """Create and configure the LSP server."""
    server = HandprintLanguageServer(workspace_path, config)

    @server.feature(lsp.INITIALIZE)
    def initialize(params: lsp.InitializeParams) -> None:
        """Handle initialize - detect workspace root and config overrides."""
        overrides = params.initialization_options if isinstance(params.initialization_options, dict) else None
        root_uri = params.root_uri
        if not root_uri and params.workspace_folders:
            root_uri = params.workspace_folders[0].uri
        if root_uri:
            server.set_workspace_path(uri_to_path(root_uri), overrides)
        elif server.workspace_path is None:
            server.set_workspace_path(Path.cwd(), overrides)

    @server.feature(lsp.INITIALIZED)
    async def initialized(params: lsp.InitializedParams) -> None:
        """Start the idle flush loop once the client is ready."""
        if server._idle_task is None:
            server._idle_task = asyncio.get_running_loop().create_task(
                _idle_flush_loop(server, IDLE_FLUSH_INTERVAL_SECONDS)
            )

    @server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
    def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
        """Handle document open - remember its line count for full-sync changes."""
        server._line_counts[params.text_document.uri] = len(params.text_document.text.splitlines()) or 1

    @server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
    def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
        handle_did_change(server, params)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
        handle_did_close(server, params)

    return server


def start_server(
    workspace_path: Path | None = None,
    config: TrackingConfig | None = None,
    transport: str = "stdio",
) -> None:
    """Start the LSP server.

    Args:
        workspace_path: Workspace root (the client's root URI wins when sent)
        config: Explicit config (skips .handprint/config.yml)
        transport: Transport method ("stdio" or "tcp")
    """
    server = create_server(workspace_path, config)

    try:
        if transport == "stdio":
            server.start_io()
        else:
            # TCP transport for debugging
            server.start_tcp("localhost", 2087)
    finally:
        if server.session is not None:
            flushed = server.session.flush_all()
            logger.info(f"Flushed {len(flushed)} open segments on shutdown")
