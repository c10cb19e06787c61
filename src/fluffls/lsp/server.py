"""SQLFluff LSP server using pygls 2.0.

Lints SQL documents with an external SQLFluff executable and publishes the
results as diagnostics.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from fluffls.linting.configuration import ConfigurationSource
from fluffls.linting.events import DocumentEvents
from fluffls.linting.provider import Linter, LintingProvider
from fluffls.linting.runner import ProcessRunner
from fluffls.linting.sqlfluff import SQLFLUFF
from fluffls.logging import get_logger
from fluffls.lsp.adapter import (
    WorkspaceDocuments,
    notice_params,
    publish_params,
    to_lint_document,
)
from fluffls.lsp.error_handling import wrap_async_handler, wrap_handler

LINT_PROJECT_COMMAND = "fluffls.lintProject"


def create_server(
    *,
    linter: Linter = SQLFLUFF,
    runner: ProcessRunner | None = None,
    default_settings: Mapping[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> LanguageServer:
    """
    Create and configure the LSP server.

    Args:
        linter: Linter definition (languages, file types, output parser).
        runner: Process runner; one notifying through window/showMessage is
            created when omitted.
        default_settings: Settings used until the client sends its own.
        logger: Optional logger instance. If None, uses the fluffls.lsp logger.

    Returns:
        Configured LanguageServer instance.
    """
    if logger is None:
        logger = get_logger("lsp")

    server = LanguageServer("fluffls", "v0.1.0")
    events = DocumentEvents()
    settings = ConfigurationSource(default_settings)
    documents = WorkspaceDocuments(lambda: server.workspace)

    def _notify(message: str) -> None:
        server.window_show_message(notice_params(message))

    def _publish(uri: str, diagnostics: list[types.Diagnostic]) -> None:
        server.text_document_publish_diagnostics(publish_params(uri, diagnostics))
        logger.debug("Published %d diagnostics for %s", len(diagnostics), uri)

    if runner is None:
        runner = ProcessRunner(notify=_notify)

    provider = LintingProvider(
        linter,
        events=events,
        documents=documents,
        configuration=settings.load,
        runner=runner,
        publish=_publish,
        logger=get_logger("linting.provider"),
    )
    state = {"active": False}

    @server.feature(types.INITIALIZE)
    @wrap_handler(logger=logger, feature_name="initialize")
    def initialize(params: types.InitializeParams) -> None:
        """Take settings passed as initialization options."""
        options = params.initialization_options
        if isinstance(options, Mapping):
            settings.update(options)

    @server.feature(types.INITIALIZED)
    @wrap_async_handler(logger=logger, feature_name="initialized")
    async def initialized(params: types.InitializedParams) -> None:
        """Start linting once the client is ready."""
        if state["active"]:
            return
        state["active"] = True
        logger.info("Activating %s linting", linter.name)
        provider.activate()

    @server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
    @wrap_async_handler(
        logger=logger, feature_name="workspace/didChangeConfiguration"
    )
    async def did_change_configuration(
        params: types.DidChangeConfigurationParams,
    ) -> None:
        """Reload settings and re-lint."""
        if isinstance(params.settings, Mapping):
            settings.update(params.settings)
        events.emit_configuration_changed()

    @server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    @wrap_async_handler(logger=logger, feature_name="textDocument/didOpen")
    async def did_open(params: types.DidOpenTextDocumentParams) -> None:
        document = server.workspace.get_text_document(params.text_document.uri)
        if document is None:
            return
        logger.debug("Document opened: %s (version %s)", document.uri, document.version)
        events.emit_opened(to_lint_document(document))

    @server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
    @wrap_async_handler(logger=logger, feature_name="textDocument/didChange")
    async def did_change(params: types.DidChangeTextDocumentParams) -> None:
        document = server.workspace.get_text_document(params.text_document.uri)
        if document is None:
            return
        logger.debug("Document changed: %s (version %s)", document.uri, document.version)
        events.emit_changed(to_lint_document(document))

    @server.feature(types.TEXT_DOCUMENT_DID_SAVE)
    @wrap_async_handler(logger=logger, feature_name="textDocument/didSave")
    async def did_save(params: types.DidSaveTextDocumentParams) -> None:
        document = server.workspace.get_text_document(params.text_document.uri)
        if document is None:
            return
        logger.debug("Document saved: %s", document.uri)
        events.emit_saved(to_lint_document(document))

    @server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
    @wrap_async_handler(logger=logger, feature_name="textDocument/didClose")
    async def did_close(params: types.DidCloseTextDocumentParams) -> None:
        """Drop scheduling state and diagnostics of the document."""
        logger.debug("Document closed: %s", params.text_document.uri)
        events.emit_closed(params.text_document.uri)

    @server.feature(types.SHUTDOWN)
    @wrap_async_handler(logger=logger, feature_name="shutdown")
    async def shutdown(params: Any = None) -> None:
        if state["active"]:
            provider.dispose()
            state["active"] = False

    @server.command(LINT_PROJECT_COMMAND)
    @wrap_async_handler(logger=logger, feature_name=LINT_PROJECT_COMMAND)
    async def lint_project(*args: Any) -> None:
        """Lint every project file, even when linting is switched off."""
        if not state["active"]:
            return
        provider.lint_project(forced=True)

    return server
