"""Adapter module for converting between pygls/LSP objects and linting types."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

from lsprotocol import types
from pygls import uris
from pygls.workspace import TextDocument, Workspace

from fluffls.linting.types import LintDocument

__all__ = [
    "WorkspaceDocuments",
    "notice_params",
    "publish_params",
    "to_lint_document",
]

_SKIPPED_DIRECTORIES = frozenset({".git", ".hg", ".svn", ".venv", "node_modules", "__pycache__"})


def to_lint_document(document: TextDocument) -> LintDocument:
    """
    Snapshot a pygls document.

    Args:
        document: The workspace text document

    Returns:
        LintDocument carrying the current text and version
    """
    path = document.path or uris.to_fs_path(document.uri) or document.uri
    return LintDocument(
        uri=document.uri,
        path=path,
        language_id=document.language_id or "",
        text=document.source,
        version=document.version,
    )


def publish_params(
    uri: str, diagnostics: list[types.Diagnostic]
) -> types.PublishDiagnosticsParams:
    return types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)


def notice_params(message: str) -> types.ShowMessageParams:
    return types.ShowMessageParams(type=types.MessageType.Info, message=message)


class WorkspaceDocuments:
    """Document source backed by a pygls workspace.

    Open documents come from the workspace; project documents are read from
    disk below the workspace root, with open documents taking precedence.
    """

    def __init__(
        self,
        get_workspace: Callable[[], Workspace],
        logger: logging.Logger | None = None,
    ) -> None:
        if logger is None:
            logger = logging.getLogger("fluffls.lsp.adapter")
        self._get_workspace = get_workspace
        self._logger = logger

    @property
    def root_path(self) -> str | None:
        return self._get_workspace().root_path or None

    def get(self, uri: str) -> LintDocument | None:
        document = self._get_workspace().text_documents.get(uri)
        return to_lint_document(document) if document is not None else None

    def open_documents(self) -> list[LintDocument]:
        workspace = self._get_workspace()
        return [to_lint_document(doc) for doc in list(workspace.text_documents.values())]

    def project_documents(self, extensions: Sequence[str]) -> Iterator[LintDocument]:
        root = self.root_path
        if not root:
            return

        open_documents = {doc.uri: doc for doc in self.open_documents()}
        for path in _walk_files(Path(root), tuple(extensions)):
            uri = uris.from_fs_path(str(path)) or path.as_uri()
            if uri in open_documents:
                yield open_documents[uri]
                continue
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                self._logger.warning("Cannot read %s: %s", path, e)
                continue
            yield LintDocument(
                uri=uri,
                path=str(path),
                language_id=path.suffix.lstrip("."),
                text=text,
            )


def _walk_files(root: Path, extensions: tuple[str, ...]) -> Iterator[Path]:
    for directory, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIPPED_DIRECTORIES)
        for filename in sorted(filenames):
            if filename.endswith(extensions):
                yield Path(directory) / filename
