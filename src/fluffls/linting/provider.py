"""Per-document lint scheduling and diagnostic publication."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from lsprotocol import types

from fluffls.linting.collection import DiagnosticCollection, Publisher
from fluffls.linting.configuration import LinterConfiguration
from fluffls.linting.delayer import ThrottledDelayer
from fluffls.linting.events import DocumentEvents, Subscription
from fluffls.linting.runner import ProcessRunner
from fluffls.linting.types import LintDocument, RunOptions, RunTrigger, ToolCommand

__all__ = ["DocumentSource", "Linter", "LintingProvider", "OutputParser"]

OutputParser = Callable[[Sequence[str]], list[types.Diagnostic] | None]


@dataclasses.dataclass(frozen=True)
class Linter:
    """What the provider needs to know about a concrete tool."""

    name: str
    language_ids: tuple[str, ...]
    file_extensions: tuple[str, ...]
    parse: OutputParser


class DocumentSource(Protocol):
    """Host view of the documents that can be linted."""

    @property
    def root_path(self) -> str | None: ...

    def open_documents(self) -> Iterable[LintDocument]: ...

    def project_documents(self, extensions: Sequence[str]) -> Iterable[LintDocument]: ...


class LintingProvider:
    """Decides when each document is linted and keeps its diagnostics.

    Every tracked document owns one ``ThrottledDelayer``; it is created on
    the first trigger and removed when the document closes. Results of a run
    are stored only while the delayer that started it is still the one
    registered for the document.
    """

    def __init__(
        self,
        linter: Linter,
        *,
        events: DocumentEvents,
        documents: DocumentSource,
        configuration: Callable[[], LinterConfiguration],
        runner: ProcessRunner,
        publish: Publisher,
        logger: logging.Logger | None = None,
    ) -> None:
        if logger is None:
            logger = logging.getLogger("fluffls.linting.provider")
        self._logger = logger
        self._linter = linter
        self._events = events
        self._documents = documents
        self._load_configuration = configuration
        self._runner = runner
        self._publish = publish

        self.configuration = LinterConfiguration()
        self._configured = False
        self._collection: DiagnosticCollection | None = None
        self._delayers: dict[str, ThrottledDelayer[None]] = {}
        self._subscriptions: list[Subscription] = []
        self._document_listeners: list[Subscription] = []

    @property
    def collection(self) -> DiagnosticCollection | None:
        return self._collection

    def delayer_for(self, uri: str) -> ThrottledDelayer[None] | None:
        return self._delayers.get(uri)

    def activate(self) -> None:
        """Create the diagnostic store, subscribe to events and load settings."""
        self._collection = DiagnosticCollection(self._publish)
        self._subscriptions.append(
            self._events.configuration_changed.connect(self.load_configuration)
        )
        self.load_configuration()
        self._subscriptions.append(self._events.opened.connect(self.trigger_lint))
        self._subscriptions.append(self._events.closed.connect(self._on_close))

    def dispose(self) -> None:
        for subscription in [*self._subscriptions, *self._document_listeners]:
            subscription.dispose()
        self._subscriptions.clear()
        self._document_listeners.clear()
        self._delayers = {}
        if self._collection is not None:
            self._collection.clear()
            self._collection.dispose()

    def load_configuration(self) -> None:
        """
        Re-read settings and rebuild the scheduling state.

        Runs already in flight keep going; their results are discarded since
        their delayers are no longer registered.
        """
        previous = self.configuration if self._configured else None
        self.configuration = self._load_configuration()
        self._configured = True
        config = self.configuration

        if previous is not None and previous.executable != config.executable:
            self._runner.reset_executable_missing()

        self._delayers = {}

        for listener in self._document_listeners:
            listener.dispose()
        self._document_listeners = [self._events.saved.connect(self.trigger_lint)]
        if config.run_trigger is RunTrigger.ON_TYPE:
            self._document_listeners.append(
                self._events.changed.connect(
                    lambda document: self.trigger_lint(
                        document, is_current_content=True
                    )
                )
            )

        self._logger.debug(
            "Loaded configuration: run=%s delay=%dms entire_project=%s",
            config.run_trigger,
            config.delay_ms,
            config.lint_entire_project,
        )

        for document in self._documents.open_documents():
            self.trigger_lint(document)
        if config.lint_entire_project:
            self.lint_project()

    def lint_project(self, forced: bool = False) -> None:
        """
        Trigger every project file of the linter's file types.

        Files that are not open never see a close event, so their delayers
        are released once their run finishes. Their diagnostics stay.
        """
        open_uris = {document.uri for document in self._documents.open_documents()}
        for document in self._documents.project_documents(self._linter.file_extensions):
            pending = self.trigger_lint(document, forced=forced)
            if pending is None or document.uri in open_uris:
                continue
            delayer = self._delayers[document.uri]
            pending.add_done_callback(
                lambda _done, uri=document.uri, delayer=delayer: self._release(
                    uri, delayer
                )
            )

    def _release(self, uri: str, delayer: ThrottledDelayer[None]) -> None:
        if not self._is_tracked(uri, delayer) or not delayer.is_idle():
            return
        if any(document.uri == uri for document in self._documents.open_documents()):
            return
        self._logger.debug("Releasing delayer of unopened document %s", uri)
        del self._delayers[uri]

    def trigger_lint(
        self,
        document: LintDocument,
        forced: bool = False,
        is_current_content: bool = False,
    ) -> asyncio.Future[None] | None:
        """
        Schedule a lint of ``document`` through its delayer.

        Args:
            document: Document snapshot to lint.
            forced: Lint even when the run trigger is ``off``.
            is_current_content: Lint the in-memory text instead of the saved file.

        Returns:
            Future of the scheduled run, or None when nothing was scheduled.
        """
        config = self.configuration
        if (
            document.language_id not in self._linter.language_ids
            or self._runner.executable_missing
            or (config.run_trigger is RunTrigger.OFF and not forced)
        ):
            return None

        delayer = self._delayers.get(document.uri)
        if delayer is None:
            delay = config.delay_ms if config.run_trigger is RunTrigger.ON_TYPE else 0
            delayer = ThrottledDelayer(delay)
            self._delayers[document.uri] = delayer

        return delayer.trigger(
            lambda: self.analyze(document, is_current_content, owner=delayer)
        )

    async def analyze(
        self,
        document: LintDocument,
        is_current_content: bool = False,
        *,
        owner: ThrottledDelayer[None] | None = None,
    ) -> None:
        """
        Run the linter on ``document`` and store its diagnostics.

        Args:
            document: Document snapshot to lint.
            is_current_content: Send the in-memory text to the tool.
            owner: Delayer that scheduled this run; when it is no longer the
                document's delayer the run is skipped or its result dropped.
        """
        if owner is not None and not self._is_tracked(document.uri, owner):
            self._logger.debug("Skipping lint of %s: no longer tracked", document.uri)
            return

        config = self.configuration
        working_directory = config.resolve_working_directory(
            self._documents.root_path, document.path
        )
        if config.run_trigger is RunTrigger.ON_SAVE or not is_current_content:
            options = RunOptions(target_path=document.path)
        else:
            options = RunOptions(target_path=document.path, content=document.text)

        result = await self._runner.run(
            config.executable,
            working_directory,
            ToolCommand.LINT.value,
            config.lint_arguments(),
            options,
            env=config.environment,
        )

        if not result.succeeded:
            self._logger.warning(
                "Linting command failed to execute for %s: %s",
                document.uri,
                result.message or result.status,
            )
            return
        if not result.lines:
            self._logger.debug("No output for %s, keeping diagnostics", document.uri)
            return
        if owner is not None and not self._is_tracked(document.uri, owner):
            self._logger.debug("Dropping stale result for %s", document.uri)
            return

        diagnostics = self._linter.parse(result.lines)
        if diagnostics is None:
            self._logger.warning(
                "Unreadable %s output for %s, keeping diagnostics",
                self._linter.name,
                document.uri,
            )
            return
        if self._collection is not None:
            self._collection.set(document.uri, diagnostics)
        self._logger.debug("Stored %d diagnostics for %s", len(diagnostics), document.uri)

    def _is_tracked(self, uri: str, owner: ThrottledDelayer[None]) -> bool:
        return self._delayers.get(uri) is owner

    def _on_close(self, uri: str) -> None:
        if self._collection is not None:
            self._collection.delete(uri)
        self._delayers.pop(uri, None)
