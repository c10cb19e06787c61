"""Tests for the LSP server wiring.

Handlers are called directly through the pygls feature manager with a real
workspace and a fake tool runner.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
from lsprotocol import types
from pygls.lsp.server import LanguageServer
from pygls.workspace import Workspace

import fluffls.lsp.server as server_mod
from fluffls.linting.types import RunOptions, RunResult, RunStatus

_REPORT = json.dumps(
    [
        {
            "filepath": "stdin",
            "violations": [
                {
                    "start_line_no": 1,
                    "start_line_pos": 1,
                    "end_line_no": 1,
                    "end_line_pos": 7,
                    "code": "CP01",
                    "description": "Keywords must be consistently upper case.",
                    "name": "capitalisation.keywords",
                    "warning": False,
                }
            ],
        }
    ]
)


class RecordingRunner:
    """Returns a fixed SQLFluff report and records options."""

    def __init__(self) -> None:
        self.executable_missing = False
        self.calls: list[tuple[str, RunOptions]] = []

    def reset_executable_missing(self) -> None:
        self.executable_missing = False

    async def run(
        self,
        executable: str,
        working_directory: str | None,
        command: str,
        args: Sequence[str],
        options: RunOptions,
        *,
        env: Any = None,
    ) -> RunResult:
        self.calls.append((executable, options))
        return RunResult(status=RunStatus.SUCCEEDED, lines=(_REPORT,))


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path.as_uri())


@pytest.fixture
def server(runner: RecordingRunner, workspace: Workspace) -> LanguageServer:
    server = server_mod.create_server(
        runner=runner,  # type: ignore[arg-type]
        default_settings={"linter": {"run": "onSave"}},
    )
    server.protocol._workspace = workspace
    return server


@pytest.fixture
def mock_publish(server: LanguageServer, mocker):
    return mocker.patch.object(
        server,
        "text_document_publish_diagnostics",
        autospec=True,
    )


def _handler(server: LanguageServer, method: str):
    return server.protocol.fm.features[method]


def _put(workspace: Workspace, path: Path, text: str) -> str:
    uri = path.as_uri()
    workspace.put_text_document(
        types.TextDocumentItem(uri=uri, language_id="sql", version=1, text=text)
    )
    return uri


async def _start(server: LanguageServer, options: Any = None) -> None:
    _handler(server, types.INITIALIZE)(
        types.InitializeParams(
            capabilities=types.ClientCapabilities(),
            initialization_options=options,
        )
    )
    await _handler(server, types.INITIALIZED)(types.InitializedParams())


def _published(mock_publish) -> list[types.PublishDiagnosticsParams]:
    return [call.args[0] for call in mock_publish.call_args_list]


class TestServerLinting:
    """Tests for document events reaching the linter."""

    @pytest.mark.asyncio
    async def test_did_open_publishes_sqlfluff_diagnostics(
        self,
        server: LanguageServer,
        workspace: Workspace,
        runner: RecordingRunner,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        await _start(server)
        uri = _put(workspace, tmp_path / "query.sql", "select 1")

        await _handler(server, types.TEXT_DOCUMENT_DID_OPEN)(
            types.DidOpenTextDocumentParams(
                text_document=types.TextDocumentItem(
                    uri=uri, language_id="sql", version=1, text="select 1"
                )
            )
        )
        await asyncio.sleep(0.05)

        assert runner.calls == [
            ("sqlfluff", RunOptions(target_path=str(tmp_path / "query.sql")))
        ]
        [params] = _published(mock_publish)
        assert params.uri == uri
        [diagnostic] = params.diagnostics
        assert diagnostic.code == "CP01"
        assert diagnostic.severity == types.DiagnosticSeverity.Error
        assert diagnostic.range.end.character == 6

    @pytest.mark.asyncio
    async def test_initialization_options_override_defaults(
        self,
        server: LanguageServer,
        workspace: Workspace,
        runner: RecordingRunner,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        await _start(
            server,
            {"sqlfluff": {"executablePath": "/opt/sqlfluff", "linter": {"run": "onType", "delay": 0}}},
        )
        uri = _put(workspace, tmp_path / "query.sql", "select 2")

        await _handler(server, types.TEXT_DOCUMENT_DID_CHANGE)(
            types.DidChangeTextDocumentParams(
                text_document=types.VersionedTextDocumentIdentifier(uri=uri, version=2),
                content_changes=[],
            )
        )
        await asyncio.sleep(0.05)

        [(executable, options)] = runner.calls
        assert executable == "/opt/sqlfluff"
        assert options.content == "select 2"

    @pytest.mark.asyncio
    async def test_did_close_clears_diagnostics(
        self,
        server: LanguageServer,
        workspace: Workspace,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        await _start(server)
        uri = _put(workspace, tmp_path / "query.sql", "select 1")

        await _handler(server, types.TEXT_DOCUMENT_DID_SAVE)(
            types.DidSaveTextDocumentParams(
                text_document=types.TextDocumentIdentifier(uri=uri)
            )
        )
        await asyncio.sleep(0.05)
        await _handler(server, types.TEXT_DOCUMENT_DID_CLOSE)(
            types.DidCloseTextDocumentParams(
                text_document=types.TextDocumentIdentifier(uri=uri)
            )
        )

        published = _published(mock_publish)
        assert len(published) == 2
        assert published[-1].uri == uri
        assert published[-1].diagnostics == []

    @pytest.mark.asyncio
    async def test_configuration_change_to_off_stops_linting(
        self,
        server: LanguageServer,
        workspace: Workspace,
        runner: RecordingRunner,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        await _start(server)
        await _handler(server, types.WORKSPACE_DID_CHANGE_CONFIGURATION)(
            types.DidChangeConfigurationParams(
                settings={"sqlfluff": {"linter": {"run": "off"}}}
            )
        )
        uri = _put(workspace, tmp_path / "query.sql", "select 1")

        await _handler(server, types.TEXT_DOCUMENT_DID_SAVE)(
            types.DidSaveTextDocumentParams(
                text_document=types.TextDocumentIdentifier(uri=uri)
            )
        )
        await asyncio.sleep(0.05)

        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_lint_project_command_forces_linting(
        self,
        server: LanguageServer,
        runner: RecordingRunner,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        (tmp_path / "a.sql").write_text("select a")
        (tmp_path / "b.sql").write_text("select b")
        await _start(server, {"linter": {"run": "off"}})

        command = server.protocol.fm.commands[server_mod.LINT_PROJECT_COMMAND]
        await command()
        await asyncio.sleep(0.05)

        assert sorted(options.target_path or "" for _, options in runner.calls) == [
            str(tmp_path / "a.sql"),
            str(tmp_path / "b.sql"),
        ]
        assert len(_published(mock_publish)) == 2

    @pytest.mark.asyncio
    async def test_events_before_initialized_are_ignored(
        self,
        server: LanguageServer,
        workspace: Workspace,
        runner: RecordingRunner,
        tmp_path: Path,
    ) -> None:
        uri = _put(workspace, tmp_path / "query.sql", "select 1")

        await _handler(server, types.TEXT_DOCUMENT_DID_SAVE)(
            types.DidSaveTextDocumentParams(
                text_document=types.TextDocumentIdentifier(uri=uri)
            )
        )
        await asyncio.sleep(0.05)

        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_shutdown_disposes_provider(
        self,
        server: LanguageServer,
        workspace: Workspace,
        runner: RecordingRunner,
        mock_publish,
        tmp_path: Path,
    ) -> None:
        await _start(server)
        await _handler(server, types.SHUTDOWN)(None)
        uri = _put(workspace, tmp_path / "query.sql", "select 1")

        await _handler(server, types.TEXT_DOCUMENT_DID_SAVE)(
            types.DidSaveTextDocumentParams(
                text_document=types.TextDocumentIdentifier(uri=uri)
            )
        )
        await asyncio.sleep(0.05)

        assert runner.calls == []
        mock_publish.assert_not_called()
