"""Fixtures for E2E tests."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from tests.lsp.e2e.lsp_client import LspTestClient

_REPO_ROOT = Path(__file__).resolve().parents[3]


@pytest.fixture
async def lsp_server_process() -> AsyncGenerator[asyncio.subprocess.Process, None]:
    """Run tests.lsp.e2e.server_entry as a child process speaking LSP on stdio."""
    process = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "tests.lsp.e2e.server_entry",
        cwd=str(_REPO_ROOT),
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )

    yield process

    if process.returncode is None:
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()


@pytest.fixture
async def lsp_client(
    lsp_server_process: asyncio.subprocess.Process,
) -> AsyncGenerator[LspTestClient, None]:
    """LSP client bound to the server process pipes."""
    assert lsp_server_process.stdin is not None
    assert lsp_server_process.stdout is not None

    client = LspTestClient(
        reader=lsp_server_process.stdout,
        writer=lsp_server_process.stdin,  # type: ignore[arg-type]
    )
    yield client
