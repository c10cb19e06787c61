"""Asynchronous execution of the external analysis tool."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable, Collection, Mapping, Sequence

from fluffls.linting.line_decoder import LineDecoder
from fluffls.linting.types import RunOptions, RunResult, RunStatus

__all__ = [
    "DEFAULT_SUCCESS_CODES",
    "ProcessRunner",
    "STDIN_FILENAME_FLAG",
    "STDIN_MARKER",
]

STDIN_MARKER = "-"
STDIN_FILENAME_FLAG = "--stdin-filename"

# 0 is a clean run, 1 means violations were found
DEFAULT_SUCCESS_CODES = (0, 1)

_READ_CHUNK_SIZE = 64 * 1024

Notifier = Callable[[str], None]


class ProcessRunner:
    """Spawns the analysis tool and decodes its output.

    The runner owns the process-wide "executable missing" flag: once a spawn
    fails because the executable does not exist, the user is told once and
    every later run resolves as unavailable without spawning, until
    ``reset_executable_missing`` is called.
    """

    def __init__(
        self,
        *,
        notify: Notifier | None = None,
        env: Mapping[str, str] | None = None,
        success_codes: Collection[int] = DEFAULT_SUCCESS_CODES,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            notify: Callback showing a message to the user.
            env: Extra environment variables for every run.
            success_codes: Exit codes of a run that produced a report.
            logger: Optional logger instance.
        """
        if logger is None:
            logger = logging.getLogger("fluffls.linting.runner")
        self._logger = logger
        self._notify = notify
        self._env = dict(env or {})
        self._success_codes = frozenset(success_codes)
        self._executable_missing = False

    @property
    def executable_missing(self) -> bool:
        return self._executable_missing

    def reset_executable_missing(self) -> None:
        if self._executable_missing:
            self._logger.info("Executable path changed, re-enabling linting")
        self._executable_missing = False

    async def run(
        self,
        executable: str,
        working_directory: str | None,
        command: str,
        args: Sequence[str],
        options: RunOptions,
        *,
        env: Mapping[str, str] | None = None,
    ) -> RunResult:
        """
        Run the tool once.

        Args:
            executable: Tool executable name or path.
            working_directory: Directory to run in; None keeps the server's.
            command: Tool sub-command, e.g. ``lint``.
            args: Arguments following the sub-command.
            options: Target path and optional in-memory content.
            env: Extra environment variables for this run.

        Returns:
            The run result. Never raises for tool or spawn failures.
        """
        if self._executable_missing:
            return RunResult.tool_unavailable()

        argv = [executable, command, *args]
        if options.content is not None:
            if options.target_path is not None:
                argv.extend([STDIN_FILENAME_FLAG, options.target_path])
            argv.append(STDIN_MARKER)
        elif options.target_path is not None:
            argv.append(options.target_path)

        self._logger.debug("Running %s in %s", argv, working_directory)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=working_directory,
                env=self._build_env(env),
                stdin=(
                    asyncio.subprocess.PIPE
                    if options.content is not None
                    else asyncio.subprocess.DEVNULL
                ),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            if e.filename is not None and e.filename == working_directory:
                return self._spawn_failed(executable, e)
            return self._executable_not_found(executable, options)
        except OSError as e:
            return self._spawn_failed(executable, e)

        decoder = LineDecoder()
        _, stderr, _ = await asyncio.gather(
            self._pump_stdout(process, decoder),
            self._read_stderr(process),
            self._write_stdin(process, options.content),
        )
        return_code = await process.wait()
        decoder.end()
        lines = tuple(decoder.lines)

        self._logger.debug(
            "%s exited with %s (%d output lines)", executable, return_code, len(lines)
        )

        if return_code not in self._success_codes or (return_code != 0 and not lines):
            message = (
                stderr.strip()
                or "\n".join(lines).strip()
                or f"{executable} exited with code {return_code}"
            )
            return RunResult.failed(message, return_code=return_code)

        return RunResult(
            status=RunStatus.SUCCEEDED, lines=lines, return_code=return_code
        )

    def _build_env(self, overrides: Mapping[str, str] | None) -> dict[str, str]:
        env = dict(os.environ)
        env["LANG"] = "en_US.utf-8"
        env.update(self._env)
        if overrides:
            env.update(overrides)
        return env

    def _executable_not_found(self, executable: str, options: RunOptions) -> RunResult:
        if self._executable_missing:
            return RunResult.tool_unavailable()

        self._executable_missing = True
        target = options.target_path or "the document"
        message = (
            f"Cannot lint {target}. The executable '{executable}' was not found. "
            "Use the 'executablePath' setting to configure the location of the executable."
        )
        self._logger.warning(message)
        if self._notify is not None:
            self._notify(message)
        return RunResult.tool_unavailable()

    def _spawn_failed(self, executable: str, error: OSError) -> RunResult:
        message = (
            str(error)
            or f"Failed to run executable using path: {executable}. Reason is unknown."
        )
        self._logger.warning("Failed to start %s: %s", executable, message)
        if self._notify is not None:
            self._notify(message)
        return RunResult.failed(message)

    async def _pump_stdout(
        self, process: asyncio.subprocess.Process, decoder: LineDecoder
    ) -> None:
        assert process.stdout is not None
        while chunk := await process.stdout.read(_READ_CHUNK_SIZE):
            decoder.write(chunk)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> str:
        assert process.stderr is not None
        data = await process.stderr.read()
        return data.decode("utf-8", errors="replace")

    async def _write_stdin(
        self, process: asyncio.subprocess.Process, content: str | None
    ) -> None:
        if content is None or process.stdin is None:
            return
        try:
            process.stdin.write(content.encode("utf-8"))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            self._logger.debug("Tool closed stdin before reading all content")
        finally:
            process.stdin.close()
            with contextlib.suppress(BrokenPipeError, ConnectionResetError):
                await process.stdin.wait_closed()
