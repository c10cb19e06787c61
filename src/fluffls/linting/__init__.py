"""Debounced, per-document linting through an external tool."""

from fluffls.linting.collection import DiagnosticCollection
from fluffls.linting.configuration import ConfigurationSource, LinterConfiguration
from fluffls.linting.delayer import ThrottledDelayer, Throttler
from fluffls.linting.events import DocumentEvents
from fluffls.linting.line_decoder import LineDecoder
from fluffls.linting.provider import DocumentSource, Linter, LintingProvider
from fluffls.linting.runner import ProcessRunner
from fluffls.linting.sqlfluff import SQLFLUFF, parse_lint_output
from fluffls.linting.types import (
    LintDocument,
    RunOptions,
    RunResult,
    RunStatus,
    RunTrigger,
    ToolCommand,
)

__all__ = [
    "SQLFLUFF",
    "ConfigurationSource",
    "DiagnosticCollection",
    "DocumentEvents",
    "DocumentSource",
    "LineDecoder",
    "LintDocument",
    "Linter",
    "LinterConfiguration",
    "LintingProvider",
    "ProcessRunner",
    "RunOptions",
    "RunResult",
    "RunStatus",
    "RunTrigger",
    "ThrottledDelayer",
    "Throttler",
    "ToolCommand",
    "parse_lint_output",
]
