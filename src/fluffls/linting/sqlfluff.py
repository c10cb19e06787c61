"""SQLFluff output parsing and linter definition."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from lsprotocol import types

from fluffls.linting.provider import Linter
from fluffls.logging import get_logger

__all__ = ["SQLFLUFF", "parse_lint_output"]

SOURCE = "sqlfluff"

logger = get_logger("linting.sqlfluff")


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    return default


def _position(line_no: Any, line_pos: Any) -> types.Position:
    # SQLFluff reports 1-based lines and columns
    return types.Position(
        line=max(_int(line_no, 1) - 1, 0),
        character=max(_int(line_pos, 1) - 1, 0),
    )


def _to_diagnostic(violation: Mapping[str, Any]) -> types.Diagnostic:
    start = _position(
        violation.get("start_line_no", violation.get("line_no")),
        violation.get("start_line_pos", violation.get("line_pos")),
    )
    if "end_line_no" in violation and "end_line_pos" in violation:
        end = _position(violation["end_line_no"], violation["end_line_pos"])
    else:
        end = start

    code = violation.get("code")
    name = violation.get("name")
    return types.Diagnostic(
        range=types.Range(start=start, end=end),
        message=str(violation.get("description", "")),
        severity=(
            types.DiagnosticSeverity.Warning
            if violation.get("warning")
            else types.DiagnosticSeverity.Error
        ),
        source=SOURCE,
        code=str(code) if code is not None else None,
        data={"name": name} if name else None,
    )


def parse_lint_output(lines: Sequence[str]) -> list[types.Diagnostic] | None:
    """
    Convert ``sqlfluff lint --format json`` output into diagnostics.

    Args:
        lines: Decoded stdout lines of one run.

    Returns:
        Diagnostics for every violation of every reported file, in order,
        or None when the output is not a JSON report.
    """
    payload = "\n".join(lines).strip()
    if not payload:
        return None

    try:
        report = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Could not decode SQLFluff output: %s", payload[:200])
        return None

    if not isinstance(report, list):
        logger.warning("Unexpected SQLFluff report type: %s", type(report).__name__)
        return None

    diagnostics: list[types.Diagnostic] = []
    for file_result in report:
        if not isinstance(file_result, Mapping):
            continue
        violations = file_result.get("violations") or []
        for violation in violations:
            if isinstance(violation, Mapping):
                diagnostics.append(_to_diagnostic(violation))
    return diagnostics


SQLFLUFF = Linter(
    name="sqlfluff",
    language_ids=("sql", "sql-bigquery", "jinja-sql"),
    file_extensions=(".sql", ".sql-bigquery", ".jinja-sql"),
    parse=parse_lint_output,
)
