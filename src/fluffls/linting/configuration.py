"""Linter settings as sent by the client."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from fluffls.linting.types import RunTrigger

__all__ = ["ConfigurationSource", "LinterConfiguration", "SETTINGS_SECTION"]

SETTINGS_SECTION = "sqlfluff"

DEFAULT_EXECUTABLE = "sqlfluff"
DEFAULT_DELAY_MS = 100


def _section(settings: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    if not settings:
        return {}
    value = settings.get(key)
    return value if isinstance(value, Mapping) else {}


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _str_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return ()


def _delay(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_DELAY_MS
    try:
        delay = int(value)
    except (TypeError, ValueError):
        return DEFAULT_DELAY_MS
    return max(delay, 0)


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


@dataclasses.dataclass(frozen=True)
class LinterConfiguration:
    """Resolved linter settings."""

    executable: str = DEFAULT_EXECUTABLE
    working_directory: str | None = None
    dialect: str | None = None
    config_path: str | None = None
    ignore_parsing: bool = False
    environment: Mapping[str, str] = dataclasses.field(default_factory=dict)
    run_trigger: RunTrigger = RunTrigger.ON_TYPE
    delay_ms: int = DEFAULT_DELAY_MS
    lint_entire_project: bool = False
    extra_arguments: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any] | None) -> LinterConfiguration:
        """
        Build a configuration from client settings.

        Accepts either the ``sqlfluff`` section itself or a mapping containing
        it. Missing or malformed values fall back to defaults.
        """
        settings = settings or {}
        if SETTINGS_SECTION in settings:
            settings = _section(settings, SETTINGS_SECTION)
        linter = _section(settings, "linter")
        environment = _section(settings, "environmentVariables")

        return cls(
            executable=_str_or_none(settings.get("executablePath"))
            or DEFAULT_EXECUTABLE,
            working_directory=_str_or_none(settings.get("workingDirectory")),
            dialect=_str_or_none(settings.get("dialect")),
            config_path=_str_or_none(settings.get("config")),
            ignore_parsing=bool(settings.get("ignoreParsing", False)),
            environment={str(k): str(v) for k, v in environment.items()},
            run_trigger=RunTrigger.from_setting(
                linter.get("run", RunTrigger.ON_TYPE.value)
            ),
            delay_ms=_delay(linter.get("delay", DEFAULT_DELAY_MS)),
            lint_entire_project=bool(linter.get("lintEntireProject", False)),
            extra_arguments=_str_list(linter.get("arguments")),
        )

    def lint_arguments(self) -> list[str]:
        """Arguments following the ``lint`` sub-command."""
        args = ["--format", "json"]
        if self.dialect:
            args.extend(["--dialect", self.dialect])
        if self.config_path:
            args.extend(["--config", self.config_path])
        if self.ignore_parsing:
            args.extend(["--ignore", "parsing"])
        args.extend(self.extra_arguments)
        return args

    def resolve_working_directory(
        self, root_path: str | None, document_path: str | None = None
    ) -> str | None:
        """
        Pick the directory the tool runs in.

        The configured directory wins; a relative one is taken from the
        workspace root. Without a setting the workspace root is used, then
        the document's own directory.
        """
        if self.working_directory:
            configured = os.path.expanduser(self.working_directory)
            if not os.path.isabs(configured) and root_path:
                configured = os.path.join(root_path, configured)
            return os.path.normpath(configured)
        if root_path:
            return os.path.normpath(root_path)
        if document_path:
            return os.path.dirname(document_path) or None
        return None


class ConfigurationSource:
    """Holds the latest raw client settings over launch-time defaults."""

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        self._defaults = dict(defaults or {})
        self._settings: dict[str, Any] = {}

    @property
    def settings(self) -> dict[str, Any]:
        return _merge(self._defaults, self._settings)

    def update(self, settings: Mapping[str, Any] | None) -> None:
        """Replace the client settings. None is ignored."""
        if settings is None:
            return
        if SETTINGS_SECTION in settings:
            settings = _section(settings, SETTINGS_SECTION)
        self._settings = dict(settings)

    def load(self) -> LinterConfiguration:
        return LinterConfiguration.from_settings(self.settings)
