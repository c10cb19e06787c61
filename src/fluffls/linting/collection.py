"""Diagnostic store keyed by document uri."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from lsprotocol import types

Publisher = Callable[[str, list[types.Diagnostic]], None]


class DiagnosticCollection:
    """Latest diagnostics per document, forwarded to a publisher.

    Once disposed the collection ignores every update, so runs finishing
    after shutdown are dropped.
    """

    def __init__(self, publish: Publisher) -> None:
        self._publish = publish
        self._entries: dict[str, list[types.Diagnostic]] = {}
        self._disposed = False

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def get(self, uri: str) -> list[types.Diagnostic] | None:
        entry = self._entries.get(uri)
        return list(entry) if entry is not None else None

    def set(self, uri: str, diagnostics: Sequence[types.Diagnostic]) -> None:
        """Replace the diagnostics of ``uri``."""
        if self._disposed:
            return
        self._entries[uri] = list(diagnostics)
        self._publish(uri, list(diagnostics))

    def delete(self, uri: str) -> None:
        """Forget ``uri`` and publish an empty set for it."""
        if self._disposed:
            return
        if self._entries.pop(uri, None) is not None:
            self._publish(uri, [])

    def clear(self) -> None:
        if self._disposed:
            return
        uris = list(self._entries)
        self._entries.clear()
        for uri in uris:
            self._publish(uri, [])

    def dispose(self) -> None:
        self._entries.clear()
        self._disposed = True
