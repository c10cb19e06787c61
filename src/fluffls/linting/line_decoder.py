"""Incremental decoding of a byte stream into text lines."""

from __future__ import annotations

import codecs


class LineDecoder:
    """Turns arbitrarily fragmented byte chunks into complete lines.

    A trailing partial line is carried over to the next chunk, so a line
    split across several chunks comes out once. Invalid byte sequences are
    replaced rather than raised.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._remaining = ""
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        """All lines completed so far, in arrival order."""
        return list(self._lines)

    def write(self, chunk: bytes) -> list[str]:
        """
        Feed a chunk of bytes.

        Args:
            chunk: Next chunk of the stream.

        Returns:
            The lines completed by this chunk.
        """
        return self._consume(self._decoder.decode(chunk))

    def end(self) -> list[str]:
        """
        Flush the stream.

        Returns:
            Lines completed by the flush, including a non-empty carry-over.
        """
        completed = self._consume(self._decoder.decode(b"", final=True))
        if self._remaining:
            last = _strip_cr(self._remaining)
            self._remaining = ""
            self._lines.append(last)
            completed.append(last)
        return completed

    def _consume(self, text: str) -> list[str]:
        if not text:
            return []
        parts = (self._remaining + text).split("\n")
        self._remaining = parts.pop()
        completed = [_strip_cr(part) for part in parts]
        self._lines.extend(completed)
        return completed


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line
