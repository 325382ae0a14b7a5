"""
Per-document line store.

Each open document is stored as an ``MdcDocument``.  Documents are replaced
wholesale on every change (full text sync), so the split lines are memoised
per URI and dropped explicitly when the document changes or closes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MdcDocument:
    uri: str
    source: str
    version: int | None = None


class LineStore:
    """Memoises ``source.split('\\n')`` per document URI."""

    def __init__(self):
        self._lines: dict[str, list[str]] = {}

    def get_lines(self, doc: MdcDocument) -> list[str]:
        lines = self._lines.get(doc.uri)
        if lines is None:
            lines = doc.source.split('\n')
            self._lines[doc.uri] = lines
        return lines

    def invalidate(self, uri: str) -> None:
        if self._lines.pop(uri, None) is not None:
            logger.debug('LineStore: dropped lines for %s', uri)

    def clear(self) -> None:
        self._lines.clear()

    def __contains__(self, uri: str) -> bool:
        return uri in self._lines

    def __len__(self) -> int:
        return len(self._lines)
