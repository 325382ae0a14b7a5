"""Folding ranges for MDC component blocks."""
from __future__ import annotations

import re

from lsprotocol import types as lsp

from mdclsp.scanner import CODE_FENCE_RE

_BLOCK_START_RE = re.compile(r'^\s*(:{2,})([\w-]+)')
_BLOCK_END_RE = re.compile(r'^\s*(:{2,})$')


def get_folding_ranges(lines: list[str]) -> list[lsp.FoldingRange]:
    """Return one range per matched ``::name`` … ``::`` pair.

    Lines inside fenced code blocks are ignored.  A closer only matches an
    opener with the same number of colons; unmatched openers do not fold.
    """
    ranges: list[lsp.FoldingRange] = []
    stack: list[tuple[int, int]] = []     # (start line, colon depth)
    inside_code_block = False

    for line_number, raw in enumerate(lines):
        line = raw.strip()

        if CODE_FENCE_RE.match(line):
            inside_code_block = not inside_code_block
            continue
        if inside_code_block:
            continue

        m = _BLOCK_START_RE.match(line)
        if m:
            stack.append((line_number, len(m.group(1))))
            continue

        m = _BLOCK_END_RE.match(line)
        if m and stack and stack[-1][1] == len(m.group(1)):
            start, _ = stack.pop()
            ranges.append(lsp.FoldingRange(start_line=start, end_line=line_number))

    return ranges
