"""
Context scanner for MDC documents.

MDC has no formal grammar, so the cursor context is classified by matching
lines heuristically.  Three pieces of state are tracked by a single forward
pass from the top of the document up to (excluding) the cursor line:

* the stack of open component blocks (``::name`` … ``::``),
* whether the cursor sits between an odd number of ``---`` delimiters,
* whether the cursor sits inside a fenced code block (```` ``` ```` / ``~~~``).

Everything else (YAML block boundaries, the YAML property path, multi-line
strings, properties already present) is found by short backward scans from
the cursor line.

None of the functions raise for malformed input: unbalanced closers simply
leave frames on the stack, and out-of-range line numbers are clamped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from mdclsp.schema import camel_case, kebab_case

# ``::alert`` / ``:::card`` on a line of its own (after trimming)
COMPONENT_START_RE = re.compile(r'^\s*(:{2,})([\w-]+)\s*$')
# ``::`` / ``:::`` closing a block of the same depth
COMPONENT_END_RE = re.compile(r'^(:{2,})$')
YAML_DELIMITER_RE = re.compile(r'^\s*---\s*$')
CODE_FENCE_RE = re.compile(r'^\s*(?:`{3,}|~{3,})')
MULTILINE_STRING_RE = re.compile(r'^([\w-]+):\s*[|>]')
PARENT_PROP_RE = re.compile(r':\s*$')
PROP_NAME_RE = re.compile(r'^([\w-]+):')


@dataclass(frozen=True)
class ComponentFrame:
    name: str
    open_line: int
    colon_depth: int


@dataclass(frozen=True)
class YamlBoundary:
    start: int      # line of the opening ``---``
    end: int        # line of the closing ``---`` (or len(lines) when unclosed)


@dataclass
class CursorContext:
    """Everything known about the syntactic region around a cursor line."""
    line_number: int
    component_stack: list[ComponentFrame] = field(default_factory=list)
    inside_yaml: bool = False
    inside_code_block: bool = False
    inside_multiline_string: bool = False
    boundaries: YamlBoundary | None = None
    yaml_path: list[str] = field(default_factory=list)

    @property
    def inside_component(self) -> bool:
        return bool(self.component_stack)

    @property
    def component_name(self) -> str | None:
        return self.component_stack[-1].name if self.component_stack else None


@dataclass
class _ForwardState:
    stack: list[ComponentFrame] = field(default_factory=list)
    inside_yaml: bool = False
    inside_code_block: bool = False


def indentation(line: str) -> int:
    return len(line) - len(line.lstrip())


def _line_at(lines: list[str], line_number: int) -> str:
    if 0 <= line_number < len(lines):
        return lines[line_number]
    return ''


def _forward_scan(lines: list[str], line_number: int) -> _ForwardState:
    state = _ForwardState()
    for i in range(min(line_number, len(lines))):
        line = lines[i].strip()
        if not line:
            continue

        if YAML_DELIMITER_RE.match(line):
            state.inside_yaml = not state.inside_yaml
        if CODE_FENCE_RE.match(line):
            state.inside_code_block = not state.inside_code_block

        m = COMPONENT_START_RE.match(line)
        if m:
            state.stack.append(ComponentFrame(
                name=m.group(2), open_line=i, colon_depth=len(m.group(1)),
            ))
            continue

        m = COMPONENT_END_RE.match(line)
        if m and state.stack and state.stack[-1].colon_depth == len(m.group(1)):
            state.stack.pop()
    return state


# ---------------------------------------------------------------------------
# Forward-scan queries
# ---------------------------------------------------------------------------

def component_stack(lines: list[str], line_number: int) -> list[ComponentFrame]:
    """Return the open component blocks at *line_number*, outermost first."""
    return _forward_scan(lines, line_number).stack


def is_inside_component(lines: list[str], line_number: int) -> bool:
    return bool(component_stack(lines, line_number))


def current_component_name(lines: list[str], line_number: int) -> str | None:
    """Name of the innermost open component block, or ``None``."""
    stack = component_stack(lines, line_number)
    return stack[-1].name if stack else None


def is_inside_yaml(lines: list[str], line_number: int) -> bool:
    return _forward_scan(lines, line_number).inside_yaml


def is_inside_code_block(lines: list[str], line_number: int) -> bool:
    return _forward_scan(lines, line_number).inside_code_block


# ---------------------------------------------------------------------------
# Backward-scan queries
# ---------------------------------------------------------------------------

def yaml_boundaries(lines: list[str], line_number: int) -> YamlBoundary | None:
    """Locate the ``---`` delimiters around *line_number*.

    The start is the nearest delimiter strictly above the line; the end is
    the nearest delimiter at or below it, or ``len(lines)`` when the block is
    not closed yet.  Returns ``None`` when no delimiter precedes the line.
    """
    start = -1
    for i in range(min(line_number, len(lines)) - 1, -1, -1):
        if lines[i].strip() == '---':
            start = i
            break
    if start == -1:
        return None

    end = len(lines)
    for i in range(max(line_number, 0), len(lines)):
        if lines[i].strip() == '---':
            end = i
            break
    return YamlBoundary(start=start, end=end)


def is_inside_multiline_string(lines: list[str], line_number: int) -> bool:
    """True when the cursor line continues a ``key: |`` / ``key: >`` value.

    Returning to the indentation of the ``key:`` line (or shallower) ends the
    string.  Meeting a ``---`` first means the block has no open string.
    """
    current_indent = indentation(_line_at(lines, line_number))
    marker_indent = None
    for i in range(min(line_number, len(lines)) - 1, -1, -1):
        line = lines[i]
        trimmed = line.strip()
        if trimmed == '---':
            return False
        if MULTILINE_STRING_RE.match(trimmed):
            marker_indent = indentation(line)
            break

    if marker_indent is None:
        return False
    return current_indent > marker_indent


def yaml_path(lines: list[str], line_number: int,
              boundaries: YamlBoundary | None) -> list[str]:
    """Return the property path (outermost first) enclosing *line_number*.

    Ancestors are lines ending in ``:`` whose indentation is strictly smaller
    than the previously accepted ancestor, starting from the cursor line.
    """
    path: list[str] = []
    if boundaries is None or not 0 <= line_number < len(lines):
        return path

    last_indent = indentation(lines[line_number])
    for i in range(line_number - 1, boundaries.start, -1):
        line = lines[i]
        trimmed = line.strip()
        if not trimmed or trimmed == '---' or i > boundaries.end:
            continue
        line_indent = indentation(line)
        if PARENT_PROP_RE.search(trimmed) and line_indent < last_indent:
            m = PROP_NAME_RE.match(trimmed)
            if m:
                path.insert(0, m.group(1))
                last_indent = line_indent
    return path


def existing_property_names(lines: list[str], line_number: int,
                            boundaries: YamlBoundary | None) -> set[str]:
    """Property names already declared at the cursor's indentation.

    Both the kebab-case and camelCase spelling of every name are returned so
    either convention counts as "already present".
    """
    names: set[str] = set()
    if boundaries is None:
        return names

    current_indent = indentation(_line_at(lines, line_number))
    for i in range(boundaries.start + 1, min(boundaries.end, len(lines))):
        line = lines[i]
        if indentation(line) != current_indent:
            continue
        m = PROP_NAME_RE.match(line.strip())
        if m:
            names.add(kebab_case(m.group(1)))
            names.add(camel_case(m.group(1)))
    return names


# ---------------------------------------------------------------------------
# Combined view
# ---------------------------------------------------------------------------

def scan_context(lines: list[str], line_number: int,
                 boundaries: YamlBoundary | None = None) -> CursorContext:
    """Classify the cursor context at *line_number* in one forward pass.

    *boundaries* may be supplied by a caller that caches them; otherwise they
    are computed when the line is inside a YAML block.
    """
    state = _forward_scan(lines, line_number)
    ctx = CursorContext(
        line_number=line_number,
        component_stack=state.stack,
        inside_yaml=state.inside_yaml,
        inside_code_block=state.inside_code_block,
    )
    if state.inside_yaml:
        ctx.boundaries = boundaries if boundaries is not None else yaml_boundaries(lines, line_number)
        ctx.inside_multiline_string = is_inside_multiline_string(lines, line_number)
        ctx.yaml_path = yaml_path(lines, line_number, ctx.boundaries)
    return ctx
