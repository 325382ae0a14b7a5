"""
Completion handler.

Provides two kinds of completion items:

1. **Component names**: offered while typing a run of colons at the start
   of a line (``:``, ``::al``…) outside YAML blocks and code fences.  The
   inserted snippet scaffolds the whole block: name, an empty ``---`` props
   block, an optional default-slot placeholder and the matching closer.
2. **Property names**: offered at the start of a line inside the ``---``
   props block of a component.  Props nested under an object-typed parent
   (``actions:`` + deeper indentation) resolve against the parent's nested
   schema.  Props already present at the cursor's indentation are left out,
   required props are listed first, and the insert text carries a value
   template matching the prop's type.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from lsprotocol import types as lsp

from mdclsp.scanner import (
    YamlBoundary,
    existing_property_names,
    is_inside_code_block,
    is_inside_yaml,
    scan_context,
)
from mdclsp.schema import (
    ComponentSchema,
    PropSchema,
    PropValueKind,
    SchemaIndex,
    kebab_case,
)

if TYPE_CHECKING:
    from mdclsp.cache import CacheLifecycle
    from mdclsp.document import MdcDocument

logger = logging.getLogger(__name__)

# ``:`` / ``::`` / ``::but`` typed at the start of a line
_COMPONENT_TRIGGER_RE = re.compile(r'^\s*:+[\w-]*\s*$')
# nothing but an optional partial bareword before the cursor
_PROP_TRIGGER_RE = re.compile(r'^\s*[\w$-]*$')

_SLOT_PLACEHOLDER = '<!-- Slot content -->'
_STYLES_PROP = 'styles'

_TRIGGER_SUGGEST = lsp.Command(
    title='Trigger Suggestions',
    command='editor.action.triggerSuggest',
)


def _text_before_cursor(lines: list[str], position: lsp.Position) -> str | None:
    if not 0 <= position.line < len(lines):
        return None
    return lines[position.line][:position.character]


def _markdown(value: str | None) -> lsp.MarkupContent | None:
    if not value:
        return None
    return lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=value)


# ---------------------------------------------------------------------------
# Component-name completion
# ---------------------------------------------------------------------------

def _component_insert_text(component: ComponentSchema, colon_count: int) -> str:
    closing = ':' * max(2, colon_count)
    # A single typed colon becomes a block component
    prefix = ':' if colon_count == 1 else ''
    slot = f'\n${{2:{_SLOT_PLACEHOLDER}}}' if component.slots else ''
    return f'{prefix}{kebab_case(component.mdc_name)}\n---\n${{1:}}\n---{slot}\n{closing}'


def get_component_completions(
    lines: list[str],
    position: lsp.Position,
    index: SchemaIndex,
) -> list[lsp.CompletionItem]:
    """Return component-name completion items for *position*."""
    text = _text_before_cursor(lines, position)
    if (
        text is None
        or not index
        or not _COMPONENT_TRIGGER_RE.match(text)
        or is_inside_yaml(lines, position.line)
        or is_inside_code_block(lines, position.line)
    ):
        return []

    colon_count = text.count(':')
    items: dict[str, lsp.CompletionItem] = {}
    for component in index.components:
        if not component.mdc_name or component.mdc_name in items:
            continue
        documentation = component.documentation_markdown or index.docs_link(component)
        items[component.mdc_name] = lsp.CompletionItem(
            label=component.mdc_name,
            kind=lsp.CompletionItemKind.Function,
            detail=component.description,
            documentation=_markdown(documentation),
            insert_text=_component_insert_text(component, colon_count),
            insert_text_format=lsp.InsertTextFormat.Snippet,
        )
    logger.debug('component completions: %d items (%d colons)', len(items), colon_count)
    return list(items.values())


# ---------------------------------------------------------------------------
# Property-name completion
# ---------------------------------------------------------------------------

def prop_insert_text(name: str, kind: PropValueKind, raw_name: str | None = None) -> str:
    """Snippet inserting ``name:`` with a value template for *kind*."""
    if (raw_name or name) == _STYLES_PROP:
        # always a multi-line CSS string
        return f'{name}: |\n  ${{0:/** Add CSS */}}'
    if kind is PropValueKind.BOOLEAN:
        return f'{name}: ${{0:true}}'
    if kind is PropValueKind.NUMBER:
        return f'{name}: ${{0:}}'
    if kind is PropValueKind.ARRAY:
        return f'{name}: ["${{0:}}"]'
    if kind is PropValueKind.ARRAY_UNQUOTED:
        return f'{name}: [${{0:}}]'
    if kind is PropValueKind.STRING:
        return f'{name}: "${{0:}}"'
    return f'{name}:\n  ${{0:}}'


def _type_description(type_str: str | None) -> str | None:
    if not type_str:
        return None
    return type_str.replace('| undefined', '').replace('| null', '').strip() or None


def _candidate_props(
    component: ComponentSchema,
    path: list[str],
    index: SchemaIndex,
) -> list[PropSchema]:
    if not path:
        return list(component.props)
    wanted = kebab_case(path[0])
    for prop in component.props:
        if index.prop_names(component.mdc_name, prop.name).kebab == wanted:
            return index.nested_prop_schemas(component, prop)
    return []


def get_property_completions(
    lines: list[str],
    position: lsp.Position,
    index: SchemaIndex,
    boundaries: YamlBoundary | None = None,
) -> list[lsp.CompletionItem]:
    """Return property-name completion items for *position*.

    *boundaries* may be passed in from a cache; it is recomputed otherwise.
    """
    text = _text_before_cursor(lines, position)
    if text is None or not index or not _PROP_TRIGGER_RE.match(text):
        return []

    ctx = scan_context(lines, position.line, boundaries)
    if (
        not ctx.inside_component
        or not ctx.inside_yaml
        or ctx.inside_code_block
        or ctx.inside_multiline_string
        or ctx.boundaries is None
    ):
        return []

    component = index.component(ctx.component_name)
    if component is None or not component.props:
        return []

    props = _candidate_props(component, ctx.yaml_path, index)
    existing = existing_property_names(lines, position.line, ctx.boundaries)
    docs = _markdown(index.docs_link(component))

    # required first, declaration order within each group
    ordered = sorted(enumerate(props), key=lambda item: not item[1].required)
    width = max(4, len(str(len(props))))

    items: list[lsp.CompletionItem] = []
    for order, prop in ordered:
        names = index.prop_names(component.mdc_name, prop.name)
        if names.kebab in existing or names.camel in existing:
            continue
        kind = index.value_kind_of(component, prop)
        group = '0' if prop.required else '1'
        items.append(lsp.CompletionItem(
            label=names.kebab,
            label_details=lsp.CompletionItemLabelDetails(
                detail=' (required)' if prop.required else None,
                description=_type_description(prop.type),
            ),
            kind=lsp.CompletionItemKind.Property,
            detail=prop.description,
            documentation=docs,
            filter_text=f'{names.kebab} {names.camel}',
            sort_text=f'{group}{order:0{width}d}_{names.kebab}',
            insert_text=prop_insert_text(names.kebab, kind, prop.name),
            insert_text_format=lsp.InsertTextFormat.Snippet,
            command=_TRIGGER_SUGGEST,
        ))
    logger.debug('property completions for %s %s: %d items',
                 component.mdc_name, ctx.yaml_path, len(items))
    return items


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def get_completions(
    doc: MdcDocument,
    position: lsp.Position,
    caches: CacheLifecycle,
    *,
    prop_completions: bool = True,
) -> list[lsp.CompletionItem]:
    """Return completion items for *position* in *doc*."""
    lines = caches.lines(doc)
    if position.line >= len(lines):
        return []

    if prop_completions:
        items = get_property_completions(
            lines, position, caches.schemas,
            caches.yaml_boundaries(doc, position.line),
        )
        if items:
            return items

    return get_component_completions(lines, position, caches.schemas)
