"""
Component schema catalog and the facts derived from it.

The catalog is a list of component records as produced by Nuxt's
``vue-component-meta`` export (``component_meta.meta.props``) or the
flattened form (``props`` / ``slots`` at the top level).  ``SchemaIndex``
answers the questions the completion handler asks about it:

* which props does a component declare,
* what nested object schema hangs off a prop (first object-kind entry only),
* what kind of value a prop takes (drives the insert template),
* the kebab-case / camelCase spellings of a prop name.

All derived facts are memoised per component name and only ever dropped all
at once, when the catalog is replaced.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, NamedTuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Naming conventions
# ---------------------------------------------------------------------------

# Word separators; case changes also start a new word.
_SEPARATORS = frozenset('-_./ \t')
# Kept verbatim in front of the converted name (``_internal``, ``$attrs``).
_PREFIX_RE = re.compile(r'^[_$]*')


def _is_cased(ch: str) -> bool:
    return ch.isupper() or ch.islower()


def split_words(name: str) -> list[str]:
    """Split *name* on separators and case boundaries.

    Any Unicode letter counts: ``größeXL`` splits into ``größe`` / ``XL``.
    An upper-case run followed by a lower-case letter gives up its last
    letter to the next word (``XMLHttp`` → ``XML`` / ``Http``).  Digits and
    other uncased characters stay attached to the word they follow.
    """
    words: list[str] = []
    word = ''
    prev_upper: bool | None = None
    for ch in name:
        if ch in _SEPARATORS:
            if word:
                words.append(word)
            word, prev_upper = '', None
            continue
        if not _is_cased(ch):
            word += ch
            continue
        upper = ch.isupper()
        if prev_upper is False and upper:
            words.append(word)
            word = ch
        elif prev_upper and not upper and len(word) > 1 and _is_cased(word[-1]):
            words.append(word[:-1])
            word = word[-1] + ch
        else:
            word += ch
        prev_upper = upper
    if word:
        words.append(word)
    return words


def kebab_case(name: str) -> str:
    """``fooBar`` / ``foo_bar`` / ``FooBar`` → ``foo-bar``."""
    prefix = _PREFIX_RE.match(name).group()
    return prefix + '-'.join(w.lower() for w in split_words(name[len(prefix):]))


def camel_case(name: str) -> str:
    """``foo-bar`` / ``foo_bar`` / ``FooBar`` → ``fooBar``.

    Only the first word is lower-cased; later words keep their own casing so
    acronyms survive a second conversion unchanged.
    """
    prefix = _PREFIX_RE.match(name).group()
    words = split_words(name[len(prefix):])
    if not words:
        return prefix
    return prefix + words[0].lower() + ''.join(w[:1].upper() + w[1:] for w in words[1:])


class PropNames(NamedTuple):
    kebab: str
    camel: str


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

class PropValueKind(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    ARRAY = 'array'
    ARRAY_UNQUOTED = 'array-unquoted'
    OBJECT = 'object'


@dataclass(frozen=True)
class PropSchema:
    name: str
    type: str | None = None
    required: bool = False
    description: str | None = None
    schema: Any = None           # raw nested schema from the catalog
    parent: str | None = None    # top-level prop this one was nested under

    @property
    def key(self) -> str:
        return f'{self.parent}.{self.name}' if self.parent else self.name

    @classmethod
    def from_dict(cls, data: dict, parent: str | None = None) -> PropSchema:
        raw_type = data.get('type')
        return cls(
            name=str(data.get('name', '')),
            type=str(raw_type) if raw_type is not None else None,
            required=bool(data.get('required', False)),
            description=data.get('description') or None,
            schema=data.get('schema'),
            parent=parent,
        )


@dataclass(frozen=True)
class ComponentSchema:
    mdc_name: str
    description: str | None = None
    documentation_markdown: str | None = None
    docs_url: str | None = None
    props: tuple[PropSchema, ...] = ()
    slots: tuple[Any, ...] = field(default=())

    @classmethod
    def from_dict(cls, data: dict) -> ComponentSchema:
        meta = (data.get('component_meta') or {}).get('meta') or {}
        raw_props = data['props'] if 'props' in data else meta.get('props')
        raw_slots = data['slots'] if 'slots' in data else meta.get('slots')
        return cls(
            mdc_name=str(data.get('mdc_name') or ''),
            description=data.get('description') or None,
            documentation_markdown=data.get('documentation_markdown') or None,
            docs_url=data.get('docs_url') or None,
            props=tuple(PropSchema.from_dict(p) for p in (raw_props or []) if isinstance(p, dict)),
            slots=tuple(raw_slots or ()),
        )


def parse_catalog(data: Any) -> list[ComponentSchema]:
    """Build ``ComponentSchema`` records from decoded JSON/YAML catalog data.

    Accepts a list of component records, or a mapping holding that list under
    ``components``.  Entries that are not mappings are skipped.
    """
    if isinstance(data, dict):
        data = data.get('components', [])
    if not isinstance(data, list):
        raise TypeError(f'component catalog must be a list, not {type(data).__name__}')

    catalog = []
    for entry in data:
        if isinstance(entry, ComponentSchema):
            catalog.append(entry)
        elif isinstance(entry, dict):
            catalog.append(ComponentSchema.from_dict(entry))
        else:
            logger.debug('parse_catalog: skipping non-mapping entry %r', entry)
    return catalog


# ---------------------------------------------------------------------------
# Value-kind inference
# ---------------------------------------------------------------------------

# Evaluated in order, first match wins.  Object and array patterns come before
# the scalar keywords because a type string may mention several of them
# (``Record<string, string>`` is an object, not a string).
VALUE_KIND_RULES: list[tuple[re.Pattern, PropValueKind]] = [
    (re.compile(r'Record<|Array<string,|(?i:object)'), PropValueKind.OBJECT),
    (re.compile(r'string\[\]|Array<string'), PropValueKind.ARRAY),
    (re.compile(r'number\[\]|boolean\[\]|Array<number|Array<boolean'), PropValueKind.ARRAY_UNQUOTED),
    (re.compile(r'boolean'), PropValueKind.BOOLEAN),
    (re.compile(r'number'), PropValueKind.NUMBER),
    (re.compile(r'string'), PropValueKind.STRING),
]


def _schema_entries(schema: Any) -> Iterable[Any]:
    """Values of a prop's nested ``schema.schema`` (mapping or sequence)."""
    if not isinstance(schema, dict):
        return ()
    inner = schema.get('schema')
    if isinstance(inner, dict):
        return inner.values()
    if isinstance(inner, (list, tuple)):
        return inner
    return ()


def _first_object_entry(schema: Any) -> dict | None:
    for entry in _schema_entries(schema):
        if isinstance(entry, dict) and entry.get('kind') == 'object':
            return entry
    return None


def infer_value_kind(type_str: str | None, schema: Any = None) -> PropValueKind:
    """Classify a free-form TypeScript-ish type string into a value kind."""
    if type_str:
        for pattern, kind in VALUE_KIND_RULES:
            if pattern.search(type_str):
                return kind
    if _first_object_entry(schema) is not None:
        return PropValueKind.OBJECT
    return PropValueKind.STRING


# ---------------------------------------------------------------------------
# SchemaIndex
# ---------------------------------------------------------------------------

class SchemaIndex:
    """Read-only view on a component catalog with memoised derived facts."""

    def __init__(self, catalog: Iterable[ComponentSchema] = ()):
        self._catalog: list[ComponentSchema] = list(catalog)
        self._by_name: dict[str, ComponentSchema] = {}
        for component in self._catalog:
            if component.mdc_name:
                self._by_name.setdefault(component.mdc_name, component)
        self._names: dict[tuple[str, str], PropNames] = {}
        self._nested: dict[str, dict[str, dict | None]] = {}
        self._kinds: dict[str, dict[str, PropValueKind]] = {}
        self._docs_links: dict[str, str] = {}

    @property
    def components(self) -> list[ComponentSchema]:
        return self._catalog

    def __len__(self) -> int:
        return len(self._catalog)

    def __bool__(self) -> bool:
        return bool(self._catalog)

    def clear(self) -> None:
        """Drop every memoised fact (the catalog itself is kept)."""
        self._names.clear()
        self._nested.clear()
        self._kinds.clear()
        self._docs_links.clear()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def component(self, name: str) -> ComponentSchema | None:
        return self._by_name.get(name)

    def props_of(self, name: str) -> list[PropSchema]:
        component = self.component(name)
        return list(component.props) if component else []

    def prop_names(self, component_name: str, prop_name: str) -> PropNames:
        key = (component_name, prop_name)
        cached = self._names.get(key)
        if cached is None:
            cached = PropNames(kebab_case(prop_name), camel_case(prop_name))
            self._names[key] = cached
        return cached

    def nested_props_of(self, component: ComponentSchema, prop: PropSchema) -> dict | None:
        """Return the inner schema map of the first object-kind entry of *prop*.

        Only one nesting level is resolved: deeper object entries are not
        searched.
        """
        if not component.mdc_name:
            return None
        cache = self._nested.setdefault(component.mdc_name, {})
        if prop.key not in cache:
            entry = _first_object_entry(prop.schema)
            inner = entry.get('schema') if entry else None
            cache[prop.key] = inner if isinstance(inner, dict) else None
        return cache[prop.key]

    def nested_prop_schemas(self, component: ComponentSchema, prop: PropSchema) -> list[PropSchema]:
        nested = self.nested_props_of(component, prop)
        if not nested:
            return []
        props = []
        for name, entry in nested.items():
            data = dict(entry) if isinstance(entry, dict) else {'type': str(entry)}
            data['name'] = name
            props.append(PropSchema.from_dict(data, parent=prop.name))
        return props

    def value_kind_of(self, component: ComponentSchema, prop: PropSchema) -> PropValueKind:
        if not component.mdc_name:
            return PropValueKind.STRING
        cache = self._kinds.setdefault(component.mdc_name, {})
        kind = cache.get(prop.key)
        if kind is None:
            kind = infer_value_kind(prop.type, prop.schema)
            cache[prop.key] = kind
        return kind

    def docs_link(self, component: ComponentSchema | None) -> str:
        """Markdown link to the component docs, or ``''`` without a docs URL."""
        if component is None or not component.mdc_name:
            return ''
        cached = self._docs_links.get(component.mdc_name)
        if cached is None:
            cached = (
                f"[View the '{component.mdc_name}' docs ↗]({component.docs_url})"
                if component.docs_url else ''
            )
            self._docs_links[component.mdc_name] = cached
        return cached
