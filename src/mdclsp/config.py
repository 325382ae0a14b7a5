"""
Settings for mdclsp.

Settings are layered, lowest precedence first:

1. Built-in defaults.
2. A ``.mdclsp.toml`` project config file in the workspace root.
3. Command-line options (``--metadata-url``, ``--cache-ttl``,
   ``--no-prop-completions``).
4. ``initializationOptions`` sent by the client (flat keys or an ``mdc``
   section).
5. ``workspace/didChangeConfiguration`` ``settings.mdc``.

Keys use the editor-side spelling (``componentMetadataURL``,
``componentMetadataCacheTTL``, ``enablePropCompletions``, ``debug``,
``logLevel``); the TOML file also accepts their snake_case forms.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MINUTES = 360  # 6 hours
PROJECT_CONFIG_NAME = '.mdclsp.toml'

# client key -> Settings attribute
_KEYS = {
    'componentMetadataURL': 'component_metadata_url',
    'componentMetadataCacheTTL': 'component_metadata_cache_ttl',
    'enablePropCompletions': 'enable_prop_completions',
    'debug': 'debug',
    'logLevel': 'log_level',
}


@dataclass(frozen=True)
class Settings:
    component_metadata_url: str | None = None
    component_metadata_cache_ttl: float = DEFAULT_CACHE_TTL_MINUTES
    enable_prop_completions: bool = True
    debug: bool = False
    log_level: str | None = None

    @property
    def effective_log_level(self) -> str | None:
        return 'DEBUG' if self.debug else self.log_level

    def merged(self, raw: Any) -> Settings:
        """Return a copy updated from a client/TOML mapping.

        Unknown keys are ignored; ``None`` values leave a setting unchanged.
        """
        section = _mdc_section(raw)
        if not section:
            return self
        updates: dict[str, Any] = {}
        for client_key, attr in _KEYS.items():
            for key in (client_key, attr):
                if section.get(key) is not None:
                    updates[attr] = section[key]
        return replace(self, **_coerce(updates)) if updates else self


def _mdc_section(raw: Any) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        # Some clients send a typed object; try attribute access
        raw = {k: getattr(raw, k) for k in (*_KEYS, 'mdc') if hasattr(raw, k)}
    section = raw.get('mdc')
    return section if isinstance(section, dict) else raw


def _coerce(updates: dict[str, Any]) -> dict[str, Any]:
    out = dict(updates)
    if 'component_metadata_url' in out:
        out['component_metadata_url'] = str(out['component_metadata_url']).strip() or None
    if 'component_metadata_cache_ttl' in out:
        try:
            ttl = float(out['component_metadata_cache_ttl'])
        except (TypeError, ValueError):
            logger.warning('Ignoring invalid componentMetadataCacheTTL %r',
                           out['component_metadata_cache_ttl'])
            del out['component_metadata_cache_ttl']
        else:
            out['component_metadata_cache_ttl'] = ttl if ttl > 0 else DEFAULT_CACHE_TTL_MINUTES
    for key in ('enable_prop_completions', 'debug'):
        if key in out:
            out[key] = bool(out[key])
    if 'log_level' in out:
        out['log_level'] = str(out['log_level']).upper() or None
    return out


# ---------------------------------------------------------------------------
# Project config file
# ---------------------------------------------------------------------------

def read_project_config(workspace_root: str | None) -> dict:
    """Parse ``.mdclsp.toml`` in *workspace_root*; ``{}`` when absent or invalid."""
    if not workspace_root:
        return {}
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib

    config_path = Path(workspace_root) / PROJECT_CONFIG_NAME
    if not config_path.is_file():
        return {}

    try:
        return tomllib.loads(config_path.read_text(encoding='utf-8'))
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning('Could not read %s', config_path, exc_info=True)
        return {}


def load_settings(workspace_root: str | None = None, init_options: Any = None,
                  overrides: Any = None) -> Settings:
    """Build settings from defaults, the project file and client options.

    *overrides* (from the command line) sit between the project file and
    the client's ``initializationOptions``.
    """
    settings = Settings().merged(read_project_config(workspace_root))
    return settings.merged(overrides).merged(init_options)
