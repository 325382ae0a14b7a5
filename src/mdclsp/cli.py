"""
mdclsp – MDC Language Server CLI entry point.

Usage
-----
    mdclsp                                  # stdio mode (default, for editors)
    mdclsp --tcp 2087                       # listen on TCP port (debugging)
    mdclsp --metadata-url components.json   # catalog without client settings
    mdclsp --metadata-url URL --list-components   # check a catalog and exit

``--metadata-url``, ``--cache-ttl`` and ``--no-prop-completions`` override the
``.mdclsp.toml`` project file; settings sent by the client still win.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='mdclsp',
        description='MDC (Markdown Components) Language Server for .md and .mdc files.',
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        '--stdio',
        action='store_true',
        help='Communicate over stdin/stdout (default when no flag given)',
    )
    mode.add_argument(
        '--tcp',
        metavar='PORT',
        type=int,
        help='Listen for connections on the given TCP port instead of stdio',
    )
    mode.add_argument(
        '--list-components',
        action='store_true',
        help='Load the catalog from --metadata-url, print its components and exit',
    )

    catalog = p.add_argument_group('component catalog')
    catalog.add_argument(
        '--metadata-url',
        metavar='URL',
        help='Component metadata source: http(s) URL, file:// URI or path '
             '(mdc.componentMetadataURL)',
    )
    catalog.add_argument(
        '--cache-ttl',
        metavar='MINUTES',
        type=float,
        help='Minutes before the catalog is fetched again (mdc.componentMetadataCacheTTL)',
    )
    catalog.add_argument(
        '--no-prop-completions',
        action='store_true',
        help='Only offer component names, never property names (mdc.enablePropCompletions)',
    )

    p.add_argument('--version', action='store_true', help='Print the mdclsp version and exit')
    p.add_argument(
        '--log-level',
        metavar='LEVEL',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level written to stderr (default: WARNING)',
    )
    return p


def settings_overrides(args: argparse.Namespace) -> dict:
    """Translate command-line options into ``mdc.*`` setting keys."""
    overrides = {}
    if args.metadata_url is not None:
        overrides['componentMetadataURL'] = args.metadata_url
    if args.cache_ttl is not None:
        overrides['componentMetadataCacheTTL'] = args.cache_ttl
    if args.no_prop_completions:
        overrides['enablePropCompletions'] = False
    return overrides


def _list_components(args: argparse.Namespace) -> int:
    from mdclsp.config import load_settings
    from mdclsp.metadata import MetadataError, fetch_catalog

    base_dir = os.getcwd()
    settings = load_settings(base_dir, overrides=settings_overrides(args))
    if not settings.component_metadata_url:
        print('mdclsp: no component metadata source; pass --metadata-url '
              'or set componentMetadataURL in .mdclsp.toml', file=sys.stderr)
        return 2
    try:
        catalog = fetch_catalog(settings.component_metadata_url, base_dir=base_dir)
    except MetadataError as e:
        print(f'mdclsp: {e}', file=sys.stderr)
        return 1

    for component in catalog:
        if not component.mdc_name:
            continue
        props = ', '.join(p.name for p in component.props)
        line = component.mdc_name
        if component.description:
            line += f' - {component.description}'
        print(f'{line}\n    props: {props or "(none)"}')
    return 0


def mdclsp(argv: list[str] | None = None) -> None:
    """Entry point for the ``mdclsp`` command."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if args.version:
        from mdclsp import __version__
        print(f'mdclsp {__version__}')
        sys.exit(0)

    if args.list_components:
        sys.exit(_list_components(args))

    from mdclsp.server import server, set_startup_overrides

    overrides = settings_overrides(args)
    if overrides:
        logger.info('Command-line settings: %s', overrides)
    set_startup_overrides(overrides)

    if args.tcp is not None:
        server.start_tcp('127.0.0.1', args.tcp)
    else:
        server.start_io()


if __name__ == '__main__':
    mdclsp()
