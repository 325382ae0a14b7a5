"""mdclsp – MDC (Markdown Components) Language Server."""
try:
    from importlib.metadata import version, PackageNotFoundError
    try:
        __version__ = version('mdclsp')
    except PackageNotFoundError:
        __version__ = '0.0.0.dev0'
except ImportError:
    __version__ = '0.0.0.dev0'
